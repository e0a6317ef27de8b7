import re

_NON_DIGITS = re.compile(r"\D")


def format_phone_number(raw: str | None) -> str:
    """Render a stored phone number for display.

    Ten-digit numbers become ``(305) 555-1234``; anything else is returned
    unchanged so that odd legacy values stay readable.
    """
    if not raw:
        return ""
    digits = _NON_DIGITS.sub("", raw)
    if len(digits) != 10:
        return raw
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
