from pydantic import BaseModel, ConfigDict, EmailStr

from clinic_booking.models.account import Role


class ActorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: EmailStr
    role: Role
    first_name: str = ""
    last_name: str = ""
