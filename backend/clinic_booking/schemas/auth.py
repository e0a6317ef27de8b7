from pydantic import BaseModel, EmailStr, Field


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    account_id: str
    role: str


class LoginRequest(BaseModel):
    email: EmailStr
    code: str = Field(min_length=4, max_length=4)


class SignupRequest(BaseModel):
    email: EmailStr
    code: str
