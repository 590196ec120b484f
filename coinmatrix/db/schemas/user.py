from pydantic import BaseModel, EmailStr, Field as PydanticField


class UserBase(BaseModel):
    username: str = PydanticField(..., min_length=3, max_length=50)
    email: EmailStr


class SignupRequest(UserBase):
    password: str = PydanticField(..., min_length=8, max_length=72)


class LoginRequest(BaseModel):
    username: str
    password: str


class Token(BaseModel):
    token: str
    token_type: str = "bearer"
    username: str
