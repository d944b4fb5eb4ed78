from pydantic import EmailStr, Field
from typing import Optional

from .common import CamelModel
from .users import UserOut


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=50)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(min_length=1)


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResult(CamelModel):
    user: UserOut
    tokens: TokenPair
