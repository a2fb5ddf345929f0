from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, constr

from app.utils.roles import Role


class RegisterRequest(BaseModel):
    name: constr(strip_whitespace=True, min_length=1)
    email: EmailStr
    password: constr(min_length=1)
    role: Role
    secret_key: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: constr(min_length=1)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: Role
    created_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
