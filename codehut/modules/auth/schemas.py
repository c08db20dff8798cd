from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr
from pydantic.alias_generators import to_camel
from codehut.modules.auth.models import UserRole

class UserRead(BaseModel):
    id: str
    username: str
    email: str
    bio: Optional[str] = None
    avatar: Optional[str] = None
    role: UserRole
    total_snippets: int = 0
    total_downloads: int = 0
    rating: float = 0.0
    is_active: bool = True
    email_verified: bool = False
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True

def user_out(user) -> dict:
    return UserRead.model_validate(user).model_dump(by_alias=True, mode="json")

class SignupRequest(BaseModel):
    username: str
    email: EmailStr
    password: str
    bio: Optional[str] = None

class LoginRequest(BaseModel):
    email: str
    password: str
    rememberMe: bool = False

class RefreshRequest(BaseModel):
    refreshToken: Optional[str] = None

class ChangePasswordRequest(BaseModel):
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = None
