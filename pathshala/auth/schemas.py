from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class Identity(BaseModel):
    id: str
    email: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None  # seconds (from Supabase)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
    device_info: Optional[str] = None


class LoginResponse(BaseModel):
    detail: str = "সফলভাবে লগইন হয়েছে!"
    user_id: str
    email: str
    is_admin: bool
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


class LogoutResponse(BaseModel):
    detail: str
    session_cleared: bool
    signed_out: bool


class MeResponse(BaseModel):
    id: str
    email: str
    is_admin: bool
