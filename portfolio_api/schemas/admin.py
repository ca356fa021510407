from pydantic import BaseModel
from typing import Optional


class AdminSignup(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class AdminVerifySignup(BaseModel):
    email: Optional[str] = None
    otp: Optional[str] = None


class AdminLogin(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class AdminUserResponse(BaseModel):
    id: int
    username: str
    email: str

    class Config:
        from_attributes = True


class TableInfo(BaseModel):
    name: str
    displayName: str
    icon: str


class DashboardStats(BaseModel):
    total_access_requests: int
    active_sessions: int
    verified_requests: int
    total_messages: int
    unread_messages: int
    total_admins: int
