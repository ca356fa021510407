from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class SessionCheck(BaseModel):
    visitor_email: Optional[str] = None
    project_name: Optional[str] = ""


class SessionCheckResult(BaseModel):
    success: bool = True
    hasActiveSession: bool
    message: str
    redirect_url: Optional[str] = None
    visitor_name: Optional[str] = None


class AccessRequestCreate(BaseModel):
    """Fields are optional here so that missing ones produce a 400, not a 422"""
    visitor_name: Optional[str] = None
    visitor_email: Optional[str] = None
    project_name: Optional[str] = None
    project_type: Optional[str] = None
    redirect_url: Optional[str] = None
    otp_code: Optional[str] = None
    local_time: Optional[str] = None
    client_timezone: Optional[str] = None


class AccessVerify(BaseModel):
    visitor_email: Optional[str] = None
    otp_code: Optional[str] = None


class AccessRevoke(BaseModel):
    visitor_email: Optional[str] = None


class AccessRequestResponse(BaseModel):
    id: int
    visitor_name: str
    visitor_email: str
    project_name: str
    project_type: Optional[str] = None
    status_id: int
    status: str
    is_verified: bool
    created_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    last_access_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    local_time: Optional[str] = None
    client_timezone: Optional[str] = None

    class Config:
        from_attributes = True


class AccessStats(BaseModel):
    total_requests: int
    verified_requests: int
    active_sessions: int
    inactive_sessions: int
