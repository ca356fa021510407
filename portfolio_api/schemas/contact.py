from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class ContactMessageCreate(BaseModel):
    sender_name: Optional[str] = None
    sender_email: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None
    local_time: Optional[str] = None
    client_timezone: Optional[str] = None


class ContactMessageResponse(BaseModel):
    id: int
    sender_name: str
    sender_email: str
    subject: Optional[str] = None
    message: str
    is_read: bool
    read_at: Optional[datetime] = None
    is_replied: bool
    replied_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    local_time: Optional[str] = None
    client_timezone: Optional[str] = None

    class Config:
        from_attributes = True


class ContactStats(BaseModel):
    total_messages: int
    unread_messages: int
    read_messages: int
    replied_messages: int


class ReplyCreate(BaseModel):
    to_email: Optional[str] = None
    to_name: Optional[str] = None
    subject: Optional[str] = None
    original_message: Optional[str] = None
    reply_message: Optional[str] = None
