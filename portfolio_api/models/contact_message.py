from sqlalchemy import Column, String, Integer, DateTime, Boolean, Text

from portfolio_api.core.security import utcnow
from portfolio_api.db.base import Base


class ContactMessage(Base):
    __tablename__ = "contact_messages"

    id = Column(Integer, primary_key=True, index=True)
    sender_name = Column(String(255), nullable=False)
    sender_email = Column(String(255), nullable=False, index=True)
    subject = Column(String(500), default="No Subject")
    message = Column(Text, nullable=False)

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    is_replied = Column(Boolean, default=False, nullable=False)
    replied_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, index=True)
    local_time = Column(String(100), nullable=True)
    client_timezone = Column(String(100), nullable=True)
