from sqlalchemy import Column, String, Integer, DateTime, Boolean, Text
import enum

from portfolio_api.core.security import utcnow
from portfolio_api.db.base import Base


class AccessStatus(enum.IntEnum):
    ACTIVE = 1    # may open the project without a fresh OTP
    INACTIVE = 2  # needs OTP verification


class AccessRequest(Base):
    """
    One row per (visitor, project, OTP attempt).

    The row doubles as the visitor's session: status_id and expires_at decide
    whether a returning visitor skips the OTP step.
    """
    __tablename__ = "visitor_access_requests"

    id = Column(Integer, primary_key=True, index=True)
    visitor_name = Column(String(255), nullable=False)
    visitor_email = Column(String(255), nullable=False, index=True)
    project_name = Column(String(255), nullable=False)
    project_type = Column(String(50), default="live")
    redirect_url = Column(Text, default="")
    otp_code = Column(String(12), nullable=False)

    is_verified = Column(Boolean, default=False, nullable=False)
    status_id = Column(Integer, default=AccessStatus.INACTIVE.value, nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow)
    verified_at = Column(DateTime, nullable=True)
    last_access_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)

    # Free text supplied by the browser, e.g. "2026-01-17 00:36:42 IST"
    local_time = Column(String(100), nullable=True)
    client_timezone = Column(String(100), nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status_id == AccessStatus.ACTIVE
