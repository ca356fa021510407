from sqlalchemy import Column, String, Integer, DateTime, Boolean

from portfolio_api.core.security import utcnow
from portfolio_api.db.base import Base


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)

    # Signup approval code, cleared once the account is approved
    otp_code = Column(String(12), nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    last_login_at = Column(DateTime, nullable=True)
    login_count = Column(Integer, default=0, nullable=False)
