from datetime import timedelta
from sqlalchemy.orm import Session
from sqlalchemy import or_
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from typing import Any, Dict, Optional, Tuple
import logging

from portfolio_api.core.config import Settings
from portfolio_api.core.security import (
    utcnow, get_password_hash, verify_password, generate_otp,
    create_access_token, decode_access_token,
)
from portfolio_api.db.base import get_db
from portfolio_api.models.admin_user import AdminUser
from portfolio_api.schemas.admin import AdminUserResponse
from portfolio_api.utils.errors import ApiError
from portfolio_api.utils.relay import FormRelay

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/admin/login", auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_relay(request: Request) -> Optional[FormRelay]:
    return request.app.state.relay


def signup_notification(username: str, email: str, otp: str, expire_minutes: int) -> str:
    return f"""
New Admin Signup Request

Username: {username}
Email: {email}
Time: {utcnow().strftime("%Y-%m-%d %H:%M:%S")} UTC

APPROVAL OTP: {otp}

This OTP is valid for {expire_minutes} minutes.
Share this OTP with the user if you want to approve their admin access.
""".strip()


async def create_admin(db: Session, username: str, email: str, password: str, settings: Settings) -> AdminUser:
    """
    Store a pending (unapproved) admin with a fresh signup OTP.
    Raises ApiError if the username or email is taken.
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ApiError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters", status_code=400)

    existing = db.query(AdminUser).filter(
        or_(AdminUser.username == username, AdminUser.email == email)
    ).first()
    if existing:
        raise ApiError("Username or email already exists", status_code=400)

    now = utcnow()
    admin = AdminUser(
        username=username,
        email=email,
        password_hash=get_password_hash(password),
        is_approved=False,
        otp_code=generate_otp(),
        otp_expires_at=now + timedelta(minutes=settings.ADMIN_OTP_EXPIRE_MINUTES),
        created_at=now,
        login_count=0,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


async def approve_admin(db: Session, email: str, otp: str) -> AdminUser:
    admin = db.query(AdminUser).filter(
        AdminUser.email == email,
        AdminUser.otp_code == otp,
        AdminUser.is_approved.is_(False),
    ).first()
    if not admin:
        raise ApiError("Invalid OTP", status_code=400)

    if admin.otp_expires_at is None or admin.otp_expires_at < utcnow():
        raise ApiError("OTP has expired", status_code=400)

    admin.is_approved = True
    admin.otp_code = None
    admin.otp_expires_at = None
    db.commit()
    db.refresh(admin)
    return admin


async def authenticate_admin(db: Session, username: str, password: str, settings: Settings) -> Tuple[AdminUser, str]:
    """
    Check credentials and approval, record the login and issue a token.
    """
    admin = db.query(AdminUser).filter(AdminUser.username == username).first()
    if not admin or not verify_password(password, admin.password_hash):
        raise ApiError("Invalid username or password", status_code=401)

    if not admin.is_approved:
        raise ApiError("Account pending approval", status_code=403)

    admin.last_login_at = utcnow()
    admin.login_count = (admin.login_count or 0) + 1
    db.commit()
    db.refresh(admin)

    return admin, create_access_token(admin.id, settings)


def admin_to_dict(admin: AdminUser) -> Dict[str, Any]:
    return AdminUserResponse.from_orm(admin).dict()


async def get_current_admin(
    token: Optional[str] = Depends(oauth2_scheme),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
) -> Optional[AdminUser]:
    """
    Guard for admin-only routes. With ADMIN_AUTH_REQUIRED off the API trusts
    the network boundary and this returns None.
    """
    if not settings.ADMIN_AUTH_REQUIRED:
        return None

    if not token:
        raise ApiError("Not authenticated", status_code=401)

    payload = decode_access_token(token, settings)
    if not payload or not payload.get("sub"):
        raise ApiError("Invalid or expired token", status_code=401)

    try:
        admin_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise ApiError("Invalid or expired token", status_code=401)

    admin = db.query(AdminUser).filter(AdminUser.id == admin_id).first()
    if not admin or not admin.is_approved:
        raise ApiError("Invalid or expired token", status_code=401)
    return admin
