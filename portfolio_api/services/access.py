from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from sqlalchemy import func, case, or_
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from portfolio_api.core.security import utcnow
from portfolio_api.models.access_request import AccessRequest, AccessStatus

logger = logging.getLogger(__name__)

ACTIVE = AccessStatus.ACTIVE.value
INACTIVE = AccessStatus.INACTIVE.value


def server_local_time(tz_name: str) -> str:
    """Current time rendered like the browser does, e.g. '2026-01-17 00:36:42 IST'."""
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        tz = ZoneInfo("UTC")
    return datetime.now(tz).strftime("%Y-%m-%d %H:%M:%S %Z")


async def find_active_session(
    db: Session, visitor_email: str, project_name: str, now: Optional[datetime] = None
) -> Optional[AccessRequest]:
    """
    Most recently verified, unexpired, ACTIVE row for the email whose project
    name contains project_name. Touches last_access_at on a hit.
    """
    now = now or utcnow()
    session = (
        db.query(AccessRequest)
        .filter(
            AccessRequest.visitor_email == visitor_email,
            AccessRequest.project_name.contains(project_name or "", autoescape=True),
            AccessRequest.status_id == ACTIVE,
            AccessRequest.is_verified.is_(True),
            or_(AccessRequest.expires_at.is_(None), AccessRequest.expires_at > now),
        )
        .order_by(AccessRequest.verified_at.desc())
        .first()
    )
    if not session:
        return None

    db.query(AccessRequest).filter(AccessRequest.id == session.id).update(
        {AccessRequest.last_access_at: now}, synchronize_session=False
    )
    db.commit()
    db.refresh(session)
    return session


async def create_access_request(db: Session, data: Dict[str, Any], default_timezone: str) -> AccessRequest:
    """
    Store a pending (unverified, INACTIVE) request. Earlier pending requests for
    the same email are left as they are.
    """
    client_timezone = data.get("client_timezone") or default_timezone
    request = AccessRequest(
        visitor_name=data["visitor_name"],
        visitor_email=data["visitor_email"],
        project_name=data["project_name"],
        project_type=data.get("project_type") or "live",
        redirect_url=data.get("redirect_url") or "",
        otp_code=data["otp_code"],
        is_verified=False,
        status_id=INACTIVE,
        created_at=utcnow(),
        local_time=data.get("local_time") or server_local_time(client_timezone),
        client_timezone=client_timezone,
    )
    db.add(request)
    db.commit()
    db.refresh(request)
    return request


async def verify_access_request(
    db: Session, visitor_email: str, otp_code: str, session_days: int, now: Optional[datetime] = None
) -> Optional[AccessRequest]:
    """
    Activate the most recent unverified request matching the email+OTP pair.
    Returns None when nothing matched; no row is touched in that case.
    """
    now = now or utcnow()
    request = (
        db.query(AccessRequest)
        .filter(
            AccessRequest.visitor_email == visitor_email,
            AccessRequest.otp_code == otp_code,
            AccessRequest.is_verified.is_(False),
        )
        .order_by(AccessRequest.created_at.desc(), AccessRequest.id.desc())
        .first()
    )
    if not request:
        return None

    request.is_verified = True
    request.status_id = ACTIVE
    request.verified_at = now
    request.last_access_at = now
    request.expires_at = now + timedelta(days=session_days)
    db.commit()
    db.refresh(request)
    return request


async def revoke_access(db: Session, visitor_email: str) -> int:
    count = (
        db.query(AccessRequest)
        .filter(AccessRequest.visitor_email == visitor_email, AccessRequest.status_id == ACTIVE)
        .update({AccessRequest.status_id: INACTIVE}, synchronize_session=False)
    )
    db.commit()
    return count


async def reset_all_sessions(db: Session) -> int:
    count = (
        db.query(AccessRequest)
        .filter(AccessRequest.status_id == ACTIVE)
        .update({AccessRequest.status_id: INACTIVE}, synchronize_session=False)
    )
    db.commit()
    return count


async def expire_sessions(db: Session, now: Optional[datetime] = None) -> int:
    """
    Flip every ACTIVE row whose expiry has been reached to INACTIVE.
    A row expiring exactly at `now` is flipped too.
    """
    now = now or utcnow()
    count = (
        db.query(AccessRequest)
        .filter(
            AccessRequest.status_id == ACTIVE,
            AccessRequest.expires_at.isnot(None),
            AccessRequest.expires_at <= now,
        )
        .update({AccessRequest.status_id: INACTIVE}, synchronize_session=False)
    )
    db.commit()
    return count


async def list_access_requests(db: Session, limit: int = 100) -> List[Dict[str, Any]]:
    rows = (
        db.query(AccessRequest)
        .order_by(AccessRequest.created_at.desc(), AccessRequest.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": row.id,
            "visitor_name": row.visitor_name,
            "visitor_email": row.visitor_email,
            "project_name": row.project_name,
            "project_type": row.project_type,
            "status_id": row.status_id,
            "status": "ACTIVE" if row.is_active else "INACTIVE",
            "is_verified": row.is_verified,
            "created_at": row.created_at,
            "verified_at": row.verified_at,
            "last_access_at": row.last_access_at,
            "expires_at": row.expires_at,
            "local_time": row.local_time,
            "client_timezone": row.client_timezone,
        }
        for row in rows
    ]


async def get_access_stats(db: Session) -> Dict[str, int]:
    total, verified, active, inactive = db.query(
        func.count(AccessRequest.id),
        func.count(case((AccessRequest.is_verified.is_(True), 1))),
        func.count(case((AccessRequest.status_id == ACTIVE, 1))),
        func.count(case((AccessRequest.status_id == INACTIVE, 1))),
    ).one()
    return {
        "total_requests": total or 0,
        "verified_requests": verified or 0,
        "active_sessions": active or 0,
        "inactive_sessions": inactive or 0,
    }
