from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Any
import logging

from portfolio_api.core.config import Settings
from portfolio_api.db.base import get_db
from portfolio_api.schemas.access import (
    SessionCheck, SessionCheckResult, AccessRequestCreate, AccessVerify, AccessRevoke,
    AccessRequestResponse, AccessStats,
)
from portfolio_api.services.access import (
    find_active_session, create_access_request, verify_access_request,
    revoke_access, reset_all_sessions, list_access_requests, get_access_stats,
)
from portfolio_api.services.admin import get_current_admin, get_settings
from portfolio_api.utils.errors import ApiError, require_fields

logger = logging.getLogger(__name__)

router = APIRouter(tags=["access"])


@router.post("/check-session", response_model=SessionCheckResult)
async def check_session(payload: SessionCheck, db: Session = Depends(get_db)) -> Any:
    """
    Tell the visitor whether a live, verified session already covers the
    project. Store failures are reported as "OTP required", never as errors.
    """
    if not payload.visitor_email:
        return SessionCheckResult(hasActiveSession=False, message="No email provided")

    try:
        session = await find_active_session(db, payload.visitor_email, payload.project_name or "")
    except SQLAlchemyError as e:
        logger.error(f"Error checking session for {payload.visitor_email}: {e}")
        db.rollback()
        return SessionCheckResult(hasActiveSession=False, message="Session check failed")

    if not session:
        return SessionCheckResult(hasActiveSession=False, message="No active session - OTP required")

    logger.info(f"Active session found for: {payload.visitor_email}")
    return SessionCheckResult(
        hasActiveSession=True,
        message="Active session found",
        redirect_url=session.redirect_url,
        visitor_name=session.visitor_name,
    )


@router.post("/access-requests")
async def create_request(
    payload: AccessRequestCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Any:
    data = payload.dict()
    require_fields(data, "visitor_name", "visitor_email", "project_name", "otp_code")

    try:
        request = await create_access_request(db, data, settings.DEFAULT_CLIENT_TIMEZONE)
    except SQLAlchemyError as e:
        logger.error(f"Error saving access request: {e}", exc_info=True)
        raise ApiError("Failed to save access request", status_code=500)

    logger.info(
        f"New access request from: {request.visitor_name} ({request.visitor_email}) at {request.local_time}"
    )
    return {"success": True, "message": "Access request saved", "id": request.id}


@router.patch("/access-requests/verify")
async def verify_request(
    payload: AccessVerify,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Any:
    data = payload.dict()
    require_fields(data, "visitor_email", "otp_code", message="Missing email or OTP")

    try:
        request = await verify_access_request(
            db, payload.visitor_email, payload.otp_code, settings.SESSION_DURATION_DAYS
        )
    except SQLAlchemyError as e:
        logger.error(f"Error verifying access: {e}", exc_info=True)
        raise ApiError("Failed to verify access", status_code=500)

    if not request:
        raise ApiError("No matching request found", status_code=404)

    logger.info(f"Access verified for: {request.visitor_email} | Session expires: {request.expires_at.isoformat()}")
    return {
        "success": True,
        "message": f"Access verified - Session active for {settings.SESSION_DURATION_DAYS} days",
        "expires_at": request.expires_at,
    }


@router.patch("/access-requests/revoke")
async def revoke_request(
    payload: AccessRevoke,
    db: Session = Depends(get_db),
    _admin=Depends(get_current_admin),
) -> Any:
    require_fields(payload.dict(), "visitor_email", message="Missing email")

    try:
        count = await revoke_access(db, payload.visitor_email)
    except SQLAlchemyError as e:
        logger.error(f"Error revoking access: {e}", exc_info=True)
        raise ApiError("Failed to revoke access", status_code=500)

    logger.info(f"Access revoked for: {payload.visitor_email} ({count} sessions)")
    return {"success": True, "message": f"Revoked {count} active sessions", "count": count}


@router.post("/access-requests/reset-all")
async def reset_all(db: Session = Depends(get_db), _admin=Depends(get_current_admin)) -> Any:
    try:
        count = await reset_all_sessions(db)
    except SQLAlchemyError as e:
        logger.error(f"Error resetting sessions: {e}", exc_info=True)
        raise ApiError("Failed to reset sessions", status_code=500)

    logger.info(f"Reset all sessions: {count} users affected")
    return {"success": True, "message": f"Reset {count} active sessions", "count": count}


@router.get("/access-requests")
async def get_requests(db: Session = Depends(get_db), _admin=Depends(get_current_admin)) -> Any:
    try:
        rows = await list_access_requests(db)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching access requests: {e}", exc_info=True)
        raise ApiError("Failed to fetch access requests", status_code=500)
    return {"success": True, "data": [AccessRequestResponse(**row) for row in rows]}


@router.get("/stats")
async def get_stats(db: Session = Depends(get_db), _admin=Depends(get_current_admin)) -> Any:
    try:
        stats = await get_access_stats(db)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching stats: {e}", exc_info=True)
        raise ApiError("Failed to fetch statistics", status_code=500)
    return {"success": True, "data": AccessStats(**stats)}
