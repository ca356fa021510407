from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Any, Dict, Optional
import logging

from portfolio_api.core.config import Settings
from portfolio_api.db.base import get_db
from portfolio_api.schemas.admin import AdminSignup, AdminVerifySignup, AdminLogin, TableInfo, DashboardStats
from portfolio_api.services.admin import (
    create_admin, approve_admin, authenticate_admin, admin_to_dict,
    signup_notification, get_current_admin, get_settings, get_relay,
)
from portfolio_api.services.tables import (
    list_tables, list_rows, update_row, delete_row, get_dashboard_stats,
)
from portfolio_api.utils.errors import ApiError, require_fields
from portfolio_api.utils.relay import FormRelay

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/signup")
async def signup(
    payload: AdminSignup,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    relay: Optional[FormRelay] = Depends(get_relay),
) -> Any:
    """
    Register a pending admin. The approval OTP goes to the site owner; when
    the relay is unavailable it is echoed back only if DEMO_MODE is on.
    """
    require_fields(payload.dict(), "username", "email", "password", message="Please fill in all fields")

    try:
        admin = await create_admin(db, payload.username, payload.email, payload.password, settings)
    except SQLAlchemyError as e:
        logger.error(f"Error creating admin {payload.username}: {e}", exc_info=True)
        raise ApiError("Signup failed", status_code=500)

    notified = False
    if relay is not None:
        notified = await relay.asend(
            f"[ADMIN SIGNUP] New admin request from {admin.username}",
            signup_notification(admin.username, admin.email, admin.otp_code, settings.ADMIN_OTP_EXPIRE_MINUTES),
        )

    logger.info(f"Admin signup pending approval: {admin.username} ({admin.email})")
    response = {
        "success": True,
        "message": "Signup request submitted! OTP has been sent to the owner for approval.",
        "demo_mode": False,
    }
    if notified:
        return response

    if settings.DEMO_MODE:
        response["message"] = "Signup request submitted (demo mode - OTP included in response)."
        response["demo_mode"] = True
        response["otp"] = admin.otp_code
    else:
        logger.warning(f"Owner not notified of admin signup {admin.username}; approval OTP: {admin.otp_code}")
        response["message"] = "Signup request submitted. Please contact the site owner for your approval OTP."
    return response


@router.post("/verify-signup")
async def verify_signup(payload: AdminVerifySignup, db: Session = Depends(get_db)) -> Any:
    require_fields(payload.dict(), "email", "otp", message="Email and OTP are required")

    try:
        admin = await approve_admin(db, payload.email, payload.otp)
    except SQLAlchemyError as e:
        logger.error(f"Error verifying admin signup for {payload.email}: {e}", exc_info=True)
        raise ApiError("Verification failed", status_code=500)

    logger.info(f"Admin approved: {admin.username}")
    return {"success": True, "message": "Account verified! You can now login."}


@router.post("/login")
async def login(
    payload: AdminLogin,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Any:
    require_fields(payload.dict(), "username", "password", message="Please enter username and password")

    try:
        admin, token = await authenticate_admin(db, payload.username, payload.password, settings)
    except SQLAlchemyError as e:
        logger.error(f"Error during admin login for {payload.username}: {e}", exc_info=True)
        raise ApiError("Login failed", status_code=500)

    logger.info(f"Admin login: {admin.username} (#{admin.login_count})")
    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "token_type": "bearer",
        "user": admin_to_dict(admin),
    }


@router.get("/tables")
async def get_tables(_admin=Depends(get_current_admin)) -> Any:
    return {"success": True, "data": [TableInfo(**table) for table in list_tables()]}


@router.get("/tables/{table_name}")
async def get_table_rows(table_name: str, db: Session = Depends(get_db), _admin=Depends(get_current_admin)) -> Any:
    try:
        result = await list_rows(db, table_name)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching rows from {table_name}: {e}", exc_info=True)
        raise ApiError("Failed to fetch table data", status_code=500)
    return {"success": True, "table": table_name, **result}


@router.patch("/tables/{table_name}/{row_id}")
async def update_table_row(
    table_name: str,
    row_id: int,
    updates: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    _admin=Depends(get_current_admin),
) -> Any:
    try:
        row = await update_row(db, table_name, row_id, updates)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating {table_name} #{row_id}: {e}", exc_info=True)
        raise ApiError("Failed to update record", status_code=500)

    logger.info(f"Updated {table_name} #{row_id}")
    return {"success": True, "message": "Record updated", "data": row}


@router.delete("/tables/{table_name}/{row_id}")
async def delete_table_row(
    table_name: str,
    row_id: int,
    db: Session = Depends(get_db),
    _admin=Depends(get_current_admin),
) -> Any:
    try:
        await delete_row(db, table_name, row_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting {table_name} #{row_id}: {e}", exc_info=True)
        raise ApiError("Failed to delete record", status_code=500)

    logger.info(f"Deleted {table_name} #{row_id}")
    return {"success": True, "message": "Record deleted"}


@router.get("/dashboard-stats")
async def dashboard_stats(db: Session = Depends(get_db), _admin=Depends(get_current_admin)) -> Any:
    try:
        stats = await get_dashboard_stats(db)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching dashboard stats: {e}", exc_info=True)
        raise ApiError("Failed to fetch dashboard stats", status_code=500)
    return {"success": True, "data": DashboardStats(**stats)}
