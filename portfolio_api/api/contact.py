from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Any
import logging

from portfolio_api.core.config import Settings
from portfolio_api.db.base import get_db
from portfolio_api.schemas.contact import ContactMessageCreate, ContactMessageResponse, ContactStats, ReplyCreate
from portfolio_api.services.admin import get_current_admin, get_settings
from portfolio_api.services.contact import (
    create_contact_message, list_contact_messages, count_unread, get_contact_stats,
    mark_read, mark_replied, delete_contact_message,
)
from portfolio_api.utils.email import send_reply_email
from portfolio_api.utils.errors import ApiError, require_fields

logger = logging.getLogger(__name__)

router = APIRouter(tags=["contact"])


@router.post("/contact-messages")
async def create_message(
    payload: ContactMessageCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Any:
    data = payload.dict()
    require_fields(data, "sender_name", "sender_email", "message")

    try:
        message = await create_contact_message(db, data, settings.DEFAULT_CLIENT_TIMEZONE)
    except SQLAlchemyError as e:
        logger.error(f"Error saving contact message: {e}", exc_info=True)
        raise ApiError("Failed to save message", status_code=500)

    logger.info(f"New contact message from: {message.sender_name} ({message.sender_email})")
    return {"success": True, "message": "Message sent successfully", "id": message.id}


@router.get("/contact-messages")
async def get_messages(db: Session = Depends(get_db), _admin=Depends(get_current_admin)) -> Any:
    try:
        messages = await list_contact_messages(db)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching contact messages: {e}", exc_info=True)
        raise ApiError("Failed to fetch messages", status_code=500)
    return {"success": True, "data": [ContactMessageResponse.from_orm(m) for m in messages]}


@router.get("/contact-messages/unread")
async def get_unread_count(db: Session = Depends(get_db), _admin=Depends(get_current_admin)) -> Any:
    try:
        unread = await count_unread(db)
    except SQLAlchemyError as e:
        logger.error(f"Error counting unread messages: {e}", exc_info=True)
        raise ApiError("Failed to fetch unread count", status_code=500)
    return {"success": True, "unread_count": unread}


@router.get("/contact-messages/stats")
async def get_message_stats(db: Session = Depends(get_db), _admin=Depends(get_current_admin)) -> Any:
    try:
        stats = await get_contact_stats(db)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching contact message stats: {e}", exc_info=True)
        raise ApiError("Failed to fetch message statistics", status_code=500)
    return {"success": True, "data": ContactStats(**stats)}


@router.patch("/contact-messages/{message_id}/read")
async def read_message(message_id: int, db: Session = Depends(get_db), _admin=Depends(get_current_admin)) -> Any:
    try:
        message = await mark_read(db, message_id)
    except SQLAlchemyError as e:
        logger.error(f"Error marking message {message_id} as read: {e}", exc_info=True)
        raise ApiError("Failed to update message", status_code=500)

    if not message:
        raise ApiError("Message not found", status_code=404)
    return {"success": True, "message": "Message marked as read"}


@router.patch("/contact-messages/{message_id}/replied")
async def replied_message(message_id: int, db: Session = Depends(get_db), _admin=Depends(get_current_admin)) -> Any:
    try:
        message = await mark_replied(db, message_id)
    except SQLAlchemyError as e:
        logger.error(f"Error marking message {message_id} as replied: {e}", exc_info=True)
        raise ApiError("Failed to update message", status_code=500)

    if not message:
        raise ApiError("Message not found", status_code=404)
    return {"success": True, "message": "Message marked as replied"}


@router.delete("/contact-messages/{message_id}")
async def remove_message(message_id: int, db: Session = Depends(get_db), _admin=Depends(get_current_admin)) -> Any:
    try:
        deleted = await delete_contact_message(db, message_id)
    except SQLAlchemyError as e:
        logger.error(f"Error deleting message {message_id}: {e}", exc_info=True)
        raise ApiError("Failed to delete message", status_code=500)

    if not deleted:
        raise ApiError("Message not found", status_code=404)
    return {"success": True, "message": "Message deleted"}


@router.post("/send-reply")
async def send_reply(
    payload: ReplyCreate,
    settings: Settings = Depends(get_settings),
    _admin=Depends(get_current_admin),
) -> Any:
    """
    Mail a reply to a contact-form sender. Without SMTP configured the reply
    is not sent but the call still succeeds, flagged as demo mode.
    """
    require_fields(payload.dict(), "to_email", "original_message", "reply_message")

    result = await send_reply_email(
        settings,
        to_email=payload.to_email,
        to_name=payload.to_name,
        subject=payload.subject,
        original_message=payload.original_message,
        reply_message=payload.reply_message,
    )

    if result["demo_mode"]:
        return {
            "success": True,
            "demo_mode": True,
            "message": "Email service not configured - reply recorded in demo mode",
            "replyDetails": result["details"],
        }

    if not result["sent"]:
        raise ApiError("Failed to send reply", status_code=500)

    logger.info(f"Reply sent to {payload.to_email}")
    return {
        "success": True,
        "demo_mode": False,
        "message": "Reply sent successfully",
        "replyDetails": result["details"],
    }
