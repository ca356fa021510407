from sqlalchemy.orm import Session
from sqlalchemy import func, case
from typing import Any, Dict, List, Optional

from portfolio_api.core.security import utcnow
from portfolio_api.models.contact_message import ContactMessage
from portfolio_api.services.access import server_local_time


async def create_contact_message(db: Session, data: Dict[str, Any], default_timezone: str) -> ContactMessage:
    client_timezone = data.get("client_timezone") or default_timezone
    message = ContactMessage(
        sender_name=data["sender_name"],
        sender_email=data["sender_email"],
        subject=data.get("subject") or "No Subject",
        message=data["message"],
        is_read=False,
        is_replied=False,
        created_at=utcnow(),
        local_time=data.get("local_time") or server_local_time(client_timezone),
        client_timezone=client_timezone,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


async def list_contact_messages(db: Session, limit: int = 100) -> List[ContactMessage]:
    return (
        db.query(ContactMessage)
        .order_by(ContactMessage.created_at.desc(), ContactMessage.id.desc())
        .limit(limit)
        .all()
    )


async def count_unread(db: Session) -> int:
    return db.query(ContactMessage).filter(ContactMessage.is_read.is_(False)).count()


async def get_contact_stats(db: Session) -> Dict[str, int]:
    total, unread, read, replied = db.query(
        func.count(ContactMessage.id),
        func.count(case((ContactMessage.is_read.is_(False), 1))),
        func.count(case((ContactMessage.is_read.is_(True), 1))),
        func.count(case((ContactMessage.is_replied.is_(True), 1))),
    ).one()
    return {
        "total_messages": total or 0,
        "unread_messages": unread or 0,
        "read_messages": read or 0,
        "replied_messages": replied or 0,
    }


async def mark_read(db: Session, message_id: int) -> Optional[ContactMessage]:
    message = db.query(ContactMessage).filter(ContactMessage.id == message_id).first()
    if not message:
        return None
    message.is_read = True
    message.read_at = utcnow()
    db.commit()
    db.refresh(message)
    return message


async def mark_replied(db: Session, message_id: int) -> Optional[ContactMessage]:
    message = db.query(ContactMessage).filter(ContactMessage.id == message_id).first()
    if not message:
        return None
    message.is_replied = True
    message.replied_at = utcnow()
    db.commit()
    db.refresh(message)
    return message


async def delete_contact_message(db: Session, message_id: int) -> bool:
    deleted = db.query(ContactMessage).filter(ContactMessage.id == message_id).delete(synchronize_session=False)
    db.commit()
    return deleted > 0
