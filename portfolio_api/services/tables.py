"""
Whitelisted tables for the admin browser/editor.

Each editable table carries a capability table mapping the fields an admin may
change to a coercer that validates and converts the incoming JSON value.
Nothing outside these registries can be read, updated or deleted.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from sqlalchemy.orm import Session
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Type
import logging

from portfolio_api.db.base import Base
from portfolio_api.models.access_request import AccessRequest, AccessStatus
from portfolio_api.models.contact_message import ContactMessage
from portfolio_api.models.admin_user import AdminUser
from portfolio_api.services.access import get_access_stats
from portfolio_api.services.contact import get_contact_stats
from portfolio_api.utils.errors import ApiError

logger = logging.getLogger(__name__)

ROW_LIMIT = 100

# Never writable through the generic editor, whatever the table
PROTECTED_FIELDS: FrozenSet[str] = frozenset({"id", "created_at", "password_hash", "otp_code"})


def as_text(value: Any) -> str:
    if value is None:
        raise ValueError("value is required")
    return str(value)


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0"):
        return value.strip().lower() in ("true", "1")
    raise ValueError(f"expected a boolean, got {value!r}")


def as_status(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("status must be 1 (ACTIVE) or 2 (INACTIVE)")
    try:
        return AccessStatus(int(value)).value
    except (TypeError, ValueError):
        raise ValueError("status must be 1 (ACTIVE) or 2 (INACTIVE)")


def as_optional_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        # Stored naive in UTC
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


@dataclass(frozen=True)
class WhitelistedTable:
    name: str
    display_name: str
    icon: str
    model: Type[Base]
    hidden_columns: FrozenSet[str] = frozenset()
    editable_fields: Optional[Dict[str, Callable[[Any], Any]]] = None

    @property
    def editable(self) -> bool:
        return self.editable_fields is not None

    def columns(self) -> List[str]:
        return [c.name for c in self.model.__table__.columns if c.name not in self.hidden_columns]


TABLES: Dict[str, WhitelistedTable] = {
    table.name: table
    for table in (
        WhitelistedTable(
            name="visitor_access_requests",
            display_name="Access Requests",
            icon="🔐",
            model=AccessRequest,
            editable_fields={
                "visitor_name": as_text,
                "visitor_email": as_text,
                "project_name": as_text,
                "project_type": as_text,
                "redirect_url": as_text,
                "is_verified": as_bool,
                "status_id": as_status,
                "verified_at": as_optional_datetime,
                "expires_at": as_optional_datetime,
                "local_time": as_text,
                "client_timezone": as_text,
            },
        ),
        WhitelistedTable(
            name="contact_messages",
            display_name="Contact Messages",
            icon="✉️",
            model=ContactMessage,
            editable_fields={
                "sender_name": as_text,
                "sender_email": as_text,
                "subject": as_text,
                "message": as_text,
                "is_read": as_bool,
                "read_at": as_optional_datetime,
                "is_replied": as_bool,
                "replied_at": as_optional_datetime,
                "local_time": as_text,
                "client_timezone": as_text,
            },
        ),
        WhitelistedTable(
            name="admin_users",
            display_name="Admin Users",
            icon="👤",
            model=AdminUser,
            hidden_columns=frozenset({"password_hash", "otp_code"}),
        ),
    )
}


def get_table(table_name: str) -> WhitelistedTable:
    table = TABLES.get(table_name)
    if not table:
        raise ApiError("Invalid table name", status_code=400)
    return table


def get_editable_table(table_name: str) -> WhitelistedTable:
    table = TABLES.get(table_name)
    if not table or not table.editable:
        raise ApiError("Table is not editable", status_code=400)
    return table


def list_tables() -> List[Dict[str, str]]:
    return [
        {"name": table.name, "displayName": table.display_name, "icon": table.icon}
        for table in TABLES.values()
    ]


async def list_rows(db: Session, table_name: str, limit: int = ROW_LIMIT) -> Dict[str, Any]:
    table = get_table(table_name)
    columns = table.columns()
    model = table.model
    rows = db.query(model).order_by(model.id.asc()).limit(limit).all()
    return {
        "columns": columns,
        "data": [{name: getattr(row, name) for name in columns} for row in rows],
    }


def clean_update(table: WhitelistedTable, updates: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop protected and unknown fields, coerce the rest.
    Raises ApiError(400) when nothing usable remains or a value is invalid.
    """
    cleaned: Dict[str, Any] = {}
    for key, value in updates.items():
        if key in PROTECTED_FIELDS:
            continue
        coerce = table.editable_fields.get(key)
        if coerce is None:
            logger.debug(f"Ignoring unknown field {key!r} for {table.name}")
            continue
        try:
            cleaned[key] = coerce(value)
        except ValueError as e:
            raise ApiError(f"Invalid value for {key}: {e}", status_code=400)

    if not cleaned:
        raise ApiError("No valid fields to update", status_code=400)
    return cleaned


async def update_row(db: Session, table_name: str, row_id: int, updates: Dict[str, Any]) -> Dict[str, Any]:
    table = get_editable_table(table_name)
    cleaned = clean_update(table, updates)

    row = db.query(table.model).filter(table.model.id == row_id).first()
    if not row:
        raise ApiError("Record not found", status_code=404)

    for key, value in cleaned.items():
        setattr(row, key, value)
    db.commit()
    db.refresh(row)
    return {name: getattr(row, name) for name in table.columns()}


async def delete_row(db: Session, table_name: str, row_id: int) -> None:
    table = get_editable_table(table_name)
    deleted = db.query(table.model).filter(table.model.id == row_id).delete(synchronize_session=False)
    db.commit()
    if not deleted:
        raise ApiError("Record not found", status_code=404)


async def get_dashboard_stats(db: Session) -> Dict[str, int]:
    access = await get_access_stats(db)
    contact = await get_contact_stats(db)
    return {
        "total_access_requests": access["total_requests"],
        "active_sessions": access["active_sessions"],
        "verified_requests": access["verified_requests"],
        "total_messages": contact["total_messages"],
        "unread_messages": contact["unread_messages"],
        "total_admins": db.query(AdminUser).count(),
    }
