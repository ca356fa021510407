"""
Admin dashboard client: signup/approval/login plus the generic table browser.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

import httpx

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
CELL_TEXT_LIMIT = 50


class AdminClientError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AdminConsole:
    def __init__(self, http: httpx.Client):
        self.http = http
        self.token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None
        self.pending_signup: Optional[Dict[str, Any]] = None

        self.tables: List[Dict[str, str]] = []
        self.selected_table: str = ""
        self.columns: List[str] = []
        self.rows: List[Dict[str, Any]] = []
        self.stats: Optional[Dict[str, Any]] = None

    @property
    def logged_in(self) -> bool:
        return self.token is not None

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = self.http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise AdminClientError("Connection error. Please try again.")

        try:
            result = response.json()
        except ValueError:
            raise AdminClientError("Unexpected response from server", status_code=response.status_code)

        if not result.get("success"):
            raise AdminClientError(result.get("message") or "Request failed", status_code=response.status_code)
        return result

    # -- account -------------------------------------------------------------

    def signup(self, username: str, email: str, password: str, confirm_password: str) -> Dict[str, Any]:
        if not username or not email or not password:
            raise AdminClientError("Please fill in all fields")
        if password != confirm_password:
            raise AdminClientError("Passwords do not match")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AdminClientError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        result = self._request("POST", "/api/admin/signup", json={
            "username": username,
            "email": email,
            "password": password,
        })
        # In demo mode the server hands the approval OTP back
        self.pending_signup = {"username": username, "email": email, "otp": result.get("otp")}
        return result

    def verify_signup(self, otp: str, email: Optional[str] = None) -> Dict[str, Any]:
        email = email or (self.pending_signup or {}).get("email")
        if not email or not otp:
            raise AdminClientError("Please enter the OTP")

        result = self._request("POST", "/api/admin/verify-signup", json={"email": email, "otp": otp})
        self.pending_signup = None
        return result

    def login(self, username: str, password: str) -> Dict[str, Any]:
        if not username or not password:
            raise AdminClientError("Please enter username and password")

        result = self._request("POST", "/api/admin/login", json={"username": username, "password": password})
        self.token = result["token"]
        self.user = result["user"]
        return self.user

    def logout(self) -> None:
        self.token = None
        self.user = None
        self.tables = []
        self.selected_table = ""
        self.columns = []
        self.rows = []
        self.stats = None

    # -- dashboard -----------------------------------------------------------

    def load_dashboard(self) -> None:
        self.load_stats()
        self.load_tables()

    def load_tables(self) -> List[Dict[str, str]]:
        self.tables = self._request("GET", "/api/admin/tables")["data"]
        if self.tables:
            self.select_table(self.tables[0]["name"])
        return self.tables

    def load_stats(self) -> Dict[str, Any]:
        self.stats = self._request("GET", "/api/admin/dashboard-stats")["data"]
        return self.stats

    @property
    def selected_table_display_name(self) -> str:
        for table in self.tables:
            if table["name"] == self.selected_table:
                return table["displayName"]
        return "Dashboard"

    def select_table(self, table_name: str) -> List[Dict[str, Any]]:
        result = self._request("GET", f"/api/admin/tables/{table_name}")
        self.selected_table = table_name
        self.columns = result["columns"]
        self.rows = result["data"]
        return self.rows

    def refresh_table(self) -> None:
        if self.selected_table:
            self.select_table(self.selected_table)

    def delete_record(self, record_id: int) -> None:
        self._request("DELETE", f"/api/admin/tables/{self.selected_table}/{record_id}")
        self.refresh_table()
        self.load_stats()

    def set_record_active(self, record_id: int, active: bool) -> Dict[str, Any]:
        """Toggle an access request between ACTIVE (1) and INACTIVE (2)."""
        result = self._request(
            "PATCH",
            f"/api/admin/tables/{self.selected_table}/{record_id}",
            json={"status_id": 1 if active else 2},
        )
        self.refresh_table()
        self.load_stats()
        return result["data"]

    # -- contact messages ----------------------------------------------------

    def view_message(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Open a contact message, marking it read the first time."""
        if not row.get("is_read"):
            self._request("PATCH", f"/api/contact-messages/{row['id']}/read")
            self.refresh_table()
            self.load_stats()
        return row

    def send_reply(self, row: Dict[str, Any], reply_text: str) -> Dict[str, Any]:
        if not reply_text.strip():
            raise AdminClientError("Please enter a reply message")

        subject = row.get("subject") or "Your Message"
        result = self._request("POST", "/api/send-reply", json={
            "to_email": row["sender_email"],
            "to_name": row.get("sender_name"),
            "subject": subject,
            "original_message": row["message"],
            "reply_message": reply_text,
        })
        self._request("PATCH", f"/api/contact-messages/{row['id']}/replied")
        self.refresh_table()
        self.load_stats()

        return result.get("replyDetails") or {
            "to": f"{row.get('sender_name')} <{row['sender_email']}>",
            "subject": f"Re: {subject}",
            "body": reply_text,
        }

    # -- display -------------------------------------------------------------

    @staticmethod
    def format_date(value: Any) -> str:
        if not value:
            return "-"
        try:
            moment = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
        except ValueError:
            return str(value)
        return moment.strftime("%d %b %Y, %H:%M")

    @classmethod
    def format_cell_value(cls, value: Any, column: str) -> str:
        if value is None:
            return "-"
        if isinstance(value, bool):
            return "Yes" if value else "No"
        if column.endswith("_at"):
            return cls.format_date(value)
        if isinstance(value, str) and len(value) > CELL_TEXT_LIMIT:
            return value[:CELL_TEXT_LIMIT] + "..."
        return str(value)
