"""
Visitor side of the project gate.

Mirrors what the portfolio site does in the browser: ask the API whether the
visitor already holds a live session for the project, otherwise generate an
OTP, record the request, get the OTP to the site owner and verify what the
visitor types back.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

import httpx

from portfolio_api.core.security import generate_otp
from portfolio_api.utils.relay import FormRelay

logger = logging.getLogger(__name__)

# How long a generated OTP is accepted on the visitor's side
OTP_TTL = timedelta(minutes=5)

TIMEZONE_ABBREVIATIONS = {
    "Asia/Kolkata": "IST",
    "Asia/Calcutta": "IST",
    "America/New_York": "EST",
    "America/Los_Angeles": "PST",
    "America/Chicago": "CST",
    "America/Denver": "MST",
    "Europe/London": "GMT",
    "Europe/Paris": "CET",
    "Europe/Berlin": "CET",
    "Asia/Tokyo": "JST",
    "Asia/Shanghai": "CST",
    "Asia/Dubai": "GST",
    "Australia/Sydney": "AEST",
    "Pacific/Auckland": "NZST",
}


def timezone_abbreviation(timezone_name: str) -> str:
    if timezone_name in TIMEZONE_ABBREVIATIONS:
        return TIMEZONE_ABBREVIATIONS[timezone_name]
    return timezone_name.split("/")[-1] or "LOCAL"


def format_local_time(moment: datetime, timezone_name: str) -> str:
    """'2026-01-17 00:36:42 IST' style timestamp in the given zone."""
    try:
        local = moment.astimezone(ZoneInfo(timezone_name))
    except (ZoneInfoNotFoundError, ValueError):
        local = moment
    return f"{local.strftime('%Y-%m-%d %H:%M:%S')} {timezone_abbreviation(timezone_name)}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PendingOtp:
    otp: str
    issued_at: datetime
    visitor_email: str
    redirect_url: str


@dataclass
class GateResult:
    ok: bool
    message: str
    redirect_url: Optional[str] = None
    visitor_name: Optional[str] = None


class VisitorGate:
    def __init__(
        self,
        http: httpx.Client,
        project_name: str = "Project",
        project_type: str = "live",
        redirect_url: str = "",
        relay: Optional[FormRelay] = None,
        timezone_name: str = "UTC",
        clock: Callable[[], datetime] = _now,
    ):
        self.http = http
        self.project_name = project_name
        self.project_type = project_type
        self.redirect_url = redirect_url
        self.relay = relay
        self.timezone_name = timezone_name
        self.clock = clock

        self.visitor_email = ""
        self.visitor_name = ""
        self.has_active_session = False
        self.otp_required = False
        self.otp_sent = False
        self.otp_verified = False
        self.demo_mode = False
        self.pending: Optional[PendingOtp] = None

    def _call(self, method: str, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self.http.request(method, path, json=payload)
        return response.json()

    def check_access(self, visitor_email: str) -> GateResult:
        """
        Step 1. An active session grants access straight away; anything else
        (including an unreachable API) means the OTP step is required.
        """
        if not visitor_email.strip():
            return GateResult(False, "Please enter your email address")
        self.visitor_email = visitor_email.strip()

        try:
            result = self._call("POST", "/api/check-session", {
                "visitor_email": self.visitor_email,
                "project_name": self.project_name,
            })
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Session check error: {e}")
            result = {}

        if result.get("hasActiveSession"):
            self.has_active_session = True
            self.visitor_name = result.get("visitor_name") or self.visitor_name
            if result.get("redirect_url"):
                self.redirect_url = result["redirect_url"]
            return GateResult(
                True,
                f"Welcome back, {self.visitor_name}! You have an active session.",
                redirect_url=self.redirect_url,
                visitor_name=self.visitor_name,
            )

        self.otp_required = True
        return GateResult(False, "No active session found. Please complete verification.")

    def owner_message(self, otp: str) -> str:
        return f"""
PORTFOLIO ACCESS REQUEST

OTP Code: {otp}

VISITOR DETAILS:
   Name: {self.visitor_name}
   Email: {self.visitor_email}

PROJECT: {self.project_name}

Time: {format_local_time(self.clock(), self.timezone_name)}

This OTP will expire in {int(OTP_TTL.total_seconds() // 60)} minutes.
After verification, the visitor will have access for 7 days.

If you want to grant access, share the OTP with the visitor.
""".strip()

    def send_otp(self, visitor_name: str) -> GateResult:
        """
        Step 2. Record the request and get a fresh OTP to the owner. Without a
        working relay the OTP is shown in the message instead (demo mode).
        """
        if not visitor_name.strip():
            return GateResult(False, "Please enter your name")
        self.visitor_name = visitor_name.strip()

        otp = generate_otp()
        now = self.clock()
        self.pending = PendingOtp(otp, now, self.visitor_email, self.redirect_url)

        try:
            self._call("POST", "/api/access-requests", {
                "visitor_name": self.visitor_name,
                "visitor_email": self.visitor_email,
                "project_name": self.project_name,
                "project_type": self.project_type,
                "redirect_url": self.redirect_url,
                "otp_code": otp,
                "local_time": format_local_time(now, self.timezone_name),
                "client_timezone": self.timezone_name,
            })
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to save access request: {e}")

        sent = False
        if self.relay is not None:
            sent = self.relay.send(
                f"OTP Request from {self.visitor_name} for {self.project_name}",
                self.owner_message(otp),
            )

        self.otp_sent = True
        self.demo_mode = not sent
        if sent:
            return GateResult(True, "OTP sent to owner's email. Please enter the OTP to continue.")
        return GateResult(True, f"OTP sent! (Demo mode - OTP: {otp})")

    def verify_otp(self, entered_otp: str) -> GateResult:
        """Step 3. Check the code locally, then activate the session server-side."""
        if self.pending is None:
            return GateResult(False, "OTP expired. Please request a new one.")

        if self.clock() - self.pending.issued_at > OTP_TTL:
            self.pending = None
            self.otp_sent = False
            return GateResult(False, "OTP expired. Please request a new one.")

        if entered_otp.strip() != self.pending.otp:
            return GateResult(False, "Invalid OTP. Please try again.")

        pending = self.pending
        try:
            result = self._call("PATCH", "/api/access-requests/verify", {
                "visitor_email": pending.visitor_email,
                "otp_code": pending.otp,
            })
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to update access request: {e}")
            return GateResult(False, "Verification failed. Please try again.")

        if not result.get("success"):
            return GateResult(False, result.get("message") or "Verification failed. Please try again.")

        self.pending = None
        self.otp_verified = True
        return GateResult(
            True,
            "Verification successful! Session active for 7 days.",
            redirect_url=pending.redirect_url,
            visitor_name=self.visitor_name,
        )

    def submit_contact_message(
        self, sender_name: str, sender_email: str, message: str, subject: Optional[str] = None
    ) -> Dict[str, Any]:
        try:
            return self._call("POST", "/api/contact-messages", {
                "sender_name": sender_name,
                "sender_email": sender_email,
                "subject": subject or "No Subject",
                "message": message,
                "local_time": format_local_time(self.clock(), self.timezone_name),
                "client_timezone": self.timezone_name,
            })
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to save contact message: {e}")
            return {"success": False, "message": "Failed to save message"}

    def reset(self) -> None:
        """Back to the email prompt."""
        self.otp_required = False
        self.otp_sent = False
        self.has_active_session = False
        self.visitor_name = ""
        self.pending = None
