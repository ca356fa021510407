import httpx
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_RELAY_URL = "https://api.web3forms.com/submit"


class FormRelay:
    """
    Web3Forms-style form relay used to mail OTPs to the site owner.

    The relay answers {"success": true|false, "message": ...}; both send
    methods return True only on an explicit success.
    """

    def __init__(self, access_key: str, owner_email: str, url: str = DEFAULT_RELAY_URL, timeout: float = 10.0):
        self.access_key = access_key
        self.owner_email = owner_email
        self.url = url
        self.timeout = timeout

    def _payload(self, subject: str, message: str, from_name: str) -> Dict[str, Any]:
        return {
            "access_key": self.access_key,
            "to_email": self.owner_email,
            "from_name": from_name,
            "subject": subject,
            "message": message,
        }

    @staticmethod
    def _accepted(response: httpx.Response) -> bool:
        try:
            result = response.json()
        except ValueError:
            logger.error(f"Form relay returned non-JSON response ({response.status_code})")
            return False
        if not result.get("success"):
            logger.error(f"Form relay rejected message: {result.get('message', 'unknown error')}")
            return False
        return True

    def send(self, subject: str, message: str, from_name: str = "Portfolio OTP System") -> bool:
        try:
            response = httpx.post(
                self.url,
                json=self._payload(subject, message, from_name),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"Form relay request failed: {e}")
            return False
        return self._accepted(response)

    async def asend(self, subject: str, message: str, from_name: str = "Portfolio OTP System") -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.url,
                    json=self._payload(subject, message, from_name),
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Form relay request failed: {e}")
            return False
        return self._accepted(response)


def relay_from_settings(settings) -> Optional[FormRelay]:
    """None when no access key / owner address is configured."""
    if not settings.relay_configured:
        return None
    return FormRelay(settings.WEB3FORMS_ACCESS_KEY, settings.OWNER_EMAIL, url=settings.WEB3FORMS_URL)
