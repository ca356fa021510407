from typing import Any, Dict, Optional


class ApiError(Exception):
    """
    Error rendered to the client as {"success": false, "message": ...}
    """
    def __init__(self, message="Request failed", status_code=400, extra: Optional[Dict[str, Any]] = None):
        self.message = message
        self.status_code = status_code
        self.extra = extra or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message, **self.extra}


def require_fields(data: Dict[str, Any], *names: str, message: str = "Missing required fields") -> None:
    """Raise a 400 if any of the named fields is missing or blank."""
    for name in names:
        value = data.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ApiError(message, status_code=400)
