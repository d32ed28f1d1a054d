"""
Standard API response envelope.
"""

from typing import Any, Optional

from schooldesk.core.errors import SchoolDeskError


def success_response(data: Any = None, message: str = "Success") -> dict:
    return {"success": True, "data": data, "message": message}


def error_response(message: str = "Error", data: Any = None) -> dict:
    return {"success": False, "data": data, "message": message}


def error_payload(exc: SchoolDeskError, extra: Optional[dict] = None) -> dict:
    data = {"code": exc.code, "retryable": exc.retryable}
    if extra:
        data.update(extra)
    return error_response(message=exc.message, data=data)
