from typing import Any


def success_response(message: str | None = None, **payload: Any) -> dict:
    body: dict = {"success": True, **payload}
    if message is not None:
        body["message"] = message
    return body


def error_response(error: str, **payload: Any) -> dict:
    return {"success": False, "error": error, **payload}
