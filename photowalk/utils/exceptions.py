import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from photowalk.utils.response import error_response

logger = logging.getLogger(__name__)


class AppException(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CaptureRejected(AppException):
    """A photo capture whose preconditions do not hold."""

    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class SessionNotFound(AppException):
    def __init__(self, session_id: str):
        super().__init__(f"散歩セッション {session_id} が見つかりません", status_code=404)
        self.session_id = session_id


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(exc.message),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=error_response("サーバー内部エラーが発生しました"),
        )
