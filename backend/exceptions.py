import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError
from starlette.exceptions import HTTPException as StarletteHTTPException

from utils.constant import APOLOGY_MESSAGE

logger = logging.getLogger(__name__)


class PassportError(Exception):
    """Base class for errors that map to an HTTP status"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SessionNotFoundError(PassportError):
    status_code = 404

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class InvalidTurnError(PassportError):
    status_code = 400


class SessionCompletedError(PassportError):
    status_code = 409


class LLMServiceError(Exception):
    """The language model call failed or returned something unusable"""


def _error_body(message: str, **extra):
    body = {"success": False, "message": message}
    body.update(extra)
    return body


async def passport_exception_handler(request: Request, exc: PassportError):
    logger.warning(f"⚠️ {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))


async def llm_exception_handler(request: Request, exc: LLMServiceError):
    logger.error(f"❌ LLM failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=_error_body("Language model request failed", reply=APOLOGY_MESSAGE),
    )


async def supabase_api_exception_handler(request: Request, exc: APIError):
    logger.error(f"❌ Supabase error on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=500,
        content=_error_body("Database request failed", reply=APOLOGY_MESSAGE),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", [])), "error": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=_error_body("Invalid request", errors=errors))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc.detail)))


async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"💥 Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=_error_body("Internal server error", reply=APOLOGY_MESSAGE),
    )
