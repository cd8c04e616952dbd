"""FastAPI application."""

import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.agents import router as agents_router
from app.api.requirements import router as requirements_router
from app.api.tasks import router as tasks_router
from app.core.auth import verify_api_key
from app.core.config import settings
from app.core.errors import ShiftBoardError

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    status.HTTP_403_FORBIDDEN: "unauthorized",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}

app = FastAPI(
    title="ShiftBoard Agent API",
    description="Task claiming and lifecycle coordination for autonomous agents",
    version="0.1.0",
)

app.include_router(tasks_router, tags=["tasks"])
app.include_router(agents_router, tags=["agents"])
app.include_router(requirements_router, tags=["requirements"])


def _error_response(status_code: int, message: str, code: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "code": code, **extra},
    )


@app.exception_handler(ShiftBoardError)
def handle_shiftboard_error(request: Request, exc: ShiftBoardError):
    return _error_response(exc.status_code, exc.message, exc.code, **exc.extra)


@app.exception_handler(StarletteHTTPException)
def handle_http_exception(request: Request, exc: StarletteHTTPException):
    return _error_response(
        exc.status_code,
        str(exc.detail),
        HTTP_ERROR_CODES.get(exc.status_code, "http_error"),
    )


@app.exception_handler(RequestValidationError)
def handle_request_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(error.get("type") == "json_invalid" for error in errors):
        return _error_response(
            status.HTTP_400_BAD_REQUEST, "Invalid JSON in request body", "invalid_json"
        )

    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid {field}: {first.get('msg')}" if field else "Invalid request"
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        message,
        "validation_error",
        details=[
            {"loc": list(error.get("loc", ())), "msg": error.get("msg")}
            for error in errors
        ],
    )


@app.exception_handler(SQLAlchemyError)
def handle_store_error(request: Request, exc: SQLAlchemyError):
    logger.error(f"Store error on {request.method} {request.url.path}: {exc}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Data store unavailable",
        "store_unavailable",
    )


@app.exception_handler(Exception)
def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        "internal_error",
    )


@app.get("/health")
def health_check(api_key: str = Depends(verify_api_key)):
    """Health check endpoint."""
    return {"status": "healthy"}
