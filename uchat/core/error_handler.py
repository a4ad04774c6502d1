from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from uchat.core.exceptions import BaseAPIException
from uchat.core.log_config import logger

async def custom_exception_handler(request: Request, exc: BaseAPIException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=exc.headers,
    )

def _describe_validation_error(error: dict) -> str:
    # Field path without the request part it came from.
    location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(location)
    message = error.get("msg", "Invalid value")
    return f"{field}: {message}" if field else message

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning(f"Rejected request to {request.url.path}: {errors}")
    detail = "; ".join(_describe_validation_error(e) for e in errors) or "Invalid request"
    return JSONResponse(
        status_code=422,
        content={"error": detail}
    )

async def storage_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Storage failure while handling {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"}
    )
