import structlog
from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BookingError, StoreError, StoreTimeoutError

logger = structlog.get_logger(__name__)


def http_error(error: BookingError, failure_detail: str) -> HTTPException:
    """Translate a booking error into an HTTP error.

    Client errors keep their message; store failures get ``failure_detail``
    so driver details never reach the client.
    """
    if isinstance(error, StoreTimeoutError):
        return HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="The booking store took too long to respond",
        )
    if isinstance(error, StoreError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=failure_detail
        )
    return HTTPException(status_code=error.status_code, detail=error.message)


async def server_error(db: AsyncSession, failure_detail: str) -> HTTPException:
    """Roll back after an unexpected failure and hide its details."""
    logger.exception("Unexpected error handling request", detail=failure_detail)
    await db.rollback()
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=failure_detail
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies and parameters are client errors (400)."""
    logger.info("Request validation failed", path=request.url.path, errors=exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {
            "loc": list(error.get("loc", ())),
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
