import logging
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class BookshelfError(Exception):
    """Base exception for all bookstore errors."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, user_message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(user_message)
        self.user_message = user_message
        self.context = context or {}


class CheckoutStateError(BookshelfError):
    """Raised when a checkout step is attempted in the wrong state."""

    status_code = status.HTTP_409_CONFLICT


class PaymentError(BookshelfError):
    """Raised when the payment gateway refuses a payment."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED


class PersistenceError(BookshelfError):
    """Raised when data could not be written to the database."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


async def bookshelf_error_handler(request: Request, exc: BookshelfError) -> JSONResponse:
    logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.user_message)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.user_message,
            "error": type(exc).__name__,
            "context": exc.context,
        },
    )
