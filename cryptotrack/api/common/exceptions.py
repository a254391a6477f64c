import logging

from fastapi import HTTPException, status

from cryptotrack.services.exceptions import (
    ConversationNotFoundError,
    DatabaseError,
    InvalidInputError,
    ServiceError,
)

logger = logging.getLogger(__name__)


class APIException(HTTPException):
    """Base class for API specific exceptions."""

    def __init__(
        self, status_code: int, detail: object = None, headers: dict | None = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class NotFoundError(APIException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestError(APIException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InternalServerError(APIException):
    def __init__(self, detail: str = "Internal server error"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail
        )


def handle_service_error(e: ServiceError):
    """
    Maps ServiceError subclasses to APIException responses.
    Called by the @handle_route_errors decorator; always raises.
    """
    logger.warning(f"Handling service error: {e.__class__.__name__} - {e.message}")

    if isinstance(e, ConversationNotFoundError):
        raise NotFoundError(detail=e.message)
    elif isinstance(e, InvalidInputError):
        raise BadRequestError(detail=e.message)
    elif isinstance(e, DatabaseError):
        logger.error(f"Database error: {e}", exc_info=True)
        raise InternalServerError(detail=e.message)
    raise APIException(status_code=e.status_code, detail=e.message)
