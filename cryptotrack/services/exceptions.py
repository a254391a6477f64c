class ServiceError(Exception):
    """Base class for service layer errors."""

    def __init__(self, message="An internal service error occurred.", status_code=500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class InvalidInputError(ServiceError):
    """Rejected before storage is touched (empty content, no participants, ...)."""

    def __init__(self, message="Invalid input."):
        super().__init__(message, status_code=400)


class ConversationNotFoundError(ServiceError):
    """The conversation does not exist or the caller is not a participant."""

    def __init__(self, message="Conversation not found."):
        super().__init__(message, status_code=404)


class DatabaseError(ServiceError):
    def __init__(self, message="A database error occurred."):
        super().__init__(message, status_code=500)
