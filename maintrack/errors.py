"""Error taxonomy for maintrack.

Lifecycle operations raise these; the API layer maps them to HTTP responses
through a single exception handler.
"""


class MaintrackError(Exception):
    """Base error carrying the HTTP status code the API should answer with."""

    status_code = 400

    def __init__(self, message: str = "", status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(MaintrackError):
    """Malformed or missing input."""

    status_code = 400

    def __init__(self, message: str = "Validation Error"):
        super().__init__(message)


class NotFoundError(MaintrackError):
    """Unknown task, product or user id."""

    status_code = 404

    def __init__(self, message: str = "Not Found"):
        super().__init__(message)


class UnauthorizedError(MaintrackError):
    """Requester does not own the task or product."""

    status_code = 403

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class DBError(MaintrackError):
    """Store-layer failure. The underlying exception is chained as __cause__."""

    status_code = 500

    def __init__(self, message: str = "Database Error"):
        super().__init__(message)
