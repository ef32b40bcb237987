"""
Failure taxonomy of the order core. Each kind maps to one HTTP status.
"""


class OrderError(Exception):
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(OrderError):
    """Malformed input or a status change the lifecycle does not allow."""
    status_code = 400


class ForbiddenError(OrderError):
    """Role or ownership mismatch. Never says whose resource it was."""
    status_code = 403

    def __init__(self, message: str = "access denied"):
        super().__init__(message)


class NotFoundError(OrderError):
    status_code = 404


class ConflictError(OrderError):
    """Lost a race on a conditional update (e.g. two riders claiming one order)."""
    status_code = 409
