class EHRError(Exception):
    """Base class for domain failures that map onto an HTTP error response."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidArgument(EHRError):
    status_code = 400


class Unauthenticated(EHRError):
    status_code = 401


class InvalidCredentials(Unauthenticated):
    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class Forbidden(EHRError):
    status_code = 403


class NotFound(EHRError):
    status_code = 404


class Conflict(EHRError):
    status_code = 409


class Internal(EHRError):
    status_code = 500


class Unavailable(EHRError):
    status_code = 503

    def __init__(self, message: str = "Database not connected"):
        super().__init__(message)
