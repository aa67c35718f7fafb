# farm_advisory/errors.py


class FarmAdvisoryError(Exception):
    """Base class for expected failures that map to a client-facing status."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(FarmAdvisoryError):
    status_code = 401


class NotFound(FarmAdvisoryError):
    status_code = 404


class InvalidInput(FarmAdvisoryError):
    status_code = 400


class InternalFault(FarmAdvisoryError):
    status_code = 500
