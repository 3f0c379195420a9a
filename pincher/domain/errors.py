# pincher/domain/errors.py


class PincherError(Exception):
    """Base for every failure the budgeting core reports to its callers."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class AuthenticationError(PincherError):
    status_code = 401


class AuthorizationError(PincherError):
    status_code = 403


class ValidationError(PincherError, ValueError):
    """Malformed input. Raised before any write begins."""

    status_code = 400


class ResolutionError(PincherError):
    """A named resource does not exist in the budget."""

    status_code = 400


class NotFoundError(PincherError):
    status_code = 404


class ConflictError(PincherError):
    status_code = 409


class StoreError(PincherError):
    """The database failed mid-write; the unit was rolled back."""

    status_code = 500
