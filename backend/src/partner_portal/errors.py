"""Error taxonomy shared by services and the HTTP layer.

Services raise these exceptions; the API turns them into the JSON error
envelope ``{"error": ..., "details": ...}`` using ``status_code``.
"""


class PortalError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 500

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(PortalError):
    """A required field is missing or a value is not acceptable."""

    status_code = 400


class UnauthorizedError(PortalError):
    """No credential, or the credential could not be verified."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized", details: str | None = None):
        super().__init__(message, details)


class ForbiddenError(PortalError):
    """Valid credential, but the caller's role does not allow the operation."""

    status_code = 403

    def __init__(self, message: str = "Forbidden - Admin access required", details: str | None = None):
        super().__init__(message, details)


class NotFoundError(PortalError):
    status_code = 404


class InvalidStateError(PortalError):
    """Operation is not valid for the entity's current state."""

    status_code = 400


class CapacityExceededError(PortalError):
    status_code = 400


class InsufficientPointsError(PortalError):
    """Raised when a user's points balance cannot cover a debit."""

    status_code = 400

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            "Insufficient points",
            f"required {required}, available {available}",
        )


class InternalError(PortalError):
    """Persistence or upstream failure."""

    status_code = 500
