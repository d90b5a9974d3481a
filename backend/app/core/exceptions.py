"""Error taxonomy shared by every operation.

Each class maps to one caller-visible failure kind. ``reason`` is a stable,
machine-readable kebab-case string; ``message`` is safe to show to users.
"""


class QuickSiteError(Exception):
    """Base exception for QuickSite application."""

    code = "internal"
    status_code = 500

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.message = message
        self.reason = reason or self.code


class UnauthenticatedError(QuickSiteError):
    """Raised when the caller identity is missing or cannot be established."""

    code = "unauthenticated"
    status_code = 401


class InvalidArgumentError(QuickSiteError):
    """Raised when a request field is missing or malformed."""

    code = "invalid-argument"
    status_code = 400


class PermissionDeniedError(QuickSiteError):
    """Raised on ownership mismatch between caller, path and target resource."""

    code = "permission-denied"
    status_code = 403


class FailedPreconditionError(QuickSiteError):
    """Raised when a business rule rejects an otherwise well-formed request."""

    code = "failed-precondition"
    status_code = 412


class IdentityProviderError(QuickSiteError):
    """Raised when the identity provider cannot mint a credential."""

    code = "unavailable"
    status_code = 502
