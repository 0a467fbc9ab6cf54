"""Error taxonomy shared by the domain, repository and HTTP layers.

Every error carries the HTTP status the API answers with, so routes can turn
any of them into an ``HTTPException`` without inspecting message text.
"""

from __future__ import annotations


class AuthShopsError(Exception):
    """Base class for failures surfaced to API callers."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AuthShopsError):
    """Malformed or missing input."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class ConflictError(AuthShopsError):
    status_code = 400


class HandleTakenError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Username Unavailable!")


class NamespaceConflictError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Shop name must be globally unique")


class NotFoundError(AuthShopsError):
    status_code = 404


class AccountNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__("User not found!")


class ShopNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__("Shop not found!")


class AuthenticationError(AuthShopsError):
    status_code = 401


class InvalidCredentialsError(AuthenticationError):
    def __init__(self) -> None:
        super().__init__("Incorrect password!")


class SessionError(AuthenticationError):
    """Missing, expired or tampered session cookie."""


class CrossOriginRejection(AuthShopsError):
    status_code = 403

    def __init__(self) -> None:
        super().__init__("cross-origin request denied")


class RateLimitedError(AuthShopsError):
    status_code = 429

    def __init__(self) -> None:
        super().__init__("rate limited")


class ConfigurationError(RuntimeError):
    """Required configuration is missing; raised while the app is being built."""
