from typing import Any


class BaseAppError(Exception):
    def __init__(self, message: str = "An error occured"):
        self.message = message
        super().__init__(self.message)


class AppValueError(BaseAppError):
    pass


class BusinessRuleError(BaseAppError):
    pass


class AppNetworkError(BaseAppError):
    pass


class CounterStoreError(AppNetworkError):
    """The rate-limit counter store could not be reached or timed out."""


class ClassifierError(AppNetworkError):
    pass


class GatewayError(BaseAppError):
    """Error rendered directly as an HTTP response: ``{"error": message, **extra}``."""

    status_code: int = 400

    def __init__(self, message: str, extra: dict[str, Any] | None = None):
        super().__init__(message)
        self.extra: dict[str, Any] = dict(extra or {})


class ValidationFailedError(GatewayError):
    status_code = 400

    def __init__(self, details: list[str]):
        super().__init__("Validation failed", extra={"details": details})
        self.details = details


class AuthenticationError(GatewayError):
    status_code = 401


class RateLimitExceededError(GatewayError):
    status_code = 429

    def __init__(self, error: str, message: str, retry_after: int, extra: dict[str, Any] | None = None):
        super().__init__(error, extra={"message": message, "retry_after": retry_after, **(extra or {})})
        self.retry_after = retry_after


class InternalServiceError(GatewayError):
    status_code = 500

    def __init__(self, extra: dict[str, Any] | None = None):
        super().__init__("Internal server error", extra=extra)
