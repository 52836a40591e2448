from typing import Any, Dict, Optional


class InterviewError(Exception):
    """
    Base class for every error raised by this package.

    Attributes:
        code (str): stable identifier, e.g. 'PROVIDER_AUTH'
        message (str): message safe to show to the end user
        details (dict): extra debugging context
    """
    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code}] {message}")


class ConfigurationError(InterviewError):
    """Missing credentials or persona ids. Fatal to starting a session."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(code="CONFIG", message=message, details=details)


class ProviderError(InterviewError):
    """The conversation provider rejected or failed a request."""
    retryable = False

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: str = "PROVIDER",
    ):
        self.status_code = status_code
        super().__init__(code=code, message=message, details={"status_code": status_code})


class ProviderAuthError(ProviderError):
    def __init__(self, message: str = "Invalid API key. Please check PROVIDER_API_KEY in your .env file."):
        super().__init__(message, status_code=401, code="PROVIDER_AUTH")


class PersonaNotFoundError(ProviderError):
    def __init__(self, message: str = "Persona not found. Please verify the persona IDs exist in your provider dashboard."):
        super().__init__(message, status_code=404, code="PROVIDER_PERSONA")


class ProviderRequestError(ProviderError):
    def __init__(self, message: str):
        super().__init__(message, status_code=400, code="PROVIDER_REQUEST")


class ProviderUnavailableError(ProviderError):
    """Network failure or timeout talking to the provider."""
    retryable = True

    def __init__(self, message: str = "Could not reach the interview service. Please try again."):
        super().__init__(message, code="PROVIDER_UNAVAILABLE")


class SessionStoreError(InterviewError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(code="SESSION_STORE", message=message, details=details)


class WebhookValidationError(ValueError):
    """Malformed webhook payload. Rejected with 400, never partially applied."""


class ScoringError(InterviewError):
    """The scoring service call or its output was unusable."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(code="SCORING", message=message, details=details)
