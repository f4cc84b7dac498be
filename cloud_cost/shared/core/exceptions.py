import re
from typing import Optional, Dict, Any


class CloudCostException(Exception):
    """Base exception for all Cloud Cost Manager errors."""
    def __init__(
        self,
        message: str,
        code: str = "internal_error",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}


class ProviderError(CloudCostException):
    """
    Raised when a cost provider cannot produce a result for an account.

    Covers unknown account references, authentication failures, upstream
    API failures and malformed upstream responses. Messages are sanitized
    so request IDs and credential material never reach API clients.
    """
    def __init__(self, message: str, code: str = "provider_error", details: Optional[Dict[str, Any]] = None):
        super().__init__(self._sanitize(message), code=code, status_code=502, details=details)

    @staticmethod
    def _sanitize(msg: str) -> str:
        # Request IDs
        msg = re.sub(r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}', '[REDACTED_ID]', msg, flags=re.IGNORECASE)
        msg = re.sub(r'(?i)(access_key|secret_key|token|password|signature)=[^&\s]+', r'\1=[REDACTED]', msg)
        if "AccessDenied" in msg or "Unauthorized" in msg:
            return "Permission denied: ensure the credentials allow Cost Explorer and STS read access."
        return msg


class AuthError(CloudCostException):
    """Raised when an API request fails the configured auth mode."""
    def __init__(self, message: str, code: str = "auth_error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, status_code=401, details=details)


class ConfigurationError(CloudCostException):
    """Raised when application configuration is invalid or missing."""
    def __init__(self, message: str, code: str = "config_error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, status_code=500, details=details)
