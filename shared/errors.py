"""
Shared error handling for the registry auth adaptor.
"""

from typing import Dict, Any, Optional


class RegistryAuthException(Exception):
    """Base exception for the registry auth adaptor."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dict suitable for logging."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigError(RegistryAuthException):
    """Invalid or incomplete adaptor configuration."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIG_ERROR", message, details)


class UpstreamError(RegistryAuthException):
    """Failure talking to the upstream team directory."""

    def __init__(
        self,
        code: str = "UPSTREAM_ERROR",
        message: str = "Upstream error",
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        super().__init__(code, message, details)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["status_code"] = self.status_code
        return result


class CacheError(RegistryAuthException):
    """Credential cache backend failure."""

    def __init__(self, message: str = "Cache error", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_ERROR", message, details)


class NotSupportedError(RegistryAuthException):
    """Operation the adaptor deliberately refuses."""

    def __init__(self, message: str = "Operation not supported", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_SUPPORTED", message, details)
