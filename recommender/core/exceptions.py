"""
Custom exception hierarchy for centralized error handling.
All exceptions map to appropriate HTTP status codes.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to API response format."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(AppException):
    """Invalid input data."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=404,
            error_code="NOT_FOUND",
            details={"resource": resource, "identifier": identifier},
        )


class UnauthorizedError(AppException):
    """Caller identity missing."""

    def __init__(self, message: str = "User ID not found in headers") -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_code="UNAUTHORIZED",
        )


class ConfigurationError(AppException):
    """Required server configuration is missing."""

    def __init__(self, setting: str) -> None:
        super().__init__(
            message=f"{setting} environment variable is required",
            status_code=500,
            error_code="CONFIGURATION_ERROR",
            details={"setting": setting},
        )


class ServiceUnavailableError(AppException):
    """Dependency service is unavailable."""

    def __init__(self, service_name: str) -> None:
        super().__init__(
            message=f"Service temporarily unavailable: {service_name}",
            status_code=503,
            error_code="SERVICE_UNAVAILABLE",
            details={"service": service_name},
        )


class CacheError(AppException):
    """Key-value store operation failed."""

    def __init__(self, operation: str, reason: str = "Unknown") -> None:
        super().__init__(
            message=f"Cache {operation} failed: {reason}",
            status_code=503,
            error_code="CACHE_ERROR",
            details={"operation": operation, "reason": reason},
        )


class ProviderConfigurationError(AppException):
    """External provider cannot be called because it is not configured."""

    def __init__(self, provider: str, setting: str) -> None:
        super().__init__(
            message=f"{provider} is not configured: {setting} is required",
            status_code=500,
            error_code="PROVIDER_NOT_CONFIGURED",
            details={"provider": provider, "setting": setting},
        )


class SearchProviderError(AppException):
    """Video search call failed."""

    def __init__(self, reason: str, status: Optional[int] = None) -> None:
        super().__init__(
            message=f"Search provider error: {reason}",
            status_code=502,
            error_code="SEARCH_PROVIDER_ERROR",
            details={"reason": reason, "upstream_status": status},
        )


class SearchQuotaExceededError(SearchProviderError):
    """Search API quota or rate limit hit."""

    def __init__(self, status: int) -> None:
        super().__init__(reason="quota exceeded", status=status)
        self.error_code = "SEARCH_QUOTA_EXCEEDED"


class AnnotationProviderError(AppException):
    """LLM call failed."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Annotation provider error: {reason}",
            status_code=502,
            error_code="ANNOTATION_PROVIDER_ERROR",
            details={"reason": reason},
        )
