"""Core infrastructure components."""
from .cache import InMemoryKeyValueStore
from .exceptions import (
    AnnotationProviderError,
    AppException,
    CacheError,
    ConfigurationError,
    NotFoundError,
    ProviderConfigurationError,
    SearchProviderError,
    SearchQuotaExceededError,
    ServiceUnavailableError,
    UnauthorizedError,
    ValidationError,
)

__all__ = [
    "AnnotationProviderError",
    "AppException",
    "CacheError",
    "ConfigurationError",
    "InMemoryKeyValueStore",
    "NotFoundError",
    "ProviderConfigurationError",
    "SearchProviderError",
    "SearchQuotaExceededError",
    "ServiceUnavailableError",
    "UnauthorizedError",
    "ValidationError",
]
