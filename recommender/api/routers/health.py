"""
Health check router for observability.
"""
from fastapi import APIRouter, Depends

from recommender.api.dependencies import StoreBackend, get_key_value_store
from recommender.config import get_settings
from recommender.core.cache import InMemoryKeyValueStore
from recommender.core.exceptions import ServiceUnavailableError

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health Check")
async def health_check() -> dict:
    """Basic health check endpoint."""
    return {"status": "healthy"}


@router.get("/health/ready", summary="Readiness Check")
async def readiness_check(store: StoreBackend = Depends(get_key_value_store)) -> dict:
    """
    Readiness check for Kubernetes.
    Returns store backend and provider configuration; 503 if the store is down.
    """
    if not await store.ping():
        raise ServiceUnavailableError("key-value store")

    settings = get_settings()
    return {
        "status": "ready",
        "store": {
            "backend": "memory" if isinstance(store, InMemoryKeyValueStore) else "redis",
        },
        "providers": {
            "youtube_configured": bool(settings.YOUTUBE_API_KEY),
            "gemini_configured": bool(settings.GEMINI_API_KEY),
        },
    }
