"""API package - FastAPI routes and dependencies."""
from .dependencies import get_recommendation_service
from .routers import health_router, history_router, recommendations_router

__all__ = ["get_recommendation_service", "health_router", "history_router", "recommendations_router"]
