# Registration API (producer service)
from .routes import health_router, router

__all__ = ["router", "health_router"]
