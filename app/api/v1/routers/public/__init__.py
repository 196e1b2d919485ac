"""Public (unauthenticated) read routers; mount with prefix `/public`."""

from .series import router as series_router

router = series_router

__all__ = ["router", "series_router"]
