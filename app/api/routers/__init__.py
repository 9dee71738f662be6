"""
app/api/routers package marker.
"""

from app.api.routers.historical_import import router as historical_import_router

__all__ = [
    "historical_import_router",
]
