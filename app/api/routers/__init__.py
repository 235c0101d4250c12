"""
app/api/routers package marker.
"""

from app.api.routers.data_router import router as data_router

__all__ = ["data_router"]
