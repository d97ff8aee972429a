"""Oakline Admin - API Routers"""
from .admin import router as admin_router

__all__ = [
    "admin_router",
]
