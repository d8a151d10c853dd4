"""
Routes package.
"""

from .auth import router as auth_router
from .push import router as push_router

__all__ = [
    "auth_router",
    "push_router",
]
