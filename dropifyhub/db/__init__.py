"""
Database package - credential storage.
"""

from .models import StoredCredential
from .store import TokenStore, InMemoryTokenStore
from .sqlite import SQLiteTokenStore

__all__ = [
    "StoredCredential",
    "TokenStore",
    "InMemoryTokenStore",
    "SQLiteTokenStore",
]
