"""
SQLite token store.
Simple and direct - one table keyed by shop.
"""

import aiosqlite
from datetime import datetime
from typing import Optional
import os

from .models import StoredCredential
from .store import TokenStore


class SQLiteTokenStore(TokenStore):
    """SQLite-backed credential storage."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        if self._connection is None:
            os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)
            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row
        return self._connection

    async def initialize(self) -> None:
        """Create database tables."""
        conn = await self._get_connection()

        await conn.executescript("""
            CREATE TABLE IF NOT EXISTS shop_credentials (
                shop TEXT PRIMARY KEY,
                access_token TEXT NOT NULL,
                scope TEXT,
                installed_at TEXT NOT NULL
            );
        """)
        await conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    def _row_to_credential(self, row: aiosqlite.Row) -> StoredCredential:
        """Convert a database row to a StoredCredential model."""
        installed_at = datetime.fromisoformat(row["installed_at"])
        if installed_at.tzinfo is not None:
            installed_at = installed_at.replace(tzinfo=None)

        return StoredCredential(
            shop=row["shop"],
            access_token=row["access_token"],
            scope=row["scope"],
            installed_at=installed_at,
        )

    async def get(self, shop: str) -> Optional[StoredCredential]:
        conn = await self._get_connection()
        async with conn.execute(
            "SELECT * FROM shop_credentials WHERE shop = ?", (shop,)
        ) as cursor:
            row = await cursor.fetchone()
        return self._row_to_credential(row) if row else None

    async def put(self, credential: StoredCredential) -> None:
        conn = await self._get_connection()
        await conn.execute(
            """
            INSERT INTO shop_credentials (shop, access_token, scope, installed_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(shop) DO UPDATE SET
                access_token = excluded.access_token,
                scope = excluded.scope,
                installed_at = excluded.installed_at
            """,
            (
                credential.shop,
                credential.access_token,
                credential.scope,
                credential.installed_at.isoformat(),
            ),
        )
        await conn.commit()
