"""
Token storage interface.
"""

from typing import Dict, Optional

from .models import StoredCredential


class TokenStore:
    """
    Keyed storage for shop credentials.

    The handshake manager only ever talks to this interface, so the
    lifetime of stored tokens is up to the backend.
    """

    async def initialize(self) -> None:
        """Prepare the backend (create tables, open connections)."""

    async def close(self) -> None:
        """Release backend resources."""

    async def get(self, shop: str) -> Optional[StoredCredential]:
        raise NotImplementedError

    async def put(self, credential: StoredCredential) -> None:
        raise NotImplementedError


class InMemoryTokenStore(TokenStore):
    """Process-local store. Tokens are lost on restart."""

    def __init__(self):
        self._credentials: Dict[str, StoredCredential] = {}

    async def get(self, shop: str) -> Optional[StoredCredential]:
        return self._credentials.get(shop)

    async def put(self, credential: StoredCredential) -> None:
        self._credentials[credential.shop] = credential
