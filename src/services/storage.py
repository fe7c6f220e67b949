from __future__ import annotations

import json
from typing import Dict, List, Optional

import db.crud as crud

# keys, mirroring what a browser client keeps in session/local storage
SESSION_TOKEN_KEY = "session_token"  # ephemeral
REMEMBER_ME_KEY = "remember_me_token"  # durable
LAST_VIEW_KEY = "last_view"  # durable
RECENTLY_VIEWED_KEY = "recently_viewed"  # durable, JSON list of product ids


class ClientStorage:
    """
    Two-tier key/value storage for one client.

    The ephemeral tier lives in process memory and is gone when the app exits.
    The durable tier goes through the store's local-storage functions and
    survives restarts.
    """

    def __init__(self, store=crud) -> None:
        self._store = store
        self._ephemeral: Dict[str, str] = {}

    # ephemeral tier

    def get_ephemeral(self, key: str) -> Optional[str]:
        return self._ephemeral.get(key)

    def set_ephemeral(self, key: str, value: str) -> None:
        self._ephemeral[key] = value

    def remove_ephemeral(self, key: str) -> None:
        self._ephemeral.pop(key, None)

    def clear_ephemeral(self) -> None:
        self._ephemeral.clear()

    # durable tier

    async def get_durable(self, key: str) -> Optional[str]:
        return await self._store.get_local(key)

    async def set_durable(self, key: str, value: str) -> None:
        await self._store.set_local(key, value)

    async def remove_durable(self, key: str) -> None:
        await self._store.remove_local(key)

    async def get_durable_list(self, key: str) -> List[str]:
        """Read a JSON list of strings; anything unreadable counts as empty."""
        raw = await self.get_durable(key)
        if not raw:
            return []
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            return []
        if not isinstance(value, list):
            return []
        return [str(v) for v in value]

    async def set_durable_list(self, key: str, values: List[str]) -> None:
        await self.set_durable(key, json.dumps(list(values)))
