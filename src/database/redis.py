"""
Lightweight in-memory RedisCache replacement for local development.

Implements the guest-draft and lock helpers used by the API so it can run
without a real Redis instance. Expiry is honoured lazily on read.
"""

from __future__ import annotations

import copy
import time
import uuid
from typing import Any, Dict, Optional, Tuple


class RedisCache:
    def __init__(self) -> None:
        # key -> (expires_at, value)
        self._store: Dict[str, Tuple[float, Any]] = {}

    def _get(self, key: str) -> Any:
        entry = self._store.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= time.monotonic():
            self._store.pop(key, None)
            return None
        return value

    def _set(self, key: str, value: Any, ttl: int) -> None:
        self._store[key] = (time.monotonic() + ttl, value)

    # --- Guest drafts ---------------------------------------------------------

    def _guest_key(self, guest_id: str) -> str:
        return f"guest_draft:{guest_id}"

    def set_guest_draft(self, guest_id: str, data: Dict[str, Any], ttl: int = 2592000) -> Dict[str, Any]:
        record = {"data": copy.deepcopy(data), "saved_at": time.time()}
        self._set(self._guest_key(guest_id), record, ttl)
        return record

    def get_guest_draft(self, guest_id: str) -> Optional[Dict[str, Any]]:
        record = self._get(self._guest_key(guest_id))
        return copy.deepcopy(record) if record is not None else None

    def delete_guest_draft(self, guest_id: str) -> bool:
        return self._store.pop(self._guest_key(guest_id), None) is not None

    # --- Locks ------------------------------------------------------------------

    def acquire_lock(self, name: str, ttl: int = 60) -> Optional[str]:
        key = f"lock:{name}"
        if self._get(key) is not None:
            return None
        token = uuid.uuid4().hex
        self._set(key, token, ttl)
        return token

    def release_lock(self, name: str, token: str) -> bool:
        key = f"lock:{name}"
        if self._get(key) != token:
            return False
        self._store.pop(key, None)
        return True

    # --- Misc -----------------------------------------------------------------

    def ping(self) -> bool:
        return True
