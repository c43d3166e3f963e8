"""
Real Redis-backed cache for production when REDIS_URL is set. Implements the
same interface as src.database.redis (in-memory stub).
"""

from __future__ import annotations

import json
import time
import uuid
from typing import Any, Dict, Optional

import redis

_RELEASE_LOCK_LUA = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class RedisCache:
    """
    Redis-backed guest drafts and processing locks.
    """

    def __init__(self, url: str, draft_ttl: int = 2592000) -> None:
        self._client = redis.from_url(url, decode_responses=True)
        self._draft_ttl = draft_ttl
        self._release_script = self._client.register_script(_RELEASE_LOCK_LUA)

    # --- Guest drafts ---------------------------------------------------------

    def _guest_key(self, guest_id: str) -> str:
        return f"guest_draft:{guest_id}"

    def set_guest_draft(self, guest_id: str, data: Dict[str, Any], ttl: int = 2592000) -> Dict[str, Any]:
        record = {"data": data, "saved_at": time.time()}
        payload = json.dumps(record, default=str)
        self._client.setex(self._guest_key(guest_id), ttl or self._draft_ttl, payload)
        return record

    def get_guest_draft(self, guest_id: str) -> Optional[Dict[str, Any]]:
        raw = self._client.get(self._guest_key(guest_id))
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    def delete_guest_draft(self, guest_id: str) -> bool:
        return bool(self._client.delete(self._guest_key(guest_id)))

    # --- Locks ------------------------------------------------------------------

    def acquire_lock(self, name: str, ttl: int = 60) -> Optional[str]:
        """Take ``lock:{name}`` with SET NX EX; returns the owner token, or None when held elsewhere."""
        token = uuid.uuid4().hex
        if self._client.set(f"lock:{name}", token, nx=True, ex=ttl):
            return token
        return None

    def release_lock(self, name: str, token: str) -> bool:
        # Deletes only while the key still holds this token
        return bool(self._release_script(keys=[f"lock:{name}"], args=[token]))

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False
