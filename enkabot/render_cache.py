"""Time-bounded cache of rendered showcase cards."""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional, Tuple

from .models import CharacterId, RenderKey

logger = logging.getLogger("enkabot.render_cache")

# enka.network only refreshes a public showcase once a minute.
MIN_TTL_MS = 60_000


class RenderCache:
    """Map (account uid, character id) to PNG bytes until the entry expires.

    Expired entries are dropped when read; there is no background sweep.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[RenderKey, Tuple[float, bytes]] = {}

    @staticmethod
    def key(user_id: str, character_id: CharacterId) -> RenderKey:
        return (str(user_id), str(character_id))

    def get(self, user_id: str, character_id: CharacterId) -> Optional[bytes]:
        key = self.key(user_id, character_id)
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, artifact = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return artifact

    def put(self, user_id: str, character_id: CharacterId, artifact: bytes, ttl_ms: int) -> None:
        if ttl_ms < MIN_TTL_MS:
            logger.debug("Render caching disabled: ttl %sms below %sms", ttl_ms, MIN_TTL_MS)
            return
        self._entries[self.key(user_id, character_id)] = (self._clock() + ttl_ms / 1000.0, artifact)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["MIN_TTL_MS", "RenderCache"]
