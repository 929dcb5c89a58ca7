"""Player profile snapshots fetched from the Enka API."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import aiohttp

from .character_lookup import AliasIndex
from .messages import message
from .models import OwnedCharacter, ProfileSnapshot
from .utils import utc_now

logger = logging.getLogger("enkabot.profiles")

USER_AGENT = "enkabot/1.0"

_STATUS_REASONS = {
    400: "wrong uid format",
    404: "player does not exist",
    424: "game maintenance or API outage",
    429: "rate limited, try again later",
    500: "Enka server error",
    503: "Enka is temporarily unavailable",
}


class ProfileFetchError(Exception):
    """Raised when a player profile cannot be fetched."""


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_snapshot(uid: str, payload: Mapping[str, Any], fetched_at: Optional[datetime] = None) -> ProfileSnapshot:
    info = payload.get("playerInfo") or {}
    if not isinstance(info, Mapping):
        raise ProfileFetchError("malformed profile response")
    owned: List[OwnedCharacter] = []
    for avatar in info.get("showAvatarInfoList") or []:
        if not isinstance(avatar, Mapping):
            continue
        avatar_id = _to_int(avatar.get("avatarId"))
        if avatar_id <= 0:
            continue
        owned.append(OwnedCharacter(character_id=str(avatar_id), level=_to_int(avatar.get("level"), 1)))
    return ProfileSnapshot(
        uid=str(uid),
        nickname=str(info.get("nickname") or "Unknown"),
        level=_to_int(info.get("level")),
        signature=str(info.get("signature") or ""),
        world_level=_to_int(info.get("worldLevel")),
        characters=tuple(owned),
        fetched_at=fetched_at or utc_now(),
    )


class ProfileSnapshotCache:
    """Per-uid profile snapshots, stale until explicitly refreshed."""

    def __init__(self, *, api_base_url: str, timeout: float = 25.0):
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self._snapshots: Dict[str, ProfileSnapshot] = {}

    def get(self, uid: str) -> Optional[ProfileSnapshot]:
        return self._snapshots.get(str(uid))

    async def refresh(self, uid: str) -> ProfileSnapshot:
        payload = await self._fetch_profile(str(uid))
        snapshot = parse_snapshot(str(uid), payload)
        self._snapshots[snapshot.uid] = snapshot
        logger.info(
            "Profile snapshot refreshed for uid %s: %s characters on display",
            snapshot.uid,
            len(snapshot.characters),
        )
        return snapshot

    async def get_or_refresh(self, uid: str, *, force: bool = False) -> ProfileSnapshot:
        snapshot = None if force else self.get(uid)
        if snapshot is None:
            snapshot = await self.refresh(uid)
        return snapshot

    async def _fetch_profile(self, uid: str) -> Mapping[str, Any]:
        url = f"{self.api_base_url}/api/uid/{uid}/"
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        headers = {"User-Agent": USER_AGENT}
        try:
            async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
                async with session.get(url) as resp:
                    if resp.status >= 400:
                        reason = _STATUS_REASONS.get(resp.status, f"HTTP {resp.status}")
                        raise ProfileFetchError(reason)
                    data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.warning("Profile fetch for uid %s failed: %s", uid, exc)
            raise ProfileFetchError("network error") from exc
        if not isinstance(data, Mapping):
            raise ProfileFetchError("malformed profile response")
        return data


def format_roster(snapshot: ProfileSnapshot, index: AliasIndex, locale: str) -> str:
    lines = [
        message(
            "roster_header",
            locale,
            nickname=snapshot.nickname,
            uid=snapshot.uid,
            level=snapshot.level,
            world_level=snapshot.world_level,
        )
    ]
    if snapshot.signature:
        lines.append(message("roster_signature", locale, signature=snapshot.signature))
    if not snapshot.characters:
        lines.append(message("roster_empty", locale))
    for owned in snapshot.characters:
        lines.append(
            message(
                "roster_line",
                locale,
                name=index.display_name(owned.character_id, locale),
                level=owned.level,
            )
        )
    return "\n".join(lines)


__all__ = ["ProfileFetchError", "ProfileSnapshotCache", "format_roster", "parse_snapshot"]
