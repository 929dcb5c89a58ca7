"""Utility helpers for EnkaBot."""

from __future__ import annotations

import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

import discord

logger = logging.getLogger("enkabot.utils")

_truthy = {"1", "true", "yes", "on"}

UID_PATTERN = re.compile(r"^[1256789][0-9]{3,9}$")


def int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s=%s. Falling back to %s.", name, raw, default)
        return default


def float_from_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid float for %s=%s. Falling back to %s.", name, raw, default)
        return default


def bool_from_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _truthy


def str_from_env(name: str, default: str) -> str:
    value = os.getenv(name, "").strip()
    return value or default


def path_from_env(name: str) -> Optional[Path]:
    value = os.getenv(name, "").strip()
    if not value:
        return None
    return Path(value).expanduser()


def is_valid_uid(candidate: str) -> bool:
    """Return True when candidate looks like a game account uid."""
    return bool(UID_PATTERN.match((candidate or "").strip()))


def normalize_locale(value: Optional[str], supported: Iterable[str], default: str) -> str:
    """Map a Discord/BCP-47 style locale onto one of the supported codes."""
    if not value:
        return default
    raw = str(value).strip().replace("_", "-")
    supported = list(supported)
    lowered = {code.lower(): code for code in supported}
    if raw.lower() in lowered:
        return lowered[raw.lower()]
    primary = raw.split("-", 1)[0].lower()
    if primary in lowered:
        return lowered[primary]
    for code in supported:
        if code.lower().startswith(primary + "-"):
            return code
    return default


def is_admin(member: discord.abc.User) -> bool:
    if isinstance(member, discord.Member):
        if member.guild_permissions.administrator:
            return True
        roles: Iterable[discord.Role] = getattr(member, "roles", [])
        return any(role.name.lower() == "admin" for role in roles)
    return False


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


__all__ = [
    "UID_PATTERN",
    "bool_from_env",
    "float_from_env",
    "int_from_env",
    "is_admin",
    "is_valid_uid",
    "normalize_locale",
    "path_from_env",
    "str_from_env",
    "utc_now",
]
