"""Persistence for account bindings and registered character aliases."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from .models import CharacterId
from .utils import utc_now

logger = logging.getLogger("enkabot.state")

USERS_FILE: Optional[Path] = None
ALIASES_FILE: Optional[Path] = None

user_bindings: Dict[str, Dict[str, str]] = {}
registered_aliases: Dict[CharacterId, List[str]] = {}


def configure_state(*, users_file: Path, aliases_file: Path) -> None:
    global USERS_FILE, ALIASES_FILE
    USERS_FILE = users_file
    ALIASES_FILE = aliases_file


def load_user_bindings_from_disk() -> Dict[str, Dict[str, str]]:
    if USERS_FILE is None or not USERS_FILE.exists():
        return {}
    try:
        data = json.loads(USERS_FILE.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse %s: %s", USERS_FILE, exc)
        return {}
    if not isinstance(data, dict):
        return {}
    bindings: Dict[str, Dict[str, str]] = {}
    for user_id, entry in data.items():
        if isinstance(entry, dict) and entry.get("uid"):
            bindings[str(user_id)] = {key: str(value) for key, value in entry.items()}
        else:
            logger.warning("Skipping malformed user binding for %s", user_id)
    return bindings


def persist_user_bindings() -> None:
    if USERS_FILE is None:
        raise RuntimeError("Users file not configured. Call configure_state first.")
    USERS_FILE.parent.mkdir(parents=True, exist_ok=True)
    USERS_FILE.write_text(json.dumps(user_bindings, indent=2), encoding="utf-8")


def get_bound_uid(user_id: int) -> Optional[str]:
    entry = user_bindings.get(str(user_id))
    if not entry:
        return None
    return entry.get("uid") or None


def bind_uid(user_id: int, uid: str) -> None:
    user_bindings[str(user_id)] = {"uid": uid, "bound_at": utc_now().isoformat()}
    persist_user_bindings()


def load_aliases_from_disk() -> Dict[CharacterId, List[str]]:
    if ALIASES_FILE is None or not ALIASES_FILE.exists():
        return {}
    try:
        data = yaml.safe_load(ALIASES_FILE.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        logger.error("Failed to parse %s: %s", ALIASES_FILE, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring alias table %s: expected a mapping.", ALIASES_FILE)
        return {}
    aliases: Dict[CharacterId, List[str]] = {}
    for character_id, names in data.items():
        if isinstance(names, str):
            names = [names]
        if not isinstance(names, list):
            logger.warning("Skipping malformed alias entry for %s", character_id)
            continue
        cleaned = [str(name).strip() for name in names if str(name).strip()]
        if cleaned:
            aliases[str(character_id)] = cleaned
    return aliases


def persist_aliases(table: Optional[Dict[CharacterId, List[str]]] = None) -> None:
    if ALIASES_FILE is None:
        raise RuntimeError("Aliases file not configured. Call configure_state first.")
    ALIASES_FILE.parent.mkdir(parents=True, exist_ok=True)
    ALIASES_FILE.write_text(
        yaml.safe_dump(registered_aliases if table is None else table, allow_unicode=True, sort_keys=True),
        encoding="utf-8",
    )


def add_alias(character_id: CharacterId, alias: str) -> None:
    """Write the extended table to disk, then adopt it in memory."""
    key = str(character_id)
    names = list(registered_aliases.get(key, []))
    if alias in names:
        return
    names.append(alias)
    updated = dict(registered_aliases)
    updated[key] = names
    persist_aliases(updated)
    registered_aliases[key] = names


def restore_state() -> None:
    """Load both tables from disk, replacing the in-memory copies."""
    user_bindings.clear()
    user_bindings.update(load_user_bindings_from_disk())
    registered_aliases.clear()
    registered_aliases.update(load_aliases_from_disk())
    logger.info(
        "Restored %s account bindings and aliases for %s characters",
        len(user_bindings),
        len(registered_aliases),
    )


__all__ = [
    "add_alias",
    "bind_uid",
    "configure_state",
    "get_bound_uid",
    "load_aliases_from_disk",
    "load_user_bindings_from_disk",
    "persist_aliases",
    "persist_user_bindings",
    "registered_aliases",
    "restore_state",
    "user_bindings",
]
