"""Fetch, persist and parse the character reference documents."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import aiohttp

from .models import CharacterReference, ReferenceData

logger = logging.getLogger("enkabot.reference_data")

LOC_DOCUMENT = "loc.json"
CHARACTERS_DOCUMENT = "characters.json"
SIDE_ICON_PREFIX = "UI_AvatarIcon_Side_"

NamesMap = Dict[str, Dict[str, List[str]]]


class ReferenceDataError(Exception):
    """Raised when reference data cannot be fetched or parsed."""


def selector_key_from_side_icon(side_icon_name: str) -> str:
    """Turn ``UI_AvatarIcon_Side_Ayaka`` (or a /ui/ path) into ``Ayaka``."""
    icon = str(side_icon_name or "").strip()
    if icon.startswith("/ui/"):
        icon = icon[4:]
    if icon.endswith(".png"):
        icon = icon[:-4]
    if icon.startswith(SIDE_ICON_PREFIX):
        icon = icon[len(SIDE_ICON_PREFIX):]
    return icon


def derive_names(loc: Mapping[str, Any], characters: Mapping[str, Any]) -> NamesMap:
    """Build character id -> locale -> names from the localisation hash table."""
    names: NamesMap = {}
    for character_id, meta in characters.items():
        if not str(character_id).isdigit() or not isinstance(meta, Mapping):
            continue
        name_hash = meta.get("NameTextMapHash")
        if name_hash is None:
            continue
        localized: Dict[str, List[str]] = {}
        for locale, table in loc.items():
            if not isinstance(table, Mapping):
                continue
            text = table.get(str(name_hash))
            if isinstance(text, str) and text.strip():
                localized[locale] = [text.strip()]
        if localized:
            names[str(character_id)] = localized
    return names


def build_reference_data(names: Mapping[str, Any], characters: Mapping[str, Any]) -> ReferenceData:
    entries: Dict[str, CharacterReference] = {}
    skipped = 0
    for character_id, meta in characters.items():
        key = str(character_id)
        if not key.isdigit() or not isinstance(meta, Mapping):
            skipped += 1
            continue
        selector_key = selector_key_from_side_icon(str(meta.get("SideIconName") or ""))
        if not selector_key:
            skipped += 1
            continue
        localized = names.get(key) or {}
        entries[key] = CharacterReference(
            character_id=key,
            names={
                str(locale): tuple(str(name) for name in values if str(name).strip())
                for locale, values in localized.items()
                if isinstance(values, list)
            },
            selector_key=selector_key,
            element=str(meta.get("Element") or ""),
            quality=str(meta.get("QualityType") or ""),
        )
    if skipped:
        logger.debug("Skipped %s reference entries without a numeric id or side icon", skipped)
    return ReferenceData(entries)


class ReferenceDataSynchronizer:
    """Keep the local reference documents in sync with the remote store."""

    def __init__(
        self,
        *,
        names_file: Path,
        characters_file: Path,
        data_source: str,
        timeout: float = 30.0,
    ):
        self.names_file = names_file
        self.characters_file = characters_file
        self.data_source = data_source.rstrip("/")
        self.timeout = timeout

    async def load(self) -> ReferenceData:
        """Return local reference data, fetching it first if it is missing."""
        return await self.refresh(force=False)

    async def refresh(self, force: bool = False) -> ReferenceData:
        if not force:
            local = self._load_local()
            if local is not None:
                logger.info("Loaded %s characters from %s", len(local), self.characters_file)
                return local
        return await self._refresh_remote()

    def _load_local(self) -> Optional[ReferenceData]:
        if not (self.names_file.exists() and self.characters_file.exists()):
            return None
        try:
            names = json.loads(self.names_file.read_text(encoding="utf-8"))
            characters = json.loads(self.characters_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Local reference data unreadable, refetching: %s", exc)
            return None
        if not isinstance(names, dict) or not isinstance(characters, dict):
            logger.warning("Local reference data malformed, refetching.")
            return None
        reference = build_reference_data(names, characters)
        return reference if len(reference) else None

    async def _refresh_remote(self) -> ReferenceData:
        logger.info("Fetching reference data from %s", self.data_source)
        try:
            loc, characters = await self._fetch_documents()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise ReferenceDataError(f"Failed to fetch reference data: {exc}") from exc
        if not isinstance(loc, dict) or not isinstance(characters, dict):
            raise ReferenceDataError("Reference documents are not JSON objects.")

        characters = {key: value for key, value in characters.items() if str(key).isdigit()}
        names = derive_names(loc, characters)
        reference = build_reference_data(names, characters)
        if not len(reference):
            raise ReferenceDataError("Reference data contained no usable characters.")

        self.names_file.parent.mkdir(parents=True, exist_ok=True)
        self.names_file.write_text(json.dumps(names, ensure_ascii=False, indent=2), encoding="utf-8")
        self.characters_file.write_text(
            json.dumps(characters, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        logger.info("Reference data refreshed: %s characters persisted", len(reference))
        return reference

    async def _fetch_documents(self) -> Tuple[Any, Any]:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            return await asyncio.gather(
                self._fetch_json(session, f"{self.data_source}/{LOC_DOCUMENT}"),
                self._fetch_json(session, f"{self.data_source}/{CHARACTERS_DOCUMENT}"),
            )

    @staticmethod
    async def _fetch_json(session: aiohttp.ClientSession, url: str) -> Any:
        async with session.get(url) as resp:
            if resp.status != 200:
                raise ReferenceDataError(f"Unable to load {url} (status={resp.status})")
            return await resp.json(content_type=None)


__all__ = [
    "ReferenceDataError",
    "ReferenceDataSynchronizer",
    "build_reference_data",
    "derive_names",
    "selector_key_from_side_icon",
]
