"""Dataclasses and shared type definitions for EnkaBot."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, Mapping, Optional, Tuple


CharacterId = str
RenderKey = Tuple[str, CharacterId]


@dataclass(frozen=True)
class CharacterReference:
    character_id: CharacterId
    names: Mapping[str, Tuple[str, ...]]
    selector_key: str
    element: str = ""
    quality: str = ""

    def all_names(self) -> Tuple[str, ...]:
        """Every localized display name, de-duplicated in locale order."""
        seen: Dict[str, None] = {}
        for names in self.names.values():
            for name in names:
                if name and name not in seen:
                    seen[name] = None
        return tuple(seen)

    def display_name(self, locale: str, fallback_locale: str = "en") -> str:
        for code in (locale, fallback_locale):
            names = self.names.get(code)
            if names:
                return names[0]
        for names in self.names.values():
            if names:
                return names[0]
        return self.character_id


@dataclass(frozen=True)
class ReferenceData:
    """Character id to reference entry, in source document order."""

    characters: Mapping[CharacterId, CharacterReference] = field(default_factory=dict)

    def get(self, character_id: CharacterId) -> Optional[CharacterReference]:
        return self.characters.get(character_id)

    def __contains__(self, character_id: object) -> bool:
        return character_id in self.characters

    def __iter__(self) -> Iterator[CharacterReference]:
        return iter(self.characters.values())

    def __len__(self) -> int:
        return len(self.characters)


@dataclass(frozen=True)
class OwnedCharacter:
    character_id: CharacterId
    level: int


@dataclass(frozen=True)
class ProfileSnapshot:
    uid: str
    nickname: str
    level: int
    signature: str
    world_level: int
    characters: Tuple[OwnedCharacter, ...]
    fetched_at: datetime


class RenderOutcome(enum.Enum):
    RENDERED = "rendered"
    CACHED = "cached"
    NOT_IN_SHOWCASE = "not_in_showcase"
    FAILED = "failed"


@dataclass(frozen=True)
class RenderResult:
    outcome: RenderOutcome
    character_id: CharacterId
    image: Optional[bytes] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.image is not None


__all__ = [
    "CharacterId",
    "CharacterReference",
    "OwnedCharacter",
    "ProfileSnapshot",
    "ReferenceData",
    "RenderKey",
    "RenderOutcome",
    "RenderResult",
]
