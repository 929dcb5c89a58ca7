"""Multilingual character name lookup built from reference data and aliases."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Mapping, NamedTuple, Optional, Tuple

from .models import CharacterId, ReferenceData

logger = logging.getLogger("enkabot.character_lookup")


class AliasRegistrationError(Exception):
    """Raised when an alias cannot be registered for a character."""


class _IndexSnapshot(NamedTuple):
    reference: ReferenceData
    # (character id, display names, case-folded names) in insertion order
    rows: Tuple[Tuple[CharacterId, Tuple[str, ...], Tuple[str, ...]], ...]
    exact: Mapping[str, CharacterId]


_EMPTY = _IndexSnapshot(ReferenceData(), (), {})


class AliasIndex:
    """Resolve any known display name or alias to a canonical character id.

    Lookups are case-insensitive substring matches: the first row (in
    reference order, then alias-only ids) holding a name that contains the
    query wins. A query shared by several characters is therefore resolved
    by build order, not by closeness of match.

    ``rebuild`` swaps in a fully built snapshot with a single assignment, so
    a reader sees either the previous index or the new one.
    """

    def __init__(
        self,
        reference: Optional[ReferenceData] = None,
        aliases: Optional[Mapping[CharacterId, Iterable[str]]] = None,
    ):
        self._snapshot: _IndexSnapshot = _EMPTY
        if reference is not None:
            self.rebuild(reference, aliases or {})

    @property
    def reference(self) -> ReferenceData:
        return self._snapshot.reference

    @property
    def ready(self) -> bool:
        return bool(self._snapshot.rows)

    def __len__(self) -> int:
        return len(self._snapshot.rows)

    def rebuild(self, reference: ReferenceData, aliases: Mapping[CharacterId, Iterable[str]]) -> None:
        """Replace the index with one built from reference and alias data."""
        merged: Dict[CharacterId, Dict[str, None]] = {}
        for entry in reference:
            names = merged.setdefault(entry.character_id, {})
            for name in entry.all_names():
                names[name] = None
        for character_id, extra in aliases.items():
            key = str(character_id)
            if key not in merged:
                logger.debug("Alias table references unknown character id %s", key)
            names = merged.setdefault(key, {})
            for name in extra:
                cleaned = str(name).strip()
                if cleaned:
                    names[cleaned] = None

        rows = []
        exact: Dict[str, CharacterId] = {}
        for character_id, names in merged.items():
            display = tuple(names)
            folded = tuple(name.casefold() for name in display)
            rows.append((character_id, display, folded))
            for name in folded:
                exact.setdefault(name, character_id)

        self._snapshot = _IndexSnapshot(reference, tuple(rows), exact)
        logger.info("Alias index rebuilt: %s characters, %s names", len(rows), len(exact))

    def resolve(self, query: str) -> Optional[CharacterId]:
        """Return the canonical id for query, or None when nothing matches."""
        needle = (query or "").strip().casefold()
        if not needle:
            return None
        for character_id, _display, folded in self._snapshot.rows:
            for name in folded:
                if needle in name:
                    return character_id
        return None

    def names_for(self, character_id: CharacterId) -> Tuple[str, ...]:
        for row_id, display, _folded in self._snapshot.rows:
            if row_id == character_id:
                return display
        return ()

    def display_name(self, character_id: CharacterId, locale: str) -> str:
        entry = self._snapshot.reference.get(character_id)
        if entry is not None:
            return entry.display_name(locale)
        names = self.names_for(character_id)
        return names[0] if names else character_id

    def validate_alias(self, character_id: CharacterId, alias: str) -> str:
        """Return the cleaned alias or raise AliasRegistrationError."""
        cleaned = (alias or "").strip()
        if not cleaned:
            raise AliasRegistrationError("Provide a non-empty alias.")
        snapshot = self._snapshot
        if character_id not in snapshot.reference:
            raise AliasRegistrationError(f"Unknown character id '{character_id}'.")
        owner = snapshot.exact.get(cleaned.casefold())
        if owner is not None:
            raise AliasRegistrationError(f"The name '{cleaned}' is already used by character {owner}.")

        # First match wins, so the alias must still reach its own row and
        # must not capture names that currently reach a later row.
        current = self.resolve(cleaned)
        if current is not None and current != character_id:
            raise AliasRegistrationError(
                f"The name '{cleaned}' already matches character {current} and would never reach {character_id}."
            )
        positions = {row_id: position for position, (row_id, _display, _folded) in enumerate(snapshot.rows)}
        target = positions[character_id]
        needle = cleaned.casefold()
        for name, name_owner in snapshot.exact.items():
            if name_owner == character_id or name not in needle:
                continue
            winner = self.resolve(name)
            if winner is not None and positions[winner] > target:
                raise AliasRegistrationError(
                    f"The name '{cleaned}' would take over lookups of '{name}' from character {winner}."
                )
        return cleaned


__all__ = ["AliasIndex", "AliasRegistrationError"]
