"""Request flow tying name resolution, rendering and profile lookups together."""

from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

from . import state
from .character_lookup import AliasIndex
from .models import CharacterId, CharacterReference, ProfileSnapshot, RenderResult
from .profiles import ProfileSnapshotCache, format_roster
from .reference_data import ReferenceDataSynchronizer
from .showcase import ShowcaseRenderer
from .utils import is_valid_uid

logger = logging.getLogger("enkabot.service")


class AccountNotBoundError(Exception):
    """The caller has not bound a game account yet."""


class UnknownCharacterError(Exception):
    """No known name or alias matches the query."""

    def __init__(self, query: str):
        super().__init__(f"Unknown character '{query}'")
        self.query = query


class InvalidUidError(Exception):
    """The supplied account uid is malformed."""

    def __init__(self, uid: str):
        super().__init__(f"'{uid}' is not a valid uid")
        self.uid = uid


class FeatureNotReadyError(Exception):
    """Reference data has not been loaded, so names cannot be resolved."""


class ShowcaseService:
    def __init__(
        self,
        *,
        synchronizer: ReferenceDataSynchronizer,
        index: AliasIndex,
        renderer: ShowcaseRenderer,
        profiles: ProfileSnapshotCache,
        page_factory: Any = None,
    ):
        self.synchronizer = synchronizer
        self.index = index
        self.renderer = renderer
        self.profiles = profiles
        self._page_factory = page_factory

    @property
    def ready(self) -> bool:
        return self.index.ready

    async def bootstrap(self) -> int:
        """Load reference data (fetching it if absent) and build the index."""
        reference = await self.synchronizer.load()
        self.index.rebuild(reference, state.registered_aliases)
        return len(reference)

    async def upgrade(self) -> int:
        """Force a remote reference data refresh and rebuild the index."""
        reference = await self.synchronizer.refresh(force=True)
        self.index.rebuild(reference, state.registered_aliases)
        return len(reference)

    def bound_uid(self, user_id: int) -> Optional[str]:
        return state.get_bound_uid(user_id)

    def bind(self, user_id: int, uid: str) -> str:
        cleaned = (uid or "").strip()
        if not is_valid_uid(cleaned):
            raise InvalidUidError(cleaned)
        state.bind_uid(user_id, cleaned)
        logger.info("User %s bound uid %s", user_id, cleaned)
        return cleaned

    def _require_uid(self, user_id: int) -> str:
        uid = state.get_bound_uid(user_id)
        if not uid:
            raise AccountNotBoundError(str(user_id))
        return uid

    def resolve(self, query: str) -> CharacterReference:
        if not self.ready:
            raise FeatureNotReadyError()
        character_id = self.index.resolve(query)
        reference = self.index.reference.get(character_id) if character_id else None
        if reference is None:
            raise UnknownCharacterError(query)
        return reference

    def prepare_view(self, user_id: int, query: str) -> Tuple[str, CharacterReference]:
        """Validate a render request, returning the bound uid and character."""
        uid = self._require_uid(user_id)
        return uid, self.resolve(query)

    async def render(self, uid: str, character: CharacterReference, locale: str) -> RenderResult:
        return await self.renderer.render(uid, character, locale)

    async def view(self, user_id: int, query: str, locale: str) -> RenderResult:
        uid, character = self.prepare_view(user_id, query)
        return await self.render(uid, character, locale)

    async def snapshot(self, user_id: int, *, refresh: bool = False) -> ProfileSnapshot:
        uid = self._require_uid(user_id)
        return await self.profiles.get_or_refresh(uid, force=refresh)

    async def roster(self, user_id: int, locale: str, *, refresh: bool = False) -> str:
        snapshot = await self.snapshot(user_id, refresh=refresh)
        return format_roster(snapshot, self.index, locale)

    def register_alias(self, character_id: CharacterId, alias: str) -> str:
        if not self.ready:
            raise FeatureNotReadyError()
        cleaned = self.index.validate_alias(str(character_id), alias)
        state.add_alias(str(character_id), cleaned)
        self.index.rebuild(self.index.reference, state.registered_aliases)
        logger.info("Alias '%s' registered for character %s", cleaned, character_id)
        return cleaned

    def known_names(self, query: str) -> Tuple[CharacterReference, Tuple[str, ...]]:
        character = self.resolve(query)
        return character, self.index.names_for(character.character_id)

    async def close(self) -> None:
        await self.renderer.close()
        close = getattr(self._page_factory, "close", None)
        if close is not None:
            await close()


__all__ = [
    "AccountNotBoundError",
    "FeatureNotReadyError",
    "InvalidUidError",
    "ShowcaseService",
    "UnknownCharacterError",
]
