"""Discord commands for viewing enka.network showcases."""

from __future__ import annotations

import io
import logging
from typing import Optional, Tuple

import discord
from discord.ext import commands

from . import state
from .character_lookup import AliasIndex, AliasRegistrationError
from .config import Settings
from .messages import message
from .models import RenderOutcome
from .profiles import ProfileFetchError, ProfileSnapshotCache
from .reference_data import ReferenceDataError, ReferenceDataSynchronizer
from .render_cache import RenderCache
from .service import (
    AccountNotBoundError,
    FeatureNotReadyError,
    InvalidUidError,
    ShowcaseService,
    UnknownCharacterError,
)
from .showcase import PAGE_LOCALE_LABELS, ChromiumPageFactory, SharedPage, ShowcaseRenderer
from .utils import is_admin, normalize_locale

logger = logging.getLogger("enkabot.cog")

REFRESH_FLAGS = {"-r", "--refresh"}


def split_refresh_flag(raw: str) -> Tuple[str, bool]:
    """Strip the refresh flag from a command argument string."""
    tokens = (raw or "").split()
    refresh = any(token.lower() in REFRESH_FLAGS for token in tokens)
    remaining = [token for token in tokens if token.lower() not in REFRESH_FLAGS]
    return " ".join(remaining), refresh


def create_service(settings: Settings) -> ShowcaseService:
    page_factory = ChromiumPageFactory(headless=settings.headless)
    renderer = ShowcaseRenderer(
        SharedPage(page_factory),
        RenderCache(),
        page_base_url=settings.page_base_url,
        watermark=settings.watermark,
        cache_ttl_ms=settings.cache_max_age_ms,
        navigation_timeout_ms=settings.navigation_timeout_ms,
        capture_timeout=settings.capture_timeout,
    )
    synchronizer = ReferenceDataSynchronizer(
        names_file=settings.names_file,
        characters_file=settings.characters_file,
        data_source=settings.data_source,
    )
    return ShowcaseService(
        synchronizer=synchronizer,
        index=AliasIndex(),
        renderer=renderer,
        profiles=ProfileSnapshotCache(api_base_url=settings.api_base_url),
        page_factory=page_factory,
    )


class ShowcaseCog(commands.Cog):
    """Character card rendering, roster listing and account binding."""

    def __init__(self, bot: commands.Bot, service: ShowcaseService, *, settings: Settings):
        self.bot = bot
        self.service = service
        self.settings = settings

    async def cog_load(self) -> None:
        try:
            count = await self.service.bootstrap()
        except ReferenceDataError as exc:
            logger.critical("Showcase commands disabled, reference data unavailable: %s", exc)
            return
        logger.info("Showcase commands ready with %s characters", count)

    async def cog_unload(self) -> None:
        await self.service.close()

    def _locale(self, ctx: commands.Context) -> str:
        guild = ctx.guild
        preferred = getattr(guild, "preferred_locale", None) if guild else None
        raw = getattr(preferred, "value", preferred)
        return normalize_locale(raw, PAGE_LOCALE_LABELS, self.settings.default_locale)

    def _prefix(self, ctx: commands.Context) -> str:
        return ctx.clean_prefix or "!"

    @commands.group(name="enka", invoke_without_command=True)
    async def enka_command(self, ctx: commands.Context, *, query: str = ""):
        locale = self._locale(ctx)
        name, refresh = split_refresh_flag(query)
        if not name:
            await self._send_roster(ctx, locale, refresh=refresh)
            return
        await self._send_card(ctx, name, locale)

    async def _send_roster(self, ctx: commands.Context, locale: str, *, refresh: bool) -> None:
        try:
            text = await self.service.roster(ctx.author.id, locale, refresh=refresh)
        except AccountNotBoundError:
            await ctx.reply(message("bind_first", locale, prefix=self._prefix(ctx)), mention_author=False)
            return
        except ProfileFetchError as exc:
            await ctx.reply(message("profile_failed", locale, reason=exc), mention_author=False)
            return
        await ctx.reply(text, mention_author=False, allowed_mentions=discord.AllowedMentions.none())

    async def _send_card(self, ctx: commands.Context, name: str, locale: str) -> None:
        prefix = self._prefix(ctx)
        try:
            uid, character = self.service.prepare_view(ctx.author.id, name)
        except AccountNotBoundError:
            await ctx.reply(message("bind_first", locale, prefix=prefix), mention_author=False)
            return
        except FeatureNotReadyError:
            await ctx.reply(message("not_ready", locale, prefix=prefix), mention_author=False)
            return
        except UnknownCharacterError:
            await ctx.reply(message("unknown_character", locale, query=name), mention_author=False)
            return

        await ctx.reply(message("working", locale), mention_author=False)
        result = await self.service.render(uid, character, locale)
        display = character.display_name(locale)
        if result.outcome is RenderOutcome.NOT_IN_SHOWCASE:
            await ctx.reply(message("not_in_showcase", locale, character=display), mention_author=False)
            return
        if result.image is None:
            await ctx.reply(message("render_failed", locale), mention_author=False)
            return
        filename = f"enka-{uid}-{character.character_id}.png"
        try:
            await ctx.reply(file=discord.File(io.BytesIO(result.image), filename=filename), mention_author=False)
        except discord.HTTPException as exc:
            logger.warning("Failed to send showcase card %s: %s", filename, exc)

    @enka_command.command(name="uid")
    async def uid_command(self, ctx: commands.Context, uid: Optional[str] = None):
        locale = self._locale(ctx)
        if not uid:
            current = self.service.bound_uid(ctx.author.id)
            key = "uid_current" if current else "uid_none"
            await ctx.reply(message(key, locale, uid=current), mention_author=False)
            return
        try:
            saved = self.service.bind(ctx.author.id, uid)
        except InvalidUidError as exc:
            await ctx.reply(message("uid_invalid", locale, uid=exc.uid), mention_author=False)
            return
        await ctx.reply(message("uid_saved", locale, uid=saved), mention_author=False)

    @enka_command.command(name="upgrade")
    async def upgrade_command(self, ctx: commands.Context):
        locale = self._locale(ctx)
        if not is_admin(ctx.author):
            await ctx.reply(message("no_permission", locale), mention_author=False)
            return
        await ctx.reply(message("upgrade_started", locale), mention_author=False)
        try:
            count = await self.service.upgrade()
        except ReferenceDataError as exc:
            logger.error("Reference data upgrade requested by %s failed: %s", ctx.author.id, exc)
            await ctx.reply(message("upgrade_failed", locale), mention_author=False)
            return
        logger.info("Reference data upgraded by %s (%s): %s characters", ctx.author, ctx.author.id, count)
        await ctx.reply(message("upgrade_done", locale, count=count), mention_author=False)

    @enka_command.command(name="alias")
    async def alias_command(self, ctx: commands.Context, character: str, *, alias: str):
        locale = self._locale(ctx)
        prefix = self._prefix(ctx)
        try:
            character_id = character if character.isdigit() else self.service.resolve(character).character_id
            cleaned = self.service.register_alias(character_id, alias)
        except FeatureNotReadyError:
            await ctx.reply(message("not_ready", locale, prefix=prefix), mention_author=False)
            return
        except UnknownCharacterError:
            await ctx.reply(message("unknown_character", locale, query=character), mention_author=False)
            return
        except AliasRegistrationError as exc:
            await ctx.reply(message("alias_rejected", locale, reason=exc), mention_author=False)
            return
        await ctx.reply(
            message(
                "alias_added",
                locale,
                alias=cleaned,
                character=self.service.index.display_name(character_id, locale),
                character_id=character_id,
            ),
            mention_author=False,
        )

    @enka_command.command(name="aliases")
    async def aliases_command(self, ctx: commands.Context, *, character: str):
        locale = self._locale(ctx)
        try:
            reference, names = self.service.known_names(character)
        except FeatureNotReadyError:
            await ctx.reply(message("not_ready", locale, prefix=self._prefix(ctx)), mention_author=False)
            return
        except UnknownCharacterError:
            await ctx.reply(message("unknown_character", locale, query=character), mention_author=False)
            return
        await ctx.reply(
            message(
                "aliases_list",
                locale,
                character=reference.display_name(locale),
                character_id=reference.character_id,
                names=", ".join(names),
            ),
            mention_author=False,
        )


async def add_showcase_cog(bot: commands.Bot, settings: Settings) -> ShowcaseCog:
    state.configure_state(users_file=settings.users_file, aliases_file=settings.aliases_file)
    state.restore_state()
    cog = ShowcaseCog(bot, create_service(settings), settings=settings)
    await bot.add_cog(cog)
    logger.info("Showcase cog enabled (data dir %s)", settings.data_dir)
    return cog


__all__ = ["ShowcaseCog", "add_showcase_cog", "create_service", "split_refresh_flag"]
