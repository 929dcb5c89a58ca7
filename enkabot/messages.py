"""User-facing message catalogue."""

from __future__ import annotations

import logging
from typing import Dict

logger = logging.getLogger("enkabot.messages")

DEFAULT_LOCALE = "en"

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "bind_first": "Bind your account first with `{prefix}enka uid <uid>`.",
        "unknown_character": "No character matches \"{query}\".",
        "working": "Hang tight, opening the showcase...",
        "not_in_showcase": "{character} isn't on this player's public showcase.",
        "render_failed": "Unable to view that showcase right now.",
        "not_ready": "Character data isn't loaded yet. Ask an admin to run `{prefix}enka upgrade`.",
        "uid_saved": "Saved your uid ({uid}).",
        "uid_current": "Your bound uid is {uid}.",
        "uid_none": "You haven't bound a uid yet.",
        "uid_invalid": "\"{uid}\" is not a valid uid.",
        "upgrade_started": "Refreshing character reference data...",
        "upgrade_done": "Reference data updated: {count} characters.",
        "upgrade_failed": "Reference data refresh failed. Check the bot logs.",
        "alias_added": "Registered alias \"{alias}\" for {character} ({character_id}).",
        "alias_rejected": "Alias rejected: {reason}",
        "aliases_list": "Known names for {character} ({character_id}): {names}",
        "profile_failed": "Couldn't fetch the profile: {reason}",
        "roster_header": "**{nickname}** (uid {uid})\nAdventure Rank {level} | World Level {world_level}",
        "roster_signature": "> {signature}",
        "roster_line": "- {name} Lv.{level}",
        "roster_empty": "No characters are on display.",
        "no_permission": "You lack permission to run this command.",
    },
    "zh-CN": {
        "bind_first": "请先使用 `{prefix}enka uid <uid>` 绑定账号。",
        "unknown_character": "不存在该角色：{query}",
        "working": "别急，准备开查了！",
        "not_in_showcase": "没有在玩家的角色展柜中找到{character}。",
        "render_failed": "无法查看。",
        "not_ready": "角色数据尚未加载，请管理员执行 `{prefix}enka upgrade`。",
        "uid_saved": "已保存你的 uid({uid})",
        "uid_current": "你绑定的 uid 是 {uid}。",
        "uid_none": "你还没有绑定 uid。",
        "uid_invalid": "\"{uid}\"不是一个正确的uid",
        "upgrade_started": "正在更新角色数据……",
        "upgrade_done": "角色数据已更新，共 {count} 个角色。",
        "upgrade_failed": "角色数据更新失败，请查看日志。",
        "alias_added": "已为 {character}({character_id}) 添加别名“{alias}”。",
        "alias_rejected": "别名添加失败：{reason}",
        "aliases_list": "{character}({character_id}) 的名称：{names}",
        "profile_failed": "无法获取玩家信息：{reason}",
        "roster_header": "**{nickname}** (uid {uid})\n冒险等级 {level} | 世界等级 {world_level}",
        "roster_signature": "> {signature}",
        "roster_line": "- {name} Lv.{level}",
        "roster_empty": "角色展柜为空。",
        "no_permission": "你没有权限执行该指令。",
    },
}

SUPPORTED_LOCALES = tuple(MESSAGES)


def message(key: str, locale: str = DEFAULT_LOCALE, **fields: object) -> str:
    """Return the localized message for key, falling back to English."""
    table = MESSAGES.get(locale) or MESSAGES[DEFAULT_LOCALE]
    template = table.get(key) or MESSAGES[DEFAULT_LOCALE].get(key)
    if template is None:
        logger.warning("Missing message key %s", key)
        return key
    try:
        return template.format(**fields)
    except KeyError as exc:
        logger.warning("Message %s missing field %s", key, exc)
        return template


__all__ = ["DEFAULT_LOCALE", "MESSAGES", "SUPPORTED_LOCALES", "message"]
