"""EnkaBot package providing showcase rendering, lookups and state."""

from . import character_lookup, config, messages, models, profiles, reference_data, render_cache, service, showcase, state, utils  # noqa: F401

__all__ = [
    "character_lookup",
    "config",
    "messages",
    "models",
    "profiles",
    "reference_data",
    "render_cache",
    "service",
    "showcase",
    "state",
    "utils",
]
