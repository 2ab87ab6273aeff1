# src/testrelay/telemetry/logger/processors.py

"""
Custom structlog processors used by the testrelay logging setup.
"""

import logging
from typing import Any

from structlog.typing import EventDict, WrappedLogger

LOG_EMOJIS: dict[int | str, str] = {
    logging.DEBUG: "🐛",
    logging.INFO: "ℹ️",
    logging.WARNING: "⚠️",
    logging.ERROR: "❌",
    logging.CRITICAL: "💥",
    "server": "🔌",
    "spawn": "🚀",
    "result": "🧪",
    "cancel": "🛑",
    "config": "📄",
    "interpreter": "🐍",
    "general": "➡️",
}


def add_emoji_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Prefixes the event with an emoji chosen by `emoji_key` or by level."""
    emoji_key: Any = event_dict.get("emoji_key")
    if emoji_key is None:
        emoji_key = logging.getLevelName(method_name.upper())
    emoji = LOG_EMOJIS.get(emoji_key, LOG_EMOJIS["general"])
    event = event_dict.get("event")
    if isinstance(event, str) and not event.startswith(emoji):
        event_dict["event"] = f"{emoji} {event}"
    return event_dict


def remove_extra_keys_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Drops bookkeeping keys that are only meaningful to other processors."""
    event_dict.pop("emoji_key", None)
    return event_dict


# 🔼⚙️
