"""Webhook payload rendering (Discord-compatible embeds)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Sequence

import structlog

from ..models import Item

BOT_NAME = "Daily News Bot"
MAX_ITEM_EMBEDS = 9
MAX_KEYWORDS_SHOWN = 10
TITLE_LIMIT = 256
DESCRIPTION_LIMIT = 2048
FIELD_LIMIT = 1024
ERROR_LIMIT = 1000
BILINGUAL_TITLE_LIMIT = 120
BILINGUAL_DESCRIPTION_LIMIT = 100

COLOR_SUMMARY = 0x5865F2
COLOR_ITEM = 0x00D9FF
COLOR_EMPTY = 0xFEE75C
COLOR_ERROR = 0xED4245

Translator = Callable[[str], str]


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def latin_ratio(text: str) -> float:
    """Share of non-whitespace characters that are ASCII letters."""

    visible = [ch for ch in text if not ch.isspace()]
    if not visible:
        return 0.0
    letters = sum(1 for ch in visible if ch.isascii() and ch.isalpha())
    return letters / len(visible)


@dataclass(slots=True, frozen=True)
class LatinScriptPolicy:
    """Decide whether text is predominantly Latin script and worth translating."""

    threshold: float = 0.6

    def __call__(self, text: str) -> bool:
        return latin_ratio(text) > self.threshold


def is_mostly_latin(text: str, threshold: float = 0.6) -> bool:
    return LatinScriptPolicy(threshold)(text)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _keyword_list(keywords: Sequence[str], cap: int | None = None) -> str:
    if not keywords:
        return "none"
    shown = keywords if cap is None else keywords[:cap]
    text = ", ".join(f"`{keyword}`" for keyword in shown)
    if cap is not None and len(keywords) > cap:
        text += f" ...+{len(keywords) - cap} more"
    return text


class MessageFormatter:
    """Build summary, empty-run and error payloads."""

    def __init__(
        self,
        username: str = BOT_NAME,
        translator: Translator | None = None,
        language_policy: Callable[[str], bool] | None = None,
        logger: structlog.BoundLogger | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.username = username
        self.translator = translator
        self.language_policy = language_policy or LatinScriptPolicy()
        self.logger = logger or structlog.get_logger("newsrelay.formatter")
        self.clock = clock

    # ------------------------------------------------------------------
    def format_items(self, items: Sequence[Item], keywords: Sequence[str]) -> dict:
        embeds = [self._summary_embed(items, keywords)]
        embeds.extend(self._item_embed(item) for item in items[:MAX_ITEM_EMBEDS])
        return {
            "content": f"\U0001F4F0 **Daily News** - {len(items)} new item(s)",
            "embeds": embeds,
            "username": self.username,
        }

    def format_no_items(self, keywords: Sequence[str]) -> dict:
        embed = {
            "title": "\U0001F4F0 Daily News",
            "description": "No new items today.",
            "color": COLOR_EMPTY,
            "fields": [
                {
                    "name": "Keywords",
                    "value": truncate(_keyword_list(keywords), FIELD_LIMIT),
                    "inline": False,
                }
            ],
            "timestamp": self.clock().isoformat(),
            "footer": {"text": self.username},
        }
        return {"content": "\U0001F4F0 **Daily News**", "embeds": [embed], "username": self.username}

    def format_error(self, message: str) -> dict:
        embed = {
            "title": "⚠️ Run failed",
            "description": "An error occurred while relaying news.",
            "color": COLOR_ERROR,
            "fields": [
                {
                    "name": "Error",
                    "value": f"```\n{truncate(message, ERROR_LIMIT)}\n```",
                    "inline": False,
                }
            ],
            "timestamp": self.clock().isoformat(),
            "footer": {"text": self.username},
        }
        return {"content": "⚠️ **Error notice**", "embeds": [embed], "username": self.username}

    # ------------------------------------------------------------------
    def _summary_embed(self, items: Sequence[Item], keywords: Sequence[str]) -> dict:
        return {
            "title": "\U0001F4CA Summary",
            "description": "Today's new items.",
            "color": COLOR_SUMMARY,
            "fields": [
                {"name": "Items", "value": str(len(items)), "inline": True},
                {
                    "name": "Keywords",
                    "value": truncate(_keyword_list(keywords, MAX_KEYWORDS_SHOWN), FIELD_LIMIT),
                    "inline": False,
                },
            ],
            "timestamp": self.clock().isoformat(),
            "footer": {"text": self.username},
        }

    def _item_embed(self, item: Item) -> dict:
        title = item.title
        description = item.description or "No description"
        translated = self._translate_pair(item)
        if translated is not None:
            title, description = translated
        return {
            "title": truncate(title, TITLE_LIMIT),
            "description": truncate(description, DESCRIPTION_LIMIT),
            "url": item.url,
            "color": COLOR_ITEM,
            "fields": [
                {"name": "Feed", "value": item.source_name, "inline": True},
                {
                    "name": "Published",
                    "value": item.published_at.strftime("%Y-%m-%d %H:%M"),
                    "inline": True,
                },
            ],
            "timestamp": item.published_at.isoformat(),
        }

    def _translate_pair(self, item: Item) -> tuple[str, str] | None:
        if self.translator is None or not self.language_policy(item.title):
            return None
        try:
            translated_title = self.translator(item.title)
            translated_desc = self.translator(item.description) if item.description else None
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("translation_failed", title=item.title, error=str(exc))
            return None
        title = (
            f"{truncate(item.title, BILINGUAL_TITLE_LIMIT)}\n"
            f"{truncate(translated_title, BILINGUAL_TITLE_LIMIT)}"
        )
        description = item.description or "No description"
        if translated_desc:
            description = (
                f"{truncate(item.description, BILINGUAL_DESCRIPTION_LIMIT)}\n---\n"
                f"{truncate(translated_desc, BILINGUAL_DESCRIPTION_LIMIT)}"
            )
        return title, description


__all__ = [
    "LatinScriptPolicy",
    "MessageFormatter",
    "Translator",
    "is_mostly_latin",
    "latin_ratio",
    "truncate",
]
