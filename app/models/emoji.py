"""
Emoji Models

Per-workspace emoji data and the renderable result of a name lookup.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class EmojiKind(str, Enum):
    """How a resolved emoji should be rendered."""

    UNICODE = "unicode"
    IMAGE_URL = "image_url"


class MatchTier(str, Enum):
    """Confidence of a resolution."""

    EXACT = "exact"  # Name (after colon/skin-tone cleanup) matched as-is
    VARIANT = "variant"  # Matched through a naming-convention rewrite
    PARTIAL = "partial"  # Substring match against custom emoji only


@dataclass(frozen=True)
class RenderableEmoji:
    kind: EmojiKind
    value: str
    tier: MatchTier = MatchTier.EXACT

    @classmethod
    def unicode(cls, value: str, tier: MatchTier = MatchTier.EXACT) -> "RenderableEmoji":
        return cls(EmojiKind.UNICODE, value, tier)

    @classmethod
    def image_url(cls, value: str, tier: MatchTier = MatchTier.EXACT) -> "RenderableEmoji":
        return cls(EmojiKind.IMAGE_URL, value, tier)

    @property
    def is_image(self) -> bool:
        return self.kind is EmojiKind.IMAGE_URL


@dataclass(frozen=True)
class EmojiData:
    """Immutable emoji snapshot for one workspace. Refreshes swap the whole object."""

    custom: Mapping[str, str]
    standard: Mapping[str, str]
    last_fetched: Optional[float] = None

    @classmethod
    def build(
        cls,
        custom: Mapping[str, str],
        standard: Mapping[str, str],
        last_fetched: Optional[float] = None,
    ) -> "EmojiData":
        return cls(MappingProxyType(dict(custom)), standard, last_fetched)
