"""
Emoji Resolution Cache

Resolves Slack emoji names to something renderable (a Unicode string or a
custom emoji image URL) across every known workspace.

Lookup order, first hit wins:
1. Strip colons and collapse `::skin-tone-N` to the base name
2. Current workspace's custom emoji
3. Standard Unicode table
4. Other workspaces' custom emoji
5. Hyphen/underscore swapped names, then the configured naming variations,
   each checked against 2-4
6. Substring match against custom emoji only (lower-confidence tier)

Custom emoji are fetched on first use per workspace and refreshed in the
background once older than the TTL. Lookups never wait for a fetch and
never raise; a miss returns None.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, Optional

from app.config import DEFAULT_NAME_VARIATIONS, NameVariation
from app.integrations.slack.parser import TextSegment, normalize_emoji_name, parse_emoji_text
from app.models.emoji import EmojiData, MatchTier, RenderableEmoji
from app.services.standard_emoji import standard_emoji_table

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_RETRY_INTERVAL_SECONDS = 5 * 60
ALIAS_PREFIX = "alias:"

EmojiListFetcher = Callable[[str], Awaitable[Mapping[str, str]]]


@dataclass(frozen=True)
class EmojiEntry:
    name: str
    emoji: RenderableEmoji
    is_custom: bool


def process_emoji_list(raw: Mapping[str, str], standard: Mapping[str, str]) -> Dict[str, str]:
    """
    Turn a raw emoji.list payload into a name -> value map.

    `alias:<target>` entries take the target's URL, or its Unicode value when
    the target is a standard emoji. Aliases that resolve to neither are dropped.
    """
    custom: Dict[str, str] = {}
    aliases: Dict[str, str] = {}

    for name, value in raw.items():
        if value.startswith(ALIAS_PREFIX):
            aliases[name] = value[len(ALIAS_PREFIX):]
        elif value.startswith("http"):
            custom[name] = value

    resolved = 0
    for alias, target in aliases.items():
        if target in custom:
            custom[alias] = custom[target]
        elif target in standard:
            custom[alias] = standard[target]
        else:
            logger.debug(f"Dropping alias {alias!r} to unknown emoji {target!r}")
            continue
        resolved += 1

    logger.debug(f"Processed emoji list: {len(custom) - resolved} custom, {resolved}/{len(aliases)} aliases resolved")
    return custom


def apply_variation(name: str, variation: NameVariation) -> Optional[str]:
    """Rewrite a name with one variation rule; None when the rule does not apply."""
    if variation.kind == "suffix":
        if not variation.old:
            return name + variation.new
        if name.endswith(variation.old) and len(name) > len(variation.old):
            return name[: -len(variation.old)] + variation.new
    elif variation.kind == "prefix":
        if not variation.old:
            return variation.new + name
        if name.startswith(variation.old) and len(name) > len(variation.old):
            return variation.new + name[len(variation.old):]
    elif variation.kind == "remove":
        if variation.old and variation.old in name:
            return name.replace(variation.old, variation.new)
    return None


def _as_renderable(value: str, tier: MatchTier) -> RenderableEmoji:
    if value.startswith(("http://", "https://")):
        return RenderableEmoji.image_url(value, tier)
    return RenderableEmoji.unicode(value, tier)


class EmojiCache:
    """Per-workspace custom emoji plus the shared standard table."""

    def __init__(
        self,
        fetch_emoji_list: EmojiListFetcher,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        name_variations: Optional[Iterable[NameVariation]] = None,
        partial_match_enabled: bool = True,
        partial_match_min_length: int = 3,
        retry_interval_seconds: float = DEFAULT_RETRY_INTERVAL_SECONDS,
        standard: Optional[Mapping[str, str]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._fetch_emoji_list = fetch_emoji_list
        self.ttl_seconds = ttl_seconds
        self.name_variations: List[NameVariation] = list(
            DEFAULT_NAME_VARIATIONS if name_variations is None else name_variations
        )
        self.partial_match_enabled = partial_match_enabled
        self.partial_match_min_length = partial_match_min_length
        self.retry_interval_seconds = retry_interval_seconds
        self._standard = standard if standard is not None else standard_emoji_table()
        self._clock = clock

        # Values are replaced wholesale, never mutated
        self._data: Dict[str, EmojiData] = {}
        self._last_attempt: Dict[str, float] = {}
        self._refreshing: Dict[str, asyncio.Task] = {}

    @property
    def standard(self) -> Mapping[str, str]:
        return self._standard

    def known_workspaces(self) -> List[str]:
        return list(self._data)

    def get_data(self, workspace_id: str) -> Optional[EmojiData]:
        return self._data.get(workspace_id)

    def is_stale(self, workspace_id: str) -> bool:
        data = self._data.get(workspace_id)
        if data is None or data.last_fetched is None:
            return True
        return self._clock() - data.last_fetched >= self.ttl_seconds

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(
        self, workspace_id: str, raw_emoji: Mapping[str, str], fetched_at: Optional[float] = None
    ) -> EmojiData:
        """Replace a workspace's custom emoji with a raw emoji.list payload."""
        custom = process_emoji_list(raw_emoji, self._standard)
        data = EmojiData.build(
            custom, self._standard, self._clock() if fetched_at is None else fetched_at
        )
        self._data[workspace_id] = data
        logger.info(f"Loaded {len(custom)} custom emojis for workspace {workspace_id}")
        return data

    async def refresh(self, workspace_id: str) -> Optional[EmojiData]:
        """
        Fetch and load a workspace's custom emoji.

        On failure the previous data (if any) is kept and returned; this
        method does not raise.
        """
        self._last_attempt[workspace_id] = self._clock()
        try:
            raw = await self._fetch_emoji_list(workspace_id)
        except Exception as e:
            logger.error(f"Failed to fetch emoji list for workspace {workspace_id}: {e}")
            return self._data.get(workspace_id)
        return self.load(workspace_id, raw)

    def schedule_refresh(self, workspace_id: str) -> Optional[asyncio.Task]:
        """Start a background refresh unless one is already running."""
        running = self._refreshing.get(workspace_id)
        if running is not None and not running.done():
            return running

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, skipping emoji refresh for {workspace_id}")
            return None

        task = loop.create_task(self.refresh(workspace_id))
        self._refreshing[workspace_id] = task
        task.add_done_callback(lambda _: self._refreshing.pop(workspace_id, None))
        return task

    def _ensure_fresh(self, workspace_id: str) -> None:
        if not self.is_stale(workspace_id):
            return
        last_attempt = self._last_attempt.get(workspace_id)
        if last_attempt is not None and self._clock() - last_attempt < self.retry_interval_seconds:
            return
        logger.debug(f"Emoji data for {workspace_id} missing or stale, refreshing in background")
        self.schedule_refresh(workspace_id)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, name: str, workspace_id: str) -> Optional[RenderableEmoji]:
        """Resolve an emoji name for a workspace. Returns None when nothing matches."""
        try:
            clean = normalize_emoji_name(name)
            if not clean:
                return None

            self._ensure_fresh(workspace_id)

            snapshot = dict(self._data)
            current = snapshot.get(workspace_id)
            others = [data for ws, data in snapshot.items() if ws != workspace_id]

            found = self._lookup(clean, current, others, MatchTier.EXACT)
            if found is not None:
                return found

            for variant in self._variants(clean):
                found = self._lookup(variant, current, others, MatchTier.VARIANT)
                if found is not None:
                    logger.debug(f"Resolved emoji {clean!r} as variant {variant!r}")
                    return found

            if self.partial_match_enabled:
                return self._partial_match(clean, current, others)
            return None

        except Exception:
            logger.exception(f"Emoji resolution failed for {name!r}")
            return None

    def parse_text(self, text: str, workspace_id: str) -> List[TextSegment]:
        return parse_emoji_text(text, lambda name: self.resolve(name, workspace_id))

    def _lookup(
        self,
        name: str,
        current: Optional[EmojiData],
        others: List[EmojiData],
        tier: MatchTier,
    ) -> Optional[RenderableEmoji]:
        if current is not None and name in current.custom:
            return _as_renderable(current.custom[name], tier)
        if name in self._standard:
            return RenderableEmoji.unicode(self._standard[name], tier)
        for data in others:
            if name in data.custom:
                return _as_renderable(data.custom[name], tier)
        return None

    def _variants(self, name: str) -> List[str]:
        candidates: List[str] = []
        if "-" in name:
            candidates.append(name.replace("-", "_"))
        if "_" in name:
            candidates.append(name.replace("_", "-"))
        for variation in self.name_variations:
            variant = apply_variation(name, variation)
            if variant:
                candidates.append(variant)

        seen = {name}
        variants = []
        for candidate in candidates:
            if candidate not in seen:
                seen.add(candidate)
                variants.append(candidate)
        return variants

    def _partial_match(
        self, name: str, current: Optional[EmojiData], others: List[EmojiData]
    ) -> Optional[RenderableEmoji]:
        if len(name) < self.partial_match_min_length:
            return None

        sources = ([current] if current is not None else []) + others
        for data in sources:
            candidates = [
                key for key in data.custom
                if len(key) >= self.partial_match_min_length and (name in key or key in name)
            ]
            if candidates:
                key = min(candidates, key=lambda k: (len(k), k))
                logger.debug(f"Partial match for emoji {name!r}: {key!r}")
                return _as_renderable(data.custom[key], MatchTier.PARTIAL)
        return None

    # ------------------------------------------------------------------
    # Picker support
    # ------------------------------------------------------------------

    def all_emojis(self, workspace_id: str) -> List[EmojiEntry]:
        """Custom emoji for the workspace followed by the standard table."""
        entries: List[EmojiEntry] = []
        data = self._data.get(workspace_id)
        if data is not None:
            for name, value in data.custom.items():
                entries.append(EmojiEntry(name, _as_renderable(value, MatchTier.EXACT), True))
        for name, value in self._standard.items():
            entries.append(EmojiEntry(name, RenderableEmoji.unicode(value), False))
        return entries

    def search(self, query: str, workspace_id: str, limit: int = 50) -> List[EmojiEntry]:
        """Case-insensitive substring search; exact names first, then shorter names."""
        needle = normalize_emoji_name(query).lower()
        if not needle:
            return []

        matches = [e for e in self.all_emojis(workspace_id) if needle in e.name.lower()]
        matches.sort(key=lambda e: (e.name.lower() != needle, len(e.name), not e.is_custom, e.name))
        return matches[:limit]
