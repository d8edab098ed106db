"""
Slack Emoji Shortcode Parser

Normalizes emoji names as Slack sends them and splits message text on
`:shortcode:` tokens.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional

from app.models.emoji import RenderableEmoji

# thumbsup::skin-tone-2 / thumbsup::skin-tone-2:
SKIN_TONE_PATTERN = re.compile(r"^(?P<base>.+?)::skin-tone-\d:?$")

# :name: or :name::skin-tone-N:
SHORTCODE_PATTERN = re.compile(r":([a-zA-Z0-9_+'\-]+(?:::skin-tone-\d)?):")


@dataclass
class TextSegment:
    """A run of plain text or one resolved emoji."""

    type: str  # "text" or "emoji"
    content: str  # Original text, including colons for emoji tokens
    emoji: Optional[RenderableEmoji] = None


def normalize_emoji_name(name: str) -> str:
    """
    Strip colon delimiters and collapse any skin-tone suffix to the base name.

    Examples:
        ":tea:"                  -> "tea"
        "thumbsup::skin-tone-2"  -> "thumbsup"
        ":wave::skin-tone-5:"    -> "wave"
    """
    clean = name.strip()
    if clean.startswith(":"):
        clean = clean[1:]

    match = SKIN_TONE_PATTERN.match(clean)
    if match:
        return match.group("base")

    if clean.endswith(":"):
        clean = clean[:-1]
    return clean


def parse_emoji_text(
    text: str, resolver: Callable[[str], Optional[RenderableEmoji]]
) -> List[TextSegment]:
    """
    Split text into text and emoji segments.

    Tokens the resolver cannot resolve are kept as text so the raw
    shortcode still renders.
    """
    segments: List[TextSegment] = []
    last_index = 0

    for match in SHORTCODE_PATTERN.finditer(text):
        if match.start() > last_index:
            segments.append(TextSegment(type="text", content=text[last_index:match.start()]))

        resolved = resolver(match.group(1))
        if resolved is not None:
            segments.append(TextSegment(type="emoji", content=match.group(0), emoji=resolved))
        else:
            segments.append(TextSegment(type="text", content=match.group(0)))

        last_index = match.end()

    if last_index < len(text):
        segments.append(TextSegment(type="text", content=text[last_index:]))

    return segments
