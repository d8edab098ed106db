"""
Standard Emoji Table

Workspace-independent name -> Unicode mapping. Slack's own short names are
layered over the GitHub-style aliases and CLDR names shipped with the
`emoji` package. Built once per process and shared read-only.
"""

import logging
import re
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, Mapping

import emoji

logger = logging.getLogger(__name__)

SKIN_TONE_MODIFIERS = frozenset(chr(cp) for cp in range(0x1F3FB, 0x1F400))

VALID_NAME = re.compile(r"^[a-z0-9_+\-]+$")

# Slack short names that differ from (or are missing in) the emoji package.
SLACK_NAMES: Dict[str, str] = {
    "+1": "👍",
    "thumbsup": "👍",
    "-1": "👎",
    "thumbsdown": "👎",
    "heart": "❤️",
    "eyes": "👀",
    "raised_hands": "🙌",
    "clap": "👏",
    "wave": "👋",
    "ok_hand": "👌",
    "pray": "🙏",
    "fire": "🔥",
    "tada": "🎉",
    "rocket": "🚀",
    "white_check_mark": "✅",
    "heavy_check_mark": "✔️",
    "x": "❌",
    "joy": "😂",
    "smile": "😄",
    "slightly_smiling_face": "🙂",
    "sweat_smile": "😅",
    "laughing": "😆",
    "wink": "😉",
    "heart_eyes": "😍",
    "sob": "😭",
    "thinking_face": "🤔",
    "confused": "😕",
    "neutral_face": "😐",
    "expressionless": "😑",
    "no_mouth": "😶",
    "face_with_rolling_eyes": "🙄",
    "rolling_eyes": "🙄",
    "grimacing": "😬",
    "relieved": "😌",
    "pensive": "😔",
    "sleepy": "😪",
    "sleeping": "😴",
    "mask": "😷",
    "face_with_thermometer": "🤒",
    "nauseated_face": "🤢",
    "exploding_head": "🤯",
    "partying_face": "🥳",
    "party": "🥳",
    "sunglasses": "😎",
    "nerd_face": "🤓",
    "face_with_monocle": "🧐",
    "monocle": "🧐",
    "worried": "😟",
    "slightly_frowning_face": "🙁",
    "white_frowning_face": "☹️",
    "hushed": "😯",
    "astonished": "😲",
    "flushed": "😳",
    "pleading_face": "🥺",
    "cry": "😢",
    "scream": "😱",
    "disappointed": "😞",
    "sweat": "😓",
    "weary": "😩",
    "tired_face": "😫",
    "yawning_face": "🥱",
    "triumph": "😤",
    "rage": "😡",
    "angry": "😠",
    "skull": "💀",
    "hankey": "💩",
    "poop": "💩",
    "shit": "💩",
    "clown_face": "🤡",
    "ghost": "👻",
    "alien": "👽",
    "robot_face": "🤖",
    "handshake": "🤝",
    "facepunch": "👊",
    "punch": "👊",
    "crossed_fingers": "🤞",
    "hand_with_index_and_middle_fingers_crossed": "🤞",
    "v": "✌️",
    "the_horns": "🤘",
    "sign_of_the_horns": "🤘",
    "metal": "🤘",
    "point_left": "👈",
    "point_right": "👉",
    "point_up_2": "👆",
    "point_down": "👇",
    "point_up": "☝️",
    "hand": "✋",
    "raised_hand": "✋",
    "raised_hand_with_fingers_splayed": "🖐️",
    "spock-hand": "🖖",
    "call_me_hand": "🤙",
    "muscle": "💪",
    "writing_hand": "✍️",
    "sparkles": "✨",
    "star": "⭐",
    "star2": "🌟",
    "zap": "⚡",
    "boom": "💥",
    "collision": "💥",
    "100": "💯",
    "memo": "📝",
    "pencil": "📝",
    "tea": "🍵",
    "coffee": "☕",
    "beers": "🍻",
    "beer": "🍺",
    "pizza": "🍕",
    "cake": "🍰",
    "birthday": "🎂",
    "gift": "🎁",
    "trophy": "🏆",
    "medal": "🏅",
    "bulb": "💡",
    "warning": "⚠️",
    "no_entry": "⛔",
    "no_entry_sign": "🚫",
    "question": "❓",
    "exclamation": "❗",
    "heavy_exclamation_mark": "❗",
    "bangbang": "‼️",
    "interrobang": "⁉️",
    "heavy_plus_sign": "➕",
    "heavy_minus_sign": "➖",
    "arrow_up": "⬆️",
    "arrow_down": "⬇️",
    "arrow_left": "⬅️",
    "arrow_right": "➡️",
    "repeat": "🔁",
    "hourglass": "⌛",
    "hourglass_flowing_sand": "⏳",
    "alarm_clock": "⏰",
    "calendar": "📆",
    "date": "📅",
    "email": "📧",
    "envelope": "✉️",
    "link": "🔗",
    "lock": "🔒",
    "unlock": "🔓",
    "key": "🔑",
    "mag": "🔍",
    "mag_right": "🔎",
    "bell": "🔔",
    "pushpin": "📌",
    "round_pushpin": "📍",
    "paperclip": "📎",
    "bookmark": "🔖",
    "books": "📚",
    "computer": "💻",
    "iphone": "📱",
    "chart_with_upwards_trend": "📈",
    "chart_with_downwards_trend": "📉",
    "bar_chart": "📊",
    "moneybag": "💰",
    "dollar": "💵",
    "bug": "🐛",
    "hammer_and_wrench": "🛠️",
    "wrench": "🔧",
    "gear": "⚙️",
    "construction": "🚧",
    "rotating_light": "🚨",
    "sun_with_face": "🌞",
    "sunny": "☀️",
    "cloud": "☁️",
    "umbrella": "☔",
    "snowflake": "❄️",
    "rainbow": "🌈",
    "ok": "🆗",
    "new": "🆕",
    "free": "🆓",
    "sos": "🆘",
    "red_circle": "🔴",
    "large_blue_circle": "🔵",
    "large_green_circle": "🟢",
    "white_circle": "⚪",
    "black_circle": "⚫",
    "heavy_heart_exclamation_mark_ornament": "❣️",
    "broken_heart": "💔",
    "yellow_heart": "💛",
    "green_heart": "💚",
    "blue_heart": "💙",
    "purple_heart": "💜",
    "black_heart": "🖤",
    "orange_heart": "🧡",
    "white_heart": "🤍",
    "sparkling_heart": "💖",
    "skin-tone-2": "🏻",
    "skin-tone-3": "🏼",
    "skin-tone-4": "🏽",
    "skin-tone-5": "🏾",
    "skin-tone-6": "🏿",
}


def _names_for(data: Mapping) -> list:
    names = list(data.get("alias", []))
    if data.get("en"):
        names.append(data["en"])
    return [n.strip(":").lower() for n in names]


@lru_cache
def standard_emoji_table() -> Mapping[str, str]:
    """Build the shared standard table. Slack names win over package names."""
    table: Dict[str, str] = dict(SLACK_NAMES)
    fully_qualified = emoji.STATUS["fully_qualified"]

    for char, data in emoji.EMOJI_DATA.items():
        if data.get("status") != fully_qualified:
            continue
        if any(c in SKIN_TONE_MODIFIERS for c in char):
            continue
        for name in _names_for(data):
            if VALID_NAME.match(name):
                table.setdefault(name, char)

    logger.info(f"Built standard emoji table with {len(table)} names")
    return MappingProxyType(table)
