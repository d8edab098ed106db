# Slack integration module
from app.integrations.slack.client import SlackClient, SlackWorkspaces
from app.integrations.slack.parser import TextSegment, normalize_emoji_name, parse_emoji_text

__all__ = ["SlackClient", "SlackWorkspaces", "TextSegment", "normalize_emoji_name", "parse_emoji_text"]
