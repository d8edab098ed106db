from pydantic_settings import BaseSettings
from pydantic import BaseModel, ConfigDict, Field
from functools import lru_cache
from typing import Dict, List, Literal


class NameVariation(BaseModel):
    """One emoji naming-convention rewrite tried as a last-resort lookup."""

    kind: Literal["suffix", "prefix", "remove"]
    old: str
    new: str = ""


DEFAULT_NAME_VARIATIONS: List[NameVariation] = [
    # Japanese romaji politeness suffixes
    NameVariation(kind="suffix", old="amadesu", new="ama"),
    NameVariation(kind="suffix", old="desu", new=""),
    NameVariation(kind="suffix", old="shimasu", new=""),
    # Numbered variants
    NameVariation(kind="suffix", old="", new="2"),
    NameVariation(kind="suffix", old="", new="1"),
    NameVariation(kind="suffix", old="2", new=""),
    NameVariation(kind="suffix", old="1", new=""),
    # Gendered variants
    NameVariation(kind="prefix", old="man-", new=""),
    NameVariation(kind="prefix", old="woman-", new=""),
    NameVariation(kind="prefix", old="male-", new=""),
    NameVariation(kind="prefix", old="female-", new=""),
    NameVariation(kind="suffix", old="_man", new=""),
    NameVariation(kind="suffix", old="_woman", new=""),
    # Separator-free spellings
    NameVariation(kind="remove", old="_"),
    NameVariation(kind="remove", old="-"),
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Slackdesk"
    debug: bool = False

    # Slack
    slack_bot_token: str = ""
    slack_default_workspace_id: str = "default"
    slack_workspace_tokens: Dict[str, str] = {}  # workspace_id -> token
    slack_timeout: int = 30  # Seconds per Web API call
    slack_rate_limit_retries: int = 2

    # Reaction loading
    reaction_batch_size: int = Field(50, ge=1)

    # Emoji cache
    emoji_cache_ttl_hours: float = Field(24.0, gt=0)
    emoji_partial_match_enabled: bool = True
    emoji_partial_match_min_length: int = Field(3, ge=1)
    emoji_name_variations: List[NameVariation] = DEFAULT_NAME_VARIATIONS

    model_config = ConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
