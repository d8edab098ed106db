"""
API Request & Response Models

Pydantic models for consistent API request/response structures.
"""

from pydantic import BaseModel, Field
from typing import List, Optional

from app.models.emoji import EmojiKind, MatchTier, RenderableEmoji
from app.models.slack import Message


class LoadReactionsRequest(BaseModel):
    """Search results to load reactions for."""

    workspace_id: Optional[str] = Field(
        None, description="Workspace the messages belong to (default workspace if omitted)"
    )
    messages: List[Message] = Field(..., description="Messages from a completed search")


class LoadReactionsResponse(BaseModel):
    accepted: bool = Field(..., description="True when a background load was started")
    pending: int = Field(..., description="Messages still waiting for reactions")
    total: int = Field(..., description="Messages in the result set")


class EmojiResolveResponse(BaseModel):
    name: str = Field(..., description="The name as requested")
    found: bool
    kind: Optional[EmojiKind] = Field(None, description="unicode or image_url")
    value: Optional[str] = Field(None, description="Unicode string or image URL")
    tier: Optional[MatchTier] = Field(None, description="Match confidence")

    @classmethod
    def from_result(cls, name: str, emoji: Optional[RenderableEmoji]) -> "EmojiResolveResponse":
        if emoji is None:
            return cls(name=name, found=False)
        return cls(name=name, found=True, kind=emoji.kind, value=emoji.value, tier=emoji.tier)


class EmojiSearchItem(BaseModel):
    name: str
    kind: EmojiKind
    value: str
    is_custom: bool


class EmojiSearchResponse(BaseModel):
    query: str
    results: List[EmojiSearchItem] = Field(default_factory=list)
    total: int = 0


class ParseTextRequest(BaseModel):
    text: str
    workspace_id: str


class TextSegmentModel(BaseModel):
    type: str = Field(..., description="text or emoji")
    content: str
    kind: Optional[EmojiKind] = None
    value: Optional[str] = None


class ParseTextResponse(BaseModel):
    segments: List[TextSegmentModel] = Field(default_factory=list)


class EmojiRefreshResponse(BaseModel):
    success: bool
    workspace_id: str
    custom_count: int = 0
    last_fetched: Optional[float] = None
