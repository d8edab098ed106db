"""
Slack Message & Reaction Models

Messages come back from search without reaction data; reactions are fetched
out-of-band and merged in later. `Message.reactions is None` means "not yet
fetched", an empty list means "fetched, no reactions".
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Tuple


class Reaction(BaseModel):
    """Snapshot of one emoji reaction on a message."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    emoji_name: str = Field(..., alias="name")
    count: int = 0
    reacting_user_ids: List[str] = Field(default_factory=list, alias="users")


class Message(BaseModel):
    """A search hit, identified by (channel_id, ts)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    channel_id: str = Field(..., alias="channel")
    ts: str
    text: str = ""
    user: Optional[str] = None
    permalink: Optional[str] = None
    reactions: Optional[List[Reaction]] = None

    @property
    def key(self) -> Tuple[str, str]:
        return (self.channel_id, self.ts)

    @property
    def needs_reactions(self) -> bool:
        return self.reactions is None


class ReactionRequest(BaseModel):
    """Fetch request tied back to a slot in the caller's message list."""

    channel_id: str
    timestamp: str
    message_index: int


class ReactionResult(BaseModel):
    """Per-item outcome of a batch fetch."""

    message_index: int
    reactions: Optional[List[Reaction]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.reactions is not None


class BatchReactionsResponse(BaseModel):
    results: List[ReactionResult] = []
    fetched_count: int = 0
    error_count: int = 0


class LoadingState(BaseModel):
    """Aggregate progress of a progressive reaction load."""

    model_config = ConfigDict(frozen=True)

    is_loading: bool = False
    loaded_count: int = 0
    total_count: int = 0
    error_count: int = 0
