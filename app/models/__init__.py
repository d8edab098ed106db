# Shared data models
from app.models.slack import (
    Reaction,
    Message,
    ReactionRequest,
    ReactionResult,
    BatchReactionsResponse,
    LoadingState,
)
from app.models.emoji import EmojiData, EmojiKind, MatchTier, RenderableEmoji

__all__ = [
    "Reaction",
    "Message",
    "ReactionRequest",
    "ReactionResult",
    "BatchReactionsResponse",
    "LoadingState",
    "EmojiData",
    "EmojiKind",
    "MatchTier",
    "RenderableEmoji",
]
