"""
Emoji API Routes
"""

from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from app.api.dependencies import get_emoji_cache, get_services
from app.models.api_responses import (
    EmojiRefreshResponse,
    EmojiResolveResponse,
    EmojiSearchItem,
    EmojiSearchResponse,
    ParseTextRequest,
    ParseTextResponse,
    TextSegmentModel,
)
from app.services.container import ServiceContainer
from app.services.emoji_cache import EmojiCache

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/resolve", response_model=EmojiResolveResponse)
async def resolve_emoji(
    name: str = Query(..., description="Emoji name, with or without colons"),
    workspace_id: str = Query(..., description="Workspace the name is used in"),
    cache: EmojiCache = Depends(get_emoji_cache),
):
    """
    Resolve an emoji name to a Unicode string or image URL.

    A miss is a normal result (`found: false`); render the raw name as text.
    """
    return EmojiResolveResponse.from_result(name, cache.resolve(name, workspace_id))


@router.get("/search", response_model=EmojiSearchResponse)
async def search_emoji(
    query: str = Query(..., min_length=1),
    workspace_id: str = Query(...),
    limit: int = Query(50, ge=1, le=500),
    cache: EmojiCache = Depends(get_emoji_cache),
):
    entries = cache.search(query, workspace_id, limit=limit)
    return EmojiSearchResponse(
        query=query,
        results=[
            EmojiSearchItem(name=e.name, kind=e.emoji.kind, value=e.emoji.value, is_custom=e.is_custom)
            for e in entries
        ],
        total=len(entries),
    )


@router.post("/parse", response_model=ParseTextResponse)
async def parse_text(request: ParseTextRequest, cache: EmojiCache = Depends(get_emoji_cache)):
    segments = cache.parse_text(request.text, request.workspace_id)
    return ParseTextResponse(
        segments=[
            TextSegmentModel(
                type=s.type,
                content=s.content,
                kind=s.emoji.kind if s.emoji else None,
                value=s.emoji.value if s.emoji else None,
            )
            for s in segments
        ]
    )


@router.post("/{workspace_id}/refresh", response_model=EmojiRefreshResponse)
async def refresh_emoji(workspace_id: str, services: ServiceContainer = Depends(get_services)):
    """Re-fetch a workspace's custom emoji now."""
    if workspace_id not in services.workspaces.workspace_ids:
        raise HTTPException(
            status_code=404,
            detail={"success": False, "message": f"Unknown workspace: {workspace_id}"},
        )

    cache = services.emoji_cache
    previous = cache.get_data(workspace_id)
    data = await cache.refresh(workspace_id)
    refreshed = data is not None and data is not previous

    if not refreshed:
        logger.warning(f"Emoji refresh for {workspace_id} failed, serving previous data")

    return EmojiRefreshResponse(
        success=refreshed,
        workspace_id=workspace_id,
        custom_count=len(data.custom) if data else 0,
        last_fetched=data.last_fetched if data else None,
    )
