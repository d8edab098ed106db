"""
Reaction Loading API Routes

The UI posts a completed search result set here; reactions then load in the
background and the UI polls the loading state and the updated results.
"""

from fastapi import APIRouter, Depends, HTTPException
from typing import List
import logging

from app.api.dependencies import get_services
from app.models.api_responses import LoadReactionsRequest, LoadReactionsResponse
from app.models.slack import LoadingState, Message
from app.services.container import ServiceContainer

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/load", response_model=LoadReactionsResponse, status_code=202)
async def load_reactions(
    request: LoadReactionsRequest,
    services: ServiceContainer = Depends(get_services),
):
    """
    Start loading reactions for a search result set.

    Returns immediately; the result set becomes the current results and is
    updated batch by batch. Not meant for realtime refreshes that need
    fresh reaction counts synchronously.
    """
    try:
        client = services.workspaces.get(request.workspace_id)
    except KeyError as e:
        raise HTTPException(
            status_code=404,
            detail={"success": False, "message": e.args[0]},
        )

    messages = list(request.messages)
    services.search_results.set_results(messages)
    task = services.reaction_loader.load_reactions(messages, fetcher=client)

    pending = sum(1 for m in messages if m.needs_reactions)
    logger.info(f"Reaction load requested: {pending}/{len(messages)} pending, started={task is not None}")

    return LoadReactionsResponse(accepted=task is not None, pending=pending, total=len(messages))


@router.get("/state", response_model=LoadingState)
async def get_loading_state(services: ServiceContainer = Depends(get_services)):
    return services.loading_state.get()


@router.get("/results", response_model=List[Message])
async def get_results(services: ServiceContainer = Depends(get_services)):
    return services.search_results.get()
