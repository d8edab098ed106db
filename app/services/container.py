"""
Service container

One instance of each service per process, built at application startup and
handed to whatever needs it (routes, UI wiring) instead of module globals.
"""

import logging
from dataclasses import dataclass

from app.config import Settings, get_settings
from app.integrations.slack.client import SlackWorkspaces
from app.services.emoji_cache import EmojiCache
from app.services.reaction_loader import ReactionLoader
from app.services.stores import LoadingStateStore, SearchResultsStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    workspaces: SlackWorkspaces
    loading_state: LoadingStateStore
    search_results: SearchResultsStore
    reaction_loader: ReactionLoader
    emoji_cache: EmojiCache

    async def aclose(self) -> None:
        await self.reaction_loader.aclose()


def build_services(settings: Settings = None, workspaces: SlackWorkspaces = None) -> ServiceContainer:
    settings = settings or get_settings()
    workspaces = workspaces or SlackWorkspaces(settings)

    loading_state = LoadingStateStore()
    search_results = SearchResultsStore()

    default_client = None
    if workspaces.default_workspace_id in workspaces.workspace_ids:
        default_client = workspaces.get()

    reaction_loader = ReactionLoader(
        fetcher=default_client,
        loading_state=loading_state,
        batch_size=settings.reaction_batch_size,
        listeners=[search_results],
    )

    emoji_cache = EmojiCache(
        fetch_emoji_list=workspaces.fetch_emoji_list,
        ttl_seconds=settings.emoji_cache_ttl_hours * 3600,
        name_variations=settings.emoji_name_variations,
        partial_match_enabled=settings.emoji_partial_match_enabled,
        partial_match_min_length=settings.emoji_partial_match_min_length,
    )

    logger.info(
        f"Services ready: {len(workspaces.workspace_ids)} workspace(s), "
        f"reaction batch size {settings.reaction_batch_size}"
    )
    return ServiceContainer(
        settings=settings,
        workspaces=workspaces,
        loading_state=loading_state,
        search_results=search_results,
        reaction_loader=reaction_loader,
        emoji_cache=emoji_cache,
    )
