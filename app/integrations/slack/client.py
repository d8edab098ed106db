"""
Slack API Client

Responsibilities:
- reactions.get: Fetch reactions for a single message
- Batched reaction fetching with per-item failure isolation
- emoji.list: Fetch a workspace's custom emoji
- One client per workspace token (SlackWorkspaces)

Auth, rate limiting and transport retries are handled here so callers can
treat every fetch as a black box that resolves or fails.
"""

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError
from slack_sdk.http_retry.builtin_handlers import RateLimitErrorRetryHandler
from app.config import Settings, get_settings
from app.models.slack import BatchReactionsResponse, Reaction, ReactionRequest, ReactionResult
from typing import Dict, List, Optional
import asyncio
import logging

logger = logging.getLogger(__name__)

NO_REACTION_ERROR = "no_reaction"


class SlackClient:
    """Slack API client for reaction and emoji fetching."""

    def __init__(self, token: str, timeout: int = 30, rate_limit_retries: int = 2):
        self.client = WebClient(token=token, timeout=timeout)
        if rate_limit_retries > 0:
            self.client.retry_handlers.append(
                RateLimitErrorRetryHandler(max_retry_count=rate_limit_retries)
            )

    async def get_reactions(self, channel_id: str, timestamp: str) -> List[Reaction]:
        """
        Fetch all reactions on one message.

        Returns:
            List of Reaction (empty when the message has none)

        Raises:
            SlackApiError: For any API error other than `no_reaction`
        """
        try:
            logger.debug(f"Fetching reactions for {channel_id}/{timestamp}")

            result = await asyncio.to_thread(
                self.client.reactions_get,
                channel=channel_id,
                timestamp=timestamp,
                full=True,
            )

            raw_reactions = (result.get("message") or {}).get("reactions") or []
            return [Reaction.model_validate(r) for r in raw_reactions]

        except SlackApiError as e:
            if e.response.get("error") == NO_REACTION_ERROR:
                return []
            logger.error(f"Slack API error fetching reactions {channel_id}/{timestamp}: {e.response['error']}")
            raise

    async def batch_fetch_reactions(
        self, requests: List[ReactionRequest], batch_size: int = 50
    ) -> BatchReactionsResponse:
        """
        Fetch reactions for many messages concurrently.

        At most `batch_size` calls are in flight at once. A failing item is
        reported in its ReactionResult and never affects its siblings.
        """
        semaphore = asyncio.Semaphore(max(1, batch_size))

        async def fetch_one(request: ReactionRequest) -> ReactionResult:
            async with semaphore:
                try:
                    reactions = await self.get_reactions(request.channel_id, request.timestamp)
                    return ReactionResult(message_index=request.message_index, reactions=reactions)
                except Exception as e:
                    logger.warning(f"Reaction fetch failed for {request.channel_id}/{request.timestamp}: {e}")
                    return ReactionResult(message_index=request.message_index, error=str(e))

        results = await asyncio.gather(*(fetch_one(r) for r in requests))
        fetched_count = sum(1 for r in results if r.ok)

        logger.info(f"Batch fetched reactions: {fetched_count}/{len(results)} succeeded")
        return BatchReactionsResponse(
            results=list(results),
            fetched_count=fetched_count,
            error_count=len(results) - fetched_count,
        )

    async def get_emoji_list(self) -> Dict[str, str]:
        """
        Fetch the workspace's custom emoji.

        Returns:
            Raw name -> value mapping; values are image URLs or `alias:<name>`
        """
        try:
            logger.info("Fetching emoji list from Slack")

            result = await asyncio.to_thread(self.client.emoji_list)

            emoji = result.get("emoji") or {}
            logger.info(f"Successfully fetched {len(emoji)} emojis")
            return dict(emoji)

        except SlackApiError as e:
            logger.error(f"Slack API error fetching emoji list: {e.response['error']}")
            raise


class SlackWorkspaces:
    """Registry of per-workspace Slack clients built from settings."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.default_workspace_id = settings.slack_default_workspace_id

        tokens: Dict[str, str] = {}
        if settings.slack_bot_token:
            tokens[self.default_workspace_id] = settings.slack_bot_token
        tokens.update(settings.slack_workspace_tokens)

        self._clients: Dict[str, SlackClient] = {
            workspace_id: SlackClient(
                token,
                timeout=settings.slack_timeout,
                rate_limit_retries=settings.slack_rate_limit_retries,
            )
            for workspace_id, token in tokens.items()
        }
        logger.info(f"Configured Slack clients for {len(self._clients)} workspace(s)")

    @property
    def workspace_ids(self) -> List[str]:
        return list(self._clients)

    def get(self, workspace_id: Optional[str] = None) -> SlackClient:
        """Return the client for a workspace; raises KeyError if not configured."""
        workspace_id = workspace_id or self.default_workspace_id
        try:
            return self._clients[workspace_id]
        except KeyError:
            raise KeyError(f"No Slack token configured for workspace {workspace_id!r}") from None

    async def fetch_emoji_list(self, workspace_id: str) -> Dict[str, str]:
        return await self.get(workspace_id).get_emoji_list()
