"""
Progressive Reaction Loader

Search results come back without reactions so they can render immediately.
This service fetches reactions in the background and merges them into the
caller's message list batch by batch:

1. Collect messages whose `reactions` is None (one request per distinct
   (channel_id, ts), tied back to its list index)
2. Publish the initial LoadingState
3. Fetch batches sequentially; requests inside a batch run concurrently
4. Apply each successful result to its list slot, count failures
5. Publish progress and notify listeners after every batch
6. Publish `is_loading=False` when done

Loading is asynchronous only. `load_reactions` schedules the work and
returns at once; do not use it when reactions are needed immediately
(e.g. a realtime refresh that exists to get fresh counts).

The caller must not splice or reorder the list while a load is running.
Each run keeps the list reference it was given, so a run left over from a
previous search only ever writes to that search's list.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Protocol, Set, Tuple

from app.models.slack import BatchReactionsResponse, LoadingState, Message, ReactionRequest
from app.services.stores import BatchListener, Store

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


class ReactionFetcher(Protocol):
    async def batch_fetch_reactions(
        self, requests: List[ReactionRequest], batch_size: int
    ) -> BatchReactionsResponse:
        ...


def build_requests(messages: List[Message]) -> Tuple[List[ReactionRequest], Dict[int, List[int]]]:
    """
    Build one request per distinct message that still needs reactions.

    Returns:
        (requests, targets) where targets maps each request's message_index
        to every list index sharing that (channel_id, ts)
    """
    requests: List[ReactionRequest] = []
    targets: Dict[int, List[int]] = {}
    first_index: Dict[Tuple[str, str], int] = {}

    for index, message in enumerate(messages):
        if not message.needs_reactions:
            continue
        primary = first_index.get(message.key)
        if primary is not None:
            targets[primary].append(index)
            continue
        first_index[message.key] = index
        targets[index] = [index]
        requests.append(
            ReactionRequest(channel_id=message.channel_id, timestamp=message.ts, message_index=index)
        )

    return requests, targets


class ReactionLoader:
    """Loads reactions for search results in the background."""

    def __init__(
        self,
        fetcher: Optional[ReactionFetcher],
        loading_state: Store[LoadingState],
        batch_size: int = DEFAULT_BATCH_SIZE,
        listeners: Iterable[BatchListener] = (),
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.fetcher = fetcher
        self.loading_state = loading_state
        self.batch_size = batch_size
        self._listeners: List[BatchListener] = list(listeners)
        self._tasks: Set[asyncio.Task] = set()
        self._generation = 0

    @property
    def active_tasks(self) -> int:
        return len(self._tasks)

    def add_listener(self, listener: BatchListener) -> None:
        self._listeners.append(listener)

    def load_reactions(
        self, messages: List[Message], fetcher: Optional[ReactionFetcher] = None
    ) -> Optional[asyncio.Task]:
        """
        Start loading reactions for `messages` in the background.

        Must be called from a running event loop. Returns the background task
        (for lifecycle management only) or None when nothing needs loading.
        """
        requests, targets = build_requests(messages)
        if not requests:
            logger.info("All messages already have reactions, nothing to load")
            return None

        fetcher = fetcher or self.fetcher
        if fetcher is None:
            logger.error("No reaction fetcher configured, skipping reaction loading")
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("load_reactions called without a running event loop, skipping")
            return None

        needing = sum(len(indices) for indices in targets.values())
        self._generation += 1
        generation = self._generation

        self.loading_state.set(
            LoadingState(
                is_loading=True,
                loaded_count=len(messages) - needing,
                total_count=len(messages),
                error_count=0,
            )
        )
        logger.info(
            f"Loading reactions for {needing} of {len(messages)} messages "
            f"({len(requests)} requests, batch size {self.batch_size})"
        )

        task = loop.create_task(
            self._run(messages, requests, targets, fetcher, generation)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def aclose(self) -> None:
        """Cancel any runs still in flight."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Cancelled {len(tasks)} reaction loading run(s)")

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _publish(self, generation: int, **changes) -> None:
        # A superseded run keeps applying to its own list but no longer owns the state
        if self._is_current(generation):
            self.loading_state.update(lambda state: state.model_copy(update=changes))

    async def _run(
        self,
        messages: List[Message],
        requests: List[ReactionRequest],
        targets: Dict[int, List[int]],
        fetcher: ReactionFetcher,
        generation: int,
    ) -> None:
        loaded = len(messages) - sum(len(indices) for indices in targets.values())
        errors = 0

        try:
            for start in range(0, len(requests), self.batch_size):
                batch = requests[start:start + self.batch_size]
                applied, failed = await self._process_batch(messages, batch, targets, fetcher)

                loaded += len(applied)
                errors += failed
                self._publish(generation, loaded_count=loaded, error_count=errors)
                self._notify_listeners(messages, applied)

                logger.info(f"Loaded batch: {loaded}/{len(messages)} reactions, {errors} errors")

        except asyncio.CancelledError:
            logger.info("Reaction loading cancelled")
            raise
        except Exception:
            logger.exception("Reaction loading aborted")
        finally:
            self._publish(generation, is_loading=False)

        logger.info(f"Reaction loading complete: {loaded} loaded, {errors} errors")

    async def _process_batch(
        self,
        messages: List[Message],
        batch: List[ReactionRequest],
        targets: Dict[int, List[int]],
        fetcher: ReactionFetcher,
    ) -> Tuple[List[int], int]:
        """Fetch one batch and apply it. Returns (updated indices, failed message count)."""
        try:
            response = await fetcher.batch_fetch_reactions(batch, self.batch_size)
        except Exception as e:
            logger.error(f"Reaction batch of {len(batch)} requests failed: {e}")
            return [], sum(len(targets[r.message_index]) for r in batch)

        by_index = {r.message_index: r for r in batch}
        answered: Set[int] = set()
        applied: List[int] = []
        failed = 0

        for result in response.results:
            request = by_index.get(result.message_index)
            if request is None or result.message_index in answered:
                logger.warning(f"Ignoring unexpected reaction result for index {result.message_index}")
                continue
            answered.add(result.message_index)

            indices = targets[result.message_index]
            if not result.ok:
                logger.debug(f"No reactions for {request.channel_id}/{request.timestamp}: {result.error}")
                failed += len(indices)
                continue

            for index in indices:
                if not _slot_matches(messages, index, request):
                    logger.warning(f"Message at index {index} changed during load, dropping result")
                    failed += 1
                    continue
                messages[index] = messages[index].model_copy(
                    update={"reactions": list(result.reactions)}
                )
                applied.append(index)

        missing = [r for r in batch if r.message_index not in answered]
        if missing:
            logger.warning(f"{len(missing)} requests got no result in batch response")
            failed += sum(len(targets[r.message_index]) for r in missing)

        return applied, failed

    def _notify_listeners(self, messages: List[Message], indices: List[int]) -> None:
        for listener in self._listeners:
            try:
                listener.on_batch_applied(messages, indices)
            except Exception:
                logger.exception("Batch listener failed")


def _slot_matches(messages: List[Message], index: int, request: ReactionRequest) -> bool:
    if not 0 <= index < len(messages):
        return False
    return messages[index].key == (request.channel_id, request.timestamp)
