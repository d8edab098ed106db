"""
Unit Tests for ReactionLoader

Covers progressive batched loading, failure isolation, idempotence and
isolation between overlapping loader runs.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import asyncio
from typing import Dict, List, Optional, Set

import pytest

from app.models.slack import (
    BatchReactionsResponse,
    LoadingState,
    Message,
    Reaction,
    ReactionRequest,
    ReactionResult,
)
from app.services.reaction_loader import ReactionLoader, build_requests
from app.services.stores import LoadingStateStore, SearchResultsStore


def make_messages(count: int, channel: str = "C123") -> List[Message]:
    return [Message(channel=channel, ts=f"1700000000.{i:06d}", text=f"message {i}") for i in range(count)]


def thumbs(count: int = 1) -> List[Reaction]:
    return [Reaction(name="+1", count=count, users=[f"U{i}" for i in range(count)])]


class FakeFetcher:
    """Batch fetcher double recording every request it receives."""

    def __init__(
        self,
        reactions: Optional[Dict[str, List[Reaction]]] = None,
        fail_timestamps: Set[str] = frozenset(),
        raise_on_calls: Set[int] = frozenset(),
        gate: Optional[asyncio.Event] = None,
        reverse: bool = False,
        drop_timestamps: Set[str] = frozenset(),
    ):
        self.reactions = reactions or {}
        self.fail_timestamps = fail_timestamps
        self.raise_on_calls = raise_on_calls
        self.gate = gate
        self.reverse = reverse
        self.drop_timestamps = drop_timestamps
        self.calls: List[List[ReactionRequest]] = []

    @property
    def requested_keys(self) -> List[tuple]:
        return [(r.channel_id, r.timestamp) for call in self.calls for r in call]

    async def batch_fetch_reactions(self, requests, batch_size):
        self.calls.append(list(requests))
        if self.gate is not None:
            await self.gate.wait()
        if len(self.calls) in self.raise_on_calls:
            raise ConnectionError("network unreachable")

        results = []
        for request in requests:
            if request.timestamp in self.drop_timestamps:
                continue
            if request.timestamp in self.fail_timestamps:
                results.append(ReactionResult(message_index=request.message_index, error="message_not_found"))
            else:
                results.append(
                    ReactionResult(
                        message_index=request.message_index,
                        reactions=self.reactions.get(request.timestamp, []),
                    )
                )
        if self.reverse:
            results.reverse()

        fetched = sum(1 for r in results if r.ok)
        return BatchReactionsResponse(results=results, fetched_count=fetched, error_count=len(results) - fetched)


def record_states(store: LoadingStateStore) -> List[LoadingState]:
    states: List[LoadingState] = []
    store.subscribe(states.append)
    return states


@pytest.mark.asyncio
async def test_loads_all_reactions_and_keeps_empty_distinct_from_missing():
    """Three messages; the empty result must mark the message as fetched."""
    messages = make_messages(3)
    fetcher = FakeFetcher(
        reactions={
            messages[0].ts: thumbs(2),
            messages[2].ts: [Reaction(name="eyes", count=1, users=["U9"])],
        }
    )
    state = LoadingStateStore()
    loader = ReactionLoader(fetcher, state, batch_size=50)

    task = loader.load_reactions(messages)
    assert task is not None
    await task

    assert messages[0].reactions[0].emoji_name == "+1"
    assert messages[0].reactions[0].count == 2
    assert messages[1].reactions == []
    assert messages[1].reactions is not None
    assert messages[2].reactions[0].emoji_name == "eyes"
    assert state.get() == LoadingState(is_loading=False, loaded_count=3, total_count=3, error_count=0)


@pytest.mark.asyncio
async def test_second_call_on_loaded_list_is_a_noop():
    messages = make_messages(3)
    fetcher = FakeFetcher()
    loader = ReactionLoader(fetcher, LoadingStateStore())

    await loader.load_reactions(messages)
    assert len(fetcher.calls) == 1

    assert loader.load_reactions(messages) is None
    assert len(fetcher.calls) == 1


@pytest.mark.asyncio
async def test_batches_are_sized_and_progress_published_per_batch():
    """120 messages at batch size 50 -> batches of 50, 50, 20."""
    messages = make_messages(120)
    fetcher = FakeFetcher()
    state = LoadingStateStore()
    states = record_states(state)
    loader = ReactionLoader(fetcher, state, batch_size=50)

    await loader.load_reactions(messages)

    assert [len(call) for call in fetcher.calls] == [50, 50, 20]
    # states[0] is the idle value delivered on subscribe
    assert states[1] == LoadingState(is_loading=True, loaded_count=0, total_count=120, error_count=0)
    assert states[2].loaded_count == 50
    assert states[3].loaded_count == 100
    assert states[-1] == LoadingState(is_loading=False, loaded_count=120, total_count=120, error_count=0)


@pytest.mark.asyncio
@pytest.mark.parametrize("count", [0, 1, 50, 51, 200])
async def test_each_message_is_requested_at_most_once(count):
    messages = make_messages(count)
    fetcher = FakeFetcher()
    loader = ReactionLoader(fetcher, LoadingStateStore(), batch_size=50)

    task = loader.load_reactions(messages)
    if count == 0:
        assert task is None
    else:
        await task

    keys = fetcher.requested_keys
    assert len(keys) == len(set(keys)) == count


@pytest.mark.asyncio
async def test_single_failure_is_isolated_within_batch():
    messages = make_messages(50)
    fetcher = FakeFetcher(fail_timestamps={messages[3].ts})
    state = LoadingStateStore()
    loader = ReactionLoader(fetcher, state, batch_size=50)

    await loader.load_reactions(messages)

    loaded = [m for m in messages if m.reactions is not None]
    assert len(loaded) == 49
    assert messages[3].reactions is None
    assert state.get().error_count == 1
    assert state.get().loaded_count == 49
    assert state.get().is_loading is False


@pytest.mark.asyncio
async def test_failed_messages_are_retried_on_next_invocation():
    messages = make_messages(5)
    loader = ReactionLoader(FakeFetcher(fail_timestamps={messages[1].ts}), LoadingStateStore())
    await loader.load_reactions(messages)
    assert messages[1].reactions is None

    retry_fetcher = FakeFetcher()
    await loader.load_reactions(messages, fetcher=retry_fetcher)

    assert retry_fetcher.requested_keys == [messages[1].key]
    assert messages[1].reactions == []


@pytest.mark.asyncio
async def test_whole_batch_failure_continues_with_next_batch():
    messages = make_messages(120)
    fetcher = FakeFetcher(raise_on_calls={1})
    state = LoadingStateStore()
    loader = ReactionLoader(fetcher, state, batch_size=50)

    await loader.load_reactions(messages)  # must not raise

    assert len(fetcher.calls) == 3
    assert all(m.reactions is None for m in messages[:50])
    assert all(m.reactions is not None for m in messages[50:])
    assert state.get() == LoadingState(is_loading=False, loaded_count=70, total_count=120, error_count=50)


@pytest.mark.asyncio
async def test_results_arriving_out_of_order_land_in_the_right_slot():
    messages = make_messages(10)
    reactions = {m.ts: thumbs(i + 1) for i, m in enumerate(messages)}
    loader = ReactionLoader(FakeFetcher(reactions=reactions, reverse=True), LoadingStateStore())

    await loader.load_reactions(messages)

    for i, message in enumerate(messages):
        assert message.reactions[0].count == i + 1


@pytest.mark.asyncio
async def test_missing_results_count_as_errors():
    messages = make_messages(4)
    state = LoadingStateStore()
    loader = ReactionLoader(FakeFetcher(drop_timestamps={messages[2].ts}), state)

    await loader.load_reactions(messages)

    assert messages[2].reactions is None
    assert state.get().loaded_count == 3
    assert state.get().error_count == 1


@pytest.mark.asyncio
async def test_already_loaded_messages_count_towards_progress():
    messages = make_messages(5)
    messages[0] = messages[0].model_copy(update={"reactions": thumbs()})
    messages[4] = messages[4].model_copy(update={"reactions": []})
    fetcher = FakeFetcher()
    state = LoadingStateStore()
    states = record_states(state)
    loader = ReactionLoader(fetcher, state)

    await loader.load_reactions(messages)

    assert states[1] == LoadingState(is_loading=True, loaded_count=2, total_count=5, error_count=0)
    assert [r.message_index for r in fetcher.calls[0]] == [1, 2, 3]
    assert messages[0].reactions == thumbs()


@pytest.mark.asyncio
async def test_duplicate_messages_share_one_request():
    messages = make_messages(3)
    messages.append(messages[1].model_copy())
    fetcher = FakeFetcher(reactions={messages[1].ts: thumbs(3)})
    state = LoadingStateStore()
    loader = ReactionLoader(fetcher, state)

    await loader.load_reactions(messages)

    assert len(fetcher.requested_keys) == 3
    assert messages[3].reactions == thumbs(3)
    assert state.get().loaded_count == 4


@pytest.mark.asyncio
async def test_listeners_notified_after_each_batch():
    messages = make_messages(7)
    notifications = []

    class Listener:
        def on_batch_applied(self, batch_messages, indices):
            notifications.append((batch_messages, list(indices)))

    loader = ReactionLoader(FakeFetcher(), LoadingStateStore(), batch_size=3, listeners=[Listener()])
    await loader.load_reactions(messages)

    assert [indices for _, indices in notifications] == [[0, 1, 2], [3, 4, 5], [6]]
    assert all(batch_messages is messages for batch_messages, _ in notifications)


@pytest.mark.asyncio
async def test_failing_listener_does_not_stop_loading():
    class BrokenListener:
        def on_batch_applied(self, messages, indices):
            raise RuntimeError("render failed")

    messages = make_messages(4)
    state = LoadingStateStore()
    loader = ReactionLoader(FakeFetcher(), state, batch_size=2, listeners=[BrokenListener()])

    await loader.load_reactions(messages)

    assert all(m.reactions == [] for m in messages)
    assert state.get().is_loading is False


@pytest.mark.asyncio
async def test_search_results_store_gets_fresh_list_per_batch():
    messages = make_messages(4)
    results = SearchResultsStore()
    snapshots = []
    results.subscribe(snapshots.append)
    results.set_results(messages)

    loader = ReactionLoader(FakeFetcher(), LoadingStateStore(), batch_size=2, listeners=[results])
    await loader.load_reactions(messages)

    # initial empty value, set_results, then one snapshot per batch
    assert len(snapshots) == 4
    assert snapshots[-1] is not messages
    assert all(m.reactions == [] for m in snapshots[-1])
    assert all(m.reactions is None for m in snapshots[1])


@pytest.mark.asyncio
async def test_stale_run_never_touches_newer_search():
    old_messages = make_messages(3, channel="COLD")
    new_messages = make_messages(2, channel="CNEW")
    gate = asyncio.Event()
    results = SearchResultsStore()
    state = LoadingStateStore()
    loader = ReactionLoader(FakeFetcher(gate=gate), state, listeners=[results])

    results.set_results(old_messages)
    old_task = loader.load_reactions(old_messages)
    await asyncio.sleep(0)

    results.set_results(new_messages)
    await loader.load_reactions(new_messages, fetcher=FakeFetcher(reactions={new_messages[0].ts: thumbs()}))
    assert state.get() == LoadingState(is_loading=False, loaded_count=2, total_count=2, error_count=0)

    gate.set()
    await old_task

    # Old run applied to its own list only
    assert all(m.reactions == [] for m in old_messages)
    assert [m.channel_id for m in results.get()] == ["CNEW", "CNEW"]
    assert results.get()[0].reactions == thumbs()
    # And did not overwrite the newer run's loading state
    assert state.get() == LoadingState(is_loading=False, loaded_count=2, total_count=2, error_count=0)


@pytest.mark.asyncio
async def test_aclose_cancels_in_flight_runs():
    gate = asyncio.Event()
    state = LoadingStateStore()
    loader = ReactionLoader(FakeFetcher(gate=gate), state)

    task = loader.load_reactions(make_messages(2))
    await asyncio.sleep(0)
    assert loader.active_tasks == 1

    await loader.aclose()

    assert task.cancelled()
    assert loader.active_tasks == 0
    assert state.get().is_loading is False


def test_load_without_running_loop_is_skipped():
    state = LoadingStateStore()
    loader = ReactionLoader(FakeFetcher(), state)

    assert loader.load_reactions(make_messages(2)) is None
    assert state.get() == LoadingState()


def test_load_without_fetcher_is_skipped():
    loader = ReactionLoader(None, LoadingStateStore())
    assert loader.load_reactions(make_messages(2)) is None


def test_invalid_batch_size_rejected():
    with pytest.raises(ValueError):
        ReactionLoader(FakeFetcher(), LoadingStateStore(), batch_size=0)


def test_build_requests_skips_loaded_and_dedupes():
    messages = make_messages(4)
    messages[0] = messages[0].model_copy(update={"reactions": []})
    messages.append(messages[2].model_copy())

    requests, targets = build_requests(messages)

    assert [(r.timestamp, r.message_index) for r in requests] == [
        (messages[1].ts, 1),
        (messages[2].ts, 2),
        (messages[3].ts, 3),
    ]
    assert targets == {1: [1], 2: [2, 4], 3: [3]}
