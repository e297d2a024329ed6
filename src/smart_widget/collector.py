"""Time-boxed event collection.

Relays never say "that was the last result" for a live subscription, so a
collection ends after a quiet period with no new events. The same machinery
confirms publishes by waiting for the first event carrying a known id.
"""

import asyncio
import enum

from .filters import normalize_filters
from .models import SearchResult
from .nak import CACHE_FIRST, ONLY_RELAY, SubscriptionOptions
from .utils import deduplicate_preserving_order

DEFAULT_QUIET_PERIOD = 1.0

COLLECT_OPTIONS = SubscriptionOptions(cache_usage=CACHE_FIRST, skip_verification=True)
CONFIRM_OPTIONS = SubscriptionOptions(cache_usage=ONLY_RELAY, skip_verification=True)


class CollectorState(enum.Enum):
    LISTENING = "listening"
    CLOSED = "closed"


class EventCollector:
    """Single-use collector: LISTENING until the quiet timer, the optional
    hard cap or a subscription error moves it to CLOSED.

    Only the transition to CLOSED resolves the result, so concurrent event
    arrival and timer expiry cannot resolve it twice.
    """

    def __init__(self, client, filters: list[dict], quiet_period: float, max_duration: float | None = None):
        self._client = client
        self._filters = filters
        self._quiet_period = quiet_period
        self._max_duration = max_duration
        self._state = CollectorState.LISTENING
        self._data: list[dict] = []
        self._pubkeys: list[str] = []
        self._future: asyncio.Future | None = None
        self._subscription = None
        self._quiet_timer: asyncio.TimerHandle | None = None
        self._deadline_timer: asyncio.TimerHandle | None = None

    @property
    def state(self) -> CollectorState:
        return self._state

    async def run(self) -> SearchResult:
        loop = asyncio.get_running_loop()
        self._future = loop.create_future()

        # Client errors (malformed filters, not connected) propagate from here
        self._subscription = self._client.subscribe(self._filters, COLLECT_OPTIONS)
        self._subscription.on_event(self._on_event)
        self._subscription.on_error(self._on_error)

        self._arm_quiet_timer()
        if self._max_duration is not None:
            self._deadline_timer = loop.call_later(self._max_duration, self._close)

        try:
            return await self._future
        finally:
            self._shutdown()

    def _arm_quiet_timer(self) -> None:
        if self._quiet_timer is not None:
            self._quiet_timer.cancel()
        self._quiet_timer = asyncio.get_running_loop().call_later(self._quiet_period, self._close)

    def _on_event(self, event: dict) -> None:
        if self._state is CollectorState.CLOSED:
            return
        self._data.append(event)
        if event.get("pubkey"):
            self._pubkeys.append(event["pubkey"])
        self._arm_quiet_timer()

    def _on_error(self, error: Exception) -> None:
        if self._state is CollectorState.CLOSED:
            return
        self._shutdown()
        self._future.set_exception(error)

    def _close(self) -> None:
        if self._state is CollectorState.CLOSED:
            return
        self._shutdown()
        self._future.set_result(
            SearchResult(data=list(self._data), pubkeys=deduplicate_preserving_order(self._pubkeys))
        )

    def _shutdown(self) -> None:
        if self._state is CollectorState.CLOSED:
            return
        self._state = CollectorState.CLOSED
        for timer in (self._quiet_timer, self._deadline_timer):
            if timer is not None:
                timer.cancel()
        if self._subscription is not None:
            self._subscription.stop()


async def collect(
    client, filters, quiet_period: float = DEFAULT_QUIET_PERIOD, max_duration: float | None = None
) -> SearchResult:
    """Collect events matching filters until quiet_period passes without one.

    CONTRACT:
      Inputs:
        - client: event network client exposing subscribe(filters, options)
        - filters: list of NIP-01 filter dicts (None or empty allowed)
        - quiet_period: seconds without a new event that end the collection
        - max_duration: optional hard cap in seconds on the whole collection

      Outputs:
        - SearchResult(data=[raw events in arrival order],
                       pubkeys=[unique authors in first-seen order])

      Invariants:
        - Empty or absent filters resolve immediately, no subscription opened
        - Falsy-empty filter fields are stripped before subscribing
        - The subscription is stopped before the result is returned
        - Resolves exactly once

      Raises:
        - Whatever client.subscribe raises, or an error the subscription
          reports while listening; no retry
    """
    if not filters:
        return SearchResult()

    collector = EventCollector(client, normalize_filters(filters), quiet_period, max_duration)
    return await collector.run()


async def wait_for_event(client, filters: list[dict], options: SubscriptionOptions = CONFIRM_OPTIONS) -> dict:
    """Wait for the first event matching filters.

    No timeout of its own: callers bound it with asyncio.wait_for, and the
    subscription is stopped when the wait finishes or is cancelled.
    """
    future = asyncio.get_running_loop().create_future()

    def on_event(event: dict) -> None:
        if not future.done():
            future.set_result(event)

    def on_error(error: Exception) -> None:
        if not future.done():
            future.set_exception(error)

    subscription = client.subscribe(filters, options)
    subscription.on_event(on_event)
    subscription.on_error(on_error)

    try:
        return await future
    finally:
        subscription.stop()
