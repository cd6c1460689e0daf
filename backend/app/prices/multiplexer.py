"""Shared per-key polling with fan-out to many subscribers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from .history import HistoryStore
from .models import PriceUpdate
from .sources import TokenPriceSource

logger = logging.getLogger(__name__)

Consumer = Callable[[PriceUpdate], None]


class PollTask:
    """Background poller for one key.

    Polls immediately, then every ``interval`` seconds. Ticks are serialized:
    the next sleep only starts after the previous fetch has returned, so two
    ticks for the same key never overlap.

    ``cancel()`` is idempotent and takes effect synchronously. A fetch that
    returns after cancellation has its result dropped.
    """

    def __init__(
        self,
        key: str,
        source: TokenPriceSource,
        interval: float,
        on_update: Callable[[PriceUpdate], None],
    ) -> None:
        self.key = key
        self._source = source
        self._interval = interval
        self._on_update = on_update
        self._task: asyncio.Task | None = None
        self._cancelled = False

    def start(self) -> None:
        if self._task is None and not self._cancelled:
            self._task = asyncio.create_task(self._run(), name=f"poll-{self.key}")

    def cancel(self) -> None:
        self._cancelled = True
        if self._task and not self._task.done():
            self._task.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def running(self) -> bool:
        return not self._cancelled and self._task is not None and not self._task.done()

    async def wait_closed(self) -> None:
        """Wait for the underlying asyncio task to finish after cancel()."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        while not self._cancelled:
            await self.poll_once()
            await asyncio.sleep(self._interval)

    async def poll_once(self) -> None:
        """Execute one tick. Failures are logged; the loop keeps going."""
        try:
            update = await self._source.fetch_update(self.key)
        except Exception:
            logger.exception("Poll tick for %s failed", self.key)
            return

        if self._cancelled:
            logger.debug("Discarding result for %s: poll task cancelled", self.key)
            return
        if update is None:
            logger.debug("No price for %s this tick", self.key)
            return
        self._on_update(update)


class Subscription:
    """Handle returned by subscribe(). Releasing it is idempotent.

    Each handle is its own subscription: the same consumer subscribed twice
    to one key receives every update twice and must be released twice.
    """

    def __init__(self, multiplexer: SubscriptionMultiplexer, key: str, consumer: Consumer) -> None:
        self._multiplexer = multiplexer
        self.key = key
        self.consumer = consumer

    @property
    def active(self) -> bool:
        return self._multiplexer.is_active(self)

    def unsubscribe(self) -> None:
        self._multiplexer.release(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.unsubscribe()


class SubscriptionMultiplexer:
    """Multiplex many consumers onto one PollTask per key.

    Per key: NoSubscribers -> Polling (first subscribe) -> NoSubscribers
    (last unsubscribe). A key has a PollTask exactly while it has at least
    one subscriber.

    When the last consumer leaves, the key's last-known value is evicted too,
    so a later subscriber never receives a price with no live poll behind it.
    Recorded history is kept.
    """

    def __init__(
        self,
        source: TokenPriceSource,
        history: HistoryStore | None = None,
        poll_interval: float = 5.0,
    ) -> None:
        self._source = source
        self._history = history
        self._interval = poll_interval
        self._subscribers: dict[str, dict[Subscription, Consumer]] = {}  # Insertion-ordered
        self._tasks: dict[str, PollTask] = {}
        self._last: dict[str, PriceUpdate] = {}

    def subscribe(self, key: str, consumer: Consumer) -> Subscription:
        """Register a consumer for ``key``.

        Starts the key's PollTask if this is its first subscriber. If a
        last-known value exists, the consumer receives it before this
        method returns.
        """
        subscribers = self._subscribers.get(key)
        if subscribers is None:
            task = PollTask(key, self._source, self._interval, lambda u: self._deliver(key, u))
            self._tasks[key] = task
            subscribers = self._subscribers[key] = {}
            task.start()
            logger.info("Started polling %s every %.1fs", key, self._interval)

        subscription = Subscription(self, key, consumer)
        subscribers[subscription] = consumer

        last = self._last.get(key)
        if last is not None:
            self._notify(key, consumer, last)
        return subscription

    def unsubscribe(self, key: str, consumer: Consumer) -> None:
        """Remove one subscription of ``consumer`` to ``key``. No-op if there is none."""
        for subscription in self._subscribers.get(key, {}):
            if subscription.consumer == consumer:
                self.release(subscription)
                return

    def release(self, subscription: Subscription) -> None:
        """Release one subscription handle. No-op if it was already released."""
        key = subscription.key
        subscribers = self._subscribers.get(key)
        if subscribers is None or subscription not in subscribers:
            return
        del subscribers[subscription]
        if subscribers:
            return

        del self._subscribers[key]
        task = self._tasks.pop(key, None)
        if task is not None:
            task.cancel()
        self._last.pop(key, None)
        logger.info("Stopped polling %s (no subscribers)", key)

    def is_subscribed(self, key: str, consumer: Consumer) -> bool:
        return consumer in self._subscribers.get(key, {}).values()

    def is_active(self, subscription: Subscription) -> bool:
        return subscription in self._subscribers.get(subscription.key, {})

    def subscriber_count(self, key: str) -> int:
        return len(self._subscribers.get(key, {}))

    def is_polling(self, key: str) -> bool:
        return key in self._tasks

    def active_keys(self) -> list[str]:
        return list(self._tasks)

    def get_price(self, key: str) -> PriceUpdate | None:
        """Last known value for a key, or None."""
        return self._last.get(key)

    def get_all_prices(self) -> dict[str, PriceUpdate]:
        """Snapshot of all last-known values. Returns a shallow copy."""
        return dict(self._last)

    def clear(self) -> None:
        """Cancel every poll task and drop all subscribers and values."""
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()
        self._subscribers.clear()
        self._last.clear()

    async def aclose(self) -> None:
        """clear(), then wait for the cancelled tasks to wind down."""
        tasks = list(self._tasks.values())
        self.clear()
        for task in tasks:
            await task.wait_closed()
        logger.info("Subscription multiplexer closed (%d poll tasks stopped)", len(tasks))

    # --- Internal ---

    def _deliver(self, key: str, update: PriceUpdate) -> None:
        subscribers = self._subscribers.get(key)
        if not subscribers:
            return

        self._last[key] = update
        if self._history is not None:
            self._history.record(key, update.symbol, update.price)

        for subscription, consumer in list(subscribers.items()):
            # A consumer may unsubscribe another one mid fan-out
            if subscription in subscribers:
                self._notify(key, consumer, update)

    @staticmethod
    def _notify(key: str, consumer: Consumer, update: PriceUpdate) -> None:
        try:
            consumer(update)
        except Exception:
            logger.exception("Subscriber for %s raised during delivery", key)
