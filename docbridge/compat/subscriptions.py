"""
Polling subscriptions standing in for live change listeners.

subscribe() fetches once immediately, then again every interval seconds,
handing each full snapshot to on_next. There is no diffing: consumers must
treat every callback as the complete current state.

Each subscription owns its own asyncio task; N subscribers to the same
query perform N independent fetches. Cancellation is cooperative: cancel()
stops the timer, and a fetch already in flight is allowed to finish but
its result is dropped if the subscription was cancelled meanwhile.
"""

import asyncio
import enum
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from docbridge.compat.queries import Query
from docbridge.compat.references import CollectionReference, DocumentReference
from docbridge.compat.snapshots import DocumentSnapshot, QuerySnapshot, get_many, get_one
from docbridge.config import settings

logger = logging.getLogger(__name__)

Target = Union[DocumentReference, CollectionReference, Query]
Snapshot = Union[DocumentSnapshot, QuerySnapshot]
NextCallback = Callable[[Snapshot], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[Exception], Union[None, Awaitable[None]]]


class SubscriptionState(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


async def _invoke(callback: Callable[[Any], Any], argument: Any) -> None:
    result = callback(argument)
    if inspect.isawaitable(result):
        await result


async def fetch_target(client: Any, target: Target) -> Snapshot:
    """One fetch of whatever a subscription watches."""
    if isinstance(target, DocumentReference):
        return await get_one(client, target)
    return await get_many(client, target)


class Subscription:
    """
    A running poll loop. State goes ACTIVE -> CANCELLED and never back;
    to listen again, call subscribe() again.
    """

    def __init__(
        self,
        client: Any,
        target: Target,
        on_next: NextCallback,
        on_error: Optional[ErrorCallback] = None,
        interval: Optional[float] = None,
    ):
        if interval is None:
            interval = settings.POLL_INTERVAL_SECONDS
        if interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval}")

        self.client = client
        self.target = target
        self.on_next = on_next
        self.on_error = on_error
        self.interval = interval
        self._state = SubscriptionState.ACTIVE
        self._stopped = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is SubscriptionState.ACTIVE

    def start(self) -> "Subscription":
        """Schedule the poll loop on the running event loop."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self

    def cancel(self) -> None:
        """Stop polling. Safe to call more than once."""
        if self._state is SubscriptionState.CANCELLED:
            return
        self._state = SubscriptionState.CANCELLED
        self._stopped.set()
        logger.debug(f"Subscription on {self.target.path} cancelled")

    __call__ = cancel

    async def wait_closed(self) -> None:
        """Wait until the poll loop has exited after cancel()."""
        if self._task is not None:
            await self._task

    async def _run(self) -> None:
        logger.debug(
            f"Subscription on {self.target.path} started (interval={self.interval}s)"
        )
        while self.active:
            await self.poll_once()
            if not self.active:
                break
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                continue

    async def poll_once(self) -> None:
        """Fetch once and deliver the snapshot (or the error)."""
        try:
            snapshot = await fetch_target(self.client, self.target)
        except Exception as e:
            if not self.active:
                return
            if self.on_error is None:
                logger.error(
                    f"Subscription fetch failed for {self.target.path}: {e}",
                    exc_info=True
                )
                return
            await self._deliver(self.on_error, e)
            return

        if not self.active:
            logger.debug(f"Dropping snapshot for cancelled subscription on {self.target.path}")
            return

        await self._deliver(self.on_next, snapshot)

    async def _deliver(self, callback: Callable[[Any], Any], argument: Any) -> None:
        # A failing callback must not end the poll loop
        try:
            await _invoke(callback, argument)
        except Exception as e:
            logger.error(
                f"Subscription callback raised for {self.target.path}: {e}",
                exc_info=True
            )


def subscribe(
    client: Any,
    target: Target,
    on_next: NextCallback,
    on_error: Optional[ErrorCallback] = None,
    interval: Optional[float] = None,
) -> Subscription:
    """
    Start watching a document, collection or query.

    Must be called from inside a running event loop. Callbacks may be plain
    functions or coroutine functions.

    Args:
        client: Supabase client
        target: DocumentReference, CollectionReference or Query
        on_next: Receives every snapshot, starting with an immediate fetch
        on_error: Receives fetch errors; without it errors are only logged
        interval: Seconds between polls (default settings.POLL_INTERVAL_SECONDS)

    Returns:
        The running Subscription; call cancel() (or the object itself) to stop.
    """
    return Subscription(client, target, on_next, on_error, interval).start()


def on_snapshot(
    client: Any,
    target: Target,
    observer: Any,
    on_error: Optional[ErrorCallback] = None,
) -> Callable[[], None]:
    """
    Listener entry point returning an unsubscribe callable.

    observer is either the on_next callable or an object/mapping with
    'next' and optional 'error' members.
    """
    if callable(observer):
        on_next = observer
    elif isinstance(observer, dict):
        on_next = observer["next"]
        on_error = observer.get("error", on_error)
    else:
        on_next = observer.next
        on_error = getattr(observer, "error", on_error)

    return subscribe(client, target, on_next, on_error).cancel
