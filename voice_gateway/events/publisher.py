"""In-process transcript publisher for live call observers."""

import asyncio
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

import structlog

logger = structlog.get_logger()

SUBSCRIBER_QUEUE_SIZE = 256

_END = object()


class Subscription:
    """
    In-order stream of events for one call.

    Iteration ends when the call is closed or the subscription is cancelled.
    """

    def __init__(self, publisher: "TranscriptPublisher", call_id: str) -> None:
        self.call_id = call_id
        self._publisher = publisher
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE)
        self._ended = False

    def _offer(self, item: Any) -> bool:
        try:
            self._queue.put_nowait(item)
            return True
        except asyncio.QueueFull:
            return False

    def _end(self) -> None:
        if self._ended:
            return
        self._ended = True
        if not self._offer(_END):
            # Make room for the terminator; the observer is already behind.
            self._queue.get_nowait()
            self._queue.put_nowait(_END)

    def __aiter__(self) -> AsyncIterator[dict]:
        return self

    async def __anext__(self) -> dict:
        item = await self._queue.get()
        if item is _END:
            raise StopAsyncIteration
        return item

    def cancel(self) -> None:
        """Stop receiving events."""
        self._publisher._unsubscribe(self)
        self._end()


class TranscriptPublisher:
    """
    Fans transcript and status events out to per-call subscribers.

    Event types:
    - user: {"type": "user", "text", "final"}
    - assistant: {"type": "assistant", "text", "final": True}
    - status: {"type": "status", "status": "started" | "stopped"}
    - error: {"type": "error", "stage", "message"}
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscription]] = {}
        self.logger = logger.bind(component="transcript_publisher")

    def subscribe(self, call_id: str) -> Subscription:
        subscription = Subscription(self, call_id)
        self._subscribers.setdefault(call_id, []).append(subscription)
        self.logger.debug("Observer subscribed", call_id=call_id)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        subs = self._subscribers.get(subscription.call_id)
        if not subs:
            return
        if subscription in subs:
            subs.remove(subscription)
        if not subs:
            self._subscribers.pop(subscription.call_id, None)

    async def publish(self, call_id: Optional[str], event: dict) -> None:
        """Deliver an event to every subscriber of the call."""
        if not call_id:
            return

        payload = {
            **event,
            "callId": call_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        for subscription in list(self._subscribers.get(call_id, ())):
            if not subscription._offer(payload):
                self.logger.warning(
                    "Observer queue full, dropping event",
                    call_id=call_id,
                    event_type=event.get("type"),
                )

    async def close(self, call_id: Optional[str]) -> None:
        """Signal that the call ended and release its subscribers."""
        if not call_id:
            return
        subs = self._subscribers.pop(call_id, [])
        for subscription in subs:
            subscription._end()
        if subs:
            self.logger.info("Call closed for observers", call_id=call_id, observers=len(subs))

    def subscriber_count(self, call_id: str) -> int:
        return len(self._subscribers.get(call_id, ()))
