"""
Progress Broadcaster
Per-run publish/subscribe channel for analysis progress events
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, Set
from uuid import UUID

logger = logging.getLogger(__name__)

ProgressEvent = Dict[str, Any]

_CLOSED = object()


def progress_event(processed: int, total: int, current_prompt: str) -> ProgressEvent:
    return {
        "type": "progress",
        "processed": processed,
        "total": total,
        "currentPrompt": current_prompt,
    }


def complete_event(run_id: UUID) -> ProgressEvent:
    return {"type": "complete", "runId": str(run_id)}


def error_event(run_id: UUID, error: str) -> ProgressEvent:
    return {"type": "error", "runId": str(run_id), "error": error}


class ProgressBroadcaster:
    """
    Fans progress events out to every observer of a run.

    A channel exists between open() and close(). Observers only see events
    published after they subscribed; dropping an observer never blocks or
    affects the publisher.
    """

    def __init__(self):
        self._channels: Dict[str, Set[asyncio.Queue]] = {}

    @staticmethod
    def _key(run_id) -> str:
        return str(run_id)

    def is_open(self, run_id) -> bool:
        return self._key(run_id) in self._channels

    def open(self, run_id) -> None:
        self._channels.setdefault(self._key(run_id), set())

    def publish(self, run_id, event: ProgressEvent) -> None:
        """Deliver an event to current observers (no-op without a channel)"""
        for queue in self._channels.get(self._key(run_id), ()):
            queue.put_nowait(event)

    def close(self, run_id) -> None:
        """Tear down the channel; observers finish after draining"""
        observers = self._channels.pop(self._key(run_id), set())
        for queue in observers:
            queue.put_nowait(_CLOSED)
        if observers:
            logger.debug(f"Closed progress channel for run {run_id} ({len(observers)} observers)")

    def observer_count(self, run_id) -> int:
        return len(self._channels.get(self._key(run_id), ()))

    @asynccontextmanager
    async def listen(self, run_id) -> AsyncIterator[AsyncIterator[ProgressEvent]]:
        """
        Register an observer for the duration of the block and give the
        iterator of its events. Iteration ends when the channel closes, or at
        once when the run has no open channel. Leaving the block detaches the
        observer whether or not the iterator was ever started.
        """
        key = self._key(run_id)
        observers = self._channels.get(key)
        queue: Optional[asyncio.Queue] = None
        if observers is not None:
            queue = asyncio.Queue()
            observers.add(queue)

        try:
            yield self._drain(queue)
        finally:
            # Disconnect: detach without touching the run
            current = self._channels.get(key)
            if current is not None and queue is not None:
                current.discard(queue)

    @staticmethod
    async def _drain(queue: Optional[asyncio.Queue]) -> AsyncIterator[ProgressEvent]:
        if queue is None:
            return
        while True:
            event = await queue.get()
            if event is _CLOSED:
                return
            yield event
