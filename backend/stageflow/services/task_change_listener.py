"""
Task change listener
Consumes the ``tasks`` change feed and propagates status changes made by any
writer, the way the dashboard's live subscriptions did.  RealtimeTaskListener
runs it on a worker thread fed by the hosted database's realtime channel.
"""

import asyncio
import logging
import queue
import threading
from typing import Optional

from stageflow.abstractions.change_feed import DELETE, UPDATE, ChangeEvent, ChangeFeed
from stageflow.abstractions.realtime_feed import SupabaseRealtimeFeed
from stageflow.schemas.pipeline import TASKS_TABLE
from stageflow.services.task_status_service import TaskStatusService

logger = logging.getLogger(__name__)


class TaskChangeListener:

    def __init__(self, feed: ChangeFeed, status_service: TaskStatusService):
        self.feed = feed
        self.status_service = status_service
        self._channel: Optional[queue.Queue] = None

    def start(self) -> None:
        if self._channel is None:
            self._channel = self.feed.subscribe(TASKS_TABLE)

    def stop(self) -> None:
        if self._channel is not None:
            self.feed.unsubscribe(TASKS_TABLE, self._channel)
            self._channel = None

    def handle_event(self, event: ChangeEvent) -> bool:
        """Dispatch one event. Returns True if it triggered any propagation."""
        if event.table != TASKS_TABLE:
            return False

        if event.event_type == UPDATE:
            new = event.new or {}
            # realtime old rows hold only the key unless the table has REPLICA IDENTITY FULL
            previous = (event.old or {}).get("status")
            if not new.get("id") or new.get("status") == previous:
                return False
            self.status_service.propagate(new["id"], previous, new["status"])
            return True

        if event.event_type == DELETE:
            task_id = (event.old or {}).get("id")
            if not task_id:
                return False
            self.status_service.completion_service.detach_task(task_id)
            return True

        return False

    def drain(self) -> int:
        """Process every queued event without blocking. Returns the number handled."""
        self.start()
        handled = 0
        while True:
            try:
                event = self._channel.get_nowait()
            except queue.Empty:
                return handled
            self._safe_handle(event)
            handled += 1

    def run(self, stop_event: threading.Event, poll_interval: float = 0.5) -> None:
        """Block processing events until stop_event is set."""
        self.start()
        logger.info("Task change listener running")
        while not stop_event.is_set():
            try:
                event = self._channel.get(timeout=poll_interval)
            except queue.Empty:
                continue
            self._safe_handle(event)
        logger.info("Task change listener stopped")

    def _safe_handle(self, event: ChangeEvent) -> None:
        try:
            self.handle_event(event)
        except Exception as e:
            logger.error(f"Error handling {event.event_type} on {event.table} ({event.record_id}): {e}", exc_info=True)


class RealtimeTaskListener:
    """TaskChangeListener on a worker thread, fed by Supabase Realtime.

    Propagation runs on the worker so the synchronous store calls never block
    the event loop that receives the realtime messages.
    """

    def __init__(self, realtime_client, status_service: TaskStatusService, poll_interval: float = 0.5):
        self.feed = ChangeFeed()
        self.listener = TaskChangeListener(self.feed, status_service)
        self.realtime = SupabaseRealtimeFeed(realtime_client, self.feed, tables=(TASKS_TABLE,))
        self.poll_interval = poll_interval
        self._stop_event = threading.Event()
        self._worker: Optional[threading.Thread] = None

    async def start(self) -> None:
        # subscribe to the local feed before the first realtime message can arrive
        self.listener.start()
        await self.realtime.start()
        self._stop_event.clear()
        self._worker = threading.Thread(
            target=self.listener.run,
            args=(self._stop_event,),
            kwargs={"poll_interval": self.poll_interval},
            name="task-change-listener",
            daemon=True,
        )
        self._worker.start()

    async def stop(self, timeout: float = 5.0) -> None:
        await self.realtime.stop()
        self._stop_event.set()
        if self._worker is not None:
            await asyncio.to_thread(self._worker.join, timeout)
            self._worker = None
        remaining = self.listener.drain()
        if remaining:
            logger.info(f"Processed {remaining} queued task change(s) on shutdown")
        self.listener.stop()
