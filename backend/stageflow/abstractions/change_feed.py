"""
Per-table change feed.
Stands in for the hosted database's row-level subscriptions: a writer publishes
INSERT/UPDATE/DELETE events and every subscriber of that table gets a copy on
its own queue.
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


@dataclass
class ChangeEvent:
    table: str
    event_type: str
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None
    record_id: Optional[str] = field(default=None)

    def __post_init__(self):
        if self.record_id is None:
            row = self.new or self.old or {}
            self.record_id = row.get("id")


class ChangeFeed:
    """Fan-out of change events keyed by table name"""

    def __init__(self):
        self._subscribers: Dict[str, List[queue.Queue]] = {}
        self._lock = threading.Lock()

    def subscribe(self, table: str) -> queue.Queue:
        channel: queue.Queue = queue.Queue()
        with self._lock:
            self._subscribers.setdefault(table, []).append(channel)
        logger.info(f"Subscribed to changes on {table}")
        return channel

    def unsubscribe(self, table: str, channel: queue.Queue) -> None:
        with self._lock:
            channels = self._subscribers.get(table, [])
            if channel in channels:
                channels.remove(channel)
            if not channels:
                self._subscribers.pop(table, None)
        logger.info(f"Unsubscribed from changes on {table}")

    def subscriber_count(self, table: str) -> int:
        with self._lock:
            return len(self._subscribers.get(table, []))

    def publish(self, event: ChangeEvent) -> int:
        """Deliver an event to every subscriber of its table. Returns the number of deliveries."""
        with self._lock:
            channels = list(self._subscribers.get(event.table, []))
        for channel in channels:
            channel.put(event)
        if channels:
            logger.debug(f"Published {event.event_type} on {event.table} ({event.record_id}) to {len(channels)} subscriber(s)")
        return len(channels)
