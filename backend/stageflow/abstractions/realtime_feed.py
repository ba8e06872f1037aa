"""
Supabase Realtime to ChangeFeed bridge.
Subscribes to ``postgres_changes`` on the watched tables and republishes each
row change as a ChangeEvent, so listeners work the same against the hosted
database as against the in-memory store.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from stageflow.abstractions.change_feed import DELETE, INSERT, UPDATE, ChangeEvent, ChangeFeed
from stageflow.schemas.pipeline import TASKS_TABLE

logger = logging.getLogger(__name__)

EVENT_TYPES = (INSERT, UPDATE, DELETE)


def to_change_event(payload: Dict[str, Any]) -> Optional[ChangeEvent]:
    """Convert a realtime ``postgres_changes`` payload into a ChangeEvent.

    Accepts the wire shape (``data.type``, ``data.record``, ``data.old_record``)
    as well as the client-side shape (``eventType``, ``new``, ``old``).
    Without REPLICA IDENTITY FULL the old row only carries the primary key.
    """
    data = payload.get("data") or payload
    table = data.get("table")
    event_type = data.get("type") or data.get("eventType")
    if not table or event_type not in EVENT_TYPES:
        return None

    new = data["record"] if "record" in data else data.get("new")
    old = data["old_record"] if "old_record" in data else data.get("old")
    return ChangeEvent(table, event_type, new=new or None, old=old or None)


class SupabaseRealtimeFeed:
    """Feeds a ChangeFeed from Supabase Realtime channels, one per table."""

    def __init__(
        self,
        client,
        feed: ChangeFeed,
        tables: Iterable[str] = (TASKS_TABLE,),
        schema: str = "public",
    ):
        self._client = client
        self.feed = feed
        self.tables = tuple(tables)
        self.schema = schema
        self._channels: List[Any] = []

    async def start(self) -> None:
        for table in self.tables:
            channel = self._client.channel(f"stageflow-{table}")
            channel.on_postgres_changes("*", schema=self.schema, table=table, callback=self._on_change)
            await channel.subscribe()
            self._channels.append(channel)
            logger.info(f"Realtime subscription on {self.schema}.{table} started")

    async def stop(self) -> None:
        channels, self._channels = self._channels, []
        for channel in channels:
            await self._client.remove_channel(channel)
        if channels:
            logger.info(f"Closed {len(channels)} realtime subscription(s)")

    def _on_change(self, payload: Dict[str, Any]) -> None:
        event = to_change_event(payload)
        if event is None:
            logger.debug(f"Ignoring realtime payload without a row change: {payload}")
            return
        self.feed.publish(event)
