"""
Shared constants and assertions for the stage/deal completion tests.
"""

from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

from stageflow.abstractions.memory_store import InMemoryPipelineStore
from stageflow.schemas.pipeline import DealType

RENTAL = DealType.RENTAL
BUILDER = DealType.BUILDER


def stage_writes(store: InMemoryPipelineStore) -> List[tuple]:
    return [w for w in store.writes if w[0].endswith("_deal_stages")]


def deal_writes(store: InMemoryPipelineStore) -> List[tuple]:
    return [w for w in store.writes if w[0].endswith("_deals")]


class FakeResponse:
    def __init__(self, data: Optional[List[Dict[str, Any]]] = None):
        self.data = data


class FakeRealtimeClient:
    """Async supabase client stand-in exposing only the realtime channel calls."""

    def __init__(self):
        self.channels: Dict[str, MagicMock] = {}
        self.removed: List[MagicMock] = []

    def channel(self, name: str) -> MagicMock:
        channel = MagicMock()
        channel.on_postgres_changes.return_value = channel
        channel.subscribe = AsyncMock(return_value=channel)
        self.channels[name] = channel
        return channel

    async def remove_channel(self, channel) -> None:
        self.removed.append(channel)

    def callback_for(self, table: str):
        return self.channels[f"stageflow-{table}"].on_postgres_changes.call_args.kwargs["callback"]


def realtime_payload(event_type: str, record=None, old_record=None, table: str = "tasks") -> Dict[str, Any]:
    """postgres_changes message body as delivered by Supabase Realtime."""
    return {
        "data": {
            "schema": "public",
            "table": table,
            "type": event_type,
            "record": record or {},
            "old_record": old_record or {},
            "commit_timestamp": "2026-03-01T10:00:00Z",
        },
        "ids": [1],
    }
