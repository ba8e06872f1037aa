"""
Backend-agnostic abstractions for task, stage and deal persistence plus the
per-table change feed.
"""

from stageflow.abstractions.change_feed import (
    ChangeEvent,
    ChangeFeed,
)
from stageflow.abstractions.pipeline_store import (
    PipelineStore,
    SupabasePipelineStore,
)
from stageflow.abstractions.memory_store import InMemoryPipelineStore
from stageflow.abstractions.realtime_feed import SupabaseRealtimeFeed

__all__ = [
    "ChangeEvent",
    "ChangeFeed",
    "PipelineStore",
    "SupabasePipelineStore",
    "InMemoryPipelineStore",
    "SupabaseRealtimeFeed",
]
