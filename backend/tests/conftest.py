"""
Pytest fixtures for stage/deal completion tests.
"""

from datetime import datetime, timezone
from typing import Optional
from unittest.mock import MagicMock

import pytest

from stageflow.abstractions.change_feed import ChangeFeed
from stageflow.abstractions.memory_store import InMemoryPipelineStore
from stageflow.services.stage_completion_service import StageCompletionService
from stageflow.services.task_status_service import TaskStatusService

from helpers import RENTAL, FakeResponse


@pytest.fixture
def today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def store(feed):
    """Empty in-memory store wired to the feed fixture."""
    return InMemoryPipelineStore(feed=feed)


@pytest.fixture
def service(store):
    return StageCompletionService(store)


@pytest.fixture
def status_service(service):
    return TaskStatusService(service)


@pytest.fixture
def single_stage_deal(store):
    """Rental deal D1 with one stage S1 holding tasks T1 (completed) and T2 (pending)."""
    store.add_deal(RENTAL, "D1", status="in_progress")
    store.add_stage(RENTAL, "S1", "D1", status="in_progress", stage_order=1)
    store.add_task("T1", status="completed", task_name="Collect documents")
    store.add_task("T2", status="pending", task_name="Site visit")
    store.assign(RENTAL, "S1", "T1")
    store.assign(RENTAL, "S1", "T2")
    return store


@pytest.fixture
def mock_supabase():
    """Supabase client whose query builder chains onto itself.

    ``client.builder`` is the shared builder: inspect its calls for what was
    built, or reset ``execute`` to control what queries return.
    """

    def _make(data=None, error: Optional[Exception] = None):
        client = MagicMock()
        builder = MagicMock()
        for method in ("select", "eq", "in_", "limit", "order", "range", "update", "delete", "insert"):
            getattr(builder, method).return_value = builder
        if error is not None:
            builder.execute.side_effect = error
        else:
            builder.execute.return_value = FakeResponse(data)
        client.table.return_value = builder
        client.builder = builder
        return client

    return _make
