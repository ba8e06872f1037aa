import pytest
from fastapi.testclient import TestClient

import stageflow.main as main_module
from stageflow.abstractions.change_feed import ChangeFeed
from stageflow.abstractions.realtime_feed import SupabaseRealtimeFeed, to_change_event
from stageflow.core.config import settings
from stageflow.core.database import supabase_service
from stageflow.core.dependencies import ServiceFactory
from stageflow.services.task_change_listener import RealtimeTaskListener

from helpers import RENTAL, FakeRealtimeClient, realtime_payload


def test_wire_payload_becomes_change_event():
    event = to_change_event(realtime_payload("UPDATE", {"id": "T1", "status": "completed"}, {"id": "T1"}))

    assert (event.table, event.event_type, event.record_id) == ("tasks", "UPDATE", "T1")
    assert event.old == {"id": "T1"}


def test_client_shaped_payload_is_accepted():
    event = to_change_event({"table": "tasks", "eventType": "DELETE", "new": {}, "old": {"id": "T9"}})

    assert event.event_type == "DELETE"
    assert event.new is None
    assert event.record_id == "T9"


def test_payload_without_row_change_is_ignored():
    assert to_change_event({"data": {"table": "tasks", "type": "SYSTEM"}}) is None
    assert to_change_event({"status": "ok"}) is None


@pytest.mark.asyncio
async def test_realtime_feed_subscribes_and_republishes():
    client = FakeRealtimeClient()
    feed = ChangeFeed()
    channel = feed.subscribe("tasks")
    realtime = SupabaseRealtimeFeed(client, feed)

    await realtime.start()
    subscription = client.channels["stageflow-tasks"]
    subscription.subscribe.assert_awaited_once()
    args, kwargs = subscription.on_postgres_changes.call_args
    assert args == ("*",)
    assert (kwargs["schema"], kwargs["table"]) == ("public", "tasks")

    client.callback_for("tasks")(realtime_payload("INSERT", {"id": "T1", "status": "pending"}))
    assert channel.get_nowait().record_id == "T1"

    await realtime.stop()
    assert client.removed == [subscription]


@pytest.mark.asyncio
async def test_realtime_status_change_reopens_completed_deal(store, status_service):
    store.add_deal(RENTAL, "D1", status="completed", actual_end_date="2026-03-01")
    store.add_stage(RENTAL, "S1", "D1", status="completed", actual_end_date="2026-03-01")
    store.add_task("T1", status="in_progress")
    store.assign(RENTAL, "S1", "T1")
    client = FakeRealtimeClient()
    task_listener = RealtimeTaskListener(client, status_service, poll_interval=0.01)

    await task_listener.start()
    client.callback_for("tasks")(
        realtime_payload("UPDATE", {"id": "T1", "status": "in_progress"}, {"id": "T1"})
    )
    await task_listener.stop()

    assert store.get_deal("D1", RENTAL)["status"] == "in_progress"
    assert store.get_stage("S1", RENTAL)["status"] == "in_progress"
    assert task_listener.feed.subscriber_count("tasks") == 0


@pytest.fixture
def quiet_startup(monkeypatch):
    monkeypatch.setattr(main_module, "setup_logging", lambda **kwargs: None)


def test_lifespan_runs_task_listener_when_enabled(quiet_startup, status_service, monkeypatch):
    client = FakeRealtimeClient()

    async def create_realtime_client():
        return client

    monkeypatch.setattr(settings, "TASK_LISTENER_ENABLED", True)
    monkeypatch.setattr(supabase_service, "create_realtime_client", create_realtime_client)
    monkeypatch.setattr(ServiceFactory, "create_task_status_service", staticmethod(lambda *a, **k: status_service))

    with TestClient(main_module.app):
        assert isinstance(main_module.app.state.task_listener, RealtimeTaskListener)
        client.channels["stageflow-tasks"].subscribe.assert_awaited_once()

    assert client.removed == [client.channels["stageflow-tasks"]]
    assert main_module.app.state.task_listener is None


def test_lifespan_skips_listener_without_supabase(quiet_startup, monkeypatch):
    async def create_realtime_client():
        return None

    monkeypatch.setattr(settings, "TASK_LISTENER_ENABLED", True)
    monkeypatch.setattr(supabase_service, "create_realtime_client", create_realtime_client)

    with TestClient(main_module.app):
        assert main_module.app.state.task_listener is None


def test_lifespan_leaves_listener_off_by_default(quiet_startup):
    with TestClient(main_module.app):
        assert main_module.app.state.task_listener is None
