from stageflow.core.exceptions import StoreError

from helpers import RENTAL, BUILDER, stage_writes


def _seed(store):
    store.add_deal(RENTAL, "RD")
    store.add_stage(RENTAL, "RS1", "RD", stage_order=1)
    store.add_stage(RENTAL, "RS2", "RD", stage_order=2)
    store.add_deal(BUILDER, "BD")
    store.add_stage(BUILDER, "BS1", "BD", stage_order=1)

    store.add_task("T-rental", status="completed")
    store.add_task("T-builder", status="completed")
    store.add_task("T-open", status="in_progress")
    store.add_task("T-unassigned", status="completed")

    store.assign(RENTAL, "RS1", "T-rental")
    store.assign(BUILDER, "BS1", "T-builder")
    store.assign(RENTAL, "RS2", "T-open")


def test_resync_completes_stages_of_completed_tasks(store, service, today):
    _seed(store)

    assert service.sync_all_completed_tasks_with_stages() is None

    assert store.get_stage("RS1", RENTAL)["status"] == "completed"
    assert store.get_stage("RS1", RENTAL)["actual_end_date"] == today
    assert store.get_stage("BS1", BUILDER)["status"] == "completed"
    # tasks that are not completed are left to their own status changes
    assert store.get_stage("RS2", RENTAL)["status"] == "pending"


def test_resync_is_idempotent(store, service):
    _seed(store)

    service.sync_all_completed_tasks_with_stages()
    first_round = len(stage_writes(store))
    service.sync_all_completed_tasks_with_stages()

    assert first_round == 2
    assert len(stage_writes(store)) == first_round


def test_resync_skips_failing_task_and_continues(store, service, monkeypatch):
    _seed(store)
    original = service.projector.sync_task_status_with_stage

    def flaky(task_id):
        if task_id == "T-rental":
            raise RuntimeError("unexpected payload")
        return original(task_id)

    monkeypatch.setattr(service.projector, "sync_task_status_with_stage", flaky)

    service.sync_all_completed_tasks_with_stages()

    assert store.get_stage("RS1", RENTAL)["status"] == "pending"
    assert store.get_stage("BS1", BUILDER)["status"] == "completed"


def test_resync_survives_listing_failure(store, service, monkeypatch):
    _seed(store)

    def boom(status):
        raise StoreError("network down", operation="list_tasks_by_status")

    monkeypatch.setattr(store, "list_tasks_by_status", boom)

    service.sync_all_completed_tasks_with_stages()

    assert stage_writes(store) == []


def test_resync_looks_up_assignments_only_for_completed_tasks(store, service, monkeypatch):
    _seed(store)
    looked_up = []
    original = store.list_assigned_task_ids

    def recording(deal_type, task_ids):
        task_ids = list(task_ids)
        looked_up.append((deal_type, sorted(task_ids)))
        return original(deal_type, task_ids)

    monkeypatch.setattr(store, "list_assigned_task_ids", recording)

    service.sync_all_completed_tasks_with_stages()

    expected = sorted(["T-rental", "T-builder", "T-unassigned"])
    assert looked_up == [(RENTAL, expected), (BUILDER, expected)]
