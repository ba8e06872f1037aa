from stageflow.core.exceptions import StoreError

from helpers import RENTAL, BUILDER, stage_writes, deal_writes


def test_partial_completion_leaves_stage_alone(single_stage_deal, service):
    result = service.handle_task_completion("T1")

    assert result.stage_completed is False
    assert result.deal_completed is False
    assert (result.stage_id, result.deal_id, result.deal_type) == ("S1", "D1", RENTAL)
    assert stage_writes(single_stage_deal) == []
    assert single_stage_deal.get_stage("S1", RENTAL)["status"] == "in_progress"


def test_last_task_completes_stage_and_only_stage_completes_deal(single_stage_deal, service, today):
    store = single_stage_deal
    store.update_task_status("T2", "completed")

    result = service.handle_task_completion("T2")

    assert result.stage_completed is True
    assert result.deal_completed is True
    stage = store.get_stage("S1", RENTAL)
    deal = store.get_deal("D1", RENTAL)
    assert (stage["status"], stage["actual_end_date"]) == ("completed", today)
    assert (deal["status"], deal["actual_end_date"]) == ("completed", today)


def test_deal_waits_for_its_other_stages(single_stage_deal, service):
    store = single_stage_deal
    store.add_stage(RENTAL, "S2", "D1", status="pending", stage_order=2)
    store.add_task("T3", status="pending")
    store.assign(RENTAL, "S2", "T3")
    store.update_task_status("T2", "completed")

    result = service.handle_task_completion("T2")

    assert result.stage_completed is True
    assert result.deal_completed is False
    assert store.get_deal("D1", RENTAL)["status"] == "in_progress"


def test_later_stage_can_complete_before_earlier_one(store, service):
    store.add_deal(BUILDER, "D1")
    store.add_stage(BUILDER, "S1", "D1", stage_order=1)
    store.add_stage(BUILDER, "S2", "D1", stage_order=2)
    store.add_task("T1", status="pending")
    store.add_task("T2", status="completed")
    store.assign(BUILDER, "S1", "T1")
    store.assign(BUILDER, "S2", "T2")

    result = service.handle_task_completion("T2")

    assert result.stage_completed is True
    assert store.get_stage("S2", BUILDER)["status"] == "completed"
    assert store.get_stage("S1", BUILDER)["status"] == "pending"


def test_missing_task_returns_empty_result(store, service):
    result = service.handle_task_completion("ghost")

    assert result.model_dump() == {
        "stage_completed": False,
        "deal_completed": False,
        "stage_id": None,
        "deal_id": None,
        "deal_type": None,
    }


def test_task_lookup_failure_returns_empty_result(single_stage_deal, service, monkeypatch):
    def boom(task_id):
        raise StoreError("timeout", operation="get_task", record_id=task_id)

    monkeypatch.setattr(single_stage_deal, "get_task", boom)

    result = service.handle_task_completion("T1")

    assert result.stage_completed is False
    assert result.stage_id is None


def _task_in_both_taxonomies(store):
    store.add_task("T1", status="completed")
    store.add_deal(RENTAL, "RD", status="active")
    store.add_stage(RENTAL, "RS", "RD")
    store.assign(RENTAL, "RS", "T1")
    store.add_deal(BUILDER, "BD", status="active")
    store.add_stage(BUILDER, "BS", "BD")
    store.assign(BUILDER, "BS", "T1")


def test_both_taxonomies_are_evaluated(store, service):
    _task_in_both_taxonomies(store)

    result = service.handle_task_completion("T1")

    assert result.stage_completed is True
    assert result.deal_completed is True
    assert store.get_stage("RS", RENTAL)["status"] == "completed"
    assert store.get_deal("RD", RENTAL)["status"] == "completed"
    assert store.get_stage("BS", BUILDER)["status"] == "completed"
    assert store.get_deal("BD", BUILDER)["status"] == "completed"
    assert result.deal_type == BUILDER


def test_rental_write_failure_does_not_block_builder(store, service, monkeypatch):
    _task_in_both_taxonomies(store)
    original = store.update_stage

    def flaky(stage_id, deal_type, payload, expected_status=None):
        if deal_type == RENTAL:
            raise StoreError("constraint violation", operation="update_stage", record_id=stage_id)
        return original(stage_id, deal_type, payload, expected_status)

    monkeypatch.setattr(store, "update_stage", flaky)

    result = service.handle_task_completion("T1")

    assert store.get_stage("RS", RENTAL)["status"] == "pending"
    assert store.get_deal("RD", RENTAL)["status"] == "active"
    assert store.get_stage("BS", BUILDER)["status"] == "completed"
    assert store.get_deal("BD", BUILDER)["status"] == "completed"
    assert result.stage_completed is True
    assert result.deal_completed is True


def test_rental_listing_failure_does_not_block_builder(store, service, monkeypatch):
    _task_in_both_taxonomies(store)
    original = store.list_assignments_by_task

    def flaky(task_id, deal_type):
        if deal_type == RENTAL:
            raise StoreError("network down", operation="list_assignments_by_task", record_id=task_id)
        return original(task_id, deal_type)

    monkeypatch.setattr(store, "list_assignments_by_task", flaky)

    result = service.handle_task_completion("T1")

    assert store.get_stage("RS", RENTAL)["status"] == "pending"
    assert store.get_stage("BS", BUILDER)["status"] == "completed"
    assert result.deal_type == BUILDER


def test_multiple_stages_in_one_taxonomy_are_all_processed(store, service):
    store.add_task("T1", status="completed")
    store.add_deal(RENTAL, "D1")
    store.add_stage(RENTAL, "S1", "D1", stage_order=1)
    store.add_stage(RENTAL, "S2", "D1", stage_order=2)
    store.assign(RENTAL, "S1", "T1")
    store.assign(RENTAL, "S2", "T1")

    result = service.handle_task_completion("T1")

    assert store.get_stage("S1", RENTAL)["status"] == "completed"
    assert store.get_stage("S2", RENTAL)["status"] == "completed"
    assert result.deal_completed is True
    assert len(deal_writes(store)) >= 1
