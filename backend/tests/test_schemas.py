import pytest
from pydantic import ValidationError

from stageflow import schemas
from stageflow.schemas.pipeline import CascadeResult, DealType, TaskStatusUpdate


def test_deal_type_names_its_tables():
    assert DealType.RENTAL.assignment_table == "rental_stage_assignments"
    assert DealType.BUILDER.stage_table == "builder_deal_stages"
    assert DealType.BUILDER.deal_table == "builder_deals"


def test_rows_travel_as_dicts_so_only_api_models_are_exported():
    assert set(schemas.__all__) == {
        "TASKS_TABLE",
        "CascadeResult",
        "DealStatus",
        "DealType",
        "StageStatus",
        "StageTaskDetail",
        "TaskStatus",
        "TaskStatusChange",
        "TaskStatusUpdate",
    }
    assert not hasattr(schemas, "Task")


def test_status_update_body_rejects_unknown_status():
    with pytest.raises(ValidationError):
        TaskStatusUpdate(status="done")


def test_cascade_result_serializes_deal_type_value():
    result = CascadeResult(stage_completed=True, deal_type=DealType.RENTAL)

    assert result.model_dump(mode="json")["deal_type"] == "rental"
