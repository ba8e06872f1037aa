from stageflow.schemas.pipeline import (
    TASKS_TABLE,
    CascadeResult,
    DealStatus,
    DealType,
    StageStatus,
    StageTaskDetail,
    TaskStatus,
    TaskStatusChange,
    TaskStatusUpdate,
)

__all__ = [
    "TASKS_TABLE",
    "CascadeResult",
    "DealStatus",
    "DealType",
    "StageStatus",
    "StageTaskDetail",
    "TaskStatus",
    "TaskStatusChange",
    "TaskStatusUpdate",
]
