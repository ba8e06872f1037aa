from pydantic import BaseModel
from typing import Optional, Dict, Any
from enum import Enum


class TaskStatus(str, Enum):
    NOT_STARTED = "not_started"
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"


class StageStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class DealStatus(str, Enum):
    ACTIVE = "active"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DealType(str, Enum):
    """Deal taxonomy. Both taxonomies share one table layout."""
    RENTAL = "rental"
    BUILDER = "builder"

    @property
    def assignment_table(self) -> str:
        return f"{self.value}_stage_assignments"

    @property
    def stage_table(self) -> str:
        return f"{self.value}_deal_stages"

    @property
    def deal_table(self) -> str:
        return f"{self.value}_deals"


TASKS_TABLE = "tasks"


class CascadeResult(BaseModel):
    """Outcome of one propagation run.

    For reopening the flags mean "was reverted"; for projection
    ``stage_completed`` means "a stage row was written".  The ids are those of
    the last processed assignment, not an enumeration of every affected row.
    """
    stage_completed: bool = False
    deal_completed: bool = False
    stage_id: Optional[str] = None
    deal_id: Optional[str] = None
    deal_type: Optional[DealType] = None


class StageTaskDetail(BaseModel):
    task_id: Optional[str] = None
    member_id: Optional[str] = None
    member_name: Optional[str] = None
    task: Optional[Dict[str, Any]] = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskStatusChange(BaseModel):
    task_id: str
    previous_status: Optional[str] = None
    status: str
    completion: Optional[CascadeResult] = None
    reopening: Optional[CascadeResult] = None
    projection: CascadeResult
