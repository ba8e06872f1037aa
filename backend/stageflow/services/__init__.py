from stageflow.services.stage_completion_service import StageCompletionService
from stageflow.services.task_status_service import TaskStatusService
from stageflow.services.task_change_listener import RealtimeTaskListener, TaskChangeListener

__all__ = [
    "StageCompletionService",
    "TaskStatusService",
    "TaskChangeListener",
    "RealtimeTaskListener",
]
