"""
Task / stage / deal persistence abstraction.
Implementations: Supabase (production), in-memory (local runs and tests).

Not-found is reported as None or an empty list. Backend failures are raised as
StoreError so callers can decide whether a step failed or simply found nothing.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

import logging

from stageflow.core.exceptions import StoreError
from stageflow.schemas.pipeline import TASKS_TABLE, DealType

logger = logging.getLogger(__name__)

# PostgREST's default max-rows
PAGE_SIZE = 1000
# ids per in_() filter, keeps the request URL short
IN_FILTER_CHUNK = 200


class PipelineStore(ABC):
    """Interface for tasks, stage assignments, stages and deals."""

    # ---------- TASKS ----------

    @abstractmethod
    def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        """Get a task by id. Returns None if not found."""
        pass

    @abstractmethod
    def get_tasks(self, task_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Get the tasks whose ids are listed. Missing ids are skipped."""
        pass

    @abstractmethod
    def update_task_status(self, task_id: str, status: str) -> Optional[Dict[str, Any]]:
        """Persist a task's status. Returns the updated row, None if not found."""
        pass

    @abstractmethod
    def list_tasks_by_status(self, status: str) -> List[Dict[str, Any]]:
        """Every task with that status, however many rows that is."""
        pass

    # ---------- ASSIGNMENTS ----------

    @abstractmethod
    def list_assignments_by_task(self, task_id: str, deal_type: DealType) -> List[Dict[str, Any]]:
        """Assignments of a task, each carrying its stage's ``deal_id``."""
        pass

    @abstractmethod
    def list_assignments_by_stage(self, stage_id: str, deal_type: DealType) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def list_assigned_task_ids(self, deal_type: DealType, task_ids: Iterable[str]) -> Set[str]:
        """The subset of ``task_ids`` holding at least one assignment in the taxonomy."""
        pass

    @abstractmethod
    def delete_assignments_for_task(self, task_id: str, deal_type: DealType) -> int:
        """Delete every assignment of a task. Returns the number of rows removed."""
        pass

    @abstractmethod
    def get_stage_task_details(self, stage_id: str, deal_type: DealType) -> List[Dict[str, Any]]:
        """Assignments of a stage with nested ``tasks`` and ``members`` rows."""
        pass

    # ---------- STAGES ----------

    @abstractmethod
    def get_stage(self, stage_id: str, deal_type: DealType) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def list_stages_by_deal(self, deal_id: str, deal_type: DealType) -> List[Dict[str, Any]]:
        """Stages of a deal ordered by ``stage_order``."""
        pass

    @abstractmethod
    def update_stage(
        self,
        stage_id: str,
        deal_type: DealType,
        payload: Dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> bool:
        """Partial update of a stage.

        With ``expected_status`` the write only applies while the stored status
        still equals it (compare-and-swap).  Returns True if a row was written.
        """
        pass

    # ---------- DEALS ----------

    @abstractmethod
    def get_deal(self, deal_id: str, deal_type: DealType) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def update_deal(
        self,
        deal_id: str,
        deal_type: DealType,
        payload: Dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> bool:
        """Same contract as update_stage, on the taxonomy's deal table."""
        pass


def _flatten_assignment(row: Dict[str, Any]) -> Dict[str, Any]:
    stage = row.get("stage")
    # PostgREST returns an object for many-to-one embeds, older clients a list
    if isinstance(stage, list):
        stage = stage[0] if stage else None
    return {
        "stage_id": row.get("stage_id"),
        "task_id": row.get("task_id"),
        "member_id": row.get("member_id"),
        "deal_id": (stage or {}).get("deal_id"),
    }


class SupabasePipelineStore(PipelineStore):
    """Supabase implementation over tasks and the rental/builder stage tables."""

    def __init__(self, client):
        self._client = client

    def _run(self, operation: str, table: str, record_id: Optional[str], build: Callable[[], Any]):
        try:
            return build().execute()
        except Exception as e:
            logger.error(f"{operation} on {table} ({record_id}) failed: {e}")
            raise StoreError(str(e), operation=operation, table=table, record_id=record_id) from e

    def _run_paged(self, operation: str, table: str, build: Callable[[], Any]) -> List[Dict[str, Any]]:
        """Fetch every row of an ordered query in ``.range()`` windows.

        The offset advances by the rows actually returned, so a server row cap
        smaller than PAGE_SIZE still reads the whole result.  Stops on an empty page.
        """
        rows: List[Dict[str, Any]] = []
        while True:
            offset = len(rows)
            r = self._run(operation, table, None, lambda: build().range(offset, offset + PAGE_SIZE - 1))
            page = r.data or []
            if not page:
                return rows
            rows.extend(page)

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    # ---------- TASKS ----------

    def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        r = self._run(
            "get_task", TASKS_TABLE, task_id,
            lambda: self._client.table(TASKS_TABLE)
            .select("id, status, task_name, project_id, priority, due_date")
            .eq("id", task_id)
            .limit(1),
        )
        return r.data[0] if r.data else None

    def get_tasks(self, task_ids: Iterable[str]) -> List[Dict[str, Any]]:
        ids = list(task_ids)
        if not ids:
            return []
        r = self._run(
            "get_tasks", TASKS_TABLE, None,
            lambda: self._client.table(TASKS_TABLE).select("id, status, task_name").in_("id", ids),
        )
        return list(r.data or [])

    def update_task_status(self, task_id: str, status: str) -> Optional[Dict[str, Any]]:
        r = self._run(
            "update_task_status", TASKS_TABLE, task_id,
            lambda: self._client.table(TASKS_TABLE)
            .update({"status": status, "updated_at": self._now()})
            .eq("id", task_id),
        )
        return r.data[0] if r.data else None

    def list_tasks_by_status(self, status: str) -> List[Dict[str, Any]]:
        return self._run_paged(
            "list_tasks_by_status", TASKS_TABLE,
            lambda: self._client.table(TASKS_TABLE).select("id, status, task_name").eq("status", status).order("id"),
        )

    # ---------- ASSIGNMENTS ----------

    def list_assignments_by_task(self, task_id: str, deal_type: DealType) -> List[Dict[str, Any]]:
        table = deal_type.assignment_table
        r = self._run(
            "list_assignments_by_task", table, task_id,
            lambda: self._client.table(table)
            .select(f"stage_id, task_id, member_id, stage:{deal_type.stage_table}(deal_id)")
            .eq("task_id", task_id),
        )
        return [_flatten_assignment(row) for row in (r.data or [])]

    def list_assignments_by_stage(self, stage_id: str, deal_type: DealType) -> List[Dict[str, Any]]:
        table = deal_type.assignment_table
        r = self._run(
            "list_assignments_by_stage", table, stage_id,
            lambda: self._client.table(table).select("stage_id, task_id, member_id").eq("stage_id", stage_id),
        )
        return list(r.data or [])

    def list_assigned_task_ids(self, deal_type: DealType, task_ids: Iterable[str]) -> Set[str]:
        table = deal_type.assignment_table
        ids = sorted(set(task_ids))
        assigned: Set[str] = set()
        for start in range(0, len(ids), IN_FILTER_CHUNK):
            chunk = ids[start:start + IN_FILTER_CHUNK]
            rows = self._run_paged(
                "list_assigned_task_ids", table,
                lambda: self._client.table(table).select("task_id").in_("task_id", chunk).order("task_id"),
            )
            assigned.update(row["task_id"] for row in rows if row.get("task_id"))
        return assigned

    def delete_assignments_for_task(self, task_id: str, deal_type: DealType) -> int:
        table = deal_type.assignment_table
        r = self._run(
            "delete_assignments_for_task", table, task_id,
            lambda: self._client.table(table).delete().eq("task_id", task_id),
        )
        return len(r.data or [])

    def get_stage_task_details(self, stage_id: str, deal_type: DealType) -> List[Dict[str, Any]]:
        table = deal_type.assignment_table
        r = self._run(
            "get_stage_task_details", table, stage_id,
            lambda: self._client.table(table)
            .select(
                "task_id, member_id, members:member_id(name), "
                "tasks:task_id(id, task_name, status, priority, due_date, description, progress)"
            )
            .eq("stage_id", stage_id),
        )
        return list(r.data or [])

    # ---------- STAGES ----------

    def get_stage(self, stage_id: str, deal_type: DealType) -> Optional[Dict[str, Any]]:
        table = deal_type.stage_table
        r = self._run(
            "get_stage", table, stage_id,
            lambda: self._client.table(table)
            .select("id, deal_id, status, stage_order, actual_end_date")
            .eq("id", stage_id)
            .limit(1),
        )
        return r.data[0] if r.data else None

    def list_stages_by_deal(self, deal_id: str, deal_type: DealType) -> List[Dict[str, Any]]:
        table = deal_type.stage_table
        r = self._run(
            "list_stages_by_deal", table, deal_id,
            lambda: self._client.table(table)
            .select("id, deal_id, status, stage_order, actual_end_date")
            .eq("deal_id", deal_id)
            .order("stage_order"),
        )
        return list(r.data or [])

    def update_stage(
        self,
        stage_id: str,
        deal_type: DealType,
        payload: Dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> bool:
        return self._guarded_update("update_stage", deal_type.stage_table, stage_id, payload, expected_status)

    # ---------- DEALS ----------

    def get_deal(self, deal_id: str, deal_type: DealType) -> Optional[Dict[str, Any]]:
        table = deal_type.deal_table
        r = self._run(
            "get_deal", table, deal_id,
            lambda: self._client.table(table).select("id, status, actual_end_date").eq("id", deal_id).limit(1),
        )
        return r.data[0] if r.data else None

    def update_deal(
        self,
        deal_id: str,
        deal_type: DealType,
        payload: Dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> bool:
        return self._guarded_update("update_deal", deal_type.deal_table, deal_id, payload, expected_status)

    def _guarded_update(
        self,
        operation: str,
        table: str,
        record_id: str,
        payload: Dict[str, Any],
        expected_status: Optional[str],
    ) -> bool:
        """UPDATE ... WHERE id = $1 [AND status = $2]; a write counts only if a row comes back."""

        def build():
            q = self._client.table(table).update(payload).eq("id", record_id)
            if expected_status is not None:
                q = q.eq("status", expected_status)
            return q

        r = self._run(operation, table, record_id, build)
        written = bool(r.data and len(r.data) > 0)
        if not written and expected_status is not None:
            logger.info(f"{operation}({record_id}): status no longer '{expected_status}', skipped")
        return written
