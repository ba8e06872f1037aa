"""
In-memory PipelineStore.
Same semantics as the Supabase store (copies out, compare-and-swap updates,
None for missing rows) and publishes every write to an optional ChangeFeed.
"""

import copy
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from stageflow.abstractions.change_feed import DELETE, INSERT, UPDATE, ChangeEvent, ChangeFeed
from stageflow.abstractions.pipeline_store import PipelineStore
from stageflow.schemas.pipeline import TASKS_TABLE, DealType

logger = logging.getLogger(__name__)

MEMBERS_TABLE = "members"


class InMemoryPipelineStore(PipelineStore):

    def __init__(self, feed: Optional[ChangeFeed] = None):
        self._feed = feed
        self._lock = threading.RLock()
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {TASKS_TABLE: {}, MEMBERS_TABLE: {}}
        for deal_type in DealType:
            for table in (deal_type.assignment_table, deal_type.stage_table, deal_type.deal_table):
                self._tables[table] = {}
        # (table, id, payload) for every successful write
        self.writes: List[Tuple[str, str, Dict[str, Any]]] = []

    # ---------- seeding ----------

    def add_task(self, task_id: str, status: str = "not_started", **fields) -> Dict[str, Any]:
        return self._insert(TASKS_TABLE, {"id": task_id, "status": status, **fields})

    def add_member(self, member_id: str, name: str) -> Dict[str, Any]:
        return self._insert(MEMBERS_TABLE, {"id": member_id, "name": name})

    def add_deal(self, deal_type: DealType, deal_id: str, status: str = "active", **fields) -> Dict[str, Any]:
        row = {"id": deal_id, "status": status, "actual_end_date": None, **fields}
        return self._insert(deal_type.deal_table, row)

    def add_stage(
        self,
        deal_type: DealType,
        stage_id: str,
        deal_id: str,
        status: str = "pending",
        stage_order: int = 0,
        **fields,
    ) -> Dict[str, Any]:
        row = {
            "id": stage_id,
            "deal_id": deal_id,
            "status": status,
            "stage_order": stage_order,
            "actual_end_date": None,
            **fields,
        }
        return self._insert(deal_type.stage_table, row)

    def assign(
        self,
        deal_type: DealType,
        stage_id: str,
        task_id: Optional[str],
        member_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        row = {"id": str(uuid.uuid4()), "stage_id": stage_id, "task_id": task_id, "member_id": member_id}
        return self._insert(deal_type.assignment_table, row)

    def delete_task(self, task_id: str) -> bool:
        with self._lock:
            row = self._tables[TASKS_TABLE].pop(task_id, None)
        if row is None:
            return False
        self._publish(ChangeEvent(TASKS_TABLE, DELETE, old=copy.deepcopy(row)))
        return True

    # ---------- internals ----------

    def _insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            self._tables[table][row["id"]] = copy.deepcopy(row)
        self._publish(ChangeEvent(table, INSERT, new=copy.deepcopy(row)))
        return copy.deepcopy(row)

    def _publish(self, event: ChangeEvent) -> None:
        if self._feed is not None:
            self._feed.publish(event)

    def _rows(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(row) for row in self._tables[table].values()]

    def _get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._tables[table].get(record_id)
            return copy.deepcopy(row) if row is not None else None

    def _update(
        self,
        table: str,
        record_id: str,
        payload: Dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._tables[table].get(record_id)
            if row is None:
                return None
            if expected_status is not None and row.get("status") != expected_status:
                return None
            old = copy.deepcopy(row)
            row.update(payload)
            new = copy.deepcopy(row)
            self.writes.append((table, record_id, dict(payload)))
        self._publish(ChangeEvent(table, UPDATE, new=copy.deepcopy(new), old=old))
        return new

    # ---------- TASKS ----------

    def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        return self._get(TASKS_TABLE, task_id)

    def get_tasks(self, task_ids: Iterable[str]) -> List[Dict[str, Any]]:
        wanted = set(task_ids)
        return [row for row in self._rows(TASKS_TABLE) if row["id"] in wanted]

    def update_task_status(self, task_id: str, status: str) -> Optional[Dict[str, Any]]:
        payload = {"status": status, "updated_at": datetime.now(timezone.utc).isoformat()}
        return self._update(TASKS_TABLE, task_id, payload)

    def list_tasks_by_status(self, status: str) -> List[Dict[str, Any]]:
        return [row for row in self._rows(TASKS_TABLE) if row.get("status") == status]

    # ---------- ASSIGNMENTS ----------

    def list_assignments_by_task(self, task_id: str, deal_type: DealType) -> List[Dict[str, Any]]:
        result = []
        for row in self._rows(deal_type.assignment_table):
            if row.get("task_id") != task_id:
                continue
            stage = self._get(deal_type.stage_table, row["stage_id"])
            result.append({
                "stage_id": row["stage_id"],
                "task_id": row["task_id"],
                "member_id": row.get("member_id"),
                "deal_id": stage["deal_id"] if stage else None,
            })
        return result

    def list_assignments_by_stage(self, stage_id: str, deal_type: DealType) -> List[Dict[str, Any]]:
        return [
            {"stage_id": row["stage_id"], "task_id": row.get("task_id"), "member_id": row.get("member_id")}
            for row in self._rows(deal_type.assignment_table)
            if row.get("stage_id") == stage_id
        ]

    def list_assigned_task_ids(self, deal_type: DealType, task_ids: Iterable[str]) -> Set[str]:
        wanted = set(task_ids)
        return {row["task_id"] for row in self._rows(deal_type.assignment_table) if row.get("task_id") in wanted}

    def delete_assignments_for_task(self, task_id: str, deal_type: DealType) -> int:
        table = deal_type.assignment_table
        with self._lock:
            removed = [row for row in self._tables[table].values() if row.get("task_id") == task_id]
            for row in removed:
                del self._tables[table][row["id"]]
        for row in removed:
            self._publish(ChangeEvent(table, DELETE, old=copy.deepcopy(row)))
        return len(removed)

    def get_stage_task_details(self, stage_id: str, deal_type: DealType) -> List[Dict[str, Any]]:
        details = []
        for assignment in self.list_assignments_by_stage(stage_id, deal_type):
            task_id = assignment.get("task_id")
            member_id = assignment.get("member_id")
            member = self._get(MEMBERS_TABLE, member_id) if member_id else None
            details.append({
                "task_id": task_id,
                "member_id": member_id,
                "members": {"name": member["name"]} if member else None,
                "tasks": self._get(TASKS_TABLE, task_id) if task_id else None,
            })
        return details

    # ---------- STAGES ----------

    def get_stage(self, stage_id: str, deal_type: DealType) -> Optional[Dict[str, Any]]:
        return self._get(deal_type.stage_table, stage_id)

    def list_stages_by_deal(self, deal_id: str, deal_type: DealType) -> List[Dict[str, Any]]:
        stages = [row for row in self._rows(deal_type.stage_table) if row.get("deal_id") == deal_id]
        return sorted(stages, key=lambda row: row.get("stage_order") or 0)

    def update_stage(
        self,
        stage_id: str,
        deal_type: DealType,
        payload: Dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> bool:
        return self._update(deal_type.stage_table, stage_id, payload, expected_status) is not None

    # ---------- DEALS ----------

    def get_deal(self, deal_id: str, deal_type: DealType) -> Optional[Dict[str, Any]]:
        return self._get(deal_type.deal_table, deal_id)

    def update_deal(
        self,
        deal_id: str,
        deal_type: DealType,
        payload: Dict[str, Any],
        expected_status: Optional[str] = None,
    ) -> bool:
        return self._update(deal_type.deal_table, deal_id, payload, expected_status) is not None
