"""
Pipeline Run Repository - Folio Pipeline Engine
folio/repositories/pipeline_run_repository.py

Append-only audit trail of step executions (table pipeline_runs).

Every transition is a guarded UPDATE: it only applies from the states it is
valid from, so re-applying it (a retried mark_running, a duplicate delivery)
leaves a single consistent record. started_at and completed_at are written
once via COALESCE.
"""

import logging
from typing import Any, Dict, List, Optional

from folio.models.enumerations import RunStatus, StepKind
from folio.models.pipeline import PipelineRun
from folio.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, user_id, kind, status, input, output, error, attempts,
    started_at, completed_at, created_at, updated_at
"""


class PipelineRunRepository(BaseRepository):
    """Repository for pipeline_runs."""

    def _to_run(self, row: Optional[Dict[str, Any]]) -> Optional[PipelineRun]:
        if not row:
            return None
        data = self.row_to_dict(row)
        data["input"] = self.from_variant(data.get("input")) or {}
        data["output"] = self.from_variant(data.get("output"))
        for ts in ("started_at", "completed_at", "created_at", "updated_at"):
            data[ts] = self.normalize_timestamp(data.get(ts))
        return PipelineRun.model_validate(data)

    # =====================================================================
    # Writes
    # =====================================================================

    def create_run(self, run: PipelineRun) -> PipelineRun:
        """Insert a queued run. Re-inserting the same id is a no-op."""
        sql = """
        MERGE INTO pipeline_runs t
        USING (
            SELECT %s AS id, %s AS user_id, %s AS kind, PARSE_JSON(%s) AS input
        ) s
        ON t.id = s.id
        WHEN NOT MATCHED THEN INSERT (
            id, user_id, kind, status, input, attempts, created_at, updated_at
        ) VALUES (
            s.id, s.user_id, s.kind, 'queued', s.input, 0,
            CURRENT_TIMESTAMP(), CURRENT_TIMESTAMP()
        )
        """
        self.execute_query(
            sql,
            (run.id, run.user_id, run.kind.value, self.to_variant(run.input)),
            commit=True,
        )
        logger.info("Created pipeline run", extra={"run_id": run.id, "kind": run.kind.value})
        return self.get_run(run.id) or run

    def mark_running(self, run_id: str, attempts: int) -> bool:
        sql = """
        UPDATE pipeline_runs
        SET status = 'running',
            attempts = GREATEST(attempts, %s),
            started_at = COALESCE(started_at, CURRENT_TIMESTAMP()),
            updated_at = CURRENT_TIMESTAMP()
        WHERE id = %s AND status IN ('queued', 'running')
        """
        return self.execute_query(sql, (attempts, run_id), commit=True) > 0

    def mark_succeeded(self, run_id: str, output: Dict[str, Any]) -> bool:
        sql = """
        UPDATE pipeline_runs
        SET status = 'succeeded',
            output = PARSE_JSON(%s),
            error = NULL,
            completed_at = COALESCE(completed_at, CURRENT_TIMESTAMP()),
            updated_at = CURRENT_TIMESTAMP()
        WHERE id = %s AND status IN ('queued', 'running')
        """
        return self.execute_query(sql, (self.to_variant(output), run_id), commit=True) > 0

    def mark_failed(self, run_id: str, error: str) -> bool:
        sql = """
        UPDATE pipeline_runs
        SET status = 'failed',
            error = %s,
            completed_at = COALESCE(completed_at, CURRENT_TIMESTAMP()),
            updated_at = CURRENT_TIMESTAMP()
        WHERE id = %s AND status IN ('queued', 'running')
        """
        return self.execute_query(sql, (error, run_id), commit=True) > 0

    def mark_requeued(self, run_id: str, error: str) -> bool:
        """Back to queued after a failed attempt; the error of that attempt is kept."""
        sql = """
        UPDATE pipeline_runs
        SET status = 'queued',
            error = %s,
            updated_at = CURRENT_TIMESTAMP()
        WHERE id = %s AND status IN ('queued', 'running')
        """
        return self.execute_query(sql, (error, run_id), commit=True) > 0

    def mark_canceled(self, run_id: str) -> bool:
        """Cancel a run that has not started; False if it already left 'queued'."""
        sql = """
        UPDATE pipeline_runs
        SET status = 'canceled',
            completed_at = CURRENT_TIMESTAMP(),
            updated_at = CURRENT_TIMESTAMP()
        WHERE id = %s AND status = 'queued'
        """
        return self.execute_query(sql, (run_id,), commit=True) > 0

    # =====================================================================
    # Reads
    # =====================================================================

    def get_run(self, run_id: str) -> Optional[PipelineRun]:
        sql = f"SELECT {_COLUMNS} FROM pipeline_runs WHERE id = %s"
        return self._to_run(self.execute_query(sql, (run_id,), fetch_one=True))

    def list_runs(
        self,
        user_id: str,
        kind: Optional[StepKind] = None,
        status: Optional[RunStatus] = None,
        limit: int = 100,
    ) -> List[PipelineRun]:
        """Runs for a user, newest first."""
        sql = f"SELECT {_COLUMNS} FROM pipeline_runs WHERE user_id = %s"
        params: List[Any] = [user_id]
        if kind is not None:
            sql += " AND kind = %s"
            params.append(kind.value)
        if status is not None:
            sql += " AND status = %s"
            params.append(status.value)
        sql += " ORDER BY created_at DESC, id DESC LIMIT %s"
        params.append(limit)
        rows = self.execute_query(sql, tuple(params), fetch_all=True) or []
        return [self._to_run(r) for r in rows]

    def latest_runs_by_step(self, user_id: str) -> Dict[StepKind, PipelineRun]:
        """Most recently created run per step kind."""
        sql = f"""
        SELECT {_COLUMNS}
        FROM pipeline_runs
        WHERE user_id = %s
        QUALIFY ROW_NUMBER() OVER (
            PARTITION BY kind ORDER BY created_at DESC, id DESC
        ) = 1
        """
        rows = self.execute_query(sql, (user_id,), fetch_all=True) or []
        runs = [self._to_run(r) for r in rows]
        return {run.kind: run for run in runs}

    def find_in_flight(self, user_id: str, kind: StepKind) -> Optional[PipelineRun]:
        """Latest run for (user, step) if it is queued or running."""
        sql = f"""
        SELECT {_COLUMNS}
        FROM pipeline_runs
        WHERE user_id = %s AND kind = %s
        ORDER BY created_at DESC, id DESC
        LIMIT 1
        """
        run = self._to_run(self.execute_query(sql, (user_id, kind.value), fetch_one=True))
        if run and run.status in (RunStatus.QUEUED, RunStatus.RUNNING):
            return run
        return None
