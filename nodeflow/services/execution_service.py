"""Execution service for business logic."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..core.exceptions import ExecutionNotFoundError
from ..schemas.execution import (
    ExecutionControlResponse,
    ExecutionDetailResponse,
    ExecutionListItem,
)

if TYPE_CHECKING:
    from ..engine.executor import ActiveRuns
    from ..repositories import ExecutionRepository


class ExecutionService:
    """Service for execution history and runtime control of runs in flight."""

    def __init__(
        self,
        execution_repo: ExecutionRepository,
        active_runs: ActiveRuns,
    ) -> None:
        self._execution_repo = execution_repo
        self._active_runs = active_runs

    async def list_executions(
        self, workflow_id: str | None = None, status: str | None = None
    ) -> list[ExecutionListItem]:
        """List execution history, newest first."""
        executions = await self._execution_repo.list(workflow_id, status)

        return [
            ExecutionListItem(
                id=e.id,
                workflow_id=e.workflow_id,
                workflow_name=e.workflow_name,
                status=self._live_status(e.id) or e.status,
                start_time=e.start_time.isoformat(),
                end_time=e.end_time.isoformat() if e.end_time else None,
                error=e.error,
            )
            for e in executions
        ]

    async def get_execution(self, execution_id: str) -> ExecutionDetailResponse:
        """Get execution details."""
        execution = await self._execution_repo.get(execution_id)
        if not execution:
            raise ExecutionNotFoundError(execution_id)

        return ExecutionDetailResponse(
            id=execution.id,
            workflow_id=execution.workflow_id,
            workflow_name=execution.workflow_name,
            status=self._live_status(execution.id) or execution.status,
            start_time=execution.start_time.isoformat(),
            end_time=execution.end_time.isoformat() if execution.end_time else None,
            input=execution.input,
            output=execution.output,
            step_results=execution.step_results,
            history=execution.history,
            error=execution.error,
        )

    async def delete_execution(self, execution_id: str) -> bool:
        """Delete an execution record."""
        deleted = await self._execution_repo.delete(execution_id)
        if not deleted:
            raise ExecutionNotFoundError(execution_id)
        return True

    async def clear_executions(self) -> int:
        """Clear all execution records and return how many were removed."""
        return await self._execution_repo.clear()

    # --- Runtime control ---

    def pause(self, execution_id: str) -> ExecutionControlResponse:
        return self._control(execution_id, "pause", self._active_runs.pause(execution_id))

    def resume(self, execution_id: str) -> ExecutionControlResponse:
        return self._control(execution_id, "resume", self._active_runs.resume(execution_id))

    def stop(self, execution_id: str) -> ExecutionControlResponse:
        return self._control(execution_id, "stop", self._active_runs.stop(execution_id))

    def get_status(self, execution_id: str) -> dict[str, Any]:
        """Live snapshot of a run that is still in flight."""
        status = self._active_runs.get_status(execution_id)
        if status is None:
            raise ExecutionNotFoundError(execution_id)
        return status

    def _control(self, execution_id: str, action: str, success: bool) -> ExecutionControlResponse:
        return ExecutionControlResponse(
            execution_id=execution_id,
            action=action,
            success=success,
            status=self._live_status(execution_id),
        )

    def _live_status(self, execution_id: str) -> str | None:
        status = self._active_runs.get_status(execution_id)
        return status["status"] if status else None
