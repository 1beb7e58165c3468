"""Execution history persistence."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import delete as sql_delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..db.models import ExecutionModel
from ..engine.types import ExecutionRecord


class ExecutionRepository:
    """
    Stores one record per run.

    A record is opened in the running state by start() and closed by
    finish(). Only the newest max_records runs are kept.
    """

    def __init__(self, session: AsyncSession, max_records: int = 100) -> None:
        self._session = session
        self._max_records = max_records

    async def start(
        self,
        execution_id: str,
        workflow_id: str,
        workflow_name: str,
        input: dict[str, Any] | None = None,
    ) -> ExecutionRecord:
        """Open a record for a run that is about to begin."""
        row = ExecutionModel(
            id=execution_id,
            workflow_id=workflow_id,
            workflow_name=workflow_name,
            status="running",
            input=input,
            start_time=datetime.now(),
            step_results={},
            history=[],
        )
        self._session.add(row)
        await self._session.commit()
        await self._session.refresh(row)

        await self._trim()
        return self._to_record(row)

    async def finish(
        self,
        execution_id: str,
        status: str,
        output: dict[str, Any] | None = None,
        step_results: dict[str, Any] | None = None,
        history: list[dict[str, Any]] | None = None,
        error: str | None = None,
    ) -> ExecutionRecord | None:
        """Close a record with the terminal state of its run."""
        row = await self._session.get(ExecutionModel, execution_id)
        if row is None:
            return None

        row.status = status
        row.output = output
        row.step_results = step_results or {}
        row.history = history or []
        row.error = error
        row.end_time = datetime.now()

        await self._session.commit()
        await self._session.refresh(row)
        return self._to_record(row)

    async def get(self, execution_id: str) -> ExecutionRecord | None:
        row = await self._session.get(ExecutionModel, execution_id)
        return self._to_record(row) if row is not None else None

    async def list(
        self,
        workflow_id: str | None = None,
        status: str | None = None,
    ) -> list[ExecutionRecord]:
        """Newest first, optionally narrowed to one workflow or status."""
        statement = select(ExecutionModel)
        if workflow_id:
            statement = statement.where(ExecutionModel.workflow_id == workflow_id)
        if status:
            statement = statement.where(ExecutionModel.status == status)
        statement = statement.order_by(ExecutionModel.start_time.desc())

        rows = (await self._session.execute(statement)).scalars().all()
        return [self._to_record(row) for row in rows]

    async def delete(self, execution_id: str) -> bool:
        row = await self._session.get(ExecutionModel, execution_id)
        if row is None:
            return False

        await self._session.delete(row)
        await self._session.commit()
        return True

    async def clear(self) -> int:
        """Delete every record and return how many were removed."""
        result = await self._session.execute(sql_delete(ExecutionModel))
        await self._session.commit()
        return result.rowcount or 0

    async def _trim(self) -> None:
        statement = (
            select(ExecutionModel)
            .order_by(ExecutionModel.start_time.desc())
            .offset(self._max_records)
        )
        stale = (await self._session.execute(statement)).scalars().all()
        if not stale:
            return

        for row in stale:
            await self._session.delete(row)
        await self._session.commit()

    def _to_record(self, row: ExecutionModel) -> ExecutionRecord:
        return ExecutionRecord(
            id=row.id,
            workflow_id=row.workflow_id,
            workflow_name=row.workflow_name,
            status=row.status,
            start_time=row.start_time,
            end_time=row.end_time,
            input=row.input,
            output=row.output,
            step_results=dict(row.step_results or {}),
            history=list(row.history or []),
            error=row.error,
        )
