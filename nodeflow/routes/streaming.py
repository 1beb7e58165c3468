"""Server-Sent Events (SSE) routes for real-time execution streaming."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Annotated, Any, AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import async_sessionmaker
from sse_starlette.sse import EventSourceResponse

from ..core.config import settings
from ..core.dependencies import get_active_runs, get_node_factory, get_session_factory
from ..core.exceptions import NodeflowError
from ..engine.executor import ActiveRuns, ExecuteOptions, WorkflowExecutor, generate_execution_id
from ..engine.node_factory import NodeFactory
from ..engine.types import EngineEvent
from ..repositories import ExecutionRepository, NodeConfigRepository, WorkflowRepository

logger = logging.getLogger(__name__)

router = APIRouter()


async def _run_workflow_with_events(
    workflow_id: str,
    input: Any,
    max_steps: int | None,
    session_factory: async_sessionmaker,
    factory: NodeFactory,
    active_runs: ActiveRuns,
) -> AsyncGenerator[str, None]:
    """
    Run a workflow in the background and yield its engine events as JSON.

    When the client goes away the run is stopped at its next step boundary
    rather than cancelled, so the execution record is always closed.
    """
    event_queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()
    execution_id = generate_execution_id()
    client_gone = False

    def on_event(event: EngineEvent) -> None:
        if client_gone:
            # Disconnected before the engine was registered
            active_runs.stop(execution_id)
            return
        event_queue.put_nowait(event.to_dict())

    async def run_workflow() -> None:
        # The request session is closed once the response starts streaming
        async with session_factory() as session:
            executor = WorkflowExecutor(
                factory,
                WorkflowRepository(session),
                ExecutionRepository(session, max_records=settings.max_execution_records),
                node_config_repo=NodeConfigRepository(session),
                active_runs=active_runs,
                default_max_steps=settings.max_workflow_steps,
            )
            try:
                await executor.execute(
                    workflow_id,
                    input,
                    ExecuteOptions(max_steps=max_steps, on_event=on_event, execution_id=execution_id),
                )
            except NodeflowError as e:
                logger.warning(f"Streamed execution {execution_id} failed: {e}")
                event_queue.put_nowait({"type": "error", "executionId": execution_id, "error": str(e)})
            except Exception as e:
                logger.exception(f"Streamed execution {execution_id} crashed")
                event_queue.put_nowait({"type": "error", "executionId": execution_id, "error": str(e)})
            finally:
                event_queue.put_nowait(None)

    task = asyncio.create_task(run_workflow())

    try:
        while True:
            event = await event_queue.get()
            if event is None:
                break
            yield json.dumps(event)
    finally:
        if not task.done():
            client_gone = True
            logger.info(f"Client left streamed execution {execution_id}, stopping it")
            active_runs.stop(execution_id)


@router.get("/stream/workflows/{workflow_id}")
async def stream_workflow_execution(
    workflow_id: str,
    session_factory: Annotated[async_sessionmaker, Depends(get_session_factory)],
    factory: Annotated[NodeFactory, Depends(get_node_factory)],
    active_runs: Annotated[ActiveRuns, Depends(get_active_runs)],
    input: str | None = Query(None, description="Text input for the start step"),
    max_steps: int | None = Query(None, ge=1),
) -> EventSourceResponse:
    """Run a saved workflow and stream its engine events via SSE."""
    async with session_factory() as session:
        stored = await WorkflowRepository(session).get(workflow_id)
    if not stored:
        raise HTTPException(status_code=404, detail=f"Workflow not found: {workflow_id}")

    return EventSourceResponse(
        _run_workflow_with_events(workflow_id, input, max_steps, session_factory, factory, active_runs)
    )
