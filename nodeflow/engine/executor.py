"""
Workflow executor - the run entry point.

Loads a stored definition, builds a Workflow and an Engine, records the run
in execution history and keeps the engine reachable by execution id while
it is in flight.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..core.exceptions import WorkflowNotFoundError
from .engine import Engine
from .pipeline import Pipeline
from .types import EngineEventCallback, EngineStatus
from .validation import validate_definition
from .workflow import Workflow

if TYPE_CHECKING:
    from ..repositories import ExecutionRepository, NodeConfigRepository, WorkflowRepository
    from .node_factory import NodeFactory

logger = logging.getLogger(__name__)


def generate_execution_id() -> str:
    """Generate unique execution ID."""
    return f"exec_{int(time.time() * 1000)}_{uuid.uuid4().hex[:7]}"


@dataclass
class ExecuteOptions:
    """Per-run options for WorkflowExecutor.execute()."""

    max_steps: int | None = None
    on_event: EngineEventCallback | None = None
    execution_id: str | None = None


class ActiveRuns:
    """Engines of the runs currently in flight, keyed by execution id."""

    def __init__(self) -> None:
        self._engines: dict[str, Engine] = {}

    def add(self, execution_id: str, engine: Engine) -> None:
        self._engines[execution_id] = engine

    def remove(self, execution_id: str) -> None:
        self._engines.pop(execution_id, None)

    def get(self, execution_id: str) -> Engine | None:
        return self._engines.get(execution_id)

    def list_ids(self) -> list[str]:
        return list(self._engines.keys())

    def pause(self, execution_id: str) -> bool:
        engine = self._engines.get(execution_id)
        return engine.pause() if engine else False

    def resume(self, execution_id: str) -> bool:
        engine = self._engines.get(execution_id)
        return engine.resume() if engine else False

    def stop(self, execution_id: str) -> bool:
        engine = self._engines.get(execution_id)
        return engine.stop() if engine else False

    def get_status(self, execution_id: str) -> dict[str, Any] | None:
        engine = self._engines.get(execution_id)
        return engine.to_dict() if engine else None


class WorkflowExecutor:
    """Runs stored workflows through the engine."""

    def __init__(
        self,
        factory: NodeFactory,
        workflow_repo: WorkflowRepository,
        execution_repo: ExecutionRepository,
        node_config_repo: NodeConfigRepository | None = None,
        active_runs: ActiveRuns | None = None,
        default_max_steps: int | None = None,
    ) -> None:
        self._factory = factory
        self._workflow_repo = workflow_repo
        self._execution_repo = execution_repo
        self._node_config_repo = node_config_repo
        self._active_runs = active_runs or ActiveRuns()
        self._default_max_steps = default_max_steps

    @property
    def active_runs(self) -> ActiveRuns:
        return self._active_runs

    async def execute(
        self,
        workflow_id: str,
        input: Any = None,
        options: ExecuteOptions | None = None,
    ) -> Pipeline | None:
        """
        Run a stored workflow and return its final pipeline.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist
            InvalidWorkflowDefinitionError: If the definition cannot be run
            Any error that failed the run, after it has been recorded
        """
        options = options or ExecuteOptions()

        stored = await self._workflow_repo.get(workflow_id)
        if not stored:
            raise WorkflowNotFoundError(workflow_id)

        validate_definition(stored.definition, self._factory)
        workflow = Workflow(stored.definition)

        node_configs = {}
        if self._node_config_repo is not None:
            node_configs = await self._node_config_repo.get_all()

        execution_id = options.execution_id or self.new_execution_id()
        max_steps = options.max_steps if options.max_steps is not None else self._default_max_steps
        engine = Engine(
            workflow,
            self._factory,
            node_configs=node_configs,
            max_steps=max_steps,
            execution_id=execution_id,
        )
        if options.on_event:
            engine.subscribe(options.on_event)

        pipeline_input = Pipeline.from_raw(input)
        await self._execution_repo.start(
            execution_id,
            workflow_id=stored.id,
            workflow_name=stored.name,
            input=pipeline_input.to_dict(),
        )

        self._active_runs.add(execution_id, engine)
        try:
            output = await engine.start(pipeline_input)
        except asyncio.CancelledError:
            # Interrupted from outside; close the record before propagating
            engine.stop()
            logger.warning(f"Execution {execution_id} of {stored.name} was cancelled")
            await self._record(execution_id, engine, EngineStatus.STOPPED, error="Execution cancelled")
            raise
        except Exception as e:
            await self._record(execution_id, engine, EngineStatus.FAILED, error=str(e))
            raise
        else:
            await self._record(execution_id, engine, engine.status)
        finally:
            self._active_runs.remove(execution_id)

        logger.info(f"Execution {execution_id} of {stored.name} finished: {engine.status.value}")
        return output

    def pause(self, execution_id: str) -> bool:
        return self._active_runs.pause(execution_id)

    def resume(self, execution_id: str) -> bool:
        return self._active_runs.resume(execution_id)

    def stop(self, execution_id: str) -> bool:
        return self._active_runs.stop(execution_id)

    def get_status(self, execution_id: str) -> dict[str, Any] | None:
        return self._active_runs.get_status(execution_id)

    async def _record(
        self,
        execution_id: str,
        engine: Engine,
        status: EngineStatus,
        error: str | None = None,
    ) -> None:
        """Close the execution record with the engine's final state."""
        output = engine.context.output if status != EngineStatus.FAILED else None
        await self._execution_repo.finish(
            execution_id,
            status=status.value,
            output=output.to_dict() if output is not None else None,
            step_results={
                name: result.to_dict() if result is not None else None
                for name, result in engine.context.step_results.items()
            },
            history=[entry.to_dict() for entry in engine.workflow.history],
            error=error,
        )

    def new_execution_id(self) -> str:
        return generate_execution_id()
