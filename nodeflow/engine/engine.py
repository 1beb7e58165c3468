"""
Engine - drives one Workflow to completion.

Single-threaded and cooperative: pause() only blocks the next step from
starting and stop() is observed at the same loop boundary, so an in-flight
step always finishes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Mapping

from ..core.exceptions import (
    EngineStateError,
    InvalidTransitionError,
    MaxStepsExceededError,
    NodeflowError,
    StepExecutionError,
)
from .pipeline import Pipeline
from .types import (
    EngineContext,
    EngineEvent,
    EngineEventCallback,
    EngineEventType,
    EngineStatus,
    NodeConfigRecord,
    StepStatus,
    TERMINAL_ENGINE_STATUSES,
    WorkflowStatus,
)

if TYPE_CHECKING:
    from .node_factory import NodeFactory
    from .step import Step
    from .workflow import Workflow

logger = logging.getLogger(__name__)


_WORKFLOW_STATUS_BY_ENGINE_STATUS: dict[EngineStatus, WorkflowStatus] = {
    EngineStatus.IDLE: WorkflowStatus.READY,
    EngineStatus.RUNNING: WorkflowStatus.RUNNING,
    EngineStatus.PAUSED: WorkflowStatus.PAUSED,
    EngineStatus.COMPLETED: WorkflowStatus.COMPLETED,
    EngineStatus.FAILED: WorkflowStatus.FAILED,
    EngineStatus.STOPPED: WorkflowStatus.STOPPED,
}


class Engine:
    """
    Run-loop driver for a single Workflow.

    Status transitions:
        idle -> running -> paused | completed | failed | stopped
        paused -> running | stopped
    Terminal engines must be reset() before the next start().
    """

    def __init__(
        self,
        workflow: Workflow,
        factory: NodeFactory,
        node_configs: Mapping[str, NodeConfigRecord] | None = None,
        max_steps: int | None = None,
        execution_id: str | None = None,
    ) -> None:
        self.workflow = workflow
        self.execution_id = execution_id
        self.max_steps = max_steps
        self._factory = factory
        self._node_configs: dict[str, NodeConfigRecord] = dict(node_configs or {})

        self.status = EngineStatus.IDLE
        self.context = EngineContext()
        self._cancel_requested = False
        # Set while the loop may proceed; cleared by pause()
        self._resume_event = asyncio.Event()
        self._resume_event.set()

        self._subscribers: list[EngineEventCallback] = []
        self._listeners: dict[EngineEventType, list[EngineEventCallback]] = {}

    # --- Subscriptions ---

    def subscribe(self, callback: EngineEventCallback) -> None:
        """Receive every lifecycle event."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: EngineEventCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def on(self, event_type: EngineEventType | str, callback: EngineEventCallback) -> None:
        """Receive events of a single type."""
        self._listeners.setdefault(EngineEventType(event_type), []).append(callback)

    def _emit_event(self, event_type: EngineEventType, **fields: Any) -> None:
        """Deliver an event; a failing callback is logged and never breaks the run."""
        event = EngineEvent(
            type=event_type,
            workflow=self.workflow.name,
            execution_id=self.execution_id,
            **fields,
        )
        for callback in [*self._subscribers, *self._listeners.get(event_type, [])]:
            try:
                callback(event)
            except Exception:
                logger.exception(f"Error in engine event callback for {event_type.value}")

    # --- Status ---

    def _set_status(self, status: EngineStatus) -> None:
        self.status = status
        self.workflow.set_status(_WORKFLOW_STATUS_BY_ENGINE_STATUS[status])
        self._emit_event(EngineEventType.STATUS_CHANGE, status=status.value)

    @property
    def is_active(self) -> bool:
        return self.status in (EngineStatus.RUNNING, EngineStatus.PAUSED)

    @property
    def is_finished(self) -> bool:
        return self.status in TERMINAL_ENGINE_STATUSES

    # --- Runtime control ---

    def pause(self) -> bool:
        """Pause before the next step. Returns False unless running."""
        if self.status != EngineStatus.RUNNING:
            return False
        self._resume_event.clear()
        self._set_status(EngineStatus.PAUSED)
        self._emit_event(EngineEventType.PAUSE)
        return True

    def resume(self) -> bool:
        """Resume a paused run. Returns False unless paused."""
        if self.status != EngineStatus.PAUSED:
            return False
        self._set_status(EngineStatus.RUNNING)
        self._resume_event.set()
        self._emit_event(EngineEventType.RESUME)
        return True

    def stop(self) -> bool:
        """Request cancellation. Returns False unless running or paused."""
        if not self.is_active:
            return False
        self._cancel_requested = True
        self._set_status(EngineStatus.STOPPED)
        # Wake a paused loop so it can observe the cancellation
        self._resume_event.set()
        self._emit_event(EngineEventType.STOP)
        return True

    def reset(self) -> None:
        """
        Return a finished engine to idle so it can be started again.

        Raises:
            EngineStateError: If a run is in progress
        """
        if not self.is_finished and self.status != EngineStatus.IDLE:
            raise EngineStateError(
                f"Cannot reset engine while it is {self.status.value}",
                status=self.status.value,
            )
        self._reset_run()
        self._set_status(EngineStatus.IDLE)

    def _reset_run(self) -> None:
        self._cancel_requested = False
        self._resume_event.set()
        self.context = EngineContext()
        self.workflow.reset()

    # --- Run ---

    async def start(self, input: Any = None) -> Pipeline | None:
        """
        Run the workflow from its start step.

        Raw input is converted with Pipeline.from_raw. Returns the output of
        the last executed step; a stopped run returns the output recorded so
        far. Step failures are re-raised after the failure events are
        emitted, unless stop() was already requested: the run then stays
        stopped and the failed step is only kept in history.

        Raises:
            EngineStateError: If the engine is not idle
        """
        if self.status != EngineStatus.IDLE:
            raise EngineStateError(
                f"Cannot start engine from status {self.status.value}, reset() it first",
                status=self.status.value,
            )

        self._reset_run()
        self.context.input = Pipeline.from_raw(input)

        self._set_status(EngineStatus.RUNNING)
        self._emit_event(EngineEventType.START)
        logger.info(f"Starting workflow {self.workflow.name}")

        try:
            output = await self._run_loop()
        except Exception as e:
            if self._cancel_requested:
                # The run was already stopped; the step failure stays in history
                logger.warning(f"Workflow {self.workflow.name} stopped, in-flight step failed: {e}")
                return self.context.output
            self._set_status(EngineStatus.FAILED)
            self._emit_event(EngineEventType.ERROR, error=str(e))
            logger.error(f"Workflow {self.workflow.name} failed: {e}")
            raise

        if self._cancel_requested:
            logger.info(f"Workflow {self.workflow.name} stopped")
            return output

        self._set_status(EngineStatus.COMPLETED)
        self._emit_event(EngineEventType.COMPLETE, result=output)
        logger.info(f"Workflow {self.workflow.name} completed")
        return output

    async def _wait_while_paused(self) -> None:
        if not self._resume_event.is_set():
            logger.debug(f"Workflow {self.workflow.name} paused, waiting for resume")
            await self._resume_event.wait()

    async def _run_loop(self) -> Pipeline | None:
        steps_executed = 0
        step = self.workflow.current_step

        while step is not None and not self._cancel_requested:
            await self._wait_while_paused()
            if self._cancel_requested:
                break

            if self.max_steps is not None and steps_executed >= self.max_steps:
                raise MaxStepsExceededError(
                    self.max_steps, workflow_id=self.workflow.id, step_name=step.name
                )

            result = await self._execute_step(step)
            steps_executed += 1

            self.context.step_results[step.name] = result
            self.context.output = result

            next_step_name = step.determine_next_step(result)
            if next_step_name is None:
                self.workflow.record_step(step)
                break

            if not self.workflow.move_to_next(next_step_name):
                raise InvalidTransitionError(
                    f"Cannot move from step '{step.name}' to '{next_step_name}'",
                    workflow_id=self.workflow.id,
                    step_name=step.name,
                )
            logger.debug(f"Workflow {self.workflow.name}: {step.name} -> {next_step_name}")
            step = self.workflow.current_step

        return self.context.output

    def _node_configs_for(self, step: Step) -> tuple[dict[str, Any], dict[str, Any]]:
        """Flow config from step metadata, work config overlaid with step params."""
        stored = self._node_configs.get(step.node_type)
        flow_config = {**(stored.flow_config if stored else {}), **step.metadata}
        work_config = {**(stored.work_config if stored else {}), **step.params}
        return flow_config, work_config

    async def _execute_step(self, step: Step) -> Pipeline:
        step.set_status(StepStatus.RUNNING)
        self._emit_event(
            EngineEventType.STEP_START, step=step.name, status=StepStatus.RUNNING.value
        )

        try:
            flow_config, work_config = self._node_configs_for(step)
            node = await self._factory.create_node(step.node_type, flow_config, work_config)
            source = self.context.output if self.context.output is not None else self.context.input
            result = await node.process(source)
        except Exception as e:
            step.set_status(StepStatus.FAILED)
            self.workflow.record_step(step)
            self._emit_event(
                EngineEventType.STEP_ERROR,
                step=step.name,
                status=StepStatus.FAILED.value,
                error=str(e),
            )
            if isinstance(e, NodeflowError):
                raise
            raise StepExecutionError(
                f"Step '{step.name}' failed: {e}",
                workflow_id=self.workflow.id,
                step_name=step.name,
            ) from e

        step.set_status(StepStatus.COMPLETED)
        self._emit_event(
            EngineEventType.STEP_COMPLETE,
            step=step.name,
            status=StepStatus.COMPLETED.value,
            result=result,
        )
        return result

    def to_dict(self) -> dict[str, Any]:
        """Snapshot of the run for status queries."""
        return {
            "execution_id": self.execution_id,
            "workflow": self.workflow.name,
            "status": self.status.value,
            "finished": self.is_finished,
            "current_step": self.workflow.current_step_name,
            "completed_steps": list(self.context.step_results.keys()),
            "history": [entry.to_dict() for entry in self.workflow.history],
        }
