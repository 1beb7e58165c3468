"""Workflow service for business logic."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..core.exceptions import (
    InvalidWorkflowDefinitionError,
    NodeflowError,
    ValidationError,
    WorkflowNotFoundError,
)
from ..engine.executor import ExecuteOptions
from ..engine.types import EngineEventCallback, StepDefinition, StoredWorkflow, WorkflowDefinition
from ..engine.validation import find_reference_errors
from ..schemas.execution import ExecutionResponse
from ..schemas.workflow import (
    StepCreateRequest,
    StepSchema,
    StepUpdateRequest,
    WorkflowCreateRequest,
    WorkflowDetailResponse,
    WorkflowListItem,
    WorkflowRunRequest,
    WorkflowUpdateRequest,
)

if TYPE_CHECKING:
    from ..engine.executor import WorkflowExecutor
    from ..engine.node_factory import NodeFactory
    from ..repositories import ExecutionRepository, WorkflowRepository

logger = logging.getLogger(__name__)


class WorkflowService:
    """Service for workflow operations."""

    def __init__(
        self,
        workflow_repo: WorkflowRepository,
        execution_repo: ExecutionRepository,
        executor: WorkflowExecutor,
        factory: NodeFactory,
    ) -> None:
        self._workflow_repo = workflow_repo
        self._execution_repo = execution_repo
        self._executor = executor
        self._factory = factory

    async def list_workflows(self) -> list[WorkflowListItem]:
        """List all workflows."""
        workflows = await self._workflow_repo.list()
        return [
            WorkflowListItem(
                id=w.id,
                name=w.name,
                description=w.definition.description,
                step_count=len(w.definition.steps),
                start_step_name=w.definition.start_step_name,
                created_at=w.created_at.isoformat(),
                updated_at=w.updated_at.isoformat(),
            )
            for w in workflows
        ]

    async def get_workflow(self, workflow_id: str) -> WorkflowDetailResponse:
        """Get a workflow by ID."""
        stored = await self._workflow_repo.get(workflow_id)
        if not stored:
            raise WorkflowNotFoundError(workflow_id)
        return self._build_detail_response(stored)

    async def create_workflow(self, request: WorkflowCreateRequest) -> WorkflowDetailResponse:
        """Create a new workflow."""
        if await self._workflow_repo.get_by_name(request.name):
            raise ValidationError(f"A workflow named '{request.name}' already exists", field="name")

        definition = self._build_definition(
            name=request.name,
            description=request.description or "",
            steps=request.steps,
            start_step_name=request.start_step_name,
        )
        self._validate_definition(definition)

        stored = await self._workflow_repo.create(definition)
        return self._build_detail_response(stored)

    async def update_workflow(
        self, workflow_id: str, request: WorkflowUpdateRequest
    ) -> WorkflowDetailResponse:
        """Update an existing workflow."""
        existing = await self._workflow_repo.get(workflow_id)
        if not existing:
            raise WorkflowNotFoundError(workflow_id)

        if request.name and request.name != existing.name:
            other = await self._workflow_repo.get_by_name(request.name)
            if other and other.id != workflow_id:
                raise ValidationError(f"A workflow named '{request.name}' already exists", field="name")

        current = existing.definition
        if request.steps is not None:
            definition = self._build_definition(
                name=request.name or current.name,
                description=request.description if request.description is not None else current.description,
                steps=request.steps,
                start_step_name=request.start_step_name or current.start_step_name,
            )
        else:
            definition = WorkflowDefinition(
                name=request.name or current.name,
                description=request.description if request.description is not None else current.description,
                steps=current.steps,
                start_step_name=request.start_step_name or current.start_step_name,
                steps_order=current.ordered_step_names(),
            )
        definition.id = workflow_id
        self._validate_definition(definition)

        updated = await self._workflow_repo.update(workflow_id, definition)
        if not updated:
            raise WorkflowNotFoundError(workflow_id)
        return self._build_detail_response(updated)

    async def delete_workflow(self, workflow_id: str) -> bool:
        """Delete a workflow."""
        deleted = await self._workflow_repo.delete(workflow_id)
        if not deleted:
            raise WorkflowNotFoundError(workflow_id)
        return True

    # --- Steps ---

    async def add_step(self, workflow_id: str, request: StepCreateRequest) -> WorkflowDetailResponse:
        self._check_node_type(request.step.node_type)
        updated = await self._workflow_repo.add_step(
            workflow_id,
            self._step_from_schema(request.step),
            after=request.after,
            before=request.before,
        )
        if not updated:
            raise WorkflowNotFoundError(workflow_id)
        return self._build_detail_response(updated)

    async def update_step(
        self, workflow_id: str, step_name: str, request: StepUpdateRequest
    ) -> WorkflowDetailResponse:
        if request.node_type is not None:
            self._check_node_type(request.node_type)
        updated = await self._workflow_repo.update_step(
            workflow_id, step_name, request.model_dump(exclude_none=True)
        )
        if not updated:
            raise WorkflowNotFoundError(workflow_id)
        return self._build_detail_response(updated)

    async def remove_step(self, workflow_id: str, step_name: str) -> WorkflowDetailResponse:
        updated = await self._workflow_repo.remove_step(workflow_id, step_name)
        if not updated:
            raise WorkflowNotFoundError(workflow_id)
        return self._build_detail_response(updated)

    async def reorder_steps(self, workflow_id: str, steps_order: list[str]) -> WorkflowDetailResponse:
        updated = await self._workflow_repo.reorder_steps(workflow_id, steps_order)
        if not updated:
            raise WorkflowNotFoundError(workflow_id)
        return self._build_detail_response(updated)

    # --- Running ---

    async def run_workflow(
        self,
        workflow_id: str,
        request: WorkflowRunRequest,
        on_event: EngineEventCallback | None = None,
        execution_id: str | None = None,
    ) -> ExecutionResponse:
        """
        Run a saved workflow to a terminal state.

        A failed run is reported in the response; missing or invalid
        workflows raise before anything is recorded.
        """
        execution_id = execution_id or self._executor.new_execution_id()
        options = ExecuteOptions(
            max_steps=request.max_steps,
            on_event=on_event,
            execution_id=execution_id,
        )

        try:
            await self._executor.execute(workflow_id, request.input, options)
        except (WorkflowNotFoundError, InvalidWorkflowDefinitionError):
            raise
        except NodeflowError as e:
            logger.warning(f"Execution {execution_id} of workflow {workflow_id} failed: {e}")

        record = await self._execution_repo.get(execution_id)
        if not record:
            # Trimmed from history already; nothing left to report
            return ExecutionResponse(execution_id=execution_id, status="unknown")

        return ExecutionResponse(
            execution_id=record.id,
            status=record.status,
            output=record.output,
            step_results=record.step_results,
            error=record.error,
        )

    # --- Helpers ---

    def _step_from_schema(self, step: StepSchema) -> StepDefinition:
        return StepDefinition(
            name=step.name,
            node_type=step.node_type,
            params=step.params,
            next=step.next,
            conditions=step.conditions,
        )

    def _build_definition(
        self,
        name: str,
        description: str,
        steps: list[StepSchema],
        start_step_name: str | None,
    ) -> WorkflowDefinition:
        names = [s.name for s in steps]
        if len(names) != len(set(names)):
            raise ValidationError("Step names must be unique", field="steps")

        return WorkflowDefinition(
            name=name,
            description=description,
            steps={s.name: self._step_from_schema(s) for s in steps},
            start_step_name=start_step_name or (names[0] if names else None),
            steps_order=names,
        )

    def _check_node_type(self, node_type: str) -> None:
        if not self._factory.has_type(node_type):
            raise ValidationError(f"Unknown node type: {node_type}", field="node_type")

    def _validate_definition(self, definition: WorkflowDefinition) -> None:
        """Validate workflow definition."""
        for step in definition.steps.values():
            self._check_node_type(step.node_type)

        errors = find_reference_errors(definition)
        if errors:
            _, message = errors[0]
            raise ValidationError(message, field="steps")

    def _build_detail_response(self, stored: StoredWorkflow) -> WorkflowDetailResponse:
        return WorkflowDetailResponse(
            id=stored.id,
            name=stored.name,
            description=stored.definition.description,
            definition=stored.definition.to_dict(),
            created_at=stored.created_at.isoformat(),
            updated_at=stored.updated_at.isoformat(),
        )
