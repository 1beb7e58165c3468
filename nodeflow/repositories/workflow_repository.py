"""Workflow repository for database persistence."""

from __future__ import annotations

import time
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..core.exceptions import StepNotFoundError, ValidationError
from ..db.models import WorkflowModel
from ..engine.types import StepDefinition, StoredWorkflow, WorkflowDefinition
from ..engine.validation import find_reference_errors


class WorkflowRepository:
    """
    Repository for workflow definitions.

    Whole-workflow methods return None for a missing workflow; step editing
    methods also raise StepNotFoundError or ValidationError when the edit
    would leave the step graph inconsistent.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, definition: WorkflowDefinition) -> StoredWorkflow:
        """Create a new workflow."""
        workflow_id = definition.id or self._generate_id()
        now = datetime.now()

        db_workflow = WorkflowModel(
            id=workflow_id,
            name=definition.name,
            description=definition.description,
            definition=self._definition_to_dict(definition),
            created_at=now,
            updated_at=now,
        )

        self._session.add(db_workflow)
        await self._session.commit()
        await self._session.refresh(db_workflow)

        return self._to_stored_workflow(db_workflow)

    async def get(self, workflow_id: str) -> StoredWorkflow | None:
        """Get a workflow by ID."""
        result = await self._session.get(WorkflowModel, workflow_id)
        if not result:
            return None
        return self._to_stored_workflow(result)

    async def get_by_name(self, name: str) -> StoredWorkflow | None:
        """Get a workflow by its unique name."""
        statement = select(WorkflowModel).where(WorkflowModel.name == name)
        result = await self._session.execute(statement)
        db_workflow = result.scalars().first()
        if not db_workflow:
            return None
        return self._to_stored_workflow(db_workflow)

    async def list(self) -> list[StoredWorkflow]:
        """List all workflows."""
        statement = select(WorkflowModel).order_by(WorkflowModel.updated_at.desc())
        result = await self._session.execute(statement)
        workflows = result.scalars().all()
        return [self._to_stored_workflow(w) for w in workflows]

    async def update(self, workflow_id: str, definition: WorkflowDefinition) -> StoredWorkflow | None:
        """Replace the definition of an existing workflow."""
        db_workflow = await self._session.get(WorkflowModel, workflow_id)
        if not db_workflow:
            return None

        if definition.name:
            db_workflow.name = definition.name
        db_workflow.description = definition.description
        db_workflow.definition = self._definition_to_dict(definition)
        db_workflow.updated_at = datetime.now()

        await self._session.commit()
        await self._session.refresh(db_workflow)

        return self._to_stored_workflow(db_workflow)

    async def delete(self, workflow_id: str) -> bool:
        """Delete a workflow."""
        db_workflow = await self._session.get(WorkflowModel, workflow_id)
        if not db_workflow:
            return False

        await self._session.delete(db_workflow)
        await self._session.commit()
        return True

    # --- Step editing ---

    async def add_step(
        self,
        workflow_id: str,
        step: StepDefinition,
        after: str | None = None,
        before: str | None = None,
    ) -> StoredWorkflow | None:
        """
        Add a step, placed after/before an existing step or at the end.

        The first step added to an empty workflow becomes its start step.
        """
        stored = await self.get(workflow_id)
        if not stored:
            return None

        definition = stored.definition
        if not step.name:
            raise ValidationError("Step name is required", field="name")
        if step.name in definition.steps:
            raise ValidationError(f"Step '{step.name}' already exists", field="name")

        order = definition.ordered_step_names()
        if after and after in order:
            order.insert(order.index(after) + 1, step.name)
        elif before and before in order:
            order.insert(order.index(before), step.name)
        else:
            order.append(step.name)

        definition.steps[step.name] = step
        if not definition.start_step_name or definition.start_step_name not in definition.steps:
            definition.start_step_name = order[0]
        definition.steps_order = self._start_first(order, definition.start_step_name)

        self._check_references(definition)
        return await self.update(workflow_id, definition)

    async def update_step(
        self, workflow_id: str, step_name: str, changes: dict[str, Any]
    ) -> StoredWorkflow | None:
        """Apply a partial update to a step; the step name cannot change."""
        stored = await self.get(workflow_id)
        if not stored:
            return None

        definition = stored.definition
        existing = definition.steps.get(step_name)
        if not existing:
            raise StepNotFoundError(workflow_id, step_name)

        merged = {**existing.to_dict(), **{k: v for k, v in changes.items() if v is not None}}
        merged["name"] = step_name
        definition.steps[step_name] = StepDefinition.from_dict(merged)

        self._check_references(definition)
        return await self.update(workflow_id, definition)

    async def remove_step(self, workflow_id: str, step_name: str) -> StoredWorkflow | None:
        """
        Remove a step and every reference to it.

        Dangling next entries and conditions are dropped. Removing the start
        step moves the start to the next step in order.
        """
        stored = await self.get(workflow_id)
        if not stored:
            return None

        definition = stored.definition
        if step_name not in definition.steps:
            raise StepNotFoundError(workflow_id, step_name)

        del definition.steps[step_name]
        order = [name for name in definition.ordered_step_names() if name != step_name]
        definition.steps_order = order

        if definition.start_step_name == step_name:
            definition.start_step_name = order[0] if order else None

        for step in definition.steps.values():
            step.next = [target for target in step.next if target != step_name]
            step.conditions = {
                expression: target
                for expression, target in step.conditions.items()
                if target != step_name
            }

        return await self.update(workflow_id, definition)

    async def reorder_steps(self, workflow_id: str, ordered_names: list[str]) -> StoredWorkflow | None:
        """Set the display order; the first step becomes the start step."""
        stored = await self.get(workflow_id)
        if not stored:
            return None

        definition = stored.definition
        if len(ordered_names) != len(set(ordered_names)) or set(ordered_names) != set(definition.steps):
            raise ValidationError(
                "Step order must list every existing step exactly once",
                field="steps_order",
            )

        definition.steps_order = list(ordered_names)
        definition.start_step_name = ordered_names[0] if ordered_names else None
        return await self.update(workflow_id, definition)

    # --- Helpers ---

    def _check_references(self, definition: WorkflowDefinition) -> None:
        errors = find_reference_errors(definition)
        if errors:
            _, message = errors[0]
            raise ValidationError(message, field="steps")

    def _start_first(self, order: list[str], start_step_name: str | None) -> list[str]:
        """Keep the start step at the head of the display order."""
        if start_step_name and start_step_name in order and order[0] != start_step_name:
            order = [start_step_name, *[name for name in order if name != start_step_name]]
        return order

    def _generate_id(self) -> str:
        """Generate a unique workflow ID."""
        return f"wf_{int(time.time() * 1000)}_{uuid.uuid4().hex[:7]}"

    def _definition_to_dict(self, definition: WorkflowDefinition) -> dict[str, Any]:
        data = definition.to_dict()
        # id lives in its own column
        data.pop("id", None)
        return data

    def _to_stored_workflow(self, db_workflow: WorkflowModel) -> StoredWorkflow:
        """Convert database model to StoredWorkflow."""
        definition = WorkflowDefinition.from_dict(
            {
                **(db_workflow.definition or {}),
                "id": db_workflow.id,
                "name": db_workflow.name,
                "description": db_workflow.description or "",
            }
        )
        return StoredWorkflow(
            id=db_workflow.id,
            definition=definition,
            created_at=db_workflow.created_at,
            updated_at=db_workflow.updated_at,
        )
