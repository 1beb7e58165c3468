"""Workflow - a runnable instance of a stored step graph."""

from __future__ import annotations

from typing import Any

from ..core.exceptions import InvalidWorkflowDefinitionError
from .step import Step
from .types import HistoryEntry, StepStatus, WorkflowDefinition, WorkflowStatus
from .validation import find_reference_errors


class Workflow:
    """
    Named steps plus a movable cursor and an append-only history.

    Built fresh from a stored definition for every run; the definition itself
    is never mutated.
    """

    def __init__(self, definition: WorkflowDefinition) -> None:
        errors = find_reference_errors(definition)
        if errors:
            step_name, message = errors[0]
            raise InvalidWorkflowDefinitionError(
                message, workflow_name=definition.name, step_name=step_name
            )

        self.definition = definition
        self.id = definition.id
        self.name = definition.name
        self.description = definition.description
        self.steps: dict[str, Step] = {
            name: Step.from_definition(definition.steps[name])
            for name in definition.ordered_step_names()
        }
        self.start_step_name = definition.start_step_name
        self.current_step_name = definition.start_step_name
        self.status = WorkflowStatus.READY
        self._history: list[HistoryEntry] = []

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Workflow:
        return cls(WorkflowDefinition.from_dict(data))

    @property
    def current_step(self) -> Step | None:
        if not self.current_step_name:
            return None
        return self.steps.get(self.current_step_name)

    @property
    def history(self) -> list[HistoryEntry]:
        return list(self._history)

    def get_step(self, name: str) -> Step | None:
        return self.steps.get(name)

    def move_to_next(self, next_step_name: str) -> bool:
        """
        Advance the cursor to one of the current step's next steps.

        Records the step being left in history. Returns False without moving
        when there is no current step or the target is not a declared next.
        """
        current = self.current_step
        if current is None:
            return False
        if next_step_name not in current.next or next_step_name not in self.steps:
            return False

        self._history.append(HistoryEntry(step_name=current.name, status=current.status))
        self.current_step_name = next_step_name
        return True

    def record_step(self, step: Step) -> None:
        """Record the final step of a run, which is never left via move_to_next."""
        self._history.append(HistoryEntry(step_name=step.name, status=step.status))

    def set_status(self, status: WorkflowStatus) -> None:
        self.status = status

    def reset(self) -> None:
        for step in self.steps.values():
            step.set_status(StepStatus.PENDING)
        self.current_step_name = self.start_step_name
        self.status = WorkflowStatus.READY
        self._history = []

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "steps": {name: step.to_dict() for name, step in self.steps.items()},
            "start_step_name": self.start_step_name,
            "current_step_name": self.current_step_name,
            "status": self.status.value,
            "history": [entry.to_dict() for entry in self._history],
        }
