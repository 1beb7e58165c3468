"""Structural validation of stored workflow definitions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.exceptions import InvalidWorkflowDefinitionError
from .types import WorkflowDefinition

if TYPE_CHECKING:
    from .node_factory import NodeFactory


def find_reference_errors(definition: WorkflowDefinition) -> list[tuple[str | None, str]]:
    """
    Check that every step reference in a definition resolves.

    Returns (step_name, message) pairs; an empty list means the graph is
    referentially sound.
    """
    errors: list[tuple[str | None, str]] = []
    steps = definition.steps

    if definition.start_step_name and definition.start_step_name not in steps:
        errors.append(
            (None, f"Start step '{definition.start_step_name}' does not exist")
        )

    for key, step in steps.items():
        if step.name != key:
            errors.append((key, f"Step key '{key}' does not match step name '{step.name}'"))
        for target in step.next:
            if target not in steps:
                errors.append((key, f"Step '{key}' has next target '{target}' that does not exist"))
        for expression, target in step.conditions.items():
            if target not in steps:
                errors.append(
                    (key, f"Condition '{expression}' on step '{key}' targets missing step '{target}'")
                )

    return errors


def find_definition_errors(
    definition: WorkflowDefinition,
    factory: NodeFactory | None = None,
) -> list[tuple[str | None, str]]:
    """Full check used before a run: references, start step and node types."""
    errors: list[tuple[str | None, str]] = []

    if not definition.name:
        errors.append((None, "Workflow must have a name"))
    if not definition.steps:
        errors.append((None, "Workflow must have at least one step"))
    elif not definition.start_step_name:
        errors.append((None, "Workflow must declare a start step"))

    errors.extend(find_reference_errors(definition))

    if factory is not None:
        for key, step in definition.steps.items():
            if not step.node_type:
                errors.append((key, f"Step '{key}' has no node type"))
            elif not factory.has_type(step.node_type):
                errors.append((key, f"Step '{key}' uses unknown node type '{step.node_type}'"))

    return errors


def validate_definition(
    definition: WorkflowDefinition,
    factory: NodeFactory | None = None,
) -> None:
    """
    Validate a definition, raising on the first problem found.

    Raises:
        InvalidWorkflowDefinitionError: If the definition cannot be run
    """
    errors = find_definition_errors(definition, factory)
    if errors:
        step_name, message = errors[0]
        raise InvalidWorkflowDefinitionError(
            message, workflow_name=definition.name, step_name=step_name
        )
