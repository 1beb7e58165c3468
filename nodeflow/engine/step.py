"""Step - one named position in a workflow's step graph."""

from __future__ import annotations

import logging
from typing import Any

from .conditions import ConditionEvaluator, condition_evaluator
from .pipeline import Pipeline
from .types import StepDefinition, StepStatus

logger = logging.getLogger(__name__)


class Step:
    """
    A step binds a node type to its params and branching rules.

    `conditions` maps an expression to the name of the step to take when the
    expression is true against the step result. Insertion order is the
    evaluation order.
    """

    def __init__(
        self,
        name: str,
        node_type: str,
        params: dict[str, Any] | None = None,
        next: list[str] | None = None,
        conditions: dict[str, str] | None = None,
        evaluator: ConditionEvaluator | None = None,
    ) -> None:
        self.name = name
        self.node_type = node_type
        self.params: dict[str, Any] = dict(params or {})
        self.next: list[str] = list(next or [])
        self.conditions: dict[str, str] = dict(conditions or {})
        self.status = StepStatus.PENDING
        self._evaluator = evaluator or condition_evaluator

    @property
    def metadata(self) -> dict[str, Any]:
        """Flow config handed to the node bound to this step."""
        return {"node_name": self.name, "step_name": self.name}

    def determine_next_step(self, result: Pipeline | None) -> str | None:
        """
        Pick the name of the step to run after this one.

        Returns None when `next` is empty. With a single `next` entry and no
        conditions that entry is returned as is. Otherwise the first true
        condition whose target is in `next` wins; when nothing matches the
        first `next` entry is the default path.
        """
        if not self.next:
            return None

        if len(self.next) == 1 and not self.conditions:
            return self.next[0]

        for expression, target in self.conditions.items():
            try:
                matched = self._evaluator.evaluate(expression, result)
            except Exception as e:
                logger.warning(f"Condition '{expression}' on step {self.name} failed to evaluate: {e}")
                continue

            if not matched:
                continue
            if target not in self.next:
                logger.warning(
                    f"Condition '{expression}' on step {self.name} targets {target}, "
                    f"which is not in next {self.next}; ignoring it"
                )
                continue
            return target

        logger.debug(f"No condition matched on step {self.name}, taking default {self.next[0]}")
        return self.next[0]

    def set_status(self, status: StepStatus) -> None:
        self.status = status

    def reset(self) -> None:
        self.status = StepStatus.PENDING

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "node_type": self.node_type,
            "params": dict(self.params),
            "next": list(self.next),
            "conditions": dict(self.conditions),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Step:
        step = cls.from_definition(StepDefinition.from_dict(data))
        if data.get("status"):
            step.status = StepStatus(data["status"])
        return step

    @classmethod
    def from_definition(cls, definition: StepDefinition) -> Step:
        return cls(
            name=definition.name,
            node_type=definition.node_type,
            params=definition.params,
            next=definition.next,
            conditions=definition.conditions,
        )
