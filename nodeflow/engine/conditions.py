"""
Branch condition evaluation for step transitions.

Uses simpleeval for safe expression evaluation (no eval() or exec()).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from simpleeval import DEFAULT_FUNCTIONS, DEFAULT_OPERATORS, SimpleEval

from .types import DataKind

if TYPE_CHECKING:
    from .pipeline import Pipeline

_STRING_LITERAL = re.compile(r"""("(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')""")


@dataclass(frozen=True)
class ResultView:
    """Read-only view of a step result exposed to expressions as `result`."""

    kind: str | None
    items: list[dict[str, Any]]
    text: Any
    count: int

    @classmethod
    def of(cls, result: Pipeline | None) -> ResultView:
        if result is None:
            return cls(kind=None, items=[], text=None, count=0)
        return cls(
            kind=result.kind.value,
            items=[
                {"data_kind": item.data_kind.value, "value": item.value}
                for item in result.items
            ],
            text=result.get_by_kind(DataKind.TEXT),
            count=len(result),
        )


class ConditionEvaluator:
    """
    Evaluates condition expressions against a step result.

    An expression sees the result through these names:
        result  ResultView: result.kind, result.items, result.text, result.count
        kind    the pipeline kind as a string
        text    first text item (or None)
        count   number of items
    and helper functions such as has("text"), first("chunk"), all_of("texts").

    JavaScript-style operators (===, !==, &&, ||, !, true/false/null) are
    accepted so stored definitions authored for the editor keep working.
    """

    def __init__(self) -> None:
        self._setup_evaluator()

    def _setup_evaluator(self) -> None:
        """Set up the safe evaluator with allowed functions."""
        self.evaluator = SimpleEval()
        self.evaluator.operators = DEFAULT_OPERATORS.copy()
        self.evaluator.functions = {
            **DEFAULT_FUNCTIONS,
            "str": str,
            "int": int,
            "float": float,
            "bool": bool,
            "len": len,
            "length": lambda x: len(x) if x is not None else 0,
            "lower": lambda s: str(s).lower(),
            "upper": lambda s: str(s).upper(),
            "trim": lambda s: str(s).strip(),
            "includes": lambda s, search: s is not None and search in s,
            "startswith": lambda s, prefix: str(s).startswith(prefix),
            "endswith": lambda s, suffix: str(s).endswith(suffix),
            "matches": lambda s, pattern: re.search(pattern, str(s)) is not None,
            "is_empty": lambda v: v is None or v == "" or (isinstance(v, (list, dict)) and len(v) == 0),
            "abs": abs,
            "min": min,
            "max": max,
        }

    def evaluate(self, expression: str, result: Pipeline | None) -> bool:
        """
        Evaluate an expression to a boolean.

        Raises whatever simpleeval raises for invalid expressions; callers
        decide how to treat the failure.
        """
        transformed = self._transform_expression(expression)
        self.evaluator.names = self._build_names(result)
        self.evaluator.functions.update(self._build_functions(result))
        return bool(self.evaluator.eval(transformed))

    def _transform_expression(self, expression: str) -> str:
        """Strip {{ }} wrappers and translate JavaScript-style operators."""
        expression = expression.strip()
        if expression.startswith("{{") and expression.endswith("}}"):
            expression = expression[2:-2].strip()

        # Odd indices are string literals and stay untouched
        parts = _STRING_LITERAL.split(expression)
        for index in range(0, len(parts), 2):
            part = parts[index]
            part = part.replace("===", "==").replace("!==", "!=")
            part = part.replace("&&", " and ").replace("||", " or ")
            # Unary ! that is not part of !=
            part = re.sub(r"!(?!=)", " not ", part)
            part = re.sub(r"\btrue\b", "True", part)
            part = re.sub(r"\bfalse\b", "False", part)
            part = re.sub(r"\b(null|undefined)\b", "None", part)
            parts[index] = part
        return "".join(parts).strip()

    def _build_names(self, result: Pipeline | None) -> dict[str, Any]:
        """Build the evaluation names from a step result."""
        view = ResultView.of(result)
        return {
            "result": view,
            "kind": view.kind,
            "text": view.text,
            "count": view.count,
            "True": True,
            "False": False,
            "None": None,
        }

    def _build_functions(self, result: Pipeline | None) -> dict[str, Any]:
        """Helpers bound to the current result."""

        def values(data_kind: str) -> list[Any]:
            if result is None or not DataKind.is_valid(data_kind):
                return []
            return result.get_all_by_kind(data_kind)

        return {
            "has": lambda data_kind: bool(values(data_kind)),
            "first": lambda data_kind: next(iter(values(data_kind)), None),
            "all_of": values,
        }


# Singleton instance
condition_evaluator = ConditionEvaluator()
