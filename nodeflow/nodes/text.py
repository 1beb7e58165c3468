"""Text node - deterministic text transforms."""

from __future__ import annotations

from ..core.exceptions import ValidationError
from ..engine.pipeline import Pipeline
from ..engine.types import DataKind, PipelineKind
from .base import BaseNode, NodeClassConfig

OPERATIONS = ("upper", "lower", "strip", "template")


class TextNode(BaseNode):
    """
    Apply a text operation to every text item of the input.

    Work config:
        operation  upper | lower | strip | template
        template   used by "template"; {text} is replaced with the item text
    """

    class_config = NodeClassConfig(
        type="text",
        display_name="Text",
        description="Transform text items (upper, lower, strip, template)",
        group=["transform"],
        version="1.0.0",
        supported_inputs=[
            PipelineKind.PROMPT,
            PipelineKind.CHAT,
            PipelineKind.TEXT,
            PipelineKind.USER_MESSAGE,
        ],
        supported_outputs=[PipelineKind.TEXT],
    )

    default_work_config = {
        "operation": "strip",
        "template": "{text}",
    }

    async def on_init(self) -> None:
        operation = self.get_parameter("operation")
        if operation not in OPERATIONS:
            raise ValidationError(
                f"Unknown text operation '{operation}', expected one of: {', '.join(OPERATIONS)}",
                field="operation",
            )
        self.register_handler("*", self._transform)

    def _apply(self, text: str) -> str:
        operation = self.get_parameter("operation")
        if operation == "upper":
            return text.upper()
        if operation == "lower":
            return text.lower()
        if operation == "template":
            return self.get_parameter("template", "{text}").replace("{text}", text)
        return text.strip()

    def _transform(self, pipeline: Pipeline) -> Pipeline:
        output = Pipeline(PipelineKind.TEXT)
        for value in pipeline.get_all_by_kind(DataKind.TEXT):
            output.add(DataKind.TEXT, self._apply(str(value)))
        return output
