"""End node - hands the final pipeline back to the caller."""

from __future__ import annotations

from ..engine.pipeline import Pipeline
from ..engine.types import PipelineKind
from .base import BaseNode, NodeClassConfig


class EndNode(BaseNode):
    """
    Terminal node.

    Passes its input through unchanged, or relabels it when `pipeline_kind`
    is configured. Items are kept as they are.
    """

    class_config = NodeClassConfig(
        type="end",
        display_name="End",
        description="Return the pipeline as the workflow output",
        group=["utility"],
        version="1.0.0",
        supported_inputs=[PipelineKind.ALL],
        supported_outputs=[],
    )

    default_work_config = {"pipeline_kind": None}

    async def on_init(self) -> None:
        self.register_handler("*", self._finish)

    def _finish(self, pipeline: Pipeline) -> Pipeline:
        kind = self.get_parameter("pipeline_kind")
        if not kind:
            return pipeline
        return pipeline.copy().set_kind(kind)
