"""Convert node - moves data across a pipeline type boundary."""

from __future__ import annotations

from ..engine.pipeline import Pipeline
from ..engine.types import DataKind, PipelineKind
from .base import BaseNode, NodeClassConfig


class ConvertNode(BaseNode):
    """Rewrap the first item of the input under new pipeline and data kinds."""

    class_config = NodeClassConfig(
        type="convert",
        display_name="Convert",
        description="Convert a pipeline to another pipeline and data kind",
        group=["transform"],
        version="1.0.0",
        supported_inputs=[PipelineKind.ALL],
        supported_outputs=[],
    )

    default_work_config = {
        "pipeline_kind": PipelineKind.TEXT.value,
        "data_kind": DataKind.TEXT.value,
    }

    async def on_init(self) -> None:
        self.register_handler("*", self._convert)

    def _convert(self, pipeline: Pipeline) -> Pipeline:
        return Pipeline.convert(
            pipeline,
            self.get_parameter("pipeline_kind"),
            self.get_parameter("data_kind"),
        )
