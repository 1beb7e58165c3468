"""Start node - wraps the raw run input into the configured pipeline kind."""

from __future__ import annotations

import logging

from ..engine.pipeline import Pipeline
from ..engine.types import DataKind, PipelineKind
from .base import BaseNode, NodeClassConfig

logger = logging.getLogger(__name__)


class StartNode(BaseNode):
    """Entry point of a workflow; rewraps its input under the configured kinds."""

    class_config = NodeClassConfig(
        type="start",
        display_name="Start",
        description="Wrap the raw input into the initial pipeline",
        group=["utility"],
        version="1.0.0",
        supported_inputs=[PipelineKind.ALL],
        supported_outputs=[],
    )

    default_work_config = {
        "pipeline_kind": PipelineKind.USER_MESSAGE.value,
        "data_kind": DataKind.TEXT.value,
    }

    async def on_init(self) -> None:
        self.register_handler("*", self._wrap)

    def _wrap(self, pipeline: Pipeline) -> Pipeline:
        kind = self.get_parameter("pipeline_kind", PipelineKind.USER_MESSAGE.value)
        data_kind = self.get_parameter("data_kind", DataKind.TEXT.value)
        logger.debug(f"Start node wrapping {pipeline.kind.value} pipeline as {kind}/{data_kind}")
        return Pipeline.convert(pipeline, kind, data_kind)
