"""Base node class for all workflow nodes."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, ClassVar, Union

from ..core.exceptions import (
    NodeNotInitializedError,
    UnsupportedInputError,
    UnsupportedOutputError,
)
from ..engine.pipeline import Pipeline
from ..engine.types import NodeStatus, PipelineKind

logger = logging.getLogger(__name__)


PipelineHandler = Callable[[Pipeline], Union[Pipeline, Awaitable[Pipeline]]]

# Handler used when no kind-specific handler is registered
WILDCARD_HANDLER = "*"


@dataclass
class NodeClassConfig:
    """Static description of a node type, shared by every instance."""

    type: str
    display_name: str
    description: str
    group: list[str] = field(default_factory=lambda: ["utility"])
    version: str = "1.0.0"
    supported_inputs: list[PipelineKind] = field(default_factory=list)
    supported_outputs: list[PipelineKind] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "display_name": self.display_name,
            "description": self.description,
            "group": list(self.group),
            "version": self.version,
            "supported_inputs": [kind.value for kind in self.supported_inputs],
            "supported_outputs": [kind.value for kind in self.supported_outputs],
        }


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def merge_config(base: dict[str, Any], overrides: dict[str, Any] | None) -> dict[str, Any]:
    """Overlay overrides on base; None and blank-string overrides are ignored."""
    merged = dict(base)
    for key, value in (overrides or {}).items():
        if not _is_blank(value):
            merged[key] = value
    return merged


class BaseNode:
    """
    Base class for all workflow nodes.

    Subclasses declare a class-level `class_config` plus default flow and work
    configs, then register pipeline handlers in `on_init`. A node with no
    registered handlers passes its input through unchanged.

    Flow config is display metadata (node name, status, position); work
    config holds the runtime parameters the handlers read.
    """

    class_config: ClassVar[NodeClassConfig]
    default_flow_config: ClassVar[dict[str, Any]] = {}
    default_work_config: ClassVar[dict[str, Any]] = {}

    def __init__(self) -> None:
        self._flow_config: dict[str, Any] = {}
        self._work_config: dict[str, Any] = {}
        self._handlers: dict[str, PipelineHandler] = {}
        self._initialized = False

    @property
    def type(self) -> str:
        """Node type identifier."""
        return self.class_config.type

    @property
    def description(self) -> str:
        return self.class_config.description

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @classmethod
    def build_default_flow_config(cls) -> dict[str, Any]:
        """Default flow config, filled in with the display name and idle status."""
        return {
            "node_name": cls.class_config.display_name,
            "status": NodeStatus.IDLE.value,
            "position": {"x": 0, "y": 0},
            **cls.default_flow_config,
        }

    @classmethod
    def build_default_work_config(cls) -> dict[str, Any]:
        return dict(cls.default_work_config)

    async def initialize(
        self,
        flow_config: dict[str, Any] | None = None,
        work_config: dict[str, Any] | None = None,
    ) -> BaseNode:
        """
        Load configs and install handlers.

        Class defaults are overlaid with the given overrides. Calling this a
        second time logs a warning and leaves the node untouched.
        """
        if self._initialized:
            logger.warning(f"Node {self.type} is already initialized, ignoring initialize()")
            return self

        self._flow_config = merge_config(self.build_default_flow_config(), flow_config)
        self._work_config = merge_config(self.build_default_work_config(), work_config)

        self._handlers = {WILDCARD_HANDLER: self._default_handler}
        self._initialized = True

        await self.on_init()
        return self

    async def on_init(self) -> None:
        """Hook for subclasses; runs once after the node is marked initialized."""

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NodeNotInitializedError(self.type)

    @property
    def flow_config(self) -> dict[str, Any]:
        self._require_initialized()
        return dict(self._flow_config)

    @property
    def work_config(self) -> dict[str, Any]:
        self._require_initialized()
        return dict(self._work_config)

    def update_flow_config(self, config: dict[str, Any]) -> None:
        self._require_initialized()
        self._flow_config = merge_config(self._flow_config, config)

    def update_work_config(self, config: dict[str, Any]) -> None:
        self._require_initialized()
        self._work_config = merge_config(self._work_config, config)

    def get_parameter(self, key: str, default: Any = None) -> Any:
        """Get a work config value."""
        self._require_initialized()
        value = self._work_config.get(key)
        return default if value is None else value

    @classmethod
    def supported_inputs(cls) -> list[PipelineKind]:
        return list(cls.class_config.supported_inputs)

    @classmethod
    def supported_outputs(cls) -> list[PipelineKind]:
        return list(cls.class_config.supported_outputs)

    @classmethod
    def supports_input(cls, kind: PipelineKind) -> bool:
        """An empty declaration or one containing ALL accepts every kind."""
        supported = cls.supported_inputs()
        if not supported or PipelineKind.ALL in supported:
            return True
        return kind in supported

    def register_handler(self, kind: PipelineKind | str, handler: PipelineHandler) -> None:
        self._require_initialized()
        key = kind.value if isinstance(kind, PipelineKind) else kind
        self._handlers[key] = handler

    def _default_handler(self, pipeline: Pipeline) -> Pipeline:
        return pipeline

    async def execute(self, pipeline: Pipeline) -> Pipeline:
        """Dispatch to the handler for the pipeline kind, else the wildcard."""
        self._require_initialized()
        handler = self._handlers.get(pipeline.kind.value) or self._handlers.get(WILDCARD_HANDLER)
        if handler is None:
            return pipeline

        result = handler(pipeline)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def process(self, pipeline: Pipeline) -> Pipeline:
        """
        Checked entry point used by the engine.

        Raises:
            NodeNotInitializedError: initialize() has not run
            TypeError: the input is not a Pipeline
            UnsupportedInputError: the input kind is not declared
            UnsupportedOutputError: the handler returned an undeclared kind
        """
        self._require_initialized()

        if not isinstance(pipeline, Pipeline):
            raise TypeError(
                f"Node {self.type} expects a Pipeline, got {type(pipeline).__name__}"
            )

        if not self.supports_input(pipeline.kind):
            raise UnsupportedInputError(
                self.type,
                pipeline.kind.value,
                [kind.value for kind in self.supported_inputs()],
            )

        output = await self.execute(pipeline)
        if not isinstance(output, Pipeline):
            raise TypeError(
                f"Node {self.type} returned {type(output).__name__} instead of a Pipeline"
            )

        supported_outputs = self.supported_outputs()
        if supported_outputs and output.kind not in supported_outputs:
            raise UnsupportedOutputError(
                self.type,
                output.kind.value,
                [kind.value for kind in supported_outputs],
            )

        return output

    def to_dict(self) -> dict[str, Any]:
        """Flow and work config merged into one record."""
        self._require_initialized()
        return {**self._flow_config, **self._work_config}
