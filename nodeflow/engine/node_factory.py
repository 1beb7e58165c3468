"""Node factory for registering and instantiating workflow node types."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..core.exceptions import UnknownNodeTypeError

if TYPE_CHECKING:
    from ..nodes.base import BaseNode

logger = logging.getLogger(__name__)


@dataclass
class NodeTypeInfo:
    """Full node type information for API responses."""

    type: str
    display_name: str
    description: str
    group: list[str] = field(default_factory=list)
    version: str = "1.0.0"
    supported_inputs: list[str] = field(default_factory=list)
    supported_outputs: list[str] = field(default_factory=list)
    default_flow_config: dict[str, Any] = field(default_factory=dict)
    default_work_config: dict[str, Any] = field(default_factory=dict)


class NodeFactory:
    """
    Registry of node types and factory for initialized node instances.

    Each create_node() call returns a fresh instance; nodes keep their
    configs on the instance so they are not shared between steps.
    """

    def __init__(self) -> None:
        self._nodes: dict[str, type[BaseNode]] = {}

    def register_type(self, name: str, node_class: type[BaseNode]) -> None:
        """
        Register a node class under a type name.

        Raises:
            ValueError: If the name is empty or node_class is not a class
        """
        if not name or not isinstance(name, str):
            raise ValueError("Node type name must be a non-empty string")
        if not inspect.isclass(node_class):
            raise ValueError(f'Node type "{name}" must be registered with a class')

        if name in self._nodes:
            logger.warning(f"Node type {name} is already registered, replacing it")
        self._nodes[name] = node_class
        logger.debug(f"Registered node type {name}")

    def register(self, node_class: type[BaseNode]) -> None:
        """Register a node class under its declared type."""
        self.register_type(node_class.class_config.type, node_class)

    async def create_node(
        self,
        name: str,
        flow_config: dict[str, Any] | None = None,
        work_config: dict[str, Any] | None = None,
    ) -> BaseNode:
        """
        Create and initialize a node instance.

        Raises:
            UnknownNodeTypeError: If the type is not registered
        """
        node_class = self._nodes.get(name)
        if node_class is None:
            raise UnknownNodeTypeError(name)

        node = node_class()
        try:
            await node.initialize(flow_config, work_config)
        except Exception:
            logger.exception(f"Failed to initialize node of type {name}")
            raise
        return node

    def has_type(self, name: str) -> bool:
        """Check if node type is registered."""
        return name in self._nodes

    def get_node_class(self, name: str) -> type[BaseNode]:
        node_class = self._nodes.get(name)
        if node_class is None:
            raise UnknownNodeTypeError(name)
        return node_class

    def get_registered_types(self) -> list[str]:
        """List all registered node types."""
        return list(self._nodes.keys())

    def get_node_type_info(self, name: str) -> NodeTypeInfo | None:
        """Get full info for a specific node type."""
        node_class = self._nodes.get(name)
        if node_class is None:
            return None
        return self._build_node_type_info(name, node_class)

    def get_node_info_full(self) -> list[NodeTypeInfo]:
        """Get full info for every registered node type."""
        return [
            self._build_node_type_info(name, node_class)
            for name, node_class in self._nodes.items()
        ]

    def _build_node_type_info(self, name: str, node_class: type[BaseNode]) -> NodeTypeInfo:
        config = node_class.class_config
        return NodeTypeInfo(
            type=name,
            display_name=config.display_name,
            description=config.description,
            group=list(config.group),
            version=config.version,
            supported_inputs=[kind.value for kind in config.supported_inputs],
            supported_outputs=[kind.value for kind in config.supported_outputs],
            default_flow_config=node_class.build_default_flow_config(),
            default_work_config=node_class.build_default_work_config(),
        )


def register_builtin_nodes(factory: NodeFactory) -> NodeFactory:
    """Register all built-in nodes on the given factory."""
    from ..nodes import ConvertNode, EndNode, StartNode, TextNode

    builtin_node_classes: list[type[BaseNode]] = [
        StartNode,
        EndNode,
        ConvertNode,
        TextNode,
    ]

    for node_class in builtin_node_classes:
        factory.register(node_class)
    return factory
