"""Node service for business logic."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.exceptions import NodeNotFoundError
from ..schemas.node import NodeConfigResponse, NodeConfigUpdateRequest, NodeTypeInfoSchema

if TYPE_CHECKING:
    from ..engine.node_factory import NodeFactory, NodeTypeInfo
    from ..repositories import NodeConfigRepository


class NodeService:
    """Service for node types and their stored configuration."""

    def __init__(self, factory: NodeFactory, node_config_repo: NodeConfigRepository) -> None:
        self._factory = factory
        self._node_config_repo = node_config_repo

    def list_nodes(self) -> list[NodeTypeInfoSchema]:
        """List all available node types."""
        return [self._to_schema(info) for info in self._factory.get_node_info_full()]

    def get_node(self, node_type: str) -> NodeTypeInfoSchema:
        """Get the descriptor for a specific node type."""
        info = self._factory.get_node_type_info(node_type)
        if not info:
            raise NodeNotFoundError(node_type)
        return self._to_schema(info)

    def get_nodes_by_group(self, group: str) -> list[NodeTypeInfoSchema]:
        """Get nodes filtered by group."""
        return [n for n in self.list_nodes() if group in n.group]

    async def get_config(self, node_type: str) -> NodeConfigResponse:
        """Get stored overrides and effective config for a node type."""
        self._require_type(node_type)
        stored = await self._node_config_repo.get(node_type)
        effective = await self._node_config_repo.resolve(node_type, self._factory)
        return NodeConfigResponse(
            node_type=node_type,
            flow_config=stored.flow_config if stored else {},
            work_config=stored.work_config if stored else {},
            effective_flow_config=effective.flow_config,
            effective_work_config=effective.work_config,
        )

    async def update_config(self, node_type: str, request: NodeConfigUpdateRequest) -> NodeConfigResponse:
        """Merge partial overrides into the stored config of a node type."""
        self._require_type(node_type)
        await self._node_config_repo.save(node_type, request.flow_config, request.work_config)
        return await self.get_config(node_type)

    async def reset_config(self, node_type: str) -> NodeConfigResponse:
        """Drop stored overrides so the class defaults apply again."""
        self._require_type(node_type)
        await self._node_config_repo.delete(node_type)
        return await self.get_config(node_type)

    def _require_type(self, node_type: str) -> None:
        if not self._factory.has_type(node_type):
            raise NodeNotFoundError(node_type)

    def _to_schema(self, info: NodeTypeInfo) -> NodeTypeInfoSchema:
        return NodeTypeInfoSchema(
            type=info.type,
            display_name=info.display_name,
            description=info.description,
            group=info.group,
            version=info.version,
            supported_inputs=info.supported_inputs,
            supported_outputs=info.supported_outputs,
            default_flow_config=info.default_flow_config,
            default_work_config=info.default_work_config,
        )
