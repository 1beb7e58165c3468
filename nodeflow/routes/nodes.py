"""Node routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from ..core.exceptions import NodeNotFoundError
from ..core.dependencies import get_node_service
from ..services.node_service import NodeService
from ..schemas.node import NodeConfigResponse, NodeConfigUpdateRequest, NodeTypeInfoSchema

router = APIRouter(prefix="/nodes")


# Type alias for dependency injection
NodeServiceDep = Annotated[NodeService, Depends(get_node_service)]


@router.get("", response_model=list[NodeTypeInfoSchema])
async def list_nodes(
    service: NodeServiceDep,
    group: str | None = Query(None, description="Filter by node group"),
) -> list[NodeTypeInfoSchema]:
    """List all available node types."""
    if group:
        return service.get_nodes_by_group(group)
    return service.list_nodes()


@router.get("/{node_type}", response_model=NodeTypeInfoSchema)
async def get_node(
    node_type: str,
    service: NodeServiceDep,
) -> NodeTypeInfoSchema:
    """Get the descriptor of a node type."""
    try:
        return service.get_node(node_type)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.get("/{node_type}/config", response_model=NodeConfigResponse)
async def get_node_config(
    node_type: str,
    service: NodeServiceDep,
) -> NodeConfigResponse:
    """Get stored overrides and effective config of a node type."""
    try:
        return await service.get_config(node_type)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.put("/{node_type}/config", response_model=NodeConfigResponse)
async def update_node_config(
    node_type: str,
    body: NodeConfigUpdateRequest,
    service: NodeServiceDep,
) -> NodeConfigResponse:
    """Merge config overrides for a node type."""
    try:
        return await service.update_config(node_type, body)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.delete("/{node_type}/config", response_model=NodeConfigResponse)
async def reset_node_config(
    node_type: str,
    service: NodeServiceDep,
) -> NodeConfigResponse:
    """Drop config overrides for a node type."""
    try:
        return await service.reset_config(node_type)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
