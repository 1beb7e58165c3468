"""Node-related Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, Field


class NodeTypeInfoSchema(BaseModel):
    """Full information about a node type."""

    type: str
    display_name: str
    description: str
    group: list[str]
    version: str
    supported_inputs: list[str]
    supported_outputs: list[str]
    default_flow_config: dict[str, Any]
    default_work_config: dict[str, Any]


class NodeConfigResponse(BaseModel):
    """Stored overrides and the effective config of a node type."""

    node_type: str
    flow_config: dict[str, Any] = Field(..., description="Stored flow overrides")
    work_config: dict[str, Any] = Field(..., description="Stored work overrides")
    effective_flow_config: dict[str, Any]
    effective_work_config: dict[str, Any]


class NodeConfigUpdateRequest(BaseModel):
    """Partial override update; blank values are ignored."""

    flow_config: dict[str, Any] | None = None
    work_config: dict[str, Any] | None = None
