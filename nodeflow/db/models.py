"""SQLModel database models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlmodel import Column, Field, SQLModel
from sqlalchemy import JSON


class WorkflowModel(SQLModel, table=True):
    """Workflow definition database model."""

    __tablename__ = "workflows"

    id: str = Field(primary_key=True)
    name: str = Field(index=True, unique=True)
    description: str | None = Field(default=None)

    # Full step graph: steps, start_step_name, steps_order
    definition: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class NodeConfigModel(SQLModel, table=True):
    """Stored flow/work config overrides per node type."""

    __tablename__ = "node_configs"

    node_type: str = Field(primary_key=True)
    flow_config: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    work_config: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    updated_at: datetime = Field(default_factory=datetime.now)


class ExecutionModel(SQLModel, table=True):
    """Execution history database model."""

    __tablename__ = "executions"

    id: str = Field(primary_key=True)
    workflow_id: str = Field(index=True)
    workflow_name: str

    status: str = Field(index=True)  # running, completed, failed, stopped

    input: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    output: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))

    # Serialized pipelines keyed by step name, in execution order
    step_results: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    history: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    error: str | None = Field(default=None)

    start_time: datetime = Field(default_factory=datetime.now, index=True)
    end_time: datetime | None = Field(default=None)
