"""Core type definitions for the nodeflow engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from .pipeline import Pipeline


class PipelineKind(str, Enum):
    """Semantic kind of a Pipeline; ALL is the wildcard used in declarations."""

    ALL = "all"
    CHAT = "chat"
    PROMPT = "prompt"
    RETRIEVAL = "retrieval"
    EMBEDDING = "embedding"
    CUSTOM = "custom"
    CHUNK = "chunk"
    TEXT = "text"
    SEARCH = "search"
    USER_MESSAGE = "user_message"
    ERROR = "error"
    UNKNOWN = "unknown"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]

    @classmethod
    def is_valid(cls, value: Any) -> bool:
        return isinstance(value, str) and value in cls._value2member_map_


class DataKind(str, Enum):
    """Kind of a single data item carried by a Pipeline."""

    ANY = "any"
    TEXT = "text"
    TEXTS = "texts"
    DOCUMENT = "document"
    EMBEDDING = "embedding"
    RETRIEVAL = "retrieval"
    CHUNK = "chunk"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]

    @classmethod
    def is_valid(cls, value: Any) -> bool:
        return isinstance(value, str) and value in cls._value2member_map_


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class WorkflowStatus(str, Enum):
    READY = "ready"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"


class EngineStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"


TERMINAL_ENGINE_STATUSES = frozenset(
    {EngineStatus.COMPLETED, EngineStatus.FAILED, EngineStatus.STOPPED}
)


class NodeStatus(str, Enum):
    """Display status kept in a node's flow config."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class EngineEventType(str, Enum):
    """Lifecycle events emitted by the Engine."""

    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"
    STATUS_CHANGE = "statusChange"
    STEP_START = "stepStart"
    STEP_COMPLETE = "stepComplete"
    STEP_ERROR = "stepError"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class PipelineItem:
    """Data item carried by a Pipeline."""

    data_kind: DataKind
    value: Any


@dataclass
class HistoryEntry:
    """One cursor transition recorded by a Workflow."""

    step_name: str
    status: StepStatus
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_name": self.step_name,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class EngineContext:
    """Shared data for one Engine run."""

    input: Pipeline | None = None
    output: Pipeline | None = None
    # Insertion order follows execution order
    step_results: dict[str, Pipeline] = field(default_factory=dict)


@dataclass
class EngineEvent:
    """Lifecycle event delivered to Engine subscribers."""

    type: EngineEventType
    workflow: str
    timestamp: datetime = field(default_factory=datetime.now)
    execution_id: str | None = None
    step: str | None = None
    status: str | None = None
    error: str | None = None
    result: Pipeline | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type.value,
            "workflow": self.workflow,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.execution_id:
            data["executionId"] = self.execution_id
        if self.step:
            data["step"] = self.step
        if self.status:
            data["status"] = self.status
        if self.error:
            data["error"] = self.error
        if self.result is not None:
            data["result"] = self.result.to_dict()
        return data


# Callback type for receiving engine events
EngineEventCallback = Callable[[EngineEvent], None]


# --- Stored definition types ---


@dataclass
class StepDefinition:
    """Stored definition of one step."""

    name: str
    node_type: str
    params: dict[str, Any] = field(default_factory=dict)
    next: list[str] = field(default_factory=list)
    conditions: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "node_type": self.node_type,
            "params": dict(self.params),
            "next": list(self.next),
            "conditions": dict(self.conditions),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StepDefinition:
        return cls(
            name=data.get("name", ""),
            node_type=data.get("node_type") or data.get("nodeType", ""),
            params=dict(data.get("params") or {}),
            next=list(data.get("next") or []),
            conditions=dict(data.get("conditions") or {}),
        )


@dataclass
class WorkflowDefinition:
    """Stored step graph a Workflow is built from."""

    name: str
    steps: dict[str, StepDefinition]
    start_step_name: str | None = None
    description: str = ""
    steps_order: list[str] = field(default_factory=list)
    id: str | None = None

    def ordered_step_names(self) -> list[str]:
        """Steps in display order; steps missing from steps_order go last."""
        ordered = [name for name in self.steps_order if name in self.steps]
        ordered.extend(name for name in self.steps if name not in ordered)
        return ordered

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "steps": {name: step.to_dict() for name, step in self.steps.items()},
            "start_step_name": self.start_step_name,
            "steps_order": self.ordered_step_names(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkflowDefinition:
        steps = {
            name: StepDefinition.from_dict({"name": name, **(raw or {})})
            for name, raw in (data.get("steps") or {}).items()
        }
        return cls(
            id=data.get("id"),
            name=data.get("name", ""),
            description=data.get("description") or "",
            steps=steps,
            start_step_name=data.get("start_step_name") or data.get("startStepName"),
            steps_order=list(data.get("steps_order") or []),
        )


@dataclass
class StoredWorkflow:
    """Stored workflow definition with metadata."""

    id: str
    definition: WorkflowDefinition
    created_at: datetime
    updated_at: datetime

    @property
    def name(self) -> str:
        return self.definition.name


@dataclass
class ExecutionRecord:
    """Execution record for history."""

    id: str
    workflow_id: str
    workflow_name: str
    status: str
    start_time: datetime
    end_time: datetime | None = None
    input: dict[str, Any] | None = None
    output: dict[str, Any] | None = None
    step_results: dict[str, Any] = field(default_factory=dict)
    history: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None


@dataclass
class NodeConfigRecord:
    """Stored flow/work overrides for one node type."""

    node_type: str
    flow_config: dict[str, Any] = field(default_factory=dict)
    work_config: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_type": self.node_type,
            "flow_config": dict(self.flow_config),
            "work_config": dict(self.work_config),
        }
