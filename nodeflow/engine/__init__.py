"""Core workflow engine components."""

from .types import (
    DataKind,
    EngineContext,
    EngineEvent,
    EngineEventType,
    EngineStatus,
    ExecutionRecord,
    HistoryEntry,
    NodeConfigRecord,
    PipelineItem,
    PipelineKind,
    StepDefinition,
    StepStatus,
    StoredWorkflow,
    WorkflowDefinition,
    WorkflowStatus,
)
from .pipeline import Pipeline
from .conditions import ConditionEvaluator, condition_evaluator
from .node_factory import NodeFactory, NodeTypeInfo, register_builtin_nodes
from .step import Step
from .workflow import Workflow
from .validation import validate_definition
from .engine import Engine
from .executor import ActiveRuns, ExecuteOptions, WorkflowExecutor

__all__ = [
    "DataKind",
    "EngineContext",
    "EngineEvent",
    "EngineEventType",
    "EngineStatus",
    "ExecutionRecord",
    "HistoryEntry",
    "NodeConfigRecord",
    "PipelineItem",
    "PipelineKind",
    "StepDefinition",
    "StepStatus",
    "StoredWorkflow",
    "WorkflowDefinition",
    "WorkflowStatus",
    "Pipeline",
    "ConditionEvaluator",
    "condition_evaluator",
    "NodeFactory",
    "NodeTypeInfo",
    "register_builtin_nodes",
    "Step",
    "Workflow",
    "validate_definition",
    "Engine",
    "ActiveRuns",
    "ExecuteOptions",
    "WorkflowExecutor",
]
