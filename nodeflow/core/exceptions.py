"""Custom exceptions for the nodeflow engine."""

from typing import Any


class NodeflowError(Exception):
    """Base exception for all nodeflow errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Pipeline errors ---


class InvalidPipelineKindError(NodeflowError, ValueError):
    """Raised when a pipeline kind is not a member of PipelineKind."""

    def __init__(self, kind: Any) -> None:
        super().__init__(
            message=f"Invalid pipeline kind: {kind}",
            details={"kind": str(kind)},
        )
        self.kind = kind


class InvalidDataKindError(NodeflowError, ValueError):
    """Raised when a data kind is not a member of DataKind."""

    def __init__(self, data_kind: Any) -> None:
        super().__init__(
            message=f"Invalid data kind: {data_kind}",
            details={"data_kind": str(data_kind)},
        )
        self.data_kind = data_kind


# --- Configuration errors ---


class ConfigurationError(NodeflowError):
    """Raised when node registration or a stored definition is unusable."""


class UnknownNodeTypeError(ConfigurationError):
    """Raised when a node type is not registered with the factory."""

    def __init__(self, node_type: str) -> None:
        super().__init__(
            message=f'Unknown node type: "{node_type}"',
            details={"node_type": node_type},
        )
        self.node_type = node_type


class InvalidWorkflowDefinitionError(ConfigurationError):
    """Raised when a stored step graph fails structural validation."""

    def __init__(self, message: str, workflow_name: str | None = None, step_name: str | None = None) -> None:
        super().__init__(
            message=message,
            details={"workflow_name": workflow_name, "step_name": step_name},
        )
        self.workflow_name = workflow_name
        self.step_name = step_name


# --- Node contract violations ---


class ContractViolationError(NodeflowError):
    """Raised when a node is used outside its declared contract."""

    def __init__(self, message: str, node_type: str | None = None, **details: Any) -> None:
        super().__init__(message=message, details={"node_type": node_type, **details})
        self.node_type = node_type


class NodeNotInitializedError(ContractViolationError):
    """Raised when a node is used before initialize() has completed."""

    def __init__(self, node_type: str | None = None) -> None:
        super().__init__(
            f'Node "{node_type}" is not initialized, call initialize() first',
            node_type=node_type,
        )


class UnsupportedInputError(ContractViolationError):
    """Raised when a node receives a pipeline kind it does not declare."""

    def __init__(self, node_type: str | None, kind: str, supported: list[str]) -> None:
        super().__init__(
            f'Node "{node_type}" does not support input pipeline kind "{kind}", '
            f"supported kinds: {', '.join(supported)}",
            node_type=node_type,
            kind=kind,
            supported=supported,
        )
        self.kind = kind
        self.supported = supported


class UnsupportedOutputError(ContractViolationError):
    """Raised when a node returns a pipeline kind it does not declare."""

    def __init__(self, node_type: str | None, kind: str, supported: list[str]) -> None:
        super().__init__(
            f'Node "{node_type}" produced output pipeline kind "{kind}", '
            f"declared output kinds: {', '.join(supported)}",
            node_type=node_type,
            kind=kind,
            supported=supported,
        )
        self.kind = kind
        self.supported = supported


# --- Run errors ---


class EngineStateError(NodeflowError):
    """Raised when an engine operation is not legal from its current status."""

    def __init__(self, message: str, status: str) -> None:
        super().__init__(message=message, details={"status": status})
        self.status = status


class WorkflowExecutionError(NodeflowError):
    """Raised when workflow execution fails."""

    def __init__(
        self,
        message: str,
        workflow_id: str | None = None,
        step_name: str | None = None,
    ) -> None:
        super().__init__(
            message=message,
            details={
                "workflow_id": workflow_id,
                "step_name": step_name,
            },
        )
        self.workflow_id = workflow_id
        self.step_name = step_name


class StepExecutionError(WorkflowExecutionError):
    """Raised when a node fails with an error outside the nodeflow taxonomy; wraps it."""


class InvalidTransitionError(WorkflowExecutionError):
    """Raised when the cursor cannot move to the chosen next step."""


class MaxStepsExceededError(WorkflowExecutionError):
    """Raised when a run executes more steps than allowed."""

    def __init__(self, max_steps: int, workflow_id: str | None = None, step_name: str | None = None) -> None:
        super().__init__(
            f"Execution exceeded maximum of {max_steps} steps (possible cycle)",
            workflow_id=workflow_id,
            step_name=step_name,
        )
        self.max_steps = max_steps


# --- Persistence-facing errors ---


class WorkflowNotFoundError(NodeflowError):
    """Raised when a workflow is not found."""

    def __init__(self, workflow_id: str) -> None:
        super().__init__(
            message=f"Workflow not found: {workflow_id}",
            details={"workflow_id": workflow_id},
        )
        self.workflow_id = workflow_id


class StepNotFoundError(NodeflowError):
    """Raised when a step is not found in a workflow."""

    def __init__(self, workflow_id: str, step_name: str) -> None:
        super().__init__(
            message=f'Step "{step_name}" not found in workflow {workflow_id}',
            details={"workflow_id": workflow_id, "step_name": step_name},
        )
        self.workflow_id = workflow_id
        self.step_name = step_name


class ExecutionNotFoundError(NodeflowError):
    """Raised when an execution record is not found."""

    def __init__(self, execution_id: str) -> None:
        super().__init__(
            message=f"Execution not found: {execution_id}",
            details={"execution_id": execution_id},
        )
        self.execution_id = execution_id


class NodeNotFoundError(NodeflowError):
    """Raised when a node type is not found."""

    def __init__(self, node_type: str) -> None:
        super().__init__(
            message=f"Node type not found: {node_type}",
            details={"node_type": node_type},
        )
        self.node_type = node_type


class ValidationError(NodeflowError):
    """Raised when validation fails."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(
            message=message,
            details={"field": field} if field else {},
        )
        self.field = field
