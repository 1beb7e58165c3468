"""Core module for nodeflow - config, exceptions, logging and dependencies."""

from .config import settings, Settings, get_settings
from .exceptions import (
    NodeflowError,
    ConfigurationError,
    ContractViolationError,
    EngineStateError,
    WorkflowNotFoundError,
    ExecutionNotFoundError,
    NodeNotFoundError,
    StepNotFoundError,
    ValidationError,
    WorkflowExecutionError,
)
from .logging_config import configure_logging

__all__ = [
    # Config
    "settings",
    "Settings",
    "get_settings",
    "configure_logging",
    # Exceptions
    "NodeflowError",
    "ConfigurationError",
    "ContractViolationError",
    "EngineStateError",
    "WorkflowNotFoundError",
    "ExecutionNotFoundError",
    "NodeNotFoundError",
    "StepNotFoundError",
    "ValidationError",
    "WorkflowExecutionError",
]
