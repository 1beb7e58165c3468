"""Database configuration and models."""

from .session import engine, async_session_factory, init_db, get_session
from .models import WorkflowModel, NodeConfigModel, ExecutionModel

__all__ = [
    "engine",
    "async_session_factory",
    "init_db",
    "get_session",
    "WorkflowModel",
    "NodeConfigModel",
    "ExecutionModel",
]
