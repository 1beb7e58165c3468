"""FastAPI dependency injection for the nodeflow service."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .config import settings

if TYPE_CHECKING:
    from ..engine.executor import ActiveRuns, WorkflowExecutor
    from ..engine.node_factory import NodeFactory
    from ..repositories import ExecutionRepository, NodeConfigRepository, WorkflowRepository
    from ..services import ExecutionService, NodeService, WorkflowService


# --- Database Session Dependency ---


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get async database session."""
    from ..db import get_session

    async for session in get_session():
        yield session


def get_session_factory() -> async_sessionmaker:
    """Get the factory for sessions that outlive a single request."""
    from ..db import async_session_factory

    return async_session_factory


# --- Repository Dependencies ---


def get_workflow_repository(session: AsyncSession = Depends(get_db_session)) -> WorkflowRepository:
    """Get workflow repository instance."""
    from ..repositories import WorkflowRepository

    return WorkflowRepository(session)


def get_node_config_repository(session: AsyncSession = Depends(get_db_session)) -> NodeConfigRepository:
    """Get node config repository instance."""
    from ..repositories import NodeConfigRepository

    return NodeConfigRepository(session)


def get_execution_repository(session: AsyncSession = Depends(get_db_session)) -> ExecutionRepository:
    """Get execution repository instance."""
    from ..repositories import ExecutionRepository

    return ExecutionRepository(session, max_records=settings.max_execution_records)


# --- Process-wide singletons ---


@lru_cache
def get_node_factory() -> NodeFactory:
    """Get the node factory with the built-in node types registered."""
    from ..engine.node_factory import NodeFactory, register_builtin_nodes

    return register_builtin_nodes(NodeFactory())


@lru_cache
def get_active_runs() -> ActiveRuns:
    """Get the registry of runs currently in flight."""
    from ..engine.executor import ActiveRuns

    return ActiveRuns()


def get_workflow_executor(
    factory=Depends(get_node_factory),
    workflow_repo=Depends(get_workflow_repository),
    execution_repo=Depends(get_execution_repository),
    node_config_repo=Depends(get_node_config_repository),
    active_runs=Depends(get_active_runs),
) -> WorkflowExecutor:
    """Get a workflow executor bound to the request session."""
    from ..engine.executor import WorkflowExecutor

    return WorkflowExecutor(
        factory,
        workflow_repo,
        execution_repo,
        node_config_repo=node_config_repo,
        active_runs=active_runs,
        default_max_steps=settings.max_workflow_steps,
    )


# --- Service Dependencies ---


def get_workflow_service(
    workflow_repo=Depends(get_workflow_repository),
    execution_repo=Depends(get_execution_repository),
    executor=Depends(get_workflow_executor),
    factory=Depends(get_node_factory),
) -> WorkflowService:
    """Get workflow service instance."""
    from ..services import WorkflowService

    return WorkflowService(workflow_repo, execution_repo, executor, factory)


def get_execution_service(
    execution_repo=Depends(get_execution_repository),
    active_runs=Depends(get_active_runs),
) -> ExecutionService:
    """Get execution service instance."""
    from ..services import ExecutionService

    return ExecutionService(execution_repo, active_runs)


def get_node_service(
    factory=Depends(get_node_factory),
    node_config_repo=Depends(get_node_config_repository),
) -> NodeService:
    """Get node service instance."""
    from ..services import NodeService

    return NodeService(factory, node_config_repo)
