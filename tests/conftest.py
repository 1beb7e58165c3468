"""Shared fixtures for the nodeflow test suite.

Provides:
- Test node types (identity, failing, gated) registered on a fresh factory
- In-memory SQLite database (StaticPool shares one connection)
- httpx AsyncClient wired to the FastAPI app with dependency overrides
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from nodeflow.core.dependencies import (
    get_active_runs,
    get_db_session,
    get_node_factory,
    get_session_factory,
)
from nodeflow.db import init_db
from nodeflow.engine import (
    ActiveRuns,
    NodeFactory,
    Pipeline,
    PipelineKind,
    StepDefinition,
    WorkflowDefinition,
    register_builtin_nodes,
)
from nodeflow.nodes import BaseNode, NodeClassConfig


# ---------------------------------------------------------------------------
# Test node types
# ---------------------------------------------------------------------------


class IdentityNode(BaseNode):
    """Relies on the base wildcard handler, so the input comes back as is."""

    class_config = NodeClassConfig(
        type="identity",
        display_name="Identity",
        description="Pass the input through",
        supported_inputs=[PipelineKind.ALL],
    )


class FailingNode(BaseNode):
    class_config = NodeClassConfig(
        type="failing",
        display_name="Failing",
        description="Raise from the handler",
        supported_inputs=[PipelineKind.ALL],
    )

    default_work_config = {"message": "boom"}

    async def on_init(self) -> None:
        self.register_handler("*", self._fail)

    def _fail(self, pipeline: Pipeline) -> Pipeline:
        raise RuntimeError(self.get_parameter("message"))


class GateNode(BaseNode):
    """Holds the step open until the asyncio.Event in its `gate` param is set."""

    class_config = NodeClassConfig(
        type="gate",
        display_name="Gate",
        description="Wait for a test-controlled event",
        supported_inputs=[PipelineKind.ALL],
    )

    default_work_config = {"gate": None, "fail_with": None}

    async def on_init(self) -> None:
        self.register_handler("*", self._wait)

    async def _wait(self, pipeline: Pipeline) -> Pipeline:
        gate: asyncio.Event | None = self.get_parameter("gate")
        if gate is not None:
            await gate.wait()
        if self.get_parameter("fail_with"):
            raise RuntimeError(self.get_parameter("fail_with"))
        return pipeline


def held_node_class(gate: asyncio.Event, type_name: str = "held") -> type[GateNode]:
    """A gate node bound to `gate` by default, for workflows loaded from the database."""

    class HeldNode(GateNode):
        class_config = NodeClassConfig(
            type=type_name,
            display_name="Held",
            description="Wait for a test-controlled event",
            supported_inputs=[PipelineKind.ALL],
        )

        default_work_config = {"gate": gate, "fail_with": None}

    return HeldNode


def make_definition(
    steps: list[dict[str, Any]],
    name: str = "test_workflow",
    start_step_name: str | None = None,
) -> WorkflowDefinition:
    """Build a definition from step dicts; the first step is the start."""
    step_definitions = [StepDefinition.from_dict(step) for step in steps]
    return WorkflowDefinition(
        name=name,
        steps={step.name: step for step in step_definitions},
        start_step_name=start_step_name or (step_definitions[0].name if step_definitions else None),
        steps_order=[step.name for step in step_definitions],
    )


def linear_steps(*pairs: tuple[str, str]) -> list[dict[str, Any]]:
    """(name, node_type) pairs chained in order."""
    names = [name for name, _ in pairs]
    return [
        {
            "name": name,
            "node_type": node_type,
            "next": [names[index + 1]] if index + 1 < len(names) else [],
        }
        for index, (name, node_type) in enumerate(pairs)
    ]


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@pytest.fixture
def factory() -> NodeFactory:
    """Fresh factory with built-in and test node types."""
    node_factory = register_builtin_nodes(NodeFactory())
    node_factory.register(IdentityNode)
    node_factory.register(FailingNode)
    node_factory.register(GateNode)
    return node_factory


# ---------------------------------------------------------------------------
# In-memory database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as db_session:
        yield db_session


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
def active_runs() -> ActiveRuns:
    return ActiveRuns()


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker,
    factory: NodeFactory,
    active_runs: ActiveRuns,
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient against the app, backed by the in-memory database."""
    from nodeflow.main import create_app

    app = create_app()

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as db_session:
            yield db_session

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_node_factory] = lambda: factory
    app.dependency_overrides[get_active_runs] = lambda: active_runs

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
