"""Tests for the WorkflowExecutor run entry point."""

from __future__ import annotations

import asyncio

import pytest

from nodeflow.core.exceptions import (
    InvalidWorkflowDefinitionError,
    MaxStepsExceededError,
    StepExecutionError,
    WorkflowNotFoundError,
)
from nodeflow.engine import (
    DataKind,
    EngineEventType,
    ExecuteOptions,
    WorkflowExecutor,
)
from nodeflow.repositories import ExecutionRepository, NodeConfigRepository, WorkflowRepository

from tests.conftest import linear_steps, make_definition


@pytest.fixture
def executor(session, factory, active_runs) -> WorkflowExecutor:
    return WorkflowExecutor(
        factory,
        WorkflowRepository(session),
        ExecutionRepository(session),
        node_config_repo=NodeConfigRepository(session),
        active_runs=active_runs,
    )


async def store(session, steps, name: str = "flow") -> str:
    stored = await WorkflowRepository(session).create(make_definition(steps, name=name))
    return stored.id


class TestExecute:

    @pytest.mark.asyncio
    async def test_run_is_recorded(self, session, executor):
        workflow_id = await store(
            session,
            [
                {"name": "start", "node_type": "start", "next": ["shout"]},
                {"name": "shout", "node_type": "text", "params": {"operation": "upper"}, "next": ["end"]},
                {"name": "end", "node_type": "end"},
            ],
        )

        output = await executor.execute(
            workflow_id, "hello", ExecuteOptions(execution_id="exec_test_1")
        )

        assert output.get_by_kind(DataKind.TEXT) == "HELLO"
        record = await ExecutionRepository(session).get("exec_test_1")
        assert record.status == "completed"
        assert record.workflow_id == workflow_id
        assert record.workflow_name == "flow"
        assert record.input == {"kind": "prompt", "items": [{"data_kind": "text", "value": "hello"}]}
        assert record.output["items"][0]["value"] == "HELLO"
        assert list(record.step_results) == ["start", "shout", "end"]
        assert [entry["step_name"] for entry in record.history] == ["start", "shout", "end"]
        assert record.error is None

    @pytest.mark.asyncio
    async def test_generated_execution_id(self, executor):
        execution_id = executor.new_execution_id()
        assert execution_id.startswith("exec_")
        assert execution_id != executor.new_execution_id()

    @pytest.mark.asyncio
    async def test_missing_workflow(self, executor):
        with pytest.raises(WorkflowNotFoundError):
            await executor.execute("wf_missing", "x")

    @pytest.mark.asyncio
    async def test_unknown_node_type_is_rejected_before_running(self, session, executor):
        workflow_id = await store(session, [{"name": "a", "node_type": "teleport"}])

        with pytest.raises(InvalidWorkflowDefinitionError):
            await executor.execute(workflow_id, "x")
        assert await ExecutionRepository(session).list() == []

    @pytest.mark.asyncio
    async def test_failure_is_recorded_and_reraised(self, session, executor, active_runs):
        workflow_id = await store(
            session, linear_steps(("a", "identity"), ("b", "failing"), ("c", "identity"))
        )

        with pytest.raises(StepExecutionError):
            await executor.execute(workflow_id, "x", ExecuteOptions(execution_id="exec_fail"))

        record = await ExecutionRepository(session).get("exec_fail")
        assert record.status == "failed"
        assert "boom" in record.error
        assert list(record.step_results) == ["a"]
        assert record.history[-1]["step_name"] == "b"
        assert record.history[-1]["status"] == "failed"
        assert active_runs.list_ids() == []

    @pytest.mark.asyncio
    async def test_stored_node_config_is_applied(self, session, executor):
        await NodeConfigRepository(session).save("text", work_config={"operation": "upper"})
        workflow_id = await store(session, [{"name": "a", "node_type": "text"}])

        output = await executor.execute(workflow_id, "quiet")
        assert output.get_by_kind(DataKind.TEXT) == "QUIET"

    @pytest.mark.asyncio
    async def test_max_steps_option(self, session, executor):
        workflow_id = await store(
            session,
            [
                {"name": "ping", "node_type": "identity", "next": ["pong"]},
                {"name": "pong", "node_type": "identity", "next": ["ping"]},
            ],
        )

        with pytest.raises(MaxStepsExceededError):
            await executor.execute(workflow_id, "x", ExecuteOptions(max_steps=3))

    @pytest.mark.asyncio
    async def test_default_max_steps(self, session, factory):
        executor = WorkflowExecutor(
            factory,
            WorkflowRepository(session),
            ExecutionRepository(session),
            default_max_steps=2,
        )
        workflow_id = await store(session, linear_steps(("a", "identity"), ("b", "identity"), ("c", "identity")))

        with pytest.raises(MaxStepsExceededError):
            await executor.execute(workflow_id, "x")

    @pytest.mark.asyncio
    async def test_explicit_zero_max_steps_is_not_replaced_by_default(self, session, factory):
        executor = WorkflowExecutor(
            factory,
            WorkflowRepository(session),
            ExecutionRepository(session),
            default_max_steps=50,
        )
        workflow_id = await store(session, [{"name": "a", "node_type": "identity"}])

        with pytest.raises(MaxStepsExceededError):
            await executor.execute(workflow_id, "x", ExecuteOptions(max_steps=0))


class TestRuntimeControl:

    @pytest.mark.asyncio
    async def test_run_is_registered_while_in_flight(self, session, executor, active_runs):
        workflow_id = await store(session, linear_steps(("a", "identity"), ("b", "identity")))
        seen: list[list[str]] = []

        def on_event(event):
            if event.type == EngineEventType.STEP_START:
                seen.append(active_runs.list_ids())

        await executor.execute(workflow_id, "x", ExecuteOptions(on_event=on_event, execution_id="exec_live"))

        assert seen == [["exec_live"], ["exec_live"]]
        assert active_runs.list_ids() == []
        assert executor.get_status("exec_live") is None

    @pytest.mark.asyncio
    async def test_pause_and_resume_through_executor(self, session, executor):
        workflow_id = await store(session, linear_steps(("a", "identity"), ("b", "identity")))
        events: list = []
        paused: list = []

        # Callback errors are logged by the engine, so results are checked afterwards
        def on_event(event):
            events.append(event.type)
            if event.type == EngineEventType.STEP_COMPLETE and event.step == "a":
                paused.append(executor.pause("exec_pause"))
                paused.append(executor.get_status("exec_pause")["status"])
                asyncio.get_running_loop().call_later(0.01, executor.resume, "exec_pause")

        await executor.execute(workflow_id, "x", ExecuteOptions(on_event=on_event, execution_id="exec_pause"))

        assert paused == [True, "paused"]
        record = await ExecutionRepository(session).get("exec_pause")
        assert record.status == "completed"
        assert EngineEventType.PAUSE in events
        assert EngineEventType.RESUME in events

    @pytest.mark.asyncio
    async def test_stop_through_executor(self, session, executor):
        workflow_id = await store(
            session, linear_steps(("a", "identity"), ("b", "identity"), ("c", "identity"))
        )

        def on_event(event):
            if event.type == EngineEventType.STEP_COMPLETE and event.step == "a":
                executor.stop("exec_stop")

        output = await executor.execute(
            workflow_id, "x", ExecuteOptions(on_event=on_event, execution_id="exec_stop")
        )

        assert output.get_by_kind(DataKind.TEXT) == "x"
        record = await ExecutionRepository(session).get("exec_stop")
        assert record.status == "stopped"
        assert list(record.step_results) == ["a"]

    @pytest.mark.asyncio
    async def test_cancelled_run_is_recorded_as_stopped(self, session, executor, active_runs):
        workflow_id = await store(session, linear_steps(("a", "identity"), ("b", "identity")))
        events: list = []

        def on_event(event):
            events.append(event.type)
            if event.type == EngineEventType.STEP_COMPLETE and event.step == "a":
                executor.pause("exec_cancel")

        task = asyncio.create_task(
            executor.execute(workflow_id, "x", ExecuteOptions(on_event=on_event, execution_id="exec_cancel"))
        )
        for _ in range(200):
            if EngineEventType.PAUSE in events:
                break
            await asyncio.sleep(0.005)
        assert executor.get_status("exec_cancel")["status"] == "paused"

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        record = await ExecutionRepository(session).get("exec_cancel")
        assert record.status == "stopped"
        assert record.end_time is not None
        assert record.error == "Execution cancelled"
        assert list(record.step_results) == ["a"]
        assert record.output["items"][0]["value"] == "x"
        assert EngineEventType.STOP in events
        assert active_runs.list_ids() == []

    def test_controls_for_unknown_runs_return_false(self, executor):
        assert executor.pause("exec_missing") is False
        assert executor.resume("exec_missing") is False
        assert executor.stop("exec_missing") is False
        assert executor.get_status("exec_missing") is None
