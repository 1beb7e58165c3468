"""Tests for the Engine state machine and run loop."""

from __future__ import annotations

import asyncio

import pytest

from nodeflow.core.exceptions import (
    EngineStateError,
    MaxStepsExceededError,
    StepExecutionError,
    UnsupportedInputError,
)
from nodeflow.engine import (
    DataKind,
    Engine,
    EngineEventType,
    EngineStatus,
    NodeConfigRecord,
    Pipeline,
    PipelineKind,
    StepStatus,
    Workflow,
    WorkflowStatus,
)

from tests.conftest import linear_steps, make_definition


def build_engine(factory, steps, **kwargs) -> Engine:
    return Engine(Workflow(make_definition(steps)), factory, **kwargs)


def record_events(engine: Engine) -> list:
    events: list = []
    engine.subscribe(events.append)
    return events


async def wait_for(condition, timeout: float = 1.0) -> None:
    """Yield to the loop until condition() holds."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)


class TestRunCompletion:

    @pytest.mark.asyncio
    async def test_single_identity_step(self, factory):
        engine = build_engine(factory, [{"name": "s1", "node_type": "identity", "next": []}])
        source = Pipeline.of(PipelineKind.PROMPT, DataKind.TEXT, "hello")

        output = await engine.start(source)

        assert output == source
        assert engine.status == EngineStatus.COMPLETED
        assert engine.workflow.status == WorkflowStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_three_identity_steps_in_order(self, factory):
        engine = build_engine(
            factory, linear_steps(("start", "identity"), ("mid", "identity"), ("end", "identity"))
        )
        source = Pipeline.of(PipelineKind.PROMPT, DataKind.TEXT, "x")

        output = await engine.start(source)

        assert output == source
        assert list(engine.context.step_results) == ["start", "mid", "end"]
        assert [entry.step_name for entry in engine.workflow.history] == ["start", "mid", "end"]
        assert all(step.status == StepStatus.COMPLETED for step in engine.workflow.steps.values())

    @pytest.mark.asyncio
    async def test_raw_input_is_wrapped(self, factory):
        engine = build_engine(factory, [{"name": "s1", "node_type": "identity"}])
        output = await engine.start("plain text")

        assert output.kind == PipelineKind.PROMPT
        assert output.get_by_kind(DataKind.TEXT) == "plain text"

    @pytest.mark.asyncio
    async def test_builtin_nodes_chain(self, factory):
        engine = build_engine(
            factory,
            [
                {"name": "start", "node_type": "start", "next": ["shout"]},
                {"name": "shout", "node_type": "text", "params": {"operation": "upper"}, "next": ["end"]},
                {"name": "end", "node_type": "end"},
            ],
        )
        output = await engine.start("  hey  ")

        assert engine.context.step_results["start"].kind == PipelineKind.USER_MESSAGE
        assert output.kind == PipelineKind.TEXT
        assert output.get_by_kind(DataKind.TEXT) == "  HEY  "

    @pytest.mark.asyncio
    async def test_branching_uses_conditions(self, factory):
        steps = [
            {
                "name": "start",
                "node_type": "identity",
                "next": ["quiet", "loud"],
                "conditions": {"endswith(text, '!')": "loud"},
            },
            {"name": "quiet", "node_type": "text", "params": {"operation": "lower"}},
            {"name": "loud", "node_type": "text", "params": {"operation": "upper"}},
        ]

        loud = await build_engine(factory, steps).start("Go!")
        quiet = await build_engine(factory, steps).start("Go.")

        assert loud.get_by_kind(DataKind.TEXT) == "GO!"
        assert quiet.get_by_kind(DataKind.TEXT) == "go."

    @pytest.mark.asyncio
    async def test_stored_node_configs_are_overlaid_by_params(self, factory):
        node_configs = {
            "text": NodeConfigRecord(
                node_type="text",
                work_config={"operation": "template", "template": "<{text}>"},
            )
        }
        steps = [
            {"name": "a", "node_type": "text", "next": ["b"]},
            {"name": "b", "node_type": "text", "params": {"template": "[{text}]"}},
        ]
        output = await build_engine(factory, steps, node_configs=node_configs).start("x")

        assert output.get_by_kind(DataKind.TEXT) == "[<x>]"

    @pytest.mark.asyncio
    async def test_lifecycle_events(self, factory):
        engine = build_engine(factory, linear_steps(("a", "identity"), ("b", "identity")), execution_id="exec_1")
        events = record_events(engine)

        await engine.start("x")

        types = [event.type for event in events]
        assert types[0] == EngineEventType.STATUS_CHANGE
        assert types[1] == EngineEventType.START
        assert types.count(EngineEventType.STEP_START) == 2
        assert types.count(EngineEventType.STEP_COMPLETE) == 2
        assert types[-1] == EngineEventType.COMPLETE
        assert all(event.execution_id == "exec_1" for event in events)
        assert events[-1].to_dict()["result"]["kind"] == "prompt"

    @pytest.mark.asyncio
    async def test_typed_listener_and_unsubscribe(self, factory):
        engine = build_engine(factory, linear_steps(("a", "identity"), ("b", "identity")))
        completed: list[str] = []
        everything: list = []
        engine.on("stepComplete", lambda event: completed.append(event.step))
        engine.subscribe(everything.append)
        engine.unsubscribe(everything.append)

        await engine.start("x")

        assert completed == ["a", "b"]
        assert everything == []

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_break_the_run(self, factory):
        engine = build_engine(factory, [{"name": "a", "node_type": "identity"}])

        def explode(event):
            raise RuntimeError("subscriber bug")

        engine.subscribe(explode)
        await engine.start("x")
        assert engine.status == EngineStatus.COMPLETED


class TestStateMachine:

    def test_controls_from_idle_return_false(self, factory):
        engine = build_engine(factory, [{"name": "a", "node_type": "identity"}])

        assert engine.pause() is False
        assert engine.resume() is False
        assert engine.stop() is False
        assert engine.status == EngineStatus.IDLE

    @pytest.mark.asyncio
    async def test_controls_after_completion_return_false(self, factory):
        engine = build_engine(factory, [{"name": "a", "node_type": "identity"}])
        await engine.start("x")

        assert engine.pause() is False
        assert engine.resume() is False
        assert engine.stop() is False
        assert engine.status == EngineStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_finished_only_in_terminal_statuses(self, factory):
        gate = asyncio.Event()
        engine = build_engine(factory, [{"name": "a", "node_type": "gate", "params": {"gate": gate}}])
        assert engine.is_finished is False

        task = asyncio.create_task(engine.start("x"))
        await wait_for(lambda: engine.is_active)
        assert engine.is_finished is False
        with pytest.raises(EngineStateError):
            engine.reset()

        gate.set()
        await task
        assert engine.is_finished is True

        engine.reset()
        assert engine.is_finished is False

    @pytest.mark.asyncio
    async def test_start_requires_idle(self, factory):
        engine = build_engine(factory, [{"name": "a", "node_type": "identity"}])
        await engine.start("x")

        with pytest.raises(EngineStateError):
            await engine.start("again")

        engine.reset()
        assert engine.status == EngineStatus.IDLE
        assert engine.context.step_results == {}
        output = await engine.start("again")
        assert output.get_by_kind(DataKind.TEXT) == "again"

    @pytest.mark.asyncio
    async def test_pause_and_resume_between_steps(self, factory):
        gate = asyncio.Event()
        engine = build_engine(
            factory,
            [
                {"name": "a", "node_type": "gate", "params": {"gate": gate}, "next": ["b"]},
                {"name": "b", "node_type": "identity", "next": ["c"]},
                {"name": "c", "node_type": "identity"},
            ],
        )
        task = asyncio.create_task(engine.start("x"))
        await wait_for(lambda: engine.workflow.steps["a"].status == StepStatus.RUNNING)

        assert engine.pause() is True
        assert engine.pause() is False
        assert engine.status == EngineStatus.PAUSED
        assert engine.workflow.status == WorkflowStatus.PAUSED

        # The in-flight step finishes, the next one waits
        gate.set()
        await wait_for(lambda: "a" in engine.context.step_results)
        await asyncio.sleep(0.01)
        assert list(engine.context.step_results) == ["a"]
        assert engine.status == EngineStatus.PAUSED

        with pytest.raises(EngineStateError):
            engine.reset()

        assert engine.resume() is True
        assert engine.resume() is False
        await task

        assert engine.status == EngineStatus.COMPLETED
        assert list(engine.context.step_results) == ["a", "b", "c"]


class TestCancellation:

    @pytest.mark.asyncio
    async def test_stop_lets_the_current_step_finish(self, factory):
        gate = asyncio.Event()
        engine = build_engine(
            factory,
            [
                {"name": "a", "node_type": "gate", "params": {"gate": gate}, "next": ["b"]},
                {"name": "b", "node_type": "identity"},
            ],
        )
        events = record_events(engine)
        task = asyncio.create_task(engine.start("x"))
        await wait_for(lambda: engine.workflow.steps["a"].status == StepStatus.RUNNING)

        assert engine.stop() is True
        assert engine.stop() is False
        gate.set()
        output = await task

        assert output.get_by_kind(DataKind.TEXT) == "x"
        assert list(engine.context.step_results) == ["a"]
        assert engine.workflow.steps["a"].status == StepStatus.COMPLETED
        assert engine.workflow.steps["b"].status == StepStatus.PENDING
        assert engine.status == EngineStatus.STOPPED
        assert EngineEventType.COMPLETE not in [event.type for event in events]
        assert EngineEventType.STOP in [event.type for event in events]

    @pytest.mark.asyncio
    async def test_stop_while_paused(self, factory):
        gate = asyncio.Event()
        engine = build_engine(
            factory,
            [
                {"name": "a", "node_type": "gate", "params": {"gate": gate}, "next": ["b"]},
                {"name": "b", "node_type": "identity"},
            ],
        )
        task = asyncio.create_task(engine.start("x"))
        await wait_for(lambda: engine.workflow.steps["a"].status == StepStatus.RUNNING)

        assert engine.pause() is True
        gate.set()
        await wait_for(lambda: "a" in engine.context.step_results)
        assert engine.stop() is True
        await asyncio.wait_for(task, timeout=1.0)

        assert engine.status == EngineStatus.STOPPED
        assert list(engine.context.step_results) == ["a"]

    @pytest.mark.asyncio
    async def test_step_failing_after_stop_keeps_the_run_stopped(self, factory):
        gate = asyncio.Event()
        engine = build_engine(
            factory,
            [
                {"name": "a", "node_type": "gate", "params": {"gate": gate, "fail_with": "late"}, "next": ["b"]},
                {"name": "b", "node_type": "identity"},
            ],
        )
        events = record_events(engine)
        task = asyncio.create_task(engine.start("x"))
        await wait_for(lambda: engine.workflow.steps["a"].status == StepStatus.RUNNING)

        assert engine.stop() is True
        gate.set()
        output = await task

        assert output is None
        assert engine.status == EngineStatus.STOPPED
        assert engine.workflow.steps["a"].status == StepStatus.FAILED
        assert [(e.step_name, e.status) for e in engine.workflow.history] == [("a", StepStatus.FAILED)]
        types = [event.type for event in events]
        assert EngineEventType.STEP_ERROR in types
        assert EngineEventType.ERROR not in types
        assert EngineEventType.COMPLETE not in types

    @pytest.mark.asyncio
    async def test_stopped_engine_can_be_reset(self, factory):
        gate = asyncio.Event()
        engine = build_engine(factory, [{"name": "a", "node_type": "gate", "params": {"gate": gate}}])
        task = asyncio.create_task(engine.start("x"))
        await wait_for(lambda: engine.is_active)
        engine.stop()
        gate.set()
        await task

        engine.reset()
        assert engine.status == EngineStatus.IDLE


class TestFailures:

    @pytest.mark.asyncio
    async def test_step_error_marks_failure_and_reraises(self, factory):
        engine = build_engine(
            factory,
            [
                {"name": "a", "node_type": "identity", "next": ["b"]},
                {"name": "b", "node_type": "failing", "params": {"message": "kaput"}, "next": ["c"]},
                {"name": "c", "node_type": "identity"},
            ],
        )
        events = record_events(engine)

        with pytest.raises(StepExecutionError) as exc_info:
            await engine.start("x")

        assert "kaput" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert engine.status == EngineStatus.FAILED
        assert engine.workflow.status == WorkflowStatus.FAILED
        assert engine.workflow.steps["b"].status == StepStatus.FAILED
        assert engine.workflow.steps["c"].status == StepStatus.PENDING
        assert [(e.step_name, e.status) for e in engine.workflow.history] == [
            ("a", StepStatus.COMPLETED),
            ("b", StepStatus.FAILED),
        ]

        step_errors = [event for event in events if event.type == EngineEventType.STEP_ERROR]
        assert len(step_errors) == 1
        assert step_errors[0].step == "b"
        assert events[-1].type == EngineEventType.ERROR

    @pytest.mark.asyncio
    async def test_contract_errors_propagate_unwrapped(self, factory):
        engine = build_engine(factory, [{"name": "a", "node_type": "text"}])

        with pytest.raises(UnsupportedInputError):
            await engine.start({"not": "text"})
        assert engine.status == EngineStatus.FAILED

    @pytest.mark.asyncio
    async def test_max_steps(self, factory):
        engine = build_engine(
            factory,
            [
                {"name": "ping", "node_type": "identity", "next": ["pong"]},
                {"name": "pong", "node_type": "identity", "next": ["ping"]},
            ],
            max_steps=5,
        )

        with pytest.raises(MaxStepsExceededError):
            await engine.start("x")
        assert engine.status == EngineStatus.FAILED
        assert len(engine.workflow.history) == 5

    @pytest.mark.asyncio
    async def test_failed_engine_can_be_reset(self, factory):
        engine = build_engine(factory, [{"name": "a", "node_type": "failing"}])
        with pytest.raises(StepExecutionError):
            await engine.start("x")

        engine.reset()
        assert engine.status == EngineStatus.IDLE
        assert engine.workflow.history == []


class TestSnapshot:

    @pytest.mark.asyncio
    async def test_to_dict(self, factory):
        engine = build_engine(factory, linear_steps(("a", "identity"), ("b", "identity")), execution_id="exec_9")
        await engine.start("x")
        snapshot = engine.to_dict()

        assert snapshot["execution_id"] == "exec_9"
        assert snapshot["status"] == "completed"
        assert snapshot["finished"] is True
        assert snapshot["completed_steps"] == ["a", "b"]
        assert len(snapshot["history"]) == 2
