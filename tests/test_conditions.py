"""Tests for branch condition evaluation."""

from __future__ import annotations

import pytest

from nodeflow.engine import ConditionEvaluator, DataKind, Pipeline, PipelineKind


@pytest.fixture
def evaluator() -> ConditionEvaluator:
    return ConditionEvaluator()


@pytest.fixture
def result() -> Pipeline:
    return (
        Pipeline(PipelineKind.RETRIEVAL)
        .add(DataKind.TEXT, "What is nodeflow?")
        .add(DataKind.CHUNK, "chunk one")
        .add(DataKind.CHUNK, "chunk two")
    )


class TestNames:

    def test_kind_text_count(self, evaluator, result):
        assert evaluator.evaluate("kind == 'retrieval'", result)
        assert evaluator.evaluate("text == 'What is nodeflow?'", result)
        assert evaluator.evaluate("count == 3", result)

    def test_result_view_attributes(self, evaluator, result):
        assert evaluator.evaluate("result.kind == 'retrieval'", result)
        assert evaluator.evaluate("result.count > 2", result)
        assert evaluator.evaluate("len(result.items) == 3", result)

    def test_none_result(self, evaluator):
        assert evaluator.evaluate("kind == None", None)
        assert evaluator.evaluate("count == 0", None)


class TestHelpers:

    def test_has_first_all_of(self, evaluator, result):
        assert evaluator.evaluate("has('chunk')", result)
        assert not evaluator.evaluate("has('embedding')", result)
        assert evaluator.evaluate("first('chunk') == 'chunk one'", result)
        assert evaluator.evaluate("len(all_of('chunk')) == 2", result)

    def test_unknown_data_kind_is_empty(self, evaluator, result):
        assert not evaluator.evaluate("has('spreadsheet')", result)

    def test_string_helpers(self, evaluator, result):
        assert evaluator.evaluate("endswith(text, '?')", result)
        assert evaluator.evaluate("includes(lower(text), 'nodeflow')", result)
        assert evaluator.evaluate("matches(text, '^What')", result)


class TestJavaScriptSyntax:

    def test_strict_equality_and_logic(self, evaluator, result):
        assert evaluator.evaluate("kind === 'retrieval' && count !== 0", result)
        assert evaluator.evaluate("kind === 'chat' || has('chunk')", result)

    def test_negation_and_literals(self, evaluator, result):
        assert evaluator.evaluate("!has('embedding')", result)
        assert evaluator.evaluate("has('chunk') === true", result)

    def test_template_wrapper(self, evaluator, result):
        assert evaluator.evaluate("{{ count === 3 }}", result)

    def test_string_literals_are_untouched(self, evaluator):
        shout = Pipeline.of(PipelineKind.TEXT, DataKind.TEXT, "stop! && go")
        assert evaluator.evaluate("text == 'stop! && go'", shout)
        assert evaluator.evaluate('endswith(text, "go") && includes(text, "!")', shout)


class TestFailures:

    def test_invalid_expression_raises(self, evaluator, result):
        with pytest.raises(Exception):
            evaluator.evaluate("count ===", result)

    def test_unknown_name_raises(self, evaluator, result):
        with pytest.raises(Exception):
            evaluator.evaluate("missing_name == 1", result)

    def test_no_arbitrary_code(self, evaluator, result):
        with pytest.raises(Exception):
            evaluator.evaluate("__import__('os').getcwd()", result)
