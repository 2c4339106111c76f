"""Tests for placeholder resolution and step interpretation."""

from unittest.mock import AsyncMock, Mock

import pytest

from flowcheck.errors import (
    ConfigurationError,
    MissingEnvironmentVariable,
    StepError,
    UnknownActionError,
    VisualMismatchError,
)
from flowcheck.executor.context import ActionContext, SessionState
from flowcheck.executor.interpreter import StepInterpreter, StepOutcome, resolve_param
from flowcheck.executor.registry import ActionRegistry
from flowcheck.models.template import TemplateStep


class TestResolveParam:
    def test_literal_passes_through(self):
        assert resolve_param("#submit", {}, {}) == "#submit"

    def test_parameter_placeholder(self):
        assert resolve_param("{{user}}", {"user": "alice"}, {}) == "alice"

    def test_whitespace_inside_braces_is_ignored(self):
        assert resolve_param("{{ user }}", {"user": "alice"}, {}) == "alice"

    def test_missing_parameter_resolves_empty(self):
        assert resolve_param("{{selector}}", {}, {}) == ""

    def test_env_placeholder(self):
        assert resolve_param("{{env.PASSWORD}}", {}, {"PASSWORD": "s3cret"}) == "s3cret"

    def test_missing_env_raises(self):
        with pytest.raises(MissingEnvironmentVariable) as exc:
            resolve_param("{{env.PASSWORD}}", {}, {})
        assert "PASSWORD" in str(exc.value)
        assert isinstance(exc.value, ConfigurationError)

    def test_only_whole_value_placeholders_are_resolved(self):
        assert resolve_param("Hello {{user}}", {"user": "alice"}, {}) == "Hello {{user}}"

    def test_env_prefix_does_not_read_params(self):
        with pytest.raises(MissingEnvironmentVariable):
            resolve_param("{{env.user}}", {"env.user": "x"}, {})


class TestStepOutcome:
    def test_success(self):
        outcome = StepOutcome.success("click")
        assert outcome.ok
        assert outcome.message == ""

    def test_step_error_is_retryable(self):
        outcome = StepOutcome.failure("click", StepError("boom"))
        assert not outcome.ok
        assert outcome.retryable
        assert outcome.message == "Step failed: click - boom"

    def test_configuration_error_is_not_retryable(self):
        outcome = StepOutcome.failure("type", MissingEnvironmentVariable("X"))
        assert not outcome.retryable

    def test_message_without_action(self):
        outcome = StepOutcome.failure("", ConfigurationError("Template t not found"))
        assert outcome.message == "Template t not found"


def _interpreter(registry, env=None):
    context = ActionContext(page=AsyncMock(), state=SessionState(), baselines=Mock())
    return StepInterpreter(context, registry, env or {})


class TestStepInterpreter:
    @pytest.mark.asyncio
    async def test_handler_receives_resolved_params(self):
        handler = AsyncMock()
        registry = ActionRegistry()
        registry.register("type", handler)
        interp = _interpreter(registry, {"PASSWORD": "s3cret"})

        step = TemplateStep(action="type", params=["#pass", "{{env.PASSWORD}}", "{{missing}}"])
        outcome = await interp.execute(step, {})

        assert outcome.ok
        handler.assert_awaited_once_with(interp.context, ["#pass", "s3cret", ""])

    @pytest.mark.asyncio
    async def test_sync_handlers_are_supported(self):
        calls = []
        registry = ActionRegistry()
        registry.register("note", lambda ctx, params: calls.append(params))

        outcome = await _interpreter(registry).execute(TemplateStep(action="note", params=["x"]), {})

        assert outcome.ok
        assert calls == [["x"]]

    @pytest.mark.asyncio
    async def test_unknown_action(self):
        outcome = await _interpreter(ActionRegistry()).execute(TemplateStep(action="hover"), {})
        assert isinstance(outcome.error, UnknownActionError)
        assert outcome.message == "Step failed: hover - Unknown action: hover"
        assert outcome.retryable

    @pytest.mark.asyncio
    async def test_missing_env_fails_before_dispatch(self):
        handler = AsyncMock()
        registry = ActionRegistry()
        registry.register("type", handler)

        step = TemplateStep(action="type", params=["#pass", "{{env.NOPE}}"])
        outcome = await _interpreter(registry).execute(step, {})

        handler.assert_not_awaited()
        assert isinstance(outcome.error, MissingEnvironmentVariable)
        assert not outcome.retryable

    @pytest.mark.asyncio
    async def test_generic_exceptions_become_step_errors(self):
        registry = ActionRegistry()
        registry.register("click", AsyncMock(side_effect=TimeoutError("Timeout 30000ms exceeded")))

        outcome = await _interpreter(registry).execute(TemplateStep(action="click", params=["#x"]), {})

        assert isinstance(outcome.error, StepError)
        assert outcome.message == "Step failed: click - Timeout 30000ms exceeded"

    @pytest.mark.asyncio
    async def test_flowcheck_errors_keep_their_type(self):
        registry = ActionRegistry()
        registry.register("compare_screenshot", AsyncMock(side_effect=VisualMismatchError("home", 50)))

        step = TemplateStep(action="compare_screenshot", params=["home"])
        outcome = await _interpreter(registry).execute(step, {})

        assert isinstance(outcome.error, VisualMismatchError)
        assert "50 pixels differ" in outcome.message
