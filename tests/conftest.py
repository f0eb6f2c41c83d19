"""Shared pytest fixtures and test helpers for tagmodel tests."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest

from tagmodel.cancellation import CancelScope
from tagmodel.rules.mapping import RulesMapping
from tagmodel.rules.registry import RulesRegistry
from tagmodel.rules.rule import Rule


@pytest.fixture
def registry() -> RulesRegistry:
    """Empty registry with the built-in fallback enabled."""
    return RulesRegistry()


@pytest.fixture
def bare_registry() -> RulesRegistry:
    """Empty registry with the built-in fallback disabled."""
    return RulesRegistry(builtins_enabled=False)


@pytest.fixture
def mapping() -> RulesMapping:
    return RulesMapping()


@pytest.fixture
def cancel_scope() -> Generator[CancelScope]:
    """A live scope, cancelled on teardown so leaked references go inert."""
    scope = CancelScope()
    yield scope
    scope.cancel()


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def failing_rule(name: str, field_type: Any = str, message: str = "bad value") -> Rule:
    """A rule that always raises ``ValueError(message)``."""

    def _fail(value: Any, *params: str) -> None:
        raise ValueError(message)

    return Rule.new(name, _fail, field_type)


def passing_rule(name: str, field_type: Any = str) -> Rule:
    """A rule that never raises."""

    def _ok(value: Any, *params: str) -> None:
        return None

    return Rule.new(name, _ok, field_type)


def recording_rule(
    name: str, calls: list[tuple[Any, tuple[str, ...]]], field_type: Any = str
) -> Rule:
    """A passing rule that appends ``(value, params)`` to *calls*."""

    def _record(value: Any, *params: str) -> None:
        calls.append((value, params))

    return Rule.new(name, _record, field_type)
