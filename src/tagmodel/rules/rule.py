"""Rule — a named validation function bound to one field type.

The bound type is the rule's *static* declared type: the explicit
``field_type`` argument, or the annotation of the function's first
parameter.  It may be a concrete class, a union, or a capability type
(an ABC such as ``collections.abc.Sized`` or a ``@runtime_checkable``
protocol).  Capability-bound rules never match a value *exactly*; they
only ever resolve as assignable overloads.

A rule function signals failure by raising; its return value is ignored
by the traversal engine but passed back verbatim by :meth:`Rule.__call__`.
"""

from __future__ import annotations

import inspect
import typing
from collections.abc import Callable
from typing import Any

from tagmodel.domain.shape import type_name
from tagmodel.errors import InvalidRuleError, RuleTypeMismatchError

RuleFn = Callable[..., Any]


def _first_param_annotation(fn: RuleFn) -> Any:
    sig = _signature(fn)
    if sig is None:
        return inspect.Parameter.empty
    params = list(sig.parameters.values())
    if not params:
        return inspect.Parameter.empty
    first = params[0]
    try:
        hints = typing.get_type_hints(fn)
    except (NameError, TypeError):
        hints = {}
    return hints.get(first.name, first.annotation)


def _signature(fn: RuleFn) -> inspect.Signature | None:
    try:
        return inspect.signature(fn)
    except (TypeError, ValueError):
        return None


def _usable_with_isinstance(tp: Any) -> bool:
    try:
        isinstance(None, tp)
    except TypeError:
        return False
    return True


class Rule:
    """A named validation function bound to one field type.

    Build instances with :meth:`Rule.new` (or :func:`new_rule`); the
    constructor performs no checks.
    """

    __slots__ = ("_field_type", "_fn", "_name", "_sig")

    def __init__(self, name: str, field_type: Any, fn: RuleFn) -> None:
        self._name = name
        self._field_type = field_type
        self._fn = fn
        self._sig = _signature(fn)

    @classmethod
    def new(cls, name: str, fn: RuleFn, field_type: Any = None) -> Rule:
        """Create a rule, capturing its bound field type.

        Args:
            name: Rule name referenced from ``validate`` tags.
            fn: ``fn(value, *params)``; raises to report a violation.
            field_type: Bound type.  Defaults to the annotation of the
                first parameter of *fn*; ``typing.Any`` binds to ``object``.

        Raises:
            InvalidRuleError: Empty name, non-callable *fn*, or no usable
                bound type.
        """
        if not name or not callable(fn):
            raise InvalidRuleError(rule_name=name or "<empty>")

        bound = field_type
        if bound is None:
            bound = _first_param_annotation(fn)
            if bound is inspect.Parameter.empty or isinstance(bound, str):
                raise InvalidRuleError(
                    "rule field type is unknown; annotate the first parameter or pass field_type",
                    rule_name=name,
                )
        if bound is Any:
            bound = object
        if not _usable_with_isinstance(bound):
            raise InvalidRuleError(
                "rule field type cannot be checked at runtime",
                rule_name=name,
                field_type=type_name(bound),
            )
        return cls(name, bound, fn)

    @property
    def name(self) -> str:
        return self._name

    @property
    def field_type(self) -> Any:
        return self._field_type

    @property
    def field_type_name(self) -> str:
        return type_name(self._field_type)

    def is_of_type(self, tp: type) -> bool:
        """Exact bound-type match (equality, so rebuilt unions compare equal)."""
        return self._field_type == tp

    def accepts(self, value: Any) -> bool:
        """Whether *value* is assignable to the bound type (subclass or capability)."""
        return isinstance(value, self._field_type)

    def __call__(self, value: Any, *params: str) -> Any:
        """Type-check *value* against the bound type and invoke the rule function.

        Raises:
            RuleTypeMismatchError: *value* is neither of the bound type nor
                assignable to it.
            InvalidRuleError: The rule function cannot take *params*.
        """
        if type(value) is not self._field_type and not self.accepts(value):
            raise RuleTypeMismatchError(
                rule_name=self._name,
                value_type=type_name(type(value)),
                field_type=self.field_type_name,
            )
        if self._sig is not None:
            try:
                self._sig.bind(value, *params)
            except TypeError as exc:
                raise InvalidRuleError(
                    f"rule function does not accept {len(params)} tag parameter(s)",
                    rule_name=self._name,
                    param_count=len(params),
                ) from exc
        return self._fn(value, *params)

    def __repr__(self) -> str:
        return f"Rule(name={self._name!r}, field_type={self.field_type_name})"


def new_rule(name: str, fn: RuleFn, field_type: Any = None) -> Rule:
    """Shorthand for :meth:`Rule.new`."""
    return Rule.new(name, fn, field_type)
