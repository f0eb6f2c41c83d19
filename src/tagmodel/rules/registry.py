"""RulesRegistry — name to ordered overload list, with type-driven resolution.

INVARIANT: At most one overload per (name, exact bound type).  Insertion
order is the tie-break among assignable matches.

Reads (resolution) run concurrently; registration takes the write side of
an :class:`~tagmodel.rules._rwlock.RWLock`.
"""

from __future__ import annotations

import logging
from typing import Any, Final

from tagmodel.domain.shape import type_name
from tagmodel.errors import (
    AmbiguousRuleError,
    DuplicateOverloadRuleError,
    InvalidValueError,
    RuleNotFoundError,
    RuleOverloadNotFoundError,
)
from tagmodel.rules._rwlock import RWLock
from tagmodel.rules.builtins import lookup_builtin
from tagmodel.rules.rule import Rule

logger = logging.getLogger(__name__)


class _Unset:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Final = _Unset()
"""Sentinel for "no value" (distinct from ``None``, which is a real value)."""


class RulesRegistry:
    """Concurrency-safe registry of validation rules.

    Parameters:
        builtins_enabled: Consult the process-wide built-in table when no
            user overload matches.
    """

    def __init__(self, *, builtins_enabled: bool = True) -> None:
        self._rules: dict[str, list[Rule]] = {}
        self._lock = RWLock()
        self._builtins_enabled = builtins_enabled

    def add(self, rule: Rule | None) -> None:
        """Register *rule* as an overload of its name.

        ``None`` is silently ignored.

        Raises:
            DuplicateOverloadRuleError: An overload with the identical
                exact bound type is already registered under this name.
        """
        if rule is None:
            return
        with self._lock.write():
            existing = self._rules.setdefault(rule.name, [])
            for current in existing:
                if current.is_of_type(rule.field_type):
                    raise DuplicateOverloadRuleError(
                        rule_name=rule.name, field_type=rule.field_type_name
                    )
            existing.append(rule)
        logger.debug("Registered rule %s for %s", rule.name, rule.field_type_name)

    def get(self, name: str, value: Any) -> Rule:
        """Resolve the best overload of *name* for *value*.

        Priority:
          1. exactly one exact bound-type match;
          2. the first assignable match, in registration order;
          3. a built-in rule for (name, exact type);
          4. otherwise an error: :class:`RuleNotFoundError` when nothing is
             registered under *name*, else :class:`RuleOverloadNotFoundError`
             listing the registered overload types sorted ascending.

        Raises:
            InvalidValueError: *value* is :data:`UNSET`.
            AmbiguousRuleError: More than one exact match (unreachable
                through :meth:`add`).
        """
        if value is UNSET:
            raise InvalidValueError(rule_name=name)

        value_type = type(value)
        with self._lock.read():
            overloads = list(self._rules.get(name, ()))

        exacts = [r for r in overloads if r.is_of_type(value_type)]
        if len(exacts) == 1:
            return exacts[0]
        if len(exacts) > 1:
            raise AmbiguousRuleError(rule_name=name, value_type=type_name(value_type))

        for rule in overloads:
            if rule.accepts(value):
                return rule

        if self._builtins_enabled:
            builtin = lookup_builtin(name, value_type)
            if builtin is not None:
                return builtin

        if not overloads:
            raise RuleNotFoundError(rule_name=name)
        raise RuleOverloadNotFoundError(
            rule_name=name,
            value_type=type_name(value_type),
            available_types=", ".join(sorted(r.field_type_name for r in overloads)),
        )

    def names(self) -> list[str]:
        """Registered rule names, sorted."""
        with self._lock.read():
            return sorted(self._rules)

    def __len__(self) -> int:
        with self._lock.read():
            return sum(len(v) for v in self._rules.values())
