"""Built-in rules — last-resort fallback keyed by (name, exact type).

Built-ins are consulted only after a registry finds neither an exact nor an
assignable user overload, so a user rule with the same name and type always
shadows them.  The table is built once per process on first lookup.

| type    | rules                               |
|---------|-------------------------------------|
| ``str`` | ``min(length)``, ``oneof(...)``, ``email`` |
| ``int`` | ``positive``, ``nonzero``, ``oneof(...)``  |
| ``float`` | ``positive``, ``nonzero``, ``oneof(...)`` |
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from tagmodel.errors import (
    RuleConstraintViolatedError,
    RuleInvalidParameterError,
    RuleMissingParameterError,
)
from tagmodel.rules.rule import Rule

logger = logging.getLogger(__name__)

RULE_MIN = "min"
RULE_ONEOF = "oneof"
RULE_EMAIL = "email"
RULE_POSITIVE = "positive"
RULE_NONZERO = "nonzero"

_WHITESPACE = frozenset(" \t\n\r")


# ---------------------------------------------------------------------------
# str
# ---------------------------------------------------------------------------


def _min_length(value: str, *params: str) -> None:
    """``min(n)``: length must be >= n.  ``n < 1`` is a no-op."""
    if not params:
        raise RuleMissingParameterError(
            'min requires a length parameter, e.g. validate:"min(1)"',
            rule_name=RULE_MIN,
            param_name="length",
        )
    try:
        limit = int(params[0].strip())
    except ValueError as exc:
        raise RuleInvalidParameterError(
            f"invalid min length parameter {params[0]!r}",
            rule_name=RULE_MIN,
            param_value=params[0],
        ) from exc
    if limit < 1:
        return
    if len(value) < limit:
        raise RuleConstraintViolatedError(f"length must be >= {limit} (got {len(value)})")


def _email(value: str, *_params: str) -> None:
    """Lightweight email heuristic; deliberately not RFC 5322 complete."""
    if not value:
        raise RuleConstraintViolatedError("must be a valid email address")
    if value.count("@") != 1:
        raise RuleConstraintViolatedError("must contain exactly one @")
    local, domain = value.split("@")
    if not local or not domain:
        raise RuleConstraintViolatedError("local and domain parts must be non-empty")
    if _WHITESPACE.intersection(value):
        raise RuleConstraintViolatedError("must not contain whitespace")
    if "." not in domain:
        raise RuleConstraintViolatedError("domain must contain a dot")


def _oneof_str(value: str, *params: str) -> None:
    _require_choices(params, example="oneof(red,green,blue)")
    if value not in params:
        raise RuleConstraintViolatedError(f"must be one of: {', '.join(params)}")


# ---------------------------------------------------------------------------
# int / float
# ---------------------------------------------------------------------------


def _positive(value: int | float, *_params: str) -> None:
    if not value > 0:
        raise RuleConstraintViolatedError("must be > 0")


def _nonzero(value: int | float, *_params: str) -> None:
    if value == 0:
        raise RuleConstraintViolatedError("must not be zero")


def _require_choices(params: tuple[str, ...], *, example: str) -> None:
    if not params:
        raise RuleMissingParameterError(
            f'oneof requires at least one parameter, e.g. validate:"{example}"',
            rule_name=RULE_ONEOF,
        )


def _numeric_oneof(parse: Callable[[str], int | float], example: str) -> Callable[..., None]:
    kind = parse.__name__

    def _oneof(value: int | float, *params: str) -> None:
        _require_choices(params, example=example)
        for param in params:
            try:
                choice = parse(param.strip())
            except ValueError as exc:
                raise RuleInvalidParameterError(
                    f"invalid oneof parameter {param!r} for {kind}",
                    rule_name=RULE_ONEOF,
                    param_value=param,
                ) from exc
            if choice == value:
                return
        raise RuleConstraintViolatedError(f"must be one of: {', '.join(params)}")

    return _oneof


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------

_builtins: dict[tuple[str, type], Rule] | None = None
_builtins_lock = threading.Lock()


def _build_table() -> dict[tuple[str, type], Rule]:
    rules = [
        Rule.new(RULE_EMAIL, _email, str),
        Rule.new(RULE_MIN, _min_length, str),
        Rule.new(RULE_ONEOF, _oneof_str, str),
        Rule.new(RULE_POSITIVE, _positive, int),
        Rule.new(RULE_NONZERO, _nonzero, int),
        Rule.new(RULE_ONEOF, _numeric_oneof(int, "oneof(1,2,3)"), int),
        Rule.new(RULE_POSITIVE, _positive, float),
        Rule.new(RULE_NONZERO, _nonzero, float),
        Rule.new(RULE_ONEOF, _numeric_oneof(float, "oneof(1.5,2.0)"), float),
    ]
    return {(r.name, r.field_type): r for r in rules}


def builtin_table() -> dict[tuple[str, type], Rule]:
    """Return the process-wide built-in table, building it on first call."""
    global _builtins
    if _builtins is None:
        with _builtins_lock:
            if _builtins is None:
                _builtins = _build_table()
                logger.debug("Initialized %d built-in rules", len(_builtins))
    return _builtins


def lookup_builtin(name: str, tp: type) -> Rule | None:
    """Return the built-in rule for (*name*, exact type *tp*), if any."""
    return builtin_table().get((name, tp))
