"""Error taxonomy for tagmodel.

Every engine error derives from :class:`ModelError` and carries a stable
``code`` plus a structured ``detail`` mapping keyed by dotted field names
(``tagmodel.rule.name``, ``tagmodel.rule.value_type``, ...) so log
processors can filter on them.  Each class also derives from the closest
builtin exception, so ``except LookupError`` keeps working for callers that
do not know about this module.

INVARIANT: Per-field validation failures are never raised from here; they
are collected into :class:`tagmodel.report.ValidationError`.
"""

from __future__ import annotations

from typing import Any

NAMESPACE = "tagmodel"


def _key(*segments: str) -> str:
    return ".".join((NAMESPACE, *segments))


# --- Structured detail keys ---

FIELD_RULE_NAME = _key("rule", "name")
FIELD_RULE_FIELD_TYPE = _key("rule", "field_type")
FIELD_RULE_VALUE_TYPE = _key("rule", "value_type")
FIELD_RULE_AVAILABLE_TYPES = _key("rule", "available_types")
FIELD_RULE_PARAM_NAME = _key("rule", "param_name")
FIELD_RULE_PARAM_VALUE = _key("rule", "param_value")
FIELD_DEFAULT_LITERAL_KIND = _key("default", "literal_kind")
FIELD_FIELD_NAME = _key("field", "name")
FIELD_OBJECT_TYPE = _key("object_type")
FIELD_PHASE = _key("phase")


class ModelError(Exception):
    """Base class for all tagmodel errors.

    Attributes:
        code: Stable machine-readable identifier (e.g. ``"RULE_NOT_FOUND"``).
        message: Human-readable summary without the structured detail.
        detail: Structured context keyed by dotted field names.
    """

    code = "MODEL_ERROR"
    message = "model error"
    namespaced = True

    def __init__(self, message: str | None = None, **detail: Any) -> None:
        if message is not None:
            self.message = message
        self.detail: dict[str, str] = {}
        for key, value in detail.items():
            self.detail[_detail_key(key)] = str(value)
        super().__init__(self._render())

    def _render(self) -> str:
        text = f"{NAMESPACE}: {self.message}" if self.namespaced else self.message
        if not self.detail:
            return text
        parts = [f"{key.removeprefix(NAMESPACE + '.')}: {val}" for key, val in self.detail.items()]
        return f"{text} [{'; '.join(parts)}]"

    def describe(self) -> dict[str, Any]:
        """Return ``{code, message, detail}`` for structured output."""
        return {"code": self.code, "message": self.message, "detail": dict(self.detail)}


def _detail_key(name: str) -> str:
    """Map a keyword like ``rule_name`` onto its dotted detail key."""
    return _DETAIL_KEYS.get(name, _key(name))


_DETAIL_KEYS: dict[str, str] = {
    "rule_name": FIELD_RULE_NAME,
    "field_type": FIELD_RULE_FIELD_TYPE,
    "value_type": FIELD_RULE_VALUE_TYPE,
    "available_types": FIELD_RULE_AVAILABLE_TYPES,
    "param_name": FIELD_RULE_PARAM_NAME,
    "param_value": FIELD_RULE_PARAM_VALUE,
    "literal_kind": FIELD_DEFAULT_LITERAL_KIND,
    "field_name": FIELD_FIELD_NAME,
    "object_type": FIELD_OBJECT_TYPE,
    "phase": FIELD_PHASE,
}


# ---------------------------------------------------------------------------
# Construction errors
# ---------------------------------------------------------------------------


class NilObjectError(ModelError, TypeError):
    code = "NIL_OBJECT"
    message = "nil object"


class NotRecordError(ModelError, TypeError):
    code = "NOT_RECORD"
    message = "object must be a dataclass or pydantic model instance"


# ---------------------------------------------------------------------------
# Rule definition errors
# ---------------------------------------------------------------------------


class InvalidRuleError(ModelError, ValueError):
    code = "INVALID_RULE"
    message = "rule must have non-empty name and callable function"


class RuleTypeMismatchError(ModelError, TypeError):
    code = "RULE_TYPE_MISMATCH"
    message = "rule type mismatch"


# ---------------------------------------------------------------------------
# Registry errors
# ---------------------------------------------------------------------------


class DuplicateOverloadRuleError(ModelError, ValueError):
    code = "DUPLICATE_OVERLOAD_RULE"
    message = "duplicate overload rule"


class RuleNotFoundError(ModelError, LookupError):
    code = "RULE_NOT_FOUND"
    message = "rule not found"


class RuleOverloadNotFoundError(ModelError, LookupError):
    code = "RULE_OVERLOAD_NOT_FOUND"
    message = "rule overload not found"


class AmbiguousRuleError(ModelError, LookupError):
    code = "AMBIGUOUS_RULE"
    message = "ambiguous rule"


class InvalidValueError(ModelError, ValueError):
    code = "INVALID_VALUE"
    message = "invalid value"


# ---------------------------------------------------------------------------
# Rule parameter errors (raised by built-in rules)
# ---------------------------------------------------------------------------


class RuleMissingParameterError(ModelError, ValueError):
    code = "RULE_MISSING_PARAMETER"
    message = "rule parameter is required"


class RuleInvalidParameterError(ModelError, ValueError):
    code = "RULE_INVALID_PARAMETER"
    message = "rule parameter is invalid"


class RuleConstraintViolatedError(ModelError, ValueError):
    code = "RULE_CONSTRAINT_VIOLATED"
    message = "rule constraint violated"
    namespaced = False


# ---------------------------------------------------------------------------
# Defaults errors
# ---------------------------------------------------------------------------


class SetDefaultError(ModelError, ValueError):
    code = "SET_DEFAULT"
    message = "cannot set default value"


class DefaultLiteralUnsupportedKindError(ModelError, TypeError):
    code = "DEFAULT_LITERAL_UNSUPPORTED_KIND"
    message = "default literal unsupported kind"


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class ValidationCancelledError(ModelError):
    code = "CANCELLED"
    message = "validation cancelled"


class DeadlineExceededError(ValidationCancelledError):
    code = "DEADLINE_EXCEEDED"
    message = "deadline exceeded"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigError(ModelError, ValueError):
    code = "CONFIG"
    message = "invalid configuration"
