"""tagmodel — tag-driven validation and defaults for dataclasses and pydantic models."""

from tagmodel.binding import Binding, bind
from tagmodel.cancellation import CancelScope
from tagmodel.domain.tags import RuleNameParams, parse_tag, tags
from tagmodel.errors import (
    AmbiguousRuleError,
    ConfigError,
    DeadlineExceededError,
    DefaultLiteralUnsupportedKindError,
    DuplicateOverloadRuleError,
    InvalidRuleError,
    InvalidValueError,
    ModelError,
    NilObjectError,
    NotRecordError,
    RuleConstraintViolatedError,
    RuleInvalidParameterError,
    RuleMissingParameterError,
    RuleNotFoundError,
    RuleOverloadNotFoundError,
    RuleTypeMismatchError,
    SetDefaultError,
    ValidationCancelledError,
)
from tagmodel.report import FieldError, ValidationError
from tagmodel.rules.registry import UNSET, RulesRegistry
from tagmodel.rules.rule import Rule, new_rule

__version__ = "0.1.0"

__all__ = [
    "UNSET",
    "AmbiguousRuleError",
    "Binding",
    "CancelScope",
    "ConfigError",
    "DeadlineExceededError",
    "DefaultLiteralUnsupportedKindError",
    "DuplicateOverloadRuleError",
    "FieldError",
    "InvalidRuleError",
    "InvalidValueError",
    "ModelError",
    "NilObjectError",
    "NotRecordError",
    "Rule",
    "RuleConstraintViolatedError",
    "RuleInvalidParameterError",
    "RuleMissingParameterError",
    "RuleNameParams",
    "RuleNotFoundError",
    "RuleOverloadNotFoundError",
    "RuleTypeMismatchError",
    "RulesRegistry",
    "SetDefaultError",
    "ValidationCancelledError",
    "ValidationError",
    "bind",
    "new_rule",
    "parse_tag",
    "tags",
]
