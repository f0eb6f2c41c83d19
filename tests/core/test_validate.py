"""Tests for the validation traversal."""

from __future__ import annotations

from collections.abc import Sized
from dataclasses import dataclass, field
from typing import Any

import pytest
from pydantic import BaseModel, Field

from tagmodel.cancellation import CancelScope
from tagmodel.core.binding import TypeBinding
from tagmodel.domain.tags import tags
from tagmodel.errors import (
    InvalidRuleError,
    RuleConstraintViolatedError,
    RuleNotFoundError,
    RuleOverloadNotFoundError,
    ValidationCancelledError,
)
from tagmodel.rules.rule import Rule
from tests.conftest import failing_rule, recording_rule


@dataclass
class Address:
    street: str = field(default="", metadata=tags(validate="min(1)"))
    city: str = field(default="", metadata=tags(validate="min(1)"))


@dataclass
class Person:
    name: str = field(default="", metadata=tags(validate="min(2)"))
    email: str = field(default="", metadata=tags(validate="email"))
    _internal: str = field(default="", metadata=tags(validate="min(5)"))
    home: Address = field(default_factory=Address)
    work: Address | None = None


@dataclass
class Tagless:
    inner: Address = field(default_factory=Address)


@dataclass
class Basket:
    names: list[str] = field(default_factory=list, metadata=tags(validate_elem="min(2)"))
    addresses: list[Address] = field(default_factory=list, metadata=tags(validate_elem="dive"))
    scores: dict[str, int] = field(default_factory=dict, metadata=tags(validate_elem="positive"))
    by_key: dict[str, Address] = field(default_factory=dict, metadata=tags(validate_elem="dive"))
    numbers: tuple[int, ...] = field(default=(), metadata=tags(validate_elem="dive"))
    skipped: list[str] = field(default_factory=list, metadata=tags(validate_elem="-"))


@dataclass
class Disabled:
    name: str = field(default="", metadata=tags(validate="-"))


@dataclass
class Custom:
    label: str = field(default="", metadata=tags(validate="upper,prefix(ab, cd)"))
    count: int = field(default=0, metadata=tags(validate="missing"))


@dataclass
class Mixed:
    text: str = field(default="", metadata=tags(validate="pick"))
    items: list[int] = field(default_factory=list, metadata=tags(validate="pick"))


@dataclass
class Three:
    a: str = field(default="", metadata=tags(validate="min(1)"))
    b: str = field(default="", metadata=tags(validate="min(1)"))
    c: str = field(default="", metadata=tags(validate="min(1)"))


class Profile(BaseModel):
    handle: str = Field(default="", json_schema_extra=tags(validate="min(3)"))
    contact: Address | None = None


def _validate(obj: Any, tb: TypeBinding | None = None, cancel: CancelScope | None = None) -> Any:
    tb = tb or TypeBinding(type(obj))
    return tb.validate(obj, cancel)


class TestFieldRules:
    def test_valid_record_yields_empty_report(self) -> None:
        person = Person(name="Ann", email="ann@example.org", home=Address("Main", "Oslo"))
        assert _validate(person).empty

    def test_collects_failures_in_declaration_order(self) -> None:
        report = _validate(Person(name="A", email="nope", home=Address("Main", "Oslo")))
        assert [fe.path for fe in report] == ["name", "email"]
        assert [fe.rule for fe in report] == ["min", "email"]
        assert report.issues[0].params == ("2",)
        assert isinstance(report.issues[0].err, RuleConstraintViolatedError)

    def test_private_fields_skipped(self) -> None:
        person = Person(name="Ann", email="a@b.co", _internal="x", home=Address("M", "O"))
        assert _validate(person).empty

    def test_disabled_tag(self) -> None:
        assert _validate(Disabled()).empty

    def test_resolution_errors_become_field_errors(self) -> None:
        tb = TypeBinding(Custom)
        tb.add_rule(failing_rule("upper", str, "not upper"))
        tb.add_rule(failing_rule("prefix", str, "bad prefix"))
        report = tb.validate(Custom(label="x", count=1))
        assert [(fe.path, fe.rule) for fe in report] == [
            ("label", "upper"),
            ("label", "prefix"),
            ("count", "missing"),
        ]
        assert report.issues[1].params == ("ab", "cd")
        assert isinstance(report.issues[2].err, RuleNotFoundError)

    def test_params_passed_to_rule(self) -> None:
        calls: list[tuple[Any, tuple[str, ...]]] = []
        tb = TypeBinding(Custom)
        tb.add_rule(recording_rule("upper", calls))
        tb.add_rule(recording_rule("prefix", calls))
        tb.add_rule(recording_rule("missing", calls, int))
        assert tb.validate(Custom(label="ab", count=2)).empty
        assert calls == [("ab", ()), ("ab", ("ab", "cd")), (2, ())]

    def test_rule_arity_mismatch_becomes_field_error(self) -> None:
        def exact_one(value: str) -> None:
            return None

        tb = TypeBinding(Three)
        tb.add_rule(Rule.new("min", exact_one))
        report = tb.validate(Three("a", "b", "c"))
        assert [fe.path for fe in report] == ["a", "b", "c"]
        assert all(isinstance(fe.err, InvalidRuleError) for fe in report)
        assert "does not accept 1 tag parameter" in report.issues[0].message

    def test_capability_rule_applies_to_containers(self) -> None:
        calls: list[tuple[Any, tuple[str, ...]]] = []
        tb = TypeBinding(Mixed)
        tb.add_rule(recording_rule("pick", calls, Sized))
        assert tb.validate(Mixed(text="t", items=[1])).empty
        assert calls == [("t", ()), ([1], ())]

    def test_overload_not_found_recorded(self) -> None:
        tb = TypeBinding(Mixed)
        tb.add_rule(Rule.new("pick", lambda v: None, str))
        report = tb.validate(Mixed(text="t", items=[1]))
        assert report.fields() == ["items"]
        assert isinstance(report.issues[0].err, RuleOverloadNotFoundError)

    def test_tag_parsed_once_per_field(self) -> None:
        tb = TypeBinding(Three)
        tb.validate(Three("x", "y", "z"))
        tb.validate(Three("x", "y", "z"))
        assert len(tb.mapping) == 3


class TestNesting:
    def test_nested_record_paths(self) -> None:
        person = Person(name="Ann", email="a@b.co", home=Address(), work=Address("W", ""))
        report = _validate(person)
        assert report.fields() == ["home.street", "home.city", "work.city"]

    def test_none_optional_record_skipped(self) -> None:
        person = Person(name="Ann", email="a@b.co", home=Address("M", "O"), work=None)
        assert _validate(person).empty

    def test_untagged_record_field_recursed(self) -> None:
        report = _validate(Tagless())
        assert report.fields() == ["inner.street", "inner.city"]

    def test_pydantic_model(self) -> None:
        report = _validate(Profile(handle="ab", contact=Address("x", "")))
        assert report.fields() == ["handle", "contact.city"]


class TestElements:
    def test_sequence_rules(self) -> None:
        report = _validate(Basket(names=["ok", "x", "fine", ""]))
        assert report.fields() == ["names[1]", "names[3]"]

    def test_sequence_dive(self) -> None:
        report = _validate(Basket(addresses=[Address("a", "b"), Address("", "b")]))
        assert report.fields() == ["addresses[1].street"]

    def test_mapping_rules(self) -> None:
        report = _validate(Basket(scores={"a": 1, "b": 0, "c": -2}))
        assert sorted(report.fields()) == ["scores[b]", "scores[c]"]

    def test_mapping_dive(self) -> None:
        report = _validate(Basket(by_key={"x": Address("a", "b"), "y": Address("a", "")}))
        assert report.fields() == ["by_key[y].city"]

    def test_dive_on_non_records_reports_each_element(self) -> None:
        report = _validate(Basket(numbers=(1, 2, 3)))
        assert report.fields() == ["numbers[0]", "numbers[1]", "numbers[2]"]
        assert all(fe.rule == "dive" for fe in report)
        assert 'requires record element, got int' in report.issues[0].message

    def test_disabled_elem_tag(self) -> None:
        assert _validate(Basket(skipped=["", ""])).empty

    def test_empty_containers(self) -> None:
        assert _validate(Basket()).empty


class TestCancellation:
    def test_pre_cancelled_scope_raises_reason(self, cancel_scope: CancelScope) -> None:
        cancel_scope.cancel("stop")
        with pytest.raises(ValidationCancelledError, match="stop"):
            _validate(Three(), cancel=cancel_scope)

    def test_cancel_mid_traversal_discards_partial_report(self) -> None:
        scope = CancelScope()
        reason = RuntimeError("shutdown")

        def cancel_on_second(value: str, *_params: str) -> None:
            if value == "b":
                scope.cancel(reason)
            raise ValueError("always fails")

        tb = TypeBinding(Three)
        tb.add_rule(Rule.new("min", cancel_on_second))
        with pytest.raises(RuntimeError) as exc_info:
            tb.validate(Three("a", "b", "c"), scope)
        assert exc_info.value is reason

    def test_expired_deadline(self) -> None:
        scope = CancelScope(timeout=-1)
        with pytest.raises(ValidationCancelledError):
            _validate(Three(), cancel=scope)
