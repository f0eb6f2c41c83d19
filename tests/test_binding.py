"""Tests for the public Binding facade."""

from __future__ import annotations

import threading
from pathlib import Path
from dataclasses import dataclass, field

import pytest

from tagmodel import (
    Binding,
    CancelScope,
    DeadlineExceededError,
    DuplicateOverloadRuleError,
    InvalidRuleError,
    NilObjectError,
    NotRecordError,
    Rule,
    ValidationError,
    bind,
    tags,
)
from tagmodel.config.discovery import CONFIG_ENV_VAR
from tagmodel.config.models import EngineConfig
from tagmodel.rules.registry import RulesRegistry


@dataclass
class Node:
    label: str = field(default="", metadata=tags(validate="min(1)"))


@dataclass
class Server:
    host: str = field(default="", metadata=tags(validate="min(3)", default="localhost"))
    port: int = field(default=0, metadata=tags(validate="positive", default="8080"))
    nodes: list[Node] | None = field(
        default=None, metadata=tags(default="alloc", validate_elem="dive")
    )
    primary: Node | None = field(default=None, metadata=tags(default="dive"))


@dataclass
class Shared:
    code: str = field(default="", metadata=tags(validate="upper"))


@dataclass
class Other:
    value: str = ""


def is_upper(value: str) -> None:
    if value != value.upper():
        raise ValueError("must be upper case")


class TestConstruction:
    def test_rejects_non_record(self) -> None:
        with pytest.raises(NotRecordError):
            Binding(int)

    def test_repr(self) -> None:
        assert repr(Binding(Node)).startswith("Binding(")


class TestValidate:
    def test_valid(self) -> None:
        Binding(Server).validate(Server(host="example", port=1, primary=Node("n")))

    def test_two_failures(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Binding(Server).validate(Server(host="ab", port=0))
        err = exc_info.value
        assert len(err) == 2
        assert err.fields() == ["host", "port"]
        assert str(err).startswith("validation failed (2 issues):")

    def test_single_failure_renders_one_line(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Binding(Server).validate(Server(host="example", port=0))
        assert str(exc_info.value) == "port: must be > 0 (rule positive)"

    def test_none_object(self) -> None:
        with pytest.raises(NilObjectError):
            Binding(Server).validate(None)  # type: ignore[arg-type]

    def test_wrong_type(self) -> None:
        with pytest.raises(NotRecordError):
            Binding(Server).validate(Other())  # type: ignore[arg-type]

    def test_cancel_before_start(self) -> None:
        scope = CancelScope(timeout=0)
        with pytest.raises(DeadlineExceededError):
            Binding(Server).validate(Server(), cancel=scope)


class TestRegisterRules:
    def test_registers_and_applies(self) -> None:
        b = Binding(Shared)
        b.register_rules(Rule.new("upper", is_upper))
        b.validate(Shared(code="OK"))
        with pytest.raises(ValidationError):
            b.validate(Shared(code="no"))

    def test_duplicate(self) -> None:
        b = Binding(Shared)
        b.register_rules(Rule.new("upper", is_upper))
        with pytest.raises(DuplicateOverloadRuleError):
            b.register_rules(Rule.new("upper", is_upper))

    def test_non_rule_rejected(self) -> None:
        with pytest.raises(InvalidRuleError):
            Binding(Shared).register_rules(is_upper)  # type: ignore[arg-type]

    def test_shared_registry(self) -> None:
        registry = RulesRegistry()
        Binding(Shared, registry=registry).register_rules(Rule.new("upper", is_upper))
        with pytest.raises(ValidationError):
            Binding(Shared, registry=registry).validate(Shared(code="no"))

    def test_builtins_disabled(self) -> None:
        b = Binding(Node, config=EngineConfig(builtins_enabled=False))
        with pytest.raises(ValidationError) as exc_info:
            b.validate(Node(label="fine"))
        assert "rule not found" in exc_info.value.issues[0].message


class TestDefaults:
    def test_apply_defaults(self) -> None:
        server = Server()
        Binding(Server).apply_defaults(server)
        assert server.host == "localhost"
        assert server.port == 8080
        assert server.nodes == []
        assert server.primary == Node()

    def test_apply_defaults_rejects_none(self) -> None:
        with pytest.raises(NilObjectError):
            Binding(Server).apply_defaults(None)  # type: ignore[arg-type]

    def test_validate_with_defaults(self) -> None:
        server = Server(primary=Node("p"))
        Binding(Server).validate_with_defaults(server)
        assert server.port == 8080

    def test_validate_with_defaults_reports_after_defaults(self) -> None:
        server = Server(nodes=[Node("")])
        with pytest.raises(ValidationError) as exc_info:
            Binding(Server).validate_with_defaults(server)
        assert exc_info.value.fields() == ["nodes[0].label", "primary.label"]


class TestBind:
    def test_memoized(self) -> None:
        assert bind(Other) is bind(Other)

    def test_distinct_per_type(self) -> None:
        assert bind(Other) is not bind(Node)

    def test_concurrent_first_use(self) -> None:
        @dataclass
        class Fresh:
            name: str = ""

        results: list[Binding[Fresh]] = []
        lock = threading.Lock()

        def worker() -> None:
            b = bind(Fresh)
            with lock:
                results.append(b)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len({id(b) for b in results}) == 1


class TestEngineSettings:
    @pytest.fixture(autouse=True)
    def _isolated(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.delenv("TAGMODEL_ENGINE__BUILTINS_ENABLED", raising=False)
        monkeypatch.chdir(tmp_path)

    def test_defaults_without_settings(self) -> None:
        assert Binding(Node).type_binding.config.builtins_enabled is True

    def test_env_disables_builtins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TAGMODEL_ENGINE__BUILTINS_ENABLED", "false")
        b = Binding(Node)
        assert b.type_binding.config.builtins_enabled is False
        with pytest.raises(ValidationError) as exc_info:
            b.validate(Node(label="fine"))
        assert "rule not found" in exc_info.value.issues[0].message

    def test_shared_binding_reads_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        @dataclass
        class Counter:
            count: int = field(default=0, metadata=tags(validate="positive"))

        monkeypatch.setenv("TAGMODEL_ENGINE__BUILTINS_ENABLED", "false")
        with pytest.raises(ValidationError) as exc_info:
            bind(Counter).validate(Counter(count=5))
        assert exc_info.value.fields() == ["count"]

    def test_toml_disables_builtins(self, tmp_path: Path) -> None:
        (tmp_path / "tagmodel.toml").write_text("[engine]\nbuiltins_enabled = false\n")
        assert Binding(Node).type_binding.config.builtins_enabled is False

    def test_explicit_config_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TAGMODEL_ENGINE__BUILTINS_ENABLED", "false")
        b = Binding(Node, config=EngineConfig())
        assert b.type_binding.config.builtins_enabled is True
