"""Binding — the public facade over one record type.

Usage::

    @dataclass
    class Service:
        name: str = field(default="", metadata=tags(validate="min(3)", default="svc"))
        port: int = field(default=0, metadata=tags(validate="positive", default="8080"))

    b = bind(Service)
    svc = Service()
    b.validate_with_defaults(svc)

``bind`` returns one shared :class:`Binding` per record class; construct
:class:`Binding` directly for an isolated registry or an explicit
:class:`~tagmodel.config.models.EngineConfig`.  Without one, engine options
come from :class:`~tagmodel.config.settings.TagmodelSettings`.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from tagmodel.cancellation import CancelScope
from tagmodel.config.models import EngineConfig
from tagmodel.config.settings import TagmodelSettings
from tagmodel.core.binding import TypeBinding
from tagmodel.domain.shape import is_record_class, type_name
from tagmodel.errors import InvalidRuleError, NilObjectError, NotRecordError
from tagmodel.rules.registry import RulesRegistry
from tagmodel.rules.rule import Rule

logger = logging.getLogger(__name__)


class Binding[T]:
    """Validation and defaults for instances of one record class.

    Parameters:
        cls: A ``@dataclass`` class or pydantic ``BaseModel`` subclass.
        config: Engine options; defaults to the ``engine`` section of
            :meth:`TagmodelSettings.load` (env vars and discovered TOML).
        registry: Share a rule registry between bindings.

    Raises:
        NotRecordError: *cls* is not a record class.
    """

    def __init__(
        self,
        cls: type[T],
        *,
        config: EngineConfig | None = None,
        registry: RulesRegistry | None = None,
    ) -> None:
        if not is_record_class(cls):
            raise NotRecordError(object_type=type_name(cls))
        if config is None:
            config = TagmodelSettings.load().engine
        self._cls = cls
        self._tb = TypeBinding(cls, config=config, registry=registry)

    @property
    def cls(self) -> type[T]:
        return self._cls

    @property
    def type_binding(self) -> TypeBinding:
        return self._tb

    def register_rules(self, *rules: Rule) -> None:
        """Register each rule as an overload of its name.

        Raises:
            InvalidRuleError: An argument is not a :class:`Rule`.
            DuplicateOverloadRuleError: A rule duplicates an existing
                (name, exact type) overload.
        """
        for rule in rules:
            if rule is not None and not isinstance(rule, Rule):
                raise InvalidRuleError(
                    "expected a Rule; build one with Rule.new(name, fn)",
                    object_type=type_name(type(rule)),
                )
            self._tb.add_rule(rule)

    def validate(self, obj: T, *, cancel: CancelScope | None = None) -> None:
        """Validate *obj*, returning normally only if every rule passed.

        Raises:
            ValidationError: One or more FieldErrors were collected.
            NilObjectError: *obj* is None.
            NotRecordError: *obj* is not an instance of the bound class.
            BaseException: The cancellation reason of *cancel*.
        """
        self._check(obj, phase="validate")
        report = self._tb.validate(obj, cancel)
        if not report.empty:
            raise report

    def apply_defaults(self, obj: T) -> None:
        """Apply default tags to *obj* in place.

        Raises:
            SetDefaultError: A literal is malformed for its field.
            DefaultLiteralUnsupportedKindError: A literal targets a field
                kind that takes no literals.
            NilObjectError: *obj* is None.
            NotRecordError: *obj* is not an instance of the bound class.
        """
        self._check(obj, phase="defaults")
        self._tb.apply_defaults(obj)

    def validate_with_defaults(self, obj: T, *, cancel: CancelScope | None = None) -> None:
        """Apply defaults, then validate."""
        if cancel is not None:
            cancel.raise_if_cancelled()
        self.apply_defaults(obj)
        self.validate(obj, cancel=cancel)

    def _check(self, obj: Any, *, phase: str) -> None:
        if obj is None:
            raise NilObjectError(object_type=type_name(self._cls), phase=phase)
        if not isinstance(obj, self._cls):
            raise NotRecordError(
                f"object must be an instance of {type_name(self._cls)}",
                object_type=type_name(type(obj)),
                phase=phase,
            )

    def __repr__(self) -> str:
        return f"Binding({type_name(self._cls)})"


_bindings: dict[type, Binding[Any]] = {}
_bindings_lock = threading.Lock()


def bind[T](cls: type[T]) -> Binding[T]:
    """Return the shared :class:`Binding` for *cls*, creating it on first use.

    Rules registered on the shared binding are visible to every caller of
    ``bind(cls)``.
    """
    existing = _bindings.get(cls)
    if existing is not None:
        return existing
    with _bindings_lock:
        existing = _bindings.get(cls)
        if existing is None:
            existing = Binding(cls)
            _bindings[cls] = existing
            logger.debug("Created shared binding for %s", type_name(cls))
    return existing
