"""TypeBinding — the resolved per-type context shared by validation and defaults.

Every pass receives a :class:`TypeBinding` at construction time.  The
binding owns the rule registry and the parsed-tag cache; nested record
types reached during a pass share the same registry and cache, with the
nested owner type as part of the cache key.

INVARIANT: A binding never mutates after construction except through
registry additions and cache fills.
"""

from __future__ import annotations

import logging
from typing import Any

from tagmodel.cancellation import CancelScope
from tagmodel.config.models import EngineConfig
from tagmodel.core.defaults import DefaultsPass
from tagmodel.core.validate import ValidationPass
from tagmodel.domain.shape import RecordSchema, schema_for
from tagmodel.report import ValidationError
from tagmodel.rules.mapping import RulesMapping
from tagmodel.rules.registry import RulesRegistry
from tagmodel.rules.rule import Rule

logger = logging.getLogger(__name__)


class TypeBinding:
    """Registry, tag cache and engine config bound to one record type.

    Usage::

        tb = TypeBinding(Account)
        tb.add_rule(Rule.new("slug", check_slug))
        report = tb.validate(account)
        if not report.empty:
            raise report
    """

    def __init__(
        self,
        owner: type,
        *,
        config: EngineConfig | None = None,
        registry: RulesRegistry | None = None,
        mapping: RulesMapping | None = None,
    ) -> None:
        self._owner = owner
        self._schema = schema_for(owner)
        self._config = config or EngineConfig()
        self._registry = registry or RulesRegistry(
            builtins_enabled=self._config.builtins_enabled
        )
        self._mapping = mapping or RulesMapping()
        logger.debug(
            "Bound %s (builtins_enabled=%s)",
            owner.__qualname__,
            self._config.builtins_enabled,
        )

    @property
    def owner(self) -> type:
        return self._owner

    @property
    def schema(self) -> RecordSchema:
        return self._schema

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def registry(self) -> RulesRegistry:
        return self._registry

    @property
    def mapping(self) -> RulesMapping:
        return self._mapping

    def add_rule(self, rule: Rule | None) -> None:
        self._registry.add(rule)

    def validate(self, obj: Any, cancel: CancelScope | None = None) -> ValidationError:
        """Walk *obj* and return the collected report (possibly empty).

        Raises:
            BaseException: The cancellation reason, when *cancel* fires.
        """
        return ValidationPass(self, cancel).run(obj)

    def apply_defaults(self, obj: Any) -> None:
        """Apply default tags to *obj* in place.

        Raises:
            SetDefaultError: A literal could not be parsed for its field.
            DefaultLiteralUnsupportedKindError: A literal targets a field
                kind that takes no literals.
        """
        DefaultsPass(self).run(obj)
