"""ValidationPass — one walk of a record tree collecting FieldErrors.

Per public field, in declaration order:

1. a record-valued field is recursed into (path ``parent.name``);
2. the ``validate`` tag's rules are resolved against the field value and
   applied;
3. the ``validateElem`` tag's rules are applied to every element of a
   sequence (``name[i]``) or every value of a mapping (``name[key]``).
   A lone ``dive`` recurses into record elements instead and reports any
   other element.

INVARIANT: Rule resolution and rule failures are recorded, never raised.
Only cancellation escapes a pass.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from tagmodel.domain.shape import Kind, is_record, kind_of_value, schema_for, type_name
from tagmodel.domain.tags import (
    DIRECTIVE_DIVE,
    TAG_VALIDATE,
    TAG_VALIDATE_ELEM,
    RuleNameParams,
    is_active,
    is_dive_only,
)
from tagmodel.report import FieldError, ValidationError

if TYPE_CHECKING:
    from tagmodel.cancellation import CancelScope
    from tagmodel.core.binding import TypeBinding
    from tagmodel.domain.shape import FieldSpec

logger = logging.getLogger(__name__)


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


def _elements(container: Any, path: str) -> Iterator[tuple[str, Any]]:
    """Yield ``(element path, element)`` for sequences and mappings."""
    match kind_of_value(container):
        case Kind.SEQUENCE:
            for i, elem in enumerate(container):
                yield f"{path}[{i}]", elem
        case Kind.MAPPING:
            for key, elem in container.items():
                yield f"{path}[{key}]", elem
        case _:
            return


class ValidationPass:
    """Single-use traversal bound to one :class:`TypeBinding`."""

    def __init__(self, binding: TypeBinding, cancel: CancelScope | None = None) -> None:
        self._binding = binding
        self._cancel = cancel
        self._report = ValidationError()

    def run(self, obj: Any) -> ValidationError:
        self._record(obj, "")
        return self._report

    def _check(self) -> None:
        if self._cancel is None:
            return
        err = self._cancel.error()
        if err is not None:
            logger.debug("Validation of %s cancelled: %s", self._binding.owner.__qualname__, err)
            raise err

    # --- records ---

    def _record(self, obj: Any, path: str) -> None:
        self._check()
        schema = schema_for(type(obj))
        for spec in schema.fields:
            self._check()
            value = getattr(obj, spec.name)
            fpath = _join(path, spec.name)

            if is_record(value):
                self._record(value, fpath)

            raw = spec.tag(TAG_VALIDATE)
            if is_active(raw):
                self._field_rules(schema.owner, spec, raw, value, fpath)

            elem_raw = spec.tag(TAG_VALIDATE_ELEM)
            if is_active(elem_raw):
                self._element_rules(schema.owner, spec, elem_raw, value, fpath)

    def _field_rules(
        self, owner: type, spec: FieldSpec, raw: str, value: Any, path: str
    ) -> None:
        rules = self._binding.mapping.resolve(owner, spec.index, TAG_VALIDATE, raw)
        self._apply_all(rules, value, path)

    def _element_rules(
        self, owner: type, spec: FieldSpec, raw: str, container: Any, path: str
    ) -> None:
        self._check()
        rules = self._binding.mapping.resolve(owner, spec.index, TAG_VALIDATE_ELEM, raw)
        if not rules:
            return
        dive = is_dive_only(rules)
        for epath, elem in _elements(container, path):
            self._check()
            if not dive:
                self._apply_all(rules, elem, epath)
            elif is_record(elem):
                self._record(elem, epath)
            else:
                err = TypeError(
                    f'{TAG_VALIDATE_ELEM}:"{DIRECTIVE_DIVE}" requires record element, '
                    f"got {type_name(type(elem))}"
                )
                self._report.add(FieldError(epath, DIRECTIVE_DIVE, err))

    # --- rules ---

    def _apply_all(self, rules: tuple[RuleNameParams, ...], value: Any, path: str) -> None:
        for rnp in rules:
            self._check()
            try:
                rule = self._binding.registry.get(rnp.name, value)
                rule(value, *rnp.params)
            except Exception as exc:
                self._report.add(FieldError(path, rnp.name, exc, rnp.params))
