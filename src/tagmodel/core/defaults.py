"""DefaultsPass — apply ``default`` / ``defaultElem`` tags to a record tree.

Per public field, in declaration order:

- ``default:"dive"``: recurse; a ``None`` optional record is allocated by
  calling its class with no arguments first.  Non-record targets are
  ignored.
- ``default:"alloc"``: ``None`` sequence becomes ``[]`` (``()`` for tuple
  fields), ``None`` mapping becomes ``{}``.
- any other ``default`` literal: assigned only when the field is zero and
  settable.
- ``defaultElem:"dive"``: recurse into record elements of a sequence or
  record values of a mapping.

Record-valued fields are always descended into, tagged or not.

INVARIANT: Literal and allocation failures abort the whole pass; nothing
is collected.  A tagged field whose annotation could not be resolved is
such a failure.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import MutableMapping, MutableSequence
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from tagmodel.domain.shape import Kind, is_record, is_record_class, is_zero, schema_for
from tagmodel.domain.tags import (
    DIRECTIVE_ALLOC,
    DIRECTIVE_DIVE,
    TAG_DEFAULT,
    TAG_DEFAULT_ELEM,
    is_active,
)
from tagmodel.errors import DefaultLiteralUnsupportedKindError, SetDefaultError

if TYPE_CHECKING:
    from tagmodel.core.binding import TypeBinding
    from tagmodel.domain.shape import FieldSpec

logger = logging.getLogger(__name__)

_TRUE_TOKENS = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSE_TOKENS = frozenset({"0", "false", "f", "no", "n", "off"})

_DURATION_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


# ---------------------------------------------------------------------------
# Literal parsing
# ---------------------------------------------------------------------------


def _parse_bool(lit: str) -> bool:
    token = lit.strip().lower()
    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    msg = f"parse bool: {lit!r}"
    raise ValueError(msg)


def _parse_int(lit: str) -> int:
    try:
        return int(lit.strip(), 10)
    except ValueError as exc:
        msg = f"parse int: {lit!r}"
        raise ValueError(msg) from exc


def _parse_float(lit: str) -> float:
    try:
        return float(lit.strip())
    except ValueError as exc:
        msg = f"parse float: {lit!r}"
        raise ValueError(msg) from exc


def _parse_duration(lit: str) -> timedelta:
    """Parse a signed sequence of ``<number><unit>`` pairs (``1h30m``, ``-1.5s``).

    Units: ``ns``, ``us`` (``µs``), ``ms``, ``s``, ``m``, ``h``.  A bare
    ``0`` is accepted.
    """
    text = lit.strip()
    sign = 1
    if text[:1] in ("-", "+"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        msg = f"parse duration: invalid duration {lit!r}"
        raise ValueError(msg)

    seconds = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            msg = f"parse duration: invalid duration {lit!r}"
            raise ValueError(msg)
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return timedelta(seconds=sign * seconds)


def _parse_literal(spec: FieldSpec, lit: str) -> Any:
    """Convert *lit* for the field's kind.

    Raises:
        ValueError: *lit* is malformed for the kind.
        DefaultLiteralUnsupportedKindError: The kind takes no literals.
    """
    match spec.kind:
        case Kind.STRING:
            return lit
        case Kind.BOOL:
            return _parse_bool(lit)
        case Kind.INT:
            return _parse_int(lit)
        case Kind.FLOAT:
            return _parse_float(lit)
        case Kind.DURATION:
            return _parse_duration(lit)
        case _:
            raise DefaultLiteralUnsupportedKindError(
                literal_kind=spec.kind.value, field_name=spec.name
            )


# ---------------------------------------------------------------------------
# Pass
# ---------------------------------------------------------------------------


def _alloc(spec: FieldSpec, value: Any) -> Any:
    if value is not None:
        return value
    if spec.kind is Kind.SEQUENCE:
        if isinstance(spec.target, type) and issubclass(spec.target, tuple):
            return ()
        return []
    if spec.kind is Kind.MAPPING:
        return {}
    return value


def _rebuildable(obj: Any) -> bool:
    """Frozen dataclass instances can be replaced with an updated copy."""
    params = getattr(type(obj), "__dataclass_params__", None)
    return params is not None and bool(params.frozen)


class DefaultsPass:
    """Single-use defaults application bound to one :class:`TypeBinding`."""

    def __init__(self, binding: TypeBinding) -> None:
        self._binding = binding

    def run(self, obj: Any) -> None:
        try:
            self._record(obj)
        except (SetDefaultError, DefaultLiteralUnsupportedKindError) as exc:
            logger.debug("Defaults pass on %s failed: %s", self._binding.owner.__qualname__, exc)
            raise

    def _record(self, obj: Any, *, rebuild: bool = False) -> Any:
        """Apply defaults to *obj*; return *obj* or its rebuilt replacement.

        With *rebuild*, fields of a frozen dataclass are collected and
        applied through :func:`dataclasses.replace` instead of being
        skipped.
        """
        schema = schema_for(type(obj))
        rebuild = rebuild and _rebuildable(obj)
        changes: dict[str, Any] = {}

        for spec in schema.fields:
            writable = spec.settable or rebuild
            value = getattr(obj, spec.name)
            new = value

            raw = spec.tag(TAG_DEFAULT)
            if is_active(raw) and not spec.resolved:
                raise SetDefaultError(
                    f"unresolvable annotation {spec.annotation!r}", field_name=spec.name
                )
            if raw == DIRECTIVE_DIVE:
                new = self._dive(spec, value, writable, rebuild)
            elif is_record(value):
                new = self._record(value, rebuild=rebuild)
            elif raw == DIRECTIVE_ALLOC:
                if writable:
                    new = _alloc(spec, value)
            elif is_active(raw) and writable and is_zero(value, spec.kind):
                new = self._literal(spec, raw)

            if spec.tag(TAG_DEFAULT_ELEM) == DIRECTIVE_DIVE:
                self._elements(new)

            if new is not value:
                if spec.settable:
                    setattr(obj, spec.name, new)
                elif rebuild:
                    changes[spec.name] = new

        if changes:
            return dataclasses.replace(obj, **changes)
        return obj

    def _dive(self, spec: FieldSpec, value: Any, writable: bool, rebuild: bool) -> Any:
        if is_record(value):
            return self._record(value, rebuild=rebuild)
        if value is not None or not writable:
            return value
        if spec.kind is not Kind.RECORD or not is_record_class(spec.target):
            return value
        try:
            allocated = spec.target()
        except Exception as exc:
            raise SetDefaultError(
                f"cannot allocate {spec.target.__qualname__}",
                field_name=spec.name,
                cause=exc,
            ) from exc
        return self._record(allocated, rebuild=rebuild)

    def _literal(self, spec: FieldSpec, raw: str) -> Any:
        try:
            return _parse_literal(spec, raw)
        except ValueError as exc:
            raise SetDefaultError(field_name=spec.name, cause=exc) from exc

    def _elements(self, container: Any) -> None:
        if isinstance(container, MutableMapping):
            for key, elem in list(container.items()):
                if is_record(elem):
                    new = self._record(elem, rebuild=True)
                    if new is not elem:
                        container[key] = new
        elif isinstance(container, MutableSequence):
            for i, elem in enumerate(container):
                if is_record(elem):
                    new = self._record(elem, rebuild=True)
                    if new is not elem:
                        container[i] = new
        elif isinstance(container, tuple):
            for elem in container:
                if is_record(elem):
                    self._record(elem)
