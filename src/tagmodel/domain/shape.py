"""Record shape introspection — one ordered field schema per record class.

A *record* is a ``@dataclass`` class or a pydantic ``BaseModel`` subclass.
The schema lists every declared field in declaration order together with
its tags and the *kind* derived from its annotation.  Schemas are built
once per class and cached for the life of the process.

INVARIANT: Fields whose name starts with ``_`` are never part of a schema.
"""

from __future__ import annotations

import dataclasses
import enum
import inspect
import logging
import threading
import types
import typing
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum
from typing import Any

from pydantic import BaseModel

from tagmodel.domain.tags import read_tags

logger = logging.getLogger(__name__)


class Kind(StrEnum):
    """Shape classes the traversal and defaults engines distinguish."""

    STRING = "string"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    DURATION = "duration"
    RECORD = "record"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    OTHER = "other"


@dataclass(frozen=True)
class FieldSpec:
    """One declared record field.

    Attributes:
        name: Attribute name.
        index: Position among all declared fields (cache key component).
        annotation: The resolved annotation, or the raw one if unresolvable.
        kind: Shape class of the annotation with ``None`` stripped.
        optional: Whether ``None`` is part of the annotation.
        target: The concrete class behind *kind* (record class, ``list``, ...).
        settable: False for frozen dataclasses and frozen pydantic fields.
        tags: Tag metadata (``validate``, ``default``, ...).
        resolved: False when the annotation could not be evaluated; *kind*
            is then ``OTHER`` and defaults refuse the field.
    """

    name: str
    index: int
    annotation: Any
    kind: Kind
    optional: bool
    target: Any
    settable: bool
    tags: Mapping[str, str] = field(default_factory=dict)
    resolved: bool = True

    def tag(self, key: str) -> str | None:
        value = self.tags.get(key)
        return value if isinstance(value, str) else None


@dataclass(frozen=True)
class RecordSchema:
    """Ordered field list of one record class."""

    owner: type
    fields: tuple[FieldSpec, ...]
    frozen: bool


# ---------------------------------------------------------------------------
# Record detection
# ---------------------------------------------------------------------------


def is_record_class(cls: Any) -> bool:
    """Whether *cls* is a dataclass class or a pydantic model class."""
    if not isinstance(cls, type):
        return False
    return dataclasses.is_dataclass(cls) or issubclass(cls, BaseModel)


def is_record(value: Any) -> bool:
    """Whether *value* is a record instance (not a record class)."""
    return value is not None and not isinstance(value, type) and is_record_class(type(value))


# ---------------------------------------------------------------------------
# Annotation classification
# ---------------------------------------------------------------------------


def _is_union(tp: Any) -> bool:
    origin = typing.get_origin(tp)
    return origin is typing.Union or origin is types.UnionType


def classify(annotation: Any) -> tuple[Kind, bool, Any]:
    """Return ``(kind, optional, target)`` for a field annotation.

    Examples:
        >>> classify(int | None)
        (<Kind.INT: 'int'>, True, <class 'int'>)
        >>> classify(list[str])
        (<Kind.SEQUENCE: 'sequence'>, False, <class 'list'>)
    """
    tp = annotation
    if typing.get_origin(tp) is typing.Annotated:
        tp = typing.get_args(tp)[0]

    optional = False
    if _is_union(tp):
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        optional = len(args) != len(typing.get_args(tp))
        if len(args) != 1:
            return Kind.OTHER, optional, tp
        tp = args[0]
        if typing.get_origin(tp) is typing.Annotated:
            tp = typing.get_args(tp)[0]

    origin = typing.get_origin(tp) or tp
    if not isinstance(origin, type):
        return Kind.OTHER, optional, tp
    return _kind_of_class(origin), optional, origin


def _kind_of_class(cls: type) -> Kind:
    if issubclass(cls, enum.Enum):
        return Kind.OTHER
    if issubclass(cls, bool):
        return Kind.BOOL
    if issubclass(cls, str):
        return Kind.STRING
    if issubclass(cls, timedelta):
        return Kind.DURATION
    if issubclass(cls, int):
        return Kind.INT
    if issubclass(cls, float):
        return Kind.FLOAT
    if is_record_class(cls):
        return Kind.RECORD
    if issubclass(cls, Mapping):
        return Kind.MAPPING
    if issubclass(cls, Sequence) and not issubclass(cls, (bytes, bytearray)):
        return Kind.SEQUENCE
    return Kind.OTHER


def kind_of_value(value: Any) -> Kind:
    """Shape class of a runtime value (``OTHER`` for ``None``)."""
    if value is None:
        return Kind.OTHER
    return _kind_of_class(type(value))


def is_zero(value: Any, kind: Kind) -> bool:
    """Whether *value* is the zero value for *kind*.

    ``None`` is always zero.  Scalars compare against ``""``, ``False``,
    ``0``, ``0.0`` and ``timedelta(0)``; containers and records are zero
    only when ``None``.
    """
    if value is None:
        return True
    match kind:
        case Kind.STRING:
            return value == ""
        case Kind.BOOL:
            return value is False
        case Kind.INT | Kind.FLOAT:
            return value == 0
        case Kind.DURATION:
            return value == timedelta(0)
        case _:
            return False


# ---------------------------------------------------------------------------
# Schema construction
# ---------------------------------------------------------------------------


def _class_hints(cls: type) -> dict[str, Any] | None:
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError):
        return None


def _declaring_class(cls: type, name: str) -> type:
    for base in cls.__mro__:
        try:
            own = inspect.get_annotations(base)
        except NameError:
            continue
        if name in own:
            return base
    return cls


def _resolve_field(cls: type, name: str, raw: Any) -> Any:
    """Evaluate one string annotation in the namespace of its declaring class.

    Raises:
        NameError: A name in the annotation is not defined there.
    """
    if not isinstance(raw, str):
        return raw
    owner = _declaring_class(cls, name)
    holder = type(
        "_FieldHints",
        (),
        {"__annotations__": {name: raw}, "__module__": owner.__module__},
    )
    localns = dict(vars(owner))
    localns.setdefault(owner.__name__, owner)
    return typing.get_type_hints(holder, localns=localns, include_extras=True)[name]


def _dataclass_schema(cls: type) -> RecordSchema:
    hints = _class_hints(cls)
    frozen = bool(cls.__dataclass_params__.frozen)  # type: ignore[attr-defined]
    specs: list[FieldSpec] = []
    for index, f in enumerate(dataclasses.fields(cls)):
        if f.name.startswith("_"):
            continue
        resolved = True
        if hints is not None and f.name in hints:
            annotation = hints[f.name]
        else:
            try:
                annotation = _resolve_field(cls, f.name, f.type)
            except (NameError, TypeError) as exc:
                logger.warning(
                    "Cannot resolve annotation %r of %s.%s: %s",
                    f.type,
                    cls.__qualname__,
                    f.name,
                    exc,
                )
                annotation = f.type
                resolved = False
        kind, optional, target = classify(annotation)
        specs.append(
            FieldSpec(
                name=f.name,
                index=index,
                annotation=annotation,
                kind=kind,
                optional=optional,
                target=target,
                settable=not frozen,
                tags=read_tags(f.metadata),
                resolved=resolved,
            )
        )
    return RecordSchema(owner=cls, fields=tuple(specs), frozen=frozen)


def _pydantic_schema(cls: type[BaseModel]) -> RecordSchema:
    frozen = bool(cls.model_config.get("frozen", False))
    specs: list[FieldSpec] = []
    for index, (name, info) in enumerate(cls.model_fields.items()):
        if name.startswith("_"):
            continue
        kind, optional, target = classify(info.annotation)
        specs.append(
            FieldSpec(
                name=name,
                index=index,
                annotation=info.annotation,
                kind=kind,
                optional=optional,
                target=target,
                settable=not (frozen or bool(info.frozen)),
                tags=read_tags(info.json_schema_extra),
            )
        )
    return RecordSchema(owner=cls, fields=tuple(specs), frozen=frozen)


_schemas: dict[type, RecordSchema] = {}
_schemas_lock = threading.Lock()


def schema_for(cls: type) -> RecordSchema:
    """Return the cached schema for record class *cls*, building it on first use.

    Raises:
        TypeError: If *cls* is not a record class.
    """
    cached = _schemas.get(cls)
    if cached is not None:
        return cached
    if not is_record_class(cls):
        msg = f"{cls!r} is not a dataclass or pydantic model class"
        raise TypeError(msg)
    schema = _pydantic_schema(cls) if issubclass(cls, BaseModel) else _dataclass_schema(cls)
    with _schemas_lock:
        # Concurrent builders produce identical schemas; first writer wins.
        schema = _schemas.setdefault(cls, schema)
    logger.debug("Built record schema for %s (%d fields)", cls.__qualname__, len(schema.fields))
    return schema


def type_name(tp: Any) -> str:
    """Stable display name for a type: builtins bare, others module-qualified."""
    if isinstance(tp, type):
        if tp.__module__ == "builtins":
            return tp.__qualname__
        return f"{tp.__module__}.{tp.__qualname__}"
    return str(tp)
