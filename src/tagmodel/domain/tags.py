"""Tag domain logic — vocabulary, metadata builder and rule-list parsing.

Tags live in field metadata under the single ``tagmodel`` key, as a
mapping with exact, case-sensitive entries:

- ``validate``: ``"rule1,rule2(p1,p2)"`` applied to the field value.
- ``validateElem``: ``"dive"`` or rules applied to each container element.
- ``default``: a literal, ``"dive"`` or ``"alloc"``.
- ``defaultElem``: ``"dive"`` into container elements.

A tag value of ``"-"`` disables processing of that tag for the field.

INVARIANT: Tag entries never appear as top-level metadata keys; pydantic
expands a dataclass field's metadata into ``Field(**metadata)`` and a bare
``default`` key would collide.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

TAG_NAMESPACE = "tagmodel"

TAG_VALIDATE = "validate"
TAG_VALIDATE_ELEM = "validateElem"
TAG_DEFAULT = "default"
TAG_DEFAULT_ELEM = "defaultElem"

DIRECTIVE_DIVE = "dive"
DIRECTIVE_ALLOC = "alloc"
DISABLED = "-"


@dataclass(frozen=True)
class RuleNameParams:
    """One parsed ``name(p1,p2)`` token of a tag."""

    name: str
    params: tuple[str, ...] = ()


def tags(
    *,
    validate: str | None = None,
    validate_elem: str | None = None,
    default: str | None = None,
    default_elem: str | None = None,
) -> dict[str, dict[str, str]]:
    """Build a field metadata mapping from keyword arguments.

    Works for ``dataclasses.field(metadata=...)`` and pydantic
    ``Field(json_schema_extra=...)`` alike.

    Examples:
        >>> tags(validate="min(1)", default="svc")
        {'tagmodel': {'validate': 'min(1)', 'default': 'svc'}}
    """
    out: dict[str, str] = {}
    for key, value in (
        (TAG_VALIDATE, validate),
        (TAG_VALIDATE_ELEM, validate_elem),
        (TAG_DEFAULT, default),
        (TAG_DEFAULT_ELEM, default_elem),
    ):
        if value is not None:
            out[key] = value
    return {TAG_NAMESPACE: out} if out else {}


def read_tags(metadata: Any) -> dict[str, str]:
    """Extract the tag entries from field metadata built by :func:`tags`.

    Examples:
        >>> read_tags({"tagmodel": {"default": "svc"}, "other": 1})
        {'default': 'svc'}
        >>> read_tags(None)
        {}
    """
    if not isinstance(metadata, Mapping):
        return {}
    entries = metadata.get(TAG_NAMESPACE)
    if not isinstance(entries, Mapping):
        return {}
    return {k: v for k, v in entries.items() if isinstance(v, str)}


def is_active(raw: str | None) -> bool:
    """Whether a raw tag value should be processed (present, non-empty, not ``"-"``)."""
    return bool(raw) and raw != DISABLED


def is_dive_only(rules: tuple[RuleNameParams, ...]) -> bool:
    """Whether *rules* is exactly one parameterless ``dive`` directive."""
    return len(rules) == 1 and rules[0].name == DIRECTIVE_DIVE and not rules[0].params


def _split_top_level(tag: str) -> list[str]:
    tokens: list[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(tag):
        if ch == "(":
            depth += 1
        elif ch == ")":
            if depth > 0:
                depth -= 1
        elif ch == "," and depth == 0:
            tokens.append(tag[start:i].strip())
            start = i + 1
    tokens.append(tag[start:].strip())
    return tokens


def parse_tag(tag: str) -> tuple[RuleNameParams, ...]:
    """Tokenize a raw tag string into ordered rule name/parameter pairs.

    - Splits on top-level commas only; commas inside parentheses stay put.
    - Trims whitespace around tokens and parameters.
    - Skips empty tokens (leading, trailing or doubled commas).
    - Parameters are a plain comma split of the text between the first
      ``(`` and the closing ``)``; nested parentheses inside a parameter
      are not understood and split like any other text.
    - No quoting or escaping.

    Examples:
        >>> parse_tag("f(1,2),g")
        (RuleNameParams(name='f', params=('1', '2')), RuleNameParams(name='g', params=()))
        >>> parse_tag("-")
        ()
    """
    if not tag or tag == DISABLED:
        return ()

    rules: list[RuleNameParams] = []
    for tok in _split_top_level(tag):
        if not tok:
            continue
        name = tok
        params: tuple[str, ...] = ()
        idx = tok.find("(")
        if idx != -1 and tok.endswith(")"):
            name = tok[:idx].strip()
            inner = tok[idx + 1 : -1].strip()
            if inner:
                params = tuple(p.strip() for p in inner.split(",") if p.strip())
        if name:
            rules.append(RuleNameParams(name=name, params=params))
    return tuple(rules)
