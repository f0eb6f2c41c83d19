"""FieldError and ValidationError — the validation report contract.

A :class:`ValidationError` aggregates every :class:`FieldError` found in one
traversal, in discovery order.  It is raised by ``Binding.validate`` only
when at least one issue was collected.

Rendering:
- one issue: the issue's own line, no header;
- several issues: a ``validation failed (N issues):`` header followed by
  one indented line per issue.

Structured output (``to_dict`` / ``to_json``) always maps every field path
to its ordered list of messages, regardless of count.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from pydantic import BaseModel, Field, RootModel

from tagmodel.errors import ModelError

# ---------------------------------------------------------------------------
# Payload contracts
# ---------------------------------------------------------------------------


class FieldErrorPayload(BaseModel):
    """Serializable view of one FieldError."""

    model_config = {"frozen": True}

    path: str
    rule: str
    params: list[str] = Field(default_factory=list)
    message: str


class ValidationReport(RootModel[dict[str, list[str]]]):
    """Field path -> ordered list of messages."""


# ---------------------------------------------------------------------------
# FieldError
# ---------------------------------------------------------------------------


class FieldError(Exception):
    """One failed rule application, addressed by its field path.

    Attributes:
        path: Dotted/bracketed field path (``Address.Street``, ``Tags[2]``).
        rule: Name of the rule that failed (``dive`` for dive mismatches).
        params: Parameters passed to the rule from the tag.
        err: The underlying exception; also chained as ``__cause__``.
    """

    def __init__(
        self,
        path: str,
        rule: str,
        err: BaseException,
        params: Sequence[str] = (),
    ) -> None:
        self.path = path
        self.rule = rule
        self.params = tuple(params)
        self.err = err
        self.__cause__ = err
        super().__init__(self._render())

    def __reduce__(self) -> tuple[type[FieldError], tuple[object, ...]]:
        return type(self), (self.path, self.rule, self.err, self.params)

    @property
    def message(self) -> str:
        return str(self.err)

    def _render(self) -> str:
        if self.rule:
            return f"{self.path}: {self.message} (rule {self.rule})"
        return f"{self.path}: {self.message}"

    def to_payload(self) -> FieldErrorPayload:
        return FieldErrorPayload(
            path=self.path, rule=self.rule, params=list(self.params), message=self.message
        )

    def __repr__(self) -> str:
        return f"FieldError(path={self.path!r}, rule={self.rule!r}, err={self.err!r})"


# ---------------------------------------------------------------------------
# ValidationError
# ---------------------------------------------------------------------------


class ValidationError(ModelError):
    """Aggregate of every FieldError collected during one validation pass."""

    code = "VALIDATION_FAILED"
    message = "validation failed"

    def __init__(self, issues: Sequence[FieldError] = ()) -> None:
        self._issues: list[FieldError] = list(issues)
        super().__init__()

    def __reduce__(self) -> tuple[type[ValidationError], tuple[list[FieldError]]]:
        return type(self), (self._issues,)

    def __str__(self) -> str:
        issues = self._issues
        if not issues:
            return ""
        if len(issues) == 1:
            return str(issues[0])
        lines = [f"validation failed ({len(issues)} issues):"]
        lines.extend(f"  {fe}" for fe in issues)
        return "\n".join(lines)

    # --- accumulation ---

    def add(self, fe: FieldError) -> None:
        self._issues.append(fe)

    def add_error(self, path: str, rule: str, err: BaseException) -> None:
        """Convenience to append a FieldError built from its parts."""
        self.add(FieldError(path, rule, err))

    # --- inspection ---

    @property
    def issues(self) -> list[FieldError]:
        return list(self._issues)

    @property
    def empty(self) -> bool:
        return len(self) == 0

    def __len__(self) -> int:
        return len(self._issues)

    def __iter__(self) -> Iterator[FieldError]:
        return iter(self.issues)

    def for_field(self, path: str) -> list[FieldError]:
        """All issues recorded for exactly *path*."""
        return [fe for fe in self.issues if fe.path == path]

    def by_field(self) -> dict[str, list[FieldError]]:
        """Issues grouped by path, paths in first-seen order."""
        grouped: dict[str, list[FieldError]] = {}
        for fe in self.issues:
            grouped.setdefault(fe.path, []).append(fe)
        return grouped

    def fields(self) -> list[str]:
        """Distinct paths with issues, in first-seen order."""
        return list(dict.fromkeys(fe.path for fe in self.issues))

    def causes(self) -> list[BaseException]:
        """Underlying exceptions of every issue, in order."""
        return [fe.err for fe in self.issues]

    # --- structured output ---

    def to_dict(self) -> dict[str, list[str]]:
        """Field path -> ordered list of messages."""
        return {path: [fe.message for fe in group] for path, group in self.by_field().items()}

    def to_report(self) -> ValidationReport:
        return ValidationReport(self.to_dict())

    def to_json(self) -> str:
        return self.to_report().model_dump_json()

    def payloads(self) -> list[FieldErrorPayload]:
        return [fe.to_payload() for fe in self.issues]
