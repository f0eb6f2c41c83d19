"""RulesMapping — memo of parsed tag tokens per (owner type, field index, tag kind).

Parsing is deterministic, so two threads racing to fill the same key store
identical tuples; whichever write lands last is indistinguishable from the
first.  Entries are never evicted.
"""

from __future__ import annotations

import logging
import threading

from tagmodel.domain.tags import RuleNameParams, parse_tag

logger = logging.getLogger(__name__)

MappingKey = tuple[type, int, str]


class RulesMapping:
    """Thread-safe write-once cache of parsed tag rules."""

    def __init__(self) -> None:
        self._entries: dict[MappingKey, tuple[RuleNameParams, ...]] = {}
        self._lock = threading.Lock()

    def get(self, owner: type, index: int, tag_kind: str) -> tuple[RuleNameParams, ...] | None:
        return self._entries.get((owner, index, tag_kind))

    def add(
        self, owner: type, index: int, tag_kind: str, rules: tuple[RuleNameParams, ...]
    ) -> None:
        with self._lock:
            self._entries[(owner, index, tag_kind)] = rules

    def resolve(
        self, owner: type, index: int, tag_kind: str, raw: str
    ) -> tuple[RuleNameParams, ...]:
        """Return cached rules for the key, parsing and storing *raw* on a miss."""
        cached = self.get(owner, index, tag_kind)
        if cached is not None:
            return cached
        rules = parse_tag(raw)
        self.add(owner, index, tag_kind, rules)
        logger.debug(
            "Parsed %s tag on %s field #%d: %d rule(s)",
            tag_kind,
            owner.__qualname__,
            index,
            len(rules),
        )
        return rules

    def __len__(self) -> int:
        return len(self._entries)
