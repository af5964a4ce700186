"""Rule id generators, independent of wall-clock time."""

from __future__ import annotations

import re
import threading
import uuid
from typing import Iterable, Protocol

from schemas.personalization import Rule


class IdGenerator(Protocol):
    """Source of fresh, never reused rule ids."""

    def new_id(self) -> str:
        ...


class SequentialIdGenerator:
    """Monotonically increasing ids such as ``rule-1``, ``rule-2``."""

    def __init__(self, prefix: str = "rule-", start: int = 1) -> None:
        self.prefix = prefix
        self._next = start
        self._pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
        self._lock = threading.Lock()

    @classmethod
    def following(cls, rules: Iterable[Rule], prefix: str = "rule-") -> "SequentialIdGenerator":
        """Start after the highest numeric suffix already in use."""

        generator = cls(prefix=prefix)
        generator.advance_past(rules)
        return generator

    def advance_past(self, rules: Iterable[Rule]) -> None:
        """Skip every suffix already used by ``rules``. Never moves backwards."""

        highest = 0
        for rule in rules:
            match = self._pattern.match(rule.id)
            if match:
                highest = max(highest, int(match.group(1)))
        with self._lock:
            self._next = max(self._next, highest + 1)

    def new_id(self) -> str:
        with self._lock:
            value = self._next
            self._next += 1
        return f"{self.prefix}{value}"


class UuidIdGenerator:
    """Random 32-character hex ids."""

    def new_id(self) -> str:
        return uuid.uuid4().hex


def build_id_generator(strategy: str, rules: Iterable[Rule] = ()) -> IdGenerator:
    """Return the generator named by ``strategy`` (``sequential`` or ``uuid``)."""

    if strategy == "uuid":
        return UuidIdGenerator()
    if strategy == "sequential":
        return SequentialIdGenerator.following(rules)
    raise ValueError(f"Unsupported id strategy: {strategy}")
