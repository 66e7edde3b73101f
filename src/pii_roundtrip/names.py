"""Name lookup — a read-only dictionary of known first and last names.

The reconciler takes one of these as an argument; nothing here is
global.  Loading is explicit and owned by the caller:

    names = NameDictionary.load("first.txt", "last.txt")
    reconciler = Reconciler(names=names)
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Iterable, Protocol

logger = logging.getLogger(__name__)


class NameLookup(Protocol):
    """Anything that can answer first/last name membership."""

    def is_first_name(self, token: str) -> bool: ...

    def is_last_name(self, token: str) -> bool: ...


class NameDictionary:
    """Case-insensitive first/last name sets."""

    __slots__ = ("_first", "_last")

    def __init__(self, first: frozenset[str], last: frozenset[str]) -> None:
        self._first = first
        self._last = last

    @classmethod
    def from_names(cls, first: Iterable[str], last: Iterable[str]) -> "NameDictionary":
        return cls(_clean(first), _clean(last))

    @classmethod
    def load(cls, first_path: str | Path, last_path: str | Path) -> "NameDictionary":
        """Load newline-separated name lists (one name per line)."""
        first = _read_lines(Path(first_path).expanduser())
        last = _read_lines(Path(last_path).expanduser())
        names = cls.from_names(first, last)
        logger.info("Name dictionary loaded: %d first, %d last", *names.size)
        return names

    def is_first_name(self, token: str) -> bool:
        return token.strip().lower() in self._first

    def is_last_name(self, token: str) -> bool:
        return token.strip().lower() in self._last

    @property
    def size(self) -> tuple[int, int]:
        return len(self._first), len(self._last)


def _clean(names: Iterable[str]) -> frozenset[str]:
    return frozenset(
        n.strip().lower() for n in names if len(n.strip()) > 1
    )


def _read_lines(path: Path) -> list[str]:
    with open(path, encoding="utf-8") as f:
        return f.read().splitlines()
