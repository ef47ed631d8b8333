"""
Optimistic transitions
Ordered record collections and the apply/commit/rollback primitive every store uses
"""

import bisect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

import structlog

logger = structlog.get_logger()


@dataclass
class Entry:
    """A record held by a store, ordered by the position it was first fetched at"""
    key: str
    seq: int
    record: Dict[str, Any]
    provisional: bool = False


class OrderedCollection:
    """Entries keyed by record id, iterated in fetch order"""

    def __init__(self, entries: Optional[List[Entry]] = None):
        self._entries: List[Entry] = []
        self._by_key: Dict[str, Entry] = {}
        for entry in entries or []:
            self.insert(entry)

    def insert(self, entry: Entry) -> None:
        if entry.key in self._by_key:
            raise ValueError(f"Duplicate entry for '{entry.key}'")
        index = bisect.bisect_right(self._entries, entry.seq, key=lambda e: e.seq)
        self._entries.insert(index, entry)
        self._by_key[entry.key] = entry

    def remove(self, key: str) -> Optional[Entry]:
        entry = self._by_key.pop(key, None)
        if entry is not None:
            self._entries.remove(entry)
        return entry

    def get(self, key: str) -> Optional[Entry]:
        return self._by_key.get(key)

    def keys(self) -> List[str]:
        return [e.key for e in self._entries]

    def records(self) -> List[Dict[str, Any]]:
        return [e.record for e in self._entries]

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(list(self._entries))


class TransitionState(str, Enum):
    PENDING = "pending"
    APPLIED = "applied"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class Transition:
    """
    One optimistic move of an entry out of ``source`` and, unless
    ``destination`` is None, into ``destination`` as provisional.

    apply() and rollback() are synchronous so no reader ever sees the entry
    in both collections or in neither mid-move. Rollback restores the entry
    at its fetch-order position.
    """

    def __init__(self, key: str, source: OrderedCollection, destination: Optional[OrderedCollection] = None):
        self.key = key
        self.source = source
        self.destination = destination
        self.entry: Optional[Entry] = None
        self.state = TransitionState.PENDING

    def apply(self) -> Entry:
        if self.state != TransitionState.PENDING:
            raise RuntimeError(f"Transition for '{self.key}' already {self.state.value}")
        entry = self.source.remove(self.key)
        if entry is None:
            raise KeyError(self.key)
        if self.destination is not None:
            entry.provisional = True
            self.destination.insert(entry)
        self.entry = entry
        self.state = TransitionState.APPLIED
        logger.debug("Optimistic transition applied", item_id=self.key)
        return entry

    def commit(self) -> None:
        self._require_applied()
        self.entry.provisional = False
        self.state = TransitionState.COMMITTED
        logger.debug("Optimistic transition committed", item_id=self.key)

    def rollback(self) -> None:
        self._require_applied()
        if self.destination is not None:
            self.destination.remove(self.key)
        self.entry.provisional = False
        if self.key not in self.source:
            self.source.insert(self.entry)
        self.state = TransitionState.ROLLED_BACK
        logger.warning("Optimistic transition rolled back", item_id=self.key)

    def _require_applied(self) -> None:
        if self.state != TransitionState.APPLIED:
            raise RuntimeError(f"Transition for '{self.key}' is {self.state.value}, not applied")
