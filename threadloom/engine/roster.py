"""
Read-only roster collaborators (NPCs and narrative threads).

The narrative core only ever holds IDs into rosters that are owned
elsewhere. The synchronization manager uses these lookups to flag dangling
references; nothing in this package mutates a roster.
"""

from typing import Dict, Iterable, Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class Roster(Protocol):
    """Lookup interface for an externally owned roster"""

    def exists(self, entry_id: str) -> bool: ...

    def describe(self, entry_id: str) -> Optional[str]: ...


class InMemoryRoster:
    """Dict-backed roster for callers that already hold the entries in memory"""

    def __init__(self, entries: Optional[Mapping[str, str]] = None):
        self._entries: Dict[str, str] = dict(entries or {})

    @classmethod
    def from_ids(cls, ids: Iterable[str]) -> "InMemoryRoster":
        return cls({entry_id: entry_id for entry_id in ids})

    def exists(self, entry_id: str) -> bool:
        return entry_id in self._entries

    def describe(self, entry_id: str) -> Optional[str]:
        return self._entries.get(entry_id)

    def __len__(self) -> int:
        return len(self._entries)
