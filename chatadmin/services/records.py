"""In-memory snapshots of fetched rows.

After a successful write the affected row is patched here instead of being
fetched again. Snapshots are keyed by the operator's credential fingerprint
and the view name, so two operators never see each other's rows.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Generic, Hashable, Iterable, Optional, TypeVar

from pydantic import BaseModel

RecordT = TypeVar("RecordT", bound=BaseModel)


class RecordSet(Generic[RecordT]):
    def __init__(self, records: Iterable[RecordT], key: str) -> None:
        self.key = key
        self._records: "OrderedDict[Any, RecordT]" = OrderedDict(
            (getattr(record, key), record) for record in records
        )

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records.values())

    def get(self, record_id: Any) -> Optional[RecordT]:
        return self._records.get(record_id)

    def patch(self, record_id: Any, **changes: Any) -> Optional[RecordT]:
        """Replace one record with an updated copy; returns it, or None if unknown."""

        current = self._records.get(record_id)
        if current is None:
            return None
        updated = current.model_copy(update=changes)
        self._records[record_id] = updated
        return updated

    def as_list(self) -> list[RecordT]:
        return list(self._records.values())


class SnapshotCache:
    def __init__(self, max_entries: int = 256) -> None:
        self.max_entries = max_entries
        self._entries: "OrderedDict[Hashable, RecordSet]" = OrderedDict()

    def put(self, owner: Optional[str], view: str, records: RecordSet) -> None:
        if not owner:
            return
        key = (owner, view)
        self._entries[key] = records
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def get(self, owner: Optional[str], view: str) -> Optional[RecordSet]:
        if not owner:
            return None
        return self._entries.get((owner, view))

    def drop_owner(self, owner: Optional[str]) -> None:
        for key in [key for key in self._entries if key[0] == owner]:
            del self._entries[key]
