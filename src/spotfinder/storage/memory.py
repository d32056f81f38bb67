"""
In-memory record store.

Reference implementation of the persistence contract the discovery engines rely on:
- records are keyed by their `id`
- `create` is idempotent: a record whose id already exists is a successful no-op and
  the stored record is returned unchanged (no error, no overwrite)

Used by the application layer, the CLI and tests. Not thread-safe; callers process
updates for one (account, trail) pair at a time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Protocol, TypeVar


class _HasId(Protocol):
    @property
    def id(self) -> str: ...


T = TypeVar("T", bound=_HasId)


class Store(Protocol[T]):
    def create(self, record: T) -> T: ...

    def get(self, record_id: str) -> T | None: ...

    def list(self, predicate: Callable[[T], bool] | None = None) -> list[T]: ...


@dataclass
class StoreStats:
    created: int = 0
    duplicates: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"created": int(self.created), "duplicates": int(self.duplicates)}


class InMemoryStore(Generic[T]):
    def __init__(self, records: Iterable[T] = ()) -> None:
        self._records: dict[str, T] = {}
        self.stats = StoreStats()
        for record in records:
            self.create(record)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def create(self, record: T) -> T:
        existing = self._records.get(record.id)
        if existing is not None:
            self.stats.duplicates += 1
            return existing
        self._records[record.id] = record
        self.stats.created += 1
        return record

    def create_many(self, records: Iterable[T]) -> list[T]:
        return [self.create(r) for r in records]

    def get(self, record_id: str) -> T | None:
        return self._records.get(record_id)

    def list(self, predicate: Callable[[T], bool] | None = None) -> list[T]:
        """Records in insertion order, optionally filtered."""
        if predicate is None:
            return list(self._records.values())
        return [r for r in self._records.values() if predicate(r)]
