"""In-memory record store with per-record versions.

Every record kept here carries an integer ``version`` attribute. Writers read a
record, change a copy and hand it back to :meth:`Repository.commit` together with
the version they read. If somebody else committed in between, the write is
refused with :class:`ConcurrencyConflict` instead of silently replacing the
other writer's change (and its audit entry).

:meth:`archive` keeps the record (cancelled subscriptions stay for audit);
:meth:`remove` drops it for good (locker terminations).
"""
import copy
import logging
import threading
from typing import Callable, Dict, Generic, Iterator, List, Optional, TypeVar

from .errors import ConcurrencyConflict, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Repository(Generic[T]):
    def __init__(self, kind: str):
        self.kind = kind
        self._records: Dict[str, T] = {}
        self._archived = set()
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._records)

    def __contains__(self, key):
        return key in self._records

    def add(self, record: T) -> T:
        with self._lock:
            if record.id in self._records:
                raise ValidationError(f"{self.kind} {record.id} already exists")
            stored = copy.deepcopy(record)
            stored.version = 1
            self._records[record.id] = stored
            return copy.deepcopy(stored)

    def get(self, key: str) -> T:
        """Return a detached copy; mutate it and pass it to commit()"""
        with self._lock:
            try:
                return copy.deepcopy(self._records[key])
            except KeyError:
                raise NotFoundError(self.kind, key) from None

    def values(self, include_archived: bool = True,
               where: Optional[Callable[[T], bool]] = None) -> List[T]:
        with self._lock:
            out = [copy.deepcopy(r) for k, r in self._records.items()
                   if include_archived or k not in self._archived]
        if where is not None:
            out = [r for r in out if where(r)]
        return out

    def __iter__(self) -> Iterator[T]:
        return iter(self.values())

    def commit(self, record: T, expected_version: int) -> T:
        """Compare-and-set: store record if the stored version still matches"""
        with self._lock:
            current = self._records.get(record.id)
            if current is None:
                raise NotFoundError(self.kind, record.id)
            if current.version != expected_version:
                logger.warning("Rejected stale write to %s %s (v%s, stored v%s)",
                               self.kind, record.id, expected_version, current.version)
                raise ConcurrencyConflict(record.id, expected_version, current.version)
            stored = copy.deepcopy(record)
            stored.version = expected_version + 1
            self._records[record.id] = stored
            return copy.deepcopy(stored)

    def archive(self, record: T, expected_version: int) -> T:
        stored = self.commit(record, expected_version)
        with self._lock:
            self._archived.add(record.id)
        return stored

    def is_archived(self, key: str) -> bool:
        return key in self._archived

    def remove(self, key: str, expected_version: Optional[int] = None) -> T:
        with self._lock:
            current = self._records.get(key)
            if current is None:
                raise NotFoundError(self.kind, key)
            if expected_version is not None and current.version != expected_version:
                raise ConcurrencyConflict(key, expected_version, current.version)
            del self._records[key]
            self._archived.discard(key)
        return current
