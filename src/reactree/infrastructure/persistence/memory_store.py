"""
Working Memory Store implementations.

Both stores keep every record ever written (append-only) and resolve the
authoritative record per key at read time. Session records are visible
only to the run that wrote them; durable records are shared by all runs
that use the same backing list or file.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from reactree.domain.interfaces import WorkingMemoryStoreInterface
from reactree.domain.memory import (
    MemorySnapshot,
    MemoryTier,
    WorkingMemoryRecord,
    latest_record,
    resolve,
)
from reactree.infrastructure.persistence.jsonl import JsonlStream
from reactree.infrastructure.persistence.serialization import (
    dict_to_record,
    record_to_dict,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _TieredMemoryStore(WorkingMemoryStoreInterface):
    """Shared read/write logic; subclasses provide the record backing."""

    def __init__(
        self,
        run_id: str,
        clock: Clock | None = None,
        session_ttl_seconds: float | None = None,
    ):
        self._run_id = run_id
        self._clock = clock or utc_now
        self._session_ttl = session_ttl_seconds

    @property
    def run_id(self) -> str:
        return self._run_id

    def _append(self, record: WorkingMemoryRecord) -> None:
        raise NotImplementedError

    def _all_records(self) -> list[WorkingMemoryRecord]:
        raise NotImplementedError

    def _discard(self, expired: list[WorkingMemoryRecord]) -> None:
        raise NotImplementedError

    def _visible(self) -> list[WorkingMemoryRecord]:
        return [
            r
            for r in self._all_records()
            if r.tier is MemoryTier.DURABLE or r.run_id == self._run_id
        ]

    def _stamp(self, record: WorkingMemoryRecord) -> WorkingMemoryRecord:
        if record.tier is MemoryTier.DURABLE:
            return replace(
                record,
                timestamp=record.timestamp or self._clock(),
                ttl_seconds=None,
            )
        ttl = record.ttl_seconds
        if ttl is None:
            ttl = self._session_ttl
        return replace(
            record,
            timestamp=record.timestamp or self._clock(),
            ttl_seconds=ttl,
            run_id=self._run_id,
        )

    def write(self, record: WorkingMemoryRecord) -> WorkingMemoryRecord:
        stored = self._stamp(record)
        self._append(stored)
        logger.debug(
            "memory write %s [%s] = %r", stored.key, stored.tier.value, stored.value
        )
        return stored

    def read(
        self, key: str, tier: MemoryTier | None = None
    ) -> WorkingMemoryRecord | None:
        now = self._clock()
        candidates = [r for r in self._visible() if r.key == key]
        if tier is not None:
            return latest_record((r for r in candidates if r.tier is tier), now)
        session = latest_record(
            (r for r in candidates if r.tier is MemoryTier.SESSION), now
        )
        if session is not None:
            return session
        return latest_record(
            (r for r in candidates if r.tier is MemoryTier.DURABLE), now
        )

    def snapshot(self) -> MemorySnapshot:
        now = self._clock()
        return MemorySnapshot(resolve(self._visible(), now), now)

    def sweep(self) -> list[str]:
        now = self._clock()
        expired = [
            r
            for r in self._all_records()
            if r.tier is MemoryTier.SESSION and r.is_expired(now)
        ]
        if expired:
            self._discard(expired)
            logger.debug("swept %d expired session records", len(expired))
        return sorted({r.key for r in expired})


class _SharedRecords:
    """Record list and lock shared by every run view of one in-memory store."""

    def __init__(self) -> None:
        self.records: list[WorkingMemoryRecord] = []
        self.lock = threading.Lock()


class InMemoryWorkingMemoryStore(_TieredMemoryStore):
    """In-memory store for tests and ephemeral runs."""

    def __init__(
        self,
        run_id: str = "default",
        clock: Clock | None = None,
        session_ttl_seconds: float | None = None,
        _shared: _SharedRecords | None = None,
    ) -> None:
        super().__init__(run_id, clock, session_ttl_seconds)
        self._shared = _shared or _SharedRecords()

    def for_run(self, run_id: str) -> "InMemoryWorkingMemoryStore":
        """View of the same records scoped to another run's session tier."""
        return InMemoryWorkingMemoryStore(
            run_id, self._clock, self._session_ttl, _shared=self._shared
        )

    def _append(self, record: WorkingMemoryRecord) -> None:
        with self._shared.lock:
            self._shared.records.append(record)

    def _all_records(self) -> list[WorkingMemoryRecord]:
        with self._shared.lock:
            return list(self._shared.records)

    def _discard(self, expired: list[WorkingMemoryRecord]) -> None:
        drop = {id(r) for r in expired}
        with self._shared.lock:
            self._shared.records[:] = [
                r for r in self._shared.records if id(r) not in drop
            ]


class FilesystemWorkingMemoryStore(_TieredMemoryStore):
    """
    Persistent store backed by a JSONL memory stream.

    The file is never rewritten. Records appended by other processes are
    picked up by tailing the file from the last read offset; ``sweep``
    only prunes this instance's in-memory index.
    """

    def __init__(
        self,
        path: Path | str,
        run_id: str = "default",
        clock: Clock | None = None,
        session_ttl_seconds: float | None = None,
    ) -> None:
        super().__init__(run_id, clock, session_ttl_seconds)
        self._stream = JsonlStream(Path(path))
        self._index: list[WorkingMemoryRecord] = []
        self._offset = 0
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._stream.path

    def _refresh(self) -> None:
        rows, self._offset = self._stream.read_from(self._offset)
        self._index.extend(dict_to_record(row) for row in rows)

    def _append(self, record: WorkingMemoryRecord) -> None:
        with self._lock:
            self._stream.append(record_to_dict(record))
            self._refresh()

    def _all_records(self) -> list[WorkingMemoryRecord]:
        with self._lock:
            self._refresh()
            return list(self._index)

    def _discard(self, expired: list[WorkingMemoryRecord]) -> None:
        drop = {id(r) for r in expired}
        with self._lock:
            self._index = [r for r in self._index if id(r) not in drop]
