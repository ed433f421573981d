"""
Working memory records and read-time resolution.

Records are immutable; expiry and authority are pure functions of the
record list and the current time, never mutations.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

_MISSING = object()
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class MemoryTier(str, Enum):
    """Retention tier of a fact."""

    SESSION = "session"  # Scoped to one run, expires after ttl
    DURABLE = "durable"  # Permanent, shared across runs


class Confidence(str, Enum):
    """How a fact was established."""

    VERIFIED = "verified"
    INFERRED = "inferred"


@dataclass(frozen=True)
class WorkingMemoryRecord:
    """Single timestamped fact in Working Memory."""

    key: str  # Dotted path, unique within a tier
    value: Any
    timestamp: datetime | None = None  # Stamped by the store when None
    source: str = ""  # Producing component or agent id
    confidence: Confidence = Confidence.VERIFIED
    tier: MemoryTier = MemoryTier.SESSION
    ttl_seconds: float | None = None  # Session tier only
    run_id: str = ""
    knowledge_type: str = ""

    def expires_at(self) -> datetime | None:
        if self.tier is not MemoryTier.SESSION or self.ttl_seconds is None:
            return None
        if self.timestamp is None:
            return None
        return self.timestamp + timedelta(seconds=self.ttl_seconds)

    def is_expired(self, now: datetime) -> bool:
        expiry = self.expires_at()
        return expiry is not None and now > expiry


def latest_record(
    records: Iterable[WorkingMemoryRecord], now: datetime
) -> WorkingMemoryRecord | None:
    """
    Authoritative record among candidates for one key and tier.

    The latest non-expired timestamp wins; on equal timestamps the record
    appended last wins, so callers pass records in append order.
    """
    best: WorkingMemoryRecord | None = None
    for record in records:
        if record.is_expired(now):
            continue
        if best is None or _stamp(record) >= _stamp(best):
            best = record
    return best


def _stamp(record: WorkingMemoryRecord) -> datetime:
    return record.timestamp or _EPOCH


def resolve(
    records: Iterable[WorkingMemoryRecord], now: datetime
) -> dict[str, WorkingMemoryRecord]:
    """
    Merged current view: session record first, durable record as fallback.

    Args:
        records: Candidate records in append order
        now: Time used for expiry

    Returns:
        key -> authoritative record
    """
    by_tier: dict[tuple[str, MemoryTier], list[WorkingMemoryRecord]] = {}
    for record in records:
        by_tier.setdefault((record.key, record.tier), []).append(record)

    view: dict[str, WorkingMemoryRecord] = {}
    for tier in (MemoryTier.DURABLE, MemoryTier.SESSION):
        for (key, record_tier), candidates in by_tier.items():
            if record_tier is not tier:
                continue
            current = latest_record(candidates, now)
            if current is not None:
                view[key] = current
    return view


def lookup_path(facts: Mapping[str, Any], key: str) -> Any:
    """
    Resolve a dotted path against flat keys and nested values.

    The longest key prefix stored as its own fact is used, then the
    remaining segments are traversed into dicts (by key) and lists (by
    index). Returns the module-level ``_MISSING`` sentinel when absent.
    """
    parts = key.split(".")
    for split in range(len(parts), 0, -1):
        prefix = ".".join(parts[:split])
        if prefix not in facts:
            continue
        value = facts[prefix]
        found = True
        for segment in parts[split:]:
            if isinstance(value, Mapping) and segment in value:
                value = value[segment]
            elif isinstance(value, list | tuple) and segment.isdigit():
                index = int(segment)
                if index >= len(value):
                    found = False
                    break
                value = value[index]
            else:
                found = False
                break
        if found:
            return value
    return _MISSING


def is_missing(value: Any) -> bool:
    return value is _MISSING


class MemorySnapshot(Mapping[str, Any]):
    """
    Read-only view of Working Memory captured at one instant.

    Behaves as a mapping of key -> value over authoritative records and
    adds dotted-path lookup into structured values.
    """

    def __init__(
        self, records: Mapping[str, WorkingMemoryRecord], captured_at: datetime
    ):
        self._records = dict(records)
        self._captured_at = captured_at

    @classmethod
    def from_values(
        cls, values: Mapping[str, Any], captured_at: datetime | None = None
    ) -> "MemorySnapshot":
        """Build a snapshot from plain values (tests, previews)."""
        stamp = captured_at or datetime.now(timezone.utc)
        return cls(
            {
                k: WorkingMemoryRecord(key=k, value=v, timestamp=stamp)
                for k, v in values.items()
            },
            stamp,
        )

    @property
    def captured_at(self) -> datetime:
        return self._captured_at

    def record(self, key: str) -> WorkingMemoryRecord | None:
        return self._records.get(key)

    def lookup(self, key: str, default: Any = None) -> Any:
        """Dotted-path lookup; ``default`` when the path is absent."""
        value = lookup_path(self, key)
        return default if is_missing(value) else value

    def has(self, key: str) -> bool:
        return not is_missing(lookup_path(self, key))

    def __getitem__(self, key: str) -> Any:
        return self._records[key].value

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"MemorySnapshot({len(self._records)} facts @ {self._captured_at})"
