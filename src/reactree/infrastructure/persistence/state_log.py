"""State log implementations: append-only stores of execution events."""

import threading
from pathlib import Path

from reactree.domain.execution_event import ExecutionEventType, ExecutionStateEvent
from reactree.domain.interfaces import StateLogInterface
from reactree.infrastructure.persistence.jsonl import JsonlStream
from reactree.infrastructure.persistence.serialization import (
    dict_to_event,
    event_to_dict,
)


def _matches(
    event: ExecutionStateEvent,
    run_id: str,
    node_id: str | None,
    event_type: ExecutionEventType | None,
) -> bool:
    return (
        event.run_id == run_id
        and (node_id is None or event.node_id == node_id)
        and (event_type is None or event.event_type == event_type)
    )


class InMemoryStateLog(StateLogInterface):
    """In-memory implementation for testing."""

    def __init__(self) -> None:
        self._events: list[ExecutionStateEvent] = []
        self._lock = threading.Lock()

    def append(self, event: ExecutionStateEvent) -> str:
        with self._lock:
            self._events.append(event)
        return event.event_id

    def replay(
        self,
        run_id: str,
        node_id: str | None = None,
        event_type: ExecutionEventType | None = None,
    ) -> list[ExecutionStateEvent]:
        with self._lock:
            events = list(self._events)
        return sorted(
            (e for e in events if _matches(e, run_id, node_id, event_type)),
            key=lambda e: e.sequence,
        )

    def run_ids(self) -> list[str]:
        with self._lock:
            return list(dict.fromkeys(e.run_id for e in self._events))


class FilesystemStateLog(StateLogInterface):
    """Filesystem implementation storing every run's events in one JSONL stream."""

    def __init__(self, path: Path | str) -> None:
        self._stream = JsonlStream(Path(path))

    @property
    def path(self) -> Path:
        return self._stream.path

    def append(self, event: ExecutionStateEvent) -> str:
        self._stream.append(event_to_dict(event))
        return event.event_id

    def _load(self) -> list[ExecutionStateEvent]:
        rows, _ = self._stream.read_from(0)
        return [dict_to_event(row) for row in rows]

    def replay(
        self,
        run_id: str,
        node_id: str | None = None,
        event_type: ExecutionEventType | None = None,
    ) -> list[ExecutionStateEvent]:
        return sorted(
            (e for e in self._load() if _matches(e, run_id, node_id, event_type)),
            key=lambda e: e.sequence,
        )

    def run_ids(self) -> list[str]:
        return list(dict.fromkeys(e.run_id for e in self._load()))
