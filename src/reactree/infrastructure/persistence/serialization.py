"""JSON-compatible encoding of memory records and execution events."""

from datetime import datetime
from typing import Any

from reactree.domain.execution_event import ExecutionEventType, ExecutionStateEvent
from reactree.domain.memory import Confidence, MemoryTier, WorkingMemoryRecord


def record_to_dict(record: WorkingMemoryRecord) -> dict[str, Any]:
    """Serialize a memory record."""
    return {
        "timestamp": record.timestamp.isoformat() if record.timestamp else None,
        "source": record.source,
        "key": record.key,
        "value": record.value,
        "confidence": record.confidence.value,
        "tier": record.tier.value,
        "ttl_seconds": record.ttl_seconds,
        "run_id": record.run_id,
        "knowledge_type": record.knowledge_type,
    }


def dict_to_record(data: dict[str, Any]) -> WorkingMemoryRecord:
    """Deserialize a memory record."""
    stamp = data.get("timestamp")
    return WorkingMemoryRecord(
        key=data["key"],
        value=data.get("value"),
        timestamp=datetime.fromisoformat(stamp) if stamp else None,
        source=data.get("source", data.get("agent", "")),
        confidence=Confidence(data.get("confidence", Confidence.VERIFIED.value)),
        tier=MemoryTier(data.get("tier", MemoryTier.SESSION.value)),
        ttl_seconds=data.get("ttl_seconds"),
        run_id=data.get("run_id", ""),
        knowledge_type=data.get("knowledge_type", ""),
    )


def event_to_dict(event: ExecutionStateEvent) -> dict[str, Any]:
    """Serialize an execution event."""
    return {
        "event_id": event.event_id,
        "run_id": event.run_id,
        "sequence": event.sequence,
        "event_type": event.event_type.value,
        "node_id": event.node_id,
        "node_type": event.node_type,
        "timestamp": event.timestamp,
        "data": event.data,
    }


def dict_to_event(data: dict[str, Any]) -> ExecutionStateEvent:
    """Deserialize an execution event."""
    return ExecutionStateEvent(
        event_id=data["event_id"],
        run_id=data["run_id"],
        event_type=ExecutionEventType(data["event_type"]),
        node_id=data.get("node_id", ""),
        node_type=data.get("node_type", ""),
        sequence=data.get("sequence", 0),
        timestamp=data.get("timestamp", ""),
        data=data.get("data", {}),
    )
