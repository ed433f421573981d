"""
Append-only newline-delimited JSON stream.

Appends are serialized by a process-local lock plus an advisory ``flock``
so that concurrent runs in separate processes can share one file. Each
append is flushed and fsynced before returning.
"""

import fcntl
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class JsonlStream:
    """Durable JSONL file with offset-based tailing."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)
        self._lock = threading.Lock()

    def append(self, data: dict[str, Any]) -> None:
        line = json.dumps(data, default=str) + "\n"
        with self._lock, open(self.path, "a", encoding="utf-8") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            try:
                f.write(line)
                f.flush()
                os.fsync(f.fileno())
            finally:
                fcntl.flock(f, fcntl.LOCK_UN)

    def read_from(self, offset: int = 0) -> tuple[list[dict[str, Any]], int]:
        """
        Read complete lines appended since ``offset``.

        Args:
            offset: Byte offset returned by a previous call (0 for start)

        Returns:
            Tuple of (parsed records, new offset). A trailing partial line
            is left unread so the next call picks it up once complete.
        """
        records: list[dict[str, Any]] = []
        with open(self.path, "rb") as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            try:
                f.seek(offset)
                chunk = f.read()
            finally:
                fcntl.flock(f, fcntl.LOCK_UN)

        consumed = 0
        for raw in chunk.splitlines(keepends=True):
            if not raw.endswith(b"\n"):
                break
            consumed += len(raw)
            text = raw.decode("utf-8").strip()
            if not text:
                continue
            try:
                records.append(json.loads(text))
            except json.JSONDecodeError as e:
                logger.warning("Skipping corrupt line in %s: %s", self.path, e)
        return records, offset + consumed
