"""
Issue tracker adapters.

Tracker calls are best effort: failures are logged and never propagate
into a run.
"""

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass, field

from reactree.domain.interfaces import IssueTrackerInterface

logger = logging.getLogger(__name__)

_BD_ID = re.compile(r"\b([A-Za-z][\w]*-[\w.]+)\b")


@dataclass
class TrackedIssue:
    issue_id: str
    title: str
    status: str = "open"
    comments: list[str] = field(default_factory=list)
    close_reason: str | None = None


class InMemoryIssueTracker(IssueTrackerInterface):
    """In-memory implementation for testing."""

    def __init__(self) -> None:
        self.issues: dict[str, TrackedIssue] = {}

    def _issue(self, issue_id: str) -> TrackedIssue:
        return self.issues.setdefault(issue_id, TrackedIssue(issue_id, issue_id))

    def create(self, issue_id: str, title: str) -> None:
        issue = self._issue(issue_id)
        issue.title = title

    def update(self, issue_id: str, status: str) -> None:
        self._issue(issue_id).status = status

    def comment(self, issue_id: str, text: str) -> None:
        self._issue(issue_id).comments.append(text)

    def close(self, issue_id: str, reason: str) -> None:
        issue = self._issue(issue_id)
        issue.status = "closed"
        issue.close_reason = reason


class BeadsIssueTracker(IssueTrackerInterface):
    """
    Drives the beads ``bd`` CLI.

    When ``bd`` is not on PATH every call is a logged no-op.
    """

    def __init__(self, executable: str = "bd", timeout: float = 30.0):
        self._executable = shutil.which(executable)
        self._timeout = timeout
        # Map run issue ids to the ids bd assigned
        self._ids: dict[str, str] = {}
        if self._executable is None:
            logger.warning("%s not found; issue tracking disabled", executable)

    @property
    def available(self) -> bool:
        return self._executable is not None

    def _run(self, *args: str) -> str | None:
        if self._executable is None:
            return None
        try:
            completed = subprocess.run(
                [self._executable, *args],
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("bd %s failed: %s", args[0], e)
            return None
        return completed.stdout.strip()

    def _bd_id(self, issue_id: str) -> str:
        return self._ids.get(issue_id, issue_id)

    def create(self, issue_id: str, title: str) -> None:
        output = self._run("create", title)
        match = _BD_ID.search(output or "")
        if match:
            self._ids[issue_id] = match.group(1)

    def update(self, issue_id: str, status: str) -> None:
        self._run("update", self._bd_id(issue_id), "--status", status)

    def comment(self, issue_id: str, text: str) -> None:
        self._run("comment", self._bd_id(issue_id), text)

    def close(self, issue_id: str, reason: str) -> None:
        self._run("close", self._bd_id(issue_id), "--reason", reason)
