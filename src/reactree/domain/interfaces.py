"""
Domain interfaces (Ports) for the workflow engine.

These abstract base classes define the contracts that adapters must satisfy.
They have no external dependencies.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reactree.domain.execution_event import (
        ExecutionEventType,
        ExecutionStateEvent,
    )
    from reactree.domain.feedback import FeedbackMessage
    from reactree.domain.memory import (
        MemorySnapshot,
        MemoryTier,
        WorkingMemoryRecord,
    )
    from reactree.domain.worker import ActionOutcome, WorkerRequest, WorkerResponse


class WorkerInterface(ABC):
    """
    Port for the external collaborator that performs an Action's work.

    Workers are black boxes: the engine never interprets ``skill``.

    Note (Idempotency):
        An Action may be re-invoked by the feedback coordinator or when a
        loop repeats. Workers with side effects MUST tolerate repetition.
    """

    @abstractmethod
    def execute(self, request: "WorkerRequest") -> "WorkerResponse":
        """
        Perform the requested skill.

        Args:
            request: Skill, args, agent, read-only memory snapshot and any
                feedback being applied

        Returns:
            WorkerResponse with status and facts

        Raises:
            WorkerUnavailableError: If the worker cannot be reached at all
        """
        pass


class WorkingMemoryStoreInterface(ABC):
    """
    Port for the tiered fact store.

    Writes are append-only. Reads see the authoritative record per key:
    the latest non-expired session record, falling back to the latest
    durable record.
    """

    @abstractmethod
    def write(self, record: "WorkingMemoryRecord") -> "WorkingMemoryRecord":
        """
        Append a record.

        Args:
            record: The fact to store; stamped with the store clock when
                its timestamp is None

        Returns:
            The record as stored
        """
        pass

    @abstractmethod
    def read(
        self, key: str, tier: "MemoryTier | None" = None
    ) -> "WorkingMemoryRecord | None":
        """
        Read the authoritative record for a key.

        Args:
            key: Exact fact key
            tier: Restrict to one tier; None reads the merged view

        Returns:
            The current record, or None if absent or expired
        """
        pass

    @abstractmethod
    def snapshot(self) -> "MemorySnapshot":
        """Capture the merged view at the current instant."""
        pass

    @abstractmethod
    def sweep(self) -> list[str]:
        """
        Drop expired session records from the read index.

        Returns:
            Keys whose expired records were dropped
        """
        pass


class StateLogInterface(ABC):
    """
    Port for the append-only execution log.

    Implementations must be durable before ``append`` returns and must
    serialize concurrent appends.
    """

    @abstractmethod
    def append(self, event: "ExecutionStateEvent") -> str:
        """
        Append an event.

        Returns:
            The event_id
        """
        pass

    @abstractmethod
    def replay(
        self,
        run_id: str,
        node_id: str | None = None,
        event_type: "ExecutionEventType | None" = None,
    ) -> list["ExecutionStateEvent"]:
        """
        Events of a run in append order, optionally filtered.

        Args:
            run_id: Run to replay
            node_id: Only events for this node
            event_type: Only events of this type

        Returns:
            Matching events ordered by sequence
        """
        pass

    @abstractmethod
    def run_ids(self) -> list[str]:
        """Ids of every run with at least one event, in first-seen order."""
        pass


class NodeRunnerInterface(ABC):
    """
    Port through which the feedback coordinator re-invokes nodes.

    Implemented by the tree interpreter for the duration of one run.
    """

    @abstractmethod
    def accepts_feedback(self, node_id: str) -> bool:
        """True if the node is a feedback-enabled Action that already ran."""
        pass

    @abstractmethod
    def run_node(
        self,
        node_id: str,
        feedback: "FeedbackMessage | None" = None,
    ) -> "ActionOutcome":
        """
        Re-execute an already executed node without triggering new feedback.

        Args:
            node_id: Node to execute
            feedback: Message injected into the worker request (fix step)

        Returns:
            The node's result and, for Actions, the worker response
        """
        pass


class IssueTrackerInterface(ABC):
    """Port for the optional issue tracker used for progress visibility."""

    @abstractmethod
    def create(self, issue_id: str, title: str) -> None:
        pass

    @abstractmethod
    def update(self, issue_id: str, status: str) -> None:
        pass

    @abstractmethod
    def comment(self, issue_id: str, text: str) -> None:
        pass

    @abstractmethod
    def close(self, issue_id: str, reason: str) -> None:
        pass
