"""
Feedback coordination: bounded fix -> verify cycles between two nodes.

A verifier that fails sends a FeedbackMessage back to the node whose output
it checked. The coordinator re-runs that node with the message injected
(fix), then re-runs the verifier (verify), up to ``max_rounds`` cycles per
(from_node, to_node) pair. Round counters only ever grow within a run.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, replace

from reactree.application.state_logger import ExecutionEventEmitter
from reactree.domain.exceptions import FeedbackQueueFullError
from reactree.domain.feedback import (
    FeedbackMessage,
    FeedbackResolution,
    FeedbackStatus,
)
from reactree.domain.interfaces import NodeRunnerInterface
from reactree.domain.models import NodeStatus

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 2
DEFAULT_QUEUE_SIZE = 16

RoundKey = tuple[str, str, str]  # (run_id, from_node, to_node)


@dataclass
class _Entry:
    message: FeedbackMessage
    runner: NodeRunnerInterface
    emitter: ExecutionEventEmitter | None


class FeedbackCoordinator:
    """
    Routes feedback messages and drives fix/verify cycles.

    One coordinator may serve several runs. Entries carry the runner and
    emitter of the run that produced them; messages for the same pair are
    processed strictly one after another.
    """

    def __init__(
        self,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        if max_rounds < 1:
            raise ValueError("max_rounds must be >= 1")
        if queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        self.max_rounds = max_rounds
        self.queue_size = queue_size
        self._queue: deque[_Entry] = deque()
        self._queue_lock = threading.Lock()
        self._rounds: dict[RoundKey, int] = {}
        self._rounds_lock = threading.Lock()
        self._pair_locks: dict[RoundKey, threading.Lock] = {}
        self._results: dict[str, FeedbackResolution] = {}
        # Message ids a dispatch() call is waiting on
        self._waiting: set[str] = set()
        self._done = threading.Condition()

    # -- round bookkeeping --------------------------------------------------

    def restore_rounds(
        self, run_id: str, rounds: dict[tuple[str, str], int]
    ) -> None:
        """Seed round counters of a resumed run from its state log."""
        with self._rounds_lock:
            for (from_node, to_node), used in rounds.items():
                key = (run_id, from_node, to_node)
                self._rounds[key] = max(self._rounds.get(key, 0), used)

    def rounds_used(self, run_id: str, from_node: str, to_node: str) -> int:
        with self._rounds_lock:
            return self._rounds.get((run_id, from_node, to_node), 0)

    def _pair_lock(self, key: RoundKey) -> threading.Lock:
        with self._rounds_lock:
            return self._pair_locks.setdefault(key, threading.Lock())

    # -- queue ----------------------------------------------------------------

    def pending(self) -> int:
        with self._queue_lock:
            return len(self._queue)

    def enqueue(
        self,
        message: FeedbackMessage,
        runner: NodeRunnerInterface,
        emitter: ExecutionEventEmitter | None = None,
    ) -> FeedbackMessage:
        """
        Queue a message for processing.

        Returns:
            The message as queued, with its provisional round number

        Raises:
            FeedbackQueueFullError: If ``queue_size`` messages are pending
        """
        run_id = emitter.run_id if emitter else ""
        queued = replace(
            message,
            status=FeedbackStatus.QUEUED,
            round=self.rounds_used(run_id, *message.pair) + 1,
        )
        with self._queue_lock:
            if len(self._queue) >= self.queue_size:
                raise FeedbackQueueFullError(self.queue_size)
            self._queue.append(_Entry(queued, runner, emitter))
        if emitter:
            emitter.feedback_sent(queued)
        logger.info(
            "Feedback %s -> %s queued (round %d)",
            queued.from_node,
            queued.to_node,
            queued.round,
        )
        return queued

    def process_queue(self) -> list[FeedbackResolution]:
        """
        Process queued messages one at a time until the queue is empty.

        Resolutions are returned to the caller; only those a ``dispatch``
        call is waiting on are also kept until it collects them.
        """
        resolutions = []
        while True:
            with self._queue_lock:
                if not self._queue:
                    break
                entry = self._queue.popleft()
            resolution = self._process(entry)
            message_id = resolution.message.message_id
            with self._done:
                if message_id in self._waiting:
                    self._results[message_id] = resolution
                    self._done.notify_all()
            resolutions.append(resolution)
        return resolutions

    def dispatch(
        self,
        message: FeedbackMessage,
        runner: NodeRunnerInterface,
        emitter: ExecutionEventEmitter | None = None,
    ) -> FeedbackResolution:
        """Enqueue a message, drain the queue and return its resolution."""
        with self._done:
            self._waiting.add(message.message_id)
        try:
            self.enqueue(message, runner, emitter)
            self.process_queue()
            with self._done:
                # Another thread may have picked the entry up first
                self._done.wait_for(lambda: message.message_id in self._results)
                return self._results.pop(message.message_id)
        finally:
            with self._done:
                self._waiting.discard(message.message_id)

    # -- processing ---------------------------------------------------------

    def _process(self, entry: _Entry) -> FeedbackResolution:
        emitter = entry.emitter
        run_id = emitter.run_id if emitter else ""
        key = (run_id, *entry.message.pair)
        with self._pair_lock(key):
            return self._cycle(entry, key)

    def _cycle(self, entry: _Entry, key: RoundKey) -> FeedbackResolution:
        runner = entry.runner
        emitter = entry.emitter
        history = [FeedbackStatus.QUEUED, FeedbackStatus.DELIVERED]
        message = replace(
            entry.message,
            status=FeedbackStatus.DELIVERED,
            round=self.rounds_used(*key) + 1,
        )

        if not runner.accepts_feedback(message.to_node):
            return self._fail(
                message,
                history,
                0,
                f"{message.to_node!r} is not a feedback-enabled action "
                "that already ran",
                emitter,
            )
        if message.round > self.max_rounds:
            return self._fail(
                message,
                history,
                0,
                f"round budget of {self.max_rounds} already exhausted",
                emitter,
            )

        rounds_used = 0
        while True:
            with self._rounds_lock:
                self._rounds[key] = message.round
            rounds_used += 1

            message = replace(message, status=FeedbackStatus.PROCESSING)
            history.append(message.status)
            if emitter:
                emitter.feedback_round(message)
            logger.info(
                "Feedback round %d: fixing %s", message.round, message.to_node
            )
            runner.run_node(message.to_node, feedback=message)

            message = replace(message, status=FeedbackStatus.VERIFYING)
            history.append(message.status)
            if emitter:
                emitter.feedback_round(message)
            outcome = runner.run_node(message.from_node)

            if outcome.result.status is NodeStatus.SUCCESS:
                message = replace(
                    message,
                    status=FeedbackStatus.RESOLVED,
                    detail=f"verified after {rounds_used} round(s)",
                )
                history.append(message.status)
                if emitter:
                    emitter.feedback_resolved(message)
                logger.info(
                    "Feedback %s -> %s resolved in round %d",
                    message.from_node,
                    message.to_node,
                    message.round,
                )
                return FeedbackResolution(message, rounds_used, tuple(history))

            request = outcome.response.feedback if outcome.response else None
            if request is not None:
                message = replace(
                    message,
                    message=request.message,
                    suggested_fix=request.suggested_fix,
                    missing_components=request.missing_components,
                )
            elif outcome.response is not None and outcome.response.message:
                message = replace(message, message=outcome.response.message)

            if message.round >= self.max_rounds:
                return self._fail(
                    message,
                    history,
                    rounds_used,
                    f"still failing after {message.round} round(s)",
                    emitter,
                )
            message = replace(message, round=message.round + 1)

    def _fail(
        self,
        message: FeedbackMessage,
        history: list[FeedbackStatus],
        rounds_used: int,
        detail: str,
        emitter: ExecutionEventEmitter | None = None,
    ) -> FeedbackResolution:
        message = replace(message, status=FeedbackStatus.FAILED, detail=detail)
        history.append(message.status)
        if emitter:
            emitter.feedback_failed(message)
        logger.warning(
            "Feedback %s -> %s failed: %s",
            message.from_node,
            message.to_node,
            detail,
        )
        return FeedbackResolution(message, rounds_used, tuple(history))
