"""Tests for ProgressReporter - issue tracker bridge."""

import pytest

from builders import action, workflow
from reactree.application import ProgressReporter, TreeInterpreter
from reactree.domain.exceptions import WorkerUnavailableError
from reactree.domain.worker import WorkerResponse
from reactree.infrastructure import InMemoryIssueTracker, ScriptedWorker


@pytest.fixture
def tracker() -> InMemoryIssueTracker:
    return InMemoryIssueTracker()


@pytest.fixture
def reporter(state_log, tracker) -> ProgressReporter:
    return ProgressReporter(state_log, tracker, issue_prefix="RT-")


class TestProgressReporter:
    """Tests for translating run events into tracker calls."""

    def test_successful_run_closes_issue(
        self, memory, reporter, tracker, state_log, build_then_test
    ) -> None:
        """Run start opens the issue, composites comment, completion closes."""
        ok = WorkerResponse.success()
        interpreter = TreeInterpreter(
            {"builder": ScriptedWorker([ok]), "tester": ScriptedWorker([ok])},
            memory,
            reporter,
        )

        interpreter.execute(build_then_test, run_id="run-1")

        issue = tracker.issues["RT-run-1"]
        assert issue.title == "Started workflow build-test"
        assert issue.status == "closed"
        assert issue.close_reason == "Run finished: success"
        assert issue.comments == ["[root] started", "[root] success"]
        # Every event still reaches the wrapped log
        assert reporter.replay("run-1") == state_log.replay("run-1")

    def test_failed_feedback_marks_issue(
        self, memory, reporter, tracker, build_then_test
    ) -> None:
        """An unresolved feedback message is reported as a comment."""
        interpreter = TreeInterpreter(
            {
                "builder": ScriptedWorker([WorkerResponse.success()], True),
                "tester": ScriptedWorker([WorkerResponse.failure()], True),
            },
            memory,
            reporter,
            max_feedback_rounds=1,
        )

        interpreter.execute(build_then_test, run_id="run-1")

        comments = tracker.issues["RT-run-1"].comments
        assert any(c.startswith("Feedback test -> build unresolved") for c in comments)

    def test_aborted_run_blocks_issue(self, memory, reporter, tracker) -> None:
        """An infrastructure fault leaves the issue blocked."""
        interpreter = TreeInterpreter({}, memory, reporter)

        with pytest.raises(WorkerUnavailableError):
            interpreter.execute(workflow(action("a", agent="ghost")), run_id="run-1")

        issue = tracker.issues["RT-run-1"]
        assert issue.status == "blocked"
        assert issue.comments[-1].startswith("Run aborted: WorkerUnavailableError")

    def test_run_ids_delegate(self, reporter, state_log) -> None:
        """run_ids() comes from the wrapped log."""
        assert reporter.run_ids() == state_log.run_ids() == []
