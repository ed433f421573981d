"""Tests for run metrics derived from the state log."""

from builders import action, condition, loop, sequence, workflow
from reactree.application import TreeInterpreter, summarize_run
from reactree.domain.models import NodeStatus
from reactree.domain.worker import WorkerResponse
from reactree.infrastructure import ScriptedWorker

OK = WorkerResponse.success()


class TestSummarizeRun:
    """Tests for summarize_run()."""

    def test_feedback_run(self, memory, state_log, clock, build_then_test) -> None:
        """Durations, rounds and success rate of a run with one fix."""

        def slow_build(request):
            clock.advance(5)
            return OK

        workers = {
            "builder": ScriptedWorker([slow_build], repeat_last=True),
            "tester": ScriptedWorker([WorkerResponse.failure(), OK]),
        }
        interpreter = TreeInterpreter(
            workers, memory, state_log, clock=clock.monotonic, event_clock=clock
        )
        interpreter.execute(build_then_test, run_id="run-1")

        metrics = summarize_run(state_log.replay("run-1"))

        assert metrics.run_id == "run-1"
        assert metrics.workflow == "build-test"
        assert metrics.status is NodeStatus.SUCCESS
        assert metrics.duration_seconds == 10
        assert metrics.nodes["build"].executions == 2
        assert metrics.nodes["build"].total_seconds == 10
        assert metrics.nodes["build"].last_seconds == 5
        assert metrics.feedback_rounds == {("test", "build"): 1}
        assert metrics.feedback_resolved == 1
        assert metrics.feedback_failed == 0
        assert metrics.action_success_rate == 1.0
        assert {n.node_id for n in metrics.slowest(2)} == {"root", "build"}

    def test_loop_and_failures(self, memory, state_log, clock) -> None:
        """Loop exits and failing actions are summarized."""
        definition = workflow(
            sequence(
                "root",
                loop(
                    "retry",
                    action("poll"),
                    condition("done"),
                    max_iterations=2,
                    continue_on_error=True,
                ),
                action("report"),
            )
        )
        worker = ScriptedWorker([OK, OK, WorkerResponse.failure()])
        interpreter = TreeInterpreter(
            {"agent": worker}, memory, state_log, event_clock=clock
        )
        interpreter.execute(definition, run_id="run-1")

        metrics = summarize_run(state_log.replay("run-1"), "run-1")

        assert metrics.loops["retry"].iterations == 2
        assert metrics.loops["retry"].exit_reason == "max_iterations"
        assert metrics.nodes["poll"].executions == 2
        assert metrics.nodes["report"].status is NodeStatus.FAILURE
        assert metrics.action_success_rate == 0.5

    def test_empty_events(self) -> None:
        """No events produce empty metrics."""
        metrics = summarize_run([], "run-x")

        assert metrics.run_id == "run-x"
        assert metrics.status is None
        assert metrics.action_success_rate is None
