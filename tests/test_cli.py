"""Tests for the reactree command line interface."""

import json

import pytest
from click.testing import CliRunner

from reactree.cli import EXIT_FAILED, EXIT_OK, EXIT_USAGE, main


@pytest.fixture
def cli(tmp_path):
    """Invoke the CLI with a StaticWorker config rooted in tmp_path."""
    config = tmp_path / "reactree.json"
    config.write_text(
        json.dumps(
            {"default_worker": "StaticWorker", "state_dir": str(tmp_path / "state")}
        )
    )
    runner = CliRunner()

    def invoke(*args: str):
        return runner.invoke(main, ["--config", str(config), *args])

    return invoke


@pytest.fixture
def write_workflow(tmp_path):
    def write(document: dict, name: str = "wf.json") -> str:
        path = tmp_path / name
        path.write_text(json.dumps(document))
        return str(path)

    return write


@pytest.fixture
def gated_document() -> dict:
    """Succeeds only when ``go`` is set to true before the run."""
    return {
        "name": "gated",
        "root": {
            "type": "conditional",
            "node_id": "gate",
            "condition": {"key": "go", "operator": "equals", "value": True},
            "true_branch": {
                "type": "action",
                "node_id": "ship",
                "skill": "ship",
                "agent": "static",
            },
            "false_branch": {
                "type": "action",
                "node_id": "halt",
                "skill": "halt",
                "agent": "static",
                "args": {"status": "failure", "message": "not ready"},
            },
        },
    }


class TestValidate:
    """Tests for `reactree validate`."""

    def test_valid_workflow(self, cli, write_workflow, workflow_document) -> None:
        """A valid definition reports its node count."""
        result = cli("validate", write_workflow(workflow_document))

        assert result.exit_code == EXIT_OK
        assert "OK" in result.output
        assert "5 node(s)" in result.output

    def test_invalid_workflow(self, cli, write_workflow) -> None:
        """A schema violation exits with the usage code."""
        result = cli("validate", write_workflow({"name": "broken"}))

        assert result.exit_code == EXIT_USAGE

    def test_invalid_config(self, tmp_path, write_workflow, workflow_document):
        """A config that violates its schema exits with the usage code."""
        config = tmp_path / "bad.json"
        config.write_text(json.dumps({"max_feedback_rounds": 0}))

        result = CliRunner().invoke(
            main,
            ["--config", str(config), "validate", write_workflow(workflow_document)],
        )

        assert result.exit_code == EXIT_USAGE


class TestRun:
    """Tests for `reactree run`."""

    def test_successful_run(self, cli, write_workflow, workflow_document) -> None:
        """A run that succeeds exits zero and records its events."""
        result = cli("run", write_workflow(workflow_document), "--run-id", "r1")

        assert result.exit_code == EXIT_OK, result.output
        assert "success" in result.output

    def test_failed_run(self, cli, write_workflow, workflow_document) -> None:
        """A failing Action makes the run exit with the failure code."""
        setup = workflow_document["root"]["children"][0]
        setup["args"]["status"] = "failure"

        result = cli("run", write_workflow(workflow_document), "--run-id", "r1")

        assert result.exit_code == EXIT_FAILED

    def test_set_seeds_memory(self, cli, write_workflow, gated_document) -> None:
        """--set facts are visible to the first condition."""
        path = write_workflow(gated_document)

        assert cli("run", path, "--run-id", "a").exit_code == EXIT_FAILED
        seeded = cli("run", path, "--run-id", "b", "--set", "go=true")
        assert seeded.exit_code == EXIT_OK

    def test_bad_assignment(self, cli, write_workflow, gated_document) -> None:
        """--set requires KEY=VALUE."""
        result = cli("run", write_workflow(gated_document), "--set", "go")

        assert result.exit_code == EXIT_USAGE

    def test_unknown_worker(self, tmp_path, write_workflow, workflow_document):
        """A config naming an unknown worker is a usage error."""
        config = tmp_path / "ghost.json"
        config.write_text(
            json.dumps(
                {"default_worker": "Ghost", "state_dir": str(tmp_path / "state")}
            )
        )

        result = CliRunner().invoke(
            main, ["--config", str(config), "run", write_workflow(workflow_document)]
        )

        assert result.exit_code == EXIT_USAGE


class TestInspection:
    """Tests for replay, metrics, resume and memory commands."""

    @pytest.fixture
    def finished_run(self, cli, write_workflow, workflow_document) -> str:
        path = write_workflow(workflow_document)
        assert cli("run", path, "--run-id", "r1").exit_code == EXIT_OK
        return path

    def test_replay(self, cli, finished_run) -> None:
        """Replay lists events and folded statuses."""
        result = cli("replay", "r1")

        assert result.exit_code == EXIT_OK
        assert "event(s)" in result.output
        assert "poll: success" in result.output

    def test_replay_single_node(self, cli, finished_run) -> None:
        """--node narrows the folded statuses to one node."""
        result = cli("replay", "r1", "--node", "setup")

        assert result.exit_code == EXIT_OK
        assert "setup: success" in result.output
        assert "poll: success" not in result.output

    def test_replay_unknown_run(self, cli, finished_run) -> None:
        """A run without events is a usage error."""
        assert cli("replay", "nope").exit_code == EXIT_USAGE

    def test_metrics(self, cli, finished_run) -> None:
        """Metrics summarize the run and its loops."""
        result = cli("metrics", "r1")

        assert result.exit_code == EXIT_OK
        assert "retry" in result.output

    def test_metrics_unknown_run(self, cli, finished_run) -> None:
        """Metrics for an unknown run is a usage error."""
        assert cli("metrics", "nope").exit_code == EXIT_USAGE

    def test_resume_finished_run(self, cli, finished_run) -> None:
        """Resuming a finished run reports its status without executing."""
        result = cli("resume", "r1", finished_run)

        assert result.exit_code == EXIT_OK
        assert "already finished" in result.output

    def test_resume_unknown_run(self, cli, finished_run) -> None:
        """Resuming a run with no events is a usage error."""
        assert cli("resume", "nope", finished_run).exit_code == EXIT_USAGE

    def test_memory_get(self, cli, finished_run) -> None:
        """The run's session facts can be read back."""
        result = cli("memory", "get", "env.ready", "--run-id", "r1")

        assert result.exit_code == EXIT_OK
        assert "env.ready" in result.output

    def test_memory_get_missing(self, cli, finished_run) -> None:
        """A key without a current record exits with the failure code."""
        assert cli("memory", "get", "absent").exit_code == EXIT_FAILED

    def test_memory_sweep(self, cli, finished_run) -> None:
        """Sweep reports the number of expired keys."""
        result = cli("memory", "sweep", "--run-id", "r1")

        assert result.exit_code == EXIT_OK
        assert "0 expired key(s)" in result.output
