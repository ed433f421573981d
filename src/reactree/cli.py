"""
Command line interface.

    reactree validate workflow.json
    reactree run workflow.json --set build.ok=true
    reactree resume RUN_ID workflow.json
    reactree replay RUN_ID
    reactree metrics RUN_ID
    reactree memory get KEY
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from pathlib import Path
from typing import Any

import click

from reactree import __version__
from reactree.application import (
    ProgressReporter,
    ResumeService,
    TreeInterpreter,
    UnknownRunError,
    summarize_run,
)
from reactree.config import EngineConfig, load_config
from reactree.console import (
    console,
    print_error,
    print_events,
    print_metrics,
    print_record,
    print_run_result,
)
from reactree.domain.exceptions import (
    ConfigurationError,
    ReactreeError,
    WorkflowDefinitionError,
)
from reactree.domain.interfaces import StateLogInterface
from reactree.domain.memory import MemoryTier, WorkingMemoryRecord
from reactree.domain.models import (
    ActionNode,
    NodeStatus,
    RunResult,
    WorkflowDefinition,
)
from reactree.domain.replay import ResumePlan, fold_statuses
from reactree.infrastructure import (
    BeadsIssueTracker,
    FilesystemStateLog,
    FilesystemWorkingMemoryStore,
    WorkerRegistry,
    load_workflow,
)
from reactree.logging_setup import setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def _config(ctx: click.Context) -> EngineConfig:
    return ctx.obj["config"]


def _parse_assignment(assignment: str) -> tuple[str, Any]:
    """``KEY=JSON`` -> (key, value); non-JSON values are kept as strings."""
    key, sep, raw = assignment.partition("=")
    if not sep or not key:
        raise click.BadParameter(f"expected KEY=VALUE, got {assignment!r}")
    try:
        return key, json.loads(raw)
    except json.JSONDecodeError:
        return key, raw


def _state_log(config: EngineConfig) -> StateLogInterface:
    log: StateLogInterface = FilesystemStateLog(config.state_path)
    if config.issue_tracker == "beads":
        log = ProgressReporter(log, BeadsIssueTracker(), config.issue_prefix)
    return log


def _memory(config: EngineConfig, run_id: str) -> FilesystemWorkingMemoryStore:
    return FilesystemWorkingMemoryStore(
        config.memory_path,
        run_id=run_id,
        session_ttl_seconds=config.session_ttl_seconds,
    )


def _interpreter(
    config: EngineConfig, workflow: WorkflowDefinition, run_id: str
) -> TreeInterpreter:
    agents = sorted(
        {n.agent for n in workflow.nodes() if isinstance(n, ActionNode)}
    )
    default_options = (
        {"timeout": config.command_timeout_seconds}
        if config.default_worker == "CommandWorker"
        else {}
    )
    workers = WorkerRegistry.build(
        agents, config.workers, config.default_worker, default_options
    )
    return TreeInterpreter(
        workers,
        _memory(config, run_id),
        _state_log(config),
        max_feedback_rounds=config.max_feedback_rounds,
        feedback_queue_size=config.feedback_queue_size,
    )


def _load(path: str) -> WorkflowDefinition:
    try:
        return load_workflow(path)
    except WorkflowDefinitionError as e:
        print_error(str(e), hint="Check the workflow against workflow.schema.json")
        sys.exit(EXIT_USAGE)


def _finish(result: RunResult) -> None:
    print_run_result(result)
    sys.exit(EXIT_OK if result.succeeded else EXIT_FAILED)


@click.group()
@click.version_option(__version__, prog_name="reactree")
@click.option("--debug", is_flag=True, help="Verbose (DEBUG) console logging")
@click.option("--log-file", type=click.Path(), default=None, help="Also log here")
@click.option(
    "--config",
    "config_path",
    type=click.Path(),
    default=None,
    help="Engine config JSON (default: ./reactree.json if present)",
)
@click.pass_context
def main(
    ctx: click.Context, debug: bool, log_file: str | None, config_path: str | None
) -> None:
    """Execute ReAcTree workflows: action, sequence, conditional and loop trees."""
    setup_logging(verbose=debug, log_file=log_file)
    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        print_error(str(e))
        sys.exit(EXIT_USAGE)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command()
@click.argument("workflow_path", type=click.Path())
def validate(workflow_path: str) -> None:
    """Validate a workflow definition."""
    workflow = _load(workflow_path)
    console.print(
        f"[green]OK[/green] {workflow.name}: {len(workflow.nodes())} node(s)"
    )


@main.command()
@click.argument("workflow_path", type=click.Path())
@click.option("--run-id", default=None, help="Run identifier (default: random)")
@click.option("--state-dir", default=None, help="Override config state_dir")
@click.option(
    "--set",
    "assignments",
    multiple=True,
    metavar="KEY=JSON",
    help="Initial memory fact (repeatable)",
)
@click.option(
    "--durable", is_flag=True, help="Store --set facts in the durable tier"
)
@click.pass_context
def run(
    ctx: click.Context,
    workflow_path: str,
    run_id: str | None,
    state_dir: str | None,
    assignments: tuple[str, ...],
    durable: bool,
) -> None:
    """Execute a workflow."""
    config = _config(ctx).with_overrides(state_dir=state_dir)
    workflow = _load(workflow_path)
    run_id = run_id or uuid.uuid4().hex[:12]
    tier = MemoryTier.DURABLE if durable else MemoryTier.SESSION
    initial = [
        WorkingMemoryRecord(
            key=key,
            value=value,
            source="cli",
            tier=tier,
            knowledge_type="initialization",
        )
        for key, value in map(_parse_assignment, assignments)
    ]

    try:
        interpreter = _interpreter(config, workflow, run_id)
        result = interpreter.execute(workflow, initial_memory=initial, run_id=run_id)
    except ConfigurationError as e:
        print_error(str(e))
        sys.exit(EXIT_USAGE)
    except ReactreeError as e:
        print_error(
            str(e), hint=f"Resume with: reactree resume {run_id} {workflow_path}"
        )
        sys.exit(EXIT_FAILED)
    _finish(result)


@main.command()
@click.argument("run_id")
@click.argument("workflow_path", type=click.Path())
@click.option("--state-dir", default=None, help="Override config state_dir")
@click.pass_context
def resume(
    ctx: click.Context, run_id: str, workflow_path: str, state_dir: str | None
) -> None:
    """Continue an interrupted run from its state log."""
    config = _config(ctx).with_overrides(state_dir=state_dir)
    workflow = _load(workflow_path)
    service = ResumeService(FilesystemStateLog(config.state_path))
    try:
        plan: ResumePlan = service.prepare(run_id, workflow)
    except UnknownRunError as e:
        print_error(str(e))
        sys.exit(EXIT_USAGE)
    except ReactreeError as e:
        print_error(str(e), hint="Start a new run for the changed workflow")
        sys.exit(EXIT_USAGE)

    if plan.finished:
        console.print(f"Run {run_id} already finished: {plan.run_status.value}")
        sys.exit(EXIT_OK if plan.run_status is NodeStatus.SUCCESS else EXIT_FAILED)

    try:
        interpreter = _interpreter(config, workflow, run_id)
        result = interpreter.execute(workflow, resume=plan)
    except ConfigurationError as e:
        print_error(str(e))
        sys.exit(EXIT_USAGE)
    except ReactreeError as e:
        print_error(str(e))
        sys.exit(EXIT_FAILED)
    _finish(result)


@main.command()
@click.argument("run_id")
@click.option("--node", "node_id", default=None, help="Only events of this node")
@click.option("--state-dir", default=None, help="Override config state_dir")
@click.pass_context
def replay(
    ctx: click.Context, run_id: str, node_id: str | None, state_dir: str | None
) -> None:
    """Show a run's events and the statuses they fold to."""
    config = _config(ctx).with_overrides(state_dir=state_dir)
    log = FilesystemStateLog(config.state_path)
    events = log.replay(run_id, node_id=node_id)
    if not events:
        print_error(f"No events recorded for run {run_id!r}")
        sys.exit(EXIT_USAGE)
    print_events(events)
    statuses = fold_statuses(log.replay(run_id))
    for nid, status in statuses.items():
        if node_id is None or nid == node_id:
            console.print(f"{nid}: {status.value}")


@main.command()
@click.argument("run_id")
@click.option("--state-dir", default=None, help="Override config state_dir")
@click.pass_context
def metrics(ctx: click.Context, run_id: str, state_dir: str | None) -> None:
    """Summarize durations, loop exits and feedback rounds of a run."""
    config = _config(ctx).with_overrides(state_dir=state_dir)
    events = FilesystemStateLog(config.state_path).replay(run_id)
    if not events:
        print_error(f"No events recorded for run {run_id!r}")
        sys.exit(EXIT_USAGE)
    print_metrics(summarize_run(events, run_id))


@main.group()
def memory() -> None:
    """Inspect Working Memory."""


@memory.command("get")
@click.argument("key")
@click.option(
    "--tier",
    type=click.Choice([t.value for t in MemoryTier]),
    default=None,
    help="Read one tier only",
)
@click.option("--run-id", default="default", help="Run whose session tier to read")
@click.option("--state-dir", default=None, help="Override config state_dir")
@click.pass_context
def memory_get(
    ctx: click.Context,
    key: str,
    tier: str | None,
    run_id: str,
    state_dir: str | None,
) -> None:
    """Print the current record for KEY."""
    config = _config(ctx).with_overrides(state_dir=state_dir)
    record = _memory(config, run_id).read(key, MemoryTier(tier) if tier else None)
    if record is None:
        print_error(f"No current record for {key!r}")
        sys.exit(EXIT_FAILED)
    print_record(record)


@memory.command("sweep")
@click.option("--run-id", default="default", help="Run whose session tier to sweep")
@click.option("--state-dir", default=None, help="Override config state_dir")
@click.pass_context
def memory_sweep(ctx: click.Context, run_id: str, state_dir: str | None) -> None:
    """List session keys whose records have expired."""
    config = _config(ctx).with_overrides(state_dir=state_dir)
    if not Path(config.memory_path).exists():
        console.print("No memory file.")
        return
    swept = _memory(config, run_id).sweep()
    console.print(f"{len(swept)} expired key(s)")
    for key in swept:
        console.print(f"  {key}")


if __name__ == "__main__":
    main()
