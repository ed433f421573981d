"""Rich console rendering for the reactree CLI."""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from reactree.application.metrics import RunMetrics
from reactree.domain.execution_event import ExecutionStateEvent
from reactree.domain.memory import WorkingMemoryRecord
from reactree.domain.models import NodeResult, NodeStatus, RunResult

# Shared console instances
console = Console()
error_console = Console(stderr=True)

_STATUS_STYLE = {
    NodeStatus.SUCCESS: "green",
    NodeStatus.FAILURE: "red",
    NodeStatus.MAX_ITERATIONS: "yellow",
    NodeStatus.TIMED_OUT: "yellow",
    NodeStatus.FEEDBACK_UNRESOLVED: "bold red",
    NodeStatus.SKIPPED: "dim",
}


def _label(result: NodeResult) -> Text:
    text = Text(f"{result.node_id} ", style="bold")
    text.append(f"[{result.node_type.value}] ", style="cyan")
    text.append(result.status.value, style=_STATUS_STYLE[result.status])
    extras = []
    if result.branch is not None:
        extras.append(f"branch={result.branch.value}")
    if result.exit_reason is not None:
        extras.append(f"iterations={result.iterations}")
        extras.append(f"exit={result.exit_reason.value}")
    if result.feedback_rounds:
        extras.append(f"feedback_rounds={result.feedback_rounds}")
    if result.resumed:
        extras.append("resumed")
    if extras:
        text.append(f" ({', '.join(extras)})", style="dim")
    if result.detail and result.status is not NodeStatus.SUCCESS:
        text.append(f"\n{result.detail.splitlines()[0][:120]}", style="dim")
    return text


def status_tree(result: NodeResult, tree: Tree | None = None) -> Tree:
    """Build a rich Tree mirroring the status tree."""
    branch = tree.add(_label(result)) if tree else Tree(_label(result))
    for child in result.children:
        status_tree(child, branch)
    return branch


def print_run_result(result: RunResult) -> None:
    style = "green" if result.succeeded else "red"
    console.print(
        Panel(
            status_tree(result.root),
            title=f"{result.workflow_name} / run {result.run_id}",
            subtitle=result.status.value,
            border_style=style,
        )
    )


def print_error(message: str, hint: str | None = None) -> None:
    """Print formatted error message to stderr."""
    content = Text(f"ERROR: {message}", style="bold red")
    if hint:
        content.append(f"\n\nHint: {hint}", style="yellow")
    error_console.print(Panel(content, title="Error", border_style="red"))


def print_events(events: Sequence[ExecutionStateEvent]) -> None:
    """Print state log events as a table."""
    table = Table(title=f"{len(events)} event(s)")
    table.add_column("Seq", style="cyan", justify="right")
    table.add_column("Event", style="magenta")
    table.add_column("Node")
    table.add_column("Details", style="dim")
    for event in events:
        details = ", ".join(
            f"{k}={v}"
            for k, v in event.data.items()
            if k not in ("message_id", "artifacts", "missing_components")
            and v not in (None, "", [])
        )
        table.add_row(
            str(event.sequence), event.event_type.value, event.node_id, details
        )
    console.print(table)


def print_metrics(metrics: RunMetrics) -> None:
    """Print run metrics: summary plus per-node table."""
    summary = Table(show_header=False, box=None)
    summary.add_column("Key", style="cyan")
    summary.add_column("Value")
    summary.add_row("Run", metrics.run_id)
    summary.add_row("Workflow", metrics.workflow)
    summary.add_row("Status", metrics.status.value if metrics.status else "incomplete")
    summary.add_row("Duration", f"{metrics.duration_seconds:.2f}s")
    rate = metrics.action_success_rate
    summary.add_row("Action success", "n/a" if rate is None else f"{rate:.0%}")
    summary.add_row(
        "Feedback",
        f"{metrics.feedback_resolved} resolved, {metrics.feedback_failed} failed",
    )
    console.print(summary)

    table = Table(title="Nodes")
    table.add_column("Node", style="bold")
    table.add_column("Type", style="cyan")
    table.add_column("Runs", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Status")
    for node in metrics.nodes.values():
        status = node.status.value if node.status else "-"
        table.add_row(
            node.node_id,
            node.node_type,
            str(node.executions),
            f"{node.total_seconds:.2f}s",
            status,
        )
    console.print(table)

    for loop in metrics.loops.values():
        console.print(
            f"[cyan]loop[/cyan] {loop.node_id}: {loop.iterations} iteration(s), "
            f"exit={loop.exit_reason or '-'}"
        )
    for (from_node, to_node), rounds in metrics.feedback_rounds.items():
        console.print(
            f"[cyan]feedback[/cyan] {from_node} -> {to_node}: {rounds} round(s)"
        )


def print_record(record: WorkingMemoryRecord) -> None:
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("key", record.key)
    table.add_row("value", repr(record.value))
    table.add_row("tier", record.tier.value)
    table.add_row("source", record.source)
    table.add_row("confidence", record.confidence.value)
    table.add_row("timestamp", record.timestamp.isoformat() if record.timestamp else "")
    if record.run_id:
        table.add_row("run", record.run_id)
    console.print(table)
