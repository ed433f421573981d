"""
TreeInterpreter: executes a workflow tree against workers, memory and a state log.

Execution is depth-first and sequential. Each node kind has one handler in
a dispatch table; every node emits ``node_start`` before and
``node_complete`` after running, so the state log alone is enough to
reconstruct which nodes reached a terminal status.
"""

import logging
import time
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any

from reactree.application.feedback_coordinator import (
    DEFAULT_MAX_ROUNDS,
    DEFAULT_QUEUE_SIZE,
    FeedbackCoordinator,
)
from reactree.application.state_logger import ExecutionEventEmitter
from reactree.domain.conditions import (
    ConditionEvaluation,
    EvaluationResult,
    evaluate,
)
from reactree.domain.exceptions import WorkerUnavailableError
from reactree.domain.feedback import FeedbackMessage, FeedbackRequest
from reactree.domain.interfaces import (
    NodeRunnerInterface,
    StateLogInterface,
    WorkerInterface,
    WorkingMemoryStoreInterface,
)
from reactree.domain.memory import WorkingMemoryRecord
from reactree.domain.models import (
    ActionNode,
    Branch,
    ConditionalNode,
    ExitOn,
    FailureReason,
    LoopExitReason,
    LoopNode,
    Node,
    NodeResult,
    NodeStatus,
    NodeType,
    RunResult,
    SequenceNode,
    WorkflowDefinition,
)
from reactree.domain.replay import ResumePlan
from reactree.domain.worker import ActionOutcome, WorkerRequest, WorkerResponse
from reactree.domain.workflow import (
    check_definition,
    compute_workflow_ref,
    designated_verifiers,
)

logger = logging.getLogger(__name__)

InitialMemory = Mapping[str, Any] | Iterable[WorkingMemoryRecord]

_LOOP_STATUS = {
    LoopExitReason.CONDITION_TRUE: (NodeStatus.SUCCESS, None),
    LoopExitReason.MAX_ITERATIONS: (
        NodeStatus.MAX_ITERATIONS,
        FailureReason.BOUNDS_EXCEEDED,
    ),
    LoopExitReason.TIMED_OUT: (NodeStatus.TIMED_OUT, FailureReason.BOUNDS_EXCEEDED),
    LoopExitReason.EVALUATION_ERROR: (
        NodeStatus.FAILURE,
        FailureReason.EVALUATION_ERROR,
    ),
}


def qualify(output_key: str, key: str) -> str:
    """Fact key as stored: ``<output_key>.<key>``, or ``key`` alone."""
    return f"{output_key}.{key}" if output_key else key


def _exit_satisfied(evaluation: ConditionEvaluation, exit_on: ExitOn) -> bool:
    if exit_on is ExitOn.CONDITION_FALSE:
        return evaluation.result is EvaluationResult.FALSE
    return evaluation.result is EvaluationResult.TRUE


def _propagate(child: NodeResult) -> tuple[NodeStatus, FailureReason]:
    """Status a composite reports when a child ends non-successfully."""
    if child.status.blocking:
        return NodeStatus.FEEDBACK_UNRESOLVED, FailureReason.FEEDBACK_EXHAUSTED
    return NodeStatus.FAILURE, FailureReason.CHILD_FAILED


class TreeInterpreter:
    """
    Executes workflow definitions.

    One interpreter may execute many runs; all per-run state lives in a
    ``_Run`` created by ``execute``. The memory store passed in must be
    scoped to the run being executed.
    """

    def __init__(
        self,
        workers: Mapping[str, WorkerInterface],
        memory: WorkingMemoryStoreInterface,
        state_log: StateLogInterface,
        coordinator: FeedbackCoordinator | None = None,
        max_feedback_rounds: int = DEFAULT_MAX_ROUNDS,
        feedback_queue_size: int = DEFAULT_QUEUE_SIZE,
        clock: Callable[[], float] = time.monotonic,
        event_clock: Callable[[], datetime] | None = None,
    ):
        """
        Args:
            workers: Worker per agent name
            memory: Working Memory store for this run
            state_log: Execution event log
            coordinator: Shared feedback coordinator; a private one with the
                given bounds is created when None
            max_feedback_rounds: Fix/verify cycles allowed per pair
            feedback_queue_size: Pending feedback messages allowed
            clock: Monotonic clock used for loop timeouts
            event_clock: Wall clock stamped on events
        """
        self._workers = dict(workers)
        self._memory = memory
        self._state_log = state_log
        self._coordinator = coordinator or FeedbackCoordinator(
            max_rounds=max_feedback_rounds, queue_size=feedback_queue_size
        )
        self._clock = clock
        self._event_clock = event_clock

    @property
    def coordinator(self) -> FeedbackCoordinator:
        return self._coordinator

    def execute(
        self,
        workflow: WorkflowDefinition,
        initial_memory: InitialMemory | None = None,
        run_id: str | None = None,
        resume: ResumePlan | None = None,
    ) -> RunResult:
        """
        Execute a workflow to completion.

        Args:
            workflow: Definition to execute
            initial_memory: Facts written before the root runs, as plain
                values (session tier) or records; ignored when resuming
            run_id: Run identifier (generated when None; taken from the
                plan when resuming)
            resume: Plan from ResumeService to continue an earlier run

        Returns:
            RunResult with the status tree and latest status per node

        Raises:
            WorkflowDefinitionError: If the definition fails semantic checks
            WorkerUnavailableError: If an Action's worker cannot be resolved
        """
        check_definition(workflow)
        if resume is not None:
            run_id = resume.run_id
        run_id = run_id or uuid.uuid4().hex[:12]

        emitter = ExecutionEventEmitter(
            self._state_log,
            run_id,
            start_sequence=resume.next_sequence if resume else 0,
            clock=self._event_clock,
        )
        if resume is not None:
            self._coordinator.restore_rounds(run_id, resume.feedback_rounds)

        run = _Run(self, workflow, emitter, resume)
        emitter.run_start(
            workflow.name, compute_workflow_ref(workflow), resumed=resume is not None
        )
        logger.info(
            "%s run %s of workflow %r",
            "Resuming" if resume else "Starting",
            run_id,
            workflow.name,
        )

        try:
            if resume is None and initial_memory:
                run.seed(initial_memory)
            root = run.execute_node(workflow.root, use_plan=resume is not None)
        except Exception as e:
            emitter.run_aborted(e)
            logger.error("Run %s aborted: %s", run_id, e)
            raise

        emitter.run_complete(root)
        logger.info("Run %s finished: %s", run_id, root.status.value)
        return RunResult(
            run_id=run_id,
            workflow_name=workflow.name,
            root=root,
            statuses=dict(emitter.statuses),
        )


class _Run(NodeRunnerInterface):
    """State of one run; also the NodeRunner the coordinator calls back into."""

    def __init__(
        self,
        interpreter: TreeInterpreter,
        workflow: WorkflowDefinition,
        emitter: ExecutionEventEmitter,
        plan: ResumePlan | None,
    ):
        self._interp = interpreter
        self._memory = interpreter._memory
        self._emitter = emitter
        self._plan = plan
        self._nodes = {node.node_id: node for node in workflow.nodes()}
        self._verified_by: dict[str, list[str]] = {}
        for target, verifier in designated_verifiers(workflow).items():
            self._verified_by.setdefault(verifier, []).append(target)
        self._executed: list[str] = []
        self._outcomes: dict[str, ActionOutcome] = {}
        self._handlers: dict[NodeType, Callable[..., NodeResult]] = {
            NodeType.ACTION: self._action,
            NodeType.SEQUENCE: self._sequence,
            NodeType.CONDITIONAL: self._conditional,
            NodeType.LOOP: self._loop,
        }

    # -- NodeRunnerInterface ------------------------------------------------

    def accepts_feedback(self, node_id: str) -> bool:
        node = self._nodes.get(node_id)
        return (
            isinstance(node, ActionNode)
            and node.feedback_enabled
            and node_id in self._executed
        )

    def run_node(
        self, node_id: str, feedback: FeedbackMessage | None = None
    ) -> ActionOutcome:
        node = self._nodes[node_id]
        if isinstance(node, ActionNode):
            self.execute_node(node, allow_feedback=False, feedback=feedback)
            return self._outcomes[node_id]
        return ActionOutcome(self.execute_node(node))

    # -- setup --------------------------------------------------------------

    def seed(self, initial_memory: InitialMemory) -> None:
        """Write the run's starting facts."""
        if isinstance(initial_memory, Mapping):
            records: Iterable[WorkingMemoryRecord] = (
                WorkingMemoryRecord(
                    key=key,
                    value=value,
                    source="initial",
                    knowledge_type="initialization",
                )
                for key, value in initial_memory.items()
            )
        else:
            records = initial_memory
        for record in records:
            stored = self._memory.write(record)
            self._emitter.memory_write("", stored)

    # -- dispatch -----------------------------------------------------------

    def execute_node(
        self, node: Node, use_plan: bool = False, **kwargs: Any
    ) -> NodeResult:
        """
        Run one node through its handler, bracketed by start/complete events.

        With ``use_plan`` a node the resume plan records as terminal is not
        executed again; its recorded status is returned instead.
        """
        if use_plan and self._plan and self._plan.is_terminal(node.node_id):
            status = self._plan.completed[node.node_id]
            logger.debug("Skipping %s: already %s", node.node_id, status.value)
            self._emitter.statuses[node.node_id] = status
            if node.node_id not in self._executed:
                self._executed.append(node.node_id)
            return NodeResult(
                node_id=node.node_id,
                node_type=node.type,
                status=status,
                detail="status restored from state log",
                resumed=True,
            )

        self._emitter.node_start(node)
        result = self._handlers[node.type](node, use_plan=use_plan, **kwargs)
        if node.node_id not in self._executed:
            self._executed.append(node.node_id)
        self._emitter.node_complete(result)
        return result

    # -- Action -------------------------------------------------------------

    def _worker(self, node: ActionNode) -> WorkerInterface:
        worker = self._interp._workers.get(node.agent)
        if worker is None:
            raise WorkerUnavailableError(
                node.agent, f"No worker registered for agent {node.agent!r}"
            )
        return worker

    def _action(
        self,
        node: ActionNode,
        use_plan: bool = False,
        allow_feedback: bool = True,
        feedback: FeedbackMessage | None = None,
    ) -> NodeResult:
        worker = self._worker(node)
        request = WorkerRequest(
            node_id=node.node_id,
            skill=node.skill,
            agent=node.agent,
            args=dict(node.args),
            memory_snapshot=self._memory.snapshot(),
            run_id=self._emitter.run_id,
            feedback=feedback,
        )
        logger.debug("Action %s: %s via %s", node.node_id, node.skill, node.agent)
        response = worker.execute(request)

        for fact in response.facts:
            stored = self._memory.write(
                replace(
                    fact,
                    key=qualify(node.output_key, fact.key),
                    source=fact.source or node.agent,
                    timestamp=None,
                )
            )
            self._emitter.memory_write(node.node_id, stored)

        if response.succeeded:
            result = NodeResult(
                node.node_id, node.type, NodeStatus.SUCCESS, detail=response.message
            )
        else:
            result = NodeResult(
                node.node_id,
                node.type,
                NodeStatus.FAILURE,
                reason=FailureReason.ACTION_FAILED,
                detail=response.message,
            )
        self._outcomes[node.node_id] = ActionOutcome(result, response)

        if not response.succeeded and allow_feedback:
            target = self._feedback_target(node, response)
            if target is not None:
                result = self._request_feedback(node, target, response, result)
                self._outcomes[node.node_id] = ActionOutcome(result, response)
        return result

    def _feedback_target(
        self, node: ActionNode, response: WorkerResponse
    ) -> str | None:
        """Node a failing verifier sends feedback to, if any."""
        if response.feedback is not None and response.feedback.to_node:
            return response.feedback.to_node
        candidates = [
            target
            for target in self._verified_by.get(node.node_id, ())
            if target in self._executed
        ]
        if not candidates:
            return None
        # Most recently executed target first
        return max(candidates, key=self._executed.index)

    def _request_feedback(
        self,
        node: ActionNode,
        target: str,
        response: WorkerResponse,
        result: NodeResult,
    ) -> NodeResult:
        request = response.feedback or FeedbackRequest(
            message=response.message or f"{node.node_id} reported failure"
        )
        message = FeedbackMessage(
            message_id=str(uuid.uuid4()),
            from_node=node.node_id,
            to_node=target,
            message=request.message,
            feedback_type=request.feedback_type,
            suggested_fix=request.suggested_fix,
            missing_components=request.missing_components,
            priority=request.priority,
            artifacts=request.artifacts,
        )
        resolution = self._interp.coordinator.dispatch(message, self, self._emitter)
        if resolution.resolved:
            return replace(
                result,
                status=NodeStatus.SUCCESS,
                reason=None,
                detail=resolution.message.detail,
                feedback_rounds=resolution.rounds_used,
            )
        return replace(
            result,
            status=NodeStatus.FEEDBACK_UNRESOLVED,
            reason=FailureReason.FEEDBACK_EXHAUSTED,
            detail=f"feedback to {target} failed: {resolution.message.detail}",
            feedback_rounds=resolution.rounds_used,
        )

    # -- Sequence -----------------------------------------------------------

    def _sequence(self, node: SequenceNode, use_plan: bool = False) -> NodeResult:
        results: list[NodeResult] = []
        status, reason, detail = NodeStatus.SUCCESS, None, ""

        for index, child in enumerate(node.children):
            child_result = self.execute_node(child, use_plan=use_plan)
            results.append(child_result)
            if not child_result.status.failed:
                continue

            status, reason = _propagate(child_result)
            detail = f"{child.node_id} ended {child_result.status.value}"
            if child.continue_on_error and not child_result.status.blocking:
                logger.info("Sequence %s continues past %s", node.node_id, detail)
                continue

            for skipped in node.children[index + 1 :]:
                self._emitter.node_skipped(skipped, reason=detail)
                results.append(
                    NodeResult(
                        skipped.node_id,
                        skipped.type,
                        NodeStatus.SKIPPED,
                        detail=f"not executed: {detail}",
                    )
                )
            break

        return NodeResult(
            node.node_id,
            node.type,
            status,
            reason=reason,
            detail=detail,
            children=tuple(results),
        )

    # -- Conditional --------------------------------------------------------

    def _conditional(
        self, node: ConditionalNode, use_plan: bool = False
    ) -> NodeResult:
        recorded = None
        if use_plan and self._plan:
            recorded = self._plan.branches.get(node.node_id)
        if recorded is not None:
            evaluation = ConditionEvaluation(
                EvaluationResult(recorded.value),
                detail="branch recorded before restart",
            )
        else:
            evaluation = evaluate(node.condition, self._memory.snapshot())

        if evaluation.is_error:
            self._emitter.conditional_eval(node, evaluation, Branch.NONE)
            return NodeResult(
                node.node_id,
                node.type,
                NodeStatus.FAILURE,
                reason=FailureReason.EVALUATION_ERROR,
                detail=evaluation.detail,
                branch=Branch.NONE,
                evaluation=evaluation.result.value,
            )

        branch = Branch.TRUE if evaluation.is_true else Branch.FALSE
        self._emitter.conditional_eval(node, evaluation, branch)
        target = node.true_branch if evaluation.is_true else node.false_branch
        if target is None:
            return NodeResult(
                node.node_id,
                node.type,
                NodeStatus.SUCCESS,
                detail=f"no {branch.value} branch",
                branch=branch,
                evaluation=evaluation.result.value,
            )

        child = self.execute_node(target, use_plan=use_plan)
        status, reason, detail = NodeStatus.SUCCESS, None, ""
        if child.status.failed:
            status, reason = _propagate(child)
            detail = f"{target.node_id} ended {child.status.value}"
        return NodeResult(
            node.node_id,
            node.type,
            status,
            reason=reason,
            detail=detail,
            children=(child,),
            branch=branch,
            evaluation=evaluation.result.value,
        )

    # -- Loop ---------------------------------------------------------------

    def _loop(self, node: LoopNode, use_plan: bool = False) -> NodeResult:
        """
        Repeat the body until the loop exits.

        A resumed loop continues after its last logged iteration. Time spent
        before the restart counts toward ``timeout_seconds``, and an exit
        logged before the restart finishes the loop without running the
        body again.
        """
        iteration = 0
        prior_elapsed = 0.0
        exit_reason: LoopExitReason | None = None
        if use_plan and self._plan:
            iteration = self._plan.loop_iterations.get(node.node_id, 0)
            prior_elapsed = self._plan.loop_elapsed.get(node.node_id, 0.0)
            exit_reason = self._plan.loop_exits.get(node.node_id)
        started = self._interp._clock() - prior_elapsed
        body: NodeResult | None = None
        evaluation: ConditionEvaluation | None = None

        if exit_reason is None and iteration >= node.max_iterations:
            # Every iteration ran before the restart; only the exit is missing
            evaluation = evaluate(node.condition, self._memory.snapshot())
            exit_reason = self._exit_reason(node, evaluation, iteration, 0.0)

        while exit_reason is None:
            iteration += 1
            # Loop bodies always run in full, even when resuming
            body = self.execute_node(node.body, use_plan=False)
            evaluation = evaluate(node.condition, self._memory.snapshot())
            elapsed = self._interp._clock() - started
            if body.status.blocking:
                self._emitter.loop_iteration(
                    node, iteration, elapsed, evaluation, body.status, None
                )
                return NodeResult(
                    node.node_id,
                    node.type,
                    NodeStatus.FEEDBACK_UNRESOLVED,
                    reason=FailureReason.FEEDBACK_EXHAUSTED,
                    detail=f"{node.body.node_id} ended {body.status.value}",
                    children=(body,),
                    iterations=iteration,
                )
            exit_reason = self._exit_reason(node, evaluation, iteration, elapsed)
            self._emitter.loop_iteration(
                node, iteration, elapsed, evaluation, body.status, exit_reason
            )
            logger.debug(
                "Loop %s iteration %d: condition %s",
                node.node_id,
                iteration,
                evaluation.result.value,
            )

        status, reason = _LOOP_STATUS[exit_reason]
        detail = f"exited after {iteration} iteration(s): {exit_reason.value}"
        if exit_reason is LoopExitReason.EVALUATION_ERROR and evaluation:
            detail = evaluation.detail
        return NodeResult(
            node.node_id,
            node.type,
            status,
            reason=reason,
            detail=detail,
            children=(body,) if body else (),
            evaluation=evaluation.result.value if evaluation else None,
            iterations=iteration,
            exit_reason=exit_reason,
        )

    def _exit_reason(
        self,
        node: LoopNode,
        evaluation: ConditionEvaluation,
        iteration: int,
        elapsed: float,
    ) -> LoopExitReason | None:
        """Checked after each iteration: condition, then count, then time."""
        if evaluation.is_error:
            return LoopExitReason.EVALUATION_ERROR
        if _exit_satisfied(evaluation, node.exit_on):
            return LoopExitReason.CONDITION_TRUE
        if iteration >= node.max_iterations:
            return LoopExitReason.MAX_ITERATIONS
        if elapsed > node.timeout_seconds:
            return LoopExitReason.TIMED_OUT
        return None
