"""Application service for resuming interrupted runs.

Resumption reads nothing but the state log: the run's events are folded
into a ResumePlan that the interpreter uses to skip finished nodes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from reactree.domain.exceptions import WorkflowIntegrityError
from reactree.domain.replay import ResumePlan, build_resume_plan
from reactree.domain.workflow import compute_workflow_ref

if TYPE_CHECKING:
    from reactree.domain.interfaces import StateLogInterface
    from reactree.domain.models import WorkflowDefinition

logger = logging.getLogger(__name__)


class UnknownRunError(LookupError):
    """Raised when the state log holds no events for a run."""

    def __init__(self, run_id: str) -> None:
        super().__init__(f"No events recorded for run {run_id!r}")
        self.run_id = run_id


class ResumeService:
    """Builds resume plans from the state log and guards workflow integrity."""

    def __init__(self, state_log: StateLogInterface) -> None:
        self._log = state_log

    def plan(self, run_id: str) -> ResumePlan:
        """Fold the run's events into a ResumePlan.

        Raises:
            UnknownRunError: If the run has no events.
        """
        events = self._log.replay(run_id)
        if not events:
            raise UnknownRunError(run_id)
        plan = build_resume_plan(run_id, events)
        logger.info(
            "Run %s: %d terminal node(s), next sequence %d%s",
            run_id,
            len(plan.completed),
            plan.next_sequence,
            " (already finished)" if plan.finished else "",
        )
        return plan

    def verify_workflow_ref(
        self, plan: ResumePlan, workflow: WorkflowDefinition
    ) -> None:
        """Refuse to resume against a definition other than the recorded one.

        Runs whose start event predates fingerprinting carry no ref and
        pass unchecked.

        Raises:
            WorkflowIntegrityError: If the fingerprints differ.
        """
        if plan.workflow_ref is None:
            return
        actual = compute_workflow_ref(workflow)
        if actual != plan.workflow_ref:
            raise WorkflowIntegrityError(plan.workflow_ref, actual)

    def prepare(self, run_id: str, workflow: WorkflowDefinition) -> ResumePlan:
        """Plan a resume and verify the workflow fingerprint in one step."""
        plan = self.plan(run_id)
        self.verify_workflow_ref(plan, workflow)
        return plan
