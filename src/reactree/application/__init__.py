"""
Application layer for the workflow engine.

Contains the tree interpreter and the services that coordinate domain
objects during a run: event emission, feedback, resume and metrics.
"""

from reactree.application.feedback_coordinator import FeedbackCoordinator
from reactree.application.interpreter import TreeInterpreter
from reactree.application.metrics import (
    LoopMetrics,
    NodeMetrics,
    RunMetrics,
    summarize_run,
)
from reactree.application.progress_reporter import ProgressReporter
from reactree.application.resume_service import ResumeService, UnknownRunError
from reactree.application.state_logger import ExecutionEventEmitter

__all__ = [
    "ExecutionEventEmitter",
    "FeedbackCoordinator",
    "LoopMetrics",
    "NodeMetrics",
    "ProgressReporter",
    "ResumeService",
    "RunMetrics",
    "TreeInterpreter",
    "UnknownRunError",
    "summarize_run",
]
