"""
Domain exceptions for the workflow engine.

Only infrastructure faults are exceptions. Business failures, evaluation
errors, exhausted loop bounds and unresolved feedback travel through the
status tree as values.
"""


class ReactreeError(Exception):
    """Base class for all engine errors."""


class WorkflowDefinitionError(ReactreeError):
    """Raised when a workflow definition is malformed or fails validation."""

    def __init__(self, message: str, path: str | None = None):
        """
        Args:
            message: Human-readable error message
            path: Location of the offending element (JSON pointer or node id)
        """
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class WorkflowIntegrityError(ReactreeError):
    """Raised when a run is resumed against a different workflow definition."""

    def __init__(self, expected_ref: str, actual_ref: str):
        super().__init__(
            f"Workflow changed since run started: expected {expected_ref[:12]}, "
            f"got {actual_ref[:12]}"
        )
        self.expected_ref = expected_ref
        self.actual_ref = actual_ref


class WorkerUnavailableError(ReactreeError):
    """
    Raised when an Action's worker cannot be reached or resolved.

    This is fatal to the whole run.
    """

    def __init__(self, agent: str, message: str = ""):
        super().__init__(message or f"Worker unavailable: {agent}")
        self.agent = agent


class FeedbackQueueFullError(ReactreeError):
    """Raised when the feedback queue is at capacity."""

    def __init__(self, capacity: int):
        super().__init__(f"Feedback queue is full (capacity {capacity})")
        self.capacity = capacity


class ConfigurationError(ReactreeError):
    """Raised when engine configuration files are invalid or missing."""
