"""Exception hierarchy for flowframe."""

from __future__ import annotations


class FlowframeError(Exception):
    """Base class for all flowframe errors."""


class FlowNotFoundError(FlowframeError, KeyError):
    """Raised when a flow id is not present in the validated registry.

    Flows that failed validation are absent from the registry, so this is
    raised for both unknown and invalid flows.
    """

    def __init__(self, flow_id: str) -> None:
        self.flow_id = flow_id
        super().__init__(f"Flow {flow_id!r} not found in registry")

    def __str__(self) -> str:  # KeyError quotes its argument otherwise
        return self.args[0]


class CycleError(FlowframeError):
    """Raised when a topological order cannot be derived."""

    def __init__(self, message: str, remaining: list[str] | None = None) -> None:
        super().__init__(message)
        self.remaining = remaining or []


class StepTransitionError(FlowframeError):
    """Raised when a step that already started is started again.

    Steps move idle -> running -> success|error once per execution; running
    a step again requires a new execution.
    """

    def __init__(self, step_id: str, status: str) -> None:
        self.step_id = step_id
        self.status = status
        super().__init__(
            f"Step {step_id!r} is already {status}; "
            "start a new execution to run it again"
        )
