"""Execution tracing for flow runs."""

from __future__ import annotations

from .models import ExecutionStatus, FlowExecution, StepExecution, StepStatus
from .store import ExecutionStore
from .tracker import ExecutionTracker, StepMeta, TrackStepResult

__all__ = [
    "ExecutionStatus",
    "ExecutionStore",
    "ExecutionTracker",
    "FlowExecution",
    "StepExecution",
    "StepMeta",
    "StepStatus",
    "TrackStepResult",
]
