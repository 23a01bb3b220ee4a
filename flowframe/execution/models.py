"""Data models for execution traces."""

from __future__ import annotations

import enum
import secrets
import time
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..llm.models import TokenUsage


class StepStatus(enum.StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.SUCCESS, StepStatus.ERROR)


class ExecutionStatus(enum.StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not ExecutionStatus.RUNNING


class StepExecution(BaseModel):
    """Record of one step within one run.

    ``started_at``/``completed_at`` are monotonic milliseconds.
    """

    step_id: str
    status: StepStatus = StepStatus.IDLE
    started_at: Optional[float] = None
    completed_at: Optional[float] = None
    duration_ms: Optional[float] = None
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    raw_response: Optional[str] = None
    usage: Optional[TokenUsage] = None


def _new_execution_id() -> str:
    return f"exec-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


def _now_ms() -> float:
    return time.time() * 1000


class FlowExecution(BaseModel):
    """One run of a flow."""

    id: str = Field(default_factory=_new_execution_id)
    flow_id: str
    started_at: float = Field(default_factory=_now_ms)
    completed_at: Optional[float] = None
    status: ExecutionStatus = ExecutionStatus.RUNNING
    steps: Dict[str, StepExecution] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def has_errors(self) -> bool:
        return any(step.status == StepStatus.ERROR for step in self.steps.values())

    def snapshot(self) -> "FlowExecution":
        """Copy the execution and its step records.

        Step inputs and outputs are shared with the original; they can be
        arbitrary objects and are never copied.
        """
        return self.model_copy(
            update={"steps": {sid: step.model_copy() for sid, step in self.steps.items()}}
        )
