"""Execution tracking for a single run of a flow.

``track_step()`` wraps any async operation and records timing, input,
output and errors into a :class:`FlowExecution`. Every change is mirrored
into an :class:`ExecutionStore` so inspectors stay current without the
tracker knowing who is watching.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel

from ..exceptions import StepTransitionError
from ..llm.models import LLMResult, TokenUsage
from .models import ExecutionStatus, FlowExecution, StepExecution, StepStatus
from .store import ExecutionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


class StepMeta(BaseModel):
    """Extra data attached to a successful step, typically from an LLM call."""

    raw: Optional[str] = None
    usage: Optional[TokenUsage] = None


class TrackStepResult(BaseModel, Generic[T]):
    data: T
    duration_ms: float


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class ExecutionTracker:
    """Records the lifecycle of every step in one run of ``flow_id``."""

    def __init__(
        self,
        flow_id: str,
        store: ExecutionStore,
        clock: Clock = _monotonic_ms,
    ) -> None:
        self.flow_id = flow_id
        self._store = store
        self._clock = clock
        self._execution = FlowExecution(flow_id=flow_id)
        logger.debug(f"Started execution {self._execution.id} for flow {flow_id}")
        self._store.set_execution(flow_id, self._execution)

    def __enter__(self) -> "ExecutionTracker":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def execution(self) -> FlowExecution:
        """Snapshot of the current execution trace."""
        return self._execution.snapshot()

    @property
    def execution_id(self) -> str:
        return self._execution.id

    # ------------------------------------------------------------------
    async def track_step(
        self,
        step_id: str,
        input: Any,
        fn: Callable[[], Awaitable[T]],
        meta: Optional[StepMeta] = None,
    ) -> TrackStepResult[T]:
        """Run ``fn`` as step ``step_id`` and record its outcome.

        Failures are recorded and re-raised unchanged; the tracker only
        annotates them.

        Raises:
            StepTransitionError: If the step already ran in this execution.
        """
        self._ensure_idle(step_id)
        started_at = self._clock()
        self._update_step(
            step_id, status=StepStatus.RUNNING, started_at=started_at, input=input
        )

        try:
            data = await fn()
        except (Exception, asyncio.CancelledError) as exc:
            completed_at = self._clock()
            self._update_step(
                step_id,
                status=StepStatus.ERROR,
                completed_at=completed_at,
                duration_ms=completed_at - started_at,
                error=str(exc) or type(exc).__name__,
            )
            logger.info(f"Step {step_id} of flow {self.flow_id} failed: {exc!r}")
            raise

        completed_at = self._clock()
        duration_ms = completed_at - started_at
        output: Any = data
        if meta is None and isinstance(data, LLMResult):
            meta = StepMeta(raw=data.raw, usage=data.usage)
            output = data.data
        self._update_step(
            step_id,
            status=StepStatus.SUCCESS,
            completed_at=completed_at,
            duration_ms=duration_ms,
            output=output,
            raw_response=meta.raw if meta else None,
            usage=meta.usage if meta else None,
        )
        logger.debug(f"Step {step_id} of flow {self.flow_id} succeeded in {duration_ms:.1f}ms")
        return TrackStepResult(data=data, duration_ms=duration_ms)

    def resolve_user_input(self, step_id: str, value: Any) -> None:
        """Mark a step whose work is a human choice as resolved."""
        self._ensure_idle(step_id)
        now = self._clock()
        self._update_step(
            step_id,
            status=StepStatus.SUCCESS,
            started_at=now,
            completed_at=now,
            duration_ms=0.0,
            output=value,
        )

    def get_step_output(self, step_id: str) -> Any:
        step = self._execution.steps.get(step_id)
        return step.output if step else None

    def get_step_status(self, step_id: str) -> StepStatus:
        step = self._execution.steps.get(step_id)
        return step.status if step else StepStatus.IDLE

    def get_step(self, step_id: str) -> Optional[StepExecution]:
        step = self._execution.steps.get(step_id)
        return step.model_copy() if step else None

    def complete(self, status: Optional[ExecutionStatus] = None) -> FlowExecution:
        """Mark the execution finished.

        Without an explicit ``status`` the run is ``failed`` if any step
        errored and ``completed`` otherwise.
        """
        if status is None:
            status = ExecutionStatus.FAILED if self._execution.has_errors() else ExecutionStatus.COMPLETED
        self._commit(
            self._execution.model_copy(
                update={"status": status, "completed_at": time.time() * 1000}
            )
        )
        logger.info(f"Execution {self._execution.id} of flow {self.flow_id} {status}")
        return self.execution

    def reset(self) -> None:
        """Archive the current run and start a new execution."""
        self._store.archive_execution(self.flow_id, self._execution)
        self._commit(FlowExecution(flow_id=self.flow_id))
        logger.debug(f"Reset flow {self.flow_id}; new execution {self._execution.id}")

    def close(self) -> None:
        """Remove this run's live trace from the store.

        A run that recorded any step is archived first.
        """
        if self._execution.steps:
            self._store.archive_execution(self.flow_id, self._execution)
        self._store.clear_live_execution(self.flow_id)

    # ------------------------------------------------------------------
    def _ensure_idle(self, step_id: str) -> None:
        status = self.get_step_status(step_id)
        if status != StepStatus.IDLE:
            raise StepTransitionError(step_id, status.value)

    def _update_step(self, step_id: str, **updates: Any) -> None:
        current = self._execution.steps.get(step_id) or StepExecution(step_id=step_id)
        steps = {**self._execution.steps, step_id: current.model_copy(update=updates)}
        self._commit(self._execution.model_copy(update={"steps": steps}))

    def _commit(self, execution: FlowExecution) -> None:
        # The store receives a state before the tracker adopts it.
        self._store.set_execution(self.flow_id, execution)
        self._execution = execution
