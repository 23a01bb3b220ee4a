"""Drive a validated flow through an :class:`ExecutionTracker`.

The runner owns no state of its own: which steps are ready is always
derived from the tracker's execution, so a run can be inspected (or
resumed by hand) through the store at any point.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Type

from pydantic import BaseModel

from .contracts import FlowDefinition, FlowStep
from .exceptions import FlowframeError
from .execution.models import FlowExecution
from .execution.tracker import ExecutionTracker
from .graph import ready_steps, topological_order
from .llm.client import LLMClient
from .llm.models import LLMOptions, LLMResult, json_prompt

logger = logging.getLogger(__name__)

StepHandler = Callable[[FlowStep, Dict[str, Any]], Awaitable[Any]]


class LLMStepHandler:
    """Default handler for ``llm`` steps.

    The step prompt becomes the system message; the user message is the
    step's ``user_message`` or, when absent, the step inputs as JSON.
    """

    def __init__(
        self,
        client: LLMClient,
        output_types: Optional[Mapping[str, Type[BaseModel]]] = None,
    ) -> None:
        self.client = client
        self.output_types = dict(output_types or {})

    async def __call__(self, step: FlowStep, inputs: Dict[str, Any]) -> LLMResult[Any]:
        user_message = step.user_message or json.dumps(inputs, default=str)
        return await self.client.chat_json(
            json_prompt(step.prompt or "", user_message),
            LLMOptions(model=step.model),
            output_type=self.output_types.get(step.id),
        )


class FlowRunner:
    """Run every reachable step of ``flow`` in dependency order.

    ``handlers`` maps a step id or a :class:`StepType` to an async callable
    ``handler(step, inputs)``; a step id entry wins over its type. Ready
    steps flagged ``parallel`` that share a dependency set run concurrently
    and all settle before the runner moves on. A failed step blocks its
    descendants but not unrelated branches.
    """

    def __init__(
        self,
        flow: FlowDefinition,
        tracker: ExecutionTracker,
        handlers: Mapping[str, StepHandler],
    ) -> None:
        self.flow = flow
        self.tracker = tracker
        self.handlers = dict(handlers)
        self._position = {sid: i for i, sid in enumerate(topological_order(flow.steps))}

    async def run(self, initial_inputs: Optional[Dict[str, Any]] = None) -> FlowExecution:
        """Run until no step is ready, then mark the execution complete."""
        initial_inputs = dict(initial_inputs or {})
        logger.info(f"Running flow {self.flow.id} as {self.tracker.execution_id}")

        while True:
            ready = sorted(ready_steps(self.flow, self.tracker.execution), key=self._position.get)
            if not ready:
                break
            batch = self._next_batch(ready)
            if len(batch) == 1:
                await self._run_step(batch[0], initial_inputs)
                continue
            logger.debug(f"Fanning out {len(batch)} parallel steps: {[s.id for s in batch]}")
            results = await asyncio.gather(
                *(self._run_step(step, initial_inputs) for step in batch),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException) and not isinstance(result, Exception):
                    raise result

        execution = self.tracker.complete()
        logger.info(f"Flow {self.flow.id} finished with status {execution.status}")
        return execution

    def inputs_for(self, step: FlowStep, initial_inputs: Dict[str, Any]) -> Dict[str, Any]:
        """Outputs of ``step``'s dependencies keyed by id; roots get the run inputs."""
        if step.is_root:
            return dict(initial_inputs)
        return {dep: self.tracker.get_step_output(dep) for dep in step.dependencies()}

    # ------------------------------------------------------------------
    def _next_batch(self, ready: List[str]) -> List[FlowStep]:
        first = self.flow.get_step(ready[0])
        if not first.parallel:
            return [first]
        deps = set(first.dependencies())
        siblings = (self.flow.get_step(sid) for sid in ready)
        return [s for s in siblings if s.parallel and set(s.dependencies()) == deps]

    def _handler_for(self, step: FlowStep) -> StepHandler:
        handler = self.handlers.get(step.id)
        if handler is None and step.type is not None:
            handler = self.handlers.get(step.type)
        if handler is None:
            raise FlowframeError(f"No handler registered for step {step.id!r} ({step.type})")
        return handler

    async def _run_step(self, step: FlowStep, initial_inputs: Dict[str, Any]) -> None:
        inputs = self.inputs_for(step, initial_inputs)

        async def call() -> Any:
            return await self._handler_for(step)(step, inputs)

        try:
            await self.tracker.track_step(step.id, inputs, call)
        except Exception as exc:
            # already recorded on the step; downstream steps stay blocked
            logger.warning(f"Step {step.id} of flow {self.flow.id} failed: {exc}")
