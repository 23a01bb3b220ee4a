"""Run the research flow against a local LLM endpoint.

Start an endpoint that accepts ``POST /api/llm/chat`` (or point
FLOWFRAME_LLM_BASE_URL elsewhere), then:

    python guides/research_flow_example.py "deep sea creatures"
"""

import asyncio
import sys
from pathlib import Path

from flowframe import (
    ExecutionStore,
    ExecutionTracker,
    FlowRunner,
    LLMStepHandler,
    StepType,
    get_llm_client,
    load_registry,
)

FLOWS = Path(__file__).parent / "flows"


async def ask_topic(step, inputs):
    return {"topic": inputs["topic"]}


async def show(step, inputs):
    for dep, output in inputs.items():
        print(f"[{step.name}] {dep}: {output}")


async def main():
    topic = sys.argv[1] if len(sys.argv) > 1 else "octopuses"
    registry = load_registry([FLOWS])
    flow = registry.require("research")

    store = ExecutionStore()
    store.subscribe(lambda: print("trace updated"))

    async with get_llm_client() as client:
        handlers = {
            StepType.USER_INPUT: ask_topic,
            StepType.LLM: LLMStepHandler(client),
            StepType.DISPLAY: show,
        }
        with ExecutionTracker(flow.id, store) as tracker:
            execution = await FlowRunner(flow, tracker, handlers).run({"topic": topic})

    print(f"Execution {execution.id}: {execution.status}")
    for step_id, step in execution.steps.items():
        print(f"- {step_id}: {step.status} ({step.duration_ms or 0:.0f}ms)")


if __name__ == "__main__":
    asyncio.run(main())
