"""Graph helpers over validated flow definitions.

These functions assume the flow already passed :func:`validate_flow`;
they resolve dependency order, layout depth and run readiness.
"""

from __future__ import annotations

from collections import deque
from typing import Dict, FrozenSet, List, Sequence, Set, Tuple

from .contracts import FlowDefinition, FlowStep
from .exceptions import CycleError
from .execution.models import FlowExecution, StepStatus


def dependents(steps: Sequence[FlowStep]) -> Dict[str, List[str]]:
    """Map each step id to the ids of steps that directly depend on it."""
    forward: Dict[str, List[str]] = {step.id: [] for step in steps}
    for step in steps:
        for dep in step.dependencies():
            if dep in forward:
                forward[dep].append(step.id)
    return forward


def roots(steps: Sequence[FlowStep]) -> List[str]:
    return [step.id for step in steps if step.is_root]


def topological_order(steps: Sequence[FlowStep]) -> List[str]:
    """Return step ids in dependency-respecting order.

    Ties are broken by declaration order so the result is deterministic.

    Raises:
        CycleError: If the steps contain a cycle.
    """
    position = {step.id: index for index, step in enumerate(steps)}
    forward = dependents(steps)
    in_degree = {
        step.id: sum(1 for dep in step.dependencies() if dep in position)
        for step in steps
    }

    ready = sorted((sid for sid, deg in in_degree.items() if deg == 0), key=position.get)
    order: List[str] = []
    while ready:
        node = ready.pop(0)
        order.append(node)
        for child in forward[node]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                ready.append(child)
        ready.sort(key=position.get)

    if len(order) < len(in_degree):
        done = set(order)
        remaining = [sid for sid in position if sid not in done]
        raise CycleError(f"Cycle detected among steps: {', '.join(remaining)}", remaining)
    return order


def compute_depths(steps: Sequence[FlowStep]) -> Dict[str, int]:
    """Longest-path depth from any root (0 for roots).

    Used to lay out steps in columns, parallel branches sharing a column.
    """
    by_id = {step.id: step for step in steps}
    depths: Dict[str, int] = {}
    for step_id in topological_order(steps):
        deps = [dep for dep in by_id[step_id].dependencies() if dep in by_id]
        depths[step_id] = max((depths[dep] + 1 for dep in deps), default=0)
    return depths


def columns(steps: Sequence[FlowStep]) -> List[List[str]]:
    """Group step ids by depth, preserving declaration order within a column."""
    depths = compute_depths(steps)
    grouped: List[List[str]] = [[] for _ in range(max(depths.values(), default=-1) + 1)]
    for step in steps:
        grouped[depths[step.id]].append(step.id)
    return grouped


def parallel_groups(steps: Sequence[FlowStep]) -> List[Tuple[FrozenSet[str], List[str]]]:
    """Group ``parallel`` steps that share an identical dependency set.

    Only groups with at least two members are returned; these are the
    siblings a driver may fan out concurrently.
    """
    groups: Dict[FrozenSet[str], List[str]] = {}
    for step in steps:
        if step.parallel:
            groups.setdefault(frozenset(step.dependencies()), []).append(step.id)
    return [(deps, ids) for deps, ids in groups.items() if len(ids) > 1]


def ready_steps(flow: FlowDefinition, execution: FlowExecution) -> List[str]:
    """Ids of idle steps whose dependencies have all succeeded."""
    def status(step_id: str) -> StepStatus:
        record = execution.steps.get(step_id)
        return record.status if record else StepStatus.IDLE

    return [
        step.id
        for step in flow.steps
        if status(step.id) == StepStatus.IDLE
        and all(status(dep) == StepStatus.SUCCESS for dep in step.dependencies())
    ]


def blocked_steps(flow: FlowDefinition, execution: FlowExecution) -> Set[str]:
    """Ids of steps that can never run because an ancestor failed."""
    forward = dependents(flow.steps)
    failed = [sid for sid, rec in execution.steps.items() if rec.status == StepStatus.ERROR]
    blocked: Set[str] = set()
    queue = deque(failed)
    while queue:
        node = queue.popleft()
        for child in forward.get(node, ()):
            if child not in blocked:
                blocked.add(child)
                queue.append(child)
    return blocked


def is_terminal(flow: FlowDefinition, execution: FlowExecution) -> bool:
    """Whether a run of ``flow`` can make no further progress.

    A run is terminal when every step has reached ``success`` or ``error``,
    or can never start because one of its ancestors failed.
    """
    blocked = blocked_steps(flow, execution)
    for step in flow.steps:
        record = execution.steps.get(step.id)
        if record is not None and record.status in (StepStatus.SUCCESS, StepStatus.ERROR):
            continue
        if step.id in blocked:
            continue
        return False
    return True
