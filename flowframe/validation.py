"""Steel frame validator for flow definitions.

Every flow is checked against the structural invariants below and the
per-type step contracts before it may enter the registry:

* I1 - the dependency graph is acyclic
* I2 - at least one root step (empty ``depends_on``)
* I3 - every step is reachable from a root
* I5 - step ids are unique
* I6 - every dependency refers to an existing step
* I7 - every step is complete (id, name, type, description, depends_on)

Errors accumulate; a single call reports everything wrong with a flow.
"""

from __future__ import annotations

import enum
import logging
from collections import deque
from typing import Callable, Dict, Iterable, List, Optional, assert_never

from pydantic import BaseModel, ConfigDict

from .contracts import FlowDefinition, FlowStep, StepType

logger = logging.getLogger(__name__)


class Invariant(enum.StrEnum):
    """Codes attached to validation errors."""

    ACYCLIC = "I1"
    HAS_ROOT = "I2"
    NO_ORPHANS = "I3"
    UNIQUE_IDS = "I5"
    VALID_DEPENDENCIES = "I6"
    COMPLETE = "I7"
    LLM_CONTRACT = "llm-contract"
    USER_INPUT_CONTRACT = "user-input-contract"
    TRANSFORM_CONTRACT = "transform-contract"
    VALIDATE_CONTRACT = "validate-contract"
    MUTATION = "mutation"


class FlowValidationError(BaseModel):
    """A single invariant violation found in a flow definition."""

    model_config = ConfigDict(frozen=True)

    flow_id: str
    invariant: str
    step_id: Optional[str] = None
    message: str

    def format(self) -> str:
        """Render as ``[invariant] step="<id>": <message>``."""
        step_part = f' step="{self.step_id}"' if self.step_id else ""
        return f"[{self.invariant}]{step_part}: {self.message}"


_Report = Callable[[Invariant, str, Optional[str]], None]


def validate_flow(flow: FlowDefinition) -> List[FlowValidationError]:
    """Validate a single flow definition against all steel frame invariants.

    Returns an empty list if the flow is valid.
    """
    errors: List[FlowValidationError] = []

    def report(invariant: Invariant, message: str, step_id: Optional[str] = None) -> None:
        errors.append(
            FlowValidationError(
                flow_id=flow.id,
                invariant=invariant.value,
                step_id=step_id or None,
                message=message,
            )
        )

    steps = flow.steps
    step_ids = set()

    # I5: unique step ids
    for step in steps:
        if step.id in step_ids:
            report(Invariant.UNIQUE_IDS, f'Duplicate step ID "{step.id}"', step.id)
        step_ids.add(step.id)

    # I7: step completeness
    for step in steps:
        if not step.id.strip():
            report(Invariant.COMPLETE, "Step has empty id")
        if not step.name.strip():
            report(Invariant.COMPLETE, f'Step "{step.id}" has empty name', step.id)
        if step.type is None:
            report(Invariant.COMPLETE, f'Step "{step.id}" has no type', step.id)
        if not step.description.strip():
            report(Invariant.COMPLETE, f'Step "{step.id}" has empty description', step.id)
        if step.depends_on is None:
            report(Invariant.COMPLETE, f'Step "{step.id}" has no dependsOn list', step.id)

    # I6: valid dependencies
    for step in steps:
        for dep in step.depends_on or []:
            if dep not in step_ids:
                report(
                    Invariant.VALID_DEPENDENCIES,
                    f'Step "{step.id}" depends on "{dep}" which does not exist',
                    step.id,
                )

    # I2: at least one root
    roots = [step.id for step in steps if step.is_root]
    if not roots:
        report(Invariant.HAS_ROOT, "Flow has no root steps (steps with empty dependsOn)")

    # I1: acyclicity via Kahn's algorithm
    adjacency = _adjacency(steps)
    in_degree: Dict[str, int] = {step.id: 0 for step in steps}
    for targets in adjacency.values():
        for target in targets:
            in_degree[target] += 1
    queue = deque(step.id for step in steps if in_degree[step.id] == 0)
    removed = 0
    while queue:
        node = queue.popleft()
        removed += 1
        for neighbor in adjacency.get(node, ()):
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)
    if removed < len(steps):
        report(Invariant.ACYCLIC, "Flow contains a cycle; not a valid DAG")

    # I3: no orphans, BFS forward from every root
    reachable = set()
    frontier = deque(roots)
    while frontier:
        node = frontier.popleft()
        if node in reachable:
            continue
        reachable.add(node)
        frontier.extend(n for n in adjacency.get(node, ()) if n not in reachable)
    for step in steps:
        if step.id not in reachable:
            report(
                Invariant.NO_ORPHANS,
                f'Step "{step.id}" is an orphan; not reachable from any root',
                step.id,
            )

    for step in steps:
        _check_step_contract(step, report)

    return errors


def _adjacency(steps: Iterable[FlowStep]) -> Dict[str, List[str]]:
    """Forward edges ``dependency -> dependent`` for dependencies that exist."""
    steps = list(steps)
    adjacency: Dict[str, List[str]] = {step.id: [] for step in steps}
    for step in steps:
        for dep in step.depends_on or []:
            if dep in adjacency:
                adjacency[dep].append(step.id)
    return adjacency


def _check_step_contract(step: FlowStep, report: _Report) -> None:
    """Validate step-type-specific contracts."""
    if step.type is None:
        return

    match step.type:
        case StepType.LLM:
            if not (step.prompt or "").strip():
                report(Invariant.LLM_CONTRACT, f'LLM step "{step.id}" must have a prompt', step.id)
            if not step.output_schema:
                report(
                    Invariant.LLM_CONTRACT,
                    f'LLM step "{step.id}" must have a non-empty outputSchema',
                    step.id,
                )
        case StepType.USER_INPUT:
            _require_io_schemas(step, Invariant.USER_INPUT_CONTRACT, "User-input", report)
        case StepType.TRANSFORM:
            _require_io_schemas(step, Invariant.TRANSFORM_CONTRACT, "Transform", report)
        case StepType.VALIDATE:
            _require_io_schemas(step, Invariant.VALIDATE_CONTRACT, "Validate", report)
        case StepType.DISPLAY:
            # inputSchema is recommended for display steps, never required
            pass
        case StepType.CHAT | StepType.EXTERNAL_INPUT:
            pass
        case _:
            assert_never(step.type)


def _require_io_schemas(
    step: FlowStep, invariant: Invariant, label: str, report: _Report
) -> None:
    if not step.input_schema:
        report(invariant, f'{label} step "{step.id}" must have inputSchema', step.id)
    if not step.output_schema:
        report(invariant, f'{label} step "{step.id}" must have outputSchema', step.id)


def log_validation_errors(flow_id: str, errors: List[FlowValidationError]) -> None:
    """Emit the operator-visible report for a rejected flow."""
    plural = "" if len(errors) == 1 else "s"
    logger.error(f'Flow "{flow_id}" failed validation ({len(errors)} error{plural}):')
    for err in errors:
        logger.error(f"  {err.format()}")


def validate_flows(flows: Iterable[FlowDefinition]) -> List[FlowDefinition]:
    """Validate many flows and return only the valid ones.

    Invalid flows are logged and dropped.
    """
    valid: List[FlowDefinition] = []
    for flow in flows:
        errors = validate_flow(flow)
        if errors:
            log_validation_errors(flow.id, errors)
        else:
            valid.append(flow)
    return valid
