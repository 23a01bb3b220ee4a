"""Pure edits on flow definitions.

Every mutation returns a new :class:`FlowDefinition` and re-validates it;
the input flow is never modified. Invalid results are still returned so an
editor can show what went wrong.
"""

from __future__ import annotations

import re
import time
from typing import Any, Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_snake

from .contracts import FlowDefinition, FlowStep, SchemaField, SchemaFieldType, StepType
from .validation import FlowValidationError, Invariant, validate_flow


class _Mutation(BaseModel):
    model_config = ConfigDict(frozen=True)


class AddStep(_Mutation):
    kind: Literal["add-step"] = "add-step"
    step: FlowStep
    after_step_id: Optional[str] = None


class RemoveStep(_Mutation):
    kind: Literal["remove-step"] = "remove-step"
    step_id: str


class UpdateStep(_Mutation):
    kind: Literal["update-step"] = "update-step"
    step_id: str
    changes: Dict[str, Any]


class Connect(_Mutation):
    kind: Literal["connect"] = "connect"
    from_id: str
    to_id: str


class Disconnect(_Mutation):
    kind: Literal["disconnect"] = "disconnect"
    from_id: str
    to_id: str


class ChangeType(_Mutation):
    kind: Literal["change-type"] = "change-type"
    step_id: str
    new_type: StepType


class ReorderDeps(_Mutation):
    kind: Literal["reorder-deps"] = "reorder-deps"
    step_id: str
    new_deps: List[str]


class Batch(_Mutation):
    kind: Literal["batch"] = "batch"
    mutations: List["FlowMutation"]
    description: str


FlowMutation = Union[
    AddStep, RemoveStep, UpdateStep, Connect, Disconnect, ChangeType, ReorderDeps, Batch
]
Batch.model_rebuild()


class MutationResult(BaseModel):
    """Outcome of :func:`apply_mutation`."""

    flow: FlowDefinition
    valid: bool
    errors: List[FlowValidationError] = Field(default_factory=list)
    description: str


def _not_found(flow: FlowDefinition, step_id: str, description: str) -> MutationResult:
    error = FlowValidationError(
        flow_id=flow.id,
        invariant=Invariant.MUTATION.value,
        step_id=step_id,
        message=f'Step "{step_id}" not found',
    )
    return MutationResult(flow=flow, valid=False, errors=[error], description=description)


def _with_steps(flow: FlowDefinition, steps: Iterable[FlowStep]) -> FlowDefinition:
    return flow.model_copy(update={"steps": list(steps)})


def _replace_step(flow: FlowDefinition, step_id: str, **updates: Any) -> FlowDefinition:
    return _with_steps(
        flow,
        (step.model_copy(update=updates) if step.id == step_id else step for step in flow.steps),
    )


def _name_of(flow: FlowDefinition, step_id: str) -> str:
    step = flow.get_step(step_id)
    return step.name if step else step_id


def _transform(flow: FlowDefinition, mutation: FlowMutation) -> MutationResult | tuple[FlowDefinition, str]:
    match mutation:
        case AddStep(step=step, after_step_id=after):
            deps = step.dependencies()
            if after and after not in deps:
                step = step.model_copy(update={"depends_on": [*deps, after]})
            return _with_steps(flow, [*flow.steps, step]), f'Added step "{step.name}" ({step.type})'

        case RemoveStep(step_id=step_id):
            removing = flow.get_step(step_id)
            if removing is None:
                return _not_found(flow, step_id, f'Cannot remove "{step_id}": not found')
            remaining = (
                step.model_copy(update={"depends_on": [d for d in step.dependencies() if d != step_id]})
                if step.depends_on is not None
                else step
                for step in flow.steps
                if step.id != step_id
            )
            return _with_steps(flow, remaining), f'Removed step "{removing.name}"'

        case UpdateStep(step_id=step_id, changes=changes):
            existing = flow.get_step(step_id)
            if existing is None:
                return _not_found(flow, step_id, f'Cannot update "{step_id}": not found')
            fields = {to_snake(key): value for key, value in changes.items()}
            updated = FlowStep.model_validate({**existing.model_dump(), **fields, "id": step_id})
            steps = (updated if step.id == step_id else step for step in flow.steps)
            return _with_steps(flow, steps), f'Updated "{existing.name}" ({", ".join(changes)})'

        case Connect(from_id=from_id, to_id=to_id):
            target = flow.get_step(to_id)
            if target is None:
                return _not_found(flow, to_id, f'Cannot connect: "{to_id}" not found')
            if from_id in target.dependencies():
                return flow, f"Already connected: {from_id} -> {to_id}"
            result = _replace_step(flow, to_id, depends_on=[*target.dependencies(), from_id])
            return result, f'Connected "{_name_of(flow, from_id)}" -> "{target.name}"'

        case Disconnect(from_id=from_id, to_id=to_id):
            target = flow.get_step(to_id)
            if target is None:
                return _not_found(flow, to_id, f'Cannot disconnect: "{to_id}" not found')
            deps = [d for d in target.dependencies() if d != from_id]
            result = _replace_step(flow, to_id, depends_on=deps)
            return result, f'Disconnected "{_name_of(flow, from_id)}" -> "{target.name}"'

        case ChangeType(step_id=step_id, new_type=new_type):
            existing = flow.get_step(step_id)
            if existing is None:
                return _not_found(flow, step_id, f'Cannot change type: "{step_id}" not found')
            result = _replace_step(flow, step_id, type=new_type)
            return result, f'Changed "{existing.name}" from {existing.type} to {new_type}'

        case ReorderDeps(step_id=step_id, new_deps=new_deps):
            if flow.get_step(step_id) is None:
                return _not_found(flow, step_id, f'Cannot reorder "{step_id}": not found')
            result = _replace_step(flow, step_id, depends_on=list(new_deps))
            return result, f'Reordered dependencies for "{step_id}"'

        case Batch(mutations=mutations, description=description):
            # intermediate results are not validated, only the final flow
            current = flow
            for sub in mutations:
                current = apply_mutation(current, sub, validate=False).flow
            return current, description

    raise TypeError(f"Unknown mutation: {mutation!r}")


def apply_mutation(
    flow: FlowDefinition, mutation: FlowMutation, *, validate: bool = True
) -> MutationResult:
    """Apply ``mutation`` to ``flow`` and validate the result.

    A mutation that targets a missing step returns the original flow with a
    single ``mutation`` error.
    """
    outcome = _transform(flow, mutation)
    if isinstance(outcome, MutationResult):
        return outcome
    result, description = outcome
    errors = validate_flow(result) if validate else []
    return MutationResult(flow=result, valid=not errors, errors=errors, description=description)


def generate_step_id(base_name: str, existing_ids: Iterable[str]) -> str:
    """Slugify ``base_name`` and suffix it until it is unused."""
    existing = set(existing_ids)
    slug = re.sub(r"[^a-z0-9]+", "-", base_name.lower()).strip("-") or "step"
    if slug not in existing:
        return slug
    for i in range(2, 100):
        candidate = f"{slug}-{i}"
        if candidate not in existing:
            return candidate
    return f"{slug}-{int(time.time() * 1000)}"


_IO_CONTRACT_TYPES = (StepType.USER_INPUT, StepType.TRANSFORM, StepType.VALIDATE)


def create_blank_step(
    type: StepType,
    name: str,
    existing_ids: Iterable[str],
    depends_on: Optional[List[str]] = None,
) -> FlowStep:
    """Build a new step whose type contract is satisfied with placeholders."""
    fields: Dict[str, Any] = {}
    if type == StepType.LLM:
        fields["prompt"] = f"Complete the {name} step."
        fields["output_schema"] = [
            SchemaField(name="result", type=SchemaFieldType.OBJECT, description="Output")
        ]
    elif type in _IO_CONTRACT_TYPES:
        fields["input_schema"] = [
            SchemaField(name="input", type=SchemaFieldType.OBJECT, description="Input")
        ]
        fields["output_schema"] = [
            SchemaField(name="output", type=SchemaFieldType.OBJECT, description="Output")
        ]
    return FlowStep(
        id=generate_step_id(name, existing_ids),
        name=name,
        type=type,
        description=f"New {type} step",
        depends_on=list(depends_on or []),
        **fields,
    )
