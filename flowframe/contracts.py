"""Core flow definition contracts for flowframe."""

from __future__ import annotations

import enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class StepType(enum.StrEnum):
    """Kinds of work a flow step can perform."""

    LLM = "llm"
    USER_INPUT = "user-input"
    TRANSFORM = "transform"
    VALIDATE = "validate"
    DISPLAY = "display"
    CHAT = "chat"
    EXTERNAL_INPUT = "external-input"


class SchemaFieldType(enum.StrEnum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"


class _FlowModel(BaseModel):
    """Accepts both camelCase (wire) and snake_case field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> Dict[str, Any]:
        """Dump using the camelCase flow document format."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class SchemaField(_FlowModel):
    """One named, typed field of a step's input or output contract."""

    name: str
    type: SchemaFieldType
    description: str
    example: Optional[str] = None


class FlowOutput(_FlowModel):
    """Describes the single logical output of a flow."""

    name: str
    type: SchemaFieldType
    description: str


class FlowPhase(_FlowModel):
    """User-facing progress group covering a range of steps."""

    id: str
    label: str
    step_ids: List[str] = Field(default_factory=list)


class FlowStep(_FlowModel):
    """A single unit of work in a flow.

    ``id``, ``name`` and ``description`` default to empty strings and
    ``type``/``depends_on`` to ``None`` so that incomplete definitions still
    parse and can be reported by the validator instead of failing on load.
    ``depends_on == []`` marks a root step.
    """

    id: str = ""
    name: str = ""
    type: Optional[StepType] = None
    subtype: Optional[str] = None
    description: str = ""
    prompt: Optional[str] = None
    user_message: Optional[str] = None
    model: Optional[str] = None
    input_schema: Optional[List[SchemaField]] = None
    output_schema: Optional[List[SchemaField]] = None
    depends_on: Optional[List[str]] = None
    parallel: bool = False

    @property
    def is_root(self) -> bool:
        return self.depends_on is not None and len(self.depends_on) == 0

    def dependencies(self) -> List[str]:
        """Declared dependencies, treating a missing list as empty."""
        return list(self.depends_on or [])


class FlowDefinition(_FlowModel):
    """A named, versioned, immutable collection of steps.

    Step order in ``steps`` is irrelevant to execution; the graph is
    defined entirely by each step's ``depends_on``.
    """

    id: str
    name: str
    description: str = ""
    version: str = "1.0.0"
    location: Optional[str] = None
    steps: List[FlowStep] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    output: Optional[FlowOutput] = None
    icon: Optional[str] = None
    voice_triggers: List[str] = Field(default_factory=list)
    phases: List[FlowPhase] = Field(default_factory=list)
    website_url: Optional[str] = None

    def get_step(self, step_id: str) -> Optional[FlowStep]:
        """Find a step by id (first match when ids are duplicated)."""
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def step_ids(self) -> List[str]:
        return [step.id for step in self.steps]

    def roots(self) -> List[FlowStep]:
        """Steps with an empty dependency list."""
        return [step for step in self.steps if step.is_root]
