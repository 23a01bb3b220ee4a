"""flowframe: validated DAG flows with tracked, LLM-backed execution."""

from .contracts import FlowDefinition, FlowStep, SchemaField, StepType
from .execution import ExecutionStore, ExecutionTracker, FlowExecution, StepStatus
from .llm import LLMClient, get_llm_client
from .registry import FlowRegistry, load_registry
from .runner import FlowRunner, LLMStepHandler
from .validation import FlowValidationError, validate_flow

__version__ = "0.1.0"
__all__ = [
    "FlowDefinition",
    "FlowStep",
    "SchemaField",
    "StepType",
    "FlowValidationError",
    "validate_flow",
    "FlowRegistry",
    "load_registry",
    "ExecutionStore",
    "ExecutionTracker",
    "FlowExecution",
    "StepStatus",
    "LLMClient",
    "get_llm_client",
    "FlowRunner",
    "LLMStepHandler",
]
