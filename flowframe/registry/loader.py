"""Load flow definitions from YAML or JSON documents."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List

import yaml
from pydantic import ValidationError

from ..contracts import FlowDefinition

logger = logging.getLogger(__name__)

FLOW_FILE_SUFFIXES = (".yaml", ".yml", ".json")


def _read_document(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


def parse_flows(document: Any) -> List[FlowDefinition]:
    """Turn a parsed document into flow definitions.

    A document is either a single flow mapping, a list of flows, or a
    mapping with a ``flows`` list.
    """
    if document is None:
        return []
    if isinstance(document, dict) and "flows" in document:
        document = document["flows"]
    if isinstance(document, dict):
        document = [document]
    if not isinstance(document, list):
        raise ValueError("Flow document must be a mapping or a list of mappings")
    return [FlowDefinition.model_validate(item) for item in document]


def load_flow_file(path: str | Path) -> List[FlowDefinition]:
    """Load the flows defined in ``path``.

    Unreadable or malformed files are logged and yield no flows, so one bad
    document cannot block startup.
    """
    path = Path(path)
    try:
        flows = parse_flows(_read_document(path))
    except (OSError, ValueError, yaml.YAMLError, ValidationError) as exc:
        logger.error(f"Skipping flow file {path}: {exc}")
        return []
    logger.debug(f"Loaded {len(flows)} flow(s) from {path}")
    return flows


def load_flow_directory(path: str | Path) -> List[FlowDefinition]:
    """Load every flow document directly inside ``path``, in name order."""
    directory = Path(path)
    flows: List[FlowDefinition] = []
    for file in sorted(directory.iterdir()):
        if file.is_file() and file.suffix in FLOW_FILE_SUFFIXES:
            flows.extend(load_flow_file(file))
    return flows


def load_flows(paths: Iterable[str | Path]) -> List[FlowDefinition]:
    """Load flows from a mix of files and directories."""
    flows: List[FlowDefinition] = []
    for entry in paths:
        entry = Path(entry).expanduser()
        if entry.is_dir():
            flows.extend(load_flow_directory(entry))
        elif entry.exists():
            flows.extend(load_flow_file(entry))
        else:
            logger.warning(f"Flow path does not exist: {entry}")
    return flows
