"""Flow registry and flow document loading."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from ..config import FlowframeConfig, load_config
from .loader import load_flow_directory, load_flow_file, load_flows, parse_flows
from .registry import FlowRegistry


def load_registry(
    paths: Optional[Iterable[str | Path]] = None,
    config: Optional[FlowframeConfig] = None,
) -> FlowRegistry:
    """Build a registry from flow documents.

    Explicit ``paths`` win; otherwise the configured registry paths are used.
    """
    config = config or load_config()
    if paths is None:
        paths = config.registry.paths
    return FlowRegistry(load_flows(paths), active_ids=config.registry.active_ids)


__all__ = [
    "FlowRegistry",
    "load_flow_directory",
    "load_flow_file",
    "load_flows",
    "load_registry",
    "parse_flows",
]
