from __future__ import annotations

import os
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field

from .constants import (
    BACKOFF_BASE_MS,
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_LLM_BASE_URL,
    DEFAULT_LLM_ENDPOINT,
    DEFAULT_LLM_TIMEOUT,
    DEFAULT_MODEL,
    MAX_JSON_RETRIES,
)


class LLMConfig(BaseModel):
    """Configuration for the LLM HTTP boundary."""

    base_url: str = DEFAULT_LLM_BASE_URL
    endpoint: str = DEFAULT_LLM_ENDPOINT
    model: str = DEFAULT_MODEL
    timeout: float = DEFAULT_LLM_TIMEOUT
    max_retries: int = MAX_JSON_RETRIES
    backoff_base_ms: int = BACKOFF_BASE_MS


class RegistryConfig(BaseModel):
    """Where flow definitions are loaded from."""

    paths: List[str] = Field(default_factory=list)
    active_ids: Optional[List[str]] = None


class StoreConfig(BaseModel):
    """Execution store settings."""

    history_limit: int = DEFAULT_HISTORY_LIMIT


class FlowframeConfig(BaseModel):
    """Top-level configuration model."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)


def load_config(path: Optional[str] = None) -> FlowframeConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to FLOWFRAME_CONFIG env
            variable or 'flowframe.yaml' in the current directory.
    """

    config_path = path or os.getenv("FLOWFRAME_CONFIG", "flowframe.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = FlowframeConfig(**data)
    else:
        config = FlowframeConfig()

    env_base_url = os.getenv("FLOWFRAME_LLM_BASE_URL")
    if env_base_url:
        config.llm.base_url = env_base_url
    env_model = os.getenv("FLOWFRAME_LLM_MODEL")
    if env_model:
        config.llm.model = env_model
    return config
