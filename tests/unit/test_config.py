"""Tests for configuration loading."""

from flowframe.config import load_config
from flowframe.llm import get_llm_client


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
llm:
  base_url: http://llm.internal:8080
  model: test-model
  max_retries: 5
registry:
  paths: [./flows]
  active_ids: [research]
store:
  history_limit: 10
"""
    )
    monkeypatch.setenv("FLOWFRAME_CONFIG", str(config_path))
    monkeypatch.delenv("FLOWFRAME_LLM_BASE_URL", raising=False)
    monkeypatch.delenv("FLOWFRAME_LLM_MODEL", raising=False)

    config = load_config()
    assert config.llm.base_url == "http://llm.internal:8080"
    assert config.llm.model == "test-model"
    assert config.llm.max_retries == 5
    assert config.llm.endpoint == "/api/llm/chat"
    assert config.registry.paths == ["./flows"]
    assert config.registry.active_ids == ["research"]
    assert config.store.history_limit == 10


def test_load_config_defaults_when_file_missing(tmp_path, monkeypatch):
    monkeypatch.delenv("FLOWFRAME_LLM_BASE_URL", raising=False)
    monkeypatch.delenv("FLOWFRAME_LLM_MODEL", raising=False)

    config = load_config(str(tmp_path / "absent.yaml"))
    assert config.llm.model == "gemini-2.5-flash"
    assert config.llm.max_retries == 3
    assert config.registry.paths == []
    assert config.registry.active_ids is None
    assert config.store.history_limit == 50


def test_env_overrides_file(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("llm:\n  model: from-file\n")
    monkeypatch.setenv("FLOWFRAME_LLM_MODEL", "from-env")
    monkeypatch.setenv("FLOWFRAME_LLM_BASE_URL", "http://env-host")

    config = load_config(str(config_path))
    assert config.llm.model == "from-env"
    assert config.llm.base_url == "http://env-host"


def test_empty_config_file(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("")
    monkeypatch.delenv("FLOWFRAME_LLM_MODEL", raising=False)

    assert load_config(str(config_path)).llm.model == "gemini-2.5-flash"


def test_get_llm_client_uses_config(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
llm:
  base_url: http://confighost:9000/
  endpoint: /v1/chat
  model: configured
"""
    )
    monkeypatch.setenv("FLOWFRAME_CONFIG", str(config_path))
    monkeypatch.delenv("FLOWFRAME_LLM_BASE_URL", raising=False)
    monkeypatch.delenv("FLOWFRAME_LLM_MODEL", raising=False)

    client = get_llm_client()
    assert client.url == "http://confighost:9000/v1/chat"
    assert client.default_model == "configured"
