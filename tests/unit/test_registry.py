"""Tests for the flow registry and document loader."""

import logging
from pathlib import Path

import pytest

from flowframe.config import FlowframeConfig, RegistryConfig
from flowframe.contracts import FlowDefinition, FlowStep
from flowframe.exceptions import FlowNotFoundError
from flowframe.registry import (
    FlowRegistry,
    load_flow_directory,
    load_flow_file,
    load_registry,
    parse_flows,
)

FLOWS_DIR = Path(__file__).parent.parent / "fixtures" / "flows"


def _flow(flow_id, cyclic=False):
    deps_a = ["b"] if cyclic else []
    return FlowDefinition(
        id=flow_id,
        name=flow_id.title(),
        steps=[
            FlowStep(id="a", name="A", type="display", description="First", depends_on=deps_a),
            FlowStep(id="b", name="B", type="display", description="Second", depends_on=["a"]),
        ],
    )


def test_registry_publishes_only_valid_flows(caplog):
    with caplog.at_level(logging.ERROR):
        registry = FlowRegistry([_flow("good"), _flow("cyclic", cyclic=True)])

    assert registry.flow_ids() == ["good"]
    assert "good" in registry
    assert "cyclic" not in registry
    assert len(registry) == 1
    assert registry.get_flow_by_id("cyclic") is None
    assert [e.invariant for e in registry.rejected["cyclic"]] == ["I2", "I1", "I3", "I3"]
    assert 'Flow "cyclic" failed validation (4 errors):' in caplog.text


def test_require_raises_same_error_for_unknown_and_invalid():
    registry = FlowRegistry([_flow("cyclic", cyclic=True)])

    with pytest.raises(FlowNotFoundError) as invalid:
        registry.require("cyclic")
    with pytest.raises(FlowNotFoundError) as unknown:
        registry.require("never-defined")

    assert str(invalid.value) == "Flow 'cyclic' not found in registry"
    assert type(invalid.value) is type(unknown.value)
    assert isinstance(unknown.value, KeyError)


def test_registry_keeps_candidate_order_and_first_duplicate():
    first = _flow("dup")
    second = first.model_copy(update={"name": "Second copy"})
    registry = FlowRegistry([_flow("z"), first, _flow("a"), second])

    assert [flow.id for flow in registry.flows] == ["z", "dup", "a"]
    assert registry.require("dup").name == "Dup"


def test_active_flows_filter():
    registry = FlowRegistry([_flow("one"), _flow("two")], active_ids=["two", "missing"])

    assert [flow.id for flow in registry.active_flows()] == ["two"]
    assert registry.is_active("two")
    assert not registry.is_active("one")
    assert not registry.is_active("missing")
    assert [flow.id for flow in FlowRegistry([_flow("one")]).active_flows()] == ["one"]


def test_parse_flows_accepts_single_list_and_wrapped_documents():
    doc = _flow("x").to_wire()
    assert [f.id for f in parse_flows(doc)] == ["x"]
    assert [f.id for f in parse_flows([doc, doc])] == ["x", "x"]
    assert [f.id for f in parse_flows({"flows": [doc]})] == ["x"]
    assert parse_flows(None) == []
    with pytest.raises(ValueError):
        parse_flows("just text")


def test_unknown_document_keys_are_ignored():
    doc = {**_flow("x").to_wire(), "componentPath": "flows/x.tsx"}

    (flow,) = parse_flows(doc)

    assert "componentPath" not in flow.to_wire()
    assert flow == _flow("x")


def test_load_flow_file_yaml_and_json():
    research = load_flow_file(FLOWS_DIR / "research.yaml")
    assert [flow.id for flow in research] == ["research", "greeting"]
    assert research[0].version == "1.2.0"
    assert research[0].get_step("facts").parallel is True

    extra = load_flow_file(FLOWS_DIR / "extra.json")
    assert [flow.id for flow in extra] == ["extra"]


def test_load_flow_file_skips_malformed(caplog, tmp_path):
    broken_yaml = tmp_path / "bad.yaml"
    broken_yaml.write_text("id: [unclosed\n")

    with caplog.at_level(logging.ERROR, logger="flowframe.registry.loader"):
        assert load_flow_file(FLOWS_DIR / "unknown_type.yaml") == []
        assert load_flow_file(broken_yaml) == []
        assert load_flow_file(tmp_path / "missing.yaml") == []

    assert caplog.text.count("Skipping flow file") == 3


def test_load_flow_directory_sorted_and_filtered():
    flows = load_flow_directory(FLOWS_DIR)
    assert [flow.id for flow in flows] == ["broken", "extra", "research", "greeting"]


def test_load_registry_from_paths():
    registry = load_registry([FLOWS_DIR], config=FlowframeConfig())
    assert registry.flow_ids() == ["extra", "research", "greeting"]
    assert "broken" in registry.rejected


def test_load_registry_uses_configured_paths():
    config = FlowframeConfig(
        registry=RegistryConfig(
            paths=[str(FLOWS_DIR / "research.yaml")], active_ids=["greeting"]
        )
    )
    registry = load_registry(config=config)
    assert registry.flow_ids() == ["research", "greeting"]
    assert [flow.id for flow in registry.active_flows()] == ["greeting"]
