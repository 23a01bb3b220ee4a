from pathlib import Path

from typer.testing import CliRunner

from flowframe.cli import app

FLOWS_DIR = Path(__file__).parent.parent / "fixtures" / "flows"


def test_validate_reports_each_flow_and_fails_on_invalid():
    runner = CliRunner()
    result = runner.invoke(app, ["flow", "validate", str(FLOWS_DIR)])
    assert (
        result.exit_code == 1
    ), f"Expected exit code 1 for invalid flow, got {result.exit_code}. Output: {result.stdout}"
    output = result.stdout
    assert "FAIL broken" in output, f"Broken flow not reported: {output}"
    assert "  [I2]: Flow has no root steps (steps with empty dependsOn)" in output
    assert "  [I1]: Flow contains a cycle; not a valid DAG" in output
    for flow_id in ("extra", "research", "greeting"):
        assert f"OK {flow_id}" in output, f"Flow {flow_id} not reported OK: {output}"


def test_validate_valid_file_exits_zero():
    runner = CliRunner()
    result = runner.invoke(app, ["flow", "validate", str(FLOWS_DIR / "research.yaml")])
    assert (
        result.exit_code == 0
    ), f"Command failed with exit code {result.exit_code}. Output: {result.stdout}"
    assert result.stdout.splitlines() == ["OK research", "OK greeting"]


def test_validate_missing_path(tmp_path):
    runner = CliRunner()
    result = runner.invoke(app, ["flow", "validate", str(tmp_path / "nope")])
    assert result.exit_code == 1
    assert "Specified path does not exist" in result.stdout

    empty = runner.invoke(app, ["flow", "validate", str(tmp_path)])
    assert empty.exit_code == 1
    assert "No flows found" in empty.stdout


def test_list_shows_valid_flows_only():
    runner = CliRunner()
    result = runner.invoke(app, ["flow", "list", str(FLOWS_DIR)])
    assert (
        result.exit_code == 0
    ), f"Command failed with exit code {result.exit_code}. Output: {result.stdout}"
    listed = [line for line in result.stdout.splitlines() if "\t" in line]
    assert listed == [
        "extra\t1.0.0\t1 steps",
        "research\t1.2.0\t5 steps",
        "greeting\t1.0.0\t1 steps",
    ]


def test_show_lists_steps_in_order_and_handles_missing():
    runner = CliRunner()
    result = runner.invoke(app, ["flow", "show", "research", str(FLOWS_DIR)])
    assert (
        result.exit_code == 0
    ), f"Command failed with exit code {result.exit_code}. Output: {result.stdout}"
    lines = result.stdout.splitlines()
    assert "Flow research (1.2.0): Research" in lines
    assert [line for line in lines if line.startswith("- ")] == [
        "- topic [user-input] depth 0",
        "- facts [llm] depth 1 <- topic (parallel)",
        "- angles [llm] depth 1 <- topic (parallel)",
        "- summary [llm] depth 2 <- facts, angles",
        "- show [display] depth 3 <- summary",
    ]

    missing = runner.invoke(app, ["flow", "show", "broken", str(FLOWS_DIR)])
    assert (
        missing.exit_code == 1
    ), f"Expected exit code 1 for invalid flow, got {missing.exit_code}. Output: {missing.stdout}"
    assert "Flow not found" in missing.stdout


def test_list_uses_configured_paths(tmp_path, monkeypatch):
    config_path = tmp_path / "flowframe.yaml"
    config_path.write_text(f"registry:\n  paths:\n    - {FLOWS_DIR / 'extra.json'}\n")
    monkeypatch.setenv("FLOWFRAME_CONFIG", str(config_path))

    runner = CliRunner()
    result = runner.invoke(app, ["flow", "list"])
    assert result.exit_code == 0
    assert result.stdout.strip() == "extra\t1.0.0\t1 steps"
