"""Command line interface for inspecting flow definitions."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from flowframe.graph import compute_depths, topological_order
from flowframe.registry import FlowRegistry, load_flows, load_registry
from flowframe.validation import validate_flow

app = typer.Typer(help="CLI for flowframe flow definitions")

flow_app = typer.Typer(help="Commands for validating and inspecting flows")

app.add_typer(flow_app, name="flow")


@app.callback()
def main() -> None:
    """flowframe CLI entry point."""
    pass


def _registry_for(path: Optional[Path]) -> FlowRegistry:
    if path is None:
        return load_registry()
    return load_registry([path])


@flow_app.command("validate")
def flow_validate(path: Path) -> None:
    """
    Validate every flow definition in a file or directory.

    Each flow is reported as OK or FAIL; failures list every invariant
    violation found. Exits with code 1 when any flow fails.

    Example:
        flowframe flow validate ./flows
        # Output: OK research-flow
        #         FAIL broken-flow
        #           [I1]: Flow contains a cycle; not a valid DAG
    """
    if not path.exists():
        typer.secho("Specified path does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    flows = load_flows([path])
    if not flows:
        typer.echo("No flows found")
        raise typer.Exit(code=1)

    failed = 0
    for flow in flows:
        errors = validate_flow(flow)
        if not errors:
            typer.echo(f"OK {flow.id}")
            continue
        failed += 1
        typer.secho(f"FAIL {flow.id}", fg=typer.colors.RED)
        for error in errors:
            typer.echo(f"  {error.format()}")

    if failed:
        raise typer.Exit(code=1)


@flow_app.command("list")
def flow_list(path: Optional[Path] = typer.Argument(None)) -> None:
    """
    List valid flows with their version and step count.

    Without a path the registry paths from the configuration are used.

    Example:
        flowframe flow list ./flows
        # Output: research-flow    1.0.0    5 steps
    """
    registry = _registry_for(path)
    if not len(registry):
        typer.echo("No flows found")
        return
    for flow in registry:
        typer.echo(f"{flow.id}\t{flow.version}\t{len(flow.steps)} steps")


@flow_app.command("show")
def flow_show(flow_id: str, path: Optional[Path] = typer.Argument(None)) -> None:
    """
    Show the steps of a flow in execution order.

    Example:
        flowframe flow show research-flow ./flows
        # Output: Flow research-flow (1.0.0): Research
        #         - topic [user-input] depth 0
        #         - summary [llm] depth 1 <- topic
    """
    registry = _registry_for(path)
    flow = registry.get_flow_by_id(flow_id)
    if flow is None:
        typer.echo("Flow not found")
        raise typer.Exit(code=1)

    typer.echo(f"Flow {flow.id} ({flow.version}): {flow.name}")
    if flow.description:
        typer.echo(f"  {flow.description}")
    depths = compute_depths(flow.steps)
    for step_id in topological_order(flow.steps):
        step = flow.get_step(step_id)
        deps = step.dependencies()
        typer.echo(
            f"- {step.id} [{step.type}] depth {depths[step.id]}"
            + (f" <- {', '.join(deps)}" if deps else "")
            + (" (parallel)" if step.parallel else "")
        )
