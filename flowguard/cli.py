#!/usr/bin/env python3
# flowguard/cli.py

import asyncio
import glob as _glob
import logging
from pathlib import Path
from typing import Optional

import typer

from flowguard.inputs.registry import HttpSchemaRegistry
from flowguard.pipeline import PipelineResult, check_workflow
from flowguard.structural.autofix import auto_fix_workflow
from flowguard.structural.normalizer import normalize_workflow_graph
from flowguard.structural.schema import check_graph_shape
from flowguard.utils.io import load_workflow, save_workflow, write_json
from flowguard.utils.logger import set_level

app = typer.Typer(help="FlowGuard CLI - validate, normalize and repair workflow graphs")


def _registry(schema_url: Optional[str]):
    return HttpSchemaRegistry(schema_url) if schema_url else None


async def _run_check(wf, schema_url: Optional[str], fix: bool, check_inputs: bool) -> PipelineResult:
    registry = _registry(schema_url)
    try:
        return await check_workflow(wf, registry=registry, fix=fix, check_inputs=check_inputs)
    finally:
        if registry is not None:
            await registry.aclose()


@app.command()
def check(
    input: Path = typer.Option(..., "--input", "-i", exists=True, readable=True, help="Workflow JSON/YAML file"),
    no_fix: bool = typer.Option(False, "--no-fix", help="Validate as-is, without the if/else auto-fix pass"),
    skip_inputs: bool = typer.Option(False, "--skip-inputs", help="Skip node config validation"),
    schema_url: Optional[str] = typer.Option(
        None, "--schema-url", envvar="FLOWGUARD_SCHEMA_URL", help="Base URL of the node schema registry"
    ),
    report: Optional[Path] = typer.Option(None, "--report", help="Write a JSON report to this path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """
    Run the full save gate on one workflow and print every error and warning.
    Exits with status 1 when the workflow would be rejected.
    """
    if verbose:
        set_level(logging.DEBUG)

    wf = load_workflow(input)
    result = asyncio.run(_run_check(wf, schema_url, fix=not no_fix, check_inputs=not skip_inputs))

    print(f"Valid:    {result.valid}")
    print(f"Nodes:    {len(result.nodes)}")
    print(f"Edges:    {len(result.edges)}")

    if result.errors:
        print("Errors:")
        for e in result.errors:
            where = f" [{e.node_id}]" if e.node_id else ""
            print(f"- {e.code}{where}: {e.message}")
    if result.warnings:
        print("Warnings:")
        for w in result.warnings:
            print(f"- {w}")

    if report is not None:
        payload = {"input": str(input), **result.to_dict()}
        write_json(report, payload)
        print(f"[ok] wrote report to {report}")

    if not result.valid:
        raise typer.Exit(code=1)


@app.command()
def fix(
    input: Path = typer.Option(..., "--input", "-i", exists=True, readable=True, help="Workflow JSON/YAML file"),
    out: Path = typer.Option(..., "--out", "-o", help="Where to write the repaired workflow"),
    no_normalize: bool = typer.Option(False, "--no-normalize", help="Only run the if/else auto-fix pass"),
):
    """
    Repair if/else branches (and normalize edges/configs) and write the result.
    """
    wf = load_workflow(input)
    problems = check_graph_shape(wf)
    if problems:
        for p in problems:
            print(f"- {p}")
        raise typer.BadParameter(f"{input} is not a {{nodes, edges}} workflow", param_hint="--input")

    fixed = auto_fix_workflow(wf)
    if not no_normalize:
        normalized = normalize_workflow_graph(fixed["nodes"], fixed["edges"])
        fixed = {**fixed, "nodes": normalized.nodes, "edges": normalized.edges}
        for w in normalized.warnings:
            print(f"- {w}")

    added = len(fixed["nodes"]) - len(wf["nodes"])
    save_workflow(out, fixed)
    print(f"[ok] wrote {out} ({added} node(s) added, {len(fixed['edges'])} edge(s))")


@app.command()
def bench(
    glob: str = typer.Option("bench/graph/*/workflow.json", "--glob", help="Glob for workflow files"),
    out: Path = typer.Option(Path("experiments/results/flowguard.csv"), "--out", help="CSV path to write results"),
    no_fix: bool = typer.Option(False, "--no-fix", help="Validate as-is, without the auto-fix pass"),
    skip_inputs: bool = typer.Option(False, "--skip-inputs", help="Skip node config validation"),
    schema_url: Optional[str] = typer.Option(
        None, "--schema-url", envvar="FLOWGUARD_SCHEMA_URL", help="Base URL of the node schema registry"
    ),
):
    """
    Batch-check workflow files and export a CSV report.
    """
    import pandas as pd

    rows = []
    for fp_str in sorted(_glob.glob(glob)):
        fp = Path(fp_str)
        wf = load_workflow(fp)

        if not isinstance(wf, dict) or "nodes" not in wf:
            print(f"[skip] {fp} does not look like a workflow (missing 'nodes'); skipping")
            continue

        result = asyncio.run(_run_check(wf, schema_url, fix=not no_fix, check_inputs=not skip_inputs))
        rows.append({
            "id": fp.parent.name if fp.name == "workflow.json" else fp.stem,
            "valid": result.valid,
            "nodes": len(result.nodes),
            "edges": len(result.edges),
            "errors": len(result.errors),
            "warnings": len(result.warnings),
            "codes": ";".join(sorted({e.code for e in result.errors})),
        })

    out.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame(rows, columns=["id", "valid", "nodes", "edges", "errors", "warnings", "codes"])
    df.to_csv(out, index=False)
    print(f"[ok] wrote {out} ({len(df)} workflow(s), {int(df['valid'].sum()) if len(df) else 0} valid)")


if __name__ == "__main__":
    app()
