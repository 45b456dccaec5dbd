# tests/test_graph_bench.py

import asyncio
import json
from pathlib import Path

import pytest

from flowguard.inputs.registry import StaticSchemaRegistry
from flowguard.pipeline import check_workflow

BENCH_DIR = Path(__file__).resolve().parent.parent / "bench" / "graph"


@pytest.mark.parametrize("case_dir", sorted(BENCH_DIR.glob("G*")), ids=lambda p: p.name)
def test_graph_bench(case_dir: Path):
    """
    Graph benchmark:
    - load workflow.json
    - load expect.json
    - run the full save gate (auto-fix, normalize, validate, node inputs)
    - check coarse-grained properties (validity, error codes, sizes)
    """
    wf_file = case_dir / "workflow.json"
    exp_file = case_dir / "expect.json"

    assert wf_file.exists(), f"Missing workflow.json in {case_dir}"
    assert exp_file.exists(), f"Missing expect.json in {case_dir}"

    with wf_file.open("r", encoding="utf-8") as f:
        workflow = json.load(f)

    with exp_file.open("r", encoding="utf-8") as f:
        expect = json.load(f)

    result = asyncio.run(check_workflow(workflow, registry=StaticSchemaRegistry()))
    asserts = expect.get("assert") or {}

    # ---- valid ----
    if "valid" in asserts:
        assert result.valid == asserts["valid"], (
            f"{case_dir.name}: valid={result.valid}, errors={[e.to_dict() for e in result.errors]}"
        )

    # ---- codes (set of error codes, exact) ----
    if "codes" in asserts:
        got = sorted({e.code for e in result.errors})
        assert got == sorted(asserts["codes"]), f"{case_dir.name}: codes={got}, expected={asserts['codes']}"

    # ---- sizes after repair/normalization ----
    if "n_nodes" in asserts:
        assert len(result.nodes) == asserts["n_nodes"], f"{case_dir.name}: n_nodes={len(result.nodes)}"
    if "n_edges" in asserts:
        assert len(result.edges) == asserts["n_edges"], f"{case_dir.name}: n_edges={len(result.edges)}"
    if "n_warnings" in asserts:
        assert len(result.warnings) == asserts["n_warnings"], f"{case_dir.name}: warnings={result.warnings}"

    # the input graph file must never be touched by the pipeline
    with wf_file.open("r", encoding="utf-8") as f:
        assert json.load(f) == workflow
