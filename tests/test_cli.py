# tests/test_cli.py

import json

import pandas as pd
import pytest
import yaml
from typer.testing import CliRunner

from flowguard.cli import app

runner = CliRunner()

VALID = {
    "nodes": [
        {"id": "t", "type": "manual_trigger"},
        {"id": "cond", "type": "if_else", "data": {"config": {"conditions": [{"expression": "x"}]}}},
    ],
    "edges": [{"id": "e1", "source": "t", "target": "cond"}],
}

INVALID = {
    "nodes": [{"id": "a", "type": "log_output"}, {"id": "b", "type": "log_output"}],
    "edges": [{"id": "e1", "source": "a", "target": "b"}],
}


@pytest.fixture(autouse=True)
def no_remote_registry(monkeypatch):
    monkeypatch.delenv("FLOWGUARD_SCHEMA_URL", raising=False)


def write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_check_valid_workflow(tmp_path):
    wf = write(tmp_path / "wf.json", VALID)
    report = tmp_path / "out" / "report.json"

    result = runner.invoke(app, ["check", "-i", str(wf), "--report", str(report)])

    assert result.exit_code == 0, result.output
    assert "Valid:    True" in result.output
    assert "Nodes:    4" in result.output
    payload = json.loads(report.read_text(encoding="utf-8"))
    assert payload["valid"] is True
    assert payload["input"] == str(wf)


def test_check_invalid_workflow_exits_1(tmp_path):
    wf = write(tmp_path / "wf.json", INVALID)

    result = runner.invoke(app, ["check", "-i", str(wf)])

    assert result.exit_code == 1
    assert "- NO_TRIGGER: Workflow must have exactly one trigger node" in result.output


def test_check_no_fix_reads_yaml(tmp_path):
    wf = tmp_path / "wf.yaml"
    wf.write_text(yaml.safe_dump(VALID), encoding="utf-8")

    result = runner.invoke(app, ["check", "-i", str(wf), "--no-fix", "--skip-inputs"])

    assert result.exit_code == 0, result.output
    assert "Nodes:    2" in result.output
    assert 'If/Else node "cond"' in result.output


def test_fix_writes_repaired_graph(tmp_path):
    wf = write(tmp_path / "wf.json", VALID)
    out = tmp_path / "fixed.json"

    result = runner.invoke(app, ["fix", "-i", str(wf), "-o", str(out)])

    assert result.exit_code == 0, result.output
    assert "2 node(s) added" in result.output
    fixed = json.loads(out.read_text(encoding="utf-8"))
    handles = sorted(e["sourceHandle"] for e in fixed["edges"] if e["source"] == "cond")
    assert handles == ["false", "true"]


def test_fix_rejects_malformed_input(tmp_path):
    wf = write(tmp_path / "wf.json", {"nodes": "nope"})

    result = runner.invoke(app, ["fix", "-i", str(wf), "-o", str(tmp_path / "x.json")])

    assert result.exit_code != 0
    assert not (tmp_path / "x.json").exists()


def test_bench_writes_csv(tmp_path):
    for name, data in (("A01", VALID), ("A02", INVALID), ("A03", {"rows": []})):
        (tmp_path / name).mkdir()
        write(tmp_path / name / "workflow.json", data)
    out = tmp_path / "results" / "bench.csv"

    result = runner.invoke(app, ["bench", "--glob", str(tmp_path / "*" / "workflow.json"), "--out", str(out)])

    assert result.exit_code == 0, result.output
    assert "[skip]" in result.output
    df = pd.read_csv(out)
    assert list(df["id"]) == ["A01", "A02"]
    assert list(df["valid"]) == [True, False]
    assert df.loc[1, "codes"] == "NO_TRIGGER"
