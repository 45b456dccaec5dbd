# flowguard/pipeline.py
"""
Save/run gate: shape check -> auto-fix -> normalize -> validate -> node inputs.

`prepare_workflow` runs the synchronous structural stages; `check_workflow`
adds the registry-backed input validation on top.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from flowguard.inputs.validator import validate_node_inputs
from flowguard.structural.autofix import auto_fix_workflow
from flowguard.structural.diagnostics import INVALID_GRAPH_SHAPE, ValidationError
from flowguard.structural.normalizer import normalize_workflow_graph
from flowguard.structural.schema import check_graph_shape
from flowguard.structural.validator import validate_workflow_graph
from flowguard.utils.logger import get_logger

logger = get_logger("pipeline")


@dataclass
class PipelineResult:
    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]]
    valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def graph(self) -> Dict[str, Any]:
        return {"nodes": self.nodes, "edges": self.edges}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": list(self.warnings),
            "graph": self.graph(),
        }


def prepare_workflow(workflow: Dict[str, Any], fix: bool = True) -> PipelineResult:
    shape_problems = check_graph_shape(workflow)
    if shape_problems:
        errors = [ValidationError(INVALID_GRAPH_SHAPE, f"Malformed workflow: {p}") for p in shape_problems]
        nodes = workflow.get("nodes") if isinstance(workflow, dict) else None
        edges = workflow.get("edges") if isinstance(workflow, dict) else None
        return PipelineResult(
            nodes=nodes if isinstance(nodes, list) else [],
            edges=edges if isinstance(edges, list) else [],
            valid=False,
            errors=errors,
        )

    if fix:
        workflow = auto_fix_workflow(workflow)

    normalized = normalize_workflow_graph(workflow["nodes"], workflow["edges"])
    checked = validate_workflow_graph(normalized.nodes, normalized.edges)

    warnings = normalized.warnings + checked.warnings
    logger.debug(
        "structural check: %d node(s), %d edge(s), %d error(s), %d warning(s)",
        len(normalized.nodes), len(normalized.edges), len(checked.errors), len(warnings),
    )
    return PipelineResult(
        nodes=normalized.nodes,
        edges=normalized.edges,
        valid=checked.valid,
        errors=list(checked.errors),
        warnings=warnings,
    )


async def check_workflow(
    workflow: Dict[str, Any],
    registry=None,
    fix: bool = True,
    check_inputs: bool = True,
) -> PipelineResult:
    result = prepare_workflow(workflow, fix=fix)
    if not check_inputs or any(e.code == INVALID_GRAPH_SHAPE for e in result.errors):
        return result

    inputs = await validate_node_inputs(result.nodes, registry=registry)
    result.errors.extend(inputs.errors)
    result.warnings.extend(inputs.warnings)
    result.valid = not result.errors
    return result
