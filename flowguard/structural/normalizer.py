# flowguard/structural/normalizer.py
"""
Graph normalizer.

Brings a canvas graph into canonical shape before validation and saving:
  - if_else configs: legacy `condition` string -> `conditions` list
  - edges pointing at unknown nodes are dropped
  - duplicate edges are collapsed (first occurrence wins)

Never raises; every anomaly becomes a warning.
"""
import copy
from typing import Any, Dict, List, Tuple

from flowguard.structural.diagnostics import NormalizedGraph
from flowguard.utils.graph import node_kind, node_data
from flowguard.utils.logger import get_logger

logger = get_logger("structural.normalizer")


def _coerce_conditions(conditions: Any) -> List[Any]:
    if isinstance(conditions, str):
        return [{"expression": conditions}] if conditions.strip() else []
    if isinstance(conditions, dict) and conditions.get("expression"):
        return [conditions]
    return []


def normalize_if_else_node(node: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate an if_else node's config to the `conditions` list form.
    The legacy `condition` key is left in place for older executors.
    """
    if node_kind(node) != "if_else":
        return node

    data = node_data(node)
    config = dict(data.get("config") or {})

    condition = config.get("condition")
    if condition and config.get("conditions") in (None, ""):
        text = condition if isinstance(condition, str) else str(condition)
        if text.strip():
            config["conditions"] = [{"expression": text}]

    if config.get("conditions") is not None and not isinstance(config["conditions"], list):
        config["conditions"] = _coerce_conditions(config["conditions"])

    return {**node, "data": {**data, "config": config}}


def _edge_key(edge: Dict[str, Any]) -> Tuple[Any, Any, str, str]:
    return (
        edge.get("source"),
        edge.get("target"),
        edge.get("sourceHandle") or "default",
        edge.get("targetHandle") or "default",
    )


def deduplicate_edges(edges: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    seen = set()
    unique = []
    for edge in edges:
        key = _edge_key(edge)
        if key in seen:
            continue
        seen.add(key)
        unique.append(edge)
    return unique


def remove_dangling_edges(nodes: List[Dict[str, Any]], edges: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    node_ids = {n.get("id") for n in nodes}
    return [e for e in edges if e.get("source") in node_ids and e.get("target") in node_ids]


def normalize_workflow_graph(nodes: List[Dict[str, Any]], edges: List[Dict[str, Any]]) -> NormalizedGraph:
    errors: List[str] = []
    warnings: List[str] = []

    nodes = [normalize_if_else_node(n) for n in copy.deepcopy(nodes)]
    edges = copy.deepcopy(edges)

    valid_edges = remove_dangling_edges(nodes, edges)
    removed = len(edges) - len(valid_edges)
    if removed > 0:
        warnings.append(f"Removed {removed} invalid edge(s) referencing non-existent nodes")
        logger.debug("dropped %d dangling edge(s)", removed)

    before = len(valid_edges)
    valid_edges = deduplicate_edges(valid_edges)
    duplicates = before - len(valid_edges)
    if duplicates > 0:
        warnings.append(f"Removed {duplicates} duplicate edge(s)")
        logger.debug("collapsed %d duplicate edge(s)", duplicates)

    return NormalizedGraph(nodes=nodes, edges=valid_edges, errors=errors, warnings=warnings)
