# flowguard/utils/graph.py
from typing import Dict, Any, List, Optional

import networkx as nx

from flowguard.inputs.registry import node_category

KNOWN_TRIGGER_TYPES = (
    "manual_trigger",
    "webhook",
    "schedule",
    "chat_trigger",
    "form_trigger",
    "form",
    "workflow_trigger",
    "error_trigger",
    "interval",
    "gmail_trigger",
    "slack_trigger",
    "discord_trigger",
)

TRIGGER_CATEGORIES = ("triggers", "trigger")


def node_data(node: Dict[str, Any]) -> Dict[str, Any]:
    data = node.get("data")
    return data if isinstance(data, dict) else {}


def node_kind(node: Dict[str, Any]) -> str:
    """
    Kind tag of a node. Canvas nodes keep the real kind in data.type and a
    component name (e.g. "custom") in the top-level type.
    """
    return str(node_data(node).get("type") or node.get("type") or "")


def node_label(node: Dict[str, Any]) -> str:
    return str(node_data(node).get("label") or node.get("id"))


def node_config(node: Dict[str, Any]) -> Dict[str, Any]:
    config = node_data(node).get("config")
    return config if isinstance(config, dict) else {}


def _category(node: Dict[str, Any]) -> str:
    category = node_data(node).get("category") or node_category(node_kind(node)) or ""
    return str(category).lower()


def find_trigger_nodes(nodes: List[dict]) -> List[dict]:
    """
    Trigger candidates, in input order. Three tiers are tried in turn and the
    first non-empty one wins:
      1) trigger category (node data, else the node registry)
      2) kind containing "trigger"
      3) known trigger kinds
    """
    tiers = (
        lambda n: _category(n) in TRIGGER_CATEGORIES,
        lambda n: "trigger" in node_kind(n),
        lambda n: node_kind(n) in KNOWN_TRIGGER_TYPES,
    )
    for matches in tiers:
        found = [n for n in nodes if matches(n)]
        if found:
            return found
    return []


def build_graph(nodes: List[dict], edges: List[dict]) -> nx.MultiDiGraph:
    """
    Build a multigraph from canvas nodes and edges. Parallel edges are kept so
    degree counts match the raw edge list; each edge carries its canvas id.
    Edge endpoints that are not in `nodes` are added as bare graph nodes.
    """
    G = nx.MultiDiGraph()
    for n in nodes:
        nid = n.get("id")
        if nid is None:
            continue
        G.add_node(nid, kind=node_kind(n))

    for e in edges:
        src = e.get("source")
        tgt = e.get("target")
        if src is None or tgt is None:
            continue
        G.add_edge(src, tgt, id=e.get("id"), source_handle=e.get("sourceHandle"))
    return G


def reachable_from(G: nx.MultiDiGraph, root: Any) -> set:
    """Node ids reachable from root (root included), breadth-first."""
    if root not in G:
        return {root}
    return {root} | {v for _, v in nx.bfs_edges(G, root)}


def first_cycle(G: nx.MultiDiGraph) -> Optional[List[tuple]]:
    """
    Edges (u, v, key) of the first directed cycle found by depth-first
    search, or None when the graph is acyclic.
    """
    try:
        return nx.find_cycle(G)
    except nx.NetworkXNoCycle:
        return None
