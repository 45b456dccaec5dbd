# flowguard/structural/diagnostics.py
"""
Diagnostic records shared by the graph validator, the normalizer and the
node input validator. `to_dict()` yields the camelCase JSON shape the canvas
consumes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Structural (topology) codes
NO_NODES = "NO_NODES"
NO_TRIGGER = "NO_TRIGGER"
MULTIPLE_TRIGGERS = "MULTIPLE_TRIGGERS"
UNREACHABLE_NODE = "UNREACHABLE_NODE"
NO_INCOMING = "NO_INCOMING"
MULTIPLE_INCOMING = "MULTIPLE_INCOMING"
TOO_MANY_OUTGOING = "TOO_MANY_OUTGOING"
CYCLE_DETECTED = "CYCLE_DETECTED"
INVALID_GRAPH_SHAPE = "INVALID_GRAPH_SHAPE"

# Node configuration codes
MISSING_REQUIRED_INPUT = "MISSING_REQUIRED_INPUT"
INVALID_INPUT_VALUE = "INVALID_INPUT_VALUE"


class FlowGuardError(Exception):
    """Base class for infrastructure failures (never for data-shape problems)."""


class SchemaRegistryError(FlowGuardError):
    """The node schema registry could not be reached or returned garbage."""


@dataclass
class ValidationError:
    code: str
    message: str
    node_id: Optional[str] = None
    edge_id: Optional[str] = None
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.node_id is not None:
            out["nodeId"] = self.node_id
        if self.edge_id is not None:
            out["edgeId"] = self.edge_id
        if self.field is not None:
            out["field"] = self.field
        return out


@dataclass
class ValidationResult:
    valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def from_issues(cls, errors: List[ValidationError], warnings: List[str]) -> "ValidationResult":
        return cls(valid=not errors, errors=errors, warnings=warnings)

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self.errors]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": list(self.warnings),
        }


@dataclass
class NormalizedGraph:
    nodes: List[Dict[str, Any]]
    edges: List[Dict[str, Any]]
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": self.nodes,
            "edges": self.edges,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }
