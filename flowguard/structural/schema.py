# flowguard/structural/schema.py
from typing import Any, Dict, List

from jsonschema import Draft7Validator

WORKFLOW_GRAPH_SCHEMA = {
    "type": "object",
    "required": ["nodes", "edges"],
    "properties": {
        "nodes": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id"],
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    # component name on the canvas, or the kind itself
                    "type": {"type": "string"},
                    "position": {
                        "type": "object",
                        "properties": {
                            "x": {"type": "number"},
                            "y": {"type": "number"}
                        },
                        "additionalProperties": True
                    },
                    "data": {
                        "type": "object",
                        "properties": {
                            "type": {"type": "string"},
                            "label": {"type": "string"},
                            "category": {"type": "string"},
                            # open mapping; keys are checked per kind later
                            "config": {"type": "object"}
                        },
                        "additionalProperties": True
                    }
                },
                "additionalProperties": True
            }
        },
        "edges": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["source", "target"],
                "properties": {
                    "id": {"type": "string"},
                    "source": {"type": "string", "minLength": 1},
                    "target": {"type": "string", "minLength": 1},
                    # "true"/"false" on if_else branches; null means unassigned
                    "sourceHandle": {"type": ["string", "null"]},
                    "targetHandle": {"type": ["string", "null"]}
                },
                "additionalProperties": True
            }
        }
    },
    "additionalProperties": True
}


# Field types a registry may declare; "json" accepts any value.
FIELD_TYPES = ["string", "number", "integer", "boolean", "array", "object", "json"]

NODE_DEFINITION_SCHEMA = {
    "type": "object",
    "required": ["type"],
    "properties": {
        "type": {"type": "string", "minLength": 1},
        "label": {"type": "string"},
        "category": {"type": "string"},
        "description": {"type": "string"},
        "inputSchema": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "type": {"enum": FIELD_TYPES},
                    "description": {"type": "string"},
                    "required": {"type": "boolean"},
                    "examples": {"type": "array"}
                },
                "additionalProperties": True
            }
        },
        "requiredInputs": {"type": "array", "items": {"type": "string"}},
        "outgoingPorts": {"type": "array", "items": {"type": "string"}},
        "incomingPorts": {"type": "array", "items": {"type": "string"}},
        "isBranching": {"type": "boolean"}
    },
    "additionalProperties": True
}


def _where(path) -> str:
    return "/".join(str(p) for p in path) or "<root>"


def check_graph_shape(workflow: Any) -> List[str]:
    """
    Check a raw {nodes, edges} payload against WORKFLOW_GRAPH_SCHEMA.
    Returns one message per violation (empty when the shape is acceptable).
    """
    validator = Draft7Validator(WORKFLOW_GRAPH_SCHEMA)
    errors = sorted(validator.iter_errors(workflow), key=lambda e: [str(p) for p in e.absolute_path])
    return [f"{_where(e.absolute_path)}: {e.message}" for e in errors]


def check_node_definition(payload: Dict[str, Any]) -> List[str]:
    validator = Draft7Validator(NODE_DEFINITION_SCHEMA)
    return [f"{_where(e.absolute_path)}: {e.message}" for e in validator.iter_errors(payload)]
