# flowguard/inputs/validator.py
"""
Node input validator.

Checks every node's config against the definition the schema registry holds
for its kind. An unreachable registry is reported as a warning and never
blocks a save: availability problems and invalid inputs are kept apart.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
from jsonschema import Draft7Validator, FormatChecker

from flowguard.inputs.registry import InputField, NodeDefinition, default_schema_registry
from flowguard.structural.diagnostics import (
    INVALID_INPUT_VALUE,
    MISSING_REQUIRED_INPUT,
    SchemaRegistryError,
    ValidationError,
    ValidationResult,
)
from flowguard.utils.graph import node_config, node_kind, node_label
from flowguard.utils.logger import get_logger

logger = get_logger("inputs.validator")

_UNSET = object()

# "format" constraints (email, ipv4, date, ...) are enforced
_FORMATS = FormatChecker()


def is_blank(value: Any) -> bool:
    return value is _UNSET or value is None or value == "" or (isinstance(value, list) and not value)


def _is_template(value: Any) -> bool:
    return isinstance(value, str) and "{{" in value


def check_field_value(spec: InputField, value: Any) -> Optional[str]:
    """
    Message describing why `value` does not fit `spec`, or None.
    Template expressions are resolved at run time, so only the predicate
    sees them.
    """
    if not _is_template(value):
        schema = spec.json_schema()
        if schema:
            validator = Draft7Validator(schema, format_checker=_FORMATS)
            error = next(iter(validator.iter_errors(value)), None)
            if error is not None:
                return error.message

    if spec.validation is not None:
        outcome = spec.validation(value)
        if isinstance(outcome, str):
            return outcome
        if outcome is not True:
            return "Invalid value"
    return None


def _check_node(node: Dict[str, Any], definition: NodeDefinition) -> List[ValidationError]:
    errors: List[ValidationError] = []
    nid = node.get("id")
    label = node_label(node)
    inputs = node_config(node)

    for name in definition.required_fields():
        if is_blank(inputs.get(name, _UNSET)):
            errors.append(ValidationError(
                MISSING_REQUIRED_INPUT,
                f'Node "{label}" is missing required input: {name}',
                node_id=nid,
                field=name,
            ))

    for name, spec in definition.input_schema.items():
        value = inputs.get(name, _UNSET)
        if value is _UNSET and spec.default is not None:
            continue
        if is_blank(value):
            continue
        message = check_field_value(spec, value)
        if message:
            errors.append(ValidationError(
                INVALID_INPUT_VALUE,
                f'Node "{label}" has invalid {name}: {message}',
                node_id=nid,
                field=name,
            ))
    return errors


async def validate_node_inputs(nodes: List[Dict[str, Any]], registry=None) -> ValidationResult:
    """
    Validate all node configs against registry schemas.

    `registry` is anything with an async `fetch_all_schemas()`; by default the
    HTTP registry named by FLOWGUARD_SCHEMA_URL, else the built-in definitions.
    """
    errors: List[ValidationError] = []
    warnings: List[str] = []

    owned = registry is None
    if owned:
        registry = default_schema_registry()
    try:
        definitions = await registry.fetch_all_schemas()
    except (SchemaRegistryError, httpx.HTTPError, OSError) as e:
        logger.warning("Node schema registry unavailable: %s", e)
        warnings.append("Could not fetch node schemas from registry - skipping input validation")
        return ValidationResult(valid=True, errors=errors, warnings=warnings)
    finally:
        if owned and hasattr(registry, "aclose"):
            await registry.aclose()

    by_type = {d.type: d for d in definitions}

    for node in nodes:
        kind = node_kind(node)
        if not kind:
            warnings.append(f"Node {node.get('id')} has no type")
            continue
        definition = by_type.get(kind)
        if definition is None:
            warnings.append(f"Node {node.get('id')} ({kind}) has no schema definition")
            continue
        errors.extend(_check_node(node, definition))

    return ValidationResult.from_issues(errors, warnings)
