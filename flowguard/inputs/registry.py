# flowguard/inputs/registry.py
"""
Node definitions and the registries that serve them.

Two layers live here:
  - static reference data for built-in node kinds (category, required inputs,
    input schema, branching flag), read by the graph validator and the input
    validator but never written;
  - schema registries: an in-process one over a fixed list, and an HTTP client
    for a remote registry with a bounded-time cache that serves stale data
    when a refresh fails.
"""
from __future__ import annotations

import os
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import httpx
from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError

from flowguard.structural.diagnostics import SchemaRegistryError
from flowguard.structural.schema import check_node_definition
from flowguard.utils.logger import get_logger

logger = get_logger("inputs.registry")

# A predicate returns True when the value is fine, otherwise False or a message.
Predicate = Callable[[Any], Union[bool, str]]

# JSON-Schema keywords a registry may attach to a field besides its type.
CONSTRAINT_KEYWORDS = (
    "enum", "const", "pattern", "format",
    "minimum", "maximum", "exclusiveMinimum", "exclusiveMaximum",
    "minLength", "maxLength", "minItems", "maxItems", "items", "properties",
)


@dataclass
class InputField:
    type: str = "string"
    description: str = ""
    required: bool = False
    default: Any = None
    examples: List[Any] = field(default_factory=list)
    validation: Optional[Predicate] = None
    constraints: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "InputField":
        return cls(
            type=payload.get("type", "string"),
            description=payload.get("description", ""),
            required=bool(payload.get("required", False)),
            default=payload.get("default"),
            examples=list(payload.get("examples") or []),
            constraints={k: payload[k] for k in CONSTRAINT_KEYWORDS if k in payload},
        )

    def json_schema(self) -> Dict[str, Any]:
        """JSON Schema for a value of this field; "json" fields accept anything."""
        schema: Dict[str, Any] = dict(self.constraints)
        if self.type and self.type != "json":
            schema["type"] = self.type
        return schema

    def check_schema(self) -> None:
        """Raise ValueError when the constraints do not form a usable schema."""
        schema = self.json_schema()
        try:
            Draft7Validator.check_schema(schema)
            if isinstance(schema.get("pattern"), str):
                re.compile(schema["pattern"])
        except (SchemaError, re.error) as e:
            raise ValueError(getattr(e, "message", None) or str(e)) from e


@dataclass
class NodeDefinition:
    type: str
    label: str = ""
    category: str = ""
    description: str = ""
    input_schema: Dict[str, InputField] = field(default_factory=dict)
    required_inputs: List[str] = field(default_factory=list)
    outgoing_ports: List[str] = field(default_factory=lambda: ["default"])
    incoming_ports: List[str] = field(default_factory=lambda: ["default"])
    is_branching: bool = False

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "NodeDefinition":
        """Parse a camelCase registry payload. Raises ValueError when malformed."""
        problems = check_node_definition(payload)
        if problems:
            raise ValueError("; ".join(problems))

        input_schema = {
            name: InputField.from_dict(spec)
            for name, spec in (payload.get("inputSchema") or {}).items()
        }
        for name, spec in input_schema.items():
            try:
                spec.check_schema()
            except ValueError as e:
                raise ValueError(f"inputSchema/{name}: {e}") from e

        return cls(
            type=payload["type"],
            label=payload.get("label", ""),
            category=payload.get("category", ""),
            description=payload.get("description", ""),
            input_schema=input_schema,
            required_inputs=list(payload.get("requiredInputs") or []),
            outgoing_ports=list(payload.get("outgoingPorts") or ["default"]),
            incoming_ports=list(payload.get("incomingPorts") or ["default"]),
            is_branching=bool(payload.get("isBranching", False)),
        )

    def required_fields(self) -> List[str]:
        """required_inputs first, then any other field flagged required."""
        names = list(self.required_inputs)
        for name, spec in self.input_schema.items():
            if spec.required and name not in names:
                names.append(name)
        return names


# ---------------------------------------------------------------------------
# Built-in predicates
# ---------------------------------------------------------------------------

_CRON_FIELD = re.compile(r"^(\*|\?|[0-9A-Za-z]+([-/,][0-9A-Za-z*]+)*)(/\d+)?$")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _templated(value: Any) -> bool:
    return isinstance(value, str) and "{{" in value


def valid_cron(value: Any) -> Union[bool, str]:
    if _templated(value):
        return True
    parts = str(value).split()
    if len(parts) not in (5, 6):
        return "cron expression must have 5 or 6 fields"
    if not all(_CRON_FIELD.match(p) for p in parts):
        return "cron expression contains an invalid field"
    return True


def valid_webhook_path(value: Any) -> Union[bool, str]:
    path = str(value)
    if not path.startswith("/"):
        return "webhook path must start with '/'"
    if " " in path:
        return "webhook path must not contain spaces"
    return True


def valid_url(value: Any) -> Union[bool, str]:
    url = str(value)
    if "{{" in url:
        return True
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL:
        return "not a valid URL"
    if parsed.scheme not in ("http", "https") or not parsed.host:
        return "URL must start with http:// or https://"
    return True


def valid_recipients(value: Any) -> Union[bool, str]:
    items = value if isinstance(value, list) else str(value).split(",")
    bad = [str(v).strip() for v in items if "{{" not in str(v) and not _EMAIL.match(str(v).strip())]
    if bad:
        return f"invalid email address: {bad[0]}"
    return True


def positive_number(value: Any) -> bool:
    if _templated(value):
        return True
    try:
        return float(value) > 0
    except (TypeError, ValueError):
        return False


def _f(type_: str = "string", description: str = "", **kwargs: Any) -> InputField:
    return InputField(type=type_, description=description, **kwargs)


BUILTIN_NODE_DEFINITIONS: List[NodeDefinition] = [
    # triggers
    NodeDefinition(
        type="manual_trigger", label="Manual Trigger", category="triggers",
        description="Start the workflow by hand", incoming_ports=[],
    ),
    NodeDefinition(
        type="webhook", label="Webhook", category="triggers",
        description="Start the workflow on an incoming HTTP request",
        input_schema={
            "path": _f("string", "Path the webhook listens on", required=True, validation=valid_webhook_path),
            "method": _f("string", "HTTP method", default="POST",
                         constraints={"enum": ["GET", "POST", "PUT", "PATCH", "DELETE"]}),
        },
        required_inputs=["path"], incoming_ports=[],
    ),
    NodeDefinition(
        type="schedule", label="Schedule", category="triggers",
        description="Start the workflow on a cron schedule",
        input_schema={
            "cron": _f("string", "Cron schedule expression", required=True, validation=valid_cron),
            "timezone": _f("string", "IANA timezone", default="UTC"),
        },
        required_inputs=["cron"], incoming_ports=[],
    ),
    NodeDefinition(
        type="interval", label="Interval", category="triggers",
        description="Start the workflow every N seconds",
        input_schema={
            "seconds": _f("number", "Seconds between runs", required=True, validation=positive_number),
        },
        required_inputs=["seconds"], incoming_ports=[],
    ),
    NodeDefinition(
        type="form", label="Form", category="triggers",
        description="Start the workflow when a form is submitted",
        input_schema={
            "fields": _f("array", "Form fields", required=True, constraints={"minItems": 1}),
            "title": _f("string", "Form title"),
        },
        required_inputs=["fields"], incoming_ports=[],
    ),
    NodeDefinition(
        type="chat_trigger", label="Chat Trigger", category="triggers",
        description="Start the workflow from a chat message", incoming_ports=[],
    ),
    # logic
    NodeDefinition(
        type="if_else", label="If/Else", category="logic",
        description="Conditional branching",
        input_schema={
            "conditions": _f("array", "Conditions to evaluate", required=True,
                             default=[{"expression": ""}]),
            "combineOperation": _f("string", "How to combine conditions", default="AND",
                                   examples=["AND", "OR"], constraints={"enum": ["AND", "OR"]}),
        },
        required_inputs=["conditions"], outgoing_ports=["true", "false"], is_branching=True,
    ),
    NodeDefinition(
        type="switch", label="Switch", category="logic",
        description="Route to one of several cases",
        input_schema={
            "expression": _f("string", "Value to switch on", required=True),
            "cases": _f("array", "Case values"),
        },
        required_inputs=["expression"], is_branching=True,
    ),
    NodeDefinition(
        type="merge", label="Merge", category="logic",
        description="Combine several upstream paths",
        input_schema={
            "mode": _f("string", "Merge strategy", default="append",
                       constraints={"enum": ["append", "wait_all", "first"]}),
        },
    ),
    # actions
    NodeDefinition(
        type="http_request", label="HTTP Request", category="actions",
        description="Call an HTTP endpoint",
        input_schema={
            "url": _f("string", "Request URL", required=True, validation=valid_url),
            "method": _f("string", "HTTP method", default="GET",
                         constraints={"enum": ["GET", "POST", "PUT", "PATCH", "DELETE"]}),
            "headers": _f("object", "Request headers"),
            "body": _f("json", "Request body"),
        },
        required_inputs=["url"],
    ),
    NodeDefinition(
        type="send_email", label="Send Email", category="actions",
        description="Send an email message",
        input_schema={
            "to": _f("string", "Recipient address(es)", required=True, validation=valid_recipients),
            "subject": _f("string", "Subject line", required=True),
            "body": _f("string", "Message body"),
        },
        required_inputs=["to", "subject"],
    ),
    NodeDefinition(
        type="set_variable", label="Set Variable", category="data",
        description="Store a value for later nodes",
        input_schema={
            "name": _f("string", "Variable name", required=True, constraints={"pattern": r"^[A-Za-z_]\w*$"}),
            "value": _f("json", "Value to store"),
        },
        required_inputs=["name"],
    ),
    NodeDefinition(
        type="delay", label="Delay", category="logic",
        description="Pause before continuing",
        input_schema={
            "seconds": _f("number", "Seconds to wait", required=True, validation=positive_number),
        },
        required_inputs=["seconds"],
    ),
    NodeDefinition(
        type="log_output", label="Log Output", category="output",
        description="Write a message to the execution log",
        input_schema={
            "message": _f("string", "Message to log"),
            "level": _f("string", "Log level", default="info",
                        constraints={"enum": ["debug", "info", "warn", "error"]}),
        },
        outgoing_ports=[],
    ),
]

_BUILTIN_BY_TYPE: Dict[str, NodeDefinition] = {d.type: d for d in BUILTIN_NODE_DEFINITIONS}


def get_node_definition(kind: str) -> Optional[NodeDefinition]:
    return _BUILTIN_BY_TYPE.get(kind)


def node_category(kind: str) -> str:
    definition = _BUILTIN_BY_TYPE.get(kind)
    return definition.category if definition else ""


# ---------------------------------------------------------------------------
# Schema registries
# ---------------------------------------------------------------------------

class StaticSchemaRegistry:
    """Registry over a fixed list of definitions (the built-ins by default)."""

    def __init__(self, definitions: Optional[Iterable[NodeDefinition]] = None):
        self._definitions = list(BUILTIN_NODE_DEFINITIONS if definitions is None else definitions)

    async def fetch_all_schemas(self) -> List[NodeDefinition]:
        return list(self._definitions)


class HttpSchemaRegistry:
    """
    Client for a remote node schema registry.

    Definitions are fetched from GET {base_url}/nodes/schemas and cached for
    `ttl` seconds. When a refresh fails the cached list is served stale; with
    nothing cached the failure surfaces as SchemaRegistryError.
    """

    SCHEMAS_PATH = "/nodes/schemas"

    def __init__(
        self,
        base_url: str,
        ttl: float = 300.0,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.ttl = ttl
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._cache: Optional[List[NodeDefinition]] = None
        self._fetched_at = 0.0

    @classmethod
    def from_env(cls, client: Optional[httpx.AsyncClient] = None) -> "HttpSchemaRegistry":
        base_url = os.environ.get("FLOWGUARD_SCHEMA_URL")
        if not base_url:
            raise SchemaRegistryError("FLOWGUARD_SCHEMA_URL is not set")
        return cls(
            base_url,
            ttl=float(os.environ.get("FLOWGUARD_SCHEMA_TTL", "300")),
            timeout=float(os.environ.get("FLOWGUARD_SCHEMA_TIMEOUT", "10")),
            client=client,
        )

    async def __aenter__(self) -> "HttpSchemaRegistry":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close an owned client. The cache is kept; the next fetch opens a new client."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def invalidate(self) -> None:
        self._cache = None
        self._fetched_at = 0.0

    def _fresh(self) -> bool:
        return self._cache is not None and (time.monotonic() - self._fetched_at) < self.ttl

    async def fetch_all_schemas(self) -> List[NodeDefinition]:
        if self._fresh():
            return list(self._cache)

        try:
            definitions = await self._download()
        except SchemaRegistryError:
            if self._cache is None:
                raise
            logger.warning("Schema registry refresh failed; serving %d cached definitions", len(self._cache))
            return list(self._cache)

        self._cache = definitions
        self._fetched_at = time.monotonic()
        return list(definitions)

    async def _download(self) -> List[NodeDefinition]:
        url = f"{self.base_url}{self.SCHEMAS_PATH}"
        try:
            response = await self._http().get(url)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise SchemaRegistryError(f"Could not fetch node schemas from {url}: {e}") from e
        except ValueError as e:
            raise SchemaRegistryError(f"Schema registry at {url} returned invalid JSON") from e

        if isinstance(payload, dict):
            payload = payload.get("nodes")
        if not isinstance(payload, list):
            raise SchemaRegistryError(f"Schema registry at {url} returned an unexpected payload")

        definitions: List[NodeDefinition] = []
        for entry in payload:
            try:
                definitions.append(NodeDefinition.from_dict(entry))
            except ValueError as e:
                logger.warning("Skipping malformed node definition %r: %s", _entry_type(entry), e)
        logger.debug("Fetched %d node definitions from %s", len(definitions), url)
        return definitions


def _entry_type(entry: Any) -> Any:
    return entry.get("type") if isinstance(entry, dict) else entry


# one HTTP registry per (url, ttl, timeout), so its cache spans validations
_SHARED_HTTP_REGISTRIES: Dict[tuple, HttpSchemaRegistry] = {}


def default_schema_registry() -> Union[HttpSchemaRegistry, StaticSchemaRegistry]:
    """
    Shared HTTP registry when FLOWGUARD_SCHEMA_URL is set, built-ins otherwise.
    Callers may aclose() it after use; cached definitions survive that.
    """
    if not os.environ.get("FLOWGUARD_SCHEMA_URL"):
        return StaticSchemaRegistry()
    registry = HttpSchemaRegistry.from_env()
    key = (registry.base_url, registry.ttl, registry.timeout)
    return _SHARED_HTTP_REGISTRIES.setdefault(key, registry)
