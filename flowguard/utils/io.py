# flowguard/utils/io.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, TextIO, Union

import yaml

PathLike = Union[str, Path]

YAML_SUFFIXES = (".yaml", ".yml")


def to_path(p: PathLike) -> Path:
    return p if isinstance(p, Path) else Path(p)


def _atomic_write(path: PathLike, dump: Callable[[TextIO], None]) -> Path:
    """Create parent dirs, write to `<name>.tmp`, then move it into place."""
    p = to_path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(p.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        dump(f)
    tmp.replace(p)
    return p


def write_json(path: PathLike, data: Any, indent: int = 2) -> Path:
    return _atomic_write(path, lambda f: json.dump(data, f, ensure_ascii=False, indent=indent))


def write_yaml(path: PathLike, data: Any) -> Path:
    return _atomic_write(path, lambda f: yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True))


def load_workflow(path: PathLike) -> Any:
    """
    Load a workflow document by extension:
      - .json -> JSON
      - .yaml/.yml -> YAML
    The shape is not checked here; see structural.schema.check_graph_shape.
    """
    p = to_path(path)
    suf = p.suffix.lower()
    if suf not in (".json",) + YAML_SUFFIXES:
        raise ValueError(f"Unsupported extension: {suf} for {p}")
    with p.open("r", encoding="utf-8") as f:
        return json.load(f) if suf == ".json" else yaml.safe_load(f)


def save_workflow(path: PathLike, data: Any) -> Path:
    """Write a workflow document; YAML for .yaml/.yml, JSON otherwise."""
    if to_path(path).suffix.lower() in YAML_SUFFIXES:
        return write_yaml(path, data)
    return write_json(path, data)
