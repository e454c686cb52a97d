from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from schemas.blueprint import Blueprint


def load_blueprint(path: Path) -> Blueprint:
    """
    Load a blueprint YAML file.

    Accepts either the blueprint itself or the host's nested shape
    `{blueprint_id, schema: {sections: [...]}}`.
    """
    if not path.exists():
        raise FileNotFoundError(f"Blueprint file not found: {path}")

    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Blueprint must be a mapping: {path}")

    schema = raw.get("schema")
    if isinstance(schema, dict) and "sections" not in raw:
        raw = {**raw, "sections": schema.get("sections") or []}
    raw.setdefault("blueprint_id", path.stem)

    try:
        return Blueprint.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid blueprint {path}: {e}") from e
