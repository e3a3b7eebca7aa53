from __future__ import annotations

import json
import logging
from functools import lru_cache
from importlib import resources
from typing import Any, Dict

from jsonschema import Draft202012Validator

from .errors import SaveValidationError
from .models import SCHEMA_VERSION, CharacterState

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _load_character_schema() -> Dict[str, Any]:
    """Load the bundled character save schema. Cached; the schema is static."""
    with resources.files("barbuilder.persistence").joinpath("character.schema.json").open(
        "r", encoding="utf-8"
    ) as f:
        return json.load(f)


def validate_save_dict(data: Dict[str, Any]) -> None:
    """Validate migrated save data against the character schema.

    Raises:
        SaveValidationError listing every schema violation.
    """
    validator = Draft202012Validator(_load_character_schema())
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])
    if errors:
        for err in errors:
            logger.error("Save schema validation error at %s: %s", list(err.absolute_path), err.message)
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.absolute_path) or '$'}: {err.message}" for err in errors
        )
        raise SaveValidationError(f"Save does not match schema: {details}")


def encode_save(state: CharacterState) -> str:
    """Encode a CharacterState to a pretty-printed JSON string."""
    data = state.to_dict()
    return json.dumps(data, ensure_ascii=False, sort_keys=True, indent=2)


def decode_save(text: str) -> CharacterState:
    """Decode JSON text into a CharacterState with version validation and migrations."""
    try:
        data: Dict[str, Any] = json.loads(text)
    except json.JSONDecodeError as e:
        raise SaveValidationError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SaveValidationError("Character save must be a JSON object")

    version = int(data.get("schema_version", 1))
    if version != SCHEMA_VERSION:
        data = migrate_data(data, from_version=version, to_version=SCHEMA_VERSION)

    validate_save_dict(data)
    return CharacterState.from_dict(data)


def migrate_data(data: Dict[str, Any], from_version: int, to_version: int) -> Dict[str, Any]:
    """Migrate data between schema versions one step at a time."""
    if from_version == to_version:
        return data

    if from_version > to_version:
        raise SaveValidationError(
            f"Save schema version {from_version} is newer than supported {to_version}."
        )

    for v in range(from_version, to_version):
        if v == 1:
            data = migrate_v1_to_v2(data)
    data["schema_version"] = to_version
    return data


def migrate_v1_to_v2(data: Dict[str, Any]) -> Dict[str, Any]:
    """v1 kept a layout for every level. v2 keeps only the highest per spec.

    The highest kept level also seeds ``highest_seen_level``.
    """
    specs = data.get("specs") or {}
    highest_seen = data.get("highest_seen_level")
    for spec in specs.values():
        layouts = spec.get("layouts") or {}
        if not layouts:
            continue
        top = max(layouts, key=lambda level: int(level))
        spec["layouts"] = {top: layouts[top]}
        if highest_seen is None or int(top) > int(highest_seen):
            highest_seen = int(top)
    data["highest_seen_level"] = highest_seen
    logger.info("Migrated save to v2: pruned layouts, kept highest per spec (highest_seen_level=%s)", highest_seen)
    return data
