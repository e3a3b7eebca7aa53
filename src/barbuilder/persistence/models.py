from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Set

from ..errors import LayoutValidationError
from ..models.snapshot import Snapshot
from .errors import SaveValidationError

# Increment when making breaking schema changes
SCHEMA_VERSION = 2


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _opt_level(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(value)


@dataclass
class SpecState:
    """Per-spec settings and the durable layouts saved for it."""

    name: str = ""
    enabled_bars: Set[int] = field(default_factory=set)
    propagate_changes: bool = True
    layouts: Dict[int, Snapshot] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if any(not isinstance(b, int) or b < 1 for b in self.enabled_bars):
            raise SaveValidationError("SpecState.enabled_bars must hold positive integers")
        if any(not isinstance(level, int) or level < 1 for level in self.layouts):
            raise SaveValidationError("SpecState.layouts must be keyed by positive levels")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "enabled_bars": sorted(self.enabled_bars),
            "propagate_changes": self.propagate_changes,
            "layouts": {str(level): snap.to_dict() for level, snap in sorted(self.layouts.items())},
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "SpecState":
        try:
            layouts = {int(level): Snapshot.from_dict(raw) for level, raw in (data.get("layouts") or {}).items()}
        except (LayoutValidationError, TypeError, ValueError) as e:
            raise SaveValidationError(f"Invalid layout data: {e}") from e
        return SpecState(
            name=str(data.get("name", "")),
            enabled_bars={int(b) for b in data.get("enabled_bars", [])},
            propagate_changes=bool(data.get("propagate_changes", True)),
            layouts=layouts,
        )


@dataclass
class CharacterState:
    """Everything persisted for one character between sessions."""

    specs: Dict[int, SpecState] = field(default_factory=dict)
    highest_seen_level: Optional[int] = None
    last_known_level: Optional[int] = None
    active_spec: int = 1
    shush: bool = True
    companions_migrated: bool = False
    character_id: str = "default"
    schema_version: int = SCHEMA_VERSION
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if not isinstance(self.character_id, str) or not self.character_id:
            raise SaveValidationError("character_id must be a non-empty string")
        if not isinstance(self.active_spec, int) or self.active_spec < 1:
            raise SaveValidationError("active_spec must be a positive integer")
        for attr in ("highest_seen_level", "last_known_level"):
            value = getattr(self, attr)
            if value is not None and (not isinstance(value, int) or value < 0):
                raise SaveValidationError(f"{attr} must be a non-negative integer")

    def touch(self) -> None:
        self.updated_at = _utc_now()

    def ensure_specs(self, count: int, default_bars: Iterable[int]) -> bool:
        """Create any missing specs ``1..count``. Returns True when something was added."""
        added = False
        for spec_index in range(1, count + 1):
            if spec_index not in self.specs:
                self.specs[spec_index] = SpecState(name=f"Spec {spec_index}", enabled_bars=set(default_bars))
                added = True
        return added

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "character_id": self.character_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "highest_seen_level": self.highest_seen_level,
            "last_known_level": self.last_known_level,
            "active_spec": self.active_spec,
            "shush": self.shush,
            "companions_migrated": self.companions_migrated,
            "specs": {str(idx): spec.to_dict() for idx, spec in sorted(self.specs.items())},
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "CharacterState":
        try:
            specs = {int(idx): SpecState.from_dict(raw) for idx, raw in (data.get("specs") or {}).items()}
            return CharacterState(
                specs=specs,
                highest_seen_level=_opt_level(data.get("highest_seen_level")),
                last_known_level=_opt_level(data.get("last_known_level")),
                active_spec=int(data.get("active_spec", 1)),
                shush=bool(data.get("shush", True)),
                companions_migrated=bool(data.get("companions_migrated", False)),
                character_id=data.get("character_id", "default"),
                schema_version=int(data.get("schema_version", SCHEMA_VERSION)),
                created_at=data.get("created_at") or _utc_now(),
                updated_at=data.get("updated_at") or _utc_now(),
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise SaveValidationError(f"Invalid character save: {e}") from e
