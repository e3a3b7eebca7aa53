from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..errors import LayoutValidationError
from .descriptors import SlotDescriptor, descriptor_from_dict, descriptor_to_dict, is_empty


def _now_ts() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


@dataclass
class Snapshot:
    """The occupants of every enabled slot at one moment.

    Slots that were not captured are absent from ``slots``; they are not Empty.
    """

    player_level: int
    slots: Dict[int, SlotDescriptor] = field(default_factory=dict)
    timestamp: str = field(default_factory=_now_ts)

    @property
    def configured_count(self) -> int:
        return sum(1 for desc in self.slots.values() if not is_empty(desc))

    @property
    def captured_count(self) -> int:
        return len(self.slots)

    def get(self, slot: int) -> Optional[SlotDescriptor]:
        return self.slots.get(slot)

    def copy(self) -> "Snapshot":
        # Descriptors are frozen, so a fresh mapping is a full copy.
        return Snapshot(player_level=self.player_level, slots=dict(self.slots), timestamp=self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "player_level": self.player_level,
            "configured_count": self.configured_count,
            "captured_count": self.captured_count,
            "slots": {str(slot): descriptor_to_dict(desc) for slot, desc in sorted(self.slots.items())},
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Snapshot":
        if not isinstance(data, dict):
            raise LayoutValidationError("Snapshot must be an object")
        raw_slots = data.get("slots") or {}
        if not isinstance(raw_slots, dict):
            raise LayoutValidationError("Snapshot.slots must be an object keyed by slot number")
        slots: Dict[int, SlotDescriptor] = {}
        for key, value in raw_slots.items():
            try:
                slot = int(key)
            except (TypeError, ValueError) as e:
                raise LayoutValidationError(f"Invalid slot key: {key!r}") from e
            slots[slot] = descriptor_from_dict(value)
        level = data.get("player_level", data.get("playerLevel", 0))
        return Snapshot(
            player_level=int(level or 0),
            slots=slots,
            timestamp=str(data.get("timestamp") or _now_ts()),
        )
