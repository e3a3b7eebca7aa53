from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union

from ..errors import LayoutValidationError


class SlotKind(str, Enum):
    EMPTY = "empty"
    SPELL = "spell"
    ITEM = "item"
    MACRO = "macro"
    COMPANION = "companion"
    EQUIPMENT_SET = "equipmentset"


@dataclass(frozen=True)
class Empty:
    """A slot with nothing on it."""

    kind = SlotKind.EMPTY


@dataclass(frozen=True)
class Spell:
    """An ability, identified by its tooltip name (rank independent)."""

    name: str
    spell_id: Optional[int] = field(default=None, compare=False)
    icon: Optional[str] = field(default=None, compare=False)

    kind = SlotKind.SPELL


@dataclass(frozen=True)
class Item:
    item_id: Optional[int]
    name: Optional[str] = field(default=None, compare=False)
    icon: Optional[str] = field(default=None, compare=False)

    kind = SlotKind.ITEM


@dataclass(frozen=True)
class Macro:
    name: str
    body: str = field(default="", compare=False)
    icon: Optional[str] = field(default=None, compare=False)

    kind = SlotKind.MACRO


@dataclass(frozen=True)
class Companion:
    """A mount or critter. ``companion_id`` is the registry index at capture time."""

    subtype: Optional[str]
    companion_id: Optional[int] = None
    name: Optional[str] = None
    icon: Optional[str] = field(default=None, compare=False)

    kind = SlotKind.COMPANION


@dataclass(frozen=True)
class EquipmentSet:
    name: str
    icon: Optional[str] = field(default=None, compare=False)

    kind = SlotKind.EQUIPMENT_SET


SlotDescriptor = Union[Empty, Spell, Item, Macro, Companion, EquipmentSet]

EMPTY = Empty()

# Occupants that never depend on level; removing one from the bar is deliberate.
ALWAYS_AVAILABLE_KINDS = frozenset({SlotKind.COMPANION, SlotKind.MACRO, SlotKind.EQUIPMENT_SET})


def is_empty(desc: Optional[SlotDescriptor]) -> bool:
    return desc is None or isinstance(desc, Empty)


def descriptors_equal(a: Optional[SlotDescriptor], b: Optional[SlotDescriptor]) -> bool:
    """Compare two descriptors by their kind-specific identity.

    An absent descriptor only equals another absent one; it is not Empty.
    """
    if a is None and b is None:
        return True
    if a is None or b is None:
        return False
    if a.kind != b.kind:
        return False
    if isinstance(a, Empty):
        return True
    if isinstance(a, Spell):
        return a.name == b.name
    if isinstance(a, Item):
        return a.item_id == b.item_id
    if isinstance(a, Macro):
        return a.name == b.name
    if isinstance(a, Companion):
        if (a.subtype or "") != (b.subtype or ""):
            return False
        if a.name and b.name:
            return a.name == b.name
        return a.companion_id == b.companion_id
    if isinstance(a, EquipmentSet):
        return a.name == b.name
    return False


def display_name(desc: Optional[SlotDescriptor]) -> str:
    """Human readable label used in failure summaries."""
    if desc is None:
        return "unknown"
    if isinstance(desc, Item):
        return desc.name or f"id:{desc.item_id}"
    if isinstance(desc, Companion):
        return desc.name or f"id:{desc.companion_id}"
    name = getattr(desc, "name", None)
    if name:
        return name
    return desc.kind.value if hasattr(desc, "kind") else "unknown"


# --------------- Dict codec ---------------


def descriptor_to_dict(desc: SlotDescriptor) -> Dict[str, Any]:
    if isinstance(desc, Empty):
        return {"type": SlotKind.EMPTY.value}
    if isinstance(desc, Spell):
        data: Dict[str, Any] = {"type": SlotKind.SPELL.value, "name": desc.name}
        if desc.spell_id is not None:
            data["spell_id"] = desc.spell_id
    elif isinstance(desc, Item):
        data = {"type": SlotKind.ITEM.value, "id": desc.item_id}
        if desc.name is not None:
            data["name"] = desc.name
    elif isinstance(desc, Macro):
        data = {"type": SlotKind.MACRO.value, "name": desc.name, "body": desc.body}
    elif isinstance(desc, Companion):
        data = {
            "type": SlotKind.COMPANION.value,
            "subtype": desc.subtype,
            "id": desc.companion_id,
            "name": desc.name,
        }
    elif isinstance(desc, EquipmentSet):
        data = {"type": SlotKind.EQUIPMENT_SET.value, "name": desc.name}
    else:
        raise LayoutValidationError(f"Cannot encode slot descriptor {desc!r}")
    if desc.icon is not None:
        data["icon"] = desc.icon
    return data


def _opt_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise LayoutValidationError(f"Expected an integer id, got {value!r}") from e


def descriptor_from_dict(data: Dict[str, Any]) -> SlotDescriptor:
    if not isinstance(data, dict):
        raise LayoutValidationError("Slot descriptor must be an object")
    raw_type = data.get("type")
    try:
        kind = SlotKind(raw_type)
    except ValueError as e:
        raise LayoutValidationError(f"Unknown slot type: {raw_type!r}") from e

    icon = data.get("icon")
    if kind is SlotKind.EMPTY:
        return EMPTY
    if kind is SlotKind.SPELL:
        return Spell(name=str(data.get("name") or ""), spell_id=_opt_int(data.get("spell_id")), icon=icon)
    if kind is SlotKind.ITEM:
        return Item(item_id=_opt_int(data.get("id")), name=data.get("name"), icon=icon)
    if kind is SlotKind.MACRO:
        return Macro(name=str(data.get("name") or ""), body=str(data.get("body") or ""), icon=icon)
    if kind is SlotKind.COMPANION:
        # Older saves stored the subtype as "companionType".
        subtype = data.get("subtype") or data.get("companionType")
        return Companion(subtype=subtype, companion_id=_opt_int(data.get("id")), name=data.get("name"), icon=icon)
    # SlotKind.EQUIPMENT_SET; older saves used "setName".
    return EquipmentSet(name=str(data.get("name") or data.get("setName") or ""), icon=icon)
