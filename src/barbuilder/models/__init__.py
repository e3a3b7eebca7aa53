from .descriptors import (
    ALWAYS_AVAILABLE_KINDS,
    EMPTY,
    Companion,
    Empty,
    EquipmentSet,
    Item,
    Macro,
    SlotDescriptor,
    SlotKind,
    Spell,
    descriptor_from_dict,
    descriptor_to_dict,
    descriptors_equal,
    display_name,
    is_empty,
)
from .snapshot import Snapshot

__all__ = [
    "ALWAYS_AVAILABLE_KINDS",
    "EMPTY",
    "Companion",
    "Empty",
    "EquipmentSet",
    "Item",
    "Macro",
    "SlotDescriptor",
    "SlotKind",
    "Spell",
    "Snapshot",
    "descriptor_from_dict",
    "descriptor_to_dict",
    "descriptors_equal",
    "display_name",
    "is_empty",
]
