"""
BarBuilder core package.

Keeps one action-bar layout per character, spec and level, and puts it back
when the character levels up again. It provides:
- Slot descriptors and snapshots with kind-specific equality
- A two-tier layout store (durable save + session baselines)
- Debounced capture and master sync of edits made during a rerun
- A restore engine with verify-and-retry passes
- Atomic JSON character saves with schema migrations

Hosts implement ``ActionBarClient`` and compose everything through ``BarBuilder``.
"""
__version__ = "1.2.0"

from .app import BarBuilder
from .config import BarBuilderSettings
from .errors import BarBuilderError, ConfigError, LayoutValidationError
from .interfaces import ActionBarClient, CompanionEntry, SpellbookEntry
from .models import (
    EMPTY,
    Companion,
    Empty,
    EquipmentSet,
    Item,
    Macro,
    SlotDescriptor,
    SlotKind,
    Snapshot,
    Spell,
    descriptors_equal,
)
from .timers import TimerQueue

__all__ = [
    "__version__",
    "BarBuilder",
    "BarBuilderSettings",
    "BarBuilderError",
    "ConfigError",
    "LayoutValidationError",
    "ActionBarClient",
    "CompanionEntry",
    "SpellbookEntry",
    "EMPTY",
    "Companion",
    "Empty",
    "EquipmentSet",
    "Item",
    "Macro",
    "SlotDescriptor",
    "SlotKind",
    "Snapshot",
    "Spell",
    "descriptors_equal",
    "TimerQueue",
]
