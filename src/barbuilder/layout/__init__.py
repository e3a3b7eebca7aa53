from .store import LayoutStore, LayoutTier
from .master_sync import MasterSync, SlotChange, SyncKind, SyncOp, can_sync_clear

__all__ = [
    "LayoutStore",
    "LayoutTier",
    "MasterSync",
    "SlotChange",
    "SyncKind",
    "SyncOp",
    "can_sync_clear",
]
