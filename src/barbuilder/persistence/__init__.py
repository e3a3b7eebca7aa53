"""Durable per-character storage.

This package provides:
- Data models for the character save (specs, enabled bars, durable layouts, level counters)
- Encoding/decoding to a stable JSON schema with versioning and migrations
- A CharacterSaveManager that handles atomic disk I/O, backups, and validation
"""

from .models import SCHEMA_VERSION, CharacterState, SpecState
from .manager import CharacterSaveManager
from .errors import SaveError, SaveValidationError, CorruptSaveError

__all__ = [
    "SCHEMA_VERSION",
    "CharacterState",
    "SpecState",
    "CharacterSaveManager",
    "SaveError",
    "SaveValidationError",
    "CorruptSaveError",
]
