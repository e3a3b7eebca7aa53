from ..errors import BarBuilderError


class SaveError(BarBuilderError):
    """Base exception for save/load errors."""


class SaveValidationError(SaveError):
    """Raised when validation of save data fails."""


class CorruptSaveError(SaveError):
    """Raised when save files are corrupted and cannot be recovered from backup."""
