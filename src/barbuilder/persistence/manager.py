from __future__ import annotations

import logging
import os
import shutil
import threading
from pathlib import Path
from typing import Optional

from .codec import decode_save, encode_save
from .errors import CorruptSaveError, SaveError
from .models import CharacterState
from .paths import default_save_root, ensure_dir

logger = logging.getLogger(__name__)


class CharacterSaveManager:
    """Responsible for reading/writing a character's save file with atomic writes and backups."""

    def __init__(self, root_dir: Optional[Path] = None, character_id: str = "default") -> None:
        self.root_dir = ensure_dir(Path(root_dir) if root_dir else default_save_root())
        self.profile_dir = ensure_dir(self.root_dir / "profiles" / character_id)
        self.save_path = self.profile_dir / "character.json"
        self.lock = threading.RLock()
        self.character_id = character_id

    # Public API

    def exists(self) -> bool:
        return self.save_path.exists()

    def load(self) -> CharacterState:
        """Load the character save, creating an empty one on first use."""
        with self.lock:
            if not self.save_path.exists():
                state = CharacterState(character_id=self.character_id)
                self.save(state)
                logger.info("Created new character save at %s", self.save_path)
                return state
            return self._load_save_with_fallback(self.save_path)

    def save(self, state: CharacterState) -> Path:
        with self.lock:
            state.touch()
            text = encode_save(state)
            self._atomic_write(self.save_path, text)
            logger.debug("Character save written to %s", self.save_path)
            return self.save_path

    # Internal utilities

    def _load_save_with_fallback(self, path: Path) -> CharacterState:
        try:
            return self._read_save(path)
        except Exception as e:
            primary_exc = e
            logger.warning("Failed to read %s (%s); trying backup", path, e)
            bak = path.with_suffix(path.suffix + ".bak")
            if bak.exists():
                try:
                    return self._read_save(bak)
                except Exception:
                    logger.exception("Backup save %s is unreadable", bak)
        raise CorruptSaveError(f"Unable to load save from {path}: {primary_exc}")

    def _read_save(self, path: Path) -> CharacterState:
        try:
            with path.open("r", encoding="utf-8") as f:
                text = f.read()
        except FileNotFoundError as e:
            raise SaveError(f"Save file not found: {path}") from e
        return decode_save(text)

    def _atomic_write(self, path: Path, text: str) -> None:
        """Write text to path atomically, keeping a .bak copy of the previous file.

        Strategy:
        - Write to path.tmp, flush and fsync
        - Move the existing file to path.bak
        - Rename path.tmp to path
        """
        tmp = path.with_suffix(path.suffix + ".tmp")
        bak = path.with_suffix(path.suffix + ".bak")
        ensure_dir(path.parent)
        with tmp.open("w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            try:
                if bak.exists():
                    bak.unlink()
                shutil.move(str(path), str(bak))
            except OSError:
                # Backup is best effort; the new file still replaces the old one below
                logger.warning("Could not rotate backup for %s", path)
        shutil.move(str(tmp), str(path))
        if not bak.exists():
            try:
                shutil.copy2(str(path), str(bak))
            except OSError:
                logger.warning("Could not create backup for %s", path)
