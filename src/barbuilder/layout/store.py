from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from ..models.snapshot import Snapshot
from ..persistence.models import CharacterState

logger = logging.getLogger(__name__)


class LayoutTier(str, Enum):
    DURABLE = "saved"
    SESSION = "session"


class LayoutStore:
    """Layouts keyed by (spec, level) in two tiers.

    - durable: lives in the character save, authoritative for restores
    - session: in-memory for this run only, used as the diff baseline for master sync

    Lookups prefer durable. Durable mutations are flushed through ``persist``.
    """

    def __init__(
        self,
        state: CharacterState,
        persist: Optional[Callable[[CharacterState], None]] = None,
    ) -> None:
        self.state = state
        self._persist = persist
        self._session: Dict[int, Dict[int, Snapshot]] = {}

    # --------------- Internal helpers ---------------

    def _durable(self, spec: Optional[int]) -> Optional[Dict[int, Snapshot]]:
        if spec is None:
            return None
        spec_state = self.state.specs.get(spec)
        if spec_state is None:
            return None
        return spec_state.layouts

    def _session_for(self, spec: int) -> Dict[int, Snapshot]:
        return self._session.setdefault(spec, {})

    def flush(self) -> None:
        if self._persist is not None:
            self._persist(self.state)

    @property
    def highest_seen_level(self) -> int:
        return self.state.highest_seen_level or 0

    # --------------- Layout operations ---------------

    def save(self, level: int, snapshot: Optional[Snapshot], spec: Optional[int]) -> bool:
        """Store *snapshot* in both tiers. False when there is no spec to store it under."""
        if snapshot is None:
            return False
        layouts = self._durable(spec)
        if layouts is None:
            logger.warning("No spec context for save (spec=%s, level=%s)", spec, level)
            return False
        layouts[level] = snapshot.copy()
        self._session_for(spec)[level] = snapshot.copy()
        self.flush()
        logger.debug("Saved layout spec=%s level=%s (%d slots)", spec, level, snapshot.configured_count)
        return True

    def save_session(self, level: int, snapshot: Optional[Snapshot], spec: Optional[int]) -> bool:
        if snapshot is None or spec is None:
            return False
        self._session_for(spec)[level] = snapshot.copy()
        return True

    def get(self, level: int, spec: Optional[int]) -> Tuple[Optional[Snapshot], Optional[LayoutTier]]:
        """Return the stored layout object and the tier it came from.

        The object is returned by reference; master sync mutates it in place.
        """
        layouts = self._durable(spec)
        if layouts and level in layouts:
            return layouts[level], LayoutTier.DURABLE
        if spec is not None:
            session = self._session.get(spec, {})
            if level in session:
                return session[level], LayoutTier.SESSION
        return None, None

    def get_session(self, level: int, spec: Optional[int]) -> Optional[Snapshot]:
        if spec is None:
            return None
        return self._session.get(spec, {}).get(level)

    def has(self, level: int, spec: Optional[int]) -> bool:
        layout, _ = self.get(level, spec)
        return layout is not None

    def delete(self, level: int, spec: Optional[int]) -> None:
        layouts = self._durable(spec)
        if layouts is not None and layouts.pop(level, None) is not None:
            self.flush()
        if spec is not None:
            self._session.get(spec, {}).pop(level, None)

    def prune_below(self, keep_level: int, spec: Optional[int]) -> int:
        """Drop durable layouts below *keep_level*. Session entries are left alone."""
        layouts = self._durable(spec)
        if not layouts:
            return 0
        doomed = [level for level in layouts if level < keep_level]
        for level in doomed:
            del layouts[level]
        if doomed:
            self.flush()
            logger.info("Pruned %d layout(s) below level %d (spec=%s)", len(doomed), keep_level, spec)
        return len(doomed)

    def clear_all(self, spec: Optional[int]) -> None:
        layouts = self._durable(spec)
        if layouts is not None:
            layouts.clear()
            self.flush()
        if spec is not None:
            self._session[spec] = {}

    def clear_session_data(self) -> None:
        self._session = {}

    # --------------- Listing ---------------

    def get_saved_levels(self, spec: Optional[int]) -> List[int]:
        return sorted(self._durable(spec) or {})

    def get_count(self, spec: Optional[int]) -> int:
        return len(self._durable(spec) or {})
