from __future__ import annotations

"""
Level bookkeeping: highest level ever reached, level-ups during a rerun,
and the return to level 1 after a death reset.
"""
import itertools
import logging
from typing import Optional

from .capture import CaptureScheduler, SlotCapturer
from .chat import ChatLog
from .config import BarBuilderSettings
from .interfaces import ActionBarClient, LevelSource, TimerSource
from .layout.store import LayoutStore
from .models.descriptors import Companion
from .persistence.models import CharacterState
from .restore.engine import RestoreEngine

logger = logging.getLogger(__name__)


def migrate_companions(state: CharacterState, client: ActionBarClient) -> int:
    """Fill in names for companion slots saved with only a registry index.

    The index is tried first; when it names nothing the icon is matched
    against the registry instead. Returns how many slots were enriched.
    """
    enriched = 0
    for spec in state.specs.values():
        for layout in spec.layouts.values():
            for slot, desc in list(layout.slots.items()):
                if not isinstance(desc, Companion) or desc.name or not desc.subtype:
                    continue
                entries = list(client.companions(desc.subtype))
                name: Optional[str] = None
                if desc.companion_id is not None:
                    name = next((e.name for e in entries if e.index == desc.companion_id), None)
                if not name and desc.icon:
                    name = next((e.name for e in entries if e.icon == desc.icon), None)
                if name:
                    layout.slots[slot] = Companion(
                        subtype=desc.subtype,
                        companion_id=desc.companion_id,
                        name=name,
                        icon=desc.icon,
                    )
                    enriched += 1
    return enriched


class LevelTracker:
    def __init__(
        self,
        state: CharacterState,
        store: LayoutStore,
        capture: CaptureScheduler,
        restore: RestoreEngine,
        client: ActionBarClient,
        timers: TimerSource,
        settings: BarBuilderSettings,
        level_source: LevelSource,
        chat: Optional[ChatLog] = None,
    ) -> None:
        self.state = state
        self.store = store
        self.capture = capture
        self.restore = restore
        self.client = client
        self.timers = timers
        self.settings = settings
        self.level_source = level_source
        self.chat = chat or ChatLog()
        self._levelup_tokens = itertools.count(1)
        self._levelup_token = 0
        self.pending_combat_level: Optional[int] = None

    @property
    def capturer(self) -> SlotCapturer:
        return self.capture.capturer

    @property
    def highest_seen_level(self) -> int:
        return self.state.highest_seen_level or 0

    @property
    def last_known_level(self) -> Optional[int]:
        return self.state.last_known_level

    # --------------- Bookkeeping ---------------

    def initialize(self, level: int) -> None:
        changed = False
        if self.state.last_known_level is None:
            self.state.last_known_level = level
            changed = True
        if self.state.highest_seen_level is None:
            self.state.highest_seen_level = level
            changed = True
        changed = self.update_highest_seen(level, flush=False) or changed
        if not self.state.companions_migrated:
            enriched = migrate_companions(self.state, self.client)
            self.state.companions_migrated = True
            changed = True
            if enriched:
                self.chat.forced(f"Migration: enriched {enriched} companion slot(s)")
        if changed:
            self.store.flush()

    def update_highest_seen(self, level: int, flush: bool = True) -> bool:
        if level <= self.highest_seen_level:
            return False
        self.state.highest_seen_level = level
        logger.info("Highest seen level is now %d", level)
        if flush:
            self.store.flush()
        return True

    # --------------- Level-up ---------------

    def handle_level_up(self, new_level: int) -> Optional[str]:
        """React to reaching *new_level*. Returns "rerun", "restore" or None."""
        old_level = self.state.last_known_level
        if old_level is None:
            old_level = new_level - 1
        prev_highest = self.highest_seen_level
        self.state.last_known_level = new_level
        self.update_highest_seen(new_level, flush=False)
        self.store.flush()

        # Reaching the peak from below still counts: the client drops newly
        # learned spells on the bar during the climb and they must be cleared.
        if prev_highest >= new_level and old_level < prev_highest:
            self.capture.cancel()
            logger.info("Level %d: rerun, restoring master (level %d)", new_level, self.highest_seen_level)
            self.restore.perform(self.highest_seen_level, force_clear=True)
            return "rerun"

        if self.store.has(new_level, self.capturer.profile.active_spec):
            self.capture.cancel()
            self.restore.perform(new_level)
            return "restore"

        # First time at this level; the debounced capture saves the bars.
        return None

    def on_level_up(self, new_level: int) -> None:
        """Debounce level-up notifications, which can arrive one level at a time."""
        token = next(self._levelup_tokens)
        self._levelup_token = token

        def fire() -> None:
            if token != self._levelup_token:
                return
            self._execute_level_up(new_level)

        self.timers.after(self.settings.restore_delay, fire)

    def _execute_level_up(self, new_level: int) -> None:
        if self.client.in_combat():
            # Try anyway shortly; retry in full once combat ends.
            self.timers.after(self.settings.verify_delay, lambda: self.handle_level_up(new_level))
            self.pending_combat_level = new_level
            return
        self.handle_level_up(new_level)

    def on_regen_enabled(self) -> None:
        if self.pending_combat_level is None:
            return
        level = self.pending_combat_level
        self.pending_combat_level = None
        self.timers.after(self.settings.restore_delay, lambda: self.handle_level_up(level))

    # --------------- Death reset ---------------

    def handle_level_change(self, new_level: int) -> bool:
        """Detect a return to level 1. Returns True when it was handled."""
        old_level = self.state.last_known_level
        if not (old_level and old_level > 1 and new_level == 1):
            return False

        spec = self.capturer.profile.active_spec
        self.capture.cancel()
        # The bars are already stripped by now; a prior layout is the better record.
        if not self.store.has(old_level, spec):
            snapshot = self.capturer.take_snapshot()
            if snapshot is not None:
                self.store.save(old_level, snapshot, spec)
                logger.info("Death reset: level %d saved (no prior layout)", old_level)
        else:
            logger.info("Death reset: level %d layout kept", old_level)

        self.state.last_known_level = new_level
        self.store.flush()
        if self.store.has(1, spec):
            self.chat.print("Returned to level 1: Restoring bars")
            self.restore.perform(1)

        def store_baseline() -> None:
            snapshot = self.capturer.take_snapshot()
            if snapshot is not None:
                self.store.save_session(new_level, snapshot, self.capturer.profile.active_spec)

        self.timers.after(self.settings.restore_delay, store_baseline)
        return True
