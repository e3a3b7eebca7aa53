from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from . import __version__
from .capture import CaptureResult, CaptureScheduler, SlotCapturer
from .chat import ChatLog
from .config import BarBuilderSettings
from .events import EventBus
from .interfaces import ActionBarClient, LevelSource, TimerSource
from .layout.master_sync import MasterSync
from .layout.store import LayoutStore
from .levels import LevelTracker
from .logging_config import configure_logging
from .persistence.manager import CharacterSaveManager
from .persistence.models import CharacterState
from .profile import SlotProfile
from .restore.engine import RestoreEngine, RestoreResult
from .restore.placement import SlotPlacer
from .timers import TimerQueue

logger = logging.getLogger(__name__)


class BarBuilder:
    """One character's layout keeper, wired to a client.

    The host forwards client notifications to the ``on_*`` methods and drives
    ``timers``. Everything runs on the caller's thread.

    Usage:
        bb = BarBuilder(client, level_source=lambda: player.level, root_dir=save_dir)
        bb.on_entering_world()
        bb.on_slot_changed(5)
        bb.timers.advance(0.5)   # debounced capture runs
    """

    def __init__(
        self,
        client: ActionBarClient,
        level_source: LevelSource,
        timers: Optional[TimerSource] = None,
        settings: Optional[BarBuilderSettings] = None,
        save_manager: Optional[CharacterSaveManager] = None,
        root_dir: Optional[Path] = None,
        character_id: str = "default",
        chat_sink: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.client = client
        self.level_source = level_source
        self.timers = timers if timers is not None else TimerQueue()
        self.settings = settings or BarBuilderSettings.load()
        configure_logging(self.settings)
        self.save_manager = save_manager or CharacterSaveManager(root_dir=root_dir, character_id=character_id)
        self.state: CharacterState = self.save_manager.load()
        self.bus = EventBus()
        self.chat = ChatLog(sink=chat_sink, is_shushed=lambda: self.state.shush)

        persist = self.save_manager.save
        self.profile = SlotProfile(self.state, self.settings, bus=self.bus, persist=persist)
        self.store = LayoutStore(self.state, persist=persist)
        self.sync = MasterSync(self.store, self.profile, self.settings.total_slots)
        self.capturer = SlotCapturer(client, self.profile, level_source)
        self.capture = CaptureScheduler(
            self.capturer, self.store, self.sync, self.timers, self.settings, chat=self.chat, bus=self.bus
        )
        self.restore = RestoreEngine(
            client,
            self.store,
            self.profile,
            SlotPlacer(client, self.settings.spell_aliases),
            self.capturer,
            self.timers,
            self.settings,
            level_source,
            chat=self.chat,
            bus=self.bus,
        )
        self.levels = LevelTracker(
            self.state,
            self.store,
            self.capture,
            self.restore,
            client,
            self.timers,
            self.settings,
            level_source,
            chat=self.chat,
        )
        self.initialized = False
        self.profile.register_change_callback(self._on_spec_changed)

    # --------------- Lifecycle ---------------

    def on_entering_world(self) -> None:
        if self.initialized:
            return
        self.initialized = True
        level = self.level_source()
        self.levels.initialize(level)
        spec = self.profile.active_spec

        if not self.store.has(level, spec):

            def first_capture() -> None:
                self.capture.perform()
                # A rerun capture does not save; keep a diff baseline anyway.
                if not self.store.has(level, self.profile.active_spec):
                    self._store_baseline(level)

            self.timers.after(self.settings.restore_delay, first_capture)
        else:
            self.timers.after(self.settings.restore_delay, lambda: self._store_baseline(level))

        self.chat.print(f"v{__version__} loaded")

    def _store_baseline(self, level: int) -> None:
        snapshot = self.capturer.take_snapshot()
        if snapshot is not None:
            self.store.save_session(level, snapshot, self.profile.active_spec)

    def _on_spec_changed(self, spec: int) -> None:
        if not self.initialized:
            return
        self.capture.cancel()
        self.restore.perform()

    # --------------- Client notifications ---------------

    def _captures_allowed(self) -> bool:
        # Our own placements must not be captured as player edits.
        return self.initialized and not self.restore.is_in_progress()

    def on_slot_changed(self, slot: Optional[int] = None) -> None:
        if self._captures_allowed():
            self.capture.schedule()

    def on_bonus_bar_update(self) -> None:
        if self._captures_allowed():
            self.capture.schedule()

    def on_level_up(self, new_level: int) -> None:
        if self.initialized:
            self.levels.on_level_up(new_level)

    def on_unit_level(self, unit: str = "player") -> None:
        if unit != "player" or not self.initialized:
            return
        self.levels.handle_level_change(self.level_source())

    def on_regen_enabled(self) -> None:
        self.levels.on_regen_enabled()

    # --------------- Commands ---------------

    def save_now(self) -> CaptureResult:
        self.capture.cancel()
        return self.capture.perform(force_save=True)

    def restore_now(self, level: Optional[int] = None) -> RestoreResult:
        return self.restore.perform(level)

    def clear_layouts(self, spec: Optional[int] = None) -> None:
        self.store.clear_all(self.profile.active_spec if spec is None else spec)
        self.chat.print("All layouts cleared")

    def set_shush(self, shushed: bool) -> None:
        self.state.shush = bool(shushed)
        self.save_manager.save(self.state)
