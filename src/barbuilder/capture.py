from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .chat import ChatLog
from .config import BarBuilderSettings
from .events import LAYOUT_SAVED, MASTER_SYNCED, EventBus
from .interfaces import ActionBarClient, LevelSource, TimerSource, is_fully_blocked
from .layout.master_sync import MasterSync
from .layout.store import LayoutStore
from .models.snapshot import Snapshot
from .profile import SlotProfile

logger = logging.getLogger(__name__)

CONTEXT_MESSAGES = {
    "vehicle": "in vehicle",
    "possess": "mind controlling",
}


def friendly_context(context: Optional[str]) -> str:
    if context in CONTEXT_MESSAGES:
        return CONTEXT_MESSAGES[context]
    if context and context.startswith("bonus:"):
        return "in stance or form"
    return context or "unknown"


@dataclass
class CaptureResult:
    """What a capture decided. ``saved`` is True only when a durable layout was written."""

    saved: bool = False
    level: int = 0
    configured: int = 0
    synced: int = 0
    pruned: int = 0
    rerun: bool = False
    blocked: bool = False
    reason: Optional[str] = None
    messages: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.saved


class SlotCapturer:
    """Reads every enabled slot of the active spec into a Snapshot."""

    def __init__(
        self,
        client: ActionBarClient,
        profile: SlotProfile,
        level_source: LevelSource,
    ) -> None:
        self.client = client
        self.profile = profile
        self.level_source = level_source

    def capture_all(self) -> Snapshot:
        snapshot = Snapshot(player_level=self.level_source())
        for slot in range(1, self.profile.settings.total_slots + 1):
            if not self.profile.is_slot_enabled(slot):
                continue
            desc = self.client.read_slot(slot)
            if desc is not None:
                snapshot.slots[slot] = desc
        return snapshot

    def take_snapshot(self) -> Optional[Snapshot]:
        """Snapshot the bars, or None while a vehicle/possess bar replaces them."""
        if is_fully_blocked(self.client):
            return None
        return self.capture_all()


class CaptureScheduler:
    """Debounced capture of the live bars.

    Bursts of slot-change notifications collapse into one ``perform`` call.
    Below the master level a capture is an edit to sync into the master; at
    or above it the capture is saved as the level's layout.
    """

    def __init__(
        self,
        capturer: SlotCapturer,
        store: LayoutStore,
        sync: MasterSync,
        timers: TimerSource,
        settings: BarBuilderSettings,
        chat: Optional[ChatLog] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.capturer = capturer
        self.store = store
        self.sync = sync
        self.timers = timers
        self.settings = settings
        self.chat = chat or ChatLog()
        self.bus = bus or EventBus()
        self._pending = False
        self._tokens = itertools.count(1)
        self._latest_token = 0

    @property
    def is_pending(self) -> bool:
        return self._pending

    @property
    def profile(self) -> SlotProfile:
        return self.capturer.profile

    # --------------- Scheduling ---------------

    def schedule(self) -> None:
        if is_fully_blocked(self.capturer.client):
            return
        token = next(self._tokens)
        self._latest_token = token
        self._pending = True
        self.timers.after(self.settings.debounce_time, lambda: self._fire(token))

    def _fire(self, token: int) -> None:
        if not self._pending or token != self._latest_token:
            return
        self._pending = False
        self.perform(allow_propagate=True)

    def cancel(self) -> None:
        self._pending = False

    # --------------- Capture ---------------

    def perform(self, allow_propagate: bool = False, force_save: bool = False) -> CaptureResult:
        client = self.capturer.client
        if is_fully_blocked(client):
            reason = friendly_context(client.capture_context())
            self.chat.print(f"Skipped save: {reason}")
            return CaptureResult(blocked=True, reason=reason, messages=[f"Skipped save: {reason}"])

        try:
            return self._perform(allow_propagate, force_save)
        except Exception as e:
            logger.exception("Capture failed")
            self.chat.error(f"Capture error: {e}")
            return CaptureResult(reason="error", messages=[f"Capture error: {e}"])

    def _perform(self, allow_propagate: bool, force_save: bool) -> CaptureResult:
        level = self.capturer.level_source()
        spec = self.profile.active_spec
        highest = self.store.highest_seen_level
        is_rerun = highest > 0 and level < highest

        if is_rerun and not force_save:
            return self._sync_rerun(level, spec, allow_propagate)

        snapshot = self.capturer.capture_all()
        if not self.store.save(level, snapshot, spec):
            self.chat.error("Failed to save layout")
            return CaptureResult(level=level, reason="no-spec", messages=["Failed to save layout"])

        message = f"Level {level}: {snapshot.configured_count} slots saved"
        self.chat.print(message)
        # Only the highest layout is authoritative; drop the ones it supersedes.
        pruned = self.store.prune_below(level, spec)
        self.bus.emit(LAYOUT_SAVED, {"level": level, "spec": spec, "configured": snapshot.configured_count})
        return CaptureResult(
            saved=True,
            level=level,
            configured=snapshot.configured_count,
            pruned=pruned,
            messages=[message],
        )

    def _sync_rerun(self, level: int, spec: int, allow_propagate: bool) -> CaptureResult:
        result = CaptureResult(level=level, rerun=True, reason="rerun")
        if not (allow_propagate and self.profile.propagate_changes(spec)):
            return result

        baseline = self.store.get_session(level, spec)
        if baseline is not None and baseline.player_level != level:
            baseline = None

        snapshot = self.capturer.capture_all()
        result.configured = snapshot.configured_count
        if baseline is not None:
            synced = self.sync.sync(baseline, snapshot, spec)
            result.synced = synced
            if synced > 0:
                message = f"  {synced} slot(s) synced to master layout"
                self.chat.print(message)
                result.messages.append(message)
                self.bus.emit(MASTER_SYNCED, {"level": level, "spec": spec, "count": synced})
        # Next diff runs against what the bars look like now.
        self.store.save_session(level, snapshot, spec)
        return result
