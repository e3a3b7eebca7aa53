from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..capture import SlotCapturer
from ..chat import ChatLog
from ..config import BarBuilderSettings
from ..events import RESTORE_COMPLETED, VERIFY_FINISHED, EventBus
from ..interfaces import ActionBarClient, LevelSource, TimerSource
from ..layout.store import LayoutStore, LayoutTier
from ..models.descriptors import SlotDescriptor, descriptors_equal, display_name, is_empty
from ..models.snapshot import Snapshot
from ..profile import SlotProfile
from .outcome import PlacementFailure, RestoreOutcome
from .placement import PlacementStatus, SlotPlacer

logger = logging.getLogger(__name__)


class VerifyState(str, Enum):
    IDLE = "idle"
    VERIFYING = "verifying"


@dataclass
class RestoreResult:
    success: bool
    level: int
    source_level: Optional[int] = None
    tier: Optional[LayoutTier] = None
    force_clear: bool = False
    outcome: RestoreOutcome = field(default_factory=RestoreOutcome)
    error: Optional[str] = None
    messages: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.success

    @property
    def restored_count(self) -> int:
        return self.outcome.restored_count

    @property
    def failures(self) -> List[PlacementFailure]:
        return self.outcome.failures


class RestoreEngine:
    """Applies a stored layout to the live bars, then verifies it stuck.

    The client can overwrite slots right after a restore (new abilities are
    dropped on the bar at level-up), so every restore is followed by verify
    passes: pass 1 runs immediately, later passes run ``verify_delay`` apart
    while passes keep correcting slots and ``verify_retries`` allows. Each
    ``perform`` bumps a generation number; a scheduled pass from an older
    generation does nothing when it fires.
    """

    def __init__(
        self,
        client: ActionBarClient,
        store: LayoutStore,
        profile: SlotProfile,
        placer: SlotPlacer,
        capturer: SlotCapturer,
        timers: TimerSource,
        settings: BarBuilderSettings,
        level_source: LevelSource,
        chat: Optional[ChatLog] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.client = client
        self.store = store
        self.profile = profile
        self.placer = placer
        self.capturer = capturer
        self.timers = timers
        self.settings = settings
        self.level_source = level_source
        self.chat = chat or ChatLog()
        self.bus = bus or EventBus()

        self.state = VerifyState.IDLE
        self.attempt = 0
        self.verify_history: List[int] = []
        self._restoring = False
        self._pending_verify = False
        self._generation = 0

    # --------------- Progress flags ---------------

    @property
    def is_restoring(self) -> bool:
        return self._restoring

    @property
    def generation(self) -> int:
        return self._generation

    def is_in_progress(self) -> bool:
        return self._restoring or self._pending_verify

    def reset_in_progress(self) -> None:
        self._restoring = False
        self._pending_verify = False
        self._generation += 1
        self.state = VerifyState.IDLE

    def _enabled_slots(self) -> List[int]:
        return [s for s in range(1, self.settings.total_slots + 1) if self.profile.is_slot_enabled(s)]

    # --------------- Restore ---------------

    def from_snapshot(self, snapshot: Optional[Snapshot], force_clear: bool = False) -> RestoreOutcome:
        """Place every enabled slot of *snapshot*. Per-slot failures are collected, not raised."""
        outcome = RestoreOutcome()
        if snapshot is None:
            return outcome
        for slot in self._enabled_slots():
            desc = snapshot.get(slot)
            result = self.placer.restore_slot(slot, desc, force_clear)
            if result.status in (PlacementStatus.PLACED, PlacementStatus.ALREADY_PLACED):
                outcome.restored_count += 1
            elif result.status is PlacementStatus.FAILED:
                outcome.failures.append(
                    PlacementFailure(
                        slot=slot,
                        kind=getattr(desc, "kind", None),
                        name=display_name(desc),
                        reason=result.reason,
                    )
                )
        return outcome

    def perform(self, level: Optional[int] = None, force_clear: bool = False) -> RestoreResult:
        # Any scheduled verify pass belongs to an older restore from here on.
        self._generation += 1
        generation = self._generation
        self._pending_verify = False
        self.state = VerifyState.IDLE

        if level is None:
            level = self.level_source()
        spec = self.profile.active_spec

        layout, tier = self.store.get(level, spec)
        source_level = level
        highest = self.store.highest_seen_level
        if highest > level:
            # During a rerun only the master is authoritative.
            master, master_tier = self.store.get(highest, spec)
            if master is not None:
                layout, tier, source_level = master, master_tier, highest
                force_clear = True

        result = RestoreResult(success=False, level=level, source_level=source_level, tier=tier, force_clear=force_clear)
        if layout is None:
            self._say(result, f"Level {level}: No saved layout found")
            return result

        self._restoring = True
        try:
            outcome = self.from_snapshot(layout, force_clear)
        except Exception as e:
            logger.exception("Restore batch failed at level %d", level)
            result.error = str(e)
            result.messages.append(f"Restore error: {e}")
            self.chat.error(f"Restore error: {e}")
            return result
        finally:
            self._restoring = False

        result.success = True
        result.outcome = outcome
        if outcome.failed_count == 0:
            self._say(result, f"Level {level}: {outcome.restored_count} slots restored")
        else:
            self._say(
                result,
                f"Level {level}: {outcome.restored_count} slots restored, {outcome.failed_count} failed",
            )
            for line in outcome.summary_lines():
                self._say(result, line)
        logger.info(
            "Restored level %d from level %d layout (%s, force_clear=%s)",
            level,
            source_level,
            tier.value if tier else "-",
            force_clear,
        )
        self.bus.emit(
            RESTORE_COMPLETED,
            {"level": level, "source_level": source_level, "restored": outcome.restored_count},
        )

        self._pending_verify = True
        self.state = VerifyState.VERIFYING
        self.verify_history = []
        self._verify_and_fix(layout, 1, force_clear, generation)
        return result

    def _say(self, result: RestoreResult, text: str) -> None:
        result.messages.append(text)
        self.chat.print(text)

    # --------------- Verify ---------------

    def slot_matches(self, slot: int, expected: SlotDescriptor) -> bool:
        live = self.client.read_slot(slot)
        if is_empty(expected):
            return is_empty(live)
        return descriptors_equal(live, expected)

    def _verify_and_fix(self, layout: Snapshot, attempt: int, force_clear: bool, generation: int) -> Optional[int]:
        if generation != self._generation:
            logger.debug("Dropping stale verify pass %d (generation %d)", attempt, generation)
            return None

        self.attempt = attempt
        fixed = 0
        self._restoring = True
        try:
            for slot in self._enabled_slots():
                expected = layout.get(slot)
                if expected is None or self.slot_matches(slot, expected):
                    continue
                result = self.placer.restore_slot(slot, expected, force_clear)
                if result.ok and self.slot_matches(slot, expected):
                    fixed += 1
        except Exception as e:
            logger.exception("Verify pass %d failed", attempt)
            self.chat.error(f"Restore error: {e}")
            self._pending_verify = False
            self.state = VerifyState.IDLE
            return None
        finally:
            self._restoring = False

        self.verify_history.append(fixed)
        if fixed > 0:
            self.chat.print(f"  Verify pass {attempt}: {fixed} slot(s) corrected")

        if fixed > 0 and attempt < self.settings.verify_retries:
            self.timers.after(
                self.settings.verify_delay,
                lambda: self._verify_and_fix(layout, attempt + 1, force_clear, generation),
            )
            return fixed

        if force_clear:
            # Master sync diffs against what the bars show after corrections.
            fresh = self.capturer.take_snapshot()
            if fresh is not None:
                self.store.save_session(self.level_source(), fresh, self.profile.active_spec)
        self._pending_verify = False
        self.state = VerifyState.IDLE
        self.bus.emit(VERIFY_FINISHED, {"passes": attempt, "corrections": list(self.verify_history)})
        return fixed

    # --------------- Clear ---------------

    def clear_all_slots(self) -> int:
        self._restoring = True
        try:
            count = 0
            for slot in self._enabled_slots():
                self.client.clear_slot(slot)
                count += 1
        except Exception as e:
            logger.exception("Clearing slots failed")
            self.chat.error(f"Clear error: {e}")
            return 0
        finally:
            self._restoring = False
        logger.info("Cleared %d slot(s)", count)
        return count
