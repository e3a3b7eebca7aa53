from __future__ import annotations

import logging
from typing import Callable, Optional

from .config import BarBuilderSettings
from .events import SPEC_CHANGED, EventBus
from .persistence.models import CharacterState, SpecState

logger = logging.getLogger(__name__)


class SlotProfile:
    """Which bars each spec manages, and which spec is active.

    Slots are numbered 1..total_slots, bar by bar: slot 13 is bar 2, position 1.
    """

    def __init__(
        self,
        state: CharacterState,
        settings: BarBuilderSettings,
        bus: Optional[EventBus] = None,
        persist: Optional[Callable[[CharacterState], None]] = None,
    ) -> None:
        self._state = state
        self.settings = settings
        self.bus = bus or EventBus()
        self._persist = persist
        if state.ensure_specs(settings.spec_count, settings.default_enabled_bars):
            self._flush()

    def _flush(self) -> None:
        if self._persist is not None:
            self._persist(self._state)

    # --------------- Geometry ---------------

    def bar_from_slot(self, slot: int) -> int:
        return (slot - 1) // self.settings.slots_per_bar + 1

    def position_in_bar(self, slot: int) -> int:
        return (slot - 1) % self.settings.slots_per_bar + 1

    def slot_from_bar_position(self, bar: int, position: int) -> Optional[int]:
        if bar < 1 or bar > self.settings.total_bars:
            return None
        if position < 1 or position > self.settings.slots_per_bar:
            return None
        return (bar - 1) * self.settings.slots_per_bar + position

    # --------------- Specs ---------------

    @property
    def active_spec(self) -> int:
        return self._state.active_spec

    def spec(self, spec: Optional[int] = None) -> Optional[SpecState]:
        return self._state.specs.get(self.active_spec if spec is None else spec)

    def spec_name(self, spec: Optional[int] = None) -> str:
        state = self.spec(spec)
        return state.name if state else ""

    def switch(self, spec: int) -> bool:
        """Make *spec* active and notify listeners. Unknown specs are refused."""
        if spec not in self._state.specs:
            logger.warning("Refusing to switch to unknown spec %s", spec)
            return False
        if spec == self._state.active_spec:
            return True
        old = self._state.active_spec
        self._state.active_spec = spec
        self._flush()
        logger.info("Active spec: %s -> %s", old, spec)
        self.bus.emit(SPEC_CHANGED, {"old": old, "new": spec})
        return True

    def register_change_callback(self, callback: Callable[[int], None]) -> None:
        self.bus.on(SPEC_CHANGED, lambda _name, payload: callback(payload["new"]))

    # --------------- Enabled slots ---------------

    def is_slot_enabled(self, slot: int, spec: Optional[int] = None) -> bool:
        if slot < 1 or slot > self.settings.total_slots:
            return False
        state = self.spec(spec)
        if state is None:
            return False
        return self.bar_from_slot(slot) in state.enabled_bars

    def set_bar_enabled(self, bar: int, enabled: bool, spec: Optional[int] = None) -> None:
        if bar < 1 or bar > self.settings.total_bars:
            raise ValueError(f"Bar {bar} is outside 1..{self.settings.total_bars}")
        state = self.spec(spec)
        if state is None:
            raise ValueError(f"Unknown spec: {spec}")
        if enabled:
            state.enabled_bars.add(bar)
        else:
            state.enabled_bars.discard(bar)
        self._flush()

    def enabled_slot_count(self, spec: Optional[int] = None) -> int:
        state = self.spec(spec)
        if state is None:
            return 0
        bars = [b for b in state.enabled_bars if 1 <= b <= self.settings.total_bars]
        return len(bars) * self.settings.slots_per_bar

    def propagate_changes(self, spec: Optional[int] = None) -> bool:
        state = self.spec(spec)
        return bool(state and state.propagate_changes)

    def set_propagate_changes(self, enabled: bool, spec: Optional[int] = None) -> None:
        state = self.spec(spec)
        if state is None:
            raise ValueError(f"Unknown spec: {spec}")
        state.propagate_changes = bool(enabled)
        self._flush()
