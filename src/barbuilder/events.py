from __future__ import annotations

"""
A minimal, synchronous event bus to decouple the layout components.
Listeners are invoked in registration order.
"""
import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, Dict, List

logger = logging.getLogger(__name__)

Listener = Callable[[str, Dict[str, Any]], None]

SPEC_CHANGED = "spec.changed"
LAYOUT_SAVED = "layout.saved"
MASTER_SYNCED = "master.synced"
RESTORE_COMPLETED = "restore.completed"
VERIFY_FINISHED = "restore.verify_finished"


class EventBus:
    """Simple publish/subscribe event bus."""

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)

    def on(self, event_name: str, listener: Listener) -> None:
        """Register a listener for a specific event name."""
        self._listeners[event_name].append(listener)

    def off(self, event_name: str, listener: Listener) -> None:
        try:
            self._listeners[event_name].remove(listener)
        except ValueError:
            pass

    def emit(self, event_name: str, payload: Dict[str, Any] | None = None) -> None:
        """Emit an event with optional payload, notifying all listeners."""
        if payload is None:
            payload = {}
        logger.debug("emit %s %s", event_name, payload)
        for listener in list(self._listeners.get(event_name, [])):
            listener(event_name, payload)
