from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

PREFIX = "[EBB]"


@dataclass(frozen=True)
class ChatMessage:
    """A line shown to the player. Levels: "info", "error", "forced"."""

    level: str
    text: str


class ChatLog:
    """Player-facing message log with a shush toggle.

    Shushed lines are still kept in the log and forwarded to ``logging`` at
    DEBUG; only the optional ``sink`` (the chat frame) is skipped. Forced
    lines always reach the sink.
    """

    def __init__(
        self,
        sink: Optional[Callable[[str], None]] = None,
        is_shushed: Optional[Callable[[], bool]] = None,
    ) -> None:
        self._sink = sink
        self._is_shushed = is_shushed or (lambda: False)
        self._messages: List[ChatMessage] = []

    def _add(self, level: str, text: str, force: bool = False) -> None:
        msg = ChatMessage(level=level, text=str(text))
        self._messages.append(msg)
        shushed = not force and self._is_shushed()
        if level == "error":
            logger.warning(msg.text)
        elif shushed:
            logger.debug(msg.text)
        else:
            logger.info(msg.text)
        if self._sink is not None and not shushed:
            self._sink(f"{PREFIX} {msg.text}")

    def print(self, text: str) -> None:
        self._add("info", text)

    def error(self, text: str) -> None:
        self._add("error", text)

    def forced(self, text: str) -> None:
        self._add("forced", text, force=True)

    def messages(self) -> List[ChatMessage]:
        return list(self._messages)

    def texts(self) -> List[str]:
        return [m.text for m in self._messages]

    def clear(self) -> None:
        self._messages.clear()
