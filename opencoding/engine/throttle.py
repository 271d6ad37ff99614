"""Adaptive pacing of full-text re-render signals.

The first fragment renders immediately and arms a single-shot timer
whose delay grows with the accumulated text length. When the timer
fires, one more render happens if text arrived meanwhile. finalize()
cancels the timer and always renders once more.
"""
from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
from typing import Any

from .config import (
    DEFAULT_RENDER_DELAY_TIERS,
    DEFAULT_RENDER_MAX_DELAY,
    fire_callback,
)

logger = logging.getLogger(__name__)

CallLater = Callable[[float, Callable[[], None]], Any]


def _loop_call_later(delay: float, callback: Callable[[], None]) -> Any:
    return asyncio.get_running_loop().call_later(delay, callback)


class OutputThrottle:
    """Accumulate text and pace ``on_render(full_text)`` calls.

    ``call_later(delay, callback)`` must return a handle with a
    ``cancel()`` method; the default schedules on the running loop.
    """

    def __init__(
        self,
        on_render: Callable[[str], None] | None,
        tiers: tuple[tuple[int, float], ...] = DEFAULT_RENDER_DELAY_TIERS,
        max_delay: float = DEFAULT_RENDER_MAX_DELAY,
        call_later: CallLater | None = None,
    ) -> None:
        self._on_render = on_render
        self._tiers = tuple(sorted(tiers))
        self._max_delay = max_delay
        self._call_later = call_later or _loop_call_later
        self._parts: list[str] = []
        self._length = 0
        self._timer: Any = None
        self._dirty = False
        self._closed = False

    def delay_for(self, length: int) -> float:
        """Timer duration for *length* accumulated characters."""
        for max_chars, delay in self._tiers:
            if length < max_chars:
                return delay
        return self._max_delay

    @property
    def text(self) -> str:
        return "".join(self._parts)

    @property
    def pending(self) -> bool:
        """True while a timer is armed."""
        return self._timer is not None

    def push(self, fragment: str) -> None:
        if self._closed or not fragment:
            return
        self._parts.append(fragment)
        self._length += len(fragment)
        if self._timer is not None:
            self._dirty = True
            return
        self._render()
        delay = self.delay_for(self._length)
        self._timer = self._call_later(delay, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        if self._dirty and not self._closed:
            self._render()

    def _render(self) -> None:
        self._dirty = False
        fire_callback(self._on_render, self.text)

    def finalize(self) -> None:
        """Cancel the pending timer and force one last render."""
        if self._closed:
            return
        self._cancel_timer()
        self._closed = True
        self._render()

    def cancel(self) -> None:
        """Drop the pending timer without rendering again."""
        self._cancel_timer()
        self._closed = True

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
