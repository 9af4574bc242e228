"""Explicit callback registration for viewport and layout events."""

from __future__ import annotations

import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)


class Signal:
    """A list of callbacks invoked in connection order."""

    def __init__(self) -> None:
        self._callbacks: List[Callable[..., Any]] = []

    def connect(self, callback: Callable[..., Any]) -> Callable[[], None]:
        """Register ``callback`` and return a function that disconnects it."""
        self._callbacks.append(callback)

        def disconnect() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return disconnect

    def emit(self, *args: Any) -> None:
        for callback in list(self._callbacks):
            callback(*args)

    def __len__(self) -> int:
        return len(self._callbacks)


class ViewportTrigger(Signal):
    """Emit "entered" when an element's top reaches a line in the viewport.

    ``start`` is the line as a fraction of viewport height from the top, so
    0.5 fires when the element's top crosses the middle of the viewport.
    """

    def __init__(self, start: float = 0.5, *, once: bool = True) -> None:
        super().__init__()
        self.start = start
        self.once = once
        self.fired = False
        self._inside = False

    def update(self, element_top: float, viewport_height: float) -> None:
        """Feed the element's top edge relative to the viewport top."""
        inside = element_top <= viewport_height * self.start
        entering = inside and not self._inside
        self._inside = inside
        if not entering:
            return
        if self.once and self.fired:
            return
        self.fired = True
        logger.debug("Viewport trigger entered at top=%s of %s", element_top, viewport_height)
        self.emit()


class LayoutBox:
    """Content box of a container; emits ``resized(width, height)`` on change."""

    def __init__(self, width: float = 0, height: float = 0) -> None:
        self.width = max(0, int(width))
        self.height = max(0, int(height))
        self.resized = Signal()

    def set_size(self, width: float, height: float) -> None:
        width = max(0, int(width))
        height = max(0, int(height))
        if (width, height) == (self.width, self.height):
            return
        self.width = width
        self.height = height
        self.resized.emit(width, height)


__all__ = ["LayoutBox", "Signal", "ViewportTrigger"]
