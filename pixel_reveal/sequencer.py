"""Stepped sequencing of a reveal over its pixelation schedule."""

from __future__ import annotations

import functools
import logging
import threading
from typing import Optional

from pixel_reveal.config import RevealSettings
from pixel_reveal.models import RevealState, RevealStatus
from pixel_reveal.surface import SurfaceManager
from pixel_reveal.timers import StepTimer, TimerHandle


class StageSequencer:
    """Walk a surface through the pixelation schedule, one timed step at a time.

    Each step waits (long before the first draw, short afterwards), draws the
    factor under the cursor and advances it. Once the schedule is exhausted
    the cursor stays on the final factor.
    """

    def __init__(
        self,
        surface: SurfaceManager,
        settings: RevealSettings,
        timer: StepTimer,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.settings = settings
        self.timer = timer
        self.logger = logger or logging.getLogger(__name__)
        self.state = RevealState(schedule=settings.schedule, surface=surface)
        self._pending: Optional[TimerHandle] = None
        self._generation = 0
        self._started = False
        self._disposed = False
        self._lock = threading.RLock()

    @property
    def surface(self) -> SurfaceManager:
        return self.state.surface

    @property
    def status(self) -> RevealStatus:
        return self.state.status

    @property
    def disposed(self) -> bool:
        return self._disposed

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin (or resume) stepping from the current cursor."""
        with self._lock:
            if self._disposed:
                return
            if self.settings.single_fire and self._started:
                self.logger.debug("Ignoring repeated start for %s", self.surface.asset.source)
                return
            self._started = True
            self._cancel_pending()
            self.state.status = RevealStatus.RUNNING
            self.logger.debug(
                "Reveal of %s running from step %s/%s",
                self.surface.asset.source,
                self.state.cursor,
                len(self.state.schedule),
            )
            self._advance()

    def resize(self, width: float, height: float) -> None:
        """Resize the surface and redraw at the current factor."""
        with self._lock:
            if self._disposed:
                return
            self.surface.resize(width, height)
            self.surface.draw(self.state.current_factor)

    def cancel(self, *, reveal_full: bool = False) -> None:
        """Drop the pending step; optionally jump straight to the final factor."""
        with self._lock:
            if self._disposed:
                return
            self._cancel_pending()
            if reveal_full:
                self.state.cursor = len(self.state.schedule) - 1
                self.surface.draw(self.state.current_factor)
                self.state.status = RevealStatus.DONE
            elif self.state.status is RevealStatus.RUNNING:
                self.state.status = RevealStatus.IDLE

    def dispose(self) -> None:
        with self._lock:
            self._cancel_pending()
            self._disposed = True

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def _advance(self) -> None:
        if not self.state.exhausted:
            delay_ms = (
                self.settings.first_step_delay_ms
                if self.state.cursor == 0
                else self.settings.step_delay_ms
            )
            self._generation += 1
            self._pending = self.timer.call_later(
                delay_ms / 1000.0,
                functools.partial(self._step, self._generation),
            )
            return

        self.state.cursor = len(self.state.schedule) - 1
        self.state.status = RevealStatus.DONE
        self.logger.debug(
            "Reveal of %s done after %s draws",
            self.surface.asset.source,
            self.state.draw_count,
        )

    def _step(self, generation: int) -> None:
        with self._lock:
            # A step cancelled after the timer already dispatched it.
            if generation != self._generation:
                return
            self._pending = None
            if self._disposed or self.state.status is not RevealStatus.RUNNING:
                return
            factor = self.state.current_factor
            self.surface.draw(factor)
            self.state.draw_count += 1
            self.state.cursor += 1
            self.logger.debug("Drew %s at factor %s", self.surface.asset.source, factor)
            self._advance()

    def _cancel_pending(self) -> None:
        self._generation += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None


__all__ = ["StageSequencer"]
