import sys
import types
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pixel_reveal.config import RevealSettings  # noqa: E402
from pixel_reveal.models import ImageAsset, PixelationSchedule, RevealStatus  # noqa: E402
from pixel_reveal.sequencer import StageSequencer  # noqa: E402
from pixel_reveal.surface import SurfaceManager  # noqa: E402
from pixel_reveal.timers import VirtualTimer  # noqa: E402


class CountingSurface(SurfaceManager):
    """Surface that records every factor it is asked to draw and when."""

    def __init__(self, asset, timer):
        super().__init__(asset)
        self.timer = timer
        self.draws = []

    def draw(self, factor):
        self.draws.append((factor, self.timer.now))
        super().draw(factor)


def build_sequencer(schedule=(4, 9, 20, 50, 100), **settings_kwargs):
    pixels = np.full((20, 30, 4), 200, dtype=np.uint8)
    asset = ImageAsset(source="seq.png", width=30, height=20, pixels=pixels)
    timer = VirtualTimer()
    surface = CountingSurface(asset, timer)
    surface.resize(30, 20)
    settings = RevealSettings(schedule=PixelationSchedule(tuple(schedule)), **settings_kwargs)
    return StageSequencer(surface, settings, timer), surface, timer


def drawn_factors(surface):
    return [factor for factor, _ in surface.draws]


def test_steps_through_schedule_and_clamps_cursor():
    sequencer, surface, timer = build_sequencer()

    sequencer.start()
    timer.run_until_idle()

    assert drawn_factors(surface) == [4, 9, 20, 50, 100]
    assert sequencer.state.cursor == 4
    assert sequencer.state.draw_count == 5
    assert sequencer.status is RevealStatus.DONE
    assert timer.pending == 0


def test_first_step_waits_longer_than_the_rest():
    sequencer, surface, timer = build_sequencer()

    sequencer.start()
    timer.run_until_idle()

    times = [when for _, when in surface.draws]
    assert times == pytest.approx([0.4, 0.5, 0.6, 0.7, 0.8])


def test_custom_delays_are_honoured():
    sequencer, surface, timer = build_sequencer(first_step_delay_ms=1000, step_delay_ms=250)

    sequencer.start()
    timer.run_until_idle()

    times = [when for _, when in surface.draws]
    assert times == pytest.approx([1.0, 1.25, 1.5, 1.75, 2.0])


def test_nothing_draws_before_start():
    sequencer, surface, timer = build_sequencer()

    timer.advance(5.0)

    assert surface.draws == []
    assert sequencer.status is RevealStatus.IDLE


def test_single_factor_schedule_completes_after_one_long_delay():
    sequencer, surface, timer = build_sequencer(schedule=(100,))

    sequencer.start()
    assert timer.advance(0.3) == 0
    assert timer.advance(0.2) == 1

    assert drawn_factors(surface) == [100]
    assert sequencer.state.cursor == 0
    assert sequencer.status is RevealStatus.DONE
    assert timer.pending == 0


def test_resize_mid_sequence_redraws_current_factor():
    sequencer, surface, timer = build_sequencer()

    sequencer.start()
    timer.run_next()
    timer.run_next()
    assert sequencer.state.cursor == 2

    sequencer.resize(80, 60)

    assert (surface.width, surface.height) == (80, 60)
    assert drawn_factors(surface)[-1] == 20
    assert sequencer.state.cursor == 2

    timer.run_until_idle()
    assert drawn_factors(surface) == [4, 9, 20, 20, 50, 100]
    assert sequencer.state.draw_count == 5


def test_resize_before_start_draws_first_factor():
    sequencer, surface, _ = build_sequencer()

    sequencer.resize(10, 10)

    assert drawn_factors(surface) == [4]
    assert sequencer.status is RevealStatus.IDLE


def test_restart_while_running_resumes_without_resetting():
    sequencer, surface, timer = build_sequencer()

    sequencer.start()
    timer.run_next()
    sequencer.start()

    assert timer.pending == 1
    timer.run_until_idle()
    assert drawn_factors(surface) == [4, 9, 20, 50, 100]
    assert sequencer.state.draw_count == 5


def test_start_after_done_redraws_final_factor():
    sequencer, surface, timer = build_sequencer()
    sequencer.start()
    timer.run_until_idle()

    sequencer.start()
    timer.run_until_idle()

    assert drawn_factors(surface) == [4, 9, 20, 50, 100, 100]
    assert sequencer.state.cursor == 4
    assert sequencer.status is RevealStatus.DONE


def test_single_fire_ignores_repeated_start():
    sequencer, surface, timer = build_sequencer(single_fire=True)
    sequencer.start()
    timer.run_next()

    sequencer.start()
    timer.run_until_idle()
    sequencer.start()

    assert drawn_factors(surface) == [4, 9, 20, 50, 100]
    assert timer.pending == 0


def test_cancel_stops_stepping():
    sequencer, surface, timer = build_sequencer()
    sequencer.start()
    timer.run_next()

    sequencer.cancel()

    assert timer.pending == 0
    assert sequencer.status is RevealStatus.IDLE
    timer.run_until_idle()
    assert drawn_factors(surface) == [4]


def test_cancel_with_full_reveal_draws_final_factor():
    sequencer, surface, timer = build_sequencer()
    sequencer.start()
    timer.run_next()

    sequencer.cancel(reveal_full=True)

    assert drawn_factors(surface) == [4, 100]
    assert surface.smoothing is True
    assert sequencer.state.cursor == 4
    assert sequencer.status is RevealStatus.DONE
    assert timer.pending == 0


def test_dispose_blocks_further_mutation():
    sequencer, surface, timer = build_sequencer()
    sequencer.start()

    sequencer.dispose()
    timer.run_until_idle()
    sequencer.resize(99, 99)
    sequencer.start()

    assert surface.draws == []
    assert (surface.width, surface.height) == (30, 20)
    assert timer.pending == 0
    assert sequencer.disposed is True


def test_stale_step_callback_after_dispose_is_ignored():
    sequencer, surface, _ = build_sequencer()
    sequencer.state.status = RevealStatus.RUNNING
    sequencer.dispose()

    sequencer._step(sequencer._generation)

    assert surface.draws == []


class LateCancelTimer:
    """Timer whose handles cannot recall a callback once it has been dispatched."""

    def __init__(self):
        self.callbacks = []

    def call_later(self, delay, callback):
        self.callbacks.append(callback)
        return types.SimpleNamespace(cancel=lambda: None)


def test_restart_ignores_step_already_dispatched_before_cancel():
    sequencer, surface, _ = build_sequencer()
    timer = LateCancelTimer()
    sequencer.timer = timer

    sequencer.start()
    sequencer.start()
    stale, live = timer.callbacks

    stale()
    assert surface.draws == []

    live()
    assert drawn_factors(surface) == [4]
    assert sequencer.state.draw_count == 1
    assert sequencer.state.cursor == 1
    assert len(timer.callbacks) == 3


def test_cancel_ignores_step_already_dispatched():
    sequencer, surface, _ = build_sequencer()
    timer = LateCancelTimer()
    sequencer.timer = timer

    sequencer.start()
    sequencer.cancel()
    timer.callbacks[0]()

    assert surface.draws == []
    assert sequencer.status is RevealStatus.IDLE
