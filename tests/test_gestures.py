"""
Tests for click timing and gesture disambiguation.

All timing runs on a fake clock, so the 300 ms window is exact.
"""

import random

import pytest

from particle_gallery3d.core.entity import EntityId
from particle_gallery3d.core.gestures import ClickTimer, GestureDisambiguator, TimerState
from particle_gallery3d.core.modes import Mode, ModeController


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance_ms(self, ms):
        self.now += ms / 1000.0


class Harness:
    """Disambiguator wired to a fake clock and a scripted raycast."""

    def __init__(self, photos=(), captions=None, formation_hit=True):
        self.clock = FakeClock()
        self.photos = [EntityId(p) for p in photos]
        self.captions = captions or {}
        self.formation_hit = formation_hit
        self.photo_under_pointer = None
        self.single_clicks = []
        self.displayed = []
        self.controller = ModeController(photo_ids=lambda: self.photos, rng=random.Random(1))
        self.gestures = GestureDisambiguator(
            self.controller,
            pick_photo=lambda x, y: self.photo_under_pointer,
            hits_formation=lambda x, y: self.formation_hit,
            caption_of=lambda i: self.captions.get(i, ""),
            on_caption_display=self.displayed.append,
            on_single_click=lambda x, y: self.single_clicks.append((self.clock.now, x, y)),
            clock=self.clock,
        )

    def poll_until_ms(self, end_ms, step_ms=1.0):
        while self.clock.now * 1000.0 < end_ms - 1e-9:
            self.clock.advance_ms(step_ms)
            self.gestures.poll()


class TestClickTimer:
    def test_fires_once_at_deadline(self):
        fired = []
        timer = ClickTimer(0.3, clock=lambda: 0.0)
        timer.arm(lambda: fired.append(1), now=0.0)
        assert timer.state is TimerState.ARMED
        assert timer.poll(0.299) is False
        assert timer.poll(0.3) is True
        assert timer.poll(0.6) is False
        assert fired == [1]
        assert timer.state is TimerState.IDLE

    def test_cancel(self):
        fired = []
        timer = ClickTimer(0.3)
        timer.arm(lambda: fired.append(1), now=0.0)
        assert timer.cancel() is True
        assert timer.cancel() is False
        timer.poll(10.0)
        assert fired == []

    def test_rearm_replaces_action(self):
        fired = []
        timer = ClickTimer(0.3)
        timer.arm(lambda: fired.append("first"), now=0.0)
        timer.arm(lambda: fired.append("second"), now=0.1)
        assert timer.poll(0.35) is False
        assert timer.poll(0.45) is True
        assert fired == ["second"]

    def test_action_can_rearm(self):
        timer = ClickTimer(0.3)
        fired = []

        def action():
            fired.append(len(fired))
            if len(fired) < 2:
                timer.arm(action, now=0.3)

        timer.arm(action, now=0.0)
        timer.poll(0.3)
        assert timer.armed
        timer.poll(0.7)
        assert fired == [0, 1]
        assert not timer.armed


class TestBackgroundClicks:
    def test_double_miss_fires_nothing(self):
        h = Harness()
        h.controller.set_mode(Mode.DISPERSED)
        h.gestures.pointer_clicked(100, 100)
        h.poll_until_ms(150)
        h.gestures.pointer_clicked(100, 100)
        h.poll_until_ms(1000)
        assert h.single_clicks == []
        assert h.controller.mode is Mode.DISPERSED

    def test_single_click_fires_once_at_300ms(self):
        h = Harness()
        h.gestures.pointer_clicked(10, 20)
        h.poll_until_ms(299)
        assert h.single_clicks == []
        h.poll_until_ms(2000)
        assert len(h.single_clicks) == 1
        fired_at, x, y = h.single_clicks[0]
        assert fired_at == pytest.approx(0.3, abs=0.0015)
        assert (x, y) == (10, 20)

    def test_slow_second_click_arms_again(self):
        h = Harness()
        h.gestures.pointer_clicked(0, 0)
        h.poll_until_ms(400)
        h.gestures.pointer_clicked(0, 0)
        h.poll_until_ms(1000)
        assert len(h.single_clicks) == 2

    def test_click_after_window_rearms(self):
        h = Harness()
        h.gestures.pointer_clicked(0, 0)
        h.clock.advance_ms(300)
        # Exactly at the window edge the click counts as a new one.
        h.gestures.pointer_clicked(5, 5)
        h.gestures.poll()
        assert len(h.single_clicks) == 0
        h.poll_until_ms(700)
        assert [c[1:] for c in h.single_clicks] == [(5, 5)]


class TestPhotoClicks:
    def test_photo_with_caption_in_dispersed_shows_caption(self):
        h = Harness(photos=[7], captions={EntityId(7): "Beach"})
        h.controller.set_mode(Mode.DISPERSED)
        h.photo_under_pointer = EntityId(7)
        h.gestures.pointer_clicked(1, 1)
        assert h.displayed == ["Beach"]
        assert h.controller.mode is Mode.DISPERSED

    def test_photo_without_caption_focuses(self):
        h = Harness(photos=[7])
        h.controller.set_mode(Mode.DISPERSED)
        h.photo_under_pointer = EntityId(7)
        h.gestures.pointer_clicked(1, 1)
        assert h.displayed == []
        assert h.controller.mode is Mode.FOCUS
        assert h.controller.focus_target == 7

    def test_photo_in_compact_focuses_even_with_caption(self):
        h = Harness(photos=[7], captions={EntityId(7): "Beach"})
        h.photo_under_pointer = EntityId(7)
        h.gestures.pointer_clicked(1, 1)
        assert h.controller.mode is Mode.FOCUS
        assert h.displayed == []

    def test_photo_hit_cancels_pending_single_click(self):
        h = Harness(photos=[7])
        h.gestures.pointer_clicked(0, 0)
        h.photo_under_pointer = EntityId(7)
        h.clock.advance_ms(100)
        h.gestures.pointer_clicked(0, 0)
        h.poll_until_ms(1000)
        assert h.single_clicks == []


class TestDoubleClick:
    def test_compact_on_formation_disperses(self):
        h = Harness(formation_hit=True)
        h.gestures.pointer_double_clicked(0, 0)
        assert h.controller.mode is Mode.DISPERSED

    def test_compact_off_formation_is_ignored(self):
        h = Harness(formation_hit=False)
        h.gestures.pointer_double_clicked(0, 0)
        assert h.controller.mode is Mode.COMPACT

    def test_dispersed_focuses_random_photo(self):
        h = Harness(photos=[1, 2, 3])
        h.controller.set_mode(Mode.DISPERSED)
        h.gestures.pointer_double_clicked(0, 0)
        assert h.controller.mode is Mode.FOCUS
        assert h.controller.focus_target in (1, 2, 3)

    def test_dispersed_without_photos_returns_to_compact(self):
        h = Harness()
        h.controller.set_mode(Mode.DISPERSED)
        h.gestures.pointer_double_clicked(0, 0)
        assert h.controller.mode is Mode.COMPACT

    def test_focus_is_noop(self):
        h = Harness(photos=[1])
        h.controller.focus_on(EntityId(1))
        h.gestures.pointer_double_clicked(0, 0)
        assert h.controller.mode is Mode.FOCUS
        assert h.controller.focus_target == 1

    def test_cancels_pending_single_click(self):
        h = Harness()
        h.gestures.pointer_clicked(0, 0)
        h.clock.advance_ms(120)
        h.gestures.pointer_double_clicked(0, 0)
        h.poll_until_ms(1000)
        assert h.single_clicks == []

    def test_browser_sequence(self):
        # click, click, dblclick: the way a browser reports a double-click
        h = Harness(formation_hit=True)
        h.gestures.pointer_clicked(50, 50)
        h.clock.advance_ms(150)
        h.gestures.pointer_clicked(50, 50)
        h.gestures.pointer_double_clicked(50, 50)
        h.poll_until_ms(1000)
        assert h.single_clicks == []
        assert h.controller.mode is Mode.DISPERSED
