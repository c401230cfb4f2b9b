"""
Pointer gesture disambiguation.

Raw click / double-click events arrive from the window together with
screen coordinates. Clicks on photos act immediately; clicks on empty space
go through a single-click timer so that the two clicks of a double-click
never trigger a single-click action.

The timer is an explicit two-state machine (IDLE / ARMED) advanced by
``poll()`` with an injectable clock, which keeps the 300 ms window exact and
testable without real waits.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import TYPE_CHECKING, Callable

from particle_gallery3d.core.modes import Mode, ModeController

if TYPE_CHECKING:
    from particle_gallery3d.core.entity import EntityId

logger = logging.getLogger(__name__)

DEFAULT_CLICK_WINDOW_S = 0.3


class TimerState(str, Enum):
    IDLE = "IDLE"
    ARMED = "ARMED"


class ClickTimer:
    """
    Single outstanding cancellable deferred action.

    Arming replaces any previously armed action, so at most one action can
    ever be pending and a replaced or cancelled action never runs.
    """

    def __init__(
        self,
        window_s: float = DEFAULT_CLICK_WINDOW_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_s = float(window_s)
        self._clock = clock
        self.state = TimerState.IDLE
        self.deadline: float | None = None
        self._action: Callable[[], None] | None = None

    @property
    def armed(self) -> bool:
        return self.state is TimerState.ARMED

    def arm(self, action: Callable[[], None], now: float | None = None) -> float:
        """Arm ``action`` to fire ``window_s`` from ``now``; returns the deadline."""
        now = self._clock() if now is None else now
        self.state = TimerState.ARMED
        self.deadline = now + self.window_s
        self._action = action
        return self.deadline

    def cancel(self) -> bool:
        """Disarm; returns True if an action was pending."""
        was_armed = self.armed
        self.state = TimerState.IDLE
        self.deadline = None
        self._action = None
        return was_armed

    def poll(self, now: float | None = None) -> bool:
        """
        Fire the pending action if its deadline has passed.

        Returns:
            True if an action fired during this call
        """
        if not self.armed or self.deadline is None:
            return False
        now = self._clock() if now is None else now
        if now < self.deadline:
            return False
        action = self._action
        # Disarm before running so a re-entrant arm() inside the action is kept.
        self.state = TimerState.IDLE
        self.deadline = None
        self._action = None
        if action is not None:
            action()
        return True


class GestureDisambiguator:
    """
    Converts pointer events into mode transitions or caption requests.

    Raycasting is delegated: ``pick_photo`` returns the nearest PHOTO hit under
    the pointer, ``hits_formation`` tells whether the compact formation's
    geometry is under the pointer.
    """

    def __init__(
        self,
        controller: ModeController,
        *,
        pick_photo: Callable[[float, float], "EntityId | None"],
        hits_formation: Callable[[float, float], bool],
        caption_of: Callable[["EntityId"], str],
        on_caption_display: Callable[[str], None] | None = None,
        on_single_click: Callable[[float, float], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        window_s: float = DEFAULT_CLICK_WINDOW_S,
    ):
        self.controller = controller
        self._pick_photo = pick_photo
        self._hits_formation = hits_formation
        self._caption_of = caption_of
        self._on_caption_display = on_caption_display
        self._on_single_click = on_single_click
        self._clock = clock
        self.window_s = float(window_s)
        self.timer = ClickTimer(window_s, clock)
        self.last_click_time: float | None = None

    def pointer_clicked(self, x: float, y: float) -> None:
        photo = self._pick_photo(x, y)
        if photo is not None:
            self.timer.cancel()
            self._activate_photo(photo)
            return

        now = self._clock()
        elapsed = None if self.last_click_time is None else now - self.last_click_time
        if elapsed is not None and 0.0 < elapsed < self.window_s:
            # Second half of a double-click: the pending single click must not fire.
            if self.timer.cancel():
                logger.debug("Click at %.3f cancelled pending single click", now)
        else:
            self.timer.arm(lambda: self._fire_single_click(x, y), now)
        self.last_click_time = now

    def pointer_double_clicked(self, x: float, y: float) -> None:
        self.timer.cancel()

        mode = self.controller.mode
        if mode is Mode.DISPERSED:
            self.controller.focus_random()
        elif mode is Mode.COMPACT:
            if self._hits_formation(x, y):
                self.controller.set_mode(Mode.DISPERSED)
            else:
                logger.debug("Double-click on empty space in COMPACT ignored")

    def poll(self) -> bool:
        """Advance the single-click timer; call once per tick."""
        return self.timer.poll(self._clock())

    def _activate_photo(self, photo: "EntityId") -> None:
        caption = self._caption_of(photo) or ""
        if self.controller.mode is Mode.DISPERSED and caption:
            if self._on_caption_display is not None:
                self._on_caption_display(caption)
            return
        self.controller.focus_on(photo)

    def _fire_single_click(self, x: float, y: float) -> None:
        logger.debug("Single click at (%.1f, %.1f)", x, y)
        if self._on_single_click is not None:
            self._on_single_click(x, y)
