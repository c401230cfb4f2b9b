"""
Keyboard, text and pointer callbacks for the gallery window.

This module provides handler classes that turn raw window events into
application actions: mode buttons, the caption editor, and browser-like
click / double-click events synthesized from mouse press and release.
"""

from __future__ import annotations

import math
import time
from typing import Callable


# =============================================================================
# Key Handler
# =============================================================================

class KeyHandler:
    """
    Handles keyboard input for the gallery application.

    While a caption prompt is open every key goes to the caption editor;
    otherwise the number keys act as the mode buttons.
    """

    MODE_KEYS = {
        "1": "COMPACT",
        "2": "DISPERSED",
        "3": "FOCUS",
    }

    def __init__(
        self,
        *,
        get_caption_active: Callable[[], bool],
        on_mode_button: Callable[[str], None],
        on_toggle_overlay: Callable[[], None],
        on_caption_submit: Callable[[], None],
        on_caption_skip: Callable[[], None],
        on_caption_dismiss: Callable[[], None],
        on_caption_backspace: Callable[[], None],
    ):
        self._get_caption_active = get_caption_active
        self._on_mode_button = on_mode_button
        self._on_toggle_overlay = on_toggle_overlay
        self._on_caption_submit = on_caption_submit
        self._on_caption_skip = on_caption_skip
        self._on_caption_dismiss = on_caption_dismiss
        self._on_caption_backspace = on_caption_backspace

    def handle_key(self, key: str) -> bool:
        """
        Process a key press event.

        Args:
            key: Key name (e.g., '1', 'h', 'enter', 'esc')

        Returns:
            True if the key was handled, False otherwise
        """
        if self._get_caption_active():
            return self._handle_caption_key(key)

        if key in self.MODE_KEYS:
            self._on_mode_button(self.MODE_KEYS[key])
            return True

        if key == "h":
            self._on_toggle_overlay()
            return True

        if key == "esc":
            raise SystemExit(0)

        return False

    def _handle_caption_key(self, key: str) -> bool:
        if key == "enter":
            self._on_caption_submit()
        elif key == "tab":
            self._on_caption_skip()
        elif key == "esc":
            self._on_caption_dismiss()
        elif key == "backspace":
            self._on_caption_backspace()
        # Consume all keys while the prompt is open; text arrives via on_text.
        return True


# =============================================================================
# Caption Input Handler
# =============================================================================

class CaptionInputHandler:
    """
    Accumulates caption text typed while a prompt is open.
    """

    def __init__(
        self,
        *,
        get_active: Callable[[], bool],
        get_buffer: Callable[[], str],
        set_buffer: Callable[[str], None],
        max_length: int = 140,
    ):
        self._get_active = get_active
        self._get_buffer = get_buffer
        self._set_buffer = set_buffer
        self.max_length = max(1, int(max_length))

    def handle_text(self, text: str) -> bool:
        """
        Process text input.

        Returns:
            True if text was handled
        """
        if not self._get_active():
            return False

        buffer = self._get_buffer()
        for char in text:
            if len(buffer) >= self.max_length:
                break
            if char.isprintable():
                buffer += char
        self._set_buffer(buffer)
        return True

    def backspace(self) -> None:
        self._set_buffer(self._get_buffer()[:-1])


# =============================================================================
# Pointer Event Synthesizer
# =============================================================================

class PointerEventSynthesizer:
    """
    Turns press / release pairs into click and double-click events.

    Every release that did not move further than ``slop_px`` from its press is
    a click. A click landing within ``window_s`` and ``slop_px`` of the
    previous click additionally produces a double-click, after the click
    itself, the same order a browser reports them in.
    """

    def __init__(
        self,
        *,
        on_click: Callable[[float, float], None],
        on_double_click: Callable[[float, float], None],
        window_s: float = 0.3,
        slop_px: float = 6.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._on_click = on_click
        self._on_double_click = on_double_click
        self.window_s = float(window_s)
        self.slop_px = float(slop_px)
        self._clock = clock
        self._press: tuple[float, float] | None = None
        self._last_click: tuple[float, float, float] | None = None

    def press(self, x: float, y: float) -> None:
        self._press = (float(x), float(y))

    def release(self, x: float, y: float) -> bool:
        """
        Finish a press.

        Returns:
            True if the release produced a click (False for drags)
        """
        press = self._press
        self._press = None
        if press is not None and math.hypot(x - press[0], y - press[1]) > self.slop_px:
            return False

        now = self._clock()
        self._on_click(x, y)

        last = self._last_click
        if (
            last is not None
            and now - last[0] <= self.window_s
            and math.hypot(x - last[1], y - last[2]) <= self.slop_px
        ):
            # A third click starts a new pair instead of chaining.
            self._last_click = None
            self._on_double_click(x, y)
        else:
            self._last_click = (now, float(x), float(y))
        return True
