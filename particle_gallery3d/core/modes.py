"""
Formation mode state machine.

The controller stores only the current mode and the focused photo id. All
visible motion is derived from this state by the per-frame entity pass.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Sequence

if TYPE_CHECKING:
    from particle_gallery3d.core.entity import EntityId

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    COMPACT = "COMPACT"
    DISPERSED = "DISPERSED"
    FOCUS = "FOCUS"

    @classmethod
    def parse(cls, value: "str | Mode") -> "Mode":
        if isinstance(value, Mode):
            return value
        key = str(value or "").strip().upper()
        # Button labels accepted as aliases.
        aliases = {"TREE": "COMPACT", "SCATTER": "DISPERSED"}
        try:
            return cls(aliases.get(key, key))
        except ValueError:
            raise ValueError(f"Unknown mode: {value!r}") from None


@dataclass(slots=True)
class ModeState:
    """
    Current formation mode.

    Attributes:
        mode: Active formation
        focus_target: Focused photo id; set iff mode is FOCUS
    """
    mode: Mode = Mode.COMPACT
    focus_target: "EntityId | None" = None


class ModeController:
    """
    Finite state machine over COMPACT / DISPERSED / FOCUS.

    Every state is reachable from every other one through ``set_mode``.
    FOCUS always needs a PHOTO target: without one the request falls back to
    COMPACT instead of raising.
    """

    def __init__(
        self,
        *,
        photo_ids: Callable[[], Sequence["EntityId"]],
        rng: random.Random | None = None,
        state: ModeState | None = None,
        on_mode_changed: Callable[[Mode], None] | None = None,
    ):
        """
        Args:
            photo_ids: Returns the ids of all live PHOTO entities
            rng: Random source used to pick a focus target
            state: Shared state object (a fresh COMPACT state by default)
            on_mode_changed: Called with the resulting mode after each transition
        """
        self._photo_ids = photo_ids
        self._rng = rng or random.Random()
        self.state = state if state is not None else ModeState()
        self._listeners: list[Callable[[Mode], None]] = []
        if on_mode_changed is not None:
            self._listeners.append(on_mode_changed)

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def focus_target(self) -> "EntityId | None":
        return self.state.focus_target

    def add_listener(self, listener: Callable[[Mode], None]) -> None:
        self._listeners.append(listener)

    def set_mode(self, mode: "Mode | str", target: "EntityId | None" = None) -> Mode:
        """
        Transition to ``mode``.

        Args:
            mode: Requested mode
            target: Explicit focus target (FOCUS only); must be a PHOTO id

        Returns:
            The mode actually entered.

        Raises:
            ValueError: If ``target`` is given, photos exist, and it is not one of them
        """
        mode = Mode.parse(mode)
        previous = self.state.mode

        if mode is Mode.FOCUS:
            photos = list(self._photo_ids())
            if not photos:
                chosen = None
            elif target is not None:
                if target not in photos:
                    raise ValueError(f"Focus target {target!r} is not a photo entity")
                chosen = target
            else:
                chosen = photos[self._rng.randrange(len(photos))]

            if chosen is None:
                logger.info("FOCUS requested without photos; falling back to COMPACT")
                self.state.mode = Mode.COMPACT
                self.state.focus_target = None
            else:
                self.state.mode = Mode.FOCUS
                self.state.focus_target = chosen
        else:
            if target is not None:
                logger.debug("Ignoring focus target %r for mode %s", target, mode.value)
            self.state.mode = mode
            self.state.focus_target = None

        if self.state.mode is not previous or mode is Mode.FOCUS:
            logger.info(
                "Mode %s -> %s (target=%s)",
                previous.value,
                self.state.mode.value,
                self.state.focus_target,
            )
        self._notify()
        return self.state.mode

    def focus_on(self, target: "EntityId") -> Mode:
        return self.set_mode(Mode.FOCUS, target)

    def focus_random(self) -> Mode:
        return self.set_mode(Mode.FOCUS)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.state.mode)
