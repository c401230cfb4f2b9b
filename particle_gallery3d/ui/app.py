"""
Gallery application: wires the scene, the mode controller, gesture
disambiguation, photo intake and the window together.

The app owns a private asyncio event loop. pyglet drives the frame clock and
each tick pumps one iteration of that loop, so intake coroutines and decode
continuations run on the same thread as the entity pass.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from pathlib import Path
from typing import Callable, Sequence

import numpy as np

from particle_gallery3d.core.gestures import GestureDisambiguator
from particle_gallery3d.core.intake import DecodedImage, PhotoIntakeQueue
from particle_gallery3d.core.modes import Mode, ModeController
from particle_gallery3d.core.scene import GalleryScene
from particle_gallery3d.params import GalleryParams
from particle_gallery3d.rendering import camera as camera_mod
from particle_gallery3d.rendering import palette
from particle_gallery3d.rendering.scene_graph import MaterialDescriptor, SceneGraph
from particle_gallery3d.ui.callbacks import CaptionInputHandler, KeyHandler, PointerEventSynthesizer

logger = logging.getLogger(__name__)

ORBIT_SPEED = 0.006
ZOOM_STEP = 0.90


class GalleryApp:
    def __init__(
        self,
        params: GalleryParams | None = None,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_mode_changed: Callable[[Mode], None] | None = None,
        on_caption_prompt: Callable[[int, DecodedImage], None] | None = None,
        on_caption_display: Callable[[str], None] | None = None,
    ) -> None:
        self.params = (params or GalleryParams()).clamp()
        for warning in self.params.validate():
            logger.warning("Params: %s", warning)

        p = self.params
        self._clock = clock
        self._rng = rng if rng is not None else random.Random(p.seed)
        self._mode_listeners: list[Callable[[Mode], None]] = [on_mode_changed] if on_mode_changed else []
        self._prompt_listeners: list[Callable[[int, DecodedImage], None]] = (
            [on_caption_prompt] if on_caption_prompt else []
        )
        self._display_listeners: list[Callable[[str], None]] = [on_caption_display] if on_caption_display else []

        self.graph = SceneGraph(
            camera=camera_mod.camera_for_position(
                p.camera_height,
                p.camera_distance,
                fov=p.camera_fov,
                min_distance=p.camera_min_distance,
                max_distance=p.camera_max_distance,
            ),
            viewport=(p.width, p.height),
        )
        self.scene = GalleryScene(p, self.graph, self._rng)
        self.scene.populate()

        self.controller = ModeController(
            photo_ids=self.scene.photo_ids,
            rng=self._rng,
            on_mode_changed=self._mode_changed,
        )
        self.disambiguator = GestureDisambiguator(
            self.controller,
            pick_photo=self.scene.pick_photo,
            hits_formation=self.scene.hits_formation,
            caption_of=self.scene.caption_of,
            on_caption_display=self._show_caption,
            clock=clock,
            window_s=p.click_window_s,
        )

        self.loop = asyncio.new_event_loop()
        self.intake = PhotoIntakeQueue(
            loop=self.loop,
            build_resource=self._build_photo_resource,
            on_entity=self._photo_ready,
            on_prompt=self._prompt_caption,
            on_decode_error=self._decode_failed,
            on_batch_done=self._batch_done,
        )

        self.show_overlay = bool(p.show_overlay)
        self.caption_buffer = ""
        self.caption_text = ""
        self._caption_shown_at: float | None = None
        self.status = "Drop images onto the window to add photos."
        self._closed = False

        self.pointer = PointerEventSynthesizer(
            on_click=self.pointer_clicked,
            on_double_click=self.pointer_double_clicked,
            window_s=p.click_window_s,
            slop_px=p.double_click_slop_px,
            clock=clock,
        )
        self.key_handler = KeyHandler(
            get_caption_active=lambda: self.intake.awaiting_caption,
            on_mode_button=self.mode_button_pressed,
            on_toggle_overlay=self.toggle_overlay,
            on_caption_submit=lambda: self.caption_submitted(),
            on_caption_skip=self.caption_skipped,
            on_caption_dismiss=self.caption_dismissed,
            on_caption_backspace=lambda: self.text_handler.backspace(),
        )
        self.text_handler = CaptionInputHandler(
            get_active=lambda: self.intake.awaiting_caption,
            get_buffer=lambda: self.caption_buffer,
            set_buffer=self._set_caption_buffer,
            max_length=p.caption_max_length,
        )

    # =========================================================================
    # UI -> engine
    # =========================================================================

    def mode_button_pressed(self, name: "str | Mode") -> Mode:
        return self.controller.set_mode(Mode.parse(name))

    def files_selected(self, paths: Sequence["str | Path"]) -> "asyncio.Task[int] | None":
        """Read the selected files and start a new intake batch."""
        payloads: list[bytes] = []
        for path in paths:
            try:
                payloads.append(Path(path).read_bytes())
            except OSError as exc:
                logger.warning("Cannot read %s: %s", path, exc)
        if not payloads:
            self.status = "No readable files selected."
            return None
        return self.submit_payloads(payloads)

    def submit_payloads(self, payloads: Sequence[bytes]) -> "asyncio.Task[int]":
        self.caption_buffer = ""
        self.status = f"Loading {len(payloads)} image(s)..."
        task = self.intake.submit_batch(payloads)
        task.add_done_callback(self._batch_finished)
        return task

    def caption_submitted(self, text: str | None = None) -> bool:
        caption = self.caption_buffer if text is None else text
        self.caption_buffer = ""
        return self.intake.submit_caption(caption)

    def caption_skipped(self) -> bool:
        self.caption_buffer = ""
        return self.intake.skip()

    def caption_dismissed(self) -> bool:
        self.caption_buffer = ""
        return self.intake.dismiss()

    def pointer_clicked(self, x: float, y: float) -> None:
        self.disambiguator.pointer_clicked(x, y)

    def pointer_double_clicked(self, x: float, y: float) -> None:
        self.disambiguator.pointer_double_clicked(x, y)

    def toggle_overlay(self) -> None:
        self.show_overlay = not self.show_overlay

    def orbit(self, dx: float, dy: float) -> None:
        camera_mod.orbit_camera(self.graph.camera, dx * ORBIT_SPEED, dy * ORBIT_SPEED)

    def zoom(self, scroll_y: float) -> None:
        camera_mod.zoom_camera(self.graph.camera, ZOOM_STEP ** float(scroll_y))

    # =========================================================================
    # Engine -> UI
    # =========================================================================

    def add_mode_listener(self, listener: Callable[[Mode], None]) -> None:
        self._mode_listeners.append(listener)

    def add_prompt_listener(self, listener: Callable[[int, DecodedImage], None]) -> None:
        self._prompt_listeners.append(listener)

    def add_display_listener(self, listener: Callable[[str], None]) -> None:
        self._display_listeners.append(listener)

    def _mode_changed(self, mode: Mode) -> None:
        target = self.controller.focus_target
        self.status = f"Mode {mode.value}" + (f" on photo {target}" if target is not None else "")
        for listener in list(self._mode_listeners):
            listener(mode)

    def _prompt_caption(self, index: int, image: DecodedImage) -> None:
        self.caption_buffer = ""
        for listener in list(self._prompt_listeners):
            listener(index, image)

    def _show_caption(self, text: str) -> None:
        self.caption_text = text
        self._caption_shown_at = self._clock()
        for listener in list(self._display_listeners):
            listener(text)

    def _decode_failed(self, index: int, message: str) -> None:
        self.status = f"Skipped upload #{index + 1}: {message}"

    def _batch_done(self, created: int) -> None:
        self.status = f"Added {created} photo(s); {len(self.scene.photo_ids())} in the gallery."

    def _batch_finished(self, task: "asyncio.Task[int]") -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Photo intake failed: %s", exc, exc_info=exc)
            self.status = f"Photo intake failed: {exc}"

    def _set_caption_buffer(self, text: str) -> None:
        self.caption_buffer = text

    async def _build_photo_resource(self, image: DecodedImage) -> MaterialDescriptor:
        # Texture upload happens on the render thread; yield once like a real async load.
        await asyncio.sleep(0)
        return palette.photo_material(image, image.average_color)

    def _photo_ready(self, material: MaterialDescriptor, caption: str) -> None:
        self.scene.add_photo(material, caption)

    # =========================================================================
    # Frame loop
    # =========================================================================

    def pump(self) -> None:
        """Run one iteration of the private asyncio loop."""
        self.loop.call_soon(self.loop.stop)
        self.loop.run_forever()

    def settle(self) -> None:
        """Run the loop until the intake queue is idle or waiting for a caption."""
        self.loop.run_until_complete(self.intake.wait_settled())

    def step(self, dt: float) -> None:
        self.pump()
        self.disambiguator.poll()
        if self._caption_shown_at is not None:
            if self._clock() - self._caption_shown_at >= self.params.caption_display_s:
                self.caption_text = ""
                self._caption_shown_at = None
        self.scene.tick(dt, self.controller.state)

    def run_headless(self, frames: int, dt: float | None = None) -> None:
        dt = 1.0 / float(self.params.target_fps) if dt is None else float(dt)
        for _ in range(max(0, int(frames))):
            self.step(dt)

    # =========================================================================
    # Window data
    # =========================================================================

    def get_points(self) -> tuple[list[float], list[int], list[float]]:
        """Flat world-space positions, RGBA bytes and diameters of visible renderables."""
        handles = [h for h in self.graph.handles.values() if h.visible]
        if not handles:
            return [], [], []
        world = self.graph.world_positions(handles)
        rgba = np.array([(*h.material.color, h.material.alpha) for h in handles], dtype=np.uint8)
        sizes = np.array([2.0 * h.geometry.radius * h.scale for h in handles], dtype=np.float32)
        return world.astype(np.float32).ravel().tolist(), rgba.ravel().tolist(), sizes.tolist()

    def get_overlay_text(self) -> str:
        counts = self.scene.counts()
        mode = self.controller.mode.value
        target = self.controller.focus_target
        lines = [
            f"Mode: {mode}" + (f"  (photo {target})" if target is not None else ""),
            f"Entities: {counts['total']}  decorative {counts['decorative']}  dust {counts['dust']}  photos {counts['photo']}",
            f"Intake: {self.intake.phase.value}",
            self.status,
        ]
        return "\n".join(lines)

    def get_prompt_text(self) -> str:
        item = self.intake.current_item
        if item is None or item.image is None:
            return ""
        total = len(self.intake.items)
        return (
            f"Caption for photo {item.index + 1}/{total} ({item.image.width}x{item.image.height})\n"
            f"> {self.caption_buffer}_\n"
            "ENTER save | TAB skip | ESC dismiss"
        )

    def get_caption_text(self) -> str:
        return self.caption_text

    def run(self) -> None:
        from particle_gallery3d.rendering.pyglet_renderer import run_pyglet

        p = self.params
        try:
            run_pyglet(
                width=p.width,
                height=p.height,
                background_rgb=p.background,
                get_points=self.get_points,
                get_camera=lambda: self.graph.camera,
                step=self.step,
                on_key=self.key_handler.handle_key,
                on_text_input=self.text_handler.handle_text,
                on_pointer_press=self.pointer.press,
                on_pointer_release=self.pointer.release,
                on_orbit=self.orbit,
                on_zoom=self.zoom,
                on_resize=self.graph.resize,
                on_files_dropped=self.files_selected,
                get_overlay_text=self.get_overlay_text,
                get_prompt_text=self.get_prompt_text,
                get_caption_text=self.get_caption_text,
                get_show_overlay=lambda: self.show_overlay,
                point_size=p.point_size,
                reference_distance=p.camera_distance,
                target_fps=p.target_fps,
                title="Particle Gallery 3D",
                mac_compat=p.mac_compat,
            )
        finally:
            self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        task = self.intake.task
        if task is not None and not task.done():
            task.cancel()
            try:
                self.loop.run_until_complete(task)
            except asyncio.CancelledError:
                pass
        self.loop.run_until_complete(self.loop.shutdown_default_executor())
        self.loop.close()
