"""
Sequential photo intake.

A batch of uploaded images is decoded concurrently, then processed strictly
in submission order: the UI is asked for an optional caption, the queue waits
for the decision, builds the renderable resource and only then creates the
photo entity and moves to the next item.

The whole batch runs as one asyncio task, so "no entity before its caption
decision resolves" follows from the ``await`` order rather than from nested
callbacks.
"""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Sequence

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

MAX_TEXTURE_SIDE = 1024


class ImageDecodeError(ValueError):
    """Raised when an uploaded payload is not a readable image."""


class IntakePhase(str, Enum):
    IDLE = "IDLE"
    DECODING = "DECODING"
    AWAITING_CAPTION = "AWAITING_CAPTION"
    BUILDING = "BUILDING"


@dataclass(slots=True)
class DecodedImage:
    """
    An image decoded into memory.

    Attributes:
        width, height: Pixel size after downscaling
        pixels: RGBA bytes, rows bottom-up (OpenGL texture order)
        average_color: Mean (r, g, b) used when the photo is drawn as a sprite
    """
    width: int
    height: int
    pixels: bytes
    average_color: tuple[int, int, int]


@dataclass(slots=True)
class IntakeItem:
    index: int
    image: DecodedImage | None = None
    error: str | None = None


def decode_image(raw: bytes, max_side: int = MAX_TEXTURE_SIDE) -> DecodedImage:
    """
    Decode raw file bytes with Pillow.

    Raises:
        ImageDecodeError: If Pillow cannot read the payload
    """
    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.load()
            rgba = img.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ImageDecodeError(f"cannot decode image ({len(raw)} bytes): {exc}") from exc

    rgba.thumbnail((max_side, max_side))
    r, g, b, _a = rgba.resize((1, 1), Image.Resampling.BOX).getpixel((0, 0))
    flipped = rgba.transpose(Image.Transpose.FLIP_TOP_BOTTOM)
    return DecodedImage(
        width=rgba.width,
        height=rgba.height,
        pixels=flipped.tobytes(),
        average_color=(int(r), int(g), int(b)),
    )


class PhotoIntakeQueue:
    """
    Turns uploaded images into photo entities, one caption decision at a time.

    Callbacks:
        on_prompt(index, image): ask the UI for a caption for item ``index``
        on_entity(resource, caption): append the new photo entity (synchronous)
        on_decode_error(index, message): a payload was skipped
        on_batch_done(created): the batch finished
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        build_resource: Callable[[DecodedImage], Awaitable[Any]],
        on_entity: Callable[[Any, str], Any],
        on_prompt: Callable[[int, DecodedImage], None] | None = None,
        on_decode_error: Callable[[int, str], None] | None = None,
        on_batch_done: Callable[[int], None] | None = None,
        decode: Callable[[bytes], DecodedImage] = decode_image,
        executor: Any = None,
    ):
        self._loop = loop
        self._build_resource = build_resource
        self._on_entity = on_entity
        self._on_prompt = on_prompt
        self._on_decode_error = on_decode_error
        self._on_batch_done = on_batch_done
        self._decode = decode
        self._executor = executor

        self.items: list[IntakeItem] = []
        self.cursor = 0
        self.phase = IntakePhase.IDLE
        self._decision: asyncio.Future[str] | None = None
        self._task: asyncio.Task[int] | None = None
        self._generation = 0
        self._settled = asyncio.Event()
        self._settled.set()

    @property
    def awaiting_caption(self) -> bool:
        return self._decision is not None and not self._decision.done()

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def task(self) -> "asyncio.Task[int] | None":
        return self._task

    @property
    def current_item(self) -> IntakeItem | None:
        if self.awaiting_caption and 0 <= self.cursor < len(self.items):
            return self.items[self.cursor]
        return None

    def submit_batch(self, payloads: Sequence[bytes]) -> "asyncio.Task[int]":
        """
        Start processing a new batch, discarding the unresolved tail of any previous one.

        Returns:
            The task driving the batch; its result is the number of entities created.
        """
        if self.busy:
            logger.info("New batch: discarding %d unprocessed item(s)", max(0, len(self.items) - self.cursor))
            assert self._task is not None
            self._task.cancel()
        self._reset()
        self._generation += 1
        self._settled.clear()
        self._task = self._loop.create_task(self._run_batch(list(payloads), self._generation))
        return self._task

    def submit_caption(self, text: str) -> bool:
        return self._resolve((text or "").strip())

    def skip(self) -> bool:
        return self._resolve("")

    def dismiss(self) -> bool:
        return self._resolve("")

    async def wait_settled(self) -> None:
        """Wait until the queue is idle or waiting for a caption decision."""
        await self._settled.wait()

    def _reset(self) -> None:
        if self._decision is not None and not self._decision.done():
            self._decision.cancel()
        self._decision = None
        self.items = []
        self.cursor = 0
        self.phase = IntakePhase.IDLE

    def _resolve(self, caption: str) -> bool:
        if not self.awaiting_caption:
            logger.warning("Caption decision received with no photo awaiting one")
            return False
        assert self._decision is not None
        self._decision.set_result(caption)
        self._settled.clear()
        return True

    async def _decode_one(self, index: int, raw: bytes) -> IntakeItem:
        try:
            image = await self._loop.run_in_executor(self._executor, self._decode, raw)
        except Exception as exc:
            # A malformed upload must never block the rest of the batch.
            logger.warning("Skipping upload #%d: %s", index, exc)
            if self._on_decode_error is not None:
                self._on_decode_error(index, str(exc))
            return IntakeItem(index=index, error=str(exc))
        return IntakeItem(index=index, image=image)

    async def _run_batch(self, payloads: list[bytes], generation: int) -> int:
        created = 0
        try:
            self.phase = IntakePhase.DECODING
            logger.info("Decoding %d upload(s)", len(payloads))
            items = list(await asyncio.gather(*(self._decode_one(i, raw) for i, raw in enumerate(payloads))))
            self.items = items

            for cursor, item in enumerate(items):
                self.cursor = cursor
                if item.image is None:
                    continue

                # on_prompt may start a new batch, which replaces self._decision.
                decision = self._decision = self._loop.create_future()
                self.phase = IntakePhase.AWAITING_CAPTION
                self._settled.set()
                if self._on_prompt is not None:
                    self._on_prompt(item.index, item.image)
                caption = await decision
                if self._decision is decision:
                    self._decision = None

                self.phase = IntakePhase.BUILDING
                resource = await self._build_resource(item.image)
                self._on_entity(resource, caption)
                created += 1
                logger.info("Photo %d/%d added (caption=%r)", cursor + 1, len(items), caption)
            self.cursor = len(items)
        finally:
            # A superseded batch leaves the state of its replacement alone.
            if generation == self._generation:
                self.phase = IntakePhase.IDLE
                self._settled.set()

        if self._on_batch_done is not None:
            self._on_batch_done(created)
        return created
