from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class GalleryParams:
    width: int = 1280
    height: int = 800
    background: tuple[int, int, int] = (0, 0, 0)

    particle_count: int = 1500
    dust_count: int = 2500
    tree_height: float = 24.0
    tree_radius: float = 8.0
    topper_enabled: bool = True

    camera_distance: float = 50.0
    camera_height: float = 2.0
    camera_min_distance: float = 20.0
    camera_max_distance: float = 100.0
    camera_fov: float = 42.0
    focus_distance: float = 15.0  # world units in front of the camera
    group_spin_rate: float = 0.1  # rad/s around the vertical axis

    click_window_ms: float = 300.0
    double_click_slop_px: float = 6.0
    caption_display_s: float = 5.0
    caption_max_length: int = 140

    point_size: float = 24.0
    show_overlay: bool = True
    mac_compat: bool = True
    target_fps: int = 60
    seed: int = 1

    def clamp(self) -> "GalleryParams":
        self.width = max(320, int(self.width))
        self.height = max(240, int(self.height))
        self.particle_count = max(0, int(self.particle_count))
        self.dust_count = max(0, int(self.dust_count))
        self.tree_height = max(1.0, float(self.tree_height))
        self.tree_radius = max(0.5, float(self.tree_radius))
        self.topper_enabled = bool(self.topper_enabled)
        self.camera_min_distance = max(1.0, float(self.camera_min_distance))
        self.camera_max_distance = max(self.camera_min_distance, float(self.camera_max_distance))
        self.camera_distance = min(
            self.camera_max_distance, max(self.camera_min_distance, float(self.camera_distance))
        )
        self.camera_height = float(self.camera_height)
        self.camera_fov = min(120.0, max(10.0, float(self.camera_fov)))
        self.focus_distance = min(self.camera_distance * 0.95, max(1.0, float(self.focus_distance)))
        self.group_spin_rate = min(5.0, max(-5.0, float(self.group_spin_rate)))
        self.click_window_ms = min(2000.0, max(50.0, float(self.click_window_ms)))
        self.double_click_slop_px = max(0.0, float(self.double_click_slop_px))
        self.caption_display_s = max(0.5, float(self.caption_display_s))
        self.caption_max_length = max(1, min(1000, int(self.caption_max_length)))
        self.point_size = min(256.0, max(1.0, float(self.point_size)))
        self.show_overlay = bool(self.show_overlay)
        self.mac_compat = bool(self.mac_compat)
        self.target_fps = max(10, int(self.target_fps))
        self.seed = int(self.seed)
        return self

    def validate(self) -> list[str]:
        warnings: list[str] = []

        if self.particle_count == 0 and self.dust_count == 0:
            warnings.append("particle_count and dust_count are both 0: only photos will be shown.")
        if self.particle_count == 0 and not self.topper_enabled:
            warnings.append("compact formation has no geometry: double-click in COMPACT cannot hit anything.")
        if self.focus_distance >= self.camera_min_distance:
            warnings.append("focus_distance >= camera_min_distance: a zoomed-in camera may clip the focused photo.")
        if self.particle_count + self.dust_count > 20000:
            warnings.append("more than 20000 entities: the per-frame pass will be slow.")

        return warnings

    @property
    def click_window_s(self) -> float:
        return float(self.click_window_ms) / 1000.0

    @classmethod
    def load(cls, path: str | Path) -> "GalleryParams":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("Params file must contain a JSON object.")
        # Older configs named the dust count "dust".
        if "dust" in data and "dust_count" not in data:
            data["dust_count"] = data.pop("dust")
        if "background" in data:
            data["background"] = tuple(data["background"])
        filtered: dict[str, Any] = {k: v for k, v in data.items() if k in cls.__annotations__}
        return cls(**filtered).clamp()

    def save(self, path: str | Path) -> None:
        data = asdict(self)
        Path(path).write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
