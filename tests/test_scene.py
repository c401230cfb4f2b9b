"""
Integration tests for the live entity set and the per-tick pass.
"""

import math
import random
from collections import Counter

import pytest

from particle_gallery3d.core.entity import EntityKind
from particle_gallery3d.core.modes import Mode, ModeController, ModeState
from particle_gallery3d.core.scene import GalleryScene, pick_decorative_kind
from particle_gallery3d.params import GalleryParams
from particle_gallery3d.rendering import palette
from particle_gallery3d.rendering.camera import project_point
from particle_gallery3d.rendering.scene_graph import SceneGraph

DT = 1.0 / 60.0


def make_scene(particle_count=40, dust_count=30, topper=True, spin=0.1, seed=4):
    params = GalleryParams(
        particle_count=particle_count,
        dust_count=dust_count,
        topper_enabled=topper,
        group_spin_rate=spin,
        seed=seed,
    ).clamp()
    graph = SceneGraph(viewport=(params.width, params.height))
    scene = GalleryScene(params, graph, random.Random(seed))
    scene.populate()
    return scene, graph


def add_photo(scene, caption=""):
    return scene.add_photo(palette.photo_material(None, (120, 90, 60)), caption)


def run(scene, state, frames):
    for _ in range(frames):
        scene.tick(DT, state)


def pixel_of(graph, world_point):
    w, h = graph.viewport
    return project_point(graph.camera, world_point, w, h)


class TestPopulate:
    def test_counts(self):
        scene, graph = make_scene(particle_count=40, dust_count=30)
        counts = scene.counts()
        assert counts == {"total": 70, "decorative": 40, "dust": 30, "photo": 0}
        # One renderable per entity plus the topper.
        assert len(graph.handles) == 71
        assert all(e.handle is not None for e in scene.entities)

    def test_without_topper(self):
        scene, graph = make_scene(topper=False)
        assert scene.topper is None
        assert len(graph.handles) == len(scene.entities)

    def test_entities_start_at_origin(self):
        scene, _graph = make_scene()
        assert all(e.position == (0.0, 0.0, 0.0) for e in scene.entities)

    def test_decorative_rotation_and_spin_ranges(self):
        scene, _graph = make_scene(particle_count=200, dust_count=0)
        for e in scene.entities:
            assert all(0.0 <= r < 6.0 for r in e.rotation)
            assert all(abs(s) <= 1.0 for s in e.spin_rate)
            assert 0.4 <= e.base_scale <= 0.9

    def test_decorative_mix(self):
        rng = random.Random(12)
        n = 20000
        counts = Counter(pick_decorative_kind(rng) for _ in range(n))
        expected = {
            EntityKind.BOX: 0.40,
            EntityKind.GOLD_BOX: 0.30,
            EntityKind.GOLD_SPHERE: 0.22,
            EntityKind.RED: 0.05,
            EntityKind.CANE: 0.03,
        }
        for kind, share in expected.items():
            assert counts[kind] / n == pytest.approx(share, abs=0.015)

    def test_seeded_layout_is_reproducible(self):
        a, _ = make_scene(seed=9)
        b, _ = make_scene(seed=9)
        assert [e.compact_position for e in a.entities] == [e.compact_position for e in b.entities]


class TestPhotos:
    def test_add_photo_appends(self):
        scene, _graph = make_scene()
        before = list(scene.entities)
        first = add_photo(scene, "  Hello ")
        second = add_photo(scene)
        assert scene.entities[: len(before)] == before
        assert scene.entities[-2:] == [first, second]
        assert scene.photo_ids() == [first.id, second.id]
        assert second.id > first.id
        assert scene.caption_of(first.id) == "Hello"
        assert scene.caption_of(second.id) == ""
        assert first.base_scale == pytest.approx(0.8)
        assert all(abs(s) <= 0.15 for s in first.spin_rate)

    def test_caption_of_unknown_is_empty(self):
        scene, _graph = make_scene()
        assert scene.caption_of(10_000) == ""


class TestTick:
    def test_transforms_pushed_to_backend(self):
        scene, _graph = make_scene()
        run(scene, ModeState(Mode.DISPERSED), 10)
        for e in scene.entities:
            h = e.handle
            assert h.position == e.position
            assert h.rotation == e.rotation
            assert h.scale == e.scale

    def test_group_spins(self):
        scene, graph = make_scene(spin=0.5)
        run(scene, ModeState(), 60)
        assert graph.group_yaw == pytest.approx(0.5, abs=1e-6)

    def test_dust_hidden_in_compact(self):
        scene, _graph = make_scene()
        run(scene, ModeState(Mode.COMPACT), 300)
        for e in scene.entities:
            if e.is_dust:
                assert not e.handle.visible

    def test_topper_hides_outside_compact(self):
        scene, _graph = make_scene()
        run(scene, ModeState(Mode.DISPERSED), 300)
        assert not scene.topper.visible
        run(scene, ModeState(Mode.COMPACT), 300)
        assert scene.topper.scale == pytest.approx(1.5, abs=1e-3)

    def test_positions_stable_across_mode_switches(self):
        scene, _graph = make_scene()
        photo = add_photo(scene)
        snapshot = [(e.compact_position, e.dispersed_position) for e in scene.entities]
        controller = ModeController(photo_ids=scene.photo_ids, rng=random.Random(0))
        for mode in (Mode.DISPERSED, Mode.FOCUS, Mode.COMPACT) * 4:
            controller.set_mode(mode)
            run(scene, controller.state, 5)
        assert controller.focus_target in (None, photo.id)
        assert [(e.compact_position, e.dispersed_position) for e in scene.entities] == snapshot


class TestFocus:
    def test_focused_photo_sits_in_front_of_camera(self):
        scene, graph = make_scene(spin=0.0)
        photo = add_photo(scene)
        run(scene, ModeState(Mode.FOCUS, photo.id), 600)
        world = graph.world_positions([photo.handle])[0]
        assert tuple(world) == pytest.approx(graph.focus_point(15.0), abs=1e-3)
        assert photo.scale == pytest.approx(4.5, abs=1e-3)

    def test_focused_photo_follows_spinning_group(self):
        scene, graph = make_scene(spin=0.1)
        photo = add_photo(scene)
        run(scene, ModeState(Mode.FOCUS, photo.id), 900)
        world = graph.world_positions([photo.handle])[0]
        assert math.dist(tuple(world), graph.focus_point(15.0)) < 1.0

    def test_exactly_one_focus_target(self):
        scene, _graph = make_scene()
        photos = [add_photo(scene) for _ in range(3)]
        controller = ModeController(photo_ids=scene.photo_ids, rng=random.Random(5))
        controller.set_mode(Mode.FOCUS)
        run(scene, controller.state, 600)
        enlarged = [e for e in scene.entities if e.scale > 3.0]
        assert len(enlarged) == 1
        assert enlarged[0].is_photo
        assert enlarged[0].id == controller.focus_target
        assert enlarged[0] in photos


class TestPicking:
    def test_pick_focused_photo_at_screen_center(self):
        scene, graph = make_scene(spin=0.0)
        photo = add_photo(scene)
        run(scene, ModeState(Mode.FOCUS, photo.id), 600)
        w, h = graph.viewport
        assert scene.pick_photo(w / 2.0, h / 2.0) == photo.id
        assert scene.pick_photo(0.0, h - 1.0) is None

    def test_pick_dispersed_photo(self):
        scene, graph = make_scene()
        photo = add_photo(scene, "caption")
        run(scene, ModeState(Mode.DISPERSED), 600)
        world = tuple(graph.world_positions([photo.handle])[0])
        x, y = pixel_of(graph, world)
        assert scene.pick_photo(x, y) == photo.id

    def test_pick_without_photos(self):
        scene, graph = make_scene()
        assert scene.pick_photo(640.0, 400.0) is None

    def test_hits_formation_on_topper(self):
        scene, graph = make_scene(particle_count=0, dust_count=0)
        top = (0.0, scene.params.tree_height / 2.0 + 1.2, 0.0)
        x, y = pixel_of(graph, top)
        assert scene.hits_formation(x, y)
        assert not scene.hits_formation(5.0, 5.0)

    def test_hits_formation_counts_photos_in_the_tree(self):
        scene, graph = make_scene(particle_count=0, dust_count=0, topper=False, spin=0.0)
        photo = add_photo(scene)
        run(scene, ModeState(Mode.COMPACT), 600)
        x, y = pixel_of(graph, tuple(graph.world_positions([photo.handle])[0]))
        assert scene.hits_formation(x, y)

    def test_hits_formation_ignores_dust(self):
        scene, graph = make_scene(particle_count=0, dust_count=20, topper=False)
        run(scene, ModeState(Mode.DISPERSED), 300)
        dust = scene.entities[0]
        x, y = pixel_of(graph, tuple(graph.world_positions([dust.handle])[0]))
        assert not scene.hits_formation(x, y)
