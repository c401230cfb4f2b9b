from __future__ import annotations

from typing import Any, Callable

from .camera import CameraState, compute_camera_position


def run_pyglet(
    *,
    width: int,
    height: int,
    background_rgb: tuple[int, int, int],
    get_points: Callable[[], tuple[list[float], list[int], list[float]]],
    get_camera: Callable[[], CameraState],
    step: Callable[[float], None],
    on_key: Callable[[str], None],
    on_text_input: Callable[[str], None] | None = None,
    on_pointer_press: Callable[[float, float], None] | None = None,
    on_pointer_release: Callable[[float, float], None] | None = None,
    on_orbit: Callable[[float, float], None] | None = None,
    on_zoom: Callable[[float], None] | None = None,
    on_resize: Callable[[int, int], None] | None = None,
    on_files_dropped: Callable[[list[str]], None] | None = None,
    get_overlay_text: Callable[[], str] | None = None,
    get_prompt_text: Callable[[], str] | None = None,
    get_caption_text: Callable[[], str] | None = None,
    get_show_overlay: Callable[[], bool] | None = None,
    point_size: float = 24.0,
    reference_distance: float = 50.0,
    target_fps: int,
    title: str,
    mac_compat: bool = False,
) -> None:
    """
    Open the gallery window and run the pyglet event loop.

    Entities are drawn as point sprites whose pixel size follows perspective:
    ``point_size`` pixels per world unit of diameter at ``reference_distance``.
    ``get_points`` returns flat world-space positions, RGBA bytes and
    world-space diameters.
    """
    try:
        import pyglet  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError("Missing dependency: install pyglet (pip install pyglet).") from e

    from pyglet import gl  # type: ignore
    from pyglet.math import Mat4, Vec3  # type: ignore
    from pyglet.window import mouse  # type: ignore

    if mac_compat:
        # Some macOS drivers behave better without the shadow window; also force vsync to avoid busy-looping.
        pyglet.options["shadow_window"] = False
        pyglet.options["vsync"] = True

    window = None
    config_candidates: list[dict[str, Any]] = []
    if mac_compat:
        config_candidates.extend(
            [
                {"double_buffer": True, "depth_size": 24, "sample_buffers": 0, "samples": 0},
                {"double_buffer": True, "depth_size": 16, "sample_buffers": 0, "samples": 0},
            ]
        )
    config_candidates.extend(
        [
            {"double_buffer": True, "depth_size": 24, "sample_buffers": 1, "samples": 4},
            {"double_buffer": True, "depth_size": 24},
        ]
    )

    for cfg_kwargs in config_candidates:
        try:
            config = gl.Config(**cfg_kwargs)
            window = pyglet.window.Window(
                width=width,
                height=height,
                caption=title,
                config=config,
                resizable=True,
                vsync=True,
                file_drops=True,
            )
            break
        except Exception:
            continue

    if window is None:
        window = pyglet.window.Window(
            width=width, height=height, caption=title, resizable=True, vsync=True, file_drops=True
        )

    bg_r, bg_g, bg_b = background_rgb
    gl.glClearColor(bg_r / 255.0, bg_g / 255.0, bg_b / 255.0, 1.0)
    gl.glEnable(gl.GL_BLEND)
    gl.glBlendFunc(gl.GL_SRC_ALPHA, gl.GL_ONE_MINUS_SRC_ALPHA)
    gl.glEnable(gl.GL_DEPTH_TEST)
    gl.glEnable(gl.GL_PROGRAM_POINT_SIZE)

    overlay_label = pyglet.text.Label(
        "",
        x=10,
        y=height - 10,
        anchor_x="left",
        anchor_y="top",
        font_name="Consolas",
        font_size=13,
        color=(255, 217, 102, 235),
        multiline=True,
        width=560,
    )
    help_label = pyglet.text.Label(
        "1 compact | 2 dispersed | 3 focus | H overlay | Drop images to add photos | Drag rotate | Wheel zoom | Double-click to scatter / focus",
        x=10,
        y=10,
        anchor_x="left",
        anchor_y="bottom",
        font_name="Segoe UI",
        font_size=12,
        color=(235, 240, 255, 220),
    )
    prompt_panel = pyglet.shapes.BorderedRectangle(
        8,
        8,
        10,
        10,
        border=1,
        color=(3, 24, 10, 220),
        border_color=(255, 217, 102),
    )
    prompt_label = pyglet.text.Label(
        "",
        anchor_x="center",
        anchor_y="center",
        font_name="Segoe UI",
        font_size=15,
        color=(255, 240, 200, 255),
        multiline=True,
        width=520,
        align="center",
    )
    caption_label = pyglet.text.Label(
        "",
        anchor_x="center",
        anchor_y="bottom",
        font_name="Georgia",
        font_size=22,
        color=(255, 217, 102, 255),
    )

    sprite_program = None
    vertex_list = None
    vertex_count = 0
    view_w = float(width)
    view_h = float(height)

    def ensure_sprite_program() -> Any:
        nonlocal sprite_program
        if sprite_program is not None:
            return sprite_program
        from pyglet.graphics.shader import Shader, ShaderProgram  # type: ignore

        vert_src = """#version 330 core
        in vec3 position;
        in vec4 colors;
        in float sizes;
        uniform mat4 projection;
        uniform mat4 view;
        uniform float px_per_unit;
        out vec4 v_color;
        void main() {
            gl_Position = projection * view * vec4(position, 1.0);
            gl_PointSize = sizes * px_per_unit / max(gl_Position.w, 0.1);
            v_color = colors;
        }
        """
        frag_src = """#version 330 core
        in vec4 v_color;
        out vec4 fragColor;
        void main() {
            vec2 uv = gl_PointCoord * 2.0 - 1.0;
            float r2 = dot(uv, uv);
            if (r2 > 1.0) discard;
            float alpha = exp(-r2 * 1.5);
            fragColor = vec4(v_color.rgb, v_color.a * alpha);
        }
        """
        sprite_program = ShaderProgram(Shader(vert_src, "vertex"), Shader(frag_src, "fragment"))
        return sprite_program

    def apply_3d_camera(cam: CameraState) -> None:
        aspect = view_w / max(1.0, float(view_h))
        window.projection = Mat4.perspective_projection(aspect=aspect, z_near=0.1, z_far=1000.0, fov=cam.fov)
        px, py, pz = compute_camera_position(cam.yaw, cam.pitch, cam.distance, cam.center)
        cx, cy, cz = cam.center
        window.view = Mat4.look_at(Vec3(px, py, pz), Vec3(cx, cy, cz), Vec3(0.0, 1.0, 0.0))

    def apply_2d_overlay() -> None:
        window.projection = Mat4.orthogonal_projection(0, max(window.width, 1), 0, max(window.height, 1), -1, 1)
        window.view = Mat4()

    def draw_points(xyz: list[float], rgba: list[int], sizes: list[float]) -> None:
        nonlocal vertex_list, vertex_count
        if not xyz:
            return
        count = len(xyz) // 3
        program = ensure_sprite_program()
        program.use()
        program["projection"] = window.projection
        program["view"] = window.view
        program["px_per_unit"] = float(point_size) * float(reference_distance)
        if vertex_list is None:
            vertex_count = count
            vertex_list = program.vertex_list(
                vertex_count,
                gl.GL_POINTS,
                position=("f", xyz),
                colors=("Bn", rgba),
                sizes=("f", sizes),
            )
        else:
            if count != vertex_count:
                vertex_count = count
                vertex_list.resize(vertex_count)
            vertex_list.position[:] = xyz
            vertex_list.colors[:] = rgba
            vertex_list.sizes[:] = sizes
        vertex_list.draw(gl.GL_POINTS)
        program.stop()

    @window.event
    def on_draw() -> None:
        window.clear()
        gl.glClear(gl.GL_COLOR_BUFFER_BIT | gl.GL_DEPTH_BUFFER_BIT)

        gl.glEnable(gl.GL_DEPTH_TEST)
        apply_3d_camera(get_camera())
        xyz, rgba, sizes = get_points()
        draw_points(xyz, rgba, sizes)

        gl.glDisable(gl.GL_DEPTH_TEST)
        apply_2d_overlay()

        show_overlay = get_show_overlay() if get_show_overlay is not None else True
        if show_overlay:
            if get_overlay_text is not None:
                overlay_label.text = get_overlay_text()
                overlay_label.y = window.height - 10
                overlay_label.draw()
            help_label.draw()

        caption = get_caption_text() if get_caption_text is not None else ""
        if caption:
            caption_label.text = caption
            caption_label.x = window.width // 2
            caption_label.y = 60
            caption_label.draw()

        prompt = get_prompt_text() if get_prompt_text is not None else ""
        if prompt:
            prompt_label.text = prompt
            prompt_label.x = window.width // 2
            prompt_label.y = window.height // 2
            pad = 18
            pw = int(prompt_label.content_width) + pad * 2
            ph = int(prompt_label.content_height) + pad * 2
            prompt_panel.x = (window.width - pw) // 2
            prompt_panel.y = (window.height - ph) // 2
            prompt_panel.width = pw
            prompt_panel.height = ph
            prompt_panel.draw()
            prompt_label.draw()

    @window.event
    def on_resize(w: int, h: int) -> None:
        nonlocal view_w, view_h
        view_w = float(w)
        view_h = float(h)
        help_label.y = 10
        if on_resize is not None:
            on_resize(int(w), int(h))

    @window.event
    def on_close() -> None:
        pyglet.app.exit()

    @window.event
    def on_key_press(symbol: int, modifiers: int) -> Any:  # noqa: ARG001
        from pyglet.window import key  # type: ignore

        mapping = {
            key._1: "1",
            key._2: "2",
            key._3: "3",
            key.NUM_1: "1",
            key.NUM_2: "2",
            key.NUM_3: "3",
            key.H: "h",
            key.ESCAPE: "esc",
            key.BACKSPACE: "backspace",
            key.ENTER: "enter",
            key.NUM_ENTER: "enter",
            key.TAB: "tab",
        }
        k = mapping.get(symbol)
        if k is None:
            return
        try:
            on_key(k)
        except SystemExit:
            pyglet.app.exit()
        # Keep pyglet's default handler from closing the window on ESC.
        return pyglet.event.EVENT_HANDLED

    @window.event
    def on_text(text: str) -> None:  # type: ignore[override]
        if on_text_input is not None and text:
            on_text_input(text)

    @window.event
    def on_mouse_press(x: int, y: int, button: int, modifiers: int) -> None:  # noqa: ARG001
        if button & mouse.LEFT and on_pointer_press is not None:
            on_pointer_press(float(x), float(y))

    @window.event
    def on_mouse_release(x: int, y: int, button: int, modifiers: int) -> None:  # noqa: ARG001
        if button & mouse.LEFT and on_pointer_release is not None:
            on_pointer_release(float(x), float(y))

    @window.event
    def on_mouse_drag(x: int, y: int, dx: int, dy: int, buttons: int, modifiers: int) -> None:  # noqa: ARG001
        if buttons & mouse.LEFT and on_orbit is not None:
            on_orbit(float(dx), float(dy))

    @window.event
    def on_mouse_scroll(x: int, y: int, scroll_x: float, scroll_y: float) -> None:  # noqa: ARG001
        if on_zoom is not None:
            on_zoom(float(scroll_y))

    @window.event
    def on_file_drop(x: int, y: int, paths: list[str]) -> None:  # noqa: ARG001
        if on_files_dropped is not None and paths:
            on_files_dropped(list(paths))

    def tick(dt: float) -> None:
        step(dt)

    pyglet.clock.schedule_interval(tick, 1.0 / max(10, target_fps))
    pyglet.app.run()
