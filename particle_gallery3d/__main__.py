"""
Command line entry point.

    python -m particle_gallery3d [--params FILE] [--photos IMG ...] [--headless N]
"""

from __future__ import annotations

import argparse
import logging
import sys

from particle_gallery3d.logging_config import setup_logging
from particle_gallery3d.params import GalleryParams

logger = logging.getLogger("particle_gallery3d.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="particle_gallery3d", description="Interactive 3D particle photo gallery")
    parser.add_argument("--params", "-p", help="JSON params file")
    parser.add_argument("--save-params", help="Write the effective params to this JSON file and exit")
    parser.add_argument("--photos", nargs="*", default=[], help="Image files to add at startup")
    parser.add_argument("--caption", default=None, help="Caption applied to startup photos in headless mode")
    parser.add_argument("--mode", default=None, help="Initial mode (COMPACT, DISPERSED, FOCUS)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for the layout")
    parser.add_argument("--headless", type=int, default=None, metavar="FRAMES", help="Run N frames without a window")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(getattr(logging, args.log_level), args.log_file)

    try:
        params = GalleryParams.load(args.params) if args.params else GalleryParams()
    except (OSError, ValueError, TypeError) as exc:
        logger.error("Cannot load params from %s: %s", args.params, exc)
        return 2
    if args.seed is not None:
        params.seed = int(args.seed)
    params.clamp()

    if args.save_params:
        params.save(args.save_params)
        logger.info("Params written to %s", args.save_params)
        return 0

    from particle_gallery3d.ui.app import GalleryApp

    app = GalleryApp(params)
    try:
        if args.headless is not None:
            # Without a window nobody can type a caption: answer every prompt immediately.
            if args.caption is None:
                app.add_prompt_listener(lambda _index, _image: app.caption_skipped())
            else:
                app.add_prompt_listener(lambda _index, _image: app.caption_submitted(args.caption))

        if args.photos:
            app.files_selected(args.photos)
            if args.headless is not None:
                app.settle()
        if args.mode:
            try:
                app.mode_button_pressed(args.mode)
            except ValueError as exc:
                logger.error("%s", exc)
                return 2

        if args.headless is not None:
            app.run_headless(args.headless)
            logger.info("Headless run finished: %s", app.get_overlay_text().replace("\n", " | "))
            return 0

        app.run()
    except RuntimeError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        app.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
