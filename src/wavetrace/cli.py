"""Command-line interface.

Commands:
    render      Render one or more frames to PNG files
    preview     Open the interactive preview window (or a static figure)
    generate    Generate a scene and write it as JSON

Usage:
    python -m wavetrace render --width 960 --height 540 --time 2.5 --output spheres.png
    python -m wavetrace render --frames 60 --fps 30 --output frames/spheres.png
    python -m wavetrace preview --count 150 --seed 7
    python -m wavetrace generate --seed 7 --output scene.json

Configuration values come from ``--config`` (a JSON file written by
``wavetrace.config.save_config``) and are overridden by explicit flags.
"""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any

import taichi as ti

from wavetrace.config import RayTracingConfig, load_config
from wavetrace.errors import ConfigurationError, WavetraceError
from wavetrace.logging_config import setup_logging

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all commands."""
    parser = argparse.ArgumentParser(
        prog="wavetrace",
        description="GPU ray tracer for procedurally placed, waving spheres.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="JSON configuration file")
    parser.add_argument("--seed", type=int, help="Random seed for scene generation")
    parser.add_argument("--count", type=int, help="Number of sphere placement attempts")
    parser.add_argument("--speed", type=float, help="Waving speed")
    parser.add_argument(
        "--no-light", action="store_true", help="Render without the directional light"
    )
    parser.add_argument(
        "--log-level", choices=LOG_LEVELS, default="INFO", help="Logging level (default: INFO)"
    )
    parser.add_argument("--log-file", type=str, help="Also write logs to this file")

    commands = parser.add_subparsers(dest="command", required=True)

    render = commands.add_parser("render", help="Render frames to PNG")
    _add_output_options(render)
    render.add_argument("--time", type=float, default=0.0, help="Animation time of the first frame")
    render.add_argument("--frames", type=int, default=1, help="Number of frames (default: 1)")
    render.add_argument("--fps", type=float, default=30.0, help="Frame rate for --frames (default: 30)")
    render.add_argument(
        "--output", type=Path, default=Path("waving_spheres.png"), help="Output PNG path"
    )

    preview = commands.add_parser("preview", help="Show the scene in a window")
    _add_output_options(preview)
    preview.add_argument(
        "--static", action="store_true", help="Show a single frame with Matplotlib"
    )

    generate = commands.add_parser("generate", help="Write a generated scene as JSON")
    generate.add_argument("--output", type=Path, help="Output file (default: stdout)")

    return parser


def positive_int(text: str) -> int:
    """argparse type for image dimensions."""
    value = int(text)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return value


def _add_output_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--width", type=positive_int, default=960, help="Image width (default: 960)")
    parser.add_argument(
        "--height", type=positive_int, default=540, help="Image height (default: 540)"
    )
    parser.add_argument("--sky", type=Path, help="Equirectangular sky image")
    parser.add_argument(
        "--tone-map",
        choices=("none", "reinhard", "exposure"),
        default="reinhard",
        help="Tone mapping operator (default: reinhard)",
    )
    parser.add_argument("--exposure", type=float, default=1.0, help="Exposure (default: 1.0)")
    parser.add_argument(
        "--arch", choices=("auto", "gpu", "cpu"), default="auto", help="Taichi backend"
    )


def resolve_config(args: argparse.Namespace) -> RayTracingConfig:
    """Combine the configuration file and command-line overrides.

    Raises:
        ConfigurationError: If the resulting configuration is invalid.
    """
    config = load_config(args.config) if args.config else RayTracingConfig()
    overrides: dict[str, Any] = {}
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.count is not None:
        overrides["sphere_count"] = args.count
    if args.speed is not None:
        overrides["waving_speed"] = args.speed
    if args.no_light:
        overrides["light"] = None
    config = dataclasses.replace(config, **overrides)
    config.validate()
    return config


def init_taichi(arch: str = "auto") -> None:
    """Initialize Taichi, falling back to the CPU when no GPU backend works."""
    if arch == "cpu":
        ti.init(arch=ti.cpu)
        return
    try:
        ti.init(arch=ti.gpu)
        logger.info("Using GPU backend")
    except RuntimeError as exc:
        if arch == "gpu":
            raise
        logger.warning("GPU backend unavailable (%s), using CPU", exc)
        ti.init(arch=ti.cpu)


def _build_compositor(args: argparse.Namespace, config: RayTracingConfig) -> Any:
    from wavetrace.render.compositor import FrameCompositor
    from wavetrace.render.kernel import SphereTracingKernel
    from wavetrace.render.sky import gradient_sky_image, load_sky_image, sky_field_from_image

    image = load_sky_image(args.sky) if args.sky else gradient_sky_image()
    return FrameCompositor(config, SphereTracingKernel(config.bounces), sky_field_from_image(image))


def frame_paths(output: Path, frames: int) -> list[Path]:
    """Output paths for a sequence: the path itself, or name_0000.png, name_0001.png, ..."""
    if frames == 1:
        return [output]
    return [output.with_name(f"{output.stem}_{index:04d}{output.suffix}") for index in range(frames)]


def run_render(args: argparse.Namespace, config: RayTracingConfig) -> list[Path]:
    from wavetrace.preview.export import save_frame_png

    if args.frames < 1 or args.fps <= 0:
        raise ConfigurationError("--frames must be at least 1 and --fps positive")

    init_taichi(args.arch)
    frame = ti.Vector.field(4, dtype=ti.f32, shape=(args.width, args.height))
    written = []
    with _build_compositor(args, config) as compositor:
        for index, path in enumerate(frame_paths(args.output, args.frames)):
            stats = compositor.render_frame(frame, time=args.time + index / args.fps)
            written.append(
                save_frame_png(frame, path, tone_map=args.tone_map, exposure=args.exposure)
            )
            logger.info(
                "Frame %d (t=%.3f, %d spheres) -> %s",
                stats.frame_index,
                stats.time,
                stats.sphere_count,
                path,
            )
    return written


def run_preview(args: argparse.Namespace, config: RayTracingConfig) -> None:
    from wavetrace.preview.display import show_preview
    from wavetrace.preview.export import field_to_image
    from wavetrace.preview.interactive import InteractivePreview

    init_taichi(args.arch)
    with _build_compositor(args, config) as compositor:
        if not args.static and InteractivePreview.is_display_available():
            InteractivePreview(
                compositor, args.width, args.height, exposure=args.exposure
            ).run()
            return
        if not args.static:
            logger.warning("No display available for the interactive window, showing one frame")
        frame = ti.Vector.field(4, dtype=ti.f32, shape=(args.width, args.height))
        compositor.render_frame(frame, time=0.0)
        show_preview(field_to_image(frame), tone_map=args.tone_map, exposure=args.exposure)


def run_generate(args: argparse.Namespace, config: RayTracingConfig) -> dict[str, Any]:
    from wavetrace.core.rng import RngSource
    from wavetrace.scene.generator import SceneGenerator
    from wavetrace.scene.model import SceneModel

    spheres = SceneGenerator().generate(
        config.sphere_count, config.radius_range, config.placement_radius, RngSource(config.seed)
    )
    document = {"config": config.to_dict(), "spheres": SceneModel(spheres).to_dicts()}
    text = json.dumps(document, indent=2)
    if args.output:
        args.output.write_text(text, encoding="utf-8")
        logger.info("Wrote %d spheres to %s", len(spheres), args.output)
    else:
        print(text)
    return document


COMMANDS = {
    "render": run_render,
    "preview": run_preview,
    "generate": run_generate,
}


def main(argv: list[str] | None = None) -> int:
    """Entry point of the ``wavetrace`` command.

    Returns:
        Process exit status: 0 on success, 1 on a renderer error.
    """
    args = build_parser().parse_args(argv)
    setup_logging(getattr(logging, args.log_level), args.log_file)

    try:
        config = resolve_config(args)
        COMMANDS[args.command](args, config)
    except WavetraceError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
