"""
Command-line interface for the visualizer.

Usage:
    prokon gui [photo.jpg] [--config visualizer.yaml] [--editor NAME] [--scanner NAME]
    prokon plugins
    prokon validate visualizer.yaml
    prokon replay gestures.yaml photo.jpg [--output mask.png] [--config visualizer.yaml]
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import VisualizerConfig, load_visualizer_config
from .core.imaging import ImageLoadError, encode_png
from .plugins import PluginNotFoundError, discover_editors, discover_scanners, select_editor, select_scanner
from .replay import load_gesture_script, replay
from .session import VisualizerSession
from .settings import default_config_path, output_root

Logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(message)s")


def add_config_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML visualizer configuration (defaults to PROKON_CONFIG or built-in defaults).",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prokon",
        description="Mask-painting room visualizer.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # gui command
    gui_parser = subparsers.add_parser("gui", help="Launch the desktop visualizer.")
    gui_parser.add_argument("image", type=Path, nargs="?", help="Optional photo to open on startup.")
    gui_parser.add_argument(
        "--editor",
        default=None,
        help="Editing service to use (an entry point in prokon.editors; defaults to the only one installed).",
    )
    gui_parser.add_argument(
        "--scanner",
        default=None,
        help="Material scanner to use (an entry point in prokon.scanners; defaults to the only one installed).",
    )
    add_config_option(gui_parser)

    # plugins command
    subparsers.add_parser("plugins", help="List installed editing and scanning services.")

    # validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a visualizer configuration file.")
    validate_parser.add_argument("config", type=Path, help="Path to the YAML configuration file.")

    # replay command
    replay_parser = subparsers.add_parser(
        "replay",
        help="Replay a YAML gesture script over a photo and export the painted mask.",
    )
    replay_parser.add_argument("script", type=Path, help="Path to the gesture script.")
    replay_parser.add_argument("image", type=Path, help="Photo the script paints on.")
    replay_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Mask PNG path (defaults to <PROKON_OUTPUTS>/<image stem>_mask.png).",
    )
    replay_parser.add_argument(
        "--preview",
        type=Path,
        default=None,
        help="Optional PNG with the mask overlaid on the photo.",
    )
    add_config_option(replay_parser)

    return parser


def _resolve_config(path: Optional[Path]) -> VisualizerConfig:
    return load_visualizer_config(path or default_config_path())


def summarize_configuration(config: VisualizerConfig, config_path: Optional[Path] = None) -> str:
    source = str(config_path) if config_path else "<defaults>"
    lines = [
        f"Configuration: {source}",
        f"  Brush: default {config.brush.default_size}px "
        f"(range {config.brush.min_size}-{config.brush.max_size}) | tool {config.brush.default_tool.value}",
        f"  Viewport: zoom step {config.viewport.zoom_step} | fit retry {config.viewport.fit_retry_ms} ms "
        f"| start mode {config.viewport.default_mode.value}",
        f"  Image: max side {config.image.max_side}px | JPEG quality {config.image.jpeg_quality}",
        f"  Overlay opacity: {config.overlay.opacity:.2f}",
    ]
    return "\n".join(lines)


def validate_command(args: argparse.Namespace) -> int:
    config_path: Path = args.config
    if not config_path.exists():
        Logger.error("Configuration file not found: %s", config_path)
        return 2

    try:
        config = load_visualizer_config(config_path)
    except Exception as exc:  # pylint: disable=broad-except
        Logger.error("Validation failed: %s", exc)
        if Logger.isEnabledFor(logging.DEBUG):
            Logger.exception("Stack trace")
        return 1

    print(summarize_configuration(config, config_path))
    Logger.info("Validation succeeded.")
    return 0


def replay_command(args: argparse.Namespace) -> int:
    for label, path in (("Gesture script", args.script), ("Image", args.image)):
        if not path.exists():
            Logger.error("%s not found: %s", label, path)
            return 2

    try:
        config = _resolve_config(args.config)
        script = load_gesture_script(args.script)
        session = VisualizerSession(config)
        session.load_image_file(args.image)
        replay(session, script)
        mask_png = session.painter.export_png()
        if mask_png is None:
            raise RuntimeError("Mask surface was not allocated")

        output = args.output or (output_root() / f"{args.image.stem}_mask.png")
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(mask_png)
        Logger.info(
            "Mask written to %s (painted=%s, zoom=%d%%)",
            output,
            session.painter.has_paint,
            session.viewport.zoom_percent,
        )

        if args.preview:
            args.preview.parent.mkdir(parents=True, exist_ok=True)
            args.preview.write_bytes(encode_png(session.display_image()))
            Logger.info("Preview written to %s", args.preview)
    except ImageLoadError as exc:
        Logger.error("Could not load image: %s", exc)
        return 1
    except Exception as exc:  # pylint: disable=broad-except
        Logger.error("Replay failed: %s", exc)
        if Logger.isEnabledFor(logging.DEBUG):
            Logger.exception("Stack trace")
        return 1
    return 0


def run_gui_with_args(args: argparse.Namespace) -> int:
    image_path = None
    if args.image:
        image_path = Path(args.image)
        if not image_path.exists():
            Logger.error("Image file not found: %s", image_path)
            return 2
    try:
        config = _resolve_config(args.config)
    except Exception as exc:  # pylint: disable=broad-except
        Logger.error("Invalid configuration: %s", exc)
        return 1

    try:
        editor = select_editor(args.editor)
        scanner = select_scanner(args.scanner)
    except PluginNotFoundError as exc:
        Logger.error("%s", exc)
        return 2
    if editor is None:
        Logger.info("No editing service selected; Generate stays disabled.")

    from .gui import run as run_gui  # Local import to avoid Qt initialization unless needed

    return run_gui(image_path, config, editor=editor, scanner=scanner)


def plugins_command(args: argparse.Namespace) -> int:
    for label, services in (("Editors", discover_editors()), ("Scanners", discover_scanners())):
        names = ", ".join(sorted(services)) or "<none>"
        print(f"{label}: {names}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "gui":
        return run_gui_with_args(args)
    if args.command == "validate":
        return validate_command(args)
    if args.command == "replay":
        return replay_command(args)
    if args.command == "plugins":
        return plugins_command(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
