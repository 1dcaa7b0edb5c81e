"""
Command Line Interface
======================

``marky`` entry point. Modes:

- batch: render once to a file (or stdout)
- watch (``--watch``): re-render to the output file on every save
- live (``--live``): serve a browser preview that updates on every save

Informational flags ``--themes`` and ``--where-config`` print and exit.
"""

import argparse
import asyncio
import sys
import time
import webbrowser
from pathlib import Path
from typing import List, Optional, Tuple

from marky import __version__
from marky.api.server import serve_live
from marky.config.logging import get_logger
from marky.config.settings import Settings, get_settings
from marky.core.errors import ConfigError, MarkyError, ResourceIOError
from marky.core.live.sinks import FileSink, write_atomic
from marky.core.live.watcher import FileWatcher
from marky.core.rendering.markdown_renderer import decode_source
from marky.core.rendering.pipeline import RenderPipeline
from marky.core.themes import available_themes, default_theme, find_theme
from marky.models.schemas import Document, ImageInclusion, OutputFormat, RenderOptions, Theme

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="marky",
        description="Render Markdown to HTML or PDF, with optional live preview.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("path", nargs="?", type=Path, help="Read input from file")
    parser.add_argument("--string", help="Read input from string")
    parser.add_argument("-t", "--theme", help="Theme to use")

    info = parser.add_argument_group("information")
    info.add_argument("--themes", action="store_true", help="List available themes")
    info.add_argument("--where-config", action="store_true", help="Print config path")

    output = parser.add_argument_group("output")
    output.add_argument("-o", "--out", type=Path, help="Output file")
    output.add_argument("--stdout", action="store_true", help="Output to stdout")
    output.add_argument("-p", "--pdf", action="store_true", help="Save document as PDF")
    output.add_argument(
        "-O", "--open", action="store_true", help="Open output file in the default app"
    )

    features = parser.add_argument_group("renderers")
    features.add_argument(
        "-H",
        "--highlight",
        action="store_true",
        help="Enable syntax highlighting with highlight.js",
    )
    features.add_argument(
        "-M", "--math", action="store_true", help="Enable math rendering with KaTeX"
    )
    features.add_argument(
        "-D", "--diagrams", action="store_true", help="Enable diagram rendering with Mermaid"
    )
    features.add_argument("-A", "--all", action="store_true", help="Enable all extra renderers")

    images = parser.add_argument_group("images")
    images.add_argument(
        "-i",
        "--include-images",
        choices=[policy.value for policy in ImageInclusion],
        help="Embed images as data URIs",
    )
    images.add_argument(
        "--optimize-images", action="store_true", help="Recompress embedded images losslessly"
    )

    modes = parser.add_mutually_exclusive_group()
    modes.add_argument("-w", "--watch", action="store_true", help="Recompile file on save")
    modes.add_argument("-l", "--live", action="store_true", help="Live preview in the browser")
    parser.add_argument("--port", type=int, help="Port of the live server")

    return parser


def validate_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    """Reject flag combinations argparse cannot express on its own."""
    informational = args.themes or args.where_config
    if args.themes and args.where_config:
        parser.error("--themes and --where-config are mutually exclusive")
    if informational and (args.path or args.string is not None or args.watch or args.live):
        parser.error("informational flags cannot be combined with input or watch flags")
    if args.path is not None and args.string is not None:
        parser.error("give either a path or --string, not both")
    if args.out is not None and args.stdout:
        parser.error("--out and --stdout are mutually exclusive")
    if (args.watch or args.live) and args.path is None:
        parser.error("watching needs a file to watch")
    if args.live and args.pdf:
        parser.error("--pdf cannot be used with --live")
    if args.optimize_images and not args.include_images:
        parser.error("--optimize-images requires --include-images")


def select_theme(name: Optional[str], settings: Settings) -> Theme:
    """Named theme from the catalog, or the default theme."""
    if name is None:
        return default_theme()
    return find_theme(name, settings)


def build_options(args: argparse.Namespace, theme: Theme, live: bool = False) -> RenderOptions:
    return RenderOptions(
        theme=theme,
        highlight=args.all or args.highlight,
        math=args.all or args.math,
        diagrams=args.all or args.diagrams,
        live=live,
        image_inclusion=ImageInclusion(args.include_images) if args.include_images else None,
        optimize_images=args.optimize_images,
    )


def output_path(args: argparse.Namespace, output_format: OutputFormat) -> Path:
    """``--out``, else the input path with a new extension, else ``out.<ext>``."""
    if args.out is not None:
        return args.out
    if args.path is not None:
        return args.path.with_suffix(f".{output_format.extension}")
    return Path(f"out.{output_format.extension}")


def read_input(args: argparse.Namespace) -> Tuple[str, Optional[Path]]:
    """
    Read Markdown from the path, ``--string`` or standard input.

    Returns:
        Source text and the directory relative references resolve against

    Raises:
        ResourceIOError: If the file cannot be read
        EncodingError: If the input is not UTF-8
        ConfigError: If no input is given
    """
    if args.path is not None:
        try:
            raw = args.path.read_bytes()
        except OSError as e:
            raise ResourceIOError(f"Cannot read {args.path}: {e}") from e
        return decode_source(raw), args.path.resolve().parent

    if args.string is not None:
        return args.string, None

    if not sys.stdin.isatty():
        return decode_source(sys.stdin.buffer.read()), None

    raise ConfigError("No input is given, see --help")


def list_themes(settings: Settings) -> int:
    for theme in available_themes(settings):
        print(theme.name)
    return 0


def log_options(options: RenderOptions) -> None:
    logger.info(
        "Render options",
        theme=options.theme.name,
        highlight=options.highlight,
        math=options.math,
        diagrams=options.diagrams,
        images=options.image_inclusion.value if options.image_inclusion else None,
    )


def open_output(path: Path) -> None:
    """Open a written file in the default application; failure only warns."""
    try:
        if not webbrowser.open(path.resolve().as_uri()):
            logger.warning("No application available to open output", path=str(path))
    except webbrowser.Error as e:
        logger.warning("Could not open output", path=str(path), error=str(e))


def run_batch(args: argparse.Namespace, settings: Settings, options: RenderOptions) -> int:
    output_format = OutputFormat.PDF if args.pdf else OutputFormat.HTML
    started = time.perf_counter()

    text, base_dir = read_input(args)
    document = Document(text=text, options=options, base_dir=base_dir)
    data = asyncio.run(RenderPipeline(settings).render_document(document, output_format))
    elapsed_ms = round((time.perf_counter() - started) * 1000)

    if args.stdout:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        logger.info("Rendered to stdout", size=len(data), took_ms=elapsed_ms)
        return 0

    out = output_path(args, output_format)
    write_atomic(out, data)
    logger.info("Output written", path=str(out), size=len(data), took_ms=elapsed_ms)

    if args.open:
        open_output(out)
    return 0


def run_watch(args: argparse.Namespace, settings: Settings, options: RenderOptions) -> int:
    output_format = OutputFormat.PDF if args.pdf else OutputFormat.HTML
    out = output_path(args, output_format)
    sink = FileSink(out, RenderPipeline(settings), output_format)
    watcher = FileWatcher(args.path, options, sink)

    logger.info("Watching", source=str(args.path), output=str(out))
    try:
        watcher.run()
    except KeyboardInterrupt:
        watcher.stop()
    return 0


def run_live(args: argparse.Namespace, settings: Settings, options: RenderOptions) -> int:
    if args.port is not None:
        settings = settings.model_copy(update={"port": args.port})

    if not args.path.is_file():
        raise ResourceIOError(f"Cannot watch {args.path}: not a file")

    try:
        serve_live(args.path, options, settings)
    except KeyboardInterrupt:
        pass
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the command line interface.

    Returns:
        Process exit code: 0 on success, 1 on any failure
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    validate_args(parser, args)
    settings = get_settings()

    if args.where_config:
        print(settings.config_dir)
        return 0

    try:
        if args.themes:
            return list_themes(settings)

        theme = select_theme(args.theme, settings)
        options = build_options(args, theme, live=args.live)
        log_options(options)

        if args.live:
            return run_live(args, settings, options)
        if args.watch:
            return run_watch(args, settings, options)
        return run_batch(args, settings, options)

    except ConfigError as e:
        logger.error(e.message, kind=e.kind.value)
        if e.suggestion:
            logger.info(f"Theme '{e.suggestion}' exists")
        return 1
    except MarkyError as e:
        logger.error(e.message, kind=e.kind.value)
        return 1


if __name__ == "__main__":
    sys.exit(main())
