"""Command-line interface for canvasgraph check/render/scene workflows."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import traceback
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .model import CanvasGraphError, ParseFailure, parse_canvas, serialize_canvas
from .page import PageDocument, init_canvas_graph
from .renderer import CANVAS_CONTAINER_ID, escape_html, render_canvas_html
from .resources import load_stylesheet
from .svg import to_svg_text
from .text import TextMeasurer
from .transformer import BuildContext, CanvasTransformer

COMMANDS = "check, render, scene, stylesheet"


@dataclass
class CliError(Exception):
    code: str
    message: str
    hint: Optional[str] = None
    exit_code: int = 1
    file: Optional[str] = None
    retryable: bool = True


class UsageError(Exception):
    pass


class FriendlyArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # pragma: no cover - argparse callback
        raise UsageError(message)


def _build_parser() -> argparse.ArgumentParser:
    parser = FriendlyArgumentParser(
        prog="canvasgraph",
        description="Validate canvas files and render them to HTML or interactive SVG.",
    )
    parser.add_argument("--error-format", choices=["text", "json"], default="text")
    parser.add_argument("--debug", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug messages")

    subparsers = parser.add_subparsers(dest="command")

    check_parser = subparsers.add_parser("check", help="Validate a canvas file")
    check_parser.add_argument("input", nargs="?", help="Input .canvas file")
    check_parser.add_argument("--text", help="Raw canvas JSON")
    check_parser.add_argument("--json", action="store_true", help="Print the canonical serialization")

    render_parser = subparsers.add_parser("render", help="Render canvas files to static HTML")
    render_parser.add_argument("inputs", nargs="*", help="Input .canvas files")
    render_parser.add_argument("--text", help="Raw canvas JSON")
    render_parser.add_argument("--stdout", action="store_true", help="Write HTML to stdout")
    render_parser.add_argument("-o", "--output", help="Output .html path (single input only)")
    render_parser.add_argument("--page", action="store_true", help="Wrap the fragment in a standalone page")
    render_parser.add_argument("--base-url", default=None, help="Site base URL for file nodes")
    render_parser.add_argument("--jobs", type=int, default=4, help="Files rendered concurrently")

    scene_parser = subparsers.add_parser("scene", help="Render a canvas to interactive SVG")
    scene_parser.add_argument("input", nargs="?", help="Input .canvas file")
    scene_parser.add_argument("--text", help="Raw canvas JSON")
    scene_parser.add_argument("--stdout", action="store_true", help="Write SVG to stdout")
    scene_parser.add_argument("-o", "--output", help="Output .svg path")
    scene_parser.add_argument("--base-url", default=None, help="Site base URL for file nodes")
    scene_parser.add_argument("--font", help="TrueType font used to measure labels")
    scene_parser.add_argument("--font-family", default=None, help="Font family used to measure labels")

    subparsers.add_parser("stylesheet", help="Print the canvas stylesheet")

    return parser


def _base_url(value: Optional[str]) -> str:
    if value is not None:
        return value
    return os.getenv("CANVASGRAPH_BASE_URL", "")


def _read_input(path: Optional[str], text: Optional[str]) -> Tuple[str, str, Optional[Path]]:
    if path and text is not None:
        raise CliError(
            "E_ARGS",
            "--text cannot be combined with file input",
            hint="Use either FILE or --text.",
            exit_code=2,
        )

    if text is not None:
        return text, "<text>", None

    if path:
        input_path = Path(path)
        if not input_path.exists():
            raise CliError(
                "E_IO_READ",
                f"input file not found: {input_path}",
                exit_code=2,
                file=str(input_path),
            )
        try:
            return input_path.read_text(encoding="utf-8"), str(input_path), input_path
        except (OSError, UnicodeDecodeError) as exc:
            raise CliError(
                "E_IO_READ",
                f"failed to read input file: {input_path}",
                hint=str(exc),
                exit_code=2,
                file=str(input_path),
            )

    if sys.stdin.isatty():
        raise CliError(
            "E_ARGS",
            "no input provided",
            hint="Use a subcommand with FILE, --text, or pipe stdin.",
            exit_code=2,
        )

    data = sys.stdin.read()
    if not data.strip():
        raise CliError(
            "E_ARGS",
            "stdin was empty",
            hint="Pipe canvas JSON into stdin.",
            exit_code=2,
        )
    return data, "<stdin>", None


def _write_text(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise CliError(
            "E_IO_WRITE",
            f"failed to write output file: {path}",
            hint=str(exc),
            exit_code=4,
            file=str(path),
        )


def _parse_error(failure: ParseFailure, source_name: str) -> CliError:
    if failure.kind == "syntax":
        return CliError(
            "E_PARSE_JSON",
            failure.error,
            hint="Ensure the canvas file is valid JSON.",
            exit_code=2,
            file=source_name,
        )
    return CliError(
        "E_CANVAS_SCHEMA",
        failure.error,
        hint="Every node needs id, type, x, y, width, height; every edge needs id, fromNode, toNode.",
        exit_code=3,
        file=source_name,
    )


def _error_from_exception(exc: Exception) -> CliError:
    if isinstance(exc, CliError):
        return exc
    if isinstance(exc, CanvasGraphError):
        return CliError(exc.code, exc.message, exit_code=3)
    return CliError(
        "E_INTERNAL",
        str(exc) or exc.__class__.__name__,
        hint="Re-run with --debug to see traceback.",
        exit_code=1,
        retryable=False,
    )


def _emit_error(err: CliError, *, error_format: str) -> None:
    if error_format == "json":
        payload = {
            "ok": False,
            "code": err.code,
            "message": err.message,
            "file": err.file,
            "hint": err.hint,
            "retryable": err.retryable,
        }
        sys.stderr.write(json.dumps(payload) + "\n")
        return

    location = f"{err.file}: " if err.file else ""
    sys.stderr.write(f"error[{err.code}]: {location}{err.message}\n")
    if err.hint:
        sys.stderr.write(f"hint: {err.hint}\n")


def _wrap_page(fragment: str, *, title: str, base_url: str) -> str:
    scripts = "\n".join(
        f'<script src="{escape_html(resource.src)}" defer></script>'
        for resource in CanvasTransformer().external_resources()["js"]
    )
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n<head>\n'
        '<meta charset="UTF-8">\n'
        f'<meta name="base-url" content="{escape_html(base_url)}">\n'
        f"<title>{escape_html(title)}</title>\n"
        f"<style>\n{load_stylesheet()}</style>\n"
        f"{scripts}\n"
        "</head>\n<body>\n"
        f"{fragment}\n"
        "</body>\n</html>\n"
    )


def _handle_check(args: argparse.Namespace) -> int:
    source, source_name, _source_path = _read_input(args.input, args.text)
    result = parse_canvas(source)
    if not result.ok:
        raise _parse_error(result, source_name)

    if args.json:
        sys.stdout.write(serialize_canvas(result.document) + "\n")
    else:
        document = result.document
        print(f"ok: {len(document.nodes)} nodes, {len(document.edges)} edges")
    for warning in result.warnings:
        sys.stderr.write(f"warning: {warning.message}\n")
    return 0


def _render_one(source: str, source_name: str, base_url: str, page: bool) -> Tuple[str, Optional[ParseFailure]]:
    transformer = CanvasTransformer()
    html, result = transformer.render_canvas(BuildContext(base_url=base_url, slug=source_name), source)
    if page:
        html = _wrap_page(html, title=Path(source_name).stem or "canvas", base_url=base_url)
    elif not html.endswith("\n"):
        html += "\n"
    return html, None if result.ok else result


def _handle_render(args: argparse.Namespace) -> int:
    if args.stdout and args.output:
        raise CliError(
            "E_ARGS",
            "--stdout and --output are mutually exclusive",
            hint="Choose either --stdout or --output.",
            exit_code=2,
        )
    if args.output and len(args.inputs) > 1:
        raise CliError(
            "E_ARGS",
            "--output needs exactly one input file",
            hint="Drop --output to write NAME.html beside each input.",
            exit_code=2,
        )
    if args.jobs < 1:
        raise CliError("E_ARGS", "--jobs must be >= 1", exit_code=2)

    base_url = _base_url(args.base_url)
    if len(args.inputs) <= 1:
        source, source_name, source_path = _read_input(args.inputs[0] if args.inputs else None, args.text)
        sources: List[Tuple[str, str, Optional[Path]]] = [(source, source_name, source_path)]
    else:
        if args.text is not None:
            raise CliError("E_ARGS", "--text cannot be combined with file input", exit_code=2)
        sources = [_read_input(path, None) for path in args.inputs]

    with ThreadPoolExecutor(max_workers=args.jobs) as pool:
        rendered = list(
            pool.map(lambda item: _render_one(item[0], item[1], base_url, args.page), sources)
        )

    exit_code = 0
    for (_source, source_name, source_path), (html, failure) in zip(sources, rendered):
        if args.stdout or source_path is None:
            sys.stdout.write(html)
        else:
            output_path = Path(args.output) if args.output else source_path.with_suffix(".html")
            _write_text(output_path, html)
            print(f"Wrote {output_path}")
        if failure is not None:
            err = _parse_error(failure, source_name)
            _emit_error(err, error_format=args.error_format)
            exit_code = max(exit_code, err.exit_code)
    return exit_code


def _handle_scene(args: argparse.Namespace) -> int:
    if args.stdout and args.output:
        raise CliError(
            "E_ARGS",
            "--stdout and --output are mutually exclusive",
            hint="Choose either --stdout or --output.",
            exit_code=2,
        )

    source, source_name, source_path = _read_input(args.input, args.text)
    result = parse_canvas(source)
    if not result.ok:
        raise _parse_error(result, source_name)

    base_url = _base_url(args.base_url)
    page = PageDocument.from_html(render_canvas_html(result.document, base_url))
    measurer = TextMeasurer(family=args.font_family, font_path=args.font)
    init_canvas_graph(page, default_base_url=base_url, measurer=measurer)
    container = page.get_element_by_id(CANVAS_CONTAINER_ID)
    svg_root = container.find("svg") if container is not None else None
    if svg_root is None:
        raise CliError(
            "E_CANVAS_SCHEMA",
            "canvas could not be laid out: node extents exceed the numeric range",
            hint="Move nodes closer to the origin.",
            exit_code=3,
            file=source_name,
            retryable=False,
        )
    svg_text = to_svg_text(svg_root)

    if args.stdout or source_path is None:
        sys.stdout.write(svg_text + "\n")
        return 0

    output_path = Path(args.output) if args.output else source_path.with_suffix(".svg")
    _write_text(output_path, svg_text + "\n")
    print(f"Wrote {output_path}")
    return 0


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def main(argv: Optional[Iterable[str]] = None) -> int:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    parser = _build_parser()

    if not raw_argv:
        err = CliError(
            "E_ARGS",
            "missing subcommand",
            hint=f"Use one of: {COMMANDS}.",
            exit_code=2,
        )
        _emit_error(err, error_format="text")
        return err.exit_code

    debug_enabled = "--debug" in raw_argv or os.getenv("CANVASGRAPH_DEBUG") == "1"
    error_format = "text"
    if "--error-format" in raw_argv:
        idx = raw_argv.index("--error-format")
        if idx + 1 < len(raw_argv):
            error_format = raw_argv[idx + 1]

    try:
        args = parser.parse_args(raw_argv)
        error_format = args.error_format
        _configure_logging(args.verbose or debug_enabled)

        if args.command == "check":
            return _handle_check(args)
        if args.command == "render":
            return _handle_render(args)
        if args.command == "scene":
            return _handle_scene(args)
        if args.command == "stylesheet":
            sys.stdout.write(load_stylesheet())
            return 0

        raise CliError(
            "E_ARGS",
            "missing subcommand",
            hint=f"Use one of: {COMMANDS}.",
            exit_code=2,
        )
    except UsageError as exc:
        err = CliError(
            "E_ARGS",
            str(exc),
            hint=f"Use subcommands: {COMMANDS}.",
            exit_code=2,
        )
        _emit_error(err, error_format=error_format)
        return err.exit_code
    except Exception as exc:  # pragma: no cover - exercised in integration tests
        err = _error_from_exception(exc)
        _emit_error(err, error_format=error_format)
        if debug_enabled:
            traceback.print_exc(file=sys.stderr)
        return err.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
