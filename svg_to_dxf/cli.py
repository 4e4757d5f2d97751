"""Command-line interface for SVG → DXF conversion.

WHY: Users need a quick way to convert drawings from the terminal or a
shell pipeline without writing Python. The CLI wires argument parsing,
option building, the async converter, and file saving behind a single
command.

HOW: Uses argparse for input paths and conversion flags. Runs the async
pipeline via asyncio.run(). Several input files are converted
concurrently with asyncio.gather. Status messages go to stderr; DXF
files are saved next to the source (or to --output-dir), or written to
stdout when reading from stdin.

RULES:
- Positional arguments: one or more SVG paths, or "-" alone for stdin
- --units implies unit_from_document = False
- Output naming: {stem}.dxf, numeric suffix on conflict ({stem}-2.dxf)
- --output only with a single input; "-" means stdout
- Status output goes to stderr (stdout may carry DXF data)
- Exit code 0 on success, 1 if any conversion failed, 130 on Ctrl-C
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from svg_to_dxf import config
from svg_to_dxf.converter import SvgToDxfConverter
from svg_to_dxf.errors import ConversionError, SvgToDxfError
from svg_to_dxf.options import ConversionOptions, Unit

STDIN_MARKER = "-"


def _status(msg: str) -> None:
    """Print a status message to stderr.

    WHY: Status output must not pollute stdout so the CLI can be piped.
    """
    print(msg, file=sys.stderr, flush=True)


def _report_error(source: str, exc: BaseException) -> None:
    """Print a failure for one input, including tool diagnostics."""
    _status("Error: {}: {}".format(source, exc))
    if isinstance(exc, ConversionError) and exc.stderr:
        for line in exc.stderr.splitlines():
            _status("  {}".format(line))


def _build_options(args: argparse.Namespace) -> ConversionOptions:
    """Translate parsed CLI flags into ConversionOptions.

    RULES:
    - An explicit --units switches off unit_from_document
    - Without --units, units come from the SVG document
    """
    if args.units:
        return ConversionOptions(
            use_polyline=args.poly,
            flatten_beziers=args.flatten_beziers,
            robo_master=args.robo,
            units=args.units,
            unit_from_document=False,
            encoding=args.encoding,
        )
    return ConversionOptions(
        use_polyline=args.poly,
        flatten_beziers=args.flatten_beziers,
        robo_master=args.robo,
        encoding=args.encoding,
    )


def _resolve_output_path(stem: str, output_dir: Path, suffix: str = ".dxf") -> Path:
    """Resolve a free output path, adding a numeric suffix on conflict.

    WHY: Re-running the converter on the same drawing should not
    silently overwrite an earlier (possibly hand-edited) DXF.

    RULES:
    - First attempt: {stem}.dxf
    - Conflict: {stem}-2.dxf, {stem}-3.dxf, ...
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    counter = 2
    while True:
        candidate = output_dir / "{}-{}{}".format(stem, counter, suffix)
        if not candidate.exists():
            return candidate
        counter += 1


async def _convert_stdin(
    converter: SvgToDxfConverter,
    options: ConversionOptions,
    output: Optional[str],
) -> int:
    svg_bytes = sys.stdin.buffer.read()
    try:
        dxf_bytes = await converter.convert(svg_bytes, options)
    except (SvgToDxfError, OSError) as exc:
        _report_error("<stdin>", exc)
        return 1

    if output and output != STDIN_MARKER:
        try:
            Path(output).write_bytes(dxf_bytes)
        except OSError as exc:
            _report_error(output, exc)
            return 1
        _status("Saved: {}".format(output))
    else:
        sys.stdout.buffer.write(dxf_bytes)
        sys.stdout.buffer.flush()
    return 0


async def _run_pipeline(args: argparse.Namespace) -> int:
    """Execute the conversion for every input and return the exit code.

    HOW: Validates paths and options up front, builds one converter,
    converts all files concurrently, then saves each result.

    RULES:
    - Validation errors exit before the executable is touched
    - One failed input does not stop the others
    """
    inputs: List[str] = args.inputs

    if STDIN_MARKER in inputs and len(inputs) > 1:
        _status("Error: '-' (stdin) cannot be combined with other inputs")
        return 1
    if args.output and len(inputs) > 1:
        _status("Error: --output can only be used with a single input")
        return 1

    output_dir: Optional[Path] = None
    if args.output_dir:
        output_dir = Path(args.output_dir).resolve()
        if not output_dir.is_dir():
            _status("Error: Output directory does not exist: {}".format(output_dir))
            return 1

    paths: List[Path] = []
    if inputs != [STDIN_MARKER]:
        for raw in inputs:
            path = Path(raw).resolve()
            if not path.is_file():
                _status("Error: File not found: {}".format(path))
                return 1
            paths.append(path)

    try:
        options = _build_options(args)
        converter = SvgToDxfConverter(
            executable_path=args.executable,
            timeout_s=args.timeout,
        )
    except SvgToDxfError as exc:
        _status("Error: {}".format(exc))
        return 1

    if not paths:
        return await _convert_stdin(converter, options, args.output)

    _status("Converting {} file(s) with {}...".format(len(paths), converter.executable_path.name))
    results = await asyncio.gather(
        *(converter.convert_file(path, options) for path in paths),
        return_exceptions=True,
    )

    failures = 0
    for path, result in zip(paths, results):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            if not isinstance(result, (SvgToDxfError, OSError)):
                raise result
            _report_error(path.name, result)
            failures += 1
            continue

        if args.output:
            target = Path(args.output)
        else:
            target = _resolve_output_path(path.stem, output_dir or path.parent)
        try:
            target.write_bytes(result)
        except OSError as exc:
            _report_error(str(target), exc)
            failures += 1
            continue
        _status("  Saved: {} ({} bytes)".format(target, len(result)))

    if failures:
        _status("{} of {} conversion(s) failed.".format(failures, len(paths)))
        return 1

    _status("Done!")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    WHY: Separating parser construction from main() makes the CLI
    testable: tests can inspect the parser without running anything.
    """
    parser = argparse.ArgumentParser(
        prog="svg_to_dxf",
        description="Convert SVG drawings to DXF using the bundled dxf_outlines tool.",
    )

    parser.add_argument(
        "inputs",
        nargs="+",
        metavar="INPUT",
        help="SVG file(s) to convert, or '-' to read one document from stdin.",
    )

    parser.add_argument(
        "-o", "--output",
        default=None,
        help="Output path (single input only). With stdin input, '-' or "
             "omitting it writes DXF to stdout.",
    )

    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save DXF files (default: next to each input).",
    )

    parser.add_argument(
        "--poly",
        action="store_true",
        help="Emit LWPOLYLINE entities instead of LINE segments.",
    )

    parser.add_argument(
        "--flatten-beziers",
        action="store_true",
        help="Flatten Bezier curves to line segments.",
    )

    parser.add_argument(
        "--robo",
        action="store_true",
        help="ROBO-Master compatible spline output.",
    )

    parser.add_argument(
        "--units",
        choices=[u.value for u in Unit],
        default=None,
        help="Output units. Overrides the units declared in the SVG document.",
    )

    parser.add_argument(
        "--encoding",
        default=config.DEFAULT_ENCODING,
        help="Character encoding of the DXF output (default: %(default)s).",
    )

    parser.add_argument(
        "--executable",
        default=None,
        help="Path to a dxf_outlines executable (default: bundled binary for this platform).",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Kill a conversion that runs longer than this many seconds.",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    - Always exits via sys.exit with the pipeline's code
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    config.configure_logging("DEBUG" if args.verbose else None)

    try:
        code = asyncio.run(_run_pipeline(args))
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        sys.exit(130)
    sys.exit(code)


if __name__ == "__main__":
    main()
