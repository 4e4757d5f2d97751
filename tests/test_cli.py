"""Tests for the svg_to_dxf command-line interface.

WHY: The CLI is the quickest way to convert drawings by hand, and it is
also used in shell pipelines. Output naming, stdin/stdout handling, and
exit codes are its contract with scripts.

HOW: main() is called with an explicit argv and a fake tool passed via
--executable. The converter's default warmup coordinator is swapped for
the isolated per-test coordinator so no shared lock file is touched.

RULES:
- Status output goes to stderr, DXF data only to stdout or files
- main() always exits via SystemExit with the pipeline's code
"""

from __future__ import annotations

import io
from types import SimpleNamespace

import pytest

from conftest import CIRCLE_SVG, FAILING_SVG, RECT_SVG
from svg_to_dxf import cli, converter as converter_module
from svg_to_dxf.cli import _resolve_output_path, build_parser, main


@pytest.fixture(autouse=True)
def isolated_warmup(coordinator, monkeypatch):
    monkeypatch.setattr(converter_module, "default_coordinator", lambda: coordinator)
    return coordinator


def _run_main(argv) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


class TestParser:
    """build_parser() exposes every conversion option."""

    def test_defaults(self):
        args = build_parser().parse_args(["drawing.svg"])
        assert args.inputs == ["drawing.svg"]
        assert args.poly is False
        assert args.flatten_beziers is False
        assert args.robo is False
        assert args.units is None
        assert args.encoding == "latin_1"
        assert args.output is None
        assert args.timeout is None

    def test_all_flags(self):
        args = build_parser().parse_args([
            "a.svg", "--poly", "--flatten-beziers", "--robo",
            "--units", "mm", "--encoding", "utf-8", "--timeout", "30",
        ])
        assert args.poly and args.flatten_beziers and args.robo
        assert args.units == "mm"
        assert args.encoding == "utf-8"
        assert args.timeout == 30.0

    def test_rejects_unknown_units(self, capsys):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["a.svg", "--units", "km"])

    def test_requires_input(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestBuildOptions:
    """--units switches off unit_from_document."""

    def test_without_units(self):
        args = build_parser().parse_args(["a.svg", "--poly"])
        options = cli._build_options(args)
        assert options.use_polyline is True
        assert options.unit_from_document is True

    def test_with_units(self):
        args = build_parser().parse_args(["a.svg", "--units", "cm"])
        options = cli._build_options(args)
        assert options.units.value == "cm"
        assert options.unit_from_document is False


# ---------------------------------------------------------------------------
# Output naming
# ---------------------------------------------------------------------------


class TestResolveOutputPath:
    """Existing DXF files are never overwritten."""

    def test_free_name(self, tmp_path):
        assert _resolve_output_path("plan", tmp_path) == tmp_path / "plan.dxf"

    def test_conflict_adds_suffix(self, tmp_path):
        (tmp_path / "plan.dxf").write_bytes(b"")
        (tmp_path / "plan-2.dxf").write_bytes(b"")
        assert _resolve_output_path("plan", tmp_path) == tmp_path / "plan-3.dxf"


# ---------------------------------------------------------------------------
# File conversion
# ---------------------------------------------------------------------------


class TestConvertFiles:
    """Converting files on disk."""

    def test_saves_next_to_input(self, tmp_path, fake_tool, capsys):
        svg = tmp_path / "rect.svg"
        svg.write_bytes(RECT_SVG)
        code = _run_main([str(svg), "--executable", str(fake_tool.path)])
        assert code == 0
        dxf = (tmp_path / "rect.dxf").read_bytes()
        assert b"ENTITIES" in dxf
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Saved" in captured.err

    def test_passes_options(self, tmp_path, fake_tool):
        svg = tmp_path / "circle.svg"
        svg.write_bytes(CIRCLE_SVG)
        code = _run_main([
            str(svg), "--executable", str(fake_tool.path), "--poly", "--units", "mm",
        ])
        assert code == 0
        assert fake_tool.last_args == [
            "--POLY", "true",
            "--FLATTENBEZ", "false",
            "--ROBO", "false",
            "--unit_from_document", "false",
            "--units", "mm",
            "--encoding", "latin_1",
        ]

    def test_multiple_inputs_to_output_dir(self, tmp_path, fake_tool):
        out_dir = tmp_path / "out"
        out_dir.mkdir()
        inputs = []
        for name in ("a", "b", "c"):
            path = tmp_path / "{}.svg".format(name)
            path.write_bytes(RECT_SVG)
            inputs.append(str(path))
        code = _run_main(inputs + ["--output-dir", str(out_dir), "--executable", str(fake_tool.path)])
        assert code == 0
        assert sorted(p.name for p in out_dir.iterdir()) == ["a.dxf", "b.dxf", "c.dxf"]
        assert fake_tool.warmup_count == 1
        assert fake_tool.convert_count == 3

    def test_explicit_output(self, tmp_path, fake_tool):
        svg = tmp_path / "rect.svg"
        svg.write_bytes(RECT_SVG)
        target = tmp_path / "custom.dxf"
        code = _run_main([str(svg), "-o", str(target), "--executable", str(fake_tool.path)])
        assert code == 0
        assert b"EOF" in target.read_bytes()

    def test_does_not_overwrite(self, tmp_path, fake_tool):
        svg = tmp_path / "rect.svg"
        svg.write_bytes(RECT_SVG)
        (tmp_path / "rect.dxf").write_bytes(b"hand edited")
        code = _run_main([str(svg), "--executable", str(fake_tool.path)])
        assert code == 0
        assert (tmp_path / "rect.dxf").read_bytes() == b"hand edited"
        assert (tmp_path / "rect-2.dxf").is_file()

    def test_failure_reports_stderr(self, tmp_path, fake_tool, capsys):
        good = tmp_path / "good.svg"
        good.write_bytes(RECT_SVG)
        bad = tmp_path / "bad.svg"
        bad.write_bytes(FAILING_SVG)
        code = _run_main([str(good), str(bad), "--executable", str(fake_tool.path)])
        assert code == 1
        assert (tmp_path / "good.dxf").is_file()
        assert not (tmp_path / "bad.dxf").exists()
        err = capsys.readouterr().err
        assert "exit code 3" in err
        assert "ValueError: bad svg" in err

    def test_unwritable_output(self, tmp_path, fake_tool, capsys):
        svg = tmp_path / "rect.svg"
        svg.write_bytes(RECT_SVG)
        target = tmp_path / "absent" / "rect.dxf"
        code = _run_main([str(svg), "-o", str(target), "--executable", str(fake_tool.path)])
        assert code == 1
        err = capsys.readouterr().err
        assert "Error: {}".format(target) in err
        assert "1 of 1 conversion(s) failed." in err


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    """Bad invocations exit 1 before the tool runs."""

    def test_missing_input(self, tmp_path, fake_tool, capsys):
        code = _run_main([str(tmp_path / "nope.svg"), "--executable", str(fake_tool.path)])
        assert code == 1
        assert "File not found" in capsys.readouterr().err
        assert fake_tool.warmup_count == 0

    def test_missing_executable(self, tmp_path, capsys):
        svg = tmp_path / "rect.svg"
        svg.write_bytes(RECT_SVG)
        code = _run_main([str(svg), "--executable", str(tmp_path / "no-tool")])
        assert code == 1
        assert "no-tool" in capsys.readouterr().err

    def test_output_with_several_inputs(self, tmp_path, fake_tool, capsys):
        a = tmp_path / "a.svg"
        b = tmp_path / "b.svg"
        a.write_bytes(RECT_SVG)
        b.write_bytes(RECT_SVG)
        code = _run_main([str(a), str(b), "-o", "x.dxf", "--executable", str(fake_tool.path)])
        assert code == 1
        assert "single input" in capsys.readouterr().err

    def test_missing_output_dir(self, tmp_path, fake_tool, capsys):
        svg = tmp_path / "rect.svg"
        svg.write_bytes(RECT_SVG)
        code = _run_main([
            str(svg), "--output-dir", str(tmp_path / "absent"), "--executable", str(fake_tool.path),
        ])
        assert code == 1
        assert "Output directory does not exist" in capsys.readouterr().err

    def test_stdin_mixed_with_files(self, tmp_path, fake_tool, capsys):
        svg = tmp_path / "rect.svg"
        svg.write_bytes(RECT_SVG)
        code = _run_main(["-", str(svg), "--executable", str(fake_tool.path)])
        assert code == 1
        assert "stdin" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# stdin / stdout
# ---------------------------------------------------------------------------


class TestStdio:
    """'-' reads SVG from stdin and writes DXF to stdout."""

    def test_stdin_to_stdout(self, fake_tool, monkeypatch):
        stdout = io.BytesIO()
        monkeypatch.setattr(cli.sys, "stdin", SimpleNamespace(buffer=io.BytesIO(RECT_SVG)))
        monkeypatch.setattr(cli.sys, "stdout", SimpleNamespace(buffer=stdout))
        code = _run_main(["-", "--executable", str(fake_tool.path)])
        assert code == 0
        assert b"ENTITIES" in stdout.getvalue()

    def test_stdin_to_file(self, tmp_path, fake_tool, monkeypatch):
        target = tmp_path / "piped.dxf"
        monkeypatch.setattr(cli.sys, "stdin", SimpleNamespace(buffer=io.BytesIO(RECT_SVG)))
        code = _run_main(["-", "-o", str(target), "--executable", str(fake_tool.path)])
        assert code == 0
        assert b"SECTION" in target.read_bytes()

    def test_stdin_failure(self, fake_tool, monkeypatch, capsys):
        monkeypatch.setattr(cli.sys, "stdin", SimpleNamespace(buffer=io.BytesIO(FAILING_SVG)))
        code = _run_main(["-", "--executable", str(fake_tool.path)])
        assert code == 1
        assert "<stdin>" in capsys.readouterr().err

    def test_stdin_to_unwritable_file(self, tmp_path, fake_tool, monkeypatch, capsys):
        target = tmp_path / "absent" / "piped.dxf"
        monkeypatch.setattr(cli.sys, "stdin", SimpleNamespace(buffer=io.BytesIO(RECT_SVG)))
        code = _run_main(["-", "-o", str(target), "--executable", str(fake_tool.path)])
        assert code == 1
        assert "Error: {}".format(target) in capsys.readouterr().err
