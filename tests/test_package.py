"""
Tests for the artifact builder and the process entry points.
"""

import io
import sys

import pytest

from bird_harness import __main__ as harness_main
from bird_harness.package import (
    PrintF64, PrintI32, PrintStr, _wat_bytes, assemble, build, emit_wat, main,
)


class BrokenStdout(io.StringIO):
    def write(self, s):
        raise BrokenPipeError(32, "Broken pipe")


class TestEmitWat:
    def test_imports_and_exports(self):
        wat = emit_wat([])
        for name in ("print_i32", "print_f64", "print_str"):
            assert f'(import "env" "{name}"' in wat
        assert '(export "main" (func $main))' in wat
        assert '(memory (export "memory") 1)' in wat

    def test_strings_are_nul_terminated(self):
        wat = emit_wat([PrintStr("ok"), PrintStr("hi")])
        assert '(data (i32.const 1024) "ok\\00")' in wat
        assert '(data (i32.const 1027) "hi\\00")' in wat

    def test_call_order_follows_steps(self):
        wat = emit_wat([PrintF64(1.5), PrintI32(2), PrintStr("x")])
        calls = [line.strip() for line in wat.splitlines() if line.strip().startswith("call")]
        assert calls == ["call $print_f64", "call $print_i32", "call $print_str"]

    def test_grows_memory_for_large_data(self):
        wat = emit_wat([PrintStr("a" * 70000)])
        assert '(memory (export "memory") 2)' in wat

    def test_rejects_wide_integers(self):
        with pytest.raises(ValueError):
            emit_wat([PrintI32(2 ** 32)])

    def test_rejects_embedded_nul(self):
        with pytest.raises(ValueError):
            emit_wat([PrintStr("o\x00k")])

    def test_escapes(self):
        assert _wat_bytes(b'a"b\\c\n') == 'a\\22b\\5cc\\0a'


class TestBuild:
    def test_binary_header(self):
        assert build([PrintI32(1)])[:4] == b"\x00asm"

    def test_assemble(self, tmp_path):
        src = tmp_path / "program.wat"
        src.write_text(emit_wat([PrintI32(1)]))
        out = tmp_path / "output.wasm"
        size = assemble(src, out)
        assert out.read_bytes()[:4] == b"\x00asm"
        assert size == out.stat().st_size

    def test_cli(self, tmp_path, capsys):
        src = tmp_path / "program.wat"
        src.write_text(emit_wat([]))
        out = tmp_path / "out.wasm"
        assert main([str(src), "-o", str(out)]) == 0
        assert out.exists()
        assert "Wrote" in capsys.readouterr().out

    def test_cli_bad_source(self, tmp_path, capsys):
        src = tmp_path / "program.wat"
        src.write_text("(module")
        assert main([str(src), "-o", str(tmp_path / "out.wasm")]) == 1
        assert "error:" in capsys.readouterr().err


class TestHarnessEntryPoint:
    def test_success(self, tmp_path, monkeypatch, capsys):
        (tmp_path / "output.wasm").write_bytes(build([PrintI32(42), PrintStr("ok")]))
        monkeypatch.chdir(tmp_path)
        assert harness_main.main() == 0
        assert capsys.readouterr().out == "42\nok\n"
        assert (tmp_path / "output.txt").read_text() == "42\nok\n"

    def test_missing_artifact(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        assert harness_main.main() == 1
        assert capsys.readouterr().err.startswith("ArtifactNotFound:")
        assert (tmp_path / "output.txt").read_text() == ""

    def test_broken_console(self, tmp_path, monkeypatch, capsys):
        (tmp_path / "output.wasm").write_bytes(build([PrintI32(1), PrintI32(2)]))
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(sys, "stdout", BrokenStdout())
        assert harness_main.main() == 1
        assert capsys.readouterr().err.startswith("SinkWriteFailure:")
        assert (tmp_path / "output.txt").read_text() == "1\n"
