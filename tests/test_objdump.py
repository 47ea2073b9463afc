"""
Tests for go6objdump
====================

These tests drive the click command through CliRunner against small
object streams written to a temporary directory.
"""

import json
import math

import pytest
from click.testing import CliRunner

from go6obj.cli.errors import ExitCode
from go6obj.cli.objdump import main
from go6obj.constants import AddrType, DEFAULT_OPCODES

from objstream import MOVQ, encode_operand


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def object_file(tmp_path, stream):
    data = (
        stream.file("main.go").history(1)
        .file("fmt").history(2, offset=-1)
        .name(3, "main.x")
        .instr(MOVQ, 4,
               from_=encode_operand(sym=3, type=AddrType.D_EXTERN),
               to=encode_operand(type=AddrType.D_AX))
        .build()
    )
    path = tmp_path / "main.6"
    path.write_bytes(data)
    return path


class TestObjdump:
    """Tests for the go6objdump command."""

    def test_lists_instructions(self, runner, object_file):
        result = runner.invoke(main, [str(object_file)])
        assert result.exit_code == 0
        assert "(main.go:3)" in result.output
        assert "main.x(SB),AX" in result.output
        assert "NAME" not in result.output

    def test_names(self, runner, object_file):
        result = runner.invoke(main, [str(object_file), "--names"])
        assert result.exit_code == 0
        assert "#3 main.x (EXTERN)" in result.output

    def test_history_summary(self, runner, object_file):
        result = runner.invoke(main, [str(object_file), "--history"])
        assert result.exit_code == 0
        assert "Files:" in result.output
        assert "  main.go" in result.output
        assert "fmt" in result.output.split("Imports:")[1]

    def test_count(self, runner, object_file):
        result = runner.invoke(main, [str(object_file), "--count", "1"])
        assert result.exit_code == 0
        assert "HISTORY" in result.output
        assert "main.x(SB)" not in result.output

    def test_json(self, runner, object_file):
        result = runner.invoke(main, [str(object_file), "--json"])
        assert result.exit_code == 0
        rows = [json.loads(line) for line in result.output.splitlines() if line.startswith("{")]
        assert rows[-1]["pos"] == "main.go:3"
        assert rows[-1]["from"]["sym"] == "main.x"

    def test_output_file(self, runner, object_file, tmp_path):
        out = tmp_path / "listing.txt"
        result = runner.invoke(main, [str(object_file), "-o", str(out)])
        assert result.exit_code == 0
        assert "main.x(SB)" in out.read_text()

    def test_decode_error_exit_code(self, runner, tmp_path, stream):
        path = tmp_path / "bad.6"
        path.write_bytes(stream.instr(MOVQ, 0).opcode(DEFAULT_OPCODES.high).build())
        result = runner.invoke(main, [str(path)])
        assert result.exit_code == ExitCode.DECODE_ERROR
        assert "out of range" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(main, [str(tmp_path / "nope.6")])
        assert result.exit_code == 2

    def test_bad_opcode_override(self, runner, object_file, monkeypatch):
        monkeypatch.setenv("GO6OBJ_OP_HISTORY", "9999")
        result = runner.invoke(main, [str(object_file)])
        assert result.exit_code == ExitCode.INVALID_ARGS

    def test_json_non_finite_float(self, runner, tmp_path, stream):
        def reject(constant):
            raise ValueError(f"non-standard JSON constant {constant}")

        path = tmp_path / "nan.6"
        path.write_bytes(stream.instr(MOVQ, 0, from_=encode_operand(fconst=math.nan)).build())
        result = runner.invoke(main, [str(path), "--json"])
        assert result.exit_code == 0
        row = json.loads(result.output, parse_constant=reject)
        assert row["from"]["float_value"] == "nan"

    def test_non_utf8_file_name(self, runner, tmp_path, stream):
        path = tmp_path / "latin1.6"
        path.write_bytes(
            stream.name(1, b"<caf\xe9.go", kind=AddrType.D_FILE)
            .history(1)
            .instr(MOVQ, 3)
            .build()
        )
        result = runner.invoke(main, [str(path), "--history"])
        assert result.exit_code == 0
        assert "(caf\\xe9.go:2)" in result.output
        assert "  caf\\xe9.go" in result.output
