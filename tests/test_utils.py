"""
Pytest coverage for the command runners and small helpers.
"""

# Standard Library
import os
import shutil
import sys

# PIP3 modules
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
from pliplib.core import utils

utils.set_quiet_mode(True)

#============================================

def test_parse_leading_numbers() -> None:
	assert utils.parse_leading_float("  -18dB") == -18.0
	assert utils.parse_leading_float("1.5e2x") == 150.0
	assert utils.parse_leading_float(".25") == 0.25
	assert utils.parse_leading_float("abc") == 0.0
	assert utils.parse_leading_float(None) == 0.0
	assert utils.parse_leading_int(" 42 tracks") == 42
	assert utils.parse_leading_int("x1") == 0

#============================================

def test_is_finite_normal() -> None:
	assert utils.is_finite_normal(-23.0) is True
	assert utils.is_finite_normal(0.0) is False
	assert utils.is_finite_normal(float('inf')) is False
	assert utils.is_finite_normal(float('nan')) is False

#============================================

def test_link_or_copy_and_remove(tmp_path) -> None:
	source = tmp_path / "a.flac"
	source.write_text("audio")
	target = tmp_path / "b.flac"
	utils.link_or_copy(str(source), str(target))
	assert target.read_text() == "audio"
	utils.remove_file(str(target))
	utils.remove_file(str(target))
	assert not target.exists()

#============================================

def test_run_cmd_missing_program() -> None:
	(code, text) = utils.runCmd(["plip-no-such-program-here"], capture='stdout')
	assert code == -1
	assert text is None

#============================================

@pytest.mark.skipif(shutil.which("sh") is None, reason="needs a POSIX shell")
def test_run_cmd_captures_stdout() -> None:
	(code, text) = utils.runCmd(["sh", "-c", "echo hello; exit 3"], capture='stdout')
	assert code == 3
	assert text == "hello\n"

#============================================

@pytest.mark.skipif(shutil.which("sh") is None, reason="needs a POSIX shell")
def test_run_pipeline(tmp_path) -> None:
	source = tmp_path / "in.txt"
	source.write_text("b\na\n")
	target = tmp_path / "out.txt"
	codes = utils.runPipeline([["sort"], ["sh", "-c", f"cat > '{target}'"]],
		stdin_path=str(source))
	assert codes == [0, 0]
	assert target.read_text() == "a\nb\n"

#============================================

def test_argument_parser_exits_with_one() -> None:
	parser = utils.ArgumentParser(prog="plip-test")
	parser.add_argument('--count', type=int)
	with pytest.raises(SystemExit) as caught:
		parser.parse_args(["--count", "many"])
	assert caught.value.code == 1
