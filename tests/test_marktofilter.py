"""
Pytest coverage for the marks to filter graph compiler.
"""

# Standard Library
import math
import os
import sys

# PIP3 modules
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
from pliplib.core import config as configlib
from pliplib.core import marktofilter
from pliplib.core.marks import Mark

#============================================

def marks_from(text: str) -> list:
	"""
	Marks from a compact 'i0 o10' string.
	"""
	return [Mark(token[0], float(token[1:])) for token in text.split()]

#============================================

def run_compiler(text: str, options: marktofilter.FilterOptions):
	compiler = marktofilter.MarkCompiler(options)
	lines = compiler.prelude()
	for mark in marks_from(text):
		lines.extend(compiler.feed(mark))
	return (compiler, lines)

#============================================

def test_single_segment_audio_graph() -> None:
	options = marktofilter.FilterOptions(audio="0:a")
	text = marktofilter.compile_marks(marks_from("i0 o10"), options)
	assert text == (
		"[0:a]anull[aut];\n"
		"[aut]asplit[auu][aut];\n"
		"[auu]atrim=0.000000:10.000000,asetpts=PTS-STARTPTS[au0];\n"
		"[aut]atrim=0:0[aut];\n"
		"[aut][au0]concat=n=2:v=0:a=1[aud]\n"
	)

#============================================

def test_single_segment_length() -> None:
	(compiler, _) = run_compiler("i0 o10", marktofilter.FilterOptions(audio="a"))
	assert compiler.state.cumulative_length == pytest.approx(10.0)
	assert compiler.state.segment_index == 1

#============================================

def test_audio_and_video_trailer() -> None:
	options = marktofilter.FilterOptions(audio="0:a", video="vid", fps=60)
	text = marktofilter.compile_marks(marks_from("i0 o1 i2 o3"), options)
	lines = text.splitlines()
	assert lines[0] == "[0:a]anull[aut];"
	assert lines[1] == "[vid]null[vit];"
	assert lines[-4] == "[aut]atrim=0:0[aut];"
	assert lines[-3] == "[aut][au0][au1]concat=n=3:v=0:a=1[aud];"
	assert lines[-2] == "[vit]trim=0:0[vit];"
	assert lines[-1] == "[vit][vi0][vi1]concat=n=3:v=1:a=0,fps=60:start_time=0[vid]"

#============================================

def test_fast_forward_video_clause() -> None:
	"""
Ensure a short fast-forward runs at the minimum speed.
	"""
	options = marktofilter.FilterOptions(video="vid")
	(compiler, lines) = run_compiler("i0 f5 n7", options)
	assert compiler.state.cumulative_length == pytest.approx(5.5)
	assert lines[-1] == (
		"[viu]trim=5.000000:9.000000,setpts=(PTS-STARTPTS)/4.000000,"
		"fps=30:start_time=0,trim=0:0.500000,null[vi1];"
	)

#============================================

def test_ff_speeds() -> None:
	assert marktofilter.ff_speeds(2.0, 8.0, 4.0) == (4.0, 4.0, 1.0, 0.5)
	assert marktofilter.ff_speeds(64.0, 8.0, 4.0) == (8.0, 8.0, 1.0, 8.0)
	assert marktofilter.ff_speeds(64.0, 8.0, 4.0, 2.0) == (8.0, 2.0, 4.0, 8.0)
	assert marktofilter.ff_speeds(32.0, 8.0, 4.0) == (4.0, 4.0, 1.0, 8.0)

#============================================

def test_tempo_chain() -> None:
	assert marktofilter.tempo_chain(4.0) == [2.0, 2.0]
	assert marktofilter.tempo_chain(3.0) == [2.0, 1.5]
	assert marktofilter.tempo_chain(1.5) == [1.5]
	assert marktofilter.tempo_chain(2.0) == [2.0]
	assert marktofilter.tempo_chain(1.0) == []

#============================================

def test_resynthesized_audio_clause() -> None:
	"""
Ensure a pitch ceiling moves the remaining speed into atempo steps.
	"""
	options = marktofilter.FilterOptions(audio="0:a", max_ff_pitch=2.0)
	(_, lines) = run_compiler("i0 f10 n74", options)
	assert lines[-2] == "[aut]asplit[auu][aut];"
	assert lines[-1] == (
		"[auu]atrim=10.000000:138.000000,asetpts=PTS-STARTPTS,aresample=48000,"
		"asetrate=96000.000000,aresample=48000,atempo=2,atempo=2,"
		"aresample=48000,atrim=0:8.000000[au1];"
	)

#============================================

def test_resynthesized_fractional_tempo() -> None:
	options = marktofilter.FilterOptions(audio="0:a", max_ff_pitch=2.0)
	(_, lines) = run_compiler("i0 f1 n49", options)
	assert ",atempo=2,atempo=1.500000,aresample=48000," in lines[-1]

#============================================

def test_discard_and_keep_audio() -> None:
	discard = marktofilter.FilterOptions(audio="0:a",
		ff_mode=marktofilter.FF_DISCARD)
	(_, lines) = run_compiler("i0 f5 n7", discard)
	assert lines[-1] == "aevalsrc=0,atrim=0:0.500000[au1];"
	keep = marktofilter.FilterOptions(audio="0:a", ff_mode=marktofilter.FF_KEEP)
	(_, lines) = run_compiler("i0 f5 n7", keep)
	assert lines[-2:] == [
		"[aut]asplit[auu][aut];",
		"[auu]atrim=5.000000:5.500000,asetpts=PTS-STARTPTS[au1];",
	]

#============================================

def test_zero_length_out_is_widened() -> None:
	(_, lines) = run_compiler("i5 o5", marktofilter.FilterOptions(audio="a"))
	assert lines[-1] == "[auu]atrim=5.000000:5.001000,asetpts=PTS-STARTPTS[au0];"

#============================================

def test_chosen_restart_segment() -> None:
	"""
Ensure only the chosen restart segment is compiled.
	"""
	options = marktofilter.FilterOptions(audio="a", chosen_restart=1)
	text = marktofilter.compile_marks(marks_from("i0 o5 r0 i10 o20 r0 i30 o40"),
		options)
	assert "atrim=10.000000:20.000000" in text
	assert "atrim=0.000000:5.000000" not in text
	assert "atrim=30.000000" not in text
	assert "[aut][au0]concat=n=2:v=0:a=1[aud]" in text

#============================================

def test_count_restarts() -> None:
	marks = marks_from("i0 o5 r0 i10 o20 r0 i30 o40")
	assert marktofilter.count_restarts(marks) == 2
	options = marktofilter.FilterOptions(count_restarts=True)
	assert marktofilter.compile_marks(marks, options) == "2\n"
	assert marktofilter.count_restarts(marks_from("i0 r1")) == 1

#============================================

def test_annotations() -> None:
	text = marktofilter.compile_marks(marks_from("i0 o65 m80 i100 m130"),
		marktofilter.FilterOptions())
	assert text == "m 01:05\nm 01:35\n"

#============================================

def test_annotations_only_in_human_mode() -> None:
	text = marktofilter.compile_marks(marks_from("i0 m5 o10"),
		marktofilter.FilterOptions(audio="a"))
	assert "m " not in text

#============================================

def test_empty_human_output() -> None:
	assert marktofilter.compile_marks([], marktofilter.FilterOptions()) == ""

#============================================

def test_format_elapsed() -> None:
	assert marktofilter.format_elapsed(5) == "05"
	assert marktofilter.format_elapsed(65) == "01:05"
	assert marktofilter.format_elapsed(3725.9) == "1:02:05"

#============================================

def test_unknown_mode_raises() -> None:
	with pytest.raises(RuntimeError):
		marktofilter.FilterOptions(ff_mode="louder")

#============================================

def test_options_from_config() -> None:
	config = configlib.ConfigEngine()
	config.extend_defaults()
	options = marktofilter.options_from_config(config, audio="a")
	assert options.fflen == 8.0
	assert options.min_ff_speed == 4.0
	assert math.isinf(options.max_ff_pitch)
	assert options.ff_filter == "null"
	assert options.audio == "a"

#============================================

def test_options_from_config_overrides() -> None:
	config = configlib.ConfigEngine()
	config.extend_text(
		"[marktofilter]\n"
		"fflen=0\n"
		"minffspeed=6\n"
		"maxffpitch=1.5\n"
		"fffilter=hue=s=0\n"
	)
	options = marktofilter.options_from_config(config)
	assert options.fflen == marktofilter.DEFAULT_FFLEN
	assert options.min_ff_speed == 6.0
	assert options.max_ff_pitch == 1.5
	assert options.ff_filter == "hue=s=0"
