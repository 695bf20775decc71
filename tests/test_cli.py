"""
Pytest coverage for the command-line stages.
"""

# Standard Library
import io
import os
import sys

# PIP3 modules
import numpy
import pytest
import yaml

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
import plip
import plip_aproc
import plip_clip
import plip_demux
import plip_findnoise
import plip_marktofilter
import plip_silencemarks
from pliplib.core import marktofilter
from pliplib.core import utils

utils.set_quiet_mode(True)

#============================================

def test_marktofilter_audio_to_file(tmp_path) -> None:
	marks = tmp_path / "show.mark"
	marks.write_text("i0\no10\n")
	out = tmp_path / "graph.txt"
	code = plip_marktofilter.main(["-c", "-", "-i", str(marks), "-a", "0:a",
		"-o", str(out)])
	assert code == 0
	assert out.read_text().endswith("[aut][au0]concat=n=2:v=0:a=1[aud]\n")

#============================================

def test_marktofilter_restart_and_count(tmp_path, capsys) -> None:
	marks = tmp_path / "show.mark"
	marks.write_text("i0\no5\nr0\ni10\no20\n")
	assert plip_marktofilter.main(["-c", "-", "-i", str(marks),
		"--count-restarts"]) == 0
	assert capsys.readouterr().out == "1\n"
	assert plip_marktofilter.main(["-c", "-", "-i", str(marks), "-r", "2",
		"-v", "vid"]) == 0
	text = capsys.readouterr().out
	assert "trim=10.000000:20.000000" in text
	assert "trim=0.000000:5.000000" not in text

#============================================

def test_marktofilter_audio_modes() -> None:
	args = plip_marktofilter.parse_args(["-k", "--audio-discard"])
	assert args.audio_keep is True
	assert args.audio_discard is True
	args = plip_marktofilter.parse_args(["-r", "3", "--fps", "60"])
	assert args.chosen_restart == 3
	assert args.fps == 60
	assert args.in_file == "out.mark"

#============================================

def test_marktofilter_discard_wins(tmp_path) -> None:
	args = plip_marktofilter.parse_args(["-k", "--audio-discard", "-a", "0:a"])
	config = plip_marktofilter.configlib.init_config("-", str(tmp_path))
	options = plip_marktofilter.build_options(args, config)
	assert options.ff_mode == marktofilter.FF_DISCARD
	assert options.chosen_restart == 0

#============================================

def test_usage_error_exits_with_one() -> None:
	with pytest.raises(SystemExit) as caught:
		plip_marktofilter.parse_args(["--fps", "fast"])
	assert caught.value.code == 1

#============================================

def test_bad_config_exits_with_one(tmp_path) -> None:
	config_file = tmp_path / "utf16.ini"
	config_file.write_bytes("[steps]\naproc = 1\n".encode('utf-16'))
	assert plip_marktofilter.main(["-c", str(config_file), "-i", "-"]) == 1

#============================================

def test_aproc_dump_plan(tmp_path, monkeypatch, capsys) -> None:
	(tmp_path / "host-raw.flac").write_text("audio")
	monkeypatch.chdir(tmp_path)
	assert plip_aproc.main(["-c", "-", "--dump-plan"]) == 0
	plan = yaml.safe_load(capsys.readouterr().out)
	assert plan['tracks'][0]['track'] == "host"
	assert [stage['filter'] for stage in plan['tracks'][0]['stages']] == [
		"compress", "level",
	]
	assert os.path.exists(str(tmp_path / "host-raw.flac"))

#============================================

def test_clip_positional_arguments() -> None:
	args = plip_clip.parse_args(["show.mkv", "cut.mark"])
	assert args.input_file == "show.mkv"
	assert args.marks_file == "cut.mark"
	args = plip_clip.parse_args(["-c", "-i", "show.mkv"])
	assert args.cleanup is True
	assert args.marks_file is None
	with pytest.raises(SystemExit):
		plip_clip.parse_args([])

#============================================

def test_findnoise_files(tmp_path) -> None:
	"""
Ensure the sampler reads and writes raw float32 files.
	"""
	samples = numpy.full(48000 * 2, 0.5, dtype='<f4')
	samples[48000:] = 0.01
	in_file = tmp_path / "in.f32"
	in_file.write_bytes(samples.tobytes())
	out_file = tmp_path / "noise.f32"
	assert plip_findnoise.main(["-i", str(in_file), "-o", str(out_file)]) == 0
	result = numpy.frombuffer(out_file.read_bytes(), dtype='<f4')
	assert len(result) == 48000
	assert numpy.allclose(result, 0.01)

#============================================

def test_findnoise_channel_arguments() -> None:
	assert plip_findnoise.parse_args(["2"]).channels == 2
	assert plip_findnoise.parse_args(["-c", "3"]).channels == 3
	assert plip_findnoise.parse_args([]).channels == 1

#============================================

class FakeStage():
	"""
	Records the launcher's calls to one pipeline stage.
	"""
	def __init__(self, name: str, log: list, failed: list = None):
		self.name = name
		self.log = log
		self.failed = failed

	#============================
	def __call__(self, config, *args, **kwargs):
		self.log.append((self.name, 'init', args))
		return self

	#============================
	def run(self):
		self.log.append((self.name, 'run'))
		return self.failed

#============================================

def test_launcher_runs_stages_in_order(monkeypatch, capsys) -> None:
	log = []
	monkeypatch.setattr(plip, "Demuxer", FakeStage("demux", log))
	monkeypatch.setattr(plip, "TrackScheduler", FakeStage("aproc", log, []))
	monkeypatch.setattr(plip, "Clipper", FakeStage("clip", log))
	assert plip.main(["-c", "-", "show.mkv"]) == 0
	assert [entry[0] for entry in log if entry[1] == 'run'] == ["demux", "aproc", "clip"]
	assert log[0] == ("demux", 'init', ("show.mkv",))
	assert "Complete." in capsys.readouterr().out

#============================================

def test_launcher_fails_when_a_track_fails(monkeypatch) -> None:
	log = []
	monkeypatch.setattr(plip, "Demuxer", FakeStage("demux", log))
	monkeypatch.setattr(plip, "TrackScheduler", FakeStage("aproc", log, ["host"]))
	monkeypatch.setattr(plip, "Clipper", FakeStage("clip", log))
	assert plip.main(["-c", "-", "-i", "show.mkv"]) == 1
	assert ("clip", 'run') in log

#============================================

def test_demux_main(tmp_path, monkeypatch) -> None:
	"""
Ensure demux probes the capture and extracts its audio tracks.
	"""
	commands = []

	def fake_run(args, capture=None, stdin=None):
		commands.append(list(args))
		if "-show_format" in args:
			return (0, "format.nb_streams=2\n")
		if "-show_streams" in args:
			return (0, 'streams.stream.0.codec_type="video"\n'
				'streams.stream.1.codec_type="audio"\n'
				'streams.stream.1.tags.title="host"\n')
		return (0, None)

	monkeypatch.setattr(utils, "runCmd", fake_run)
	monkeypatch.chdir(tmp_path)
	assert plip_demux.main(["-c", "-", "show.mkv"]) == 0
	assert (tmp_path / "video.track").read_text() == "0"
	extracts = [args for args in commands if "-map" in args]
	assert len(extracts) == 1
	assert extracts[0][extracts[0].index("-map") + 1] == "0:1"
	assert extracts[0][-1] == os.path.join(".", "host-raw.flac")

#============================================

def test_demux_dry_run(tmp_path, monkeypatch) -> None:
	def fake_run(args, capture=None, stdin=None):
		assert "-map" not in args
		if "-show_format" in args:
			return (0, "format.nb_streams=1\n")
		return (0, 'streams.stream.0.codec_type="audio"\n')

	monkeypatch.setattr(utils, "runCmd", fake_run)
	monkeypatch.chdir(tmp_path)
	assert plip_demux.main(["-c", "-", "-n", "show.mkv"]) == 0
	assert os.listdir(str(tmp_path)) == []

#============================================

def test_silencemarks_main(monkeypatch, capsys) -> None:
	seen = {}

	def fake_run(args, capture=None, stdin=None):
		seen['args'] = list(args)
		return (0, "[silencedetect @ 0x1] silence_start: 10\n"
			"[silencedetect @ 0x1] silence_end: 20 | silence_duration: 10\n")

	monkeypatch.setattr(utils, "runCmd", fake_run)
	monkeypatch.setattr(sys, "stdin", io.StringIO("i0\no100\n"))
	assert plip_silencemarks.main(["-c", "-", "host.flac", "guest.flac"]) == 0
	assert capsys.readouterr().out == "i0\no10.500000\ni19.500000\no100\n"
	assert seen['args'][:5] == ["ffmpeg", "-i", "host.flac", "-i", "guest.flac"]
