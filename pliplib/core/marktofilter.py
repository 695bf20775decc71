#!/usr/bin/env python3

"""
Compile an edit-decision mark stream into ffmpeg filter graphs.

Each kept span becomes a numbered pad (au0, vi0, ...) cut out of a
split of the running input pad, and a final concat joins them into
[aud] or [vid]. Fast-forward spans are squeezed to at most fflen
seconds; the audio there is dropped, kept verbatim, or resynthesized
with a bounded pitch shift plus a tempo correction.
"""

import math
from pliplib.core import marks as marklib

#============================================

FF_RESYNTHESIZE = 'resynthesize'
FF_KEEP = 'keep'
FF_DISCARD = 'discard'
FF_MODES = (FF_RESYNTHESIZE, FF_KEEP, FF_DISCARD)

DEFAULT_FFLEN = 8.0
DEFAULT_MIN_FF_SPEED = 4.0
DEFAULT_FPS = 30
DEFAULT_ARATE = 48000

# ffmpeg refuses zero-length trims
MIN_SPAN = 0.001

#============================================

class FilterOptions():
	def __init__(self, audio: str = None, video: str = None,
		chosen_restart: int = 0, count_restarts: bool = False,
		ff_mode: str = FF_RESYNTHESIZE, fps: int = DEFAULT_FPS,
		arate: int = DEFAULT_ARATE, fflen: float = DEFAULT_FFLEN,
		min_ff_speed: float = DEFAULT_MIN_FF_SPEED,
		max_ff_pitch: float = math.inf, ff_filter: str = "null"):
		if ff_mode not in FF_MODES:
			raise RuntimeError(f"unknown fast-forward audio mode: {ff_mode}")
		self.audio = audio
		self.video = video
		self.chosen_restart = chosen_restart
		self.count_restarts = count_restarts
		self.ff_mode = ff_mode
		self.fps = fps
		self.arate = arate
		self.fflen = fflen
		self.min_ff_speed = min_ff_speed
		self.max_ff_pitch = max_ff_pitch
		self.ff_filter = ff_filter

	#============================
	def human_marks_only(self) -> bool:
		return not self.count_restarts and self.audio is None and self.video is None

#============================================

def options_from_config(config, **kwargs) -> FilterOptions:
	"""
	FilterOptions with the [marktofilter] tunables read from config.
	"""
	fflen = config.read_float("marktofilter.fflen")
	if fflen != 0:
		kwargs.setdefault('fflen', fflen)
	min_speed = config.read_float("marktofilter.minffspeed")
	if min_speed != 0:
		kwargs.setdefault('min_ff_speed', min_speed)
	max_pitch = config.read_float("marktofilter.maxffpitch")
	if max_pitch < 1:
		max_pitch = math.inf
	kwargs.setdefault('max_ff_pitch', max_pitch)
	ff_filter = config.get("marktofilter.fffilter")
	if ff_filter is not None:
		kwargs.setdefault('ff_filter', ff_filter)
	return FilterOptions(**kwargs)

#============================================

class CompilerState():
	def __init__(self, chosen_restart: int):
		self.cumulative_length = 0.0
		self.last_in = 0.0
		self.inside_segment = False
		self.segment_index = 0
		self.restart_countdown = chosen_restart
		self.restarts_seen = 0

#============================================

def ff_speeds(span: float, fflen: float, min_speed: float,
	max_pitch: float = math.inf) -> tuple:
	"""
	Speeds for a fast-forwarded span.

	Returns:
		tuple: (video speed, audio speed, tempo factor, output length)
	"""
	if span <= fflen * min_speed:
		video_speed = min_speed
		out_len = span / min_speed
	else:
		video_speed = span / fflen
		out_len = fflen
	audio_speed = video_speed
	tempo = 1.0
	if audio_speed > max_pitch:
		tempo = audio_speed / max_pitch
		audio_speed = max_pitch
	return (video_speed, audio_speed, tempo, out_len)

#============================================

def tempo_chain(factor: float) -> list:
	"""
	Split a tempo factor into atempo steps of at most 2.
	"""
	steps = []
	while factor > 2:
		steps.append(2.0)
		factor /= 2
	if factor != 1:
		steps.append(factor)
	return steps

#============================================

def format_elapsed(seconds: float) -> str:
	whole = int(seconds)
	minutes = whole // 60
	hours = minutes // 60
	whole %= 60
	minutes %= 60
	text = ""
	if hours:
		text += f"{hours}:"
	if hours or minutes:
		text += f"{minutes:02d}:"
	text += f"{whole:02d}"
	return text

#============================================

class MarkCompiler():
	def __init__(self, options: FilterOptions):
		self.options = options
		self.state = CompilerState(options.chosen_restart)

	#============================
	def prelude(self) -> list:
		lines = []
		if self.options.audio is not None:
			lines.append(f"[{self.options.audio}]anull[aut];")
		if self.options.video is not None:
			lines.append(f"[{self.options.video}]null[vit];")
		return lines

	#============================
	def feed(self, mark) -> list:
		opcode = mark.opcode
		if opcode == marklib.OP_RESTART:
			self.state.restart_countdown -= 1
			self.state.restarts_seen += 1
			return []
		if opcode == marklib.OP_IN:
			self.state.inside_segment = True
			self.state.last_in = mark.timestamp
			return []
		if self.state.restart_countdown != 0:
			return []
		if opcode in (marklib.OP_OUT, marklib.OP_FF_OUT):
			return self._out(mark.timestamp)
		if opcode == marklib.OP_NORMAL_IN:
			return self._normal_in(mark.timestamp)
		if opcode == marklib.OP_ANNOTATE:
			return self._annotate(mark.timestamp)
		return []

	#============================
	def _out(self, timestamp: float) -> list:
		state = self.state
		if timestamp <= state.last_in:
			timestamp = state.last_in + MIN_SPAN
		index = state.segment_index
		lines = []
		if self.options.audio is not None:
			lines.append("[aut]asplit[auu][aut];")
			lines.append(f"[auu]atrim={state.last_in:f}:{timestamp:f},"
				f"asetpts=PTS-STARTPTS[au{index}];")
		if self.options.video is not None:
			lines.append("[vit]split[viu][vit];")
			lines.append(f"[viu]trim={state.last_in:f}:{timestamp:f},"
				f"setpts=PTS-STARTPTS[vi{index}];")
		state.segment_index += 1
		state.cumulative_length += timestamp - state.last_in
		state.inside_segment = False
		state.last_in = timestamp
		return lines

	#============================
	def _normal_in(self, timestamp: float) -> list:
		state = self.state
		options = self.options
		span = timestamp - state.last_in
		if span <= 0:
			span = MIN_SPAN
		(video_speed, audio_speed, tempo, out_len) = ff_speeds(span,
			options.fflen, options.min_ff_speed, options.max_ff_pitch)
		index = state.segment_index
		start = state.last_in
		lines = []
		if options.audio is not None:
			if options.ff_mode == FF_DISCARD:
				lines.append(f"aevalsrc=0,atrim=0:{out_len:f}[au{index}];")
			elif options.ff_mode == FF_KEEP:
				lines.append("[aut]asplit[auu][aut];")
				lines.append(f"[auu]atrim={start:f}:{start + out_len:f},"
					f"asetpts=PTS-STARTPTS[au{index}];")
			else:
				lines.append("[aut]asplit[auu][aut];")
				arate = options.arate
				clause = (f"[auu]atrim={start:f}:{timestamp + span:f},"
					f"asetpts=PTS-STARTPTS,aresample={arate},"
					f"asetrate={arate * audio_speed:f},aresample={arate}")
				for step in tempo_chain(tempo):
					if step == 2.0:
						clause += ",atempo=2"
					else:
						clause += f",atempo={step:f}"
				clause += f",aresample={arate},atrim=0:{out_len:f}[au{index}];"
				lines.append(clause)
		if options.video is not None:
			lines.append("[vit]split[viu][vit];")
			lines.append(f"[viu]trim={start:f}:{timestamp + span:f},"
				f"setpts=(PTS-STARTPTS)/{video_speed:f},"
				f"fps={options.fps}:start_time=0,trim=0:{out_len:f},"
				f"{options.ff_filter}[vi{index}];")
		state.segment_index += 1
		state.inside_segment = True
		state.last_in = timestamp
		state.cumulative_length += out_len
		return lines

	#============================
	def _annotate(self, timestamp: float) -> list:
		if not self.options.human_marks_only():
			return []
		elapsed = self.state.cumulative_length
		if self.state.inside_segment:
			elapsed += timestamp - self.state.last_in
		return [f"m {format_elapsed(elapsed)}"]

	#============================
	def finish(self) -> list:
		options = self.options
		count = self.state.segment_index
		lines = []
		if options.count_restarts:
			lines.append(f"{self.state.restarts_seen}")
		if options.audio is not None:
			pads = "".join(f"[au{index}]" for index in range(count))
			tail = ";" if options.video is not None else ""
			lines.append("[aut]atrim=0:0[aut];")
			lines.append(f"[aut]{pads}concat=n={count + 1}:v=0:a=1[aud]{tail}")
		if options.video is not None:
			pads = "".join(f"[vi{index}]" for index in range(count))
			lines.append("[vit]trim=0:0[vit];")
			lines.append(f"[vit]{pads}concat=n={count + 1}:v=1:a=0,"
				f"fps={options.fps}:start_time=0[vid]")
		return lines

#============================================

def compile_marks(marks, options: FilterOptions) -> str:
	"""
	Run marks through a fresh compiler and return its full output.
	"""
	compiler = MarkCompiler(options)
	lines = compiler.prelude()
	for mark in marks:
		lines.extend(compiler.feed(mark))
	lines.extend(compiler.finish())
	if len(lines) == 0:
		return ""
	return "\n".join(lines) + "\n"

#============================================

def count_restarts(marks) -> int:
	compiler = MarkCompiler(FilterOptions(count_restarts=True))
	for mark in marks:
		compiler.feed(mark)
	return compiler.state.restarts_seen
