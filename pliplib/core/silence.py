#!/usr/bin/env python3

"""
Cut long silences out of kept spans of a marks stream.
"""

import re
from pliplib.core import marks as marklib
from pliplib.core import utils

#============================================

SILENCE_START_RE = re.compile(r"silence_start: ([0-9\.]*)")
SILENCE_END_RE = re.compile(r"silence_end: ([0-9\.]*)")
SILENCE_THRESHOLD = "-25dB"
# keep a little sound on either side of a cut
SILENCE_PADDING = 0.5

IN_STATUS = 'i'
OUT_STATUS = 'o'

#============================================

def detect_command(ffmpeg: str, audio_files: list) -> list:
	args = [ffmpeg]
	for audio_file in audio_files:
		args += ["-i", audio_file]
	inputs = "".join(f"[{index}:a]" for index in range(len(audio_files)))
	args += ["-filter_complex",
		f"{inputs}amix={len(audio_files)},dynaudnorm,silencedetect={SILENCE_THRESHOLD}[aud]",
		"-map", "[aud]", "-f", "null", "-"]
	return args

#============================================

def parse_silences(log_text: str) -> list:
	"""
	(start, end) pairs from silencedetect log lines.
	"""
	silences = []
	start = 0.0
	for line in log_text.splitlines():
		match = SILENCE_START_RE.search(line)
		if match is not None:
			start = utils.parse_leading_float(match.group(1))
			continue
		match = SILENCE_END_RE.search(line)
		if match is None:
			continue
		silences.append((start, utils.parse_leading_float(match.group(1))))
	return silences

#============================================

def detect_silences(ffmpeg: str, audio_files: list) -> list:
	(_, log_text) = utils.runCmd(detect_command(ffmpeg, audio_files),
		capture='stderr')
	return parse_silences(log_text or "")

#============================================

class _TrackedMark():
	def __init__(self, opcode: str, timestamp: float, status: str, line: str):
		self.opcode = opcode
		self.timestamp = timestamp
		self.status = status
		self.line = line

#============================================

def _next_mark(lines, prior: _TrackedMark) -> _TrackedMark:
	for line in lines:
		mark = marklib.parse_mark_line(line)
		if mark is None:
			continue
		status = prior.status
		if mark.opcode in (marklib.OP_IN, marklib.OP_NORMAL_IN):
			status = IN_STATUS
		elif mark.opcode in (marklib.OP_OUT, marklib.OP_FF_OUT):
			status = OUT_STATUS
		if not line.endswith("\n"):
			line += "\n"
		return _TrackedMark(mark.opcode, mark.timestamp, status, line)
	return None

#============================================

def merge_silences(mark_lines, silences: list):
	"""
	Yield mark lines with an out/in pair around every silence that
	falls inside a kept span.
	"""
	lines = iter(mark_lines)
	current = _TrackedMark(marklib.OP_OUT, 0.0, OUT_STATUS, None)
	upcoming = _next_mark(lines, current)
	for (start, end) in silences:
		while upcoming is not None and upcoming.timestamp < end:
			yield upcoming.line
			current = upcoming
			upcoming = _next_mark(lines, current)
		if current.timestamp >= start:
			continue
		if current.status == IN_STATUS:
			yield marklib.format_mark(marklib.Mark(marklib.OP_OUT, start + SILENCE_PADDING))
			yield marklib.format_mark(marklib.Mark(marklib.OP_IN, end - SILENCE_PADDING))
	while upcoming is not None:
		yield upcoming.line
		current = upcoming
		upcoming = _next_mark(lines, current)
