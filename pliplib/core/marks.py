#!/usr/bin/env python3

import os
from pliplib.core import utils

#============================================

OP_IN = 'i'
OP_OUT = 'o'
OP_FF_OUT = 'f'
OP_NORMAL_IN = 'n'
OP_RESTART = 'r'
OP_ANNOTATE = 'm'

OPCODES = (OP_IN, OP_OUT, OP_FF_OUT, OP_NORMAL_IN, OP_RESTART, OP_ANNOTATE)

# one day, enough to keep a whole recording
PASS_THROUGH_END = 86400.0

#============================================

class Mark():
	def __init__(self, opcode: str, timestamp: float):
		self.opcode = opcode
		self.timestamp = timestamp

	#============================
	def __eq__(self, other) -> bool:
		if not isinstance(other, Mark):
			return NotImplemented
		return (self.opcode, self.timestamp) == (other.opcode, other.timestamp)

	#============================
	def __repr__(self) -> str:
		return f"Mark({self.opcode!r}, {self.timestamp!r})"

#============================================

def parse_mark_line(line: str):
	"""
	Parse '<opcode><seconds>'; returns None for a blank line.
	"""
	line = line.rstrip("\r\n")
	if line == "":
		return None
	return Mark(line[0], utils.parse_leading_float(line[1:]))

#============================================

def format_mark(mark: Mark) -> str:
	return f"{mark.opcode}{mark.timestamp:f}\n"

#============================================

def pass_through_marks():
	"""
	Keep everything: in at zero, out a day later.
	"""
	yield Mark(OP_IN, 0.0)
	yield Mark(OP_OUT, PASS_THROUGH_END)

#============================================

def read_marks(stream=None):
	"""
	Lazily read marks one line at a time from a text stream.
	Without a stream, the pass-through pair is produced instead.
	"""
	if stream is None:
		yield from pass_through_marks()
		return
	for line in stream:
		mark = parse_mark_line(line)
		if mark is not None:
			yield mark

#============================================

def open_marks(filepath: str):
	"""
	Marks from a file; a missing or unreadable file keeps everything.
	"""
	if filepath is None or not os.path.isfile(filepath):
		yield from pass_through_marks()
		return
	try:
		marks_file = open(filepath, 'r', encoding='utf-8', errors='replace')
	except OSError:
		yield from pass_through_marks()
		return
	with marks_file:
		yield from read_marks(marks_file)
