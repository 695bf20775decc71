#!/usr/bin/env python3

import argparse
import math
import os
import re
import shlex
import shutil
import subprocess
import sys

# PIP3 modules
from rich.console import Console
from rich.text import Text

#============================================

NORD_COLORS = {
	'header': "#88C0D0",
	'command': "#ECEFF4",
	'dim': "#4C566A",
	'warning': "#EBCB8B",
	'error': "#BF616A",
}

_STATE = {
	'quiet': False,
	'verbose': False,
}

_CONSOLE = Console(stderr=True, highlight=False)

#============================================

def set_quiet_mode(quiet: bool) -> None:
	_STATE['quiet'] = bool(quiet)

#============================================

def is_quiet_mode() -> bool:
	return _STATE['quiet']

#============================================

def set_verbose(verbose: bool) -> None:
	_STATE['verbose'] = bool(verbose)

#============================================

def is_verbose() -> bool:
	return _STATE['verbose']

#============================================

def status(message: str) -> None:
	"""
	Print a stage status line to stderr.
	"""
	if is_quiet_mode():
		return
	line = Text("^PLIP: ", style=f"bold {NORD_COLORS['header']}")
	line.append(message)
	_CONSOLE.print(line)

#============================================

def debug(message: str) -> None:
	"""
	Print a diagnostic line, only in verbose mode.
	"""
	if is_quiet_mode() or not is_verbose():
		return
	_CONSOLE.print(Text(message, style=NORD_COLORS['dim']))

#============================================

def warning(message: str) -> None:
	if is_quiet_mode():
		return
	_CONSOLE.print(Text(f"warning: {message}", style=f"bold {NORD_COLORS['warning']}"))

#============================================

def error(message: str) -> None:
	_CONSOLE.print(Text(f"error: {message}", style=f"bold {NORD_COLORS['error']}"))

#============================================

def _show_cmd(args: list) -> str:
	showcmd = shlex.join([str(arg) for arg in args])
	showcmd = re.sub("  *", " ", showcmd)
	if not is_quiet_mode():
		_CONSOLE.print(Text(f"CMD: '{showcmd}'", style=NORD_COLORS['command']))
	return showcmd

#============================================

def runCmd(args: list, capture: str = None, stdin=None) -> tuple:
	"""
	Run an external program and wait for it.

	Args:
		args: program and arguments.
		capture: None, 'stdout' or 'stderr'; the captured stream is
			returned as text, the other one is discarded.
		stdin: optional file object connected to the program's input.

	Returns:
		tuple: (exit code, captured text or None)
	"""
	showcmd = _show_cmd(args)
	stdout = subprocess.DEVNULL
	stderr = subprocess.DEVNULL
	if capture == 'stdout':
		stdout = subprocess.PIPE
	elif capture == 'stderr':
		stderr = subprocess.PIPE
	if stdin is None:
		stdin = subprocess.DEVNULL
	try:
		proc = subprocess.Popen([str(arg) for arg in args], stdin=stdin,
			stdout=stdout, stderr=stderr)
	except OSError as exc:
		warning(f"could not start '{showcmd}': {exc}")
		return (-1, None)
	(out_data, err_data) = proc.communicate()
	captured = None
	if capture == 'stdout':
		captured = out_data.decode('utf-8', errors='replace')
	elif capture == 'stderr':
		captured = err_data.decode('utf-8', errors='replace')
	if proc.returncode != 0:
		warning(f"exit status {proc.returncode} from '{showcmd}'")
	return (proc.returncode, captured)

#============================================

def runPipeline(commands: list, stdin_path: str = None) -> list:
	"""
	Run programs connected stdout-to-stdin and wait for all of them.

	Args:
		commands: list of argument lists, first to last.
		stdin_path: optional file fed to the first program.

	Returns:
		list: exit codes, in pipeline order.
	"""
	procs = []
	prev_stdout = None
	in_handle = None
	if stdin_path is not None:
		in_handle = open(stdin_path, 'rb')
	try:
		for index, args in enumerate(commands):
			_show_cmd(args)
			if index == 0:
				stdin = in_handle if in_handle is not None else subprocess.DEVNULL
			else:
				stdin = prev_stdout
			stdout = subprocess.PIPE
			if index == len(commands) - 1:
				stdout = subprocess.DEVNULL
			try:
				proc = subprocess.Popen([str(arg) for arg in args], stdin=stdin,
					stdout=stdout, stderr=subprocess.DEVNULL)
			except OSError as exc:
				warning(f"could not start '{args[0]}': {exc}")
				proc = None
			# the parent keeps no copy of the pipe between two children
			if prev_stdout is not None:
				prev_stdout.close()
			prev_stdout = proc.stdout if proc is not None else None
			procs.append(proc)
			if proc is None:
				break
	finally:
		if in_handle is not None:
			in_handle.close()
	codes = []
	for proc in procs:
		if proc is None:
			codes.append(-1)
			continue
		proc.wait()
		if proc.returncode != 0:
			warning(f"exit status {proc.returncode} from '{proc.args[0]}'")
		codes.append(proc.returncode)
	return codes

#============================================

def parse_leading_float(text) -> float:
	"""
	Parse the numeric prefix of a string, 0.0 when there is none.
	"""
	if text is None:
		return 0.0
	match = re.match(r"\s*([-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?|[-+]?(inf|infinity|nan))",
		text, re.IGNORECASE)
	if match is None:
		return 0.0
	return float(match.group(1))

#============================================

def parse_leading_int(text) -> int:
	if text is None:
		return 0
	match = re.match(r"\s*([-+]?\d+)", text)
	if match is None:
		return 0
	return int(match.group(1))

#============================================

def is_finite_normal(value: float) -> bool:
	if not math.isfinite(value):
		return False
	return value != 0.0 and abs(value) >= sys.float_info.min

#============================================

def link_or_copy(source: str, target: str) -> None:
	"""
	Hard link source to target, copying when linking is not possible.
	"""
	try:
		os.link(source, target)
	except OSError:
		shutil.copyfile(source, target)

#============================================

def remove_file(filepath: str) -> None:
	try:
		os.remove(filepath)
	except FileNotFoundError:
		pass

#============================================

class ArgumentParser(argparse.ArgumentParser):
	"""
	argparse parser whose usage errors exit with status 1.
	"""
	def error(self, message):
		self.print_usage(sys.stderr)
		self.exit(1, f"{self.prog}: error: {message}\n")
