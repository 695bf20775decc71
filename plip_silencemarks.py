#!/usr/bin/env python3

"""
Add cuts around silences to a marks stream: marks in on stdin,
marks out on stdout.
"""

# Standard Library
import sys

# local repo modules
from pliplib.core import config as configlib
from pliplib.core import silence
from pliplib.core import utils

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = utils.ArgumentParser(description="Cut silences out of marks")
	parser.add_argument('-c', '--config', dest='config_file',
		help="config file, or '-' for the built-in defaults only")
	parser.add_argument('audio_files', nargs='+', help='audio tracks to mix')
	args = parser.parse_args(argv)
	return args

#============================================

def main(argv: list = None) -> int:
	args = parse_args(argv)
	try:
		config = configlib.init_config(args.config_file)
	except RuntimeError as exc:
		utils.error(str(exc))
		return 1
	ffmpeg = config.get("programs.ffmpeg") or "ffmpeg"
	silences = silence.detect_silences(ffmpeg, args.audio_files)
	for line in silence.merge_silences(sys.stdin, silences):
		sys.stdout.write(line)
	return 0

#============================================

if __name__ == '__main__':
	sys.exit(main())
