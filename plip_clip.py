#!/usr/bin/env python3

"""
Clip the processed tracks of a capture according to its marks.
"""

# Standard Library
import sys

# local repo modules
from pliplib.core import config as configlib
from pliplib.core import utils
from pliplib.core.clip import Clipper

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = utils.ArgumentParser(description="Clip processed tracks")
	parser.add_argument('-v', '--verbose', dest='verbose', action='store_true',
		help='verbose output')
	parser.add_argument('-c', '--cleanup', dest='cleanup', action='store_true',
		help='remove clipped files instead of clipping')
	parser.add_argument('-C', '--config', dest='config_file',
		help="config file, or '-' for the built-in defaults only")
	parser.add_argument('-i', '--input-file', dest='input_option',
		help='capture file')
	parser.add_argument('-m', '--marks-file', dest='marks_option',
		help='marks file, defaults to the input name with .mark')
	parser.add_argument('positional', nargs='*',
		help='capture file, then marks file')
	args = parser.parse_args(argv)
	args.input_file = args.input_option
	args.marks_file = args.marks_option
	extra = list(args.positional)
	if args.input_file is None and len(extra) > 0:
		args.input_file = extra.pop(0)
	if args.marks_file is None and len(extra) > 0:
		args.marks_file = extra.pop(0)
	if len(extra) > 0 or args.input_file is None:
		parser.error("expected one capture file and at most one marks file")
	return args

#============================================

def main(argv: list = None) -> int:
	args = parse_args(argv)
	utils.set_verbose(args.verbose)
	try:
		config = configlib.init_config(args.config_file)
	except RuntimeError as exc:
		utils.error(str(exc))
		return 1
	Clipper(config, args.input_file, args.marks_file, cleanup=args.cleanup).run()
	return 0

#============================================

if __name__ == '__main__':
	sys.exit(main())
