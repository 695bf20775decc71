#!/usr/bin/env python3

"""
Run the whole pipeline on one capture: demux, process, clip.
"""

# Standard Library
import sys

# local repo modules
from pliplib.core import config as configlib
from pliplib.core import utils
from pliplib.core.clip import Clipper
from pliplib.core.demux import Demuxer
from pliplib.core.scheduler import TrackScheduler

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = utils.ArgumentParser(description="plip post-production pipeline")
	parser.add_argument('-c', '--config', dest='config_file',
		help="config file, or '-' for the built-in defaults only")
	parser.add_argument('-v', '--verbose', dest='verbose', action='store_true',
		help='verbose output')
	parser.add_argument('-i', '--input-file', dest='input_option',
		help='capture file')
	parser.add_argument('input_file', nargs='?', default=None,
		help='capture file')
	args = parser.parse_args(argv)
	if args.input_option is not None:
		if args.input_file is not None:
			parser.error("only one capture file may be given")
		args.input_file = args.input_option
	if args.input_file is None:
		parser.error("a capture file is required")
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
	Demuxer(config, args.input_file).run()
	failed = TrackScheduler(config).run()
	Clipper(config, args.input_file).run()
	print("\nComplete.")
	if len(failed) > 0:
		return 1
	return 0

#============================================

if __name__ == '__main__':
	sys.exit(main())
