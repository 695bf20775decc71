#!/usr/bin/env python3

"""
Split a capture into per-track audio files and video track markers.
"""

# Standard Library
import sys

# local repo modules
from pliplib.core import config as configlib
from pliplib.core import utils
from pliplib.core.demux import Demuxer

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = utils.ArgumentParser(description="Demux a multi-track capture")
	parser.add_argument('-c', '--config', dest='config_file',
		help="config file, or '-' for the built-in defaults only")
	parser.add_argument('-v', '--verbose', dest='verbose', action='store_true',
		help='verbose output')
	parser.add_argument('-n', '--dry-run', dest='dry_run', action='store_true',
		help='list the tracks without extracting them')
	parser.add_argument('input_file', help='capture file')
	args = parser.parse_args(argv)
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
	Demuxer(config, args.input_file, dry_run=args.dry_run).run()
	return 0

#============================================

if __name__ == '__main__':
	sys.exit(main())
