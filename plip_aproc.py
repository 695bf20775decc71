#!/usr/bin/env python3

"""
Denoise and filter every captured audio track, in parallel.
"""

# Standard Library
import sys

# PIP3 modules
import yaml

# local repo modules
from pliplib.core import config as configlib
from pliplib.core import utils
from pliplib.core.scheduler import TrackScheduler

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = utils.ArgumentParser(description="Per-track audio processing")
	parser.add_argument('-c', '--config', dest='config_file',
		help="config file, or '-' for the built-in defaults only")
	parser.add_argument('-v', '--verbose', dest='verbose', action='store_true',
		help='verbose output')
	parser.add_argument('-p', '--dump-plan', dest='dump_plan', action='store_true',
		help='print the planned track jobs and exit')
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
	scheduler = TrackScheduler(config)
	if args.dump_plan:
		plan = [job.describe() for job in scheduler.plan()]
		print(yaml.safe_dump({'tracks': plan}, sort_keys=False))
		return 0
	failed = scheduler.run()
	if len(failed) > 0:
		return 1
	return 0

#============================================

if __name__ == '__main__':
	sys.exit(main())
