#!/usr/bin/env python3

"""
Mix a video file with audio tracks: plip_mix.py out.mkv video.mkv a.wav b.wav
"""

# Standard Library
import sys

# local repo modules
from pliplib.core import config as configlib
from pliplib.core import mix
from pliplib.core import utils

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.

	Output options are given as '-o <options...> ;' and are split off
	before argparse sees the rest.
	"""
	if argv is None:
		argv = sys.argv[1:]
	(argv, out_options) = mix.split_output_options(list(argv))
	parser = utils.ArgumentParser(description="Mix video and audio tracks",
		epilog="-o|--output-options <options> ; : ffmpeg output options, "
		"ending with a single ';' argument")
	parser.add_argument('-c', '--config', dest='config_file',
		help="config file, or '-' for the built-in defaults only")
	parser.add_argument('-v', '--verbose', dest='verbose', action='store_true',
		help='verbose output')
	parser.add_argument('-V', '--video-filter', dest='video_filters',
		default=mix.NULL_VIDEO_FILTER, help='ffmpeg video filters')
	parser.add_argument('-A', '--audio-filter', dest='audio_filters', nargs=2,
		action='append', default=[], metavar=('TRACK', 'FILTERS'),
		help='ffmpeg audio filters for one audio track, 0-indexed')
	parser.add_argument('out_file', help='output file')
	parser.add_argument('video_file', help='video input')
	parser.add_argument('audio_files', nargs='*', help='audio inputs')
	args = parser.parse_args(argv)
	args.out_options = out_options
	args.audio_overrides = [(utils.parse_leading_int(track), chain)
		for (track, chain) in args.audio_filters]
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
	code = mix.run_mix(config, args.out_file, args.video_file, args.audio_files,
		args.video_filters, args.audio_overrides, args.out_options)
	if code != 0:
		return 1
	return 0

#============================================

if __name__ == '__main__':
	sys.exit(main())
