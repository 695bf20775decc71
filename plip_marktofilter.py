#!/usr/bin/env python3

"""
Turn a marks file into ffmpeg filter graphs, a restart count, or a
human-readable list of annotations.
"""

# Standard Library
import sys

# local repo modules
from pliplib.core import config as configlib
from pliplib.core import marks as marklib
from pliplib.core import marktofilter
from pliplib.core import utils

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = utils.ArgumentParser(description="Marks to ffmpeg filter graph")
	parser.add_argument('-c', '--config', dest='config_file',
		help="config file, or '-' for the built-in defaults only")
	parser.add_argument('-i', '--in-file', '--input-file', dest='in_file',
		default="out.mark", help="marks file, '-' for stdin")
	parser.add_argument('-o', '--out-file', '--output-file', dest='out_file',
		help='output file, stdout by default')
	parser.add_argument('-r', '--chosen-restart', dest='chosen_restart',
		type=int, default=None, help='restart segment to compile, from 1')
	parser.add_argument('--count-restarts', dest='count_restarts',
		action='store_true', help='only print the number of restarts')
	parser.add_argument('-a', '--audio', dest='audio',
		help='input audio pad, emits the [aud] graph')
	parser.add_argument('-v', '--video', dest='video',
		help='input video pad, emits the [vid] graph')
	parser.add_argument('-k', '--audio-keep', dest='audio_keep',
		action='store_true', help='keep fast-forwarded audio at normal speed')
	parser.add_argument('--audio-discard', dest='audio_discard',
		action='store_true', help='silence fast-forwarded audio')
	parser.add_argument('--fps', dest='fps', type=int,
		default=marktofilter.DEFAULT_FPS, help='output frame rate')
	parser.add_argument('--arate', dest='arate', type=int,
		default=marktofilter.DEFAULT_ARATE, help='output audio sample rate')
	args = parser.parse_args(argv)
	return args

#============================================

def build_options(args, config) -> marktofilter.FilterOptions:
	ff_mode = marktofilter.FF_RESYNTHESIZE
	if args.audio_discard:
		ff_mode = marktofilter.FF_DISCARD
	elif args.audio_keep:
		ff_mode = marktofilter.FF_KEEP
	chosen_restart = 0
	if args.chosen_restart is not None:
		chosen_restart = args.chosen_restart - 1
	return marktofilter.options_from_config(config,
		audio=args.audio, video=args.video,
		chosen_restart=chosen_restart,
		count_restarts=args.count_restarts,
		ff_mode=ff_mode, fps=args.fps, arate=args.arate)

#============================================

def main(argv: list = None) -> int:
	args = parse_args(argv)
	try:
		config = configlib.init_config(args.config_file)
		options = build_options(args, config)
	except RuntimeError as exc:
		utils.error(str(exc))
		return 1
	if args.in_file == "-":
		marks = marklib.read_marks(sys.stdin)
	else:
		marks = marklib.open_marks(args.in_file)
	text = marktofilter.compile_marks(marks, options)
	if args.out_file is None:
		sys.stdout.write(text)
		return 0
	try:
		with open(args.out_file, 'w') as out_handle:
			out_handle.write(text)
	except OSError as exc:
		utils.error(f"{args.out_file}: {exc}")
		return 1
	return 0

#============================================

if __name__ == '__main__':
	sys.exit(main())
