#!/usr/bin/env python3

"""
Find the quietest second of a raw float32 stream, for noise profiling.
"""

# Standard Library
import sys

# local repo modules
from pliplib.core import utils
from pliplib.media import noise

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = utils.ArgumentParser(description="Noise floor sampler")
	parser.add_argument('-i', '--input', dest='input_file',
		help='raw float32 input, stdin by default')
	parser.add_argument('-o', '--output', dest='output_file',
		help='raw float32 output, stdout by default')
	parser.add_argument('-c', '--channels', dest='channels_option', type=int,
		help='interleaved channel count')
	parser.add_argument('channels', nargs='?', type=int, default=None,
		help='interleaved channel count')
	args = parser.parse_args(argv)
	if args.channels_option is not None:
		args.channels = args.channels_option
	if args.channels is None:
		args.channels = 1
	if args.channels < 1:
		parser.error("channel count must be positive")
	return args

#============================================

def main(argv: list = None) -> int:
	args = parse_args(argv)
	in_stream = sys.stdin.buffer
	out_stream = sys.stdout.buffer
	try:
		if args.input_file is not None:
			in_stream = open(args.input_file, 'rb')
		if args.output_file is not None:
			out_stream = open(args.output_file, 'wb')
	except OSError as exc:
		utils.error(str(exc))
		if in_stream is not sys.stdin.buffer:
			in_stream.close()
		return 1
	try:
		noise.find_noise(in_stream, out_stream, args.channels)
	finally:
		if in_stream is not sys.stdin.buffer:
			in_stream.close()
		if out_stream is not sys.stdout.buffer:
			out_stream.close()
	return 0

#============================================

if __name__ == '__main__':
	sys.exit(main())
