#!/usr/bin/env python3

"""
Mix a video file and any number of audio tracks into one output.
"""

from pliplib.core import utils

#============================================

NULL_VIDEO_FILTER = "null"
NULL_AUDIO_FILTER = "anull"
# one second of silence when there is nothing to mix
SILENT_AUDIO = "aevalsrc=0:s=48000:d=1[aud]"
OPTIONS_END = ";"

#============================================

def split_output_options(argv: list) -> tuple:
	"""
	Pull '-o/--output-options ... ;' groups out of an argument list.

	Returns:
		tuple: (remaining arguments, output options)
	"""
	remaining = []
	options = []
	index = 0
	while index < len(argv):
		arg = argv[index]
		index += 1
		if arg not in ("-o", "--output-options"):
			remaining.append(arg)
			continue
		while index < len(argv) and argv[index] != OPTIONS_END:
			options.append(argv[index])
			index += 1
		index += 1
	return (remaining, options)

#============================================

def audio_filter_list(track_count: int, overrides: list = None) -> list:
	"""
	One filter chain per audio track, anull unless overridden.

	Args:
		track_count: number of audio inputs.
		overrides: (track index, filters) pairs, 0-indexed.
	"""
	filters = [NULL_AUDIO_FILTER] * track_count
	for (index, chain) in overrides or []:
		if 0 <= index < track_count:
			filters[index] = chain
	return filters

#============================================

def build_filter_graph(video_filters: str, audio_filters: list) -> str:
	graph = f"[0:v]{video_filters}[vid]"
	for (index, chain) in enumerate(audio_filters):
		graph += f";[{index + 1}:a]{chain}[aud{index}]"
	if len(audio_filters) == 0:
		return graph + ";" + SILENT_AUDIO
	pads = "".join(f"[aud{index}]" for index in range(len(audio_filters)))
	return graph + f";{pads}amix={len(audio_filters)}[aud]"

#============================================

def mix_args(ffmpeg: str, out_file: str, video_file: str, audio_files: list,
	video_filters: str = NULL_VIDEO_FILTER, audio_overrides: list = None,
	out_options: list = None) -> list:
	audio_filters = audio_filter_list(len(audio_files), audio_overrides)
	args = [ffmpeg, "-i", video_file]
	for audio_file in audio_files:
		args += ["-i", audio_file]
	args += ["-filter_complex", build_filter_graph(video_filters, audio_filters),
		"-map", "[vid]", "-map", "[aud]"]
	args += list(out_options or [])
	args.append(out_file)
	return args

#============================================

def run_mix(config, out_file: str, video_file: str, audio_files: list,
	video_filters: str = NULL_VIDEO_FILTER, audio_overrides: list = None,
	out_options: list = None) -> int:
	ffmpeg = config.get("programs.ffmpeg") or "ffmpeg"
	utils.status(f"Mixing {len(audio_files)} audio tracks into {out_file}.")
	(code, _) = utils.runCmd(mix_args(ffmpeg, out_file, video_file, audio_files,
		video_filters, audio_overrides, out_options))
	return code
