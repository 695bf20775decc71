#!/usr/bin/env python3

import os
import re
import threading
from pliplib.core import utils
from pliplib.media import ffmpeg

#============================================

class StreamInfo():
	def __init__(self, index: int, codec_type: str, title: str):
		self.index = index
		self.codec_type = codec_type
		self.title = title

#============================================

def parse_streams(format_flat: dict, streams_flat: dict) -> list:
	"""
	Streams described by ffprobe's flat format and stream output.
	"""
	count = utils.parse_leading_int(format_flat.get("format.nb_streams"))
	streams = []
	for index in range(count):
		codec_type = streams_flat.get(f"streams.stream.{index}.codec_type", "")
		title = streams_flat.get(f"streams.stream.{index}.tags.title", "")
		streams.append(StreamInfo(index, codec_type, title))
	return streams

#============================================

def name_tracks(streams: list) -> list:
	"""
	Pair every audio/video stream with its track name.
	Untitled video is 'video', untitled audio is audio1, audio2, ...
	"""
	named = []
	others = 0
	for stream in streams:
		if stream.codec_type == "video":
			named.append((stream, stream.title or "video"))
		elif stream.codec_type == "audio":
			title = stream.title
			if title == "":
				others += 1
				title = f"audio{others}"
			named.append((stream, title))
	return named

#============================================

class Demuxer():
	def __init__(self, config, input_file: str, workdir: str = ".",
		dry_run: bool = False):
		self.config = config
		self.input_file = input_file
		self.workdir = workdir
		self.dry_run = dry_run
		self.ffmpeg = config.get("programs.ffmpeg") or "ffmpeg"
		self.ffprobe = config.get("programs.ffprobe") or "ffprobe"
		self.iformat = config.get("formats.aiformat") or "flac"
		self.icodec = config.get("formats.aicodec") or "flac"

	#============================
	def probe(self) -> list:
		format_flat = ffmpeg.parseFlat(ffmpeg.probeFlat(self.ffprobe,
			self.input_file, "-show_format"))
		streams_flat = ffmpeg.parseFlat(ffmpeg.probeFlat(self.ffprobe,
			self.input_file, "-show_streams"))
		streams = parse_streams(format_flat, streams_flat)
		utils.status(f"{len(streams)} streams")
		return streams

	#============================
	def run(self) -> None:
		named = name_tracks(self.probe())
		threads = []
		for (stream, title) in named:
			kind = "Video" if stream.codec_type == "video" else "Audio"
			if not self.config.read_bool("tracks.include", title):
				utils.status(f"{kind} track {title} ({stream.index}) excluded")
				continue
			utils.status(f"{kind} track {title} ({stream.index}) included")
			if self.dry_run:
				continue
			if stream.codec_type == "video":
				self.write_track_marker(title, stream.index)
				continue
			thread = threading.Thread(target=self.extract_audio,
				args=(stream.index, title), name=f"demux-{title}")
			thread.start()
			threads.append(thread)
		for thread in threads:
			thread.join()

	#============================
	def write_track_marker(self, title: str, index: int) -> None:
		marker = os.path.join(self.workdir, f"{title}.track")
		with open(marker, 'w') as marker_file:
			marker_file.write(f"{index}")

	#============================
	def extract_audio(self, index: int, title: str) -> None:
		raw_flac = os.path.join(self.workdir, f"{title}-raw.flac")
		out_name = os.path.join(self.workdir, f"{title}-raw.{self.iformat}")
		proc_name = os.path.join(self.workdir, f"{title}-proc.{self.iformat}")
		if os.path.exists(out_name) or os.path.exists(proc_name):
			utils.status(f"{title} already demuxed and/or processed.")
			return
		if os.path.exists(raw_flac):
			utils.status(f"Extracting {out_name} from {raw_flac}.")
			ffmpeg.reencodeAudio(self.ffmpeg, raw_flac, self.icodec, out_name)
			return
		utils.status(f"Extracting {out_name} from {self.input_file}.")
		ffmpeg.extractAudioTrack(self.ffmpeg, self.input_file, index,
			self.config.get("filters.resample"), self.icodec, out_name)

#============================================

def track_index(marker_file: str) -> int:
	with open(marker_file, 'r') as handle:
		return utils.parse_leading_int(handle.read())

#============================================

def track_base(marker_file: str):
	match = re.match(r"^(.*)\.track$", os.path.basename(marker_file))
	if match is None:
		return None
	return match.group(1)
