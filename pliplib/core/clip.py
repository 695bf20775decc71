#!/usr/bin/env python3

"""
Clip every processed track according to a marks file.

One output set is made per restart segment; with more than one
segment the outputs get the segment number as a suffix.
"""

import glob
import os
import re
from pliplib.core import demux
from pliplib.core import marks as marklib
from pliplib.core import marktofilter
from pliplib.core import utils
from pliplib.media import ffmpeg

#============================================

DEINTERLACE_FILTER = "yadif=mode=send_field_nospatial:parity=tff,mcdeint=parity=tff"

#============================================

def default_marks_file(input_file: str) -> str:
	(stem, _) = os.path.splitext(input_file)
	return stem + ".mark"

#============================================

class SegmentGraphs():
	"""
	Filter graphs for one restart segment.
	"""
	def __init__(self, human: str, video30: str, video60: str, audio: str,
		voice: str, discard: str):
		self.human = human
		self.video30 = video30
		self.video60 = video60
		self.audio = audio
		self.voice = voice
		self.discard = discard

	#============================
	def video_for(self, fps: int) -> str:
		return self.video60 if fps == 60 else self.video30

	#============================
	def audio_for(self, ffclip: str) -> str:
		if ffclip == marktofilter.FF_KEEP:
			return self.voice
		if ffclip == marktofilter.FF_DISCARD:
			return self.discard
		return self.audio

#============================================

class Clipper():
	def __init__(self, config, input_file: str, marks_file: str = None,
		workdir: str = ".", cleanup: bool = False):
		self.config = config
		self.input_file = input_file
		self.marks_file = marks_file
		if self.marks_file is None:
			self.marks_file = default_marks_file(input_file)
		self.workdir = workdir
		self.cleanup = cleanup
		self.ffmpeg = config.get("programs.ffmpeg") or "ffmpeg"
		self.ffprobe = config.get("programs.ffprobe") or "ffprobe"
		self.aiformat = config.get("formats.aiformat") or "flac"

	#============================
	def _path(self, name: str) -> str:
		return os.path.join(self.workdir, name)

	#============================
	def _compile(self, **kwargs) -> str:
		options = marktofilter.options_from_config(self.config, **kwargs)
		return marktofilter.compile_marks(marklib.open_marks(self.marks_file),
			options)

	#============================
	def segment_graphs(self, chosen_restart: int) -> SegmentGraphs:
		return SegmentGraphs(
			human=self._compile(chosen_restart=chosen_restart),
			video30=self._compile(chosen_restart=chosen_restart, video="vid", fps=30),
			video60=self._compile(chosen_restart=chosen_restart, video="vid", fps=60),
			audio=self._compile(chosen_restart=chosen_restart, audio="0:a"),
			voice=self._compile(chosen_restart=chosen_restart, audio="0:a",
				ff_mode=marktofilter.FF_KEEP),
			discard=self._compile(chosen_restart=chosen_restart, audio="0:a",
				ff_mode=marktofilter.FF_DISCARD),
		)

	#============================
	def run(self) -> None:
		restart_count = marktofilter.count_restarts(
			marklib.open_marks(self.marks_file))
		for restart in range(restart_count + 1):
			suffix = ""
			if restart_count > 0:
				suffix = f"{restart + 1}"
			graphs = self.segment_graphs(restart)
			if not self.cleanup:
				with open(self._path(f"marks{suffix}.txt"), 'w') as marks_out:
					marks_out.write(graphs.human)
			for marker in sorted(glob.glob(self._path("*.track"))):
				self.clip_video(marker, suffix, graphs)
			pattern = self._path("*" + glob.escape(f"-proc.{self.aiformat}"))
			for audio_file in sorted(glob.glob(pattern)):
				self.clip_audio(audio_file, suffix, graphs)

	#============================
	def _remove_output(self, out_file: str) -> None:
		utils.status(f"Cleanup: {out_file}")
		utils.remove_file(out_file)

	#============================
	def video_args(self, marker_name: str, track_map: str, graph: str,
		track_base: str, out_file: str) -> list:
		config = self.config
		interlace = "null"
		if re.search(r"iv$", track_base):
			interlace = DEINTERLACE_FILTER
		extra = config.resolve("filters.video", track_base) or "null"
		args = [self.ffmpeg, "-nostdin", "-copyts", "-i", self.input_file,
			"-filter_complex",
			f"[{track_map}]null[vid];{graph};[vid]{interlace},{extra}[vid]",
			"-map", "[vid]"]
		vflags = config.resolve("formats.vflags", marker_name)
		if vflags is None:
			args += ["-c:v", config.resolve("formats.vcodec", marker_name) or "libx264",
				"-threads", "0", "-preset", "ultrafast"]
			vcrf = config.resolve("formats.vcrf", marker_name)
			vbr = config.resolve("formats.vbr", marker_name)
			if vcrf is not None:
				args += ["-crf", vcrf]
			elif vbr is not None:
				args += ["-b:v", vbr]
		else:
			args += vflags.split()
		args.append(out_file)
		return args

	#============================
	def clip_video(self, marker: str, suffix: str, graphs: SegmentGraphs) -> None:
		track_base = demux.track_base(marker)
		if track_base is None:
			return
		# per-track formats are conditioned on the bare marker name
		marker_name = os.path.basename(marker)
		vformat = self.config.resolve("formats.vformat", marker_name) or "mkv"
		out_file = self._path(f"{track_base}{suffix}.{vformat}")
		if self.cleanup:
			self._remove_output(out_file)
			return
		if os.path.exists(out_file):
			utils.status(f"Video track {track_base} already clipped ({out_file}).")
			return
		track_map = f"0:{demux.track_index(marker)}"
		flat = ffmpeg.parseFlat(ffmpeg.probeFlat(self.ffprobe, self.input_file))
		graph = graphs.video_for(ffmpeg.streamFps(flat)).strip()
		bypass = self.config.resolve("steps.videobypass", track_base)
		if bypass is not None:
			utils.runCmd([bypass, self.input_file,
				f"[{track_map}]null[vid];{graph}", out_file])
			return
		utils.status(f"Clipping video track {track_base} ({out_file}).")
		utils.runCmd(self.video_args(marker_name, track_map, graph, track_base,
			out_file))

	#============================
	def audio_args(self, audio_file: str, audio_base: str, graph: str,
		out_file: str) -> list:
		acodec = self.config.resolve("formats.acodec", audio_base) or "pcm_s16le"
		args = [self.ffmpeg, "-nostdin", "-i", audio_file,
			"-filter_complex", graph, "-map", "[aud]", "-c:a", acodec]
		abr = self.config.resolve("formats.abr", audio_base)
		if abr is not None:
			args += ["-b:a", abr]
		args.append(out_file)
		return args

	#============================
	def clip_audio(self, audio_file: str, suffix: str, graphs: SegmentGraphs) -> None:
		name = os.path.basename(audio_file)
		if name.startswith("noise-"):
			return
		match = re.match("^(.*)" + re.escape(f"-proc.{self.aiformat}") + "$", name)
		if match is None:
			return
		audio_base = match.group(1)
		ffclip = self.config.resolve("filters.ffclip", audio_base)
		aformat = self.config.resolve("formats.aformat", audio_base) or "wav"
		out_file = self._path(f"{audio_base}{suffix}.{aformat}")
		if self.cleanup:
			self._remove_output(out_file)
			return
		if os.path.exists(out_file):
			utils.status(f"Audio track {audio_base} already clipped ({out_file}).")
			return
		graph = graphs.audio_for(ffclip).strip()
		utils.status(f"Clipping audio track {audio_base} ({out_file}).")
		utils.runCmd(self.audio_args(audio_file, audio_base, graph, out_file))
