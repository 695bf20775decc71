#!/usr/bin/env python3

import os
import re
from pliplib.core import utils

#============================================

# audio is always brought to this layout between stages
SAMPLE_RATE = 48000
CHANNELS = 2

FRAME_RATE_KEY_RE = re.compile(r"^streams\.stream\.(\d+)\.r_frame_rate$")

#============================================

def probeFlat(ffprobe: str, mediafile: str, section: str = "-show_streams") -> str:
	"""
	ffprobe output in flat key=value form.
	"""
	(_, text) = utils.runCmd([ffprobe, "-print_format", "flat", section,
		mediafile], capture='stdout')
	if text is None:
		return ""
	return text

#============================================

def parseFlat(text: str) -> dict:
	"""
	Parse ffprobe flat output into a dict of unquoted strings.
	"""
	data = {}
	for line in text.splitlines():
		if '=' not in line:
			continue
		(key, value) = line.split('=', 1)
		value = value.strip()
		if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
			value = value[1:-1]
		data[key.strip()] = value
	return data

#============================================

def streamFps(flat: dict) -> int:
	"""
	Frame rate class of the first stream that has one, 30 or 60.
	"""
	rates = []
	for (key, rate) in flat.items():
		match = FRAME_RATE_KEY_RE.match(key)
		if match is not None:
			rates.append((int(match.group(1)), rate))
	for (_, rate) in sorted(rates):
		if "0/0" in rate:
			continue
		if '/' in rate:
			(num, den) = rate.split('/', 1)
			value = utils.parse_leading_float(num)
			den_value = utils.parse_leading_float(den)
			if den_value != 0:
				value /= den_value
		else:
			value = utils.parse_leading_float(rate)
		if value >= 40:
			return 60
		return 30
	return 30

#============================================

def parseIntegratedLoudness(summary: str):
	"""
	The 'Input Integrated' value of a loudnorm summary, or None.
	"""
	for line in summary.splitlines():
		if not line.startswith("Input Integrated:"):
			continue
		match = re.search(r": (.*)$", line)
		if match is None:
			return None
		return utils.parse_leading_float(match.group(1))
	return None

#============================================

def normLevel(ffmpeg: str, audiofile: str, target: float = -18.0) -> float:
	"""
	Gain in dB that brings a file's integrated loudness to target.
	"""
	(_, summary) = utils.runCmd([ffmpeg, "-i", audiofile,
		"-af", "loudnorm=print_format=summary",
		"-f", "wav", "-y", os.devnull], capture='stderr')
	loudness = parseIntegratedLoudness(summary or "")
	if loudness is None:
		return 0.0
	if not utils.is_finite_normal(loudness):
		loudness = target
	return target - loudness

#============================================

def runAudioFilter(ffmpeg: str, infile: str, audio_filter: str, codec: str,
	outfile: str) -> int:
	(code, _) = utils.runCmd([ffmpeg, "-i", infile,
		"-filter_complex", f"[0:a]{audio_filter}[aud]",
		"-map", "[aud]",
		"-c:a", codec,
		"-y", outfile])
	return code

#============================================

def convertAudio(ffmpeg: str, infile: str, codec: str, outfile: str) -> int:
	(code, _) = utils.runCmd([ffmpeg, "-i", infile, "-c:a", codec, outfile])
	return code

#============================================

def rawDecodeCmd(ffmpeg: str, infile: str, sample_format: str) -> list:
	"""
	ffmpeg arguments decoding a file to raw stereo samples on stdout.
	"""
	return [ffmpeg, "-i", infile, "-f", sample_format,
		"-ac", str(CHANNELS), "-ar", str(SAMPLE_RATE), "-"]

#============================================

def rawEncodeCmd(ffmpeg: str, sample_format: str, codec: str, outfile: str) -> list:
	return [ffmpeg, "-f", sample_format, "-ac", str(CHANNELS),
		"-ar", str(SAMPLE_RATE), "-i", "-", "-c:a", codec, outfile]

#============================================

def extractAudioTrack(ffmpeg: str, infile: str, trackno: int,
	resample_filter: str, codec: str, outfile: str) -> int:
	args = [ffmpeg, "-nostdin", "-copyts", "-i", infile,
		"-map", f"0:{trackno}"]
	if resample_filter is not None:
		args += ["-af", resample_filter]
	args += ["-c:a", codec, "-ar", str(SAMPLE_RATE), "-ac", str(CHANNELS), outfile]
	(code, _) = utils.runCmd(args)
	return code

#============================================

def reencodeAudio(ffmpeg: str, infile: str, codec: str, outfile: str) -> int:
	(code, _) = utils.runCmd([ffmpeg, "-nostdin", "-i", infile, "-c:a", codec,
		"-ar", str(SAMPLE_RATE), "-ac", str(CHANNELS), outfile])
	return code
