#!/usr/bin/env python3

"""
Noise-floor sampling and denoise pipelines.

The sampler looks for the quietest one-second window of each channel in
a raw float32 stream; denoisers learn their noise profile from it.
"""

# PIP3 modules
import numpy

# local repo modules
from pliplib.core import utils
from pliplib.media import ffmpeg

#============================================

FRAME_SIZE = 48000
SAMPLE_DTYPE = numpy.dtype('<f4')

#============================================

class NoiseFloorFinder():
	"""
	Streaming search for the lowest-volume window per channel.
	Digital silence counts as 1 per sample so it is never chosen.
	"""
	def __init__(self, channels: int = 1, frame_size: int = FRAME_SIZE):
		if channels < 1:
			raise RuntimeError("channel count must be positive")
		self.channels = channels
		self.frame_size = frame_size
		self._pending = b""
		self._tail = numpy.zeros((0, channels), dtype=SAMPLE_DTYPE)
		self._best_volume = [numpy.inf] * channels
		self._best = [None] * channels

	#============================
	def feed(self, data: bytes) -> None:
		data = self._pending + data
		frame_bytes = SAMPLE_DTYPE.itemsize * self.channels
		usable = len(data) - (len(data) % frame_bytes)
		self._pending = data[usable:]
		if usable == 0:
			return
		samples = numpy.frombuffer(data[:usable], dtype=SAMPLE_DTYPE)
		samples = samples.reshape(-1, self.channels)
		window = numpy.concatenate([self._tail, samples])
		if len(window) >= self.frame_size:
			for channel in range(self.channels):
				self._scan(channel, window[:, channel])
		keep = self.frame_size - 1
		if keep > 0:
			self._tail = window[-keep:].copy()
		else:
			self._tail = window[:0].copy()

	#============================
	def _scan(self, channel: int, column: numpy.ndarray) -> None:
		volume = numpy.abs(column).astype(numpy.float64)
		volume[column == 0] = 1.0
		summed = numpy.concatenate(([0.0], numpy.cumsum(volume)))
		sums = summed[self.frame_size:] - summed[:-self.frame_size]
		start = int(numpy.argmin(sums))
		if sums[start] < self._best_volume[channel]:
			self._best_volume[channel] = float(sums[start])
			self._best[channel] = column[start:start + self.frame_size].copy()

	#============================
	def result(self) -> numpy.ndarray:
		"""
		Selected windows as a (frame_size, channels) float32 array.
		"""
		selected = numpy.zeros((self.frame_size, self.channels), dtype=SAMPLE_DTYPE)
		for channel in range(self.channels):
			chosen = self._best[channel]
			if chosen is None:
				# shorter than one window, keep what there is
				chosen = self._tail[:, channel]
			selected[:len(chosen), channel] = chosen
		return selected

	#============================
	def to_bytes(self) -> bytes:
		return self.result().astype(SAMPLE_DTYPE).tobytes()

#============================================

def find_noise(in_stream, out_stream, channels: int = 1,
	frame_size: int = FRAME_SIZE) -> None:
	"""
	Read raw float32 samples from in_stream, write the noise sample.
	"""
	finder = NoiseFloorFinder(channels, frame_size)
	chunk_size = frame_size * channels * SAMPLE_DTYPE.itemsize * 4
	while True:
		data = in_stream.read(chunk_size)
		if not data:
			break
		finder.feed(data)
	out_stream.write(finder.to_bytes())
	out_stream.flush()

#============================================

def learnNoise(ffmpeg_program: str, infile: str, noise_file: str,
	findnoise_program: str = "plip-findnoise") -> list:
	"""
	Sample a file's noise floor into a float32 noise profile.
	"""
	decode = ffmpeg.rawDecodeCmd(ffmpeg_program, infile, "f32le")
	sampler = [findnoise_program, "-o", noise_file, str(ffmpeg.CHANNELS)]
	return utils.runPipeline([decode, sampler])

#============================================

def denoiseSampleFormat(noiser: str) -> str:
	if noiser == "noiserepellent":
		return "f32le"
	return "s16le"

#============================================

def denoiseProgram(noiser: str) -> str:
	return f"plip-{noiser}denoise"

#============================================

def runDenoise(ffmpeg_program: str, noiser: str, infile: str, codec: str,
	outfile: str, noise_file: str = None) -> list:
	"""
	Decode, denoise and re-encode a track in one pipeline.
	"""
	sample_format = denoiseSampleFormat(noiser)
	decode = ffmpeg.rawDecodeCmd(ffmpeg_program, infile, sample_format)
	denoise = [denoiseProgram(noiser)]
	if noise_file is not None:
		denoise += ["-l", noise_file]
	denoise.append(str(ffmpeg.CHANNELS))
	encode = ffmpeg.rawEncodeCmd(ffmpeg_program, sample_format, codec, outfile)
	return utils.runPipeline([decode, denoise, encode])
