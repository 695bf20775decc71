#!/usr/bin/env python3

"""
Per-track audio processing, one thread per track.

Every track runs its own denoise and filter stages. A filter may
depend on other tracks (a sidechain, say); the stage then waits for
those tracks to finish and gets their processed files as $(dep1),
$(dep2), ... in its filter template.
"""

import glob
import os
import re
import threading
from pliplib.core import utils
from pliplib.media import ffmpeg
from pliplib.media import noise

#============================================

SYNC_SUFFIX = "-sync.flac"
NULL_FILTER = "null"
NOISER_DISABLED = ("", "n", "no", "none", "0", "false", "off")

#============================================

class TrackStage():
	def __init__(self, index: int, filter_name: str, level: float,
		dependencies: list):
		self.index = index
		self.filter_name = filter_name
		self.level = level
		self.dependencies = dependencies

	#============================
	def is_null(self) -> bool:
		return self.filter_name == NULL_FILTER

	#============================
	def describe(self) -> dict:
		data = {'step': self.index, 'filter': self.filter_name}
		if self.level != 0.0:
			data['level'] = self.level
		if len(self.dependencies) > 0:
			data['dependencies'] = list(self.dependencies)
		return data

#============================================

class TrackJob():
	"""
	One discovered track and its completion signal.

	The signal is clear from creation until the job ends, whatever
	happened inside it; dependents wait on it.
	"""
	def __init__(self, base: str, input_path: str, delete_after: bool,
		stages: list = None):
		self.base = base
		self.input_path = input_path
		self.delete_after = delete_after
		self.stages = stages if stages is not None else []
		self.done = threading.Event()
		self.error = None

	#============================
	def dependency_names(self) -> set:
		names = set()
		for stage in self.stages:
			names.update(stage.dependencies)
		return names

	#============================
	def describe(self) -> dict:
		return {
			'track': self.base,
			'input': self.input_path,
			'delete_input': self.delete_after,
			'dependencies': sorted(self.dependency_names()),
			'stages': [stage.describe() for stage in self.stages],
		}

#============================================

class TrackScheduler():
	def __init__(self, config, workdir: str = "."):
		self.config = config
		self.workdir = workdir
		self.ffmpeg = config.get("programs.ffmpeg") or "ffmpeg"
		self.iformat = config.get("formats.aiformat") or "flac"
		self.icodec = config.get("formats.aicodec") or "flac"
		self.jobs = {}

	#============================
	def _path(self, name: str) -> str:
		return os.path.join(self.workdir, name)

	#============================
	def output_path(self, base: str) -> str:
		return self._path(f"{base}-proc.{self.iformat}")

	#============================
	def discover(self) -> list:
		"""
		Raw captures (deleted when done) and synced captures (kept).

		Returns:
			list: (base, path, delete_after) tuples.
		"""
		raw_suffix = f"-raw.{self.iformat}"
		found = []
		for (suffix, delete_after) in ((raw_suffix, True), (SYNC_SUFFIX, False)):
			pattern = self._path("*" + glob.escape(suffix))
			strip_re = re.compile("^(.+)" + re.escape(suffix) + "$")
			for path in sorted(glob.glob(pattern)):
				match = strip_re.match(os.path.basename(path))
				if match is None:
					continue
				found.append((match.group(1), path, delete_after))
		return found

	#============================
	def plan_stages(self, base: str) -> list:
		config = self.config
		stages = []
		steps = config.read_int("steps.aproc", base)
		for index in range(1, steps + 1):
			filter_name = config.resolve(f"filters.aproc{index}", base)
			if filter_name is None:
				filter_name = NULL_FILTER
			level = config.read_float(f"filters.alevel{index}", base)
			dependencies = []
			if filter_name != NULL_FILTER:
				raw_deps = config.resolve(f"filters.{filter_name}deps", base)
				if raw_deps is not None:
					dependencies = [dep.strip() for dep in raw_deps.split("\n")
						if dep.strip() != ""]
			stages.append(TrackStage(index, filter_name, level, dependencies))
		return stages

	#============================
	def plan(self) -> list:
		"""
		Build a job per discovered track; nothing runs yet.
		"""
		self.jobs = {}
		for (base, path, delete_after) in self.discover():
			if base in self.jobs:
				utils.warning(f"track {base} found twice, keeping {self.jobs[base].input_path}")
				continue
			self.jobs[base] = TrackJob(base, path, delete_after,
				self.plan_stages(base))
		return list(self.jobs.values())

	#============================
	def run(self) -> list:
		"""
		Process all tracks in parallel.

		Returns:
			list: jobs that raised an error.
		"""
		jobs = self.plan()
		if len(jobs) == 0:
			utils.status("no tracks to process")
			return []
		# every signal exists and is clear before any worker starts
		barrier = threading.Barrier(len(jobs))
		threads = []
		for job in jobs:
			thread = threading.Thread(target=self._worker, args=(job, barrier),
				name=f"aproc-{job.base}")
			threads.append(thread)
		for thread in threads:
			thread.start()
		for thread in threads:
			thread.join()
		return [job for job in jobs if job.error is not None]

	#============================
	def _worker(self, job: TrackJob, barrier: threading.Barrier) -> None:
		try:
			barrier.wait()
			self.process(job)
		except Exception as exc:
			job.error = exc
			utils.error(f"{job.base}: {exc}")
		finally:
			job.done.set()

	#============================
	def wait_for(self, job: TrackJob, dependency: str) -> None:
		other = self.jobs.get(dependency)
		if other is None or other is job:
			return
		utils.debug(f"^PLIP: {job.base}: waiting for {dependency}")
		other.done.wait()

	#============================
	def process(self, job: TrackJob) -> None:
		base = job.base
		out_file = self.output_path(base)
		if os.path.exists(out_file):
			utils.status(f"{base} already processed, skipping.")
			return
		input_path = os.path.abspath(job.input_path)
		last_file = self._noise_reduce(base, input_path)
		utils.debug(f"^PLIP: {base}: {len(job.stages)} audio processing steps")
		if len(job.stages) == 0:
			ffmpeg.convertAudio(self.ffmpeg, last_file, self.icodec, out_file)
			utils.remove_file(last_file)
		for stage in job.stages:
			utils.debug(f"^PLIP: {base}: Audio processing step {stage.index}: {stage.filter_name}")
			if stage.index == len(job.stages):
				next_file = out_file
			else:
				next_file = self._path(f"{base}-aproc{stage.index}.{self.iformat}")
			self._run_stage(job, stage, last_file, next_file, next_file == out_file)
			last_file = next_file
		if job.delete_after:
			utils.remove_file(input_path)

	#============================
	def _noise_reduce(self, base: str, input_path: str) -> str:
		noiser_file = os.path.abspath(self._path(f"{base}-noiser.{self.iformat}"))
		noise_file = os.path.abspath(self._path(f"{base}-noise.f32"))
		noiser = self.config.resolve("steps.noiser", base)
		if noiser is None or noiser.strip().lower() in NOISER_DISABLED:
			utils.remove_file(noiser_file)
			utils.link_or_copy(input_path, noiser_file)
			return noiser_file
		noiser = noiser.strip()
		learn = self.config.read_bool("steps.noiserlearn", base)
		if learn and not os.path.exists(noise_file):
			noise.learnNoise(self.ffmpeg, input_path, noise_file)
		if not os.path.exists(noiser_file):
			profile = noise_file if learn else None
			noise.runDenoise(self.ffmpeg, noiser, input_path, self.icodec,
				noiser_file, noise_file=profile)
		if learn:
			utils.remove_file(noise_file)
		return noiser_file

	#============================
	def _run_stage(self, job: TrackJob, stage: TrackStage, last_file: str,
		next_file: str, final: bool) -> None:
		if stage.is_null():
			if final:
				ffmpeg.convertAudio(self.ffmpeg, last_file, self.icodec, next_file)
				utils.remove_file(last_file)
			else:
				try:
					os.replace(last_file, next_file)
				except FileNotFoundError:
					utils.warning(f"{job.base}: {last_file} is missing")
			return
		variables = {}
		if stage.level != 0.0:
			gain = ffmpeg.normLevel(self.ffmpeg, last_file, stage.level)
			variables['level'] = f"{gain:f}"
		for (number, dependency) in enumerate(stage.dependencies, start=1):
			self.wait_for(job, dependency)
			variables[f"dep{number}"] = self.output_path(dependency)
		audio_filter = self.config.resolve(f"filters.{stage.filter_name}",
			job.base, variables)
		if audio_filter is None:
			audio_filter = "anull"
		ffmpeg.runAudioFilter(self.ffmpeg, last_file, audio_filter, self.icodec,
			next_file)
		utils.remove_file(last_file)
