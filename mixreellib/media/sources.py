#!/usr/bin/env python3

"""
Default source loader: resolves playlist and track locators into loaded
source handles, probing intrinsic durations with ffprobe.
"""

# Standard Library
import json
import logging
import shutil
import subprocess
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Tuple

# PIP3 modules
import PIL.Image

# local repo modules
from mixreellib.core import utils
from mixreellib.core.errors import SourceLoadError

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 30

#============================================

@dataclass(frozen=True)
class ResolvedSource:
	kind: str
	duration: Optional[float]
	handle: str

#============================================

@dataclass(frozen=True)
class LoadedSources:
	video_sources: Tuple[ResolvedSource, ...] = ()
	image_sources: Tuple[ResolvedSource, ...] = ()
	track_sources: Tuple[ResolvedSource, ...] = ()

#============================================

def probe_duration(media_file: str) -> Optional[float]:
	"""
	Return the container duration in seconds, or None when unknown.
	"""
	if shutil.which('ffprobe') is None:
		logger.warning("ffprobe not found, duration of %s is unknown", media_file)
		return None
	cmd = ['ffprobe', '-v', 'error', '-show_entries', 'format=duration',
		'-of', 'json', media_file]
	try:
		proc = utils.runCmd(cmd, timeout=PROBE_TIMEOUT_SECONDS)
	except subprocess.TimeoutExpired:
		logger.warning("ffprobe timed out on %s", media_file)
		return None
	if proc.returncode != 0:
		logger.warning("ffprobe failed on %s: %s", media_file, proc.stderr.strip())
		return None
	try:
		data = json.loads(proc.stdout)
		return float(data['format']['duration'])
	except (ValueError, KeyError, TypeError):
		logger.warning("ffprobe returned no duration for %s", media_file)
		return None

#============================================

class SourceLoader():
	def __init__(self, base_dir: str = None, workers: int = 4, probe=None):
		self.base_dir = base_dir
		self.workers = max(1, int(workers))
		self.probe = probe or probe_duration

	#============================
	def load(self, config) -> LoadedSources:
		base_dir = self.base_dir or config.base_dir
		jobs = []
		for item in config.playlist:
			jobs.append((item.kind, utils.resolve_locator(item.locator, base_dir)))
		for track in config.tracks:
			jobs.append(('audio', utils.resolve_locator(track.locator, base_dir)))
		logger.info("loading %d sources with %d worker(s)", len(jobs), self.workers)
		# map() yields in submission order, so results stay aligned with jobs
		with ThreadPoolExecutor(max_workers=self.workers) as executor:
			results = list(executor.map(self._load_one, jobs))
		failures = [result for result in results if not isinstance(result, ResolvedSource)]
		if len(failures) > 0:
			raise SourceLoadError(failures)
		video_sources = tuple(src for src in results[:len(config.playlist)]
			if src.kind == 'video')
		image_sources = tuple(src for src in results[:len(config.playlist)]
			if src.kind == 'image')
		track_sources = tuple(results[len(config.playlist):])
		return LoadedSources(video_sources, image_sources, track_sources)

	#============================
	def _load_one(self, job: tuple):
		(kind, media_file) = job
		try:
			if kind == 'image':
				return self._load_image(media_file)
			return self._load_timed(kind, media_file)
		except (OSError, RuntimeError, SyntaxError, ValueError,
			PIL.Image.DecompressionBombError) as exc:
			logger.error("failed to load %s %s: %s", kind, media_file, exc)
			return (media_file, str(exc))

	#============================
	def _load_timed(self, kind: str, media_file: str) -> ResolvedSource:
		utils.ensure_file_exists(media_file)
		duration = self.probe(media_file)
		return ResolvedSource(kind=kind, duration=duration, handle=media_file)

	#============================
	def _load_image(self, media_file: str) -> ResolvedSource:
		utils.ensure_file_exists(media_file)
		with PIL.Image.open(media_file) as image:
			image.verify()
		return ResolvedSource(kind='image', duration=None, handle=media_file)
