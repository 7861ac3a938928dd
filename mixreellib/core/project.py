#!/usr/bin/env python3

import logging
from mixreellib.core import composition
from mixreellib.core import frames
from mixreellib.core.loader import ConfigLoader
from mixreellib.core.timeline import TimelinePlanner
from mixreellib.media.sources import SourceLoader

logger = logging.getLogger(__name__)

STATUS_IDLE = "idle"
STATUS_LOADING = "loading"
STATUS_READY = "ready"
STATUS_FAILED = "failed"

#============================================

class MixreelProject():
	def __init__(self, config_file: str, workers: int = 4, source_loader=None):
		self.config_file = config_file
		self.workers = workers
		self.source_loader = source_loader
		self.config = None
		self.sources = None
		self.schedule = None
		self.status = STATUS_IDLE
		self.status_text = ""

	#============================
	def build(self):
		"""
		Load the document, load every source, and compile the schedule.

		Status ends as ready or failed; a failure is re-raised after the
		status is recorded.
		"""
		self.schedule = None
		self._set_status(STATUS_LOADING, "Loading media configuration...")
		try:
			self.config = ConfigLoader(self.config_file).load()
			loader = self.source_loader
			if loader is None:
				loader = SourceLoader(self.config.base_dir, workers=self.workers)
			self._set_status(STATUS_LOADING,
				f"Loading {len(self.config.playlist) + len(self.config.tracks)} sources...")
			self.sources = loader.load(self.config)
			self._set_status(STATUS_LOADING, "Building schedule...")
			self.schedule = TimelinePlanner(self.config, self.sources).plan()
		except Exception as exc:
			self.schedule = None
			self._set_status(STATUS_FAILED, f"Error loading composition: {exc}")
			logger.error("build failed: %s", exc)
			raise
		self._set_status(STATUS_READY,
			f"Ready: {frames.format_clock(self.schedule.total_seconds)} total")
		return self.schedule

	#============================
	def _set_status(self, status: str, text: str) -> None:
		self.status = status
		self.status_text = text
		logger.debug("status %s: %s", status, text)

	#============================
	def mount(self, target) -> list:
		if self.schedule is None:
			raise RuntimeError("schedule has not been built")
		return composition.mount(self.schedule, target)

	#============================
	def source_for(self, entry):
		if entry.kind == 'video':
			return self.sources.video_sources[entry.source_index]
		if entry.kind == 'image':
			return self.sources.image_sources[entry.source_index]
		return self.sources.track_sources[entry.source_index]

	#============================
	def summary(self) -> dict:
		if self.schedule is None:
			raise RuntimeError("schedule has not been built")
		plan = self.schedule.to_dict()
		groups = (
			('visual_entries', self.schedule.visual_entries),
			('audio_entries', self.schedule.audio_entries),
		)
		for key, entries in groups:
			for entry_dict, entry in zip(plan[key], entries):
				entry_dict['file'] = self.source_for(entry).handle
		return {
			'config': self.config_file,
			'id': self.config.config_id,
			'loop_enabled': self.config.loop_enabled,
			'volume': self.config.volume,
			'schedule': plan,
		}
