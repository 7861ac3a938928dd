#!/usr/bin/env python3

import dataclasses
import logging
import math
from fractions import Fraction

from mixreellib.core import utils
from mixreellib.core.durations import resolve_duration
from mixreellib.core.errors import ConfigError
from mixreellib.core.schedule import Schedule, TimelineEntry

logger = logging.getLogger(__name__)

MAX_AUDIO_ENTRIES = 100

#============================================

def build_visual_layout(items, video_sources, image_sources) -> tuple:
	"""
	Lay out playlist items back to back in playlist order.

	Args:
		items: playlist MediaItems, in play order.
		video_sources: ResolvedSources for the video items, in playlist order.
		image_sources: ResolvedSources for the image items, in playlist order.

	Returns:
		tuple: (entries, total_seconds)
	"""
	entries = []
	cursor = Fraction(0)
	counters = {'video': 0, 'image': 0}
	sources = {'video': video_sources, 'image': image_sources}
	for item in items:
		kind = item.kind
		if kind not in counters:
			raise RuntimeError(f"unsupported playlist item kind: {kind}")
		source_index = counters[kind]
		if source_index >= len(sources[kind]):
			raise RuntimeError(f"no loaded {kind} source for playlist item {item.item_id}")
		source = sources[kind][source_index]
		duration = resolve_duration(kind, source, item.duration)
		trim = None
		if kind == 'video':
			trim = (0.0, duration)
		entries.append(TimelineEntry(
			kind=kind,
			source_index=source_index,
			start_seconds=float(cursor),
			duration_seconds=duration,
			trim=trim,
		))
		counters[kind] += 1
		cursor += utils.to_fraction(duration)
	entries = assign_layers(entries)
	return (entries, float(cursor))

#============================================

def assign_layers(entries: list) -> list:
	"""
	Videos take layers [0, nVideo); images follow. Order within a group is
	playlist order, independent of interleaving.
	"""
	n_video = sum(1 for entry in entries if entry.kind == 'video')
	next_layer = {'video': 0, 'image': n_video}
	layered = []
	for entry in entries:
		layered.append(dataclasses.replace(entry, layer_index=next_layer[entry.kind]))
		next_layer[entry.kind] += 1
	return layered

#============================================

def build_audio_schedule(tracks, track_sources, total_seconds: float,
	loop_enabled: bool, volume: float = 1.0, layer_index: int = None) -> list:
	if loop_enabled and len(tracks) > 0:
		return _build_looped_audio(tracks, total_seconds, volume, layer_index)
	return _build_sequential_audio(tracks, track_sources, volume, layer_index)

#============================================

def _build_sequential_audio(tracks, track_sources, volume: float,
	layer_index: int) -> list:
	entries = []
	audio_delay = Fraction(0)
	for index in range(len(tracks)):
		source = None
		if index < len(track_sources):
			source = track_sources[index]
		duration = resolve_duration('audio', source)
		entries.append(TimelineEntry(
			kind='audio',
			source_index=index,
			start_seconds=float(audio_delay),
			duration_seconds=duration,
			layer_index=layer_index,
			volume=volume,
		))
		audio_delay += utils.to_fraction(duration)
	return entries

#============================================

def _build_looped_audio(tracks, total_seconds: float, volume: float,
	layer_index: int) -> list:
	durations = [utils.to_fraction(track.duration) for track in tracks]
	cycle = sum(durations, Fraction(0))
	if cycle <= 0 or min(durations) <= 0:
		raise ConfigError("audio loop cycle duration must be positive")
	total = utils.to_fraction(total_seconds)
	cycles_needed = math.ceil(total / cycle)
	logger.info("audio cycle %.3fs, composition %.3fs, %d cycle(s) needed",
		float(cycle), float(total), cycles_needed)
	entries = []
	audio_delay = Fraction(0)
	for cycle_index in range(cycles_needed):
		for track_index, duration in enumerate(durations):
			if audio_delay >= total:
				logger.info("audio loop reached composition end at %.3fs",
					float(audio_delay))
				return entries
			entries.append(TimelineEntry(
				kind='audio',
				source_index=track_index,
				start_seconds=float(audio_delay),
				duration_seconds=float(duration),
				layer_index=layer_index,
				volume=volume,
			))
			audio_delay += duration
			if len(entries) >= MAX_AUDIO_ENTRIES:
				logger.warning("audio loop stopped at safety cap of %d entries (%.3fs covered)",
					MAX_AUDIO_ENTRIES, float(audio_delay))
				return entries
	return entries

#============================================

class TimelinePlanner():
	def __init__(self, config, sources):
		self.config = config
		self.sources = sources

	#============================
	def plan(self) -> Schedule:
		(visual_entries, total_seconds) = build_visual_layout(
			self.config.playlist,
			self.sources.video_sources,
			self.sources.image_sources,
		)
		audio_entries = build_audio_schedule(
			self.config.tracks,
			self.sources.track_sources,
			total_seconds,
			self.config.loop_enabled,
			volume=self.config.volume,
			layer_index=len(visual_entries),
		)
		if total_seconds == 0:
			logger.warning("playlist is empty, composition has zero duration")
		schedule = Schedule.build(visual_entries, audio_entries, total_seconds)
		logger.info("schedule built: %.3fs (%d frames), %d visual, %d audio entries",
			schedule.total_seconds, schedule.total_frames,
			len(schedule.visual_entries), len(schedule.audio_entries))
		return schedule
