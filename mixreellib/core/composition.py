#!/usr/bin/env python3

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from mixreellib.core import frames

logger = logging.getLogger(__name__)

#============================================

@dataclass(frozen=True)
class ClipRequest:
	kind: str
	source_index: int
	delay_frames: int
	duration_frames: int
	trim_frames: Optional[Tuple[int, int]] = None
	volume: Optional[float] = None

#============================================

@dataclass(frozen=True)
class LayerRequest:
	index: int
	kind: str
	clips: Tuple[ClipRequest, ...] = ()

#============================================

def _clip_request(entry, frame_rate: int) -> ClipRequest:
	trim_frames = None
	if entry.trim is not None:
		trim_start = frames.to_frames(entry.trim[0], frame_rate)
		trim_frames = (trim_start, trim_start + entry.duration_frames)
	return ClipRequest(
		kind=entry.kind,
		source_index=entry.source_index,
		delay_frames=entry.start_frame,
		duration_frames=entry.duration_frames,
		trim_frames=trim_frames,
		volume=entry.volume,
	)

#============================================

def build_layer_requests(schedule) -> list:
	"""
	One layer per visual entry, ordered by layer index, then the single
	audio layer holding every audio clip.
	"""
	layers = []
	for entry in sorted(schedule.visual_entries, key=lambda item: item.layer_index):
		clip = _clip_request(entry, schedule.frame_rate)
		layers.append(LayerRequest(index=entry.layer_index, kind=entry.kind,
			clips=(clip,)))
	audio_clips = tuple(_clip_request(entry, schedule.frame_rate)
		for entry in schedule.audio_entries)
	layers.append(LayerRequest(index=schedule.audio_layer_index, kind='audio',
		clips=audio_clips))
	return layers

#============================================

def mount(schedule, composition) -> list:
	"""
	Hand a schedule to a composition.

	The composition needs set_total_frames(frames) and add_layer(request).
	"""
	layers = build_layer_requests(schedule)
	composition.set_total_frames(schedule.total_frames)
	for layer in layers:
		composition.add_layer(layer)
	logger.info("mounted %d layer(s), %d frames", len(layers), schedule.total_frames)
	return layers
