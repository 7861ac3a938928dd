#!/usr/bin/env python3

import dataclasses
from dataclasses import dataclass
from typing import Optional, Tuple

from mixreellib.core import frames
from mixreellib.core import utils
from mixreellib.core.errors import ScheduleError

VISUAL_KINDS = ('video', 'image')

#============================================

@dataclass(frozen=True)
class TimelineEntry:
	"""
	One scheduled clip. Seconds are authoritative; frames are stamped once
	when the schedule is built.
	"""
	kind: str
	source_index: int
	start_seconds: float
	duration_seconds: float
	layer_index: Optional[int] = None
	trim: Optional[Tuple[float, float]] = None
	volume: Optional[float] = None
	start_frame: Optional[int] = None
	duration_frames: Optional[int] = None

	@property
	def end_seconds(self) -> float:
		return self.start_seconds + self.duration_seconds

	def with_frames(self, frame_rate: int = frames.FRAME_RATE) -> 'TimelineEntry':
		"""
		Round the start and end points, not the length, so back to back
		entries meet on the same frame.
		"""
		start = utils.to_fraction(self.start_seconds)
		end = start + utils.to_fraction(self.duration_seconds)
		start_frame = frames.to_frames(start, frame_rate)
		return dataclasses.replace(self,
			start_frame=start_frame,
			duration_frames=frames.to_frames(end, frame_rate) - start_frame)

	def to_dict(self) -> dict:
		data = {
			'kind': self.kind,
			'source_index': self.source_index,
			'start_seconds': self.start_seconds,
			'duration_seconds': self.duration_seconds,
			'layer_index': self.layer_index,
			'start_frame': self.start_frame,
			'duration_frames': self.duration_frames,
		}
		if self.trim is not None:
			data['trim'] = list(self.trim)
		if self.volume is not None:
			data['volume'] = self.volume
		return data

#============================================

@dataclass(frozen=True)
class Schedule:
	total_seconds: float
	total_frames: int
	visual_entries: Tuple[TimelineEntry, ...] = ()
	audio_entries: Tuple[TimelineEntry, ...] = ()
	frame_rate: int = frames.FRAME_RATE

	@classmethod
	def build(cls, visual_entries, audio_entries, total_seconds: float,
		frame_rate: int = frames.FRAME_RATE) -> 'Schedule':
		"""
		Stamp frames onto every entry and freeze the result.
		"""
		schedule = cls(
			total_seconds=float(total_seconds),
			total_frames=frames.to_frames(total_seconds, frame_rate),
			visual_entries=tuple(entry.with_frames(frame_rate) for entry in visual_entries),
			audio_entries=tuple(entry.with_frames(frame_rate) for entry in audio_entries),
			frame_rate=frame_rate,
		)
		schedule.validate()
		return schedule

	@property
	def is_empty(self) -> bool:
		return self.total_frames == 0

	@property
	def layer_count(self) -> int:
		return len(self.visual_entries) + 1

	@property
	def audio_layer_index(self) -> int:
		return len(self.visual_entries)

	#============================
	def validate(self) -> None:
		self._validate_visual()
		self._validate_audio()

	#============================
	def _validate_visual(self) -> None:
		cursor = 0.0
		previous = None
		for entry in self.visual_entries:
			if entry.kind not in VISUAL_KINDS:
				raise ScheduleError(f"visual entry has kind {entry.kind}")
			if entry.duration_seconds <= 0:
				raise ScheduleError("visual entry duration must be positive")
			if previous is not None and entry.start_seconds <= previous:
				raise ScheduleError("visual entry offsets must be strictly increasing")
			if abs(entry.start_seconds - cursor) > 1e-9:
				raise ScheduleError(
					f"visual entry at {entry.start_seconds}s leaves a gap or overlap"
				)
			previous = entry.start_seconds
			cursor = entry.end_seconds
		if abs(cursor - self.total_seconds) > 1e-9:
			raise ScheduleError("total duration does not match visual entries")
		video_layers = sorted(entry.layer_index for entry in self.visual_entries
			if entry.kind == 'video')
		image_layers = sorted(entry.layer_index for entry in self.visual_entries
			if entry.kind == 'image')
		n_video = len(video_layers)
		if video_layers != list(range(n_video)):
			raise ScheduleError("video layers must occupy the lowest indices")
		if image_layers != list(range(n_video, n_video + len(image_layers))):
			raise ScheduleError("image layers must follow the video layers")

	#============================
	def _validate_audio(self) -> None:
		previous = None
		for entry in self.audio_entries:
			if entry.kind != 'audio':
				raise ScheduleError(f"audio entry has kind {entry.kind}")
			if entry.duration_seconds <= 0:
				raise ScheduleError("audio entry duration must be positive")
			if previous is not None and entry.start_seconds <= previous:
				raise ScheduleError("audio entry offsets must be strictly increasing")
			previous = entry.start_seconds

	#============================
	def to_dict(self) -> dict:
		return {
			'total_seconds': self.total_seconds,
			'frame_rate': self.frame_rate,
			'total_frames': self.total_frames,
			'visual_entries': [entry.to_dict() for entry in self.visual_entries],
			'audio_entries': [entry.to_dict() for entry in self.audio_entries],
		}
