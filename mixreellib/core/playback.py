#!/usr/bin/env python3

"""
Player-side state: position reporting, seeking, mute and autoplay.

None of this changes a schedule; it only maps player frames against the
schedule totals.
"""

import enum
import logging

from mixreellib.core import frames

logger = logging.getLogger(__name__)

SKIP_SECONDS = 5

#============================================

class PlaybackClock():
	def __init__(self, schedule):
		self.schedule = schedule
		self.current_time = 0.0
		self.is_playing = False

	#============================
	@property
	def duration(self) -> float:
		return self.schedule.total_seconds

	#============================
	def on_current_frame(self, frame: int) -> float:
		self.current_time = frames.to_seconds(frame, self.schedule.total_frames,
			self.schedule.total_seconds)
		return self.current_time

	#============================
	def on_play(self) -> None:
		self.is_playing = True

	#============================
	def on_pause(self) -> None:
		self.is_playing = False

	#============================
	def seek(self, seconds: float) -> int:
		"""
		Clamp the target time and return the frame to hand to the player.
		"""
		self.current_time = max(0.0, min(self.duration, float(seconds)))
		return frames.seek_frame(self.current_time, self.schedule.total_frames,
			self.schedule.total_seconds)

	#============================
	def seek_percent(self, fraction: float) -> int:
		return self.seek(fraction * self.duration)

	#============================
	def skip_back(self) -> int:
		return self.seek(max(0.0, self.current_time - SKIP_SECONDS))

	#============================
	def skip_forward(self) -> int:
		return self.seek(min(self.duration, self.current_time + SKIP_SECONDS))

	#============================
	def active_entries(self) -> tuple:
		"""
		Return (visual entry or None, list of audio entries) at current_time.
		"""
		now = self.current_time
		visual = None
		for entry in self.schedule.visual_entries:
			if entry.start_seconds <= now < entry.end_seconds:
				visual = entry
				break
		if visual is None and len(self.schedule.visual_entries) > 0 and now >= self.duration:
			visual = self.schedule.visual_entries[-1]
		audio = [entry for entry in self.schedule.audio_entries
			if entry.start_seconds <= now < entry.end_seconds]
		return (visual, audio)

	#============================
	@property
	def percent(self) -> float:
		return frames.progress_percent(self.current_time, self.duration)

	#============================
	@property
	def time_display(self) -> str:
		current = frames.format_clock(self.current_time)
		total = frames.format_clock(self.duration)
		return f"{current} / {total}"

#============================================

class MuteProbe():
	name = "probe"

	def supports(self, target) -> bool:
		raise NotImplementedError

	def apply(self, target, muted: bool) -> None:
		raise NotImplementedError

#============================================

class MutedAttributeProbe(MuteProbe):
	name = "muted"

	def supports(self, target) -> bool:
		return hasattr(target, 'muted')

	def apply(self, target, muted: bool) -> None:
		target.muted = muted

#============================================

class VolumeAttributeProbe(MuteProbe):
	name = "volume"

	def __init__(self):
		self.saved_volume = {}

	def supports(self, target) -> bool:
		return hasattr(target, 'volume')

	def apply(self, target, muted: bool) -> None:
		key = id(target)
		if muted:
			if key not in self.saved_volume:
				self.saved_volume[key] = target.volume
			target.volume = 0
			return
		target.volume = self.saved_volume.pop(key, None) or 1

#============================================

class ClipVolumeProbe(MuteProbe):
	name = "clip_volume"

	def __init__(self):
		self.volume_probe = VolumeAttributeProbe()

	def supports(self, target) -> bool:
		clips = getattr(target, 'audio_clips', None)
		return clips is not None and len(clips) > 0

	def apply(self, target, muted: bool) -> None:
		for clip in target.audio_clips:
			self.volume_probe.apply(clip, muted)

#============================================

class MuteController():
	def __init__(self, probes: list = None):
		if probes is None:
			probes = [MutedAttributeProbe(), VolumeAttributeProbe(), ClipVolumeProbe()]
		self.probes = probes
		self.muted = False

	#============================
	def apply(self, target, muted: bool):
		"""
		Apply mute through the first probe the target supports.

		Returns:
			str: name of the probe used, or None when nothing applied.
		"""
		self.muted = muted
		for probe in self.probes:
			if probe.supports(target):
				probe.apply(target, muted)
				logger.debug("mute=%s applied via %s", muted, probe.name)
				return probe.name
		logger.warning("no mute capability on %s", type(target).__name__)
		return None

	#============================
	def toggle(self, target):
		return self.apply(target, not self.muted)

#============================================

class AutoplayState(enum.Enum):
	ATTEMPTING = "attempting_autoplay"
	AWAITING_GESTURE = "awaiting_user_gesture"
	PLAYING = "playing"

#============================================

class AutoplayFlow():
	def __init__(self):
		self.state = AutoplayState.ATTEMPTING

	#============================
	def attempt(self, start_playback) -> AutoplayState:
		"""
		Try to start playback; a False return or a RuntimeError is a rejection.
		"""
		if self.state is not AutoplayState.ATTEMPTING:
			return self.state
		try:
			accepted = start_playback()
		except RuntimeError as exc:
			logger.info("autoplay rejected: %s", exc)
			accepted = False
		if accepted is False:
			self.state = AutoplayState.AWAITING_GESTURE
		else:
			self.state = AutoplayState.PLAYING
		return self.state

	#============================
	def user_gesture(self, start_playback) -> AutoplayState:
		if self.state is AutoplayState.AWAITING_GESTURE:
			start_playback()
			self.state = AutoplayState.PLAYING
		return self.state
