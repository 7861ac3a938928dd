#!/usr/bin/env python3

import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

import yaml

from mixreellib.core import utils
from mixreellib.core.errors import ConfigError

logger = logging.getLogger(__name__)

MAX_CONFIG_BYTES = 10 ** 7
KIND_ALIASES = {
	'video': 'video',
	'image': 'image',
	'img': 'image',
}

#============================================

@dataclass(frozen=True)
class MediaItem:
	item_id: str
	kind: str
	locator: str
	duration: Optional[float] = None

#============================================

@dataclass(frozen=True)
class AudioTrack:
	locator: str
	duration: float = 0.0

#============================================

@dataclass(frozen=True)
class PlaylistConfig:
	playlist: Tuple[MediaItem, ...] = ()
	tracks: Tuple[AudioTrack, ...] = ()
	volume: float = 1.0
	loop_enabled: bool = False
	start_muted: bool = False
	config_id: Optional[str] = None
	base_dir: Optional[str] = None

	@property
	def video_items(self) -> list:
		return [item for item in self.playlist if item.kind == 'video']

	@property
	def image_items(self) -> list:
		return [item for item in self.playlist if item.kind == 'image']

	@property
	def cycle_seconds(self) -> float:
		return sum(track.duration for track in self.tracks)

#============================================

class ConfigLoader():
	def __init__(self, config_file: str):
		self.config_file = config_file

	#============================
	def load(self) -> PlaylistConfig:
		data = self._load_document()
		base_dir = os.path.dirname(os.path.abspath(self.config_file))
		return parse_config(data, base_dir=base_dir)

	#============================
	def _load_document(self) -> dict:
		if not os.path.isfile(self.config_file):
			raise ConfigError(f"config file not found: {self.config_file}")
		file_size = os.path.getsize(self.config_file)
		if file_size > MAX_CONFIG_BYTES:
			raise ConfigError("config file is larger than 10MB")
		try:
			with open(self.config_file, 'r', encoding='utf-8') as data_file:
				data = yaml.safe_load(data_file)
		except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
			raise ConfigError(f"failed to read {self.config_file}: {exc}") from exc
		if not isinstance(data, dict):
			raise ConfigError("config document must be a mapping at the top level")
		return data

#============================================

def parse_config(data: dict, base_dir: str = None) -> PlaylistConfig:
	"""
	Build a PlaylistConfig from an already parsed document.

	Unknown keys are ignored; missing playlist/tracks are treated as empty.
	"""
	if not isinstance(data, dict):
		raise ConfigError("config document must be a mapping at the top level")
	media = data.get('media') or {}
	if not isinstance(media, dict):
		raise ConfigError("media must be a mapping of id to media item")
	settings = data.get('config') or {}
	if not isinstance(settings, dict):
		raise ConfigError("config must be a mapping")
	playlist = _parse_playlist(data.get('playlist') or [], media)
	tracks = _parse_tracks(data.get('tracks') or [])
	volume = _parse_volume(settings.get('backgroundMusicVolume', 1.0))
	loop_enabled = bool(settings.get('audioLoopEnabled', False))
	start_muted = bool(settings.get('startMuted', False))
	config = PlaylistConfig(
		playlist=playlist,
		tracks=tracks,
		volume=volume,
		loop_enabled=loop_enabled,
		start_muted=start_muted,
		config_id=data.get('id'),
		base_dir=base_dir,
	)
	if config.loop_enabled and len(config.tracks) > 0:
		validate_loop_tracks(config.tracks)
	logger.info("loaded config %s: %d playlist items, %d tracks",
		config.config_id or "(unnamed)", len(playlist), len(tracks))
	return config

#============================================

def validate_loop_tracks(tracks) -> None:
	for index, track in enumerate(tracks):
		if not utils.is_positive_number(track.duration):
			raise ConfigError(
				f"track {index} needs a positive duration when audio looping is enabled"
			)
	if sum(track.duration for track in tracks) <= 0:
		raise ConfigError("audio loop cycle duration must be positive")

#============================================

def _parse_playlist(playlist, media: dict) -> tuple:
	if not isinstance(playlist, list):
		raise ConfigError("playlist must be a list of media ids")
	items = []
	for item_id in playlist:
		if not isinstance(item_id, str):
			raise ConfigError(f"playlist ids must be strings, got {item_id!r}")
		if item_id not in media:
			raise ConfigError(f"playlist id {item_id} not found in media")
		items.append(_parse_media_item(item_id, media[item_id]))
	return tuple(items)

#============================================

def _parse_media_item(item_id: str, item: dict) -> MediaItem:
	if not isinstance(item, dict):
		raise ConfigError(f"media {item_id} must be a mapping")
	raw_kind = item.get('type')
	kind = KIND_ALIASES.get(raw_kind)
	if kind is None:
		raise ConfigError(f"media {item_id} type must be video or image, got {raw_kind}")
	locator = item.get('src')
	if locator is None:
		locator = item.get(raw_kind)
	if locator is None:
		locator = item.get(kind)
	if not isinstance(locator, str) or locator == "":
		raise ConfigError(f"media {item_id} is missing a source locator")
	duration = item.get('duration')
	if duration is not None and not isinstance(duration, (int, float)):
		raise ConfigError(f"media {item_id} duration must be a number")
	if kind == 'video':
		duration = None
	return MediaItem(item_id=str(item_id), kind=kind, locator=locator,
		duration=duration)

#============================================

def _parse_tracks(tracks) -> tuple:
	if not isinstance(tracks, list):
		raise ConfigError("tracks must be a list")
	parsed = []
	for index, track in enumerate(tracks):
		if not isinstance(track, dict):
			raise ConfigError(f"track {index} must be a mapping")
		locator = track.get('src')
		if not isinstance(locator, str) or locator == "":
			raise ConfigError(f"track {index} is missing src")
		duration = track.get('duration', 0)
		if isinstance(duration, bool) or not isinstance(duration, (int, float)):
			raise ConfigError(f"track {index} duration must be a number")
		if duration < 0:
			raise ConfigError(f"track {index} duration must not be negative")
		parsed.append(AudioTrack(locator=locator, duration=duration))
	return tuple(parsed)

#============================================

def _parse_volume(raw_volume) -> float:
	if isinstance(raw_volume, bool) or not isinstance(raw_volume, (int, float)):
		raise ConfigError("backgroundMusicVolume must be a number")
	volume = float(raw_volume)
	if volume < 0 or volume > 1:
		raise ConfigError("backgroundMusicVolume must be between 0 and 1")
	return volume
