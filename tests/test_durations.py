#!/usr/bin/env python3

"""
Unit tests for duration fallbacks.
"""

# Standard Library
import logging
import os
import sys

# PIP3 modules
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
from mixreellib.core.durations import resolve_duration
from mixreellib.media.sources import ResolvedSource

#============================================

def _source(kind: str, duration) -> ResolvedSource:
	return ResolvedSource(kind=kind, duration=duration, handle=f"/media/{kind}")

#============================================

def test_intrinsic_durations_are_used() -> None:
	assert resolve_duration('video', _source('video', 12.5)) == 12.5
	assert resolve_duration('audio', _source('audio', 95)) == 95.0

#============================================

@pytest.mark.parametrize("bad_value", [None, 0, -3.0, float('nan'), float('inf')])
def test_video_and_audio_fallbacks(bad_value, caplog) -> None:
	"""
	Ensure invalid intrinsic durations fall back with a warning only.
	"""
	with caplog.at_level(logging.WARNING):
		assert resolve_duration('video', _source('video', bad_value)) == 10.0
		assert resolve_duration('audio', _source('audio', bad_value)) == 180.0
	warnings = [record for record in caplog.records if record.levelno == logging.WARNING]
	assert len(warnings) == 2
	assert "fallback" in warnings[0].getMessage()

#============================================

def test_image_uses_explicit_duration() -> None:
	"""
	Ensure images ignore the source and read the configured duration.
	"""
	assert resolve_duration('image', _source('image', 99.0), 4) == 4.0
	assert resolve_duration('image', _source('image', None), 2.5) == 2.5

#============================================

def test_image_fallback(caplog) -> None:
	with caplog.at_level(logging.WARNING):
		assert resolve_duration('image', _source('image', None), None) == 5.0
		assert resolve_duration('image', _source('image', None), 0) == 5.0
	assert len(caplog.records) == 2

#============================================

def test_missing_source_falls_back() -> None:
	assert resolve_duration('audio', None) == 180.0

#============================================

def test_unknown_kind_raises() -> None:
	with pytest.raises(RuntimeError):
		resolve_duration('subtitle', None)
