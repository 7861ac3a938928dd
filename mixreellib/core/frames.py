#!/usr/bin/env python3

"""
Seconds <-> frames conversion at the fixed composition frame rate.

Every offset and duration in a schedule is stamped with these helpers, and
the playback clock uses the same pair for position reports and seeks, so
both directions agree to within one frame.
"""

from fractions import Fraction
from mixreellib.core import utils

FRAME_RATE = 30

#============================================

def to_frames(seconds, frame_rate: int = FRAME_RATE) -> int:
	"""
	Convert seconds to a whole frame count, rounding half up.
	"""
	frame_fraction = utils.to_fraction(seconds) * frame_rate
	return utils.round_half_up_fraction(frame_fraction)

#============================================

def to_seconds(frames: int, total_frames: int, total_seconds) -> float:
	"""
	Map a frame position back to seconds against the schedule totals.

	Returns 0.0 for an empty schedule instead of dividing by zero.
	"""
	if total_frames <= 0:
		return 0.0
	position = Fraction(frames, total_frames) * utils.to_fraction(total_seconds)
	return float(position)

#============================================

def seek_frame(seconds, total_frames: int, total_seconds) -> int:
	"""
	Forward conversion for a user seek, clamped to the composition.
	"""
	total = utils.to_fraction(total_seconds)
	if total <= 0 or total_frames <= 0:
		return 0
	target = utils.to_fraction(seconds)
	target = max(Fraction(0), min(total, target))
	frame = utils.round_half_up_fraction(target / total * total_frames)
	return min(frame, total_frames)

#============================================

def progress_percent(current_seconds, total_seconds) -> float:
	total = utils.to_fraction(total_seconds)
	if total <= 0:
		return 0.0
	percent = utils.to_fraction(current_seconds) / total * 100
	return float(max(Fraction(0), min(Fraction(100), percent)))

#============================================

def format_clock(seconds) -> str:
	if seconds is None or seconds < 0:
		seconds = 0
	whole = int(seconds)
	minutes = whole // 60
	secs = whole % 60
	return f"{minutes:02d}:{secs:02d}"
