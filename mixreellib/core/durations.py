#!/usr/bin/env python3

import logging
from mixreellib.core import utils

logger = logging.getLogger(__name__)

FALLBACK_SECONDS = {
	'video': 10.0,
	'image': 5.0,
	'audio': 180.0,
}

#============================================

def resolve_duration(kind: str, source=None, explicit_duration=None) -> float:
	"""
	Normalize a possibly missing duration into usable seconds.

	Args:
		kind: 'video', 'image' or 'audio'.
		source: ResolvedSource; only its duration is read.
		explicit_duration: configured duration, used for images only.

	Returns:
		float: seconds, always > 0.
	"""
	if kind not in FALLBACK_SECONDS:
		raise RuntimeError(f"unknown media kind: {kind}")
	fallback = FALLBACK_SECONDS[kind]
	if kind == 'image':
		value = explicit_duration
	else:
		value = getattr(source, 'duration', None)
	if utils.is_positive_number(value):
		return float(value)
	locator = getattr(source, 'handle', None)
	logger.warning("%s %s has invalid duration (%r), using fallback of %ss",
		kind, locator or "source", value, fallback)
	return fallback
