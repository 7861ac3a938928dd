#!/usr/bin/env python3

#============================================

class ConfigError(RuntimeError):
	"""Playlist document is unreachable, unparsable, or malformed."""

#============================================

class SourceLoadError(RuntimeError):
	"""One or more media sources failed to load.

	Args:
		failures: list of (locator, reason) tuples, one per failed source.
	"""
	def __init__(self, failures: list):
		self.failures = list(failures)
		lines = [f"{locator}: {reason}" for locator, reason in self.failures]
		message = f"{len(self.failures)} source(s) failed to load"
		if len(lines) > 0:
			message += "\n  " + "\n  ".join(lines)
		super().__init__(message)

#============================================

class ScheduleError(RuntimeError):
	"""A compiled schedule breaks one of its ordering invariants."""
