#!/usr/bin/env python3

import math
import os
import re
import subprocess
from decimal import Decimal
from fractions import Fraction

_QUIET_MODE = False

#============================================

def runCmd(cmd: list, timeout: float = None) -> subprocess.CompletedProcess:
	showcmd = " ".join(str(part) for part in cmd)
	showcmd = re.sub("  *", " ", showcmd)
	if not _QUIET_MODE:
		print(f"CMD: '{showcmd}'")
	proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
	return proc

#============================================

def set_quiet_mode(enabled: bool) -> None:
	global _QUIET_MODE
	_QUIET_MODE = bool(enabled)

#============================================

def is_quiet_mode() -> bool:
	return _QUIET_MODE

#============================================

def to_fraction(value) -> Fraction:
	if isinstance(value, Fraction):
		return value
	if isinstance(value, int):
		return Fraction(value, 1)
	if isinstance(value, (float, Decimal)):
		return Fraction(str(value))
	if isinstance(value, str):
		return Fraction(value.strip())
	raise RuntimeError(f"time values must be numeric, got {type(value).__name__}")

#============================================

def round_half_up_fraction(value: Fraction) -> int:
	numerator = value.numerator
	denominator = value.denominator
	whole = numerator // denominator
	remainder = numerator - (whole * denominator)
	if remainder * 2 >= denominator:
		return whole + 1
	return whole

#============================================

def is_positive_number(value) -> bool:
	if isinstance(value, bool) or not isinstance(value, (int, float, Decimal, Fraction)):
		return False
	if isinstance(value, float) and not math.isfinite(value):
		return False
	return value > 0

#============================================

def resolve_locator(locator: str, base_dir: str) -> str:
	path = os.path.expanduser(locator)
	if os.path.isabs(path) or base_dir is None:
		return path
	return os.path.normpath(os.path.join(base_dir, path))

#============================================

def ensure_file_exists(filepath: str) -> None:
	if not os.path.isfile(filepath):
		raise RuntimeError(f"file not found: {filepath}")
	return
