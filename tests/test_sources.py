#!/usr/bin/env python3

"""
Unit tests for the concurrent source loader.
"""

# Standard Library
import os
import sys
import tempfile

# PIP3 modules
import PIL.Image
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
TESTS_DIR = os.path.dirname(__file__)
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)
if TESTS_DIR not in sys.path:
	sys.path.insert(0, TESTS_DIR)

# local repo modules
import config_utils
from mixreellib.core import utils
from mixreellib.core.errors import SourceLoadError
from mixreellib.core.loader import parse_config
from mixreellib.media import sources
from mixreellib.media.sources import SourceLoader

#============================================

def _build_tree(temp_dir: str) -> dict:
	config_utils.make_stub_media(os.path.join(temp_dir, 'v1.mp4'))
	config_utils.make_stub_media(os.path.join(temp_dir, 'v2.mp4'))
	config_utils.make_image(os.path.join(temp_dir, 'i1.png'))
	config_utils.make_stub_media(os.path.join(temp_dir, 'a.mp3'))
	config_utils.make_stub_media(os.path.join(temp_dir, 'b.mp3'))
	return {
		'playlist': ['v1', 'i1', 'v2'],
		'media': {
			'v1': {'type': 'video', 'src': 'v1.mp4'},
			'i1': {'type': 'image', 'src': 'i1.png', 'duration': 3},
			'v2': {'type': 'video', 'src': 'v2.mp4'},
		},
		'tracks': [
			{'src': 'a.mp3', 'duration': 10},
			{'src': 'b.mp3', 'duration': 12},
		],
	}

#============================================

def test_sources_split_by_kind_in_order() -> None:
	"""
	Ensure results come back grouped by kind and in playlist order.
	"""
	probe = config_utils.FakeProbe({'v1.mp4': 4.0, 'v2.mp4': 6.5,
		'a.mp3': 30.0, 'b.mp3': None})
	with tempfile.TemporaryDirectory() as temp_dir:
		config = parse_config(_build_tree(temp_dir), base_dir=temp_dir)
		loaded = SourceLoader(workers=3, probe=probe).load(config)
	assert [src.duration for src in loaded.video_sources] == [4.0, 6.5]
	assert [os.path.basename(src.handle) for src in loaded.video_sources] == [
		'v1.mp4', 'v2.mp4']
	assert len(loaded.image_sources) == 1
	assert loaded.image_sources[0].duration is None
	assert [src.duration for src in loaded.track_sources] == [30.0, None]
	assert [src.kind for src in loaded.track_sources] == ['audio', 'audio']
	# images are verified with Pillow, never probed
	assert sorted(os.path.basename(path) for path in probe.calls) == [
		'a.mp3', 'b.mp3', 'v1.mp4', 'v2.mp4']

#============================================

def test_failures_are_aggregated() -> None:
	"""
	Ensure every failed locator is reported in one error.
	"""
	probe = config_utils.FakeProbe({})
	with tempfile.TemporaryDirectory() as temp_dir:
		data = _build_tree(temp_dir)
		os.remove(os.path.join(temp_dir, 'v2.mp4'))
		os.remove(os.path.join(temp_dir, 'b.mp3'))
		config = parse_config(data, base_dir=temp_dir)
		with pytest.raises(SourceLoadError) as excinfo:
			SourceLoader(probe=probe).load(config)
	failures = excinfo.value.failures
	assert [os.path.basename(locator) for locator, _ in failures] == ['v2.mp4', 'b.mp3']
	assert "2 source(s) failed to load" in str(excinfo.value)

#============================================

def test_corrupt_image_fails() -> None:
	with tempfile.TemporaryDirectory() as temp_dir:
		config_utils.write_text_file(os.path.join(temp_dir, 'bad.png'), "not an image")
		config = parse_config({'playlist': ['i'],
			'media': {'i': {'type': 'image', 'src': 'bad.png'}}}, base_dir=temp_dir)
		with pytest.raises(SourceLoadError) as excinfo:
			SourceLoader(probe=config_utils.FakeProbe({})).load(config)
	assert len(excinfo.value.failures) == 1

#============================================

def test_loader_base_dir_overrides_config() -> None:
	probe = config_utils.FakeProbe({'a.mp3': 5.0})
	with tempfile.TemporaryDirectory() as temp_dir:
		config_utils.make_stub_media(os.path.join(temp_dir, 'a.mp3'))
		config = parse_config({'tracks': [{'src': 'a.mp3'}]}, base_dir='/elsewhere')
		loaded = SourceLoader(base_dir=temp_dir, probe=probe).load(config)
	assert loaded.track_sources[0].duration == 5.0

#============================================

def test_probe_without_ffprobe(monkeypatch) -> None:
	"""
	Ensure a missing ffprobe means an unknown duration, not an error.
	"""
	monkeypatch.setattr(sources.shutil, 'which', lambda name: None)
	assert sources.probe_duration('/tmp/whatever.mp4') is None

#============================================

class _FakeProc():
	def __init__(self, returncode: int, stdout: str, stderr: str = ""):
		self.returncode = returncode
		self.stdout = stdout
		self.stderr = stderr

#============================================

def test_probe_parses_ffprobe_json(monkeypatch) -> None:
	monkeypatch.setattr(sources.shutil, 'which', lambda name: '/usr/bin/ffprobe')
	monkeypatch.setattr(utils, 'runCmd',
		lambda cmd, timeout=None: _FakeProc(0, '{"format": {"duration": "12.480000"}}'))
	assert sources.probe_duration('clip.mp4') == pytest.approx(12.48)

#============================================

@pytest.mark.parametrize("proc", [
	_FakeProc(1, "", "Invalid data found"),
	_FakeProc(0, "{}"),
	_FakeProc(0, '{"format": {"duration": "N/A"}}'),
])
def test_probe_bad_output_is_unknown(monkeypatch, proc) -> None:
	monkeypatch.setattr(sources.shutil, 'which', lambda name: '/usr/bin/ffprobe')
	monkeypatch.setattr(utils, 'runCmd', lambda cmd, timeout=None: proc)
	assert sources.probe_duration('clip.mp4') is None

#============================================

def test_oversized_image_is_collected(monkeypatch) -> None:
	"""
	Ensure a decompression bomb becomes a load failure, not a crash.
	"""
	monkeypatch.setattr(PIL.Image, 'MAX_IMAGE_PIXELS', 10)
	with tempfile.TemporaryDirectory() as temp_dir:
		config_utils.make_image(os.path.join(temp_dir, 'big.png'), size=(40, 30))
		config = parse_config({'playlist': ['i'],
			'media': {'i': {'type': 'image', 'src': 'big.png'}}}, base_dir=temp_dir)
		with pytest.raises(SourceLoadError) as excinfo:
			SourceLoader(probe=config_utils.FakeProbe({})).load(config)
	assert [os.path.basename(locator) for locator, _ in excinfo.value.failures] == ['big.png']
