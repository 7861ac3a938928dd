#!/usr/bin/env python3

"""
Unit tests for the load -> schedule pipeline facade.
"""

# Standard Library
import os
import sys
import tempfile

# PIP3 modules
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
TESTS_DIR = os.path.dirname(__file__)
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)
if TESTS_DIR not in sys.path:
	sys.path.insert(0, TESTS_DIR)

# local repo modules
import config_utils
from mixreellib.core import project as project_module
from mixreellib.core.errors import ConfigError, SourceLoadError
from mixreellib.core.project import MixreelProject
from mixreellib.media.sources import SourceLoader

#============================================

def _write_project(temp_dir: str) -> str:
	config_utils.make_stub_media(os.path.join(temp_dir, 'v1.mp4'))
	config_utils.make_image(os.path.join(temp_dir, 'i1.png'))
	config_utils.make_stub_media(os.path.join(temp_dir, 'a.mp3'))
	return config_utils.write_config(
		os.path.join(temp_dir, 'media-config.json'),
		['v1', 'i1'],
		{
			'v1': {'type': 'video', 'src': 'v1.mp4'},
			'i1': {'type': 'image', 'src': 'i1.png', 'duration': 3},
		},
		tracks=[{'src': 'a.mp3', 'duration': 2}],
		config={'audioLoopEnabled': True, 'backgroundMusicVolume': 0.5},
		id='project-test',
	)

#============================================

def _loader() -> SourceLoader:
	return SourceLoader(probe=config_utils.FakeProbe({'v1.mp4': 2.0, 'a.mp3': 2.0}))

#============================================

def test_build_reaches_ready() -> None:
	"""
	Ensure a good document builds and reports a ready status.
	"""
	with tempfile.TemporaryDirectory() as temp_dir:
		config_file = _write_project(temp_dir)
		project = MixreelProject(config_file, source_loader=_loader())
		assert project.status == project_module.STATUS_IDLE
		schedule = project.build()
	assert project.status == project_module.STATUS_READY
	assert project.status_text == "Ready: 00:05 total"
	assert schedule.total_seconds == 5.0
	assert schedule.total_frames == 150
	assert [entry.start_seconds for entry in schedule.audio_entries] == [0.0, 2.0, 4.0]
	assert all(entry.layer_index == 2 for entry in schedule.audio_entries)

#============================================

def test_summary_names_files() -> None:
	with tempfile.TemporaryDirectory() as temp_dir:
		config_file = _write_project(temp_dir)
		project = MixreelProject(config_file, source_loader=_loader())
		project.build()
		summary = project.summary()
	assert summary['id'] == 'project-test'
	assert summary['loop_enabled'] is True
	assert summary['volume'] == 0.5
	visual = summary['schedule']['visual_entries']
	assert [os.path.basename(entry['file']) for entry in visual] == ['v1.mp4', 'i1.png']
	audio = summary['schedule']['audio_entries']
	assert [os.path.basename(entry['file']) for entry in audio] == ['a.mp3'] * 3

#============================================

def test_missing_config_fails() -> None:
	project = MixreelProject('/nonexistent/media-config.json')
	with pytest.raises(ConfigError):
		project.build()
	assert project.status == project_module.STATUS_FAILED
	assert project.status_text.startswith("Error loading composition:")
	assert project.schedule is None

#============================================

def test_missing_source_fails() -> None:
	"""
	Ensure a failed source load leaves no schedule behind.
	"""
	with tempfile.TemporaryDirectory() as temp_dir:
		config_file = _write_project(temp_dir)
		os.remove(os.path.join(temp_dir, 'a.mp3'))
		project = MixreelProject(config_file, source_loader=_loader())
		with pytest.raises(SourceLoadError):
			project.build()
	assert project.status == project_module.STATUS_FAILED
	assert project.schedule is None

#============================================

def test_mount_requires_build() -> None:
	project = MixreelProject('media-config.json')
	with pytest.raises(RuntimeError):
		project.mount(object())
	with pytest.raises(RuntimeError):
		project.summary()

#============================================

def test_bad_playlist_id_fails() -> None:
	"""
	Ensure a malformed document ends in the failed status.
	"""
	with tempfile.TemporaryDirectory() as temp_dir:
		config_file = config_utils.write_config(
			os.path.join(temp_dir, 'media-config.json'), [['v1']], {})
		project = MixreelProject(config_file)
		with pytest.raises(ConfigError):
			project.build()
	assert project.status == project_module.STATUS_FAILED

#============================================

class _BrokenLoader():
	def load(self, config):
		raise TypeError("loader bug")

#============================================

def test_unexpected_error_still_fails() -> None:
	with tempfile.TemporaryDirectory() as temp_dir:
		config_file = _write_project(temp_dir)
		project = MixreelProject(config_file, source_loader=_BrokenLoader())
		with pytest.raises(TypeError):
			project.build()
	assert project.status == project_module.STATUS_FAILED
	assert project.status_text == "Error loading composition: loader bug"
	assert project.schedule is None
