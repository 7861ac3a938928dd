#!/usr/bin/env python3

"""
Textual preview player for mixreel playlists.
"""

# Standard Library
import argparse
import logging
import os
import sys
import threading
import time
import traceback

script_dir = os.path.dirname(os.path.abspath(__file__))
if script_dir not in sys.path:
	sys.path.insert(0, script_dir)

# PIP3 modules
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import RichLog, Static
from rich.text import Text

# local repo modules
from mixreellib.core import frames
from mixreellib.core import utils
from mixreellib.core.playback import AutoplayFlow, AutoplayState
from mixreellib.core.playback import MuteController, PlaybackClock
from mixreellib.core.project import MixreelProject, STATUS_FAILED, STATUS_READY

#============================================

NORD_COLORS = {
	'background': "#2E3440",
	'foreground': "#D8DEE9",
	'dim': "#4C566A",
	'header': "#88C0D0",
	'video': "#81A1C1",
	'image': "#B48EAD",
	'audio': "#A3BE8C",
	'numbers': "#EBCB8B",
	'error': "#BF616A",
}

TICK_SECONDS = 0.1
DEBUG_LOG_NAME = "mixreel_tui.log"

logger = logging.getLogger(__name__)

#============================================

def parse_args():
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="mixreel TUI preview player")
	parser.add_argument('-c', '--config', dest='config_file',
		default='media-config.json',
		help='playlist configuration document (JSON or YAML)')
	parser.add_argument('-w', '--workers', dest='workers', type=int, default=4,
		help='number of sources to load concurrently')
	parser.add_argument('-A', '--no-autoplay', dest='autoplay', action='store_false',
		help='wait for a key press before starting playback')
	parser.add_argument('-d', '--debug', dest='debug_log', action='store_true',
		help='write debug log to mixreel_tui.log in the current directory')
	parser.set_defaults(autoplay=True)
	args = parser.parse_args()
	return args

#============================================

class PreviewPlayer():
	"""
	Frame counter standing in for a real player surface.
	"""
	def __init__(self, autoplay_allowed: bool = True):
		self.autoplay_allowed = autoplay_allowed
		self.total_frames = 0
		self.layers = []
		self.current_frame = 0
		self.playing = False
		self.muted = False
		self.listeners = {'play': [], 'pause': [], 'currentframe': []}

	#============================
	def set_total_frames(self, total_frames: int) -> None:
		self.total_frames = total_frames

	#============================
	def add_layer(self, layer) -> None:
		self.layers.append(layer)

	#============================
	def on(self, event: str, callback) -> None:
		self.listeners[event].append(callback)

	#============================
	def _emit(self, event: str, *args) -> None:
		for callback in self.listeners[event]:
			callback(*args)

	#============================
	def autoplay(self) -> bool:
		if not self.autoplay_allowed:
			return False
		self.play()
		return True

	#============================
	def play(self) -> None:
		if self.playing or self.total_frames <= 0:
			return
		if self.current_frame >= self.total_frames:
			self.current_frame = 0
		self.playing = True
		self._emit('play')

	#============================
	def pause(self) -> None:
		if not self.playing:
			return
		self.playing = False
		self._emit('pause')

	#============================
	def seek(self, frame: int) -> None:
		self.current_frame = max(0, min(self.total_frames, int(frame)))
		self._emit('currentframe', self.current_frame)

	#============================
	def advance(self, seconds: float) -> None:
		if not self.playing:
			return
		step = frames.to_frames(seconds)
		self.current_frame = min(self.total_frames, self.current_frame + step)
		self._emit('currentframe', self.current_frame)
		if self.current_frame >= self.total_frames:
			self.pause()

#============================================

def format_progress_bar(percent: float, width: int = 40) -> str:
	if width <= 0:
		return ""
	filled = int(round(max(0.0, min(100.0, percent)) / 100.0 * width))
	return "#" * filled + "-" * (width - filled)

#============================================

def describe_entry(entry) -> str:
	start = frames.format_clock(entry.start_seconds)
	end = frames.format_clock(entry.end_seconds)
	text = f"{entry.kind} #{entry.source_index} {start}-{end} layer {entry.layer_index}"
	if entry.volume is not None:
		text += f" vol {entry.volume:.2f}"
	return text

#============================================

class MixreelTuiApp(App):
	BINDINGS = [
		("q", "quit", "Quit"),
		("space", "toggle_play", "Play/Pause"),
		("left", "skip_back", "Back 5s"),
		("right", "skip_forward", "Forward 5s"),
		("m", "toggle_mute", "Mute"),
	]

	CSS = """
	#top_row {
		height: 40%;
		min-height: 9;
	}

	#left_panel {
		width: 50%;
		border: solid gray;
	}

	#right_panel {
		width: 50%;
		border: solid gray;
	}

	#log {
		height: 1fr;
		border: solid gray;
	}
	"""

	def __init__(self, config_file: str, workers: int = 4, autoplay: bool = True):
		super().__init__()
		self.config_file = config_file
		self.workers = workers
		self.project = MixreelProject(config_file, workers=workers)
		self.player = PreviewPlayer(autoplay_allowed=autoplay)
		self.clock = None
		self.mute_controller = MuteController()
		self.autoplay_flow = AutoplayFlow()
		self.status_widget = None
		self.now_widget = None
		self.log_widget = None
		self.last_tick = None

	#============================
	def compose(self) -> ComposeResult:
		yield Static("MIXREEL PREVIEW", id="header")
		with Vertical(id="root"):
			with Horizontal(id="top_row"):
				with Vertical(id="left_panel"):
					yield Static("", id="status")
				with Vertical(id="right_panel"):
					yield Static("", id="now_playing")
			yield RichLog(id="log", wrap=True, highlight=False)

	#============================
	def on_mount(self) -> None:
		self.status_widget = self.query_one("#status", Static)
		self.now_widget = self.query_one("#now_playing", Static)
		self.log_widget = self.query_one(RichLog)
		self._update_status()
		thread = threading.Thread(target=self._build_project, daemon=True)
		thread.start()
		self.set_interval(TICK_SECONDS, self._tick)

	#============================
	def _build_project(self) -> None:
		utils.set_quiet_mode(True)
		try:
			self.project.build()
		except Exception as exc:
			self.call_from_thread(self._set_error, str(exc), traceback.format_exc())
			return
		self.call_from_thread(self._on_ready)

	#============================
	def _on_ready(self) -> None:
		self.clock = PlaybackClock(self.project.schedule)
		self.player.on('play', self._on_play)
		self.player.on('pause', self._on_pause)
		self.player.on('currentframe', self._on_current_frame)
		layers = self.project.mount(self.player)
		for entry in self.project.schedule.visual_entries:
			self._log_entry(entry)
		for entry in self.project.schedule.audio_entries:
			self._log_entry(entry)
		self._write_log(f"mounted {len(layers)} layers")
		if self.project.config.start_muted:
			self.mute_controller.apply(self.player, True)
		state = self.autoplay_flow.attempt(self.player.autoplay)
		if state is AutoplayState.AWAITING_GESTURE:
			self.log_widget.write("press space to start playback")
		self._update_status()

	#============================
	def _set_error(self, text: str, trace_text: str = None) -> None:
		if trace_text:
			self._write_log(trace_text)
		if self.log_widget is not None:
			self.log_widget.write(Text(f"error: {text}", style=f"bold {NORD_COLORS['error']}"))
		self._update_status()

	#============================
	def _on_play(self) -> None:
		self.clock.on_play()
		self.last_tick = time.monotonic()

	#============================
	def _on_pause(self) -> None:
		self.clock.on_pause()

	#============================
	def _on_current_frame(self, frame: int) -> None:
		self.clock.on_current_frame(frame)

	#============================
	def _tick(self) -> None:
		if self.clock is not None and self.player.playing:
			now = time.monotonic()
			elapsed = now - (self.last_tick or now)
			self.last_tick = now
			self.player.advance(elapsed)
		self._update_status()

	#============================
	def action_toggle_play(self) -> None:
		if self.clock is None:
			return
		if self.autoplay_flow.state is AutoplayState.AWAITING_GESTURE:
			self.autoplay_flow.user_gesture(self.player.play)
		elif self.player.playing:
			self.player.pause()
		else:
			self.player.play()
		self._update_status()

	#============================
	def action_skip_back(self) -> None:
		if self.clock is not None:
			self.player.seek(self.clock.skip_back())

	#============================
	def action_skip_forward(self) -> None:
		if self.clock is not None:
			self.player.seek(self.clock.skip_forward())

	#============================
	def action_toggle_mute(self) -> None:
		if self.clock is None:
			return
		probe = self.mute_controller.toggle(self.player)
		self._write_log(f"mute={self.mute_controller.muted} via {probe}")
		self._update_status()

	#============================
	def _log_entry(self, entry) -> None:
		style = NORD_COLORS.get(entry.kind, NORD_COLORS['foreground'])
		self.log_widget.write(Text(describe_entry(entry), style=style))

	#============================
	def _update_status(self) -> None:
		if self.status_widget is None:
			return
		status = Text()
		status_style = NORD_COLORS['foreground']
		if self.project.status == STATUS_FAILED:
			status_style = NORD_COLORS['error']
		elif self.project.status == STATUS_READY:
			status_style = NORD_COLORS['audio']
		status.append("Status: ", style=NORD_COLORS['dim'])
		status.append(self.project.status_text or self.project.status, style=status_style)
		status.append("\n")
		status.append("Config: ", style=NORD_COLORS['dim'])
		status.append(self.config_file, style=NORD_COLORS['foreground'])
		if self.clock is not None:
			status.append("\n")
			status.append("Time: ", style=NORD_COLORS['dim'])
			status.append(self.clock.time_display, style=NORD_COLORS['numbers'])
			status.append("\n")
			status.append(format_progress_bar(self.clock.percent), style=NORD_COLORS['header'])
			status.append("\n")
			status.append("Frame: ", style=NORD_COLORS['dim'])
			status.append(f"{self.player.current_frame}/{self.player.total_frames}",
				style=NORD_COLORS['numbers'])
			status.append("\n")
			status.append("Playing: " if self.player.playing else "Paused: ",
				style=NORD_COLORS['dim'])
			status.append("muted" if self.player.muted else "sound on",
				style=NORD_COLORS['foreground'])
		self.status_widget.update(status)
		self._update_now_playing()

	#============================
	def _update_now_playing(self) -> None:
		if self.now_widget is None or self.clock is None:
			return
		(visual, audio) = self.clock.active_entries()
		now = Text()
		now.append("Visual: ", style=NORD_COLORS['dim'])
		if visual is None:
			now.append("none", style=NORD_COLORS['dim'])
		else:
			now.append(describe_entry(visual), style=NORD_COLORS[visual.kind])
		for entry in audio:
			now.append("\n")
			now.append("Audio: ", style=NORD_COLORS['dim'])
			now.append(describe_entry(entry), style=NORD_COLORS['audio'])
		self.now_widget.update(now)

	#============================
	def _write_log(self, message: str) -> None:
		logger.debug(message)

#============================================

def setup_debug_log(log_path: str) -> logging.Handler:
	"""
	Send every logger to a fresh debug log file.
	"""
	handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
	handler.setFormatter(logging.Formatter(
		"[%(asctime)s] %(levelname)s %(name)s: %(message)s", "%Y-%m-%d %H:%M:%S"))
	root_logger = logging.getLogger()
	root_logger.addHandler(handler)
	root_logger.setLevel(logging.DEBUG)
	return handler

#============================================

def main():
	args = parse_args()
	if args.debug_log:
		setup_debug_log(os.path.join(os.getcwd(), DEBUG_LOG_NAME))
	app = MixreelTuiApp(args.config_file, workers=args.workers,
		autoplay=args.autoplay)
	app.run()

#============================================

if __name__ == '__main__':
	main()
