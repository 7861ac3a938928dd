
import argparse
import logging
import os
import re
import shutil
import subprocess
import lxml.etree
from mixreellib.core import utils
from mixreellib.core.project import MixreelProject

logger = logging.getLogger(__name__)

FRAME_PATTERN = re.compile(r"Current Frame:\s*(\d+)")
PERCENT_PATTERN = re.compile(r"percentage:\s*(\d+)")

#============================================

def parse_args():
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="Export a mixreel playlist to MLT XML")
	parser.add_argument('-c', '--config', dest='config_file', required=True,
		help='playlist configuration document (JSON or YAML)')
	parser.add_argument('-o', '--output', dest='output_file',
		help='output MLT XML file path')
	args = parser.parse_args()
	return args

#============================================

def reduce_fraction(num: int, den: int) -> tuple:
	if den == 0:
		return (num, den)
	a = num
	b = den
	while b != 0:
		a, b = b, a % b
	gcd = a if a != 0 else 1
	return (num // gcd, den // gcd)

#============================================

def parse_melt_progress(line: str, total_frames: int):
	"""
	Turn one line of melt -progress output into a 0..1 fraction, or None.
	"""
	match = FRAME_PATTERN.search(line)
	if match is not None and total_frames > 0:
		return min(1.0, int(match.group(1)) / total_frames)
	match = PERCENT_PATTERN.search(line)
	if match is not None:
		return min(1.0, int(match.group(1)) / 100.0)
	return None

#============================================
class MltExporter():
	"""
	Composition that writes mounted layers out as MLT XML.
	"""
	def __init__(self, project: MixreelProject, output_file: str = None,
		width: int = 1920, height: int = 1080):
		self.project = project
		self.output_file = output_file or self._default_output_path()
		self.width = width
		self.height = height
		self.total_frames = 0
		self.layers = []
		self.producer_counter = 0
		self.root = None

	#============================
	def _default_output_path(self) -> str:
		base, _ = os.path.splitext(self.project.config_file)
		return base + ".mlt"

	#============================
	def set_total_frames(self, total_frames: int) -> None:
		self.total_frames = total_frames

	#============================
	def add_layer(self, layer) -> None:
		self.layers.append(layer)

	#============================
	def export(self) -> str:
		if self.project.schedule is None:
			self.project.build()
		self.layers = []
		self.project.mount(self)
		if self.total_frames <= 0:
			raise RuntimeError("nothing to export: composition has zero duration")
		self.producer_counter = 0
		self.root = lxml.etree.Element('mlt')
		self._emit_profile()
		layers = sorted(self.layers, key=lambda layer: layer.index)
		for layer in layers:
			self._emit_playlist(layer)
		self._emit_tractor(layers)
		self._write_output()
		logger.info("wrote %s (%d layers, %d frames)", self.output_file,
			len(layers), self.total_frames)
		return self.output_file

	#============================
	def _emit_profile(self) -> None:
		fps = self.project.schedule.frame_rate
		(display_num, display_den) = reduce_fraction(self.width, self.height)
		profile = lxml.etree.SubElement(self.root, 'profile')
		profile.set('description', 'mixreel')
		profile.set('width', str(self.width))
		profile.set('height', str(self.height))
		profile.set('progressive', '1')
		profile.set('sample_aspect_num', '1')
		profile.set('sample_aspect_den', '1')
		profile.set('display_aspect_num', str(display_num))
		profile.set('display_aspect_den', str(display_den))
		profile.set('frame_rate_num', str(fps))
		profile.set('frame_rate_den', '1')
		profile.set('colorspace', '709')

	#============================
	def _emit_playlist(self, layer) -> None:
		playlist_elem = lxml.etree.SubElement(self.root, 'playlist')
		playlist_elem.set('id', self._playlist_id(layer))
		cursor = 0
		for clip in layer.clips:
			if clip.delay_frames < cursor:
				raise RuntimeError(f"clips overlap on layer {layer.index}")
			if clip.delay_frames > cursor:
				blank_elem = lxml.etree.SubElement(playlist_elem, 'blank')
				blank_elem.set('length', str(clip.delay_frames - cursor))
			self._emit_clip(playlist_elem, clip)
			cursor = clip.delay_frames + clip.duration_frames

	#============================
	def _emit_clip(self, playlist_elem, clip) -> None:
		media_file = self._source_file(clip)
		if clip.kind == 'image':
			producer_id = self._emit_image_producer(media_file, clip.duration_frames)
			start_frame = 0
			end_frame = clip.duration_frames - 1
		else:
			producer_id = self._emit_av_producer(media_file)
			start_frame = 0
			end_frame = clip.duration_frames - 1
			if clip.trim_frames is not None:
				start_frame = clip.trim_frames[0]
				end_frame = clip.trim_frames[1] - 1
		entry_elem = lxml.etree.SubElement(playlist_elem, 'entry')
		entry_elem.set('producer', producer_id)
		entry_elem.set('in', str(start_frame))
		entry_elem.set('out', str(end_frame))
		if clip.volume is not None:
			filter_elem = lxml.etree.SubElement(entry_elem, 'filter')
			self._set_property(filter_elem, 'mlt_service', 'volume')
			self._set_property(filter_elem, 'gain', f"{clip.volume:.4f}")

	#============================
	def _source_file(self, clip) -> str:
		sources = self.project.sources
		if clip.kind == 'video':
			return sources.video_sources[clip.source_index].handle
		if clip.kind == 'image':
			return sources.image_sources[clip.source_index].handle
		return sources.track_sources[clip.source_index].handle

	#============================
	def _emit_av_producer(self, media_file: str) -> str:
		producer_id = self._next_producer_id('source')
		producer = self._insert_producer()
		producer.set('id', producer_id)
		self._set_property(producer, 'mlt_service', 'avformat')
		self._set_property(producer, 'resource', media_file)
		return producer_id

	#============================
	def _emit_image_producer(self, media_file: str, duration_frames: int) -> str:
		producer_id = self._next_producer_id('image')
		producer = self._insert_producer()
		producer.set('id', producer_id)
		self._set_property(producer, 'mlt_service', 'qimage')
		self._set_property(producer, 'resource', media_file)
		self._set_property(producer, 'length', str(duration_frames))
		self._set_property(producer, 'out', str(duration_frames - 1))
		return producer_id

	#============================
	def _emit_tractor(self, layers: list) -> None:
		tractor = lxml.etree.SubElement(self.root, 'tractor')
		tractor.set('id', 'tractor0')
		tractor.set('in', '0')
		tractor.set('out', str(self.total_frames - 1))
		self._set_property(tractor, 'mixreel:total_frames', str(self.total_frames))
		multitrack = lxml.etree.SubElement(tractor, 'multitrack')
		for layer in layers:
			track_elem = lxml.etree.SubElement(multitrack, 'track')
			track_elem.set('producer', self._playlist_id(layer))
		for track_index, layer in enumerate(layers):
			if track_index == 0:
				continue
			self._emit_transition(tractor, 'mix', track_index, {'sum': '1'})
			if layer.kind != 'audio':
				self._emit_transition(tractor, 'composite', track_index, {'fill': '1'})

	#============================
	def _emit_transition(self, tractor, service: str, track_index: int,
		extra: dict) -> None:
		transition = lxml.etree.SubElement(tractor, 'transition')
		self._set_property(transition, 'mlt_service', service)
		self._set_property(transition, 'a_track', '0')
		self._set_property(transition, 'b_track', str(track_index))
		self._set_property(transition, 'always_active', '1')
		for name, value in extra.items():
			self._set_property(transition, name, value)

	#============================
	def _playlist_id(self, layer) -> str:
		if layer.kind == 'audio':
			return 'layer_audio'
		return f"layer_{layer.index:03d}"

	#============================
	def _set_property(self, parent, name: str, value: str) -> None:
		prop = lxml.etree.SubElement(parent, 'property')
		prop.set('name', name)
		prop.text = value

	#============================
	def _insert_producer(self):
		# melt resolves producer references in document order
		producer = lxml.etree.Element('producer')
		self.root.insert(self.producer_counter, producer)
		return producer

	#============================
	def _next_producer_id(self, prefix: str) -> str:
		self.producer_counter += 1
		return f"{prefix}_{self.producer_counter:04d}"

	#============================
	def _write_output(self) -> None:
		os.makedirs(os.path.dirname(self.output_file) or '.', exist_ok=True)
		tree = lxml.etree.ElementTree(self.root)
		tree.write(self.output_file, encoding='utf-8', xml_declaration=True,
			pretty_print=True)

#============================================
class MeltRenderer():
	"""
	Render an MLT file with melt, reporting progress as a 0..1 fraction.
	"""
	def __init__(self, mlt_file: str, output_file: str, total_frames: int,
		progress_callback=None):
		self.mlt_file = mlt_file
		self.output_file = output_file
		self.total_frames = total_frames
		self.progress_callback = progress_callback
		self.last_progress = 0.0

	#============================
	def build_command(self) -> list:
		return ['melt', self.mlt_file, '-progress', '-consumer',
			f"avformat:{self.output_file}", 'vcodec=libx264', 'acodec=aac']

	#============================
	def render(self) -> str:
		if shutil.which('melt') is None:
			raise RuntimeError("melt not found; install MLT to export")
		cmd = self.build_command()
		if not utils.is_quiet_mode():
			print(f"CMD: '{' '.join(cmd)}'")
		tail = []
		proc = subprocess.Popen(cmd, stdout=subprocess.DEVNULL,
			stderr=subprocess.PIPE, text=True)
		# text mode splits melt's carriage-return progress updates into lines
		for line in proc.stderr:
			self.handle_output_line(line)
			tail = (tail + [line.rstrip()])[-20:]
		returncode = proc.wait()
		if returncode != 0:
			raise RuntimeError(f"melt failed ({returncode}): " + "\n".join(tail))
		utils.ensure_file_exists(self.output_file)
		self._report(1.0)
		return self.output_file

	#============================
	def handle_output_line(self, line: str) -> None:
		progress = parse_melt_progress(line, self.total_frames)
		if progress is not None:
			self._report(progress)

	#============================
	def _report(self, progress: float) -> None:
		if progress < self.last_progress:
			return
		self.last_progress = progress
		if self.progress_callback is not None:
			self.progress_callback(progress)

#============================================
#============================================
#============================================


def main():
	args = parse_args()
	logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
	project = MixreelProject(args.config_file)
	exporter = MltExporter(project, args.output_file)
	exporter.export()
	print(f"wrote {exporter.output_file}")


if __name__ == '__main__':
	main()
