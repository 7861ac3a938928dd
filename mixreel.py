#!/usr/bin/env python3

import argparse
import logging
import os
import sys
import yaml
from tqdm import tqdm
from mixreellib.core import frames
from mixreellib.core import utils
from mixreellib.core.project import MixreelProject
from mixreellib.exporters.mlt import MeltRenderer
from mixreellib.exporters.mlt import MltExporter

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="Playlist to timeline compiler")
	parser.add_argument('-c', '--config', dest='config_file',
		default=os.environ.get('MIXREEL_CONFIG', 'media-config.json'),
		help='playlist configuration document (JSON or YAML)')
	parser.add_argument('-n', '--dry-run', dest='dry_run', action='store_true',
		help='build and validate the schedule only')
	parser.add_argument('-p', '--dump-plan', dest='dump_plan', action='store_true',
		help='print the compiled schedule as YAML')
	parser.add_argument('-m', '--mlt', dest='mlt_file',
		help='write the composition as MLT XML')
	parser.add_argument('-o', '--output', dest='output_file',
		help='export the composition with melt to this file')
	parser.add_argument('-r', '--resolution', dest='resolution', default='1920x1080',
		help='export resolution as WIDTHxHEIGHT')
	parser.add_argument('-w', '--workers', dest='workers', type=int,
		default=int(os.environ.get('MIXREEL_WORKERS', '4')),
		help='number of sources to load concurrently')
	parser.add_argument('-d', '--debug', dest='log_level', action='store_const',
		const='DEBUG', help='verbose logging')
	parser.add_argument('-q', '--quiet', dest='quiet', action='store_true',
		help='only print warnings and errors')
	parser.set_defaults(log_level=os.environ.get('MIXREEL_LOG_LEVEL', 'INFO'))
	args = parser.parse_args(argv)
	return args

#============================================

def parse_resolution(raw_value: str) -> tuple:
	parts = raw_value.lower().split('x')
	if len(parts) != 2 or not parts[0].isdigit() or not parts[1].isdigit():
		raise RuntimeError("resolution must be WIDTHxHEIGHT, e.g. 1920x1080")
	width = int(parts[0])
	height = int(parts[1])
	if width <= 0 or height <= 0:
		raise RuntimeError("resolution must be positive")
	return (width, height)

#============================================

def setup_logging(level_name: str, quiet: bool) -> None:
	if quiet:
		level_name = 'WARNING'
	level = getattr(logging, str(level_name).upper(), logging.INFO)
	logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
	utils.set_quiet_mode(quiet)

#============================================

def export_with_progress(mlt_file: str, output_file: str, total_frames: int) -> str:
	bar = tqdm(total=100, unit='%', disable=utils.is_quiet_mode())

	def report(progress: float) -> None:
		target = int(round(progress * 100))
		if target > bar.n:
			bar.update(target - bar.n)

	renderer = MeltRenderer(mlt_file, output_file, total_frames,
		progress_callback=report)
	try:
		renderer.render()
	finally:
		bar.close()
	return output_file

#============================================

def run(args) -> int:
	(width, height) = parse_resolution(args.resolution)
	project = MixreelProject(args.config_file, workers=args.workers)
	schedule = project.build()
	if args.dump_plan:
		print(yaml.safe_dump(project.summary(), sort_keys=False))
		return 0
	if not utils.is_quiet_mode():
		print(f"{project.status_text} ({schedule.total_frames} frames at "
			f"{schedule.frame_rate}fps, {len(schedule.visual_entries)} visual, "
			f"{len(schedule.audio_entries)} audio)")
	if args.dry_run:
		if not utils.is_quiet_mode():
			print("dry run: validation complete")
		return 0
	mlt_file = args.mlt_file
	if mlt_file is None and args.output_file is not None:
		base, _ = os.path.splitext(args.output_file)
		mlt_file = base + ".mlt"
	if mlt_file is None:
		return 0
	exporter = MltExporter(project, mlt_file, width=width, height=height)
	exporter.export()
	if args.output_file is not None:
		export_with_progress(mlt_file, args.output_file, schedule.total_frames)
		if not utils.is_quiet_mode():
			print(f"exported {args.output_file} "
				f"({frames.format_clock(schedule.total_seconds)})")
	return 0

#============================================

def main():
	args = parse_args()
	setup_logging(args.log_level, args.quiet)
	try:
		code = run(args)
	except RuntimeError as exc:
		print(f"error: {exc}", file=sys.stderr)
		code = 1
	sys.exit(code)


if __name__ == '__main__':
	main()
