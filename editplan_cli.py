#!/usr/bin/env python3

import argparse
import dataclasses
import shlex
import sys
import yaml
from editplanlib.core.compiler import EditCompiler
from editplanlib.core.config import load_config
from editplanlib.core.errors import CompilationError
from editplanlib.core.errors import EngineError
from editplanlib.core.loader import RequestLoader
from editplanlib.media import ffmpeg_render

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="Compile and run ffmpeg edit requests")
	parser.add_argument('-y', '--yaml', dest='yamlfile', required=True,
		help='request yaml file describing the edit')
	parser.add_argument('-c', '--config', dest='config_file',
		help='engine config yaml (ffmpeg paths, directories, timeout)')
	parser.add_argument('-o', '--output', dest='output_file',
		help='override the generated output file name')
	parser.add_argument('-n', '--dry-run', dest='dry_run', action='store_true',
		help='print the ffmpeg command, do not run it')
	parser.add_argument('-p', '--dump-plan', dest='dump_plan', action='store_true',
		help='print the compiled execution plan as yaml')
	parser.add_argument('-q', '--quiet', dest='quiet', action='store_true',
		help='suppress progress output')
	args = parser.parse_args(argv)
	return args

#============================================

def run(args) -> int:
	config = load_config(args.config_file)
	if args.quiet:
		config = dataclasses.replace(config, quiet=True)
	request = RequestLoader(args.yamlfile, output_override=args.output_file).load()
	compiler = EditCompiler(config)
	if request['operation'] == 'info':
		print(yaml.safe_dump(compiler.info(request), sort_keys=False))
		return 0
	plan = compiler.compile_request(request)
	if args.dump_plan:
		print(yaml.safe_dump(plan.to_dict(), sort_keys=False))
		return 0
	if args.dry_run:
		print(shlex.join(ffmpeg_render.buildCommand(plan, config)))
		return 0
	output_file = ffmpeg_render.renderPlan(plan, config)
	print(output_file)
	return 0

#============================================

def main(argv: list = None) -> int:
	args = parse_args(argv)
	try:
		return run(args)
	except CompilationError as exc:
		print(f"error: {exc}", file=sys.stderr)
		return 2
	except EngineError as exc:
		print(f"ffmpeg error: {exc}", file=sys.stderr)
		return 1


if __name__ == '__main__':
	sys.exit(main())
