#!/usr/bin/env python3

import os
import subprocess
import tempfile
import threading
import time
from tqdm import tqdm
from editplanlib.core import utils
from editplanlib.core.config import EngineConfig
from editplanlib.core.errors import EngineError
from editplanlib.core.models import ExecutionPlan

#============================================

STDERR_TAIL_CHARS = 2000

#============================================

def buildCommand(plan: ExecutionPlan, config: EngineConfig,
	progress: bool = False) -> list:
	cmd = [config.ffmpeg_path, '-y', '-hide_banner']
	if progress:
		cmd += ['-loglevel', 'error', '-nostats', '-progress', 'pipe:1']
	for engine_input in plan.inputs:
		cmd += engine_input.args()
	if plan.filter_graph is not None:
		cmd += ['-filter_complex', plan.filter_graph.render()]
	for stream_map in plan.stream_maps:
		cmd += ['-map', stream_map.render()]
	cmd += plan.output_options.args()
	cmd.append(plan.output_target)
	return cmd

#============================================

def _progress_seconds(line: str) -> float:
	key, _, value = line.strip().partition('=')
	if key in ('out_time_us', 'out_time_ms'):
		try:
			return int(value) / 1000000.0
		except ValueError:
			return None
	return None

#============================================

def _timeout_error(timeout: float) -> EngineError:
	return EngineError(f"ffmpeg timed out after {timeout} seconds")

#============================================

def _run_with_progress(cmd: list, total: float, timeout: float) -> tuple:
	with tempfile.TemporaryFile(mode='w+') as stderr_file:
		proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=stderr_file,
			text=True)
		timed_out = threading.Event()

		def kill() -> None:
			timed_out.set()
			proc.kill()

		timer = None
		if timeout is not None:
			timer = threading.Timer(timeout, kill)
			timer.start()
		bar = tqdm(total=total, unit='s')
		try:
			for line in proc.stdout:
				seconds = _progress_seconds(line)
				if seconds is None:
					continue
				if total is not None:
					seconds = min(seconds, total)
				bar.update(max(0.0, seconds - bar.n))
			returncode = proc.wait()
		finally:
			bar.close()
			if timer is not None:
				timer.cancel()
		if timed_out.is_set():
			raise _timeout_error(timeout)
		stderr_file.seek(0)
		stderr = stderr_file.read()
	return (returncode, stderr)

#============================================

def _run_quiet(cmd: list, timeout: float) -> tuple:
	try:
		proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
	except subprocess.TimeoutExpired:
		raise _timeout_error(timeout)
	return (proc.returncode, proc.stderr)

#============================================

def removeTemporaryInputs(plan: ExecutionPlan) -> None:
	for path in plan.temporary_paths():
		if os.path.isfile(path):
			os.remove(path)

#============================================

def renderPlan(plan: ExecutionPlan, config: EngineConfig) -> str:
	"""
	Run ffmpeg for a compiled plan and return the output path.

	Temporary inputs are removed whether or not the run succeeds.
	"""
	t0 = time.time()
	quiet = config.quiet or utils.is_quiet_mode()
	show_progress = not quiet
	cmd = buildCommand(plan, config, progress=show_progress)
	utils.show_command(cmd, quiet)
	output_dir = os.path.dirname(plan.output_target)
	try:
		if output_dir and not os.path.isdir(output_dir):
			os.makedirs(output_dir)
		try:
			if show_progress:
				total = plan.output_options.duration or plan.estimated_duration
				(returncode, stderr) = _run_with_progress(cmd, total, config.timeout)
			else:
				(returncode, stderr) = _run_quiet(cmd, config.timeout)
		except OSError as exc:
			raise EngineError(f"could not start ffmpeg: {exc}")
		if returncode != 0:
			tail = stderr.strip()[-STDERR_TAIL_CHARS:]
			raise EngineError(f"ffmpeg failed with exit code {returncode}: {tail}",
				returncode=returncode, stderr=stderr)
		if not os.path.isfile(plan.output_target):
			raise EngineError(f"ffmpeg finished but wrote no file: {plan.output_target}")
	finally:
		removeTemporaryInputs(plan)
	utils.log(f"Complete in {int(time.time() - t0)} seconds", quiet)
	return plan.output_target
