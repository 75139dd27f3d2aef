#!/usr/bin/env python3

#python wrapper for ffprobe

import json
import subprocess
from editplanlib.core.config import EngineConfig
from editplanlib.core.errors import ProbeError
from editplanlib.core.models import ClipRef

#============================================

def getMediaInfo(clip: ClipRef, config: EngineConfig) -> dict:
	cmd = [
		config.ffprobe_path, '-v', 'error',
		'-show_format', '-show_streams',
		'-of', 'json', clip.path,
	]
	try:
		proc = subprocess.run(cmd, capture_output=True, text=True,
			timeout=config.timeout)
	except (OSError, subprocess.TimeoutExpired) as exc:
		raise ProbeError(clip.path, str(exc))
	if proc.returncode != 0:
		message = proc.stderr.strip() or f"ffprobe exited with {proc.returncode}"
		raise ProbeError(clip.path, message)
	try:
		data = json.loads(proc.stdout)
	except ValueError as exc:
		raise ProbeError(clip.path, f"unreadable ffprobe output: {exc}")
	if not isinstance(data, dict):
		raise ProbeError(clip.path, "unreadable ffprobe output")
	return data

#============================================

def probeFormat(clip: ClipRef, config: EngineConfig) -> dict:
	data = getMediaInfo(clip, config)
	media_format = data.get('format')
	if not isinstance(media_format, dict):
		raise ProbeError(clip.path, "no format section in ffprobe output")
	return media_format

#============================================

def probeDuration(clip: ClipRef, config: EngineConfig) -> float:
	media_format = probeFormat(clip, config)
	raw_duration = media_format.get('duration')
	try:
		duration = float(raw_duration)
	except (TypeError, ValueError):
		raise ProbeError(clip.path, f"no container duration ({raw_duration!r})")
	if duration <= 0:
		raise ProbeError(clip.path, f"container duration is {duration}")
	return duration

#============================================

def make_duration_probe(config: EngineConfig):
	"""Bind the configuration so planners can call probe(clip)."""
	def probe(clip: ClipRef) -> float:
		return probeDuration(clip, config)
	return probe
