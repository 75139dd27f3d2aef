#!/usr/bin/env python3

import os
import shutil
import yaml
from dataclasses import dataclass
from typing import Optional

#============================================

DEFAULT_UPLOAD_DIR = 'uploads'
DEFAULT_OUTPUT_DIR = os.path.join('public', 'processed')
MAX_CONFIG_BYTES = 10 ** 6

ENV_KEYS = {
	'ffmpeg': 'EDITPLAN_FFMPEG',
	'ffprobe': 'EDITPLAN_FFPROBE',
	'upload_dir': 'EDITPLAN_UPLOAD_DIR',
	'output_dir': 'EDITPLAN_OUTPUT_DIR',
	'timeout': 'EDITPLAN_TIMEOUT',
	'quiet': 'EDITPLAN_QUIET',
}

#============================================

@dataclass(frozen=True)
class EngineConfig:
	"""
	Engine binaries and directories, fixed for the life of the process.
	"""
	ffmpeg_path: str = 'ffmpeg'
	ffprobe_path: str = 'ffprobe'
	search_dirs: tuple = (DEFAULT_UPLOAD_DIR, DEFAULT_OUTPUT_DIR)
	output_dir: str = DEFAULT_OUTPUT_DIR
	timeout: Optional[float] = None
	quiet: bool = False

#============================================

def _load_yaml(yaml_file: str) -> dict:
	file_size = os.path.getsize(yaml_file)
	if file_size > MAX_CONFIG_BYTES:
		raise RuntimeError("config file is larger than 1MB")
	with open(yaml_file, 'r') as data_file:
		data = yaml.safe_load(data_file)
	if data is None:
		return {}
	if not isinstance(data, dict):
		raise RuntimeError("config yaml must be a mapping at the top level")
	return data

#============================================

def _resolve_binary(name: str, raw_path: str) -> str:
	if raw_path is not None:
		candidate = os.path.expanduser(str(raw_path))
		if os.path.isfile(candidate):
			return os.path.abspath(candidate)
		found = shutil.which(candidate)
		if found is None:
			raise RuntimeError(f"{name} binary not found: {raw_path}")
		return found
	found = shutil.which(name)
	if found is None:
		# left unresolved; the collaborators report the failure when run
		return name
	return found

#============================================

def _parse_timeout(raw_timeout) -> Optional[float]:
	if raw_timeout is None or raw_timeout == '':
		return None
	try:
		timeout = float(raw_timeout)
	except (TypeError, ValueError):
		raise RuntimeError(f"timeout must be a number of seconds, got {raw_timeout!r}")
	if timeout <= 0:
		raise RuntimeError("timeout must be positive")
	return timeout

#============================================

def _parse_quiet(raw_quiet) -> bool:
	if raw_quiet is None:
		return False
	if isinstance(raw_quiet, bool):
		return raw_quiet
	return str(raw_quiet).strip().lower() in ('1', 'true', 'yes', 'on')

#============================================

def load_config(yaml_file: str = None, environ: dict = None) -> EngineConfig:
	"""
	Build the engine configuration.

	Values come from the optional yaml file, then environment variables
	override them. Keys: ffmpeg, ffprobe, upload_dir, output_dir,
	timeout, quiet.
	"""
	if environ is None:
		environ = os.environ
	data = {}
	if yaml_file is not None:
		data = _load_yaml(yaml_file)
	unknown = set(data.keys()) - set(ENV_KEYS.keys())
	if len(unknown) > 0:
		raise RuntimeError(f"unknown config keys: {', '.join(sorted(unknown))}")
	for key, env_name in ENV_KEYS.items():
		if environ.get(env_name) is not None:
			data[key] = environ[env_name]
	upload_dir = str(data.get('upload_dir', DEFAULT_UPLOAD_DIR))
	output_dir = str(data.get('output_dir', DEFAULT_OUTPUT_DIR))
	return EngineConfig(
		ffmpeg_path=_resolve_binary('ffmpeg', data.get('ffmpeg')),
		ffprobe_path=_resolve_binary('ffprobe', data.get('ffprobe')),
		search_dirs=(upload_dir, output_dir),
		output_dir=output_dir,
		timeout=_parse_timeout(data.get('timeout')),
		quiet=_parse_quiet(data.get('quiet')),
	)
