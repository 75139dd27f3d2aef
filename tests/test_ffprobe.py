#!/usr/bin/env python3

import json
import os
import subprocess
import sys
import unittest
from unittest import mock

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

from editplanlib.core.config import EngineConfig
from editplanlib.core.errors import ProbeError
from editplanlib.core.models import ClipRef
from editplanlib.media import ffprobe

#============================================

CONFIG = EngineConfig(ffprobe_path='/usr/bin/ffprobe', timeout=5.0)
CLIP = ClipRef("a.mp4", "/media/a.mp4")

#============================================

def _completed(stdout: str = "", returncode: int = 0, stderr: str = ""):
	return subprocess.CompletedProcess(args=[], returncode=returncode,
		stdout=stdout, stderr=stderr)

#============================================

def _ffprobe_json(duration) -> str:
	media_format = {'filename': CLIP.path, 'format_name': 'mov,mp4'}
	if duration is not None:
		media_format['duration'] = duration
	return json.dumps({'streams': [{'codec_type': 'video'}], 'format': media_format})

#============================================

class FfprobeTest(unittest.TestCase):
	#============================================
	def test_duration(self) -> None:
		"""Ensure the container duration is read as seconds."""
		with mock.patch('subprocess.run',
			return_value=_completed(_ffprobe_json("12.480000"))) as run_mock:
			self.assertEqual(ffprobe.probeDuration(CLIP, CONFIG), 12.48)
		cmd = run_mock.call_args[0][0]
		self.assertEqual(cmd[0], '/usr/bin/ffprobe')
		self.assertEqual(cmd[-1], CLIP.path)
		self.assertEqual(run_mock.call_args[1]['timeout'], 5.0)

	#============================================
	def test_bound_probe(self) -> None:
		"""Ensure the planner-facing probe only needs a clip."""
		probe = ffprobe.make_duration_probe(CONFIG)
		with mock.patch('subprocess.run', return_value=_completed(_ffprobe_json("3.0"))):
			self.assertEqual(probe(CLIP), 3.0)

	#============================================
	def test_format_info(self) -> None:
		"""Ensure the info operation returns the format section."""
		with mock.patch('subprocess.run', return_value=_completed(_ffprobe_json("3.0"))):
			media_format = ffprobe.probeFormat(CLIP, CONFIG)
		self.assertEqual(media_format['format_name'], 'mov,mp4')

	#============================================
	def test_failures(self) -> None:
		"""Ensure every unusable probe result raises ProbeError."""
		results = (
			_completed(returncode=1, stderr="No such file or directory"),
			_completed("not json"),
			_completed(json.dumps(["list"])),
			_completed(_ffprobe_json(None)),
			_completed(_ffprobe_json("N/A")),
			_completed(_ffprobe_json("0.000000")),
		)
		for result in results:
			with mock.patch('subprocess.run', return_value=result):
				with self.assertRaises(ProbeError):
					ffprobe.probeDuration(CLIP, CONFIG)

	#============================================
	def test_timeout(self) -> None:
		"""Ensure a hung ffprobe becomes a ProbeError."""
		expired = subprocess.TimeoutExpired(cmd='ffprobe', timeout=5.0)
		with mock.patch('subprocess.run', side_effect=expired):
			with self.assertRaises(ProbeError) as context:
				ffprobe.probeDuration(CLIP, CONFIG)
		self.assertEqual(context.exception.path, CLIP.path)

#============================================

def main() -> None:
	"""Run the unit tests."""
	unittest.main()

#============================================

if __name__ == "__main__":
	main()
