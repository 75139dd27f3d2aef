#!/usr/bin/env python3

import os
import sys
import tempfile
import threading
import unittest
from unittest import mock

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

from editplanlib.core.config import EngineConfig
from editplanlib.core.errors import CompilationError
from editplanlib.core.errors import EngineError
from editplanlib.core.models import ClipRef
from editplanlib.core.models import EngineInput
from editplanlib.core.models import FadeSpec
from editplanlib.core.models import FilterExpr
from editplanlib.core.models import OriginalAudio
from editplanlib.core.models import OutputOptions
from editplanlib.core.models import ReplacedAudio
from editplanlib.core.models import ResizeSpec
from editplanlib.core.models import StreamMap
from editplanlib.graph import single
from editplanlib.graph import stitch
from editplanlib.graph.assembler import assemble_plan
from editplanlib.graph.filtergraph import FilterGraphBuilder
from editplanlib.media import ffmpeg_render

#============================================

CONFIG = EngineConfig(ffmpeg_path='/usr/bin/ffmpeg', ffprobe_path='/usr/bin/ffprobe')
QUIET_CONFIG = EngineConfig(ffmpeg_path='/usr/bin/ffmpeg', quiet=True)
CLIPS = [ClipRef("a.mp4", "/m/a.mp4"), ClipRef("b.mp4", "/m/b.mp4")]

#============================================

class AssemblerTest(unittest.TestCase):
	#============================================
	def test_requires_input(self) -> None:
		"""Ensure a plan without inputs is refused."""
		with self.assertRaises(CompilationError):
			assemble_plan([], None, [], OutputOptions(), "/out/x.mp4")

	#============================================
	def test_map_to_missing_input(self) -> None:
		"""Ensure stream maps must point at an existing input."""
		with self.assertRaises(CompilationError):
			assemble_plan([EngineInput(CLIPS[0])], None, [StreamMap.stream(1, 'a')],
				OutputOptions(), "/out/x.mp4")

	#============================================
	def test_graph_reads_missing_input(self) -> None:
		"""Ensure graph input labels are checked against the input list."""
		builder = FilterGraphBuilder()
		builder.add_chain(['2:v'], [FilterExpr('null')], ['v'])
		graph = builder.build('v')
		with self.assertRaises(CompilationError):
			assemble_plan([EngineInput(CLIPS[0])], graph, [StreamMap.graph('v')],
				OutputOptions(), "/out/x.mp4")

	#============================================
	def test_unmapped_graph_output(self) -> None:
		"""Ensure every graph output ends up in a map."""
		builder = FilterGraphBuilder()
		builder.add_chain(['0:v'], [FilterExpr('null')], ['v'])
		graph = builder.build('v')
		with self.assertRaises(CompilationError):
			assemble_plan([EngineInput(CLIPS[0])], graph, [], OutputOptions(), "/out/x.mp4")
		with self.assertRaises(CompilationError):
			assemble_plan([EngineInput(CLIPS[0])], graph,
				[StreamMap.graph('v'), StreamMap.graph('a')], OutputOptions(), "/out/x.mp4")

	#============================================
	def test_non_positive_duration(self) -> None:
		"""Ensure an explicit duration clamp must be positive."""
		with self.assertRaises(CompilationError):
			assemble_plan([EngineInput(CLIPS[0])], None, [],
				OutputOptions(duration=0.0), "/out/x.mp4")

#============================================

class BuildCommandTest(unittest.TestCase):
	#============================================
	def test_convert_command(self) -> None:
		"""Ensure a conversion renders as a plain -f command."""
		plan = single.plan_convert(CLIPS[0], "/out/x.gif", "gif")
		self.assertEqual(ffmpeg_render.buildCommand(plan, CONFIG),
			['/usr/bin/ffmpeg', '-y', '-hide_banner', '-i', '/m/a.mp4', '-f', 'gif',
				'/out/x.gif'])

	#============================================
	def test_stitch_command(self) -> None:
		"""Ensure loop flags precede their input and maps follow the graph."""
		audio = ReplacedAudio(ClipRef("s.mp3", "/m/s.mp3"))
		plan = stitch.plan_stitch(CLIPS, ResizeSpec(320, 240, 'stretch'), audio, "/out/s.mp4")
		cmd = ffmpeg_render.buildCommand(plan, CONFIG)
		self.assertEqual(cmd[3:11], ['-i', '/m/a.mp4', '-i', '/m/b.mp4',
			'-stream_loop', '1000', '-i', '/m/s.mp3'])
		graph_index = cmd.index('-filter_complex')
		self.assertEqual(cmd[graph_index + 1],
			"[0:v]scale=320:240,setsar=1[v0];[1:v]scale=320:240,setsar=1[v1];"
			"[v0][v1]concat=n=2:v=1:a=0[v]")
		self.assertEqual(cmd[graph_index + 2:], ['-map', '[v]', '-map', '2:a', '-shortest',
			'/out/s.mp4'])

	#============================================
	def test_progress_flags(self) -> None:
		"""Ensure progress output goes to stdout when requested."""
		plan = single.plan_mute(CLIPS[0], "/out/m.mp4")
		cmd = ffmpeg_render.buildCommand(plan, CONFIG, progress=True)
		self.assertIn('-progress', cmd)
		self.assertEqual(cmd[cmd.index('-progress') + 1], 'pipe:1')

	#============================================
	def test_matroska_muxer_name(self) -> None:
		"""Ensure mkv output selects the matroska muxer."""
		self.assertEqual(OutputOptions(format='mkv').args(), ['-f', 'matroska'])

	#============================================
	def test_plan_to_dict(self) -> None:
		"""Ensure the plan dump lists inputs, graph, maps and options."""
		plan = stitch.plan_stitch(CLIPS, None, OriginalAudio(), "/out/s.mp4")
		data = plan.to_dict()
		self.assertEqual([item['path'] for item in data['inputs']], ['/m/a.mp4', '/m/b.mp4'])
		self.assertEqual(data['maps'], ['[v]', '[a]'])
		self.assertEqual(data['output']['target'], '/out/s.mp4')

#============================================

class RenderPlanTest(unittest.TestCase):
	#============================================
	def test_failure_removes_temporary_inputs(self) -> None:
		"""Ensure uploaded audio is deleted even when ffmpeg fails."""
		with tempfile.TemporaryDirectory() as temp_dir:
			audio_path = os.path.join(temp_dir, "upload.mp3")
			with open(audio_path, "w") as audio_file:
				audio_file.write("")
			audio = ReplacedAudio(ClipRef("upload.mp3", audio_path), loop=False,
				temporary=True)
			plan = single.plan_add_audio(CLIPS[0], audio, os.path.join(temp_dir, "o.mp4"))
			failed = mock.Mock(returncode=1, stderr="Invalid data found")
			with mock.patch('subprocess.run', return_value=failed):
				with self.assertRaises(EngineError) as context:
					ffmpeg_render.renderPlan(plan, QUIET_CONFIG)
			self.assertEqual(context.exception.returncode, 1)
			self.assertIn("Invalid data found", str(context.exception))
			self.assertFalse(os.path.exists(audio_path))

	#============================================
	def test_missing_output_is_error(self) -> None:
		"""Ensure a zero exit without an output file is still a failure."""
		with tempfile.TemporaryDirectory() as temp_dir:
			plan = single.plan_mute(CLIPS[0], os.path.join(temp_dir, "m.mp4"))
			done = mock.Mock(returncode=0, stderr="")
			with mock.patch('subprocess.run', return_value=done):
				with self.assertRaises(EngineError):
					ffmpeg_render.renderPlan(plan, QUIET_CONFIG)

	#============================================
	def test_quiet_config_prints_nothing(self) -> None:
		"""Ensure a quiet config silences the command echo without the environment."""
		with tempfile.TemporaryDirectory() as temp_dir:
			output_path = os.path.join(temp_dir, "m.mp4")
			with open(output_path, "w") as output_file:
				output_file.write("")
			plan = single.plan_mute(CLIPS[0], output_path)
			done = mock.Mock(returncode=0, stderr="")
			with mock.patch.dict(os.environ):
				os.environ.pop('EDITPLAN_QUIET', None)
				with mock.patch('subprocess.run', return_value=done):
					with mock.patch('builtins.print') as print_mock:
						ffmpeg_render.renderPlan(plan, QUIET_CONFIG)
			print_mock.assert_not_called()

#============================================

class FakeProcess():
	"""
	Stand-in for subprocess.Popen that replays -progress lines.
	"""
	def __init__(self, lines: list, returncode: int = 0, hang: bool = False):
		self.lines = lines
		self.returncode = returncode
		self.hang = hang
		self.killed = threading.Event()
		self.stdout = self._stdout()

	def _stdout(self):
		for line in self.lines:
			yield line
		if self.hang:
			self.killed.wait(5.0)

	def kill(self) -> None:
		self.returncode = -9
		self.killed.set()

	def wait(self) -> int:
		return self.returncode

#============================================

class ProgressRenderTest(unittest.TestCase):
	#============================================
	def setUp(self) -> None:
		self.temp_dir = tempfile.TemporaryDirectory()
		self.env_patch = mock.patch.dict(os.environ)
		self.env_patch.start()
		os.environ.pop('EDITPLAN_QUIET', None)

	#============================================
	def tearDown(self) -> None:
		self.env_patch.stop()
		self.temp_dir.cleanup()

	#============================================
	def test_progress_seconds(self) -> None:
		"""Ensure only out_time keys advance the bar."""
		self.assertEqual(ffmpeg_render._progress_seconds("out_time_us=1500000\n"), 1.5)
		self.assertEqual(ffmpeg_render._progress_seconds("out_time_ms=250000"), 0.25)
		self.assertIsNone(ffmpeg_render._progress_seconds("out_time_us=N/A"))
		self.assertIsNone(ffmpeg_render._progress_seconds("progress=continue"))

	#============================================
	def test_progress_bar_render(self) -> None:
		"""Ensure the default run reads -progress output into a tqdm bar."""
		output_path = os.path.join(self.temp_dir.name, "c.mp4")
		with open(output_path, "w") as output_file:
			output_file.write("")
		edit = single.CustomEdit(fades=FadeSpec(fade_out=0.5))
		plan = single.plan_custom(CLIPS[0], edit, output_path, lambda clip: 4.0)
		lines = ["frame=10\n", "out_time_us=1000000\n", "progress=continue\n",
			"out_time_us=9000000\n", "progress=end\n"]
		process = FakeProcess(lines)
		with mock.patch('subprocess.Popen', return_value=process) as popen_mock:
			with mock.patch.object(ffmpeg_render, 'tqdm',
				wraps=ffmpeg_render.tqdm) as bar_mock:
				with mock.patch('builtins.print'):
					result = ffmpeg_render.renderPlan(plan, CONFIG)
		self.assertEqual(result, output_path)
		cmd = popen_mock.call_args[0][0]
		self.assertEqual(cmd[cmd.index('-progress') + 1], 'pipe:1')
		self.assertEqual(bar_mock.call_args[1]['total'], 4.0)

	#============================================
	def test_progress_timeout(self) -> None:
		"""Ensure a hung ffmpeg is killed and reported as a timeout."""
		audio_path = os.path.join(self.temp_dir.name, "upload.mp3")
		with open(audio_path, "w") as audio_file:
			audio_file.write("")
		audio = ReplacedAudio(ClipRef("upload.mp3", audio_path), loop=False, temporary=True)
		plan = single.plan_add_audio(CLIPS[0], audio,
			os.path.join(self.temp_dir.name, "o.mp4"))
		config = EngineConfig(ffmpeg_path='/usr/bin/ffmpeg', timeout=0.2)
		process = FakeProcess(["out_time_us=100000\n"], hang=True)
		with mock.patch('subprocess.Popen', return_value=process):
			with mock.patch('builtins.print'):
				with self.assertRaises(EngineError) as context:
					ffmpeg_render.renderPlan(plan, config)
		self.assertTrue(process.killed.is_set())
		self.assertEqual(str(context.exception), "ffmpeg timed out after 0.2 seconds")
		self.assertFalse(os.path.exists(audio_path))

	#============================================
	def test_progress_failure_exit_code(self) -> None:
		"""Ensure a failing run without a timeout keeps its exit code."""
		plan = single.plan_mute(CLIPS[0], os.path.join(self.temp_dir.name, "m.mp4"))
		process = FakeProcess(["progress=end\n"], returncode=1)
		with mock.patch('subprocess.Popen', return_value=process):
			with mock.patch('builtins.print'):
				with self.assertRaises(EngineError) as context:
					ffmpeg_render.renderPlan(plan, CONFIG)
		self.assertEqual(context.exception.returncode, 1)

#============================================

def main() -> None:
	"""Run the unit tests."""
	unittest.main()

#============================================

if __name__ == "__main__":
	main()
