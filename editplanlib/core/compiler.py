#!/usr/bin/env python3

import os
from editplanlib.core import utils
from editplanlib.core.config import EngineConfig
from editplanlib.core.errors import ValidationError
from editplanlib.core.models import ExecutionPlan
from editplanlib.core.models import FadeSpec
from editplanlib.core.models import MutedAudio
from editplanlib.core.models import OriginalAudio
from editplanlib.core.models import ReplacedAudio
from editplanlib.core.resolver import ClipResolver
from editplanlib.graph import scale
from editplanlib.graph import single
from editplanlib.graph import stitch
from editplanlib.media import ffprobe

#============================================

SUPPORTED_FORMATS = ('mp4', 'mov', 'avi', 'mp3', 'gif', 'mkv', 'webm')
DEFAULT_FORMAT = 'mp4'
SPEED_MIN = 0.1
SPEED_MAX = 10.0

#============================================

def _field(request: dict, *names):
	for name in names:
		if name in request:
			return request[name]
	return None

#============================================

def _required_name(request: dict, *names) -> str:
	value = _field(request, *names)
	if utils.is_blank(value):
		raise ValidationError("is required", names[0])
	if not isinstance(value, str):
		raise ValidationError("must be a file name", names[0])
	return value

#============================================

def _parse_format(raw_format, required: bool = False) -> str:
	if utils.is_blank(raw_format):
		if required:
			raise ValidationError("is required", 'format')
		return None
	output_format = str(raw_format).strip().lower()
	if output_format not in SUPPORTED_FORMATS:
		choices = ", ".join(SUPPORTED_FORMATS)
		raise ValidationError(f"must be one of {choices}, got {raw_format!r}", 'format')
	return output_format

#============================================

def _parse_codec(raw_codec, field: str) -> str:
	if utils.is_blank(raw_codec):
		return None
	codec = str(raw_codec).strip()
	if not codec.replace('_', '').replace('-', '').isalnum():
		raise ValidationError(f"invalid codec name {raw_codec!r}", field)
	return codec

#============================================

class EditCompiler():
	"""
	Turn edit requests into execution plans.

	One method per operation; each validates its fields, resolves the
	clips it names and hands off to the matching planner. Nothing here
	runs ffmpeg.
	"""
	def __init__(self, config: EngineConfig, resolver: ClipResolver = None,
		probe=None):
		self.config = config
		if resolver is None:
			resolver = ClipResolver(config.search_dirs)
		self.resolver = resolver
		if probe is None:
			probe = ffprobe.make_duration_probe(config)
		self.probe = probe

	#============================
	def _output_target(self, request: dict, prefix: str, extension: str) -> str:
		override = request.get('output')
		if not utils.is_blank(override):
			return str(override)
		return os.path.join(self.config.output_dir,
			utils.make_output_name(prefix, extension))

	#============================
	def _replacement(self, request: dict, field: str, loop: bool) -> ReplacedAudio:
		audio_name = _field(request, field)
		if utils.is_blank(audio_name):
			return None
		clip = self.resolver.resolve(audio_name)
		temporary = utils.parse_bool(_field(request, 'cleanupAudio', 'cleanup_audio'),
			'cleanupAudio')
		return ReplacedAudio(clip, loop=loop, temporary=temporary)

	#============================
	def convert(self, request: dict) -> ExecutionPlan:
		filename = _required_name(request, 'filename')
		output_format = _parse_format(request.get('format'), required=True)
		clip = self.resolver.resolve(filename)
		target = self._output_target(request, 'converted', output_format)
		utils.log(f"Starting conversion: {filename} -> {output_format}", self.config.quiet)
		return single.plan_convert(clip, target, output_format)

	#============================
	def speed(self, request: dict) -> ExecutionPlan:
		filename = _required_name(request, 'filename')
		if utils.is_blank(request.get('speed')):
			raise ValidationError(f"Speed must be between {SPEED_MIN:g} and {SPEED_MAX:g}",
				'speed')
		factor = utils.parse_speed(request.get('speed'), minimum=SPEED_MIN,
			maximum=SPEED_MAX)
		clip = self.resolver.resolve(filename)
		target = self._output_target(request, f"speed-{factor:g}x", DEFAULT_FORMAT)
		utils.log(f"Changing speed: {filename} -> {factor:g}x", self.config.quiet)
		return single.plan_speed(clip, factor, target)

	#============================
	def mute(self, request: dict) -> ExecutionPlan:
		filename = _required_name(request, 'filename')
		clip = self.resolver.resolve(filename)
		target = self._output_target(request, 'muted', DEFAULT_FORMAT)
		utils.log(f"Muting video: {filename}", self.config.quiet)
		return single.plan_mute(clip, target)

	#============================
	def add_audio(self, request: dict) -> ExecutionPlan:
		if utils.is_blank(_field(request, 'audio')):
			raise ValidationError("No audio file uploaded", 'audio')
		filename = _required_name(request, 'videoFilename', 'video_filename')
		clip = self.resolver.resolve(filename)
		audio = self._replacement(request, 'audio', loop=False)
		target = self._output_target(request, 'custom-audio', DEFAULT_FORMAT)
		utils.log(f"Adding audio to: {filename}", self.config.quiet)
		return single.plan_add_audio(clip, audio, target)

	#============================
	def _custom_edit(self, request: dict, audio: ReplacedAudio) -> single.CustomEdit:
		resize = scale.parse_resize(request.get('resolution'),
			_field(request, 'resizeMode', 'resize_mode'))
		factor = utils.parse_speed(request.get('speed'))
		mute = utils.parse_bool(request.get('mute'), 'mute')
		if audio is not None:
			policy = audio
		elif mute:
			policy = MutedAudio()
		else:
			policy = OriginalAudio()
		fades = FadeSpec(
			fade_in=utils.parse_float(_field(request, 'fadeIn', 'fade_in'), 'fadeIn', 0.0),
			fade_out=utils.parse_float(_field(request, 'fadeOut', 'fade_out'), 'fadeOut', 0.0),
		)
		return single.CustomEdit(
			resize=resize,
			speed=factor,
			video_filters=tuple(utils.parse_filter_list(
				_field(request, 'videoFilters', 'video_filters'), 'videoFilters')),
			audio_filters=tuple(utils.parse_filter_list(
				_field(request, 'audioFilters', 'audio_filters'), 'audioFilters')),
			volume=utils.parse_float(request.get('volume'), 'volume', 1.0),
			fades=fades,
			audio=policy,
			format=_parse_format(request.get('format')),
			video_codec=_parse_codec(_field(request, 'videoCodec', 'video_codec'),
				'videoCodec'),
			audio_codec=_parse_codec(_field(request, 'audioCodec', 'audio_codec'),
				'audioCodec'),
		)

	#============================
	def custom(self, request: dict) -> ExecutionPlan:
		filename = _required_name(request, 'filename')
		clip = self.resolver.resolve(filename)
		audio = self._replacement(request, 'customAudio', loop=True)
		edit = self._custom_edit(request, audio)
		extension = edit.format or DEFAULT_FORMAT
		target = self._output_target(request, 'custom', extension)
		utils.log(f"Starting custom command for: {filename} (Audio: {audio is not None})",
			self.config.quiet)
		return single.plan_custom(clip, edit, target, probe=self.probe)

	#============================
	def stitch(self, request: dict) -> ExecutionPlan:
		names = utils.parse_name_list(request.get('videos'), 'videos')
		if len(names) < 2:
			raise ValidationError("Please select at least 2 videos to stitch.", 'videos')
		resize = scale.parse_resize(request.get('resolution'),
			_field(request, 'resizeMode', 'resize_mode'))
		mute = utils.parse_bool(request.get('mute'), 'mute')
		output_format = _parse_format(request.get('format'))
		clips = self.resolver.resolve_all(names)
		audio = self._replacement(request, 'customAudio', loop=True)
		if audio is not None:
			policy = audio
		elif mute:
			policy = MutedAudio()
		else:
			policy = OriginalAudio()
		target = self._output_target(request, 'stitched', output_format or DEFAULT_FORMAT)
		utils.log(f"Starting stitch for: {', '.join(names)} "
			f"(Mute: {mute}, Custom Audio: {audio is not None})", self.config.quiet)
		return stitch.plan_stitch(clips, resize, policy, target, output_format)

	#============================
	def info(self, request: dict) -> dict:
		filename = _required_name(request, 'filename')
		clip = self.resolver.resolve(filename)
		return ffprobe.probeFormat(clip, self.config)

	#============================
	def compile_request(self, request: dict) -> ExecutionPlan:
		operations = {
			'convert': self.convert,
			'speed': self.speed,
			'mute': self.mute,
			'add-audio': self.add_audio,
			'add_audio': self.add_audio,
			'custom': self.custom,
			'stitch': self.stitch,
		}
		operation = request.get('operation')
		handler = operations.get(operation)
		if handler is None:
			choices = ", ".join(sorted(operations.keys()))
			raise ValidationError(f"unknown operation {operation!r}, expected one of {choices}",
				'operation')
		return handler(request)
