#!/usr/bin/env python3

"""
Planners for edits that read a single source clip.

convert, speed, mute and add-audio are fixed recipes; custom composes
resize, caller filters, speed, volume and fades in a fixed order:

	video: resize -> caller video filters -> setpts
	audio: caller audio filters -> atempo chain -> volume -> fade in -> fade out
"""

from dataclasses import dataclass
from typing import Callable, Optional
from editplanlib.core.errors import ProbeError
from editplanlib.core.errors import ValidationError
from editplanlib.core.models import AudioPolicy
from editplanlib.core.models import ClipRef
from editplanlib.core.models import EngineInput
from editplanlib.core.models import ExecutionPlan
from editplanlib.core.models import FadeSpec
from editplanlib.core.models import FilterExpr
from editplanlib.core.models import MutedAudio
from editplanlib.core.models import OriginalAudio
from editplanlib.core.models import OutputOptions
from editplanlib.core.models import ReplacedAudio
from editplanlib.core.models import ResizeSpec
from editplanlib.core.models import StreamMap
from editplanlib.graph import scale
from editplanlib.graph import speed
from editplanlib.graph.assembler import assemble_plan
from editplanlib.graph.filtergraph import FilterGraphBuilder
from editplanlib.graph.filtergraph import raw_stream_label

#============================================

VIDEO_LABEL = 'v'
AUDIO_LABEL = 'a'
SOURCE_INPUT = 0
# -stream_loop -1 loops the replacement track until the -t clamp
LOOP_FOREVER = -1

#============================================

@dataclass(frozen=True)
class CustomEdit:
	resize: Optional[ResizeSpec] = None
	speed: float = 1.0
	video_filters: tuple = ()
	audio_filters: tuple = ()
	volume: float = 1.0
	fades: FadeSpec = FadeSpec()
	audio: AudioPolicy = OriginalAudio()
	format: Optional[str] = None
	video_codec: Optional[str] = None
	audio_codec: Optional[str] = None

#============================================

def fade_out_start(duration: float, fade_out: float) -> float:
	return max(0.0, duration - fade_out)

#============================================

def estimate_output_duration(source_duration: float, factor: float) -> float:
	if factor != 1.0:
		return source_duration / factor
	return source_duration

#============================================

def _probe_duration(probe: Callable, clip: ClipRef) -> float:
	if probe is None:
		raise ProbeError(clip.path, "no probe available to read the duration")
	duration = probe(clip)
	if duration is None or duration <= 0:
		raise ProbeError(clip.path, f"unusable duration {duration!r}")
	return float(duration)

#============================================

def plan_convert(clip: ClipRef, output_target: str, output_format: str) -> ExecutionPlan:
	options = OutputOptions(format=output_format)
	return assemble_plan([EngineInput(clip)], None, [], options, output_target)

#============================================

def plan_speed(clip: ClipRef, factor: float, output_target: str) -> ExecutionPlan:
	builder = FilterGraphBuilder()
	builder.add_chain([raw_stream_label(SOURCE_INPUT, 'v')],
		[speed.setpts_filter(factor)], [VIDEO_LABEL])
	stream_maps = [StreamMap.graph(VIDEO_LABEL)]
	tempo = speed.tempo_filters(factor)
	audio_label = None
	if len(tempo) > 0:
		builder.add_chain([raw_stream_label(SOURCE_INPUT, 'a')], tempo, [AUDIO_LABEL])
		audio_label = AUDIO_LABEL
		stream_maps.append(StreamMap.graph(AUDIO_LABEL))
	else:
		stream_maps.append(StreamMap.stream(SOURCE_INPUT, 'a', optional=True))
	graph = builder.build(VIDEO_LABEL, audio_label)
	return assemble_plan([EngineInput(clip)], graph, stream_maps, OutputOptions(),
		output_target)

#============================================

def plan_mute(clip: ClipRef, output_target: str) -> ExecutionPlan:
	options = OutputOptions(no_audio=True)
	return assemble_plan([EngineInput(clip)], None, [], options, output_target)

#============================================

def plan_add_audio(clip: ClipRef, audio: ReplacedAudio, output_target: str) -> ExecutionPlan:
	"""
	Swap in a new soundtrack, copying the video stream untouched.
	"""
	loop = LOOP_FOREVER if audio.loop else None
	inputs = [EngineInput(clip), EngineInput(audio.clip, loop=loop,
		temporary=audio.temporary)]
	stream_maps = [
		StreamMap.stream(SOURCE_INPUT, 'v', stream_index=0),
		StreamMap.stream(1, 'a', stream_index=0),
	]
	options = OutputOptions(video_codec='copy', shortest=True)
	return assemble_plan(inputs, None, stream_maps, options, output_target)

#============================================

def _audio_filter_chain(edit: CustomEdit, duration: Optional[float]) -> list:
	filters = [FilterExpr.raw(expr) for expr in edit.audio_filters]
	if edit.speed != 1.0:
		filters += speed.tempo_filters(edit.speed)
	if edit.volume != 1.0:
		filters.append(FilterExpr('volume', ((None, edit.volume),)))
	if edit.fades.fade_in > 0:
		filters.append(FilterExpr('afade', (('t', 'in'), ('st', 0),
			('d', edit.fades.fade_in))))
	if edit.fades.fade_out > 0:
		start = fade_out_start(duration, edit.fades.fade_out)
		filters.append(FilterExpr('afade', (('t', 'out'), ('st', start),
			('d', edit.fades.fade_out))))
	return filters

#============================================

def _check_edit(edit: CustomEdit) -> None:
	if edit.speed <= 0:
		raise ValidationError("speed must be positive", 'speed')
	if edit.volume <= 0:
		raise ValidationError("volume must be positive", 'volume')
	if edit.fades.fade_in < 0:
		raise ValidationError("fade durations cannot be negative", 'fadeIn')
	if edit.fades.fade_out < 0:
		raise ValidationError("fade durations cannot be negative", 'fadeOut')
	if not isinstance(edit.audio, (OriginalAudio, MutedAudio, ReplacedAudio)):
		raise ValidationError(f"unknown audio policy {edit.audio!r}", 'audio')

#============================================

def plan_custom(clip: ClipRef, edit: CustomEdit, output_target: str,
	probe: Callable = None) -> ExecutionPlan:
	"""
	Compile a free-form single clip edit.

	probe(clip) -> seconds is called only when the source duration matters:
	for a fade out on the original audio, or to clamp a looping
	replacement track. Its errors propagate unchanged.
	"""
	_check_edit(edit)
	policy = edit.audio
	keep_audio = isinstance(policy, OriginalAudio)
	loop_replacement = isinstance(policy, ReplacedAudio) and policy.loop
	needs_duration = loop_replacement or (keep_audio and edit.fades.fade_out > 0)
	duration = None
	if needs_duration:
		duration = estimate_output_duration(_probe_duration(probe, clip), edit.speed)

	video_filters = scale.plan_scale(edit.resize)
	video_filters += [FilterExpr.raw(expr) for expr in edit.video_filters]
	if edit.speed != 1.0:
		video_filters.append(speed.setpts_filter(edit.speed))
	audio_filters = []
	if keep_audio:
		audio_filters = _audio_filter_chain(edit, duration)

	inputs = [EngineInput(clip)]
	replacement_index = None
	if isinstance(policy, ReplacedAudio):
		loop = LOOP_FOREVER if policy.loop else None
		inputs.append(EngineInput(policy.clip, loop=loop, temporary=policy.temporary))
		replacement_index = len(inputs) - 1

	builder = FilterGraphBuilder()
	video_label = None
	audio_label = None
	if len(video_filters) > 0:
		builder.add_chain([raw_stream_label(SOURCE_INPUT, 'v')], video_filters,
			[VIDEO_LABEL])
		video_label = VIDEO_LABEL
	if len(audio_filters) > 0:
		builder.add_chain([raw_stream_label(SOURCE_INPUT, 'a')], audio_filters,
			[AUDIO_LABEL])
		audio_label = AUDIO_LABEL
	graph = None
	if not builder.is_empty():
		graph = builder.build(video_label, audio_label)

	stream_maps = []
	if graph is not None or replacement_index is not None:
		if video_label is not None:
			stream_maps.append(StreamMap.graph(video_label))
		else:
			stream_maps.append(StreamMap.stream(SOURCE_INPUT, 'v',
				optional=replacement_index is None))
		if audio_label is not None:
			stream_maps.append(StreamMap.graph(audio_label))
		elif replacement_index is not None:
			stream_maps.append(StreamMap.stream(replacement_index, 'a'))
		elif keep_audio:
			stream_maps.append(StreamMap.stream(SOURCE_INPUT, 'a', optional=True))

	clamp = None
	shortest = False
	if loop_replacement:
		clamp = duration
	elif replacement_index is not None:
		shortest = True
	options = OutputOptions(
		format=edit.format,
		video_codec=edit.video_codec,
		audio_codec=edit.audio_codec,
		duration=clamp,
		shortest=shortest,
		no_audio=isinstance(policy, MutedAudio),
	)
	return assemble_plan(inputs, graph, stream_maps, options, output_target,
		estimated_duration=duration)
