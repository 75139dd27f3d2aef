#!/usr/bin/env python3

from editplanlib.core.errors import ValidationError
from editplanlib.core.models import EngineInput
from editplanlib.core.models import ExecutionPlan
from editplanlib.core.models import FilterExpr
from editplanlib.core.models import MutedAudio
from editplanlib.core.models import OriginalAudio
from editplanlib.core.models import OutputOptions
from editplanlib.core.models import ReplacedAudio
from editplanlib.core.models import ResizeSpec
from editplanlib.core.models import StreamMap
from editplanlib.graph import scale
from editplanlib.graph.assembler import assemble_plan
from editplanlib.graph.filtergraph import FilterGraphBuilder
from editplanlib.graph.filtergraph import raw_stream_label

#============================================

# a replacement track is looped a bounded number of times, -shortest trims it
STITCH_AUDIO_LOOPS = 1000
STITCH_VIDEO_LABEL = 'v'
STITCH_AUDIO_LABEL = 'a'

#============================================

def concat_filter(count: int, with_audio: bool) -> FilterExpr:
	audio_flag = 1 if with_audio else 0
	return FilterExpr('concat', (('n', count), ('v', 1), ('a', audio_flag)))

#============================================

def plan_stitch(clips: list, resize: ResizeSpec, audio_policy,
	output_target: str, output_format: str = None) -> ExecutionPlan:
	"""
	Join two or more clips, in the given order, into one output.

	Args:
		clips: resolved ClipRef list, played back in this order.
		resize: target size applied to every clip, or None.
		audio_policy: OriginalAudio, MutedAudio or ReplacedAudio.
		output_target: output file path.
		output_format: optional container override.
	"""
	if len(clips) < 2:
		raise ValidationError("Please select at least 2 videos to stitch.", 'videos')
	if not isinstance(audio_policy, (OriginalAudio, MutedAudio, ReplacedAudio)):
		raise ValidationError(f"unknown audio policy {audio_policy!r}", 'audio')
	inputs = [EngineInput(clip) for clip in clips]
	replacement_input = None
	if isinstance(audio_policy, ReplacedAudio):
		replacement_input = EngineInput(audio_policy.clip, loop=STITCH_AUDIO_LOOPS,
			temporary=audio_policy.temporary)
		inputs.append(replacement_input)

	keep_audio = isinstance(audio_policy, OriginalAudio)
	scale_filters = scale.plan_scale(resize)
	builder = FilterGraphBuilder()
	concat_inputs = []
	for index in range(len(clips)):
		video_label = builder.add_clip_video(index, scale_filters)
		concat_inputs.append(video_label)
		if keep_audio:
			concat_inputs.append(raw_stream_label(index, 'a'))

	stream_maps = [StreamMap.graph(STITCH_VIDEO_LABEL)]
	shortest = False
	if keep_audio:
		builder.add_chain(concat_inputs, [concat_filter(len(clips), True)],
			[STITCH_VIDEO_LABEL, STITCH_AUDIO_LABEL])
		graph = builder.build(STITCH_VIDEO_LABEL, STITCH_AUDIO_LABEL)
		stream_maps.append(StreamMap.graph(STITCH_AUDIO_LABEL))
	else:
		builder.add_chain(concat_inputs, [concat_filter(len(clips), False)],
			[STITCH_VIDEO_LABEL])
		graph = builder.build(STITCH_VIDEO_LABEL)
		if replacement_input is not None:
			audio_index = inputs.index(replacement_input)
			stream_maps.append(StreamMap.stream(audio_index, 'a'))
			shortest = True

	options = OutputOptions(format=output_format, shortest=shortest)
	return assemble_plan(inputs, graph, stream_maps, options, output_target)
