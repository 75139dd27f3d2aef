#!/usr/bin/env python3

"""
Value types shared by the edit planners.

Everything here is immutable and built fresh for each request.
"""

from dataclasses import dataclass
from typing import Optional
from editplanlib.core import utils

#============================================

RESIZE_MODES = ('fit', 'cover', 'stretch')
DEFAULT_RESIZE_MODE = 'fit'
MUXER_NAMES = {'mkv': 'matroska'}

#============================================

@dataclass(frozen=True)
class ClipRef:
	name: str
	path: str

#============================================

@dataclass(frozen=True)
class ResizeSpec:
	width: int
	height: int
	mode: str = DEFAULT_RESIZE_MODE

#============================================

@dataclass(frozen=True)
class FadeSpec:
	fade_in: float = 0.0
	fade_out: float = 0.0

#============================================
# audio policies, exactly one applies to a request

@dataclass(frozen=True)
class AudioPolicy:
	pass

@dataclass(frozen=True)
class OriginalAudio(AudioPolicy):
	pass

@dataclass(frozen=True)
class MutedAudio(AudioPolicy):
	pass

@dataclass(frozen=True)
class ReplacedAudio(AudioPolicy):
	clip: ClipRef
	loop: bool = True
	temporary: bool = False

#============================================

@dataclass(frozen=True)
class FilterExpr:
	"""
	One ffmpeg filter, e.g. scale=1280:720:force_original_aspect_ratio=decrease.

	params is an ordered tuple of (key, value) pairs; key None marks a
	positional argument.
	"""
	name: str
	params: tuple = ()

	#============================
	def render(self) -> str:
		if len(self.params) == 0:
			return self.name
		parts = []
		for key, value in self.params:
			if isinstance(value, (int, float)) and not isinstance(value, bool):
				text = utils.format_number(value)
			else:
				text = str(value)
			if key is None:
				parts.append(text)
			else:
				parts.append(f"{key}={text}")
		return f"{self.name}=" + ":".join(parts)

	#============================
	@classmethod
	def raw(cls, expression: str) -> 'FilterExpr':
		"""Wrap a caller supplied expression such as 'hflip' or 'eq=contrast=1.2'."""
		expression = expression.strip()
		if '=' not in expression:
			return cls(expression)
		name, args = expression.split('=', 1)
		return cls(name.strip(), ((None, args),))

#============================================

@dataclass(frozen=True)
class FilterNode:
	input_labels: tuple
	filters: tuple
	output_labels: tuple

	#============================
	def render(self) -> str:
		inputs = "".join(f"[{label}]" for label in self.input_labels)
		chain = ",".join(expr.render() for expr in self.filters)
		outputs = "".join(f"[{label}]" for label in self.output_labels)
		return inputs + chain + outputs

#============================================

@dataclass(frozen=True)
class FilterGraph:
	nodes: tuple
	video_label: Optional[str] = None
	audio_label: Optional[str] = None

	#============================
	def render(self) -> str:
		return ";".join(node.render() for node in self.nodes)

#============================================

@dataclass(frozen=True)
class EngineInput:
	clip: ClipRef
	loop: Optional[int] = None
	temporary: bool = False

	#============================
	def args(self) -> list:
		args = []
		if self.loop is not None:
			args += ['-stream_loop', str(self.loop)]
		args += ['-i', self.clip.path]
		return args

#============================================

@dataclass(frozen=True)
class StreamMap:
	label: Optional[str] = None
	input_index: Optional[int] = None
	stream_type: Optional[str] = None
	stream_index: Optional[int] = None
	optional: bool = False

	#============================
	@classmethod
	def graph(cls, label: str) -> 'StreamMap':
		return cls(label=label)

	#============================
	@classmethod
	def stream(cls, input_index: int, stream_type: str, stream_index: int = None,
		optional: bool = False) -> 'StreamMap':
		return cls(input_index=input_index, stream_type=stream_type,
			stream_index=stream_index, optional=optional)

	#============================
	def render(self) -> str:
		if self.label is not None:
			return f"[{self.label}]"
		text = f"{self.input_index}:{self.stream_type}"
		if self.stream_index is not None:
			text += f":{self.stream_index}"
		if self.optional:
			text += "?"
		return text

#============================================

@dataclass(frozen=True)
class OutputOptions:
	format: Optional[str] = None
	video_codec: Optional[str] = None
	audio_codec: Optional[str] = None
	duration: Optional[float] = None
	shortest: bool = False
	no_audio: bool = False

	#============================
	def args(self) -> list:
		args = []
		if self.no_audio:
			args.append('-an')
		if self.video_codec is not None:
			args += ['-c:v', self.video_codec]
		if self.audio_codec is not None:
			args += ['-c:a', self.audio_codec]
		if self.duration is not None:
			args += ['-t', utils.format_number(self.duration)]
		if self.shortest:
			args.append('-shortest')
		if self.format is not None:
			args += ['-f', MUXER_NAMES.get(self.format, self.format)]
		return args

#============================================

@dataclass(frozen=True)
class ExecutionPlan:
	inputs: tuple
	filter_graph: Optional[FilterGraph]
	stream_maps: tuple
	output_options: OutputOptions
	output_target: str
	estimated_duration: Optional[float] = None

	#============================
	def temporary_paths(self) -> list:
		return [item.clip.path for item in self.inputs if item.temporary]

	#============================
	def to_dict(self) -> dict:
		graph_text = None
		if self.filter_graph is not None:
			graph_text = self.filter_graph.render()
		options = self.output_options
		return {
			'inputs': [
				{'path': item.clip.path, 'loop': item.loop, 'temporary': item.temporary}
				for item in self.inputs
			],
			'filter_graph': graph_text,
			'maps': [stream_map.render() for stream_map in self.stream_maps],
			'output': {
				'target': self.output_target,
				'format': options.format,
				'video_codec': options.video_codec,
				'audio_codec': options.audio_codec,
				'duration': options.duration,
				'shortest': options.shortest,
				'no_audio': options.no_audio,
			},
		}
