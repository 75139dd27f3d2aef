#!/usr/bin/env python3

import re
from editplanlib.core.errors import CompilationError
from editplanlib.core.models import FilterGraph
from editplanlib.core.models import FilterNode

#============================================

RAW_STREAM_RE = re.compile(r'^(\d+):([va])$')

#============================================

def raw_stream_label(input_index: int, stream_type: str) -> str:
	return f"{input_index}:{stream_type}"

#============================================

def is_raw_stream_label(label: str) -> bool:
	return RAW_STREAM_RE.match(label) is not None

#============================================

def clip_video_label(index: int) -> str:
	return f"v{index}"

#============================================

class FilterGraphBuilder():
	"""
	Collect filter chains in caller order and check their labels.
	"""
	def __init__(self):
		self.nodes = []
		self.produced = set()
		self.consumed = set()

	#============================
	def add_chain(self, input_labels: list, filters: list,
		output_labels: list) -> FilterNode:
		if len(filters) == 0:
			raise CompilationError("filter chain needs at least one filter")
		for label in input_labels:
			if is_raw_stream_label(label):
				continue
			if label not in self.produced:
				raise CompilationError(f"filter input [{label}] is not produced earlier")
			if label in self.consumed:
				raise CompilationError(f"filter label [{label}] is consumed twice")
			self.consumed.add(label)
		for label in output_labels:
			if label in self.produced or is_raw_stream_label(label):
				raise CompilationError(f"duplicate filter label [{label}]")
			self.produced.add(label)
		node = FilterNode(tuple(input_labels), tuple(filters), tuple(output_labels))
		self.nodes.append(node)
		return node

	#============================
	def add_clip_video(self, index: int, filters: list) -> str:
		"""
		Route one clip's video stream through filters.

		Returns the label that carries the result; with no filters that is
		the raw input stream itself.
		"""
		input_label = raw_stream_label(index, 'v')
		if len(filters) == 0:
			return input_label
		output_label = clip_video_label(index)
		self.add_chain([input_label], filters, [output_label])
		return output_label

	#============================
	def is_empty(self) -> bool:
		return len(self.nodes) == 0

	#============================
	def build(self, video_label: str = None, audio_label: str = None) -> FilterGraph:
		if self.is_empty():
			raise CompilationError("cannot build an empty filter graph")
		terminals = self.produced - self.consumed
		for label in (video_label, audio_label):
			if label is not None and label not in terminals:
				raise CompilationError(f"terminal label [{label}] is not a graph output")
		expected = set(label for label in (video_label, audio_label) if label is not None)
		dangling = terminals - expected
		if len(dangling) > 0:
			names = ", ".join(sorted(dangling))
			raise CompilationError(f"unmapped filter outputs: {names}")
		return FilterGraph(tuple(self.nodes), video_label, audio_label)
