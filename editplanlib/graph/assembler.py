#!/usr/bin/env python3

from editplanlib.core.errors import CompilationError
from editplanlib.core.models import ExecutionPlan
from editplanlib.core.models import FilterGraph
from editplanlib.core.models import OutputOptions
from editplanlib.graph.filtergraph import RAW_STREAM_RE

#============================================

def _check_graph_inputs(graph: FilterGraph, input_count: int) -> None:
	for node in graph.nodes:
		for label in node.input_labels:
			match = RAW_STREAM_RE.match(label)
			if match is None:
				continue
			if int(match.group(1)) >= input_count:
				raise CompilationError(
					f"filter graph reads [{label}] but only {input_count} inputs exist"
				)

#============================================

def _check_maps(stream_maps: list, graph: FilterGraph, input_count: int) -> None:
	graph_outputs = set()
	if graph is not None:
		graph_outputs = {graph.video_label, graph.audio_label} - {None}
	mapped_labels = set()
	for stream_map in stream_maps:
		if stream_map.label is not None:
			if stream_map.label not in graph_outputs:
				raise CompilationError(f"map [{stream_map.label}] is not a graph output")
			mapped_labels.add(stream_map.label)
			continue
		if stream_map.input_index is None or stream_map.stream_type not in ('v', 'a'):
			raise CompilationError(f"malformed stream map {stream_map!r}")
		if not 0 <= stream_map.input_index < input_count:
			raise CompilationError(
				f"map {stream_map.render()} references a missing input"
			)
	unmapped = graph_outputs - mapped_labels
	if len(unmapped) > 0:
		names = ", ".join(sorted(unmapped))
		raise CompilationError(f"filter graph outputs are never mapped: {names}")

#============================================

def assemble_plan(inputs: list, graph: FilterGraph, stream_maps: list,
	output_options: OutputOptions, output_target: str,
	estimated_duration: float = None) -> ExecutionPlan:
	"""
	Merge a finished graph, its stream maps and output options into a plan.

	Raises CompilationError when the pieces do not agree; nothing is run.
	"""
	if len(inputs) == 0:
		raise CompilationError("an execution plan needs at least one input")
	if not output_target:
		raise CompilationError("an execution plan needs an output target")
	if graph is not None:
		_check_graph_inputs(graph, len(inputs))
	_check_maps(stream_maps, graph, len(inputs))
	duration = output_options.duration
	if duration is not None and duration <= 0:
		raise CompilationError(f"output duration must be positive, got {duration}")
	return ExecutionPlan(
		inputs=tuple(inputs),
		filter_graph=graph,
		stream_maps=tuple(stream_maps),
		output_options=output_options,
		output_target=output_target,
		estimated_duration=estimated_duration,
	)
