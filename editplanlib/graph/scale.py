#!/usr/bin/env python3

from editplanlib.core.errors import ValidationError
from editplanlib.core.models import DEFAULT_RESIZE_MODE
from editplanlib.core.models import RESIZE_MODES
from editplanlib.core.models import FilterExpr
from editplanlib.core.models import ResizeSpec

#============================================

ORIGINAL_RESOLUTION = 'original'

#============================================

def _parse_dimension(raw_value, field: str) -> int:
	if isinstance(raw_value, bool):
		raise ValidationError(f"invalid dimension {raw_value!r}", field)
	if isinstance(raw_value, float):
		if not raw_value.is_integer():
			raise ValidationError(f"invalid dimension {raw_value!r}", field)
		raw_value = int(raw_value)
	try:
		value = int(str(raw_value).strip())
	except ValueError:
		raise ValidationError(f"invalid dimension {raw_value!r}", field)
	if value <= 0:
		raise ValidationError(f"dimensions must be positive, got {value}", field)
	return value

#============================================

def parse_resize(resolution, mode: str = None, field: str = 'resolution') -> ResizeSpec:
	"""
	Parse a 'W:H' resolution (or [W, H] list) and a resize mode.

	Returns None when no resize is requested.
	"""
	if resolution is None:
		return None
	if isinstance(resolution, str):
		value = resolution.strip()
		if value == '' or value.lower() == ORIGINAL_RESOLUTION:
			return None
		parts = value.split(':')
	elif isinstance(resolution, (list, tuple)):
		parts = list(resolution)
	else:
		raise ValidationError(f"expected 'W:H', got {resolution!r}", field)
	if len(parts) != 2:
		raise ValidationError(f"expected 'W:H', got {resolution!r}", field)
	width = _parse_dimension(parts[0], field)
	height = _parse_dimension(parts[1], field)
	resize_mode = DEFAULT_RESIZE_MODE
	if isinstance(mode, str) and mode.strip().lower() in RESIZE_MODES:
		resize_mode = mode.strip().lower()
	return ResizeSpec(width, height, resize_mode)

#============================================

def plan_scale(resize: ResizeSpec) -> list:
	"""
	Return the scale/crop/pad/setsar filters for a resize.

	stretch ignores the source aspect ratio, cover fills the frame and
	crops the overflow, fit letterboxes inside the frame. Each plan ends
	with setsar=1 so players do not reapply a stale sample aspect ratio.
	"""
	if resize is None:
		return []
	width = resize.width
	height = resize.height
	if resize.mode == 'stretch':
		return [
			FilterExpr('scale', ((None, width), (None, height))),
			FilterExpr('setsar', ((None, 1),)),
		]
	if resize.mode == 'cover':
		return [
			FilterExpr('scale', ((None, width), (None, height),
				('force_original_aspect_ratio', 'increase'))),
			FilterExpr('crop', ((None, width), (None, height))),
			FilterExpr('setsar', ((None, 1),)),
		]
	return [
		FilterExpr('scale', ((None, width), (None, height),
			('force_original_aspect_ratio', 'decrease'))),
		FilterExpr('pad', ((None, width), (None, height),
			(None, '(ow-iw)/2'), (None, '(oh-ih)/2'))),
		FilterExpr('setsar', ((None, 1),)),
	]
