#!/usr/bin/env python3

"""
Speed factor decomposition for audio tempo and video timestamps.

ffmpeg's atempo filter only accepts ratios in [0.5, 2.0], so larger or
smaller factors are reached by chaining several atempo stages. Video
timestamps are rescaled with a single setpts, which has no such bound.
"""

from editplanlib.core.errors import ValidationError
from editplanlib.core.models import FilterExpr

#============================================

TEMPO_MIN = 0.5
TEMPO_MAX = 2.0

#============================================

def _check_factor(factor: float) -> None:
	if isinstance(factor, bool) or not isinstance(factor, (int, float)):
		raise ValidationError(f"speed must be a number, got {factor!r}", 'speed')
	if factor <= 0:
		raise ValidationError("speed must be positive", 'speed')

#============================================

def decompose_tempo(factor: float) -> list:
	"""
	Split a speed factor into atempo stages that each lie in [0.5, 2.0].

	The product of the stages equals the factor; a factor of exactly 1.0
	gives no stages at all.
	"""
	_check_factor(factor)
	stages = []
	remaining = float(factor)
	while remaining > TEMPO_MAX:
		stages.append(TEMPO_MAX)
		remaining /= TEMPO_MAX
	while remaining < TEMPO_MIN:
		stages.append(TEMPO_MIN)
		remaining /= TEMPO_MIN
	if remaining != 1.0:
		stages.append(remaining)
	return stages

#============================================

def video_pts_multiplier(factor: float) -> float:
	_check_factor(factor)
	return 1.0 / factor

#============================================

def tempo_filters(factor: float) -> list:
	return [FilterExpr('atempo', ((None, stage),)) for stage in decompose_tempo(factor)]

#============================================

def setpts_filter(factor: float) -> FilterExpr:
	multiplier = video_pts_multiplier(factor)
	return FilterExpr('setpts', ((None, f"{float(multiplier)!r}*PTS"),))
