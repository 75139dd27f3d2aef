#!/usr/bin/env python3

import json
import os
import shlex
import time
from editplanlib.core.errors import ValidationError

#============================================

QUIET_ENV = "EDITPLAN_QUIET"

#============================================

def is_quiet_mode() -> bool:
	value = os.environ.get(QUIET_ENV, "")
	return value.strip().lower() in ('1', 'true', 'yes', 'on')

#============================================

def log(message: str, quiet: bool = False) -> None:
	if quiet or is_quiet_mode():
		return
	print(message)

#============================================

def show_command(args: list, quiet: bool = False) -> str:
	showcmd = shlex.join([str(arg) for arg in args])
	log(f"CMD: '{showcmd}'", quiet)
	return showcmd

#============================================

def format_number(value) -> str:
	"""
	Render a numeric filter argument the way ffmpeg expects it.

	Integers stay integers, floats keep their shortest round-trip form so
	1/3 renders as 0.3333333333333333 and 2.0 renders as 2.0.
	"""
	if isinstance(value, bool):
		raise ValueError("booleans are not numeric filter arguments")
	if isinstance(value, int):
		return str(value)
	return repr(float(value))

#============================================

def is_blank(value) -> bool:
	if value is None:
		return True
	if isinstance(value, str) and value.strip() == '':
		return True
	return False

#============================================

def parse_float(raw_value, field: str, default: float = None) -> float:
	if is_blank(raw_value):
		return default
	if isinstance(raw_value, bool):
		raise ValidationError("must be a number", field)
	try:
		value = float(raw_value)
	except (TypeError, ValueError):
		raise ValidationError(f"must be a number, got {raw_value!r}", field)
	if value != value or value in (float('inf'), float('-inf')):
		raise ValidationError(f"must be a finite number, got {raw_value!r}", field)
	return value

#============================================

def parse_speed(raw_speed, field: str = 'speed', minimum: float = None,
	maximum: float = None) -> float:
	"""
	Parse a playback speed factor.

	With bounds the valid range is (minimum, maximum], otherwise any
	positive value is accepted. A missing value means 1.0.
	"""
	speed = parse_float(raw_speed, field, default=1.0)
	if speed <= 0:
		raise ValidationError("speed must be positive", field)
	if minimum is not None and speed <= minimum:
		raise ValidationError(f"speed must be between {minimum} and {maximum}", field)
	if maximum is not None and speed > maximum:
		raise ValidationError(f"speed must be between {minimum} and {maximum}", field)
	return speed

#============================================

def parse_bool(raw_value, field: str, default: bool = False) -> bool:
	if is_blank(raw_value):
		return default
	if isinstance(raw_value, bool):
		return raw_value
	if isinstance(raw_value, int):
		return raw_value != 0
	if isinstance(raw_value, str):
		value = raw_value.strip().lower()
		if value in ('true', '1', 'yes', 'on'):
			return True
		if value in ('false', '0', 'no', 'off'):
			return False
	raise ValidationError(f"must be true or false, got {raw_value!r}", field)

#============================================

def parse_filter_list(raw_filters, field: str) -> list:
	"""
	Accept a comma separated string or a list of filter expressions.
	"""
	if is_blank(raw_filters):
		return []
	if isinstance(raw_filters, str):
		parts = raw_filters.split(',')
	elif isinstance(raw_filters, (list, tuple)):
		parts = []
		for item in raw_filters:
			if not isinstance(item, str):
				raise ValidationError("filters must be strings", field)
			parts.append(item)
	else:
		raise ValidationError("must be a string or a list of strings", field)
	filters = [part.strip() for part in parts]
	return [item for item in filters if item != '']

#============================================

def parse_name_list(raw_names, field: str) -> list:
	"""
	Accept a list of file names, or a JSON encoded list as sent by form posts.
	"""
	if is_blank(raw_names):
		return []
	names = raw_names
	if isinstance(raw_names, str):
		try:
			names = json.loads(raw_names)
		except ValueError:
			raise ValidationError("Invalid videos data", field)
	if not isinstance(names, (list, tuple)):
		raise ValidationError("must be a list of file names", field)
	for name in names:
		if not isinstance(name, str) or name.strip() == '':
			raise ValidationError("file names must be non-empty strings", field)
	return list(names)

#============================================

def make_timestamp() -> str:
	datestamp = time.strftime("%y%b%d").lower()
	uppercase = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
	hourstamp = uppercase[(time.localtime()[3]) % 26]
	minstamp = f"{time.localtime()[4]:02d}"
	secstamp = uppercase[(time.localtime()[5]) % 26]
	millistamp = f"{int(time.time() * 1000) % 1000:03d}"
	timestamp = datestamp + hourstamp + minstamp + secstamp + millistamp
	return timestamp

#============================================

def make_output_name(prefix: str, extension: str) -> str:
	return f"{prefix}-{make_timestamp()}.{extension}"
