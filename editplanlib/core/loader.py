#!/usr/bin/env python3

import os
import yaml
from editplanlib.core.errors import ValidationError

#============================================

MAX_REQUEST_BYTES = 10 ** 6

#============================================

class RequestLoader():
	"""
	Read an edit request from a yaml (or json) file.

	The request is a mapping with an 'operation' key plus the fields that
	operation takes, for example:

		operation: stitch
		videos: [intro.mp4, main.mp4]
		resolution: "1280:720"
		resizeMode: cover
	"""
	def __init__(self, yaml_file: str, output_override: str = None):
		self.yaml_file = yaml_file
		self.output_override = output_override

	#============================
	def load(self) -> dict:
		request = self._load_yaml()
		operation = request.get('operation')
		if not isinstance(operation, str) or operation.strip() == '':
			raise ValidationError("is required", 'operation')
		request['operation'] = operation.strip().lower()
		if self.output_override is not None:
			request['output'] = self.output_override
		return request

	#============================
	def _load_yaml(self) -> dict:
		file_size = os.path.getsize(self.yaml_file)
		if file_size > MAX_REQUEST_BYTES:
			raise RuntimeError("request file is larger than 1MB")
		with open(self.yaml_file, 'r') as data_file:
			data = yaml.safe_load(data_file)
		if not isinstance(data, dict):
			raise ValidationError("request yaml must be a mapping at the top level")
		return data
