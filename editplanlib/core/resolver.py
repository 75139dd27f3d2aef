#!/usr/bin/env python3

import os
from editplanlib.core.errors import ResolutionError
from editplanlib.core.models import ClipRef

#============================================

class ClipResolver():
	"""
	Find request file names in the upload and processed directories.

	Directories are searched in order, so an upload shadows a processed
	file with the same name.
	"""
	def __init__(self, search_dirs: tuple):
		self.search_dirs = tuple(search_dirs)

	#============================
	def _inside(self, directory: str, path: str) -> bool:
		root = os.path.realpath(directory)
		target = os.path.realpath(path)
		return os.path.commonpath([root, target]) == root

	#============================
	def resolve(self, filename: str) -> ClipRef:
		if not isinstance(filename, str) or filename.strip() == '':
			raise ResolutionError(str(filename), "a file name is required")
		if os.path.isabs(filename):
			if os.path.isfile(filename):
				return ClipRef(filename, filename)
			raise ResolutionError(filename)
		for directory in self.search_dirs:
			candidate = os.path.join(directory, filename)
			if not self._inside(directory, candidate):
				raise ResolutionError(filename, f"File name escapes {directory}: {filename}")
			if os.path.isfile(candidate):
				return ClipRef(filename, candidate)
		raise ResolutionError(filename)

	#============================
	def resolve_all(self, filenames: list) -> list:
		return [self.resolve(filename) for filename in filenames]
