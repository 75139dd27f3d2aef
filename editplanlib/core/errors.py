#!/usr/bin/env python3

"""
Error types raised while compiling and running edit requests.
"""

#============================================

class CompilationError(RuntimeError):
	"""Base class for every failure that stops plan emission."""

#============================================

class ValidationError(CompilationError):
	def __init__(self, message: str, field: str = None):
		if field is not None:
			message = f"{field}: {message}"
		super().__init__(message)
		self.field = field

#============================================

class ResolutionError(CompilationError):
	def __init__(self, filename: str, message: str = None):
		if message is None:
			message = f"File not found: {filename}"
		super().__init__(message)
		self.filename = filename

#============================================

class ProbeError(CompilationError):
	def __init__(self, path: str, message: str):
		super().__init__(f"probe failed for {path}: {message}")
		self.path = path

#============================================

class EngineError(RuntimeError):
	"""
	Raised by the execution collaborator when ffmpeg fails.
	"""
	def __init__(self, message: str, returncode: int = None, stderr: str = ''):
		super().__init__(message)
		self.returncode = returncode
		self.stderr = stderr
