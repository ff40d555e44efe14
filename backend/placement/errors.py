from __future__ import annotations


class PlacementError(Exception):
	"""Base class for errors raised by the placement engine."""


class ValidationError(PlacementError):
	"""Malformed request, e.g. a missing assessment id."""


class NotFoundError(PlacementError):
	"""Unknown assessment, or one the caller does not own."""


class StateError(PlacementError):
	"""The requested transition is not allowed in the current session state."""


class ExternalServiceError(PlacementError):
	"""The text-generation service failed or returned an unusable payload."""


class PersistenceError(PlacementError):
	"""The store could not complete an operation."""


class ConfigurationError(PlacementError):
	pass
