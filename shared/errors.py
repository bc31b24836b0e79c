"""Error taxonomy of the vectorization and retrieval pipeline.

Extraction errors and per-task query errors are contained where they occur
(logged, skipped). Configuration errors, whole-batch network errors and state
errors propagate to the top-level operation and end it with one user-visible
message.
"""


class VectorsError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(VectorsError):
    """Missing or invalid backend connection settings. Raised before any network call."""


class ExtractionError(VectorsError):
    """A tag expression could not be parsed or applied."""


class NetworkError(VectorsError):
    """The vector backend or the host is unreachable or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class CacheMissError(VectorsError):
    """A query response lacks inline text and no cached collection can recover it."""


class StateError(VectorsError):
    """The operation cannot run in the current state (no active chat, nothing selected)."""
