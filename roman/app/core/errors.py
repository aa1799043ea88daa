"""
Error taxonomy for resume parsing and context resolution.

Acquisition, storage, extraction and AI errors propagate to callers and abort the
current resolution. Cache errors are logged and swallowed by the cache layer.
DataIntegrityWarning is only logged, never raised.
"""


class ResumeContextError(Exception):
    """Base class for resume parsing/resolution failures."""


class ConfigurationError(ResumeContextError):
    """Missing or invalid configuration (e.g. AI credential). Raised before any I/O."""


class AcquisitionError(ResumeContextError):
    """Remote download or blob retrieval failed."""


class BlobStorageError(ResumeContextError):
    """Writing a blob to storage failed."""


class ExtractionError(ResumeContextError):
    """Format-specific text extraction failed (corrupt or encrypted document)."""


class AIStructuringError(ResumeContextError):
    """AI provider call failed (timeout, rate limit, malformed transport response)."""


class CacheError(ResumeContextError):
    """Cache backend read/write failure. Never propagated past the cache layer."""


class DataIntegrityWarning(UserWarning):
    """A resume record has neither a blob id nor a source URL."""
