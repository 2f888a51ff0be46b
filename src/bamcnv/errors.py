"""Exception taxonomy for the BAMCNV analysis engine.

Every error raised by the pipeline entry points derives from ``BAMCNVError``
so callers can tell a malformed input apart from an input that simply holds
no usable signal.
"""

from __future__ import annotations


class BAMCNVError(Exception):
    """Base class for all analysis errors."""


class FormatError(BAMCNVError):
    """The input is not a well-formed block-compressed BAM stream."""


class EmptyResultError(BAMCNVError):
    """The input is well-formed but yields no coverage to analyze."""


class ConfigurationError(BAMCNVError, ValueError):
    """An analysis option or server setting is outside its valid range."""
