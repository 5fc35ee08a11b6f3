"""
Exceptions raised at the boundaries of the analysis core.
"""


class ThreatLensError(Exception):
    """Base class for all ThreatLens errors."""


class InvalidInputError(ThreatLensError, TypeError):
    """Raised when a caller passes input of the wrong shape to a stage."""


class ConfigError(ThreatLensError):
    """Raised when a configuration file cannot be read or validated."""
