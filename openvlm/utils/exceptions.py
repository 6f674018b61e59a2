"""
Exceptions raised by the vortex lattice pipeline.
"""


class VLMError(Exception):
    """
    Base class for every error raised by openvlm.
    """


class ConfigurationError(VLMError, ValueError):
    """
    Raised when the inputs describe a problem that cannot be solved, e.g. a
    singular influence coefficient matrix or per-surface options whose
    lengths do not match the number of surfaces.
    """


class StaleStateError(VLMError, RuntimeError):
    """
    Raised when a stage of the analysis pipeline is requested before the
    stages it depends on are current.
    """
