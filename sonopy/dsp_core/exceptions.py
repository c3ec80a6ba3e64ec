"""
Exception types raised by the feature-extraction core.

Both concrete errors also derive from ValueError, so code that guards
numeric calls with ``except ValueError`` keeps working.
"""


class SonopyError(Exception):
    """Base class for all sonopy errors."""


class ConfigurationError(SonopyError, ValueError):
    """Invalid pipeline parameters or input that cannot be framed."""


class ShapeMismatchError(SonopyError, ValueError):
    """Contracted dimensions of a matrix product do not agree."""
