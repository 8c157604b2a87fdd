"""
Exceptions raised by the point set constructions.

Truncation of digit expansions below b^(-r) is not an error: it is silent
and bounded by the output precision of the construction.
"""


class HUPSError(Exception):
    """Base class for all errors raised by hups."""


class InvalidConstruction(HUPSError, ValueError):
    """Bad base, dimension, precision or generator rank at construction."""


class OutOfRange(HUPSError, IndexError):
    """A point or coordinate index lies past a finite bound."""


class UnsupportedRandomization(HUPSError, TypeError):
    """The point set structure does not allow the requested randomization."""
