from __future__ import annotations


class DrylandError(Exception):
    """Base class for errors raised by the simulation core."""


class ConfigurationError(DrylandError, ValueError):
    """Raised when a grid size, radius or parameter value is invalid."""


class NumericalInstabilityError(DrylandError, FloatingPointError):
    """A field became non-finite after an update.

    This means the parameter combination is outside the model's validity; it is
    never recovered from.
    """
