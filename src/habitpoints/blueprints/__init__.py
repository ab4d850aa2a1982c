"""Blueprint exports."""

from . import callables

__all__ = ["callables"]
