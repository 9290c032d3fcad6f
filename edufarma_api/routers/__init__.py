"""Router package for the diagnosis API."""

from . import diagnose, health  # noqa: F401

__all__ = ["diagnose", "health"]
