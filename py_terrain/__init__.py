"""Animated procedural heightfield terrain."""

__version__ = "0.1.0"
