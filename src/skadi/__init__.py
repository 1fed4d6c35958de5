"""Skadi: a desktop shell whose UI is assembled from run-time plugins."""

__version__ = "0.1.0"
