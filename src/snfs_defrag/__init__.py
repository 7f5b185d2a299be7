"""Automation layer around the StorNext snfsdefrag utility."""

__version__ = "0.1.0"
