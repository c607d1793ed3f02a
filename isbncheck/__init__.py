"""Validate CSV book records against a bibliographic ISBN lookup."""

__version__ = "0.1.0"
