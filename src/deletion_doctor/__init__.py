"""Diagnose and repair partially-executed course module deletion tasks."""

__version__ = "0.1.0"
