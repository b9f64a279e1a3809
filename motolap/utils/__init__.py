"""Geometry, filtering, formatting and settings helpers."""
