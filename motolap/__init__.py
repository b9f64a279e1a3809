"""
motolap - GPS lap timer for motorcycles.

Track recording, start/finish lap detection and session/course
persistence for a host application that supplies GPS fixes.
"""

__version__ = "0.3.0"
