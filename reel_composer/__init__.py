"""Compositor de reels: escenas narradas a video vertical 9:16."""

__version__ = "3.1.0"
