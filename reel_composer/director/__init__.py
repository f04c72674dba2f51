"""Módulo director: lectura de entradas y reparto de tiempos entre escenas."""

from .parser import InputParser
from .segmenter import TranscriptSegmenter, match_scenes_with_timestamps

__all__ = ["InputParser", "TranscriptSegmenter", "match_scenes_with_timestamps"]
