"""Módulo TTS para síntesis de voz."""

from .edge_tts import EdgeTTSEngine

__all__ = ["EdgeTTSEngine"]
