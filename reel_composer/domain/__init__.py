"""Modelos de dominio."""

from .models import ContinuousAudio, RenderResult, RenderStage, Scene, SceneTiming, Word

__all__ = ["ContinuousAudio", "RenderResult", "RenderStage", "Scene", "SceneTiming", "Word"]
