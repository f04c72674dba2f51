"""
Modelos de Dominio
Estructuras de datos que entran y salen del núcleo de composición.
El núcleo solo las lee: nunca muta una escena ni una tabla de tiempos.
"""
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Scene(BaseModel):
    """
    Un momento narrativo: texto, imagen y (opcionalmente) su propio audio.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(..., ge=1, description="Posición 1-based dentro del guión")
    text: str = Field(..., description="Texto narrado y subtitulado en esta escena")
    image_url: str = Field("", alias="imageUrl", description="Referencia a la imagen")
    voice_url: str = Field("", alias="voiceUrl", description="Audio individual (vacío con audio continuo)")


class Word(BaseModel):
    """Palabra transcrita con sus tiempos en segundos."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str = Field(..., alias="word")
    punctuated_text: Optional[str] = Field(None, alias="punctuated_word")
    start: float
    end: float

    @model_validator(mode="before")
    @classmethod
    def _accept_camel_case(cls, data):
        # La transcripción usa word/punctuated_word; el cliente web usa text/punctuatedText
        if isinstance(data, dict):
            data = dict(data)
            if "text" in data and "word" not in data:
                data["word"] = data.pop("text")
            if "punctuatedText" in data and "punctuated_word" not in data:
                data["punctuated_word"] = data.pop("punctuatedText")
        return data

    @property
    def display_text(self) -> str:
        """Texto con puntuación si la transcripción la aporta."""
        return self.punctuated_text or self.text


class SceneTiming(BaseModel):
    """Rango [start_time, end_time) durante el cual una escena está activa."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    scene_index: int = Field(..., ge=0, alias="sceneIndex")
    start_time: float = Field(..., alias="startTime")
    end_time: float = Field(..., alias="endTime")
    text: str = ""

    @model_validator(mode="after")
    def _check_range(self):
        if self.end_time <= self.start_time:
            raise ValueError(
                f"Rango inválido para escena {self.scene_index}: "
                f"{self.start_time:.3f}s - {self.end_time:.3f}s"
            )
        return self

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class ContinuousAudio(BaseModel):
    """Narración completa en una sola pista, con los tiempos de cada escena."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    audio_url: str = Field(..., alias="audioUrl")
    scene_timings: List[SceneTiming] = Field(default_factory=list, alias="sceneTimings")
    total_duration: float = Field(0.0, alias="totalDuration")
    transcript: Optional[str] = None

    def covers(self, scene_count: int) -> bool:
        """True si hay exactamente un rango por escena."""
        return len(self.scene_timings) == scene_count and scene_count > 0


class RenderStage(str, Enum):
    """Estados de una pasada de render."""
    IDLE = "idle"
    PREPARING = "preparing"
    RECORDING = "recording"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    FAILED = "failed"


class RenderResult(BaseModel):
    """Artefacto final de un render exitoso."""
    video_path: Path
    frame_count: int
    duration: float
    fps: int
    timing_mode: str = Field(..., description="'continuous' o 'per_scene'")
    placeholder_scenes: List[int] = Field(default_factory=list)
    forced_by_timeout: bool = False
