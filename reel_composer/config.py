"""
Configuración del compositor.
Lee config/config.yaml (si existe) y permite sobreescribir directorios por entorno.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()
logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/config.yaml")


class SegmenterSettings(BaseModel):
    """Pesos de la búsqueda de cortes naturales en la transcripción."""
    search_window: int = Field(8, ge=0)
    sentence_end_weight: float = 10.0
    comma_weight: float = 5.0
    pause_weight: float = 2.0
    distance_penalty: float = 0.1
    fallback_total_duration: float = Field(30.0, gt=0)


class CaptionStyle(BaseModel):
    font_size: int = 60
    font_names: list[str] = [
        "Impact.ttf", "impact.ttf", "Arial Black.ttf", "ariblk.ttf",
        "DejaVuSans-Bold.ttf",
    ]
    line_height: float = 1.3
    word_spacing: int = 18
    anchor_y: float = 0.6
    text_color: str = "#FFFFFF"
    highlight_color: str = "#FF00FF"
    stroke_color: str = "#000000"
    stroke_width: int = 5
    glow_color: tuple[int, int, int, int] = (252, 119, 239, 102)
    glow_radius: float = 12.5
    highlight_scale: float = 0.93


class RenderSettings(BaseModel):
    """Parámetros del render: lienzo, animación, subtítulos y codificador."""
    width: int = 1080
    height: int = 1920
    fps: int = Field(30, gt=0)
    zoom: float = Field(1.2, ge=1.0)
    pan_amplitude: float = 150.0
    crossfade_duration: float = 0.3
    caption_lead: float = 0.1
    words_per_batch: int = Field(6, ge=1)
    max_caption_lines: int = Field(2, ge=1)
    single_line_max_words: int = 3
    last_word_threshold: float = 0.95
    default_scene_duration: float = Field(5.0, gt=0)
    safety_timeout: float = 300.0
    encoder_check_interval: int = Field(90, ge=1)
    tail_seconds: float = Field(0.0, ge=0)
    caption: CaptionStyle = CaptionStyle()

    codec: str = "libx264"
    preset: str = "fast"
    video_bitrate: str = "5000k"
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"

    @field_validator("max_caption_lines")
    @classmethod
    def _clamp_lines(cls, value: int) -> int:
        # Nunca más de dos líneas en pantalla
        return min(value, 2)


class MediaSettings(BaseModel):
    http_timeout: float = 30.0
    max_attempts: int = 3
    placeholder_color: str = "#333333"
    placeholder_text_color: str = "#FFFFFF"
    placeholder_font_size: int = 48


class NarrationSettings(BaseModel):
    whisper_model: str = "base"
    language: Optional[str] = None
    voice: str = "es-CO-GonzaloNeural"
    rate: str = "+0%"
    pitch: str = "+0Hz"


class AppSettings(BaseModel):
    """Configuración completa de la aplicación."""
    output_dir: Path = Path("./output")
    temp_dir: Path = Path("./temp")
    cache_dir: Path = Path("./cache")
    segmenter: SegmenterSettings = SegmenterSettings()
    render: RenderSettings = RenderSettings()
    media: MediaSettings = MediaSettings()
    narration: NarrationSettings = NarrationSettings()

    @classmethod
    def load(cls, path: Union[str, Path, None] = None) -> "AppSettings":
        """
        Carga la configuración desde YAML y variables de entorno.

        Args:
            path: Ruta al YAML (por defecto config/config.yaml)

        Returns:
            AppSettings validado
        """
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        data: dict = {}
        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            logger.info(f"Configuración cargada desde {config_path}")
        else:
            logger.info(f"{config_path} no existe, usando valores por defecto")

        env_overrides = {
            "output_dir": os.getenv("REEL_OUTPUT_DIR"),
            "temp_dir": os.getenv("REEL_TEMP_DIR"),
            "cache_dir": os.getenv("REEL_CACHE_DIR"),
        }
        for key, value in env_overrides.items():
            if value:
                data[key] = value

        narration = dict(data.get("narration") or {})
        if os.getenv("REEL_WHISPER_MODEL"):
            narration["whisper_model"] = os.getenv("REEL_WHISPER_MODEL")
        if os.getenv("REEL_TTS_VOICE"):
            narration["voice"] = os.getenv("REEL_TTS_VOICE")
        if narration:
            data["narration"] = narration

        return cls(**data)
