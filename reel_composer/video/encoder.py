"""
Codificación del video final.

El render habla con dos capacidades: un VideoEncoder que recibe frames en
orden y un AudioMixer donde se programan clips de audio en instantes de la
línea de tiempo. Las implementaciones por defecto usan moviepy (tubería a
FFmpeg) para el video y pydub para la mezcla, y FFmpeg para unir ambas pistas.
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol

import numpy as np
from moviepy.config import FFMPEG_BINARY
from moviepy.video.io.ffmpeg_writer import FFMPEG_VideoWriter
from pydub import AudioSegment

from ..config import RenderSettings

logger = logging.getLogger(__name__)


class EncoderError(Exception):
    """Fallo del codificador; el mensaje describe la etapa."""
    pass


class VideoEncoder(Protocol):
    def start(self) -> None: ...

    @property
    def is_recording(self) -> bool: ...

    def write_frame(self, frame: np.ndarray) -> None: ...

    def finish(self, audio: Optional[AudioSegment]) -> Path: ...

    def abort(self) -> None: ...


class AudioMixer(Protocol):
    def schedule(self, clip: AudioSegment, at_time: float) -> int: ...

    def stop(self, handle: int, at_time: float) -> None: ...

    def mixdown(self, duration: float) -> AudioSegment: ...


@dataclass
class ScheduledClip:
    clip: AudioSegment
    start: float
    stop: Optional[float] = None


class PydubAudioMixer:
    """
    Destino de mezcla: cada clip suena desde `start` hasta `stop` (o hasta
    agotarse) y la pista final es la suma de todos.
    """

    def __init__(self, frame_rate: int = 44100):
        self.frame_rate = frame_rate
        self.clips: List[ScheduledClip] = []

    def schedule(self, clip: AudioSegment, at_time: float) -> int:
        self.clips.append(ScheduledClip(clip=clip, start=max(0.0, at_time)))
        return len(self.clips) - 1

    def stop(self, handle: int, at_time: float) -> None:
        scheduled = self.clips[handle]
        if scheduled.stop is None:
            scheduled.stop = max(scheduled.start, at_time)

    def mixdown(self, duration: float) -> AudioSegment:
        """
        Suma todos los clips programados en una pista de `duration` segundos.
        """
        mix = AudioSegment.silent(duration=int(round(duration * 1000)), frame_rate=self.frame_rate)
        for scheduled in self.clips:
            clip = scheduled.clip
            if scheduled.stop is not None:
                clip = clip[:int(round((scheduled.stop - scheduled.start) * 1000))]
            mix = mix.overlay(clip, position=int(round(scheduled.start * 1000)))
        return mix


class FFmpegVideoEncoder:
    """
    Escribe frames RGB a un MP4 H.264 y, al terminar, añade la pista AAC.
    """

    def __init__(self, output_path: Path, settings: Optional[RenderSettings] = None, temp_dir: str = "./temp"):
        self.output_path = Path(output_path)
        self.settings = settings or RenderSettings()
        self.temp_dir = Path(temp_dir)
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

        stem = self.output_path.stem
        self._video_path = self.temp_dir / f"{stem}_video_only.mp4"
        self._audio_path = self.temp_dir / f"{stem}_mix.wav"
        self._writer: Optional[FFMPEG_VideoWriter] = None
        self.frames_written = 0

    def start(self) -> None:
        cfg = self.settings
        try:
            self._writer = FFMPEG_VideoWriter(
                str(self._video_path),
                (cfg.width, cfg.height),
                cfg.fps,
                codec=cfg.codec,
                preset=cfg.preset,
                bitrate=cfg.video_bitrate,
            )
        except OSError as e:
            logger.error(f"Error iniciando FFmpeg: {e}")
            raise EncoderError("No se pudo iniciar el codificador") from e
        logger.info(f"Codificador iniciado: {cfg.width}x{cfg.height} @ {cfg.fps}fps ({cfg.codec})")

    @property
    def is_recording(self) -> bool:
        return self._writer is not None and self._writer.proc.poll() is None

    def write_frame(self, frame: np.ndarray) -> None:
        if self._writer is None:
            raise EncoderError("El codificador no está iniciado")
        try:
            self._writer.write_frame(frame)
        except OSError as e:
            logger.error(f"FFmpeg dejó de aceptar frames: {e}")
            raise EncoderError("El codificador se detuvo inesperadamente") from e
        self.frames_written += 1

    def finish(self, audio: Optional[AudioSegment]) -> Path:
        """
        Cierra la pista de video y la une con el audio mezclado.

        Returns:
            Ruta al MP4 final
        """
        if self._writer is None:
            raise EncoderError("El codificador no está iniciado")
        try:
            self._writer.close()
        except OSError as e:
            raise EncoderError("El codificador se detuvo inesperadamente") from e
        self._writer = None

        if self.frames_written == 0 or not self._video_path.exists():
            raise EncoderError("No se capturó ningún frame")

        try:
            if audio is None:
                shutil.move(str(self._video_path), str(self.output_path))
            else:
                self._mux(audio)
        finally:
            self._cleanup()

        if not self.output_path.exists() or self.output_path.stat().st_size == 0:
            raise EncoderError("El video generado está vacío")

        logger.info(f"Video codificado: {self.output_path}")
        return self.output_path

    def _mux(self, audio: AudioSegment) -> None:
        cfg = self.settings
        audio.export(str(self._audio_path), format="wav")

        cmd = [
            FFMPEG_BINARY, "-y",
            "-i", str(self._video_path),
            "-i", str(self._audio_path),
            "-map", "0:v:0",
            "-map", "1:a:0",
            "-c:v", "copy",
            "-c:a", cfg.audio_codec,
            "-b:a", cfg.audio_bitrate,
            "-movflags", "+faststart",
            str(self.output_path),
        ]
        try:
            subprocess.run(cmd, capture_output=True, check=True)
        except subprocess.CalledProcessError as e:
            logger.error(f"Error uniendo audio y video: {e.stderr.decode(errors='replace')}")
            raise EncoderError("Falló la unión de audio y video") from e
        except OSError as e:
            raise EncoderError("Falló la unión de audio y video") from e

    def abort(self) -> None:
        """Detiene FFmpeg sin producir salida y borra temporales."""
        if self._writer is not None:
            try:
                self._writer.close()
            except OSError as e:
                logger.warning(f"FFmpeg no cerró limpiamente: {e}")
            self._writer = None
        self._cleanup()

    def _cleanup(self) -> None:
        for path in (self._video_path, self._audio_path):
            if path.exists():
                try:
                    os.remove(path)
                except OSError as e:
                    logger.warning(f"No se pudo borrar {path}: {e}")
