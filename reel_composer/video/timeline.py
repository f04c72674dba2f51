"""
Línea de tiempo del render.

Todo lo que cambia de un frame a otro (escena activa, progreso, paneo,
fundido, palabra resaltada) se deriva aquí como función pura del número de
frame y de la tabla de tiempos, que no se modifica nunca.
"""

import bisect
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from ..config import RenderSettings
from ..domain.models import ContinuousAudio, SceneTiming
from .captions import CaptionFrame, layout_caption


@dataclass(frozen=True)
class ContinuousTiming:
    """Una pista de narración con un rango de tiempo por escena."""
    timings: Tuple[SceneTiming, ...]
    total_duration: float

    mode = "continuous"


@dataclass(frozen=True)
class PerSceneTiming:
    """Cada escena dura lo que dura su propio audio."""
    durations: Tuple[float, ...]

    mode = "per_scene"


TimingSource = Union[ContinuousTiming, PerSceneTiming]


def resolve_timing_source(
    scene_count: int,
    continuous: Optional[ContinuousAudio],
    durations: Sequence[float],
) -> TimingSource:
    """
    Decide una sola vez de dónde salen los tiempos del render.

    Args:
        scene_count: Número de escenas
        continuous: Audio continuo (o None)
        durations: Duración propia de cada escena, usada si no hay audio continuo válido

    Returns:
        ContinuousTiming o PerSceneTiming
    """
    if continuous is not None and continuous.covers(scene_count):
        timings = tuple(continuous.scene_timings)
        total = continuous.total_duration
        if total <= 0:
            total = timings[-1].end_time
        return ContinuousTiming(timings=timings, total_duration=total)
    return PerSceneTiming(durations=tuple(durations))


@dataclass(frozen=True)
class RenderState:
    """Estado visual de un frame. Se recalcula desde cero en cada tick."""
    frame: int
    time: float
    current_scene_index: int
    scene_progress: float
    frame_in_scene: int
    global_progress: float
    pan_offset: float
    current_opacity: float
    previous_scene_index: Optional[int]
    previous_opacity: float
    current_word_index: Optional[int] = None
    caption: Optional[CaptionFrame] = None


class RenderTimeline:
    """Tabla de tiempos inmutable + cálculo por frame."""

    def __init__(
        self,
        scene_texts: Sequence[str],
        source: TimingSource,
        settings: Optional[RenderSettings] = None,
        captions: bool = False,
    ):
        if not scene_texts:
            raise ValueError("La línea de tiempo necesita al menos una escena")

        self.settings = settings or RenderSettings()
        self.scene_texts = tuple(scene_texts)
        self.source = source
        self.captions = captions
        fps = self.settings.fps

        if isinstance(source, ContinuousTiming):
            if len(source.timings) != len(self.scene_texts):
                raise ValueError("Tiempos continuos y escenas no coinciden")
            self.total_duration = source.total_duration
            self._starts = [t.start_time for t in source.timings]
            self.content_frames = round(self.total_duration * fps)
            self.scene_start_frames = tuple(
                max(0, round(t.start_time * fps)) for t in source.timings
            )
        else:
            if len(source.durations) != len(self.scene_texts):
                raise ValueError("Duraciones y escenas no coinciden")
            # Cortes sobre la duración acumulada: el redondeo no se acumula entre escenas
            boundaries = [0]
            elapsed = 0.0
            for duration in source.durations:
                elapsed += duration
                boundaries.append(max(boundaries[-1] + 1, round(elapsed * fps)))
            self.scene_start_frames = tuple(boundaries[:-1])
            self.scene_frames = tuple(b - a for a, b in zip(boundaries, boundaries[1:]))
            self.content_frames = boundaries[-1]
            self.total_duration = self.content_frames / fps

        self.total_frames = self.content_frames + round(self.settings.tail_seconds * fps)

    @property
    def is_continuous(self) -> bool:
        return isinstance(self.source, ContinuousTiming)

    @property
    def scene_count(self) -> int:
        return len(self.scene_texts)

    def scene_at(self, seconds: float) -> int:
        """Escena activa en continuo: el rango que contiene el instante."""
        # El último rango cuyo inicio ya pasó (también cubre huecos entre rangos)
        index = bisect.bisect_right(self._starts, seconds) - 1
        return min(max(index, 0), len(self._starts) - 1)

    def tick(self, frame: int) -> RenderState:
        """
        Calcula el estado del frame `frame`.

        No depende de frames anteriores: tick(n) siempre devuelve lo mismo.
        """
        cfg = self.settings
        fps = cfg.fps
        seconds = frame / fps

        if self.is_continuous:
            index = self.scene_at(seconds)
            timing = self.source.timings[index]
            time_in_scene = seconds - timing.start_time
            scene_duration = timing.duration
            frame_in_scene = max(0, frame - self.scene_start_frames[index])
            global_progress = seconds / self.total_duration if self.total_duration > 0 else 1.0
        else:
            index = bisect.bisect_right(self.scene_start_frames, frame) - 1
            index = min(max(index, 0), self.scene_count - 1)
            frame_in_scene = frame - self.scene_start_frames[index]
            scene_duration = self.scene_frames[index] / fps
            time_in_scene = frame_in_scene / fps
            global_progress = frame / self.content_frames

        scene_progress = _clamp(time_in_scene / scene_duration)

        wave = global_progress * self.scene_count
        pan_offset = math.sin(wave * math.pi) * cfg.pan_amplitude

        current_opacity = 1.0
        previous_index = None
        previous_opacity = 0.0
        fade = cfg.crossfade_duration
        if index > 0 and fade > 0 and 0 <= time_in_scene < fade:
            current_opacity = time_in_scene / fade
            previous_index = index - 1
            previous_opacity = 1.0 - current_opacity

        word_index = None
        caption = None
        if self.captions:
            if self.is_continuous:
                text_progress = _clamp((time_in_scene + cfg.caption_lead) / scene_duration)
            else:
                lead_frames = round(cfg.caption_lead * fps)
                text_progress = _clamp(
                    (frame_in_scene + lead_frames) / self.scene_frames[index]
                )
            caption = layout_caption(self.scene_texts[index], text_progress, cfg)
            word_index = caption.current_word_index if caption else None

        return RenderState(
            frame=frame,
            time=seconds,
            current_scene_index=index,
            scene_progress=scene_progress,
            frame_in_scene=frame_in_scene,
            global_progress=global_progress,
            pan_offset=pan_offset,
            current_opacity=current_opacity,
            previous_scene_index=previous_index,
            previous_opacity=previous_opacity,
            current_word_index=word_index,
            caption=caption,
        )


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(max(value, low), high)
