"""
Segmentador de Transcripción
Reparte una narración continua entre escenas usando los tiempos por palabra.

Los cortes se buscan cerca del reparto uniforme de palabras, premiando
puntuación final, comas y silencios largos. Es una función pura: misma
entrada, misma salida, sin estado ni reloj.
"""
import logging
import math
from typing import List, Optional, Sequence

from ..config import SegmenterSettings
from ..domain.models import SceneTiming, Word

logger = logging.getLogger(__name__)

SENTENCE_END = (".", "!", "?")

# Separación mínima entre inicios cuando la transcripción repite timestamps
MIN_RANGE = 1e-3


class TranscriptSegmenter:
    """Asigna a cada escena un rango de tiempo dentro de la narración."""

    def __init__(self, settings: Optional[SegmenterSettings] = None):
        self.settings = settings or SegmenterSettings()

    def score(self, words: Sequence[Word], index: int, target: int) -> float:
        """
        Puntúa la palabra `index` como última palabra antes de un corte.

        Args:
            words: Transcripción completa
            index: Candidato
            target: Índice del corte uniforme

        Returns:
            Puntuación (mayor es mejor)
        """
        cfg = self.settings
        word = words[index]
        text = word.display_text
        score = 0.0

        if text.endswith(SENTENCE_END):
            score += cfg.sentence_end_weight
        if "," in text:
            score += cfg.comma_weight
        if index + 1 < len(words):
            pause = words[index + 1].start - word.end
            score += pause * cfg.pause_weight

        score -= abs(index - target) * cfg.distance_penalty
        return score

    def find_break_points(self, scene_count: int, words: Sequence[Word]) -> List[int]:
        """
        Calcula el índice de la primera palabra de cada escena.

        Requiere len(words) >= scene_count; el resultado es estrictamente creciente
        y deja al menos una palabra para cada escena.
        """
        total = len(words)
        if scene_count < 1:
            raise ValueError("Se necesita al menos una escena")
        if total < scene_count:
            raise ValueError(
                f"No hay palabras suficientes ({total}) para {scene_count} escenas"
            )

        window = self.settings.search_window
        words_per_scene = total // scene_count
        break_points = [0]

        for i in range(1, scene_count):
            previous = break_points[-1]
            target = i * words_per_scene
            search_start = max(1, target - window)
            search_end = min(total - 1, target + window)

            best_index = target
            best_score = -math.inf
            for candidate in range(search_start, search_end + 1):
                candidate_score = self.score(words, candidate, target)
                if candidate_score > best_score or (
                    candidate_score == best_score
                    and abs(candidate - target) < abs(best_index - target)
                ):
                    best_score = candidate_score
                    best_index = candidate

            boundary = best_index + 1
            if boundary <= previous:
                boundary = previous + 1

            # Cada escena restante necesita al menos una palabra
            remaining_scenes = scene_count - i
            if boundary > total - remaining_scenes:
                logger.debug(
                    f"Corte {i} sin palabras suficientes detrás, "
                    f"repartiendo las {total - previous} restantes"
                )
                break_points.extend(
                    self._even_split(previous, total, remaining_scenes + 1)
                )
                break

            break_points.append(boundary)

        return break_points

    @staticmethod
    def _even_split(first: int, total: int, scenes: int) -> List[int]:
        """Cortes uniformes para `scenes` escenas desde la palabra `first`."""
        available = total - first
        return [first + (k * available) // scenes for k in range(1, scenes)]

    def segment(
        self,
        scenes: Sequence[str],
        words: Sequence[Word],
        total_duration: Optional[float] = None,
    ) -> List[SceneTiming]:
        """
        Reparte la narración entre las escenas.

        Args:
            scenes: Textos de las escenas, en orden
            words: Palabras transcritas, ordenadas por inicio
            total_duration: Duración real del audio, usada si no hay palabras

        Returns:
            Un SceneTiming por escena, contiguos y ordenados
        """
        scene_count = len(scenes)
        if scene_count == 0:
            raise ValueError("Se necesita al menos una escena")

        if not words:
            span = self.settings.fallback_total_duration
            if total_duration and total_duration > 0:
                span = total_duration
            logger.warning(
                f"Sin transcripción: reparto uniforme de "
                f"{span:.1f}s entre {scene_count} escenas"
            )
            return self._uniform(scenes, 0.0, span)

        total_duration = words[-1].end
        logger.info(
            f"📊 Audio total: {total_duration:.2f}s, "
            f"{len(words)} palabras para {scene_count} escenas"
        )

        if len(words) < scene_count:
            logger.warning(
                f"Más escenas ({scene_count}) que palabras ({len(words)}), "
                f"reparto uniforme del audio"
            )
            end = max(total_duration, words[0].start + MIN_RANGE * scene_count)
            return self._uniform(scenes, words[0].start, end)

        break_points = self.find_break_points(scene_count, words)
        logger.info(f"🎯 Cortes en palabras: {break_points}")

        starts = []
        for i, first_word in enumerate(break_points):
            start = words[first_word].start
            if starts and start <= starts[-1]:
                # Transcripción con inicios repetidos: usar el fin de la palabra anterior
                start = max(words[first_word - 1].end, starts[-1] + MIN_RANGE)
            starts.append(start)

        last_end = max(total_duration, starts[-1] + MIN_RANGE)

        timings = []
        for i, text in enumerate(scenes):
            end = starts[i + 1] if i + 1 < scene_count else last_end
            timings.append(SceneTiming(
                scene_index=i,
                start_time=starts[i],
                end_time=end,
                text=text,
            ))
            logger.debug(f"Escena {i + 1}: {starts[i]:.3f}s - {end:.3f}s")

        return timings

    @staticmethod
    def _uniform(scenes: Sequence[str], start: float, end: float) -> List[SceneTiming]:
        count = len(scenes)
        step = (end - start) / count
        return [
            SceneTiming(
                scene_index=i,
                start_time=start + i * step,
                end_time=end if i == count - 1 else start + (i + 1) * step,
                text=text,
            )
            for i, text in enumerate(scenes)
        ]


def match_scenes_with_timestamps(
    scenes: Sequence[str],
    words: Sequence[Word],
    settings: Optional[SegmenterSettings] = None,
) -> List[SceneTiming]:
    """Atajo funcional sobre TranscriptSegmenter.segment."""
    return TranscriptSegmenter(settings).segment(scenes, words)
