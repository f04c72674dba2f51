"""
Narración continua.
Sintetiza el guion completo en una sola pista, la transcribe y reparte
sus tiempos entre las escenas.
"""
import base64
import logging
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from ..director.segmenter import TranscriptSegmenter
from ..domain.models import ContinuousAudio, Word

logger = logging.getLogger(__name__)


class NarrationError(Exception):
    """La síntesis o la transcripción no produjeron nada utilizable."""
    pass


class SpeechSynthesizer(Protocol):
    def synthesize(self, text: str, output_filename: Optional[str] = None) -> Optional[str]: ...


class Transcriber(Protocol):
    def transcribe_words(self, audio_path: str) -> Tuple[List[Word], str]: ...


class NarrationService:
    """
    Convierte guion + escenas en audio continuo con tiempos por escena.
    """

    def __init__(
        self,
        synthesizer: SpeechSynthesizer,
        transcriber: Transcriber,
        segmenter: Optional[TranscriptSegmenter] = None,
        embed_audio: bool = False,
        duration_reader: Optional[Callable[[str], Optional[float]]] = None,
    ):
        """
        Args:
            synthesizer: Motor TTS
            transcriber: Motor de transcripción con tiempos por palabra
            segmenter: Segmentador (por defecto, pesos estándar)
            embed_audio: Devolver el audio como data: URL en lugar de ruta
            duration_reader: Lee la duración del audio (por defecto, pydub)
        """
        self.synthesizer = synthesizer
        self.transcriber = transcriber
        self.segmenter = segmenter or TranscriptSegmenter()
        self.embed_audio = embed_audio
        self.duration_reader = duration_reader or read_audio_duration

    def narrate(
        self,
        full_script: str,
        scene_texts: Sequence[str],
        output_filename: Optional[str] = None,
    ) -> ContinuousAudio:
        """
        Genera la narración continua.

        Args:
            full_script: Texto completo a narrar
            scene_texts: Textos de las escenas, en orden
            output_filename: Nombre del audio (sin extensión)

        Returns:
            ContinuousAudio con un SceneTiming por escena
        """
        if not full_script.strip() or not scene_texts:
            raise NarrationError("Se requieren el guion completo y las escenas")

        logger.info("🎙️ Generando narración del guion completo...")
        audio_path = self.synthesizer.synthesize(full_script, output_filename)
        if not audio_path:
            raise NarrationError("La síntesis de voz no generó audio")

        logger.info("✅ Narración generada, transcribiendo...")
        words, transcript = self.transcriber.transcribe_words(audio_path)
        if words:
            timings = self.segmenter.segment(scene_texts, words)
            total_duration = words[-1].end
        else:
            logger.warning("La transcripción no devolvió palabras, tiempos aproximados")
            audio_duration = self.duration_reader(audio_path)
            timings = self.segmenter.segment(scene_texts, words, total_duration=audio_duration)
            total_duration = timings[-1].end_time

        return ContinuousAudio(
            audio_url=self._reference(audio_path),
            scene_timings=timings,
            total_duration=total_duration,
            transcript=transcript or None,
        )

    def _reference(self, audio_path: str) -> str:
        if not self.embed_audio:
            return str(audio_path)
        data = Path(audio_path).read_bytes()
        return "data:audio/mpeg;base64," + base64.b64encode(data).decode("ascii")


def read_audio_duration(audio_path: str) -> Optional[float]:
    """Duración en segundos del audio decodificado, o None si no se puede leer."""
    try:
        return len(AudioSegment.from_file(audio_path)) / 1000.0
    except (CouldntDecodeError, IndexError, OSError) as e:
        logger.warning(f"No se pudo leer la duración de {audio_path}: {e}")
        return None
