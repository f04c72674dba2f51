"""
Motor de Audio
Transcripción con tiempos por palabra (Whisper) para alinear la narración.
"""
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import torch
import whisper

from ..domain.models import Word

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w'’-]+", re.UNICODE)


def get_word_timings(segments: List[Dict[str, Any]]) -> List[Word]:
    """
    Extrae una lista plana de palabras con sus tiempos.

    Whisper pega la puntuación a la palabra (" Hola,"), así que se conserva
    como texto puntuado y se limpia para el texto plano.
    """
    words = []
    for segment in segments:
        for word_info in segment.get("words", []):
            punctuated = word_info["word"].strip()
            if not punctuated:
                continue
            plain = _NON_WORD.sub("", punctuated) or punctuated
            words.append(Word(
                text=plain,
                punctuated_text=punctuated,
                start=float(word_info["start"]),
                end=float(word_info["end"]),
            ))
    words.sort(key=lambda w: w.start)
    return words


class AudioEngine:
    """
    Transcriptor de narraciones basado en Whisper.
    """

    def __init__(self, model_size: str = "base", device: Optional[str] = None, language: Optional[str] = None):
        """
        Inicializa el motor y carga el modelo Whisper.

        Args:
            model_size: Tamaño del modelo Whisper ('tiny', 'base', 'small', 'medium', 'large')
            device: Dispositivo ('cpu', 'cuda'). Si es None, se detecta automáticamente.
            language: Idioma de la narración (None = autodetección)
        """
        self.model_size = model_size
        self.language = language
        self.device = device or ("cuda" if torch.cuda.is_available() else "cpu")

        logger.info(f"Cargando Whisper '{model_size}' en {self.device}...")
        self.model = whisper.load_model(model_size, device=self.device)

    def align_audio(self, audio_path: str) -> Dict[str, Any]:
        """
        Transcribe un archivo de audio con timestamps por palabra.

        Returns:
            Resultado crudo de Whisper (texto y segmentos)
        """
        path = Path(audio_path)
        if not path.exists():
            raise FileNotFoundError(f"No se encuentra el archivo: {audio_path}")

        logger.info(f"🎙️ Analizando audio con Whisper: {path.name}")
        result = self.model.transcribe(
            str(path),
            word_timestamps=True,
            language=self.language,
            fp16=self.device == "cuda",
        )
        logger.info(f"Alineación completada: {len(result.get('segments', []))} segmentos")
        return result

    def transcribe_words(self, audio_path: str) -> Tuple[List[Word], str]:
        """Palabras con tiempos y transcripción completa."""
        result = self.align_audio(audio_path)
        words = get_word_timings(result.get("segments", []))
        return words, result.get("text", "").strip()
