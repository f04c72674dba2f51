"""
Motor Edge-TTS para generación de voz.
Usa voces neurales de Microsoft Edge - rápido, estable, gratuito.
"""

import asyncio
import hashlib
import logging
import os
import re
import time
from pathlib import Path
from typing import Optional

import edge_tts

logger = logging.getLogger(__name__)

VOICES = {
    "es-CO-GonzaloNeural": "Gonzalo (Colombia, masculino)",
    "es-CO-SalomeNeural": "Salomé (Colombia, femenino)",
    "es-MX-JorgeNeural": "Jorge (México, masculino)",
    "es-ES-ElviraNeural": "Elvira (España, femenino)",
    "en-US-GuyNeural": "Guy (EE.UU., masculino)",
    "en-US-JennyNeural": "Jenny (EE.UU., femenino)",
}

DEFAULT_VOICE = "es-CO-GonzaloNeural"


def clean_text_for_tts(text: str) -> str:
    """
    Limpia texto para síntesis TTS, removiendo elementos problemáticos.
    Conserva la puntuación: la transcripción la usa para encontrar cortes.
    """
    text = re.sub(r'https?://\S+', '', text)
    text = re.sub(r'www\.\S+', '', text)
    text = re.sub(r'[@#]\w+', '', text)

    emoji_pattern = re.compile("["
        u"\U0001F600-\U0001F64F"
        u"\U0001F300-\U0001F5FF"
        u"\U0001F680-\U0001F6FF"
        u"\U0001F1E0-\U0001F1FF"
        u"\U00002702-\U000027B0"
        "]+", flags=re.UNICODE)
    text = emoji_pattern.sub('', text)

    text = re.sub(r'[*_~`|<>{}[\]\\]', '', text)

    text = re.sub(r'\s+', ' ', text)
    text = re.sub(r'[.]{2,}', '.', text)
    text = re.sub(r'[!]{2,}', '!', text)
    text = re.sub(r'[?]{2,}', '?', text)

    return text.strip()


class EdgeTTSEngine:
    """Motor de Text-to-Speech usando Edge-TTS (Microsoft Neural Voices)."""

    def __init__(
        self,
        output_dir: str = "./temp",
        voice: str = DEFAULT_VOICE,
        rate: str = "+0%",
        pitch: str = "+0Hz"
    ):
        """
        Inicializa el motor Edge-TTS.

        Args:
            output_dir: Directorio para archivos de audio
            voice: Voz a usar (ej: es-CO-GonzaloNeural)
            rate: Velocidad del habla (ej: "+10%", "-5%")
            pitch: Tono de voz (ej: "+5Hz", "-10Hz")
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.voice = voice
        self.rate = rate
        self.pitch = pitch

    async def synthesize_async(self, text: str, output_path: str) -> bool:
        """
        Sintetiza texto a audio de forma asíncrona.
        """
        try:
            communicate = edge_tts.Communicate(
                text=text,
                voice=self.voice,
                rate=self.rate,
                pitch=self.pitch
            )
            await communicate.save(output_path)
            return os.path.exists(output_path) and os.path.getsize(output_path) > 0

        except Exception as e:
            logger.error(f"Error en Edge-TTS: {e}")
            return False

    def synthesize(self, text: str, output_filename: Optional[str] = None) -> Optional[str]:
        """
        Sintetiza el guion completo a un único MP3.

        Args:
            text: Texto a sintetizar
            output_filename: Nombre del archivo de salida (sin extensión)

        Returns:
            Ruta al archivo de audio o None
        """
        text = clean_text_for_tts(text)
        if not text:
            logger.error("Texto vacío después de limpieza")
            return None

        if not output_filename:
            output_filename = f"narration_{hashlib.sha256(text.encode()).hexdigest()[:8]}"
        output_path = self.output_dir / f"{output_filename}.mp3"

        logger.info(
            f"Sintetizando {len(text)} caracteres con {VOICES.get(self.voice, self.voice)}"
        )
        start_time = time.time()
        if not asyncio.run(self.synthesize_async(text, str(output_path))):
            return None

        logger.info(f"✓ Audio generado en {time.time() - start_time:.1f}s: {output_path}")
        return str(output_path)

    def set_voice(self, voice: str) -> bool:
        """Cambia la voz a usar."""
        if voice in VOICES:
            self.voice = voice
            logger.info(f"Voz cambiada a: {VOICES[voice]}")
            return True
        logger.warning(f"Voz no reconocida: {voice}")
        return False
