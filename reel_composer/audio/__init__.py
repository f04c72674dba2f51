"""
Módulo de audio.

Componentes:
- NarrationService: Narración continua con tiempos por escena
- AudioEngine (audio.engine): Transcripción con Whisper; se importa aparte porque carga torch
"""

from .narration import NarrationError, NarrationService

__all__ = ["NarrationError", "NarrationService"]
