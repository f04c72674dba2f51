"""
Orquestador Central
Coordina narración, segmentación y render para convertir escenas en un video final.
"""
import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from .config import AppSettings
from .director.parser import InputParser
from .director.segmenter import TranscriptSegmenter
from .domain.models import ContinuousAudio, RenderResult, Scene, SceneTiming, Word
from .infrastructure.media import MediaLoader
from .utils.cache import NarrationStore
from .video.renderer import CompositionRenderer, ProgressCallback

logger = logging.getLogger(__name__)


class VideoOrchestrator:
    """
    El 'Director de Orquesta'.
    Recibe escenas (y opcionalmente un guion completo) y coordina su producción.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self.settings = settings or AppSettings.load()
        self.output_dir = Path(self.settings.output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        # Subsistemas
        self.parser = InputParser()
        self.segmenter = TranscriptSegmenter(self.settings.segmenter)
        self.store = NarrationStore(cache_dir=str(self.settings.cache_dir))

        # Whisper y Edge-TTS son pesados, se cargan solo si se narra
        self._narration_service = None

    @property
    def narration_service(self):
        if self._narration_service is None:
            from .audio.engine import AudioEngine
            from .audio.narration import NarrationService
            from .tts.edge_tts import EdgeTTSEngine

            cfg = self.settings.narration
            self._narration_service = NarrationService(
                synthesizer=EdgeTTSEngine(
                    output_dir=str(self.settings.temp_dir),
                    voice=cfg.voice,
                    rate=cfg.rate,
                    pitch=cfg.pitch,
                ),
                transcriber=AudioEngine(model_size=cfg.whisper_model, language=cfg.language),
                segmenter=self.segmenter,
            )
        return self._narration_service

    def segment(self, scene_texts: Sequence[str], words: Sequence[Word]) -> List[SceneTiming]:
        """Reparte los tiempos de la transcripción entre las escenas."""
        return self.segmenter.segment(scene_texts, words)

    def narrate(self, job_id: str, full_script: str, scenes: Sequence[Scene], force: bool = False) -> ContinuousAudio:
        """
        Genera (o recupera del cache) la narración continua de un trabajo.

        Args:
            job_id: Identificador del trabajo
            full_script: Guion completo a narrar
            scenes: Escenas en orden
            force: Regenerar aunque exista en cache

        Returns:
            ContinuousAudio con tiempos por escena
        """
        texts = [s.text for s in scenes]
        if not force:
            cached = self.store.load(job_id, texts)
            if cached is not None:
                logger.info(f"✓ Usando narración en cache para {job_id}")
                return cached

        narration = self.narration_service.narrate(full_script, texts, output_filename=f"{job_id}_narration")
        self.store.save(job_id, narration, texts)
        return narration

    def render(
        self,
        scenes: Sequence[Scene],
        continuous: Optional[ContinuousAudio] = None,
        job_id: Optional[str] = None,
        include_captions: bool = False,
        output_name: str = "video",
        on_progress: Optional[ProgressCallback] = None,
    ) -> RenderResult:
        """
        Renderiza las escenas a MP4.

        Si no se pasa audio continuo pero sí job_id, se intenta usar la
        narración guardada; si está obsoleta se renderiza con audio por escena.
        """
        if continuous is None and job_id:
            continuous = self.store.load(job_id, [s.text for s in scenes])

        media = MediaLoader(self.settings.media)
        renderer = CompositionRenderer(
            settings=self.settings.render,
            media_loader=media,
            output_dir=str(self.output_dir),
            temp_dir=str(self.settings.temp_dir),
            on_progress=on_progress,
        )
        try:
            return asyncio.run(
                renderer.render(
                    scenes,
                    continuous=continuous,
                    include_captions=include_captions,
                    output_name=output_name,
                )
            )
        finally:
            media.close()

    def close(self):
        self.store.close()
