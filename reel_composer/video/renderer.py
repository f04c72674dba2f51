"""
Renderizador de composición.
Genera videos verticales (9:16) multi-escena sincronizados con la narración.

Una pasada de render recorre Idle → Preparing → Recording → Finalizing →
Complete, o termina en Failed. La grabación avanza frame a frame a ritmo
fijo (no de reloj) y cede el control entre frames.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence

from PIL import Image
from pydub import AudioSegment

from ..config import MediaSettings, RenderSettings
from ..domain.models import ContinuousAudio, RenderResult, RenderStage, Scene
from ..infrastructure.media import MediaError, MediaLoader
from .encoder import AudioMixer, EncoderError, FFmpegVideoEncoder, PydubAudioMixer, VideoEncoder
from .frames import FrameComposer
from .timeline import ContinuousTiming, RenderTimeline, resolve_timing_source

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]
Scheduler = Callable[[], Awaitable[None]]
EncoderFactory = Callable[[Path, RenderSettings], VideoEncoder]


class RenderError(Exception):
    """Fallo fatal de un render. `message` es el último texto de etapa."""

    def __init__(self, stage: RenderStage, message: str):
        super().__init__(message)
        self.stage = stage
        self.message = message


async def cooperative_yield() -> None:
    """Cede el bucle de eventos entre frames."""
    await asyncio.sleep(0)


@dataclass
class PreparedScene:
    image: Image.Image
    duration: float
    audio: Optional[AudioSegment] = None
    placeholder: bool = False


class CompositionRenderer:
    """Renderiza una lista de escenas a un único MP4."""

    def __init__(
        self,
        settings: Optional[RenderSettings] = None,
        media_loader: Optional[MediaLoader] = None,
        output_dir: str = "./output",
        temp_dir: str = "./temp",
        encoder_factory: Optional[EncoderFactory] = None,
        mixer_factory: Callable[[], AudioMixer] = PydubAudioMixer,
        clock: Callable[[], float] = time.monotonic,
        scheduler: Scheduler = cooperative_yield,
        on_progress: Optional[ProgressCallback] = None,
    ):
        """
        Inicializa el renderizador.

        Args:
            settings: Parámetros de lienzo, animación y codificación
            media_loader: Cargador de imágenes y audio
            output_dir: Directorio para videos finales
            temp_dir: Directorio para archivos temporales
            encoder_factory: Crea el codificador de cada pasada
            mixer_factory: Crea el destino de mezcla de audio
            clock: Reloj monotónico para el límite de seguridad
            scheduler: Corrutina que cede el control entre frames
            on_progress: Callback (porcentaje, texto de etapa)
        """
        self.settings = settings or RenderSettings()
        self.media = media_loader or MediaLoader(MediaSettings())
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.temp_dir = temp_dir
        self.encoder_factory = encoder_factory or (
            lambda path, cfg: FFmpegVideoEncoder(path, cfg, temp_dir=self.temp_dir)
        )
        self.mixer_factory = mixer_factory
        self.clock = clock
        self.scheduler = scheduler
        self.on_progress = on_progress

        self.stage = RenderStage.IDLE
        self.progress = 0.0
        self.stage_text = ""
        self._cancel_requested = False

    def cancel(self) -> None:
        """Pide detener el render; se atiende entre frames."""
        self._cancel_requested = True

    def _report(self, percent: float, text: str) -> None:
        self.progress = percent
        self.stage_text = text
        if self.on_progress:
            self.on_progress(percent, text)

    def _enter(self, stage: RenderStage, percent: float, text: str) -> None:
        logger.info(f"[{stage.value}] {text}")
        self.stage = stage
        self._report(percent, text)

    def _fail(self, message: str) -> RenderError:
        failed_in = self.stage
        logger.error(f"Render fallido en {failed_in.value}: {message}")
        self.stage = RenderStage.FAILED
        self.stage_text = message
        if self.on_progress:
            self.on_progress(self.progress, message)
        return RenderError(failed_in, message)

    async def render(
        self,
        scenes: Sequence[Scene],
        continuous: Optional[ContinuousAudio] = None,
        include_captions: bool = False,
        output_name: str = "video",
    ) -> RenderResult:
        """
        Ejecuta una pasada completa de render.

        Args:
            scenes: Escenas en orden
            continuous: Narración continua con tiempos por escena (opcional)
            include_captions: Si dibujar subtítulos palabra por palabra
            output_name: Nombre del archivo de salida (sin extensión)

        Returns:
            RenderResult con la ruta del MP4

        Raises:
            RenderError: ante cualquier fallo fatal (codificador, cancelación)
        """
        if not scenes:
            raise ValueError("No hay escenas para renderizar")
        if self.stage not in (RenderStage.IDLE, RenderStage.COMPLETE, RenderStage.FAILED):
            raise RuntimeError("Este renderizador ya tiene una pasada en curso")

        self._cancel_requested = False
        self.progress = 0.0
        encoder: Optional[VideoEncoder] = None
        succeeded = False

        try:
            self._enter(RenderStage.PREPARING, 10, "Cargando imágenes y audio...")
            continuous_audio = await self._load_continuous(scenes, continuous)
            prepared = await self._prepare_scenes(scenes, load_voice=continuous_audio is None)

            source = resolve_timing_source(
                len(scenes),
                continuous if continuous_audio is not None else None,
                [p.duration for p in prepared],
            )
            timeline = RenderTimeline(
                [s.text for s in scenes], source, self.settings, captions=include_captions
            )
            composer = FrameComposer([p.image for p in prepared], self.settings)
            logger.info(
                f"Línea de tiempo {source.mode}: {timeline.total_frames} frames, "
                f"{timeline.total_duration:.2f}s"
            )

            output_path = self.output_dir / f"{output_name}.mp4"
            encoder = self.encoder_factory(output_path, self.settings)
            encoder.start()
            mixer = self.mixer_factory()

            self._enter(RenderStage.RECORDING, 50, "Grabando video...")
            frames, forced = await self._record(
                timeline, composer, encoder, mixer, prepared, continuous_audio
            )

            self._enter(RenderStage.FINALIZING, 95, "Finalizando video...")
            audio = mixer.mixdown(frames / self.settings.fps)
            video_path = await asyncio.to_thread(encoder.finish, audio)

            self._enter(RenderStage.COMPLETE, 100, "¡Video listo!")
            succeeded = True
            return RenderResult(
                video_path=video_path,
                frame_count=frames,
                duration=frames / self.settings.fps,
                fps=self.settings.fps,
                timing_mode=source.mode,
                placeholder_scenes=[s.id for s, p in zip(scenes, prepared) if p.placeholder],
                forced_by_timeout=forced,
            )

        except EncoderError as e:
            raise self._fail(str(e)) from e
        except RenderError as e:
            raise self._fail(e.message) from e
        except asyncio.CancelledError:
            self._fail("Render cancelado")
            raise
        except Exception as e:
            logger.exception("Error inesperado durante el render")
            raise self._fail(f"Error de animación: {e}") from e
        finally:
            if encoder is not None and not succeeded:
                encoder.abort()

    async def _load_continuous(
        self, scenes: Sequence[Scene], continuous: Optional[ContinuousAudio]
    ) -> Optional[AudioSegment]:
        if continuous is None:
            return None
        if not continuous.covers(len(scenes)):
            logger.warning(
                f"Audio continuo con {len(continuous.scene_timings)} tiempos para "
                f"{len(scenes)} escenas, usando audio por escena"
            )
            return None
        try:
            audio = await asyncio.to_thread(self.media.load_audio, continuous.audio_url)
        except MediaError as e:
            logger.error(f"No se pudo cargar el audio continuo: {e}")
            return None
        logger.info(f"Audio continuo cargado ({len(audio) / 1000:.2f}s)")
        return audio

    async def _prepare_scenes(self, scenes: Sequence[Scene], load_voice: bool) -> List[PreparedScene]:
        """
        Carga imagen y audio de todas las escenas en paralelo.
        El progreso avanza a medida que termina cada una, en cualquier orden.
        """
        total = len(scenes)
        tasks = [
            asyncio.create_task(self._prepare_scene(i, scene, load_voice))
            for i, scene in enumerate(scenes)
        ]
        prepared: List[Optional[PreparedScene]] = [None] * total
        try:
            for done, next_result in enumerate(asyncio.as_completed(tasks), start=1):
                index, scene_data = await next_result
                prepared[index] = scene_data
                self._report(10 + (done / total) * 30, f"Escena {index + 1} cargada ({done}/{total})")
        except BaseException:
            for task in tasks:
                task.cancel()
            raise
        return prepared

    async def _prepare_scene(self, index: int, scene: Scene, load_voice: bool):
        cfg = self.settings
        size = (cfg.width, cfg.height)
        placeholder = False
        try:
            image = await asyncio.to_thread(self.media.load_image, scene.image_url)
        except MediaError as e:
            logger.warning(f"Escena {index + 1}: imagen no disponible ({e}), usando placeholder")
            image = self.media.placeholder_image(index + 1, size)
            placeholder = True

        duration = cfg.default_scene_duration
        audio = None
        if load_voice:
            if scene.voice_url:
                try:
                    audio = await asyncio.to_thread(self.media.load_audio, scene.voice_url)
                except MediaError as e:
                    logger.warning(f"Escena {index + 1}: audio no disponible ({e}), {duration:.0f}s por defecto")
            if audio is not None and len(audio) > 0:
                duration = len(audio) / 1000.0
            else:
                audio = None

        return index, PreparedScene(image=image, duration=duration, audio=audio, placeholder=placeholder)

    async def _record(
        self,
        timeline: RenderTimeline,
        composer: FrameComposer,
        encoder: VideoEncoder,
        mixer: AudioMixer,
        prepared: Sequence[PreparedScene],
        continuous_audio: Optional[AudioSegment],
    ):
        """
        Bucle de grabación: un tick por frame, estrictamente en orden.

        Returns:
            (frames escritos, True si terminó por el límite de seguridad)
        """
        cfg = self.settings
        fps = cfg.fps
        total_frames = timeline.total_frames
        scene_count = timeline.scene_count
        started_at = self.clock()
        frames = 0
        forced = False
        continuous_handle = None
        scene_handle = None

        if isinstance(timeline.source, ContinuousTiming) and continuous_audio is not None:
            continuous_handle = mixer.schedule(continuous_audio, 0.0)

        for frame in range(total_frames):
            if self._cancel_requested:
                raise RenderError(RenderStage.RECORDING, "Render cancelado")

            if frame % cfg.encoder_check_interval == 0 and not encoder.is_recording:
                raise EncoderError("El codificador se detuvo inesperadamente")

            if self.clock() - started_at > cfg.safety_timeout:
                logger.warning(
                    f"Límite de seguridad de {cfg.safety_timeout:.0f}s alcanzado "
                    f"en el frame {frame}/{total_frames}, finalizando"
                )
                forced = True
                break

            state = timeline.tick(frame)

            if continuous_handle is None and state.frame_in_scene == 0:
                if scene_handle is not None:
                    mixer.stop(scene_handle, state.time)
                    scene_handle = None
                clip = prepared[state.current_scene_index].audio
                if clip is not None:
                    scene_handle = mixer.schedule(clip, state.time)

            encoder.write_frame(composer.compose_array(state))
            frames += 1

            percent = min(50 + (state.time / timeline.total_duration) * 40, 90) if timeline.total_duration else 90
            self._report(
                percent,
                f"Grabando escena {state.current_scene_index + 1} de {scene_count} "
                f"({round(state.scene_progress * 100)}%)...",
            )
            await self.scheduler()

        if frames == 0:
            raise EncoderError("No se capturó ningún frame")

        end_time = frames / fps
        if scene_handle is not None:
            mixer.stop(scene_handle, end_time)
        if continuous_handle is not None:
            mixer.stop(continuous_handle, end_time)

        return frames, forced
