"""
Carga de medios para el render.
Resuelve referencias (http, data:, file:// o rutas locales) y decodifica
imágenes con Pillow y audio con pydub.
"""
import base64
import io
import logging
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

import httpx
from PIL import Image, ImageDraw, UnidentifiedImageError
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from ..config import MediaSettings
from ..utils.backoff import with_retry
from ..video.captions import load_font

logger = logging.getLogger(__name__)


class MediaError(Exception):
    """Una imagen o audio no se pudo obtener o decodificar."""
    pass


class MediaLoader:
    """
    Obtiene bytes de cualquier referencia soportada y los decodifica.
    """

    def __init__(self, settings: Optional[MediaSettings] = None, client: Optional[httpx.Client] = None):
        self.settings = settings or MediaSettings()
        self.client = client or httpx.Client(timeout=self.settings.http_timeout, follow_redirects=True)

    def fetch_bytes(self, reference: str) -> bytes:
        """
        Lee el contenido de una referencia.

        Args:
            reference: URL http(s), data: URL, file:// o ruta local

        Returns:
            Bytes crudos

        Raises:
            MediaError: si la referencia está vacía, no existe o falla la descarga
        """
        if not reference:
            raise MediaError("Referencia vacía")

        if reference.startswith("data:"):
            return self._decode_data_url(reference)

        parsed = urlparse(reference)
        if parsed.scheme in ("http", "https"):
            try:
                return self._download(reference)
            except httpx.HTTPError as e:
                raise MediaError(f"Error descargando {reference}: {e}") from e

        path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(reference)
        if not path.exists():
            raise MediaError(f"No se encuentra el archivo: {path}")
        return path.read_bytes()

    def _download(self, url: str) -> bytes:
        @with_retry(
            max_attempts=self.settings.max_attempts,
            exceptions=(httpx.TransportError, httpx.HTTPStatusError),
        )
        def get() -> bytes:
            response = self.client.get(url)
            response.raise_for_status()
            return response.content

        return get()

    @staticmethod
    def _decode_data_url(reference: str) -> bytes:
        header, sep, payload = reference.partition(",")
        if not sep:
            raise MediaError("data: URL sin contenido")
        if header.endswith(";base64"):
            try:
                return base64.b64decode(payload, validate=False)
            except ValueError as e:
                raise MediaError(f"data: URL con base64 inválido: {e}") from e
        return unquote(payload).encode("utf-8")

    def load_image(self, reference: str) -> Image.Image:
        """Decodifica una imagen a RGB."""
        data = self.fetch_bytes(reference)
        try:
            with Image.open(io.BytesIO(data)) as img:
                return img.convert("RGB")
        except (UnidentifiedImageError, OSError) as e:
            raise MediaError(f"Imagen ilegible ({reference[:60]}): {e}") from e

    def load_audio(self, reference: str) -> AudioSegment:
        """Decodifica un audio a muestras PCM (pydub/ffmpeg)."""
        data = self.fetch_bytes(reference)
        try:
            return AudioSegment.from_file(io.BytesIO(data))
        except (CouldntDecodeError, IndexError, OSError) as e:
            raise MediaError(f"Audio ilegible ({reference[:60]}): {e}") from e

    def placeholder_image(self, scene_number: int, size: Tuple[int, int]) -> Image.Image:
        """Fondo liso con el número de escena, para medios que no cargan."""
        img = Image.new("RGB", size, self.settings.placeholder_color)
        draw = ImageDraw.Draw(img)
        font = load_font(["Arial.ttf", "arial.ttf", "DejaVuSans.ttf"], self.settings.placeholder_font_size)
        label = f"Escena {scene_number}"
        left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
        origin = (
            (size[0] - (right - left)) / 2 - left,
            (size[1] - (bottom - top)) / 2 - top,
        )
        draw.text(origin, label, font=font, fill=self.settings.placeholder_text_color)
        return img

    def close(self):
        self.client.close()
