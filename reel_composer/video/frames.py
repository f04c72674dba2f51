"""
Compositor de frames.
Convierte un RenderState en píxeles: imagen ampliada con paneo vertical,
fundido de entrada sobre la escena anterior y subtítulos.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from ..config import RenderSettings
from .captions import CaptionPainter
from .timeline import RenderState

logger = logging.getLogger(__name__)


def cover_size(image_size: Tuple[int, int], canvas_size: Tuple[int, int], zoom: float) -> Tuple[int, int]:
    """
    Tamaño de dibujo que cubre el lienzo con el zoom dado, sin deformar.
    """
    img_w, img_h = image_size
    canvas_w, canvas_h = canvas_size
    img_aspect = img_w / img_h
    canvas_aspect = canvas_w / canvas_h

    if img_aspect > canvas_aspect:
        # Imagen más ancha que el lienzo
        draw_h = canvas_h * zoom
        draw_w = draw_h * img_aspect
    else:
        draw_w = canvas_w * zoom
        draw_h = draw_w / img_aspect
    return max(1, round(draw_w)), max(1, round(draw_h))


class FrameComposer:
    """Pinta frames sobre un lienzo RGB propio de una sola pasada de render."""

    def __init__(
        self,
        images: Sequence[Image.Image],
        settings: Optional[RenderSettings] = None,
    ):
        self.settings = settings or RenderSettings()
        self.size = (self.settings.width, self.settings.height)
        # Reescalado una sola vez por escena
        self.layers: List[Image.Image] = [self._prepare(img) for img in images]
        self.captions = CaptionPainter(self.size, self.settings.caption)

    def _prepare(self, image: Image.Image) -> Image.Image:
        target = cover_size(image.size, self.size, self.settings.zoom)
        if image.size == target:
            return image.convert("RGB")
        return image.convert("RGB").resize(target, Image.Resampling.LANCZOS)

    def _place(self, index: int, pan_offset: float) -> Image.Image:
        layer = self.layers[index]
        canvas = Image.new("RGB", self.size, (0, 0, 0))
        x = (self.size[0] - layer.width) / 2
        y = (self.size[1] - layer.height) / 2 + pan_offset
        canvas.paste(layer, (round(x), round(y)))
        return canvas

    def compose(self, state: RenderState) -> Image.Image:
        """Dibuja el frame completo."""
        frame = Image.new("RGB", self.size, (0, 0, 0))

        if state.previous_scene_index is not None and state.previous_opacity > 0:
            previous = self._place(state.previous_scene_index, state.pan_offset)
            frame = Image.blend(frame, previous, state.previous_opacity)

        current = self._place(state.current_scene_index, state.pan_offset)
        if state.current_opacity >= 1.0:
            frame = current
        else:
            frame = Image.blend(frame, current, state.current_opacity)

        return self.captions.paint(frame, state.caption)

    def compose_array(self, state: RenderState) -> np.ndarray:
        """Frame como array HxWx3 uint8, listo para el codificador."""
        return np.asarray(self.compose(state), dtype=np.uint8)
