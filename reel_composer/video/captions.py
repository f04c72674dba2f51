"""
Subtítulos palabra por palabra.

layout_caption decide qué se ve (lote de palabras, líneas, palabra resaltada);
CaptionPainter lo dibuja sobre una capa RGBA con Pillow.
"""

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import FrozenSet, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFilter, ImageFont

from ..config import CaptionStyle, RenderSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptionFrame:
    """Lo que muestra el subtítulo en un frame."""
    lines: Tuple[Tuple[str, ...], ...]
    highlighted: FrozenSet[int]
    current_word_index: int
    batch_start: int

    @property
    def words(self) -> Tuple[str, ...]:
        return tuple(word for line in self.lines for word in line)


def break_into_lines(
    words: Sequence[str],
    single_line_max: int = 3,
    max_lines: int = 2,
) -> List[List[str]]:
    """
    Reparte las palabras de un lote en líneas equilibradas.

    Nunca devuelve más de `max_lines` líneas (y como mucho dos).
    """
    words = list(words)
    max_lines = max(1, min(max_lines, 2))
    if not words:
        return []
    if len(words) <= single_line_max or max_lines == 1:
        return [words]

    per_line = math.ceil(len(words) / max_lines)
    lines = [words[i:i + per_line] for i in range(0, len(words), per_line)]
    # Límite duro de líneas
    return lines[:max_lines]


def layout_caption(
    text: str,
    progress: float,
    settings: Optional[RenderSettings] = None,
) -> Optional[CaptionFrame]:
    """
    Calcula el lote visible y la palabra resaltada.

    Args:
        text: Texto de la escena
        progress: Progreso del texto (0..1), ya adelantado respecto al audio
        settings: Parámetros de render

    Returns:
        CaptionFrame o None si la escena no tiene texto
    """
    cfg = settings or RenderSettings()
    words = text.split()
    total = len(words)
    if total == 0:
        return None

    current = min(int(math.floor(progress * total)), total - 1)
    batch_start = (current // cfg.words_per_batch) * cfg.words_per_batch
    visible = [w.upper() for w in words[batch_start:batch_start + cfg.words_per_batch]]
    lines = break_into_lines(visible, cfg.single_line_max_words, cfg.max_caption_lines)
    shown = sum(len(line) for line in lines)

    highlighted = set()
    if current - batch_start < shown:
        highlighted.add(current - batch_start)
    last_local = total - 1 - batch_start
    if progress >= cfg.last_word_threshold and 0 <= last_local < shown:
        highlighted.add(last_local)

    return CaptionFrame(
        lines=tuple(tuple(line) for line in lines),
        highlighted=frozenset(highlighted),
        current_word_index=current,
        batch_start=batch_start,
    )


def load_font(names: Sequence[str], size: int) -> ImageFont.FreeTypeFont:
    """Primera fuente disponible de la lista, o la de Pillow."""
    for name in names:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


class CaptionPainter:
    """Dibuja CaptionFrames sobre capas RGBA del tamaño del lienzo."""

    def __init__(self, size: Tuple[int, int], style: Optional[CaptionStyle] = None):
        self.size = size
        self.style = style or CaptionStyle()
        self.font = load_font(self.style.font_names, self.style.font_size)
        self.highlight_font = load_font(
            self.style.font_names,
            max(1, round(self.style.font_size * self.style.highlight_scale)),
        )
        # La capa solo cambia cuando cambia la palabra resaltada
        self.overlay = lru_cache(maxsize=32)(self._build_overlay)

    def _build_overlay(self, caption: CaptionFrame) -> Image.Image:
        style = self.style
        width, height = self.size
        glow = Image.new("RGBA", self.size, (0, 0, 0, 0))
        text = Image.new("RGBA", self.size, (0, 0, 0, 0))
        glow_draw = ImageDraw.Draw(glow)
        text_draw = ImageDraw.Draw(text)

        line_height = style.font_size * style.line_height
        block_height = len(caption.lines) * line_height
        first_line_y = height * style.anchor_y - (block_height - line_height) / 2

        position = 0
        for line_index, line in enumerate(caption.lines):
            line_y = first_line_y + line_index * line_height
            widths = [text_draw.textlength(word, font=self.font) for word in line]
            line_width = sum(widths) + style.word_spacing * (len(line) - 1)
            x = (width - line_width) / 2

            for word, word_width in zip(line, widths):
                is_current = position in caption.highlighted
                font = self.highlight_font if is_current else self.font
                fill = style.highlight_color if is_current else style.text_color
                origin = self._centered_origin(text_draw, word, font, x + word_width / 2, line_y)

                glow_draw.text(origin, word, font=font, fill=style.glow_color)
                text_draw.text(
                    origin, word, font=font, fill=fill,
                    stroke_width=style.stroke_width, stroke_fill=style.stroke_color,
                )
                x += word_width + style.word_spacing
                position += 1

        if style.glow_radius > 0:
            glow = glow.filter(ImageFilter.GaussianBlur(style.glow_radius))
        return Image.alpha_composite(glow, text)

    def _centered_origin(self, draw, word, font, center_x, center_y):
        left, top, right, bottom = draw.textbbox(
            (0, 0), word, font=font, stroke_width=self.style.stroke_width
        )
        return (
            round(center_x - (left + right) / 2),
            round(center_y - (top + bottom) / 2),
        )

    def paint(self, canvas: Image.Image, caption: Optional[CaptionFrame]) -> Image.Image:
        """Compone el subtítulo sobre el lienzo RGB y devuelve el resultado."""
        if caption is None or not caption.lines:
            return canvas
        base = canvas.convert("RGBA")
        base.alpha_composite(self.overlay(caption))
        return base.convert("RGB")
