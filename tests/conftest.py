import pytest

from reel_composer.config import CaptionStyle, RenderSettings
from reel_composer.domain.models import Word


def make_words(texts, spacing=0.6, start=0.0):
    """Palabras contiguas de `spacing` segundos cada una."""
    return [
        Word(text=t.strip(".,!?"), punctuated_text=t, start=start + i * spacing, end=start + (i + 1) * spacing)
        for i, t in enumerate(texts)
    ]


@pytest.fixture
def example_words():
    # 15 palabras, puntuación final en 4, 9 y 14
    texts = [f"w{i}." if i in (4, 9, 14) else f"w{i}" for i in range(15)]
    return make_words(texts)


@pytest.fixture
def small_settings():
    """Lienzo pequeño y fps bajos para renders rápidos."""
    return RenderSettings(
        width=108,
        height=192,
        fps=10,
        pan_amplitude=15,
        encoder_check_interval=5,
        caption=CaptionStyle(font_size=12, stroke_width=1, glow_radius=2, word_spacing=4),
    )
