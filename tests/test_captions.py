from PIL import Image

from reel_composer.config import CaptionStyle, RenderSettings
from reel_composer.video.captions import CaptionPainter, break_into_lines, layout_caption

TWELVE = " ".join(f"palabra{i}" for i in range(12))


def test_short_batches_stay_on_one_line():
    assert break_into_lines(["a", "b", "c"]) == [["a", "b", "c"]]


def test_batches_split_evenly_in_two_lines():
    assert break_into_lines(list("abcdef")) == [list("abc"), list("def")]
    assert break_into_lines(list("abcde")) == [list("abc"), list("de")]


def test_never_more_than_two_lines():
    words = [f"w{i}" for i in range(20)]
    lines = break_into_lines(words, max_lines=5)
    assert len(lines) == 2
    assert sum(len(line) for line in lines) == 20


def test_line_limit_setting_is_clamped():
    assert RenderSettings(max_caption_lines=4).max_caption_lines == 2
    assert RenderSettings(max_caption_lines=1).max_caption_lines == 1


def test_empty_text_has_no_caption():
    assert layout_caption("", 0.5) is None
    assert layout_caption("   ", 0.5) is None


def test_batch_contains_current_word():
    caption = layout_caption(TWELVE, 0.5)

    assert caption.current_word_index == 6
    assert caption.batch_start == 6
    assert caption.words == tuple(f"PALABRA{i}" for i in range(6, 12))
    assert len(caption.lines) == 2
    assert caption.highlighted == frozenset({0})


def test_first_batch_at_start():
    caption = layout_caption(TWELVE, 0.0)
    assert caption.batch_start == 0
    assert caption.highlighted == frozenset({0})


def test_progress_past_end_stays_on_last_word():
    caption = layout_caption(TWELVE, 1.0)
    assert caption.current_word_index == 11
    assert 5 in caption.highlighted


def test_last_word_highlighted_near_end():
    text = " ".join(f"w{i}" for i in range(40))
    caption = layout_caption(text, 0.95, RenderSettings(words_per_batch=40))

    assert caption.current_word_index == 38
    assert caption.highlighted == frozenset({38, 39})


def test_one_line_when_single_line_limit():
    caption = layout_caption(TWELVE, 0.0, RenderSettings(max_caption_lines=1))
    assert len(caption.lines) == 1
    assert len(caption.words) == 6


def test_painter_draws_over_canvas():
    style = CaptionStyle(font_size=12, stroke_width=1, glow_radius=2)
    painter = CaptionPainter((108, 192), style)
    canvas = Image.new("RGB", (108, 192), (0, 0, 0))

    painted = painter.paint(canvas, layout_caption("hola mundo", 0.0))

    assert painted.size == (108, 192)
    assert painted.mode == "RGB"
    assert painted.getbbox() is not None


def test_painter_without_caption_returns_canvas():
    painter = CaptionPainter((108, 192), CaptionStyle(font_size=12))
    canvas = Image.new("RGB", (108, 192), (10, 20, 30))
    assert painter.paint(canvas, None) is canvas


def test_overlay_is_reused_for_same_caption():
    painter = CaptionPainter((108, 192), CaptionStyle(font_size=12, glow_radius=0))
    caption = layout_caption("uno dos tres", 0.4)
    assert painter.overlay(caption) is painter.overlay(caption)
