import math

import pytest

from reel_composer.config import RenderSettings
from reel_composer.domain.models import ContinuousAudio, SceneTiming
from reel_composer.video.timeline import (
    ContinuousTiming,
    PerSceneTiming,
    RenderTimeline,
    resolve_timing_source,
)


def continuous_audio(ranges, total=0.0):
    return ContinuousAudio(
        audio_url="narracion.mp3",
        scene_timings=[
            SceneTiming(scene_index=i, start_time=s, end_time=e) for i, (s, e) in enumerate(ranges)
        ],
        total_duration=total,
    )


def test_resolve_prefers_covering_continuous_audio():
    audio = continuous_audio([(0, 3), (3, 6)], total=6.0)

    source = resolve_timing_source(2, audio, [5.0, 5.0])
    assert isinstance(source, ContinuousTiming)
    assert source.total_duration == 6.0
    assert source.mode == "continuous"


def test_resolve_falls_back_when_counts_differ():
    audio = continuous_audio([(0, 3), (3, 6)], total=6.0)

    source = resolve_timing_source(3, audio, [1.0, 2.0, 3.0])
    assert isinstance(source, PerSceneTiming)
    assert source.durations == (1.0, 2.0, 3.0)
    assert isinstance(resolve_timing_source(3, None, [1.0, 2.0, 3.0]), PerSceneTiming)


def test_resolve_uses_last_range_when_total_missing():
    source = resolve_timing_source(2, continuous_audio([(0, 3), (3, 6.5)]), [5.0, 5.0])
    assert source.total_duration == 6.5


def test_per_scene_frame_counts():
    timeline = RenderTimeline(["a", "b"], PerSceneTiming((1.0, 0.5)), RenderSettings(fps=10))

    assert timeline.scene_frames == (10, 5)
    assert timeline.scene_start_frames == (0, 10)
    assert timeline.total_frames == 15
    assert timeline.total_duration == pytest.approx(1.5)


def test_per_scene_total_follows_summed_duration():
    timeline = RenderTimeline(["x"] * 10, PerSceneTiming((1.01,) * 10), RenderSettings(fps=30))

    assert timeline.total_frames == round(10.1 * 30)
    assert sum(timeline.scene_frames) == timeline.total_frames
    assert all(29 <= frames <= 31 for frames in timeline.scene_frames)
    assert timeline.total_duration == pytest.approx(10.1)


def test_very_short_scenes_keep_one_frame():
    timeline = RenderTimeline(["a", "b", "c"], PerSceneTiming((0.01, 0.01, 1.0)), RenderSettings(fps=10))

    assert all(frames >= 1 for frames in timeline.scene_frames)
    assert timeline.scene_start_frames == (0, 1, 2)
    assert timeline.tick(1).current_scene_index == 1


def test_tail_adds_frames():
    timeline = RenderTimeline(
        ["a", "b"], PerSceneTiming((1.0, 0.5)), RenderSettings(fps=10, tail_seconds=0.5)
    )
    assert timeline.content_frames == 15
    assert timeline.total_frames == 20
    # El último frame sigue mostrando la última escena
    assert timeline.tick(19).current_scene_index == 1


def test_per_scene_boundaries():
    timeline = RenderTimeline(["a", "b"], PerSceneTiming((1.0, 0.5)), RenderSettings(fps=10))

    last_of_first = timeline.tick(9)
    assert last_of_first.current_scene_index == 0
    assert last_of_first.scene_progress == pytest.approx(0.9)

    first_of_second = timeline.tick(10)
    assert first_of_second.current_scene_index == 1
    assert first_of_second.frame_in_scene == 0
    assert first_of_second.scene_progress == 0.0


def test_crossfade_only_fades_in():
    timeline = RenderTimeline(["a", "b"], PerSceneTiming((1.0, 1.0)), RenderSettings(fps=10))

    assert timeline.tick(0).previous_scene_index is None
    assert timeline.tick(0).current_opacity == 1.0

    start = timeline.tick(10)
    assert start.current_opacity == 0.0
    assert start.previous_scene_index == 0
    assert start.previous_opacity == 1.0

    mid = timeline.tick(11)
    assert mid.current_opacity == pytest.approx(0.1 / 0.3)
    assert mid.previous_opacity == pytest.approx(1 - 0.1 / 0.3)

    after = timeline.tick(13)
    assert after.current_opacity == 1.0
    assert after.previous_scene_index is None


def test_crossfade_can_be_disabled():
    timeline = RenderTimeline(
        ["a", "b"], PerSceneTiming((1.0, 1.0)), RenderSettings(fps=10, crossfade_duration=0)
    )
    assert timeline.tick(10).current_opacity == 1.0


def test_pan_is_continuous_across_scenes():
    settings = RenderSettings(fps=30)
    timeline = RenderTimeline(["a", "b", "c"], PerSceneTiming((2.0, 1.0, 3.0)), settings)

    offsets = [timeline.tick(f).pan_offset for f in range(timeline.total_frames)]
    assert offsets[0] == 0.0
    assert max(abs(o) for o in offsets) <= settings.pan_amplitude

    # Paso máximo por frame de A·sin(N·π·p)
    max_step = settings.pan_amplitude * math.pi * 3 / timeline.content_frames
    for a, b in zip(offsets, offsets[1:]):
        assert abs(b - a) <= max_step + 1e-9


def test_continuous_scene_selection():
    audio = continuous_audio([(0, 3), (3, 6), (6, 9)], total=9.0)
    timeline = RenderTimeline(
        ["a", "b", "c"], resolve_timing_source(3, audio, []), RenderSettings(fps=30)
    )

    assert timeline.total_frames == 270
    assert timeline.tick(89).current_scene_index == 0
    assert timeline.tick(90).current_scene_index == 1
    assert timeline.tick(90).frame_in_scene == 0
    assert timeline.tick(269).current_scene_index == 2
    assert timeline.tick(135).scene_progress == pytest.approx(0.5)


def test_continuous_gaps_keep_previous_scene():
    audio = continuous_audio([(0.5, 2.9), (3.0, 6.0)], total=6.0)
    timeline = RenderTimeline(["a", "b"], resolve_timing_source(2, audio, []), RenderSettings(fps=100))

    # Antes del primer rango
    assert timeline.tick(20).current_scene_index == 0
    # Entre rangos
    assert timeline.tick(295).current_scene_index == 0
    assert timeline.tick(300).current_scene_index == 1


def test_tick_is_pure():
    timeline = RenderTimeline(
        ["uno dos tres", "cuatro cinco"], PerSceneTiming((1.0, 1.0)), RenderSettings(fps=10), captions=True
    )
    first = timeline.tick(7)
    for frame in range(timeline.total_frames):
        timeline.tick(frame)
    assert timeline.tick(7) == first


def test_caption_word_leads_audio():
    text = " ".join(f"p{i}" for i in range(10))
    timeline = RenderTimeline([text], PerSceneTiming((1.0,)), RenderSettings(fps=10), captions=True)

    # Un frame de adelanto (100ms a 10fps)
    assert timeline.tick(0).current_word_index == 1
    assert timeline.tick(5).current_word_index == 6
    # Al final se queda en la última palabra
    assert timeline.tick(9).current_word_index == 9


def test_no_caption_without_flag():
    timeline = RenderTimeline(["uno dos"], PerSceneTiming((1.0,)), RenderSettings(fps=10))
    state = timeline.tick(3)
    assert state.caption is None
    assert state.current_word_index is None


def test_mismatched_durations_rejected():
    with pytest.raises(ValueError):
        RenderTimeline(["a", "b"], PerSceneTiming((1.0,)), RenderSettings())
