import pytest

from reel_composer.config import SegmenterSettings
from reel_composer.director.segmenter import TranscriptSegmenter, match_scenes_with_timestamps

from .conftest import make_words

SCENES = ["Wake up early.", "Plan your day.", "Execute with focus."]


def test_breaks_follow_sentence_endings(example_words):
    segmenter = TranscriptSegmenter()
    assert segmenter.find_break_points(3, example_words) == [0, 5, 10]


def test_example_timings_are_contiguous(example_words):
    timings = match_scenes_with_timestamps(SCENES, example_words)

    assert [t.scene_index for t in timings] == [0, 1, 2]
    assert timings[0].start_time == pytest.approx(0.0)
    assert timings[1].start_time == pytest.approx(3.0)
    assert timings[2].start_time == pytest.approx(6.0)
    assert timings[-1].end_time == pytest.approx(9.0)
    for a, b in zip(timings, timings[1:]):
        assert a.end_time == b.start_time
    assert sum(t.duration for t in timings) == pytest.approx(9.0)
    assert [t.text for t in timings] == SCENES


def test_no_words_uses_fallback_duration():
    timings = TranscriptSegmenter().segment(["a", "b", "c", "d"], [])

    assert len(timings) == 4
    for i, t in enumerate(timings):
        assert t.start_time == pytest.approx(i * 7.5)
        assert t.duration == pytest.approx(7.5)
    assert timings[-1].end_time == pytest.approx(30.0)


def test_no_words_splits_known_audio_length():
    timings = TranscriptSegmenter().segment(["a", "b", "c"], [], total_duration=12.0)

    assert [t.start_time for t in timings] == pytest.approx([0.0, 4.0, 8.0])
    assert timings[-1].end_time == pytest.approx(12.0)

    # Una duración inválida vuelve a la tabla por defecto
    fallback = TranscriptSegmenter().segment(["a", "b"], [], total_duration=0.0)
    assert fallback[-1].end_time == pytest.approx(30.0)


def test_fewer_words_than_scenes_split_evenly():
    words = make_words(["uno", "dos."], spacing=0.5, start=1.0)
    timings = TranscriptSegmenter().segment(["a", "b", "c"], words)

    assert timings[0].start_time == pytest.approx(1.0)
    assert timings[-1].end_time == pytest.approx(2.0)
    for t in timings:
        assert t.duration == pytest.approx(1.0 / 3)


def test_break_points_need_enough_words():
    with pytest.raises(ValueError):
        TranscriptSegmenter().find_break_points(3, make_words(["a", "b"]))


def test_no_scenes_is_an_error(example_words):
    with pytest.raises(ValueError):
        TranscriptSegmenter().segment([], example_words)


def test_single_scene_covers_everything(example_words):
    timings = TranscriptSegmenter().segment(["todo"], example_words)
    assert len(timings) == 1
    assert timings[0].start_time == 0.0
    assert timings[0].end_time == pytest.approx(9.0)


def test_as_many_scenes_as_words():
    words = make_words(["uno.", "dos.", "tres.", "cuatro."])
    segmenter = TranscriptSegmenter()

    points = segmenter.find_break_points(4, words)
    assert points == [0, 1, 2, 3]

    timings = segmenter.segment(["a", "b", "c", "d"], words)
    assert [t.start_time for t in timings] == pytest.approx([0.0, 0.6, 1.2, 1.8])


def test_break_points_strictly_increasing_for_any_scene_count():
    words = make_words([f"p{i}," if i % 3 == 0 else f"p{i}" for i in range(40)], spacing=0.25)
    segmenter = TranscriptSegmenter()

    for count in range(1, 41):
        points = segmenter.find_break_points(count, words)
        assert len(points) == count
        assert points[0] == 0
        assert all(b > a for a, b in zip(points, points[1:]))
        assert points[-1] <= len(words) - 1


def test_repeated_timestamps_still_produce_valid_ranges():
    words = make_words(["a", "b", "c", "d", "e", "f"], spacing=0.0, start=2.0)
    timings = TranscriptSegmenter().segment(["x", "y", "z"], words)

    starts = [t.start_time for t in timings]
    assert all(b > a for a, b in zip(starts, starts[1:]))
    assert all(t.end_time > t.start_time for t in timings)


def test_deterministic(example_words):
    segmenter = TranscriptSegmenter()
    first = segmenter.segment(SCENES, example_words)
    second = segmenter.segment(SCENES, example_words)
    assert first == second


def test_without_punctuation_weights_breaks_land_after_even_split(example_words):
    settings = SegmenterSettings(sentence_end_weight=0, comma_weight=0)
    assert TranscriptSegmenter(settings).find_break_points(3, example_words) == [0, 6, 11]


def test_long_pause_attracts_break():
    words = make_words([f"w{i}" for i in range(12)], spacing=0.5)
    # Silencio de 2s después de la palabra 7
    words = words[:8] + [w.model_copy(update={"start": w.start + 2, "end": w.end + 2}) for w in words[8:]]

    assert TranscriptSegmenter().find_break_points(2, words) == [0, 8]


def test_tie_prefers_candidate_closest_to_even_split():
    words = make_words([f"w{i}" for i in range(10)])
    segmenter = TranscriptSegmenter(SegmenterSettings(distance_penalty=0))
    # Todas las puntuaciones valen 0: gana el índice uniforme
    assert segmenter.find_break_points(2, words) == [0, 6]
