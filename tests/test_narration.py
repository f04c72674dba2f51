import pytest

from pydub import AudioSegment

from reel_composer.audio.narration import NarrationError, NarrationService, read_audio_duration

from .conftest import make_words


class FakeSynthesizer:
    def __init__(self, path):
        self.path = path
        self.calls = []

    def synthesize(self, text, output_filename=None):
        self.calls.append((text, output_filename))
        return self.path


class FakeTranscriber:
    def __init__(self, words, text=""):
        self.words = words
        self.text = text

    def transcribe_words(self, audio_path):
        return self.words, self.text


def test_narrate_builds_continuous_audio(tmp_path, example_words):
    audio = tmp_path / "guion.mp3"
    audio.write_bytes(b"ID3")
    service = NarrationService(FakeSynthesizer(str(audio)), FakeTranscriber(example_words, "texto"))

    result = service.narrate("guion completo", ["a", "b", "c"], output_filename="demo")

    assert result.audio_url == str(audio)
    assert result.total_duration == pytest.approx(9.0)
    assert result.covers(3)
    assert [t.start_time for t in result.scene_timings] == pytest.approx([0.0, 3.0, 6.0])
    assert result.transcript == "texto"


def test_embedded_audio_is_a_data_url(tmp_path, example_words):
    audio = tmp_path / "guion.mp3"
    audio.write_bytes(b"ID3")
    service = NarrationService(
        FakeSynthesizer(str(audio)), FakeTranscriber(example_words), embed_audio=True
    )

    result = service.narrate("guion", ["a", "b"])
    assert result.audio_url.startswith("data:audio/mpeg;base64,")


def test_empty_transcription_splits_real_audio_length():
    read = []

    def duration_reader(path):
        read.append(path)
        return 12.0

    service = NarrationService(
        FakeSynthesizer("x.mp3"), FakeTranscriber([]), duration_reader=duration_reader
    )

    result = service.narrate("guion", ["a", "b"])
    assert read == ["x.mp3"]
    assert result.total_duration == pytest.approx(12.0)
    assert [t.duration for t in result.scene_timings] == pytest.approx([6.0, 6.0])


def test_empty_transcription_of_unreadable_audio_uses_default_length(tmp_path):
    audio = tmp_path / "roto.mp3"
    audio.write_bytes(b"no es audio")
    service = NarrationService(
        FakeSynthesizer(str(audio)), FakeTranscriber([]), duration_reader=lambda path: None
    )

    result = service.narrate("guion", ["a", "b"])
    assert result.total_duration == pytest.approx(30.0)
    assert [t.duration for t in result.scene_timings] == pytest.approx([15.0, 15.0])


def test_audio_duration_is_read_from_the_file(tmp_path):
    audio = tmp_path / "silencio.wav"
    AudioSegment.silent(duration=2500).export(str(audio), format="wav")

    assert read_audio_duration(str(audio)) == pytest.approx(2.5)


def test_failed_synthesis():
    service = NarrationService(FakeSynthesizer(None), FakeTranscriber(make_words(["a"])))
    with pytest.raises(NarrationError):
        service.narrate("guion", ["a"])


def test_requires_script_and_scenes():
    service = NarrationService(FakeSynthesizer("x.mp3"), FakeTranscriber([]))
    with pytest.raises(NarrationError):
        service.narrate("   ", ["a"])
    with pytest.raises(NarrationError):
        service.narrate("guion", [])
