from pathlib import Path

from reel_composer.config import AppSettings


def test_defaults_when_file_missing(tmp_path, monkeypatch):
    for var in ("REEL_OUTPUT_DIR", "REEL_TEMP_DIR", "REEL_CACHE_DIR", "REEL_WHISPER_MODEL", "REEL_TTS_VOICE"):
        monkeypatch.delenv(var, raising=False)

    settings = AppSettings.load(tmp_path / "no-existe.yaml")

    assert settings.render.fps == 30
    assert settings.render.max_caption_lines == 2
    assert settings.segmenter.search_window == 8
    assert settings.segmenter.fallback_total_duration == 30
    assert settings.output_dir == Path("./output")


def test_yaml_and_environment(tmp_path, monkeypatch):
    config = tmp_path / "config.yaml"
    config.write_text(
        "render:\n"
        "  fps: 24\n"
        "  max_caption_lines: 3\n"
        "  caption:\n"
        "    font_size: 48\n"
        "segmenter:\n"
        "  comma_weight: 2.5\n"
        "narration:\n"
        "  whisper_model: small\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("REEL_OUTPUT_DIR", str(tmp_path / "videos"))
    monkeypatch.setenv("REEL_TTS_VOICE", "es-MX-JorgeNeural")
    monkeypatch.delenv("REEL_WHISPER_MODEL", raising=False)

    settings = AppSettings.load(config)

    assert settings.render.fps == 24
    assert settings.render.max_caption_lines == 2
    assert settings.render.caption.font_size == 48
    assert settings.segmenter.comma_weight == 2.5
    assert settings.narration.whisper_model == "small"
    assert settings.narration.voice == "es-MX-JorgeNeural"
    assert settings.output_dir == tmp_path / "videos"


def test_repository_config_loads():
    settings = AppSettings.load(Path(__file__).parent.parent / "config" / "config.yaml")
    assert settings.render.width == 1080
    assert settings.render.height == 1920
