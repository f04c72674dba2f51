"""
Transcribe narraciones con Whisper y guarda las palabras con tiempos
(<audio>.words.json), listas para `reel_composer.main segment --words`.
"""
import json
import sys
import warnings
from pathlib import Path

from rich.console import Console

from reel_composer.audio.engine import AudioEngine

# Filtrar warnings de torch/whisper
warnings.filterwarnings("ignore")

console = Console()

AUDIO_PATTERNS = ("*.mp3", "*.wav", "*.m4a")


def transcribe_all(folder: str = "temp", model_size: str = "base"):
    console.print("[bold cyan]Iniciando transcripción de narraciones con Whisper...[/bold cyan]")

    folder_path = Path(folder)
    if not folder_path.exists():
        console.print(f"[red]No existe la carpeta: {folder}[/red]")
        return

    try:
        engine = AudioEngine(model_size=model_size)
    except Exception as e:
        console.print(f"[red]Error cargando modelo Whisper: {e}[/red]")
        return

    audios = sorted(p for pattern in AUDIO_PATTERNS for p in folder_path.glob(pattern))
    console.print(f"\n[yellow]Procesando carpeta: {folder} ({len(audios)} audios)[/yellow]")

    for audio in audios:
        out_path = audio.with_suffix(".words.json")
        console.print(f"  🎤 Transcribiendo {audio.name}...", end=" ")
        try:
            words, text = engine.transcribe_words(str(audio))
            payload = {
                "text": text,
                "words": [w.model_dump(by_alias=True) for w in words],
            }
            with open(out_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            console.print(f"[green]✓ OK: {len(words)} palabras[/green]")
        except Exception as e:
            console.print(f"[red]✗ Error: {e}[/red]")


if __name__ == "__main__":
    transcribe_all(*sys.argv[1:3])
