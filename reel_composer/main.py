"""
Entrada principal del compositor de reels.

Uso:
    python -m reel_composer.main segment --scenes escenas.json --words palabras.json
    python -m reel_composer.main narrate --scenes escenas.json --script guion.txt --job-id demo
    python -m reel_composer.main render --scenes escenas.json --job-id demo --captions
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from .audio.narration import NarrationError
from .config import AppSettings
from .orchestrator import VideoOrchestrator
from .video.renderer import RenderError

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

console = Console()


def _read(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def cmd_segment(orchestrator: VideoOrchestrator, args) -> int:
    scenes = orchestrator.parser.parse_scenes(_read(args.scenes))
    words = orchestrator.parser.parse_words(_read(args.words))

    timings = orchestrator.segment([s.text for s in scenes], words)

    table = Table(title=f"{len(scenes)} escenas, {len(words)} palabras")
    table.add_column("Escena", justify="right")
    table.add_column("Inicio", justify="right")
    table.add_column("Fin", justify="right")
    table.add_column("Texto")
    for timing in timings:
        table.add_row(
            str(timing.scene_index + 1),
            f"{timing.start_time:.2f}s",
            f"{timing.end_time:.2f}s",
            timing.text[:50],
        )
    console.print(table)

    if args.out:
        payload = [t.model_dump(by_alias=True) for t in timings]
        Path(args.out).write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        console.print(f"[green]Tiempos guardados en {args.out}[/green]")
    return 0


def cmd_narrate(orchestrator: VideoOrchestrator, args) -> int:
    scenes = orchestrator.parser.parse_scenes(_read(args.scenes))
    full_script = _read(args.script) if args.script else " ".join(s.text for s in scenes)

    console.print(Panel(f"[bold cyan]Narrando {len(scenes)} escenas ({args.job_id})[/bold cyan]"))
    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
        progress.add_task("Sintetizando y transcribiendo...", total=None)
        try:
            narration = orchestrator.narrate(args.job_id, full_script, scenes, force=args.force)
        except NarrationError as e:
            console.print(f"[red]✗ Error generando narración: {e}[/red]")
            return 1

    console.print(f"[green]Duración total: {narration.total_duration:.2f}s[/green]")
    if args.out:
        Path(args.out).write_text(
            narration.model_dump_json(by_alias=True, indent=2), encoding="utf-8"
        )
        console.print(f"[green]Narración guardada en {args.out}[/green]")
    return 0


def cmd_render(orchestrator: VideoOrchestrator, args) -> int:
    scenes = orchestrator.parser.parse_scenes(_read(args.scenes))
    continuous = orchestrator.parser.parse_continuous(_read(args.continuous)) if args.continuous else None

    console.print(Panel(f"[bold cyan]Renderizando video ({len(scenes)} escenas)[/bold cyan]"))
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Preparando...", total=100)

        def on_progress(percent: float, text: str):
            progress.update(task, completed=percent, description=text)

        try:
            result = orchestrator.render(
                scenes,
                continuous=continuous,
                job_id=args.job_id,
                include_captions=args.captions,
                output_name=args.name,
                on_progress=on_progress,
            )
        except RenderError as e:
            console.print(f"[red]✗ Render fallido ({e.stage.value}): {e.message}[/red]")
            return 1

    if result.placeholder_scenes:
        console.print(f"[yellow]⚠ Escenas con imagen de reemplazo: {result.placeholder_scenes}[/yellow]")
    if result.forced_by_timeout:
        console.print("[yellow]⚠ El render se cortó por el límite de seguridad[/yellow]")
    console.print(
        f"\n[bold green]🎬 Video final: {result.video_path}[/bold green] "
        f"[dim]({result.frame_count} frames, {result.duration:.2f}s, modo {result.timing_mode})[/dim]\n"
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compositor de Reels - escenas a video vertical",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Ruta al YAML de configuración (default: config/config.yaml)")
    sub = parser.add_subparsers(dest="command", required=True)

    seg = sub.add_parser("segment", help="Repartir una transcripción entre escenas")
    seg.add_argument("--scenes", required=True, help="JSON con las escenas")
    seg.add_argument("--words", required=True, help="JSON con palabras y tiempos")
    seg.add_argument("--out", help="Guardar los tiempos en este archivo")

    nar = sub.add_parser("narrate", help="Generar narración continua con tiempos por escena")
    nar.add_argument("--scenes", required=True, help="JSON con las escenas")
    nar.add_argument("--script", help="Guion completo (por defecto, la unión de las escenas)")
    nar.add_argument("--job-id", required=True, help="Identificador del trabajo")
    nar.add_argument("--force", action="store_true", help="Ignorar la narración en cache")
    nar.add_argument("--out", help="Guardar el audio continuo (JSON) en este archivo")

    ren = sub.add_parser("render", help="Renderizar escenas a MP4")
    ren.add_argument("--scenes", required=True, help="JSON con las escenas")
    ren.add_argument("--continuous", help="JSON con el audio continuo")
    ren.add_argument("--job-id", help="Usar la narración guardada de este trabajo")
    ren.add_argument("--captions", action="store_true", help="Dibujar subtítulos palabra por palabra")
    ren.add_argument("--name", default="video", help="Nombre del archivo de salida")
    return parser


COMMANDS = {
    "segment": cmd_segment,
    "narrate": cmd_narrate,
    "render": cmd_render,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    orchestrator = VideoOrchestrator(AppSettings.load(args.config))
    try:
        return COMMANDS[args.command](orchestrator, args)
    except ValueError as e:
        console.print(f"[red]Entrada inválida: {e}[/red]")
        return 2
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelado por el usuario[/yellow]")
        return 130
    finally:
        orchestrator.close()


if __name__ == "__main__":
    sys.exit(main())
