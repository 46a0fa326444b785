"""Presence hub CLI — run the server and inspect the memory document."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from presence.config import get_settings
from presence.interface.report import build_report
from presence.store import MemoryStore

console = Console()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """Presence hub — relay, face memory and voice commands."""
    level = logging.DEBUG if verbose else get_settings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )


def _load(memory_path: Optional[str]):
    path = Path(memory_path) if memory_path else get_settings().memory_path
    return path, MemoryStore(path).load()


# ======================================================================
# SERVE — HTTP + WebSocket hub
# ======================================================================
@main.command()
@click.option("--host", default=None, help="Override host")
@click.option("--port", "-p", default=None, type=int, help="Override port")
def serve(host: str | None, port: int | None) -> None:
    """Start the hub server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "presence.interface.ws_server:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=False,
    )


# ======================================================================
# REPORT — print the admin report
# ======================================================================
@main.command()
@click.option("--memory-path", "-m", default=None, help="Memory document to read")
def report(memory_path: str | None) -> None:
    """Print known faces, device state, emotions and the conversation log."""
    _, memory = _load(memory_path)
    rep = build_report(memory)

    faces = Table(title="Known Faces")
    faces.add_column("#", justify="right")
    faces.add_column("Name")
    for i, name in enumerate(rep.faces, 1):
        faces.add_row(str(i), name)
    console.print(faces)

    console.print(f"[bold]Light:[/] {'ON' if rep.light else 'OFF'}")

    emotions = Table(title="Emotion History")
    emotions.add_column("Time")
    emotions.add_column("Emotion")
    for line in rep.emotions:
        emotions.add_row(line.time, line.text)
    console.print(emotions)

    log = Table(title="Conversation Log")
    log.add_column("Time")
    log.add_column("From")
    log.add_column("Text")
    for line in rep.conversation:
        log.add_row(line.time, line.speaker or "", line.text)
    console.print(log)


# ======================================================================
# STATS — counts only
# ======================================================================
@main.command()
@click.option("--memory-path", "-m", default=None, help="Memory document to read")
def stats(memory_path: str | None) -> None:
    """Show a summary of the memory document."""
    path, memory = _load(memory_path)
    console.print(Panel(
        f"[bold]Faces:[/] {len(memory.faces)}\n"
        f"[bold]Descriptor size:[/] {memory.descriptor_dim or '-'}\n"
        f"[bold]Log entries:[/] {len(memory.conversation_log)}\n"
        f"[bold]Emotion changes:[/] {len(memory.emotion_history)}\n"
        f"[bold]Last emotion:[/] {memory.last_emotion or '-'}\n"
        f"[bold]Light:[/] {'ON' if memory.state.light else 'OFF'}\n"
        f"[bold]Memory file:[/] {path}",
        title="[bold cyan]Presence Hub Stats[/]",
    ))


if __name__ == "__main__":
    main()
