#!/usr/bin/env python3

from __future__ import annotations
import asyncio
import json
import random
import signal
import sys
from contextlib import suppress
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from shared.log import configure_root_logging, get_logger
from .config import BotConfig, load_config
from .errors import ConfigError, HostsExhausted
from .health import HealthServer
from .identity import load_or_create_guest_id
from .jumble import generate
from .session import SessionController
from .state import RecentCorpus

app = typer.Typer(help="Jumble Clanker room bot")
console = Console()
logger = get_logger(__name__)


def _load(config: Optional[Path], **overrides) -> BotConfig:
    try:
        return load_config(config, overrides=overrides)
    except ConfigError as e:
        console.print(f"[red]Config error[/]: {e}")
        raise typer.Exit(2)


async def _run_bot(cfg: BotConfig) -> int:
    session = SessionController(cfg)
    health = HealthServer(cfg.http_host, cfg.http_port, status=session.get_status)
    await health.start()

    loop = asyncio.get_running_loop()
    shutdown_tasks: List[asyncio.Task] = []

    def _request_shutdown() -> None:
        if shutdown_tasks:
            return
        logger.info("Termination signal received; clearing text and exiting")
        shutdown_tasks.append(asyncio.create_task(session.shutdown()))

    for sig in (signal.SIGINT, signal.SIGTERM):
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, _request_shutdown)

    try:
        await session.run()
        return 0
    except HostsExhausted as e:
        logger.error("Fatal: %s", e)
        return 1
    finally:
        for task in shutdown_tasks:
            with suppress(Exception):
                await task
        await health.stop()


@app.command()
def run(
    room: Optional[str] = typer.Option(None, "--room", help="Room id to join (env ROOM_ID)"),
    username: Optional[str] = typer.Option(None, help="Display name (env USERNAME)"),
    location: Optional[str] = typer.Option(None, help="Location string shown in the lobby (env LOCATION)"),
    host: Optional[List[str]] = typer.Option(None, "--host", help="Candidate host URL; repeat for fallbacks"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    port: Optional[int] = typer.Option(None, help="HTTP liveness port (env PORT)"),
    log_level: str = typer.Option("INFO", help="DEBUG, INFO, WARNING or ERROR"),
):
    """Connect to the room and start mirroring and jumbling."""
    configure_root_logging(log_level)
    cfg = _load(config, room_id=room, username=username, location=location, hosts=host or None, http_port=port)
    if not cfg.guest_id:
        cfg.guest_id = load_or_create_guest_id(cfg.guest_file)

    console.print(
        f"[bold green]Jumble Clanker starting[/] room={cfg.room_id} username={cfg.username} "
        f"location={cfg.location} guestId={cfg.guest_id}"
    )
    raise typer.Exit(asyncio.run(_run_bot(cfg)))


@app.command()
def jumble(
    source: Optional[Path] = typer.Argument(None, help="File with one message per line; stdin if omitted"),
    count: int = typer.Option(1, help="Number of phrases to print"),
    words: int = typer.Option(24, help="Words per phrase"),
    seed: Optional[int] = typer.Option(None, help="Seed for reproducible output"),
):
    """Generate jumbled phrases from a message log without connecting."""
    if source is not None and not source.exists():
        console.print("File not found")
        raise typer.Exit(1)
    lines = source.read_text(encoding="utf-8").splitlines() if source else sys.stdin.read().splitlines()

    corpus = RecentCorpus()
    for line in lines:
        corpus.record(line)

    rng = random.Random(seed)
    for _ in range(count):
        console.print(generate(corpus.word_pool(), words, rng=rng), markup=False, highlight=False, soft_wrap=True)


@app.command()
def shapes(
    room: Optional[str] = typer.Option(None, "--room", help="Room id (env ROOM_ID)"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
):
    """Show the join-request shapes that will be tried, in order."""
    cfg = _load(config, room_id=room)
    table = Table(title=f"Join attempts for room {cfg.room_id}")
    table.add_column("#")
    table.add_column("Shape")
    table.add_column("Payload")
    for index, attempt in enumerate(cfg.join_attempts, start=1):
        table.add_row(str(index), attempt.describe(), json.dumps(attempt.payload(cfg.room_id)))
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
