#!/usr/bin/env python3
"""Command-line interface for kino.

This CLI is primarily for debugging and development.
For production use, import kino as a library.
"""

import json
import logging
import sys
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, TypeVar

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from kino import (
    create_auth_flow,
    create_media_source,
    create_sync_engine,
    detect_source_type,
)
from kino.config import SourceConfig, SourceType
from kino.exceptions import KinoError
from kino.models.cancel import CancelToken
from kino.models.domain import Library, Show
from kino.models.enums import SyncStatus
from kino.models.plex import PlexPin
from kino.models.sync import SyncState
from kino.services import LibraryFilter, MediaSource

logger = logging.getLogger("kino")

T = TypeVar("T")

# Same console for Progress and RichHandler keeps logs above the progress bars
PROGRESS_COLUMNS = (
    SpinnerColumn(),
    TextColumn("[progress.description]{task.description}"),
    BarColumn(),
    TaskProgressColumn(),
    TimeElapsedColumn(),
)

_STATUS_STYLES = {
    SyncStatus.IDLE: "dim",
    SyncStatus.SYNCING: "cyan",
    SyncStatus.SYNCED: "green",
    SyncStatus.ERROR: "red",
}


def setup_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Configure logging with Rich handler.

    Clears existing handlers first so it can be called again to switch to a
    shared Progress console.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise WARNING.
        console: Optional Console instance to use for RichHandler.
    """
    level = logging.DEBUG if verbose else logging.WARNING

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = RichHandler(
        rich_tracebacks=True,
        show_path=False,
        console=console,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def server_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Shared connection options, also readable from KINO_* variables."""
    func = click.option(
        "--user-id", envvar="KINO_USER_ID", help="User id (Jellyfin only)."
    )(func)
    func = click.option(
        "--token", envvar="KINO_TOKEN", required=True, help="Access token."
    )(func)
    func = click.option("--url", envvar="KINO_URL", required=True, help="Server URL.")(
        func
    )
    func = click.option(
        "--type",
        "source_type",
        envvar="KINO_TYPE",
        type=click.Choice([t.value for t in SourceType]),
        required=True,
        help="Server type.",
    )(func)
    return func


def run_cancellable(
    func: Callable[[], T], cancel_token: CancelToken, poll_interval: float = 0.1
) -> T:
    """Run func in a worker thread so Ctrl-C can cancel it.

    KeyboardInterrupt only reaches the main thread, so the main thread waits
    here and cancels the token on interrupt. The worker is joined before the
    interrupt is re-raised.
    """
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="kino-cli") as executor:
        future = executor.submit(func)
        try:
            while True:
                try:
                    return future.result(timeout=poll_interval)
                except TimeoutError:
                    continue
        except KeyboardInterrupt:
            logger.warning("Interrupted, cancelling sync")
            cancel_token.cancel()
            raise


def open_source(
    source_type: str, url: str, token: str, user_id: str | None
) -> MediaSource:
    config = SourceConfig(type=source_type, url=url, token=token, user_id=user_id)
    return create_media_source(config)


def format_duration(ms: int) -> str:
    """Format milliseconds as H:MM:SS or M:SS."""
    seconds = ms // 1000
    hours, rem = divmod(seconds, 3600)
    minutes, seconds = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def print_libraries(console: Console, libraries: list[Library]) -> None:
    table = Table(title="Libraries")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Type", style="cyan")
    for library in libraries:
        table.add_row(library.id, library.name, library.type.value)
    console.print(table)


def print_states(
    console: Console, libraries: list[Library], states: dict[str, SyncState]
) -> None:
    table = Table(title="Sync results")
    table.add_column("Library")
    table.add_column("Status")
    table.add_column("Items", justify="right")
    table.add_column("Error", style="red")
    for library in libraries:
        state = states.get(library.id, SyncState())
        style = _STATUS_STYLES[state.status]
        status = f"[{style}]{state.status.value}[/{style}]"
        if state.from_disk:
            status += " [dim](cached)[/dim]"
        table.add_row(library.name, status, str(state.loaded), state.error or "")
    console.print(table)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Browse and sync Plex and Jellyfin libraries."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose=verbose)


@main.command(name="login")
@click.option(
    "--type",
    "source_type",
    type=click.Choice([t.value for t in SourceType]),
    required=True,
    help="Server type.",
)
@click.option("--url", default="", help="Server URL (required for Jellyfin).")
@click.option("--username", help="Jellyfin username.")
def login_cmd(source_type: str, url: str, username: str | None) -> None:
    """Authenticate and print the resulting token.

    \b
    Examples:
      kino login --type plex
      kino login --type jellyfin --url http://localhost:8096 --username alice
    """
    console = Console()

    def show_pin(pin: PlexPin) -> None:
        console.print(
            f"Go to [bold]https://plex.tv/link[/bold] and enter code "
            f"[bold cyan]{pin.code}[/bold cyan]"
        )

    credentials = None
    if source_type == SourceType.JELLYFIN:
        if not url:
            raise click.UsageError("--url is required for Jellyfin")
        # Prompt before the status spinner starts
        name = username or click.prompt("Username")
        password = click.prompt("Password", hide_input=True)

        def credentials() -> tuple[str, str]:
            return name, password

    cancel_token = CancelToken()
    try:
        flow = create_auth_flow(source_type, on_pin=show_pin, credentials=credentials)
        with console.status("Waiting for authorization..."):
            result = flow.run(url, cancel_token)
    except KeyboardInterrupt:
        cancel_token.cancel()
        raise click.Abort() from None
    except KinoError as e:
        logger.error(str(e))
        raise click.ClickException(str(e)) from e

    console.print("[green]Authenticated[/green]")
    console.print(f"Token:   {result.token}")
    if result.user_id:
        console.print(f"User ID: {result.user_id}")
    if result.username:
        console.print(f"User:    {result.username}")


@main.command(name="detect")
@click.argument("url")
def detect_cmd(url: str) -> None:
    """Tell whether URL points at a Plex or a Jellyfin server."""
    try:
        source_type = detect_source_type(url)
    except KinoError as e:
        logger.error(str(e))
        raise click.ClickException(str(e)) from e
    click.echo(source_type.value)


@main.command(name="libraries")
@server_options
def libraries_cmd(
    source_type: str, url: str, token: str, user_id: str | None
) -> None:
    """List the libraries of a server."""
    console = Console()
    try:
        source = open_source(source_type, url, token, user_id)
        try:
            print_libraries(console, source.get_libraries())
        finally:
            source.close()
    except KinoError as e:
        logger.error(str(e))
        raise click.ClickException(str(e)) from e


@main.command(name="sync")
@server_options
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for library snapshots.",
)
@click.option("--json", "as_json", is_flag=True, help="Output final states as JSON.")
@click.pass_context
def sync_cmd(
    ctx: click.Context,
    source_type: str,
    url: str,
    token: str,
    user_id: str | None,
    cache_dir: Path | None,
    as_json: bool,
) -> None:
    """Sync every library, showing per-library progress.

    \b
    Examples:
      kino sync --type plex --url http://localhost:32400 --token TOKEN
      KINO_TYPE=jellyfin KINO_URL=... KINO_TOKEN=... KINO_USER_ID=... kino sync
    """
    console = Console()
    verbose = ctx.obj.get("verbose", False)
    setup_logging(verbose=verbose, console=console)

    try:
        source = open_source(source_type, url, token, user_id)
    except KinoError as e:
        logger.error(str(e))
        raise click.ClickException(str(e)) from e

    cancel_token = CancelToken()
    try:
        with Progress(*PROGRESS_COLUMNS, console=console) as progress:
            tasks: dict[str, TaskID] = {}

            def on_progress(library_id: str, state: SyncState) -> None:
                task = tasks.get(library_id)
                if task is not None:
                    progress.update(
                        task,
                        completed=state.loaded,
                        total=state.total or None,
                    )

            engine = create_sync_engine(
                source, cache_dir=cache_dir, on_progress=on_progress
            )
            libraries = engine.fetch_libraries()
            for library in libraries:
                tasks[library.id] = progress.add_task(library.name, total=None)
            states = run_cancellable(
                lambda: engine.sync_all(libraries, cancel_token), cancel_token
            )
    except KeyboardInterrupt:
        cancel_token.cancel()
        raise click.Abort() from None
    except KinoError as e:
        logger.error(str(e))
        raise click.ClickException(str(e)) from e
    finally:
        source.close()

    if as_json:
        data = {lid: state.model_dump(mode="json") for lid, state in states.items()}
        json.dump(data, sys.stdout, indent=2)
        return
    print_states(console, libraries, states)


@main.command(name="search")
@server_options
@click.argument("query")
@click.option(
    "--local",
    is_flag=True,
    help="Sync first, then filter synced titles locally instead of asking the server.",
)
def search_cmd(
    source_type: str,
    url: str,
    token: str,
    user_id: str | None,
    query: str,
    local: bool,
) -> None:
    """Search movies and episodes."""
    console = Console()
    try:
        source = open_source(source_type, url, token, user_id)
        try:
            if local:
                engine = create_sync_engine(source)
                engine.sync_all()
                results = LibraryFilter(engine).filter(query, limit=50)
                items = [r.item for r in results]
            else:
                items = list(source.search(query))
        finally:
            source.close()
    except KinoError as e:
        logger.error(str(e))
        raise click.ClickException(str(e)) from e

    table = Table(title=f"Results for {query!r}")
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Type", style="cyan")
    table.add_column("Year", justify="right")
    table.add_column("Duration", justify="right")
    for item in items:
        if isinstance(item, Show):
            table.add_row(item.id, item.title, "show", str(item.year or ""), "")
            continue
        title = item.title
        if item.episode_code:
            title = f"{item.show_title} {item.episode_code} - {item.title}"
        table.add_row(
            item.id,
            title,
            str(item.type),
            str(item.year or ""),
            format_duration(item.duration_ms),
        )
    console.print(table)


if __name__ == "__main__":
    main()
