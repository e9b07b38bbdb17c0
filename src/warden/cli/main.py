"""CLI interface for warden."""

import logging
from pathlib import Path

from dotenv import load_dotenv
import typer

# Load .env from current directory or parent directories
load_dotenv()
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..config import Config, load_config
from ..daemon.command import CommandDaemon
from ..daemon.controller import Controller
from ..daemon.lifecycle import configure_logging, initialize_runtime_dir
from ..daemon.process_file import ProcessFile
from ..daemon.states import DaemonState

app = typer.Typer(
    name="warden",
    help="Start, stop and inspect background daemons.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

STATE_STYLES = {
    DaemonState.RUNNING: "green",
    DaemonState.STOPPED: "blue",
    DaemonState.UNKNOWN: "red",
}


@app.callback()
def callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show controller debug output"
    ),
) -> None:
    """Start, stop and inspect background daemons."""
    if verbose:
        logger = logging.getLogger("warden")
        logger.setLevel(logging.DEBUG)
        logger.handlers = [RichHandler(console=err_console, show_path=False)]


def get_runtime() -> tuple[Path, Config]:
    """Get the runtime directory and its configuration."""
    runtime_dir = initialize_runtime_dir()
    return runtime_dir, load_config(runtime_dir)


def get_daemon(name: str) -> tuple[CommandDaemon, Config]:
    """Build the named daemon from configuration."""
    runtime_dir, config = get_runtime()

    settings = config.daemons.get(name)
    if settings is None:
        err_console.print(f"[red]Unknown daemon: {name}[/red]")
        if config.daemons:
            err_console.print(f"  [dim]Configured: {', '.join(sorted(config.daemons))}[/dim]")
        else:
            err_console.print(f"  [dim]No daemons configured in {runtime_dir / 'config.yaml'}[/dim]")
        raise typer.Exit(1)

    return CommandDaemon.from_settings(name, settings, runtime_dir), config


def get_controller(name: str) -> Controller:
    """Get a controller for the named daemon."""
    daemon, config = get_daemon(name)
    return Controller(
        daemon,
        console=console,
        err_console=err_console,
        tail_lines=config.console.tail_lines,
    )


def _dispatch(name: str, command: str) -> None:
    if not get_controller(name).daemonize([command]):
        raise typer.Exit(1)


@app.command()
def start(
    name: str = typer.Argument(..., help="Daemon name from config.yaml"),
    foreground: bool = typer.Option(
        False, "--foreground", "-f", help="Run in foreground (don't daemonize)"
    ),
) -> None:
    """Start a daemon."""
    if not foreground:
        _dispatch(name, "start")
        return

    daemon, _ = get_daemon(name)
    if ProcessFile(daemon.process_file_path).running():
        console.print("[yellow]Daemon is already running.[/yellow]")
        raise typer.Exit(1)

    console.print(f"[green]Running {name} in foreground...[/green]")
    daemon.prefork()
    configure_logging(daemon.log_level)
    try:
        daemon.run()
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted.[/yellow]")


@app.command()
def stop(
    name: str = typer.Argument(..., help="Daemon name from config.yaml"),
) -> None:
    """Stop a daemon."""
    _dispatch(name, "stop")


@app.command()
def restart(
    name: str = typer.Argument(..., help="Daemon name from config.yaml"),
) -> None:
    """Restart a daemon."""
    _dispatch(name, "restart")


@app.command()
def status(
    name: str = typer.Argument(..., help="Daemon name from config.yaml"),
) -> None:
    """Show daemon status."""
    _dispatch(name, "status")


@app.command("list")
def list_daemons() -> None:
    """List configured daemons and their state."""
    runtime_dir, config = get_runtime()

    if not config.daemons:
        console.print(f"[yellow]No daemons configured in {runtime_dir / 'config.yaml'}[/yellow]")
        return

    table = Table(title="Daemons")
    table.add_column("Name", style="cyan")
    table.add_column("State")
    table.add_column("PID")
    table.add_column("Command", style="dim")

    for name in sorted(config.daemons):
        daemon = CommandDaemon.from_settings(name, config.daemons[name], runtime_dir)
        process_file = ProcessFile(daemon.process_file_path)
        state = process_file.status()
        pid = process_file.recall() if state is DaemonState.RUNNING else None

        table.add_row(
            name,
            f"[{STATE_STYLES[state]}]{state.value}[/{STATE_STYLES[state]}]",
            str(pid) if pid else "-",
            " ".join(daemon.command),
        )

    console.print(table)


@app.command()
def logs(
    name: str = typer.Argument(..., help="Daemon name from config.yaml"),
    lines: int = typer.Option(
        50, "--lines", "-n", help="Number of lines to show"
    ),
) -> None:
    """View the current run of a daemon's log."""
    daemon, _ = get_daemon(name)

    if not daemon.log_file_path.exists():
        console.print("[yellow]No log file found.[/yellow]")
        raise typer.Exit(1)

    daemon.tail_log(console.file, lines)


def main() -> None:
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
