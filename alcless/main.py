import asyncio
from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from alcless.config import Settings, load_settings
from alcless.core.exceptions import (
    AlclessError,
    AuthenticationError,
    InvalidSessionNameError,
    ValidationError,
)
from alcless.core.naming import validate_session_name
from alcless.core.types import BatchResult, ValidationReport, parse_tool_list
from alcless.logging import configure_logging
from alcless.sandbox.batch import run_batch
from alcless.sandbox.factory import create_heartbeat, create_lifecycle_manager
from alcless.sandbox.lifecycle import SessionLifecycleManager
from alcless.sandbox.teardown import find_sessions, teardown_sessions


console = Console()

app = typer.Typer(help="alcless: disposable macOS user accounts as developer sandboxes.")

ToolsOption = Annotated[
    str | None,
    typer.Option("--tools", "-t", help="Comma-separated extra Homebrew packages."),
]
ConcurrencyOption = Annotated[
    int | None,
    typer.Option("--concurrency", "-c", min=1, help="Sessions processed at once (default: from settings)."),
]
NamesArgument = Annotated[list[str], typer.Argument(help="Session names.")]


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option("--config", help="Path to settings YAML (default: settings.alcless.yaml)."),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Minimum log level (default: from settings)."),
    ] = None,
) -> None:
    """
    alcless: disposable macOS user accounts as developer sandboxes.
    """
    settings = _safe_load_settings(config)
    configure_logging(log_level or settings.log_level)
    ctx.obj = settings


def _safe_load_settings(config: Path | None) -> Settings:
    """Load settings, exiting with a message on failure.

    Raises:
        typer.Exit: If the settings file is missing or invalid.
    """
    try:
        return load_settings(config)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None
    except Exception as e:
        typer.echo(f"Error loading settings: {e}", err=True)
        raise typer.Exit(code=1) from None


def _settings(ctx: typer.Context) -> Settings:
    settings: Settings = ctx.obj
    return settings


def _check_names(names: list[str]) -> None:
    """Reject unusable session names before any privileged operation.

    Raises:
        typer.Exit: If a name is invalid or repeated.
    """
    try:
        for name in names:
            validate_session_name(name)
    except InvalidSessionNameError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None
    if len(set(names)) != len(names):
        typer.echo("Error: session names must be unique.", err=True)
        raise typer.Exit(code=1)


def _print_batch(result: BatchResult, title: str) -> None:
    table = Table(title=title)
    table.add_column("Session", style="bold")
    table.add_column("Result")
    table.add_column("Error", overflow="fold")
    styles = {"succeeded": "green", "failed": "red", "skipped": "yellow"}
    for name, outcome in result.outcomes.items():
        style = styles[outcome.status]
        table.add_row(name, f"[{style}]{outcome.status}[/{style}]", outcome.error or "")
    console.print(table)


def _print_report(report: ValidationReport) -> None:
    for check in report.checks:
        mark = "[green]✓[/green]" if check.passed else "[red]✗[/red]"
        console.print(f"  {mark} {check.command}: {check.output.splitlines()[0] if check.output else ''}")


def _run(
    body: Callable[[SessionLifecycleManager], Coroutine[Any, Any, None]],
    manager: SessionLifecycleManager,
) -> None:
    """Run an async CLI body, turning alcless errors into exit code 1."""
    try:
        asyncio.run(body(manager))
    except AuthenticationError as e:
        if e.batch_result is not None:
            _print_batch(e.batch_result, "Sessions (run aborted)")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from None
    except AlclessError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from None


@app.command()
def create(
    ctx: typer.Context,
    names: NamesArgument,
    tools: ToolsOption = None,
    concurrency: ConcurrencyOption = None,
    fail_fast: Annotated[
        bool,
        typer.Option("--fail-fast", help="Do not start remaining sessions after a failure."),
    ] = False,
) -> None:
    """Create, provision and validate sessions."""
    _check_names(names)
    settings = _settings(ctx)
    manager = create_lifecycle_manager(settings)
    extra_tools = parse_tool_list(tools)
    limit = concurrency or settings.concurrency

    async def _body(manager: SessionLifecycleManager) -> None:
        await manager.runner.validate_credentials()
        console.print(
            '[yellow]macOS may prompt for "System Events" or "User Management" permissions.\n'
            'Click "Allow" or "OK" to continue creating sessions.[/yellow]\n'
        )
        console.print(f"[bold]Creating {len(names)} session(s) (concurrency: {limit})...[/bold]")
        result = await run_batch(
            names,
            limit,
            lambda name: manager.bring_up(name, extra_tools),
            fail_fast=fail_fast,
            heartbeat=create_heartbeat(settings, manager.runner),
        )
        _print_batch(result, "Created sessions")
        if not result.ok:
            raise typer.Exit(code=1)
        console.print("[bold green]All sessions created successfully.[/bold green]")

    _run(_body, manager)


@app.command()
def provision(
    ctx: typer.Context,
    names: NamesArgument,
    tools: ToolsOption = None,
    concurrency: ConcurrencyOption = None,
) -> None:
    """Re-run provisioning (sudo grant, Homebrew, packages) for existing sessions."""
    _check_names(names)
    settings = _settings(ctx)
    manager = create_lifecycle_manager(settings)
    extra_tools = parse_tool_list(tools)

    async def _body(manager: SessionLifecycleManager) -> None:
        await manager.runner.validate_credentials()
        result = await run_batch(
            names,
            concurrency or settings.concurrency,
            lambda name: manager.provision(name, extra_tools),
            heartbeat=create_heartbeat(settings, manager.runner),
        )
        _print_batch(result, "Provisioned sessions")
        if not result.ok:
            raise typer.Exit(code=1)

    _run(_body, manager)


@app.command()
def validate(ctx: typer.Context, names: NamesArgument) -> None:
    """Run the tool version checks inside sessions."""
    _check_names(names)
    manager = create_lifecycle_manager(_settings(ctx))

    async def _body(manager: SessionLifecycleManager) -> None:
        await manager.runner.validate_credentials()
        failed = False
        for name in names:
            console.print(f"[bold]{name}[/bold]")
            try:
                _print_report(await manager.validate(name))
            except ValidationError as e:
                _print_report(e.report)
                failed = True
        if failed:
            raise typer.Exit(code=1)

    _run(_body, manager)


@app.command()
def delete(
    ctx: typer.Context,
    names: NamesArgument,
    concurrency: ConcurrencyOption = None,
) -> None:
    """Delete sessions (no-op for sessions that do not exist)."""
    _check_names(names)
    settings = _settings(ctx)
    manager = create_lifecycle_manager(settings)

    async def _body(manager: SessionLifecycleManager) -> None:
        await manager.runner.validate_credentials()
        result = await run_batch(
            names,
            concurrency or settings.concurrency,
            manager.destroy,
            heartbeat=create_heartbeat(settings, manager.runner),
        )
        _print_batch(result, "Deleted sessions")
        if not result.ok:
            raise typer.Exit(code=1)

    _run(_body, manager)


app.command(name="rm", help="Alias for delete.", hidden=True)(delete)


@app.command(name="list")
def list_sessions(ctx: typer.Context) -> None:
    """List sessions of the current user."""
    manager = create_lifecycle_manager(_settings(ctx))

    async def _body(manager: SessionLifecycleManager) -> None:
        sessions = await find_sessions(manager.directory)
        if not sessions:
            console.print("No sessions.")
            return
        table = Table(title="Sessions")
        table.add_column("Session", style="bold")
        table.add_column("Account")
        table.add_column("Active")
        for name in sessions:
            account = await manager.account_name(name)
            active = await manager.directory.is_active(account)
            table.add_row(name, account, "[green]yes[/green]" if active else "[yellow]no[/yellow]")
        console.print(table)

    _run(_body, manager)


@app.command()
def prune(
    ctx: typer.Context,
    prefix: Annotated[
        str,
        typer.Option("--prefix", help="Only remove sessions whose name starts with this."),
    ] = "",
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation."),
    ] = False,
) -> None:
    """Remove every session of the current user, including orphans."""
    manager = create_lifecycle_manager(_settings(ctx))

    async def _body(manager: SessionLifecycleManager) -> None:
        sessions = await find_sessions(manager.directory, prefix)
        if not sessions:
            console.print("No sessions to remove.")
            return
        console.print("Sessions to remove: " + ", ".join(sessions))
        if not yes and not typer.confirm("Continue?"):
            raise typer.Exit(code=1)
        await manager.runner.validate_credentials()
        failed = await teardown_sessions(manager, sessions)
        if failed:
            console.print(f"[red]Failed to remove:[/red] {', '.join(failed)}")
            raise typer.Exit(code=1)
        console.print(f"[green]Removed {len(sessions)} session(s).[/green]")

    _run(_body, manager)


if __name__ == "__main__":
    app()
