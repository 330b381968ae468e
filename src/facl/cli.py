"""
CLI entry point for facl.

This module provides the Typer-based command-line interface for facl.

Commands:
    get         Show the ACL of a path (optionally the whole subtree)
    set         Replace the ACL of a path
    modify      Add or change ACL entries
    remove      Remove ACL entries, default entries or the whole ACL
    resolve     Check that domain principals exist
    doctor      Check that the configured tools are present

Entries are given in getfacl's POSIX text form, e.g. ``-e user:alice:r-x``
or ``-e default:group:staff:rwx``.

Architecture Note:
    The CLI is intentionally thin - it parses arguments and delegates to
    ACLEngine. The engine can be used programmatically without the CLI.
"""

import json
import logging
import os
import traceback
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from facl import __version__
from facl.codec import parse_posix_entry
from facl.engine import ACLEngine
from facl.errors import FaclError
from facl.report import generate_json_listing, print_listing
from facl.resolver import NssResolver, PrincipalResolver
from facl.schema import (
    ACLConfig,
    ACLEntry,
    ACLListConfig,
    ACLRemoveConfig,
    EngineSettings,
    ResolverKind,
    load_settings,
)

# Initialize Typer app with metadata
app = typer.Typer(
    name="facl",
    help="Manage filesystem access control lists.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output; logs go to stderr
console = Console()
err_console = Console(stderr=True)


# Shared option types
ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to the settings YAML file.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
EntryOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--entry",
        "-e",
        help="ACL entry in getfacl text form (repeatable).",
    ),
]
RecursiveOption = Annotated[
    bool,
    typer.Option("--recursive", "-R", help="Apply to the whole subtree."),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", help="Enable debug logging."),
]
DebugOption = Annotated[
    bool,
    typer.Option("--debug", help="Show full error tracebacks."),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output results in JSON format."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]facl[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    facl - Structured access to getfacl/setfacl.

    Reads and writes POSIX ACLs on supported filesystems, keeping the
    owner, owning group and other entries intact on replace.
    """
    pass


# =============================================================================
# Setup helpers
# =============================================================================


def load_cli_settings(config: Path | None) -> EngineSettings:
    """Load settings from a file, or use defaults."""
    if config is None:
        return EngineSettings()
    return load_settings(config)


def configure_logging(settings: EngineSettings, verbose: bool) -> None:
    """Send log records to stderr through Rich."""
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def build_resolver(settings: EngineSettings) -> PrincipalResolver | None:
    """Create the principal resolver selected in the settings."""
    if settings.resolver == ResolverKind.NSS:
        return NssResolver()
    return None


def build_engine(settings: EngineSettings) -> ACLEngine:
    """Create the engine used by the commands."""
    return ACLEngine(
        settings=settings,
        resolver=build_resolver(settings),
        logger=logging.getLogger("facl"),
    )


def _setup(config: Path | None, verbose: bool, json_output: bool, debug: bool) -> ACLEngine:
    try:
        settings = load_cli_settings(config)
    except (OSError, ValidationError, ValueError) as e:
        _fail("settings_load_error", f"Error loading settings: {e}", json_output, debug)
    configure_logging(settings, verbose)
    return build_engine(settings)


def _parse_entries(texts: list[str] | None, json_output: bool, debug: bool) -> list[ACLEntry]:
    try:
        return [parse_posix_entry(text.strip()) for text in texts or []]
    except FaclError as e:
        _fail_error(e, json_output, debug)


def _abs(path: str) -> str:
    return os.path.abspath(path)


def _removal_text(text: str) -> str:
    """Removal entries carry no permissions: `user:alice` becomes `user:alice:`."""
    body = text.removeprefix("default:")
    return text if body.count(":") >= 2 else f"{text}:"


# =============================================================================
# Commands
# =============================================================================


@app.command()
def get(
    path: Annotated[str, typer.Argument(help="Path to read the ACL of.")],
    recursive: RecursiveOption = False,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Show the ACL of a path.

    With --recursive, directories are walked depth-first; paths whose ACL
    cannot be read are left out of the listing.

    Example:
        $ facl get /tank/share --recursive
    """
    with _setup(config, verbose, json_output, debug) as engine:
        try:
            listing = engine.get_acl(ACLListConfig(path=_abs(path), recursive=recursive))
        except FaclError as e:
            _fail_error(e, json_output, debug)

    if json_output:
        print(generate_json_listing(listing))
    else:
        print_listing(listing, console)


@app.command("set")
def set_(
    path: Annotated[str, typer.Argument(help="Path whose ACL is replaced.")],
    entries: EntryOption = None,
    recursive: RecursiveOption = False,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Replace the ACL of a path.

    Owner, owning group and other entries not given are kept as they are.

    Example:
        $ facl set /tank/share -e user:alice:rwx -e group:staff:r-x
    """
    engine = _setup(config, verbose, json_output, debug)
    parsed = _parse_entries(entries, json_output, debug)
    with engine:
        try:
            resolved = engine.resolve_ad_users(parsed)
            engine.set_acl(ACLConfig(path=_abs(path), entries=resolved, recursive=recursive))
        except FaclError as e:
            _fail_error(e, json_output, debug)

    _done(f"ACL replaced on {_abs(path)}", json_output)


@app.command()
def modify(
    path: Annotated[str, typer.Argument(help="Path whose ACL is changed.")],
    entries: EntryOption = None,
    recursive: RecursiveOption = False,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Add or overwrite ACL entries; all other entries stay untouched.

    Example:
        $ facl modify /tank/share -e user:alice:r-x
    """
    engine = _setup(config, verbose, json_output, debug)
    parsed = _parse_entries(entries, json_output, debug)
    with engine:
        try:
            resolved = engine.resolve_ad_users(parsed)
            engine.modify_acl(ACLConfig(path=_abs(path), entries=resolved, recursive=recursive))
        except FaclError as e:
            _fail_error(e, json_output, debug)

    _done(f"ACL modified on {_abs(path)}", json_output)


@app.command()
def remove(
    path: Annotated[str, typer.Argument(help="Path to remove ACL entries from.")],
    entries: EntryOption = None,
    all_entries: Annotated[
        bool,
        typer.Option("--all", "-b", help="Remove the whole extended ACL."),
    ] = False,
    default: Annotated[
        bool,
        typer.Option("--default", "-k", help="Remove the default ACL."),
    ] = False,
    recursive: RecursiveOption = False,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Remove ACL entries.

    Only named user and group entries can be removed one by one; base
    entries given with -e are ignored.

    Example:
        $ facl remove /tank/share -e user:alice
        $ facl remove /tank/share --default
    """
    engine = _setup(config, verbose, json_output, debug)
    parsed = _parse_entries([_removal_text(e) for e in entries or []], json_output, debug)
    cfg = ACLRemoveConfig(
        path=_abs(path),
        entries=parsed,
        recursive=recursive,
        remove_all_xattr=all_entries,
        remove_default=default,
    )
    with engine:
        try:
            engine.remove_acl(cfg)
        except FaclError as e:
            _fail_error(e, json_output, debug)

    _done(f"ACL entries removed from {_abs(path)}", json_output)


@app.command()
def resolve(
    entries: EntryOption = None,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Check that the domain principals named in entries exist.

    Example:
        $ facl resolve -c facl.yaml -e 'user:CORP\\alice:rwx'
    """
    engine = _setup(config, verbose, json_output, debug)
    parsed = _parse_entries(entries, json_output, debug)
    if engine.resolver is None and not json_output:
        console.print("[yellow]No principal resolver configured; nothing checked[/yellow]")
    with engine:
        try:
            resolved = engine.resolve_ad_users(parsed)
        except FaclError as e:
            _fail_error(e, json_output, debug)

    if json_output:
        print(json.dumps([e.model_dump(mode="json") for e in resolved], indent=2))
    else:
        console.print(f"[green]✓[/green] {len(resolved)} entries resolved")


@app.command()
def doctor(
    config: ConfigOption = None,
) -> None:
    """
    Check that the configured ACL tools are installed.

    Example:
        $ facl doctor -c facl.yaml
    """
    try:
        settings = load_cli_settings(config)
    except (OSError, ValidationError, ValueError) as e:
        console.print(f"[red]Error loading settings: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Tool", style="cyan")
    table.add_column("Path")
    table.add_column("Status", width=10)

    all_ok = True
    for name, tool_path in (
        ("getfacl", settings.getfacl_path),
        ("setfacl", settings.setfacl_path),
        ("mount", settings.mount_path),
    ):
        ok = os.path.isfile(tool_path) and os.access(tool_path, os.X_OK)
        all_ok = all_ok and ok
        status = "[green]ok[/green]" if ok else "[red]missing[/red]"
        table.add_row(name, tool_path, status)

    console.print(table)
    console.print(
        f"[dim]Supported filesystems: {', '.join(settings.supported_filesystems)}[/dim]"
    )

    if not all_ok:
        raise typer.Exit(code=1)


# =============================================================================
# Output helpers
# =============================================================================


def _done(message: str, json_output: bool) -> None:
    if json_output:
        print(json.dumps({"success": True, "message": message}, indent=2))
    else:
        console.print(f"[green]✓[/green] {message}")


def _fail_error(error: FaclError, json_output: bool, debug: bool) -> None:
    """Report a facl error and exit."""
    if json_output:
        output = {"error": True, **error.to_dict()}
        if debug:
            output["traceback"] = traceback.format_exc()
        print(json.dumps(output, indent=2, default=str))
    else:
        console.print(f"[red]{escape(str(error))}[/red]")
        output_text = error.context.get("output")
        if output_text:
            console.print(f"[dim]{escape(output_text.strip())}[/dim]")
        if debug:
            console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
    raise typer.Exit(code=1)


def _fail(error_type: str, message: str, json_output: bool, debug: bool) -> None:
    """Report a setup error and exit."""
    if json_output:
        output = {"error": True, "error_type": error_type, "message": message}
        if debug:
            output["traceback"] = traceback.format_exc()
        print(json.dumps(output, indent=2))
    else:
        console.print(f"[red]{escape(message)}[/red]")
        if debug:
            console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
    raise typer.Exit(code=1)
