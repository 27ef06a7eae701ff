"""CLI for converting SQL Server ``.bak`` files.

Usage:
    bak-converter ping
    bak-converter config
    bak-converter convert northwind.bak --format sqlite --output northwind.sqlite
    bak-converter convert northwind.bak --format json
    bak-converter serve --port 8080

Commands:
    ping     - Wait for SQL Server to accept connections
    config   - Show the effective configuration
    convert  - Restore a local .bak file and export it as SQLite or JSON
    serve    - Run the HTTP API
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from bak_converter.config.loader import load_config
from bak_converter.config.models import ConverterConfig
from bak_converter.errors import ConverterError
from bak_converter.export.types import ExportFormat
from bak_converter.factory import wait_for_server
from bak_converter.pipeline.controller import convert_backup
from bak_converter.upload import TokenAllocator, copy_local_backup

console = Console()


def _load(args: argparse.Namespace) -> ConverterConfig:
    config_path = Path(args.config) if getattr(args, "config", None) else None
    return load_config(config_path)


def configure_logging(verbose: bool = False) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_ping(args: argparse.Namespace) -> int:
    """Async implementation for ping command.

    Returns:
        0 when the server answered, 1 on timeout or error.
    """
    config = _load(args)
    console.print(f"Waiting for SQL Server at [bold]{config.server.host}[/bold]...", style="dim")

    try:
        client = await wait_for_server(config, timeout=args.timeout)
    except ConverterError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1

    await client.close()
    console.print("[bold green]v[/bold green] SQL Server is up and running.")
    return 0


async def _async_convert(args: argparse.Namespace) -> int:
    """Async implementation for convert command.

    Returns:
        0 on success, 1 on failure.
    """
    config = _load(args)
    source = Path(args.backup_file)
    if not source.is_file():
        console.print(f"[red]Error: backup file not found: {source}[/red]")
        return 1

    export_format = ExportFormat(args.format)
    try:
        upload = copy_local_backup(source, config, TokenAllocator())
        artifact = await convert_backup(upload, config, export_format)
    except ConverterError as e:
        console.print(f"[bold red]x[/bold red] {e.stage} failed: {e}")
        return 1

    output = Path(args.output) if args.output else Path(f"{upload.database_name}.{export_format.value}")
    if export_format is ExportFormat.SQLITE:
        output.write_bytes(artifact)
    else:
        with open(output, "w", encoding="utf-8") as f:
            json.dump(artifact, f, ensure_ascii=False, indent=2)

    console.print(f"[bold green]v[/bold green] Wrote [bold cyan]{output}[/bold cyan]")
    return 0


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_ping(args: argparse.Namespace) -> int:
    """Wait for SQL Server. Wraps ``_async_ping`` with ``asyncio.run()``."""
    return asyncio.run(_async_ping(args))


def cmd_convert(args: argparse.Namespace) -> int:
    """Convert a local backup. Wraps ``_async_convert`` with ``asyncio.run()``."""
    return asyncio.run(_async_convert(args))


def cmd_config(args: argparse.Namespace) -> int:
    """Show the effective configuration (password hidden).

    Reads only local files and the environment -- no database calls.
    """
    try:
        config = _load(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    table = Table(title="Converter Configuration", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")

    table.add_row("Server", f"{config.server.host}:{config.server.port}")
    table.add_row("User", config.server.user)
    table.add_row("Password", "[green]set[/green]" if config.server.password else "[yellow]empty[/yellow]")
    table.add_row("ODBC driver", config.server.driver)
    table.add_row("Connect timeout", f"{config.connect_timeout:g}s (retry every {config.retry_interval:g}s)")
    table.add_row("Data directory", config.data_dir)
    table.add_row("Upload directory", config.upload_dir)
    table.add_row("Max upload", f"{config.max_upload_bytes} bytes")
    table.add_row("JSON string limit", str(config.json_max_string_length))

    console.print(table)
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from bak_converter.api.app import create_app

    app = create_app(_load(args))
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="bak-converter",
        description="Convert SQL Server .bak files to SQLite or JSON",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to bak-converter.toml (default: ./bak-converter.toml if present)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # ping command
    p_ping = subparsers.add_parser("ping", help="Wait for SQL Server to accept connections")
    p_ping.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait (default: connect_timeout from config)",
    )
    p_ping.set_defaults(func=cmd_ping)

    # config command
    p_config = subparsers.add_parser("config", help="Show the effective configuration")
    p_config.set_defaults(func=cmd_config)

    # convert command
    p_convert = subparsers.add_parser("convert", help="Convert a local .bak file")
    p_convert.add_argument("backup_file", help="Path to the .bak file")
    p_convert.add_argument(
        "--format",
        "-f",
        choices=[f.value for f in ExportFormat],
        default=ExportFormat.SQLITE.value,
        help="Output format (default: sqlite)",
    )
    p_convert.add_argument(
        "--output",
        "-o",
        default=None,
        help="Output path (default: DB_<token>.sqlite or DB_<token>.json)",
    )
    p_convert.set_defaults(func=cmd_convert)

    # serve command
    p_serve = subparsers.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", default="0.0.0.0", help="Bind address")
    p_serve.add_argument("--port", type=int, default=8080, help="Bind port")
    p_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
