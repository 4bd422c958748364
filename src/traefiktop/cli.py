"""
Command line entry point for traefiktop.

Usage:
  traefiktop --host http://localhost:8080
  traefiktop --host https://traefik.example.com --basic-auth admin:secret --insecure
  traefiktop --host http://localhost:8080 --ignore "*@internal" --ignore "acme*"
  traefiktop --host http://localhost:8080 --headless
"""

import asyncio
import logging
import logging.handlers
import sys
from typing import List, Optional

import typer
from rich.console import Console

from . import get_log_path
from .api import TraefikGateway
from .config import config_manager
from .service_status import ServiceStatus, get_router_status_info

logger = logging.getLogger(__name__)

cli = typer.Typer(add_completion=False, help="A terminal UI for Traefik routers and services.")
console = Console()


def setup_logging() -> None:
    """Send all logs to a rotating file; the terminal belongs to the TUI."""
    cfg = config_manager.get_config().logging
    handler = logging.handlers.RotatingFileHandler(
        config_manager.get_custom_log_path() or get_log_path(),
        maxBytes=cfg.max_size_mb * 1024 * 1024,
        backupCount=cfg.backup_count,
    )
    handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    logging.basicConfig(level=config_manager.get_log_level(), handlers=[handler], force=True)


def run_headless(host: str, credential: Optional[str], gateway: TraefikGateway) -> int:
    """Fetch once, print a summary and return the process exit code."""
    routers_result, services_result = asyncio.run(gateway.fetch_all(host, credential))
    error = routers_result.error or services_result.error
    if error is not None:
        console.print(f"[red]❌ Failed to connect to Traefik:[/red] {error}")
        return 1

    routers, services = routers_result.value, services_result.value
    console.print(f"✅ Successfully connected to Traefik at: {host}")
    console.print(f"📡 Found {len(routers)} routers and {len(services)} services")
    console.print("\n🔍 Sample routers:")
    for i, router in enumerate(routers[:5], start=1):
        status, _, _ = get_router_status_info(router, services)
        icon = "🔴" if status == ServiceStatus.DOWN else "🟢"
        console.print(f"  {i}. {icon} {router.name} - {router.rule}", markup=False)
        console.print(f"     Service: {router.service} | Provider: {router.provider}", markup=False)
    if len(routers) > 5:
        console.print(f"     ... and {len(routers) - 5} more routers")
    return 0


@cli.command()
def main(
    host: Optional[str] = typer.Option(None, "--host", help="Traefik API URL (falls back to config api.url)."),
    basic_auth: Optional[str] = typer.Option(
        None, "--basic-auth", envvar="TRAEFIK_BASIC_AUTH", help="Credentials as user:password."
    ),
    insecure: bool = typer.Option(False, "--insecure", help="Allow insecure TLS connections."),
    ignore: List[str] = typer.Option(
        [], "--ignore", help="Ignore routers by name pattern (case-insensitive, * wildcards). Repeatable."
    ),
    refresh: Optional[float] = typer.Option(
        None, "--refresh", "-r", min=0.1, help="Refresh interval in seconds."
    ),
    headless: bool = typer.Option(False, "--headless", "--oneshot", help="Fetch once, print a summary and exit."),
) -> None:
    setup_logging()
    cfg = config_manager.get_config()

    host = host or config_manager.get_api_url()
    if not host:
        console.print("[red]Error:[/red] --host is required (or set api.url in the config file).")
        raise typer.Exit(code=2)

    credential = basic_auth or config_manager.get_basic_auth()
    gateway = TraefikGateway(insecure=insecure or cfg.api.insecure, timeout=cfg.api.timeout)

    if headless:
        raise typer.Exit(code=run_headless(host, credential, gateway))

    if not sys.stdout.isatty():
        console.print("Error: This application requires a terminal (TTY) to run.")
        console.print("Run it in a proper terminal, or use --headless to just test the connection.")
        raise typer.Exit(code=1)

    from .app import run

    logger.info(f"Starting traefiktop against {host}")
    run(
        host,
        credential,
        ignore_patterns=list(ignore) or config_manager.get_ignore_patterns(),
        refresh_interval=refresh if refresh is not None else config_manager.get_refresh_interval(),
        gateway=gateway,
    )
    logger.info("Application exited cleanly")
