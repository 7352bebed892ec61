"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from adapters.asset_store import AssetStore
from adapters.http_client import build_async_client
from core.config import AppSettings, write_user_env_vars
from core.domain.errors import AssetIOError
from core.domain.models import AssetKey

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc)


def _check_assets_dir(root: Path) -> tuple[bool, str]:
    """Write and delete a check file through AssetStore."""

    store = AssetStore(root)
    key = AssetKey(source_url="doctor://check", folder="_doctor", name="check")
    try:
        store.put(key, b"check")
        store.delete(key)
        store.folder_path("_doctor").rmdir()
    except (AssetIOError, OSError) as exc:
        return False, str(exc)
    return True, str(root)


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="octolens doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    table.add_row("API base_url", "OK", settings.github_api_url)
    table.add_row("Memory cache", "OK", f"{settings.memory_cache_capacity} entries")
    if settings.disk_cache_max_files is None:
        table.add_row("Disk cache bound", "UNBOUNDED", "Set OCTOLENS_DISK_CACHE_MAX_FILES to cap growth")
    else:
        table.add_row("Disk cache bound", "OK", f"{settings.disk_cache_max_files} files per folder")

    ok_dir, detail_dir = _check_assets_dir(settings.resolved_assets_dir())
    table.add_row("Assets dir", "OK" if ok_dir else "FAIL", detail_dir)

    ok_http, detail_http = asyncio.run(_check_http(settings.github_api_url, settings))
    table.add_row("HTTP connectivity", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if not ok_dir:
        _console.print("\n[yellow]Note:[/yellow] use `octolens doctor set-assets-dir PATH` to pick a writable folder.")


@app.command(name="set-assets-dir")
def set_assets_dir(path: Path = typer.Argument(..., help="Root folder for the disk cache.")) -> None:
    """Store the disk cache root in the user config .env."""

    resolved = path.expanduser().resolve()
    env_path = write_user_env_vars({"OCTOLENS_ASSETS_DIR": str(resolved)})
    _console.print(f"[green]Saved assets dir to:[/green] {env_path}")
