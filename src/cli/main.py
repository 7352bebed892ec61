"""CLI principal.

Cada comando arma los servicios del Core con `AppSettings` y delega; aquí solo
hay presentación (Rich) y manejo de errores en el borde.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

import typer
from rich.console import Console

from adapters.github_api import GitHubApi
from adapters.http_client import HttpClient
from cli import doctor
from cli.ui_components import (
    build_profile_panel,
    build_repos_table,
    build_users_table,
    describe_asset,
    print_banner,
)
from core.config import AppSettings
from core.domain.errors import OctolensError
from core.domain.models import SearchOutcome
from core.logging import configure_logging
from core.services.asset_fetcher import AssetFetcher, FetchHooks
from core.services.profile_browser import ProfileBrowser, avatar_request
from core.services.search_coordinator import SearchCoordinator, SearchHooks

T = TypeVar("T")

app = typer.Typer(no_args_is_help=True, help="Search GitHub users, browse repos and cache avatars.")
app.add_typer(doctor.app, name="doctor")

_console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    banner: bool = typer.Option(False, "--banner", help="Print the banner first."),
) -> None:
    configure_logging(verbose)
    if banner:
        print_banner(_console)


def _run(coro: Awaitable[T]) -> T:
    try:
        return asyncio.run(coro)  # type: ignore[arg-type]
    except OctolensError as exc:
        _console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc


async def _search(term: str, settings: AppSettings, *, submit: bool = False) -> SearchOutcome:
    hooks = SearchHooks(
        on_query_start=lambda q: _console.print(f"[dim]Searching '{q}'...[/dim]"),
        on_error=lambda msg: _console.print(f"[red]Search failed:[/red] {msg}"),
    )
    async with HttpClient(settings) as http:
        coordinator = SearchCoordinator(GitHubApi(http, settings), settings, hooks=hooks)
        # Simula el tecleo: el umbral dispara la búsqueda, lo demás filtra local.
        for i in range(1, len(term)):
            await coordinator.on_query_changed(term[:i])
        outcome = await coordinator.on_query_changed(term)
        if submit:
            outcome = await coordinator.on_query_submitted(term)
        return outcome


@app.command()
def search(
    term: str = typer.Argument(..., help="Search text (typed character by character)."),
    submit: bool = typer.Option(False, "--submit", help="Finish editing: search the full text remotely."),
) -> None:
    """Search users the way the app does while typing."""

    settings = AppSettings()
    if not submit and len(term) < settings.search_min_length:
        raise typer.BadParameter(f"needs at least {settings.search_min_length} characters")
    outcome = _run(_search(term, settings, submit=submit))
    if outcome.error:
        raise typer.Exit(code=1)
    records = outcome.displayed.records if outcome.displayed else ()
    _console.print(build_users_table(records, title=f"Users matching '{term}'"))


async def _repos(login: str, filter_text: str | None, settings: AppSettings) -> ProfileBrowser:
    async with HttpClient(settings) as http:
        api = GitHubApi(http, settings)
        user = await api.fetch_user_by_login(login)
        browser = ProfileBrowser(api, user, min_filter_length=settings.search_min_length)
        report = await browser.load()
        for name, message in report.errors.items():
            _console.print(f"[yellow]{name} not loaded:[/yellow] {message}")
        if filter_text:
            browser.on_filter_changed(filter_text)
        return browser


@app.command()
def repos(
    login: str = typer.Argument(..., help="GitHub login."),
    filter_text: Optional[str] = typer.Option(None, "--filter", "-f", help="Filter repositories by name."),
) -> None:
    """Show a user's profile and repositories."""

    settings = AppSettings()
    browser = _run(_repos(login, filter_text, settings))
    _console.print(build_profile_panel(browser.profile))
    _console.print(build_repos_table(browser.displayed_repos))


async def _avatar(login: str, height: int | None, settings: AppSettings) -> None:
    async with HttpClient(settings) as http:
        api = GitHubApi(http, settings)
        user = await api.fetch_user_by_login(login)
        request = avatar_request(user, height or settings.default_target_height)
        if request is None:
            _console.print(f"[yellow]{login} has no avatar.[/yellow]")
            return
        fetcher = AssetFetcher.from_settings(settings, http)
        with _console.status("Loading avatar...") as status:
            hooks = FetchHooks(on_start=status.start, on_end=status.stop)
            asset = await fetcher.fetch(request, hooks)
        _console.print(f"[green]{describe_asset(asset)}[/green] -> {fetcher.store.path_for(request.key)}")


@app.command()
def avatar(
    login: str = typer.Argument(..., help="GitHub login."),
    height: Optional[int] = typer.Option(
        None,
        "--height",
        min=1,
        help="Target height in pixels (default: OCTOLENS_DEFAULT_TARGET_HEIGHT).",
    ),
) -> None:
    """Fetch (or reuse) a user's avatar through the memory/disk cache."""

    _run(_avatar(login, height, AppSettings()))


def run() -> None:
    app()
