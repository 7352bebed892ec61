"""Componentes de UI para CLI (Rich).

Mantiene tablas y paneles fuera de los comandos para reutilizarlos.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import CachedAsset, UserProfile, record_int, record_str


def print_banner(console: Console) -> None:
    title = Text("octolens", style="bold cyan")
    subtitle = Text("GitHub users • repos • avatar cache", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_users_table(records: Iterable[Mapping[str, Any]], *, title: str = "Users") -> Table:
    table = Table(title=title)
    table.add_column("Login", style="cyan", no_wrap=True)
    table.add_column("ID", style="white")
    table.add_column("Avatar", style="magenta")
    for record in records:
        user_id = record_int(record, "id")
        table.add_row(
            record_str(record, "login") or "-",
            str(user_id) if user_id is not None else "-",
            record_str(record, "avatar_url") or "-",
        )
    return table


def build_repos_table(records: Iterable[Mapping[str, Any]], *, title: str = "Repositories") -> Table:
    table = Table(title=title)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Stars", style="yellow", justify="right")
    table.add_column("Forks", style="green", justify="right")
    for record in records:
        stars = record_int(record, "watchers_count")
        forks = record_int(record, "forks_count")
        table.add_row(
            record_str(record, "name") or "-",
            str(stars) if stars is not None else "-",
            str(forks) if forks is not None else "-",
        )
    return table


def build_profile_panel(profile: UserProfile) -> Panel:
    """Panel con los campos que el perfil tenga; los ausentes no se muestran."""

    body = Text()
    if profile.followers is not None:
        body.append(f"{profile.followers} Followers\n")
    if profile.following is not None:
        body.append(f"{profile.following} Following\n")
    if profile.public_repos is not None:
        body.append(f"{profile.public_repos} Repos\n")
    if profile.email:
        body.append(f"{profile.email}\n")
    if profile.location:
        body.append(f"{profile.location}\n")
    if profile.created_at:
        body.append(f"Join Dt: {profile.created_at}\n", style="dim")

    title = Text(profile.login or "unknown", style="bold yellow")
    return Panel(body, title=title, border_style="yellow")


def describe_asset(asset: CachedAsset) -> str:
    return f"{asset.width}x{asset.height} {asset.mode}"
