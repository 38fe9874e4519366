"""Command-line interface for addon_updates.

Each command is one trigger point: it runs the relevant operation to
completion and exits.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from addon_updates.cache import SqliteCacheStore
from addon_updates.config import load_config
from addon_updates.errors import UpdatesError
from addon_updates.inventory import get_inventory
from addon_updates.models import ErrorInfo
from addon_updates.updater import AddonUpdater

app = typer.Typer(
    name="addon-updates",
    help="License and update checks for vendor add-ons.",
    no_args_is_help=True,
)
license_app = typer.Typer(help="Show, activate or deactivate the license key.")
app.add_typer(license_app, name="license")

console = Console()
err_console = Console(stderr=True)

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)
logger = logging.getLogger("addon_updates")


@dataclass
class _Settings:
    config: Path
    inventory: Optional[str]
    db: Optional[Path]
    identifier_prefix: Optional[str]


def _setup_logging(verbose: bool) -> None:
    """Configure logging level based on verbosity flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.getLogger("addon_updates").setLevel(level)


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[
        Path,
        typer.Option(
            "--config",
            "-c",
            envvar="ADDON_UPDATES_CONFIG",
            help="TOML file with the updater settings",
        ),
    ] = Path("addon-updates.toml"),
    inventory: Annotated[
        Optional[str],
        typer.Option(
            "--inventory",
            "-i",
            envvar="ADDON_UPDATES_INVENTORY",
            help="Component manifest (.toml) or 'dist:<prefix>'",
        ),
    ] = None,
    db: Annotated[
        Optional[Path],
        typer.Option(
            "--db",
            envvar="ADDON_UPDATES_DB",
            help="SQLite file for cached data and options",
        ),
    ] = None,
    identifier_prefix: Annotated[
        Optional[str],
        typer.Option(
            "--identifier-prefix",
            help="Prefix added to slugs to build remote identifiers",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output",
        ),
    ] = False,
) -> None:
    _setup_logging(verbose)
    ctx.obj = _Settings(
        config=config,
        inventory=inventory,
        db=db,
        identifier_prefix=identifier_prefix,
    )


def _build_updater(settings: _Settings) -> AddonUpdater:
    try:
        config = load_config(settings.config)
        source = settings.inventory or str(settings.config.parent / "components.toml")
        inventory = get_inventory(source, settings.identifier_prefix)
        # Fail here on an unreadable manifest rather than mid-command
        inventory.list_components()
    except (FileNotFoundError, ValueError, UpdatesError) as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    return AddonUpdater.from_paths(config, inventory, settings.db)


def _fail(e: Exception) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {e}")
    raise typer.Exit(code=1)


async def _run_check(updater: AddonUpdater) -> int:
    async with updater:
        data = await updater.versions.get_update_data()
        offers = await updater.updates.get_update_offers()

    if not offers:
        console.print("[yellow]No version data available[/yellow]")

    else:
        table = Table(title="Add-on updates")
        table.add_column("Add-on")
        table.add_column("Installed")
        table.add_column("Latest")
        table.add_column("Status")

        for offer in offers:
            if not offer.has_update:
                status = "[green]up to date[/green]"
            elif offer.needs_license:
                status = "[yellow]update available, activate your license key[/yellow]"
            else:
                status = "[bold]update available[/bold]"

            table.add_row(
                offer.component.slug,
                offer.component.installed_version,
                offer.info.version,
                status,
            )

        console.print(table)

    errors = {k: v for k, v in data.items() if isinstance(v, ErrorInfo)}
    for identifier, error in sorted(errors.items()):
        err_console.print(f"[yellow]{identifier}:[/yellow] {error.message}")

    count = sum(1 for offer in offers if offer.has_update)
    console.print(f"Updates available: [bold]{count}[/bold]")
    return 0


@app.command()
def check(ctx: typer.Context) -> None:
    """Check every installed add-on for updates."""
    updater = _build_updater(ctx.obj)
    raise typer.Exit(code=asyncio.run(_run_check(updater)))


@app.command()
def count(ctx: typer.Context) -> None:
    """Print the cached number of available updates (no network access)."""
    updater = _build_updater(ctx.obj)
    console.print(updater.updates.get_update_count())


@app.command()
def info(
    ctx: typer.Context,
    identifier: Annotated[str, typer.Argument(help="Add-on identifier or slug")],
) -> None:
    """Show remote version information for one add-on."""
    updater = _build_updater(ctx.obj)

    async def run_info():
        async with updater:
            return await updater.versions.get_component_info(identifier)

    try:
        version_info = asyncio.run(run_info())
    except UpdatesError as e:
        _fail(e)

    if version_info is None:
        console.print(f"[yellow]No package is hosted for {identifier}[/yellow]")
        raise typer.Exit(code=0)

    console.print(f"[bold]{version_info.name or version_info.slug}[/bold]")
    console.print(f"Version: {version_info.version}")
    if version_info.requires_php:
        console.print(f"Requires PHP: {version_info.requires_php}")
    if version_info.download_link:
        console.print(f"Download: {version_info.download_link}")
    else:
        console.print("[yellow]To update, please activate your license key.[/yellow]")
    if version_info.description:
        console.print(version_info.description)


@license_app.command("show")
def license_show(
    ctx: typer.Context,
    remote: Annotated[
        bool,
        typer.Option(
            "--remote/--local",
            help="Resolve the key remotely or only print the stored key",
        ),
    ] = True,
) -> None:
    """Show the active license key and its remote status."""
    updater = _build_updater(ctx.obj)

    async def run_show():
        async with updater:
            return await updater.licenses.get_license_details(include_remote=remote)

    try:
        license = asyncio.run(run_show())
    except UpdatesError as e:
        _fail(e)

    if license is None:
        console.print("[yellow]No active license key[/yellow]")
        raise typer.Exit(code=0)

    console.print(f"[bold]License key:[/bold] {license.key}")
    if remote:
        console.print(f"[bold]Active on this site:[/bold] {license.is_active_on_site}")
        console.print(f"[bold]Membership:[/bold] {license.is_membership}")


@license_app.command("activate")
def license_activate(
    ctx: typer.Context,
    license_key: Annotated[str, typer.Argument(help="The license key to activate")],
) -> None:
    """Activate a license key for this site."""
    updater = _build_updater(ctx.obj)

    async def run_activate():
        async with updater:
            return await updater.licenses.activate(license_key)

    try:
        result = asyncio.run(run_activate())
    except (UpdatesError, ValueError) as e:
        err_console.print(
            f"[red]There was an error activating your license key:[/red] {e}"
        )
        raise typer.Exit(code=1)

    console.print(f"[green]{result.message}[/green]")


@license_app.command("deactivate")
def license_deactivate(ctx: typer.Context) -> None:
    """Deactivate the active license key for this site."""
    updater = _build_updater(ctx.obj)

    async def run_deactivate():
        async with updater:
            return await updater.licenses.deactivate()

    try:
        result = asyncio.run(run_deactivate())
    except UpdatesError as e:
        err_console.print(
            f"[red]There was an error deactivating your license key:[/red] {e}"
        )
        raise typer.Exit(code=1)

    console.print(f"[green]{result.message}[/green]")


@app.command()
def cache(
    ctx: typer.Context,
    action: Annotated[
        str,
        typer.Argument(help="Cache action: 'show' or 'clear'"),
    ],
) -> None:
    """Manage cached update and license data.

    Actions:
        show  - Display cache location, entry count, and size
        clear - Clear all cached entries
    """
    settings: _Settings = ctx.obj
    cache_instance = SqliteCacheStore(settings.db)

    if action == "show":
        cache_info = cache_instance.info()
        console.print(f"[bold]Cache Location:[/bold] {cache_info['path']}")
        console.print(f"[bold]Entries:[/bold] {cache_info['count']}")
        console.print(f"[bold]Size:[/bold] {cache_info['size_bytes'] / 1024:.1f} KB")

    elif action == "clear":
        cache_instance.clear()
        console.print("[green]Cache cleared[/green]")

    else:
        err_console.print(f"[red]Unknown action:[/red] {action}")
        err_console.print("Valid actions: show, clear")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
