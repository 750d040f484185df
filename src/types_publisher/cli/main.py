import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .. import config
from ..config import Settings, set_config_value
from ..data.store import PublisherDataStore
from ..domain.errors import TypesPublisherError
from ..npm.cache import NpmInfoCacheStore
from ..npm.client import CachedNpmInfoClient, UncachedNpmInfoClient
from ..npm.publish import NpmPublishClient
from ..services.publish_registry import PublishRegistryService, RegistryState

app = typer.Typer()
cache_app = typer.Typer()
config_app = typer.Typer()
console = Console()

app.add_typer(cache_app, name="cache", help="Manage the npm info cache")
app.add_typer(config_app, name="config", help="Manage configuration values")


def get_settings() -> Settings:
    return Settings.load(config.CONFIG_FILE)


@app.callback()
def main_callback(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging")):
    """publish and maintain packages on the npm registry."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@app.command("publish-registry")
def publish_registry(dry: bool = typer.Option(False, "--dry", help="Generate but do not publish")):
    """publish a new types-registry if packages were added."""
    settings = get_settings()
    store = PublisherDataStore(settings.data_dir)
    if not store.has_typings():
        console.print("[red]Run parse-definitions first![/red]")
        raise typer.Exit(code=1)

    async def publish() -> RegistryState:
        async with UncachedNpmInfoClient(settings=settings) as info_client:
            return await PublishRegistryService(info_client, store, settings).run(dry)

    try:
        state = asyncio.run(publish())
    except TypesPublisherError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if state is RegistryState.CHANGED:
        console.print("[green]✓ types-registry published[/green]" + (" (dry run)" if dry else ""))


@app.command()
def info(
    package_name: str,
    content_hash: Optional[str] = typer.Option(None, "--hash", help="Content hash to validate the cache against"),
):
    """show registry metadata for a package."""
    settings = get_settings()

    async def lookup(client: CachedNpmInfoClient):
        return await client.get_npm_info(package_name, content_hash)

    async def fetch():
        async with UncachedNpmInfoClient(settings=settings) as uncached:
            return await CachedNpmInfoClient.run(uncached, lookup, settings.cache_file)

    try:
        npm_info = asyncio.run(fetch())
    except TypesPublisherError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if npm_info is None:
        console.print(f"[red]Package '{package_name}' not found in registry.[/red]")
        raise typer.Exit(code=1)

    table = Table(title=f"{package_name} (modified {npm_info.time_modified})")
    table.add_column("Version", style="cyan")
    table.add_column("Tags", style="green")
    table.add_column("Content hash", style="dim")
    table.add_column("Deprecated", style="yellow")

    tags_by_version = {}
    for tag, version in npm_info.dist_tags.items():
        tags_by_version.setdefault(version, []).append(tag)

    for version, version_info in npm_info.versions.items():
        table.add_row(
            version,
            ", ".join(tags_by_version.get(version, [])),
            version_info.types_publisher_content_hash or "",
            version_info.deprecated or "",
        )
    console.print(table)


@app.command()
def downloads(package_name: str):
    """show last month's download count for a package."""
    settings = get_settings()

    async def fetch() -> int:
        async with UncachedNpmInfoClient(settings=settings) as client:
            return await client.get_downloads(package_name)

    try:
        count = asyncio.run(fetch())
    except TypesPublisherError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"{package_name}: [bold]{count}[/bold] downloads last month")


@app.command()
def tag(package_name: str, version: str, tag_name: str):
    """point a dist-tag at a version."""
    async def update():
        async with NpmPublishClient.create(get_settings()) as client:
            await client.tag(package_name, version, tag_name)

    try:
        asyncio.run(update())
    except TypesPublisherError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] {package_name}@{version} tagged as {tag_name}")


@app.command()
def deprecate(package_name: str, version: str, message: str):
    """deprecate a single version of a package."""
    async def update():
        async with NpmPublishClient.create(get_settings()) as client:
            await client.deprecate(package_name, version, message)

    try:
        asyncio.run(update())
    except TypesPublisherError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(Panel.fit(
        f"[bold yellow]Deprecated[/bold yellow] {package_name}@{version}\n{message}",
        border_style="yellow",
    ))


@cache_app.command("clear")
def cache_clear():
    """delete the npm info cache file."""
    settings = get_settings()
    if NpmInfoCacheStore(settings.cache_file).clear():
        console.print("[green]✓ npm info cache cleared[/green]")
    else:
        console.print("[dim]npm info cache is already empty[/dim]")


@config_app.command("set")
def config_set(key: str, value: str):
    """store a configuration value, e.g. NPM_TOKEN or TYPES_PUBLISHER_NPM_REGISTRY."""
    try:
        set_config_value(key, value, config.CONFIG_FILE)
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] {key} saved to {config.CONFIG_FILE}")


if __name__ == "__main__":
    app()
