"""sysfetch CLI - Main entry point."""

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console

from sysfetch import __version__

console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def setup_logging(debug: bool = False) -> None:
    """Send diagnostics to stderr; quiet unless ``debug`` is set."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def _load(config_path, **overrides):
    from sysfetch.config.loader import ConfigError, load_config

    try:
        return load_config(Path(config_path) if config_path else None, **overrides)
    except ConfigError as e:
        err_console.print(f"[red]{e}[/red]")
        raise SystemExit(1)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="sysfetch")
@click.pass_context
def cli(ctx):
    """sysfetch - host facts beside an ASCII logo.

    Runs ``show`` when no command is given.
    """
    if ctx.invoked_subcommand is None:
        ctx.invoke(show)


@cli.command()
@click.option("--config", "config_path", type=click.Path(), help="Path to a YAML configuration file")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--no-cache", is_flag=True, help="Ignore and do not update the fact cache")
@click.option("--logo", help="Logo key, path to a logo file, or 'none'")
@click.option(
    "--logo-dir",
    type=click.Path(path_type=Path),
    help="Directory of <key>.txt logo files",
)
@click.option("--width", type=int, help="Maximum output width in columns")
@click.option("--json", "as_json", is_flag=True, help="Print collected facts as JSON")
@click.option("--debug", is_flag=True, help="Log diagnostics to stderr")
def show(config_path, no_color, no_cache, logo, logo_dir, width, as_json, debug):
    """Collect host facts and render the report."""
    from sysfetch.collectors.registry import build_adapter_table
    from sysfetch.facts.errors import LogoError
    from sysfetch.hardware.fingerprint import HostFingerprint
    from sysfetch.hardware.profile import detect
    from sysfetch.reporters.logos import ArtBlock, select_art
    from sysfetch.reporters.renderer import render
    from sysfetch.reporters.theme import Theme
    from sysfetch.runners.orchestrator import Orchestrator
    from sysfetch.storage.cache_store import CacheStore

    setup_logging(debug)
    config = _load(
        config_path,
        use_color=False if no_color else None,
        logo=logo,
        logo_dir=logo_dir,
        width=width,
    )
    if no_cache:
        config = config.model_copy(
            update={"cache": config.cache.model_copy(update={"enabled": False})}
        )

    profile = detect()
    logger.debug(f"Platform: {profile.family.value} ({profile.distro or 'unknown distro'})")

    art = ArtBlock.empty()
    if not as_json:
        try:
            art = select_art(profile, config.logo, config.logo_dir)
        except LogoError as e:
            err_console.print(f"[red]{e}[/red]")
            raise SystemExit(1)

    adapters = build_adapter_table(profile, config)
    cache = None
    fingerprint = None
    if config.cache.enabled:
        cache = CacheStore(config.cache)
        fingerprint = HostFingerprint.generate(profile)

    if config.progressive_display and not as_json and err_console.is_terminal:
        with err_console.status("Collecting system facts...") as status:
            orchestrator = Orchestrator(
                config,
                cache=cache,
                fingerprint=fingerprint,
                on_fact=lambda fact: status.update(f"Collected {fact.label}"),
            )
            snapshot = orchestrator.run(profile, adapters)
    else:
        snapshot = Orchestrator(config, cache=cache, fingerprint=fingerprint).run(profile, adapters)

    if as_json:
        click.echo(json.dumps(snapshot.to_dict(), indent=2))
        return

    theme = Theme.from_config(config.theme, enabled=config.use_color and console.is_terminal)
    output_width = config.width or (console.width if console.is_terminal else None)
    click.echo(render(snapshot, art, theme, config, width=output_width))


@cli.command()
@click.option("--verbose", is_flag=True, help="Show the inputs the fingerprint is derived from")
def fingerprint(verbose):
    """Display the host fingerprint used to validate the cache."""
    from sysfetch.hardware.fingerprint import HostFingerprint
    from sysfetch.hardware.profile import detect

    profile = detect()
    identity = HostFingerprint.detect_identity(profile)
    if verbose:
        console.print()
        console.print("[bold]Host Identity[/bold]")
        console.print(f"  Hostname: {identity.hostname}")
        console.print(f"  Kernel: {identity.kernel or 'unknown'}")
        console.print(f"  Boot time: {identity.boot_time or 'unknown'}")
        console.print(f"  Platform: {profile.family.value}")
        if profile.pretty_name:
            console.print(f"  OS: {profile.pretty_name}")

    fp = HostFingerprint._format_fingerprint(identity)
    console.print(f"\n[bold green]Host Fingerprint:[/bold green] {fp}")


@cli.group()
def cache():
    """Manage the fact cache."""


@cache.command("clear")
@click.option("--config", "config_path", type=click.Path(), help="Path to a YAML configuration file")
def cache_clear(config_path):
    """Delete this host's cache file."""
    from sysfetch.storage.cache_store import CacheStore

    store = CacheStore(_load(config_path).cache)
    if store.clear():
        console.print(f"[green]Removed[/green] {store.path}")
    else:
        console.print(f"No cache file at {store.path}")


@cache.command("path")
@click.option("--config", "config_path", type=click.Path(), help="Path to a YAML configuration file")
def cache_path(config_path):
    """Print where this host's cache file lives."""
    from sysfetch.storage.cache_store import CacheStore

    click.echo(str(CacheStore(_load(config_path).cache).path))


@cli.command()
@click.option(
    "--logo-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Also list logos found in this directory",
)
def logos(logo_dir):
    """List available logo keys."""
    from sysfetch.reporters.logos import builtin_keys

    console.print("[bold]Built-in logos[/bold]")
    for key in builtin_keys():
        console.print(f"  {key}")

    if logo_dir:
        keys = sorted(p.stem for p in logo_dir.glob("*.txt"))
        console.print(f"\n[bold]Logos in {logo_dir}[/bold]")
        if not keys:
            console.print("  [dim]none[/dim]")
        for key in keys:
            console.print(f"  {key}")


if __name__ == "__main__":
    cli()
