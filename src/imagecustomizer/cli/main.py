"""Main CLI implementation using Typer."""

import asyncio
import os
from pathlib import Path
from typing import Any, Callable, Coroutine, List, Optional

import typer
from rich.console import Console

from imagecustomizer.config import ConfigManager
from imagecustomizer.customizer import customize_image
from imagecustomizer.errors import CustomizationError
from imagecustomizer.utils.logging import setup_logging


# Create Typer app
app = typer.Typer(
    name="imagecustomizer",
    help="Customize an unpacked OS image root",
    add_completion=False,
)

# Console for rich output
console = Console()


def _run_cli_command(handler: Callable[..., Coroutine[Any, Any, Any]], **kwargs: Any) -> Any:
    """Helper to run an async command with error handling."""
    try:
        return asyncio.run(handler(**kwargs))
    except CustomizationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


def _resolve_log_level(log_level: Optional[str], config_level: str) -> str:
    """Command line wins over the environment, which wins over the config."""
    return log_level or os.environ.get("IMAGECUSTOMIZER_LOG_LEVEL") or config_level


async def _customize(
    config_file: Path,
    image_dir: Path,
    build_dir: Path,
    package_sources: List[Path],
    use_base_repos: bool,
    log_level: Optional[str],
):
    config = await ConfigManager(config_file).load()
    setup_logging(_resolve_log_level(log_level, config.log_level))
    await customize_image(
        config_file,
        image_dir,
        build_dir,
        package_sources=package_sources,
        use_base_repos=use_base_repos,
        config=config,
    )


async def _validate(config_file: Path):
    return await ConfigManager(config_file).load()


@app.command("customize")
def customize_command(
    config_file: Path = typer.Option(..., "--config-file", "-c", help="Customization config file"),
    image_dir: Path = typer.Option(..., "--image-dir", "-i", help="Unpacked image root to customize"),
    build_dir: Path = typer.Option(..., "--build-dir", "-b", help="Scratch directory for the build"),
    package_sources: Optional[List[Path]] = typer.Option(
        None, "--package-source", "-p", help="Local package repository directory (repeatable)"
    ),
    disable_base_repos: bool = typer.Option(
        False, "--disable-base-repos", help="Only install packages from --package-source"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", "-l", help="Log level"),
):
    """Apply a customization config to an image root."""
    _run_cli_command(
        _customize,
        config_file=config_file,
        image_dir=image_dir,
        build_dir=build_dir,
        package_sources=package_sources or [],
        use_base_repos=not disable_base_repos,
        log_level=log_level,
    )
    console.print(f"[green]Customized[/green] {image_dir}")


@app.command("validate")
def validate_command(
    config_file: Path = typer.Option(..., "--config-file", "-c", help="Customization config file"),
):
    """Validate a customization config file."""
    config = _run_cli_command(_validate, config_file=config_file)
    system_config = config.system_config
    console.print(f"[green]Valid[/green] {config_file}")
    console.print(f"  users: {len(system_config.users)}")
    console.print(
        f"  scripts: {len(system_config.post_install_scripts) + len(system_config.finalize_image_scripts)}"
    )


def main():
    """Main entry point for CLI."""
    app()
