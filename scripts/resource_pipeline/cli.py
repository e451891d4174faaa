"""
Command-line interface for the resource pipeline.
Provides commands to build, ingest, inspect and export stage resources.
"""

import sys
import os
import time
from pathlib import Path
from typing import Optional
import typer
from rich.console import Console
from rich.table import Table
from rich.markup import escape

from .config import BuildConfig, ENV_VARIABLES
from .codec import AnimationRecord, Picture, Spritesheet, Texture, decode_record
from .errors import BuildError, NotFoundError
from .processing.frames import FrameOrigin
from .store import ANIMATIONS, PICTURES, SPRITESHEETS, TEXTURES, ResourceStore
from .utils.image import ImageUtils

# Initialize typer app and rich consoles
app = typer.Typer(
    name="resource-pipeline",
    help="Resource pipeline - pack animations and spritesheets into a stage resource file",
    add_completion=False,
    rich_markup_mode="rich",
    epilog="""
[bold]Examples:[/bold]
  [cyan]resource-pipeline build[/cyan]                                  Build ./stage.res from the default inputs
  [cyan]resource-pipeline ingest --out stage.res[/cyan]                 Store pictures and textures for indexed builds
  [cyan]resource-pipeline build --mode indexed --project assets[/cyan]  Scan assets/ for *.anim.yml descriptors
  [cyan]resource-pipeline inspect stage.res --bucket tags[/cyan]        List stored tags

[bold]Environment Variables:[/bold]
  Use [cyan]resource-pipeline config --env-vars[/cyan] to see all available variables.
    """
)
console = Console()
err_console = Console(stderr=True)


def _fail(message: str) -> None:
    err_console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(1)


@app.command()
def build(
    spritesheets: Optional[Path] = typer.Option(None, "--spritesheets", help="Path to the directory where spritesheets are stored."),
    animations_meta: Optional[Path] = typer.Option(None, "--animations-meta", help="Path to the file where animation descriptions are stored."),
    spritesheets_meta: Optional[Path] = typer.Option(None, "--spritesheets-meta", help="Path to the spritesheets metadata file."),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Resource file to store animations and spritesheets."),
    project: Optional[Path] = typer.Option(None, "--project", "-p", help="Project root to scan for animation descriptor files."),
    suffix: Optional[str] = typer.Option(None, "--suffix", help="File name suffix of animation descriptor files."),
    mode: Optional[str] = typer.Option(None, "--mode", help="Store schema: embedded or indexed."),
    origin: Optional[str] = typer.Option(None, "--origin", help="Frame rectangle origin: top-left or bottom-left."),
    atomic: Optional[bool] = typer.Option(None, "--atomic/--no-atomic", help="Write the whole build in one transaction."),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path"),
    show_summary: bool = typer.Option(True, "--summary/--no-summary", help="Show build summary")
):
    """Build animations, spritesheets and tags into the resource file."""
    config = _load_config(config_file).with_overrides(
        spritesheets_dir=_as_str(spritesheets),
        animations_meta=_as_str(animations_meta),
        spritesheets_meta=_as_str(spritesheets_meta),
        output=_as_str(out),
        project_root=_as_str(project),
        descriptor_suffix=suffix,
        mode=mode,
        origin=origin,
        atomic=atomic,
    )

    console.print(f"[bold blue]Building {config.output} ({config.mode} mode)...[/bold blue]")

    from .pipeline import BuildPipeline

    pipeline = BuildPipeline(config)
    try:
        state = pipeline.run()
    except BuildError as e:
        if e.step:
            err_console.print(f"[red]Failed at step:[/red] {e.step}")
        _fail(str(e))

    console.print("[green]✓ Build completed successfully![/green]")
    if show_summary:
        _display_build_summary(state)


@app.command()
def ingest(
    spritesheets: Optional[Path] = typer.Option(None, "--spritesheets", help="Path to the directory where spritesheets are stored."),
    spritesheets_meta: Optional[Path] = typer.Option(None, "--spritesheets-meta", help="Path to the spritesheets metadata file."),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Resource file to store pictures and textures."),
    texture_filter: Optional[str] = typer.Option(None, "--filter", help="Texture filter: nearest or linear."),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path")
):
    """Store pictures, textures and spritesheet records for indexed builds."""
    config = _load_config(config_file).with_overrides(
        spritesheets_dir=_as_str(spritesheets),
        spritesheets_meta=_as_str(spritesheets_meta),
        output=_as_str(out),
        texture_filter=texture_filter,
        mode="indexed",
    )

    console.print(f"[bold blue]Ingesting {config.spritesheets_dir} into {config.output}...[/bold blue]")

    from .pipeline import BuildPipeline

    try:
        state = BuildPipeline(config).ingest()
    except BuildError as e:
        _fail(str(e))

    console.print(f"[green]✓[/green] Stored {state.pictures_written} pictures")


@app.command()
def inspect(
    store_path: Path = typer.Argument(Path("./stage.res"), help="Resource file to inspect"),
    bucket: Optional[str] = typer.Option(None, "--bucket", "-b", help="Bucket to list"),
    key: Optional[str] = typer.Option(None, "--key", "-k", help="Key to decode (requires --bucket)")
):
    """List buckets and keys of a resource file, or decode one entry."""
    if key and not bucket:
        _fail("--key requires --bucket")
    if not store_path.is_file():
        _fail(f"resource file not found: {store_path}")

    try:
        with ResourceStore(store_path) as store:
            with store.view() as tx:
                if bucket is None:
                    table = Table(title=f"Buckets in {store_path}")
                    table.add_column("Bucket", style="cyan")
                    table.add_column("Entries", style="green")
                    for name in tx.bucket_names():
                        table.add_row(name, str(len(tx.bucket(name))))
                    console.print(table)
                elif key is None:
                    table = Table(title=f"{bucket}")
                    table.add_column("Key", style="cyan")
                    table.add_column("Size", style="green")
                    for entry_key, value in tx.bucket(bucket).items():
                        table.add_row(escape(entry_key), f"{len(value)} bytes")
                    console.print(table)
                else:
                    data = tx.bucket(bucket).get(key)
                    if data is None:
                        raise NotFoundError(f"no key '{key}' in bucket '{bucket}'", bucket=bucket, key=key)
                    _display_record(key, decode_record(data))
    except BuildError as e:
        _fail(str(e))


@app.command()
def export(
    animation: str = typer.Argument(..., help="Animation name"),
    store_path: Path = typer.Option(Path("./stage.res"), "--store", "-s", help="Resource file to read"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="PNG file to write"),
    origin: str = typer.Option("top-left", "--origin", help="Origin the store was built with"),
    padding: int = typer.Option(1, "--padding", help="Gap between frames in pixels")
):
    """Render a stored animation's frames as a PNG strip."""
    if not store_path.is_file():
        _fail(f"resource file not found: {store_path}")

    try:
        frame_origin = FrameOrigin(origin)
    except ValueError:
        _fail(f"invalid origin '{origin}'")

    output = output or Path(f"{animation}.png")

    try:
        with ResourceStore(store_path) as store:
            record, picture = _load_animation_picture(store, animation)
        frames = ImageUtils.crop_frames(picture, record.frames, frame_origin)
        ImageUtils.save_image(ImageUtils.create_frame_strip(frames, padding), output)
    except BuildError as e:
        _fail(str(e))

    console.print(f"[green]✓[/green] Wrote {len(frames)} frames of '{animation}' to {output}")


@app.command()
def config(
    show: bool = typer.Option(False, "--show", help="Show current configuration"),
    validate_config: bool = typer.Option(False, "--validate", help="Validate configuration file"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path"),
    env_vars: bool = typer.Option(False, "--env-vars", help="Show available environment variables")
):
    """Manage pipeline configuration."""
    if env_vars:
        _display_env_vars()
        return

    if show or validate_config:
        build_config = _load_config(config_file)

        if show:
            _display_config(build_config)

        if validate_config:
            errors = build_config.validate()
            if errors:
                err_console.print("[red]Configuration validation errors:[/red]")
                for error in errors:
                    err_console.print(f"  • {error}")
                raise typer.Exit(1)
            else:
                console.print("[green]✓ Configuration is valid[/green]")
    else:
        console.print("Use --show to display configuration, --validate to check it, or --env-vars to see environment variables.")


@app.command()
def version():
    """Show resource pipeline version information."""
    from . import __version__

    console.print("[bold]Resource Pipeline[/bold]")
    console.print(f"Version: {__version__}")
    console.print("Python: " + sys.version.split()[0])


def _as_str(path: Optional[Path]) -> Optional[str]:
    return str(path) if path is not None else None


def _load_config(config_file: Optional[Path]) -> BuildConfig:
    """Load configuration from file or use defaults with environment variable support."""
    build_config = None

    if config_file:
        if not config_file.exists():
            _fail(f"Configuration file not found: {config_file}")
        try:
            build_config = BuildConfig.from_file(config_file)
        except (ValueError, ImportError, OSError) as e:
            _fail(f"Cannot load configuration {config_file}: {e}")
        console.print(f"[dim]Using configuration: {config_file}[/dim]")
    else:
        # Try to find default config files
        default_configs = [
            Path("resource_pipeline.toml"),
            Path("resource_pipeline.json"),
        ]

        for config_path in default_configs:
            if config_path.exists():
                console.print(f"[dim]Using configuration: {config_path}[/dim]")
                try:
                    build_config = BuildConfig.from_file(config_path)
                except (ValueError, ImportError, OSError) as e:
                    _fail(f"Cannot load configuration {config_path}: {e}")
                break

        if build_config is None:
            build_config = BuildConfig()

    env_vars_used = [var for var in ENV_VARIABLES.values() if os.getenv(var)]
    if env_vars_used:
        console.print(f"[dim]Environment overrides applied: {len(env_vars_used)} variables[/dim]")

    return BuildConfig.apply_env_overrides(build_config)


def _load_animation_picture(store: ResourceStore, name: str):
    """Fetch an animation record and the decompressed picture it was sliced from."""
    with store.view() as tx:
        data = tx.bucket(ANIMATIONS).get(name)
        if data is None:
            raise NotFoundError(f"no animation named '{name}' found", bucket=ANIMATIONS, key=name)
        record = decode_record(data)

        # Indexed schema: texture -> picture
        if tx.has_bucket(TEXTURES) and tx.has_bucket(PICTURES):
            texture_data = tx.bucket(TEXTURES).get(record.texture_id)
            if texture_data is not None:
                texture = decode_record(texture_data)
                picture_data = tx.bucket(PICTURES).get(texture.picture_id)
                if picture_data is None:
                    raise NotFoundError(
                        f"no picture named '{texture.picture_id}' found",
                        bucket=PICTURES, key=texture.picture_id,
                    )
                return record, decode_record(picture_data).decompress()

        # Embedded schema: picture under the spritesheet id
        sheet_data = tx.bucket(SPRITESHEETS).get(record.spritesheet_id)
        if sheet_data is None:
            raise NotFoundError(
                f"no spritesheet named '{record.spritesheet_id}' found",
                bucket=SPRITESHEETS, key=record.spritesheet_id,
            )
        picture = decode_record(sheet_data)
        if not isinstance(picture, Picture):
            raise NotFoundError(
                f"spritesheet '{record.spritesheet_id}' holds no picture and no texture '{record.texture_id}' exists",
                bucket=TEXTURES, key=record.texture_id,
            )
        return record, picture.decompress()


def _display_record(key: str, record) -> None:
    """Display one decoded record."""
    table = Table(title=key, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    if isinstance(record, AnimationRecord):
        table.add_row("Type", "animation")
        table.add_row("Spritesheet", record.spritesheet_id)
        table.add_row("Texture", record.texture_id)
        for i, (rect, duration) in enumerate(zip(record.frames, record.durations)):
            table.add_row(f"Frame {i}", f"({rect.x}, {rect.y}, {rect.w}, {rect.h}) for {duration}")
    elif isinstance(record, Picture):
        table.add_row("Type", "picture")
        table.add_row("Size", f"{record.width}×{record.height}")
        table.add_row("Compressed bytes", str(len(record.pixels)))
    elif isinstance(record, Texture):
        table.add_row("Type", "texture")
        table.add_row("Picture", record.picture_id)
        table.add_row("Filter", record.filter)
    elif isinstance(record, Spritesheet):
        table.add_row("Type", "spritesheet")
        table.add_row("Cell size", f"{record.width}×{record.height}")
    else:
        table.add_row("Type", "tag")
        table.add_row("Animations", escape(", ".join(record)) if record else "(none)")

    console.print(table)


def _display_build_summary(state) -> None:
    """Display build execution summary."""
    total_duration = 0.0
    if state.start_time:
        total_duration = time.time() - state.start_time

    console.print("\n[bold]Build Summary[/bold]")
    console.print("=" * 50)

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Total execution time", f"{total_duration:.2f}s")
    table.add_row("Descriptors loaded", str(state.descriptors_loaded))
    table.add_row("Spritesheets stored", str(state.pictures_written))
    table.add_row("Animations stored", str(state.animations_written))
    table.add_row("Tags stored", str(state.tags_written))

    console.print(table)

    if state.step_results:
        step_table = Table()
        step_table.add_column("Step", style="cyan")
        step_table.add_column("Status", width=8)
        step_table.add_column("Duration", style="yellow")

        for step, result in state.step_results.items():
            status = "[green]✓[/green]" if result.success else "[red]✗[/red]"
            step_table.add_row(step.value, status, f"{result.duration:.2f}s")

        console.print(step_table)


def _display_config(build_config: BuildConfig) -> None:
    """Display configuration in a formatted table."""
    table = Table(title="Resource Pipeline Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Spritesheets Directory", build_config.spritesheets_dir)
    table.add_row("Animations Metadata", build_config.animations_meta)
    table.add_row("Spritesheets Metadata", build_config.spritesheets_meta)
    table.add_row("Project Root", build_config.project_root or "(single file)")
    table.add_row("Descriptor Suffix", build_config.descriptor_suffix)
    table.add_row("Output", build_config.output)
    table.add_row("Mode", build_config.mode)
    table.add_row("Frame Origin", build_config.origin)
    table.add_row("Atomic", str(build_config.atomic))
    table.add_row("Texture Filter", build_config.texture_filter)
    table.add_row("Log Level", build_config.log_level)

    console.print(table)


def _display_env_vars() -> None:
    """Display available environment variables for configuration."""
    table = Table(title="Resource Pipeline Environment Variables")
    table.add_column("Environment Variable", style="cyan")
    table.add_column("Setting", style="white")

    for setting, var_name in ENV_VARIABLES.items():
        table.add_row(var_name, setting)

    console.print(table)
    console.print("\n[dim]Set these environment variables to override configuration file settings.[/dim]")


if __name__ == "__main__":
    app()
