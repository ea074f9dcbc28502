#!/usr/bin/env python3
"""
CLI module for Effect Pie - Command-Line Interface

Decodes images, runs them through the effects engine (dither, ASCII or
halftone) and writes PNG results. Uses Rich for terminal output.
"""

import sys
import logging
import argparse
import json
from pathlib import Path
from typing import Optional, List, Dict, Any

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
from rich.panel import Panel
from rich.table import Table
from PIL import Image, UnidentifiedImageError

from config_manager import DEFAULT_CONFIG, ConfigManager, ConfigValidationError, build_effect_config
from effect_config import (
    Color, DitherAlgorithm, EffectConfig, EffectType, InvalidColorError, parse_hex_color
)
from effects_lib import EffectDispatcher
from raster_buffer import EffectError, RasterBuffer
from utils import PaletteManager, image_to_raster, raster_to_image, validate_image_file


console = Console()

logger = logging.getLogger('effect_cli')


def setup_logging(verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None):
    """
    Setup logging with Rich handler for terminal output.

    Args:
        verbose: Enable verbose (DEBUG) logging
        quiet: Suppress all but ERROR messages
        log_file: Optional path to log file
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    handlers = []

    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=True,
        rich_tracebacks=True
    )
    handlers.append(rich_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setFormatter(
            logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True
    )

    logger.setLevel(level)
    return logger


class FolderProgress:
    """
    Rich progress bar counting finished files of a folder run.
    """

    def __init__(self, total: int, description: str = "Rendering images..."):
        self.total = total
        self.description = description
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console
        )
        self.task = None

    def __enter__(self):
        self.progress.start()
        self.task = self.progress.add_task(self.description, total=self.total)
        return self

    def __exit__(self, *args):
        self.progress.stop()

    def working_on(self, path: Path, index: int):
        self.progress.update(self.task, description=f"{path.name} ({index + 1}/{self.total})")

    def advance(self):
        self.progress.advance(self.task)


# ==================== Image Processing ====================

def render_image(image: Image.Image, effect_config: EffectConfig, enlarge: bool = False,
                 dispatcher: Optional[EffectDispatcher] = None) -> Image.Image:
    """
    Run one decoded image through the engine.

    Args:
        image: Source PIL image (any mode; alpha is ignored)
        effect_config: Effect parameters
        enlarge: Block-enlarge dither output by round(point_size)
        dispatcher: Dispatcher to use, a fresh one by default

    Returns:
        RGB PIL image
    """
    dispatcher = dispatcher or EffectDispatcher()
    result: RasterBuffer = dispatcher.apply(image_to_raster(image), effect_config)

    dithered = effect_config.effects_enabled and effect_config.effect_type == EffectType.DITHER
    if enlarge and dithered:
        factor = max(1, round(effect_config.point_size))
        result = result.upscale(factor)
        logger.debug(f"Enlarged x{factor} to {result.width}x{result.height}")

    return raster_to_image(result).convert('RGB')


def process_single_image(input_path: Path, output_path: Path, effect_config: EffectConfig,
                         enlarge: bool = False) -> bool:
    """
    Process a single image file.

    Returns:
        True if successful, False otherwise
    """
    try:
        logger.info(f"Loading image: [cyan]{input_path.name}[/]")
        with Image.open(input_path) as image:
            image.load()
            logger.info(f"Image size: [cyan]{image.size[0]}x{image.size[1]}[/]")
            result = render_image(image, effect_config, enlarge=enlarge)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Saving to: [cyan]{output_path}[/]")
        result.save(output_path, format="PNG")

        size_kb = output_path.stat().st_size / 1024
        logger.info(f"[bold green]✓ Image saved successfully![/] "
                    f"{result.size[0]}x{result.size[1]} ({size_kb:.1f} KB)")
        return True

    except (OSError, UnidentifiedImageError, EffectError) as e:
        logger.error(f"Failed to process image: {e}", exc_info=True)
        return False


def process_folder(input_dir: Path, output_dir: Path, effect_config: EffectConfig,
                   enlarge: bool = False) -> bool:
    """
    Process every image in a directory into output_dir/<stem>_<effect>.png.

    Returns:
        True if every image succeeded
    """
    files = sorted(p for p in input_dir.iterdir() if validate_image_file(str(p)))
    if not files:
        logger.error(f"No images found in: {input_dir}")
        return False

    effect = effect_config.effect_type if effect_config.effects_enabled else EffectType.NONE
    failures = 0
    with FolderProgress(len(files)) as progress:
        for i, path in enumerate(files):
            progress.working_on(path, i)
            out = output_dir / f"{path.stem}_{effect.value}.png"
            if not process_single_image(path, out, effect_config, enlarge=enlarge):
                failures += 1
            progress.advance()

    if failures:
        logger.error(f"{failures} of {len(files)} images failed")
    return failures == 0


# ==================== Console Output ====================

def show_banner():
    """Display application banner."""
    banner = """
[bold cyan]╔═══════════════════════════════════════╗[/]
[bold cyan]║[/]      [bold white]Effect Pie CLI[/] [dim]- v1.0[/]           [bold cyan]║[/]
[bold cyan]║[/]  Dither · ASCII · Halftone            [bold cyan]║[/]
[bold cyan]╚═══════════════════════════════════════╝[/]
"""
    console.print(banner)


def show_choices(palettes: PaletteManager):
    """List effects, dither algorithms and palettes."""
    console.print("  [bold]Effects:[/]")
    for effect in EffectType:
        console.print(f"    • [cyan]{effect.value}[/]")

    console.print("  [bold]Dither Algorithms:[/]")
    for algorithm in DitherAlgorithm:
        console.print(f"    • [cyan]{algorithm.value}[/]")

    table = Table(title="Palettes")
    table.add_column("Name", style="cyan")
    table.add_column("Ink")
    table.add_column("Paper")
    for name in palettes.list_palette_names():
        pal = palettes.get_palette(name)
        table.add_row(name, pal['ink'], pal['paper'])
    console.print(table)


def manage_palettes(palettes: PaletteManager, add: Optional[List[str]],
                    remove: Optional[str]) -> bool:
    """
    Add or remove a custom ink/paper palette in the palette file.

    Returns:
        True if successful, False otherwise
    """
    if add:
        name, ink, paper = add
        try:
            ink, paper = (Color(*parse_hex_color(c)).to_hex() for c in (ink, paper))
        except InvalidColorError as e:
            console.print(f"[bold red]✗ {e}[/]")
            return False
        palettes.add_palette(name, ink, paper)
        console.print(f"[green]✓[/] Saved palette [cyan]{name}[/] to {palettes.filepath}")
    if remove:
        if not any(p['name'] == remove for p in palettes.palettes):
            console.print(f"[bold red]✗ No custom palette named '{remove}'[/]")
            return False
        palettes.remove_palette(remove)
        console.print(f"[green]✓[/] Removed palette [cyan]{remove}[/]")
    return True


def generate_example_config():
    """Print an example job configuration."""
    example = {"_comment": "Effect Pie CLI Configuration"}
    example.update(json.loads(json.dumps(DEFAULT_CONFIG)))
    example["input"] = "path/to/input.png"
    example["output"] = "path/to/output.png"
    example["_comment_effect"] = "type: dither, ascii, halftone or none"

    example_json = json.dumps(example, indent=4)
    console.print("\n[bold cyan]Example Configuration:[/]\n")
    console.print(Panel(example_json, title="config.json", border_style="cyan"))
    console.print("\n[dim]Save this to a .json file and modify as needed.[/]\n")


# ==================== Arguments ====================

# (argument dest, config keys)
_OVERRIDES = [
    ("input", ("input",)),
    ("output", ("output",)),
    ("effect", ("effect", "type")),
    ("algorithm", ("effect", "algorithm")),
    ("point_size", ("effect", "point_size")),
    ("ink", ("effect", "ink")),
    ("paper", ("effect", "paper")),
    ("brightness", ("effect", "brightness")),
    ("contrast", ("effect", "contrast")),
    ("detail", ("effect", "detail")),
    ("src_brightness", ("source", "brightness")),
    ("src_contrast", ("source", "contrast")),
    ("src_saturation", ("source", "saturation")),
    ("palette", ("palette",)),
]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="effect-cli",
        description="Effect Pie CLI - dither, ASCII and halftone image effects"
    )
    parser.add_argument('config', nargs='?', help='Path to JSON configuration file')
    parser.add_argument('--input', '-i', help='Input image or directory')
    parser.add_argument('--output', '-o', help='Output PNG path or directory')
    parser.add_argument('--effect', '-e', help='dither, ascii, halftone or none')
    parser.add_argument('--algorithm', '-a', help='Error-diffusion kernel for dither')
    parser.add_argument('--point-size', '-p', type=float, help='Block / glyph / dot size')
    parser.add_argument('--ink', help='Ink color, hex')
    parser.add_argument('--paper', help='Paper (background) color, hex')
    parser.add_argument('--palette', help='Named ink/paper palette')
    parser.add_argument('--palette-file', default='palette.json', help='Custom palette JSON file')
    parser.add_argument('--brightness', type=float, help='Effect brightness')
    parser.add_argument('--contrast', type=float, help='Effect contrast')
    parser.add_argument('--detail', type=float, help='Detail blend (dither, halftone)')
    parser.add_argument('--src-brightness', type=float, help='Source brightness')
    parser.add_argument('--src-contrast', type=float, help='Source contrast')
    parser.add_argument('--src-saturation', type=float, help='Source saturation')
    parser.add_argument('--no-effects', action='store_true', help='Only apply source adjustments')
    parser.add_argument('--enlarge', action='store_true', help='Block-enlarge dither output')
    parser.add_argument('--example-config', action='store_true', help='Print an example config')
    parser.add_argument('--list', action='store_true', help='List effects, algorithms and palettes')
    parser.add_argument('--add-palette', nargs=3, metavar=('NAME', 'INK', 'PAPER'),
                        help='Save a custom ink/paper palette to the palette file')
    parser.add_argument('--remove-palette', metavar='NAME',
                        help='Remove a custom palette from the palette file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--quiet', '-q', action='store_true', help='Quiet mode (errors only)')
    parser.add_argument('--log-file', type=str, help='Log to file')
    return parser


def load_job(args: argparse.Namespace) -> ConfigManager:
    """Build the job configuration from an optional JSON file plus CLI overrides."""
    manager = ConfigManager.from_file(args.config) if args.config else ConfigManager()
    for dest, keys in _OVERRIDES:
        value = getattr(args, dest)
        if value is not None:
            # paths given on the command line are relative to the cwd, not the config file
            if dest in ("input", "output"):
                value = str(Path(value).resolve())
            manager.set(*keys, value=value)
    if args.no_effects:
        manager.set("effects_enabled", value=False)
    if args.enlarge:
        manager.set("enlarge", value=True)
    return manager


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    palettes = PaletteManager(args.palette_file)

    if args.example_config:
        show_banner()
        generate_example_config()
        sys.exit(0)

    if args.add_palette or args.remove_palette:
        ok = manage_palettes(palettes, args.add_palette, args.remove_palette)
        sys.exit(0 if ok else 1)

    if args.list:
        show_banner()
        show_choices(palettes)
        sys.exit(0)

    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    if not args.quiet:
        show_banner()

    try:
        manager = load_job(args)
        config: Dict[str, Any] = manager.validated(palettes=palettes)
        effect_config = build_effect_config(config, palettes=palettes)
    except ConfigValidationError as e:
        logger.error(f"[bold red]{e}[/]")
        sys.exit(1)

    logger.info("[green]✓[/] Configuration validated")
    logger.info(f"Input:  [cyan]{config['input']}[/]")
    logger.info(f"Output: [cyan]{config['output']}[/]")
    if effect_config.effects_enabled:
        logger.info(f"Effect: [yellow]{effect_config.effect_type.value}[/] "
                    f"(point size {effect_config.point_size:g})")
    else:
        logger.info("Effect: [dim]disabled[/]")

    input_path = Path(config["input"])
    output_path = Path(config["output"])
    try:
        if input_path.is_dir():
            success = process_folder(input_path, output_path, effect_config,
                                     enlarge=config["enlarge"])
        else:
            success = process_single_image(input_path, output_path, effect_config,
                                           enlarge=config["enlarge"])
    except (EffectError, OSError) as e:
        logger.error(f"[bold red]{e}[/]")
        success = False

    if success:
        logger.info("[bold green]✓ Processing complete![/]")
        sys.exit(0)
    else:
        logger.error("[bold red]✗ Processing failed![/]")
        sys.exit(1)


if __name__ == "__main__":
    main()
