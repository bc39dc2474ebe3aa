"""langfield main entry point — CLI interface.

Commands:
  langfield detect "text"          Detect the language of a text
  langfield languages              List loaded profiles in load order
  langfield train NAME FILES...    Build a profile from training text
  langfield status                 Show effective configuration
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from langfield import __version__
from langfield.config import (
    LangFieldConfig,
    build_normalizer,
    build_store,
    detector_options,
    load_config,
)
from langfield.detect.errors import LangDetectError
from langfield.detect.language import DetectionResult
from langfield.detect.profile import LanguageProfile
from langfield.detect.store import ProfileStore

console = Console()

logger = logging.getLogger(__name__)


# ─── Helpers ─────────────────────────────────────────────────────


def _setup_logging(verbose: bool = False) -> None:
    """Configure structured logging with Rich."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _parse_prior(values: tuple[str, ...]) -> dict[str, float]:
    """Parse ``lang=weight`` pairs."""
    prior: dict[str, float] = {}
    for item in values:
        lang, sep, weight = item.partition("=")
        if not sep or not lang:
            raise click.BadParameter(f"expected lang=weight, got '{item}'", param_hint="--prior")
        try:
            prior[lang] = float(weight)
        except ValueError:
            raise click.BadParameter(f"weight for '{lang}' is not a number", param_hint="--prior")
    return prior


def _load_store(config: LangFieldConfig, profiles: Path | None) -> ProfileStore:
    if profiles is not None:
        config.profiles.directory = str(profiles)
        config.profiles.languages = []
    try:
        return build_store(config)
    except LangDetectError as e:
        raise click.ClickException(str(e))


def _print_result(result: DetectionResult, show_all: bool) -> None:
    if not result.success:
        console.print(f"[yellow]unknown[/] [dim]({result.message})[/]")
        return
    if not show_all:
        console.print(result.language)
        return

    table = Table(title="Language probabilities")
    table.add_column("Language", style="cyan")
    table.add_column("Probability", justify="right")
    for candidate in result.probabilities:
        table.add_row(candidate.lang, f"{candidate.prob:.5f}")
    console.print(table)


# ─── CLI Commands ────────────────────────────────────────────────


@click.group()
@click.version_option(__version__, prog_name="langfield")
def cli() -> None:
    """langfield — n-gram language identification."""
    pass


@cli.command()
@click.argument("text", required=False)
@click.option("--file", "-f", "text_file", type=click.File("r", encoding="utf-8"),
              help="Read the text from a file ('-' for stdin).")
@click.option("--profiles", "-p", type=click.Path(path_type=Path),
              help="Profile directory (overrides config).")
@click.option("--seed", type=int, default=None, help="Seed for reproducible trials.")
@click.option("--prior", multiple=True, help="Prior weight as lang=weight; repeatable.")
@click.option("--all", "show_all", is_flag=True, help="Show every candidate language.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def detect(
    text: str | None,
    text_file,
    profiles: Path | None,
    seed: int | None,
    prior: tuple[str, ...],
    show_all: bool,
    verbose: bool,
) -> None:
    """Detect the language of TEXT."""
    _setup_logging(verbose)
    if text is None and text_file is None:
        raise click.UsageError("give TEXT or --file")

    config = load_config()
    store = _load_store(config, profiles)
    if seed is not None:
        store.set_seed(seed)

    options = detector_options(config)
    if prior:
        options["prior"] = _parse_prior(prior)

    try:
        detector = store.new_detector(**options)
        if text is not None:
            detector.append(text)
        if text_file is not None:
            detector.append_stream(text_file)
        result = detector.classify()
    except LangDetectError as e:
        raise click.ClickException(str(e))

    _print_result(result, show_all)


@cli.command()
@click.option("--profiles", "-p", type=click.Path(path_type=Path),
              help="Profile directory (overrides config).")
def languages(profiles: Path | None) -> None:
    """List loaded languages in load order."""
    store = _load_store(load_config(), profiles)
    for index, lang in enumerate(store.languages):
        console.print(f"  {index:>3}  {lang}")


@cli.command()
@click.argument("name")
@click.argument("files", nargs=-1, required=True,
                type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(path_type=Path),
              help="Output file (default: <profile dir>/NAME).")
@click.option("--no-prune", is_flag=True, help="Keep rare grams and Latin noise.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def train(name: str, files: tuple[Path, ...], output: Path | None, no_prune: bool,
          verbose: bool) -> None:
    """Build the NAME profile from training text FILES."""
    _setup_logging(verbose)
    config = load_config()
    normalizer = build_normalizer(config)

    profile = LanguageProfile(name)
    for path in files:
        with open(path, encoding="utf-8") as f:
            for line in f:
                profile.update(line, normalizer)
        logger.info(f"Read training text from {path}")

    if not no_prune:
        profile.omit_less_freq()

    target = output or (config.profile_dir / name)
    profile.save(target)
    console.print(
        f"[green]Saved profile '{name}'[/] ({len(profile.freq)} grams) to {target}"
    )


@cli.command()
def status() -> None:
    """Show effective configuration."""
    config = load_config()
    console.print("[bold cyan]langfield status[/]\n")
    console.print(f"  Version: {__version__}")
    console.print(f"  Config: {config.config_dir}")
    if config.profiles.languages:
        console.print(
            f"  Profiles: bundle '{config.profiles.bundle}' "
            f"({', '.join(config.profiles.languages)})"
        )
    else:
        console.print(f"  Profiles: {config.profile_dir}")
    console.print(f"  Alpha: {config.detector.alpha}")
    console.print(f"  Max text length: {config.detector.max_text_length}")
    console.print(f"  Trials: {config.detector.trials}")
    console.print(f"  Seed: {config.detector.seed}")


# ─── Direct execution ───────────────────────────────────────────

if __name__ == "__main__":
    cli()
