"""Configuration management for langfield.

Loads config from ~/.langfield/config.json, environment variables, or defaults.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from langfield.detect.detector import ALPHA_DEFAULT, MAX_TEXT_LENGTH, N_TRIAL
from langfield.detect.ngram import DEFAULT_FOLDING, Normalizer, load_cjk_map
from langfield.detect.store import ProfileStore


def _default_config_dir() -> Path:
    """Return the default langfield config directory."""
    return Path.home() / ".langfield"


@dataclass
class ProfilesConfig:
    """Where profiles come from."""

    directory: str = ""
    languages: list[str] = field(default_factory=list)  # Bundled profiles, if set
    bundle: str = "langfield"
    cjk_map: str = ""                                   # JSON file of ideograph classes


@dataclass
class DetectorConfig:
    """Defaults applied to every detector."""

    alpha: float = ALPHA_DEFAULT
    max_text_length: int = MAX_TEXT_LENGTH
    trials: int = N_TRIAL
    seed: int | None = None
    prior: dict[str, float] = field(default_factory=dict)


@dataclass
class LangFieldConfig:
    """Root configuration for langfield."""

    profiles: ProfilesConfig = field(default_factory=ProfilesConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)

    # Config directory
    config_dir: Path = field(default_factory=_default_config_dir)

    def __post_init__(self) -> None:
        """Set computed defaults after initialization."""
        if not self.profiles.directory:
            self.profiles.directory = str(self.config_dir / "profiles")

    @property
    def profile_dir(self) -> Path:
        """Return the resolved profile directory."""
        return Path(self.profiles.directory).expanduser()


def _load_env_overrides(config: LangFieldConfig) -> None:
    """Override config values from environment variables."""
    if directory := os.getenv("LANGFIELD_PROFILE_DIR"):
        config.profiles.directory = directory
    if seed := os.getenv("LANGFIELD_SEED"):
        config.detector.seed = int(seed)
    if alpha := os.getenv("LANGFIELD_ALPHA"):
        config.detector.alpha = float(alpha)
    if max_length := os.getenv("LANGFIELD_MAX_TEXT_LENGTH"):
        config.detector.max_text_length = int(max_length)


def _dict_to_config(data: dict) -> LangFieldConfig:
    """Convert a JSON dict to a LangFieldConfig."""
    config = LangFieldConfig()

    if prof := data.get("profiles"):
        config.profiles.directory = prof.get("directory", config.profiles.directory)
        config.profiles.languages = prof.get("languages", config.profiles.languages)
        config.profiles.bundle = prof.get("bundle", config.profiles.bundle)
        config.profiles.cjk_map = prof.get("cjk_map", config.profiles.cjk_map)

    if det := data.get("detector"):
        config.detector.alpha = det.get("alpha", config.detector.alpha)
        config.detector.max_text_length = det.get(
            "max_text_length", config.detector.max_text_length
        )
        config.detector.trials = det.get("trials", config.detector.trials)
        config.detector.seed = det.get("seed", config.detector.seed)
        config.detector.prior = det.get("prior", config.detector.prior)

    return config


def _config_to_dict(config: LangFieldConfig) -> dict:
    """Convert a LangFieldConfig to a JSON-serializable dict."""
    return {
        "profiles": {
            "directory": config.profiles.directory,
            "languages": config.profiles.languages,
            "bundle": config.profiles.bundle,
            "cjk_map": config.profiles.cjk_map,
        },
        "detector": {
            "alpha": config.detector.alpha,
            "max_text_length": config.detector.max_text_length,
            "trials": config.detector.trials,
            "seed": config.detector.seed,
            "prior": config.detector.prior,
        },
    }


def load_config(config_path: Path | None = None) -> LangFieldConfig:
    """Load langfield configuration from file, env vars, and defaults.

    Priority: env vars > config file > defaults.
    """
    config_dir = _default_config_dir()
    config_file = config_path or (config_dir / "config.json")

    if config_file.exists():
        with open(config_file) as f:
            data = json.load(f)
        config = _dict_to_config(data)
    else:
        config = LangFieldConfig()

    config.config_dir = config_dir

    _load_env_overrides(config)
    return config


def save_config(config: LangFieldConfig, config_path: Path | None = None) -> None:
    """Save configuration to JSON file."""
    config_file = config_path or (config.config_dir / "config.json")
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w") as f:
        json.dump(_config_to_dict(config), f, indent=2)


# ─── Wiring ──────────────────────────────────────────────────────


def build_normalizer(config: LangFieldConfig) -> Normalizer:
    """Build the normalizer, with the CJK map from config if one is set."""
    if not config.profiles.cjk_map:
        return Normalizer()
    cjk_map = load_cjk_map(Path(config.profiles.cjk_map).expanduser())
    return Normalizer(DEFAULT_FOLDING.with_cjk_map(cjk_map))


def build_store(config: LangFieldConfig) -> ProfileStore:
    """Load the profile store described by the config.

    Bundled profiles are used when ``profiles.languages`` is set, otherwise
    every profile in ``profiles.directory``.
    """
    normalizer = build_normalizer(config)
    if config.profiles.languages:
        store = ProfileStore.from_resources(
            *config.profiles.languages,
            package=config.profiles.bundle,
            normalizer=normalizer,
        )
    else:
        store = ProfileStore.from_directory(config.profile_dir, normalizer=normalizer)
    store.set_seed(config.detector.seed)
    return store


def detector_options(config: LangFieldConfig) -> dict[str, Any]:
    """Keyword arguments for ``ProfileStore.new_detector``."""
    options: dict[str, Any] = {
        "alpha": config.detector.alpha,
        "max_text_length": config.detector.max_text_length,
        "trials": config.detector.trials,
    }
    if config.detector.prior:
        options["prior"] = config.detector.prior
    return options
