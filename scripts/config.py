"""Pipeline configuration loaded from ``config/pipeline.yaml``.

Every key is optional; missing keys fall back to the defaults on
``PipelineConfig``. Paths are resolved relative to the project root.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from scripts.errors import ConfigError

DEFAULT_CONFIG_PATH = Path("config") / "pipeline.yaml"


@dataclass(frozen=True)
class PipelineConfig:
    """Thresholds, comparison years and file locations for one run."""

    baseline_year: int = 2020
    comparison_years: Tuple[int, ...] = (2021, 2022)

    turnstile_id_separator: str = "|"
    timestamp_format: Optional[str] = "%m/%d/%Y %H:%M:%S"
    downsample_hours: Optional[int] = None

    histogram_bin_width: int = 1000
    max_bin_count: int = 9
    magnitude_cutoff: Optional[int] = None  # None -> derive from the histogram
    max_negative_fraction: float = 0.05
    max_runaway_fraction: float = 0.01
    max_total_removed_fraction: float = 0.06

    strict_matching: bool = False

    stations_path: Path = Path("data/raw/stations/MTA_Subway_Stations.csv")
    turnstile_dir: Path = Path("data/raw/turnstile")
    turnstile_glob: str = "*.csv"
    overrides_path: Path = Path("references/stations/station_renaming.csv")
    results_dir: Path = Path("results")

    def __post_init__(self) -> None:
        if not self.comparison_years:
            raise ConfigError("comparison_years must list at least one year")
        if self.baseline_year in self.comparison_years:
            raise ConfigError("baseline_year must not also be a comparison year")
        if not self.turnstile_id_separator:
            raise ConfigError("turnstile_id_separator must be a non-empty string")
        if self.histogram_bin_width <= 0:
            raise ConfigError("histogram_bin_width must be positive")
        if self.max_bin_count < 0:
            raise ConfigError("max_bin_count must not be negative")
        if self.magnitude_cutoff is not None and self.magnitude_cutoff <= 0:
            raise ConfigError("magnitude_cutoff must be positive when set")
        if self.downsample_hours is not None and not 1 <= self.downsample_hours <= 24:
            raise ConfigError("downsample_hours must be between 1 and 24 when set")
        for name in ("max_negative_fraction", "max_runaway_fraction", "max_total_removed_fraction"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be a fraction between 0 and 1, got {value}")

    def resolve(self, base_dir: Path) -> "PipelineConfig":
        """Return a copy whose relative paths are anchored at ``base_dir``."""
        return replace(
            self,
            stations_path=_anchor(base_dir, self.stations_path),
            turnstile_dir=_anchor(base_dir, self.turnstile_dir),
            overrides_path=_anchor(base_dir, self.overrides_path),
            results_dir=_anchor(base_dir, self.results_dir),
        )


_PATH_KEYS = {"stations_path", "turnstile_dir", "overrides_path", "results_dir"}


def _anchor(base_dir: Path, path: Path) -> Path:
    return path if path.is_absolute() else base_dir / path


def config_from_mapping(data: Dict[str, Any]) -> PipelineConfig:
    """Build a PipelineConfig from a parsed YAML mapping."""
    known = {f.name for f in fields(PipelineConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")

    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        if key in _PATH_KEYS and value is not None:
            value = Path(value)
        elif key == "comparison_years" and value is not None:
            if not isinstance(value, (list, tuple)):
                raise ConfigError("comparison_years must be a list of years")
            value = tuple(int(year) for year in value)
        kwargs[key] = value

    try:
        return PipelineConfig(**kwargs)
    except TypeError as exc:
        raise ConfigError(f"Invalid configuration value: {exc}") from exc


def load_config(path: Optional[Path] = None) -> PipelineConfig:
    """Load the YAML configuration file; a missing default file means all defaults."""
    config_path = path or DEFAULT_CONFIG_PATH
    if not config_path.exists():
        if path is not None:
            raise ConfigError(f"Configuration file not found: {config_path}")
        return PipelineConfig()

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            parsed = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Could not parse {config_path}: {exc}") from exc

    if not isinstance(parsed, dict):
        raise ConfigError(f"{config_path} must contain a mapping of settings")
    return config_from_mapping(parsed)
