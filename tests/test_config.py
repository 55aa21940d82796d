"""Tests for loading config/pipeline.yaml (scripts/config.py)."""

from __future__ import annotations

from pathlib import Path

import pytest

from scripts.config import PipelineConfig, config_from_mapping, load_config
from scripts.errors import ConfigError

PROJECT_ROOT = Path(__file__).resolve().parents[1]


class TestLoadConfig:
    def test_repository_config_matches_defaults(self) -> None:
        assert load_config(PROJECT_ROOT / "config" / "pipeline.yaml") == PipelineConfig()

    def test_missing_keys_use_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "pipeline.yaml"
        path.write_text("magnitude_cutoff: 10000\ncomparison_years: [2022]\n", encoding="utf-8")

        config = load_config(path)

        assert config.magnitude_cutoff == 10000
        assert config.comparison_years == (2022,)
        assert config.baseline_year == 2020
        assert config.histogram_bin_width == 1000

    def test_empty_file_is_all_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "pipeline.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(path) == PipelineConfig()

    def test_explicit_missing_file_is_an_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            load_config(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "pipeline.yaml"
        path.write_text("baseline_year: [2020\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_top_level_must_be_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "pipeline.yaml"
        path.write_text("- 2020\n- 2021\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_config(path)


class TestConfigFromMapping:
    def test_unknown_key_is_rejected(self) -> None:
        with pytest.raises(ConfigError, match="magnitude_cutof"):
            config_from_mapping({"magnitude_cutof": 10000})

    def test_paths_become_path_objects(self) -> None:
        config = config_from_mapping({"results_dir": "out", "turnstile_dir": "/data/turnstile"})

        assert config.results_dir == Path("out")
        assert config.turnstile_dir == Path("/data/turnstile")

    @pytest.mark.parametrize(
        "data",
        [
            {"baseline_year": 2021},
            {"comparison_years": []},
            {"comparison_years": 2021},
            {"turnstile_id_separator": ""},
            {"histogram_bin_width": 0},
            {"magnitude_cutoff": -1},
            {"downsample_hours": 25},
            {"max_negative_fraction": 1.5},
        ],
    )
    def test_invalid_values(self, data: dict) -> None:
        with pytest.raises(ConfigError):
            config_from_mapping(data)


class TestResolve:
    def test_relative_paths_are_anchored(self, tmp_path: Path) -> None:
        config = PipelineConfig(results_dir=Path("/abs/results")).resolve(tmp_path)

        assert config.stations_path == tmp_path / "data/raw/stations/MTA_Subway_Stations.csv"
        assert config.overrides_path == tmp_path / "references/stations/station_renaming.csv"
        assert config.results_dir == Path("/abs/results")
