"""Tests for station metadata deduplication (scripts/dedupe_stations.py)."""

from __future__ import annotations

import pandas as pd
import pytest

from scripts.dedupe_stations import dedupe_stations
from scripts.schemas import standardize_stations


class TestDedupeStations:
    """One row per station name, max-wins for the attributes."""

    def test_one_row_per_distinct_name(self, raw_stations: pd.DataFrame) -> None:
        stations = standardize_stations(raw_stations)
        deduped = dedupe_stations(stations)

        assert deduped["stop_name"].is_unique
        assert set(deduped["stop_name"]) == set(stations["stop_name"])
        assert len(deduped) == 3

    def test_picks_maximum_non_null_values(self, raw_stations: pd.DataFrame) -> None:
        deduped = dedupe_stations(standardize_stations(raw_stations)).set_index("stop_name")

        assert deduped.loc["125 St", "latitude"] == pytest.approx(40.8075)
        assert deduped.loc["125 St", "longitude"] == pytest.approx(-73.9375)
        assert deduped.loc["Grand Central-42 St", "borough"] == "M"

    def test_disagreeing_duplicates_resolve_without_error(self) -> None:
        stations = pd.DataFrame(
            {
                "stop_name": ["Canal St", "Canal St"],
                "borough": ["M", "Bk"],
                "latitude": [40.71, 40.72],
                "longitude": [-74.0, -74.01],
            }
        )
        deduped = dedupe_stations(stations)

        assert len(deduped) == 1
        assert deduped.loc[0, "borough"] == "M"

    def test_all_null_attribute_stays_null(self) -> None:
        stations = pd.DataFrame(
            {
                "stop_name": ["Aqueduct Racetrack", "Aqueduct Racetrack"],
                "borough": [None, None],
                "latitude": [40.67, None],
                "longitude": [-73.83, None],
            }
        )
        deduped = dedupe_stations(stations)

        assert pd.isna(deduped.loc[0, "borough"])
        assert deduped.loc[0, "latitude"] == pytest.approx(40.67)

    def test_rows_without_name_are_dropped(self) -> None:
        stations = pd.DataFrame(
            {
                "stop_name": ["Canal St", None],
                "borough": ["M", "M"],
                "latitude": [40.71, 40.0],
                "longitude": [-74.0, -74.0],
            }
        )
        deduped = dedupe_stations(stations)

        assert deduped["stop_name"].tolist() == ["Canal St"]

    def test_input_is_not_mutated(self, raw_stations: pd.DataFrame) -> None:
        stations = standardize_stations(raw_stations)
        snapshot = stations.copy()
        dedupe_stations(stations)

        pd.testing.assert_frame_equal(stations, snapshot)
