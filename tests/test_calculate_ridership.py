"""Tests for yearly ridership totals and ratios (scripts/calculate_ridership.py)."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from scripts.calculate_ridership import aggregate_station_ridership, compare_ridership, ratio_column
from scripts.schemas import RIDERSHIP_COLUMNS
from tests.conftest import make_activity


@pytest.fixture
def two_year_activity() -> pd.DataFrame:
    return pd.concat(
        [
            make_activity(
                [
                    ("T1", "125 ST", 50.0, 60.0),
                    ("T1", "125 ST", 100.0, 40.0),
                    ("T2", "125 ST", 10.0, 0.0),
                    ("T3", "59 ST", 5.0, 5.0),
                ],
                year=2020,
            ),
            make_activity([("T1", "125 ST", 30.0, 20.0), ("T3", "59 ST", np.nan, np.nan)], year=2021),
        ],
        ignore_index=True,
    )


class TestAggregateStationRidership:
    def test_sums_entries_and_exits_per_station_year(self, two_year_activity: pd.DataFrame) -> None:
        ridership = aggregate_station_ridership(two_year_activity)
        totals = ridership.set_index(["station_name", "year"])["ridership"]

        assert totals[("125 ST", 2020)] == 260
        assert totals[("125 ST", 2021)] == 50
        assert totals[("59 ST", 2020)] == 10

    def test_undefined_activity_is_not_counted_as_zero(self, two_year_activity: pd.DataFrame) -> None:
        ridership = aggregate_station_ridership(two_year_activity)

        assert ("59 ST", 2021) not in set(zip(ridership["station_name"], ridership["year"]))

    @pytest.mark.parametrize("seed", [0, 1, 7])
    def test_row_order_does_not_change_totals(self, two_year_activity: pd.DataFrame, seed: int) -> None:
        expected = aggregate_station_ridership(two_year_activity)

        shuffled = two_year_activity.sample(frac=1, random_state=seed)

        pd.testing.assert_frame_equal(aggregate_station_ridership(shuffled), expected)

    def test_output_layout(self, two_year_activity: pd.DataFrame) -> None:
        ridership = aggregate_station_ridership(two_year_activity)

        assert list(ridership.columns) == RIDERSHIP_COLUMNS
        assert ridership["ridership"].dtype == "int64"
        assert not ridership.duplicated(["station_name", "year"]).any()


class TestCompareRidership:
    def test_ratio_column_names(self) -> None:
        assert ratio_column(2021, 2020) == "ridership_ratio_2021_vs_2020"

    def test_ratios_divide_by_baseline(self) -> None:
        ridership = pd.DataFrame(
            {
                "station_name": ["125 ST"] * 3,
                "year": [2020, 2021, 2022],
                "ridership": [250, 50, 140],
            }
        )

        compared = compare_ridership(ridership).set_index("station_name")

        assert compared.loc["125 ST", "ridership_ratio_2021_vs_2020"] == pytest.approx(0.2)
        assert compared.loc["125 ST", "ridership_ratio_2022_vs_2020"] == pytest.approx(0.56)

    def test_zero_or_missing_baseline_gives_nan(self) -> None:
        ridership = pd.DataFrame(
            {
                "station_name": ["ZERO", "ZERO", "LATE"],
                "year": [2020, 2021, 2022],
                "ridership": [0, 40, 70],
            }
        )

        compared = compare_ridership(ridership).set_index("station_name")

        assert np.isnan(compared.loc["ZERO", "ridership_ratio_2021_vs_2020"])
        assert np.isnan(compared.loc["LATE", "ridership_ratio_2022_vs_2020"])
        assert np.isnan(compared.loc["ZERO", "ridership_ratio_2022_vs_2020"])

    def test_custom_years(self) -> None:
        ridership = pd.DataFrame(
            {"station_name": ["A", "A"], "year": [2019, 2023], "ridership": [100, 80]}
        )

        compared = compare_ridership(ridership, baseline_year=2019, comparison_years=(2023,))

        assert list(compared.columns) == ["station_name", "ridership_ratio_2023_vs_2019"]
        assert compared.loc[0, "ridership_ratio_2023_vs_2019"] == pytest.approx(0.8)
