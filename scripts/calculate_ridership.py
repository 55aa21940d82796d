"""
Calculate Yearly Station Ridership and Pandemic Ratios
======================================================

Purpose:
    Sum cleaned turnstile activity into one ridership figure per station and
    year, then compare each comparison year with the baseline year.

Key Logic:
    - ridership = sum(entry_activity) + sum(exit_activity) per (station, year)
    - Rows with undefined activity never count as zero
    - ridership_ratio_<year>_vs_<baseline> = ridership(year) / ridership(baseline);
      a missing or zero baseline gives NaN
"""

from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np
import pandas as pd

from scripts.schemas import ACTIVITY_COLUMNS, RIDERSHIP_COLUMNS

logger = logging.getLogger(__name__)


def ratio_column(year: int, baseline_year: int) -> str:
    """Name of the ratio column comparing ``year`` with ``baseline_year``."""
    return f"ridership_ratio_{year}_vs_{baseline_year}"


def aggregate_station_ridership(activity: pd.DataFrame) -> pd.DataFrame:
    """Total entry plus exit activity per turnstile station name and year."""
    logger.info("📊 Aggregating yearly ridership per station...")

    measured = activity.dropna(subset=ACTIVITY_COLUMNS)
    skipped = len(activity) - len(measured)
    if skipped:
        logger.info(f"   🕳️  Ignored {skipped:,} readings with undefined activity")

    totals = measured.groupby(["station_name", "year"], sort=True)[ACTIVITY_COLUMNS].sum()
    ridership = (totals["entry_activity"] + totals["exit_activity"]).rename("ridership").reset_index()
    ridership["ridership"] = ridership["ridership"].astype("int64")

    logger.info(
        f"   ✅ {len(ridership):,} station-year totals across "
        f"{ridership['station_name'].nunique():,} stations"
    )
    return ridership[RIDERSHIP_COLUMNS]


def compare_ridership(
    ridership: pd.DataFrame,
    baseline_year: int = 2020,
    comparison_years: Sequence[int] = (2021, 2022),
    name_column: str = "station_name",
) -> pd.DataFrame:
    """Pivot yearly ridership to one row per station with ratio columns."""
    years: List[int] = [baseline_year, *comparison_years]
    wide = (
        ridership[ridership["year"].isin(years)]
        .pivot_table(index=name_column, columns="year", values="ridership", aggfunc="sum")
        .reindex(columns=years)
    )

    baseline = wide[baseline_year].replace(0, np.nan)
    missing_baseline = int(baseline.isna().sum())
    if missing_baseline:
        logger.warning(f"   ⚠️  {missing_baseline:,} stations have no {baseline_year} ridership; ratios are NaN")

    compared = pd.DataFrame(index=wide.index)
    for year in comparison_years:
        compared[ratio_column(year, baseline_year)] = wide[year] / baseline
    compared.columns.name = None
    return compared.reset_index()
