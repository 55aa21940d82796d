"""
Filter Erroneous Turnstile Activity
===================================

Purpose:
    Remove activity values that cannot be real ridership before aggregation.

Processing Steps:
    1. Drop readings with undefined activity (first reading of a partition)
    2. Sign filter: drop negative entry or exit activity. Counters should not
       decrease within a year, so a negative difference is a mid-year reset or
       a data error. Roughly 1% of rows is expected; a much larger share
       means the differencing upstream is wrong and the run stops.
    3. Magnitude filter: drop entry or exit activity at or above a cutoff.
       A single turnstile cannot pass tens of thousands of people in one
       audit interval; such values are counter roll-over wrap-arounds.

Magnitude cutoff:
    Bin the activity values in fixed-width buckets (1000 by default). The
    cutoff is the upper edge of the last bucket that still holds more than a
    single-digit number of rows. The histograms are recomputed on the
    sign-filtered data, and the cutoff can be pinned in the configuration
    once it has been inspected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd

from scripts.config import PipelineConfig
from scripts.errors import DataQualityError
from scripts.schemas import ACTIVITY_COLUMNS

logger = logging.getLogger(__name__)


@dataclass
class FilterReport:
    """Row counts and thresholds recorded while cleaning activity."""

    input_rows: int = 0
    uncomputable_rows: int = 0
    negative_rows: int = 0
    runaway_rows: int = 0
    output_rows: int = 0
    magnitude_cutoff: Optional[int] = None
    cutoff_derived: bool = False
    histograms: Dict[str, pd.DataFrame] = field(default_factory=dict)

    @property
    def removed_fraction(self) -> float:
        """Share of computable rows removed by the sign and magnitude filters."""
        computable = self.input_rows - self.uncomputable_rows
        if computable == 0:
            return 0.0
        return (self.negative_rows + self.runaway_rows) / computable


def _check_ceiling(step: str, removed: int, total: int, ceiling: float) -> None:
    if total and removed / total > ceiling:
        raise DataQualityError(step, removed, total, ceiling)


def drop_uncomputable_activity(activity: pd.DataFrame) -> pd.DataFrame:
    """Drop rows whose entry or exit activity is undefined."""
    return activity.dropna(subset=ACTIVITY_COLUMNS).reset_index(drop=True)


def negative_activity_fraction(activity: pd.DataFrame) -> float:
    """Fraction of rows with a negative entry or exit activity."""
    if activity.empty:
        return 0.0
    negative = (activity["entry_activity"] < 0) | (activity["exit_activity"] < 0)
    return float(negative.mean())


def filter_negative_activity(activity: pd.DataFrame, max_removed_fraction: float = 0.05) -> pd.DataFrame:
    """Drop rows with negative activity, refusing to drop more than the ceiling."""
    negative = (activity["entry_activity"] < 0) | (activity["exit_activity"] < 0)
    removed = int(negative.sum())

    _check_ceiling("Negative activity filter", removed, len(activity), max_removed_fraction)
    if removed:
        logger.info(
            f"   ➖ Removed {removed:,} rows with negative activity "
            f"({removed / len(activity):.2%})"
        )
    return activity[~negative].reset_index(drop=True)


def activity_histogram(activity: pd.DataFrame, column: str, bin_width: int = 1000) -> pd.DataFrame:
    """Count activity values per fixed-width bucket, keyed by bucket lower edge."""
    values = activity[column].dropna()
    bins = (np.floor(values / bin_width) * bin_width).astype("int64")
    histogram = bins.value_counts().sort_index()
    return pd.DataFrame({"bin": histogram.index.astype("int64"), "count": histogram.to_numpy()})


def derive_magnitude_cutoff(
    activity: pd.DataFrame,
    bin_width: int = 1000,
    max_bin_count: int = 9,
) -> Optional[int]:
    """Return the smallest bucket edge above which every bucket is negligible.

    Buckets holding at most ``max_bin_count`` rows are negligible. The cutoff
    is the upper edge of the last non-negligible bucket, taking the larger
    value of the entry and exit histograms. Returns None when no bucket is
    significant (empty or very small input), in which case nothing is cut.
    """
    if activity.empty:
        return None

    cutoff = None
    for column in ACTIVITY_COLUMNS:
        histogram = activity_histogram(activity, column, bin_width)
        significant = histogram[histogram["count"] > max_bin_count]
        if significant.empty:
            continue
        edge = int(significant["bin"].max()) + bin_width
        cutoff = edge if cutoff is None else max(cutoff, edge)
    return cutoff


def filter_runaway_activity(
    activity: pd.DataFrame,
    cutoff: int,
    max_removed_fraction: float = 0.01,
) -> pd.DataFrame:
    """Drop rows with entry or exit activity at or above ``cutoff``."""
    runaway = (activity["entry_activity"] >= cutoff) | (activity["exit_activity"] >= cutoff)
    removed = int(runaway.sum())

    _check_ceiling("Runaway activity filter", removed, len(activity), max_removed_fraction)
    if removed:
        logger.info(
            f"   🚀 Removed {removed:,} rows with activity >= {cutoff:,} "
            f"({removed / len(activity):.2%})"
        )
    return activity[~runaway].reset_index(drop=True)


def filter_outliers(
    activity: pd.DataFrame,
    config: Optional[PipelineConfig] = None,
) -> Tuple[pd.DataFrame, FilterReport]:
    """Run the undefined, sign and magnitude filters in order."""
    config = config or PipelineConfig()
    report = FilterReport(input_rows=len(activity))
    logger.info("🧹 Filtering erroneous activity...")

    computable = drop_uncomputable_activity(activity)
    report.uncomputable_rows = len(activity) - len(computable)
    logger.info(f"   🕳️  Dropped {report.uncomputable_rows:,} readings with undefined activity")

    logger.info(f"   📉 Negative activity share: {negative_activity_fraction(computable):.2%}")
    signed = filter_negative_activity(computable, config.max_negative_fraction)
    report.negative_rows = len(computable) - len(signed)

    for column in ACTIVITY_COLUMNS:
        report.histograms[column] = activity_histogram(signed, column, config.histogram_bin_width)

    if config.magnitude_cutoff is not None:
        report.magnitude_cutoff = config.magnitude_cutoff
    else:
        report.magnitude_cutoff = derive_magnitude_cutoff(
            signed, config.histogram_bin_width, config.max_bin_count
        )
        report.cutoff_derived = True

    if report.magnitude_cutoff is None:
        logger.warning("   ⚠️  Histogram too sparse to derive a magnitude cutoff; skipping magnitude filter")
        cleaned = signed
    else:
        source = "derived from histogram" if report.cutoff_derived else "configured"
        logger.info(f"   📏 Magnitude cutoff: {report.magnitude_cutoff:,} ({source})")
        cleaned = filter_runaway_activity(signed, report.magnitude_cutoff, config.max_runaway_fraction)
    report.runaway_rows = len(signed) - len(cleaned)
    report.output_rows = len(cleaned)

    _check_ceiling(
        "Outlier filtering",
        report.negative_rows + report.runaway_rows,
        len(computable),
        config.max_total_removed_fraction,
    )

    logger.info(
        f"   ✅ Kept {report.output_rows:,} of {len(computable):,} computable readings "
        f"({report.removed_fraction:.2%} removed)"
    )
    return cleaned, report
