"""
Deduplicate MTA Subway Station Metadata
=======================================

Purpose:
    The station export carries one row per platform direction (north/south
    bound stops share a name), so the same logical station appears several
    times. Collapse them into one row per station name.

Key Logic:
    - Group by stop_name
    - Borough, latitude and longitude take the maximum non-null value among
      the duplicates (deterministic pick, no averaging)
    - Duplicates that genuinely disagree resolve silently to the maximum
"""

import logging

import pandas as pd

logger = logging.getLogger(__name__)


def _max_non_null(values: pd.Series):
    # Object columns cannot be compared against NaN, so drop nulls first.
    present = values.dropna()
    return present.max() if not present.empty else None


def dedupe_stations(stations: pd.DataFrame) -> pd.DataFrame:
    """Return one row per distinct ``stop_name``."""
    logger.info("🚉 Deduplicating station metadata...")

    named = stations[stations["stop_name"].notna()]
    dropped = len(stations) - len(named)
    if dropped:
        logger.warning(f"   ⚠️  Dropped {dropped:,} station rows without a stop name")

    deduped = (
        named.groupby("stop_name", sort=True)
        .agg({"borough": _max_non_null, "latitude": "max", "longitude": "max"})
        .reset_index()
    )

    logger.info(f"   ✅ {len(named):,} rows collapsed into {len(deduped):,} stations")
    return deduped
