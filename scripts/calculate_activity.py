"""
Calculate Turnstile Activity from Cumulative Counters
=====================================================

Purpose:
    Turnstile ENTRIES/EXITS are running counters, so the number of people
    through a turnstile in an interval is the difference between a reading
    and the reading before it.

Key Logic:
    - Partition by (turnstile_id, station_name, year) and order by timestamp
    - Operators reset counters around year boundaries, so each year is an
      independent counting epoch: differences never span two years
    - The first reading of every partition has no predecessor and gets a
      NaN activity; it is dropped downstream and never counted as zero
"""

import logging

import pandas as pd

from scripts.schemas import PARTITION_COLUMNS

logger = logging.getLogger(__name__)


def calculate_activity(readings: pd.DataFrame) -> pd.DataFrame:
    """Add ``year``, ``entry_activity`` and ``exit_activity`` to the readings."""
    logger.info("🔢 Calculating activity from cumulative counters...")

    df = readings.assign(year=readings["timestamp"].dt.year)
    df = df.sort_values(PARTITION_COLUMNS + ["timestamp"], kind="mergesort").reset_index(drop=True)

    partitions = df.groupby(PARTITION_COLUMNS, sort=False)
    df["entry_activity"] = partitions["entry_counter"].diff()
    df["exit_activity"] = partitions["exit_counter"].diff()

    first_readings = int(df["entry_activity"].isna().sum())
    logger.info(f"   📊 {partitions.ngroups:,} turnstile-year partitions")
    logger.info(f"   🕳️  {first_readings:,} readings without a predecessor (activity undefined)")

    return df
