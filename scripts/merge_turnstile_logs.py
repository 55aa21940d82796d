"""
Merge Yearly MTA Turnstile Logs
===============================

Purpose:
    Union the raw turnstile log tables (one per covered year/month) into a
    single reading table with one timestamp column and one composite
    turnstile identifier.

Processing Steps:
    1. Read each raw file (progress shown with tqdm)
    2. Concatenate every table, keeping all rows (no distinct-union)
    3. Build turnstile_id from C/A + UNIT + SCP joined with a separator that
       never occurs inside an identifier
    4. Build timestamp from DATE + TIME
    5. Optionally downsample to hours that are a multiple of N
    6. Drop the raw columns that carry no further information

Output columns:
    turnstile_id, station_name, timestamp, entry_counter, exit_counter
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd
from tqdm import tqdm

from scripts.errors import SchemaError
from scripts.schemas import READING_COLUMNS, TURNSTILE_ID_PARTS, strip_column_names

logger = logging.getLogger(__name__)


def load_turnstile_logs(paths: Sequence[Path]) -> List[pd.DataFrame]:
    """Read raw turnstile CSV files in the given order."""
    if not paths:
        raise FileNotFoundError("No turnstile log files to load")

    logs = []
    for path in tqdm(paths, desc="Reading turnstile logs", unit="file"):
        df = pd.read_csv(path, dtype={part: str for part in TURNSTILE_ID_PARTS})
        logs.append(strip_column_names(df))
        logger.info(f"   📄 {path.name}: {len(df):,} readings")
    return logs


def build_turnstile_id(frame: pd.DataFrame, separator: str = "|") -> pd.Series:
    """Join the three raw sub-identifiers into one turnstile key."""
    parts = [frame[col].astype(str).str.strip() for col in TURNSTILE_ID_PARTS]

    for col, values in zip(TURNSTILE_ID_PARTS, parts):
        collisions = values.str.contains(separator, regex=False)
        if collisions.any():
            sample = ", ".join(values[collisions].unique()[:3])
            raise SchemaError(
                f"Turnstile identifier column {col!r} contains the separator "
                f"{separator!r} (e.g. {sample}); choose another turnstile_id_separator"
            )

    turnstile_id = parts[0]
    for part in parts[1:]:
        turnstile_id = turnstile_id + separator + part
    return turnstile_id


def build_timestamp(frame: pd.DataFrame, timestamp_format: Optional[str] = None) -> pd.Series:
    """Combine the DATE and TIME columns into one sortable datetime."""
    combined = frame["DATE"].astype(str).str.strip() + " " + frame["TIME"].astype(str).str.strip()
    try:
        return pd.to_datetime(combined, format=timestamp_format)
    except (ValueError, TypeError) as exc:
        raise SchemaError(f"Could not parse turnstile DATE/TIME values: {exc}") from exc


def merge_turnstile_logs(
    logs: Sequence[pd.DataFrame],
    separator: str = "|",
    timestamp_format: Optional[str] = None,
    downsample_hours: Optional[int] = None,
) -> pd.DataFrame:
    """Union the raw logs and derive the canonical reading columns."""
    logger.info(f"🔗 Merging {len(logs)} turnstile log table(s)...")

    input_rows = sum(len(df) for df in logs)
    combined = pd.concat(list(logs), ignore_index=True)

    readings = pd.DataFrame(
        {
            "turnstile_id": build_turnstile_id(combined, separator),
            "station_name": combined["STATION"],
            "timestamp": build_timestamp(combined, timestamp_format),
            "entry_counter": pd.to_numeric(combined["ENTRIES"]),
            "exit_counter": pd.to_numeric(combined["EXITS"]),
        },
        columns=READING_COLUMNS,
    )

    logger.info(f"   🏷️  {readings['turnstile_id'].nunique():,} unique turnstiles")
    logger.info(f"   🚉 {readings['station_name'].nunique():,} unique turnstile station names")

    if downsample_hours:
        # Hour multiples of N; with 4-hourly audits and N=3 no schedule is favoured.
        keep = readings["timestamp"].dt.hour % downsample_hours == 0
        readings = readings[keep].reset_index(drop=True)
        logger.info(
            f"   🕐 Downsampled to every {downsample_hours}h: kept {len(readings):,} "
            f"of {input_rows:,} readings"
        )

    logger.info(f"   ✅ Merged {len(readings):,} readings")
    return readings
