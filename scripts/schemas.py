"""
Column Contracts for Pipeline Input Tables
==========================================

Purpose:
    Names the raw columns each input table must carry and the canonical
    column names used between stages. Validation runs before any stage so
    a malformed input aborts the run without producing partial output.

Raw inputs:
    - Station metadata (MTA Subway Stations export):
      Stop Name, Borough, GTFS Latitude, GTFS Longitude
    - Turnstile logs (one file per covered year/month):
      C/A, UNIT, SCP, STATION, DATE, TIME, ENTRIES, EXITS
      The MTA files pad the EXITS header with spaces, so headers are stripped.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

import pandas as pd

from scripts.errors import SchemaError

# Raw station metadata -> canonical Station columns
STATION_COLUMN_MAP: Dict[str, str] = {
    "Stop Name": "stop_name",
    "Borough": "borough",
    "GTFS Latitude": "latitude",
    "GTFS Longitude": "longitude",
}
STATION_COLUMNS: List[str] = list(STATION_COLUMN_MAP.values())

# Raw turnstile log columns
TURNSTILE_ID_PARTS: List[str] = ["C/A", "UNIT", "SCP"]
TURNSTILE_RAW_COLUMNS: List[str] = TURNSTILE_ID_PARTS + [
    "STATION",
    "DATE",
    "TIME",
    "ENTRIES",
    "EXITS",
]
COUNTER_COLUMNS: List[str] = ["ENTRIES", "EXITS"]

# Canonical table layouts between stages
READING_COLUMNS: List[str] = [
    "turnstile_id",
    "station_name",
    "timestamp",
    "entry_counter",
    "exit_counter",
]
PARTITION_COLUMNS: List[str] = ["turnstile_id", "station_name", "year"]
ACTIVITY_COLUMNS: List[str] = ["entry_activity", "exit_activity"]
RIDERSHIP_COLUMNS: List[str] = ["station_name", "year", "ridership"]

# Manual override CSV headers -> NameOverride fields
OVERRIDE_COLUMN_MAP: Dict[str, str] = {
    "Station_Stop_Name": "station_side_name",
    "Turnstile_Stop_Name": "turnstile_side_name",
    "New_Turnstile_Stop_Name": "override_name",
}


def strip_column_names(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy with surrounding whitespace removed from every header."""
    return df.rename(columns=lambda col: str(col).strip())


def require_columns(df: pd.DataFrame, required: Iterable[str], table: str) -> None:
    """Raise SchemaError when ``df`` lacks any of the ``required`` columns."""
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise SchemaError(
            f"{table} is missing required column(s): {', '.join(missing)} "
            f"(found: {', '.join(map(str, df.columns))})"
        )


def require_numeric(df: pd.DataFrame, columns: Iterable[str], table: str) -> None:
    """Raise SchemaError when a column holds values that are not numbers."""
    for col in columns:
        values = df[col]
        coerced = pd.to_numeric(values, errors="coerce")
        bad = coerced.isna() & values.notna()
        if bad.any():
            sample = values[bad].astype(str).unique()[:5]
            raise SchemaError(
                f"{table} column {col!r} holds {int(bad.sum()):,} non-numeric value(s), "
                f"e.g. {', '.join(sample)}"
            )


def standardize_stations(raw: pd.DataFrame) -> pd.DataFrame:
    """Validate raw station metadata and rename it to the canonical layout."""
    df = strip_column_names(raw)
    require_columns(df, STATION_COLUMN_MAP, "station metadata")
    require_numeric(df, ["GTFS Latitude", "GTFS Longitude"], "station metadata")

    df = df[list(STATION_COLUMN_MAP)].rename(columns=STATION_COLUMN_MAP).copy()
    df["latitude"] = pd.to_numeric(df["latitude"])
    df["longitude"] = pd.to_numeric(df["longitude"])
    return df


def validate_turnstile_logs(logs: Sequence[pd.DataFrame]) -> List[pd.DataFrame]:
    """Validate every raw turnstile log and return header-stripped copies."""
    if not logs:
        raise SchemaError("No turnstile log tables were provided")

    validated = []
    for idx, raw in enumerate(logs):
        table = f"turnstile log #{idx + 1}"
        df = strip_column_names(raw)
        require_columns(df, TURNSTILE_RAW_COLUMNS, table)
        require_numeric(df, COUNTER_COLUMNS, table)
        validated.append(df)
    return validated
