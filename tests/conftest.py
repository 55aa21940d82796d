"""Shared pytest fixtures for the pipeline stage tests.

Raw tables are built in memory with the MTA export column layout so each
stage can be tested in isolation without committing data files.
"""

from __future__ import annotations

from typing import List, Optional

import pandas as pd
import pytest

from scripts.config import PipelineConfig

TURNSTILE_HEADERS: List[str] = [
    "C/A",
    "UNIT",
    "SCP",
    "STATION",
    "LINENAME",
    "DIVISION",
    "DATE",
    "TIME",
    "DESC",
    "ENTRIES",
    "EXITS",
]


def make_log(rows: List[tuple]) -> pd.DataFrame:
    """Build a raw turnstile log from (C/A, UNIT, SCP, STATION, DATE, TIME, ENTRIES, EXITS) tuples."""
    records = [
        {
            "C/A": ca,
            "UNIT": unit,
            "SCP": scp,
            "STATION": station,
            "LINENAME": "1",
            "DIVISION": "IRT",
            "DATE": date,
            "TIME": time,
            "DESC": "REGULAR",
            "ENTRIES": entries,
            "EXITS": exits,
        }
        for ca, unit, scp, station, date, time, entries, exits in rows
    ]
    return pd.DataFrame(records, columns=TURNSTILE_HEADERS)


def make_activity(rows: List[tuple], year: Optional[int] = 2020) -> pd.DataFrame:
    """Build an activity table from (turnstile_id, station_name, entry, exit) tuples."""
    return pd.DataFrame(
        [
            {
                "turnstile_id": turnstile_id,
                "station_name": station,
                "year": year,
                "entry_activity": entry,
                "exit_activity": exit_,
            }
            for turnstile_id, station, entry, exit_ in rows
        ]
    )


@pytest.fixture
def raw_stations() -> pd.DataFrame:
    """Station export with north/south duplicates and one station never logged."""
    return pd.DataFrame(
        {
            "Stop Name": [
                "125 St",
                "125 St",
                "Grand Central-42 St",
                "Grand Central-42 St",
                "Flushing-Main St",
            ],
            "Borough": ["M", "M", "M", None, "Q"],
            "GTFS Latitude": [40.8075, 40.8041, 40.7518, 40.7527, 40.7596],
            "GTFS Longitude": [-73.9455, -73.9375, -73.9768, -73.9772, -73.8300],
            "Georeference": ["POINT (-73.9455 40.8075)"] * 5,
        }
    )


@pytest.fixture
def yearly_logs() -> List[pd.DataFrame]:
    """January logs for 2020, 2021 and 2022 covering three turnstile station names."""
    log_2020 = make_log(
        [
            ("R001", "R101", "00-00-00", "125th Street", "01/01/2020", "03:00:00", 100, 200),
            ("R001", "R101", "00-00-00", "125th Street", "01/01/2020", "07:00:00", 150, 260),
            ("R001", "R101", "00-00-00", "125th Street", "01/01/2020", "11:00:00", 250, 300),
            ("A002", "R051", "02-00-00", "GRD CNTRL-42 ST", "01/01/2020", "03:00:00", 1000, 500),
            ("A002", "R051", "02-00-00", "GRD CNTRL-42 ST", "01/01/2020", "07:00:00", 1400, 700),
            ("P001", "R550", "00-00-01", "PATH NEW WTC", "01/01/2020", "03:00:00", 10, 10),
            ("P001", "R550", "00-00-01", "PATH NEW WTC", "01/01/2020", "07:00:00", 20, 20),
        ]
    )
    log_2021 = make_log(
        [
            ("R001", "R101", "00-00-00", "125th Street", "01/01/2021", "03:00:00", 10, 5),
            ("R001", "R101", "00-00-00", "125th Street", "01/01/2021", "07:00:00", 40, 25),
            ("A002", "R051", "02-00-00", "GRD CNTRL-42 ST", "01/01/2021", "03:00:00", 1500, 800),
            ("A002", "R051", "02-00-00", "GRD CNTRL-42 ST", "01/01/2021", "07:00:00", 1600, 900),
        ]
    )
    log_2022 = make_log(
        [
            ("R001", "R101", "00-00-00", "125th Street", "01/01/2022", "03:00:00", 500, 500),
            ("R001", "R101", "00-00-00", "125th Street", "01/01/2022", "07:00:00", 580, 560),
            ("A002", "R051", "02-00-00", "GRD CNTRL-42 ST", "01/01/2022", "03:00:00", 2000, 1000),
            ("A002", "R051", "02-00-00", "GRD CNTRL-42 ST", "01/01/2022", "07:00:00", 2300, 1100),
        ]
    )
    return [log_2020, log_2021, log_2022]


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig()
