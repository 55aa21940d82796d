"""
Pandemic Ridership Change Pipeline
==================================

Purpose:
    Single entry point chaining the five stages over in-memory tables:

        raw stations ──► dedupe_stations ───────────────────────────────┐
        raw turnstile logs ──► merge ──► activity ──► filter ──► aggregate ──► reconcile ──► result

    Every stage returns a new DataFrame; nothing is mutated in place. Input
    schemas are validated before the first stage runs so a malformed input
    aborts without partial output.

Usage:
    result = run_pipeline(stations_df, [log_2020, log_2021, log_2022], overrides, config)
    result.result                      # final table for the map
    result.unmatched_station_names     # manual review diagnostics
    result.unmatched_turnstile_names
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import pandas as pd

from scripts.calculate_activity import calculate_activity
from scripts.calculate_ridership import aggregate_station_ridership
from scripts.config import PipelineConfig
from scripts.dedupe_stations import dedupe_stations
from scripts.filter_outliers import FilterReport, filter_outliers
from scripts.merge_turnstile_logs import merge_turnstile_logs
from scripts.reconcile_station_names import (
    NameOverride,
    ReconciliationReport,
    build_result,
    reconcile_station_names,
)
from scripts.schemas import standardize_stations, validate_turnstile_logs

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Final table plus the diagnostics needed for the manual review."""

    result: pd.DataFrame
    unmatched_station_names: List[str]
    unmatched_turnstile_names: List[str]
    station_ridership: pd.DataFrame
    filter_report: FilterReport
    reconciliation: ReconciliationReport


def run_pipeline(
    stations: pd.DataFrame,
    turnstile_logs: Sequence[pd.DataFrame],
    overrides: Sequence[NameOverride] = (),
    config: Optional[PipelineConfig] = None,
) -> PipelineResult:
    """Turn raw stations and turnstile logs into per-station ridership ratios."""
    config = config or PipelineConfig()

    # Schema checks first: no stage runs on malformed input.
    station_table = standardize_stations(stations)
    logs = validate_turnstile_logs(turnstile_logs)

    deduped = dedupe_stations(station_table)

    readings = merge_turnstile_logs(
        logs,
        separator=config.turnstile_id_separator,
        timestamp_format=config.timestamp_format,
        downsample_hours=config.downsample_hours,
    )
    activity = calculate_activity(readings)
    cleaned, filter_report = filter_outliers(activity, config)
    ridership = aggregate_station_ridership(cleaned)

    reconciliation = reconcile_station_names(
        deduped["stop_name"].tolist(),
        ridership["station_name"].dropna().unique().tolist(),
        overrides,
        strict=config.strict_matching,
    )
    result = build_result(
        deduped,
        ridership,
        reconciliation.mapping,
        baseline_year=config.baseline_year,
        comparison_years=config.comparison_years,
    )

    return PipelineResult(
        result=result,
        unmatched_station_names=reconciliation.unmatched_station_names,
        unmatched_turnstile_names=reconciliation.unmatched_turnstile_names,
        station_ridership=ridership,
        filter_report=filter_report,
        reconciliation=reconciliation,
    )
