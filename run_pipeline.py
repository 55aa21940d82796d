#!/usr/bin/env python3
"""Command-line runner for the pandemic ridership change pipeline."""

from __future__ import annotations

import argparse
import sys
import time
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from scripts.config import DEFAULT_CONFIG_PATH, PipelineConfig, load_config
from scripts.errors import PipelineError
from scripts.merge_turnstile_logs import load_turnstile_logs
from scripts.pipeline import PipelineResult, run_pipeline
from scripts.reconcile_station_names import load_name_overrides
from scripts.utils.runtime import find_project_root, setup_pipeline_logging


PROJECT_ROOT = find_project_root(Path(__file__).resolve().parent)

RESULT_FILENAME = "ridership_change_by_station.csv"
RESULT_SUBDIRS = ("final", "intermediate", "diagnostics")
BANNER_WIDTH = 60


def print_header(title: str, step: Optional[int] = None) -> None:
    label = f"Step {step}: {title}" if step is not None else title
    print(f"\n{'=' * BANNER_WIDTH}\n{label}\n{'=' * BANNER_WIDTH}")


def print_step(message: str) -> None:
    print(f"  - {message}")


def print_warning(message: str) -> None:
    print(f"WARNING: {message}")


def print_error(message: str) -> None:
    print(f"ERROR: {message}", file=sys.stderr)


def clean_results_dirs(results_dir: Path, subdirs: Sequence[str] = RESULT_SUBDIRS) -> Dict[str, int]:
    """Remove CSVs left by a previous run; returns the count removed per subdirectory."""
    removed = {}
    for name in subdirs:
        target = results_dir / name
        stale = sorted(target.glob("*.csv")) if target.is_dir() else []
        for csv_path in stale:
            csv_path.unlink(missing_ok=True)
        removed[name] = len(stale)
    return removed


def find_turnstile_files(config: PipelineConfig) -> List[Path]:
    """Find raw turnstile CSV files sorted by filename."""
    if not config.turnstile_dir.exists():
        raise FileNotFoundError(f"Turnstile source directory not found: {config.turnstile_dir}")

    files = sorted(
        [path for path in config.turnstile_dir.glob(config.turnstile_glob) if path.is_file()],
        key=lambda path: path.name.lower(),
    )
    if not files:
        raise FileNotFoundError(f"No turnstile files matching {config.turnstile_glob!r} in {config.turnstile_dir}")
    return files


def write_names(names: List[str], path: Path, column: str) -> None:
    pd.DataFrame({column: names}).to_csv(path, index=False)


def write_outputs(outcome: PipelineResult, config: PipelineConfig, skip_diagnostics: bool) -> List[Path]:
    """Write the final table, the intermediate ridership and the diagnostics."""
    final_dir = config.results_dir / "final"
    intermediate_dir = config.results_dir / "intermediate"
    diagnostics_dir = config.results_dir / "diagnostics"
    final_dir.mkdir(parents=True, exist_ok=True)
    intermediate_dir.mkdir(parents=True, exist_ok=True)

    written = [final_dir / RESULT_FILENAME, intermediate_dir / "station_ridership.csv"]
    outcome.result.to_csv(written[0], index=False)
    outcome.station_ridership.to_csv(written[1], index=False)

    # The unmatched lists are always written: they drive the override table edits.
    diagnostics_dir.mkdir(parents=True, exist_ok=True)
    reconciliation = outcome.reconciliation
    unmatched_stations = diagnostics_dir / "unmatched_stations.csv"
    unmatched_turnstiles = diagnostics_dir / "unmatched_turnstile_names.csv"
    write_names(outcome.unmatched_station_names, unmatched_stations, "Stop_Name")
    write_names(outcome.unmatched_turnstile_names, unmatched_turnstiles, "Station")
    written += [unmatched_stations, unmatched_turnstiles]

    if skip_diagnostics:
        return written

    ambiguous_path = diagnostics_dir / "ambiguous_matches.csv"
    pd.DataFrame(
        [
            {"turnstile_name": name, "candidate_stop_name": candidate}
            for name, candidates in sorted(reconciliation.ambiguous.items())
            for candidate in candidates
        ],
        columns=["turnstile_name", "candidate_stop_name"],
    ).to_csv(ambiguous_path, index=False)
    written.append(ambiguous_path)

    for column, histogram in outcome.filter_report.histograms.items():
        histogram_path = diagnostics_dir / f"activity_histogram_{column.replace('_activity', '')}.csv"
        histogram.to_csv(histogram_path, index=False)
        written.append(histogram_path)

    return written


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Build per-station ridership change ratios from raw MTA turnstile logs "
            "and station metadata."
        )
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"YAML configuration file (default: {DEFAULT_CONFIG_PATH}).",
    )
    parser.add_argument(
        "--magnitude-cutoff",
        type=int,
        default=None,
        help="Pin the runaway-activity cutoff instead of deriving it from the histogram.",
    )
    parser.add_argument(
        "--strict-matching",
        action="store_true",
        help="Fail when a turnstile station name matches several stations.",
    )
    parser.add_argument(
        "--skip-diagnostics",
        action="store_true",
        help="Only write the unmatched-name lists, not histograms or ambiguous matches.",
    )

    args = parser.parse_args(argv)
    if args.magnitude_cutoff is not None and args.magnitude_cutoff <= 0:
        parser.error("--magnitude-cutoff must be positive")
    return args


def build_config(args: argparse.Namespace) -> PipelineConfig:
    config_path = args.config or PROJECT_ROOT / DEFAULT_CONFIG_PATH
    config = load_config(config_path) if config_path.exists() or args.config else PipelineConfig()

    overrides = {}
    if args.magnitude_cutoff is not None:
        overrides["magnitude_cutoff"] = args.magnitude_cutoff
    if args.strict_matching:
        overrides["strict_matching"] = True
    return replace(config, **overrides).resolve(PROJECT_ROOT)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    started = time.monotonic()

    print_header("Pandemic Ridership Change Pipeline")
    print(f"Started at: {datetime.now().isoformat(timespec='seconds')}")
    print(f"Project root: {PROJECT_ROOT}")
    print(f"Python: {sys.executable}")

    try:
        logger, log_path = setup_pipeline_logging(base_dir=PROJECT_ROOT)
        print_step(f"Logging to {log_path.relative_to(PROJECT_ROOT)}")

        config = build_config(args)

        print_header("Cleaning Output Directories", step=0)
        for target, removed in clean_results_dirs(config.results_dir).items():
            print_step(f"Cleaned {target} ({removed} file(s))")

        print_header("Loading Inputs", step=1)
        if not config.stations_path.is_file():
            raise FileNotFoundError(f"Station metadata not found: {config.stations_path}")
        stations = pd.read_csv(config.stations_path)
        print_step(f"Loaded {len(stations):,} station rows from {config.stations_path.name}")

        turnstile_files = find_turnstile_files(config)
        print_step("Found turnstile files: " + ", ".join(path.name for path in turnstile_files))
        turnstile_logs = load_turnstile_logs(turnstile_files)

        overrides = load_name_overrides(config.overrides_path)
        print_step(f"Loaded {len(overrides)} manual name override(s)")

        print_header("Running Pipeline", step=2)
        outcome = run_pipeline(stations, turnstile_logs, overrides, config)

        print_header("Writing Outputs", step=3)
        for path in write_outputs(outcome, config, args.skip_diagnostics):
            print_step(f"Wrote {path.relative_to(config.results_dir)}")

        report = outcome.filter_report
        elapsed = time.monotonic() - started
        minutes, seconds = divmod(int(elapsed), 60)

        print_header("Pipeline Completed Successfully")
        print(f"Completed at: {datetime.now().isoformat(timespec='seconds')}")
        print(f"Total time: {minutes} minute(s) {seconds} second(s)")
        print(f"Readings kept: {report.output_rows:,} of {report.input_rows:,}")
        print(f"Magnitude cutoff: {report.magnitude_cutoff}")
        print(f"Stations in result: {len(outcome.result):,}")
        if outcome.unmatched_station_names or outcome.unmatched_turnstile_names:
            print_warning(
                f"{len(outcome.unmatched_station_names)} station and "
                f"{len(outcome.unmatched_turnstile_names)} turnstile names unmatched; "
                f"see {config.results_dir / 'diagnostics'} and update {config.overrides_path.name}"
            )
        logger.info("Pipeline completed")
        return 0

    except (FileNotFoundError, PipelineError) as exc:
        print_error(str(exc))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
