"""
Reconcile Station Names Between Metadata and Turnstile Logs
===========================================================

Purpose:
    The station metadata and the turnstile logs name stations with different
    conventions ("125 St" vs "125 ST", "Grand Central-42 St" vs
    "GRD CNTRL-42 ST"). Match the two vocabularies so yearly ridership can be
    joined to borough and coordinates.

Processing Steps:
    1. Normalize both sides: lowercase, unify common abbreviations, strip
       periods, whitespace, hyphens, slashes and apostrophes
    2. Match by substring containment in either direction, since one side
       often truncates or extends the other
    3. List the names left unmatched on both sides (diagnostic for the
       manual review, never skipped)
    4. Rewrite turnstile-side names with the hand-curated override table
    5. Re-normalize and match again to produce the final mapping

Known limitations:
    - Containment can pair a short name with an unrelated longer one; such
      cases surface as ambiguous matches for manual review
    - "St" is always read as "Street", never as "Saint"
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from scripts.calculate_ridership import compare_ridership
from scripts.errors import AmbiguousMatchError, SchemaError
from scripts.schemas import OVERRIDE_COLUMN_MAP, STATION_COLUMNS, require_columns

logger = logging.getLogger(__name__)

_STRIP_PATTERN = re.compile(r"[.\s\-/'’]")
_ORDINAL_PATTERN = re.compile(r"\b(\d+)(?:(?:st|nd|rd|th)(?=[\s\-/.])|(?:nd|rd|th)$)")
_ABBREVIATIONS: Dict[str, str] = {
    "street": "st",
    "avenue": "av",
    "ave": "av",
    "boulevard": "blvd",
    "parkway": "pkwy",
    "square": "sq",
    "place": "pl",
    "road": "rd",
    "heights": "hts",
    "junction": "jct",
    "center": "ctr",
    "centre": "ctr",
    "station": "sta",
}
_ABBREVIATION_PATTERN = re.compile(r"\b(" + "|".join(_ABBREVIATIONS) + r")\b")


@dataclass(frozen=True)
class NameOverride:
    """One manual correction from the override table."""

    station_side_name: Optional[str]
    turnstile_side_name: str
    override_name: Optional[str] = None

    @property
    def corrected_name(self) -> Optional[str]:
        return self.override_name or self.station_side_name


@dataclass
class ReconciliationReport:
    """Outcome of matching turnstile station names to station metadata."""

    mapping: pd.DataFrame
    unmatched_station_names: List[str]
    unmatched_turnstile_names: List[str]
    initial_unmatched_station_names: List[str] = field(default_factory=list)
    initial_unmatched_turnstile_names: List[str] = field(default_factory=list)
    ambiguous: Dict[str, List[str]] = field(default_factory=dict)
    overrides_applied: int = 0


def _normalize_once(name: str) -> str:
    text = name.lower()
    text = _ORDINAL_PATTERN.sub(r"\1", text)
    text = _ABBREVIATION_PATTERN.sub(lambda m: _ABBREVIATIONS[m.group(1)], text)
    return _STRIP_PATTERN.sub("", text)


def normalize_station_name(name: Optional[str]) -> str:
    """Reduce a station name to its matching key.

    ``"125th Street"`` and ``"125 St"`` both become ``"125st"``; a bare
    ``"125TH"`` becomes ``"125"``, which containment still pairs with
    ``"125st"``. A trailing ``st`` is kept since it doubles as Street. Rewrites
    repeat until nothing changes, so the result is a fixed point and
    normalizing twice equals normalizing once.
    """
    if name is None or (isinstance(name, float) and pd.isna(name)):
        return ""
    current = str(name)
    while True:
        normalized = _normalize_once(current)
        if normalized == current:
            return normalized
        current = normalized


def names_match(left: str, right: str) -> bool:
    """Substring containment in either direction between normalized keys."""
    if not left or not right:
        return False
    return left in right or right in left


def _match_candidates(key: str, station_keys: Dict[str, str]) -> List[str]:
    return [name for name, station_key in station_keys.items() if names_match(key, station_key)]


def _normalized(names: Iterable[str]) -> Dict[str, str]:
    return {name: normalize_station_name(name) for name in names}


def find_unmatched_names(
    station_names: Iterable[str],
    turnstile_names: Iterable[str],
) -> Tuple[List[str], List[str]]:
    """List names on each side with no containment match on the other side."""
    station_keys = _normalized(station_names)
    turnstile_keys = _normalized(turnstile_names)

    unmatched_stations = sorted(
        name
        for name, key in station_keys.items()
        if not any(names_match(key, other) for other in turnstile_keys.values())
    )
    unmatched_turnstiles = sorted(
        name
        for name, key in turnstile_keys.items()
        if not any(names_match(key, other) for other in station_keys.values())
    )
    return unmatched_stations, unmatched_turnstiles


def _clean_cell(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def load_name_overrides(path: Path) -> Tuple[NameOverride, ...]:
    """Read the hand-edited override CSV into correction records."""
    if not path.exists():
        logger.warning(f"⚠️  Override table not found: {path}; continuing without overrides")
        return ()

    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df = df.rename(columns=lambda col: str(col).strip())
    require_columns(df, OVERRIDE_COLUMN_MAP, "station override table")

    return overrides_from_frame(df.rename(columns=OVERRIDE_COLUMN_MAP))


def overrides_from_frame(df: pd.DataFrame) -> Tuple[NameOverride, ...]:
    """Build correction records from a frame with NameOverride field columns."""
    overrides = []
    for row in df.itertuples(index=False):
        turnstile_name = _clean_cell(row.turnstile_side_name)
        if turnstile_name is None:
            raise SchemaError("Override table row without a Turnstile_Stop_Name")
        overrides.append(
            NameOverride(
                station_side_name=_clean_cell(row.station_side_name),
                turnstile_side_name=turnstile_name,
                override_name=_clean_cell(getattr(row, "override_name", None)),
            )
        )
    return tuple(overrides)


def apply_name_overrides(
    names: Iterable[str],
    overrides: Sequence[NameOverride],
) -> Dict[str, str]:
    """Map each turnstile-side name to its corrected name (itself when no override)."""
    corrections = {
        override.turnstile_side_name: override.corrected_name
        for override in overrides
        if override.corrected_name
    }
    return {name: corrections.get(str(name).strip(), name) for name in names}


def _closest_candidate(key: str, candidates: List[str], station_keys: Dict[str, str]) -> str:
    return min(candidates, key=lambda name: (abs(len(station_keys[name]) - len(key)), name))


def match_station_names(
    station_names: Iterable[str],
    turnstile_names: Iterable[str],
    strict: bool = False,
) -> Tuple[Dict[str, str], Dict[str, List[str]]]:
    """Pair each turnstile-side name with one station-side name.

    Exact key equality wins, then a unique containment match. With several
    containment candidates the name is ambiguous: in strict mode that is an
    error, otherwise the candidate with the closest key length wins (ties
    resolved alphabetically).

    Returns the mapping and the ambiguous names with their candidates.
    """
    station_keys = _normalized(station_names)
    by_key: Dict[str, List[str]] = {}
    for name, key in station_keys.items():
        by_key.setdefault(key, []).append(name)

    mapping: Dict[str, str] = {}
    ambiguous: Dict[str, List[str]] = {}
    for name in turnstile_names:
        key = normalize_station_name(name)
        if not key:
            continue

        exact = by_key.get(key)
        if exact:
            mapping[name] = sorted(exact)[0]
            continue

        candidates = sorted(_match_candidates(key, station_keys))
        if not candidates:
            continue
        if len(candidates) > 1:
            ambiguous[name] = candidates
        mapping[name] = _closest_candidate(key, candidates, station_keys)

    if strict and ambiguous:
        raise AmbiguousMatchError(ambiguous)
    return mapping, ambiguous


def reconcile_station_names(
    station_names: Sequence[str],
    turnstile_names: Sequence[str],
    overrides: Sequence[NameOverride] = (),
    strict: bool = False,
) -> ReconciliationReport:
    """Run the normalize / diagnose / override / re-match sequence."""
    logger.info("🔤 Reconciling station names...")
    station_names = sorted(set(station_names))
    turnstile_names = sorted(set(turnstile_names))

    initial_stations, initial_turnstiles = find_unmatched_names(station_names, turnstile_names)
    logger.info(
        f"   🔍 Before overrides: {len(initial_stations):,} station and "
        f"{len(initial_turnstiles):,} turnstile names unmatched"
    )

    corrected = apply_name_overrides(turnstile_names, overrides)
    overrides_applied = sum(1 for name, new in corrected.items() if new != name)
    logger.info(f"   ✏️  Applied {overrides_applied:,} manual name override(s)")

    corrected_names = sorted(set(corrected.values()))
    _, final_corrected = find_unmatched_names(station_names, corrected_names)
    unmatched_corrected = set(final_corrected)
    final_turnstiles = sorted(name for name, new in corrected.items() if new in unmatched_corrected)

    matched, ambiguous_corrected = match_station_names(station_names, corrected_names, strict=strict)

    rows = [
        {
            "turnstile_name": name,
            "corrected_name": new,
            "stop_name": matched[new],
        }
        for name, new in corrected.items()
        if new in matched
    ]
    mapping = pd.DataFrame(rows, columns=["turnstile_name", "corrected_name", "stop_name"])
    ambiguous = {
        name: ambiguous_corrected[new]
        for name, new in corrected.items()
        if new in ambiguous_corrected
    }

    # Includes stations whose only candidates were claimed by a better match.
    final_stations = sorted(set(station_names) - set(mapping["stop_name"]))

    if final_stations:
        logger.warning(f"   ⚠️  {len(final_stations):,} station names have no turnstile match")
    if final_turnstiles:
        logger.warning(f"   ⚠️  {len(final_turnstiles):,} turnstile names have no station match")
    if ambiguous:
        logger.warning(
            f"   ⚠️  {len(ambiguous):,} turnstile names matched several stations; "
            "closest-length candidate used"
        )
    logger.info(f"   ✅ Matched {len(mapping):,} of {len(turnstile_names):,} turnstile station names")

    return ReconciliationReport(
        mapping=mapping,
        unmatched_station_names=final_stations,
        unmatched_turnstile_names=final_turnstiles,
        initial_unmatched_station_names=initial_stations,
        initial_unmatched_turnstile_names=initial_turnstiles,
        ambiguous=ambiguous,
        overrides_applied=overrides_applied,
    )


def build_result(
    stations: pd.DataFrame,
    ridership: pd.DataFrame,
    mapping: pd.DataFrame,
    baseline_year: int = 2020,
    comparison_years: Sequence[int] = (2021, 2022),
) -> pd.DataFrame:
    """Join matched ridership ratios with borough and coordinates.

    Ridership of every turnstile name mapped to a station is summed before
    the ratios are computed, giving one row per matched station.
    """
    logger.info("📦 Building final result table...")

    joined = ridership.merge(
        mapping[["turnstile_name", "stop_name"]],
        left_on="station_name",
        right_on="turnstile_name",
        how="inner",
    )
    per_station = joined.groupby(["stop_name", "year"], as_index=False)["ridership"].sum()

    ratios = compare_ridership(per_station, baseline_year, comparison_years, name_column="stop_name")
    result = ratios.merge(stations[STATION_COLUMNS], on="stop_name", how="left")
    result = result.sort_values("stop_name", ignore_index=True)

    logger.info(f"   ✅ {len(result):,} stations in the final result")
    return result
