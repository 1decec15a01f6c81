"""Grouped summaries over enriched detections.

Each function takes an enriched detection frame and returns one deterministic,
sorted table. Calendar summaries expect the output of
:func:`spyplanes.temporal.calendar_frame` and a matching date grid.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

from spyplanes.temporal import WEEKDAY_ORDER

# Rounding of the working/non-working comparison per metric.
WORKDAY_METRICS: List[Tuple[str, int]] = [("aircraft", 2), ("detections", 2), ("flight_hours", 1)]


def _agencies(df: pd.DataFrame) -> List[str]:
    return sorted(df["agency"].dropna().unique().tolist())


def aircraft_group(codes: pd.Series, category_groups: Mapping[object, str]) -> pd.Series:
    """Collapse registry aircraft-category codes into coarse groups."""

    lookup = {float(code): group for code, group in category_groups.items()}
    numeric = pd.to_numeric(codes, errors="coerce").astype(float)
    return numeric.map(lookup).fillna("other")


def aircraft_by_agency_type(df: pd.DataFrame, category_groups: Mapping[object, str]) -> pd.DataFrame:
    """Distinct aircraft per agency and aircraft group (fixed-wing, helicopter)."""

    frame = df.assign(aircraft_group=aircraft_group(df["type_aircraft"], category_groups))
    out = frame.groupby(["agency", "aircraft_group"])["adshex"].nunique().reset_index(name="aircraft")
    return out.sort_values(["agency", "aircraft_group"]).reset_index(drop=True)


def flights_by_agency(df: pd.DataFrame) -> pd.DataFrame:
    """Distinct flight segments and distinct aircraft-days per agency.

    Both undercount true flights: coverage gaps split one flight into several
    segments, and an aircraft may fly more than once a day.
    """

    segments = df.drop_duplicates(["adshex", "flight_id"]).groupby("agency").size()
    dated = df[df["date"].notna()]
    aircraft_days = dated.drop_duplicates(["adshex", "date"]).groupby("agency").size()
    out = pd.DataFrame({"segments": segments, "aircraft_days": aircraft_days}).fillna(0).astype(int)
    out.index.name = "agency"
    return out.reset_index().sort_values("agency").reset_index(drop=True)


def detections_by_aircraft(df: pd.DataFrame) -> pd.DataFrame:
    """Detection counts per aircraft, most detected first.

    An aircraft whose ownership was corrected keeps one row; ``agency`` lists
    every agency it flew for, joined with "/".
    """

    keys = [col for col in ("adshex", "n_number", "mfr", "model") if col in df.columns]
    grouped = df.groupby(keys, dropna=False)
    agencies = grouped["agency"].agg(lambda s: "/".join(sorted(s.dropna().astype(str).unique())))
    out = pd.concat([agencies, grouped.size().rename("detections")], axis=1).reset_index()
    return out.sort_values(["detections", "adshex"], ascending=[False, True]).reset_index(drop=True)


def _state_summary(frame: pd.DataFrame) -> pd.DataFrame:
    return (
        frame.groupby(["state_name", "state_abbr"])
        .agg(aircraft=("adshex", "nunique"), detections=("adshex", "size"))
        .reset_index()
    )


def state_counts(df: pd.DataFrame) -> pd.DataFrame:
    """Distinct aircraft and detections per state, per agency and for ``all``.

    Detections outside every state polygon are excluded.
    """

    matched = df[df["state_name"].notna()]
    columns = ["agency", "state_name", "state_abbr", "aircraft", "detections"]
    if matched.empty:
        return pd.DataFrame(columns=columns)

    parts = [_state_summary(group).assign(agency=agency) for agency, group in matched.groupby("agency")]
    parts.append(_state_summary(matched).assign(agency="all"))
    out = pd.concat(parts, ignore_index=True)[columns]
    return out.sort_values(["agency", "detections", "state_name"], ascending=[True, False, True]).reset_index(
        drop=True
    )


def hourly_detections(df: pd.DataFrame) -> pd.DataFrame:
    """Detections per agency and local hour of day, zero-filled over 0-23."""

    frame = df[df["hour"].notna()]
    counts = frame.groupby([frame["agency"], frame["hour"].astype(int)]).size()
    index = pd.MultiIndex.from_product([_agencies(df), range(24)], names=["agency", "hour"])
    return counts.reindex(index, fill_value=0).reset_index(name="detections")


def segment_durations(df: pd.DataFrame) -> pd.DataFrame:
    """Duration in hours of every (aircraft, date, agency, segment) group.

    A segment with a single detection lasts zero hours.
    """

    keys = ["adshex", "date", "agency", "flight_id"]
    grouped = df.groupby(keys)["timestamp"]
    hours = (grouped.max() - grouped.min()).dt.total_seconds() / 3600.0
    return hours.reset_index(name="duration_hours")


def daily_counts(
    df: pd.DataFrame, grid: pd.DataFrame, agencies: Sequence[str] | None = None
) -> pd.DataFrame:
    """Per agency and date: distinct aircraft, detections and flight hours.

    Every date of ``grid`` appears for every agency; days without detections
    count as zero.
    """

    agencies = list(agencies) if agencies is not None else _agencies(df)
    index = pd.MultiIndex.from_product([agencies, grid["date"]], names=["agency", "date"])
    if df.empty:
        daily = pd.DataFrame(index=index, columns=["aircraft", "detections", "flight_hours"], dtype=float)
    else:
        daily = df.groupby(["agency", "date"]).agg(aircraft=("adshex", "nunique"), detections=("adshex", "size"))
        hours = segment_durations(df).groupby(["agency", "date"])["duration_hours"].sum().rename("flight_hours")
        daily = daily.join(hours, how="left").reindex(index)
    daily[["aircraft", "detections"]] = daily[["aircraft", "detections"]].fillna(0).astype(int)
    daily["flight_hours"] = daily["flight_hours"].fillna(0.0)
    daily = daily.reset_index().merge(grid[["date", "weekday", "holiday", "work_day"]], on="date", how="left")
    return daily


def percent_reduction(working: float, non_working: float, decimals: int) -> float:
    """``100 * (1 - non_working / working)`` rounded; NaN when undefined."""

    if working is None or non_working is None or not working or math.isnan(working) or math.isnan(non_working):
        return float("nan")
    return round(100.0 * (1.0 - non_working / working), decimals)


def workday_comparison(daily: pd.DataFrame) -> pd.DataFrame:
    """Mean daily values on working vs non-working days, with percentage reduction."""

    rows: List[Dict[str, object]] = []
    for agency, frame in daily.groupby("agency"):
        for metric, decimals in WORKDAY_METRICS:
            means = frame.groupby("work_day")[metric].mean()
            working = float(means.get("Y", float("nan")))
            non_working = float(means.get("N", float("nan")))
            rows.append(
                {
                    "agency": agency,
                    "metric": metric,
                    "working": round(working, decimals),
                    "non_working": round(non_working, decimals),
                    "reduction_pct": percent_reduction(working, non_working, decimals),
                }
            )
    return pd.DataFrame(rows, columns=["agency", "metric", "working", "non_working", "reduction_pct"])


def weekday_detections(df: pd.DataFrame) -> pd.DataFrame:
    """Detections per agency and weekday (Sunday first), holiday dates excluded."""

    frame = df[~df["holiday"].astype(bool)]
    counts = frame.groupby(["agency", "weekday"]).size()
    index = pd.MultiIndex.from_product([_agencies(df), WEEKDAY_ORDER], names=["agency", "weekday"])
    return counts.reindex(index, fill_value=0).reset_index(name="detections")


def urban_daily_counts(df: pd.DataFrame, grid: pd.DataFrame, urban_names: Iterable[str]) -> pd.DataFrame:
    """Daily series per agency restricted to each named urban area."""

    agencies = _agencies(df)
    parts = []
    for name in urban_names:
        subset = df[df["urban_name"] == name]
        parts.append(daily_counts(subset, grid, agencies).assign(urban_name=name))
    if not parts:
        return pd.DataFrame()
    out = pd.concat(parts, ignore_index=True)
    return out[["urban_name", *[col for col in out.columns if col != "urban_name"]]]


def event_comparison(urban_daily: pd.DataFrame, event_date: pd.Timestamp) -> pd.DataFrame:
    """Mean daily aircraft and detections before and from ``event_date`` per urban area."""

    if urban_daily.empty:
        return pd.DataFrame(columns=["urban_name", "agency", "period", "aircraft", "detections"])
    frame = urban_daily.assign(period=np.where(urban_daily["date"] < event_date, "before", "after"))
    out = frame.groupby(["urban_name", "agency", "period"])[["aircraft", "detections"]].mean().round(2)
    return out.reset_index().sort_values(["urban_name", "agency", "period"], ascending=[True, True, False]).reset_index(
        drop=True
    )


def altitude_histogram(
    df: pd.DataFrame,
    agency: str,
    mfr: str,
    bin_width: int,
    limits: Tuple[int, int],
) -> pd.DataFrame:
    """Detection counts per fixed-width altitude bin for one agency/manufacturer."""

    same_mfr = (df["mfr"].astype("string").str.strip().str.upper() == mfr.upper()).fillna(False).astype(bool)
    subset = df[(df["agency"] == agency) & same_mfr]
    altitudes = subset["altitude"].dropna().to_numpy(dtype=float)
    lower, upper = limits
    edges = np.arange(lower, upper + bin_width, bin_width)
    counts, edges = np.histogram(altitudes, bins=edges)
    return pd.DataFrame(
        {
            "agency": agency,
            "mfr": mfr,
            "bin_start": edges[:-1].astype(int),
            "bin_end": edges[1:].astype(int),
            "detections": counts.astype(int),
        }
    )


def overview(
    enriched: pd.DataFrame,
    calendar: pd.DataFrame,
    excluded: Mapping[str, int],
    misses: Mapping[str, int],
) -> pd.DataFrame:
    """Headline totals and exclusion counts as a metric/value table."""

    rows = [
        ("detections", len(enriched)),
        ("aircraft", enriched["adshex"].nunique()),
        ("flight_segments", len(enriched.drop_duplicates(["adshex", "flight_id"]))),
        ("first_detection_utc", str(enriched["timestamp"].min())),
        ("last_detection_utc", str(enriched["timestamp"].max())),
        ("detections_without_registrant", int(enriched["agency"].isna().sum())),
        ("detections_without_timezone", int(excluded.get("no_timezone", 0))),
        ("detections_on_window_edge_dates", int(excluded.get("window_edges", 0))),
        ("detections_outside_states", int(misses.get("state", 0))),
        ("detections_outside_urban_areas", int(misses.get("urban area", 0))),
        ("calendar_detections", len(calendar)),
    ]
    if not calendar.empty:
        rows.append(("first_calendar_date", str(calendar["date"].min().date())))
        rows.append(("last_calendar_date", str(calendar["date"].max().date())))
    return pd.DataFrame(rows, columns=["metric", "value"])
