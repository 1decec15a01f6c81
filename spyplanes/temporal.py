"""Local time conversion and calendar attributes.

UTC timestamps are shifted by the whole-hour offset of the containing timezone
polygon. Calendar fields (date, weekday, hour, holiday, work_day) are derived
from the local timestamp; the holiday list is supplied as configuration.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Tuple

import geopandas as gpd
import numpy as np
import pandas as pd

from spyplanes.spatial import DEFAULT_CRS, join_polygons

WEEKDAY_ORDER: List[str] = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]


def assign_timezones(
    df: pd.DataFrame, zones: gpd.GeoDataFrame, crs: str = DEFAULT_CRS, reproject: bool = True
) -> pd.DataFrame:
    """Add ``tz_offset`` (hours from UTC) from the containing timezone polygon."""

    out = join_polygons(df, zones, ["tz_offset"], crs=crs, reproject=reproject, label="timezone")
    out["tz_offset"] = pd.to_numeric(out["tz_offset"], errors="coerce")
    return out


def localize(df: pd.DataFrame) -> pd.DataFrame:
    """Add ``local_timestamp`` = UTC timestamp + ``tz_offset`` hours.

    The result is naive local wall-clock time; rows without an offset get NaT.
    """

    out = df.copy()
    utc = out["timestamp"]
    if utc.dt.tz is not None:
        utc = utc.dt.tz_convert("UTC").dt.tz_localize(None)
    out["local_timestamp"] = utc + pd.to_timedelta(out["tz_offset"].astype(float), unit="h")

    missing = int(out["local_timestamp"].isna().sum())
    if missing:
        logging.warning("%d detections outside all timezone polygons have no local time", missing)
    return out


def is_work_day(dates: pd.Series, holidays: Iterable[pd.Timestamp]) -> pd.Series:
    """Return ``"Y"`` for working days and ``"N"`` for weekends and listed holidays."""

    dates = pd.to_datetime(dates)
    weekend = dates.dt.dayofweek >= 5
    holiday = dates.dt.normalize().isin(pd.DatetimeIndex(list(holidays)))
    flags = pd.Series(np.where(weekend | holiday, "N", "Y"), index=dates.index, dtype=object)
    return flags.where(dates.notna())


def add_calendar_fields(df: pd.DataFrame, holidays: Iterable[pd.Timestamp]) -> pd.DataFrame:
    """Derive date, weekday, hour, holiday and work_day from ``local_timestamp``."""

    holidays = pd.DatetimeIndex(list(holidays))
    out = df.copy()
    local = out["local_timestamp"]
    out["date"] = local.dt.normalize()
    out["weekday"] = local.dt.day_name()
    out["hour"] = local.dt.hour.astype("Int64")
    out["holiday"] = out["date"].isin(holidays)
    out["work_day"] = is_work_day(out["date"], holidays)
    return out


def calendar_frame(df: pd.DataFrame) -> Tuple[pd.DataFrame, Dict[str, int]]:
    """Rows usable for calendar aggregates, plus the exclusion counts.

    Drops detections without a local timestamp, then the first and last local
    date of the observation window, which are incomplete after conversion.
    """

    located = df[df["local_timestamp"].notna()]
    excluded = {"no_timezone": len(df) - len(located), "window_edges": 0}
    if located.empty:
        return located.reset_index(drop=True), excluded

    first, last = located["date"].min(), located["date"].max()
    edges = located["date"].isin([first, last])
    excluded["window_edges"] = int(edges.sum())
    logging.info(
        "Calendar aggregates exclude %d detections without timezone and %d on edge dates %s / %s",
        excluded["no_timezone"],
        excluded["window_edges"],
        first.date(),
        last.date(),
    )
    return located[~edges].reset_index(drop=True), excluded


def date_grid(start: pd.Timestamp, end: pd.Timestamp, holidays: Iterable[pd.Timestamp]) -> pd.DataFrame:
    """Every date from ``start`` to ``end`` with its weekday, holiday and work_day flags."""

    holidays = pd.DatetimeIndex(list(holidays))
    grid = pd.DataFrame({"date": pd.date_range(start, end, freq="D")})
    grid["weekday"] = grid["date"].dt.day_name()
    grid["holiday"] = grid["date"].isin(holidays)
    grid["work_day"] = is_work_day(grid["date"], holidays)
    return grid


def non_work_ranges(grid: pd.DataFrame) -> List[Tuple[pd.Timestamp, pd.Timestamp]]:
    """Contiguous runs of non-working dates as inclusive (start, end) pairs."""

    ranges: List[Tuple[pd.Timestamp, pd.Timestamp]] = []
    start = prev = None
    for date, flag in zip(grid["date"], grid["work_day"]):
        if flag == "N":
            if start is not None and date - prev > pd.Timedelta(days=1):
                ranges.append((start, prev))
                start = None
            if start is None:
                start = date
            prev = date
        elif start is not None:
            ranges.append((start, prev))
            start = None
    if start is not None:
        ranges.append((start, prev))
    return ranges
