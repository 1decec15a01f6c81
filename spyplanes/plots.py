"""Matplotlib charts for the report.

Every helper draws one figure from an aggregate table and saves it as PNG.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd

AGENCY_COLORS = {"fbi": "#4E79A7", "dhs": "#E15759"}
FALLBACK_COLORS = ["#59A14F", "#F28E2B", "#B07AA1", "#76B7B2"]
# No Software tag in PNG metadata.
PNG_METADATA = {"Software": None}


def _color(agency: str, idx: int) -> str:
    return AGENCY_COLORS.get(str(agency).lower(), FALLBACK_COLORS[idx % len(FALLBACK_COLORS)])


def _save(fig, output_path: Path) -> None:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(output_path, dpi=150, metadata=PNG_METADATA)
    plt.close(fig)


def plot_aircraft_by_type(table: pd.DataFrame, output_path: Path) -> None:
    """Grouped bars of distinct aircraft per agency and aircraft group."""

    pivot = table.pivot(index="agency", columns="aircraft_group", values="aircraft").fillna(0)
    fig, ax = plt.subplots(figsize=(6, 4))
    pivot.plot.bar(ax=ax, rot=0)
    ax.set_xlabel("agency")
    ax.set_ylabel("aircraft")
    ax.set_title("Aircraft by agency and type")
    _save(fig, output_path)


def plot_hourly(table: pd.DataFrame, output_path: Path) -> None:
    """Detections by local hour of day, one line per agency."""

    fig, ax = plt.subplots(figsize=(8, 4))
    for idx, (agency, group) in enumerate(table.groupby("agency")):
        ax.plot(group["hour"], group["detections"], marker="o", color=_color(agency, idx), label=agency)
    ax.set_xticks(range(0, 24, 2))
    ax.set_xlabel("hour of day (local)")
    ax.set_ylabel("detections")
    ax.set_title("Detections by hour of day")
    ax.legend(loc="best")
    _save(fig, output_path)


def plot_weekday(table: pd.DataFrame, output_path: Path) -> None:
    """Detections by weekday (holidays excluded), one panel per agency."""

    agencies = sorted(table["agency"].unique())
    fig, axes = plt.subplots(1, max(len(agencies), 1), figsize=(5 * max(len(agencies), 1), 4), squeeze=False)
    for idx, agency in enumerate(agencies):
        ax = axes[0][idx]
        group = table[table["agency"] == agency]
        ax.bar(group["weekday"].str[:3], group["detections"], color=_color(agency, idx))
        ax.set_title(str(agency))
        ax.set_ylabel("detections")
    fig.suptitle("Detections by weekday, excluding holidays")
    _save(fig, output_path)


def _shade_ranges(ax, ranges: List[Tuple[pd.Timestamp, pd.Timestamp]]) -> None:
    for start, end in ranges:
        ax.axvspan(start - pd.Timedelta(hours=12), end + pd.Timedelta(hours=12), color="#BBBBBB", alpha=0.3, lw=0)


def plot_daily(
    daily: pd.DataFrame,
    value: str,
    output_path: Path,
    shaded: List[Tuple[pd.Timestamp, pd.Timestamp]],
    title: str,
    event_date: pd.Timestamp | None = None,
) -> None:
    """Daily series per agency with weekends/holidays shaded and an optional event marker."""

    fig, ax = plt.subplots(figsize=(10, 4))
    _shade_ranges(ax, shaded)
    for idx, (agency, group) in enumerate(daily.groupby("agency")):
        ax.plot(group["date"], group[value], color=_color(agency, idx), label=agency)
    if event_date is not None:
        ax.axvline(event_date, color="black", linestyle="--", lw=1)
    ax.set_ylabel(value)
    ax.set_title(title)
    ax.legend(loc="best")
    fig.autofmt_xdate()
    _save(fig, output_path)


def plot_altitude_histogram(hist: pd.DataFrame, title: str, output_path: Path) -> None:
    """Bar rendering of a precomputed altitude histogram."""

    fig, ax = plt.subplots(figsize=(6, 4))
    width = hist["bin_end"] - hist["bin_start"]
    ax.bar(hist["bin_start"], hist["detections"], width=width, align="edge", color="#4E79A7", edgecolor="white")
    if not hist.empty:
        ax.set_xlim(hist["bin_start"].min(), hist["bin_end"].max())
    ax.set_xlabel("altitude (ft)")
    ax.set_ylabel("detections")
    ax.set_title(title)
    _save(fig, output_path)
