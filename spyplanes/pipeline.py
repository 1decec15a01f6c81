"""End-to-end analysis: load, enrich, summarise and report.

Stages hand a new DataFrame to the next one; nothing is modified in place.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

import geopandas as gpd
import pandas as pd

from spyplanes import aggregates, plots
from spyplanes.config import AnalysisSettings, get_nested, resolve_settings
from spyplanes.io import join_registrants, load_detections, load_registrants, save_dataframe
from spyplanes.ownership import apply_ownership_corrections, corrections_table
from spyplanes.report import Report
from spyplanes.spatial import join_misses, join_states, join_urban_areas, load_boundaries
from spyplanes.temporal import (
    add_calendar_fields,
    assign_timezones,
    calendar_frame,
    date_grid,
    localize,
    non_work_ranges,
)


def enrich(
    detections: pd.DataFrame,
    registrants: pd.DataFrame,
    zones: gpd.GeoDataFrame,
    states: gpd.GeoDataFrame,
    urban_areas: gpd.GeoDataFrame,
    settings: AnalysisSettings,
) -> pd.DataFrame:
    """Run the loader join, temporal, ownership and spatial stages in order."""

    df = join_registrants(detections.reset_index(drop=True), registrants)
    df = assign_timezones(df, zones, crs=settings.crs, reproject=settings.reproject)
    df = localize(df)
    df = add_calendar_fields(df, settings.holidays)
    df = apply_ownership_corrections(df, settings.corrections)
    df = join_states(df, states, crs=settings.crs, reproject=settings.reproject)
    df = join_urban_areas(df, urban_areas, crs=settings.crs, reproject=settings.reproject)
    logging.info("Enriched %d detections of %d aircraft", len(df), df["adshex"].nunique())
    return df


def summarise(enriched: pd.DataFrame, settings: AnalysisSettings) -> Dict[str, pd.DataFrame]:
    """Compute every report table from the enriched detections.

    Calendar tables use only located detections off the window edge dates;
    the remaining tables use every detection.
    """

    calendar, excluded = calendar_frame(enriched)
    if calendar.empty:
        raise ValueError("No detections left for calendar aggregates after timezone and window trimming.")
    grid = date_grid(calendar["date"].min(), calendar["date"].max(), settings.holidays)
    daily = aggregates.daily_counts(calendar, grid)

    tables: Dict[str, pd.DataFrame] = {
        "overview": aggregates.overview(enriched, calendar, excluded, join_misses(enriched)),
        "ownership_corrections": corrections_table(settings.corrections),
        "aircraft_by_agency_type": aggregates.aircraft_by_agency_type(enriched, settings.category_groups),
        "flights_by_agency": aggregates.flights_by_agency(calendar),
        "detections_by_aircraft": aggregates.detections_by_aircraft(enriched),
        "state_counts": aggregates.state_counts(enriched),
        "hourly_detections": aggregates.hourly_detections(calendar),
        "calendar": grid,
        "daily_counts": daily,
        "workday_comparison": aggregates.workday_comparison(daily),
        "weekday_detections": aggregates.weekday_detections(calendar),
    }

    if settings.urban_areas:
        urban_daily = aggregates.urban_daily_counts(calendar, grid, settings.urban_areas)
        tables["urban_daily_counts"] = urban_daily
        if settings.event_date is not None:
            tables["urban_event_comparison"] = aggregates.event_comparison(urban_daily, settings.event_date)

    for agency, mfr in settings.altitude_subsets:
        tables[altitude_table_name(agency, mfr)] = aggregates.altitude_histogram(
            enriched, agency, mfr, settings.altitude_bin_width, settings.altitude_limits
        )
    return tables


def altitude_table_name(agency: str, mfr: str) -> str:
    return f"altitude_{agency}_{mfr}".lower().replace(" ", "_")


def write_report(tables: Dict[str, pd.DataFrame], settings: AnalysisSettings, output_dir: str | Path) -> Path:
    """Write tables, charts and the HTML document to ``output_dir``."""

    report = Report(output_dir)
    shaded = non_work_ranges(tables["calendar"])

    report.add_table("overview", "Overview", tables["overview"])
    if not tables["ownership_corrections"].empty:
        report.add_table(
            "ownership_corrections",
            "Ownership corrections",
            tables["ownership_corrections"],
            note="Records dated before the cutover are assigned to the listed registrant and agency.",
        )

    report.add_table("aircraft_by_agency_type", "Aircraft by agency and type", tables["aircraft_by_agency_type"])
    plots.plot_aircraft_by_type(tables["aircraft_by_agency_type"], report.figure_path("aircraft_by_agency_type"))
    report.add_figure("aircraft_by_agency_type", "Aircraft by agency and type")

    report.add_table(
        "flights_by_agency",
        "Flights by agency",
        tables["flights_by_agency"],
        note="Segments and aircraft-days are both lower bounds on the number of flights.",
    )
    report.add_table("detections_by_aircraft", "Detections per aircraft", tables["detections_by_aircraft"])
    report.add_table(
        "state_counts",
        "Aircraft and detections by state",
        tables["state_counts"],
        note="Detections outside every state polygon are excluded.",
    )

    report.add_table("hourly_detections", "Detections by hour of day", tables["hourly_detections"])
    plots.plot_hourly(tables["hourly_detections"], report.figure_path("hourly_detections"))
    report.add_figure("hourly_detections", "Detections by hour of day")

    report.add_table(
        "workday_comparison",
        "Working vs non-working days",
        tables["workday_comparison"],
        note="Mean daily values; reduction_pct = 100 x (1 - non_working / working).",
    )

    report.add_table("weekday_detections", "Detections by weekday", tables["weekday_detections"])
    plots.plot_weekday(tables["weekday_detections"], report.figure_path("weekday_detections"))
    report.add_figure("weekday_detections", "Detections by weekday, excluding holidays")

    report.add_table("daily_counts", "Daily series", tables["daily_counts"])
    for value in ("aircraft", "detections"):
        name = f"daily_{value}"
        plots.plot_daily(tables["daily_counts"], value, report.figure_path(name), shaded, f"Daily {value}")
        report.add_figure(name, f"Daily {value}", note="Shaded: weekends and holidays.")

    if "urban_daily_counts" in tables:
        urban_daily = tables["urban_daily_counts"]
        report.add_table("urban_daily_counts", "Daily series in urban areas", urban_daily)
        for idx, urban_name in enumerate(settings.urban_areas):
            subset = urban_daily[urban_daily["urban_name"] == urban_name]
            for value in ("aircraft", "detections"):
                name = f"urban_daily_{value}_{idx}"
                plots.plot_daily(
                    subset, value, report.figure_path(name), shaded, urban_name, event_date=settings.event_date
                )
                report.add_figure(name, f"Daily {value}: {urban_name}")
        if "urban_event_comparison" in tables:
            report.add_table(
                "urban_event_comparison",
                f"Urban areas before and after {settings.event_date.date()}",
                tables["urban_event_comparison"],
            )

    for agency, mfr in settings.altitude_subsets:
        name = altitude_table_name(agency, mfr)
        title = f"Altitude of {mfr} aircraft ({agency})"
        report.add_table(name, title, tables[name])
        plots.plot_altitude_histogram(tables[name], title, report.figure_path(name))
        report.add_figure(name, title)

    return report.write()


def _layer_path(layer_cfg: Dict[str, Any], name: str) -> str:
    if not layer_cfg.get("path"):
        raise ValueError(f"Config is missing input.{name}.path")
    return layer_cfg["path"]


def run(config: Dict[str, Any]) -> Path:
    """Load every input named in ``config`` and produce the report."""

    settings = resolve_settings(config)
    input_cfg = config.get("input", {}) or {}

    detections = load_detections(input_cfg.get("detections_glob", "data/flights/*.csv"))
    registrants = load_registrants(input_cfg.get("registrants_glob", "data/registrants/*.csv"))

    tz_cfg = input_cfg.get("timezones", {}) or {}
    zones = load_boundaries(_layer_path(tz_cfg, "timezones"), {tz_cfg.get("offset_column", "zone"): "tz_offset"})
    state_cfg = input_cfg.get("states", {}) or {}
    states = load_boundaries(
        _layer_path(state_cfg, "states"),
        {state_cfg.get("name_column", "name"): "state_name", state_cfg.get("abbr_column", "postal"): "state_abbr"},
        filter_column=state_cfg.get("filter_column"),
        filter_value=state_cfg.get("filter_value"),
    )
    urban_cfg = input_cfg.get("urban_areas", {}) or {}
    urban_areas = load_boundaries(
        _layer_path(urban_cfg, "urban_areas"),
        {urban_cfg.get("id_column", "UACE10"): "urban_id", urban_cfg.get("name_column", "NAME10"): "urban_name"},
    )

    enriched = enrich(detections, registrants, zones, states, urban_areas, settings)
    output_dir = Path(get_nested(config, ["output", "dir"], "output"))
    if get_nested(config, ["output", "save_enriched"], False):
        save_dataframe(enriched, output_dir / "enriched_detections.csv")

    tables = summarise(enriched, settings)
    return write_report(tables, settings, output_dir)
