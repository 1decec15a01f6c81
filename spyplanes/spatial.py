"""Point-in-polygon joins against boundary layers.

Detections are turned into lon/lat points and joined to timezone, state and
urban-area polygons with a ``within`` predicate. A point outside every polygon
gets null attributes; a point inside several polygons keeps the first match
in join order.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Mapping

import geopandas as gpd
import pandas as pd
from pyproj import CRS

DEFAULT_CRS = "epsg:4326"


def load_boundaries(
    path: str | Path,
    columns: Mapping[str, str],
    filter_column: str | None = None,
    filter_value: object | None = None,
) -> gpd.GeoDataFrame:
    """Read a vector layer and keep the requested attributes under output names.

    ``columns`` maps source attribute names to the names used downstream.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Boundary layer not found: {path}")

    layer = gpd.read_file(path)
    if filter_column is not None:
        if filter_column not in layer.columns:
            raise ValueError(f"{path}: filter column {filter_column!r} not present")
        layer = layer[layer[filter_column] == filter_value]

    missing = [col for col in columns if col not in layer.columns]
    if missing:
        logging.error("Schema error in %s: missing %s", path, missing)
        raise ValueError(f"{path}: missing required columns: {missing}")

    layer = layer[[*columns, "geometry"]].rename(columns=dict(columns)).reset_index(drop=True)
    logging.info("Loaded %d polygons from %s (crs=%s)", len(layer), path, layer.crs)
    return layer


def to_points(df: pd.DataFrame, crs: str = DEFAULT_CRS) -> gpd.GeoDataFrame:
    """Wrap detections as a GeoDataFrame of (longitude, latitude) points."""

    return gpd.GeoDataFrame(
        df.copy(),
        geometry=gpd.points_from_xy(df["longitude"], df["latitude"]),
        crs=CRS.from_user_input(crs),
    )


def ensure_same_crs(
    points: gpd.GeoDataFrame, layer: gpd.GeoDataFrame, reproject: bool = True
) -> gpd.GeoDataFrame:
    """Return ``layer`` in the CRS of ``points`` or raise on an unresolved mismatch."""

    if layer.crs is None:
        raise ValueError("Boundary layer has no CRS metadata; cannot join.")
    if CRS.from_user_input(layer.crs).equals(points.crs, ignore_axis_order=True):
        return layer
    if not reproject:
        raise ValueError(f"CRS mismatch: detections in {points.crs}, boundaries in {layer.crs}")
    logging.info("Reprojecting boundary layer from %s to %s", layer.crs, points.crs)
    return layer.to_crs(points.crs)


def join_polygons(
    df: pd.DataFrame,
    layer: gpd.GeoDataFrame,
    columns: list[str],
    crs: str = DEFAULT_CRS,
    reproject: bool = True,
    label: str = "polygon",
) -> pd.DataFrame:
    """Attach ``columns`` of the containing polygon to every detection.

    Rows keep their original index and order. Unmatched rows get nulls.
    """

    out = df.copy()
    for col in columns:
        if col in out.columns:
            out = out.drop(columns=col)
    if out.empty:
        for col in columns:
            out[col] = pd.Series(dtype=layer[col].dtype if col in layer.columns else object)
        return out

    points = to_points(out[["longitude", "latitude"]].reset_index(drop=True), crs=crs)
    layer = ensure_same_crs(points, layer[[*columns, "geometry"]], reproject=reproject)

    joined = gpd.sjoin(points, layer, how="left", predicate="within")
    multi = joined.index.duplicated(keep="first")
    if multi.any():
        logging.warning(
            "%d detections fall in more than one %s polygon; keeping the first match",
            int(joined.index[multi].nunique()),
            label,
        )
    joined = joined[~multi]

    for col in columns:
        out[col] = joined[col].reindex(points.index).to_numpy()

    misses = int(out[columns[0]].isna().sum())
    logging.info("%s join: %d matched, %d outside all polygons", label, len(out) - misses, misses)
    return out


def join_states(
    df: pd.DataFrame, states: gpd.GeoDataFrame, crs: str = DEFAULT_CRS, reproject: bool = True
) -> pd.DataFrame:
    """Add ``state_name`` and ``state_abbr`` from the containing state polygon."""

    return join_polygons(df, states, ["state_name", "state_abbr"], crs=crs, reproject=reproject, label="state")


def join_urban_areas(
    df: pd.DataFrame, urban_areas: gpd.GeoDataFrame, crs: str = DEFAULT_CRS, reproject: bool = True
) -> pd.DataFrame:
    """Add ``urban_id`` and ``urban_name`` from the containing urban-area polygon."""

    return join_polygons(df, urban_areas, ["urban_id", "urban_name"], crs=crs, reproject=reproject, label="urban area")


def join_misses(df: pd.DataFrame) -> Dict[str, int]:
    """Count detections left without a match by each spatial join."""

    counts: Dict[str, int] = {}
    for label, col in (("timezone", "tz_offset"), ("state", "state_name"), ("urban area", "urban_id")):
        if col in df.columns:
            counts[label] = int(df[col].isna().sum())
    return counts
