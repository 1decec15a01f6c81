"""Input/output helpers for the spyplanes pipeline.

Covers loading of per-aircraft detection CSVs and registrant metadata CSVs with
per-file schema checks, the registrant join, and CSV saving.
"""

from __future__ import annotations

import glob
import logging
from pathlib import Path
from typing import List

import pandas as pd

DETECTION_COLUMNS: List[str] = [
    "adshex",
    "flight_id",
    "latitude",
    "longitude",
    "altitude",
    "speed",
    "track",
    "squawk",
    "type",
    "timestamp",
]

REGISTRANT_COLUMNS: List[str] = [
    "adshex",
    "name",
    "n_number",
    "serial_number",
    "mfr_mdl_code",
    "mfr",
    "model",
    "year_mfr",
    "type_aircraft",
    "agency",
]

NUMERIC_COLUMNS: List[str] = ["latitude", "longitude", "altitude", "speed", "track"]
TEXT_DTYPES = {
    "adshex": str,
    "flight_id": str,
    "squawk": str,
    "type": str,
    "name": str,
    "n_number": str,
    "serial_number": str,
    "mfr_mdl_code": str,
    "mfr": str,
    "model": str,
}


def _matching_paths(csv_glob: str) -> List[str]:
    paths = sorted(glob.glob(csv_glob))
    if not paths:
        raise FileNotFoundError(f"No CSV files matched glob: {csv_glob}")
    return paths


def check_columns(columns, required: List[str], source: str) -> None:
    """Raise if any required column is absent from a file header."""

    missing = [col for col in required if col not in columns]
    if missing:
        logging.error("Schema error in %s: missing %s", source, missing)
        raise ValueError(f"{source}: missing required columns: {missing}")


def _coerce_detections(frame: pd.DataFrame, source: str) -> pd.DataFrame:
    """Parse numeric and timestamp fields, dropping rows that fail to parse."""

    frame = frame.copy()
    bad = pd.Series(False, index=frame.index)
    for col in NUMERIC_COLUMNS:
        parsed = pd.to_numeric(frame[col], errors="coerce")
        bad |= parsed.isna() & frame[col].notna()
        frame[col] = parsed

    frame["timestamp"] = pd.to_datetime(frame["timestamp"], utc=True, errors="coerce")
    frame["adshex"] = frame["adshex"].str.strip().str.upper()
    bad |= frame[["adshex", "flight_id", "latitude", "longitude", "timestamp"]].isna().any(axis=1)

    if bad.any():
        logging.warning("Dropped %d malformed rows from %s", int(bad.sum()), source)
    return frame[~bad]


def load_detections(csv_glob: str) -> pd.DataFrame:
    """Load and concatenate per-aircraft detection CSVs matching the glob.

    Every file must carry the full detection schema; a missing column aborts
    the load. Rows with the wrong number of fields are skipped by the reader
    and rows with unparseable values are dropped per file.
    """

    paths = _matching_paths(csv_glob)
    frames: List[pd.DataFrame] = []
    for path in paths:
        logging.info("Reading %s", path)
        check_columns(pd.read_csv(path, nrows=0).columns, DETECTION_COLUMNS, path)
        raw = pd.read_csv(path, dtype=TEXT_DTYPES, on_bad_lines="warn", low_memory=False)
        frames.append(_coerce_detections(raw[DETECTION_COLUMNS], path))

    combined = pd.concat(frames, ignore_index=True)
    logging.info("Loaded %d detections from %d files", len(combined), len(paths))
    return combined


def load_registrants(csv_glob: str) -> pd.DataFrame:
    """Load registrant metadata files, one row per aircraft identifier."""

    paths = _matching_paths(csv_glob)
    frames: List[pd.DataFrame] = []
    for path in paths:
        logging.info("Reading %s", path)
        frame = pd.read_csv(path, dtype=TEXT_DTYPES, on_bad_lines="warn", low_memory=False)
        check_columns(frame.columns, REGISTRANT_COLUMNS, path)
        frames.append(frame)

    registrants = pd.concat(frames, ignore_index=True)
    registrants["adshex"] = registrants["adshex"].str.strip().str.upper()
    registrants["agency"] = registrants["agency"].str.strip().str.lower()
    registrants["type_aircraft"] = pd.to_numeric(registrants["type_aircraft"], errors="coerce").astype("Int64")

    duplicated = registrants["adshex"].duplicated(keep="first")
    if duplicated.any():
        logging.warning("Ignoring %d duplicate registrant rows", int(duplicated.sum()))
    registrants = registrants[~duplicated].reset_index(drop=True)
    logging.info("Loaded %d registrants from %d files", len(registrants), len(paths))
    return registrants


def join_registrants(detections: pd.DataFrame, registrants: pd.DataFrame) -> pd.DataFrame:
    """Left-join registrant metadata onto detections by aircraft identifier."""

    joined = detections.merge(registrants, on="adshex", how="left", validate="many_to_one")
    unmatched = int(joined["agency"].isna().sum())
    if unmatched:
        logging.warning("%d detections have no registrant metadata", unmatched)
    return joined


def save_dataframe(df: pd.DataFrame, path: str | Path) -> None:
    """Persist a DataFrame to CSV."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    logging.info("Saved %d rows to %s", len(df), path)
