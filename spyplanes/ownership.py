"""Point-in-time ownership corrections.

Some aircraft changed hands during the observation period while the
registration data records a single owner. Each correction row reassigns the
registrant name and agency of one aircraft for all dates before a cutover.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping

import pandas as pd

CORRECTION_COLUMNS = ["aircraft", "cutover", "name", "agency"]


@dataclass(frozen=True)
class OwnershipCorrection:
    """Records of ``aircraft`` dated before ``cutover`` belong to ``name``/``agency``."""

    aircraft: str
    cutover: pd.Timestamp
    name: str
    agency: str


def load_corrections(rows: Iterable[Mapping[str, Any]] | None) -> List[OwnershipCorrection]:
    """Build correction rows from configuration dictionaries."""

    corrections: List[OwnershipCorrection] = []
    for row in rows or []:
        missing = [key for key in CORRECTION_COLUMNS if key not in row]
        if missing:
            raise ValueError(f"Ownership correction {dict(row)} missing keys: {missing}")
        corrections.append(
            OwnershipCorrection(
                aircraft=str(row["aircraft"]).strip().upper(),
                cutover=pd.Timestamp(row["cutover"]).normalize(),
                name=str(row["name"]),
                agency=str(row["agency"]).strip().lower(),
            )
        )
    return corrections


def corrections_table(corrections: Iterable[OwnershipCorrection]) -> pd.DataFrame:
    """Corrections as a table, for the report."""

    return pd.DataFrame(
        [(c.aircraft, c.cutover, c.name, c.agency) for c in corrections],
        columns=CORRECTION_COLUMNS,
    )


def apply_ownership_corrections(
    df: pd.DataFrame,
    corrections: Iterable[OwnershipCorrection],
    id_column: str = "n_number",
) -> pd.DataFrame:
    """Return a copy with pre-cutover records reassigned per correction.

    The record date is the local ``date`` where present, else the UTC date.
    """

    out = df.copy()
    utc = out["timestamp"]
    if utc.dt.tz is not None:
        utc = utc.dt.tz_convert("UTC").dt.tz_localize(None)
    record_date = utc.dt.normalize()
    if "date" in out.columns:
        record_date = out["date"].fillna(record_date)

    ids = out[id_column].astype("string").str.strip().str.upper()
    for correction in corrections:
        mask = (ids == correction.aircraft).fillna(False).astype(bool) & (record_date < correction.cutover)
        out.loc[mask, "name"] = correction.name
        out.loc[mask, "agency"] = correction.agency
        logging.info(
            "Reassigned %d records of %s before %s to %s (%s)",
            int(mask.sum()),
            correction.aircraft,
            correction.cutover.date(),
            correction.name,
            correction.agency,
        )
    return out
