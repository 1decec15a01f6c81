"""Configuration helpers for the spyplanes pipeline.

Provides YAML loading, nested lookups with defaults, parsing of the date lists
that the analysis treats as configuration rather than computed rules, and the
typed analysis settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd
import yaml

from spyplanes.ownership import OwnershipCorrection, load_corrections

# FAA registry aircraft-category codes.
DEFAULT_CATEGORY_GROUPS: Dict[int, str] = {4: "fixed-wing", 5: "fixed-wing", 6: "helicopter"}


def load_config(path: str | Path) -> Dict[str, Any]:
    """Load a YAML configuration file."""

    with Path(path).open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def get_nested(config: Dict[str, Any], keys: list[str], default: Any) -> Any:
    """Retrieve a nested value from a config dict with a default."""

    current: Any = config
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def parse_dates(values: Iterable[Any] | None) -> List[pd.Timestamp]:
    """Normalise a list of date-like config values to sorted midnight timestamps."""

    if not values:
        return []
    dates = {pd.Timestamp(value).normalize() for value in values}
    return sorted(dates)


@dataclass
class AnalysisSettings:
    """Strongly-typed analysis options resolved from the YAML config."""

    holidays: List[pd.Timestamp]
    corrections: List[OwnershipCorrection]
    category_groups: Dict[int, str]
    urban_areas: List[str]
    event_date: Optional[pd.Timestamp]
    altitude_subsets: List[Tuple[str, str]]
    altitude_bin_width: int = 1000
    altitude_limits: Tuple[int, int] = (0, 20000)
    crs: str = "epsg:4326"
    reproject: bool = True


def resolve_settings(config: Dict[str, Any]) -> AnalysisSettings:
    """Build :class:`AnalysisSettings` from a loaded config with defaults."""

    analysis = config.get("analysis", {}) or {}
    groups = analysis.get("category_groups", DEFAULT_CATEGORY_GROUPS) or {}
    event_date = analysis.get("event_date")
    subsets = analysis.get("altitude_subsets", []) or []
    limits = analysis.get("altitude_limits", [0, 20000])

    return AnalysisSettings(
        holidays=parse_dates(get_nested(config, ["calendar", "holidays"], [])),
        corrections=load_corrections(config.get("ownership_corrections", [])),
        category_groups={int(code): str(group) for code, group in groups.items()},
        urban_areas=list(analysis.get("urban_areas", []) or []),
        event_date=pd.Timestamp(event_date).normalize() if event_date else None,
        altitude_subsets=[(str(item["agency"]).lower(), str(item["mfr"])) for item in subsets],
        altitude_bin_width=int(analysis.get("altitude_bin_width", 1000)),
        altitude_limits=(int(limits[0]), int(limits[1])),
        crs=str(get_nested(config, ["input", "crs"], "epsg:4326")),
        reproject=bool(get_nested(config, ["spatial", "reproject"], True)),
    )
