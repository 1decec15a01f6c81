import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import box

from spyplanes.config import AnalysisSettings
from spyplanes.ownership import OwnershipCorrection

FIRST_DAY = pd.Timestamp("2015-11-20")
LAST_DAY = pd.Timestamp("2015-11-30")


def _track(adshex, flight_id, lon, lat, start, n_points, altitude=5000.0):
    return [
        {
            "adshex": adshex,
            "flight_id": flight_id,
            "latitude": lat,
            "longitude": lon,
            "altitude": altitude + 100.0 * i,
            "speed": 120.0,
            "track": 90.0,
            "squawk": "4000",
            "type": "C182",
            "timestamp": pd.Timestamp(start, tz="UTC") + pd.Timedelta(minutes=10 * i),
        }
        for i in range(n_points)
    ]


@pytest.fixture
def detections():
    rows = []
    for day in pd.date_range(FIRST_DAY, LAST_DAY, freq="D"):
        stamp = day.strftime("%Y-%m-%d")
        # Los Angeles area, UTC-8; 20:00 UTC is noon local.
        rows += _track("A00001", f"A1-{stamp}", -117.3, 34.0, f"{stamp} 20:00", 4)
        # Nevada, UTC-7; weekdays only.
        if day.dayofweek < 5:
            rows += _track("A00002", f"H1-{stamp}", -112.0, 38.0, f"{stamp} 21:00", 3, altitude=1500.0)
        # Open ocean, outside every polygon.
        rows += _track("A00003", f"X-{stamp}", -150.0, 20.0, f"{stamp} 18:00", 2)
    return pd.DataFrame(rows)


@pytest.fixture
def registrants():
    return pd.DataFrame(
        {
            "adshex": ["A00001", "A00002", "A00003"],
            "name": ["FEDERAL BUREAU OF INVESTIGATION", "US CUSTOMS AND BORDER PROTECTION", "NG RESEARCH"],
            "n_number": ["6971A", "123H", "999X"],
            "serial_number": ["18281", "5501", "PC-1"],
            "mfr_mdl_code": ["2072738", "0511", "7100"],
            "mfr": ["CESSNA", "BELL", "PILATUS"],
            "model": ["182T", "206L", "PC-12"],
            "year_mfr": [2008, 1999, 2012],
            "type_aircraft": pd.array([4, 6, 5], dtype="Int64"),
            "agency": ["fbi", "dhs", "fbi"],
        }
    )


@pytest.fixture
def zones():
    return gpd.GeoDataFrame(
        {"tz_offset": [-8.0, -7.0]},
        geometry=[box(-125, 30, -114.5, 45), box(-114.5, 30, -100, 45)],
        crs="epsg:4326",
    )


@pytest.fixture
def states():
    return gpd.GeoDataFrame(
        {"state_name": ["California", "Nevada"], "state_abbr": ["CA", "NV"]},
        geometry=[box(-125, 32, -114.5, 42), box(-114.5, 35, -110, 42)],
        crs="epsg:4326",
    )


@pytest.fixture
def urban_areas():
    return gpd.GeoDataFrame(
        {"urban_id": ["75340"], "urban_name": ["Riverside--San Bernardino, CA"]},
        geometry=[box(-117.6, 33.8, -117.0, 34.2)],
        crs="epsg:4326",
    )


@pytest.fixture
def settings():
    return AnalysisSettings(
        holidays=[pd.Timestamp("2015-11-26")],
        corrections=[OwnershipCorrection("6971A", pd.Timestamp("2015-11-25"), "DEPARTMENT OF HOMELAND SECURITY", "dhs")],
        category_groups={4: "fixed-wing", 5: "fixed-wing", 6: "helicopter"},
        urban_areas=["Riverside--San Bernardino, CA"],
        event_date=pd.Timestamp("2015-11-25"),
        altitude_subsets=[("fbi", "CESSNA")],
        altitude_bin_width=1000,
        altitude_limits=(0, 20000),
    )
