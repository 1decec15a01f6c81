import math

import numpy as np
import pandas as pd

from spyplanes import aggregates
from spyplanes.temporal import WEEKDAY_ORDER, date_grid


def _frame():
    """Two agencies over a Thursday holiday, a Friday and a Saturday."""

    rows = [
        # adshex, flight_id, agency, state, local timestamp
        ("A1", "s1", "fbi", "California", "2015-11-26 10:00"),
        ("A1", "s1", "fbi", "California", "2015-11-26 11:30"),
        ("A1", "s2", "fbi", "Nevada", "2015-11-27 09:00"),
        ("A1", "s2", "fbi", "Nevada", "2015-11-27 12:00"),
        ("A2", "s3", "fbi", "Nevada", "2015-11-27 09:00"),
        ("A2", "s4", "fbi", None, "2015-11-27 15:00"),
        ("H1", "s5", "dhs", "California", "2015-11-28 23:00"),
    ]
    df = pd.DataFrame(rows, columns=["adshex", "flight_id", "agency", "state_name", "local"])
    df["timestamp"] = pd.to_datetime(df.pop("local"))
    df["state_abbr"] = df["state_name"].map({"California": "CA", "Nevada": "NV"})
    df["date"] = df["timestamp"].dt.normalize()
    df["hour"] = df["timestamp"].dt.hour
    df["weekday"] = df["timestamp"].dt.day_name()
    df["holiday"] = df["date"] == pd.Timestamp("2015-11-26")
    df["work_day"] = np.where(df["date"] == pd.Timestamp("2015-11-27"), "Y", "N")
    df["type_aircraft"] = [4, 4, 4, 4, 5, 5, 6]
    return df


GRID = date_grid(pd.Timestamp("2015-11-26"), pd.Timestamp("2015-11-28"), [pd.Timestamp("2015-11-26")])


def test_percent_reduction():
    assert aggregates.percent_reduction(10.0, 6.0, 1) == 40.0
    assert aggregates.percent_reduction(3.0, 1.0, 2) == 66.67
    assert math.isnan(aggregates.percent_reduction(0.0, 1.0, 2))


def test_segment_durations():
    durations = aggregates.segment_durations(_frame()).set_index("flight_id")["duration_hours"]
    assert durations["s1"] == 1.5
    assert durations["s2"] == 3.0
    assert durations["s5"] == 0.0
    assert (durations >= 0).all()


def test_aircraft_by_agency_type():
    table = aggregates.aircraft_by_agency_type(_frame(), {4: "fixed-wing", 5: "fixed-wing", 6: "helicopter"})
    assert table.to_dict("records") == [
        {"agency": "dhs", "aircraft_group": "helicopter", "aircraft": 1},
        {"agency": "fbi", "aircraft_group": "fixed-wing", "aircraft": 2},
    ]


def test_flights_by_agency():
    table = aggregates.flights_by_agency(_frame()).set_index("agency")
    assert table.loc["fbi", "segments"] == 4
    assert table.loc["fbi", "aircraft_days"] == 3
    assert table.loc["dhs", "aircraft_days"] == 1


def test_detections_by_aircraft_sorted_descending():
    table = aggregates.detections_by_aircraft(_frame())
    assert table["adshex"].tolist() == ["A1", "A2", "H1"]
    assert table["detections"].tolist() == [4, 2, 1]


def test_state_counts_sum_to_matched_detections():
    df = _frame()
    table = aggregates.state_counts(df)
    combined = table[table["agency"] == "all"]

    assert combined["detections"].sum() == df["state_name"].notna().sum()
    assert combined["state_name"].tolist() == ["California", "Nevada"]
    assert combined.set_index("state_name").loc["Nevada", "aircraft"] == 2
    assert table[table["agency"] == "fbi"]["detections"].sum() == 5


def test_hourly_detections_zero_filled():
    table = aggregates.hourly_detections(_frame())
    assert len(table) == 48
    fbi = table[table["agency"] == "fbi"].set_index("hour")["detections"]
    assert fbi[9] == 2
    assert fbi[0] == 0


def test_daily_counts_and_workday_comparison():
    daily = aggregates.daily_counts(_frame(), GRID)
    assert len(daily) == 6
    fbi = daily[daily["agency"] == "fbi"].set_index("date")
    assert fbi.loc[pd.Timestamp("2015-11-27"), "aircraft"] == 2
    assert fbi.loc[pd.Timestamp("2015-11-27"), "flight_hours"] == 3.0
    assert fbi.loc[pd.Timestamp("2015-11-28"), "detections"] == 0

    comparison = aggregates.workday_comparison(daily).set_index(["agency", "metric"])
    # fbi: working day (27th) 4 detections; non-working days 2 and 0.
    assert comparison.loc[("fbi", "detections"), "working"] == 4.0
    assert comparison.loc[("fbi", "detections"), "non_working"] == 1.0
    assert comparison.loc[("fbi", "detections"), "reduction_pct"] == 75.0
    assert comparison.loc[("fbi", "flight_hours"), "reduction_pct"] == 75.0


def test_weekday_detections_exclude_holidays():
    table = aggregates.weekday_detections(_frame())
    fbi = table[table["agency"] == "fbi"]
    assert fbi["weekday"].tolist() == WEEKDAY_ORDER
    counts = fbi.set_index("weekday")["detections"]
    assert counts["Thursday"] == 0
    assert counts["Friday"] == 4


def test_urban_daily_and_event_comparison():
    df = _frame()
    df["urban_name"] = ["Metro", "Metro", None, None, "Metro", None, "Metro"]
    urban = aggregates.urban_daily_counts(df, GRID, ["Metro"])

    assert set(urban["urban_name"]) == {"Metro"}
    assert len(urban) == 6
    event = aggregates.event_comparison(urban, pd.Timestamp("2015-11-27"))
    fbi = event[event["agency"] == "fbi"].set_index("period")
    assert fbi.loc["before", "detections"] == 2.0
    assert fbi.loc["after", "detections"] == 0.5


def test_altitude_histogram_fixed_bins():
    df = pd.DataFrame(
        {
            "agency": ["fbi", "fbi", "fbi", "dhs"],
            "mfr": ["CESSNA", "Cessna ", "CESSNA", "CESSNA"],
            "altitude": [500.0, 1500.0, 1700.0, 900.0],
        }
    )
    hist = aggregates.altitude_histogram(df, "fbi", "CESSNA", 1000, (0, 5000))
    assert hist["bin_start"].tolist() == [0, 1000, 2000, 3000, 4000]
    assert hist["detections"].tolist() == [1, 2, 0, 0, 0]
