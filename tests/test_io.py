import pandas as pd
import pytest

from spyplanes.io import DETECTION_COLUMNS, join_registrants, load_detections, load_registrants, save_dataframe

HEADER = ",".join(DETECTION_COLUMNS)


def _write(path, lines):
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_load_detections_concatenates_and_drops_malformed_rows(tmp_path):
    _write(
        tmp_path / "a00001.csv",
        [
            HEADER,
            "a00001,f1,34.0,-117.3,5000,120,90,4000,C182,2015-11-20 20:00:00",
            "a00001,f1,not-a-number,-117.3,5000,120,90,4000,C182,2015-11-20 20:10:00",
            "a00001,f1,34.1,-117.2,5100,120,90,4000,C182,2015-11-20 20:20:00,extra",
        ],
    )
    _write(
        tmp_path / "a00002.csv",
        [HEADER, "A00002,f2,38.0,-112.0,1500,80,180,1200,B06,2015-11-21 21:00:00"],
    )

    df = load_detections(str(tmp_path / "*.csv"))

    assert len(df) == 2
    assert df["adshex"].tolist() == ["A00001", "A00002"]
    assert str(df["timestamp"].dt.tz) == "UTC"
    assert df["latitude"].dtype == float


def test_load_detections_missing_column_is_fatal(tmp_path):
    _write(tmp_path / "bad.csv", ["adshex,flight_id,latitude", "A00001,f1,34.0"])
    with pytest.raises(ValueError, match="missing required columns"):
        load_detections(str(tmp_path / "*.csv"))


def test_load_detections_no_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_detections(str(tmp_path / "*.csv"))


def test_registrants_join(tmp_path, registrants, detections):
    save_dataframe(registrants.iloc[:2], tmp_path / "reg" / "fbi_dhs.csv")
    loaded = load_registrants(str(tmp_path / "reg" / "*.csv"))
    assert loaded["n_number"].tolist() == ["6971A", "123H"]

    joined = join_registrants(detections, loaded)
    assert len(joined) == len(detections)
    assert joined.loc[joined["adshex"] == "A00003", "agency"].isna().all()
    assert set(joined.loc[joined["adshex"] == "A00002", "agency"]) == {"dhs"}


def test_registrants_keep_leading_zero_codes(tmp_path):
    _write(
        tmp_path / "registrants.csv",
        [
            "adshex,name,n_number,serial_number,mfr_mdl_code,mfr,model,year_mfr,type_aircraft,agency",
            "a00004,US DEPARTMENT OF JUSTICE,0051,0051,0560104,0560,0172,1998,4,FBI",
        ],
    )

    row = load_registrants(str(tmp_path / "*.csv")).iloc[0]

    assert row["adshex"] == "A00004"
    assert row["serial_number"] == "0051"
    assert row["mfr_mdl_code"] == "0560104"
    assert row["n_number"] == "0051"
    assert row["mfr"] == "0560"
    assert row["model"] == "0172"
    assert row["agency"] == "fbi"
