import pandas as pd

from spyplanes.report import Report, format_table


def test_format_table_thousands_and_dates():
    table = pd.DataFrame(
        {
            "date": pd.to_datetime(["2015-11-27"]),
            "detections": [1234567],
            "reduction_pct": [40.0],
            "agency": ["fbi"],
        }
    )
    out = format_table(table).iloc[0]
    assert out["date"] == "2015-11-27"
    assert out["detections"] == "1,234,567"
    assert out["reduction_pct"] == "40.00"
    assert out["agency"] == "fbi"


def test_report_writes_tables_and_document(tmp_path):
    report = Report(tmp_path)
    csv_path = report.add_table("counts", "Counts <by agency>", pd.DataFrame({"agency": ["fbi"], "n": [1200]}))
    path = report.write()

    assert csv_path.read_text(encoding="utf-8") == "agency,n\nfbi,1200\n"
    text = path.read_text(encoding="utf-8")
    assert "Counts &lt;by agency&gt;" in text
    assert "1,200" in text


def test_format_table_floats_use_two_decimals():
    table = pd.DataFrame({"working": [2.3333333333333335, 1234.5, float("nan")]})
    assert format_table(table)["working"].tolist() == ["2.33", "1,234.50", ""]
