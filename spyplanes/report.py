"""Assemble tables and charts into one HTML document.

Tables are written as CSV under ``tables/`` and rendered into ``report.html``
with thousands separators; charts are referenced from ``figures/``.
"""

from __future__ import annotations

import html
import logging
from pathlib import Path
from typing import List

import pandas as pd

from spyplanes.io import save_dataframe


def format_table(df: pd.DataFrame) -> pd.DataFrame:
    """Display copy of a table: grouped thousands, ISO dates, blank nulls."""

    out = df.copy()
    for col in out.columns:
        series = out[col]
        if pd.api.types.is_bool_dtype(series):
            continue
        if pd.api.types.is_datetime64_any_dtype(series):
            out[col] = series.dt.strftime("%Y-%m-%d").fillna("")
        elif pd.api.types.is_integer_dtype(series):
            out[col] = series.map(lambda v: "" if pd.isna(v) else f"{int(v):,}")
        elif pd.api.types.is_float_dtype(series):
            out[col] = series.map(lambda v: "" if pd.isna(v) else f"{v:,.2f}")
        else:
            out[col] = series.map(lambda v: f"{v:,}" if isinstance(v, int) and not isinstance(v, bool) else v)
    return out


class Report:
    """Collect report sections and write them to an output directory."""

    def __init__(self, output_dir: str | Path, title: str = "Surveillance aircraft detections") -> None:
        self.output_dir = Path(output_dir)
        self.tables_dir = self.output_dir / "tables"
        self.figures_dir = self.output_dir / "figures"
        self.title = title
        self._sections: List[str] = []

    def figure_path(self, name: str) -> Path:
        return self.figures_dir / f"{name}.png"

    def add_table(self, name: str, title: str, table: pd.DataFrame, note: str | None = None) -> Path:
        """Save ``table`` as CSV and append it as a report section."""

        csv_path = self.tables_dir / f"{name}.csv"
        save_dataframe(table, csv_path)
        body = format_table(table).to_html(index=False, border=0, classes="table", na_rep="")
        self._append(title, body, note)
        return csv_path

    def add_figure(self, name: str, title: str, note: str | None = None) -> None:
        """Append a chart previously saved at :meth:`figure_path`."""

        src = html.escape(f"figures/{name}.png")
        self._append(title, f'<img src="{src}" alt="{html.escape(title)}">', note)

    def _append(self, title: str, body: str, note: str | None) -> None:
        parts = [f"<h2>{html.escape(title)}</h2>"]
        if note:
            parts.append(f"<p>{html.escape(note)}</p>")
        parts.append(body)
        self._sections.append("\n".join(parts))

    def write(self) -> Path:
        """Write ``report.html`` and return its path."""

        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / "report.html"
        document = "\n".join(
            [
                "<!DOCTYPE html>",
                '<html><head><meta charset="utf-8">',
                f"<title>{html.escape(self.title)}</title>",
                "<style>body{font-family:sans-serif;max-width:1100px;margin:auto}"
                "table{border-collapse:collapse}td,th{padding:2px 8px;text-align:right}</style>",
                "</head><body>",
                f"<h1>{html.escape(self.title)}</h1>",
                *self._sections,
                "</body></html>",
                "",
            ]
        )
        path.write_text(document, encoding="utf-8")
        logging.info("Wrote report with %d sections to %s", len(self._sections), path)
        return path
