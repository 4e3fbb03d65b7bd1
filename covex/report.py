from __future__ import annotations

"""
COVEX report generator
----------------------
This module writes the DOCX report from a `PipelineResult`.

Layout (fixed order, one interpretive sentence per item):
1. Summary table of the study countries
2. Choropleth map of total cases
3. Horizontal bar chart of total cases
4. Log-log scatter of population vs total cases
5. Smoothed daily new cases per country
6. Name reconciliation diagnostics

When the joined scatter data is empty, the dependent items get a placeholder
notice instead of a chart.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import logging
import os
import tempfile

from .pipeline import PipelineResult
from .stats import loglog_fit, smooth_series

log = logging.getLogger(__name__)

EMPTY_NOTICE = (
    "No country had both a resolvable population and a case total, "
    "so this chart could not be drawn."
)
EMPTY_TABLE_NOTICE = "No country had both a resolvable population and a case total."
NO_WORLD_NOTICE = "No world boundary file was supplied, so the map was skipped."


# -----------------------------
# Configuration / citation types
# -----------------------------

@dataclass
class DatasetCitation:
    """Where the input data came from."""
    database_name: str = "COVID-19 Data Explorer"
    institutional_author: str = "Our World in Data"
    website: str = "https://ourworldindata.org/coronavirus"
    cases_file: Optional[str] = None
    metadata_file: Optional[str] = None
    world_file: Optional[str] = None


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "COVID-19 Exploratory Report"
    subtitle: str = "Cases, population and trends in the study countries"
    citation: DatasetCitation = field(default_factory=DatasetCitation)

    # LOWESS span for the trend chart (fraction of points per local fit)
    smoothing_frac: float = 0.1

    # Label points on the scatter plot
    label_points: bool = True


# -----------------------------
# Main entry point used by CLI
# -----------------------------

def generate_docx_report(
    result: PipelineResult,
    out_path: str,
    *,
    world=None,
    config: Optional[ReportConfig] = None,
) -> str:
    """
    Generate a DOCX report + charts for one pipeline run.

    `world` is the GeoDataFrame from `covex.loader.load_world`, or None.
    """
    config = config or ReportConfig()

    # Lazy imports: only required when a report is written.
    try:
        from docx import Document
        from docx.shared import Pt, Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e

    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        import numpy as np
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib (and numpy).\n"
            "Install with: python -m pip install matplotlib numpy"
        ) from e

    scatter = result.scatter.copy()
    scatter["total_cases"] = scatter["total_cases"].astype(float)
    rows = result.scatter_rows()

    # -----------------------------
    # 1) Charts
    # -----------------------------
    with tempfile.TemporaryDirectory(prefix="covex_report_") as tmpdir:
        # Each item is: (title, file_path or None, sentence)
        charts: List[Tuple[str, Optional[str], str]] = []

        def _save(filename: str) -> str:
            path = os.path.join(tmpdir, filename)
            plt.tight_layout()
            plt.savefig(path, dpi=200)
            plt.close()
            return path

        # Choropleth
        map_title = "Total confirmed cases by country"
        if world is None:
            charts.append((map_title, None, NO_WORLD_NOTICE))
        elif result.aggregated.empty:
            charts.append((map_title, None, EMPTY_NOTICE))
        else:
            agg = result.aggregated.assign(total_cases=result.aggregated["total_cases"].astype(float))
            merged = world.merge(agg, left_on="name", right_on="location", how="left")
            fig, ax = plt.subplots(figsize=(10, 5))
            merged.plot(
                column="total_cases",
                ax=ax,
                legend=True,
                cmap="OrRd",
                missing_kwds={"color": "lightgrey"},
            )
            ax.set_axis_off()
            ax.set_title(map_title)
            charts.append((
                map_title,
                _save("map_total_cases.png"),
                "The largest countries dominate the raw totals, so the map mostly reflects population size.",
            ))

        # Bar chart
        bar_title = "Total confirmed cases, study countries"
        if scatter.empty:
            charts.append((bar_title, None, EMPTY_NOTICE))
        else:
            ordered = scatter.sort_values("total_cases")
            plt.figure(figsize=(8, max(3.0, 0.4 * len(ordered))))
            plt.barh(ordered["location"], ordered["total_cases"])
            plt.title(bar_title)
            plt.xlabel("Total cases")
            charts.append((
                bar_title,
                _save("bar_total_cases.png"),
                "Countries with larger populations report the most cases in absolute terms.",
            ))

        # Log-log scatter
        sc_title = "Population vs total confirmed cases (log-log)"
        if scatter.empty:
            charts.append((sc_title, None, EMPTY_NOTICE))
        else:
            x = scatter["population"].to_numpy(dtype=float)
            y = scatter["total_cases"].to_numpy(dtype=float)
            plt.figure(figsize=(7, 5))
            plt.scatter(x, y)
            if config.label_points:
                for name, xi, yi in zip(scatter["location"], x, y):
                    plt.annotate(name, (xi, yi), fontsize=7, xytext=(3, 3), textcoords="offset points")
            try:
                fit = loglog_fit(x, y)
            except ValueError:
                fit = None
            if fit is None:
                sentence = "Too few distinct countries to fit a trend line; points are shown as-is."
            else:
                xs = np.logspace(np.log10(x.min()), np.log10(x.max()), 50)
                plt.plot(xs, fit.predict(xs), linestyle="--")
                sentence = (f"Total cases grow roughly as population^{fit.slope:.2f} "
                            f"across the {fit.n} study countries.")
            plt.xscale("log")
            plt.yscale("log")
            plt.title(sc_title)
            plt.xlabel("Population")
            plt.ylabel("Total cases")
            charts.append((sc_title, _save("scatter_population_cases.png"), sentence))

        # Time series
        ts_title = "Daily new cases (LOWESS smoothed)"
        if scatter.empty or result.timeseries.empty:
            charts.append((ts_title, None, EMPTY_NOTICE))
        else:
            plt.figure(figsize=(10, 5))
            for loc, sub in result.timeseries.groupby("location", sort=True):
                dates, smoothed = smooth_series(sub["date"], sub["new_cases"], frac=config.smoothing_frac)
                if len(dates):
                    plt.plot(dates.to_numpy(), smoothed, label=loc, linewidth=1.2)
            plt.title(ts_title)
            plt.xlabel("Date")
            plt.ylabel("New cases per day")
            plt.legend(fontsize=7, ncol=2)
            charts.append((
                ts_title,
                _save("timeseries_new_cases.png"),
                "Waves of infection arrive at similar times across the study countries.",
            ))

        # -----------------------------
        # 2) Build DOCX report
        # -----------------------------
        doc = Document()

        style = doc.styles["Normal"]
        style.font.name = "Calibri"
        style.font.size = Pt(11)

        def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
            p = doc.add_paragraph()
            r = p.add_run(text)
            r.bold = bold
            r.italic = italic
            r.font.size = Pt(size)
            p.alignment = WD_ALIGN_PARAGRAPH.CENTER

        def _kv(key: str, value: str) -> None:
            p = doc.add_paragraph()
            r = p.add_run(f"{key}: ")
            r.bold = True
            p.add_run(value)

        _center_title(config.title, 22, bold=True)
        _center_title(config.subtitle, 12, italic=True)

        doc.add_paragraph("")
        _kv("Study countries", ", ".join(result.study_countries))
        _kv("Locations with case data", str(len(result.aggregated)))
        _kv("Locations with population", str(len(result.metadata)))
        _kv("Countries in analysis", str(len(rows)))
        if not result.cases.empty:
            d0, d1 = result.cases["date"].min(), result.cases["date"].max()
            _kv("Date range", f"{d0:%Y-%m-%d} to {d1:%Y-%m-%d}")

        cit = config.citation
        doc.add_paragraph("")
        doc.add_heading("Data sources", level=1)
        doc.add_paragraph(f"{cit.institutional_author}. {cit.database_name}. {cit.website}.")
        for label, fn in (("Cases file", cit.cases_file), ("Metadata file", cit.metadata_file),
                          ("World boundaries", cit.world_file)):
            if fn:
                doc.add_paragraph(f"{label}: {fn}")

        # Summary table
        doc.add_paragraph("")
        doc.add_heading("Summary", level=1)
        if not rows:
            doc.add_paragraph(EMPTY_TABLE_NOTICE)
        else:
            t = doc.add_table(rows=1, cols=4)
            h = t.rows[0].cells
            h[0].text = "Country"
            h[1].text = "Population"
            h[2].text = "Total cases"
            h[3].text = "Cases per 100k"
            for r in rows:
                c = t.add_row().cells
                c[0].text = r.location
                c[1].text = f"{int(r.population):,}"
                c[2].text = f"{int(r.total_cases):,}"
                c[3].text = f"{r.cases_per_100k():,.0f}"
            top = max(rows, key=lambda r: r.cases_per_100k())
            doc.add_paragraph(
                f"Relative to population, {top.location} recorded the most cases "
                f"({top.cases_per_100k():,.0f} per 100,000 people)."
            )

        # Visualizations
        doc.add_paragraph("")
        doc.add_heading("Visualizations", level=1)
        for title, path, sentence in charts:
            doc.add_heading(title, level=2)
            if path is None:
                p = doc.add_paragraph()
                p.add_run(sentence).italic = True
                continue
            doc.add_picture(path, width=Inches(6.5))
            doc.add_paragraph(sentence)

        # Name reconciliation
        doc.add_paragraph("")
        doc.add_heading("Name reconciliation", level=1)
        if result.unmatched is None:
            doc.add_paragraph("No world boundary file was supplied, so names were not checked.")
        elif result.unmatched.empty:
            doc.add_paragraph("Every location with case data matched a country in the world boundary file.")
        else:
            doc.add_paragraph(
                "These locations have case data but no matching shape in the world boundary file. "
                "They are missing from the map; add them to the name map if they are real countries."
            )
            t2 = doc.add_table(rows=1, cols=2)
            t2.rows[0].cells[0].text = "Location"
            t2.rows[0].cells[1].text = "Total cases"
            for r in result.unmatched.itertuples(index=False):
                c = t2.add_row().cells
                c[0].text = str(r.location)
                c[1].text = f"{int(r.total_cases):,}"
        if result.unmatched_study:
            doc.add_paragraph(
                "Study countries not found in the world boundary file (after name mapping): "
                + ", ".join(result.unmatched_study) + "."
            )

        # -----------------------------
        # Reproducibility footer
        # -----------------------------
        doc.add_paragraph("")
        doc.add_heading("Reproducibility footer", level=1)

        from . import __version__ as covex_version
        from datetime import datetime as _dt
        generated_at = _dt.now().isoformat(timespec="seconds")

        doc.add_paragraph(f"COVEX version: {covex_version}")
        doc.add_paragraph(f"Report generated at: {generated_at}")
        doc.add_paragraph(f"LOWESS span: {config.smoothing_frac}")

        os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
        doc.save(out_path)
    log.info("Report written to %s (%d charts)", out_path, sum(1 for _, p, _ in charts if p))
    return out_path
