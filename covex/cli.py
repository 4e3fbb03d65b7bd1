"""
COVEX Command Line Interface (CLI)
==================================

Run the whole analysis once and write the report:

    python -m covex.cli --cases owid-covid-data.csv --metadata countries.csv \
        --world ne_110m_admin_0_countries.geojson --out report.docx

Optional:
    --export scatter.csv|scatter.json   write the joined country table
    --name-column NAME                  country-name column of the world file
    --verbose                           debug logging

The CLI never modifies the input files.
"""

from __future__ import annotations
import argparse
import logging
import os
import sys
from typing import List, Optional

from .loader import load_cases, load_metadata, load_world, reference_names
from .pipeline import PipelineConfig, PipelineResult, run_pipeline


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="covex", description="COVID-19 exploratory report")
    ap.add_argument("--cases", required=True, help="Daily per-country case file (CSV or XLSX)")
    ap.add_argument("--metadata", required=True, help="Per-country metadata file (CSV or XLSX)")
    ap.add_argument("--world", help="World boundary file (GeoJSON/shapefile); map skipped if absent")
    ap.add_argument("--name-column", default="name", help="Country-name column of the world file")
    ap.add_argument("--out", default="covex_report.docx", help="Output DOCX path")
    ap.add_argument("--export", help="Also export the joined country table (.csv or .json)")
    ap.add_argument("--smoothing", type=float, default=0.1, help="LOWESS span for the trend chart")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def _export(result: PipelineResult, out_path: str) -> None:
    if not result.scatter_rows():
        print("Nothing to export: joined country table is empty.")
        return
    ext = os.path.splitext(out_path)[1].lower()
    if ext == ".json":
        result.export_json(out_path)
    elif ext == ".csv":
        result.export_csv(out_path)
    else:
        raise ValueError("export path must end in .csv or .json")
    print(f"Exported {ext[1:].upper()} to {out_path}")


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the COVEX CLI.

    1) Load datasets
    2) Run the pipeline
    3) Write the report (and optional export)
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    from .report import DatasetCitation, ReportConfig, generate_docx_report

    try:
        print("Loading datasets...")
        cases = load_cases(args.cases)
        metadata = load_metadata(args.metadata)
        world = load_world(args.world, args.name_column) if args.world else None
        print(f"Loaded {len(cases)} case rows and {len(metadata)} metadata rows.")

        result = run_pipeline(cases, metadata, PipelineConfig(), reference_names(world))
        if result.scatter_empty:
            print("Warning: no country survived the join; charts will show a placeholder.")
        else:
            print(f"Countries in analysis: {', '.join(result.scatter['location'])}")
        if result.unmatched is not None and not result.unmatched.empty:
            print(f"Warning: {len(result.unmatched)} location(s) not in the world file (see report).")
        if result.unmatched_study:
            print(f"Warning: study countries not in the world file: {', '.join(result.unmatched_study)}")

        cfg = ReportConfig(
            smoothing_frac=args.smoothing,
            citation=DatasetCitation(
                cases_file=os.path.basename(args.cases),
                metadata_file=os.path.basename(args.metadata),
                world_file=os.path.basename(args.world) if args.world else None,
            ),
        )
        generate_docx_report(result, args.out, world=world, config=cfg)
        print(f"Report written to {args.out}")

        if args.export:
            _export(result, args.export)
    except (OSError, KeyError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
