import tempfile

import geopandas as gpd
import pytest
from docx import Document

from covex.pipeline import PipelineConfig, run_pipeline
from covex.report import EMPTY_NOTICE, EMPTY_TABLE_NOTICE, NO_WORLD_NOTICE, ReportConfig, generate_docx_report

@pytest.fixture
def world():
    names = ["Ireland", "United Kingdom", "Germany", "France"]
    shapes = gpd.GeoSeries.from_wkt([
        f"POLYGON (({i} 0, {i + 1} 0, {i + 1} 1, {i} 1, {i} 0))" for i in range(len(names))
    ])
    return gpd.GeoDataFrame({"name": names}, geometry=shapes, crs="EPSG:4326")

def _text(path):
    return "\n".join(p.text for p in Document(str(path)).paragraphs)

def test_full_report_has_table_and_four_charts(tmp_path, cases, metadata, world, world_names):
    result = run_pipeline(cases, metadata, reference_names=world_names)
    out = tmp_path / "report.docx"
    assert generate_docx_report(result, str(out), world=world) == str(out)

    doc = Document(str(out))
    assert len(doc.inline_shapes) == 4
    summary = doc.tables[0]
    assert [c.text for c in summary.rows[0].cells] == ["Country", "Population", "Total cases", "Cases per 100k"]
    assert [r.cells[0].text for r in summary.rows[1:]] == ["United Kingdom", "Ireland"]

    text = _text(out)
    assert "Total cases grow roughly as population^" in text
    assert "Atlantis" in "\n".join(c.text for t in doc.tables for r in t.rows for c in r.cells)

def test_report_without_world_skips_map(tmp_path, cases, metadata):
    result = run_pipeline(cases, metadata)
    out = tmp_path / "nested" / "report.docx"
    generate_docx_report(result, str(out), config=ReportConfig(title="No map"))

    doc = Document(str(out))
    assert len(doc.inline_shapes) == 3
    text = _text(out)
    assert NO_WORLD_NOTICE in text
    assert "No map" in text
    assert "names were not checked" in text

def test_empty_scatter_gets_placeholders_not_charts(tmp_path, cases, metadata, world):
    result = run_pipeline(cases, metadata, PipelineConfig(study_countries=["Narnia"]))
    assert result.scatter_empty
    out = tmp_path / "empty.docx"
    generate_docx_report(result, str(out), world=world)

    doc = Document(str(out))
    # only the map, which does not depend on the joined data
    assert len(doc.inline_shapes) == 1
    text = _text(out)
    assert text.count(EMPTY_NOTICE) == 3
    assert EMPTY_TABLE_NOTICE in text

def test_single_country_scatter_has_no_fit(tmp_path, cases, metadata):
    result = run_pipeline(cases, metadata, PipelineConfig(study_countries=["Ireland"]))
    out = tmp_path / "one.docx"
    generate_docx_report(result, str(out))
    assert "Too few distinct countries" in _text(out)

def test_report_lists_study_countries_missing_from_world(tmp_path, cases, metadata, world, world_names):
    config = PipelineConfig(study_countries=["Ireland", "England", "Irland"])
    result = run_pipeline(cases, metadata, config, reference_names=world_names)
    out = tmp_path / "study.docx"
    generate_docx_report(result, str(out), world=world)
    assert "Study countries not found in the world boundary file (after name mapping): Irland." in _text(out)

def test_report_leaves_no_chart_files_behind(tmp_path, monkeypatch, cases, metadata, world, world_names):
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    result = run_pipeline(cases, metadata, reference_names=world_names)
    generate_docx_report(result, str(tmp_path / "report.docx"), world=world)
    assert not [p for p in scratch.iterdir() if p.name.startswith("covex_report_")]
