import pandas as pd
import pytest

from covex.loader import cases_frame, load_cases, load_metadata, reference_names
from covex.models import CaseRecord, ScalarPopulation, SequencePopulation, TablePopulation

def test_load_cases_normalizes_columns(tmp_path, raw_cases):
    path = tmp_path / "cases.csv"
    raw_cases.to_csv(path, index=False)
    df = load_cases(path)
    assert list(df.columns) == ["location", "date", "new_cases", "total_cases"]
    assert len(df) == len(raw_cases)
    assert pd.api.types.is_datetime64_any_dtype(df["date"])
    assert df.loc[df["location"] == "Germany", "total_cases"].isna().all()

def test_load_cases_accepts_alternative_headers(tmp_path):
    path = tmp_path / "cases.csv"
    path.write_text(
        "Country,Date,New Cases,Total Cases\n"
        "Ireland,2021-01-01,5,5\n"
        "Ireland,2021-01-02,,\n"
        " Ireland ,2021-01-03,3,8\n",
        encoding="utf-8",
    )
    df = load_cases(path)
    assert df["location"].tolist() == ["Ireland"] * 3
    assert df["total_cases"].isna().tolist() == [False, True, False]

def test_rows_without_date_or_location_are_dropped(tmp_path):
    path = tmp_path / "cases.csv"
    path.write_text(
        "location,date,new_cases,total_cases\n"
        "Ireland,2021-01-01,5,5\n"
        "Ireland,not-a-date,1,6\n"
        ",2021-01-03,3,8\n",
        encoding="utf-8",
    )
    assert len(load_cases(path)) == 1

def test_missing_column_raises_key_error(tmp_path):
    path = tmp_path / "cases.csv"
    path.write_text("location,date,new_cases\nIreland,2021-01-01,5\n", encoding="utf-8")
    with pytest.raises(KeyError, match="total_cases"):
        load_cases(path)

def test_load_metadata_keeps_population_shapes(tmp_path, raw_metadata):
    path = tmp_path / "meta.csv"
    raw_metadata.to_csv(path, index=False)
    meta = load_metadata(path)
    kinds = dict(zip(meta["location"], meta["population"]))
    assert isinstance(kinds["Ireland"], ScalarPopulation)
    assert isinstance(kinds["England"], TablePopulation)
    assert isinstance(kinds["Germany"], SequencePopulation)
    assert kinds["France"].kind == "missing"

def test_load_metadata_from_excel(tmp_path, raw_metadata):
    path = tmp_path / "meta.xlsx"
    raw_metadata.to_excel(path, index=False, engine="openpyxl")
    meta = load_metadata(path)
    assert meta["location"].tolist() == raw_metadata["location"].tolist()

def test_cases_frame_from_records():
    from datetime import date
    df = cases_frame([CaseRecord("Ireland", date(2021, 1, 1), 5, 5)])
    assert df["new_cases"].tolist() == [5]
    assert df["date"].iloc[0] == pd.Timestamp("2021-01-01")

def test_reference_names_without_world():
    assert reference_names(None) is None
    world = pd.DataFrame({"name": ["Ireland", None]})
    assert reference_names(world) == ["Ireland"]
