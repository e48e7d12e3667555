#!/usr/bin/env python3
"""End-to-end tests for the folder conversion pipeline."""

import csv
import json
import logging

import pandas as pd
import pytest

import json_to_excel
from converter_config import ConverterConfig
from conversion_progress import STAGE_CLEAN, STAGE_WRITE
from json_to_excel import (ConversionError, ConvertOptions, convert_document,
                           find_json_files, main, plan_sources, run, write_report)
from record_resolver import RecordSource

ORDERS = {
    "data": [
        {"id": 1, "tags": ["x", "y"]},
        {"id": 2, "tags": ["z"]},
    ],
    "total": 2,
}


def _write(folder, name, content):
    path = folder / name
    if isinstance(content, str):
        path.write_text(content, encoding="utf-8")
    else:
        path.write_text(json.dumps(content), encoding="utf-8")
    return path


def _read_sheet(path):
    df = pd.read_excel(path, sheet_name="JSON Data", dtype=object, engine="openpyxl")
    return df.fillna("")


def _answers(*values):
    it = iter(values)
    return lambda prompt: next(it)


@pytest.fixture
def folder(tmp_path):
    _write(tmp_path, "orders.json", ORDERS)
    _write(tmp_path, "clean.json", [{"a": {"b": 1}, "c": 2}])
    _write(tmp_path, "wrapped.json", {"items": [{"sku": "A"}, {"sku": "B", "qty": 3}]})
    _write(tmp_path, "broken.json", "{not json")
    _write(tmp_path, "notes.txt", "ignored")
    return tmp_path


def test_find_json_files(folder):
    _write(folder, "UPPER.JSON", [])
    names = [p.name for p in find_json_files(folder)]
    assert names == ["UPPER.JSON", "broken.json", "clean.json", "orders.json", "wrapped.json"]


def test_find_json_files_rejects_bad_paths(tmp_path):
    with pytest.raises(ConversionError):
        find_json_files(tmp_path / "missing")
    file_path = _write(tmp_path, "a.json", [])
    with pytest.raises(ConversionError):
        find_json_files(file_path)


def test_run_converts_each_document(folder):
    results = run(folder, ConverterConfig(), ConvertOptions(), interactive=False)
    by_name = {r.file_name: r for r in results}

    assert [r.file_name for r in results] == ["broken.json", "clean.json", "orders.json", "wrapped.json"]
    assert by_name["orders.json"].ok
    assert by_name["clean.json"].ok
    assert not by_name["broken.json"].ok
    assert not by_name["wrapped.json"].ok

    df = _read_sheet(folder / "orders.xlsx")
    assert list(df.columns) == ["id", "tags[0]", "tags[1]"]
    assert df.values.tolist() == [["1", "x", "y"], ["2", "z", ""]]
    assert (by_name["orders.json"].rows, by_name["orders.json"].columns) == (2, 3)

    df = _read_sheet(folder / "clean.xlsx")
    assert list(df.columns) == ["a.b", "c"]
    assert df.values.tolist() == [["1", "2"]]


def test_run_writes_clean_copies(folder):
    run(folder, ConverterConfig(), ConvertOptions(), interactive=False)
    with open(folder / "CleanJson" / "orders.json", encoding="utf-8") as f:
        assert json.load(f) == ORDERS["data"]
    assert not (folder / "CleanJson" / "wrapped.json").exists()


def test_run_with_prompted_field(folder):
    results = run(folder, ConverterConfig(), ConvertOptions(),
                  input_fn=_answers("n", "items"))
    assert {r.file_name: r.ok for r in results}["wrapped.json"]

    df = _read_sheet(folder / "wrapped.xlsx")
    assert list(df.columns) == ["qty", "sku"]
    assert df.values.tolist() == [["", "A"], ["3", "B"]]


def test_run_with_root_as_data(folder):
    results = run(folder, ConverterConfig(), ConvertOptions(), use_root=True, interactive=False)
    assert {r.file_name: r.ok for r in results}["wrapped.json"]

    df = _read_sheet(folder / "wrapped.xlsx")
    assert len(df) == 1
    assert list(df.columns) == ["items[0].sku", "items[1].qty", "items[1].sku"]


def test_run_with_configured_default_field(folder):
    config = ConverterConfig(data_field="items")
    results = {r.file_name: r for r in run(folder, config, ConvertOptions(), interactive=False)}
    assert results["wrapped.json"].ok
    assert not results["orders.json"].ok


def test_run_with_fallback_field_keeps_default(folder):
    results = run(folder, ConverterConfig(), ConvertOptions(), interactive=False,
                  fallback_field="items")
    ok = {r.file_name: r.ok for r in results}
    assert ok == {"broken.json": False, "clean.json": True, "orders.json": True, "wrapped.json": True}

    assert list(_read_sheet(folder / "orders.xlsx").columns) == ["id", "tags[0]", "tags[1]"]
    assert list(_read_sheet(folder / "wrapped.xlsx").columns) == ["qty", "sku"]


def test_fallback_field_missing_falls_through_to_prompt(folder):
    files = [folder / "wrapped.json"]
    plan, failed = plan_sources(files, ConverterConfig(), fallback_field="records",
                                input_fn=_answers("y"))
    assert plan == {"wrapped.json": RecordSource.root()}
    assert failed == []


def test_plan_sources_logs_chosen_source(folder, caplog):
    files = [folder / "orders.json", folder / "wrapped.json"]
    with caplog.at_level(logging.DEBUG, logger="json_to_excel"):
        plan_sources(files, ConverterConfig(), interactive=False, fallback_field="items")
    assert 'orders.json: registros en field "data"' in caplog.text
    assert 'wrapped.json: registros en field "items"' in caplog.text


def test_main_field_flag_on_mixed_folder(tmp_path, monkeypatch):
    monkeypatch.setattr(json_to_excel.ConverterConfig, "load_from_env",
                        staticmethod(lambda: ConverterConfig()))
    _write(tmp_path, "a.json", {"data": [{"id": 1}]})
    _write(tmp_path, "b.json", {"items": [{"sku": "A"}]})
    assert main([str(tmp_path), "--field", "items", "--no-input", "--quiet"]) == 0
    assert _read_sheet(tmp_path / "a.xlsx").values.tolist() == [["1"]]
    assert _read_sheet(tmp_path / "b.xlsx").values.tolist() == [["A"]]


def test_run_output_dir_and_csv(folder, tmp_path_factory):
    out = tmp_path_factory.mktemp("out")
    run(folder, ConverterConfig(workers=1), ConvertOptions(output_dir=out, write_csv=True),
        interactive=False)
    assert (out / "orders.xlsx").exists()
    assert not (folder / "orders.xlsx").exists()

    with open(out / "orders.csv", newline="", encoding="utf-8") as f:
        assert list(csv.reader(f)) == [["id", "tags[0]", "tags[1]"], ["1", "x", "y"], ["2", "z", ""]]


def test_run_empty_folder(tmp_path):
    with pytest.raises(ConversionError):
        run(tmp_path, ConverterConfig(), ConvertOptions(), interactive=False)


def test_empty_record_array(tmp_path):
    _write(tmp_path, "empty.json", {"data": []})
    [result] = run(tmp_path, ConverterConfig(), ConvertOptions(), interactive=False)
    assert result.ok
    assert (result.rows, result.columns) == (0, 0)
    assert (tmp_path / "empty.xlsx").exists()


def test_plan_sources_skips_unreadable_files(folder):
    files = find_json_files(folder)
    plan, failed = plan_sources(files, ConverterConfig(), interactive=False)
    assert set(plan) == {"clean.json", "orders.json"}
    assert sorted(r.file_name for r in failed) == ["broken.json", "wrapped.json"]


def test_convert_document_failure_is_captured(folder):
    clean_dir = folder / "CleanJson"
    clean_dir.mkdir()
    result = convert_document(folder / "wrapped.json", RecordSource(field="records"),
                              clean_dir, ConverterConfig(), ConvertOptions())
    assert not result.ok
    assert "records" in result.error


def test_progress_events(folder):
    events = []
    run(folder, ConverterConfig(), ConvertOptions(), interactive=False, on_progress=events.append)
    orders = [e for e in events if e.file_name == "orders.json"]
    assert orders[0].stage == STAGE_CLEAN and orders[0].percent == 0
    assert orders[-1].stage == STAGE_WRITE and orders[-1].percent == 100
    assert all(0 <= e.percent <= 100 for e in events)


def test_write_report(folder, tmp_path_factory):
    results = run(folder, ConverterConfig(), ConvertOptions(), interactive=False)
    report = tmp_path_factory.mktemp("report") / "report.md"
    write_report(results, str(report), folder, 1.5)
    text = report.read_text(encoding="utf-8")
    assert "| Files | 4 |" in text
    assert "| Converted | 2 |" in text
    assert "| orders.json | OK | 2 | 3 |" in text


def test_main_exit_codes(folder, tmp_path, monkeypatch):
    monkeypatch.setattr(json_to_excel.ConverterConfig, "load_from_env",
                        staticmethod(lambda: ConverterConfig()))
    assert main([str(folder), "--no-input", "--quiet"]) == 1
    assert main([str(folder), "--no-input", "--quiet", "--root"]) == 1

    good = tmp_path / "good"
    good.mkdir()
    _write(good, "orders.json", ORDERS)
    assert main([str(good), "--no-input", "--quiet", "--workers", "2"]) == 0
    assert main([str(tmp_path / "missing"), "--quiet"]) == 1
    assert main([str(good), "--quiet", "--workers", "0"]) == 1
