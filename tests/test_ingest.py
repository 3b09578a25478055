# WORKFLOW: Spreadsheet ingestion tests.
# Test scenarios:
# 1. Row mapping for nomenclature and declarable code rows (formats, errors)
# 2. Input resolution (file, directory, ZIP with leftovers of earlier runs)
# 3. Chunked saving into SQLite, upserts, declarable code matching
# 4. Rollback when a chunk cannot be committed
# 5. Files failing sheet validation listed in the import summary

import zipfile
from datetime import date
from pathlib import Path

import pandas as pd
import pytest

from db.models import Nomenclature, NomenclatureDeclarableCode, NomenclatureDescription
from etl.ingest_xlsx import (
    PARSERS, DeclarableCodeRowParser, NomenclatureEntry, NomenclatureRowParser, count_indent,
    find_excel_files, parse_date, run_parser
)
from services.hierarchy_path import CodeTooShort

NOMENCLATURE_HEADER = ["Goods code", "Start date", "End date", "Language", "Hier. Pos.", "Indent",
                       "Description", "Descr. start date"]
DECLARABLE_HEADER = ["Goods code", "Start date", "Declarable start date", "Is leaf"]

EN_ROWS = [
    ["0100000000", "01-01-1972", "", "EN", "2", "", "LIVE ANIMALS", "01-01-1972"],
    ["0101000000", "01-01-1972", "", "EN", "4", "-", "Live horses, asses, mules and hinnies", "01-01-1972"],
    ["0101210000", "01-01-2002", "", "EN", "6", "- -", "Pure-bred breeding animals", "01-01-2002"],
    ["0101290000", "01-01-2002", "", "EN", "6", "- -", "Other", "01-01-2002"],
    ["0101", "01-01-2002", "", "EN", "6", "-", "Too short for its level", "01-01-2002"],
    ["0102000000", "1972/01/01", "", "EN", "4", "-", "Live bovine animals", "01-01-1972"],
]

LT_ROWS = [
    ["0100000000", "01-01-1972", "", "LT", "2", "", "GYVI GYVŪNAI", "01-01-1972"],
    ["0101000000", "01-01-1972", "", "LT", "4", "-", "Gyvi arkliai, asilai, mulai ir arkliniai asilai", "01-01-1972"],
    ["0101210000", "01-01-2002", "", "LT", "6", "- -", "Grynaveisiai veisliniai gyvūnai", "01-01-2002"],
    ["0101290000", "01-01-2002", "", "LT", "6", "- -", "Kiti", "01-01-2002"],
]


def write_sheet(path, rows, header=NOMENCLATURE_HEADER):
    pd.DataFrame(rows, columns=header).to_excel(path, index=False)
    return str(path)


class TestNomenclatureRowParser:

    def setup_method(self):
        self.parser = NomenclatureRowParser()

    def test_map_row(self):
        entry = self.parser.map_row(
            ["0101210000", "01-01-2002", "", "en", "6.0", "- -", "Pure-bred breeding animals", "01-01-2002"]
        )

        assert entry.goods_code == "0101210000"
        assert entry.start_date == date(2002, 1, 1)
        assert entry.end_date is None
        assert entry.language == "EN"
        assert entry.hier_pos == 6
        assert entry.indent == 2
        assert entry.descr_start_date == date(2002, 1, 1)

    def test_process_entry_builds_hierarchy_path(self):
        entry = self.parser.map_row(
            ["0101210000", "01-01-2002", "", "EN", "6", "- -", "Pure-bred breeding animals", "01-01-2002"]
        )

        assert self.parser.process_entry(entry).hierarchy_path == "01.0101.010121"

    def test_process_entry_rejects_short_code(self):
        entry = NomenclatureEntry(goods_code="0101", language="EN", hier_pos=6, description="x")

        with pytest.raises(CodeTooShort):
            self.parser.process_entry(entry)

    def test_spreadsheet_datetime_cells_accepted(self):
        entry = self.parser.map_row(
            ["0101210000", "2002-01-01 00:00:00", "", "EN", "6", "", "Pure-bred", "2002-01-01"]
        )

        assert entry.start_date == date(2002, 1, 1)
        assert entry.descr_start_date == date(2002, 1, 1)

    @pytest.mark.parametrize("cells,message", [
        (["0101210000", "01-01-2002", "", "EN", "six", "", "x", ""], "Hier. Pos. format"),
        (["0101210000", "01-01-2002", "", "EN", "7", "", "x", ""], "Hier. Pos. value"),
        (["0101210000", "01-01-2002", "", "DE", "6", "", "x", ""], "language"),
        (["0101210000", "2002/01/01", "", "EN", "6", "", "x", ""], "start date"),
        (["0101210000", "01-01-2002", "", "EN", "6", " ".join(["-"] * 13), "x", ""], "Indent"),
        (["0101210000", "01-01-2002", "", "EN"], "insufficient columns"),
    ])
    def test_map_row_errors(self, cells, message):
        with pytest.raises(ValueError, match=message):
            self.parser.map_row(cells)


class TestDeclarableCodeRowParser:

    def setup_method(self):
        self.parser = DeclarableCodeRowParser()

    def test_map_row(self):
        entry = self.parser.map_row(["0101210000", "2002-01-01", "2002-01-01", "1"])

        assert entry.is_leaf is True
        assert entry.start_date == date(2002, 1, 1)

    def test_flags(self):
        assert self.parser.map_row(["0101210000", "", "", "false"]).is_leaf is False
        assert self.parser.map_row(["0101210000", "", "", "TRUE"]).is_leaf is True

    def test_invalid_flag(self):
        with pytest.raises(ValueError, match="is leaf"):
            self.parser.map_row(["0101210000", "2002-01-01", "2002-01-01", "maybe"])


def test_parse_date_and_indent():
    assert parse_date("", "%d-%m-%Y", "end date") is None
    assert parse_date("31-12-2023", "%d-%m-%Y", "end date") == date(2023, 12, 31)
    assert count_indent("") == 0
    assert count_indent("- - -") == 3


def test_parsers_registry():
    assert set(PARSERS) == {"nomenclatures", "declarable_codes"}


def test_find_excel_files_in_directory(tmp_path):
    write_sheet(tmp_path / "b_lt.xlsx", LT_ROWS)
    write_sheet(tmp_path / "a_en.xlsx", EN_ROWS)
    (tmp_path / "notes.txt").write_text("ignored")

    files = find_excel_files(str(tmp_path))

    assert [f.split("/")[-1] for f in files] == ["a_en.xlsx", "b_lt.xlsx"]


def test_find_excel_files_in_zip(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    sheet = write_sheet(tmp_path / "nomenclature_en.xlsx", EN_ROWS)
    with zipfile.ZipFile(tmp_path / "export.zip", "w") as archive:
        archive.write(sheet, "nomenclature_en.xlsx")

    files = find_excel_files(str(tmp_path / "export.zip"))

    assert len(files) == 1
    assert files[0].endswith("nomenclature_en.xlsx")


def test_zip_extraction_ignores_previous_runs(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    stale_dir = tmp_path / "data" / "extracted" / "export"
    stale_dir.mkdir(parents=True)
    write_sheet(stale_dir / "old_export_lt.xlsx", LT_ROWS)
    sheet = write_sheet(tmp_path / "nomenclature_en.xlsx", EN_ROWS)
    with zipfile.ZipFile(tmp_path / "export.zip", "w") as archive:
        archive.write(sheet, "nomenclature_en.xlsx")

    files = find_excel_files(str(tmp_path / "export.zip"))

    assert [Path(f).name for f in files] == ["nomenclature_en.xlsx"]


def test_find_excel_files_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        find_excel_files(str(tmp_path / "missing.xlsx"))

    csv_path = tmp_path / "sections.csv"
    csv_path.write_text("a,b\n")
    with pytest.raises(ValueError):
        find_excel_files(str(csv_path))


class TestRunParser:

    def test_nomenclature_import(self, db, tmp_path):
        path = write_sheet(tmp_path / "nomenclature_en.xlsx", EN_ROWS)

        summary = run_parser(PARSERS["nomenclatures"], path, db, chunk_size=2)

        assert summary.processed == 4
        assert summary.inserted == 4
        assert summary.errors == 2
        item = db.query(Nomenclature).filter_by(goods_code="0101210000").one()
        assert item.hierarchy_path == "01.0101.010121"
        assert item.indent == 2
        assert item.hier_pos == 6
        assert item.end_date is None
        assert item.descriptions[0].description == "Pure-bred breeding animals"

    def test_second_language_updates_existing_rows(self, db, tmp_path):
        write_sheet(tmp_path / "nomenclature_en.xlsx", EN_ROWS)
        write_sheet(tmp_path / "nomenclature_lt.xlsx", LT_ROWS)

        summary = run_parser(PARSERS["nomenclatures"], str(tmp_path), db)

        assert summary.inserted == 8
        assert db.query(Nomenclature).count() == 4
        assert db.query(NomenclatureDescription).count() == 8
        assert db.query(NomenclatureDescription).filter_by(language="LT").count() == 4

    def test_reimport_is_idempotent(self, db, tmp_path):
        path = write_sheet(tmp_path / "nomenclature_en.xlsx", EN_ROWS)

        run_parser(PARSERS["nomenclatures"], path, db)
        run_parser(PARSERS["nomenclatures"], path, db)

        assert db.query(Nomenclature).count() == 4
        assert db.query(NomenclatureDescription).count() == 4

    def test_declarable_codes_import(self, db, tmp_path, caplog):
        run_parser(PARSERS["nomenclatures"], write_sheet(tmp_path / "nomenclature_en.xlsx", EN_ROWS), db)
        path = write_sheet(tmp_path / "declarable.xlsx", [
            ["0101210000", "2002-01-01", "2002-01-01", "1"],
            ["0101290000", "2002-01-01", "2002-01-01", "0"],
            ["9999999999", "2002-01-01", "2002-01-01", "1"],
        ], header=DECLARABLE_HEADER)

        summary = run_parser(PARSERS["declarable_codes"], path, db)

        assert summary.processed == 3
        assert summary.inserted == 2
        assert "9999999999" in caplog.text
        leaf = db.query(Nomenclature).filter_by(goods_code="0101210000").one().declarable_code
        assert leaf.is_leaf is True
        assert leaf.declarable_start_date == date(2002, 1, 1)
        assert db.query(NomenclatureDeclarableCode).filter_by(is_leaf=False).count() == 1

    def test_failed_commit_rolls_back(self, db, monkeypatch):
        parser = NomenclatureRowParser()
        entry = parser.process_entry(parser.map_row(
            ["0101210000", "01-01-2002", "", "EN", "6", "- -", "Pure-bred breeding animals", "01-01-2002"]
        ))

        def failing_commit():
            raise RuntimeError("connection lost")

        monkeypatch.setattr(db, "commit", failing_commit)

        with pytest.raises(RuntimeError):
            parser.save_entries(db, [entry])

        assert db.query(Nomenclature).count() == 0

    def test_invalid_sheets_are_reported(self, db, tmp_path):
        write_sheet(tmp_path / "nomenclature_en.xlsx", EN_ROWS)
        write_sheet(tmp_path / "nomenclature_de.xlsx", [
            ["0101210000", "01-01-2002", "", "DE", "6", "- -", "Reinrassige Zuchttiere", "01-01-2002"],
        ])

        summary = run_parser(PARSERS["nomenclatures"], str(tmp_path), db)

        assert summary.invalid_files == ["nomenclature_de.xlsx"]
        assert summary.errors == 3

    def test_clean_sheet_has_no_invalid_files(self, db, tmp_path):
        path = write_sheet(tmp_path / "nomenclature_lt.xlsx", LT_ROWS)

        summary = run_parser(PARSERS["nomenclatures"], path, db)

        assert summary.invalid_files == []
