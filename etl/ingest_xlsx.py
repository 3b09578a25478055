# WORKFLOW: Spreadsheet ingestion of TARIC nomenclature and declarable code exports.
# Used by: scripts.ingest_nomenclatures, tests
# Functions:
# 1. find_excel_files() - Resolve a file, a directory of files or a ZIP archive into XLSX paths
# 2. read_sheet() - Read the first sheet of a workbook as text cells
# 3. NomenclatureRowParser / DeclarableCodeRowParser - one parser per row variant
# 4. run_parser() - Map, process and save rows in chunks, counting errors
#
# Ingestion flow: XLSX -> Frame validation -> map_row() -> process_entry() -> save_entries() per chunk
# Bad rows are logged with their spreadsheet row number and skipped; DB failures roll back and re-raise.

"""
Spreadsheet ingestion for TARIC nomenclature exports.
"""

import logging
import shutil
import zipfile
from abc import ABC, abstractmethod
from datetime import date, datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

import pandas as pd
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from core.config import settings
from db.models import Nomenclature, NomenclatureDeclarableCode, NomenclatureDescription
from etl.validators import (
    generate_validation_report, validate_declarable_frame, validate_language, validate_nomenclature_frame
)
from services.hierarchy_path import VALID_LEVELS, build_hierarchy_path

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = ('.xlsx', '.xls')
MAX_INDENT = 12


class NomenclatureEntry(BaseModel):
    """One row of a nomenclature export (columns A-H)."""
    goods_code: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    language: str
    hier_pos: int
    hierarchy_path: str = ""
    indent: int = 0
    description: str
    descr_start_date: Optional[date] = None


class DeclarableCodeEntry(BaseModel):
    """One row of a declarable codes export (columns A-D)."""
    goods_code: str
    start_date: Optional[date] = None
    declarable_start_date: Optional[date] = None
    is_leaf: bool


class IngestSummary(BaseModel):
    processed: int = 0
    inserted: int = 0
    errors: int = 0
    invalid_files: List[str] = Field(default_factory=list)


def parse_date(value: str, fmt: str, column: str) -> Optional[date]:
    """
    Parse a date cell.

    Args:
        value: Cell text; empty means no date
        fmt: Export date format, e.g. "%d-%m-%Y"
        column: Column name used in the error message

    Raises:
        ValueError: value matches neither fmt nor ISO format
    """
    value = (value or "").strip()
    if not value:
        return None
    try:
        return datetime.strptime(value, fmt).date()
    except ValueError:
        pass
    try:
        # Spreadsheet date cells come through as "2024-01-01 00:00:00"
        return datetime.fromisoformat(value).date()
    except ValueError:
        raise ValueError(f"invalid {column} format: {value!r}")


def count_indent(value: str) -> int:
    """Count the dash tokens of an indent cell ("- - -" -> 3)."""
    return len((value or "").split())


def parse_flag(value: str) -> bool:
    flag = (value or "").strip().lower()
    if flag in ('1', 'true', 't'):
        return True
    if flag in ('0', 'false', 'f'):
        return False
    raise ValueError(f"invalid is leaf: {value!r}")


def extract_zip_file(zip_path: str, extract_dir: str) -> List[str]:
    """
    Extract workbook files from a ZIP archive.

    Returns:
        Sorted list of extracted workbook paths
    """
    try:
        # the directory holds only this archive's contents
        if Path(extract_dir).exists():
            shutil.rmtree(extract_dir)
        with zipfile.ZipFile(zip_path, 'r') as zip_ref:
            zip_ref.extractall(extract_dir)

        files = sorted(str(f) for f in Path(extract_dir).rglob("*") if f.suffix.lower() in EXCEL_SUFFIXES)
        logger.info(f"Extracted {len(files)} workbook files from {zip_path}")
        return files

    except Exception as e:
        logger.error(f"Failed to extract ZIP file {zip_path}: {e}")
        raise


def find_excel_files(path: str) -> List[str]:
    """
    Resolve the input path into workbook files.

    Args:
        path: A workbook, a directory of workbooks (not recursive) or a ZIP archive
    """
    input_path = Path(path)
    if not input_path.exists():
        raise FileNotFoundError(f"Input path not found: {path}")

    if input_path.is_dir():
        files = sorted(str(f) for f in input_path.iterdir() if f.is_file() and f.suffix.lower() in EXCEL_SUFFIXES)
        if not files:
            logger.warning(f"No Excel files found in directory: {path}")
        return files

    if input_path.suffix.lower() == '.zip':
        return extract_zip_file(str(input_path), f"data/extracted/{input_path.stem}")

    if input_path.suffix.lower() in EXCEL_SUFFIXES:
        return [str(input_path)]

    raise ValueError(f"Unsupported input file: {path}")


def read_sheet(file_path: str) -> pd.DataFrame:
    """Read the first sheet with a header row; every cell as text, empty cells as ''."""
    return pd.read_excel(file_path, sheet_name=0, dtype=str, keep_default_na=False)


def iter_rows(df: pd.DataFrame) -> Iterator[Tuple[int, List[str]]]:
    """Yield (spreadsheet row number, stripped cells); row 1 is the header."""
    for offset, values in enumerate(df.itertuples(index=False, name=None)):
        yield offset + 2, [str(value).strip() for value in values]


def _nullable_eq(column, value):
    return column.is_(None) if value is None else column == value


class RowParser(ABC):
    """Maps, processes and saves the rows of one export variant."""
    name: str
    min_columns: int

    @abstractmethod
    def validate_frame(self, df: pd.DataFrame) -> Tuple[bool, List[str]]:
        ...

    @abstractmethod
    def map_row(self, cells: List[str]) -> BaseModel:
        ...

    def process_entry(self, entry: BaseModel) -> BaseModel:
        return entry

    @abstractmethod
    def save_entries(self, db: Session, entries: List[BaseModel]) -> int:
        ...

    def _check_columns(self, cells: List[str]) -> None:
        if len(cells) < self.min_columns:
            raise ValueError(f"insufficient columns: need at least {self.min_columns} columns")


class NomenclatureRowParser(RowParser):
    name = "nomenclatures"
    min_columns = 8
    date_format = "%d-%m-%Y"

    def validate_frame(self, df: pd.DataFrame) -> Tuple[bool, List[str]]:
        return validate_nomenclature_frame(df)

    def map_row(self, cells: List[str]) -> NomenclatureEntry:
        self._check_columns(cells)

        language = cells[3].upper()
        if not validate_language(language):
            raise ValueError(f"invalid language: {cells[3]!r}")

        try:
            hier_pos = int(float(cells[4]))
        except ValueError:
            raise ValueError(f"invalid Hier. Pos. format: {cells[4]!r}")
        if hier_pos not in VALID_LEVELS:
            raise ValueError(f"invalid Hier. Pos. value: {hier_pos}")

        indent = count_indent(cells[5])
        if indent > MAX_INDENT:
            raise ValueError(f"invalid Indent value: {indent}")

        return NomenclatureEntry(
            goods_code=cells[0],
            start_date=parse_date(cells[1], self.date_format, "start date"),
            end_date=parse_date(cells[2], self.date_format, "end date"),
            language=language,
            hier_pos=hier_pos,
            indent=indent,
            description=cells[6],
            descr_start_date=parse_date(cells[7], self.date_format, "description start date"),
        )

    def process_entry(self, entry: NomenclatureEntry) -> NomenclatureEntry:
        entry.hierarchy_path = build_hierarchy_path(entry.goods_code, entry.hier_pos)
        return entry

    def save_entries(self, db: Session, entries: List[NomenclatureEntry]) -> int:
        """Upsert nomenclatures on (goods_code, start_date, end_date) and descriptions on (nomenclature, language)."""
        try:
            count = 0
            for entry in entries:
                item = db.query(Nomenclature).filter(
                    Nomenclature.goods_code == entry.goods_code,
                    _nullable_eq(Nomenclature.start_date, entry.start_date),
                    _nullable_eq(Nomenclature.end_date, entry.end_date),
                ).one_or_none()
                if item is None:
                    item = Nomenclature(goods_code=entry.goods_code, start_date=entry.start_date, end_date=entry.end_date)
                    db.add(item)
                item.hier_pos = entry.hier_pos
                item.hierarchy_path = entry.hierarchy_path
                item.indent = entry.indent
                db.flush()

                description = db.query(NomenclatureDescription).filter_by(
                    nomenclature_id=item.id, language=entry.language
                ).one_or_none()
                if description is None:
                    description = NomenclatureDescription(nomenclature_id=item.id, language=entry.language)
                    db.add(description)
                description.description = entry.description
                description.descr_start_date = entry.descr_start_date
                db.flush()

                count += 1

            db.commit()
            logger.info(f"Saved {count} nomenclature entries")
            return count

        except Exception as e:
            db.rollback()
            logger.error(f"Failed to save nomenclature entries: {e}")
            raise


class DeclarableCodeRowParser(RowParser):
    name = "declarable_codes"
    min_columns = 4
    date_format = "%Y-%m-%d"

    def validate_frame(self, df: pd.DataFrame) -> Tuple[bool, List[str]]:
        return validate_declarable_frame(df)

    def map_row(self, cells: List[str]) -> DeclarableCodeEntry:
        self._check_columns(cells)
        return DeclarableCodeEntry(
            goods_code=cells[0],
            start_date=parse_date(cells[1], self.date_format, "start date"),
            declarable_start_date=parse_date(cells[2], self.date_format, "declarable start date"),
            is_leaf=parse_flag(cells[3]),
        )

    def _nomenclature_ids(self, db: Session, entries: List[DeclarableCodeEntry]) -> Dict[str, List[Tuple[int, Optional[date]]]]:
        goods_codes = sorted({entry.goods_code for entry in entries})
        rows = (
            db.query(Nomenclature.id, Nomenclature.goods_code, Nomenclature.start_date)
            .filter(Nomenclature.goods_code.in_(goods_codes))
            .order_by(Nomenclature.id)
            .all()
        )
        existing: Dict[str, List[Tuple[int, Optional[date]]]] = {}
        for row in rows:
            existing.setdefault(row.goods_code, []).append((row.id, row.start_date))
        return existing

    def save_entries(self, db: Session, entries: List[DeclarableCodeEntry]) -> int:
        """Upsert declarable flags for every nomenclature of the goods code (same start date preferred)."""
        try:
            existing = self._nomenclature_ids(db, entries)
            count = 0
            for entry in entries:
                candidates = existing.get(entry.goods_code)
                if not candidates:
                    logger.warning(f"No nomenclature found for goods code: {entry.goods_code}")
                    continue

                same_start = [item_id for item_id, start_date in candidates if start_date == entry.start_date]
                item_ids = same_start or [item_id for item_id, _ in candidates]

                for item_id in item_ids:
                    code = db.query(NomenclatureDeclarableCode).filter_by(nomenclature_id=item_id).one_or_none()
                    if code is None:
                        code = NomenclatureDeclarableCode(nomenclature_id=item_id)
                        db.add(code)
                    code.start_date = entry.start_date
                    code.declarable_start_date = entry.declarable_start_date
                    code.is_leaf = entry.is_leaf
                    db.flush()

                count += 1

            db.commit()
            logger.info(f"Saved {count} declarable code entries")
            return count

        except Exception as e:
            db.rollback()
            logger.error(f"Failed to save declarable code entries: {e}")
            raise


PARSERS: Dict[str, RowParser] = {
    NomenclatureRowParser.name: NomenclatureRowParser(),
    DeclarableCodeRowParser.name: DeclarableCodeRowParser(),
}


def run_parser(parser: RowParser, path: str, db: Session, chunk_size: Optional[int] = None) -> IngestSummary:
    """
    Ingest every workbook found at path with one parser.

    Args:
        parser: Row parser for the export variant
        path: Workbook, directory or ZIP archive
        db: Database session
        chunk_size: Entries saved per transaction (defaults to settings.ingest_chunk_size)

    Returns:
        Counts of processed, inserted and skipped rows, and the files that failed sheet validation
    """
    chunk_size = chunk_size or settings.ingest_chunk_size
    summary = IngestSummary()
    entries: List[BaseModel] = []
    validation_results: Dict[str, Tuple[bool, List[str]]] = {}

    files = find_excel_files(path)
    for i, file_path in enumerate(files, start=1):
        file_name = Path(file_path).name
        logger.info(f"Processing Excel file {i}/{len(files)}: {file_name}")

        df = read_sheet(file_path)
        is_valid, errors = parser.validate_frame(df)
        validation_results[file_name] = (is_valid, errors)
        if not is_valid:
            for error in errors:
                logger.warning(f"{file_name}: {error}")

        for row_number, cells in iter_rows(df):
            try:
                entry = parser.process_entry(parser.map_row(cells))
            except ValueError as e:
                logger.warning(f"Error parsing row {row_number} of {file_name}: {e}")
                summary.errors += 1
                continue

            entries.append(entry)
            summary.processed += 1

            if len(entries) >= chunk_size:
                summary.inserted += parser.save_entries(db, entries)
                entries = []

    if entries:
        summary.inserted += parser.save_entries(db, entries)

    report = generate_validation_report(validation_results)
    summary.invalid_files = [name for name, result in report['files'].items() if not result['valid']]

    logger.info(
        f"Import of {parser.name} completed: {summary.processed} processed, "
        f"{summary.inserted} inserted/updated, {summary.errors} errors"
    )
    return summary
