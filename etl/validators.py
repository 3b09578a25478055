# WORKFLOW: Data validation for nomenclature spreadsheets before row parsing.
# Used by: etl.ingest_xlsx (frame checks and per-row checks)
# Functions:
# 1. validate_goods_code() - Goods code format (digits, optional product line suffix)
# 2. validate_language() - Language code is one of the configured languages
# 3. validate_nomenclature_frame() - Column count, goods codes, levels, descriptions
# 4. validate_declarable_frame() - Column count, goods codes, leaf flags
# 5. generate_validation_report() - Per-file summary of one import run (used by etl.ingest_xlsx.run_parser)
#
# Validation flow: Sheet DataFrame -> Frame checks -> Report (logged) -> Row parsing skips bad rows
# Frame checks never abort an import; they surface data quality before rows are skipped one by one.

"""
Data validation for nomenclature spreadsheet imports.
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Tuple

import pandas as pd

from core.config import settings

logger = logging.getLogger(__name__)

GOODS_CODE_PATTERN = re.compile(r'^\d{2,10}( \d{2})?$')
NOMENCLATURE_COLUMNS = 8
DECLARABLE_COLUMNS = 4
LEAF_FLAGS = {'0', '1', 'true', 'false'}


def validate_goods_code(goods_code: str) -> bool:
    """
    Validate goods code format.

    Args:
        goods_code: Goods code, e.g. "0101210000" or "0101210000 80"

    Returns:
        True if valid, False otherwise
    """
    if not goods_code or not isinstance(goods_code, str):
        return False
    return bool(GOODS_CODE_PATTERN.match(goods_code.strip()))


def validate_language(language: str) -> bool:
    if not language or not isinstance(language, str):
        return False
    return language.strip().upper() in settings.languages


def _invalid_rows(series: pd.Series, predicate) -> List[str]:
    return [f"Row {idx}: {value}" for idx, value in series.items() if not predicate(value)]


def validate_nomenclature_frame(df: pd.DataFrame) -> Tuple[bool, List[str]]:
    """
    Validate a nomenclature sheet (columns A-H).

    Args:
        df: Sheet read with all cells as text

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []

    if df.shape[1] < NOMENCLATURE_COLUMNS:
        errors.append(f"Expected {NOMENCLATURE_COLUMNS} columns, found {df.shape[1]}")
        return False, errors

    invalid_codes = _invalid_rows(df.iloc[:, 0], validate_goods_code)
    if invalid_codes:
        errors.append(f"Invalid goods codes: {invalid_codes[:10]}")

    invalid_languages = _invalid_rows(df.iloc[:, 3], validate_language)
    if invalid_languages:
        errors.append(f"Unknown languages: {invalid_languages[:10]}")

    levels = pd.to_numeric(df.iloc[:, 4], errors='coerce')
    invalid_levels = df[~levels.isin([2, 4, 6, 8, 10])]
    if not invalid_levels.empty:
        errors.append(f"Invalid hierarchical levels found in {len(invalid_levels)} rows")

    descriptions = df.iloc[:, 6].astype(str).str.strip()
    empty_descriptions = df[descriptions == '']
    if not empty_descriptions.empty:
        errors.append(f"Empty descriptions found in {len(empty_descriptions)} rows")

    logger.info(f"Nomenclature sheet validation: {len(errors)} errors found")
    return len(errors) == 0, errors


def validate_declarable_frame(df: pd.DataFrame) -> Tuple[bool, List[str]]:
    """Validate a declarable codes sheet (columns A-D)."""
    errors = []

    if df.shape[1] < DECLARABLE_COLUMNS:
        errors.append(f"Expected {DECLARABLE_COLUMNS} columns, found {df.shape[1]}")
        return False, errors

    invalid_codes = _invalid_rows(df.iloc[:, 0], validate_goods_code)
    if invalid_codes:
        errors.append(f"Invalid goods codes: {invalid_codes[:10]}")

    invalid_flags = _invalid_rows(df.iloc[:, 3], lambda value: str(value).strip().lower() in LEAF_FLAGS)
    if invalid_flags:
        errors.append(f"Invalid declarable flags: {invalid_flags[:10]}")

    logger.info(f"Declarable codes sheet validation: {len(errors)} errors found")
    return len(errors) == 0, errors


def generate_validation_report(validation_results: Dict[str, Tuple[bool, List[str]]]) -> Dict[str, Any]:
    """
    Summarize sheet validation of one import run.

    Args:
        validation_results: Workbook file name -> (is_valid, errors)

    Returns:
        Report with per-file results and totals; logged at warning level if any file failed
    """
    files = {
        file_name: {'valid': is_valid, 'error_count': len(errors), 'errors': errors}
        for file_name, (is_valid, errors) in validation_results.items()
    }
    invalid_files = [file_name for file_name, result in files.items() if not result['valid']]

    report = {
        'timestamp': datetime.now().isoformat(),
        'overall_valid': not invalid_files,
        'files': files,
        'summary': {
            'total_files': len(files),
            'invalid_files': len(invalid_files),
            'total_errors': sum(result['error_count'] for result in files.values()),
        },
    }

    if invalid_files:
        logger.warning(f"Sheet validation failed for {invalid_files}: {report['summary']}")
    else:
        logger.info(f"Sheet validation passed: {report['summary']}")
    return report
