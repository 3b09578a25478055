# WORKFLOW: Section binding seed (chapter -> section -> localized section name).
# Used by: scripts.ingest_nomenclatures (--type sections), tests
# Functions:
# 1. section_for_chapter() - Section number of a 2-digit chapter
# 2. seed_section_chapter_mapping() - Upsert the chapter -> section table
# 3. load_section_descriptions() - Read section names from CSV/XLSX
# 4. store_section_descriptions() - Upsert localized section names
#
# Every chapter belongs to exactly one section; the section name is the root of every breadcrumb.

"""
Section/chapter binding for the TARIC nomenclature.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

import pandas as pd
from sqlalchemy.orm import Session

from db.models import SectionChapterMapping, SectionDescription

logger = logging.getLogger(__name__)

# Section number -> (first chapter, last chapter), inclusive
SECTION_CHAPTER_RANGES = {
    1: (1, 5),
    2: (6, 14),
    3: (15, 15),
    4: (16, 24),
    5: (25, 27),
    6: (28, 38),
    7: (39, 40),
    8: (41, 43),
    9: (44, 46),
    10: (47, 49),
    11: (50, 63),
    12: (64, 67),
    13: (68, 70),
    14: (71, 71),
    15: (72, 83),
    16: (84, 85),
    17: (86, 89),
    18: (90, 92),
    19: (93, 93),
    20: (94, 96),
    21: (97, 99),
}

SECTION_COLUMNS = ['section_number', 'language', 'name']


def chapter_section_map() -> Dict[int, int]:
    return {
        chapter: section
        for section, (first, last) in SECTION_CHAPTER_RANGES.items()
        for chapter in range(first, last + 1)
    }


def section_for_chapter(chapter: int) -> Optional[int]:
    return chapter_section_map().get(chapter)


def seed_section_chapter_mapping(db: Session) -> int:
    """
    Upsert the chapter -> section mapping.

    Returns:
        Number of chapters written
    """
    try:
        existing = {row.chapter_id: row for row in db.query(SectionChapterMapping).all()}
        for chapter, section in chapter_section_map().items():
            row = existing.get(chapter)
            if row is None:
                db.add(SectionChapterMapping(chapter_id=chapter, section_number=section))
            else:
                row.section_number = section
        db.commit()
        logger.info(f"Seeded {len(chapter_section_map())} chapter to section mappings")
        return len(chapter_section_map())

    except Exception as e:
        db.rollback()
        logger.error(f"Failed to seed section chapter mapping: {e}")
        raise


def load_section_descriptions(path: str) -> pd.DataFrame:
    """
    Read localized section names.

    Args:
        path: CSV or XLSX file with section_number, language, name columns

    Returns:
        DataFrame with normalized columns
    """
    file_path = Path(path)
    if file_path.suffix.lower() in ('.xlsx', '.xls'):
        df = pd.read_excel(file_path, dtype=str, keep_default_na=False)
    else:
        df = pd.read_csv(file_path, dtype=str, keep_default_na=False)

    df.columns = [str(column).strip().lower() for column in df.columns]
    missing_columns = [col for col in SECTION_COLUMNS if col not in df.columns]
    if missing_columns:
        raise ValueError(f"Missing required columns in {path}: {missing_columns}")

    df = df[SECTION_COLUMNS].copy()
    df['section_number'] = df['section_number'].astype(int)
    df['language'] = df['language'].str.strip().str.upper()
    df['name'] = df['name'].str.strip()
    logger.info(f"Loaded {len(df)} section descriptions from {path}")
    return df


def store_section_descriptions(db: Session, df: pd.DataFrame) -> int:
    """Upsert localized section names from a load_section_descriptions() frame."""
    try:
        existing = {
            (row.section_number, row.language): row
            for row in db.query(SectionDescription).all()
        }
        count = 0
        for section_number, language, name in df[SECTION_COLUMNS].itertuples(index=False):
            section_number = int(section_number)
            if section_number not in SECTION_CHAPTER_RANGES:
                logger.warning(f"Skipping unknown section number {section_number}")
                continue
            row = existing.get((section_number, language))
            if row is None:
                row = SectionDescription(section_number=section_number, language=language, name=name)
                db.add(row)
                existing[(section_number, language)] = row
            else:
                row.name = name
            count += 1
        db.commit()
        logger.info(f"Stored {count} section descriptions")
        return count

    except Exception as e:
        db.rollback()
        logger.error(f"Failed to store section descriptions: {e}")
        raise
