# WORKFLOW: Read-side queries feeding the hierarchy engine.
# Used by: etl.build_search_index, scripts.sync_search_index
# Functions:
# 1. iter_nomenclature_records() - paginated join of nomenclatures, descriptions, declarable
#    codes and section binding, yielding NomenclatureRecord
# 2. fetch_section_names() - section_number -> language -> localized name
#
# Scan flow: LIMIT/OFFSET pages ordered by id -> NomenclatureRecord -> HierarchyIndex.from_records()
# Goods codes without a section binding are kept (section_name=None) so the engine can flag them.

import logging
from typing import Dict, Iterator

from sqlalchemy import Integer, and_, cast, func
from sqlalchemy.orm import Session

from db.models import (
    Nomenclature, NomenclatureDeclarableCode, NomenclatureDescription,
    SectionChapterMapping, SectionDescription
)
from services.records import NomenclatureRecord

logger = logging.getLogger(__name__)


def _nomenclature_record_query(db: Session):
    chapter_id = cast(func.substr(Nomenclature.goods_code, 1, 2), Integer)
    return (
        db.query(
            Nomenclature.id,
            Nomenclature.goods_code,
            Nomenclature.start_date,
            Nomenclature.end_date,
            Nomenclature.hierarchy_path,
            Nomenclature.indent,
            Nomenclature.hier_pos,
            NomenclatureDescription.description,
            NomenclatureDescription.language,
            NomenclatureDescription.descr_start_date,
            SectionDescription.name.label("section_name"),
            SectionChapterMapping.section_number,
            NomenclatureDeclarableCode.is_leaf,
        )
        .join(NomenclatureDescription, NomenclatureDescription.nomenclature_id == Nomenclature.id)
        .outerjoin(NomenclatureDeclarableCode, NomenclatureDeclarableCode.nomenclature_id == Nomenclature.id)
        .outerjoin(SectionChapterMapping, SectionChapterMapping.chapter_id == chapter_id)
        .outerjoin(
            SectionDescription,
            and_(
                SectionDescription.section_number == SectionChapterMapping.section_number,
                SectionDescription.language == NomenclatureDescription.language,
            ),
        )
        .order_by(Nomenclature.id, NomenclatureDescription.id)
    )


def iter_nomenclature_records(db: Session, chunk_size: int = 1000) -> Iterator[NomenclatureRecord]:
    """
    Scan all nomenclature records page by page.

    Args:
        db: Database session
        chunk_size: Rows fetched per page

    Yields:
        NomenclatureRecord per (nomenclature, language) pair, ordered by nomenclature id
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    query = _nomenclature_record_query(db)
    offset = 0

    while True:
        try:
            rows = query.limit(chunk_size).offset(offset).all()
        except Exception as e:
            logger.error(f"Failed to fetch nomenclature records at offset {offset}: {e}")
            raise

        if not rows:
            break

        logger.info(f"Fetched {len(rows)} nomenclature records at offset {offset}")
        for row in rows:
            yield NomenclatureRecord(**row._mapping)

        offset += chunk_size


def fetch_section_names(db: Session) -> Dict[int, Dict[str, str]]:
    """
    Get localized section names.

    Returns:
        section_number -> language -> name
    """
    sections: Dict[int, Dict[str, str]] = {}
    rows = db.query(SectionDescription).order_by(SectionDescription.section_number, SectionDescription.language).all()
    for row in rows:
        sections.setdefault(row.section_number, {})[row.language] = row.name
    return sections
