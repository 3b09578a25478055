# WORKFLOW: Assembly of search documents from resolved category chains.
# Used by: etl.build_search_index, scripts.sync_search_index
# Functions:
# 1. build_documents() - merge per-language resolved entries into one document per goods code
# 2. build_section_documents() - synthetic root documents seeded from the section binding
# 3. prepare_documents() - resolve a HierarchyIndex and return every document to upload
#
# Assembly flow: ResolvedEntry (record + chain) -> language fields -> numeric code -> canonical path -> document
# Data-quality gaps detected during resolution are logged here, never raised.

"""
Search document assembly for nomenclature records.
"""

import logging
from typing import Dict, List

from core.config import settings
from search.schemas import NomenclatureDocument
from services.category_chain import CategoryChainResolver, HierarchyIndex
from services.goods_code import extract_numeric_part
from services.records import ResolvedEntry
from services.taric_path import build_taric_path
from services.text import remove_diacritics

logger = logging.getLogger(__name__)

LANGUAGE_EN = "EN"
LANGUAGE_LT = "LT"


def _apply_language_fields(document: NomenclatureDocument, entry: ResolvedEntry) -> None:
    record, chain = entry.record, entry.chain

    if record.language == LANGUAGE_EN:
        document.description_en = record.description
        document.categories_en = list(chain.descriptions)
    elif record.language == LANGUAGE_LT:
        document.description_lt = record.description
        document.description_lt_normalized = remove_diacritics(record.description)
        document.categories_lt = list(chain.descriptions)
        document.categories_lt_normalized = [remove_diacritics(category) for category in chain.descriptions]
    else:
        logger.debug(f"No search fields for language {record.language} of goods code {record.goods_code}")


def _log_data_quality(entries: List[ResolvedEntry]) -> None:
    unbound = []
    unnamed = []
    conflicts = []
    for entry in entries:
        chain = entry.chain
        if chain.section_name_missing:
            unnamed.append(f"{chain.goods_code}/{chain.language}")
        elif not chain.section_bound and chain.goods_code not in unbound:
            unbound.append(chain.goods_code)
        if chain.indent_conflict:
            conflicts.append(f"{chain.goods_code}/{chain.language}")
        if chain.missing_prefixes:
            logger.debug(f"Ancestor paths {chain.missing_prefixes} of {chain.goods_code} not found in index")

    if unbound:
        logger.warning(f"{len(unbound)} goods codes have no section binding: {unbound[:10]}")
    if unnamed:
        logger.warning(f"{len(unnamed)} records have no localized section name: {unnamed[:10]}")
    if conflicts:
        logger.warning(f"{len(conflicts)} records nest shallower by indent than by hierarchy path: {conflicts[:10]}")


def build_documents(entries: List[ResolvedEntry]) -> List[NomenclatureDocument]:
    """
    Merge resolved entries into one document per goods code.

    Args:
        entries: Resolver output, in resolution order

    Returns:
        Documents in order of first appearance of their goods code
    """
    documents: Dict[str, NomenclatureDocument] = {}

    for entry in entries:
        record, chain = entry.record, entry.chain

        document = documents.get(record.goods_code)
        if document is None:
            document = NomenclatureDocument(
                id=str(record.id),
                goods_code=record.goods_code,
                goods_code_numeric=extract_numeric_part(record.goods_code),
            )
            documents[record.goods_code] = document

        _apply_language_fields(document, entry)

        if record.is_leaf:
            document.rank_boost = settings.leaf_rank_boost

        # codes are language-independent; only a bound chain carries them
        if chain.section_bound:
            document.category_codes = list(chain.codes)

    for document in documents.values():
        document.category_path = build_taric_path(document.category_codes, document.goods_code)

    _log_data_quality(entries)
    return list(documents.values())


def build_section_documents(section_names: Dict[int, Dict[str, str]]) -> List[NomenclatureDocument]:
    """
    Build root documents for sections.

    Args:
        section_names: section_number -> language -> localized section name
    """
    documents = []
    for section_number in sorted(section_names):
        names = section_names[section_number]
        name_lt = names.get(LANGUAGE_LT, "")
        documents.append(
            NomenclatureDocument(
                id=f"section-{section_number}",
                goods_code=str(section_number),
                goods_code_numeric=section_number,
                description_en=names.get(LANGUAGE_EN, ""),
                description_lt=name_lt,
                description_lt_normalized=remove_diacritics(name_lt),
                root=True,
            )
        )
    return documents


def prepare_documents(index: HierarchyIndex, section_names: Dict[int, Dict[str, str]]) -> List[NomenclatureDocument]:
    """Resolve every chain of a complete index and assemble the documents to upload."""
    entries = CategoryChainResolver(index).resolve()
    documents = build_section_documents(section_names) + build_documents(entries)
    logger.info(f"Prepared {len(documents)} search documents from {len(entries)} resolved records")
    return documents
