# WORKFLOW: Category chain resolution over the materialized hierarchy index.
# Used by: services.document_builder, etl.build_search_index
# Components:
# 1. HierarchyIndex - hierarchy_path -> language -> [NomenclatureRecord], built once per run
# 2. CategoryChainResolver.resolve() - one deterministic pass producing a chain per record
#
# Resolution flow: complete index snapshot -> per (path, language) group stable sort by indent
#                  -> section root -> ancestor prefixes found in the index -> same-path sibling parent
# The resolver never mutates the index, so re-running it yields identical chains.

"""
Category chain resolution for nomenclature records.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Tuple

from services.records import CategoryChain, NomenclatureRecord, ResolvedEntry

logger = logging.getLogger(__name__)

PATH_DELIMITER = "."


class HierarchyIndex:
    """
    Records grouped by hierarchy path and language, in retrieval order.

    Build it with from_records() from a complete scan; it is read-only afterwards.
    A re-sync builds a new index instead of patching an existing one.
    """

    def __init__(self):
        self._paths: Dict[str, Dict[str, List[NomenclatureRecord]]] = {}
        self._record_count = 0

    @classmethod
    def from_records(cls, records: Iterable[NomenclatureRecord]) -> "HierarchyIndex":
        index = cls()
        for record in records:
            index._paths.setdefault(record.hierarchy_path, {}).setdefault(record.language, []).append(record)
            index._record_count += 1
        logger.info(f"Built hierarchy index with {len(index._paths)} paths from {index._record_count} records")
        return index

    def __contains__(self, path: str) -> bool:
        return path in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    @property
    def record_count(self) -> int:
        return self._record_count

    def get(self, path: str, language: str) -> Tuple[NomenclatureRecord, ...]:
        """Records stored at an exact path for a language (empty if absent)."""
        return tuple(self._paths.get(path, {}).get(language, ()))

    def groups(self) -> Iterator[Tuple[str, str, Tuple[NomenclatureRecord, ...]]]:
        """Yield (path, language, records) in insertion order."""
        for path, languages in self._paths.items():
            for language, records in languages.items():
                yield path, language, tuple(records)


class CategoryChainResolver:
    """Computes ancestor description and code chains for every record in a HierarchyIndex."""

    def __init__(self, index: HierarchyIndex):
        self.index = index

    def resolve(self) -> List[ResolvedEntry]:
        resolved = []
        for _path, _language, records in self.index.groups():
            # sorted() is stable: equal indents keep retrieval order
            group = sorted(records, key=lambda record: record.indent)
            for position, record in enumerate(group):
                chain = self.build_chain(record, group, position)
                resolved.append(ResolvedEntry(record=record, chain=chain))
        return resolved

    def build_chain(self, record: NomenclatureRecord, group: List[NomenclatureRecord], position: int) -> CategoryChain:
        """
        Build the chain of one record.

        Args:
            record: Record to resolve
            group: Records sharing its path and language, sorted by indent
            position: Index of the record inside group
        """
        if record.section_name is None:
            return CategoryChain(
                goods_code=record.goods_code,
                language=record.language,
                section_bound=False,
                section_name_missing=record.section_number is not None,
            )

        descriptions = [record.section_name]
        codes = [str(record.section_number)] if record.section_number is not None else []
        missing_prefixes = []
        indent_conflict = False

        segments = record.hierarchy_path.split(PATH_DELIMITER)
        prefix_segments = []
        for segment in segments[:-1]:
            codes.append(segment)
            prefix_segments.append(segment)
            prefix = PATH_DELIMITER.join(prefix_segments)

            if prefix not in self.index:
                missing_prefixes.append(prefix)
                continue

            ancestors = self.index.get(prefix, record.language)
            for ancestor in ancestors:
                descriptions.append(ancestor.description)
            if ancestors and record.indent < min(ancestor.indent for ancestor in ancestors):
                indent_conflict = True

        if position > 0 and group[position - 1].indent < record.indent:
            descriptions.append(group[position - 1].description)

        return CategoryChain(
            goods_code=record.goods_code,
            language=record.language,
            descriptions=descriptions,
            codes=codes,
            missing_prefixes=missing_prefixes,
            indent_conflict=indent_conflict,
        )
