# WORKFLOW: Dotted hierarchy path construction for goods codes.
# Used by: etl.ingest_xlsx (NomenclatureRowParser.process_entry)
# Functions:
# 1. build_hierarchy_path() - goods code + hierarchical level -> "01.0101.010121"
#
# Errors derive from HierarchyPathError so callers can skip and log a row with one except clause.

"""
Hierarchy path building for nomenclature records.
"""

VALID_LEVELS = (2, 4, 6, 8, 10)


class HierarchyPathError(ValueError):
    """Base error for goods codes that cannot be turned into a hierarchy path."""


class InvalidCode(HierarchyPathError):
    pass


class InvalidLevel(HierarchyPathError):
    pass


class CodeTooShort(HierarchyPathError):
    pass


def build_hierarchy_path(goods_code: str, hier_pos: int) -> str:
    """
    Build the dotted hierarchy path of a goods code.

    Args:
        goods_code: Goods code, possibly followed by a product line suffix
        hier_pos: Hierarchical level (2, 4, 6, 8 or 10)

    Returns:
        Prefixes of length 2, 4, ... hier_pos joined with "."

    Raises:
        InvalidCode: goods_code is empty
        InvalidLevel: hier_pos is not a positive even number <= 10
        CodeTooShort: goods_code has fewer characters than hier_pos
    """
    if not goods_code:
        raise InvalidCode("invalid goods code")

    if isinstance(hier_pos, bool) or not isinstance(hier_pos, int) or hier_pos not in VALID_LEVELS:
        raise InvalidLevel(f"invalid hierarchy position: {hier_pos}")

    if len(goods_code) < hier_pos:
        raise CodeTooShort(f"goods code '{goods_code}' too short for hierarchy position {hier_pos}")

    return ".".join(goods_code[:i] for i in range(2, hier_pos + 1, 2))
