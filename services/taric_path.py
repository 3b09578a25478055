# WORKFLOW: Canonical TARIC display path for a goods code.
# Used by: services.document_builder (category_path field)
# Functions:
# 1. build_taric_path() - reconcile a category code chain with the digits of a goods code
# 2. clean_goods_code() - goods code up to the first space, cut at the first non-digit
# 3. adjust_path_to_goods_code() - shrink the chain when the goods code is shallower than it
#
# Path flow: category codes -> downward adjustment -> chapter guard -> short code collapse
#            -> one level of extension (section -> chapter -> heading -> sub-heading) -> " > " join
# The stored category chain reflects path prefixes; this aligns it with the literal code digits.

"""
TARIC path reconciliation between category chains and goods codes.
"""

from typing import List, Optional

PATH_SEPARATOR = " > "

SECTION_LENGTH = 1
CHAPTER_LENGTH = 2
HEADING_LENGTH = 4
SUBHEADING_LENGTH = 6


def clean_goods_code(goods_code: str) -> str:
    """Return the leading digits of the first space-separated token of a goods code."""
    code = (goods_code or "").split(" ")[0]
    for i, ch in enumerate(code):
        if ch not in "0123456789":
            return code[:i]
    return code


def adjust_path_to_goods_code(path_parts: List[str], goods_code: str) -> Optional[List[str]]:
    """
    Drop chain entries that are deeper than a short (<= 4 digit) goods code.

    An entry longer than the code but sharing its 4-digit heading is truncated
    to that heading and ends the scan.

    Returns:
        The adjusted chain if anything was removed or truncated, otherwise None
    """
    if not path_parts or not goods_code or len(goods_code) > HEADING_LENGTH:
        return None

    adjusted = []
    for part in path_parts:
        if len(part) <= len(goods_code):
            adjusted.append(part)
        elif len(goods_code) >= HEADING_LENGTH and part[:HEADING_LENGTH] == goods_code[:HEADING_LENGTH]:
            adjusted.append(part[:HEADING_LENGTH])
            break

    if adjusted != path_parts:
        return adjusted
    return None


def _next_level(last_code: str, goods_code: str) -> str:
    if len(last_code) == SECTION_LENGTH:
        # section -> chapter is validated upstream by the section binding
        if len(goods_code) >= CHAPTER_LENGTH:
            return goods_code[:CHAPTER_LENGTH]
    elif len(last_code) == CHAPTER_LENGTH:
        if len(goods_code) >= HEADING_LENGTH:
            heading = goods_code[:HEADING_LENGTH]
            if heading.startswith(last_code) and heading[:CHAPTER_LENGTH] == last_code:
                return heading
    elif len(last_code) == HEADING_LENGTH:
        if len(goods_code) >= SUBHEADING_LENGTH:
            subheading = goods_code[:SUBHEADING_LENGTH]
            if subheading.startswith(last_code):
                return subheading
    return ""


def build_taric_path(category_codes: List[str], goods_code: str) -> str:
    """
    Build the canonical display path of a goods code.

    Args:
        category_codes: Ordered code chain, section number first
        goods_code: Raw goods code, optionally suffixed ("0101210000 80")

    Returns:
        Chain entries joined with " > ", extended by at most one level
    """
    if not category_codes:
        return ""

    path_parts = list(category_codes)
    code = clean_goods_code(goods_code)

    adjusted = adjust_path_to_goods_code(path_parts, code)
    if adjusted is not None:
        return PATH_SEPARATOR.join(adjusted)

    # Chapter does not match the code: never extend an inconsistent pairing
    if (
        len(path_parts) >= 2
        and len(path_parts[1]) == CHAPTER_LENGTH
        and len(code) >= HEADING_LENGTH
        and not code[:HEADING_LENGTH].startswith(path_parts[1])
    ):
        return PATH_SEPARATOR.join(path_parts)

    last_code = path_parts[-1]

    if len(code) < len(last_code):
        if len(code) <= 1 and len(path_parts) > 1:
            return path_parts[0]
        return PATH_SEPARATOR.join(path_parts)

    if len(last_code) >= SUBHEADING_LENGTH:
        return PATH_SEPARATOR.join(path_parts)

    next_level = _next_level(last_code, code)

    if next_level and next_level not in path_parts:
        zero_padded = (
            len(last_code) == HEADING_LENGTH
            and len(next_level) == SUBHEADING_LENGTH
            and next_level.endswith("00")
        )
        if not zero_padded:
            path_parts.append(next_level)

    return PATH_SEPARATOR.join(path_parts)
