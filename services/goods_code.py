# WORKFLOW: Numeric goods code extraction for sortable/range search fields.
# Used by: services.document_builder (goods_code_numeric)
# Functions:
# 1. extract_numeric_part() - "0304-959-011 10" -> 304959011
#
# Never raises: unparsable codes are logged as data-quality events and map to 0.

import logging
import re

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")
_INT64_MAX = 2 ** 63 - 1


def extract_numeric_part(goods_code: str) -> int:
    """
    Extract the numeric value of a goods code, dropping the product line suffix.

    Codes with more than one space keep everything before the last space
    ("7606 129 291 80" -> 7606129291); otherwise only the first space-separated
    token is used. Dashes and any other non-digit characters are removed.
    """
    if not goods_code:
        return 0

    if goods_code.count(" ") > 1:
        body = goods_code[:goods_code.rindex(" ")]
    else:
        body = goods_code.split(" ")[0]

    digits = _NON_DIGITS.sub("", body.replace("-", ""))
    if not digits:
        logger.warning(f"Error parsing numeric part of goods code {goods_code!r}: no digits found")
        return 0

    value = int(digits)
    if value > _INT64_MAX:
        logger.warning(f"Error parsing numeric part of goods code {goods_code!r}: value out of range")
        return 0

    return value
