import logging

import pytest

from services.goods_code import extract_numeric_part


@pytest.mark.parametrize("goods_code,expected", [
    ("4112000000", 4112000000),
    ("0304810000", 304810000),
    ("4112000000 80", 4112000000),
    ("0304810000 80", 304810000),
    ("1", 1),
    ("21", 21),
    ("", 0),
    ("ABC", 0),
    ("X123Y456", 123456),
    ("CN0102909100", 102909100),
    ("0304-959-011 10", 304959011),
    ("7606 129 291 80", 7606129291),
    ("0304530011 10", 304530011),
    ("2204213290 80", 2204213290),
    ("5512299000 80", 5512299000),
])
def test_extract_numeric_part(goods_code, expected):
    assert extract_numeric_part(goods_code) == expected


def test_no_digits_logs_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="services.goods_code"):
        assert extract_numeric_part("ABC") == 0
    assert "ABC" in caplog.text


def test_value_beyond_int64_is_zero():
    assert extract_numeric_part("99999999999999999999") == 0


def test_largest_int64_is_kept():
    assert extract_numeric_part(str(2 ** 63 - 1)) == 2 ** 63 - 1
