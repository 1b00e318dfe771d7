# Tests de las utilidades de rutas anidadas y de parseo de precios
import json

import pytest

from meli_scraper.extraction.paths import (
    MISSING,
    extract_balanced,
    get_path,
    is_empty,
    parse_json_block,
)
from meli_scraper.utils import parse_first_int, parse_price


def test_get_path_resolves_nested_keys_and_indexes():
    tree = {"a": {"b": [{"c": 1}, {"c": 2}]}}
    assert get_path(tree, "a.b.1.c") == 2
    assert get_path(tree, ("a", "b", "0", "c")) == 1


def test_get_path_returns_missing_on_any_broken_link():
    tree = {"a": {"b": "texto", "n": None, "l": [1]}}
    assert get_path(tree, "a.x.y") is MISSING
    assert get_path(tree, "a.b.c") is MISSING
    assert get_path(tree, "a.n.c") is MISSING
    assert get_path(tree, "a.l.5") is MISSING
    assert get_path(tree, "a.l.x") is MISSING
    assert get_path(None, "a") is MISSING
    assert get_path(tree, "a.x", default="def") == "def"


def test_none_is_a_value_distinct_from_missing():
    assert get_path({"a": None}, "a") is None
    assert not MISSING
    assert repr(MISSING) == "MISSING"


def test_is_empty():
    for value in (MISSING, None, "", "   ", [], {}):
        assert is_empty(value), value
    for value in (0, False, "x", [0], {"a": 1}):
        assert not is_empty(value), value


def test_extract_balanced_ignores_braces_inside_strings():
    text = 'var x = {"a": "}{", "b": {"c": [1, 2]}, "d": "\\"}"}; foo();'
    block = extract_balanced(text, text.index("{"))
    assert json.loads(block) == {"a": "}{", "b": {"c": [1, 2]}, "d": '"}'}


def test_extract_balanced_rejects_unclosed_or_invalid_start():
    assert extract_balanced('{"a": {"b": 1}', 0) is None
    assert extract_balanced("abc", 0) is None
    assert extract_balanced("{]", 0) is None


def test_parse_json_block_from_first_brace():
    assert parse_json_block('prefix {"a": 1} suffix {"b": 2}') == {"a": 1}
    with pytest.raises(ValueError):
        parse_json_block("sin json")


@pytest.mark.parametrize("text,expected", [
    ("$1.234,56 MXN", 1234.56),
    ("USD 1,234.56", 1234.56),
    ("1.234", 1234.0),
    ("1,299", 1299.0),
    ("12,5", 12.5),
    ("1.234.567", 1234567.0),
    ("$ 999", 999.0),
])
def test_parse_price_formats(text, expected):
    assert parse_price(text) == expected


@pytest.mark.parametrize("text", ["Gratis", "", None, "MXN", 42])
def test_parse_price_without_digits_is_none(text):
    assert parse_price(text) is None


def test_parse_first_int():
    assert parse_first_int("(+50 disponibles)") == 50
    assert parse_first_int("Últimas 1.234 unidades") == 1234
    assert parse_first_int("Sin stock") is None
    assert parse_first_int(None) is None
