import datetime as dt
from decimal import Decimal

import pytest

from signed_query.errors import EncodingError
from signed_query.query_docs import Rowset, decode_result, encode_rowset, format_rows, stringify_value


PEOPLE = Rowset(
    columns=("id", "name", "nick"),
    rows=((1, "Alice", None), (2, "Bob", "bobby"), (3, "Chloé", "")),
)


def test_encode_keeps_row_and_column_order():
    doc = encode_rowset(PEOPLE)

    assert doc["columns"] == ["id", "name", "nick"]
    assert doc["rows"] == [["1", "Alice", None], ["2", "Bob", "bobby"], ["3", "Chloé", ""]]


def test_encode_then_decode_preserves_everything():
    back = decode_result(encode_rowset(PEOPLE))

    assert len(back) == len(PEOPLE)
    assert back.columns == PEOPLE.columns
    assert back.rows == (("1", "Alice", None), ("2", "Bob", "bobby"), ("3", "Chloé", ""))


def test_null_is_distinct_from_text_none_and_empty():
    doc = encode_rowset(Rowset(columns=("v",), rows=((None,), ("None",), ("",))))
    assert doc["rows"] == [[None], ["None"], [""]]


def test_empty_rowset():
    doc = encode_rowset(Rowset(columns=("a", "b"), rows=()))
    assert doc == {"columns": ["a", "b"], "rows": []}
    assert len(decode_result(doc)) == 0


@pytest.mark.parametrize(
    "value, text",
    [
        ("x", "x"),
        (7, "7"),
        (2.5, "2.5"),
        (True, "True"),
        (Decimal("10.50"), "10.50"),
        (b"\x00\xff", "AP8="),
        (dt.date(2024, 1, 31), "2024-01-31"),
        (dt.datetime(2024, 1, 31, 12, 30), "2024-01-31T12:30:00"),
        (None, None),
    ],
)
def test_stringify_value(value, text):
    assert stringify_value(value) == text


def test_unstringifiable_value_raises():
    class Opaque:
        def __str__(self):
            raise RuntimeError("boom")

    with pytest.raises(EncodingError):
        encode_rowset(Rowset(columns=("v",), rows=((Opaque(),),)))


def test_row_width_mismatch_raises():
    with pytest.raises(EncodingError, match="row 2"):
        encode_rowset(Rowset(columns=("a", "b"), rows=((1, 2), (3,))))


@pytest.mark.parametrize(
    "doc",
    [
        "text",
        {"columns": "a", "rows": []},
        {"columns": ["a"], "rows": [[1]]},
        {"columns": ["a", "b"], "rows": [["x"]]},
    ],
)
def test_decode_rejects_bad_documents(doc):
    with pytest.raises(EncodingError):
        decode_result(doc)


def test_decode_ignores_signature_member():
    doc = encode_rowset(PEOPLE)
    doc["signature"] = {"v": "sig.v1"}
    assert decode_result(doc).columns == PEOPLE.columns


def test_format_rows():
    text = format_rows(encode_rowset(PEOPLE))
    assert text == "Row 1: 1 Alice NULL\nRow 2: 2 Bob bobby\nRow 3: 3 Chloé \n"
    assert format_rows(Rowset(columns=("a",), rows=())) == ""
