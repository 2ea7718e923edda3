from io import BytesIO

import pandas as pd
import pytest

from batch_geocoding.readers import detect_format, read_rows
from batch_geocoding.utils.errors import ParseError


def test_comma_csv():
    content = b"name,street,city,state,country\nAlice,1 Main St,London,,UK\n"

    rows = read_rows(content, filename="people.csv")

    assert rows == [
        ["name", "street", "city", "state", "country"],
        ["Alice", "1 Main St", "London", "", "UK"],
    ]


def test_semicolon_csv():
    content = "Alice;1 Main St;London;;UK\nBob;;Paris;;France\n".encode("utf-8")

    rows = read_rows(content, filename="people.csv")

    assert rows[1] == ["Bob", "", "Paris", "", "France"]


def test_csv_with_bom():
    content = "\ufeffname,city,country\nAlice,London,UK\n".encode("utf-8")

    rows = read_rows(content, fmt="csv")

    assert rows[0][0] == "name"


def test_xlsx():
    buffer = BytesIO()
    pd.DataFrame([["Alice", "London", "UK"], ["Bob", "Paris", "France"]]).to_excel(
        buffer, index=False, header=False, engine="openpyxl"
    )

    rows = read_rows(buffer.getvalue(), filename="people.xlsx")

    assert rows == [["Alice", "London", "UK"], ["Bob", "Paris", "France"]]


def test_empty_content():
    with pytest.raises(ParseError):
        read_rows(b"", filename="people.csv")


def test_whitespace_only_csv():
    with pytest.raises(ParseError):
        read_rows(b"\n\n", filename="people.csv")


def test_unsupported_extension():
    with pytest.raises(ParseError) as excinfo:
        read_rows(b"data", filename="people.pdf")

    assert excinfo.value.filename == "people.pdf"


def test_corrupt_xlsx():
    with pytest.raises(ParseError):
        read_rows(b"definitely not a zip archive", filename="people.xlsx")


def test_explicit_format_wins():
    assert detect_format("people.txt", fmt=".CSV") == "csv"
    assert detect_format("people.XLSX") == "xlsx"


def test_ragged_csv_rows_are_padded():
    content = (
        b"Name,Street,City,Country\n"
        b"Alice,1 Main St,London,UK\n"
        b"Bob,2 High St, Flat 3,Leeds,UK\n"
    )

    rows = read_rows(content, filename="people.csv")

    assert len(rows) == 3
    assert rows[1] == ["Alice", "1 Main St", "London", "UK", ""]
    assert rows[2] == ["Bob", "2 High St", " Flat 3", "Leeds", "UK"]


def test_short_semicolon_rows_are_padded():
    content = b"Alice;1 Main St;London;;UK\nBob;;Paris\nCarol;;Rome;;Italy\n"

    rows = read_rows(content, filename="people.csv")

    assert rows[1] == ["Bob", "", "Paris", "", ""]
    assert rows[2] == ["Carol", "", "Rome", "", "Italy"]


def test_legacy_xls_is_rejected():
    ole_header = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 504

    with pytest.raises(ParseError):
        read_rows(ole_header, filename="people.xls")
