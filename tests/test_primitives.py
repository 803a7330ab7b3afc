"""Tests for primitive output parsing."""
from datetime import datetime, timedelta, timezone

import pytest

from output_uploader.errors import InvalidPrimitive
from output_uploader.models import SimpleType
from output_uploader.orchestrator.primitives import (
    PrimitiveReader,
    parse_boolean,
    parse_datetime,
    parse_duration,
    parse_primitive,
)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("90", timedelta(seconds=90)),
        ("1.5", timedelta(seconds=1.5)),
        ("10s", timedelta(seconds=10)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("250ms", timedelta(milliseconds=250)),
        ("-2m", timedelta(minutes=-2)),
        (" 1m5s\n", timedelta(minutes=1, seconds=5)),
    ],
)
def test_parse_duration(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["", "abc", "5x", "1h foo", "h"])
def test_parse_duration_rejects_garbage(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_parse_boolean():
    assert parse_boolean("True\n") is True
    assert parse_boolean("0") is False
    with pytest.raises(ValueError):
        parse_boolean("maybe")


def test_parse_datetime_accepts_zulu():
    assert parse_datetime("2024-05-01T12:00:00Z") == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)


def test_string_is_kept_verbatim():
    assert parse_primitive(SimpleType.STRING, " spaced \n") == " spaced \n"


def test_reader_rejects_oversized_file(tmp_path):
    path = tmp_path / "n"
    path.write_text("1" * 20)

    with pytest.raises(InvalidPrimitive) as exc_info:
        PrimitiveReader(max_size=8).read("n", path, SimpleType.INTEGER)

    assert exc_info.value.output_name == "n"


def test_reader_rejects_undecodable_bytes(tmp_path):
    path = tmp_path / "s"
    path.write_bytes(b"\xff\xfe")

    with pytest.raises(InvalidPrimitive):
        PrimitiveReader().read("s", path, SimpleType.STRING)


def test_reader_builds_literal(tmp_path):
    path = tmp_path / "n"
    path.write_text("42\n")

    literal = PrimitiveReader().read("n", path, SimpleType.INTEGER)

    assert literal.primitive.simple_type == SimpleType.INTEGER
    assert literal.primitive.value == 42
