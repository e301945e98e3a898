"""Tests for the strict timestamp codec."""

from datetime import datetime, timezone

import pytest

from lastmod.stamping import format_timestamp, parse_timestamp


def test_format_timestamp_zero_pads_and_drops_microseconds() -> None:
    instant = datetime(2024, 3, 5, 7, 8, 9, 123456)

    assert format_timestamp(instant) == "2024-03-05T07:08:09"


@pytest.mark.parametrize(
    "instant",
    [
        datetime(2024, 1, 1, 0, 0, 0),
        datetime(1999, 12, 31, 23, 59, 59),
        datetime(2024, 2, 29, 12, 30, 45),
        datetime(1970, 1, 1, 0, 0, 1),
    ],
)
def test_parse_timestamp_inverts_format(instant: datetime) -> None:
    assert parse_timestamp(format_timestamp(instant)) == instant


@pytest.mark.parametrize(
    "text",
    [
        "2024-01-01 10:00:00",
        "2024-01-01T10:00",
        "2024-01-01",
        "2024-01-01T10:00:00Z",
        "2024-01-01T10:00:00+02:00",
        " 2024-01-01T10:00:00",
        "2024-01-01T10:00:00.5",
        "2024/01/01T10:00:00",
        "2024-1-01T10:00:00",
        "2024-13-01T10:00:00",
        "2023-02-29T10:00:00",
        "2024-01-01T24:00:00",
        "not a timestamp",
        "",
    ],
)
def test_parse_timestamp_rejects_deviations(text: str) -> None:
    assert parse_timestamp(text) is None


def test_parse_timestamp_rejects_non_strings() -> None:
    assert parse_timestamp(None) is None
    assert parse_timestamp(20240101) is None
    assert parse_timestamp(["2024-01-01T10:00:00"]) is None


def test_parse_timestamp_rejects_datetime_objects() -> None:
    loaded = datetime(2024, 1, 1, 10, 0, 0)

    assert parse_timestamp(loaded) is None
    assert parse_timestamp(loaded.replace(tzinfo=timezone.utc)) is None
