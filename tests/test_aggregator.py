"""Tests for booked counting."""

import asyncio

import pytest

from conftest import FakeBackend
from core.errors import UpstreamError
from fixtures.generate_bookings import generate_month_sheet
from models.bookings import NormalizedRow
from services.aggregator import booked_counts, count_booked, is_booked
from services.normalizer import normalize


@pytest.mark.parametrize(
    "flag, expected",
    [
        ("BOOKED", True),
        (" booked ", True),
        ("Booked\n", True),
        ("Pending", False),
        ("BOOKED?", False),
        ("not booked", False),
        ("", False),
        (None, False),
    ],
)
def test_is_booked(flag, expected):
    assert is_booked(flag) is expected


def test_count_booked():
    rows = [NormalizedRow(booked_flag=flag) for flag in ["BOOKED", " booked ", "Pending", ""]]
    assert count_booked(rows) == 2
    assert count_booked([]) == 0


def test_counts_follow_chronological_order_not_completion_order(workbook):
    # Jan finishes last, Mar first
    backend = FakeBackend(workbook, delays={"Jan": 0.05, "Feb": 0.02, "Mar": 0})

    counts = asyncio.run(booked_counts(backend, ["Jan", "Feb", "Mar"]))

    assert counts == [
        {"name": "Jan", "count": 2},
        {"name": "Feb", "count": 3},
        {"name": "Mar", "count": 2},
    ]


def test_counts_for_no_sheets_is_empty(fake_backend):
    assert asyncio.run(booked_counts(fake_backend, [])) == []
    assert fake_backend.calls == []


def test_upstream_errors_propagate(workbook):
    backend = FakeBackend(workbook, errors={"Feb": UpstreamError(500, "boom")})
    with pytest.raises(UpstreamError):
        asyncio.run(booked_counts(backend, ["Jan", "Feb"]))


def test_generated_sheet_counts_match():
    values, expected = generate_month_sheet(2026, 4, rows=60, seed=7)

    rows = normalize(values[0], values[1:])

    assert len(rows) == 60
    assert count_booked(rows) == expected
