"""
Tests for record filtering, sorting and pagination.
"""

import pytest

from ltvboard.models.ltv import FlatRecord
from ltvboard.services.aggregator import compute_stats
from ltvboard.services.filters import (
    RecordFilter,
    filter_records,
    natural_key,
    paginate,
    sort_records,
)


@pytest.fixture
def records():
    return [
        FlatRecord(line="L100", code="A1", track="1", reason="Obras en puente",
                   speed_num=30.0, csv=True, active=True, first_appearance_date="2024-02-01"),
        FlatRecord(line="L100", code="A2", track="2", reason="Mal estado",
                   speed_num=80.0, active=False, first_appearance_date="2024-01-01"),
        FlatRecord(line="L9", code="B1", track="1", reason="OBRAS",
                   speed_num=120.0, csv=True, active=True, first_appearance_date="2024-03-01"),
        FlatRecord(line="L10", code="C1", track="1", reason="",
                   speed_num=5.0, active=False, first_appearance_date="2024-03-01"),
    ]


class TestRecordFilter:
    """Tests for RecordFilter matching."""

    def test_empty_filter_matches_all(self, records):
        assert filter_records(records, RecordFilter()) == records

    def test_line(self, records):
        result = filter_records(records, RecordFilter(line="L100"))
        assert [r.code for r in result] == ["A1", "A2"]

    def test_track(self, records):
        result = filter_records(records, RecordFilter(track="2"))
        assert [r.code for r in result] == ["A2"]

    def test_max_speed_inclusive(self, records):
        result = filter_records(records, RecordFilter(max_speed=80))
        assert [r.code for r in result] == ["A1", "A2", "C1"]

    def test_reason_substring_case_insensitive(self, records):
        result = filter_records(records, RecordFilter(reason="obras"))
        assert [r.code for r in result] == ["A1", "B1"]

    def test_csv_and_active(self, records):
        assert [r.code for r in filter_records(records, RecordFilter(csv_only=True))] == ["A1", "B1"]
        assert [r.code for r in filter_records(records, RecordFilter(active_only=True))] == ["A1", "B1"]

    def test_combined(self, records):
        flt = RecordFilter(active_only=True, max_speed=50)
        assert [r.code for r in filter_records(records, flt)] == ["A1"]

    def test_subset_feeds_stats(self, records):
        """A filtered subset can be aggregated like the full set."""
        stats = compute_stats(filter_records(records, RecordFilter(active_only=True)))

        assert stats.total == 2
        assert stats.active_count == 2
        assert stats.lines == 2


class TestSortRecords:
    """Tests for natural ordering."""

    def test_natural_key_orders_digit_runs(self):
        assert natural_key("L9") < natural_key("L10")
        assert natural_key("L10") < natural_key("L100")

    def test_sort_lines_ascending(self, records):
        result = sort_records(records, "line", descending=False)
        assert [r.line for r in result] == ["L9", "L10", "L100", "L100"]

    def test_sort_speed_descending(self, records):
        result = sort_records(records, "speedNum", descending=True)
        assert [r.speed_num for r in result] == [120.0, 80.0, 30.0, 5.0]

    def test_default_sort_newest_first(self, records):
        result = sort_records(records)
        assert [r.first_appearance_date for r in result][:2] == ["2024-03-01", "2024-03-01"]
        assert result[-1].code == "A2"

    def test_unknown_key(self, records):
        with pytest.raises(KeyError):
            sort_records(records, "nope")


class TestPaginate:
    """Tests for paginate."""

    def test_pages(self, records):
        first = paginate(records, page=0, page_size=3)
        second = paginate(records, page=1, page_size=3)

        assert len(first.items) == 3
        assert len(second.items) == 1
        assert first.total == 4
        assert first.total_pages == 2

    def test_past_end_is_empty(self, records):
        page = paginate(records, page=5, page_size=3)
        assert page.items == ()
        assert page.total == 4

    def test_empty(self):
        page = paginate([], page=0)
        assert page.items == ()
        assert page.total_pages == 0

    def test_invalid_page_size(self, records):
        with pytest.raises(ValueError):
            paginate(records, page_size=0)
