"""
Tests for the record flattener.
"""

import pytest

from ltvboard.models.ltv import RawRecord
from ltvboard.services.flattener import find_max_last_seen, flatten_records, parse_number


def raw(**kwargs) -> RawRecord:
    return RawRecord(**kwargs)


@pytest.fixture
def groups():
    """Three lines; the latest snapshot is 2024-03-01."""
    return {
        "L100": [
            raw(code="A1", speed="30", start_km="10", end_km="12.5", last_seen="2024-03-01"),
            raw(code="A2", speed="N/A", start_km="20", end_km="", last_seen="2024-02-01"),
        ],
        "L200": [
            raw(code="B1", speed="80", start_km="5.5", end_km="3", last_seen="2024-03-01"),
        ],
        "L300": [
            raw(code="C1", speed="100", start_km="x", end_km="y", last_seen="2024-01-01"),
        ],
    }


class TestParseNumber:
    """Tests for tolerant numeric parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("30", 30.0),
        ("12.5", 12.5),
        ("  45", 45.0),
        ("30 km/h", 30.0),
        ("12,5", 12.0),
        (".5", 0.5),
        ("-3", -3.0),
        ("1e2", 100.0),
        (40, 40.0),
        (2.25, 2.25),
    ])
    def test_parses_leading_number(self, value, expected):
        assert parse_number(value) == expected

    @pytest.mark.parametrize("value", ["", "N/A", "abc", "km 12", None, True, "1e400", float("nan")])
    def test_unparseable_is_zero(self, value):
        assert parse_number(value) == 0.0


class TestFindMaxLastSeen:
    """Tests for the dataset-wide reduction."""

    def test_latest_date(self, groups):
        assert find_max_last_seen(groups) == "2024-03-01"

    def test_empty_dataset(self):
        assert find_max_last_seen({}) is None
        assert find_max_last_seen({"L100": []}) is None


class TestFlattenRecords:
    """Tests for flatten_records."""

    def test_one_entry_per_record(self, groups):
        """Output length equals total input records."""
        flat = flatten_records(groups)
        assert len(flat) == sum(len(r) for r in groups.values())

    def test_insertion_order(self, groups):
        """Line order first, then within-line order."""
        flat = flatten_records(groups)
        assert [r.code for r in flat] == ["A1", "A2", "B1", "C1"]
        assert [r.line for r in flat] == ["L100", "L100", "L200", "L300"]

    def test_active_flag(self, groups):
        """Exactly the records last seen on the latest date are active."""
        flat = flatten_records(groups)
        active = {r.code for r in flat if r.active}
        assert active == {"A1", "B1"}

    def test_active_uses_supplied_maximum(self, groups):
        flat = flatten_records(groups, max_last_seen="2024-01-01")
        assert [r.code for r in flat if r.active] == ["C1"]

    def test_derived_fields(self, groups):
        a1, a2, b1, c1 = flatten_records(groups)

        assert a1.speed_num == 30.0
        assert a1.km_length == 2.5
        assert b1.km_length == 2.5  # absolute difference
        assert a2.speed_num == 0.0  # "N/A"
        assert a2.km_length == 20.0  # missing end parses as 0
        assert c1.km_length == 0.0

    def test_source_fields_carried(self, groups):
        a1 = flatten_records(groups)[0]
        assert a1.code == "A1"
        assert a1.speed == "30"
        assert a1.start_km == "10"
        assert a1.last_seen == "2024-03-01"

    def test_negative_speed_clamped(self):
        flat = flatten_records({"L1": [raw(speed="-20", last_seen="2024-01-01")]})
        assert flat[0].speed_num == 0.0

    def test_empty_dataset(self):
        assert flatten_records({}) == []

    def test_single_record_example(self):
        """The single-record example from the dashboard data."""
        record = RawRecord.from_dict({
            "code": "A1",
            "startKm": "10",
            "endKm": "12.5",
            "speed": "30",
            "reason": "",
            "csv": True,
            "firstAppearanceDate": "2024-01-01",
            "lastSeen": "2024-02-01",
        })
        (flat,) = flatten_records({"L100": [record]})

        assert flat.speed_num == 30
        assert flat.km_length == 2.5
        assert flat.active is True
        assert flat.line == "L100"

    def test_all_last_seen_empty(self):
        """Blank last_seen everywhere still has a maximum (the blank)."""
        flat = flatten_records({"L1": [raw(), raw()]})
        assert all(r.active for r in flat)

