"""Tests for trackfit.samples."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from trackfit.errors import FieldTypeError, InputFormatError
from trackfit.samples import Sample, load_samples, parse_sample, parse_samples


def _raw(**overrides):
    raw = {
        "time": "2024-05-01T09:00:00Z",
        "ele": 12.5,
        "dist": 100.0,
        "cad": 85,
        "hr": 130,
        "lat": 51.5074,
        "lng": -0.1278,
        "speed": 8.2,
        "cl16": 3,
    }
    raw.update(overrides)
    return raw


class TestParseSample:
    def test_required_fields(self):
        s = parse_sample(_raw(), 0)
        assert isinstance(s, Sample)
        assert s.time == datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)
        assert s.ele == 12.5
        assert s.dist == 100.0
        assert s.cad == 85
        assert s.hr == 130
        assert s.lat == 51.5074
        assert s.lng == -0.1278
        assert s.speed == 8.2
        assert s.cl16 == 3

    def test_optional_fields_absent_are_none(self):
        s = parse_sample(_raw(), 0)
        assert s.power is None
        assert s.wind is None

    def test_optional_fields_null_are_none(self):
        s = parse_sample(_raw(power=None, wind=None), 0)
        assert s.power is None
        assert s.wind is None

    def test_optional_fields_present(self):
        s = parse_sample(_raw(power=250, wind=0.0), 0)
        assert s.power == 250
        assert s.wind == 0.0

    def test_time_with_offset(self):
        s = parse_sample(_raw(time="2024-05-01T11:00:00+02:00"), 0)
        assert s.time.utcoffset() == timedelta(hours=2)
        assert s.time == datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)

    def test_naive_time_gets_local_zone(self):
        s = parse_sample(_raw(time="2024-05-01T09:00:00"), 0)
        assert s.time.tzinfo is not None

    @pytest.mark.parametrize("name", ["ele", "dist", "cad", "hr", "lat", "lng", "speed", "cl16"])
    def test_missing_required_field(self, name):
        raw = _raw()
        del raw[name]
        with pytest.raises(FieldTypeError, match="missing") as exc:
            parse_sample(raw, 4)
        assert exc.value.field == name
        assert exc.value.index == 4

    @pytest.mark.parametrize("value", ["12", None, True, [1]])
    def test_wrong_type_required_field(self, value):
        with pytest.raises(FieldTypeError) as exc:
            parse_sample(_raw(hr=value), 0)
        assert exc.value.field == "hr"

    @pytest.mark.parametrize("value, detail", [("12", "got str"), (None, "got NoneType")])
    def test_present_field_not_reported_missing(self, value, detail):
        with pytest.raises(FieldTypeError, match=detail) as exc:
            parse_sample(_raw(hr=value), 0)
        assert "missing" not in str(exc.value)

    def test_wrong_type_optional_field(self):
        with pytest.raises(FieldTypeError) as exc:
            parse_sample(_raw(wind="calm"), 2)
        assert exc.value.field == "wind"

    def test_time_must_be_string(self):
        with pytest.raises(FieldTypeError, match="timestamp string"):
            parse_sample(_raw(time=1714554000), 0)

    def test_time_must_parse(self):
        with pytest.raises(FieldTypeError, match="ISO-8601"):
            parse_sample(_raw(time="yesterday"), 0)

    def test_missing_time(self):
        raw = _raw()
        del raw["time"]
        with pytest.raises(FieldTypeError) as exc:
            parse_sample(raw, 0)
        assert exc.value.field == "time"

    def test_element_must_be_object(self):
        with pytest.raises(InputFormatError, match="Sample 1"):
            parse_sample([1, 2, 3], 1)


class TestParseSamples:
    def test_list_of_samples(self):
        samples = parse_samples([_raw(), _raw(time="2024-05-01T09:00:01Z", dist=108.0)])
        assert len(samples) == 2
        assert samples[1].dist == 108.0

    def test_empty_list_is_allowed(self):
        assert parse_samples([]) == []

    @pytest.mark.parametrize("raw", [{"time": "x"}, "samples", 42, None])
    def test_top_level_must_be_list(self, raw):
        with pytest.raises(InputFormatError, match="JSON array"):
            parse_samples(raw)

    def test_fails_on_first_bad_sample(self):
        with pytest.raises(FieldTypeError) as exc:
            parse_samples([_raw(), _raw(speed="fast"), _raw(cad="slow")])
        assert exc.value.index == 1
        assert exc.value.field == "speed"


class TestLoadSamples:
    def test_reads_json_file(self, tmp_path):
        path = tmp_path / "ride.json"
        path.write_text(json.dumps([_raw(), _raw(time="2024-05-01T09:00:01Z")]), encoding="utf-8")
        samples = load_samples(path)
        assert len(samples) == 2

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(InputFormatError, match="not valid JSON"):
            load_samples(path)

    def test_bundled_example(self):
        from pathlib import Path

        path = Path(__file__).resolve().parent.parent / "examples" / "sample_ride.json"
        samples = load_samples(path)
        assert len(samples) == 8
        assert samples[2].wind is None
        assert samples[3].wind == 0.0
        assert samples[4].power is None
