"""
Assemble a FIT activity from a flat list of samples.

Message order:
  file_id, developer_data_id, field_description (Wind), activity, session,
  4 x lap, then one record per sample for every repeat pass.

Repeat passes replay the track to build large files. Pass k runs forward
when k is even and reversed when odd, is shifted in time by k * span and
has every record distance multiplied by repeat_count * (k + 1), so both
time and distance keep growing across passes.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from trackfit.encoder import DeveloperValue, FitEncoder, FitToolEncoder
from trackfit.errors import PreconditionError
from trackfit.samples import Sample

log = logging.getLogger(__name__)

LAP_COUNT = 4

APPLICATION_ID = uuid.UUID("42c9182e-23a6-425f-b8fc-316d3d164a6f")
DEVELOPER_DATA_INDEX = 0
WIND_FIELD_NUM = 0
FIT_BASE_TYPE_FLOAT64 = 137

FILE_ID = {
    "type": "activity",
    "manufacturer": "garmin",
    "product": 0,
    "serial_number": 0xDEADBEEF,
    "product_name": "AeroPod",
}


@dataclass(frozen=True)
class RepeatPass:
    """Derived state for one replay of the track."""
    index: int
    forward: bool
    time_offset: timedelta
    distance_scale: int

    @classmethod
    def for_index(cls, index: int, repeat_count: int, span: timedelta) -> RepeatPass:
        return cls(
            index=index,
            forward=index % 2 == 0,
            time_offset=span * index,
            distance_scale=repeat_count * (index + 1),
        )


def lap_bounds(count: int) -> List[Tuple[int, int]]:
    """
    Split [0, count) into four contiguous ranges at the quartiles.

    The last range runs to `count`, so nothing is dropped. With fewer than
    four samples some ranges are empty.
    """
    starts = [0, count // 4, count // 2, (count * 3) // 4]
    ends = starts[1:] + [count]
    return list(zip(starts, ends))


def check_samples(samples: Sequence[Sample], repeat_count: int) -> None:
    if not samples:
        raise PreconditionError("Cannot build an activity from zero samples")
    if repeat_count < 1:
        raise PreconditionError(f"repeat_count must be >= 1, got {repeat_count}")
    for i in range(1, len(samples)):
        if samples[i].time <= samples[i - 1].time:
            raise PreconditionError(
                f"Sample times must strictly increase: sample {i} ({samples[i].time.isoformat()}) "
                f"is not after sample {i - 1} ({samples[i - 1].time.isoformat()})"
            )


class ActivityAssembler:
    """Drive one encoder through the full message sequence for one activity."""

    def __init__(
        self,
        samples: Sequence[Sample],
        encoder: FitEncoder,
        repeat_count: int = 1,
        sport: str = "cycling",
    ):
        check_samples(samples, repeat_count)
        self.samples = list(samples)
        self.encoder = encoder
        self.repeat_count = repeat_count
        self.sport = sport
        self.span = self.samples[-1].time - self.samples[0].time

    # ---------- derived values ----------

    def elapsed_time(self, start: int, end: int) -> float:
        """Seconds from sample `start` to sample `end - 1`, scaled by the repeat count."""
        if end <= start:
            return 0.0
        delta = self.samples[end - 1].time - self.samples[start].time
        return delta.total_seconds() * self.repeat_count

    def summary(self, start: int, end: int) -> Dict[str, Any]:
        """Fields shared by the session and lap messages for range [start, end)."""
        last = len(self.samples) - 1
        start_sample = self.samples[min(start, last)]
        if end <= start:
            end_sample = start_sample
        else:
            end_sample = self.samples[min(end, last)]
        start_time = self.encoder.time(start_sample.time)
        return {
            "timestamp": start_time,
            "start_time": start_time,
            "total_elapsed_time": self.elapsed_time(start, end),
            "total_timer_time": self.elapsed_time(start, end),
            "total_distance": (end_sample.dist - start_sample.dist) * self.repeat_count,
            "start_position_lat": self.encoder.latlng(start_sample.lat),
            "start_position_long": self.encoder.latlng(start_sample.lng),
            "sport": self.sport,
        }

    def repeat_passes(self) -> Iterator[RepeatPass]:
        for k in range(self.repeat_count):
            yield RepeatPass.for_index(k, self.repeat_count, self.span)

    # ---------- message emission ----------

    def write_header(self) -> None:
        first = self.samples[0]
        self.encoder.write_message(
            "file_id",
            dict(FILE_ID, time_created=self.encoder.time(first.time)),
            last_of_type=True,
        )
        self.encoder.write_message(
            "developer_data_id",
            {
                "application_id": list(APPLICATION_ID.bytes),
                "developer_data_index": DEVELOPER_DATA_INDEX,
            },
            last_of_type=True,
        )
        self.encoder.write_message(
            "field_description",
            {
                "developer_data_index": DEVELOPER_DATA_INDEX,
                "field_definition_number": WIND_FIELD_NUM,
                "field_name": "Wind",
                "fit_base_type_id": FIT_BASE_TYPE_FLOAT64,
                "units": "m/s",
            },
            last_of_type=True,
        )

    def write_summaries(self) -> None:
        first = self.samples[0]
        count = len(self.samples)
        # Local wall-clock time of the first sample, in the encoder's time unit
        utc_offset = first.time.utcoffset() or timedelta(0)
        self.encoder.write_message(
            "activity",
            {
                "total_timer_time": self.elapsed_time(0, count),
                "num_sessions": 1,
                "type": "manual",
                "timestamp": self.encoder.time(first.time),
                "local_timestamp": self.encoder.time(first.time + utc_offset),
            },
            last_of_type=True,
        )
        self.encoder.write_message("session", self.summary(0, count), last_of_type=True)

        bounds = lap_bounds(count)
        for i, (start, end) in enumerate(bounds):
            self.encoder.write_message(
                "lap",
                self.summary(start, end),
                last_of_type=i == len(bounds) - 1,
            )

    def record_fields(self, sample: Sample, rp: RepeatPass) -> Dict[str, Any]:
        return {
            "power": sample.power,
            "timestamp": self.encoder.time(sample.time + rp.time_offset),
            "speed": sample.speed,
            "distance": sample.dist * rp.distance_scale,
            "altitude": sample.ele,
            "cadence": sample.cad,
            "heart_rate": sample.hr,
            "position_lat": self.encoder.latlng(sample.lat),
            "position_long": self.encoder.latlng(sample.lng),
            "cycle_length16": sample.cl16,
        }

    def write_records(self) -> int:
        written = 0
        for rp in self.repeat_passes():
            ordered = self.samples if rp.forward else list(reversed(self.samples))
            log.debug(
                "Repeat pass %d: %s, offset=%s, distance x%d",
                rp.index, "forward" if rp.forward else "reversed", rp.time_offset, rp.distance_scale,
            )
            for sample in ordered:
                dev: Optional[List[DeveloperValue]] = None
                if sample.wind is not None:
                    dev = [DeveloperValue(field_num=WIND_FIELD_NUM, value=sample.wind)]
                self.encoder.write_message("record", self.record_fields(sample, rp), dev)
                written += 1
        return written

    def build(self) -> bytes:
        self.write_header()
        self.write_summaries()
        written = self.write_records()
        data = self.encoder.finish()
        log.info(
            "Assembled activity: samples=%d laps=%d repeats=%d records=%d bytes=%d",
            len(self.samples), LAP_COUNT, self.repeat_count, written, len(data),
        )
        return data


def build(
    samples: Sequence[Sample],
    repeat_count: int = 1,
    encoder: FitEncoder | None = None,
    sport: str = "cycling",
) -> bytes:
    """Encode `samples` as a FIT activity, replayed `repeat_count` times."""
    if encoder is None:
        encoder = FitToolEncoder()
    return ActivityAssembler(samples, encoder, repeat_count=repeat_count, sport=sport).build()
