"""
FIT message encoding.

The assembler talks to an encoder through four operations (`time`,
`latlng`, `write_message`, `finish`) so that message ordering can be tested
without producing real FIT bytes. `FitToolEncoder` is the production
implementation, built on the fit-tool library.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from fit_tool.base_type import BaseType
from fit_tool.developer_field import DeveloperField
from fit_tool.exceptions import FitEncodingError
from fit_tool.fit_file_builder import FitFileBuilder
from fit_tool.profile.messages.activity_message import ActivityMessage
from fit_tool.profile.messages.developer_data_id_message import DeveloperDataIdMessage
from fit_tool.profile.messages.field_description_message import FieldDescriptionMessage
from fit_tool.profile.messages.file_id_message import FileIdMessage
from fit_tool.profile.messages.lap_message import LapMessage
from fit_tool.profile.messages.record_message import RecordMessage
from fit_tool.profile.messages.session_message import SessionMessage
from fit_tool.profile.profile_type import Activity, FileType, Manufacturer, Sport

from trackfit.errors import EncoderError

log = logging.getLogger(__name__)

# Seconds between the Unix epoch and the FIT epoch (1989-12-31T00:00:00Z)
FIT_EPOCH_OFFSET_S = 631065600

SEMICIRCLES_PER_DEGREE = 2 ** 31 / 180.0

MESSAGE_CLASSES = {
    "file_id": FileIdMessage,
    "developer_data_id": DeveloperDataIdMessage,
    "field_description": FieldDescriptionMessage,
    "activity": ActivityMessage,
    "session": SessionMessage,
    "lap": LapMessage,
    "record": RecordMessage,
}

# String values accepted for enum-typed fields, keyed by (message, field)
ENUM_FIELDS = {
    ("file_id", "type"): FileType,
    ("file_id", "manufacturer"): Manufacturer,
    ("activity", "type"): Activity,
    ("session", "sport"): Sport,
    ("lap", "sport"): Sport,
}

# Developer field base types, by FIT base type id
DEVELOPER_BASE_TYPES = {
    0x88: BaseType.FLOAT32,
    0x89: BaseType.FLOAT64,
}


@dataclass(frozen=True)
class DeveloperValue:
    """A value for a declared developer field, attached to one message."""
    field_num: int
    value: float


@dataclass(frozen=True)
class DeveloperFieldSpec:
    """Declaration of a developer field (mirrors a field_description message)."""
    developer_data_index: int
    field_num: int
    name: str
    units: str
    base_type_id: int


class FitEncoder(abc.ABC):
    """Capability the assembler needs from a FIT writer."""

    @abc.abstractmethod
    def time(self, instant: datetime) -> int:
        """Convert an aware datetime into this encoder's timestamp value."""

    @abc.abstractmethod
    def latlng(self, degrees: float) -> Any:
        """Convert a coordinate in degrees into this encoder's position value."""

    @abc.abstractmethod
    def write_message(
        self,
        name: str,
        fields: Dict[str, Any],
        developer_fields: Optional[List[DeveloperValue]] = None,
        last_of_type: bool = False,
    ) -> None:
        """
        Write one message. Fields whose value is None are left unset.

        `last_of_type` marks the final message of its type, after which the
        encoder may drop the definition for it.
        """

    @abc.abstractmethod
    def finish(self) -> bytes:
        """Return the complete file, header and CRC included."""


class FitToolEncoder(FitEncoder):
    """
    FitEncoder backed by fit-tool's FitFileBuilder.

    fit-tool takes timestamps in Unix milliseconds and positions in degrees
    (it applies the semicircle scale itself), so `time` returns milliseconds
    and `latlng` returns degrees snapped to semicircle resolution.
    """

    def __init__(self, min_string_size: int = 50):
        self._builder = FitFileBuilder(auto_define=True, min_string_size=min_string_size)
        self._developer_fields: Dict[int, DeveloperFieldSpec] = {}
        self._closed_types: set[str] = set()
        self.message_count = 0

    def time(self, instant: datetime) -> int:
        return round(instant.timestamp() * 1000)

    def latlng(self, degrees: float) -> float:
        return round(degrees * SEMICIRCLES_PER_DEGREE) / SEMICIRCLES_PER_DEGREE

    def write_message(
        self,
        name: str,
        fields: Dict[str, Any],
        developer_fields: Optional[List[DeveloperValue]] = None,
        last_of_type: bool = False,
    ) -> None:
        cls = MESSAGE_CLASSES.get(name)
        if cls is None:
            raise EncoderError(f"Unknown message type '{name}'")
        if name in self._closed_types:
            log.debug("Writing '%s' after it was marked last of its type", name)

        dev = [self._developer_field(v) for v in developer_fields or []]
        msg = cls(developer_fields=dev) if dev else cls()

        for field_name, value in fields.items():
            if value is None:
                continue
            if not isinstance(getattr(cls, field_name, None), property):
                raise EncoderError(f"Message '{name}' has no field '{field_name}'")
            try:
                setattr(msg, field_name, self._convert(name, field_name, value))
            except FitEncodingError as e:
                raise EncoderError(f"Cannot encode {name}.{field_name}={value!r}: {e}") from e

        if name == "field_description":
            self._declare(fields)

        try:
            self._builder.add(msg)
        except FitEncodingError as e:
            raise EncoderError(f"Cannot add '{name}' message: {e}") from e
        self.message_count += 1
        if last_of_type:
            self._closed_types.add(name)

    def finish(self) -> bytes:
        try:
            data = self._builder.build().to_bytes()
        except FitEncodingError as e:
            raise EncoderError(f"Cannot encode FIT file: {e}") from e
        log.debug("Encoded %d messages into %d bytes", self.message_count, len(data))
        return data

    # ---------- helpers ----------

    def _convert(self, message: str, field_name: str, value: Any) -> Any:
        enum_cls = ENUM_FIELDS.get((message, field_name))
        if enum_cls is not None and isinstance(value, str):
            try:
                return enum_cls[value.upper()]
            except KeyError:
                raise EncoderError(f"'{value}' is not a valid {message}.{field_name}") from None
        if field_name == "local_timestamp":
            # local_date_time is raw seconds since the FIT epoch in fit-tool
            return value // 1000 - FIT_EPOCH_OFFSET_S
        return value

    def _declare(self, fields: Dict[str, Any]) -> None:
        spec = DeveloperFieldSpec(
            developer_data_index=fields["developer_data_index"],
            field_num=fields["field_definition_number"],
            name=fields["field_name"],
            units=fields.get("units") or "",
            base_type_id=fields["fit_base_type_id"],
        )
        if spec.base_type_id not in DEVELOPER_BASE_TYPES:
            raise EncoderError(f"Unsupported developer field base type {spec.base_type_id}")
        self._developer_fields[spec.field_num] = spec

    def _developer_field(self, dev_value: DeveloperValue) -> DeveloperField:
        spec = self._developer_fields.get(dev_value.field_num)
        if spec is None:
            raise EncoderError(f"Developer field {dev_value.field_num} was never declared")
        base_type = DEVELOPER_BASE_TYPES[spec.base_type_id]
        # fixed single-value field: size is the byte width of the base type
        field = DeveloperField(
            developer_data_index=spec.developer_data_index,
            field_id=spec.field_num,
            base_type=base_type,
            name=spec.name,
            units=spec.units,
            size=base_type.size,
        )
        try:
            field.set_value(0, dev_value.value)
        except FitEncodingError as e:
            raise EncoderError(f"Cannot encode developer field '{spec.name}'={dev_value.value!r}: {e}") from e
        return field
