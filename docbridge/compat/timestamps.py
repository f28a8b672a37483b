"""
Timestamp value type and the temporal codec used on every read and write.

Writes: Timestamp and datetime values are serialized to ISO-8601 UTC
strings (microsecond precision, so sub-microsecond nanoseconds are lost).
Reads: any string shaped like a full ISO-8601 date-time is rehydrated into
a Timestamp. The check is purely syntactic; a plain string that happens to
look like a date-time comes back as a Timestamp too.
"""

import re
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NANOS_PER_SECOND = 1_000_000_000
_NANOS_PER_MILLI = 1_000_000

# Date, 'T' or space, time, optional fraction, optional offset
_ISO_DATETIME = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(?::\d{2})?)"
    r"(?:\.(?P<fraction>\d{1,9}))?"
    r"(?P<offset>Z|[+-]\d{2}(?::?\d{2})?)?$"
)


@dataclass(frozen=True, order=True)
class Timestamp:
    """
    Point in time as seconds since the Unix epoch plus nanoseconds.

    Two timestamps are equal iff both components are equal.
    """

    seconds: int
    nanoseconds: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.nanoseconds < _NANOS_PER_SECOND:
            raise ValueError(
                f"nanoseconds must be in [0, 1e9), got {self.nanoseconds}"
            )

    @classmethod
    def now(cls) -> "Timestamp":
        total = time.time_ns()
        return cls(total // _NANOS_PER_SECOND, total % _NANOS_PER_SECOND)

    @classmethod
    def from_date(cls, value: datetime) -> "Timestamp":
        """Naive datetimes are taken to be UTC."""
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        delta = value - _EPOCH
        return cls(delta.days * 86400 + delta.seconds, delta.microseconds * 1000)

    @classmethod
    def from_millis(cls, millis: float) -> "Timestamp":
        total_nanos = int(round(millis * _NANOS_PER_MILLI))
        return cls(total_nanos // _NANOS_PER_SECOND, total_nanos % _NANOS_PER_SECOND)

    @classmethod
    def from_iso(cls, value: str) -> "Timestamp":
        """
        Parse an ISO-8601 date-time string.

        Raises:
            ValueError: If the string is not a full date-time.
        """
        match = _ISO_DATETIME.match(value)
        if match is None:
            raise ValueError(f"Not an ISO-8601 date-time: {value!r}")

        base = match.group("base").replace(" ", "T")
        offset = match.group("offset")
        if offset is None or offset == "Z":
            offset = "+00:00"
        elif len(offset) == 3:
            offset = f"{offset}:00"
        elif ":" not in offset:
            offset = f"{offset[:3]}:{offset[3:]}"

        parsed = datetime.fromisoformat(base + offset)
        fraction = match.group("fraction") or ""
        nanos = int(fraction.ljust(9, "0")) if fraction else 0
        return cls(cls.from_date(parsed).seconds, nanos)

    def to_date(self) -> datetime:
        """Aware UTC datetime (microsecond precision)."""
        return _EPOCH + timedelta(seconds=self.seconds, microseconds=self.nanoseconds // 1000)

    def to_millis(self) -> int:
        return self.seconds * 1000 + self.nanoseconds // _NANOS_PER_MILLI

    def to_iso(self) -> str:
        return self.to_date().isoformat(timespec="microseconds").replace("+00:00", "Z")

    def __str__(self) -> str:
        return self.to_iso()


def server_timestamp() -> Timestamp:
    """Stand-in for a server-assigned write time; resolved client-side."""
    return Timestamp.now()


def is_temporal_string(value: Any) -> bool:
    """True if value is a string shaped like a full ISO-8601 date-time."""
    return isinstance(value, str) and _ISO_DATETIME.match(value) is not None


def encode_value(value: Any) -> Any:
    """Convert a document value into something JSON/PostgREST can store."""
    if isinstance(value, Timestamp):
        return value.to_iso()
    if isinstance(value, datetime):
        return Timestamp.from_date(value).to_iso()
    if isinstance(value, dict):
        return {key: encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    return value


def decode_value(value: Any) -> Any:
    """Rehydrate temporal strings (at any depth) into Timestamp values."""
    if isinstance(value, str):
        if is_temporal_string(value):
            try:
                return Timestamp.from_iso(value)
            except ValueError:
                # Shape matched but the calendar fields are out of range
                return value
        return value
    if isinstance(value, dict):
        return {key: decode_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [decode_value(item) for item in value]
    return value
