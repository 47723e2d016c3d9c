"""
Decoded frame record.

A DecodedFrame is a sparse, read-only mapping from a fixed vocabulary of
field names to typed values.  Each value is one variant of a small tagged
union (U8, I8, U16, Flag, Octets, Text) and every key always carries the
same variant, so consumers can dispatch on the variant class instead of
probing Python types.

Missing keys mean "not applicable to this frame", never an error.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterator, Optional, Type


@dataclass(frozen=True)
class FieldValue:
    """Base of the field value variants."""
    value: Any


@dataclass(frozen=True)
class U8(FieldValue):
    value: int

    def __post_init__(self):
        if not 0 <= self.value <= 0xFF:
            raise ValueError(f"U8 out of range: {self.value}")


@dataclass(frozen=True)
class I8(FieldValue):
    value: int

    def __post_init__(self):
        if not -0x80 <= self.value <= 0x7F:
            raise ValueError(f"I8 out of range: {self.value}")


@dataclass(frozen=True)
class U16(FieldValue):
    value: int

    def __post_init__(self):
        if not 0 <= self.value <= 0xFFFF:
            raise ValueError(f"U16 out of range: {self.value}")


@dataclass(frozen=True)
class Flag(FieldValue):
    value: bool


@dataclass(frozen=True)
class Octets(FieldValue):
    value: bytes


@dataclass(frozen=True)
class Text(FieldValue):
    value: str


# Field vocabulary.  TZSP tag fields first, then 802.11 header fields.
FIELD_TYPES: Dict[str, Type[FieldValue]] = {
    # TZSP tags
    "signal": I8,
    "rate": U8,
    "FCS": Flag,
    "channel": U8,
    "origLen": U16,
    "sensor": Octets,
    # 802.11 frame control
    "version": U8,
    "type": U8,
    "subtype": U8,
    "toDS": U8,
    "fromDS": U8,
    "moreFrag": U8,
    "retry": U8,
    "pwrmgt": U8,
    "moreData": U8,
    "WEP": U8,
    "order": U8,
    "duration": U16,
    "receiver": Octets,
    # Beacon only
    "transmitter": Octets,
    "BSS": Octets,
    "sequence": U16,
    "fragment": U8,
    "interval": U16,
    "capabilities": U16,
    "SSID": Text,
}

# Octet fields with a fixed width (MAC addresses)
OCTET_WIDTHS = {
    "sensor": 6,
    "receiver": 6,
    "transmitter": 6,
    "BSS": 6,
}

_PYTHON_TYPES = {
    U8: int,
    I8: int,
    U16: int,
    Flag: bool,
    Octets: bytes,
    Text: str,
}


def make_value(key: str, raw) -> FieldValue:
    """Wrap a raw Python value in the variant registered for `key`."""
    try:
        variant = FIELD_TYPES[key]
    except KeyError:
        raise KeyError(f"unknown frame field {key!r}") from None

    if isinstance(raw, FieldValue):
        if type(raw) is not variant:
            raise TypeError(
                f"{key} expects {variant.__name__}, got {type(raw).__name__}"
            )
        return raw

    expected = _PYTHON_TYPES[variant]
    # bool is an int subclass; keep flags and integers apart
    if expected is int and isinstance(raw, bool):
        raise TypeError(f"{key} expects an integer, got bool")
    if expected is bytes and isinstance(raw, (bytearray, memoryview)):
        raw = bytes(raw)
    if not isinstance(raw, expected):
        raise TypeError(
            f"{key} expects {expected.__name__}, got {type(raw).__name__}"
        )

    width = OCTET_WIDTHS.get(key)
    if width is not None and len(raw) != width:
        raise ValueError(f"{key} must be {width} bytes, got {len(raw)}")
    return variant(raw)


class DecodedFrame(Mapping):
    """Immutable snapshot of the fields extracted from one buffer."""

    __slots__ = ("_fields",)

    def __init__(self, fields: Optional[Dict[str, Any]] = None):
        values = {}
        for key, raw in (fields or {}).items():
            values[key] = make_value(key, raw)
        self._fields = MappingProxyType(values)

    def __getitem__(self, key: str) -> FieldValue:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._fields))

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self):
        inner = ", ".join(f"{k}={self._fields[k].value!r}" for k in self)
        return f"DecodedFrame({inner})"

    def value(self, key: str, default=None):
        """Plain Python value for `key`, or `default` when absent."""
        field = self._fields.get(key)
        return default if field is None else field.value

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict (sorted keys) ready for msgpack / JSON."""
        return {k: self._fields[k].value for k in self}

    @property
    def is_beacon(self) -> bool:
        return "BSS" in self._fields


class FrameBuilder:
    """Mutable field collector owned by a single decode call."""

    def __init__(self):
        self._fields: Dict[str, FieldValue] = {}

    def set(self, key: str, raw):
        self._fields[key] = make_value(key, raw)

    def __contains__(self, key):
        return key in self._fields

    def freeze(self) -> DecodedFrame:
        return DecodedFrame(self._fields)
