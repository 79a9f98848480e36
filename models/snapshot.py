"""Canonical sensor snapshot and its normalization from upstream payloads."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Tuple


# Accepted upstream keys per snapshot field, in priority order. The first key
# whose value resolves to the field's type wins.
FIELD_SOURCE_KEYS: Dict[str, Tuple[str, ...]] = {
    "temperature": ("temperature",),
    "pulseRate": ("pulseRate", "pulse_rate"),
    "distress": ("distress",),
    "rfid": ("rfid",),
    "ir": ("ir",),
}

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"", "0", "false", "no", "off"})


@dataclass(frozen=True, slots=True)
class Snapshot:
    """One sensor reading as cached and pushed by the relay."""

    temperature: float = 0
    pulseRate: float = 0
    distress: bool = False
    rfid: bool = False
    ir: bool = False

    @classmethod
    def from_source(cls, payload: Mapping[str, Any]) -> "Snapshot":
        """Build a snapshot from the upstream ``data`` mapping.

        Missing or unusable values fall back to the field default, so the
        result never carries ``None`` or a value of the wrong type.
        """
        return cls(
            temperature=_resolve(payload, "temperature", _as_number, 0),
            pulseRate=_resolve(payload, "pulseRate", _as_number, 0),
            distress=_resolve(payload, "distress", _as_bool, False),
            rfid=_resolve(payload, "rfid", _as_bool, False),
            ir=_resolve(payload, "ir", _as_bool, False),
        )

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)


def _resolve(
    payload: Mapping[str, Any],
    field_name: str,
    coerce: Callable[[Any], Optional[Any]],
    default: Any,
) -> Any:
    for key in FIELD_SOURCE_KEYS[field_name]:
        if key not in payload:
            continue
        value = coerce(payload[key])
        if value is not None:
            return value
    return default


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            as_float = float(value)
        except OverflowError:
            return None
        return value if math.isfinite(as_float) else None
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        candidate = value.strip().lower()
        if candidate in _TRUE_STRINGS:
            return True
        if candidate in _FALSE_STRINGS:
            return False
    return None


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC instant with millisecond precision and a ``Z`` suffix."""
    current = moment or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    current = current.astimezone(timezone.utc)
    return current.isoformat(timespec="milliseconds").replace("+00:00", "Z")
