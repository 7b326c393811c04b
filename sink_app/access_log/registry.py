"""
Log field registry: the mapping between access-log fields and analytics slots.

The analytics store only knows positional string slots ("blob1", "blob2", ...).
A registry is the explicit, versioned table that says which semantic field
lives in which slot. Slot order is the numeric suffix of the slot id, so
"blob2" sorts before "blob10" no matter how the table was declared.

Registries are append-only: historical records were written positionally,
so a field may only be added in the next unused slot (see ``append``).
"""

import re
from enum import Enum
from typing import Dict, List, Mapping, Tuple

from sink_app.exceptions import InvalidRegistryError

_SLOT_NUMBER = re.compile(r"(\d+)$")


class LogField(str, Enum):
    """Semantic access-log fields (values match AccessLogRecord attributes)."""
    SLUG = "slug"
    URL = "url"
    UA = "ua"
    IP = "ip"
    SOURCE = "source"
    COUNTRY = "country"
    REGION = "region"
    CITY = "city"
    TIMEZONE = "timezone"
    LANGUAGE = "language"
    OS = "os"
    BROWSER = "browser"
    BROWSER_TYPE = "browser_type"
    DEVICE = "device"
    DEVICE_TYPE = "device_type"
    UTM_SOURCE = "utm_source"
    UTM_MEDIUM = "utm_medium"
    UTM_CAMPAIGN = "utm_campaign"
    UTM_TERM = "utm_term"
    UTM_CONTENT = "utm_content"


def slot_number(slot: str) -> int:
    """Numeric position of a slot id ("blob13" -> 13)."""
    match = _SLOT_NUMBER.search(slot)
    if not match:
        raise InvalidRegistryError(f"Slot id {slot!r} has no numeric suffix")
    return int(match.group(1))


class LogFieldRegistry:
    """
    Immutable slot <-> field bijection with a stable numeric slot order.

    Args:
        slots: mapping of slot id to LogField, in any order
        version: schema version, bumped by every ``append``
    """

    def __init__(self, slots: Mapping[str, LogField], version: int = 1):
        entries: List[Tuple[int, str, LogField]] = []
        seen_numbers = set()
        seen_fields = set()

        for slot, field in slots.items():
            field = LogField(field)
            number = slot_number(slot)
            if number in seen_numbers:
                raise InvalidRegistryError(f"Slot number {number} is used twice")
            if field in seen_fields:
                raise InvalidRegistryError(f"Field {field.value!r} is mapped twice")
            seen_numbers.add(number)
            seen_fields.add(field)
            entries.append((number, slot, field))

        entries.sort(key=lambda entry: entry[0])

        self.version = version
        self._entries = tuple(entries)
        self._slot_by_field: Dict[LogField, str] = {field: slot for _, slot, field in entries}
        self._field_by_slot: Dict[str, LogField] = {slot: field for _, slot, field in entries}

    @property
    def slots(self) -> List[str]:
        """Slot ids in storage order."""
        return [slot for _, slot, _ in self._entries]

    @property
    def fields(self) -> List[LogField]:
        """Fields in storage order."""
        return [field for _, _, field in self._entries]

    def slot_for(self, field: LogField) -> str:
        return self._slot_by_field[LogField(field)]

    def field_for(self, slot: str) -> LogField:
        return self._field_by_slot[slot]

    def append(self, field: LogField) -> "LogFieldRegistry":
        """
        Return a new registry version with ``field`` in the next unused slot.

        Existing slots keep their numbers, so records written with the
        previous version still decode correctly.
        """
        if self._entries:
            last_number, last_slot, _ = self._entries[-1]
            prefix = last_slot[: _SLOT_NUMBER.search(last_slot).start()]
        else:
            last_number, prefix = 0, "blob"

        slots = dict(self._field_by_slot)
        slots[f"{prefix}{last_number + 1}"] = field
        return LogFieldRegistry(slots, version=self.version + 1)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self.fields)

    def __contains__(self, field) -> bool:
        return field in self._slot_by_field

    def __repr__(self) -> str:
        return f"LogFieldRegistry(version={self.version}, slots={len(self)})"


# Version 1 of the access-log schema. Never reorder; append only.
DEFAULT_REGISTRY = LogFieldRegistry({
    "blob1": LogField.SLUG,
    "blob2": LogField.URL,
    "blob3": LogField.UA,
    "blob4": LogField.IP,
    "blob5": LogField.SOURCE,
    "blob6": LogField.COUNTRY,
    "blob7": LogField.REGION,
    "blob8": LogField.CITY,
    "blob9": LogField.TIMEZONE,
    "blob10": LogField.LANGUAGE,
    "blob11": LogField.OS,
    "blob12": LogField.BROWSER,
    "blob13": LogField.BROWSER_TYPE,
    "blob14": LogField.DEVICE,
    "blob15": LogField.DEVICE_TYPE,
    "blob16": LogField.UTM_SOURCE,
    "blob17": LogField.UTM_MEDIUM,
    "blob18": LogField.UTM_CAMPAIGN,
    "blob19": LogField.UTM_TERM,
    "blob20": LogField.UTM_CONTENT,
})
