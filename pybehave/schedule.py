"""
Daily time-slot schedule used to order slot keys.

Slot keys such as "1:00" (PM) are not lexicographically sortable against
morning keys, so every ordering in the library goes through a `Schedule`.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

LEGACY_SLOT_PATTERN = re.compile(r"^(?:period|slot)[_\-\s]?(\d+)", re.IGNORECASE)


@dataclass(frozen=True)
class TimeSlot:
    """A fixed named period of the school day."""

    key: str
    label: str


class Schedule:
    """
    Canonical ordered daily schedule.

    Keys listed in the schedule sort by their position; any other key sorts
    after all scheduled keys, in the order it was first seen.
    """

    def __init__(self, slots: Iterable[TimeSlot | tuple[str, str]]):
        normalized: list[TimeSlot] = []
        for slot in slots:
            if isinstance(slot, TimeSlot):
                normalized.append(slot)
            elif isinstance(slot, tuple) and len(slot) == 2:
                normalized.append(TimeSlot(key=str(slot[0]), label=str(slot[1])))
            else:
                raise TypeError(
                    f"Schedule entries must be TimeSlot or (key, label) tuples, got {type(slot).__name__}."
                )
        keys = [slot.key for slot in normalized]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Schedule contains duplicate slot keys: {keys}")
        self._slots: tuple[TimeSlot, ...] = tuple(normalized)
        self._positions: dict[str, int] = {key: i for i, key in enumerate(keys)}

    def __repr__(self) -> str:
        return f"Schedule({[slot.key for slot in self._slots]!r})"

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, key: object) -> bool:
        return key in self._positions

    @property
    def slots(self) -> tuple[TimeSlot, ...]:
        return self._slots

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(slot.key for slot in self._slots)

    def label(self, key: str) -> str:
        """Returns the display label for `key`, or the key itself when unscheduled."""
        position = self._positions.get(key)
        if position is None:
            return key
        return self._slots[position].label

    def position(self, key: str) -> int | None:
        return self._positions.get(key)

    def order(self, keys: Iterable[str]) -> list[str]:
        """
        Orders slot keys by the schedule.

        Args:
            keys: Slot keys in any order. Duplicates are dropped.

        Returns:
            Scheduled keys in schedule order, followed by unscheduled keys in
            first-seen order.
        """
        seen: dict[str, int] = {}
        for key in keys:
            if key not in seen:
                seen[key] = len(seen)
        unscheduled_offset = len(self._slots)
        return sorted(
            seen,
            key=lambda k: (
                self._positions[k]
                if k in self._positions
                else unscheduled_offset + seen[k]
            ),
        )

    def remap_legacy_keys(self, raw_slots: Mapping[str, Any]) -> dict[str, Any]:
        """
        Maps legacy `period_N` / `slot_N` keys onto scheduled keys.

        Only applies when the mapping has no scheduled keys at all. Legacy
        entries are sorted by N and assigned to scheduled keys by position;
        entries beyond the schedule keep their legacy key. Non-legacy keys are
        dropped in that case, matching how the old storage format was read.
        Otherwise the mapping is returned unchanged (as a new dict).
        """
        if any(key in self._positions for key in raw_slots):
            return dict(raw_slots)

        legacy = [
            (key, value) for key, value in raw_slots.items()
            if LEGACY_SLOT_PATTERN.match(str(key))
        ]
        if not legacy:
            return dict(raw_slots)

        def _legacy_order(item: tuple[str, Any]) -> float:
            match = LEGACY_SLOT_PATTERN.match(str(item[0]))
            return float(match.group(1)) if match else float("inf")

        remapped: dict[str, Any] = {}
        for index, (legacy_key, value) in enumerate(sorted(legacy, key=_legacy_order)):
            target = self._slots[index].key if index < len(self._slots) else legacy_key
            remapped[target] = value
        return remapped


DEFAULT_SCHEDULE = Schedule(
    [
        TimeSlot("8:30", "8:30 AM - 9:15 AM"),
        TimeSlot("9:15", "9:15 AM - 10:00 AM"),
        TimeSlot("10:00", "10:00 AM - 10:45 AM"),
        TimeSlot("10:45", "10:45 AM - 11:30 AM"),
        TimeSlot("11:30", "11:30 AM - 1:00 PM"),
        TimeSlot("1:00", "1:00 PM - 1:45 PM"),
        TimeSlot("1:45", "1:45 PM - 2:30 PM"),
    ]
)
