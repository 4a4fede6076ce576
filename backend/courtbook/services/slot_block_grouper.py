# backend/courtbook/services/slot_block_grouper.py
"""
Grouping of requested slots into contiguous blocks.

Each block becomes one booking row. A slot continues the current block when
it starts exactly where the previous one ended, or, when the court type has
a buffer, exactly one buffer after it.
"""

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .slot_generator import Slot


@dataclass(frozen=True)
class SlotBlock:
    """A maximal run of joined slots."""

    slots: Tuple[Slot, ...]

    @property
    def start(self) -> int:
        return self.slots[0].start

    @property
    def end(self) -> int:
        return self.slots[-1].end

    @property
    def slot_count(self) -> int:
        return len(self.slots)

    def price(self, price_per_interval: int) -> int:
        return price_per_interval * self.slot_count

    def as_slot(self) -> Slot:
        return Slot(self.start, self.end)


def _continues(previous: Slot, current: Slot, buffer_minutes: int) -> bool:
    if current.start == previous.end:
        return True
    return buffer_minutes > 0 and previous.end + buffer_minutes == current.start


def group(slots: Iterable[Slot], buffer_minutes: int) -> List[List[Slot]]:
    """Split slots (in any order) into ordered blocks of joined slots."""
    blocks: List[List[Slot]] = []
    for slot in sorted(slots, key=lambda s: (s.start, s.end)):
        if blocks and _continues(blocks[-1][-1], slot, buffer_minutes):
            blocks[-1].append(slot)
        else:
            blocks.append([slot])
    return blocks


def flatten_blocks(blocks: Iterable[Iterable[Slot]]) -> List[Slot]:
    return [slot for block in blocks for slot in block]


def to_blocks(slots: Iterable[Slot], buffer_minutes: int) -> List[SlotBlock]:
    return [SlotBlock(tuple(block)) for block in group(slots, buffer_minutes)]
