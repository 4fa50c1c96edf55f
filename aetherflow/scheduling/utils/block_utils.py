"""
Interval algebra over time blocks: merging, gap derivation and slot checks.
"""

from datetime import datetime
from typing import Iterable, List
from ..core.time_block import TimeBlock


def merge_overlapping_blocks(blocks: Iterable[TimeBlock]) -> List[TimeBlock]:
    """
    Merge overlapping or touching blocks into a minimal sorted set of disjoint blocks.
    The input is not modified.
    """
    ordered = sorted(blocks, key=lambda b: (b.start, b.end))
    if not ordered:
        return []

    merged = [TimeBlock(ordered[0].start, ordered[0].end)]
    for block in ordered[1:]:
        current = merged[-1]
        if block.start <= current.end:
            current.end = max(current.end, block.end)
        else:
            merged.append(TimeBlock(block.start, block.end))
    return merged


def free_time_blocks(occupied: Iterable[TimeBlock], window_start: datetime, window_end: datetime) -> List[TimeBlock]:
    """Gaps inside [window_start, window_end) not covered by any occupied block."""
    free = []
    cursor = window_start

    for block in merge_overlapping_blocks(occupied):
        if block.start >= window_end:
            break
        if cursor < block.start:
            free.append(TimeBlock(cursor, block.start))
        cursor = max(cursor, block.end)

    if cursor < window_end:
        free.append(TimeBlock(cursor, window_end))

    # zero-minute slivers are not usable gaps
    return [b for b in free if b.duration > 0]


def is_slot_free(proposed_start: datetime, proposed_end: datetime, occupied: Iterable[TimeBlock]) -> bool:
    """True unless [proposed_start, proposed_end) overlaps an occupied block."""
    for block in occupied:
        if block.overlaps(proposed_start, proposed_end):
            return False
    return True


def total_minutes(blocks: Iterable[TimeBlock]) -> int:
    return sum(block.duration for block in blocks)


def clip_blocks(blocks: Iterable[TimeBlock], window_start: datetime, window_end: datetime) -> List[TimeBlock]:
    """Clip blocks to the window, dropping anything left empty."""
    clipped = []
    for block in blocks:
        start = max(block.start, window_start)
        end = min(block.end, window_end)
        if start < end:
            clipped.append(TimeBlock(start, end))
    return clipped
