"""
Time block representation for the scheduling engine.
"""

from datetime import datetime, timedelta


class TimeBlock:
    """
    A half-open interval [start, end) of wall-clock time.

    Blocks are algebraic intermediates for overlap and gap computation and are
    never persisted. Duration is kept in whole minutes.
    """
    def __init__(self, start: datetime, end: datetime):
        self.start = start
        self.end = end

    @property
    def duration(self) -> int:
        return minutes_between(self.start, self.end)

    def length(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return start < self.end and end > self.start

    def __lt__(self, other):
        return self.start < other.start

    def __eq__(self, other):
        if not isinstance(other, TimeBlock):
            return NotImplemented
        return self.start == other.start and self.end == other.end

    def __hash__(self):
        return hash((self.start, self.end))

    def __repr__(self):
        return f"TimeBlock({self.start.strftime('%I:%M %p')} - {self.end.strftime('%I:%M %p')}, {self.duration}m)"


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end."""
    return int((end - start).total_seconds() // 60)
