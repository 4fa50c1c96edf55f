"""
Keyword-driven classification of task names: item type, emoji, hue and break blurbs.
Every lookup walks an ordered table and the first match wins.
"""

import re
from typing import Optional
from .constants import (
    TYPE_RULES, EMOJI_TABLE, EMOJI_HUE_TABLE, BREAK_DESCRIPTIONS, EXTENDED_BREAK_DESCRIPTION,
    DEFAULT_EMOJI, DEFAULT_HUE, TASK, MEAL, CALENDAR_EVENT,
)
from ..scoring.energy_scoring import is_meal

_TYPE_PATTERNS = [(re.compile(pattern, re.IGNORECASE), item_type) for pattern, item_type in TYPE_RULES]
_EMOJI_PATTERNS = [(re.compile(rf"(?<!\w){re.escape(keyword)}"), emoji) for keyword, emoji in EMOJI_TABLE]
_HUE_PATTERNS = [(re.compile(rf"(?<!\w){re.escape(keyword)}"), hue) for keyword, hue in EMOJI_HUE_TABLE]


def classify_item_type(name: str, source_calendar_id: Optional[str] = None) -> str:
    if source_calendar_id:
        return CALENDAR_EVENT
    for pattern, item_type in _TYPE_PATTERNS:
        if pattern.search(name):
            return item_type
    if is_meal(name):
        return MEAL
    return TASK


def assign_emoji(name: str) -> str:
    lowered = name.lower()
    for pattern, emoji in _EMOJI_PATTERNS:
        if pattern.search(lowered):
            return emoji
    return DEFAULT_EMOJI


def get_emoji_hue(name: str) -> int:
    lowered = name.lower()
    for pattern, hue in _HUE_PATTERNS:
        if pattern.search(lowered):
            return hue
    return DEFAULT_HUE


def get_break_description(duration_minutes: int) -> str:
    for upper_bound, description in BREAK_DESCRIPTIONS:
        if duration_minutes <= upper_bound:
            return description
    return EXTENDED_BREAK_DESCRIPTION
