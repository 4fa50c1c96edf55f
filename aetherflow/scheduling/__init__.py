"""
AetherFlow Scheduling Engine

Pure schedule calculation, compaction and parsing for a single user's day.
Nothing in this package touches the database, the network or the system clock;
callers pass "now" explicitly and persist the results themselves.
"""

from .core.time_block import TimeBlock
from .core.exceptions import InvalidTaskError
from .core.types import (
    ScheduledTaskData, RetiredTaskData, NewScheduledTask, NewRetiredTask, MealTime, RegenPod,
    ScheduledItem, ScheduleSummary, FormattedSchedule, DurationTask, FixedTimeTask, TimeOffTask,
    ParsedTask, ParsedInjection, SchedulerCommand, AutoBalancePlan, TaskEnvironment,
)
from .core.calculator import calculate_schedule, schedule_free_blocks, synthesized_blocks
from .algorithms.compaction import compact_schedule
from .algorithms.auto_balance import plan_auto_balance
from .utils.block_utils import merge_overlapping_blocks, free_time_blocks, is_slot_free
from .scoring.energy_scoring import energy_cost, is_meal
from .parsing.task_parser import (
    parse_quick_add_input, parse_injection_command, parse_command, parse_sink_task_input,
    parse_flexible_time,
)

# Version for future API compatibility
__version__ = "1.0.0"
