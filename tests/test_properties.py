"""
Invariants of the scheduling engine, checked over a handful of concrete block
sets and task lists.
"""

from datetime import timedelta

import pytest

from aetherflow.scheduling import (
    TimeBlock, merge_overlapping_blocks, free_time_blocks, is_slot_free, energy_cost,
    compact_schedule, calculate_schedule, parse_quick_add_input, DurationTask, FixedTimeTask, TimeOffTask,
)
from aetherflow.scheduling.utils.block_utils import clip_blocks
from tests.helpers import DAY, at, make_task

BLOCK_SETS = [
    [],
    [TimeBlock(at(9), at(10))],
    [TimeBlock(at(9), at(10)), TimeBlock(at(10), at(11)), TimeBlock(at(12), at(13))],
    [TimeBlock(at(8), at(12)), TimeBlock(at(9), at(9, 30)), TimeBlock(at(16), at(18))],
    [TimeBlock(at(14, 15), at(14, 45)), TimeBlock(at(9, 5), at(9, 50)), TimeBlock(at(9, 45), at(11))],
]


def _covered_minutes(blocks):
    minutes = set()
    for block in blocks:
        minutes.update(range(int(block.start.timestamp() // 60), int(block.end.timestamp() // 60)))
    return minutes


class TestBlockAlgebra:

    @pytest.mark.parametrize("blocks", BLOCK_SETS)
    def test_merge_is_idempotent(self, blocks):
        merged = merge_overlapping_blocks(blocks)
        assert merge_overlapping_blocks(merged) == merged

    @pytest.mark.parametrize("blocks", BLOCK_SETS)
    def test_merge_covers_the_same_minutes(self, blocks):
        assert _covered_minutes(merge_overlapping_blocks(blocks)) == _covered_minutes(blocks)

    @pytest.mark.parametrize("blocks", BLOCK_SETS)
    def test_free_and_occupied_partition_the_window(self, blocks):
        start, end = at(9), at(17)
        free = free_time_blocks(blocks, start, end)
        occupied = clip_blocks(merge_overlapping_blocks(blocks), start, end)
        free_minutes = _covered_minutes(free)
        occupied_minutes = _covered_minutes(occupied)
        assert free_minutes.isdisjoint(occupied_minutes)
        assert free_minutes | occupied_minutes == _covered_minutes([TimeBlock(start, end)])

    @pytest.mark.parametrize("blocks", BLOCK_SETS)
    def test_slot_freedom_agrees_with_free_blocks(self, blocks):
        for block in free_time_blocks(blocks, at(9), at(17)):
            assert is_slot_free(block.start, block.end, blocks)
        for block in blocks:
            assert not is_slot_free(block.start, block.end, blocks)


class TestEnergyProperties:

    @pytest.mark.parametrize("flags", [{}, {"is_critical": True}, {"is_backburner": True}])
    def test_cost_is_monotonic_in_duration(self, flags):
        costs = [energy_cost(minutes, **flags) for minutes in range(0, 241, 5)]
        assert costs == sorted(costs)

    @pytest.mark.parametrize("minutes", [0, 15, 240])
    def test_meal_gain_is_constant(self, minutes):
        assert energy_cost(minutes, is_critical=True, meal=True) == -10


class TestCompactionProperties:

    TASK_LISTS = [
        [
            make_task("f", "Fixed", at(10), at(11), is_flexible=False),
            make_task("a", "A", at(9), at(10)),
            make_task("b", "B", at(9), at(11), is_critical=True),
            make_task("c", "C", duration=25, break_duration=5),
        ],
        [
            make_task("l", "Locked", at(12), at(13), is_locked=True),
            make_task("d", "Done", at(9), at(9, 30), is_completed=True),
        ] + [make_task(f"t{i}", f"T{i}", duration=35 + i * 10) for i in range(6)],
    ]

    @pytest.mark.parametrize("tasks", TASK_LISTS)
    def test_no_two_tasks_overlap(self, tasks):
        result = compact_schedule(tasks, DAY, at(9), at(17), at(8))
        blocks = sorted(TimeBlock(t.start_time, t.end_time) for t in result)
        for earlier, later in zip(blocks, blocks[1:]):
            assert earlier.end <= later.start

    @pytest.mark.parametrize("tasks", TASK_LISTS)
    def test_fixed_tasks_are_unchanged(self, tasks):
        result = {t.id: t for t in compact_schedule(tasks, DAY, at(9), at(17), at(8))}
        for task in tasks:
            if not task.is_flexible or task.is_locked or task.is_completed:
                assert (result[task.id].start_time, result[task.id].end_time) == (task.start_time, task.end_time)

    def test_full_window_omits_the_flexible_task(self):
        tasks = [
            make_task("f", "Fixed", at(9), at(10), is_flexible=False),
            make_task("t", "Flexible", duration=30),
        ]
        result = compact_schedule(tasks, DAY, at(9), at(10), at(8))
        assert [t.id for t in result] == ["f"]


class TestParseExamples:

    def test_critical_duration_task(self):
        task = parse_quick_add_input("Write report 60 !", DAY)
        assert isinstance(task, DurationTask)
        assert (task.name, task.duration, task.is_critical, task.is_flexible) == ("Write report", 60, True, True)

    def test_timed_task(self):
        task = parse_quick_add_input("Email 9:00am - 9:30am", DAY)
        assert isinstance(task, FixedTimeTask)
        assert (task.name, task.start_time, task.end_time, task.is_flexible) == ("Email", at(9), at(9, 30), False)

    def test_backburner_with_space(self):
        task = parse_quick_add_input("- Tidy desk 20", DAY)
        assert (task.name, task.duration, task.is_backburner) == ("Tidy desk", 20, True)

    def test_time_off(self):
        task = parse_quick_add_input("time off 1pm - 2pm", DAY)
        assert isinstance(task, TimeOffTask)
        assert task.energy_cost == 0
        assert task.is_flexible is False


class TestMidnightScenario:

    def test_task_crossing_midnight(self):
        task = make_task("late", "Late call", at(23, 30), at(0, 15, day=DAY + timedelta(days=1)), is_flexible=False)
        schedule = calculate_schedule([task], DAY, at(9), at(17), at(8))
        item = schedule.items[0]
        assert item.end_time.date() == item.start_time.date() + timedelta(days=1)
        assert schedule.summary.extends_past_midnight is True

    def test_start_without_end_is_skipped_not_fatal(self):
        broken = make_task("broken", "Broken", start=at(10))
        fine = make_task("fine", "Fine", at(11), at(12))
        schedule = calculate_schedule([broken, fine], DAY, at(9), at(17), at(8))
        assert [item.id for item in schedule.items] == ["fine"]
        assert schedule.summary.unscheduled_count == 1
