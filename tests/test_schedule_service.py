"""
Service-level tests that pin "now" to exercise today-specific behaviour.
"""

from datetime import datetime, timedelta

import pytz

from aetherflow.models import ScheduledTask
from aetherflow.services.schedule_service import schedule_service, DayContext
from aetherflow.celery_tasks.schedule import compact_profile_today
from tests.helpers import DAY, at


def _utc(value: datetime) -> datetime:
    return pytz.utc.localize(value)


def _add(db, profile, name, start=None, end=None, **fields):
    row = ScheduledTask(user_id=profile.id, name=name, start_time=start, end_time=end, scheduled_date=DAY, **fields)
    db.add(row)
    db.commit()
    return row


class TestDayContext:

    def test_day_follows_profile_timezone(self, profile):
        profile.timezone = "Asia/Tokyo"
        ctx = DayContext(profile, now_utc=_utc(datetime(2030, 1, 6, 23, 30)))
        assert ctx.day == DAY
        assert ctx.now == at(8, 30)
        assert ctx.workday_start == at(9)
        assert ctx.search_start == at(9)

    def test_search_starts_at_now_during_the_workday(self, profile):
        ctx = DayContext(profile, DAY, now_utc=_utc(at(11, 15)))
        assert ctx.is_today is True
        assert ctx.search_start == at(11, 15)

    def test_search_start_drops_seconds(self, profile):
        ctx = DayContext(profile, DAY, now_utc=_utc(at(11, 15).replace(second=30, microsecond=250)))
        assert ctx.search_start == at(11, 15)

    def test_meals_from_profile(self, profile):
        profile.lunch_time = at(12).time()
        profile.lunch_duration = 45
        ctx = DayContext(profile, DAY)
        assert [(meal.name, meal.duration, meal.emoji) for meal in ctx.meal_times] == [("Lunch", 45, "🥗")]


class TestCompactDayWriteBack:
    """Compaction results are written back in one transaction."""

    def test_today_moves_to_now_and_leaves_ended_rows(self, db_session, profile):
        ended = _add(db_session, profile, "Ended", at(9), at(10))
        focus = _add(db_session, profile, "Focus", at(14), at(15))

        ctx = DayContext(profile, DAY, now_utc=_utc(at(12)))
        result = schedule_service.compact_day(db_session, profile, ctx)

        assert result.placed == 1
        db_session.refresh(ended)
        db_session.refresh(focus)
        assert (ended.start_time, ended.end_time) == (at(9), at(10))
        assert (focus.start_time, focus.end_time) == (at(12), at(13))

    def test_unplaced_rows_keep_their_duration(self, db_session, profile):
        _add(db_session, profile, "Offsite", at(12), at(17), is_flexible=False)
        focus = _add(db_session, profile, "Focus", at(13), at(14))

        ctx = DayContext(profile, DAY, now_utc=_utc(at(12)))
        result = schedule_service.compact_day(db_session, profile, ctx)

        assert result.unplaced == 1
        assert result.schedule.schedule.summary.unscheduled_count == 1
        db_session.refresh(focus)
        assert focus.start_time is None
        assert focus.duration == 60

    def test_unplaced_rows_are_placed_again_later(self, db_session, profile):
        focus = _add(db_session, profile, "Focus", duration=60)
        ctx = DayContext(profile, DAY, now_utc=_utc(at(8)))
        schedule_service.compact_day(db_session, profile, ctx)
        db_session.refresh(focus)
        assert (focus.start_time, focus.end_time) == (at(9), at(10))

    def test_regen_pod_blocks_placement(self, db_session, profile):
        profile.regen_pod_start_time = at(9)
        profile.regen_pod_duration = 30
        db_session.commit()
        focus = _add(db_session, profile, "Focus", at(14), at(15))

        ctx = DayContext(profile, DAY, now_utc=_utc(at(8)))
        schedule_service.compact_day(db_session, profile, ctx)
        db_session.refresh(focus)
        assert focus.start_time == at(9, 30)


class TestBreakCommand:
    """The break command keeps its row only when the break finds a slot."""

    def _breaks(self, db, profile):
        return db.query(ScheduledTask).filter(ScheduledTask.user_id == profile.id, ScheduledTask.name == "Break").all()

    def test_full_day_leaves_no_break_behind(self, db_session, profile):
        _add(db_session, profile, "Offsite", at(9), at(17), is_flexible=False)

        ctx = DayContext(profile, DAY, now_utc=_utc(at(8)))
        result = schedule_service.run_command(db_session, profile, ctx, "break 30")

        assert result.message == "No room for a break"
        assert self._breaks(db_session, profile) == []
        assert result.schedule.schedule.summary.unscheduled_count == 0

    def test_unrelated_unplaced_row_does_not_hide_the_break(self, db_session, profile):
        _add(db_session, profile, "Offsite", at(9), at(16, 30), is_flexible=False)
        _add(db_session, profile, "Focus", duration=60)

        ctx = DayContext(profile, DAY, now_utc=_utc(at(8)))
        result = schedule_service.run_command(db_session, profile, ctx, "break 15")

        assert result.message == "Added a 15 minute break"
        [row] = self._breaks(db_session, profile)
        assert (row.start_time, row.end_time) == (at(16, 30), at(16, 45))


class TestRegenPodExit:

    def test_elapsed_is_capped_at_pod_length(self, db_session, profile):
        profile.energy = 50
        schedule_service.start_regen_pod(db_session, profile, DayContext(profile, now_utc=_utc(at(9))), 20)

        later = DayContext(profile, now_utc=_utc(at(10)))
        elapsed, gained = schedule_service.exit_regen_pod(db_session, profile, later)
        assert elapsed == 20
        assert gained == 20
        assert profile.energy == 70


class TestBackgroundCompaction:

    def test_compacts_today_for_a_profile(self, db_session, profile):
        tomorrow = datetime.utcnow().date() + timedelta(days=1)
        row = ScheduledTask(user_id=profile.id, name="Tomorrow", duration=30, scheduled_date=tomorrow)
        db_session.add(row)
        db_session.commit()

        assert compact_profile_today(profile, db_session) == 0
        db_session.refresh(row)
        assert row.start_time is None
