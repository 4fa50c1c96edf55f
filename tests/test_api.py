"""
End-to-end tests through the HTTP API against an in-memory database.
"""

import pytest

from aetherflow.models import Profile, ScheduledTask
from tests.helpers import DAY, at

DAY_PARAM = DAY.isoformat()


def _quick_add(client, headers, text):
    return client.post("/schedule/quick-add", json={"text": text, "day": DAY_PARAM}, headers=headers)


def _command(client, headers, text):
    return client.post("/schedule/command", json={"text": text, "day": DAY_PARAM}, headers=headers)


def _items(client, headers):
    response = client.get("/schedule/", params={"day": DAY_PARAM}, headers=headers)
    assert response.status_code == 200
    return response.json()["schedule"]["items"]


def _sink(client, headers):
    return client.get("/sink/", headers=headers).json()


class TestAuth:
    """Registration, login and the profile endpoints."""

    def test_register_defaults(self, client):
        response = client.post("/users/register", json={"username": "lin", "password": "pw"})
        assert response.status_code == 200
        body = response.json()
        assert body["energy"] == 100
        assert body["level"] == 1
        assert body["timezone"] == "UTC"
        assert body["workday_start"] == "09:00:00"
        assert body["workday_end"] == "17:00:00"

    def test_duplicate_username(self, client, auth_headers):
        response = client.post("/users/register", json={"username": "ada", "password": "other"})
        assert response.status_code == 400

    def test_unknown_timezone(self, client):
        response = client.post("/users/register", json={"username": "lin", "password": "pw", "timezone": "Mars/Base"})
        assert response.status_code == 400

    def test_bad_password(self, client, auth_headers):
        response = client.post("/users/login", json={"username": "ada", "password": "wrong"})
        assert response.status_code == 401

    def test_missing_token(self, client):
        assert client.get("/schedule/").status_code in (401, 403)

    def test_garbage_token(self, client):
        response = client.get("/users/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_update_meals(self, client, auth_headers):
        response = client.put(
            "/users/me", json={"lunch_time": "12:00", "lunch_duration": 30}, headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["lunch_time"] == "12:00:00"
        assert response.json()["lunch_duration"] == 30

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"


class TestQuickAdd:
    """Quick-add places duration tasks in the first gap and pins timed ones."""

    def test_empty_day(self, client, auth_headers):
        body = client.get("/schedule/", params={"day": DAY_PARAM}, headers=auth_headers).json()
        assert body["schedule"]["items"] == []
        assert body["free_minutes"] == 480

    def test_duration_tasks_fill_from_workday_start(self, client, auth_headers):
        first = _quick_add(client, auth_headers, "Write report 60 !").json()["task"]
        second = _quick_add(client, auth_headers, "Email 30").json()["task"]
        assert first["start_time"] == "2030-01-07T09:00:00"
        assert first["end_time"] == "2030-01-07T10:00:00"
        assert first["is_critical"] is True
        assert first["energy_cost"] == 30
        assert second["start_time"] == "2030-01-07T10:00:00"

    def test_timed_task(self, client, auth_headers):
        task = _quick_add(client, auth_headers, "Gym 6pm - 7pm").json()["task"]
        assert task["start_time"] == "2030-01-07T18:00:00"
        assert task["is_flexible"] is False

    def test_time_off(self, client, auth_headers):
        _quick_add(client, auth_headers, "time off 1pm - 2pm")
        items = _items(client, auth_headers)
        assert items[0]["type"] == "time-off"
        assert items[0]["energy_cost"] == 0

    def test_sink_flag(self, client, auth_headers):
        body = _quick_add(client, auth_headers, "Read article 30 sink").json()
        assert body["task"] is None
        assert body["sink_task"]["name"] == "Read article"
        assert [row["name"] for row in _sink(client, auth_headers)] == ["Read article"]

    def test_meals_are_avoided(self, client, auth_headers):
        client.put("/users/me", json={"lunch_time": "12:00", "lunch_duration": 30}, headers=auth_headers)
        _quick_add(client, auth_headers, "Deep work 180")
        task = _quick_add(client, auth_headers, "Review 60").json()["task"]
        assert task["start_time"] == "2030-01-07T12:30:00"

    def test_no_room_goes_to_sink(self, client, auth_headers):
        _quick_add(client, auth_headers, "Offsite 9am - 5pm")
        body = _quick_add(client, auth_headers, "Write 30").json()
        assert body["task"] is None
        assert body["sink_task"]["name"] == "Write"
        assert "sink" in body["message"]

    def test_unparseable_text(self, client, auth_headers):
        assert _quick_add(client, auth_headers, "hello").status_code == 400


class TestInject:

    def _inject(self, client, headers, text):
        return client.post("/schedule/inject", json={"text": text, "day": DAY_PARAM}, headers=headers)

    def test_time_range(self, client, auth_headers):
        task = self._inject(client, auth_headers, 'inject "Call mom" 2pm - 3pm').json()["task"]
        assert task["start_time"] == "2030-01-07T14:00:00"
        assert task["end_time"] == "2030-01-07T15:00:00"

    def test_start_only_defaults_to_half_an_hour(self, client, auth_headers):
        task = self._inject(client, auth_headers, 'inject "Call mom" 2pm').json()["task"]
        assert task["end_time"] == "2030-01-07T14:30:00"

    def test_duration_fills_first_gap(self, client, auth_headers):
        _quick_add(client, auth_headers, "Standup 9am - 9:30am")
        task = self._inject(client, auth_headers, 'inject "Deep work" 45').json()["task"]
        assert task["start_time"] == "2030-01-07T09:30:00"

    def test_bare_hour_range(self, client, auth_headers):
        task = self._inject(client, auth_headers, 'inject "Call" 9 - 10').json()["task"]
        assert task["start_time"] == "2030-01-07T09:00:00"
        assert task["end_time"] == "2030-01-07T10:00:00"
        assert task["energy_cost"] == 20

    def test_sink_marker(self, client, auth_headers):
        body = self._inject(client, auth_headers, 'inject "Read paper" 40 sink').json()
        assert body["task"] is None
        assert body["sink_task"]["duration"] == 40
        assert [row["name"] for row in _sink(client, auth_headers)] == ["Read paper"]

    def test_start_with_bundled_break(self, client, auth_headers):
        task = self._inject(client, auth_headers, 'inject "Deep work" 60 1pm break 15').json()["task"]
        assert task["start_time"] == "2030-01-07T13:00:00"
        assert task["end_time"] == "2030-01-07T14:15:00"
        assert task["break_duration"] == 15

    def test_malformed(self, client, auth_headers):
        assert self._inject(client, auth_headers, "inject Call mom").status_code == 400


class TestTaskActions:
    """Completion, locking, retirement and compaction on stored rows."""

    def test_complete_grants_xp_once(self, client, auth_headers):
        task = _quick_add(client, auth_headers, "Write report 60 !").json()["task"]
        first = client.post(f"/schedule/tasks/{task['id']}/complete", headers=auth_headers).json()
        assert first["xp_gained"] == 60
        assert first["energy"] == 70
        assert first["task"]["is_completed"] is True

        second = client.post(f"/schedule/tasks/{task['id']}/complete", headers=auth_headers).json()
        assert second["xp_gained"] == 0
        assert second["energy"] == 70

        me = client.get("/users/me", headers=auth_headers).json()
        assert me["xp"] == 60
        assert me["energy"] == 70

    def test_completed_flexible_task_leaves_the_timeline(self, client, auth_headers):
        task = _quick_add(client, auth_headers, "Email 30").json()["task"]
        client.post(f"/schedule/tasks/{task['id']}/complete", headers=auth_headers)
        assert _items(client, auth_headers) == []

    def test_lock_toggles(self, client, auth_headers):
        task = _quick_add(client, auth_headers, "Email 30").json()["task"]
        assert client.post(f"/schedule/tasks/{task['id']}/lock", headers=auth_headers).json()["is_locked"] is True
        assert client.post(f"/schedule/tasks/{task['id']}/lock", headers=auth_headers).json()["is_locked"] is False

    def test_retire_moves_to_sink(self, client, auth_headers):
        task = _quick_add(client, auth_headers, "Write report 60 10").json()["task"]
        retired = client.post(f"/schedule/tasks/{task['id']}/retire", headers=auth_headers).json()
        assert retired["duration"] == 60
        assert retired["break_duration"] == 10
        assert _items(client, auth_headers) == []
        assert len(_sink(client, auth_headers)) == 1

    def test_unknown_task(self, client, auth_headers):
        assert client.post("/schedule/tasks/missing/complete", headers=auth_headers).status_code == 404

    def test_compact_closes_gaps(self, client, auth_headers):
        first = _quick_add(client, auth_headers, "Write report 60").json()["task"]
        _quick_add(client, auth_headers, "Email 30")
        client.post(f"/schedule/tasks/{first['id']}/retire", headers=auth_headers)

        response = client.post("/schedule/compact", params={"day": DAY_PARAM}, headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["placed"] == 1
        assert body["unplaced"] == 0
        items = body["schedule"]["schedule"]["items"]
        assert items[0]["name"] == "Email"
        assert items[0]["start_time"] == "2030-01-07T09:00:00"


class TestCalendarImports:
    """Rows imported from an external calendar are read-only."""

    @pytest.fixture
    def imported(self, client, auth_headers, db_session):
        profile = db_session.query(Profile).filter_by(username="ada").first()
        row = ScheduledTask(
            user_id=profile.id, name="Board meeting", start_time=at(13), end_time=at(14),
            scheduled_date=DAY, is_flexible=False, source_calendar_id="cal-1",
        )
        db_session.add(row)
        db_session.commit()
        return row.id

    @pytest.mark.parametrize("action", ["complete", "lock", "retire"])
    def test_actions_are_forbidden(self, client, auth_headers, imported, action):
        response = client.post(f"/schedule/tasks/{imported}/{action}", headers=auth_headers)
        assert response.status_code == 403

    def test_shown_as_calendar_event(self, client, auth_headers, imported):
        item = _items(client, auth_headers)[0]
        assert item["type"] == "calendar-event"
        assert item["description"] == "External Calendar Event"

    def test_clear_keeps_imports(self, client, auth_headers, imported):
        _quick_add(client, auth_headers, "Email 30")
        _command(client, auth_headers, "clear")
        assert [item["name"] for item in _items(client, auth_headers)] == ["Board meeting"]

    def test_remove_is_forbidden(self, client, auth_headers, imported):
        assert _command(client, auth_headers, "remove board").status_code == 403


class TestCommands:

    def test_break(self, client, auth_headers):
        body = _command(client, auth_headers, "break 20").json()
        assert body["message"] == "Added a 20 minute break"
        item = body["schedule"]["schedule"]["items"][0]
        assert item["name"] == "Break"
        assert item["type"] == "break"
        assert item["duration"] == 20

    def test_clear_keeps_locked_rows(self, client, auth_headers):
        keep = _quick_add(client, auth_headers, "Email 30").json()["task"]
        _quick_add(client, auth_headers, "Write report 60")
        client.post(f"/schedule/tasks/{keep['id']}/lock", headers=auth_headers)
        assert _command(client, auth_headers, "clear").json()["message"] == "Cleared 1 tasks"
        assert [item["name"] for item in _items(client, auth_headers)] == ["Email"]

    def test_remove_by_index(self, client, auth_headers):
        _quick_add(client, auth_headers, "Email 30")
        _quick_add(client, auth_headers, "Write report 60")
        _command(client, auth_headers, "remove index 1")
        assert [item["name"] for item in _items(client, auth_headers)] == ["Write report"]

    def test_remove_by_name(self, client, auth_headers):
        _quick_add(client, auth_headers, "Email 30")
        _quick_add(client, auth_headers, "Write report 60")
        _command(client, auth_headers, "remove REPORT")
        assert [item["name"] for item in _items(client, auth_headers)] == ["Email"]

    def test_aether_dump_keeps_fixed_rows(self, client, auth_headers):
        _quick_add(client, auth_headers, "Email 30")
        _quick_add(client, auth_headers, "Gym 6pm - 7pm")
        body = _command(client, auth_headers, "aether dump").json()
        assert body["message"] == "Moved 1 tasks to the sink"
        assert [item["name"] for item in _items(client, auth_headers)] == ["Gym"]
        assert [row["name"] for row in _sink(client, auth_headers)] == ["Email"]

    def test_hint_commands_do_not_mutate(self, client, auth_headers):
        _quick_add(client, auth_headers, "Email 30")
        assert _command(client, auth_headers, "show").status_code == 200
        assert len(_items(client, auth_headers)) == 1

    def test_bare_remove_answers_with_a_hint(self, client, auth_headers):
        _quick_add(client, auth_headers, "Email 30")
        response = _command(client, auth_headers, "remove")
        assert response.status_code == 200
        assert response.json()["message"].startswith("Say which task to remove")
        assert len(_items(client, auth_headers)) == 1

    def test_unknown_command(self, client, auth_headers):
        assert _command(client, auth_headers, "dance").status_code == 400


class TestSinkAndBalance:

    def test_sink_quick_add(self, client, auth_headers):
        response = client.post("/sink/", json={"text": "-Plan trip 45 !"}, headers=auth_headers)
        body = response.json()
        assert body["name"] == "Plan trip"
        assert body["duration"] == 45
        assert body["is_critical"] is True
        assert body["is_backburner"] is True
        assert body["task_environment"] == "laptop"

    def test_empty_sink_text(self, client, auth_headers):
        assert client.post("/sink/", json={"text": " "}, headers=auth_headers).status_code == 400

    def test_rezone(self, client, auth_headers):
        sink_row = client.post("/sink/", json={"text": "Read 30"}, headers=auth_headers).json()
        response = client.post(f"/sink/{sink_row['id']}/rezone", json={"day": DAY_PARAM}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["start_time"] == "2030-01-07T09:00:00"
        assert _sink(client, auth_headers) == []

    def test_rezone_without_room(self, client, auth_headers):
        _quick_add(client, auth_headers, "Offsite 9am - 5pm")
        sink_row = client.post("/sink/", json={"text": "Read 30"}, headers=auth_headers).json()
        response = client.post(f"/sink/{sink_row['id']}/rezone", json={"day": DAY_PARAM}, headers=auth_headers)
        assert response.status_code == 409

    def test_rezone_unknown(self, client, auth_headers):
        response = client.post("/sink/missing/rezone", json={"day": DAY_PARAM}, headers=auth_headers)
        assert response.status_code == 404

    def test_auto_balance_pulls_from_sink(self, client, auth_headers):
        _quick_add(client, auth_headers, "Standup 9am - 9:30am")
        client.post("/sink/", json={"text": "Read 30"}, headers=auth_headers)
        response = client.post("/schedule/auto-balance", json={"day": DAY_PARAM}, headers=auth_headers)
        assert response.status_code == 200
        items = response.json()["schedule"]["schedule"]["items"]
        assert [(item["name"], item["start_time"]) for item in items] == [
            ("Standup", "2030-01-07T09:00:00"),
            ("Read", "2030-01-07T09:30:00"),
        ]
        assert _sink(client, auth_headers) == []


class TestRegenPod:

    def test_exit_without_pod(self, client, auth_headers):
        assert client.post("/regen-pod/exit", headers=auth_headers).status_code == 400

    def test_pod_lifecycle(self, client, auth_headers):
        started = client.post("/regen-pod/start", json={"duration": 30}, headers=auth_headers).json()
        assert started["regen_pod_duration"] == 30

        exited = client.post("/regen-pod/exit", headers=auth_headers).json()
        assert exited["energy_gained"] == 0
        assert exited["energy"] == 100
        assert client.get("/users/me", headers=auth_headers).json()["regen_pod_start_time"] is None

    def test_invalid_duration(self, client, auth_headers):
        assert client.post("/regen-pod/start", json={"duration": 0}, headers=auth_headers).status_code == 422
