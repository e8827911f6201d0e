from datetime import datetime

import pytest

from kanbot.clock import Clock, CronSchedule, alert_message
from kanbot.timer import Timer, filled_cron_timer, filled_timer


@pytest.fixture
def clock():
    with Clock() as c:
        yield c


def test_cron_daily_time():
    schedule = CronSchedule.parse("30 8 * * *")
    assert schedule.next_after(datetime(2022, 10, 1, 8, 0)) == datetime(2022, 10, 1, 8, 30)
    assert schedule.next_after(datetime(2022, 10, 1, 8, 30)) == datetime(2022, 10, 2, 8, 30)


def test_cron_descriptor_hourly():
    schedule = CronSchedule.parse("@hourly")
    assert schedule.next_after(datetime(2022, 10, 1, 10, 15)) == datetime(2022, 10, 1, 11, 0)


def test_cron_weekday():
    schedule = CronSchedule.parse("0 9 * * mon")
    assert schedule.next_after(datetime(2022, 10, 1, 12, 0)) == datetime(2022, 10, 3, 9, 0)


def test_cron_step_and_list():
    schedule = CronSchedule.parse("*/15 1,3 * * *")
    assert schedule.minutes == frozenset({0, 15, 30, 45})
    assert schedule.hours == frozenset({1, 3})


@pytest.mark.parametrize("expression", ["61 * * * *", "* * *", "a b c d e", "*/0 * * * *"])
def test_cron_invalid(expression):
    with pytest.raises(ValueError):
        CronSchedule.parse(expression)


def test_alert_message_without_url():
    assert alert_message(Timer(alert="hi")) == [
        {"type": "at", "data": {"qq": "all"}},
        {"type": "text", "data": {"text": "hi"}},
    ]


def test_alert_message_with_url():
    message = alert_message(Timer(alert="hi", url="http://img.example.com/a.png"))
    assert message[-1] == {
        "type": "image",
        "data": {"file": "http://img.example.com/a.png", "cache": "0"},
    }


def test_register_cron_timer_lists_and_cancels(clock):
    timer = filled_cron_timer("30 8 * * *", "wake", "", 0, 7)
    assert clock.register_timer(timer, save=True) is True
    assert timer.id == timer.timer_id()
    assert clock.get_timer(timer.id) is timer
    assert clock.list_timers(7) == ["30 8 * * *\n"]
    assert clock.list_timers(8) == []
    assert clock.cancel_timer(timer.id) is True
    assert clock.get_timer(timer.id) is None
    assert clock.cancel_timer(timer.id) is False


def test_register_invalid_cron(clock):
    timer = filled_cron_timer("99 * * * *", "wake", "", 0, 7)
    assert clock.register_timer(timer, save=True) is False
    assert "out of range" in timer.alert
    assert clock.list_timers(7) == []


def test_register_dated_timer_listing(clock):
    timer = filled_timer(["", "12", "1日", "8", "0", "", "a"], 0, 1, False)
    assert clock.register_timer(timer, save=True) is True
    assert clock.list_timers(1) == ["12月1日8:0\n"]


def test_every_week_listing(clock):
    timer = filled_timer(["", "每", "每周", "8", "30", "", "a"], 0, 1, False)
    clock.register_timer(timer, save=True)
    assert clock.list_timers(1) == ["每月每周8:30\n"]


def test_duplicate_registration_disables_old(clock):
    first = filled_timer(["", "12", "1日", "8", "0", "", "a"], 0, 1, False)
    second = filled_timer(["", "12", "1日", "8", "0", "", "b"], 0, 1, False)
    clock.register_timer(first, save=True)
    clock.register_timer(second, save=True)
    assert first.enabled is False
    assert clock.get_timer(second.id) is second


def test_add_timer_into_db_then_reload(tmp_path):
    path = str(tmp_path / "test.db")
    timer = filled_timer(["", "12", "-1", "12", "0", "", "test"], 0, 0, False)
    with Clock(path) as first:
        first.add_timer_to_db(timer)
        assert first.list_timers(0) == []
    with Clock(path) as second:
        assert second.list_timers(0) == ["12月1周12:0\n"]
        assert second.get_timer(0).alert == "test"


def test_saved_timer_survives_reopen(tmp_path):
    path = str(tmp_path / "timers.db")
    timer = filled_cron_timer("0 9 * * 1", "meeting", "", 0, 5)
    with Clock(path) as first:
        first.register_timer(timer, save=True)
    with Clock(path) as second:
        loaded = second.get_timer(timer.id)
        assert loaded.cron == "0 9 * * 1"
        assert loaded.alert == "meeting"
        assert second.cancel_timer(timer.id) is True
    with Clock(path) as third:
        assert third.get_timer(timer.id) is None