"""Running reminder timers: cron schedules, persistence and background firing."""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterator, Mapping

from kanbot.schedule import next_wake_time, should_fire
from kanbot.timer import Timer

logger = logging.getLogger(__name__)

Segment = dict
Sender = Callable[[int, int, list], None]

_MONTH_NAMES = {
    name: index
    for index, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}
_DAY_NAMES = {
    name: index for index, name in enumerate(("sun", "mon", "tue", "wed", "thu", "fri", "sat"))
}
_DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}
_SEARCH_YEARS = 5


def _field_value(token: str, names: Mapping[str, int]) -> int:
    lowered = token.lower()
    if lowered in names:
        return names[lowered]
    if token.isascii() and token.isdigit():
        return int(token)
    raise ValueError(f"invalid cron value: {token!r}")


def _parse_field(text: str, low: int, high: int, names: Mapping[str, int]) -> frozenset[int]:
    values: set[int] = set()
    for part in text.split(","):
        range_part, slash, step_text = part.partition("/")
        if slash:
            if not (step_text.isascii() and step_text.isdigit()) or int(step_text) == 0:
                raise ValueError(f"invalid cron step: {part!r}")
            step = int(step_text)
        else:
            step = 1
        if range_part in ("*", "?"):
            start, end = low, high
        else:
            start_text, dash, end_text = range_part.partition("-")
            start = _field_value(start_text, names)
            if dash:
                end = _field_value(end_text, names)
            else:
                end = high if slash else start
        if not low <= start <= end <= high:
            raise ValueError(f"cron value out of range ({low}-{high}): {part!r}")
        values.update(range(start, end + 1, step))
    return frozenset(values)


def _go_weekday(moment: datetime) -> int:
    return (moment.weekday() + 1) % 7


@dataclass(frozen=True)
class CronSchedule:
    """A five-field cron schedule: minute, hour, day of month, month, day of week."""

    minutes: frozenset[int]
    hours: frozenset[int]
    days: frozenset[int]
    months: frozenset[int]
    weekdays: frozenset[int]
    day_star: bool
    weekday_star: bool

    @classmethod
    def parse(cls, expression: str) -> "CronSchedule":
        """Parse a cron expression or one of the @-descriptors; raise ValueError."""
        expression = _DESCRIPTORS.get(expression.strip().lower(), expression)
        fields = expression.split()
        if len(fields) != 5:
            raise ValueError(f"expected exactly 5 fields, found {len(fields)}: {expression!r}")
        minute, hour, day, month, weekday = fields
        weekdays = _parse_field(weekday, 0, 7, _DAY_NAMES)
        return cls(
            minutes=_parse_field(minute, 0, 59, {}),
            hours=_parse_field(hour, 0, 23, {}),
            days=_parse_field(day, 1, 31, {}),
            months=_parse_field(month, 1, 12, _MONTH_NAMES),
            weekdays=frozenset(value % 7 for value in weekdays),
            day_star=day in ("*", "?"),
            weekday_star=weekday in ("*", "?"),
        )

    def _day_matches(self, moment: datetime) -> bool:
        in_month = moment.day in self.days
        in_week = _go_weekday(moment) in self.weekdays
        if self.day_star or self.weekday_star:
            return in_month and in_week
        return in_month or in_week

    def next_after(self, moment: datetime) -> datetime:
        """Return the first whole minute strictly after ``moment`` that matches."""
        current = moment.replace(second=0, microsecond=0) + timedelta(minutes=1)
        last_year = current.year + _SEARCH_YEARS
        while current.year <= last_year:
            if current.month not in self.months:
                year = current.year + (current.month == 12)
                current = datetime(year, current.month % 12 + 1, 1, tzinfo=current.tzinfo)
            elif not self._day_matches(current):
                current = current.replace(hour=0, minute=0) + timedelta(days=1)
            elif current.hour not in self.hours:
                current = current.replace(minute=0) + timedelta(hours=1)
            elif current.minute not in self.minutes:
                current += timedelta(minutes=1)
            else:
                return current
        raise ValueError("cron schedule never fires")


def alert_message(timer: Timer) -> list[Segment]:
    """Build the message segments a timer sends: @all, its alert and its image."""
    segments: list[Segment] = [
        {"type": "at", "data": {"qq": "all"}},
        {"type": "text", "data": {"text": timer.alert}},
    ]
    if timer.url:
        segments.append({"type": "image", "data": {"file": timer.url, "cache": "0"}})
    return segments


def _no_sender(self_id: int, group_id: int, message: list) -> None:
    logger.debug("no sender configured, dropping alert for group %d", group_id)


class Clock:
    """Keeps reminder timers in SQLite and fires them from background threads."""

    def __init__(
        self,
        path: str = ":memory:",
        send: Sender | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.RLock()
        self._send = send or _no_sender
        self._now = now or datetime.now
        self._timers: dict[int, Timer] = {}
        self._jobs: dict[int, threading.Event] = {}
        with self._lock, self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS timer ("
                "id INTEGER PRIMARY KEY, emdwhm INTEGER, sid INTEGER, gid INTEGER, "
                "alert TEXT, cron TEXT, url TEXT)"
            )
        for timer in self._stored_timers():
            self.register_timer(timer, save=False)

    def __enter__(self) -> "Clock":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _stored_timers(self) -> Iterator[Timer]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT id, emdwhm, sid, gid, alert, cron, url FROM timer"
            ).fetchall()
        for row in rows:
            yield Timer(*row)

    def register_timer(self, timer: Timer, save: bool = True) -> bool:
        """Schedule ``timer``; with ``save`` it gets its id and is stored.

        Returns False when a cron expression does not parse (the reason is
        left in ``timer.alert``) or a dated timer is not enabled.
        """
        key = timer.timer_id() if save else timer.id
        if save:
            timer.id = key
        existing = self.get_timer(key)
        if existing is not None and existing is not timer:
            existing.enabled = False
            self._stop_job(key)
        logger.info("registering timer %08x", key)
        if timer.cron:
            try:
                schedule = CronSchedule.parse(timer.cron)
            except ValueError as err:
                timer.alert = str(err)
                return False
            if save:
                self.add_timer_to_db(timer)
            self.add_timer_to_map(timer)
            self._start(key, self._run_cron, timer, schedule)
            return True
        if save:
            self.add_timer_to_db(timer)
        self.add_timer_to_map(timer)
        if not timer.enabled:
            return False
        self._start(key, self._run_dated, timer)
        return True

    def cancel_timer(self, key: int) -> bool:
        """Stop and forget the timer with ``key``; False if there is none."""
        timer = self.get_timer(key)
        if timer is None:
            return False
        timer.enabled = False
        self._stop_job(key)
        with self._lock, self._conn:
            self._timers.pop(key, None)
            self._conn.execute("DELETE FROM timer WHERE id = ?", (key,))
        return True

    def list_timers(self, group_id: int) -> list[str]:
        """Describe every timer of a group, one line each."""
        with self._lock:
            timers = [t for t in self._timers.values() if t.group_id == group_id]
        lines = []
        for timer in timers:
            info = timer.timer_info()
            text = info[info.index("]") + 1 :] + "\n"
            text = text.replace("-1", "每")
            text = text.replace("月0日0周", "月周天")
            text = text.replace("月0日", "月")
            text = text.replace("日0周", "日")
            lines.append(text)
        return lines

    def get_timer(self, key: int) -> Timer | None:
        with self._lock:
            return self._timers.get(key)

    def add_timer_to_db(self, timer: Timer) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO timer (id, emdwhm, sid, gid, alert, cron, url) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    timer.id,
                    timer.packed,
                    timer.self_id,
                    timer.group_id,
                    timer.alert,
                    timer.cron,
                    timer.url,
                ),
            )

    def add_timer_to_map(self, timer: Timer) -> None:
        with self._lock:
            self._timers[timer.id] = timer

    def close(self) -> None:
        """Stop every background timer and close the database."""
        with self._lock:
            jobs = list(self._jobs.values())
            self._jobs.clear()
        for stop in jobs:
            stop.set()
        with self._lock:
            self._conn.close()

    def _start(self, key: int, target: Callable, *args: object) -> None:
        self._stop_job(key)
        stop = threading.Event()
        with self._lock:
            self._jobs[key] = stop
        threading.Thread(
            target=target, args=(stop, *args), name=f"timer-{key:08x}", daemon=True
        ).start()

    def _stop_job(self, key: int) -> None:
        with self._lock:
            stop = self._jobs.pop(key, None)
        if stop is not None:
            stop.set()

    def _delay_until(self, moment: datetime) -> float:
        return max((moment - self._now()).total_seconds(), 0.0)

    def _run_cron(self, stop: threading.Event, timer: Timer, schedule: CronSchedule) -> None:
        while True:
            wake = schedule.next_after(self._now())
            if stop.wait(self._delay_until(wake)):
                return
            self._fire(timer)

    def _run_dated(self, stop: threading.Event, timer: Timer) -> None:
        while timer.enabled:
            wake = next_wake_time(timer, self._now())
            if stop.wait(self._delay_until(wake)):
                return
            if should_fire(timer, self._now()):
                self._fire(timer)

    def _fire(self, timer: Timer) -> None:
        try:
            self._send(timer.self_id, timer.group_id, alert_message(timer))
        except Exception:
            logger.exception("sending alert of timer %08x failed", timer.id)