"""Computing when a date-based reminder timer should next wake and fire."""

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo

from kanbot.timer import Timer


def _go_weekday(moment: datetime) -> int:
    """Weekday with Sunday as 0."""
    return (moment.weekday() + 1) % 7


def _normalized_date(
    year: int,
    month: int,
    day: int,
    hour: int,
    minute: int,
    second: int,
    microsecond: int,
    tz: tzinfo | None,
) -> datetime:
    """Build a datetime, letting out-of-range fields roll into the next unit."""
    carry, month_index = divmod(month - 1, 12)
    base = datetime(year + carry, month_index + 1, 1, tzinfo=tz)
    return base + timedelta(
        days=day - 1, hours=hour, minutes=minute, seconds=second, microseconds=microsecond
    )


def _add_date(moment: datetime, years: int, months: int, days: int) -> datetime:
    return _normalized_date(
        moment.year + years,
        moment.month + months,
        moment.day + days,
        moment.hour,
        moment.minute,
        moment.second,
        moment.microsecond,
        moment.tzinfo,
    )


def first_weekday(date: datetime, weekday: int) -> datetime:
    """Return the first day of ``date``'s month falling on ``weekday`` (Sunday is 0)."""
    if not 0 <= weekday <= 6:
        raise ValueError(f"weekday out of range: {weekday}")
    moment = _add_date(date, 0, 0, 1 - date.day)
    while _go_weekday(moment) != weekday:
        moment = _add_date(moment, 0, 0, 1)
    return moment


def next_wake_time(timer: Timer, now: datetime | None = None) -> datetime:
    """Return the next moment after ``now`` at which ``timer`` should be checked."""
    if now is None:
        now = datetime.now()
    month, day, hour, minute, week = (
        timer.month,
        timer.day,
        timer.hour,
        timer.minute,
        timer.week,
    )

    unit = timedelta(0)
    if minute >= 0:
        if hour < 0:
            unit = timedelta(hours=1)
        elif day < 0 or week < 0:
            unit = timedelta(days=1)
        elif day == 0 and week >= 0:
            delta = timedelta(days=week - _go_weekday(now))
            if delta < timedelta(0):
                delta = timedelta(days=7)
            unit += delta
    else:
        unit = timedelta(minutes=1)

    stable = 0
    if minute < 0:
        minute = now.minute
    if hour < 0:
        hour = now.hour
    else:
        stable |= 0x8
    if day < 0:
        day = now.day
    elif day > 0:
        stable |= 0x4
    else:
        day = now.day
        if week >= 0:
            stable |= 0x2
    if month < 0:
        month = now.month
    else:
        stable |= 0x1

    if stable == 0b0101:
        if timer.day != now.day or timer.month != now.month:
            hour = 0
    elif stable == 0b1001:
        if timer.month != now.month:
            day = 0
    elif stable == 0b0001:
        if timer.month != now.month:
            day = 0
            hour = 0

    date = _normalized_date(
        now.year, month, day, hour, minute, now.second, now.microsecond, now.tzinfo
    )
    if unit > timedelta(0):
        date += unit

    if date <= now:
        if timer.month < 0:
            if timer.day > 0 or (timer.day == 0 and timer.week >= 0):
                date = _add_date(date, 0, 1, 0)
            elif timer.day < 0 or timer.week < 0:
                if timer.hour > 0:
                    date = _add_date(date, 0, 0, 1)
                elif timer.minute > 0:
                    date += timedelta(hours=1)
        else:
            date = _add_date(date, 1, 0, 0)

    one_hour = timedelta(hours=1)
    if stable & 0x8 and date.hour != hour:
        if stable & 0x4 == 0:
            date = _add_date(date, 0, 0, 1) - one_hour
        elif stable & 0x2 == 0:
            date = _add_date(date, 0, 0, 7) - one_hour
        elif stable == 0:
            date = _add_date(date, 0, 1, 0) - one_hour
        else:
            date = _add_date(date, 1, 0, 0) - one_hour

    if stable & 0x4 and date.day != day:
        if stable == 0:
            date = _add_date(date, 0, 1, -1)
        else:
            date = _add_date(date, 1, 0, -1)

    if stable & 0x2 and _go_weekday(date) != week:
        if stable == 0:
            date = _add_date(date, 0, 1, 0)
        else:
            date = _add_date(date, 1, 0, 0)
        date = first_weekday(date, week)

    if date <= now:
        date = now + timedelta(minutes=1)
    return date


def should_fire(timer: Timer, now: datetime) -> bool:
    """Tell whether an enabled timer matches ``now`` and its alert should be sent."""
    if not timer.enabled:
        return False
    if timer.month >= 0 and timer.month != now.month:
        return False
    if timer.day < 0 or timer.day == now.day:
        pass
    elif timer.day == 0:
        if timer.week >= 0 and timer.week != _go_weekday(now):
            return False
    else:
        return False
    if timer.hour >= 0 and timer.hour != now.hour:
        return False
    return timer.minute < 0 or timer.minute == now.minute