"""Slacker's daily reminder: days to the weekend and to public holidays."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable

HOLIDAY_NAMES = ("元旦", "春节", "清明节", "劳动节", "端午节", "中秋节", "国庆节")
GREETING = (
    "上午好，摸鱼人！\n工作再累，一定不要忘记摸鱼哦！有事没事起身去茶水间，去厕所，"
    "去廊道走走别老在工位上坐着，钱是老板的,但命是自己的。\n"
)
CLOSING = "上班是帮老板赚钱，摸鱼是赚老板的钱！最后，祝愿天下所有摸鱼人，都能愉快的渡过每一天…"

_RECORD = re.compile(r"\s*(-?\d+)_(-?\d+)_(-?\d+)_(-?\d+)")


def _normalized_date(year: int, month: int, day: int) -> datetime:
    """Midnight of a date, letting month and day overflow into neighbours."""
    extra_years, month_index = divmod(month - 1, 12)
    return datetime(year + extra_years, month_index + 1, 1) + timedelta(days=day - 1)


@dataclass(frozen=True)
class Holiday:
    """A public holiday starting at ``date`` and lasting ``duration``."""

    name: str
    date: datetime
    duration: timedelta

    def describe(self, now: datetime) -> str:
        """How long until the holiday, or whether it is on or over."""
        remaining = self.date - now
        if remaining >= timedelta(0):
            days = remaining / timedelta(days=1)
            return f"距离{self.name}还有: {days:.2f}天！"
        if remaining + self.duration >= timedelta(0):
            return f"好好享受 {self.name} 假期吧!"
        return f"今年 {self.name} 假期已过"


def format_holiday(dur: int, year: int, month: int, day: int) -> str:
    """Encode a holiday record as ``days_year_month_day``."""
    return f"{dur}_{year}_{month}_{day}"


def parse_holiday(name: str, record: str) -> Holiday:
    """Decode a ``days_year_month_day`` record; raise ValueError if malformed."""
    found = _RECORD.match(record)
    if not found:
        raise ValueError(f"invalid holiday record: {record!r}")
    dur, year, month, day = (int(group) for group in found.groups())
    return Holiday(name, _normalized_date(year, month, day), timedelta(days=dur))


def weekend_message(today: date) -> str:
    """Days left to the weekend, or a cheer when it is already here."""
    weekday = (today.weekday() + 1) % 7  # Sunday is 0
    if weekday in (0, 6):
        return "好好享受周末吧！"
    return f"距离周末还有:{5 - weekday}天！"


def moyu_message(now: datetime, holidays: Iterable[Holiday]) -> str:
    """The whole daily reminder text."""
    lines = "".join("\n" + holiday.describe(now) for holiday in holidays)
    return now.strftime("%Y-%m-%d") + GREETING + weekend_message(now) + lines + "\n" + CLOSING