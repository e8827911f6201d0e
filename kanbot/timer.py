"""Reminder timers: packed date fields, identifiers and parsing of Chinese dates."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Sequence

_FIELD_BITS = 0xFFFFFF
_ENABLED_BIT = 0x800000
_DIGITS = "零一二三四五六七八九十"
_EVERY = "每"


class _PackedField:
    """A signed bit field stored inside ``Timer.packed``; all ones reads as -1."""

    def __init__(self, shift: int, width: int) -> None:
        self.shift = shift
        self.all_ones = (1 << width) - 1
        self.mask = self.all_ones << shift

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, obj: "Timer | None", owner: type | None = None):
        if obj is None:
            return self
        value = (obj.packed & self.mask) >> self.shift
        return -1 if value == self.all_ones else value

    def __set__(self, obj: "Timer", value: int) -> None:
        kept = obj.packed & (_FIELD_BITS ^ self.mask)
        obj.packed = ((value << self.shift) & self.mask) | kept


@dataclass
class Timer:
    """A group reminder; ``packed`` holds enable, month, day, week, hour and minute.

    A field value of -1 means "every". Weeks count Sunday as 0.
    """

    id: int = 0
    packed: int = 0
    self_id: int = 0
    group_id: int = 0
    alert: str = ""
    cron: str = ""
    url: str = ""

    month = _PackedField(19, 4)
    day = _PackedField(14, 5)
    week = _PackedField(11, 3)
    hour = _PackedField(6, 5)
    minute = _PackedField(0, 6)

    @property
    def enabled(self) -> bool:
        return self.packed & _ENABLED_BIT != 0

    @enabled.setter
    def enabled(self, value: bool) -> None:
        if value:
            self.packed |= _ENABLED_BIT
        else:
            self.packed &= _FIELD_BITS ^ _ENABLED_BIT

    def timer_info(self) -> str:
        """Return the normalised description the identifier is derived from."""
        if self.cron:
            return f"[{self.group_id}]{self.cron}"
        return (
            f"[{self.group_id}]{self.month}月{self.day}日{self.week}周"
            f"{self.hour}:{self.minute}"
        )

    def timer_id(self) -> int:
        """Return the 32-bit identifier: the first four md5 bytes, little endian."""
        digest = hashlib.md5(self.timer_info().encode("utf-8")).digest()
        return int.from_bytes(digest[:4], "little")


def filled_cron_timer(cron: str, alert: str, url: str, self_id: int, group_id: int) -> Timer:
    """Build a timer driven by a cron expression."""
    return Timer(self_id=self_id, group_id=group_id, alert=alert, cron=cron, url=url)


def _drop_middle(text: str) -> str:
    """Turn a three-character number such as 二十三 into 二三."""
    return text[0] + text[2]


def filled_timer(
    date_strs: Sequence[str], self_id: int, group_id: int, match_date_only: bool
) -> Timer:
    """Build a timer from regex groups: month, day-or-week, hour, minute, url, alert.

    On an invalid field the returned timer carries the reason in ``alert`` and
    stays disabled.
    """
    month_str, day_week_str, hour_str, minute_str = date_strs[1:5]
    timer = Timer()

    month = chinese_num_to_int(month_str)
    if (month != -1 and month <= 0) or month > 12:
        timer.alert = "月份非法！"
        return timer
    timer.month = month

    if len(day_week_str) == 4:
        day = chinese_num_to_int(_drop_middle(day_week_str))
        if (day != -1 and day <= 0) or day > 31:
            timer.alert = "日期非法1！"
            return timer
        timer.day = day
    elif day_week_str.endswith("日"):
        day = chinese_num_to_int(day_week_str[:-1])
        if (day != -1 and day <= 0) or day > 31:
            timer.alert = "日期非法2！"
            return timer
        timer.day = day
    elif day_week_str.startswith(_EVERY):
        timer.week = -1
    else:
        week = chinese_num_to_int(day_week_str[1:])
        if week == 7:
            week = 0
        if week < 0 or week > 6:
            timer.alert = "星期非法！"
            return timer
        timer.week = week

    if len(hour_str) == 3:
        hour_str = _drop_middle(hour_str)
    hour = chinese_num_to_int(hour_str)
    if hour < -1 or hour > 23:
        timer.alert = "小时非法！"
        return timer
    timer.hour = hour

    if len(minute_str) == 3:
        minute_str = _drop_middle(minute_str)
    minute = chinese_num_to_int(minute_str)
    if minute < -1 or minute > 59:
        timer.alert = "分钟非法！"
        return timer
    timer.minute = minute

    if not match_date_only:
        url_str = date_strs[5]
        if url_str:
            timer.url = url_str[1:]
            if not timer.url.startswith("http"):
                timer.url = "illegal"
                return timer
        timer.alert = date_strs[6]
        timer.enabled = True

    timer.self_id = self_id
    timer.group_id = group_id
    return timer


def chinese_num_to_int(text: str) -> int:
    """Convert a one- or two-place number, Arabic or Chinese, to an int.

    "每" means -1 and "每二" means -2. Digits that do not form a plain
    ASCII number give 0.
    """
    if not text:
        raise ValueError("empty number")
    if text[0].isdecimal():
        if text.isascii() and text.isdigit():
            return int(text)
        return 0
    if text[0] == _EVERY:
        return -chinese_char_to_int(text[1]) if len(text) == 2 else -1
    if len(text) == 1:
        return chinese_char_to_int(text)
    tens = chinese_char_to_int(text[0])
    if tens != 10:
        tens *= 10
    ones = chinese_char_to_int(text[1])
    if ones == 10:
        ones = 0
    return tens + ones


def chinese_char_to_int(char: str) -> int:
    """Map one Chinese numeral to 0..10; 日 and 天 (Sunday) give 7, others 0."""
    if char in ("日", "天"):
        return 7
    index = _DIGITS.find(char)
    return index if index >= 0 else 0