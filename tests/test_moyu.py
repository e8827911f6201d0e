from datetime import date, datetime, timedelta

import pytest

from kanbot.moyu import (
    CLOSING,
    GREETING,
    Holiday,
    format_holiday,
    moyu_message,
    parse_holiday,
    weekend_message,
)

SOURCE_HOLIDAYS = [
    ("元旦", 1, 2023, 1, 1),
    ("春节", 7, 2023, 1, 21),
    ("清明节", 1, 2023, 4, 5),
    ("劳动节", 1, 2023, 5, 1),
    ("端午节", 1, 2023, 6, 22),
    ("中秋节", 1, 2022, 9, 10),
    ("国庆节", 7, 2022, 10, 1),
]


@pytest.mark.parametrize("name,dur,year,month,day", SOURCE_HOLIDAYS)
def test_record_round_trip(name, dur, year, month, day):
    holiday = parse_holiday(name, format_holiday(dur, year, month, day))
    assert holiday.name == name
    assert holiday.date == datetime(year, month, day)
    assert holiday.duration == timedelta(days=dur)


def test_format_holiday_shape():
    assert format_holiday(1, 2023, 1, 1) == "1_2023_1_1"
    assert format_holiday(7, 2022, 10, 1) == "7_2022_10_1"


def test_parse_malformed_record():
    with pytest.raises(ValueError):
        parse_holiday("元旦", "not a record")


def test_parse_overflowing_day():
    holiday = parse_holiday("x", "1_2023_1_32")
    assert holiday.date == datetime(2023, 2, 1)


def test_describe_before():
    holiday = Holiday("元旦", datetime(2023, 1, 1), timedelta(days=1))
    assert holiday.describe(datetime(2022, 12, 30)) == "距离元旦还有: 2.00天！"


def test_describe_during_and_after():
    holiday = Holiday("国庆节", datetime(2022, 10, 1), timedelta(days=7))
    assert holiday.describe(datetime(2022, 10, 3, 12)) == "好好享受 国庆节 假期吧!"
    assert holiday.describe(datetime(2022, 10, 9)) == "今年 国庆节 假期已过"


def test_weekend_message():
    assert weekend_message(date(2022, 10, 15)) == "好好享受周末吧！"
    assert weekend_message(date(2022, 10, 16)) == "好好享受周末吧！"
    assert weekend_message(date(2022, 10, 10)) == "距离周末还有:4天！"
    assert weekend_message(date(2022, 10, 14)) == "距离周末还有:0天！"


def test_moyu_message_layout():
    now = datetime(2022, 10, 10, 10, 0)
    holidays = [parse_holiday(name, format_holiday(*rest)) for name, *rest in SOURCE_HOLIDAYS]
    text = moyu_message(now, holidays)
    assert text.startswith("2022-10-10" + GREETING + "距离周末还有:4天！\n")
    assert text.endswith("\n" + CLOSING)
    for holiday in holidays:
        assert holiday.describe(now) in text
    assert "今年 国庆节 假期已过" in text