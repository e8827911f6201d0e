import random

import pytest

from kanbot.moderation import (
    MAX_BAN_MINUTES,
    ban_seconds,
    check_answer,
    pick_lucky_member,
    self_ban_seconds,
    toggle_flag,
    unescape_cq,
)


def test_ban_minutes_are_seconds_times_sixty():
    assert ban_seconds(7, "分钟") == 7 * 60


def test_ban_hours_equal_sixty_minutes():
    assert ban_seconds(3, "小时") == ban_seconds(180, "分钟")


def test_ban_days_equal_hours():
    assert ban_seconds(1, "天") == ban_seconds(24, "小时")


def test_ban_unknown_unit_is_minutes():
    assert ban_seconds("5", "whatever") == ban_seconds(5, "分钟")


def test_ban_is_capped():
    assert ban_seconds(100, "天") == 43199 * 60
    assert ban_seconds(MAX_BAN_MINUTES + 1, "分钟") == MAX_BAN_MINUTES * 60


def test_ban_zero_lifts():
    assert ban_seconds(0, "天") == 0


@pytest.mark.parametrize(
    "english, chinese", [("h", "小时"), ("hours", "小时"), ("d", "天"), ("mins", "分钟")]
)
def test_self_ban_english_units(english, chinese):
    assert self_ban_seconds(2, english) == self_ban_seconds(2, chinese)


def test_self_ban_english_units_not_known_to_plain_ban():
    assert ban_seconds(2, "h") == ban_seconds(2, "分钟")
    assert self_ban_seconds(2, "h") != ban_seconds(2, "h")


def test_unescape_cq():
    assert unescape_cq("&#91;CQ:face,id=1&#93;") == "[CQ:face,id=1]"
    assert unescape_cq("plain") == "plain"


@pytest.mark.parametrize("word", ["开启", "打开", "启用"])
def test_toggle_enable(word):
    assert toggle_flag(0, word, 1) == 1
    assert toggle_flag(0x10, word, 1) == 0x11


@pytest.mark.parametrize("word", ["关闭", "关掉", "禁用"])
def test_toggle_disable(word):
    assert toggle_flag(1, word, 1) == 0
    assert toggle_flag(0x11, word, 0x10) == 1


def test_toggle_round_trip_keeps_other_bits():
    data = 0b1010_0001
    enabled = toggle_flag(data, "开启", 0x10)
    assert toggle_flag(enabled, "关闭", 0x10) == data


def test_toggle_unknown_option():
    with pytest.raises(ValueError):
        toggle_flag(0, "随便", 1)


def test_pick_lucky_member_from_recent_ten():
    members = [{"user_id": n, "last_sent_time": n} for n in range(15)]
    random.Random(3).shuffle(members)
    for seed in range(20):
        chosen = pick_lucky_member(members, random.Random(seed))
        assert chosen["last_sent_time"] >= 5


def test_pick_lucky_member_small_group():
    members = [{"user_id": 1, "last_sent_time": 9}]
    assert pick_lucky_member(members, random.Random(0)) is members[0]


def test_pick_lucky_member_empty():
    with pytest.raises(ValueError):
        pick_lucky_member([])


def test_check_answer():
    assert check_answer(" 1 2 ", 12) is True
    assert check_answer("13", 12) is False
    assert check_answer("abc", 12) is None