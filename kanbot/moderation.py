"""Helpers behind the group moderation commands: bans, toggles, roll calls, quizzes."""

from __future__ import annotations

import random
import re
from typing import Any, Mapping, Sequence

MAX_BAN_MINUTES = 43199
_ENABLE_WORDS = frozenset({"开启", "打开", "启用"})
_DISABLE_WORDS = frozenset({"关闭", "关掉", "禁用"})
_NON_NEGATIVE_63 = 0x7FFFFFFF_FFFFFFFF
_LUCKY_POOL = 10
_INTEGER = re.compile(r"[+-]?[0-9]+")

_BAN_UNITS = {"分钟": 1, "小时": 60, "天": 60 * 24}
_SELF_BAN_UNITS = {
    **{unit: 1 for unit in ("分钟", "min", "mins", "m")},
    **{unit: 60 for unit in ("小时", "hour", "hours", "h")},
    **{unit: 60 * 24 for unit in ("天", "day", "days", "d")},
}


def _to_seconds(amount: int | str, unit: str, units: Mapping[str, int]) -> int:
    minutes = int(amount) * units.get(unit, 1)
    return min(minutes, MAX_BAN_MINUTES) * 60


def ban_seconds(amount: int | str, unit: str) -> int:
    """Seconds to ban a member for; an unknown unit counts as minutes.

    The ban is capped just below a month, the longest the chat allows.
    """
    return _to_seconds(amount, unit, _BAN_UNITS)


def self_ban_seconds(amount: int | str, unit: str) -> int:
    """Like ``ban_seconds`` but also accepting English unit names."""
    return _to_seconds(amount, unit, _SELF_BAN_UNITS)


def unescape_cq(text: str) -> str:
    """Undo the escaping of square brackets in forwarded CQ code."""
    return text.replace("&#91;", "[").replace("&#93;", "]")


def toggle_flag(data: int, option: str, mask: int) -> int:
    """Set or clear ``mask`` in a plugin's per-group data word.

    Raises ValueError when ``option`` is neither an enable nor a disable word.
    """
    if option in _ENABLE_WORDS:
        return data | mask
    if option in _DISABLE_WORDS:
        return data & ~mask & _NON_NEGATIVE_63
    raise ValueError(f"unknown option: {option!r}")


def pick_lucky_member(
    members: Sequence[Mapping[str, Any]], rng: random.Random | None = None
) -> Mapping[str, Any]:
    """Pick one of the ten members who spoke most recently."""
    if not members:
        raise ValueError("no members to pick from")
    ordered = sorted(members, key=lambda member: int(member.get("last_sent_time", 0)))
    pool = ordered[-_LUCKY_POOL:]
    return (rng or random).choice(pool)


def check_answer(text: str, expected: int) -> bool | None:
    """Check a quiz answer; None when the text is not a number at all."""
    compact = text.replace(" ", "")
    if not _INTEGER.fullmatch(compact):
        return None
    return int(compact) == expected