"""Conditions a member must meet before using a marriage-game skill."""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable

from kanbot.registry import (
    DIVORCE_SKILL,
    MATCHMAKING_SKILL,
    NTR_SKILL,
    PROPOSE_SKILL,
    Marriage,
    MarriageRegistry,
    Status,
)

NAME_WIDTH_LIMIT = 350
_ELLIPSIS = "......"

Lookup = tuple["Marriage | None", Status]


class Refused(Exception):
    """A skill may not be used now; the message tells the member why."""


def _check_cooldown(
    registry: MarriageRegistry, group_id: int, user_id: int, skill: int, now: datetime | None
) -> None:
    hours = registry.get_cd_hours(group_id)
    if not registry.cd_expired(group_id, user_id, skill, hours, now):
        raise Refused("你的技能还在CD中...")


def _chosen_single(marriage: Marriage | None, status: Status) -> bool:
    return (
        status is not Status.SINGLE
        and marriage is not None
        and (marriage.target == 0 or marriage.user == 0)
    )


def _together(marriage: Marriage | None, status: Status, other: int) -> bool:
    if marriage is None:
        return False
    return (status is Status.HUSBAND and marriage.target == other) or (
        status is Status.WIFE and marriage.user == other
    )


def check_propose(
    registry: MarriageRegistry,
    group_id: int,
    user_id: int,
    fiancee: int,
    today: date | None = None,
    now: datetime | None = None,
) -> Lookup:
    """Check that a member may propose to ``fiancee``; raise Refused if not.

    Returns the fiancee's lookup, which is single when the check passes.
    """
    _check_cooldown(registry, group_id, user_id, PROPOSE_SKILL, now)
    can_match, _ = registry.modes(group_id)
    if not can_match:
        raise Refused("你群包分配,别在娶妻上面下功夫，好好水群")
    if registry.open_day(group_id, today):
        return None, Status.SINGLE
    mine, my_status = registry.lookup(group_id, user_id)
    if _chosen_single(mine, my_status):
        raise Refused("今天的你是单身贵族噢")
    if _together(mine, my_status, fiancee):
        raise Refused("笨蛋！你们已经在一起了！")
    if my_status is Status.HUSBAND:
        raise Refused("笨蛋~你家里还有个吃白饭的w")
    if my_status is Status.WIFE:
        raise Refused("该是0就是0，当0有什么不好")
    theirs, their_status = registry.lookup(group_id, fiancee)
    if their_status is Status.SINGLE:
        return theirs, their_status
    if _chosen_single(theirs, their_status):
        raise Refused("今天的ta是单身贵族噢")
    if their_status is Status.HUSBAND:
        raise Refused("他有别的女人了，你该放下了")
    raise Refused("ta被别人娶了，你来晚力")


def check_ntr(
    registry: MarriageRegistry,
    group_id: int,
    user_id: int,
    fiancee: int,
    today: date | None = None,
    now: datetime | None = None,
) -> Lookup:
    """Check that a member may steal ``fiancee`` from their partner; raise Refused if not.

    Returns the fiancee's lookup.
    """
    _check_cooldown(registry, group_id, user_id, NTR_SKILL, now)
    _, can_ntr = registry.modes(group_id)
    if not can_ntr:
        raise Refused("你群发布了牛头人禁止令，放弃吧")
    if registry.open_day(group_id, today):
        raise Refused("ta现在还是单身哦，快向ta表白吧！")
    theirs, their_status = registry.lookup(group_id, fiancee)
    if their_status is Status.SINGLE:
        if fiancee == user_id:
            return theirs, their_status
        raise Refused("ta现在还是单身哦，快向ta表白吧！")
    if _chosen_single(theirs, their_status):
        raise Refused("今天的ta是单身贵族噢")
    if _together(theirs, their_status, fiancee):
        raise Refused("笨蛋！你们已经在一起了！")
    mine, my_status = registry.lookup(group_id, user_id)
    if my_status is Status.SINGLE:
        return theirs, their_status
    if _chosen_single(mine, my_status):
        raise Refused("今天的你是单身贵族噢")
    if my_status is Status.HUSBAND:
        raise Refused("打灭，不给纳小妾！")
    raise Refused("该是0就是0，当0有什么不好")


def check_divorce(
    registry: MarriageRegistry, group_id: int, user_id: int, now: datetime | None = None
) -> Lookup:
    """Check that a member is married and may divorce; returns their lookup."""
    _check_cooldown(registry, group_id, user_id, DIVORCE_SKILL, now)
    marriage, status = registry.lookup(group_id, user_id)
    if status is Status.SINGLE:
        raise Refused("今天你还没结婚哦")
    return marriage, status


def check_matchmaking(
    registry: MarriageRegistry,
    group_id: int,
    user_id: int,
    first: int,
    second: int,
    today: date | None = None,
    now: datetime | None = None,
) -> Lookup:
    """Check that a member may pair ``first`` with ``second``; raise Refused if not.

    Returns the lookup of ``second``, which is single when the check passes.
    """
    _check_cooldown(registry, group_id, user_id, MATCHMAKING_SKILL, now)
    if user_id in (first, second):
        raise Refused("禁止自己给自己做媒!")
    if first == second:
        raise Refused("你这个媒人XP很怪咧，不能这样噢")
    if registry.open_day(group_id, today):
        return None, Status.SINGLE
    one, one_status = registry.lookup(group_id, first)
    if _chosen_single(one, one_status):
        raise Refused("今天的攻方是单身贵族噢")
    if _together(one, one_status, second):
        raise Refused("笨蛋！ta们已经在一起了！")
    if one_status is not Status.SINGLE:
        raise Refused("攻方不是单身,不允许给这种人做媒!")
    other, other_status = registry.lookup(group_id, second)
    if other_status is Status.SINGLE:
        return other, other_status
    if _chosen_single(other, other_status):
        raise Refused("今天的你是单身贵族噢")
    raise Refused("受方不是单身,不允许给这种人做媒!")


def truncate_name(
    name: str, width_of: Callable[[str], float], limit: int = NAME_WIDTH_LIMIT
) -> str:
    """Shorten ``name`` with an ellipsis when its drawn width passes ``limit``."""
    total = 0
    kept = 0
    for index, char in enumerate(name):
        total += int(width_of(char))
        if total > limit:
            return name[: max(kept - 1, 0)] + _ELLIPSIS
        kept = index
    return name