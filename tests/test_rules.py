from datetime import date, datetime, timedelta

import pytest

from kanbot.registry import (
    DIVORCE_SKILL,
    MATCH_MODE,
    NTR_MODE,
    PROPOSE_SKILL,
    MarriageRegistry,
    Status,
)
from kanbot.rules import (
    Refused,
    check_divorce,
    check_matchmaking,
    check_ntr,
    check_propose,
    truncate_name,
)

GID = 100
TODAY = date(2022, 10, 12)
NOW = datetime(2022, 10, 12, 12, 0)


@pytest.fixture
def registry():
    with MarriageRegistry() as reg:
        yield reg


@pytest.fixture
def opened(registry):
    registry.open_day(GID, TODAY)
    return registry


def refusal(func, *args):
    with pytest.raises(Refused) as excinfo:
        func(*args)
    return str(excinfo.value)


def test_propose_on_fresh_group_opens_the_day(registry):
    result = check_propose(registry, GID, 1, 2, TODAY, NOW)
    assert result == (None, Status.SINGLE)
    assert registry.open_day(GID, TODAY) is False


def test_propose_in_cooldown(opened):
    opened.write_cd(GID, 1, PROPOSE_SKILL, NOW)
    assert refusal(check_propose, opened, GID, 1, 2, TODAY, NOW) == "你的技能还在CD中..."


def test_propose_after_cooldown(opened):
    opened.write_cd(GID, 1, PROPOSE_SKILL, NOW)
    later = NOW + timedelta(hours=13)
    _, status = check_propose(opened, GID, 1, 2, TODAY, later)
    assert status is Status.SINGLE


def test_propose_forbidden_mode(opened):
    opened.set_mode(GID, MATCH_MODE, 0)
    message = refusal(check_propose, opened, GID, 1, 2, TODAY, NOW)
    assert message == "你群包分配,别在娶妻上面下功夫，好好水群"


def test_propose_already_together(opened):
    opened.register(GID, 1, 2, "a", "b")
    assert refusal(check_propose, opened, GID, 1, 2, TODAY, NOW) == "笨蛋！你们已经在一起了！"


def test_propose_user_is_husband(opened):
    opened.register(GID, 1, 3, "a", "c")
    assert refusal(check_propose, opened, GID, 1, 2, TODAY, NOW) == "笨蛋~你家里还有个吃白饭的w"


def test_propose_user_is_wife(opened):
    opened.register(GID, 3, 1, "c", "a")
    assert refusal(check_propose, opened, GID, 1, 2, TODAY, NOW) == "该是0就是0，当0有什么不好"


def test_propose_user_chose_single(opened):
    opened.register(GID, 1, 0, "", "")
    assert refusal(check_propose, opened, GID, 1, 2, TODAY, NOW) == "今天的你是单身贵族噢"


def test_propose_fiancee_taken(opened):
    opened.register(GID, 2, 3, "b", "c")
    assert refusal(check_propose, opened, GID, 1, 2, TODAY, NOW) == "他有别的女人了，你该放下了"
    assert refusal(check_propose, opened, GID, 1, 3, TODAY, NOW) == "ta被别人娶了，你来晚力"


def test_ntr_new_day_everyone_single(registry):
    message = refusal(check_ntr, registry, GID, 1, 2, TODAY, NOW)
    assert message == "ta现在还是单身哦，快向ta表白吧！"


def test_ntr_forbidden(opened):
    opened.set_mode(GID, NTR_MODE, 0)
    assert refusal(check_ntr, opened, GID, 1, 2, TODAY, NOW) == "你群发布了牛头人禁止令，放弃吧"


def test_ntr_single_fiancee(opened):
    message = refusal(check_ntr, opened, GID, 1, 2, TODAY, NOW)
    assert message == "ta现在还是单身哦，快向ta表白吧！"


def test_ntr_on_self_passes(opened):
    assert check_ntr(opened, GID, 1, 1, TODAY, NOW) == (None, Status.SINGLE)


def test_ntr_married_fiancee(opened):
    opened.register(GID, 2, 3, "b", "c")
    marriage, status = check_ntr(opened, GID, 1, 2, TODAY, NOW)
    assert status is Status.HUSBAND
    assert (marriage.user, marriage.target) == (2, 3)


def test_ntr_married_user(opened):
    opened.register(GID, 2, 3, "b", "c")
    opened.register(GID, 1, 4, "a", "d")
    assert refusal(check_ntr, opened, GID, 1, 2, TODAY, NOW) == "打灭，不给纳小妾！"


def test_divorce_single(opened):
    assert refusal(check_divorce, opened, GID, 1, NOW) == "今天你还没结婚哦"


def test_divorce_married_and_cooldown(opened):
    opened.register(GID, 3, 1, "c", "a")
    marriage, status = check_divorce(opened, GID, 1, NOW)
    assert status is Status.WIFE
    assert marriage.user == 3
    opened.write_cd(GID, 1, DIVORCE_SKILL, NOW)
    assert refusal(check_divorce, opened, GID, 1, NOW) == "你的技能还在CD中..."


def test_matchmaking_self_and_same(opened):
    assert refusal(check_matchmaking, opened, GID, 1, 1, 2, TODAY, NOW) == "禁止自己给自己做媒!"
    message = refusal(check_matchmaking, opened, GID, 1, 2, 2, TODAY, NOW)
    assert message == "你这个媒人XP很怪咧，不能这样噢"


def test_matchmaking_fresh_group(registry):
    assert check_matchmaking(registry, GID, 1, 2, 3, TODAY, NOW) == (None, Status.SINGLE)


def test_matchmaking_couple_states(opened):
    opened.register(GID, 2, 3, "b", "c")
    assert refusal(check_matchmaking, opened, GID, 1, 2, 3, TODAY, NOW) == "笨蛋！ta们已经在一起了！"
    message = refusal(check_matchmaking, opened, GID, 1, 2, 4, TODAY, NOW)
    assert message == "攻方不是单身,不允许给这种人做媒!"
    message = refusal(check_matchmaking, opened, GID, 1, 4, 3, TODAY, NOW)
    assert message == "受方不是单身,不允许给这种人做媒!"


def test_matchmaking_both_single(opened):
    assert check_matchmaking(opened, GID, 1, 4, 5, TODAY, NOW) == (None, Status.SINGLE)


def test_truncate_name_short_kept():
    assert truncate_name("ab", lambda char: 100) == "ab"


def test_truncate_name_long_cut():
    result = truncate_name("abcdef", lambda char: 100)
    assert result == "a......"
    assert result.endswith("......")


def test_truncate_name_custom_limit():
    name = "abcdef"
    assert truncate_name(name, lambda char: 1, limit=10) == name