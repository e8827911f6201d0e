"""Speech synthesis URLs for Japanese, Korean and Chinese voice models."""

from __future__ import annotations

import re
import unicodedata
from typing import Callable
from urllib.parse import quote_plus

JP_API = "https://moegoe.azurewebsites.net/api/speak?text={text}&id={id}"
KR_API = "https://moegoe.azurewebsites.net/api/speakkr?text={text}&id={id}"
CN_API = "https://genshin.azurewebsites.net/api/speak?format=mp3&text={text}&id={id}"

JP_SPEAKERS = ("宁宁", "爱瑠", "芳乃", "茉子", "丛雨", "小春", "七海")
KR_SPEAKERS = ("Sua", "Mimiru", "Arin", "Yeonhwa", "Yuhwa", "Seonbae")
CN_SPEAKERS = (
    "派蒙", "凯亚", "安柏", "丽莎", "琴", "香菱", "枫原万叶", "迪卢克", "温迪", "可莉",
    "早柚", "托马", "芭芭拉", "优菈", "云堇", "钟离", "魈", "凝光", "雷电将军", "北斗",
    "甘雨", "七七", "刻晴", "神里绫华", "戴因斯雷布", "雷泽", "神里绫人", "罗莎莉亚",
    "阿贝多", "八重神子", "宵宫", "荒泷一斗", "九条裟罗", "夜兰", "珊瑚宫心海", "五郎",
    "散兵", "女士", "达达利亚", "莫娜", "班尼特", "申鹤", "行秋", "烟绯", "久岐忍", "辛焱",
    "砂糖", "胡桃", "重云", "菲谢尔", "诺艾尔", "迪奥娜", "鹿野院平藏",
)
# Speakers the Chinese command accepts; the voice list has a few more.
_CN_COMMAND_SPEAKERS = tuple(
    name for name in CN_SPEAKERS if name not in ("戴因斯雷布", "散兵", "女士")
)

_VOICES = {
    **{name: (JP_API, index) for index, name in enumerate(JP_SPEAKERS)},
    **{name: (KR_API, index) for index, name in enumerate(KR_SPEAKERS)},
    **{name: (CN_API, index) for index, name in enumerate(CN_SPEAKERS)},
}

_SPACE = frozenset("\t\n\f\r ")


def _in(char: str, *ranges: tuple[str, str]) -> bool:
    return any(low <= char <= high for low, high in ranges)


def _common(char: str) -> bool:
    return char in _SPACE or unicodedata.category(char).startswith("P")


def _latin_or_digit(char: str) -> bool:
    return _in(char, ("A", "Z"), ("a", "z"), ("0", "9"))


def _japanese_char(char: str) -> bool:
    return (
        _common(char)
        or _latin_or_digit(char)
        or _in(
            char,
            ("\u3005", "\u3005"),
            ("\u3040", "\u30ff"),
            ("\u4e00", "\u9fff"),
            ("\uff11", "\uff19"),
            ("\uff21", "\uff3a"),
            ("\uff41", "\uff5a"),
            ("\uff66", "\uff9d"),
        )
    )


def _korean_char(char: str) -> bool:
    return (
        _common(char)
        or _latin_or_digit(char)
        or _in(char, ("\u3131", "\u3163"), ("\uac00", "\ud7ff"))
    )


def _chinese_char(char: str) -> bool:
    return _common(char) or _in(char, ("\u4e00", "\u9fa5"))


def _command(speakers: tuple[str, ...]) -> re.Pattern[str]:
    names = "|".join(re.escape(name) for name in speakers)
    return re.compile(rf"让({names})说(.+)\Z", re.DOTALL)


_COMMANDS: tuple[tuple[re.Pattern[str], Callable[[str], bool]], ...] = (
    (_command(JP_SPEAKERS), _japanese_char),
    (_command(KR_SPEAKERS), _korean_char),
    (_command(_CN_COMMAND_SPEAKERS), _chinese_char),
)


def speech_url(speaker: str, text: str) -> str:
    """URL of the recording of ``speaker`` saying ``text``; KeyError if unknown."""
    api, voice_id = _VOICES[speaker]
    return api.format(text=quote_plus(text), id=voice_id)


def match_request(message: str) -> str | None:
    """Turn a "让<speaker>说<text>" request into a speech URL, or None."""
    for pattern, allowed in _COMMANDS:
        found = pattern.match(message)
        if found and all(allowed(char) for char in found.group(2)):
            return speech_url(found.group(1), found.group(2))
    return None