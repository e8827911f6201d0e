"""The Ogura Hyakunin Isshu: one hundred poems and their card images."""

from __future__ import annotations

import csv
import io
from dataclasses import astuple, dataclass

BED = "https://gitcode.net/u011570312/OguraHyakuninIsshu/-/raw/master/"
CSV_NAME = "小倉百人一首.csv"
POEM_COUNT = 100

_LABELS = (
    ("●", "番号"),
    ("◉", "歌人"),
    ("○", "上の句"),
    ("○", "下の句"),
    ("◎", "上の句ひらがな"),
    ("◎", "下の句ひらがな"),
)


@dataclass(frozen=True)
class Poem:
    """One poem: its number, poet, upper and lower verses and their kana readings."""

    number: str
    poet: str
    upper: str
    lower: str
    upper_kana: str
    lower_kana: str

    def __str__(self) -> str:
        return "".join(
            f"{mark}{label}：{value}\n"
            for (mark, label), value in zip(_LABELS, astuple(self))
        )


def load_poems(text: str) -> list[Poem]:
    """Read the poem table: a title row then 100 numbered rows of six fields.

    Raises ValueError when the table does not have exactly that shape.
    """
    rows = [row for row in csv.reader(io.StringIO(text)) if row]
    records = rows[1:]
    if len(records) != POEM_COUNT:
        raise ValueError("invalid csvfile")
    poems = []
    for index, record in enumerate(records):
        if len(record) != len(_LABELS):
            raise ValueError("invalid csvfile")
        if int(record[0]) - 1 != index:
            raise ValueError("invalid csvfile")
        poems.append(Poem(*record))
    return poems


def image_names(number: int) -> tuple[str, str]:
    """Names of the picture and the card image of poem ``number`` (1..100)."""
    if not 1 <= number <= POEM_COUNT:
        raise ValueError("超出范围")
    return f"img/{number:03d}.jpg", f"img/{number:03d}.png"