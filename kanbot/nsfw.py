"""Wording of image classification results."""

from __future__ import annotations

from dataclasses import dataclass

_THRESHOLD = 0.3
HSO_IMAGE = "https://gchat.qpic.cn/gchatpic_new//--4234EDEC5F147A4C319A41149D7E0EA9/0"


@dataclass(frozen=True)
class Scores:
    """Classifier probabilities for each category of a picture."""

    drawings: float = 0.0
    hentai: float = 0.0
    neutral: float = 0.0
    porn: float = 0.0
    sexy: float = 0.0


def _tags(scores: Scores) -> list[str]:
    tags = []
    if scores.hentai > _THRESHOLD:
        tags.append(" hentai")
    if scores.porn > _THRESHOLD:
        tags.append(" porn")
    if scores.sexy > _THRESHOLD:
        tags.append(" hso")
    return tags


def judge(scores: Scores) -> str:
    """Describe a picture someone asked to have rated."""
    if scores.neutral > _THRESHOLD:
        return "普通哦"
    if scores.drawings > _THRESHOLD or scores.neutral < _THRESHOLD:
        kind = "二次元"
    else:
        kind = "三次元"
    return kind + "".join(_tags(scores))


def auto_judge(scores: Scores) -> str | None:
    """Describe a picture seen in passing; None when nothing is worth saying."""
    if scores.neutral > _THRESHOLD:
        return None
    tags = _tags(scores)
    if not tags:
        return None
    kind = "二次元" if scores.drawings > _THRESHOLD else "三次元"
    return kind + "".join(tags)