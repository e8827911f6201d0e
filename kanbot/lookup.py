"""Looking up what pinyin-initial abbreviations stand for."""

from __future__ import annotations

import json
from typing import Any

import requests

GUESS_API = "https://lab.magiconch.com/api/nbnhhsh/guess"


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def parse_guess(payload: bytes | str) -> list[str]:
    """Read the meanings from a guess response; pending guesses when none are known."""
    try:
        data = json.loads(payload)
    except (ValueError, TypeError):
        return []
    if isinstance(data, list):
        first = data[0] if data else None
    elif isinstance(data, dict):
        first = data.get("0")
    else:
        first = None
    if not isinstance(first, dict):
        return []
    values = first["trans"] if "trans" in first else first.get("inputting")
    if not isinstance(values, list):
        return []
    return [_as_text(value) for value in values]


def guess(text: str) -> list[str]:
    """Ask the service what the abbreviation ``text`` may mean."""
    response = requests.post(GUESS_API, data={"text": text}, timeout=30)
    return parse_guess(response.content)