"""Random illustrations from the lolicon image API."""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote_plus

import requests

API = "https://api.lolicon.app/setu/v2"
NOT_FOUND = "未找到相关内容, 换个tag试试吧"


class ImageSourceError(Exception):
    """The image API reported an error or returned nothing usable."""


def _get(node: Any, key: str | int) -> Any:
    if isinstance(key, int):
        return node[key] if isinstance(node, list) and len(node) > key else None
    return node.get(key) if isinstance(node, dict) else None


def parse_image_url(payload: bytes | str) -> str:
    """Extract the original image URL from an API response, using the pixiv.re mirror."""
    try:
        data = json.loads(payload)
    except (ValueError, TypeError):
        data = None
    error = _get(data, "error")
    if isinstance(error, str) and error:
        raise ImageSourceError(error)
    url = _get(_get(_get(_get(data, "data"), 0), "urls"), "original")
    if not isinstance(url, str) or not url:
        raise ImageSourceError(NOT_FOUND)
    return url.replace("i.pixiv.cat", "i.pixiv.re")


def image_api_url(tag: str | None = None) -> str:
    """The API address, filtered by ``tag`` when one is given."""
    return f"{API}?tag={quote_plus(tag)}" if tag else API


def image_name(url: str) -> str:
    """The file name of an image URL without its four-character extension."""
    return url[url.rfind("/") + 1 : len(url) - 4]


def random_image_url(tag: str | None = None) -> str:
    """Ask the API for a random image, optionally with ``tag``."""
    response = requests.get(image_api_url(tag), timeout=30)
    response.raise_for_status()
    return parse_image_url(response.content)