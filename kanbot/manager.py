"""Group management storage: welcome and farewell texts and gist-verified members."""

from __future__ import annotations

import hashlib
import logging
import re
import sqlite3
import threading
import time
from typing import Callable

import requests

logger = logging.getLogger(__name__)

GIST_RAW = "https://gist.githubusercontent.com/{user}/{hash}/raw/{file}"
_ANSWER_MARK = "答案："
_TIMESTAMP = re.compile(r"[+-]?\d+")
_VALID_SECONDS = 600


class VerificationError(Exception):
    """A join request that cannot be approved; the message is the reason."""


def gist_url(github_user: str, gist_hash: str, group_id: int) -> str:
    """URL of the gist file named by the md5 of the group number."""
    file_name = hashlib.md5(str(group_id).encode("ascii")).hexdigest()
    return GIST_RAW.format(user=github_user, hash=gist_hash, file=file_name)


def parse_gist_answer(comment: str) -> tuple[str, str]:
    """Split the answer of a join request into (github user, gist hash)."""
    start = comment.find(_ANSWER_MARK)
    answer = comment[start + len(_ANSWER_MARK) :] if start >= 0 else comment
    divider = answer.find("/")
    if divider <= 0:
        raise VerificationError("格式错误!")
    return answer[:divider], answer[divider + 1 :]


def welcome_to_cq(
    template: str, user_id: int, nickname: str, group_id: int, group_name: str
) -> str:
    """Fill the placeholders of a welcome or farewell text with CQ codes."""
    uid = str(user_id)
    replacements = {
        "{at}": f"[CQ:at,qq={uid}]",
        "{nickname}": nickname,
        "{avatar}": f"[CQ:image,file=http://q4.qlogo.cn/g?b=qq&nk={uid}&s=640]",
        "{uid}": uid,
        "{gid}": str(group_id),
        "{groupname}": group_name,
    }
    text = template
    for placeholder, value in replacements.items():
        text = text.replace(placeholder, value)
    return text


def _fetch(url: str) -> bytes:
    response = requests.get(url, timeout=30)
    response.raise_for_status()
    return response.content


class ManagerStore:
    """SQLite storage for the group manager."""

    def __init__(self, path: str = ":memory:") -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.Lock()
        with self._lock, self._conn:
            for table in ("welcome", "farewell"):
                self._conn.execute(
                    f"CREATE TABLE IF NOT EXISTS {table} (gid INTEGER PRIMARY KEY, msg TEXT)"
                )
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS member (qq INTEGER PRIMARY KEY, ghun TEXT)"
            )

    def __enter__(self) -> "ManagerStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _put_text(self, table: str, group_id: int, text: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                f"INSERT OR REPLACE INTO {table} (gid, msg) VALUES (?, ?)", (group_id, text)
            )

    def _get_text(self, table: str, group_id: int) -> str | None:
        with self._lock:
            row = self._conn.execute(
                f"SELECT msg FROM {table} WHERE gid = ?", (group_id,)
            ).fetchone()
        return row[0] if row else None

    def set_welcome(self, group_id: int, text: str) -> None:
        self._put_text("welcome", group_id, text)

    def get_welcome(self, group_id: int) -> str | None:
        return self._get_text("welcome", group_id)

    def set_farewell(self, group_id: int, text: str) -> None:
        self._put_text("farewell", group_id, text)

    def get_farewell(self, group_id: int) -> str | None:
        return self._get_text("farewell", group_id)

    def has_github_user(self, github_user: str) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM member WHERE ghun = ?", (github_user,)
            ).fetchone()
        return row is not None

    def add_member(self, qq: int, github_user: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO member (qq, ghun) VALUES (?, ?)", (qq, github_user)
            )

    def check_new_user(
        self,
        qq: int,
        group_id: int,
        github_user: str,
        gist_hash: str,
        fetch: Callable[[str], bytes | str] | None = None,
        now: float | None = None,
    ) -> None:
        """Approve a join request by its gist timestamp, recording the member.

        Raises VerificationError with the reason when the request is refused.
        """
        if self.has_github_user(github_user):
            raise VerificationError("该github用户已入群")
        url = gist_url(github_user, gist_hash, group_id)
        logger.debug("[gist] visit url: %s", url)
        try:
            data = (fetch or _fetch)(url)
        except OSError as err:
            raise VerificationError("无法连接到gist: " + str(err)) from err
        text = data.decode("utf-8", "replace") if isinstance(data, bytes) else data
        if not _TIMESTAMP.fullmatch(text):
            raise VerificationError("时间戳格式错误: " + text)
        current = time.time() if now is None else now
        if abs(int(current) - int(text)) >= _VALID_SECONDS:
            raise VerificationError("时间戳超时")
        self.add_member(qq, github_user)

    def close(self) -> None:
        with self._lock:
            self._conn.close()