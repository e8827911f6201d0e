"""The marriage registry: daily group rosters, favour between members and skill cooldowns."""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

DATE_FORMAT = "%Y/%m/%d"
TIME_FORMAT = "%H:%M:%S"
DEFAULT_CD_HOURS = 12.0
MAX_FAVOR = 100
MIN_FAVOR = 0

MATCH_MODE = "自由恋爱"
NTR_MODE = "牛头人"

PROPOSE_SKILL = 1
NTR_SKILL = 2
MATCHMAKING_SKILL = 3
DIVORCE_SKILL = 4


class Status(Enum):
    """A member's standing in today's roster."""

    SINGLE = "单"
    HUSBAND = "攻"
    WIFE = "受"


@dataclass(frozen=True)
class Marriage:
    """One registered couple; a zero target or user marks a chosen single."""

    user: int
    target: int
    username: str
    targetname: str
    updatetime: str


def _roster_table(group_id: int) -> str:
    return f'"group{group_id}"'


def _favor_key(user_id: int, target: int) -> str:
    return f"{user_id}+{target}+{user_id}"


class MarriageRegistry:
    """SQLite storage behind the group marriage game."""

    def __init__(self, path: str = ":memory:") -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._lock = threading.RLock()
        with self._lock, self._conn:
            self._create_common()

    def __enter__(self) -> "MarriageRegistry":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _create_common(self) -> None:
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS updateinfo ("
            "gid INTEGER PRIMARY KEY, updatetime TEXT, canmatch INTEGER, "
            "canntr INTEGER, cdtime REAL)"
        )
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS favorability (userinfo TEXT PRIMARY KEY, favor INTEGER)"
        )
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS cdsheet ("
            "gid INTEGER, uid INTEGER, mode INTEGER, time INTEGER, "
            "PRIMARY KEY (gid, uid, mode))"
        )

    def _ensure_roster(self, group_id: int) -> str:
        table = _roster_table(group_id)
        self._conn.execute(
            f"CREATE TABLE IF NOT EXISTS {table} ("
            "user INTEGER PRIMARY KEY, target INTEGER, username TEXT, "
            "targetname TEXT, updatetime TEXT)"
        )
        return table

    def _settings(self, group_id: int) -> tuple[str, int, int, float] | None:
        return self._conn.execute(
            "SELECT updatetime, canmatch, canntr, cdtime FROM updateinfo WHERE gid = ?",
            (group_id,),
        ).fetchone()

    def _store_settings(
        self, group_id: int, updatetime: str, can_match: int, can_ntr: int, cd_hours: float
    ) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO updateinfo (gid, updatetime, canmatch, canntr, cdtime) "
            "VALUES (?, ?, ?, ?, ?)",
            (group_id, updatetime, can_match, can_ntr, cd_hours),
        )

    def open_day(self, group_id: int, today: date | None = None) -> bool:
        """Start a new day for the group if needed; True when the roster was reset."""
        stamp = (today or date.today()).strftime(DATE_FORMAT)
        with self._lock, self._conn:
            row = self._settings(group_id)
            if row is None:
                self._store_settings(group_id, stamp, 1, 1, DEFAULT_CD_HOURS)
                return True
            updatetime, can_match, can_ntr, cd_hours = row
            if updatetime == stamp:
                return False
            self._conn.execute(f"DROP TABLE IF EXISTS {_roster_table(group_id)}")
            self._ensure_roster(group_id)
            self._store_settings(group_id, stamp, can_match, can_ntr, cd_hours)
            return True

    def modes(self, group_id: int) -> tuple[bool, bool]:
        """Return whether free proposals and stealing partners are allowed."""
        with self._lock, self._conn:
            row = self._settings(group_id)
            if row is None:
                self._store_settings(group_id, "", 1, 1, DEFAULT_CD_HOURS)
                return True, True
            return bool(row[1]), bool(row[2])

    def set_mode(self, group_id: int, mode: str, status: bool | int) -> None:
        """Allow or forbid ``mode`` (自由恋爱 or 牛头人) in a group."""
        if mode not in (MATCH_MODE, NTR_MODE):
            raise ValueError("错误:修改内容不匹配！")
        flag = 1 if status else 0
        with self._lock, self._conn:
            row = self._settings(group_id)
            if row is None:
                updatetime, can_match, can_ntr, cd_hours = "", 1, 1, DEFAULT_CD_HOURS
            else:
                updatetime, can_match, can_ntr, cd_hours = row
            if mode == MATCH_MODE:
                can_match = flag
            else:
                can_ntr = flag
            self._store_settings(group_id, updatetime, can_match, can_ntr, cd_hours)

    def clear_rosters(self, group_id: int | None) -> None:
        """Drop the roster of one group, or with None every table but the favour table."""
        with self._lock, self._conn:
            if group_id is None:
                tables = [
                    name
                    for (name,) in self._conn.execute(
                        "SELECT name FROM sqlite_master WHERE type = 'table'"
                    ).fetchall()
                ]
            else:
                tables = [f"group{group_id}"]
            for table in tables:
                if table == "favorability":
                    continue
                self._conn.execute(f'DROP TABLE IF EXISTS "{table}"')
            self._create_common()

    def lookup(self, group_id: int, user_id: int) -> tuple[Marriage | None, Status]:
        """Find a member's marriage and whether they are husband, wife or single."""
        with self._lock, self._conn:
            table = self._ensure_roster(group_id)
            columns = "user, target, username, targetname, updatetime"
            row = self._conn.execute(
                f"SELECT {columns} FROM {table} WHERE user = ?", (user_id,)
            ).fetchone()
            if row is not None:
                return Marriage(*row), Status.HUSBAND
            row = self._conn.execute(
                f"SELECT {columns} FROM {table} WHERE target = ?", (user_id,)
            ).fetchone()
            if row is not None:
                return Marriage(*row), Status.WIFE
        return None, Status.SINGLE

    def register(
        self, group_id: int, user_id: int, target: int, username: str, targetname: str
    ) -> Marriage:
        """Record a couple for today; a target of 0 records a chosen single."""
        marriage = Marriage(
            user_id, target, username, targetname, datetime.now().strftime(TIME_FORMAT)
        )
        with self._lock, self._conn:
            table = self._ensure_roster(group_id)
            self._conn.execute(
                f"INSERT OR REPLACE INTO {table} "
                "(user, target, username, targetname, updatetime) VALUES (?, ?, ?, ?, ?)",
                (
                    marriage.user,
                    marriage.target,
                    marriage.username,
                    marriage.targetname,
                    marriage.updatetime,
                ),
            )
        return marriage

    def divorce_wife(self, group_id: int, wife: int) -> None:
        """Remove the marriage in which ``wife`` is the target."""
        with self._lock, self._conn:
            table = self._ensure_roster(group_id)
            self._conn.execute(f"DELETE FROM {table} WHERE target = ?", (wife,))

    def divorce_husband(self, group_id: int, husband: int) -> None:
        """Remove the marriage in which ``husband`` is the user."""
        with self._lock, self._conn:
            table = self._ensure_roster(group_id)
            self._conn.execute(f"DELETE FROM {table} WHERE user = ?", (husband,))

    def roster(self, group_id: int) -> list[Marriage]:
        """List today's couples of a group, leaving out chosen singles."""
        with self._lock, self._conn:
            table = self._ensure_roster(group_id)
            rows = self._conn.execute(
                f"SELECT user, target, username, targetname, updatetime FROM {table} "
                "WHERE target != 0 ORDER BY user"
            ).fetchall()
        return [Marriage(*row) for row in rows]

    def _favor_row(self, user_id: int, target: int) -> tuple[str, int] | None:
        return self._conn.execute(
            "SELECT userinfo, favor FROM favorability WHERE userinfo IN (?, ?)",
            (_favor_key(user_id, target), _favor_key(target, user_id)),
        ).fetchone()

    def get_favor(self, user_id: int, target: int) -> int:
        """Favour between two members, in either direction; starts at 0."""
        with self._lock, self._conn:
            row = self._favor_row(user_id, target)
            if row is None:
                self._conn.execute(
                    "INSERT INTO favorability (userinfo, favor) VALUES (?, 0)",
                    (_favor_key(user_id, target),),
                )
                return 0
            return row[1]

    def add_favor(self, user_id: int, target: int, score: int) -> int:
        """Change the favour between two members and return the new value.

        A known pair is kept within 0..100; a new pair starts at ``score``.
        """
        with self._lock, self._conn:
            row = self._favor_row(user_id, target)
            if row is None:
                self._conn.execute(
                    "INSERT INTO favorability (userinfo, favor) VALUES (?, ?)",
                    (_favor_key(user_id, target), score),
                )
                return score
            key, favor = row
            favor = max(MIN_FAVOR, min(MAX_FAVOR, favor + score))
            self._conn.execute(
                "UPDATE favorability SET favor = ? WHERE userinfo = ?", (favor, key)
            )
            return favor

    def get_cd_hours(self, group_id: int) -> float:
        """Skill cooldown of a group in hours; 12 unless set."""
        with self._lock, self._conn:
            row = self._settings(group_id)
            if row is None:
                self._store_settings(group_id, "", 1, 1, DEFAULT_CD_HOURS)
                return DEFAULT_CD_HOURS
            return row[3]

    def set_cd_hours(self, group_id: int, hours: float) -> None:
        with self._lock, self._conn:
            row = self._settings(group_id)
            if row is None:
                self._store_settings(group_id, "", 1, 1, hours)
            else:
                self._store_settings(group_id, row[0], row[1], row[2], hours)

    def write_cd(
        self, group_id: int, user_id: int, skill: int, now: datetime | None = None
    ) -> None:
        """Record that a member used a skill at ``now``."""
        stamp = int((now or datetime.now()).timestamp())
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO cdsheet (gid, uid, mode, time) VALUES (?, ?, ?, ?)",
                (group_id, user_id, skill, stamp),
            )

    def cd_expired(
        self,
        group_id: int,
        user_id: int,
        skill: int,
        hours: float,
        now: datetime | None = None,
    ) -> bool:
        """Tell whether a member may use a skill again, forgetting an expired record."""
        current = (now or datetime.now()).timestamp()
        with self._lock, self._conn:
            row = self._conn.execute(
                "SELECT time FROM cdsheet WHERE gid = ? AND uid = ? AND mode = ?",
                (group_id, user_id, skill),
            ).fetchone()
            if row is None:
                return True
            if (current - row[0]) / 3600 > hours:
                self._conn.execute(
                    "DELETE FROM cdsheet WHERE gid = ? AND uid = ? AND mode = ?",
                    (group_id, user_id, skill),
                )
                return True
            return False

    def close(self) -> None:
        with self._lock:
            self._conn.close()