"""SQLite persistence for videos, requests, actions, the archive and staff."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager
from datetime import datetime

import aiosqlite

from ..core.models import Action, Archived, Moderator, Request, User, Video

log = logging.getLogger("doggy_watch.store")

SCHEMA = """
CREATE TABLE IF NOT EXISTS videos (
  ytid TEXT PRIMARY KEY,
  title TEXT NOT NULL,
  banned INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS requests (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ytid TEXT NOT NULL UNIQUE REFERENCES videos(ytid) ON DELETE CASCADE,
  viewed_at TEXT DEFAULT NULL
);
CREATE TABLE IF NOT EXISTS actions (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  rid INTEGER NOT NULL REFERENCES requests(id) ON DELETE CASCADE,
  uid INTEGER NOT NULL,
  created_at TEXT NOT NULL,
  UNIQUE (rid, uid)
);
CREATE TABLE IF NOT EXISTS archived (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ytid TEXT NOT NULL REFERENCES videos(ytid) ON DELETE NO ACTION,
  viewed_at TEXT DEFAULT NULL,
  created_by INTEGER NOT NULL,
  created_at TEXT NOT NULL,
  contributors INTEGER NOT NULL CHECK (contributors > 0)
);
CREATE INDEX IF NOT EXISTS idx_archived_ytid ON archived(ytid);
CREATE TABLE IF NOT EXISTS moderators (
  id INTEGER PRIMARY KEY,
  created_at TEXT NOT NULL,
  notify INTEGER NOT NULL DEFAULT 1,
  can_add_mods INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS users (
  id INTEGER PRIMARY KEY,
  created_at TEXT NOT NULL,
  contributions INTEGER NOT NULL DEFAULT 0
);
"""


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


class StoreSession:
    """Queries bound to one open connection.

    Obtained from :meth:`WatchStore.session` (every statement commits on its
    own) or :meth:`WatchStore.transaction` (everything commits together).
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        self.db = db

    async def _one(self, sql: str, params: Sequence[object] = ()) -> aiosqlite.Row | None:
        async with self.db.execute(sql, params) as cur:
            return await cur.fetchone()

    async def _all(self, sql: str, params: Sequence[object] = ()) -> list[aiosqlite.Row]:
        async with self.db.execute(sql, params) as cur:
            return list(await cur.fetchall())

    async def _scalar(self, sql: str, params: Sequence[object] = ()) -> int:
        row = await self._one(sql, params)
        return int(row[0]) if row is not None else 0

    async def commit(self) -> None:
        await self.db.commit()

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------
    async def get_video(self, ytid: str) -> Video | None:
        row = await self._one("SELECT ytid, title, banned FROM videos WHERE ytid = ?", (ytid,))
        return Video(**dict(row)) if row else None

    async def insert_video(self, ytid: str, title: str) -> Video:
        """Create the video unless it exists already and return the stored row."""
        await self.db.execute(
            "INSERT OR IGNORE INTO videos (ytid, title, banned) VALUES (?, ?, 0)",
            (ytid, title),
        )
        video = await self.get_video(ytid)
        assert video is not None
        return video

    async def set_video_banned(self, ytid: str, banned: bool) -> Video | None:
        cur = await self.db.execute(
            "UPDATE videos SET banned = ? WHERE ytid = ?", (int(banned), ytid)
        )
        if cur.rowcount == 0:
            return None
        return await self.get_video(ytid)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    async def get_request(self, rid: int) -> Request | None:
        row = await self._one("SELECT id, ytid, viewed_at FROM requests WHERE id = ?", (rid,))
        return Request(**dict(row)) if row else None

    async def get_request_for_video(self, ytid: str) -> Request | None:
        row = await self._one("SELECT id, ytid, viewed_at FROM requests WHERE ytid = ?", (ytid,))
        return Request(**dict(row)) if row else None

    async def ensure_request(self, ytid: str) -> tuple[Request, bool]:
        """Return the open request of ``ytid``, creating it when absent.

        The second element tells whether this call created it. The unique
        constraint on ``requests.ytid`` decides between concurrent callers.
        """
        cur = await self.db.execute(
            "INSERT OR IGNORE INTO requests (ytid) VALUES (?)", (ytid,)
        )
        created = cur.rowcount == 1
        request = await self.get_request_for_video(ytid)
        assert request is not None
        return request, created

    async def delete_request(self, rid: int) -> bool:
        cur = await self.db.execute("DELETE FROM requests WHERE id = ?", (rid,))
        return cur.rowcount > 0

    async def delete_requests(self, rids: Sequence[int]) -> int:
        if not rids:
            return 0
        cur = await self.db.execute(
            f"DELETE FROM requests WHERE id IN ({_placeholders(len(rids))})", tuple(rids)
        )
        return int(cur.rowcount)

    async def set_request_viewed(self, rid: int, viewed_at: datetime | None) -> Request | None:
        cur = await self.db.execute(
            "UPDATE requests SET viewed_at = ? WHERE id = ?", (_iso(viewed_at), rid)
        )
        if cur.rowcount == 0:
            return None
        return await self.get_request(rid)

    async def list_requests(self, viewed: bool | None = None) -> list[Request]:
        """All requests ordered by id; ``viewed`` filters on ``viewed_at``."""
        sql = "SELECT id, ytid, viewed_at FROM requests"
        if viewed is True:
            sql += " WHERE viewed_at IS NOT NULL"
        elif viewed is False:
            sql += " WHERE viewed_at IS NULL"
        rows = await self._all(sql + " ORDER BY id")
        return [Request(**dict(r)) for r in rows]

    async def list_open(self, unviewed_only: bool = False) -> list[tuple[Request, Video]]:
        """Requests of videos that are not banned, joined with their video."""
        sql = (
            "SELECT r.id, r.ytid, r.viewed_at, v.title, v.banned "
            "FROM requests r JOIN videos v ON v.ytid = r.ytid "
            "WHERE v.banned = 0"
        )
        if unviewed_only:
            sql += " AND r.viewed_at IS NULL"
        rows = await self._all(sql + " ORDER BY r.id")
        return [
            (
                Request(id=r["id"], ytid=r["ytid"], viewed_at=r["viewed_at"]),
                Video(ytid=r["ytid"], title=r["title"], banned=r["banned"]),
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    async def insert_action(self, rid: int, uid: int, created_at: datetime) -> Action:
        cur = await self.db.execute(
            "INSERT INTO actions (rid, uid, created_at) VALUES (?, ?, ?)",
            (rid, uid, _iso(created_at)),
        )
        return Action(id=int(cur.lastrowid), rid=rid, uid=uid, created_at=created_at)

    async def has_action(self, rid: int, uid: int) -> bool:
        return bool(
            await self._scalar(
                "SELECT COUNT(*) FROM actions WHERE rid = ? AND uid = ?", (rid, uid)
            )
        )

    async def count_actions(self, rid: int) -> int:
        return await self._scalar("SELECT COUNT(*) FROM actions WHERE rid = ?", (rid,))

    async def creator(self, rid: int) -> Action | None:
        """First contributor of ``rid``; ids follow insertion order."""
        row = await self._one(
            "SELECT id, rid, uid, created_at FROM actions WHERE rid = ? ORDER BY id LIMIT 1",
            (rid,),
        )
        return Action(**dict(row)) if row else None

    async def actions_for(self, rids: Sequence[int]) -> dict[int, list[Action]]:
        """Actions of every request in ``rids`` ordered by id.

        Requests without actions map to an empty list.
        """
        grouped: dict[int, list[Action]] = {rid: [] for rid in rids}
        if not rids:
            return grouped
        rows = await self._all(
            "SELECT id, rid, uid, created_at FROM actions "
            f"WHERE rid IN ({_placeholders(len(rids))}) ORDER BY id",
            tuple(rids),
        )
        for row in rows:
            grouped[row["rid"]].append(Action(**dict(row)))
        return grouped

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    async def get_user(self, uid: int) -> User | None:
        row = await self._one(
            "SELECT id, created_at, contributions FROM users WHERE id = ?", (uid,)
        )
        return User(**dict(row)) if row else None

    async def bump_user(self, uid: int, now: datetime) -> User:
        await self.db.execute(
            "INSERT INTO users (id, created_at, contributions) VALUES (?, ?, 1) "
            "ON CONFLICT(id) DO UPDATE SET contributions = contributions + 1",
            (uid, _iso(now)),
        )
        user = await self.get_user(uid)
        assert user is not None
        return user

    # ------------------------------------------------------------------
    # Archive
    # ------------------------------------------------------------------
    async def insert_archived(self, rows: Iterable[dict]) -> int:
        params = [
            (
                r["ytid"],
                _iso(r["viewed_at"]),
                r["created_by"],
                _iso(r["created_at"]),
                r["contributors"],
            )
            for r in rows
        ]
        await self.db.executemany(
            "INSERT INTO archived (ytid, viewed_at, created_by, created_at, contributors) "
            "VALUES (?, ?, ?, ?, ?)",
            params,
        )
        return len(params)

    async def count_archived(self, ytid: str, viewed_only: bool = False) -> int:
        sql = "SELECT COUNT(*) FROM archived WHERE ytid = ?"
        if viewed_only:
            sql += " AND viewed_at IS NOT NULL"
        return await self._scalar(sql, (ytid,))

    async def list_archived(self, ytid: str | None = None) -> list[Archived]:
        sql = "SELECT id, ytid, viewed_at, created_by, created_at, contributors FROM archived"
        params: tuple[object, ...] = ()
        if ytid is not None:
            sql += " WHERE ytid = ?"
            params = (ytid,)
        rows = await self._all(sql + " ORDER BY id", params)
        return [Archived(**dict(r)) for r in rows]

    # ------------------------------------------------------------------
    # Moderators
    # ------------------------------------------------------------------
    async def get_moderator(self, uid: int) -> Moderator | None:
        row = await self._one(
            "SELECT id, created_at, notify, can_add_mods FROM moderators WHERE id = ?", (uid,)
        )
        return Moderator(**dict(row)) if row else None

    async def insert_moderator(
        self, uid: int, now: datetime, can_add_mods: bool = False
    ) -> Moderator:
        """Enroll ``uid``. Raises :class:`aiosqlite.IntegrityError` if enrolled."""
        await self.db.execute(
            "INSERT INTO moderators (id, created_at, notify, can_add_mods) VALUES (?, ?, 1, ?)",
            (uid, _iso(now), int(can_add_mods)),
        )
        return Moderator(id=uid, created_at=now, notify=True, can_add_mods=can_add_mods)

    async def upsert_administrator(self, uid: int, now: datetime) -> Moderator:
        await self.db.execute(
            "INSERT INTO moderators (id, created_at, notify, can_add_mods) VALUES (?, ?, 1, 1) "
            "ON CONFLICT(id) DO UPDATE SET can_add_mods = 1",
            (uid, _iso(now)),
        )
        moderator = await self.get_moderator(uid)
        assert moderator is not None
        return moderator

    async def delete_moderator(self, uid: int) -> bool:
        cur = await self.db.execute("DELETE FROM moderators WHERE id = ?", (uid,))
        return cur.rowcount > 0

    async def set_moderator_notify(self, uid: int, notify: bool) -> Moderator | None:
        cur = await self.db.execute(
            "UPDATE moderators SET notify = ? WHERE id = ?", (int(notify), uid)
        )
        if cur.rowcount == 0:
            return None
        return await self.get_moderator(uid)

    async def list_moderators(self, notify_only: bool = False) -> list[Moderator]:
        sql = "SELECT id, created_at, notify, can_add_mods FROM moderators"
        if notify_only:
            sql += " WHERE notify = 1"
        rows = await self._all(sql + " ORDER BY created_at, id")
        return [Moderator(**dict(r)) for r in rows]


class WatchStore:
    """Entry point to the SQLite database at ``path``.

    A fresh connection is opened per unit of work so concurrent handlers never
    share cursor state; SQLite's own locking serialises writers.
    """

    def __init__(self, path: str = "doggy_watch.sqlite3") -> None:
        self.path = path

    async def init(self) -> None:
        """Create the schema if needed."""
        async with aiosqlite.connect(self.path) as db:
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("PRAGMA foreign_keys=ON")
            await db.executescript(SCHEMA)
            await db.commit()
        log.info("Database ready at %s", self.path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        # ``isolation_level=None`` leaves transaction control to ``transaction``.
        async with aiosqlite.connect(self.path, isolation_level=None) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys=ON")
            yield db

    @asynccontextmanager
    async def session(self) -> AsyncIterator[StoreSession]:
        async with self._connect() as db:
            yield StoreSession(db)

    @asynccontextmanager
    async def transaction(self, immediate: bool = True) -> AsyncIterator[StoreSession]:
        """Run the block inside one transaction.

        ``immediate`` takes the write lock up front; pass ``False`` for a
        consistent read-only snapshot. The transaction commits when the block
        exits normally and rolls back when it raises, unless the block already
        committed itself.
        """
        async with self._connect() as db:
            await db.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            try:
                yield StoreSession(db)
            except BaseException:
                if db.in_transaction:
                    await db.rollback()
                raise
            if db.in_transaction:
                await db.commit()
