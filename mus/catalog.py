"""
The catalog module encapsulates the SQLite database that holds the music catalog and exposes handles
for working with it: connections, transactions, the schema bootstrap, and the entity dataclasses
that every other module reads rows into.

Unlike a cache, the catalog is the source of truth for its own data. We never drop and rebuild it:
if the schema on disk does not match the one we ship, we refuse to touch it.

Writes always happen inside `transaction`, which takes SQLite's write lock up front (`BEGIN
IMMEDIATE`). Writers therefore serialize, and every compound operation (e.g. deleting a library and
all of its tracks) becomes visible all at once or not at all. The database runs in WAL mode, so
readers see the last committed state and never wait on writers.
"""

from __future__ import annotations

import contextlib
import logging
import secrets
import sqlite3
import time
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from mus.common import IntegrityError, MusExpectedError
from mus.config import Config

logger = logging.getLogger(__name__)

CATALOG_SCHEMA_PATH = Path(__file__).resolve().parent / "catalog.sql"
# Bump this alongside any change to catalog.sql.
SCHEMA_VERSION = 1

# The path of the library that individually added tracks belong to.
SENTINEL_LIBRARY_PATH = "NONE"


class CatalogSchemaMismatchError(MusExpectedError):
    pass


@contextlib.contextmanager
def connect(c: Config) -> Iterator[sqlite3.Connection]:
    conn = sqlite3.connect(
        c.database_path,
        detect_types=sqlite3.PARSE_DECLTYPES,
        isolation_level=None,
        timeout=c.database_timeout,
    )
    try:
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute("PRAGMA journal_mode=WAL")
        yield conn
    finally:
        if conn:
            conn.close()


@contextlib.contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    Run the body as one write transaction: commit on a clean exit, roll back if the body raises.
    Entering while `conn` already has a transaction open joins the outer one, so helpers that write
    can be called both standalone and from within a larger cascade.

    The write lock is taken up front with BEGIN IMMEDIATE. A deferred transaction that upgrades from
    reading to writing can fail with SQLITE_BUSY immediately instead of waiting out the busy timeout.
    """
    tx_id = secrets.token_hex(8)
    started = time.monotonic()
    if conn.in_transaction:
        logger.debug(f"Transaction {tx_id} joins the open transaction")
        yield conn
        logger.debug(
            f"Transaction {tx_id} left the open transaction after {time.monotonic() - started:.4f}s"
        )
        return

    logger.debug(f"Transaction {tx_id} begins")
    with conn:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
    logger.debug(f"Transaction {tx_id} committed after {time.monotonic() - started:.4f}s")


def migrate_database(c: Config) -> None:
    """
    Bootstrap the catalog. On an empty database, create the schema. Then, in every case, make sure
    that the sentinel library exists. Safe to run on every startup.
    """
    with connect(c) as conn, transaction(conn):
        cursor = conn.execute(
            """
            SELECT EXISTS(
                SELECT * FROM sqlite_master
                WHERE type = 'table' AND name = '_schema_version'
            )
            """
        )
        if cursor.fetchone()[0]:
            cursor = conn.execute("SELECT value FROM _schema_version")
            row = cursor.fetchone()
            if not row or row["value"] != SCHEMA_VERSION:
                raise CatalogSchemaMismatchError(
                    f"Catalog at {c.database_path} has schema version {row['value'] if row else None}, "
                    f"but this version of mus expects version {SCHEMA_VERSION}"
                )
        else:
            logger.info(f"Creating catalog schema in {c.database_path}")
            with CATALOG_SCHEMA_PATH.open("r") as fp:
                # executescript() would COMMIT our open transaction, so run the statements one by
                # one instead.
                for statement in _split_sql_script(fp.read()):
                    conn.execute(statement)
            conn.execute("CREATE TABLE _schema_version (value INTEGER PRIMARY KEY)")
            conn.execute("INSERT INTO _schema_version (value) VALUES (?)", (SCHEMA_VERSION,))

        cursor = conn.execute(
            "INSERT INTO libraries (path, name) VALUES (?, NULL) ON CONFLICT (path) DO NOTHING",
            (SENTINEL_LIBRARY_PATH,),
        )
        if cursor.rowcount:
            logger.info("Created the sentinel library for individually added tracks")


def _split_sql_script(script: str) -> list[str]:
    """Split a SQL script into complete statements. Trigger bodies contain semicolons too."""
    statements: list[str] = []
    buffer = ""
    for line in script.splitlines(keepends=True):
        if not buffer and (not line.strip() or line.lstrip().startswith("--")):
            continue
        buffer += line
        if sqlite3.complete_statement(buffer):
            statements.append(buffer.strip())
            buffer = ""
    if buffer.strip():
        statements.append(buffer.strip())
    return statements


@dataclass(slots=True)
class Library:
    id: int
    path: str
    name: str | None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Library:
        return Library(id=row["id"], path=row["path"], name=row["name"])

    @property
    def is_sentinel(self) -> bool:
        return self.path == SENTINEL_LIBRARY_PATH

    @property
    def source_path(self) -> Path | None:
        """The directory this library was imported from, or None for the individual tracks library."""
        return None if self.is_sentinel else Path(self.path)

    def dump(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "name": self.name,
            "individual_tracks": self.is_sentinel,
        }


@dataclass(slots=True)
class Track:
    id: int
    library_id: int
    path: Path
    title: str | None
    artist: str | None
    album: str | None
    comment: str | None
    genre: str | None
    year: int | None
    track_number: int | None
    length: int
    bitrate: int
    samplerate: int
    rating: int | None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Track:
        return Track(
            id=row["id"],
            library_id=row["library_id"],
            path=Path(row["path"]),
            title=row["title"],
            artist=row["artist"],
            album=row["album"],
            comment=row["comment"],
            genre=row["genre"],
            year=row["year"],
            track_number=row["track_number"],
            length=row["length"],
            bitrate=row["bitrate"],
            samplerate=row["samplerate"],
            rating=row["rating"],
        )

    def dump(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "library_id": self.library_id,
            "path": str(self.path),
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "comment": self.comment,
            "genre": self.genre,
            "year": self.year,
            "track_number": self.track_number,
            "length": self.length,
            "bitrate": self.bitrate,
            "samplerate": self.samplerate,
            "rating": self.rating,
        }


@dataclass(slots=True)
class Playlist:
    id: int
    name: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Playlist:
        return Playlist(id=row["id"], name=row["name"])


@dataclass(slots=True)
class PlaylistEntry:
    id: int
    playlist_id: int
    track_id: int
    position: int

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> PlaylistEntry:
        return PlaylistEntry(
            id=row["id"],
            playlist_id=row["playlist_id"],
            track_id=row["track_id"],
            position=row["position"],
        )


def get_individual_tracks_library(c: Config) -> Library:
    """Fetch the sentinel library. It must exist once the catalog has been bootstrapped."""
    with connect(c) as conn:
        return fetch_sentinel_library(conn)


def fetch_sentinel_library(conn: sqlite3.Connection) -> Library:
    cursor = conn.execute(
        "SELECT id, path, name FROM libraries WHERE path = ?", (SENTINEL_LIBRARY_PATH,)
    )
    row = cursor.fetchone()
    if not row:
        raise IntegrityError(
            f"The {SENTINEL_LIBRARY_PATH} library is missing: was the catalog bootstrapped?"
        )
    return Library.from_row(row)


def delete_playlist_entries_of_tracks(conn: sqlite3.Connection, track_ids: list[int]) -> set[int]:
    """
    Remove every playlist entry pointing at one of the given tracks and close the gaps left behind
    in each affected playlist. Must be called inside a transaction. Returns the affected playlists.
    """
    if not track_ids:
        return set()
    _stage_track_ids(conn, track_ids)
    cursor = conn.execute(
        """
        SELECT DISTINCT playlist_id
        FROM playlists_tracks
        WHERE track_id IN (SELECT id FROM staged_track_ids)
        """
    )
    playlist_ids = {row["playlist_id"] for row in cursor}
    conn.execute(
        "DELETE FROM playlists_tracks WHERE track_id IN (SELECT id FROM staged_track_ids)"
    )
    for playlist_id in playlist_ids:
        renumber_playlist(conn, playlist_id)
    return playlist_ids


def renumber_playlist(conn: sqlite3.Connection, playlist_id: int) -> None:
    """Rewrite a playlist's positions as 1..N, preserving their relative order."""
    cursor = conn.execute(
        "SELECT id FROM playlists_tracks WHERE playlist_id = ? ORDER BY position",
        (playlist_id,),
    )
    entry_ids = [row["id"] for row in cursor]
    # Negate first: no intermediate state may collide on (playlist_id, position).
    conn.execute(
        "UPDATE playlists_tracks SET position = -position WHERE playlist_id = ?", (playlist_id,)
    )
    conn.executemany(
        "UPDATE playlists_tracks SET position = ? WHERE id = ?",
        [(idx + 1, entry_id) for idx, entry_id in enumerate(entry_ids)],
    )


def delete_tracks(conn: sqlite3.Connection, track_ids: list[int]) -> None:
    """
    Delete tracks along with every playlist entry that references them. Must be called inside a
    transaction so that both halves commit together. Any number of tracks may be passed: the IDs
    go through a temporary table rather than bound parameters, which SQLite caps per statement.
    """
    if not track_ids:
        return
    delete_playlist_entries_of_tracks(conn, track_ids)
    try:
        conn.execute("DELETE FROM tracks WHERE id IN (SELECT id FROM staged_track_ids)")
    except sqlite3.IntegrityError as e:
        raise IntegrityError(f"Failed to delete {len(track_ids)} tracks: {e}") from e


def _stage_track_ids(conn: sqlite3.Connection, track_ids: list[int]) -> None:
    conn.execute("CREATE TEMP TABLE IF NOT EXISTS staged_track_ids (id INTEGER PRIMARY KEY)")
    conn.execute("DELETE FROM staged_track_ids")
    conn.executemany(
        "INSERT OR IGNORE INTO staged_track_ids (id) VALUES (?)", [(i,) for i in track_ids]
    )
