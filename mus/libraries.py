"""
The libraries module provides functions for interacting with libraries: the filesystem roots that
tracks are imported from.

Scanning the filesystem and reading tags is somebody else's job. What we provide is the bookkeeping
side of a scan: `reconcile_library_scan` takes the set of paths a scanner found and brings the
catalog in line with it.
"""

from __future__ import annotations

import enum
import json
import logging
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from mus.catalog import (
    SENTINEL_LIBRARY_PATH,
    Library,
    connect,
    delete_tracks,
    fetch_sentinel_library,
    transaction,
)
from mus.common import (
    ConflictError,
    IntegrityError,
    NotFoundError,
    ProtectedEntityError,
    ValidationError,
)
from mus.config import Config

logger = logging.getLogger(__name__)


class LibraryDoesNotExistError(NotFoundError):
    pass


class LibraryAlreadyExistsError(ConflictError):
    pass


class LibraryTrackPolicy(enum.Enum):
    """What happens to a library's tracks when the library is deleted."""

    # Move the tracks to the individual tracks library. Playlists are left untouched.
    REASSIGN = "reassign"
    # Delete the tracks, and remove them from every playlist.
    DELETE = "delete"


@dataclass
class ScanReconciliation:
    # Cataloged tracks of the library that the scan did not find. They have been deleted.
    removed_paths: list[Path] = field(default_factory=list)
    # Scanned paths that are not in the catalog yet. Their tags should be read and upserted.
    new_paths: list[Path] = field(default_factory=list)


def create_library(c: Config, path: str | Path, name: str | None = None) -> int:
    path = str(path)
    if not path:
        raise ValidationError("Library path must not be empty")
    if path == SENTINEL_LIBRARY_PATH:
        raise LibraryAlreadyExistsError(f"Library path {SENTINEL_LIBRARY_PATH} is reserved")
    if name is not None and not name:
        raise ValidationError("Library name must not be empty: pass None for no name")
    with connect(c) as conn, transaction(conn):
        cursor = conn.execute("SELECT EXISTS(SELECT * FROM libraries WHERE path = ?)", (path,))
        if cursor.fetchone()[0]:
            raise LibraryAlreadyExistsError(f"Library at {path} already exists")
        if name is not None:
            cursor = conn.execute("SELECT EXISTS(SELECT * FROM libraries WHERE name = ?)", (name,))
            if cursor.fetchone()[0]:
                raise LibraryAlreadyExistsError(f"Library named {name} already exists")
        cursor = conn.execute("INSERT INTO libraries (path, name) VALUES (?, ?)", (path, name))
        assert cursor.lastrowid is not None
        library_id = cursor.lastrowid
    logger.info(f"Created library {name or path} at {path}")
    return library_id


def rename_library(c: Config, library_id: int, new_name: str | None) -> None:
    if new_name is not None and not new_name:
        raise ValidationError("Library name must not be empty: pass None to remove the name")
    with connect(c) as conn, transaction(conn):
        library = _get_library(conn, library_id)
        if library is None:
            raise LibraryDoesNotExistError(f"Library {library_id} does not exist")
        if library.is_sentinel:
            raise ProtectedEntityError(f"Library {SENTINEL_LIBRARY_PATH} cannot be renamed")
        if library.name == new_name:
            logger.info(f"No-Op: Library {library_id} is already named {new_name}")
            return
        if new_name is not None:
            cursor = conn.execute(
                "SELECT EXISTS(SELECT * FROM libraries WHERE name = ?)", (new_name,)
            )
            if cursor.fetchone()[0]:
                raise LibraryAlreadyExistsError(f"Library named {new_name} already exists")
        conn.execute("UPDATE libraries SET name = ? WHERE id = ?", (new_name, library_id))
    logger.info(f"Renamed library {library.name or library.path} to {new_name}")


def delete_library(c: Config, library_id: int, policy: LibraryTrackPolicy) -> None:
    """
    Delete a library. The caller must decide what happens to the library's tracks: they are either
    reassigned to the individual tracks library or deleted along with their playlist entries. The
    whole thing happens in one transaction.
    """
    with connect(c) as conn, transaction(conn):
        library = _get_library(conn, library_id)
        if library is None:
            raise LibraryDoesNotExistError(f"Library {library_id} does not exist")
        if library.is_sentinel:
            raise ProtectedEntityError(f"Library {SENTINEL_LIBRARY_PATH} cannot be deleted")

        cursor = conn.execute("SELECT id FROM tracks WHERE library_id = ?", (library_id,))
        track_ids = [row["id"] for row in cursor]
        if policy == LibraryTrackPolicy.REASSIGN:
            sentinel = fetch_sentinel_library(conn)
            conn.execute(
                "UPDATE tracks SET library_id = ? WHERE library_id = ?", (sentinel.id, library_id)
            )
            logger.debug(f"Reassigned {len(track_ids)} tracks of library {library_id} to {sentinel.id}")
        else:
            delete_tracks(conn, track_ids)
            logger.debug(f"Deleted {len(track_ids)} tracks of library {library_id}")

        try:
            conn.execute("DELETE FROM libraries WHERE id = ?", (library_id,))
        except sqlite3.IntegrityError as e:
            raise IntegrityError(f"Failed to delete library {library_id}: {e}") from e
    logger.info(
        f"Deleted library {library.name or library.path} ({policy.value} {len(track_ids)} tracks)"
    )


def clear_library(c: Config, library_id: int) -> int:
    """
    Delete every track of a library, e.g. before a full rescan. Playlist entries of the deleted
    tracks go too. Returns the number of deleted tracks.
    """
    with connect(c) as conn, transaction(conn):
        if _get_library(conn, library_id) is None:
            raise LibraryDoesNotExistError(f"Library {library_id} does not exist")
        cursor = conn.execute("SELECT id FROM tracks WHERE library_id = ?", (library_id,))
        track_ids = [row["id"] for row in cursor]
        delete_tracks(conn, track_ids)
    logger.info(f"Cleared {len(track_ids)} tracks from library {library_id}")
    return len(track_ids)


def reconcile_library_scan(
    c: Config,
    library_id: int,
    scanned_paths: Iterable[str | Path],
) -> ScanReconciliation:
    """
    Bring the catalog in line with a fresh scan of a library. Tracks of the library that were not
    found by the scan are deleted (with their playlist entries). Scanned paths that aren't cataloged
    in any library are returned so that the scanner can read their tags and upsert them.
    """
    scanned = sorted({str(p) for p in scanned_paths})
    rval = ScanReconciliation()
    with connect(c) as conn, transaction(conn):
        if _get_library(conn, library_id) is None:
            raise LibraryDoesNotExistError(f"Library {library_id} does not exist")
        conn.execute("CREATE TEMP TABLE IF NOT EXISTS scan_results (path TEXT PRIMARY KEY)")
        conn.execute("DELETE FROM scan_results")
        conn.executemany("INSERT INTO scan_results (path) VALUES (?)", [(p,) for p in scanned])

        cursor = conn.execute(
            """
            SELECT t.id, t.path
            FROM tracks t
            LEFT JOIN scan_results s ON s.path = t.path
            WHERE t.library_id = ? AND s.path IS NULL
            ORDER BY t.path
            """,
            (library_id,),
        )
        missing = cursor.fetchall()
        delete_tracks(conn, [row["id"] for row in missing])
        rval.removed_paths = [Path(row["path"]) for row in missing]

        cursor = conn.execute(
            """
            SELECT s.path
            FROM scan_results s
            LEFT JOIN tracks t ON t.path = s.path
            WHERE t.path IS NULL
            ORDER BY s.path
            """
        )
        rval.new_paths = [Path(row["path"]) for row in cursor]
        conn.execute("DROP TABLE scan_results")
    logger.info(
        f"Reconciled scan of library {library_id}: removed {len(rval.removed_paths)} missing tracks, "
        f"found {len(rval.new_paths)} new paths"
    )
    return rval


def list_libraries(c: Config) -> list[Library]:
    with connect(c) as conn:
        cursor = conn.execute("SELECT id, path, name FROM libraries ORDER BY id")
        return [Library.from_row(row) for row in cursor]


def get_library(c: Config, library_id: int) -> Library | None:
    with connect(c) as conn:
        return _get_library(conn, library_id)


def get_library_by_path(c: Config, path: str | Path) -> Library | None:
    with connect(c) as conn:
        cursor = conn.execute(
            "SELECT id, path, name FROM libraries WHERE path = ?", (str(path),)
        )
        row = cursor.fetchone()
        return Library.from_row(row) if row else None


def get_library_by_name(c: Config, name: str) -> Library | None:
    with connect(c) as conn:
        cursor = conn.execute("SELECT id, path, name FROM libraries WHERE name = ?", (name,))
        row = cursor.fetchone()
        return Library.from_row(row) if row else None


def dump_libraries(c: Config) -> str:
    out = []
    with connect(c) as conn:
        cursor = conn.execute(
            """
            SELECT l.id, l.path, l.name, COUNT(t.id) AS track_count
            FROM libraries l
            LEFT JOIN tracks t ON t.library_id = l.id
            GROUP BY l.id
            ORDER BY l.id
            """
        )
        for row in cursor:
            out.append({**Library.from_row(row).dump(), "track_count": row["track_count"]})
    return json.dumps(out)


def _get_library(conn: sqlite3.Connection, library_id: int) -> Library | None:
    cursor = conn.execute("SELECT id, path, name FROM libraries WHERE id = ?", (library_id,))
    row = cursor.fetchone()
    return Library.from_row(row) if row else None

