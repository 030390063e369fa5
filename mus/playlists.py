"""
The playlists module provides functions for interacting with playlists.

A playlist is an ordered sequence of entries, and the same track may appear in it any number of
times. Entries have 1-based positions that are kept contiguous: inserting into or removing from the
middle of a playlist shifts the entries after it.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any

from mus.catalog import Playlist, PlaylistEntry, Track, connect, transaction
from mus.common import ConflictError, IntegrityError, NotFoundError, ValidationError
from mus.config import Config
from mus.tracks import TrackDoesNotExistError

logger = logging.getLogger(__name__)


class PlaylistDoesNotExistError(NotFoundError):
    pass


class PlaylistAlreadyExistsError(ConflictError):
    pass


class PlaylistEntryDoesNotExistError(NotFoundError):
    pass


def create_playlist(c: Config, name: str) -> int:
    if not name:
        raise ValidationError("Playlist name must not be empty")
    with connect(c) as conn, transaction(conn):
        if _get_playlist_by_name(conn, name) is not None:
            raise PlaylistAlreadyExistsError(f"Playlist {name} already exists")
        cursor = conn.execute("INSERT INTO playlists (name) VALUES (?)", (name,))
        assert cursor.lastrowid is not None
        playlist_id = cursor.lastrowid
    logger.info(f"Created playlist {name}")
    return playlist_id


def delete_playlist(c: Config, playlist_id: int) -> None:
    with connect(c) as conn, transaction(conn):
        playlist = _get_playlist(conn, playlist_id)
        if playlist is None:
            raise PlaylistDoesNotExistError(f"Playlist {playlist_id} does not exist")
        conn.execute("DELETE FROM playlists_tracks WHERE playlist_id = ?", (playlist_id,))
        try:
            conn.execute("DELETE FROM playlists WHERE id = ?", (playlist_id,))
        except sqlite3.IntegrityError as e:
            raise IntegrityError(f"Failed to delete playlist {playlist_id}: {e}") from e
    logger.info(f"Deleted playlist {playlist.name}")


def rename_playlist(c: Config, playlist_id: int, new_name: str) -> None:
    if not new_name:
        raise ValidationError("Playlist name must not be empty")
    with connect(c) as conn, transaction(conn):
        playlist = _get_playlist(conn, playlist_id)
        if playlist is None:
            raise PlaylistDoesNotExistError(f"Playlist {playlist_id} does not exist")
        if playlist.name == new_name:
            logger.info(f"No-Op: Playlist {playlist_id} is already named {new_name}")
            return
        if _get_playlist_by_name(conn, new_name) is not None:
            raise PlaylistAlreadyExistsError(f"Playlist {new_name} already exists")
        conn.execute("UPDATE playlists SET name = ? WHERE id = ?", (new_name, playlist_id))
    logger.info(f"Renamed playlist {playlist.name} to {new_name}")


def add_track_to_playlist(
    c: Config,
    playlist_id: int,
    track_id: int,
    position: int | None = None,
) -> int:
    """
    Add a track to a playlist, at the end or at the given 1-based position. The entry previously at
    that position, and every entry after it, moves back by one. Returns the new entry's ID.
    """
    with connect(c) as conn, transaction(conn):
        playlist = _get_playlist(conn, playlist_id)
        if playlist is None:
            raise PlaylistDoesNotExistError(f"Playlist {playlist_id} does not exist")
        cursor = conn.execute("SELECT EXISTS(SELECT * FROM tracks WHERE id = ?)", (track_id,))
        if not cursor.fetchone()[0]:
            raise TrackDoesNotExistError(f"Track {track_id} does not exist")

        cursor = conn.execute(
            "SELECT COUNT(*) FROM playlists_tracks WHERE playlist_id = ?", (playlist_id,)
        )
        size: int = cursor.fetchone()[0]
        if position is None:
            position = size + 1
        elif not (1 <= position <= size + 1):
            raise ValidationError(
                f"Position must be between 1 and {size + 1} for playlist {playlist.name}: got {position}"
            )
        else:
            # Two passes so that no intermediate state collides on (playlist_id, position).
            conn.execute(
                """
                UPDATE playlists_tracks SET position = -(position + 1)
                WHERE playlist_id = ? AND position >= ?
                """,
                (playlist_id, position),
            )
            conn.execute(
                "UPDATE playlists_tracks SET position = -position WHERE playlist_id = ? AND position < 0",
                (playlist_id,),
            )
        cursor = conn.execute(
            "INSERT INTO playlists_tracks (playlist_id, track_id, position) VALUES (?, ?, ?)",
            (playlist_id, track_id, position),
        )
        assert cursor.lastrowid is not None
        entry_id = cursor.lastrowid
    logger.info(f"Added track {track_id} to playlist {playlist.name} at position {position}")
    return entry_id


def remove_track_from_playlist(
    c: Config,
    playlist_id: int,
    *,
    position: int | None = None,
    entry_id: int | None = None,
) -> None:
    """
    Remove exactly one entry from a playlist, identified either by its position or by its entry ID.
    Entries after it move up by one.
    """
    if (position is None) == (entry_id is None):
        raise ValidationError("Pass exactly one of position and entry_id")
    with connect(c) as conn, transaction(conn):
        playlist = _get_playlist(conn, playlist_id)
        if playlist is None:
            raise PlaylistDoesNotExistError(f"Playlist {playlist_id} does not exist")
        if entry_id is not None:
            cursor = conn.execute(
                "SELECT * FROM playlists_tracks WHERE playlist_id = ? AND id = ?",
                (playlist_id, entry_id),
            )
        else:
            cursor = conn.execute(
                "SELECT * FROM playlists_tracks WHERE playlist_id = ? AND position = ?",
                (playlist_id, position),
            )
        row = cursor.fetchone()
        if row is None:
            which = f"entry {entry_id}" if entry_id is not None else f"position {position}"
            raise PlaylistEntryDoesNotExistError(f"Playlist {playlist.name} has no {which}")
        entry = PlaylistEntry.from_row(row)
        conn.execute("DELETE FROM playlists_tracks WHERE id = ?", (entry.id,))
        conn.execute(
            """
            UPDATE playlists_tracks SET position = -(position - 1)
            WHERE playlist_id = ? AND position > ?
            """,
            (playlist_id, entry.position),
        )
        conn.execute(
            "UPDATE playlists_tracks SET position = -position WHERE playlist_id = ? AND position < 0",
            (playlist_id,),
        )
    logger.info(
        f"Removed track {entry.track_id} at position {entry.position} from playlist {playlist.name}"
    )


def reorder_playlist(c: Config, playlist_id: int, entry_ids: list[int]) -> None:
    """
    Rearrange a playlist. `entry_ids` must be a permutation of the playlist's current entry IDs.
    """
    with connect(c) as conn, transaction(conn):
        playlist = _get_playlist(conn, playlist_id)
        if playlist is None:
            raise PlaylistDoesNotExistError(f"Playlist {playlist_id} does not exist")
        cursor = conn.execute(
            "SELECT id FROM playlists_tracks WHERE playlist_id = ?", (playlist_id,)
        )
        current = sorted(row["id"] for row in cursor)
        if sorted(entry_ids) != current:
            raise ValidationError(
                f"New order for playlist {playlist.name} must contain each of its entries exactly once"
            )
        conn.execute(
            "UPDATE playlists_tracks SET position = -position WHERE playlist_id = ?", (playlist_id,)
        )
        conn.executemany(
            "UPDATE playlists_tracks SET position = ? WHERE id = ?",
            [(idx + 1, eid) for idx, eid in enumerate(entry_ids)],
        )
    logger.info(f"Reordered playlist {playlist.name}")


def list_playlist_tracks(c: Config, playlist_id: int) -> list[Track]:
    """The tracks of a playlist in playlist order. A repeated track appears once per entry."""
    with connect(c) as conn:
        if _get_playlist(conn, playlist_id) is None:
            raise PlaylistDoesNotExistError(f"Playlist {playlist_id} does not exist")
        cursor = conn.execute(
            """
            SELECT t.*
            FROM playlists_tracks pt
            JOIN tracks t ON t.id = pt.track_id
            WHERE pt.playlist_id = ?
            ORDER BY pt.position ASC
            """,
            (playlist_id,),
        )
        return [Track.from_row(row) for row in cursor]


def list_playlist_entries(c: Config, playlist_id: int) -> list[PlaylistEntry]:
    with connect(c) as conn:
        if _get_playlist(conn, playlist_id) is None:
            raise PlaylistDoesNotExistError(f"Playlist {playlist_id} does not exist")
        cursor = conn.execute(
            "SELECT * FROM playlists_tracks WHERE playlist_id = ? ORDER BY position ASC",
            (playlist_id,),
        )
        return [PlaylistEntry.from_row(row) for row in cursor]


def list_playlists(c: Config) -> list[Playlist]:
    with connect(c) as conn:
        cursor = conn.execute("SELECT id, name FROM playlists ORDER BY name")
        return [Playlist.from_row(row) for row in cursor]


def get_playlist(c: Config, playlist_id: int) -> Playlist | None:
    with connect(c) as conn:
        return _get_playlist(conn, playlist_id)


def get_playlist_by_name(c: Config, name: str) -> Playlist | None:
    with connect(c) as conn:
        return _get_playlist_by_name(conn, name)


def dump_playlist(c: Config, playlist_id: int) -> str:
    with connect(c) as conn:
        playlist = _get_playlist(conn, playlist_id)
        if playlist is None:
            raise PlaylistDoesNotExistError(f"Playlist {playlist_id} does not exist")
        return json.dumps(_dump_playlist(conn, playlist))


def dump_playlists(c: Config) -> str:
    with connect(c) as conn:
        cursor = conn.execute("SELECT id, name FROM playlists ORDER BY name")
        playlists = [Playlist.from_row(row) for row in cursor]
        return json.dumps([_dump_playlist(conn, p) for p in playlists])


def _dump_playlist(conn: sqlite3.Connection, playlist: Playlist) -> dict[str, Any]:
    cursor = conn.execute(
        """
        SELECT pt.id AS entry_id, pt.position, t.*
        FROM playlists_tracks pt
        JOIN tracks t ON t.id = pt.track_id
        WHERE pt.playlist_id = ?
        ORDER BY pt.position ASC
        """,
        (playlist.id,),
    )
    tracks: list[dict[str, Any]] = []
    for row in cursor:
        tracks.append(
            {"position": row["position"], "entry_id": row["entry_id"], **Track.from_row(row).dump()}
        )
    return {"id": playlist.id, "name": playlist.name, "tracks": tracks}


def _get_playlist(conn: sqlite3.Connection, playlist_id: int) -> Playlist | None:
    cursor = conn.execute("SELECT id, name FROM playlists WHERE id = ?", (playlist_id,))
    row = cursor.fetchone()
    return Playlist.from_row(row) if row else None


def _get_playlist_by_name(conn: sqlite3.Connection, name: str) -> Playlist | None:
    cursor = conn.execute("SELECT id, name FROM playlists WHERE name = ?", (name,))
    row = cursor.fetchone()
    return Playlist.from_row(row) if row else None
