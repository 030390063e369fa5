"""
The tracks module encapsulates all mutations and queries that can occur on track entities.

`upsert_track` is the single entry point for tag metadata: a scanner calls it for every audio file
it finds, whether or not the file has been seen before, and the track's path decides whether a row is
inserted or updated in place.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from mus.catalog import Track, connect, delete_tracks, transaction
from mus.common import NotFoundError, ValidationError
from mus.config import Config

logger = logging.getLogger(__name__)

# Fields that `query_tracks` can sort by.
SORTABLE_FIELDS = [
    "path",
    "title",
    "artist",
    "album",
    "genre",
    "year",
    "track_number",
    "length",
    "rating",
]


class TrackDoesNotExistError(NotFoundError):
    pass


@dataclass(frozen=True)
class TrackMetadata:
    """The descriptive tags of an audio file. Every field is optional."""

    title: str | None = None
    artist: str | None = None
    album: str | None = None
    comment: str | None = None
    genre: str | None = None
    year: int | None = None
    track_number: int | None = None


@dataclass(frozen=True)
class TrackFilter:
    """
    Exact-match filters for `query_tracks`. Filtering on artist, artist+album, and genre is served
    by indexes.
    """

    artist: str | None = None
    album: str | None = None
    genre: str | None = None
    library_id: int | None = None


def upsert_track(
    c: Config,
    path: str | Path,
    library_id: int,
    metadata: TrackMetadata,
    length: int,
    bitrate: int,
    samplerate: int,
    rating: int | None = None,
) -> int:
    """
    Insert the track at `path`, or update it in place if it is already cataloged. Returns the track's
    ID. Repeating a call with the same arguments changes nothing.

    The rating is user data rather than tag data, so passing None keeps the current rating of an
    existing track. Use `set_track_rating` to clear one.
    """
    path = str(path)
    if not path:
        raise ValidationError("Track path must not be empty")
    if not Path(path).is_absolute():
        raise ValidationError(f"Track path must be absolute: got {path}")
    for fieldname, value in (("length", length), ("bitrate", bitrate), ("samplerate", samplerate)):
        if value is None:
            raise ValidationError(f"Track {fieldname} is required")
        if value < 0:
            raise ValidationError(f"Track {fieldname} must not be negative: got {value}")
    if rating is not None:
        _validate_rating(c, rating)

    with connect(c) as conn, transaction(conn):
        cursor = conn.execute("SELECT EXISTS(SELECT * FROM libraries WHERE id = ?)", (library_id,))
        if not cursor.fetchone()[0]:
            raise ValidationError(f"Library {library_id} does not exist")
        cursor = conn.execute("SELECT id FROM tracks WHERE path = ?", (path,))
        existing = cursor.fetchone()
        conn.execute(
            """
            INSERT INTO tracks (
                library_id
              , path
              , title
              , artist
              , album
              , comment
              , genre
              , year
              , track_number
              , length
              , bitrate
              , samplerate
              , rating
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (path) DO UPDATE SET
                library_id = excluded.library_id
              , title = excluded.title
              , artist = excluded.artist
              , album = excluded.album
              , comment = excluded.comment
              , genre = excluded.genre
              , year = excluded.year
              , track_number = excluded.track_number
              , length = excluded.length
              , bitrate = excluded.bitrate
              , samplerate = excluded.samplerate
              , rating = COALESCE(excluded.rating, tracks.rating)
            """,
            (
                library_id,
                path,
                metadata.title,
                metadata.artist,
                metadata.album,
                metadata.comment,
                metadata.genre,
                metadata.year,
                metadata.track_number,
                length,
                bitrate,
                samplerate,
                rating,
            ),
        )
        cursor = conn.execute("SELECT id FROM tracks WHERE path = ?", (path,))
        track_id: int = cursor.fetchone()["id"]
    if existing:
        logger.debug(f"Updated track {track_id} at {path}")
    else:
        logger.info(f"Added track {metadata.title or '?'} located at {path}")
    return track_id


def delete_track(c: Config, track: int | str | Path) -> None:
    """
    Delete a track, by ID or by path, along with every playlist entry that references it.
    """
    with connect(c) as conn, transaction(conn):
        row = _find_track(conn, track)
        if row is None:
            raise TrackDoesNotExistError(f"Track {track} does not exist")
        delete_tracks(conn, [row["id"]])
    logger.info(f"Deleted track {row['id']} at {row['path']}")


def set_track_rating(c: Config, track_id: int, rating: int | None) -> None:
    if rating is not None:
        _validate_rating(c, rating)
    with connect(c) as conn, transaction(conn):
        cursor = conn.execute("UPDATE tracks SET rating = ? WHERE id = ?", (rating, track_id))
        if not cursor.rowcount:
            raise TrackDoesNotExistError(f"Track {track_id} does not exist")
    logger.info(f"Set rating of track {track_id} to {rating}")


def get_track(c: Config, track_id: int) -> Track | None:
    with connect(c) as conn:
        cursor = conn.execute("SELECT * FROM tracks WHERE id = ?", (track_id,))
        row = cursor.fetchone()
        return Track.from_row(row) if row else None


def get_track_by_path(c: Config, path: str | Path) -> Track | None:
    with connect(c) as conn:
        cursor = conn.execute("SELECT * FROM tracks WHERE path = ?", (str(path),))
        row = cursor.fetchone()
        return Track.from_row(row) if row else None


def track_exists(c: Config, path: str | Path) -> bool:
    """Whether a file is already cataloged. Used by scanners to skip known files."""
    with connect(c) as conn:
        cursor = conn.execute("SELECT EXISTS(SELECT * FROM tracks WHERE path = ?)", (str(path),))
        return bool(cursor.fetchone()[0])


def query_tracks(
    c: Config,
    filter: TrackFilter | None = None,
    order_by: list[str] | None = None,
) -> list[Track]:
    """
    Fetch the tracks matching every field set on the filter. Pass None to fetch all. Results are
    sorted by the given fields (ties broken by path), or by path alone.
    """
    filter = filter or TrackFilter()
    order_by = order_by or []
    for fieldname in order_by:
        if fieldname not in SORTABLE_FIELDS:
            raise ValidationError(
                f"Cannot sort tracks by {fieldname}: must be one of {', '.join(SORTABLE_FIELDS)}"
            )

    query = "SELECT * FROM tracks"
    clauses: list[str] = []
    args: list[str | int] = []
    if filter.artist is not None:
        clauses.append("artist = ?")
        args.append(filter.artist)
    if filter.album is not None:
        clauses.append("album = ?")
        args.append(filter.album)
    if filter.genre is not None:
        clauses.append("genre = ?")
        args.append(filter.genre)
    if filter.library_id is not None:
        clauses.append("library_id = ?")
        args.append(filter.library_id)
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    query += " ORDER BY " + ", ".join([*order_by, "path"])

    with connect(c) as conn:
        cursor = conn.execute(query, args)
        return [Track.from_row(row) for row in cursor]


def dump_track(c: Config, track_id: int) -> str:
    track = get_track(c, track_id)
    if track is None:
        raise TrackDoesNotExistError(f"Track {track_id} does not exist")
    return json.dumps(track.dump())


def dump_tracks(
    c: Config,
    filter: TrackFilter | None = None,
    order_by: list[str] | None = None,
) -> str:
    return json.dumps([t.dump() for t in query_tracks(c, filter, order_by)])


def _validate_rating(c: Config, rating: int) -> None:
    if not (c.rating_min <= rating <= c.rating_max):
        raise ValidationError(
            f"Rating must be between {c.rating_min} and {c.rating_max}: got {rating}"
        )


def _find_track(conn: sqlite3.Connection, track: int | str | Path) -> sqlite3.Row | None:
    if isinstance(track, int):
        cursor = conn.execute("SELECT id, path FROM tracks WHERE id = ?", (track,))
    else:
        cursor = conn.execute("SELECT id, path FROM tracks WHERE path = ?", (str(track),))
    row: sqlite3.Row | None = cursor.fetchone()
    return row
