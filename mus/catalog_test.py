import sqlite3

import pytest

from mus.catalog import (
    CATALOG_SCHEMA_PATH,
    SCHEMA_VERSION,
    SENTINEL_LIBRARY_PATH,
    CatalogSchemaMismatchError,
    _split_sql_script,
    connect,
    delete_tracks,
    get_individual_tracks_library,
    migrate_database,
    transaction,
)
from mus.common import IntegrityError
from mus.config import Config


def test_schema(config: Config) -> None:
    # Test that the schema successfully bootstraps.
    with connect(config) as conn:
        cursor = conn.execute("SELECT value FROM _schema_version")
        assert cursor.fetchone()[0] == SCHEMA_VERSION
        cursor = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        tables = {r["name"] for r in cursor}
    assert {"libraries", "tracks", "playlists", "playlists_tracks"} <= tables


def test_schema_indexes(config: Config) -> None:
    with connect(config) as conn:
        cursor = conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'")
        indexes = {r["name"] for r in cursor}
    assert {"tracks_artist", "tracks_artist_album", "tracks_genre"} <= indexes


def test_bootstrap_creates_sentinel(config: Config) -> None:
    with connect(config) as conn:
        cursor = conn.execute("SELECT id, path, name FROM libraries")
        rows = [dict(r) for r in cursor]
    assert rows == [{"id": 1, "path": SENTINEL_LIBRARY_PATH, "name": None}]


def test_bootstrap_idempotent(config: Config) -> None:
    sentinel = get_individual_tracks_library(config)
    migrate_database(config)
    migrate_database(config)
    with connect(config) as conn:
        cursor = conn.execute("SELECT COUNT(*) FROM libraries WHERE path = 'NONE'")
        assert cursor.fetchone()[0] == 1
    assert get_individual_tracks_library(config) == sentinel


@pytest.mark.usefixtures("seeded_catalog")
def test_bootstrap_preserves_data(config: Config) -> None:
    migrate_database(config)
    with connect(config) as conn:
        cursor = conn.execute("SELECT COUNT(*) FROM tracks")
        assert cursor.fetchone()[0] == 5


def test_bootstrap_schema_mismatch(config: Config) -> None:
    with connect(config) as conn:
        conn.execute("UPDATE _schema_version SET value = 999")
    with pytest.raises(CatalogSchemaMismatchError):
        migrate_database(config)
    # And nothing was destroyed.
    with connect(config) as conn:
        cursor = conn.execute("SELECT COUNT(*) FROM libraries")
        assert cursor.fetchone()[0] == 1


def test_sentinel_cannot_be_deleted_in_database(config: Config) -> None:
    with connect(config) as conn:
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute("DELETE FROM libraries WHERE path = 'NONE'")
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute("UPDATE libraries SET path = '/elsewhere' WHERE path = 'NONE'")


def test_get_individual_tracks_library(config: Config) -> None:
    library = get_individual_tracks_library(config)
    assert library.id == 1
    assert library.is_sentinel
    assert library.source_path is None


def test_get_individual_tracks_library_missing(config: Config) -> None:
    with connect(config) as conn:
        conn.execute("DROP TRIGGER libraries_protect_sentinel_delete")
        conn.execute("DELETE FROM libraries")
    with pytest.raises(IntegrityError):
        get_individual_tracks_library(config)


def test_transaction_rolls_back(config: Config) -> None:
    with connect(config) as conn:
        with pytest.raises(RuntimeError):
            with transaction(conn):
                conn.execute("INSERT INTO playlists (name) VALUES ('Lala Lisa')")
                raise RuntimeError("boom")
        cursor = conn.execute("SELECT COUNT(*) FROM playlists")
        assert cursor.fetchone()[0] == 0


def test_transaction_nested(config: Config) -> None:
    with connect(config) as conn:
        with transaction(conn):
            with transaction(conn):
                conn.execute("INSERT INTO playlists (name) VALUES ('Lala Lisa')")
            assert conn.in_transaction
        assert not conn.in_transaction
        cursor = conn.execute("SELECT COUNT(*) FROM playlists")
        assert cursor.fetchone()[0] == 1


def test_foreign_keys_enforced(config: Config) -> None:
    with connect(config) as conn:
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                """
                INSERT INTO tracks (library_id, path, length, bitrate, samplerate)
                VALUES (999, '/x.flac', 1, 1, 1)
                """
            )


def test_split_sql_script_keeps_triggers_whole() -> None:
    with CATALOG_SCHEMA_PATH.open("r") as fp:
        statements = _split_sql_script(fp.read())
    triggers = [s for s in statements if s.startswith("CREATE TRIGGER")]
    assert len(triggers) == 2
    for t in triggers:
        assert t.endswith("END;")
    assert all(sqlite3.complete_statement(s) for s in statements)


def test_delete_tracks_beyond_variable_limit(config: Config) -> None:
    with connect(config) as conn:
        conn.executemany(
            "INSERT INTO tracks (library_id, path, length, bitrate, samplerate) VALUES (1, ?, 1, 1, 1)",
            [(f"/music/{i:03}.flac",) for i in range(50)],
        )
        conn.execute("INSERT INTO playlists (id, name) VALUES (1, 'Lala Lisa')")
        conn.execute(
            "INSERT INTO playlists_tracks (playlist_id, track_id, position) SELECT 1, id, id FROM tracks"
        )
        conn.setlimit(sqlite3.SQLITE_LIMIT_VARIABLE_NUMBER, 10)
        with pytest.raises(sqlite3.OperationalError):
            conn.execute(f"SELECT 1 WHERE 1 IN ({','.join('?' * 11)})", list(range(11)))

        cursor = conn.execute("SELECT id FROM tracks ORDER BY id")
        track_ids = [row["id"] for row in cursor]
        with transaction(conn):
            delete_tracks(conn, track_ids[:40])
        cursor = conn.execute("SELECT COUNT(*) FROM tracks")
        assert cursor.fetchone()[0] == 10
        cursor = conn.execute("SELECT track_id, position FROM playlists_tracks ORDER BY position")
        assert [(r["track_id"], r["position"]) for r in cursor] == [
            (track_id, idx + 1) for idx, track_id in enumerate(track_ids[40:])
        ]
