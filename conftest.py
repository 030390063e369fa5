import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner

from mus.catalog import migrate_database
from mus.config import Config

logger = logging.getLogger(__name__)


@pytest.fixture(autouse=True)
def debug_logging() -> None:
    logging.getLogger().setLevel(logging.DEBUG)


@pytest.fixture()
def isolated_dir() -> Iterator[Path]:
    with CliRunner().isolated_filesystem():
        yield Path.cwd()


@pytest.fixture()
def config(isolated_dir: Path) -> Config:
    data_dir = isolated_dir / "data"
    data_dir.mkdir()
    c = Config(
        data_dir=data_dir,
        rating_min=0,
        rating_max=5,
        database_timeout=15.0,
    )
    # Bootstrapping an empty catalog always gives the sentinel library ID 1.
    migrate_database(c)
    return c


@pytest.fixture()
def seeded_catalog(config: Config) -> None:
    with sqlite3.connect(config.database_path) as conn:
        conn.executescript(
            """\
INSERT INTO libraries
       (id, path      , name     )
VALUES (2 , '/music'  , 'Main'   )
     , (3 , '/archive', 'Archive');

INSERT INTO tracks
       (id, library_id, path                   , title    , artist        , album    , comment, genre      , year, track_number, length, bitrate, samplerate, rating)
VALUES (1 , 2         , '/music/a/01.flac'     , 'Track 1', 'Techno Man'  , 'Album A', null   , 'Techno'   , 2020, 1           , 240   , 1000   , 44100     , 4     )
     , (2 , 2         , '/music/a/02.flac'     , 'Track 2', 'Techno Man'  , 'Album A', null   , 'Techno'   , 2020, 2           , 200   , 1000   , 44100     , null  )
     , (3 , 2         , '/music/b/01.flac'     , 'Track 3', 'Techno Man'  , 'Album B', null   , 'House'    , 2021, 1           , 300   , 320    , 48000     , null  )
     , (4 , 3         , '/archive/01.mp3'      , 'Track 4', 'Violin Woman', 'Album C', 'live' , 'Classical', 1999, 1           , 500   , 256    , 44100     , 5     )
     , (5 , 1         , '/downloads/single.mp3', 'Single' , 'Bass Man'    , null     , null   , 'House'    , null, null        , 180   , 320    , 44100     , null  );

INSERT INTO playlists
       (id, name           )
VALUES (1 , 'Lala Lisa'    )
     , (2 , 'Turtle Rabbit');

INSERT INTO playlists_tracks
       (id, playlist_id, track_id, position)
VALUES (1 , 1          , 1       , 1       )
     , (2 , 1          , 4       , 2       )
     , (3 , 1          , 1       , 3       )
     , (4 , 2          , 3       , 1       );
            """
        )
