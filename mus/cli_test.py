import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from mus.cli import (
    Context,
    InvalidLibraryArgError,
    InvalidPlaylistArgError,
    InvalidTrackArgError,
    add_track,
    add_track_to_playlist_cmd,
    cli,
    create_playlist_cmd,
    delete_library_cmd,
    parse_library_argument,
    parse_playlist_argument,
    parse_track_argument,
    print_all_tracks,
    print_playlist,
    rate_track,
    remove_track_from_playlist_cmd,
)
from mus.config import Config
from mus.libraries import get_library
from mus.playlists import list_playlist_tracks
from mus.tracks import get_track, get_track_by_path


@pytest.mark.usefixtures("seeded_catalog")
def test_parse_library_argument(config: Config) -> None:
    assert parse_library_argument(config, "2") == 2
    assert parse_library_argument(config, "/music") == 2
    assert parse_library_argument(config, "Archive") == 3
    assert parse_library_argument(config, "NONE") == 1
    with pytest.raises(InvalidLibraryArgError):
        parse_library_argument(config, "999")
    with pytest.raises(InvalidLibraryArgError):
        parse_library_argument(config, "Lalala")


@pytest.mark.usefixtures("seeded_catalog")
def test_parse_track_argument(config: Config) -> None:
    assert parse_track_argument(config, "4") == 4
    assert parse_track_argument(config, "/archive/01.mp3") == 4
    with pytest.raises(InvalidTrackArgError):
        parse_track_argument(config, "999")
    with pytest.raises(InvalidTrackArgError):
        parse_track_argument(config, "/archive/02.mp3")


@pytest.mark.usefixtures("seeded_catalog")
def test_parse_playlist_argument(config: Config) -> None:
    assert parse_playlist_argument(config, "Turtle Rabbit") == 2
    with pytest.raises(InvalidPlaylistArgError):
        parse_playlist_argument(config, "Bunny Hop")


def test_cli_bootstraps_catalog(isolated_dir: Path) -> None:
    data_dir = isolated_dir / "fresh"
    config_path = isolated_dir / "config.toml"
    with config_path.open("w") as fp:
        fp.write(f'data_dir = "{data_dir}"')

    runner = CliRunner()
    res = runner.invoke(cli, ["--config", str(config_path), "libraries", "print-all"])
    assert res.exit_code == 0, res.output
    assert json.loads(res.output) == [
        {"id": 1, "path": "NONE", "name": None, "individual_tracks": True, "track_count": 0},
    ]
    # Running again doesn't create a second sentinel.
    res = runner.invoke(cli, ["--config", str(config_path), "libraries", "print-all"])
    assert res.exit_code == 0, res.output
    assert len(json.loads(res.output)) == 1


def test_cli_add_track_to_individual_tracks(config: Config, isolated_dir: Path) -> None:
    ctx = Context(config=config)
    runner = CliRunner()
    track_path = isolated_dir / "single.flac"
    res = runner.invoke(
        add_track,
        [
            str(track_path),
            "--length", "180",
            "--bitrate", "900",
            "--samplerate", "44100",
            "--title", "Single",
            "--artist", "Bass Man",
            "--rating", "3",
        ],
        obj=ctx,
    )
    assert res.exit_code == 0, res.output
    track = get_track_by_path(config, track_path.resolve())
    assert track is not None
    assert int(res.output) == track.id
    assert track.library_id == 1
    assert track.title == "Single"
    assert track.rating == 3


def test_cli_add_track_validation_error(config: Config, isolated_dir: Path) -> None:
    ctx = Context(config=config)
    res = CliRunner().invoke(
        add_track,
        [str(isolated_dir / "x.flac"), "--length", "-5", "--bitrate", "1", "--samplerate", "1"],
        obj=ctx,
    )
    assert res.exit_code == 1


@pytest.mark.usefixtures("seeded_catalog")
def test_cli_delete_library_requires_policy(config: Config) -> None:
    ctx = Context(config=config)
    runner = CliRunner()
    res = runner.invoke(delete_library_cmd, ["Main"], obj=ctx)
    assert res.exit_code == 2
    assert get_library(config, 2) is not None

    res = runner.invoke(delete_library_cmd, ["Main", "--tracks", "reassign"], obj=ctx)
    assert res.exit_code == 0, res.output
    assert get_library(config, 2) is None
    track = get_track(config, 1)
    assert track is not None
    assert track.library_id == 1


@pytest.mark.usefixtures("seeded_catalog")
def test_cli_playlist_flow(config: Config) -> None:
    ctx = Context(config=config)
    runner = CliRunner()
    res = runner.invoke(create_playlist_cmd, ["Favorites"], obj=ctx)
    assert res.exit_code == 0, res.output
    for track in ["/music/a/01.flac", "2", "/archive/01.mp3"]:
        res = runner.invoke(add_track_to_playlist_cmd, ["Favorites", track], obj=ctx)
        assert res.exit_code == 0, res.output
    res = runner.invoke(add_track_to_playlist_cmd, ["Favorites", "5", "--position", "1"], obj=ctx)
    assert res.exit_code == 0, res.output

    res = runner.invoke(remove_track_from_playlist_cmd, ["Favorites", "--position", "3"], obj=ctx)
    assert res.exit_code == 0, res.output

    res = runner.invoke(print_playlist, ["Favorites"], obj=ctx)
    assert res.exit_code == 0, res.output
    data = json.loads(res.output)
    assert [(t["position"], t["id"]) for t in data["tracks"]] == [(1, 5), (2, 1), (3, 4)]
    assert [t.id for t in list_playlist_tracks(config, data["id"])] == [5, 1, 4]


@pytest.mark.usefixtures("seeded_catalog")
def test_cli_print_all_tracks_filtered(config: Config) -> None:
    ctx = Context(config=config)
    res = CliRunner().invoke(
        print_all_tracks,
        ["--artist", "Techno Man", "--album", "Album A", "--sort", "track_number"],
        obj=ctx,
    )
    assert res.exit_code == 0, res.output
    assert [t["id"] for t in json.loads(res.output)] == [1, 2]


@pytest.mark.usefixtures("seeded_catalog")
def test_cli_rate_track(config: Config) -> None:
    ctx = Context(config=config)
    runner = CliRunner()
    res = runner.invoke(rate_track, ["2", "4"], obj=ctx)
    assert res.exit_code == 0, res.output
    track = get_track(config, 2)
    assert track is not None
    assert track.rating == 4
    res = runner.invoke(rate_track, ["2"], obj=ctx)
    assert res.exit_code == 0, res.output
    track = get_track(config, 2)
    assert track is not None
    assert track.rating is None
