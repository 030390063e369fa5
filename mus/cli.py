"""
The cli module defines mus's CLI interface. It does not have any domain logic of its own. It is
dedicated to parsing, resolving arguments, and delegating to the appropriate module.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import click

from mus.common import MusExpectedError
from mus.config import Config

logger = logging.getLogger(__name__)


class InvalidLibraryArgError(MusExpectedError):
    pass


class InvalidTrackArgError(MusExpectedError):
    pass


class InvalidPlaylistArgError(MusExpectedError):
    pass


@dataclass
class Context:
    config: Config


# fmt: off
@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Emit verbose logging.")
@click.option("--config", "-c", type=click.Path(path_type=Path), help="Override the config file location.")
@click.pass_context
# fmt: on
def cli(cc: click.Context, verbose: bool, config: Path | None = None) -> None:
    """A music library catalog."""
    from mus.catalog import migrate_database

    logging.getLogger().setLevel(logging.DEBUG if verbose else logging.INFO)
    cc.obj = Context(
        config=Config.parse(config_path_override=config),
    )
    migrate_database(cc.obj.config)


@cli.group()
def libraries() -> None:
    """Manage libraries."""


@libraries.command(name="create")
@click.argument("path", type=click.Path(path_type=Path), nargs=1)
@click.option("--name", "-n", type=str, help="A unique name for the library.")
@click.pass_obj
def create_library_cmd(ctx: Context, path: Path, name: str | None) -> None:
    """Register a directory as a new library."""
    from mus.libraries import create_library
    library_id = create_library(ctx.config, path.expanduser().resolve(), name)
    click.echo(library_id)


@libraries.command(name="rename")
@click.argument("library", type=str, nargs=1)
@click.argument("name", type=str, nargs=1, required=False)
@click.pass_obj
def rename_library_cmd(ctx: Context, library: str, name: str | None) -> None:
    """Rename a library. Omit the name to unset it. Accepts a library's ID/path/name."""
    from mus.libraries import rename_library
    rename_library(ctx.config, parse_library_argument(ctx.config, library), name)


# fmt: off
@libraries.command(name="delete")
@click.argument("library", type=str, nargs=1)
@click.option("--tracks", "-t", "policy", type=click.Choice(["reassign", "delete"]), required=True, help="Move the library's tracks to the individual tracks library, or delete them.")
@click.pass_obj
# fmt: on
def delete_library_cmd(ctx: Context, library: str, policy: str) -> None:
    """Delete a library. Accepts a library's ID/path/name."""
    from mus.libraries import LibraryTrackPolicy, delete_library
    delete_library(
        ctx.config,
        parse_library_argument(ctx.config, library),
        LibraryTrackPolicy(policy),
    )


@libraries.command(name="print-all")
@click.pass_obj
def print_all_libraries(ctx: Context) -> None:
    """Print all libraries (in JSON)."""
    from mus.libraries import dump_libraries
    click.echo(dump_libraries(ctx.config))


@cli.group()
def tracks() -> None:
    """Manage tracks."""


# fmt: off
@tracks.command(name="add")
@click.argument("path", type=click.Path(path_type=Path), nargs=1)
@click.option("--length", type=int, required=True, help="Length in seconds.")
@click.option("--bitrate", type=int, required=True, help="Bitrate in kb/s.")
@click.option("--samplerate", type=int, required=True, help="Sample rate in Hz.")
@click.option("--library", "-l", type=str, help="The owning library (default: the individual tracks library).")
@click.option("--title", type=str)
@click.option("--artist", type=str)
@click.option("--album", type=str)
@click.option("--comment", type=str)
@click.option("--genre", type=str)
@click.option("--year", type=int)
@click.option("--track-number", type=int)
@click.option("--rating", type=int)
@click.pass_obj
# fmt: on
def add_track(
    ctx: Context,
    path: Path,
    length: int,
    bitrate: int,
    samplerate: int,
    library: str | None,
    title: str | None,
    artist: str | None,
    album: str | None,
    comment: str | None,
    genre: str | None,
    year: int | None,
    track_number: int | None,
    rating: int | None,
) -> None:
    """Add or update a single track in the catalog."""
    from mus.catalog import get_individual_tracks_library
    from mus.tracks import TrackMetadata, upsert_track
    if library is not None:
        library_id = parse_library_argument(ctx.config, library)
    else:
        library_id = get_individual_tracks_library(ctx.config).id
    metadata = TrackMetadata(
        title=title,
        artist=artist,
        album=album,
        comment=comment,
        genre=genre,
        year=year,
        track_number=track_number,
    )
    track_id = upsert_track(
        ctx.config,
        path.expanduser().resolve(),
        library_id,
        metadata,
        length=length,
        bitrate=bitrate,
        samplerate=samplerate,
        rating=rating,
    )
    click.echo(track_id)


@tracks.command(name="print")
@click.argument("track", type=str, nargs=1)
@click.pass_obj
def print_track(ctx: Context, track: str) -> None:
    """Print a single track (in JSON). Accepts a track's ID/path."""
    from mus.tracks import dump_track
    click.echo(dump_track(ctx.config, parse_track_argument(ctx.config, track)))


# fmt: off
@tracks.command(name="print-all")
@click.option("--artist", type=str, help="Only tracks by this artist.")
@click.option("--album", type=str, help="Only tracks on this album.")
@click.option("--genre", type=str, help="Only tracks of this genre.")
@click.option("--library", "-l", type=str, help="Only tracks of this library.")
@click.option("--sort", "-s", type=str, multiple=True, help="Sort by this field. Repeatable.")
@click.pass_obj
# fmt: on
def print_all_tracks(
    ctx: Context,
    artist: str | None,
    album: str | None,
    genre: str | None,
    library: str | None,
    sort: tuple[str, ...],
) -> None:
    """Print all tracks (in JSON), optionally filtered."""
    from mus.tracks import TrackFilter, dump_tracks
    trackfilter = TrackFilter(
        artist=artist,
        album=album,
        genre=genre,
        library_id=parse_library_argument(ctx.config, library) if library is not None else None,
    )
    click.echo(dump_tracks(ctx.config, trackfilter, list(sort)))


@tracks.command(name="rate")
@click.argument("track", type=str, nargs=1)
@click.argument("rating", type=int, nargs=1, required=False)
@click.pass_obj
def rate_track(ctx: Context, track: str, rating: int | None) -> None:
    """Set a track's rating. Omit the rating to clear it. Accepts a track's ID/path."""
    from mus.tracks import set_track_rating
    set_track_rating(ctx.config, parse_track_argument(ctx.config, track), rating)


@tracks.command(name="delete")
@click.argument("track", type=str, nargs=1)
@click.pass_obj
def delete_track_cmd(ctx: Context, track: str) -> None:
    """Remove a track from the catalog and from all playlists. Accepts a track's ID/path."""
    from mus.tracks import delete_track
    delete_track(ctx.config, parse_track_argument(ctx.config, track))


@cli.group()
def playlists() -> None:
    """Manage playlists."""


@playlists.command(name="create")
@click.argument("name", type=str, nargs=1)
@click.pass_obj
def create_playlist_cmd(ctx: Context, name: str) -> None:
    """Create a new playlist."""
    from mus.playlists import create_playlist
    create_playlist(ctx.config, name)


@playlists.command(name="rename")
@click.argument("old_name", type=str, nargs=1)
@click.argument("new_name", type=str, nargs=1)
@click.pass_obj
def rename_playlist_cmd(ctx: Context, old_name: str, new_name: str) -> None:
    """Rename a playlist."""
    from mus.playlists import rename_playlist
    rename_playlist(ctx.config, parse_playlist_argument(ctx.config, old_name), new_name)


@playlists.command(name="delete")
@click.argument("playlist", type=str, nargs=1)
@click.pass_obj
def delete_playlist_cmd(ctx: Context, playlist: str) -> None:
    """Delete a playlist."""
    from mus.playlists import delete_playlist
    delete_playlist(ctx.config, parse_playlist_argument(ctx.config, playlist))


@playlists.command(name="add-track")
@click.argument("playlist", type=str, nargs=1)
@click.argument("track", type=str, nargs=1)
@click.option("--position", "-p", type=int, help="Insert at this 1-based position (default: append).")
@click.pass_obj
def add_track_to_playlist_cmd(ctx: Context, playlist: str, track: str, position: int | None) -> None:
    """Add a track to a playlist. Accepts a playlist's name and a track's ID/path."""
    from mus.playlists import add_track_to_playlist
    add_track_to_playlist(
        ctx.config,
        parse_playlist_argument(ctx.config, playlist),
        parse_track_argument(ctx.config, track),
        position,
    )


@playlists.command(name="remove-track")
@click.argument("playlist", type=str, nargs=1)
@click.option("--position", "-p", type=int, help="Remove the entry at this 1-based position.")
@click.option("--entry", "-e", type=int, help="Remove the entry with this ID.")
@click.pass_obj
def remove_track_from_playlist_cmd(
    ctx: Context,
    playlist: str,
    position: int | None,
    entry: int | None,
) -> None:
    """Remove one entry from a playlist. Accepts a playlist's name."""
    from mus.playlists import remove_track_from_playlist
    remove_track_from_playlist(
        ctx.config,
        parse_playlist_argument(ctx.config, playlist),
        position=position,
        entry_id=entry,
    )


@playlists.command(name="print")
@click.argument("playlist", type=str, nargs=1)
@click.pass_obj
def print_playlist(ctx: Context, playlist: str) -> None:
    """Print a playlist (in JSON). Accepts a playlist's name."""
    from mus.playlists import dump_playlist
    click.echo(dump_playlist(ctx.config, parse_playlist_argument(ctx.config, playlist)))


@playlists.command(name="print-all")
@click.pass_obj
def print_all_playlists(ctx: Context) -> None:
    """Print all playlists (in JSON)."""
    from mus.playlists import dump_playlists
    click.echo(dump_playlists(ctx.config))


def parse_library_argument(c: Config, arg: str) -> int:
    """Takes in a library argument and normalizes it to the library ID."""
    from mus.libraries import get_library, get_library_by_name, get_library_by_path
    if arg.isdigit() and get_library(c, int(arg)) is not None:
        logger.debug(f"Treating library argument {arg} as ID")
        return int(arg)
    for candidate in (arg, str(Path(arg).expanduser().resolve())):
        library = get_library_by_path(c, candidate)
        if library is not None:
            return library.id
    library = get_library_by_name(c, arg)
    if library is not None:
        return library.id
    raise InvalidLibraryArgError(
        f"""\
{arg} is not a valid library argument.

Library arguments must be one of:

  1. The library ID
  2. The library's path
  3. The library's name

{arg} is not recognized as any of the above.
"""
    )


def parse_track_argument(c: Config, arg: str) -> int:
    """Takes in a track argument and normalizes it to the track ID."""
    from mus.tracks import get_track, get_track_by_path
    if arg.isdigit() and get_track(c, int(arg)) is not None:
        logger.debug(f"Treating track argument {arg} as ID")
        return int(arg)
    for candidate in (arg, str(Path(arg).expanduser().resolve())):
        track = get_track_by_path(c, candidate)
        if track is not None:
            return track.id
    raise InvalidTrackArgError(
        f"""\
{arg} is not a valid track argument.

Track arguments must be one of:

  1. The track ID
  2. The track's path

{arg} is not recognized as any of the above.
"""
    )


def parse_playlist_argument(c: Config, arg: str) -> int:
    """Takes in a playlist name and normalizes it to the playlist ID."""
    from mus.playlists import get_playlist_by_name
    playlist = get_playlist_by_name(c, arg)
    if playlist is None:
        raise InvalidPlaylistArgError(f"Playlist {arg} does not exist")
    return playlist.id
