from mus.catalog import (
    SENTINEL_LIBRARY_PATH,
    CatalogSchemaMismatchError,
    Library,
    Playlist,
    PlaylistEntry,
    Track,
    get_individual_tracks_library,
    migrate_database,
)
from mus.common import (
    VERSION,
    ConflictError,
    IntegrityError,
    MusError,
    MusExpectedError,
    NotFoundError,
    ProtectedEntityError,
    ValidationError,
    initialize_logging,
)
from mus.config import Config
from mus.libraries import (
    LibraryAlreadyExistsError,
    LibraryDoesNotExistError,
    LibraryTrackPolicy,
    ScanReconciliation,
    clear_library,
    create_library,
    delete_library,
    dump_libraries,
    get_library,
    get_library_by_name,
    get_library_by_path,
    list_libraries,
    reconcile_library_scan,
    rename_library,
)
from mus.playlists import (
    PlaylistAlreadyExistsError,
    PlaylistDoesNotExistError,
    PlaylistEntryDoesNotExistError,
    add_track_to_playlist,
    create_playlist,
    delete_playlist,
    dump_playlist,
    dump_playlists,
    get_playlist,
    get_playlist_by_name,
    list_playlist_entries,
    list_playlist_tracks,
    list_playlists,
    remove_track_from_playlist,
    rename_playlist,
    reorder_playlist,
)
from mus.tracks import (
    TrackDoesNotExistError,
    TrackFilter,
    TrackMetadata,
    delete_track,
    dump_track,
    dump_tracks,
    get_track,
    get_track_by_path,
    query_tracks,
    set_track_rating,
    track_exists,
    upsert_track,
)

__all__ = [
    # Plumbing
    "initialize_logging",
    "VERSION",
    # Errors
    "MusError",
    "MusExpectedError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "ProtectedEntityError",
    "IntegrityError",
    "CatalogSchemaMismatchError",
    # Configuration
    "Config",
    # Catalog
    "migrate_database",
    "SENTINEL_LIBRARY_PATH",
    # Libraries
    "Library",
    "LibraryAlreadyExistsError",
    "LibraryDoesNotExistError",
    "LibraryTrackPolicy",
    "ScanReconciliation",
    "clear_library",
    "create_library",
    "delete_library",
    "dump_libraries",
    "get_individual_tracks_library",
    "get_library",
    "get_library_by_name",
    "get_library_by_path",
    "list_libraries",
    "reconcile_library_scan",
    "rename_library",
    # Tracks
    "Track",
    "TrackDoesNotExistError",
    "TrackFilter",
    "TrackMetadata",
    "delete_track",
    "dump_track",
    "dump_tracks",
    "get_track",
    "get_track_by_path",
    "query_tracks",
    "set_track_rating",
    "track_exists",
    "upsert_track",
    # Playlists
    "Playlist",
    "PlaylistEntry",
    "PlaylistAlreadyExistsError",
    "PlaylistDoesNotExistError",
    "PlaylistEntryDoesNotExistError",
    "add_track_to_playlist",
    "create_playlist",
    "delete_playlist",
    "dump_playlist",
    "dump_playlists",
    "get_playlist",
    "get_playlist_by_name",
    "list_playlist_entries",
    "list_playlist_tracks",
    "list_playlists",
    "remove_track_from_playlist",
    "rename_playlist",
    "reorder_playlist",
]

initialize_logging(__name__)
