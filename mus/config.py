"""
The config module provides the Config dataclass and its parsing logic.

Every key has a default, so a missing configuration file is fine. We still take care to provide
detailed errors when an invalid configuration is detected, and emit warnings when unrecognized keys
are found.
"""

from __future__ import annotations

import functools
import logging
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import appdirs
import tomllib

from mus.common import MusExpectedError

XDG_CONFIG_MUS = Path(appdirs.user_config_dir("mus"))
CONFIG_PATH = XDG_CONFIG_MUS / "config.toml"

XDG_DATA_MUS = Path(appdirs.user_data_dir("mus"))

DEFAULT_RATING_MIN = 0
DEFAULT_RATING_MAX = 5
DEFAULT_DATABASE_TIMEOUT = 15.0

logger = logging.getLogger(__name__)


class ConfigDecodeError(MusExpectedError):
    pass


class InvalidConfigValueError(MusExpectedError, ValueError):
    pass


@dataclass(frozen=True)
class Config:
    data_dir: Path
    # The inclusive range of valid track ratings. The catalog itself has no opinion on ratings.
    rating_min: int
    rating_max: int
    # Seconds to wait on a locked database before giving up.
    database_timeout: float

    @classmethod
    def parse(cls, config_path_override: Path | None = None) -> Config:
        # As we parse, delete consumed values from the data dictionary. If any are left over at the
        # end of the config, warn that unknown config keys were found.
        cfgpath = config_path_override or CONFIG_PATH
        data: dict[str, Any] = {}
        try:
            with cfgpath.open("r") as fp:
                data = tomllib.loads(fp.read())
        except FileNotFoundError:
            logger.debug(f"Configuration file not found ({cfgpath}), using defaults")
        except tomllib.TOMLDecodeError as e:
            raise ConfigDecodeError(
                f"Failed to decode configuration file: invalid TOML: {e}"
            ) from e

        try:
            data_dir = Path(data["data_dir"]).expanduser()
            del data["data_dir"]
        except KeyError:
            data_dir = XDG_DATA_MUS
        except (TypeError, ValueError) as e:
            raise InvalidConfigValueError(
                f"Invalid value for data_dir in configuration file ({cfgpath}): must be a path"
            ) from e
        data_dir.mkdir(parents=True, exist_ok=True)

        try:
            rating_min = data["rating_min"]
            del data["rating_min"]
            if not isinstance(rating_min, int) or isinstance(rating_min, bool):
                raise ValueError(f"Must be an int: got {type(rating_min)}")
        except KeyError:
            rating_min = DEFAULT_RATING_MIN
        except ValueError as e:
            raise InvalidConfigValueError(
                f"Invalid value for rating_min in configuration file ({cfgpath}): {e}"
            ) from e

        try:
            rating_max = data["rating_max"]
            del data["rating_max"]
            if not isinstance(rating_max, int) or isinstance(rating_max, bool):
                raise ValueError(f"Must be an int: got {type(rating_max)}")
        except KeyError:
            rating_max = DEFAULT_RATING_MAX
        except ValueError as e:
            raise InvalidConfigValueError(
                f"Invalid value for rating_max in configuration file ({cfgpath}): {e}"
            ) from e

        if rating_min > rating_max:
            raise InvalidConfigValueError(
                f"Invalid value for rating_max in configuration file ({cfgpath}): "
                f"must be greater than or equal to rating_min ({rating_min}): got {rating_max}"
            )

        try:
            database_timeout = float(data["database_timeout"])
            del data["database_timeout"]
            if database_timeout <= 0:
                raise ValueError(f"must be a positive number: got {database_timeout}")
        except KeyError:
            database_timeout = DEFAULT_DATABASE_TIMEOUT
        except (TypeError, ValueError) as e:
            raise InvalidConfigValueError(
                f"Invalid value for database_timeout in configuration file ({cfgpath}): must be a positive number"
            ) from e

        if data:
            unrecognized_accessors: list[str] = []
            # Do a DFS over the data keys to assemble the map of unknown keys. State is a tuple of
            # ("accessor", node).
            dfs_state: deque[tuple[str, Any]] = deque([("", data)])
            while dfs_state:
                accessor, node = dfs_state.pop()
                if isinstance(node, dict):
                    for k, v in node.items():
                        child_accessor = k if not accessor else f"{accessor}.{k}"
                        dfs_state.append((child_accessor, v))
                    continue
                unrecognized_accessors.append(accessor)
            logger.warning(
                f"Unrecognized options found in configuration file: {', '.join(sorted(unrecognized_accessors))}"
            )

        return Config(
            data_dir=data_dir,
            rating_min=rating_min,
            rating_max=rating_max,
            database_timeout=database_timeout,
        )

    @functools.cached_property
    def database_path(self) -> Path:
        return self.data_dir / "data.sq3"
