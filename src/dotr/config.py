import os
import tomllib
from enum import Enum
from typing import List, FrozenSet, Iterable, Optional
from dataclasses import dataclass, field
from pathlib import Path

import pydantic

from dotr.errors import InvalidConfigFile

CONFIG_FILE_NAME = "dotr.toml"


def _resolve_path(path: str) -> Path:
    return Path(os.path.expanduser(path))


class Mode(str, Enum):
    LINK = "link"
    UNLINK = "unlink"


class IgnoreFile(pydantic.BaseModel):
    """Contents of a dotr.toml file at the root of a dotfile repository"""

    model_config = pydantic.ConfigDict(extra="forbid")

    ignore: List[str] = []


def config_file_path(src_dir: Path) -> Path:
    return src_dir.joinpath(CONFIG_FILE_NAME)


def load_ignore_file(src_dir: Path) -> List[Path]:
    """
    Reads the ignore list from `dotr.toml` in the source directory.

    Parameters
    ----------
    src_dir : Path
        Root of the dotfile repository

    Returns
    -------
    List[Path]
        Relative paths to skip, empty when there is no config file
    """

    conf_path = config_file_path(src_dir)
    if not conf_path.is_file():
        return []

    try:
        with conf_path.open("rb") as f:
            conf = IgnoreFile.model_validate(tomllib.load(f))
    except tomllib.TOMLDecodeError as err:
        raise InvalidConfigFile(conf_path, str(err)) from err
    except pydantic.ValidationError as err:
        raise InvalidConfigFile(conf_path, str(err)) from err

    return [Path(i) for i in conf.ignore]


@dataclass(frozen=True)
class Config:
    """dotr runtime config object, fixed for the duration of a run"""

    src_dir: Path
    dst_dir: Path
    mode: Mode = Mode.LINK
    force: bool = False
    dry_run: bool = False
    ignore: FrozenSet[Path] = field(default_factory=frozenset)

    @classmethod
    def from_options(
        cls,
        src_dir: str,
        dst_dir: str,
        mode: Mode,
        force: bool = False,
        dry_run: bool = False,
        ignore: Optional[Iterable[str]] = None,
        load: bool = True,
    ) -> "Config":
        """
        Builds a config from raw command line values, merging the ignore list from the
        repository's `dotr.toml` when `load` is set.
        """

        src = _resolve_path(src_dir)
        dst = _resolve_path(dst_dir)

        _ignore = {Path(i) for i in ignore or []}
        _ignore.add(Path(CONFIG_FILE_NAME))
        if load and src.is_dir():
            _ignore.update(load_ignore_file(src))

        return cls(
            src_dir=src,
            dst_dir=dst,
            mode=Mode(mode),
            force=force,
            dry_run=dry_run,
            ignore=frozenset(_ignore),
        )

