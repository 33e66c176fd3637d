import os
import logging
from enum import Enum
from dataclasses import dataclass, replace
from pathlib import Path
from typing import AbstractSet, Iterator, List, Optional

from dotr.errors import InvalidSourceRoot

logger = logging.getLogger(__name__)

SKIPPED_DIRECTORIES = frozenset({".git"})


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


@dataclass(frozen=True)
class RepoEntry:
    """
    A single path in the dotfile repository, relative to the source root.

    `error` is set on the extra entry emitted after a directory that could not be listed,
    `ignored` on entries matched by the ignore list (their subtree is never walked).
    """

    rel_path: Path
    kind: EntryKind
    error: Optional[str] = None
    ignored: bool = False

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


def _list_dir(root: Path, rel: Path) -> List[RepoEntry]:
    """Lists one directory, sorted by name, without following symlinks"""

    entries = []
    with os.scandir(root.joinpath(rel)) as it:
        for de in sorted(it, key=lambda d: d.name):
            if de.is_symlink():
                kind = EntryKind.SYMLINK
            elif de.is_dir(follow_symlinks=False):
                kind = EntryKind.DIRECTORY
            else:
                kind = EntryKind.FILE
            entries.append(RepoEntry(rel_path=rel.joinpath(de.name), kind=kind))
    return entries


def _walk(root: Path, ignore: AbstractSet[Path]) -> Iterator[RepoEntry]:
    stack = list(reversed(_list_dir(root, Path())))

    while stack:
        entry = stack.pop()

        if entry.is_dir and entry.rel_path.name in SKIPPED_DIRECTORIES:
            logger.debug("Not traversing %s", entry.rel_path)
            continue

        if entry.rel_path in ignore:
            logger.debug("Ignoring %s", entry.rel_path)
            yield replace(entry, ignored=True)
            continue

        yield entry

        if entry.is_dir:
            try:
                children = _list_dir(root, entry.rel_path)
            except OSError as err:
                logger.warning("Unable to read directory %s: %s", entry.rel_path, err.strerror)
                yield replace(entry, error=err.strerror or str(err))
                continue
            stack.extend(reversed(children))


def walk(src_dir: Path, ignore: AbstractSet[Path] = frozenset()) -> Iterator[RepoEntry]:
    """
    Walks the dotfile repository in pre-order: every directory is yielded before anything
    beneath it. Symlinks inside the repository are yielded as entries and never followed,
    hidden files are included, and `.git` directories are skipped.

    Parameters
    ----------
    src_dir : Path
        Root of the dotfile repository
    ignore : AbstractSet[Path]
        Relative paths to skip along with everything under them

    Returns
    -------
    Iterator[RepoEntry]
        Single pass iterator, call `walk` again to start over
    """

    if not src_dir.exists():
        raise InvalidSourceRoot(src_dir, "does not exist")
    if not src_dir.is_dir():
        raise InvalidSourceRoot(src_dir, "is not a directory")
    if not os.access(src_dir, os.R_OK | os.X_OK):
        raise InvalidSourceRoot(src_dir, "is not readable")

    return _walk(src_dir, ignore)
