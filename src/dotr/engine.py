"""
Link engine: mirrors a dotfile repository into a destination directory with symlinks and
reverses that operation.

Every entry goes through two steps. `decide` is a pure function of the entry, the observed
state of its destination path and the run settings. `LinkEngine` then carries out the
decision, which is the only step that touches the filesystem and is skipped on a dry run.
"""

import os
import errno
import shutil
import stat
import logging
from enum import Enum
from dataclasses import dataclass
from pathlib import Path
from typing import AbstractSet, Iterable, Iterator, List, Optional, Set

from dotr.config import Config, Mode
from dotr.errors import ErrorKind, InvalidSourceRoot, InvalidTargetRoot
from dotr.report import Action, Outcome, RunReport
from dotr.walker import RepoEntry, walk

logger = logging.getLogger(__name__)


class TargetState(str, Enum):
    ABSENT = "absent"
    SYMLINK_TO_EXPECTED_SOURCE = "managed-link"
    SYMLINK_TO_OTHER = "foreign-link"
    REGULAR_FILE_OR_DIR = "occupied"


@dataclass(frozen=True)
class Target:
    """
    What currently sits at the destination path of an entry. `blocked_by` names an
    ancestor that exists but is not a real directory; such a target is never inspected.
    """

    path: Path
    state: TargetState
    is_dir: bool = False
    is_empty: bool = False
    link: Optional[Path] = None
    blocked_by: Optional[Path] = None


def blocking_parent(root: Path, rel_path: Path) -> Optional[Path]:
    """
    Returns the first ancestor of `root / rel_path`, below `root`, that exists but is not a
    real directory. Symlinks count as blocking, so nothing is ever created or removed
    through a link the user placed in the destination tree.
    """

    for parent in reversed(rel_path.parents[:-1]):
        path = root.joinpath(parent)
        try:
            st = os.lstat(path)
        except (FileNotFoundError, NotADirectoryError):
            return None
        if not stat.S_ISDIR(st.st_mode):
            return path
    return None


def observe(
    path: Path,
    expected: Path,
    removed: AbstractSet[Path] = frozenset(),
    list_dir: bool = False,
) -> Target:
    """
    Inspects `path` without following a symlink at its last component. A symlink only
    counts as managed when its text is exactly `expected`, so broken links are foreign.

    Parameters
    ----------
    path : Path
        Destination path to inspect
    expected : Path
        Absolute source path a managed link points at
    removed : AbstractSet[Path]
        Paths removed earlier in the run, treated as gone so dry runs stay consistent
    list_dir : bool
        Read a directory's children to fill in `is_empty`. Only unlinking a directory
        needs this.

    Returns
    -------
    Target
    """

    if path in removed:
        return Target(path=path, state=TargetState.ABSENT)

    try:
        st = os.lstat(path)
    except (FileNotFoundError, NotADirectoryError):
        return Target(path=path, state=TargetState.ABSENT)

    if stat.S_ISLNK(st.st_mode):
        link = Path(os.readlink(path))
        state = TargetState.SYMLINK_TO_EXPECTED_SOURCE if link == expected else TargetState.SYMLINK_TO_OTHER
        return Target(path=path, state=state, link=link)

    if stat.S_ISDIR(st.st_mode):
        is_empty = False
        if list_dir:
            with os.scandir(path) as it:
                is_empty = all(path.joinpath(de.name) in removed for de in it)
        return Target(path=path, state=TargetState.REGULAR_FILE_OR_DIR, is_dir=True, is_empty=is_empty)

    return Target(path=path, state=TargetState.REGULAR_FILE_OR_DIR)


def decide(entry: RepoEntry, target: Target, mode: Mode, force: bool = False) -> Action:
    """
    Chooses the action for one entry.

    Parameters
    ----------
    entry : RepoEntry
        Entry from the repository walk
    target : Target
        Observed state of the entry's destination path
    mode : Mode
        Link or unlink
    force : bool
        Replace conflicting destinations when linking. Never affects unlinking.

    Returns
    -------
    Action
    """

    if entry.error is not None:
        return Action.ERROR
    if entry.ignored:
        return Action.IGNORED
    if target.blocked_by is not None:
        return Action.BLOCKED

    state = target.state

    if mode is Mode.LINK:
        if entry.is_dir:
            if state is TargetState.ABSENT:
                return Action.CREATE_DIR
            if target.is_dir:
                return Action.DIR_EXISTS
            return Action.CONFLICT

        if state is TargetState.ABSENT:
            return Action.CREATE_LINK
        if state is TargetState.SYMLINK_TO_EXPECTED_SOURCE:
            return Action.ALREADY_LINKED
        return Action.OVERWRITE if force else Action.CONFLICT

    if entry.is_dir:
        if state is TargetState.ABSENT:
            return Action.NOT_LINKED
        if not target.is_dir:
            return Action.REMOVE_LINK_SKIPPED
        return Action.REMOVE_DIR if target.is_empty else Action.KEEP_DIR

    if state is TargetState.SYMLINK_TO_EXPECTED_SOURCE:
        return Action.REMOVE_LINK
    if state is TargetState.ABSENT:
        return Action.NOT_LINKED
    return Action.REMOVE_LINK_SKIPPED


def _remove(target: Target) -> None:
    if target.is_dir:
        shutil.rmtree(target.path)
    else:
        target.path.unlink()


class LinkEngine:
    """Runs one link or unlink operation described by a `Config`"""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.src_dir = config.src_dir
        self.dst_dir = config.dst_dir
        self._removed: Set[Path] = set()

    def _validate(self) -> None:
        """Checks both roots and pins them to absolute canonical paths"""

        src = self.config.src_dir
        if not src.exists():
            raise InvalidSourceRoot(src, "does not exist")
        if not src.is_dir():
            raise InvalidSourceRoot(src, "is not a directory")

        dst = self.config.dst_dir
        if not dst.exists():
            raise InvalidTargetRoot(dst, "does not exist")
        if not dst.is_dir():
            raise InvalidTargetRoot(dst, "is not a directory")

        self.src_dir = src.resolve()
        self.dst_dir = dst.resolve()

        if self.dst_dir == self.src_dir or self.dst_dir.is_relative_to(self.src_dir):
            raise InvalidTargetRoot(dst, "is inside the source directory")

    def source_path(self, entry: RepoEntry) -> Path:
        return self.src_dir.joinpath(entry.rel_path)

    def target_path(self, entry: RepoEntry) -> Path:
        return self.dst_dir.joinpath(entry.rel_path)

    def _apply(self, action: Action, target: Target, source: Path) -> Action:
        """Carries out `action`, returns the action that actually happened"""

        if self.config.dry_run or not action.mutates:
            if action in (Action.REMOVE_LINK, Action.REMOVE_DIR):
                self._removed.add(target.path)
            return action

        if action is Action.CREATE_DIR:
            target.path.mkdir(parents=True, exist_ok=True)
        elif action is Action.CREATE_LINK:
            target.path.parent.mkdir(parents=True, exist_ok=True)
            target.path.symlink_to(source)
        elif action is Action.OVERWRITE:
            _remove(target)
            target.path.symlink_to(source)
        elif action is Action.REMOVE_LINK:
            target.path.unlink()
            self._removed.add(target.path)
        elif action is Action.REMOVE_DIR:
            try:
                target.path.rmdir()
            except OSError as err:
                if err.errno not in (errno.ENOTEMPTY, errno.EEXIST):
                    raise
                logger.info("%s is no longer empty, keeping it", target.path)
                return Action.KEEP_DIR
            self._removed.add(target.path)

        return action

    def process(self, entry: RepoEntry) -> Outcome:
        """Decides and carries out the action for a single entry"""

        source = self.source_path(entry)
        path = self.target_path(entry)

        if entry.error is not None:
            logger.error("Unable to read %s: %s", source, entry.error)
            return Outcome(
                entry=entry,
                action=Action.ERROR,
                target=path,
                success=False,
                error_kind=ErrorKind.WALK_ENTRY_UNREADABLE,
                message=entry.error,
            )

        action = Action.ERROR
        try:
            blocked_by = blocking_parent(self.dst_dir, entry.rel_path)
            if blocked_by is not None:
                target = Target(path=path, state=TargetState.ABSENT, blocked_by=blocked_by)
            else:
                list_dir = entry.is_dir and self.config.mode is Mode.UNLINK
                target = observe(path, source, self._removed, list_dir=list_dir)
            action = decide(entry, target, self.config.mode, self.config.force)
            action = self._apply(action, target, source)
        except OSError as err:
            kind = ErrorKind.from_os_error(err)
            message = err.strerror or str(err)
            if action is Action.OVERWRITE:
                if os.path.lexists(path):
                    message = f"could not replace existing path: {message}"
                else:
                    message = f"removed existing path, link failed: {message}"
            logger.error("Failed to process %s (%s): %s", path, action.value, message)
            return Outcome(
                entry=entry,
                action=action,
                target=path,
                success=False,
                error_kind=kind,
                message=message,
            )

        message = ""
        if action is Action.BLOCKED:
            message = f"{target.blocked_by} is not a directory"
            logger.warning("Not touching %s, %s", path, message)
        elif action is Action.CONFLICT:
            message = (
                f"points to {target.link}" if target.link is not None else "exists and is not a managed link"
            )
            logger.warning("Destination %s already exists (%s)", path, message)
        elif action is Action.REMOVE_LINK_SKIPPED:
            message = f"points to {target.link}" if target.link is not None else "is not a symlink"
            logger.warning("Not removing %s, it %s", path, message)
        elif action is Action.OVERWRITE:
            message = f"replaced {target.link}" if target.link is not None else "replaced existing path"
            logger.info("Force replaced %s -> %s", path, source)
        elif action.mutates:
            logger.info("%s %s", action.value, path)
        else:
            logger.debug("%s %s", action.value, path)

        return Outcome(entry=entry, action=action, target=path, message=message)

    def _iter(self, entries: Iterable[RepoEntry]) -> Iterator[Outcome]:
        if self.config.mode is Mode.LINK:
            for entry in entries:
                yield self.process(entry)
            return

        # directories are settled once the walk has left their subtree
        pending: List[RepoEntry] = []
        for entry in entries:
            while pending and not entry.rel_path.is_relative_to(pending[-1].rel_path):
                yield self.process(pending.pop())

            if entry.is_dir and entry.error is None and not entry.ignored:
                pending.append(entry)
            else:
                yield self.process(entry)

        while pending:
            yield self.process(pending.pop())

    def iter_run(self, entries: Optional[Iterable[RepoEntry]] = None) -> Iterator[Outcome]:
        """
        Validates the configuration, then lazily yields one outcome per entry. Stopping
        early leaves every entry processed so far in a consistent state.
        """

        self._validate()
        self._removed = set()
        logger.info(
            "Starting %s operation%s: %s -> %s",
            self.config.mode.value,
            " (dry-run)" if self.config.dry_run else "",
            self.src_dir,
            self.dst_dir,
        )
        if entries is None:
            entries = walk(self.src_dir, self.config.ignore)
        return self._iter(entries)

    def run(self, entries: Optional[Iterable[RepoEntry]] = None) -> RunReport:
        report = RunReport(mode=self.config.mode, dry_run=self.config.dry_run)
        for outcome in self.iter_run(entries):
            report.add(outcome)
        return report


def run(config: Config) -> RunReport:
    """Links or unlinks the whole repository described by `config`"""
    return LinkEngine(config).run()
