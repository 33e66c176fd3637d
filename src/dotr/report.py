from __future__ import annotations

from enum import Enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from dotr.config import Mode
from dotr.errors import ErrorKind
from dotr.walker import RepoEntry


class Action(str, Enum):
    CREATE_LINK = "create-link"
    ALREADY_LINKED = "already-linked"
    CONFLICT = "conflict"
    OVERWRITE = "overwrite"
    REMOVE_LINK = "remove-link"
    REMOVE_LINK_SKIPPED = "remove-link-skipped"
    NOT_LINKED = "not-linked"
    CREATE_DIR = "create-dir"
    DIR_EXISTS = "dir-exists"
    REMOVE_DIR = "remove-dir"
    KEEP_DIR = "keep-dir"
    IGNORED = "ignored"
    BLOCKED = "blocked"
    ERROR = "error"

    @property
    def mutates(self) -> bool:
        """True if carrying out the action changes the destination tree"""
        return self in (
            Action.CREATE_LINK,
            Action.OVERWRITE,
            Action.REMOVE_LINK,
            Action.CREATE_DIR,
            Action.REMOVE_DIR,
        )


@dataclass(frozen=True)
class Outcome:
    """Result of processing one repository entry"""

    entry: RepoEntry
    action: Action
    target: Path
    success: bool = True
    error_kind: Optional[ErrorKind] = None
    message: str = ""

    @property
    def failed(self) -> bool:
        return not self.success


@dataclass
class RunReport:
    """Ordered outcomes of one link/unlink run"""

    mode: Mode
    dry_run: bool = False
    outcomes: List[Outcome] = field(default_factory=list)

    def add(self, outcome: Outcome) -> None:
        self.outcomes.append(outcome)

    def __iter__(self) -> Iterator[Outcome]:
        return iter(self.outcomes)

    def __len__(self) -> int:
        return len(self.outcomes)

    def count(self, action: Action) -> int:
        """Number of successful outcomes with the given action"""
        return sum(1 for o in self.outcomes if o.action is action and o.success)

    @property
    def created(self) -> int:
        return self.count(Action.CREATE_LINK)

    @property
    def already_linked(self) -> int:
        return self.count(Action.ALREADY_LINKED)

    @property
    def conflicts(self) -> int:
        return self.count(Action.CONFLICT)

    @property
    def overwritten(self) -> int:
        return self.count(Action.OVERWRITE)

    @property
    def removed(self) -> int:
        return self.count(Action.REMOVE_LINK)

    @property
    def skipped(self) -> int:
        return self.count(Action.REMOVE_LINK_SKIPPED)

    @property
    def blocked(self) -> int:
        return self.count(Action.BLOCKED)

    @property
    def dirs_created(self) -> int:
        return self.count(Action.CREATE_DIR)

    @property
    def dirs_removed(self) -> int:
        return self.count(Action.REMOVE_DIR)

    @property
    def errors(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    @property
    def ok(self) -> bool:
        """False when anything needs the user's attention"""
        return self.conflicts == 0 and self.errors == 0

    def overwrites(self) -> List[Outcome]:
        """
        Destination paths removed because of `force`. Includes failed overwrites, where the
        existing path may already be gone without a link in its place.
        """
        return [o for o in self.outcomes if o.action is Action.OVERWRITE]

    def failures(self) -> List[Outcome]:
        return [o for o in self.outcomes if o.failed]

    def counts(self) -> Dict[str, int]:
        return {
            "created": self.created,
            "already_linked": self.already_linked,
            "conflicts": self.conflicts,
            "overwritten": self.overwritten,
            "removed": self.removed,
            "skipped": self.skipped,
            "blocked": self.blocked,
            "dirs_created": self.dirs_created,
            "dirs_removed": self.dirs_removed,
            "errors": self.errors,
        }
