import errno
from enum import Enum
from pathlib import Path


class ErrorKind(str, Enum):
    """Category of a per-entry failure"""

    WALK_ENTRY_UNREADABLE = "unreadable"
    PERMISSION_DENIED = "permission-denied"
    READ_ONLY_FILESYSTEM = "read-only"
    FILESYSTEM_OPERATION_FAILED = "io-error"

    @classmethod
    def from_os_error(cls, err: OSError) -> "ErrorKind":
        if err.errno in (errno.EACCES, errno.EPERM):
            return cls.PERMISSION_DENIED
        if err.errno == errno.EROFS:
            return cls.READ_ONLY_FILESYSTEM
        return cls.FILESYSTEM_OPERATION_FAILED


class DotrError(Exception):
    """Base class for errors that abort a whole run"""


class InvalidSourceRoot(DotrError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid source directory {path}: {reason}")


class InvalidTargetRoot(DotrError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid destination directory {path}: {reason}")


class InvalidConfigFile(DotrError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid config file {path}: {reason}")
