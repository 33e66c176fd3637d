import errno
from pathlib import Path
from typing import List

import pytest

from dotr import walker
from dotr.errors import InvalidSourceRoot
from dotr.walker import EntryKind, RepoEntry, walk


def _paths(entries: List[RepoEntry]) -> List[str]:
    return [e.rel_path.as_posix() for e in entries]


@pytest.fixture
def repo(src: Path) -> Path:
    """Dotfile repository with the usual extras"""

    src.joinpath(".git").mkdir()
    src.joinpath(".git/HEAD").write_text("ref: refs/heads/main\n")
    src.joinpath("LICENSE").write_text("MIT\n")
    src.joinpath("bashrc-link").symlink_to(".bashrc")
    return src


class TestWalk:
    """test walk"""

    @staticmethod
    def test_pre_order(repo: Path) -> None:
        """directories come before their children, siblings sorted by name"""

        entries = list(walk(repo))
        assert _paths(entries) == [
            ".bashrc",
            ".config",
            ".config/nvim",
            ".config/nvim/init.vim",
            "LICENSE",
            "bashrc-link",
        ]

    @staticmethod
    def test_kinds(repo: Path) -> None:
        """test kinds"""

        kinds = {e.rel_path.as_posix(): e.kind for e in walk(repo)}
        assert kinds[".bashrc"] is EntryKind.FILE
        assert kinds[".config"] is EntryKind.DIRECTORY
        assert kinds[".config/nvim"] is EntryKind.DIRECTORY
        assert kinds["bashrc-link"] is EntryKind.SYMLINK

    @staticmethod
    def test_git_dir_skipped(repo: Path) -> None:
        """test .git is never walked"""

        assert not any(".git" in e.rel_path.parts for e in walk(repo))

    @staticmethod
    def test_symlinked_dir_not_followed(src: Path, tmp_path: Path) -> None:
        """test a symlink to a directory is a single entry"""

        outside = tmp_path.joinpath("outside")
        outside.mkdir()
        outside.joinpath("secret").write_text("x")
        src.joinpath("linked").symlink_to(outside)

        entries = list(walk(src))
        assert "linked" in _paths(entries)
        assert "linked/secret" not in _paths(entries)
        assert [e.kind for e in entries if e.rel_path == Path("linked")] == [EntryKind.SYMLINK]

    @staticmethod
    def test_ignore_file(repo: Path) -> None:
        """test ignored file is marked"""

        entries = list(walk(repo, ignore=frozenset({Path("LICENSE")})))
        ignored = [e for e in entries if e.ignored]
        assert _paths(ignored) == ["LICENSE"]

    @staticmethod
    def test_ignore_directory_prunes_subtree(repo: Path) -> None:
        """test ignored directory hides its children"""

        entries = list(walk(repo, ignore=frozenset({Path(".config")})))
        assert _paths(entries) == [".bashrc", ".config", "LICENSE", "bashrc-link"]
        assert entries[1].ignored

    @staticmethod
    def test_missing_root(tmp_path: Path) -> None:
        """test missing root fails before iterating"""

        with pytest.raises(InvalidSourceRoot):
            walk(tmp_path.joinpath("nope"))

    @staticmethod
    def test_file_root(src: Path) -> None:
        """test file root"""

        with pytest.raises(InvalidSourceRoot):
            walk(src.joinpath(".bashrc"))

    @staticmethod
    def test_unreadable_directory(repo: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """test an unreadable directory does not stop the walk"""

        list_dir = walker._list_dir

        def _flaky_list_dir(root: Path, rel: Path) -> List[RepoEntry]:
            if rel == Path(".config"):
                raise PermissionError(errno.EACCES, "Permission denied")
            return list_dir(root, rel)

        monkeypatch.setattr(walker, "_list_dir", _flaky_list_dir)

        entries = list(walk(repo))
        assert _paths(entries) == [".bashrc", ".config", ".config", "LICENSE", "bashrc-link"]
        assert entries[1].error is None
        assert entries[2].error == "Permission denied"

    @staticmethod
    def test_restartable(repo: Path) -> None:
        """test walking twice gives the same entries"""

        assert list(walk(repo)) == list(walk(repo))
