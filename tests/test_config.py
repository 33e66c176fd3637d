from pathlib import Path

import pytest

from dotr import config
from dotr.errors import InvalidConfigFile


class TestConfig:
    @staticmethod
    def test_default_config(src: Path, dst: Path) -> None:
        """test_default_config"""
        c = config.Config.from_options(str(src), str(dst), config.Mode.LINK)
        assert c.src_dir == src
        assert c.dst_dir == dst
        assert c.mode is config.Mode.LINK
        assert c.force == False
        assert c.dry_run == False
        assert c.ignore == frozenset({Path("dotr.toml")})

    @staticmethod
    def test_options(src: Path, dst: Path) -> None:
        """test_options"""
        c = config.Config.from_options(
            str(src),
            str(dst),
            "unlink",
            force=True,
            dry_run=True,
            ignore=["LICENSE", ".config/nvim/"],
        )
        assert c.mode is config.Mode.UNLINK
        assert c.force
        assert c.dry_run
        assert c.ignore == frozenset({Path("dotr.toml"), Path("LICENSE"), Path(".config/nvim")})

    @staticmethod
    def test_expand_user(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """test ~ is expanded"""
        monkeypatch.setenv("HOME", str(tmp_path))
        c = config.Config.from_options("~/dotfiles", "~", config.Mode.LINK)
        assert c.src_dir == tmp_path.joinpath("dotfiles")
        assert c.dst_dir == tmp_path

    @staticmethod
    def test_ignore_file(src: Path, dst: Path) -> None:
        """test dotr.toml is merged with the options"""
        src.joinpath("dotr.toml").write_text('ignore = ["LICENSE", "user.js"]\n')
        c = config.Config.from_options(str(src), str(dst), config.Mode.LINK, ignore=[".bashrc"])
        assert c.ignore == frozenset(Path(i) for i in ["dotr.toml", "LICENSE", "user.js", ".bashrc"])

    @staticmethod
    def test_ignore_file_not_loaded(src: Path, dst: Path) -> None:
        """test load=False skips dotr.toml"""
        src.joinpath("dotr.toml").write_text('ignore = ["LICENSE"]\n')
        c = config.Config.from_options(str(src), str(dst), config.Mode.LINK, load=False)
        assert Path("LICENSE") not in c.ignore

    @staticmethod
    def test_no_ignore_file(src: Path) -> None:
        """test_no_ignore_file"""
        assert config.load_ignore_file(src) == []

    @staticmethod
    @pytest.mark.parametrize(
        "contents",
        [
            "ignore = [",
            'ignore = "LICENSE"',
            'ignore = ["LICENSE"]\nforce = true\n',
        ],
    )
    def test_invalid_ignore_file(src: Path, contents: str) -> None:
        """test broken dotr.toml files"""
        src.joinpath("dotr.toml").write_text(contents)
        with pytest.raises(InvalidConfigFile):
            config.load_ignore_file(src)

    @staticmethod
    def test_frozen(src: Path, dst: Path) -> None:
        """test config can't change during a run"""
        c = config.Config(src_dir=src, dst_dir=dst)
        with pytest.raises(AttributeError):
            c.force = True  # type: ignore[misc]
