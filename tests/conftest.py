from pathlib import Path

import pytest


@pytest.fixture
def src(tmp_path: Path) -> Path:
    """A small dotfile repository"""

    root = tmp_path.joinpath("dotfiles")
    root.joinpath(".config/nvim").mkdir(parents=True)
    root.joinpath(".bashrc").write_text("export EDITOR=nvim\n")
    root.joinpath(".config/nvim/init.vim").write_text("set number\n")
    return root


@pytest.fixture
def dst(tmp_path: Path) -> Path:
    """An empty home directory"""

    root = tmp_path.joinpath("home")
    root.mkdir()
    return root
