"""测试共享 fixture"""

from __future__ import annotations

from pathlib import Path

import pytest

from pkgrecipe.core.config import reset_config
from pkgrecipe.utils.shell import get_executor, set_executor

from tests.helpers import FakeExecutor, default_outputs


@pytest.fixture()
def work_dir(tmp_path: Path) -> Path:
    d = tmp_path / "src" / "amethyst"
    d.mkdir(parents=True)
    return d


@pytest.fixture()
def dest_dir(tmp_path: Path) -> Path:
    return tmp_path / "pkg"


@pytest.fixture()
def fake_executor() -> FakeExecutor:
    return FakeExecutor(on_build=default_outputs)


@pytest.fixture()
def global_executor(fake_executor: FakeExecutor):
    """把 fake 执行器装到全局，用例结束后恢复"""
    previous = get_executor()
    set_executor(fake_executor)
    yield fake_executor
    set_executor(previous)


@pytest.fixture(autouse=True)
def _clean_global_config():
    reset_config()
    yield
    reset_config()
