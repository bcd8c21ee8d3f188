"""编译产物扫描

只扫描 release 目录第一层，筛选「普通文件 + 可执行」：
库文件、依赖描述文件 (*.d)、子目录和符号链接都会被静默跳过。
"""

from __future__ import annotations

import logging
import stat
from pathlib import Path

from pkgrecipe.core.exceptions import InstallError

logger = logging.getLogger(__name__)


def is_executable_file(path: Path) -> bool:
    """普通文件（不跟随符号链接）且至少有一个执行位"""
    try:
        st = path.lstat()
    except OSError:
        return False
    return stat.S_ISREG(st.st_mode) and bool(st.st_mode & 0o111)


def scan_artifacts(release_dir: Path) -> list[Path]:
    """返回 release_dir 下第一层的可执行文件，按文件名排序

    异常:
        InstallError: 目录不存在或没有任何可执行文件
    """
    if not release_dir.is_dir():
        raise InstallError(f"产物目录不存在: {release_dir}")

    artifacts = sorted(
        (p for p in release_dir.iterdir() if is_executable_file(p)),
        key=lambda p: p.name,
    )
    if not artifacts:
        raise InstallError(f"没有可安装的产物: {release_dir}")

    logger.info(
        "发现 %d 个可执行产物: %s",
        len(artifacts), ", ".join(p.name for p in artifacts),
    )
    return artifacts
