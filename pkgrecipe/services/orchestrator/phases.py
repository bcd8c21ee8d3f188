"""构建阶段描述与执行

阶段顺序：
1. prepare - 按 lockfile 拉取依赖
2. build   - release 模式全特性编译（冻结依赖集）
3. package - 安装可执行产物到 <pkgdir>/usr/bin/
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Sequence

from pkgrecipe.core.config import Config
from pkgrecipe.core.exceptions import PhaseError
from pkgrecipe.core.models import BuildPhase
from pkgrecipe.utils.shell import CommandExecutor, format_cmd, merged_env, run_cmd

logger = logging.getLogger(__name__)


def prepare_phase(cfg: Config) -> BuildPhase:
    target = f"{cfg.carch}-unknown-linux-gnu"
    return BuildPhase(
        name="prepare",
        commands=((cfg.cargo_bin, "fetch", "--locked", "--target", target),),
    )


def build_phase(cfg: Config, env: dict[str, str] | None = None) -> BuildPhase:
    return BuildPhase(
        name="build",
        commands=((cfg.cargo_bin, "build", "--frozen", "--release", "--all-features"),),
        env=dict(cfg.build_env if env is None else env),
    )


def package_phase(cfg: Config, artifacts: Sequence[Path], dest_dir: Path) -> BuildPhase:
    """一次 install 调用安装全部产物"""
    bin_dir = f"{dest_dir}/usr/bin/"
    return BuildPhase(
        name="package",
        commands=((cfg.install_bin, "-Dm0755", "-t", bin_dir, *(str(a) for a in artifacts)),),
    )


class PhaseRunner:
    """按顺序执行单个阶段内的命令，首个失败即抛出该阶段的异常"""

    def __init__(self, executor: CommandExecutor | None = None, timeout: int | None = None) -> None:
        self.executor = executor
        self.timeout = timeout

    def execute(
        self, phase: BuildPhase, work_dir: Path,
        error_cls: type[PhaseError],
    ) -> float:
        """执行阶段，返回耗时（秒）"""
        env = merged_env(phase.env)
        if phase.env:
            logger.info(
                "[%s] 环境覆盖: %s", phase.name,
                " ".join(f"{k}={v}" for k, v in sorted(phase.env.items())),
            )
        start = time.monotonic()
        for cmd in phase.commands:
            run_cmd(
                cmd, cwd=str(work_dir), env=env, label=phase.name,
                timeout=self.timeout, executor=self.executor, error_cls=error_cls,
            )
        return time.monotonic() - start

    @staticmethod
    def describe(phase: BuildPhase) -> str:
        """阶段的可读描述（dry-run 使用）"""
        prefix = " ".join(f"{k}={v}" for k, v in sorted(phase.env.items()))
        cmds = "; ".join(format_cmd(c) for c in phase.commands)
        return f"{prefix} {cmds}".strip()
