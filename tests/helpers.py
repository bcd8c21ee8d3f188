"""测试辅助 — fake 命令执行器 + 产物目录构造

FakeExecutor 模拟 cargo：
  cargo fetch  → 按 returncodes 返回退出码
  cargo build  → 按 returncodes 返回退出码；成功时调用 on_build(work_dir) 生成产物
  install      → 交给真实的 LocalExecutor，安装结果可直接在文件系统上断言
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from pkgrecipe.utils.shell import CommandResult, LocalExecutor


@dataclass
class Call:
    cmd: list[str]
    cwd: str
    env: dict[str, str] | None


class FakeExecutor:
    """记录调用并模拟 cargo 的命令执行器"""

    def __init__(
        self,
        returncodes: dict[str, int] | None = None,
        on_build: Callable[[Path], None] | None = None,
    ) -> None:
        self.calls: list[Call] = []
        self.returncodes = returncodes or {}
        self.on_build = on_build
        self._local = LocalExecutor()

    def execute(
        self,
        cmd: Sequence[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        args = list(cmd)
        self.calls.append(Call(cmd=args, cwd=cwd, env=env))
        if args[0] != "cargo":
            return self._local.execute(args, cwd=cwd, env=env, timeout=timeout)
        sub = args[1]
        rc = self.returncodes.get(sub, 0)
        if rc:
            return CommandResult(returncode=rc, stdout="", stderr=f"error: cargo {sub} failed")
        if sub == "build" and self.on_build is not None:
            self.on_build(Path(cwd))
        return CommandResult(returncode=0, stdout=f"cargo {sub} ok\n", stderr="")

    def subcommands(self) -> list[str]:
        return [c.cmd[1] if c.cmd[0] == "cargo" else c.cmd[0] for c in self.calls]


def make_release(work_dir: Path, files: dict[str, int]) -> Path:
    """在 <work_dir>/target/release 下按 {文件名: 权限} 生成产物"""
    release = work_dir / "target" / "release"
    release.mkdir(parents=True, exist_ok=True)
    for name, mode in files.items():
        f = release / name
        f.write_text(f"#!/bin/sh\necho {name}\n", encoding="utf-8")
        f.chmod(mode)
    return release


def default_outputs(work_dir: Path) -> None:
    """典型 cargo release 输出：一个可执行文件 + 非可执行的附属文件"""
    release = make_release(work_dir, {"ame": 0o755, "ame.d": 0o644, "libame.rlib": 0o644})
    (release / "deps").mkdir(exist_ok=True)
    (release / "deps" / "ame-1234").write_text("x", encoding="utf-8")
    (release / "deps" / "ame-1234").chmod(0o755)
