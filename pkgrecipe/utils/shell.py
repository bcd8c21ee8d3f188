"""Shell 命令执行工具 — 统一子进程调用

通过 CommandExecutor 协议抽象子进程执行，方便测试替换。
所有命令都以参数列表形式传入，不经过 shell 解释。
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Protocol, Sequence

from pkgrecipe.core.exceptions import ExecutionError

logger = logging.getLogger(__name__)


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议 — 抽象子进程调用

    测试时可注入 fake 实现，无需 patch subprocess。
    """

    def execute(
        self,
        cmd: Sequence[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        """执行命令并返回结果"""
        ...


# =========================================================================
# 默认实现: 本地执行器
# =========================================================================

class LocalExecutor:
    """本地子进程执行器（默认实现），阻塞等待进程退出"""

    def execute(
        self,
        cmd: Sequence[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        try:
            r = subprocess.run(
                list(cmd), capture_output=True, text=True,
                cwd=cwd, env=env, check=False, timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            return CommandResult(
                returncode=-1,
                stdout=_decode(e.stdout),
                stderr=_decode(e.stderr) + f"\n命令超时 ({timeout}s)",
                timed_out=True,
            )
        except FileNotFoundError as e:
            # 可执行文件不存在，按 shell 的约定记为 127
            return CommandResult(returncode=127, stdout="", stderr=str(e))
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout,
            stderr=r.stderr,
        )


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


# =========================================================================
# 全局默认执行器（可替换）
# =========================================================================

_default_executor: CommandExecutor = LocalExecutor()


def get_executor() -> CommandExecutor:
    """获取全局默认命令执行器"""
    return _default_executor


def set_executor(executor: CommandExecutor) -> None:
    """替换全局默认命令执行器（用于测试）"""
    global _default_executor  # noqa: PLW0603
    _default_executor = executor


def merged_env(overrides: dict[str, str] | None = None) -> dict[str, str]:
    """当前进程环境 + 覆盖项，不修改 os.environ"""
    return {**os.environ, **(overrides or {})}


def format_cmd(cmd: Sequence[str]) -> str:
    return " ".join(cmd)


# =========================================================================
# 便捷函数
# =========================================================================

def run_cmd(
    cmd: Sequence[str], *, cwd: str = ".",
    env: dict[str, str] | None = None,
    label: str = "cmd",
    timeout: int | None = None,
    executor: CommandExecutor | None = None,
    error_cls: type[ExecutionError] = ExecutionError,
) -> CommandResult:
    """执行命令，失败抛 error_cls（默认 ExecutionError）

    Args:
        cmd: 参数列表
        cwd: 工作目录
        env: 完整环境变量（不传则继承当前进程）
        label: 日志标签
        timeout: 超时秒数
        executor: 命令执行器（不传则使用全局默认）
        error_cls: 失败时抛出的异常类型，各构建阶段传入自己的子类
    """
    extra = {"phase": label}
    logger.info("  %s: %s (cwd=%s)", label, format_cmd(cmd), cwd, extra=extra)
    r = (executor or get_executor()).execute(cmd, cwd=cwd, env=env, timeout=timeout)
    for line in r.stdout.splitlines():
        logger.debug("  [%s] %s", label, line, extra=extra)
    if not r.success:
        # 失败命令的输出原样输出
        for line in r.stderr.splitlines():
            logger.error("  [%s] %s", label, line, extra=extra)
        raise error_cls(
            f"{label}失败 (rc={r.returncode}): {r.stderr[:500]}",
            returncode=r.returncode, stderr=r.stderr,
        )
    return r
