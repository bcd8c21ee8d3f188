"""核心数据模型

配方元数据、阶段描述和构建报告集中定义。
其他模块统一从此处导入 PackageMetadata / BuildPhase / BuildReport。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pkgrecipe.core.exceptions import PhaseError

# 阶段声明顺序，执行顺序与之严格一致
PHASE_ORDER: tuple[str, ...] = ("prepare", "build", "package")


@dataclass(frozen=True)
class PackageMetadata:
    """软件包元数据（配方加载时创建，之后只读）"""

    name: str
    version: str
    release: int = 1
    description: str = ""
    architectures: frozenset[str] = frozenset()
    source_url: str = ""
    licenses: frozenset[str] = frozenset()
    runtime_dependencies: frozenset[str] = frozenset()
    build_dependencies: frozenset[str] = frozenset()
    conflicts: frozenset[str] = frozenset()
    checksums: tuple[str, ...] = ("SKIP",)  # 仅作为字面字段保留，不做校验

    @property
    def full_version(self) -> str:
        return f"{self.version}-{self.release}"

    def to_dict(self) -> dict[str, Any]:
        """转换为可序列化字典，集合字段排序输出"""
        return {
            "name": self.name,
            "version": self.version,
            "release": self.release,
            "description": self.description,
            "architectures": sorted(self.architectures),
            "source_url": self.source_url,
            "licenses": sorted(self.licenses),
            "runtime_dependencies": sorted(self.runtime_dependencies),
            "build_dependencies": sorted(self.build_dependencies),
            "conflicts": sorted(self.conflicts),
            "checksums": list(self.checksums),
        }


@dataclass(frozen=True)
class BuildPhase:
    """单个构建阶段 — 在固定工作目录中按顺序执行的命令

    env 只作用于本阶段启动的进程，不会泄漏到其他阶段。
    """

    name: str
    commands: tuple[tuple[str, ...], ...] = ()
    env: dict[str, str] = field(default_factory=dict)


@dataclass
class PhaseResult:
    """单个阶段的执行结果"""

    name: str
    status: str  # "done", "failed", "skipped"
    returncode: int = 0
    duration: float = 0.0
    detail: str = ""


@dataclass
class BuildReport:
    """一次完整构建（prepare → build → package）的执行报告"""

    metadata: PackageMetadata
    work_dir: str = ""
    dest_dir: str = ""
    phases: list[PhaseResult] = field(default_factory=list)
    installed: list[str] = field(default_factory=list)
    error: PhaseError | None = None

    @property
    def success(self) -> bool:
        return self.error is None and len(self.phases) == len(PHASE_ORDER) and all(
            p.status in ("done", "skipped") for p in self.phases
        )

    @property
    def failed_phase(self) -> str:
        for p in self.phases:
            if p.status == "failed":
                return p.name
        return ""

    @property
    def exit_code(self) -> int:
        """全部成功返回 0，否则返回第一个失败阶段的退出码"""
        for p in self.phases:
            if p.status == "failed":
                # 超时等没有正常退出码的情况统一记为 1
                return p.returncode if p.returncode > 0 else 1
        return 0 if self.success else 1
