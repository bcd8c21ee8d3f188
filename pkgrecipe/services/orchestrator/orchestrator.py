"""构建编排器 - 协调 prepare → build → package

职责：
- 严格按声明顺序执行三个阶段，前一阶段成功后才开始下一阶段
- 第一个失败即终止，不重试、不回滚
- 汇总每个阶段的结果到 BuildReport
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from pkgrecipe.core.config import Config, get_config
from pkgrecipe.core.exceptions import (
    CompileError,
    DependencyFetchError,
    InstallError,
    PhaseError,
)
from pkgrecipe.core.models import BuildPhase, BuildReport, PackageMetadata, PhaseResult
from pkgrecipe.core.recipe import DEFAULT_METADATA
from pkgrecipe.services.artifacts import scan_artifacts
from pkgrecipe.services.orchestrator.phases import (
    PhaseRunner,
    build_phase,
    package_phase,
    prepare_phase,
)
from pkgrecipe.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


class BuildOrchestrator:
    """三阶段构建编排器（同步阻塞，单线程）"""

    def __init__(
        self,
        metadata: PackageMetadata | None = None,
        config: Config | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.metadata = metadata or DEFAULT_METADATA
        self.config = config or get_config()
        self.runner = PhaseRunner(executor=executor, timeout=self.config.command_timeout)

    # ---- 路径 ----

    def default_work_dir(self) -> Path:
        """<srcdir>/<pkgname>"""
        return Path(self.config.src_dir) / self.metadata.name

    def release_dir(self, work_dir: Path) -> Path:
        """产物目录取自配置中的 CARGO_TARGET_DIR，build 阶段不能单独覆盖它"""
        return Path(work_dir) / self.config.target_dir / "release"

    def phases(self) -> list[BuildPhase]:
        """静态阶段描述（package 阶段的产物列表在扫描后才确定）"""
        return [
            prepare_phase(self.config),
            build_phase(self.config),
            BuildPhase(name="package", commands=(
                (self.config.install_bin, "-Dm0755", "-t", "<pkgdir>/usr/bin/",
                 f"{self.config.target_dir}/release/*"),
            )),
        ]

    # ---- 单个阶段 ----

    def run_prepare(self, work_dir: str | Path) -> float:
        """拉取锁定版本的依赖，失败抛 DependencyFetchError"""
        return self.runner.execute(prepare_phase(self.config), Path(work_dir), DependencyFetchError)

    def run_build(self, work_dir: str | Path, env: dict[str, str] | None = None) -> float:
        """冻结依赖集下 release 编译，env 仅对本阶段可见；失败抛 CompileError"""
        return self.runner.execute(build_phase(self.config, env), Path(work_dir), CompileError)

    def run_package(self, work_dir: str | Path, dest_dir: str | Path) -> list[Path]:
        """安装 release 目录第一层的可执行文件，返回安装后的路径

        异常:
            InstallError: 没有可安装的产物或 install 失败
        """
        # install 的 cwd 是 work_dir，传给它的路径必须是绝对路径
        work = Path(work_dir).absolute()
        dest = Path(dest_dir).absolute()
        artifacts = scan_artifacts(self.release_dir(work))
        self.runner.execute(package_phase(self.config, artifacts, dest), work, InstallError)
        installed = [dest / "usr" / "bin" / a.name for a in artifacts]
        logger.info("[package] 已安装: %s", ", ".join(str(p) for p in installed))
        return installed

    # ---- 完整流程 ----

    def run(
        self,
        work_dir: str | Path | None = None,
        dest_dir: str | Path | None = None,
        *,
        dry_run: bool = False,
    ) -> BuildReport:
        """依次执行三个阶段；第一个失败的阶段记录到报告后立即停止"""
        work = (Path(work_dir) if work_dir else self.default_work_dir()).absolute()
        dest = (Path(dest_dir) if dest_dir else Path(self.config.pkg_dir)).absolute()
        report = BuildReport(metadata=self.metadata, work_dir=str(work), dest_dir=str(dest))
        logger.info(
            "开始构建 %s %s (work_dir=%s, pkgdir=%s)",
            self.metadata.name, self.metadata.full_version, work, dest,
        )

        if dry_run:
            for phase in self.phases():
                detail = self.runner.describe(phase)
                report.phases.append(PhaseResult(name=phase.name, status="skipped", detail=detail))
                logger.info("[%s] (dry-run) %s", phase.name, detail)
            return report

        steps = (
            ("prepare", lambda: self.run_prepare(work)),
            ("build", lambda: self.run_build(work)),
            ("package", lambda: self.run_package(work, dest)),
        )
        for name, step in steps:
            start = time.monotonic()
            try:
                outcome = step()
            except PhaseError as e:
                duration = time.monotonic() - start
                report.phases.append(PhaseResult(
                    name=name, status="failed", returncode=e.returncode,
                    duration=duration, detail=str(e),
                ))
                report.error = e
                logger.error("构建失败: 阶段 %s (rc=%d)", name, e.returncode)
                return report
            duration = time.monotonic() - start
            if name == "package":
                report.installed = [str(p) for p in outcome]
            report.phases.append(PhaseResult(name=name, status="done", duration=duration))
            logger.info("[%s] 完成 (%.1fs)", name, duration)

        logger.info("构建完成: %s %s", self.metadata.name, self.metadata.full_version)
        return report
