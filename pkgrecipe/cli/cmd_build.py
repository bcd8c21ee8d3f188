"""CLI — 构建命令（run / prepare / build / package）"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import click

from pkgrecipe.cli import _config, _fail, _load_metadata, _parse_kv_pairs
from pkgrecipe.core.exceptions import ConfigError, RecipeError
from pkgrecipe.core.models import BuildReport
from pkgrecipe.services.orchestrator import BuildOrchestrator


def register(group: click.Group) -> None:
    group.add_command(run)
    group.add_command(prepare)
    group.add_command(build)
    group.add_command(package)


def _orchestrator(recipe: str, env_overrides: dict[str, str] | None = None) -> BuildOrchestrator:
    """env_overrides 作用于全局配置的副本，不影响 get_config()"""
    cfg = _config()
    if env_overrides:
        cfg = replace(cfg, build_env={**cfg.build_env, **env_overrides})
    return BuildOrchestrator(metadata=_load_metadata(recipe), config=cfg)


def _print_report(report: BuildReport) -> None:
    """打印构建报告"""
    meta = report.metadata
    click.echo(f"\n=== 构建报告: {meta.name} {meta.full_version} ===")
    for p in report.phases:
        detail = f"  ({p.detail})" if p.detail else ""
        click.echo(f"  [{p.status:8s}] {p.name:8s} {p.duration:6.1f}s{detail}")
    for path in report.installed:
        click.echo(f"  已安装: {path}")
    if report.failed_phase:
        click.echo(f"失败阶段: {report.failed_phase} (rc={report.exit_code})")
    click.echo(f"成功: {'是' if report.success else '否'}")


_recipe_option = click.option("-r", "--recipe", default="", help="配方文件（默认取配置中的 recipe_file）")
_srcdir_option = click.option("--srcdir", default="", help="源码根目录（工作目录为 <srcdir>/<pkgname>）")
_pkgdir_option = click.option("--pkgdir", default="", help="安装目标根目录")
_env_option = click.option("--env", "env_pairs", multiple=True, help="build 阶段环境变量 key=value（可多次）")


def _work_dir(orch: BuildOrchestrator, srcdir: str) -> Path:
    if srcdir:
        return Path(srcdir) / orch.metadata.name
    return orch.default_work_dir()


@click.command()
@_recipe_option
@_srcdir_option
@_pkgdir_option
@_env_option
@click.option("--dry-run", is_flag=True, help="只打印各阶段命令，不执行")
def run(recipe: str, srcdir: str, pkgdir: str, env_pairs: tuple[str, ...], dry_run: bool) -> None:
    """依次执行 prepare → build → package，首个失败即终止"""
    try:
        orch = _orchestrator(recipe, _parse_kv_pairs(env_pairs))
    except RecipeError as e:
        _fail(e)
        return

    report = orch.run(_work_dir(orch, srcdir), pkgdir or None, dry_run=dry_run)
    _print_report(report)
    if report.error is not None:
        _fail(report.error)


@click.command()
@_recipe_option
@_srcdir_option
def prepare(recipe: str, srcdir: str) -> None:
    """只执行 prepare 阶段（拉取锁定依赖）"""
    try:
        orch = _orchestrator(recipe)
        duration = orch.run_prepare(_work_dir(orch, srcdir))
    except RecipeError as e:
        _fail(e)
        return
    click.echo(f"prepare 完成 ({duration:.1f}s)")


@click.command()
@_recipe_option
@_srcdir_option
@_env_option
def build(recipe: str, srcdir: str, env_pairs: tuple[str, ...]) -> None:
    """只执行 build 阶段（release 编译）"""
    try:
        overrides = _parse_kv_pairs(env_pairs)
        if "CARGO_TARGET_DIR" in overrides:
            # package 阶段按配置中的 CARGO_TARGET_DIR 查找产物
            raise ConfigError("CARGO_TARGET_DIR 只能在配置文件的 build_env 中设置")
        orch = _orchestrator(recipe)
        env = {**orch.config.build_env, **overrides}
        duration = orch.run_build(_work_dir(orch, srcdir), env)
    except RecipeError as e:
        _fail(e)
        return
    click.echo(f"build 完成 ({duration:.1f}s)")


@click.command()
@_recipe_option
@_srcdir_option
@_pkgdir_option
def package(recipe: str, srcdir: str, pkgdir: str) -> None:
    """只执行 package 阶段（安装可执行产物）"""
    try:
        orch = _orchestrator(recipe)
        installed = orch.run_package(_work_dir(orch, srcdir), pkgdir or orch.config.pkg_dir)
    except RecipeError as e:
        _fail(e)
        return
    for path in installed:
        click.echo(f"已安装: {path}")
