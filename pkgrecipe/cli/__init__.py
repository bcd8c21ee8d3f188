"""pkgrecipe 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os
import sys
from pathlib import Path

import click

from pkgrecipe import __version__
from pkgrecipe.core.config import Config, get_config, init_config
from pkgrecipe.core.exceptions import PhaseError, RecipeError, ValidationError
from pkgrecipe.core.models import PackageMetadata
from pkgrecipe.core.recipe import DEFAULT_METADATA, load_recipe
from pkgrecipe.utils.logger import setup_logging

# 配置 / 配方错误的退出码；阶段失败沿用外部进程的退出码
EXIT_CONFIG_ERROR = 2


def _parse_kv_pairs(pairs: tuple[str, ...]) -> dict[str, str]:
    """解析 key=value 参数对"""
    result: dict[str, str] = {}
    for p in pairs:
        if "=" in p:
            k, v = p.split("=", 1)
            result[k.strip()] = v.strip()
    return result


def _config() -> Config:
    return get_config()


def _load_metadata(recipe: str) -> PackageMetadata:
    """--recipe 显式指定时必须存在；否则优先配置中的配方文件，再退回内置配方"""
    if recipe:
        return load_recipe(recipe)
    configured = _config().recipe_file
    if configured and Path(configured).exists():
        return load_recipe(configured)
    return DEFAULT_METADATA


def _fail(err: RecipeError) -> None:
    """输出错误并以对应退出码结束进程"""
    click.echo(f"错误 [{err.code}]: {err}", err=True)
    if isinstance(err, ValidationError):
        for d in err.details:
            click.echo(f"  - {d}", err=True)
    if isinstance(err, PhaseError):
        click.echo(f"失败阶段: {err.phase}", err=True)
        sys.exit(err.returncode if err.returncode > 0 else 1)
    sys.exit(EXIT_CONFIG_ERROR)


@click.group()
@click.version_option(version=__version__)
@click.option("-c", "--config", default="configs/default.yml", help="配置文件路径")
def main(config: str) -> None:
    """pkgrecipe - 软件包构建配方执行器（prepare → build → package）"""
    setup_logging(
        level=os.getenv("PKGRECIPE_LOG_LEVEL", "INFO"),
        json_output=os.getenv("PKGRECIPE_LOG_JSON", "") == "1",
    )
    try:
        init_config(config)
    except RecipeError as e:
        click.echo(f"配置加载失败: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)


# 注册各领域子命令
from pkgrecipe.cli.cmd_build import register as _reg_build  # noqa: E402
from pkgrecipe.cli.cmd_recipe import register as _reg_recipe  # noqa: E402

_reg_build(main)
_reg_recipe(main)
