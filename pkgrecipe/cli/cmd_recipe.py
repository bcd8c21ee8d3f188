"""CLI — 配方查看命令（info / srcinfo）"""

from __future__ import annotations

from pathlib import Path

import click

from pkgrecipe.cli import _fail, _load_metadata
from pkgrecipe.core.exceptions import RecipeError
from pkgrecipe.core.recipe import render_srcinfo
from pkgrecipe.utils.yaml_io import atomic_write, dump_yaml


def register(group: click.Group) -> None:
    group.add_command(info)
    group.add_command(srcinfo)


@click.command()
@click.option("-r", "--recipe", default="", help="配方文件")
@click.option("--format", "-f", "fmt", default="text", type=click.Choice(["text", "yaml"]))
def info(recipe: str, fmt: str) -> None:
    """显示软件包元数据"""
    try:
        meta = _load_metadata(recipe)
    except RecipeError as e:
        _fail(e)
        return

    if fmt == "yaml":
        click.echo(dump_yaml(meta.to_dict()), nl=False)
        return

    for key, value in meta.to_dict().items():
        if isinstance(value, list):
            value = ", ".join(value) or "-"
        click.echo(f"  {key:22s} {value}")


@click.command()
@click.option("-r", "--recipe", default="", help="配方文件")
@click.option("-o", "--output", default="", help="写入文件（默认输出到 stdout）")
def srcinfo(recipe: str, output: str) -> None:
    """渲染 .SRCINFO"""
    try:
        meta = _load_metadata(recipe)
    except RecipeError as e:
        _fail(e)
        return

    text = render_srcinfo(meta)
    if output:
        atomic_write(Path(output), text)
        click.echo(f".SRCINFO 已写入: {output}")
    else:
        click.echo(text, nl=False)
