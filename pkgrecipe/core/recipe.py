"""构建配方 — 元数据加载 / 校验 / .SRCINFO 渲染

配方文件沿用 PKGBUILD 的字段名（pkgname, pkgver, depends ...），
加载后转换为不可变的 PackageMetadata。

配方示例 (recipes/amethyst.yml):
    pkgname: amethyst
    pkgver: 3.3.0
    pkgrel: 2
    arch: [x86_64]
    depends: [git, binutils, fakeroot, pacman-contrib, vim]
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml

from pkgrecipe.core.exceptions import ConfigError, ValidationError
from pkgrecipe.core.models import PackageMetadata
from pkgrecipe.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^[a-z0-9@_+][a-z0-9@._+-]*$")
_VERSION_FORBIDDEN = re.compile(r"[:/\-\s]")

DEFAULT_METADATA = PackageMetadata(
    name="amethyst",
    version="3.3.0",
    release=2,
    description="A fast and efficient AUR helper",
    architectures=frozenset({"x86_64"}),
    source_url="git+https://github.com/crystal-linux/amethyst",
    licenses=frozenset({"GPL3"}),
    runtime_dependencies=frozenset({"git", "binutils", "fakeroot", "pacman-contrib", "vim"}),
    build_dependencies=frozenset({"cargo"}),
    conflicts=frozenset({"ame"}),
)


def validate_metadata(meta: PackageMetadata) -> PackageMetadata:
    """校验元数据，收集全部问题后一次性抛出 ValidationError"""
    problems: list[str] = []
    if not meta.name:
        problems.append("pkgname 为必填")
    elif not _NAME_RE.match(meta.name):
        problems.append(f"pkgname 含非法字符: {meta.name!r}")
    if not meta.version:
        problems.append("pkgver 为必填")
    elif _VERSION_FORBIDDEN.search(meta.version):
        problems.append(f"pkgver 不能包含 ':' '/' '-' 或空白: {meta.version!r}")
    if meta.release < 1:
        problems.append(f"pkgrel 必须 >= 1: {meta.release}")
    if not meta.architectures:
        problems.append("arch 不能为空")
    if problems:
        raise ValidationError(f"配方校验失败: {meta.name or '<unnamed>'}", details=problems)
    return meta


def _as_set(data: dict[str, Any], key: str) -> frozenset[str]:
    value = data.get(key) or []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ConfigError(f"配方字段 {key} 必须是字符串列表")
    return frozenset(str(v) for v in value)


def metadata_from_dict(data: dict[str, Any]) -> PackageMetadata:
    """从 PKGBUILD 风格字典构造并校验 PackageMetadata"""
    try:
        release = int(data.get("pkgrel", 1))
    except (TypeError, ValueError) as e:
        raise ValidationError(f"pkgrel 不是整数: {data.get('pkgrel')!r}") from e

    checksums = data.get("sha256sums") or ["SKIP"]
    if isinstance(checksums, str):
        checksums = [checksums]

    meta = PackageMetadata(
        name=str(data.get("pkgname", "")),
        version=str(data.get("pkgver", "")),
        release=release,
        description=str(data.get("pkgdesc", "")),
        architectures=_as_set(data, "arch"),
        source_url=str(data.get("source", "")),
        licenses=_as_set(data, "license"),
        runtime_dependencies=_as_set(data, "depends"),
        build_dependencies=_as_set(data, "makedepends"),
        conflicts=_as_set(data, "conflicts"),
        checksums=tuple(str(c) for c in checksums),
    )
    return validate_metadata(meta)


def load_recipe(path: str | Path | None = None) -> PackageMetadata:
    """加载配方文件；未指定路径时返回内置的 amethyst 配方"""
    if path is None:
        return DEFAULT_METADATA
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"配方文件不存在: {p}")
    try:
        data = load_yaml(p)
    except (yaml.YAMLError, ValueError) as e:
        raise ConfigError(f"配方文件无效: {p}: {e}") from e
    if not data:
        raise ConfigError(f"配方文件为空或格式无效: {p}")
    meta = metadata_from_dict(data)
    logger.info("配方已加载: %s %s (%s)", meta.name, meta.full_version, p)
    return meta


def render_srcinfo(meta: PackageMetadata) -> str:
    """渲染 .SRCINFO 文本，供外部打包工具（AUR）消费"""
    lines = [f"pkgbase = {meta.name}"]

    def add(key: str, values: Any) -> None:
        for v in values:
            lines.append(f"\t{key} = {v}")

    if meta.description:
        add("pkgdesc", [meta.description])
    add("pkgver", [meta.version])
    add("pkgrel", [meta.release])
    add("arch", sorted(meta.architectures))
    add("license", sorted(meta.licenses))
    add("makedepends", sorted(meta.build_dependencies))
    add("depends", sorted(meta.runtime_dependencies))
    add("conflicts", sorted(meta.conflicts))
    if meta.source_url:
        add("source", [meta.source_url])
        add("sha256sums", meta.checksums)
    lines.append("")
    lines.append(f"pkgname = {meta.name}")
    return "\n".join(lines) + "\n"
