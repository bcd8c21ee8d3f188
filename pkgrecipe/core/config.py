"""集中配置管理

提供统一的配置入口，支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

import yaml

from pkgrecipe.core.exceptions import ConfigError
from pkgrecipe.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


def _default_build_env() -> dict[str, str]:
    return {"RUSTUP_TOOLCHAIN": "stable", "CARGO_TARGET_DIR": "target"}


@dataclass
class Config:
    """构建全局配置"""

    # 目录
    src_dir: str = "src"
    pkg_dir: str = "pkg"
    recipe_file: str = "recipes/amethyst.yml"

    # 目标架构 (CARCH)
    carch: str = "x86_64"

    # 外部工具
    cargo_bin: str = "cargo"
    install_bin: str = "install"

    # 仅 build 阶段可见的环境变量覆盖
    build_env: dict[str, str] = field(default_factory=_default_build_env)

    # 单条命令超时（秒），None 表示不限
    command_timeout: int | None = None

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def target_dir(self) -> str:
        """编译产物根目录（相对工作目录）"""
        return self.build_env.get("CARGO_TARGET_DIR", "target")

    @classmethod
    def from_file(cls, path: str = "configs/default.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigError(f"配置文件无效: {path}: {e}") from e
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}

        build_env = matched.get("build_env")
        if build_env is not None:
            if not isinstance(build_env, dict):
                raise ConfigError(f"build_env 必须是字典: {path}")
            matched["build_env"] = {str(k): str(v) for k, v in build_env.items()}

        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "configs/default.yml") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current


def reset_config() -> None:
    """清除全局配置（测试用）"""
    global _current  # noqa: PLW0603
    _current = None
