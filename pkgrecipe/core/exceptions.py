"""统一异常体系

所有业务异常继承 RecipeError。
CLI 层可据此输出友好提示并映射退出码。
每个构建阶段对应一个 PhaseError 子类，携带外部进程的退出码和 stderr。
"""

from __future__ import annotations


class RecipeError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(RecipeError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(RecipeError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class ExecutionError(RecipeError):
    """外部命令以非零状态退出"""

    code = "EXECUTION_ERROR"

    def __init__(self, message: str, *, returncode: int = 1, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class PhaseError(ExecutionError):
    """构建阶段失败的基类"""

    code = "PHASE_ERROR"
    phase: str = ""


class DependencyFetchError(PhaseError):
    """prepare 阶段: 依赖拉取失败（网络故障、lockfile 不一致等）"""

    code = "DEPENDENCY_FETCH_ERROR"
    phase = "prepare"


class CompileError(PhaseError):
    """build 阶段: 编译失败"""

    code = "COMPILE_ERROR"
    phase = "build"


class InstallError(PhaseError):
    """package 阶段: 没有可安装的产物或 install 失败"""

    code = "INSTALL_ERROR"
    phase = "package"
