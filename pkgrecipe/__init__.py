"""pkgrecipe - 软件包构建配方执行器"""

__version__ = "0.3.0"
