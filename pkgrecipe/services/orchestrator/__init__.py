"""构建编排模块

- phases.py: 阶段描述与命令执行
- orchestrator.py: 三阶段协调器
"""

from pkgrecipe.services.orchestrator.orchestrator import BuildOrchestrator
from pkgrecipe.services.orchestrator.phases import PhaseRunner

__all__ = ["BuildOrchestrator", "PhaseRunner"]
