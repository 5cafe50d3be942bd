"""批量处理引擎模块。

包含并发调度、进度报告、批量协调和配置构建。
"""

from .concurrent_executor import BoundedExecutor
from .config import ConfigBuilder
from .coordinator import BatchCoordinator
from .limiter import FifoLimiter
from .progress import ProgressReporter


__all__ = [
    "BatchCoordinator",
    "BoundedExecutor",
    "ConfigBuilder",
    "FifoLimiter",
    "ProgressReporter",
]
