"""批量 Web 图像优化库。

基于 Pillow 的内容感知图像优化：按图片内容选择质量，批量转换为 WebP 并验证输出。
"""

__version__ = "0.1.0"
__author__ = "crper"
__description__ = "内容感知的批量 Web 图像优化器，基于 Pillow 11"

# 核心功能导出
from .exceptions import (
    BatchAbortError,
    ConfigurationError,
    OptimizerError,
    ProcessingError,
)
from .models import (
    BatchOutcome,
    OptimizationConfig,
    OptimizationResult,
    OptimizationStatus,
    ProcessingReport,
)
from .optimizer import ImageOptimizer


__all__ = [
    "BatchAbortError",
    "BatchOutcome",
    "ConfigurationError",
    "ImageOptimizer",
    "OptimizationConfig",
    "OptimizationResult",
    "OptimizationStatus",
    "OptimizerError",
    "ProcessingError",
    "ProcessingReport",
    "get_version",
]


def get_version() -> str:
    """获取版本号。"""
    return __version__
