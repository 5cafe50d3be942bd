"""数据模型模块。

导出所有数据模型类，提供统一的导入接口。
"""

from .constants import (
    AnalysisDefaults,
    ImageFormats,
    ProcessingDefaults,
    QualityDefaults,
    ValidationDefaults,
    get_format_alias,
    get_output_extension,
)
from .image_metadata import (
    ChannelStatistics,
    CompressionStrategy,
    ContentAnalysis,
    ContentClassification,
    ContentType,
    ImageCharacteristics,
    ImageMetadata,
    ImageStatistics,
)
from .optimization_config import (
    DimensionSettings,
    OptimizationConfig,
    OutputSettings,
    ProcessingSettings,
    QualitySettings,
    ValidationSettings,
)
from .optimization_result import (
    BatchOutcome,
    FileValidation,
    OptimizationResult,
    OptimizationStatus,
    ProcessingReport,
    ProgressSnapshot,
    QualityDecision,
    ValidationMetrics,
    ValidationResult,
    WorkItem,
)


__all__ = [
    # 常量
    "AnalysisDefaults",
    "ImageFormats",
    "ProcessingDefaults",
    "QualityDefaults",
    "ValidationDefaults",
    "get_format_alias",
    "get_output_extension",
    # 图像特征
    "ChannelStatistics",
    "CompressionStrategy",
    "ContentAnalysis",
    "ContentClassification",
    "ContentType",
    "ImageCharacteristics",
    "ImageMetadata",
    "ImageStatistics",
    # 配置
    "DimensionSettings",
    "OptimizationConfig",
    "OutputSettings",
    "ProcessingSettings",
    "QualitySettings",
    "ValidationSettings",
    # 结果
    "BatchOutcome",
    "FileValidation",
    "OptimizationResult",
    "OptimizationStatus",
    "ProcessingReport",
    "ProgressSnapshot",
    "QualityDecision",
    "ValidationMetrics",
    "ValidationResult",
    "WorkItem",
]
