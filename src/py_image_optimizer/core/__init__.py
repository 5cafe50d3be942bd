"""核心处理模块。

包含编解码、格式检测、内容分析、质量计算、质量验证和单张图片流水线。
"""

from .analyzer import ContentAnalyzer, classify, classify_content, select_strategy
from .codec import Codec, PillowCodec
from .formats import FormatDetector
from .pipeline import ImagePipeline
from .quality import QualityCalculator
from .validator import QualityValidator


__all__ = [
    "Codec",
    "ContentAnalyzer",
    "FormatDetector",
    "ImagePipeline",
    "PillowCodec",
    "QualityCalculator",
    "QualityValidator",
    "classify",
    "classify_content",
    "select_strategy",
]
