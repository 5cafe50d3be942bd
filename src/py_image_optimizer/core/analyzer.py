"""内容分析模块。

从编解码器提供的统计数据计算图像特征，并据此判断内容类型和压缩策略。
分类与策略选择是纯函数，可以脱离编解码器单独测试。
"""

from pathlib import Path

from ..exceptions import AnalysisError, CodecError
from ..models.constants import AnalysisDefaults
from ..models.image_metadata import (
    CompressionStrategy,
    ContentAnalysis,
    ContentClassification,
    ContentType,
    ImageCharacteristics,
    ImageMetadata,
    ImageStatistics,
)
from ..utils.logging_helpers import get_logger
from .codec import Codec, PillowCodec


logger = get_logger()


# ============================================================================
# 纯函数：特征推导、内容分类、策略选择
# ============================================================================


def color_complexity_from(statistics: ImageStatistics) -> float:
    """平均通道标准差按 50 归一化，上限 100"""
    return min(
        100.0, statistics.mean_stdev() / AnalysisDefaults.STDEV_NORMALIZER * 100
    )


def edge_intensity_from(mean_response: float) -> float:
    """卷积平均响应按 128 归一化，上限 100"""
    return min(100.0, mean_response / AnalysisDefaults.EDGE_NORMALIZER * 100)


def effective_color_depth_from(statistics: ImageStatistics, bit_depth: int) -> int:
    """根据平均通道取值范围估计实际使用的色深"""
    depth = bit_depth
    value_range = statistics.mean_range()
    if value_range < AnalysisDefaults.NARROW_RANGE:
        depth = min(depth, 6)
    elif value_range < AnalysisDefaults.MEDIUM_RANGE:
        depth = min(depth, 7)
    return depth


def derive_characteristics(
    metadata: ImageMetadata, statistics: ImageStatistics, edge_response: float
) -> ImageCharacteristics:
    """由元数据、通道统计和边缘响应得到截断后的图像特征"""
    return ImageCharacteristics.from_measurements(
        color_complexity=color_complexity_from(statistics),
        edge_intensity=edge_intensity_from(edge_response),
        has_transparency=metadata.has_alpha or metadata.channels == 4,
        effective_color_depth=effective_color_depth_from(
            statistics, metadata.bit_depth
        ),
        aspect_ratio=metadata.aspect_ratio,
    )


def classify_content(characteristics: ImageCharacteristics) -> ContentType:
    """按优先级判断内容类型"""
    c = characteristics
    if (
        c.has_transparency
        or c.edge_intensity > 70
        or (c.color_complexity < 40 and c.effective_color_depth <= 6)
    ):
        return ContentType.GRAPHIC

    if (
        c.color_complexity > 60
        and c.edge_intensity < 40
        and not c.has_transparency
        and c.effective_color_depth >= 8
    ):
        return ContentType.PHOTO

    return ContentType.MIXED


def select_strategy(
    content_type: ContentType, characteristics: ImageCharacteristics
) -> CompressionStrategy:
    """按内容类型选择压缩策略"""
    c = characteristics
    match content_type:
        case ContentType.PHOTO:
            if c.color_complexity > 80:
                return CompressionStrategy.HIGH_QUALITY
            return CompressionStrategy.BALANCED
        case ContentType.GRAPHIC:
            if c.has_transparency or c.edge_intensity > 80:
                return CompressionStrategy.HIGH_QUALITY
            if c.color_complexity < 30 and c.edge_intensity < 50:
                return CompressionStrategy.SIZE_OPTIMIZED
            return CompressionStrategy.BALANCED
        case _:
            if c.color_complexity > 70 or c.edge_intensity > 70:
                return CompressionStrategy.HIGH_QUALITY
            return CompressionStrategy.BALANCED


def classify(characteristics: ImageCharacteristics) -> ContentClassification:
    content_type = classify_content(characteristics)
    return ContentClassification(
        content_type=content_type,
        compression_strategy=select_strategy(content_type, characteristics),
    )


# ============================================================================
# 分析器
# ============================================================================


class ContentAnalyzer:
    """图像内容分析器"""

    def __init__(self, codec: Codec | None = None) -> None:
        self.codec = codec or PillowCodec()

    def analyze(self, path: Path) -> ContentAnalysis:
        """分析图片并给出分类

        Raises:
            AnalysisError: 无法解码或计算统计数据
        """
        path = Path(path)
        try:
            metadata = self.codec.decode_metadata(path)
            image = self.codec.load(path)
            statistics = self.codec.compute_statistics(image)
            edges = self.codec.apply_convolution(image, AnalysisDefaults.EDGE_KERNEL)
        except CodecError as e:
            raise AnalysisError(f"Failed to analyze image: {e.message}", path) from e
        except OSError as e:
            raise AnalysisError(f"Failed to analyze image: {e}", path) from e

        characteristics = derive_characteristics(metadata, statistics, edges.mean)
        classification = classify(characteristics)

        logger.debug(
            f"内容分析 [{path.name}]: {classification.content_type.value}/"
            f"{classification.compression_strategy.value} "
            f"(颜色复杂度 {characteristics.color_complexity:.1f}, "
            f"边缘强度 {characteristics.edge_intensity:.1f}, "
            f"有效色深 {characteristics.effective_color_depth})"
        )

        return ContentAnalysis(
            metadata=metadata,
            characteristics=characteristics,
            classification=classification,
        )
