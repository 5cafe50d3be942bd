"""动态质量计算模块。

根据内容类型、压缩策略和图像特征计算编码质量，并记录每一步调整的原因。
"""

from collections.abc import Mapping

from ..exceptions import ConfigurationError
from ..models.constants import QualityDefaults
from ..models.image_metadata import (
    CompressionStrategy,
    ContentType,
    ImageCharacteristics,
)
from ..models.optimization_result import QualityDecision


MINIMUM_ENFORCED = "minimum threshold enforced"


class QualityCalculator:
    """质量计算器

    质量矩阵的每一行可以通过 base_qualities 整体平移：某内容类型的设置值
    成为该行 balanced 列的值，其余两列保持原有间距。默认设置等于矩阵的
    balanced 列，因此不传参时使用原始矩阵。
    """

    def __init__(self, base_qualities: Mapping[ContentType, int] | None = None):
        self.offsets: dict[ContentType, int] = {}
        for content_type, quality in (base_qualities or {}).items():
            content_type = ContentType(content_type)
            balanced = QualityDefaults.MATRIX[content_type.value]["balanced"]
            self.offsets[content_type] = int(quality) - balanced

    def base_quality(
        self, content_type: ContentType, strategy: CompressionStrategy
    ) -> int:
        row = QualityDefaults.MATRIX[ContentType(content_type).value]
        base = row[CompressionStrategy(strategy).value]
        return base + self.offsets.get(ContentType(content_type), 0)

    def decide(
        self,
        content_type: ContentType,
        strategy: CompressionStrategy,
        characteristics: ImageCharacteristics,
        minimum_quality: int,
    ) -> QualityDecision:
        """计算最终质量

        Raises:
            ConfigurationError: minimum_quality 不在 [1, 100] 内
        """
        if not (
            QualityDefaults.MIN_QUALITY <= minimum_quality <= QualityDefaults.MAX_QUALITY
        ):
            raise ConfigurationError(
                f"Minimum quality must be between 1 and 100, got {minimum_quality}"
            )

        content_type = ContentType(content_type)
        strategy = CompressionStrategy(strategy)
        c = characteristics

        base = self.base_quality(content_type, strategy)
        quality = base
        reasoning = [f"{content_type.value} content, {strategy.value} strategy"]
        if content_type in self.offsets and self.offsets[content_type] != 0:
            reasoning.append(f"{content_type.value} quality setting applied ({base})")

        # 颜色复杂度
        if c.color_complexity > 80:
            quality += 3
            reasoning.append("high color complexity (+3)")
        elif c.color_complexity < 30:
            quality -= 2
            reasoning.append("low color complexity (-2)")

        # 边缘强度
        if c.edge_intensity > 70:
            quality += 2
            reasoning.append("high edge intensity (+2)")
        elif c.edge_intensity < 30:
            quality -= 1
            reasoning.append("smooth gradients (-1)")

        # 透明度
        if c.has_transparency:
            quality += 2
            reasoning.append("transparency preservation (+2)")

        # 色深
        if c.effective_color_depth >= 10:
            quality += 2
            reasoning.append("high color depth (+2)")
        elif c.effective_color_depth <= 6:
            quality -= 1
            reasoning.append("limited color depth (-1)")

        # 极端宽高比
        if c.aspect_ratio > 3 or c.aspect_ratio < 0.33:
            quality += 1
            reasoning.append("extreme aspect ratio (+1)")

        # 内容类型微调
        match content_type:
            case ContentType.PHOTO if c.edge_intensity < 25:
                quality -= 1
                reasoning.append("smooth photo (-1)")
            case ContentType.GRAPHIC if c.color_complexity > 60:
                quality += 2
                reasoning.append("complex graphic colors (+2)")
            case ContentType.MIXED if c.color_complexity > 70 and c.edge_intensity > 60:
                quality += 1
                reasoning.append("complex mixed content (+1)")

        quality = max(QualityDefaults.CLAMP_LOW, min(QualityDefaults.CLAMP_HIGH, quality))

        if quality < minimum_quality:
            quality = minimum_quality
            reasoning.append(MINIMUM_ENFORCED)

        return QualityDecision(
            quality=quality,
            base_quality=max(1, min(100, base)),
            content_type=content_type,
            strategy=strategy,
            reasoning=reasoning,
        )
