"""输出质量验证模块。

比较原图与输出图的统计特征，给出综合质量评分并列出问题。指标计算失败时
使用保守估计值，验证本身不会阻塞批处理。
"""

from pathlib import Path

from PIL import Image

from ..exceptions import CodecError, ValidationError
from ..models.constants import AnalysisDefaults, ValidationDefaults
from ..models.optimization_result import ValidationMetrics, ValidationResult
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from .codec import Codec, PillowCodec


logger = get_logger()


class QualityValidator:
    """输出质量验证器"""

    def __init__(
        self,
        minimum_quality_threshold: float = ValidationDefaults.MINIMUM_SCORE,
        max_size_increase: float = ValidationDefaults.MAX_SIZE_INCREASE,
        codec: Codec | None = None,
    ) -> None:
        """初始化验证器

        Args:
            minimum_quality_threshold: 综合评分下限
            max_size_increase: 输出相对原图允许的最大体积倍数
            codec: 编解码器实例
        """
        self.minimum_quality_threshold = minimum_quality_threshold
        self.max_size_increase = max_size_increase
        self.codec = codec or PillowCodec()

    def validate(
        self, original: Path, produced: Path, quality_used: int
    ) -> ValidationResult:
        """验证输出文件

        Raises:
            ValidationError: 任一文件无法读取
        """
        original, produced = Path(original), Path(produced)
        try:
            original_size = original.stat().st_size
            output_size = produced.stat().st_size
        except OSError as e:
            raise ValidationError(f"Cannot read file for validation: {e}") from e

        size_reduction = (
            (original_size - output_size) / original_size * 100 if original_size else 0.0
        )
        compression_ratio = original_size / output_size if output_size else 0.0

        structural, color, sharpness, loss = self._compare(original, produced)
        quality_score = self.overall_score(structural, color, sharpness, quality_used)
        meets_threshold = quality_score >= self.minimum_quality_threshold

        issues: list[str] = []
        if original_size and output_size > original_size * self.max_size_increase:
            issues.append(
                f"Output file is {(output_size / original_size - 1) * 100:.1f}% "
                "larger than original"
            )
        if not meets_threshold:
            issues.append(
                f"Quality score {quality_score:.1f}% below threshold "
                f"{self.minimum_quality_threshold:g}%"
            )
        if loss > ValidationDefaults.MAX_QUALITY_LOSS:
            issues.append(f"Excessive quality loss: {loss:.1f}%")
        if structural < ValidationDefaults.MIN_STRUCTURAL_SIMILARITY:
            issues.append(f"Low structural similarity: {structural * 100:.1f}%")
        if integrity_error := self._check_integrity(produced, output_size):
            issues.append(f"File integrity issue: {integrity_error}")

        if issues:
            logger.debug(f"质量验证问题 [{produced.name}]: {'; '.join(issues)}")

        return ValidationResult(
            is_valid=not issues,
            quality_score=quality_score,
            size_reduction=size_reduction,
            meets_threshold=meets_threshold,
            issues=issues,
            metrics=ValidationMetrics(
                original_size=original_size,
                output_size=output_size,
                compression_ratio=compression_ratio,
                quality_loss=loss,
                structural_similarity=structural,
                color_accuracy=color,
                sharpness_retention=sharpness,
            ),
        )

    @staticmethod
    def overall_score(
        structural: float, color: float, sharpness: float, quality_used: int
    ) -> float:
        """加权综合评分，按目标质量缩放，截断到 [0, 100]"""
        weighted = (
            structural * ValidationDefaults.WEIGHT_STRUCTURAL
            + color * ValidationDefaults.WEIGHT_COLOR
            + sharpness * ValidationDefaults.WEIGHT_SHARPNESS
        ) * 100
        return min(100.0, max(0.0, weighted * (quality_used / 100)))

    # ========================================================================
    # 指标计算
    # ========================================================================

    def _compare(self, original: Path, produced: Path) -> tuple[float, float, float, float]:
        """返回 (结构相似度, 颜色准确度, 锐度保持, 质量损失)"""
        try:
            original_image = self.codec.load(original)
            produced_image = self.codec.load(produced)
            width, height = original_image.size
            produced_image = self.codec.resize(
                produced_image, width, height, preserve_aspect=False, no_upscale=False
            )
        except CodecError as e:
            logger.debug(MessageFormatter.operation_failed("加载对比图像", produced, e))
            return (
                ValidationDefaults.FALLBACK_STRUCTURAL,
                ValidationDefaults.FALLBACK_COLOR,
                ValidationDefaults.FALLBACK_SHARPNESS,
                ValidationDefaults.FALLBACK_LOSS,
            )

        structural = self._structural_similarity(original_image, produced_image)
        color = self._color_accuracy(original_image, produced_image)
        sharpness = self._sharpness_retention(original_image, produced_image)
        loss = max(0.0, 100 - (structural + color + sharpness) / 3 * 100)
        return structural, color, sharpness, loss

    def _structural_similarity(self, original: Image.Image, produced: Image.Image) -> float:
        try:
            a = self.codec.compute_statistics(original.convert("L")).channels[0]
            b = self.codec.compute_statistics(produced.convert("L")).channels[0]
        except (CodecError, OSError, ValueError) as e:
            logger.debug(f"结构相似度计算失败: {e}")
            return ValidationDefaults.FALLBACK_STRUCTURAL

        mean_similarity = 1 - abs(a.mean - b.mean) / 255
        stdev_similarity = 1 - abs(a.stdev - b.stdev) / 128
        return _unit((mean_similarity + stdev_similarity) / 2)

    def _color_accuracy(self, original: Image.Image, produced: Image.Image) -> float:
        try:
            a = self.codec.compute_statistics(original).channels
            b = self.codec.compute_statistics(produced).channels
        except CodecError as e:
            logger.debug(f"颜色准确度计算失败: {e}")
            return ValidationDefaults.FALLBACK_COLOR

        shared = min(len(a), len(b))
        if shared == 0:
            return ValidationDefaults.FALLBACK_COLOR
        total = sum(1 - abs(a[i].mean - b[i].mean) / 255 for i in range(shared))
        return _unit(total / shared)

    def _sharpness_retention(self, original: Image.Image, produced: Image.Image) -> float:
        try:
            a = self.codec.apply_convolution(original, AnalysisDefaults.EDGE_KERNEL)
            b = self.codec.apply_convolution(produced, AnalysisDefaults.EDGE_KERNEL)
        except CodecError as e:
            logger.debug(f"锐度保持计算失败: {e}")
            return ValidationDefaults.FALLBACK_SHARPNESS

        if a.mean == 0:
            return 1.0
        return _unit(b.mean / a.mean)

    def _check_integrity(self, produced: Path, output_size: int) -> str | None:
        if output_size == 0:
            return "Output file is empty"
        try:
            self.codec.verify(produced)
        except CodecError as e:
            return f"File integrity check failed: {e.message}"
        return None


def _unit(value: float) -> float:
    return min(1.0, max(0.0, value))
