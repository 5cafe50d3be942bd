"""单张图片优化流水线。

格式检查 → 内容分析 → 质量决策 → 缩放编码 → 质量验证。任何异常都会被转换为
失败结果，流水线本身不抛出异常。
"""

import time
from pathlib import Path

from ..exceptions import ErrorHandler, ProcessingError
from ..models.constants import ProcessingDefaults
from ..models.image_metadata import ContentAnalysis, ContentType
from ..models.optimization_config import OptimizationConfig
from ..models.optimization_result import (
    OptimizationResult,
    OptimizationStatus,
    QualityDecision,
)
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from .analyzer import ContentAnalyzer
from .codec import Codec, PillowCodec
from .formats import FormatDetector
from .quality import QualityCalculator
from .validator import QualityValidator


logger = get_logger()


class ImagePipeline:
    """单张图片的优化流水线，可在多个线程间共享"""

    def __init__(self, config: OptimizationConfig, codec: Codec | None = None):
        self.config = config
        self.codec = codec or PillowCodec()
        self.format_detector = FormatDetector(config.supported_formats)
        self.analyzer = ContentAnalyzer(self.codec)
        self.calculator = QualityCalculator(
            {
                content_type: config.quality.for_content_type(content_type)
                for content_type in ContentType
            }
        )
        self.validator = QualityValidator(
            minimum_quality_threshold=config.validation.minimum_score,
            max_size_increase=config.validation.max_size_increase,
            codec=self.codec,
        )

    def process(self, input_path: Path, output_path: Path) -> OptimizationResult:
        """处理单张图片

        Args:
            input_path: 输入文件
            output_path: 输出文件

        Returns:
            OptimizationResult: 终态结果（success/failed/skipped）
        """
        input_path, output_path = Path(input_path), Path(output_path)
        start = time.perf_counter()

        try:
            validation = self.format_detector.validate_image_file(input_path)
            if not validation.is_valid:
                return ErrorHandler.create_skipped_result(
                    input_path,
                    validation.error_message or "Invalid image file",
                    _elapsed_ms(start),
                )

            decision = self.decide_quality(input_path)
            self._check_deadline(start)

            original_size = input_path.stat().st_size
            output_size = self._encode(input_path, output_path, decision.quality, start)

            compression_ratio = (
                (original_size - output_size) / original_size * 100
                if original_size
                else 0.0
            )
            result = OptimizationResult(
                original_path=input_path,
                output_path=output_path,
                original_size=original_size,
                output_size=output_size,
                compression_ratio=compression_ratio,
                quality_used=decision.quality,
                processing_time_ms=_elapsed_ms(start),
                status=OptimizationStatus.SUCCESS,
                content_type=decision.content_type,
            )

            if self.config.validation.enabled:
                result = self._validate(result, output_path, decision.quality, start)

            if result.is_success:
                logger.info(
                    MessageFormatter.conversion_done(
                        input_path, original_size, output_size, compression_ratio
                    )
                )
            return result

        except Exception as e:
            return ErrorHandler.handle_pipeline_error(
                e, input_path, "图像优化", _elapsed_ms(start)
            )

    def decide_quality(self, input_path: Path) -> QualityDecision:
        """分析内容并计算质量"""
        return self.analyze(input_path)[1]

    def analyze(self, input_path: Path) -> tuple[ContentAnalysis, QualityDecision]:
        """分析内容，返回分析结果和质量决策，不写出任何文件"""
        analysis = self.analyzer.analyze(input_path)
        decision = self.calculator.decide(
            analysis.classification.content_type,
            analysis.classification.compression_strategy,
            analysis.characteristics,
            self.config.quality.minimum,
        )
        logger.debug(
            MessageFormatter.quality_decision(
                input_path, decision.quality, decision.reasoning
            )
        )
        return analysis, decision

    def _encode(
        self, input_path: Path, output_path: Path, quality: int, start: float
    ) -> int:
        """解码、缩放、编码并写出，返回输出字节数

        超时在写出之前检查，超时的任务不会留下输出文件。
        """
        dimensions = self.config.dimensions
        image = self.codec.load(input_path)
        source_size = image.size

        image = self.codec.resize(
            image,
            dimensions.max_width,
            dimensions.max_height,
            preserve_aspect=dimensions.preserve_aspect_ratio,
            no_upscale=True,
        )
        if self.config.processing.sharpen_large_images and (
            max(source_size) > ProcessingDefaults.SHARPEN_THRESHOLD
        ):
            image = self.codec.sharpen(image)

        data = self.codec.encode(image, self.config.output.target_format, quality)
        self._check_deadline(start)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(data)
        return len(data)

    def _validate(
        self,
        result: OptimizationResult,
        output_path: Path,
        quality: int,
        start: float,
    ) -> OptimizationResult:
        """验证输出；未通过时状态改为 failed，输出文件保留"""
        validation = self.validator.validate(result.original_path, output_path, quality)
        update: dict[str, object] = {
            "quality_score": validation.quality_score,
            "processing_time_ms": _elapsed_ms(start),
        }
        if not validation.is_valid:
            logger.warning(
                f"质量验证未通过 [{result.original_path.name}]: "
                f"{', '.join(validation.issues)}"
            )
            update["status"] = OptimizationStatus.FAILED
            update["error_message"] = (
                f"Quality validation failed: {', '.join(validation.issues)}"
            )
        return result.model_copy(update=update)

    def _check_deadline(self, start: float) -> None:
        timeout = self.config.processing.item_timeout_seconds
        if timeout is not None and time.perf_counter() - start > timeout:
            raise ProcessingError(f"Processing exceeded {timeout:g}s timeout")


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
