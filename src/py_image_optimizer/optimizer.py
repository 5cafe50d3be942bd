"""图像优化器接口。

面向命令行和 MCP 服务器的简洁入口：目录级批量优化，以及单张图片的内容分析。
"""

from pathlib import Path
from typing import Any

from .core.codec import Codec
from .core.pipeline import ImagePipeline
from .engine.config import ConfigBuilder
from .engine.coordinator import BatchCoordinator
from .engine.progress import ErrorCallback, ProgressCallback
from .exceptions import ConfigurationError
from .models import (
    BatchOutcome,
    ContentAnalysis,
    OptimizationConfig,
    QualityDecision,
)
from .reporting import ReportWriter
from .utils.logging_helpers import get_logger
from .utils.message_formatter import MessageFormatter


logger = get_logger()


class ImageOptimizer:
    """批量 Web 图像优化器

    Examples:
        >>> optimizer = ImageOptimizer.from_options(concurrency=2, min_quality=80)
        >>> outcome = optimizer.optimize_directory("./images", "./optimized")
        >>> print(outcome.report.get_summary())
    """

    def __init__(self, config: OptimizationConfig | None = None, codec: Codec | None = None):
        """初始化优化器

        Args:
            config: 优化配置，默认使用模型默认值
            codec: 编解码器实例，默认使用 Pillow 实现
        """
        self.config = config or OptimizationConfig()
        self.pipeline = ImagePipeline(self.config, codec)
        self.coordinator = BatchCoordinator(self.config, pipeline=self.pipeline)

        logger.debug("初始化图像优化器")

    @classmethod
    def from_options(cls, codec: Codec | None = None, **options: Any) -> "ImageOptimizer":
        """由扁平参数构建优化器

        Raises:
            ConfigurationError: 参数验证失败
        """
        return cls(ConfigBuilder().build(**options), codec)

    def optimize_directory(
        self,
        source_dir: str | Path,
        output_dir: str | Path,
        on_progress: ProgressCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> BatchOutcome:
        """优化目录中的所有图像

        完成后按配置写出处理报告和文件名映射；批处理中止时不写附属文件。

        Args:
            source_dir: 源目录
            output_dir: 输出目录
            on_progress: 进度回调
            on_error: 错误回调

        Returns:
            BatchOutcome: 处理报告及附属文件路径

        Raises:
            ConfigurationError: 目录参数无效
            ProcessingError: 没有找到可处理的文件
            BatchAbortError: continue_on_error 关闭且出现失败
        """
        source_dir, output_dir = Path(source_dir), Path(output_dir)
        work_items = self.coordinator.plan(source_dir, output_dir)
        report = self.coordinator.run_items(work_items, on_progress, on_error)

        if not self.config.output.generate_report:
            return BatchOutcome(report=report)

        writer = ReportWriter(output_dir)
        report_path = mapping_path = None
        try:
            report_path = writer.write_report(report, self.config.output.report_format)
            mapping_path = writer.write_mapping(work_items, source_dir, report.results)
        except OSError as e:
            # 附属文件写入失败不影响已完成的转换
            logger.warning(MessageFormatter.format_error("报告生成", output_dir, e))

        return BatchOutcome(report=report, report_path=report_path, mapping_path=mapping_path)

    def analyze_image(self, image_path: str | Path) -> tuple[ContentAnalysis, QualityDecision]:
        """分析单张图像并给出质量决策，不写出任何文件

        Raises:
            ConfigurationError: 文件不存在
            AnalysisError: 图像无法解码
        """
        image_path = Path(image_path)
        if not image_path.is_file():
            raise ConfigurationError(MessageFormatter.file_not_found(image_path), image_path)
        return self.pipeline.analyze(image_path)
