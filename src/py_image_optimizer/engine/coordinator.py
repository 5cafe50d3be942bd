"""批量协调器模块。

在有界并发下对文件集合运行单张图片流水线，汇总为处理报告，并通过回调
发出进度和错误事件。
"""

import threading
import time
from collections.abc import Sequence
from pathlib import Path

from ..core.codec import Codec
from ..core.pipeline import ImagePipeline
from ..exceptions import BatchAbortError, ConfigurationError, ProcessingError
from ..models.optimization_config import OptimizationConfig
from ..models.optimization_result import (
    OptimizationResult,
    OptimizationStatus,
    ProcessingReport,
    WorkItem,
)
from ..utils import find_image_files, is_output_directory_safe, is_same_or_subdirectory
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from ..utils.naming_helpers import PathResolver
from .concurrent_executor import BoundedExecutor
from .progress import ErrorCallback, ProgressCallback, ProgressReporter


logger = get_logger()

NO_FILES_MESSAGE = "no supported image files found"


class BatchCoordinator:
    """批量优化协调器

    continue_on_error 开启时所有文件都会处理完，run 总是返回报告；关闭时
    首个失败会停止调度，已在运行的任务完成并记录后抛出 BatchAbortError。
    """

    def __init__(
        self,
        config: OptimizationConfig | None = None,
        codec: Codec | None = None,
        pipeline: ImagePipeline | None = None,
    ):
        """初始化协调器

        Args:
            config: 优化配置
            codec: 编解码器实例
            pipeline: 单张图片流水线，默认按配置创建
        """
        self.config = config or OptimizationConfig()
        self.pipeline = pipeline or ImagePipeline(self.config, codec)
        self.executor = BoundedExecutor(self.config.processing.concurrency)

    # ========================================================================
    # 目录处理
    # ========================================================================

    def process_directory(
        self,
        source_dir: str | Path,
        output_dir: str | Path,
        on_progress: ProgressCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> ProcessingReport:
        """处理目录中的所有图像文件

        Raises:
            ConfigurationError: 目录参数无效
            ProcessingError: 没有找到可处理的文件
            BatchAbortError: continue_on_error 关闭且出现失败
        """
        work_items = self.plan(source_dir, output_dir)
        return self.run_items(work_items, on_progress, on_error)

    def plan(self, source_dir: str | Path, output_dir: str | Path) -> list[WorkItem]:
        """校验目录、查找文件并规划输出路径"""
        source_dir, output_dir = Path(source_dir), Path(output_dir)
        self._validate_directories(source_dir, output_dir)

        files = find_image_files(
            source_dir,
            self.config.supported_extensions(),
            exclude_dirs=[output_dir.resolve()],
        )
        if not files:
            raise ProcessingError(f"{NO_FILES_MESSAGE} in {source_dir}", source_dir)

        output_dir.mkdir(parents=True, exist_ok=True)
        return PathResolver.plan_work_items(
            files,
            output_dir,
            source_dir=source_dir,
            target_format=self.config.output.target_format,
            preserve_structure=self.config.output.preserve_structure,
        )

    def _validate_directories(self, source_dir: Path, output_dir: Path) -> None:
        if not source_dir.exists():
            raise ConfigurationError(
                MessageFormatter.directory_not_found(source_dir), source_dir
            )
        if not source_dir.is_dir():
            raise ConfigurationError(
                MessageFormatter.path_not_directory(source_dir), source_dir
            )
        if is_same_or_subdirectory(output_dir, source_dir):
            raise ConfigurationError(
                "Output directory cannot be the same as or inside the source directory",
                output_dir,
            )
        if not self.config.output.overwrite and not is_output_directory_safe(output_dir):
            raise ConfigurationError(
                f"Output directory contains files that might be overwritten: {output_dir}",
                output_dir,
            )

    # ========================================================================
    # 批处理
    # ========================================================================

    def run(
        self,
        files: Sequence[str | Path],
        output_dir: str | Path,
        source_dir: str | Path | None = None,
        on_progress: ProgressCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> ProcessingReport:
        """对给定文件列表运行批处理

        Args:
            files: 输入文件列表，按顺序调度
            output_dir: 输出目录
            source_dir: 源目录，用于保持相对目录结构
            on_progress: 进度回调
            on_error: 错误回调

        Raises:
            ProcessingError: 文件列表为空
            BatchAbortError: continue_on_error 关闭且出现失败
        """
        if not files:
            raise ProcessingError(NO_FILES_MESSAGE)

        work_items = PathResolver.plan_work_items(
            [Path(f) for f in files],
            Path(output_dir),
            source_dir=Path(source_dir) if source_dir else None,
            target_format=self.config.output.target_format,
            preserve_structure=self.config.output.preserve_structure,
        )
        return self.run_items(work_items, on_progress, on_error)

    def run_items(
        self,
        work_items: Sequence[WorkItem],
        on_progress: ProgressCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> ProcessingReport:
        """对已规划的任务运行批处理"""
        if not work_items:
            raise ProcessingError(NO_FILES_MESSAGE)

        settings = self.config.processing
        start = time.perf_counter()
        reporter = ProgressReporter(
            total=len(work_items),
            interval_ms=settings.progress_interval_ms,
            on_progress=on_progress if settings.enable_progress_reporting else None,
            on_error=on_error,
        )

        results: list[OptimizationResult] = []
        first_failure: list[OptimizationResult] = []
        lock = threading.Lock()
        abort = threading.Event()

        def record(result: OptimizationResult) -> None:
            with lock:
                results.append(result)
                if result.status == OptimizationStatus.FAILED:
                    if not first_failure:
                        first_failure.append(result)
                    if not settings.continue_on_error:
                        abort.set()

            reporter.record(result)
            if result.status == OptimizationStatus.FAILED:
                reporter.report_error(
                    result.error_message or "Image processing failed",
                    result.original_path,
                )

        logger.info(
            MessageFormatter.batch_started(
                len(work_items), work_items[0].input_path.parent, settings.concurrency
            )
        )
        self.executor.execute_tasks(
            work_items,
            lambda item: self.pipeline.process(item.input_path, item.output_path),
            record,
            abort,
        )

        report = ProcessingReport.from_results(
            results, (time.perf_counter() - start) * 1000
        )

        if abort.is_set():
            failure = first_failure[0]
            raise BatchAbortError(
                failure.error_message or "Image processing failed",
                failure.original_path,
                results=report.results,
            )

        logger.info(report.get_summary())
        return report
