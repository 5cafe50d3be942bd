"""进度报告模块。

线程安全地累计批处理的计数、体积和耗时，按时间间隔节流地发出进度快照。
进度报告只做记录，不影响任何处理结果。
"""

import threading
import time
from collections.abc import Callable
from pathlib import Path

from ..models.optimization_result import (
    OptimizationResult,
    OptimizationStatus,
    ProgressSnapshot,
)
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter


logger = get_logger()

ProgressCallback = Callable[[ProgressSnapshot], None]
ErrorCallback = Callable[[str, Path], None]


class ProgressReporter:
    """批处理进度累计器"""

    def __init__(
        self,
        total: int,
        interval_ms: float = 100,
        on_progress: ProgressCallback | None = None,
        on_error: ErrorCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """初始化进度报告器

        Args:
            total: 文件总数
            interval_ms: 两次进度回调之间的最小间隔
            on_progress: 进度回调
            on_error: 错误回调
            clock: 时钟函数（秒），测试时可替换
        """
        self.total = total
        self.interval_ms = interval_ms
        self.on_progress = on_progress
        self.on_error = on_error
        self._clock = clock
        self._lock = threading.Lock()
        self._emit_lock = threading.Lock()

        self._start = clock()
        self._last_emit = self._start
        self._processed = 0
        self._success = 0
        self._failure = 0
        self._skipped = 0
        self._original_size = 0
        self._output_size = 0
        self._ratios: list[float] = []
        self._processing_times: list[float] = []
        self._last: ProgressSnapshot | None = None

    def record(self, result: OptimizationResult) -> ProgressSnapshot | None:
        """记录一个终态结果

        Returns:
            ProgressSnapshot | None: 本次发出的快照；被节流时返回 None
        """
        # _emit_lock 保证快照按顺序到达；回调在状态锁之外执行
        with self._emit_lock:
            snapshot = self._update(result)
            if snapshot is None:
                return None

            logger.debug(
                MessageFormatter.progress(
                    snapshot.current,
                    snapshot.total,
                    snapshot.percentage,
                    snapshot.current_file,
                )
            )
            if self.on_progress:
                _notify(self.on_progress, snapshot)
            return snapshot

    def _update(self, result: OptimizationResult) -> ProgressSnapshot | None:
        with self._lock:
            self._processed += 1
            match result.status:
                case OptimizationStatus.SUCCESS:
                    self._success += 1
                    self._original_size += result.original_size
                    self._output_size += result.output_size
                    self._ratios.append(result.compression_ratio)
                case OptimizationStatus.FAILED:
                    self._failure += 1
                case OptimizationStatus.SKIPPED:
                    self._skipped += 1

            if result.processing_time_ms > 0:
                self._processing_times.append(result.processing_time_ms)

            now = self._clock()
            is_final = self._processed >= self.total
            if not is_final and (now - self._last_emit) * 1000 < self.interval_ms:
                return None

            self._last_emit = now
            self._last = self._snapshot(result, now)
            return self._last

    def report_error(self, message: str, path: Path) -> None:
        """报告单个文件的错误"""
        logger.warning(f"处理失败 [{Path(path).name}]: {message}")
        if self.on_error:
            _notify(self.on_error, message, Path(path))

    @property
    def last_snapshot(self) -> ProgressSnapshot | None:
        with self._lock:
            return self._last

    def _snapshot(self, result: OptimizationResult, now: float) -> ProgressSnapshot:
        average = (
            sum(self._processing_times) / len(self._processing_times)
            if self._processing_times
            else 0.0
        )
        remaining = max(0, self.total - self._processed)
        return ProgressSnapshot(
            current=self._processed,
            total=self.total,
            percentage=self._processed / self.total * 100 if self.total else 100.0,
            current_file=result.original_path.name,
            status=result.status,
            elapsed_ms=(now - self._start) * 1000,
            average_processing_ms=average,
            estimated_remaining_ms=remaining * average,
            success_count=self._success,
            failure_count=self._failure,
            skipped_count=self._skipped,
            total_original_size=self._original_size,
            total_output_size=self._output_size,
            total_size_reduction=self._original_size - self._output_size,
            average_compression_ratio=(
                sum(self._ratios) / len(self._ratios) if self._ratios else 0.0
            ),
        )


def _notify(callback: Callable[..., None], *args: object) -> None:
    """调用外部回调，回调自身的异常只记录日志"""
    try:
        callback(*args)
    except Exception as e:
        logger.warning(f"进度回调执行失败: {e}")
