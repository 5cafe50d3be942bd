"""批量处理引擎测试。

测试并发许可、进度报告、有界执行器和批量协调器。
"""

import threading
import time
from pathlib import Path

import pytest
from PIL import Image

from py_image_optimizer.core import ImagePipeline, PillowCodec
from py_image_optimizer.engine import (
    BatchCoordinator,
    BoundedExecutor,
    ConfigBuilder,
    FifoLimiter,
    ProgressReporter,
)
from py_image_optimizer.exceptions import (
    BatchAbortError,
    ConfigurationError,
    ProcessingError,
)
from py_image_optimizer.models import (
    ContentType,
    OptimizationConfig,
    OptimizationResult,
    OptimizationStatus,
    ProcessingSettings,
    WorkItem,
)
from tests.conftest import save_corrupt, save_solid


def _config(**processing) -> OptimizationConfig:
    return OptimizationConfig(processing=ProcessingSettings(**processing))


def _result(name: str, status=OptimizationStatus.SUCCESS, **kwargs) -> OptimizationResult:
    values = {"original_path": Path(name), "status": status}
    values.update(kwargs)
    return OptimizationResult(**values)


def _wait_until(predicate, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.005)


class TestFifoLimiter:
    """FIFO 许可测试"""

    def test_rejects_zero_permits(self):
        """测试许可数校验"""
        with pytest.raises(ValueError):
            FifoLimiter(0)

    def test_permits_counting(self):
        """测试许可计数"""
        limiter = FifoLimiter(2)
        limiter.acquire()
        assert limiter.available_permits() == 1
        with limiter:
            assert limiter.available_permits() == 0
        limiter.release()
        assert limiter.available_permits() == 2

    def test_waiters_served_in_arrival_order(self):
        """测试等待者按到达顺序获得许可"""
        limiter = FifoLimiter(1)
        limiter.acquire()
        order: list[int] = []
        threads = []

        for index in range(3):
            def worker(index=index):
                limiter.acquire()
                order.append(index)
                limiter.release()

            thread = threading.Thread(target=worker)
            thread.start()
            threads.append(thread)
            _wait_until(lambda: limiter.queue_length() == index + 1)

        limiter.release()
        for thread in threads:
            thread.join(timeout=5)

        assert order == [0, 1, 2]
        assert limiter.available_permits() == 1


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestProgressReporter:
    """进度报告测试"""

    def test_throttling_and_final_emit(self):
        """测试节流与最后一项必定发出"""
        clock = FakeClock()
        snapshots = []
        reporter = ProgressReporter(
            total=3, interval_ms=100, on_progress=snapshots.append, clock=clock
        )

        clock.now = 0.05
        assert reporter.record(_result("a.jpg", processing_time_ms=10)) is None
        clock.now = 0.2
        assert reporter.record(_result("b.jpg", processing_time_ms=30)) is not None
        clock.now = 0.21
        final = reporter.record(_result("c.jpg", OptimizationStatus.FAILED))

        assert [s.current for s in snapshots] == [2, 3]
        assert final.percentage == pytest.approx(100)
        assert final.success_count == 2
        assert final.failure_count == 1
        assert final.average_processing_ms == pytest.approx(20)
        assert final.estimated_remaining_ms == 0
        assert reporter.last_snapshot == final

    def test_size_totals_only_count_successes(self):
        """测试体积汇总只统计成功项"""
        reporter = ProgressReporter(total=2, interval_ms=0)
        reporter.record(
            _result("a.jpg", original_size=1000, output_size=400, compression_ratio=60)
        )
        snapshot = reporter.record(
            _result("b.jpg", OptimizationStatus.SKIPPED, original_size=500)
        )

        assert snapshot.total_original_size == 1000
        assert snapshot.total_output_size == 400
        assert snapshot.total_size_reduction == 600
        assert snapshot.average_compression_ratio == pytest.approx(60)
        assert snapshot.skipped_count == 1

    def test_callback_errors_do_not_propagate(self):
        """测试回调异常不影响记录"""

        def broken(*args):
            raise RuntimeError("callback failed")

        reporter = ProgressReporter(total=1, on_progress=broken, on_error=broken)
        assert reporter.record(_result("a.jpg")) is not None
        reporter.report_error("boom", Path("a.jpg"))

    def test_callback_can_read_reporter_state(self):
        """测试回调中读取 last_snapshot 不会死锁"""
        seen = []
        reporter = ProgressReporter(
            total=2, interval_ms=0, on_progress=lambda s: seen.append(reporter.last_snapshot)
        )

        def run():
            reporter.record(_result("a.jpg"))
            reporter.record(_result("b.jpg"))

        thread = threading.Thread(target=run)
        thread.start()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert [s.current for s in seen] == [1, 2]


class FakePipeline:
    """记录并发度的假流水线"""

    def __init__(self, delay: float = 0.02, fail: set[str] | None = None):
        self.delay = delay
        self.fail = fail or set()
        self.lock = threading.Lock()
        self.active = 0
        self.max_active = 0
        self.calls: list[str] = []

    def process(self, input_path: Path, output_path: Path) -> OptimizationResult:
        with self.lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.calls.append(input_path.name)
        time.sleep(self.delay)
        with self.lock:
            self.active -= 1

        if input_path.name in self.fail:
            return _result(str(input_path), OptimizationStatus.FAILED, error_message="boom")
        return _result(str(input_path), output_path=output_path)


class SlowCodec(PillowCodec):
    """编码前等待一段时间的编解码器"""

    def __init__(self, delay: float):
        self.delay = delay

    def encode(self, image, target_format, quality):
        time.sleep(self.delay)
        return super().encode(image, target_format, quality)


class TestImagePipeline:
    """单张图片流水线测试"""

    def test_validation_failure_keeps_output(self, temp_dir: Path):
        """测试验证未通过时结果为失败且输出文件保留"""
        source = save_solid(temp_dir / "a.jpg")
        output = temp_dir / "out" / "a.webp"
        pipeline = ImagePipeline(ConfigBuilder().build(validation_threshold=100))

        result = pipeline.process(source, output)

        assert result.status == OptimizationStatus.FAILED
        assert result.error_message.startswith("Quality validation failed: ")
        assert "below threshold" in result.error_message
        assert result.output_path == output
        assert output.exists()

    def test_item_timeout(self, temp_dir: Path):
        """测试超过单项时限的任务失败且不写出文件"""
        source = save_solid(temp_dir / "a.jpg")
        output = temp_dir / "out" / "a.webp"
        pipeline = ImagePipeline(
            ConfigBuilder().build(item_timeout=0.1), codec=SlowCodec(0.3)
        )

        result = pipeline.process(source, output)

        assert result.status == OptimizationStatus.FAILED
        assert result.error_message == "Processing exceeded 0.1s timeout"
        assert result.output_path is None
        assert not output.exists()

    def test_item_within_timeout(self, temp_dir: Path):
        """测试时限充足时正常完成"""
        source = save_solid(temp_dir / "a.jpg")
        pipeline = ImagePipeline(ConfigBuilder().build(item_timeout=60))

        result = pipeline.process(source, temp_dir / "out" / "a.webp")

        assert result.status == OptimizationStatus.SUCCESS


class TestBoundedExecutor:
    """有界执行器测试"""

    def _items(self, count: int) -> list[WorkItem]:
        return [
            WorkItem(input_path=Path(f"{i}.jpg"), output_path=Path(f"{i}.webp"))
            for i in range(count)
        ]

    def test_task_exception_becomes_failed_result(self):
        """测试任务异常转换为失败结果"""
        results = []

        def explode(item):
            raise RuntimeError("kaboom")

        scheduled = BoundedExecutor(2).execute_tasks(self._items(3), explode, results.append)

        assert scheduled == 3
        assert len(results) == 3
        assert all(r.status == OptimizationStatus.FAILED for r in results)
        assert results[0].error_message == "kaboom"

    def test_stop_event_prevents_scheduling(self):
        """测试停止信号阻止调度"""
        stop = threading.Event()
        stop.set()
        results = []

        scheduled = BoundedExecutor(2).execute_tasks(
            self._items(3), lambda item: _result(str(item.input_path)), results.append, stop
        )

        assert scheduled == 0
        assert results == []

    def test_rejects_zero_workers(self):
        """测试并发数校验"""
        with pytest.raises(ValueError):
            BoundedExecutor(0)


class TestBatchCoordinator:
    """批量协调器测试"""

    @pytest.mark.parametrize("concurrency", [1, 2, 4])
    def test_in_flight_never_exceeds_concurrency(self, concurrency):
        """测试同时运行的任务数不超过并发上限"""
        pipeline = FakePipeline()
        coordinator = BatchCoordinator(_config(concurrency=concurrency), pipeline=pipeline)
        files = [Path(f"img_{i}.jpg") for i in range(10)]

        report = coordinator.run(files, Path("out"))

        assert report.total_images == 10
        assert pipeline.max_active <= concurrency
        assert sorted(pipeline.calls) == sorted(f.name for f in files)

    def test_all_valid_images_succeed(self, source_dir: Path, output_dir: Path):
        """测试全部有效图片转换成功"""
        report = BatchCoordinator().process_directory(source_dir, output_dir)

        assert report.total_images == 2
        assert report.successful_conversions == 2
        assert report.failed_conversions == 0
        assert (output_dir / "red.webp").exists()
        assert (output_dir / "nested" / "blue.webp").exists()
        for result in report.results:
            assert result.quality_used >= 78
            assert result.output_size > 0
            assert result.quality_score >= 70

    def test_jpeg_and_transparent_png(self, temp_dir: Path):
        """测试红色 JPEG 与全透明 PNG 在并发 2 下都转换成功"""
        source = temp_dir / "src"
        save_solid(source / "red.jpg")
        Image.new("RGBA", (100, 100), (0, 0, 0, 0)).save(source / "clear.png")
        output = temp_dir / "out"

        report = BatchCoordinator(_config(concurrency=2)).process_directory(source, output)

        assert report.total_images == 2
        assert report.successful_conversions == 2
        results = {r.original_path.name: r for r in report.results}
        assert results["clear.png"].content_type == ContentType.GRAPHIC
        for result in results.values():
            assert result.quality_used >= 78
            assert result.quality_score >= 70
        with Image.open(output / "clear.webp") as img:
            assert img.mode == "RGBA"
        assert (output / "red.webp").exists()

    def test_unsupported_file_is_skipped(self, temp_dir: Path):
        """测试不支持的文件被跳过"""
        good = save_solid(temp_dir / "src" / "good.jpg")
        other = temp_dir / "src" / "notes.gif"
        other.write_bytes(b"GIF89a")

        report = BatchCoordinator().run([good, other], temp_dir / "out")

        statuses = {r.original_path.name: r.status for r in report.results}
        assert statuses == {
            "good.jpg": OptimizationStatus.SUCCESS,
            "notes.gif": OptimizationStatus.SKIPPED,
        }
        assert report.skipped_conversions == 1

    def test_corrupt_file_fails_and_batch_continues(self, source_dir: Path, output_dir: Path):
        """测试损坏文件失败但其余文件继续处理"""
        save_corrupt(source_dir / "broken.jpg")
        errors = []

        report = BatchCoordinator().process_directory(
            source_dir, output_dir, on_error=lambda msg, path: errors.append(path.name)
        )

        failed = [r for r in report.results if r.status == OptimizationStatus.FAILED]
        assert len(failed) == 1
        assert failed[0].original_path.name == "broken.jpg"
        assert failed[0].output_path is None
        assert "Failed to analyze image" in failed[0].error_message
        assert report.successful_conversions == 2
        assert errors == ["broken.jpg"]

    def test_stop_on_error_aborts(self, temp_dir: Path):
        """测试关闭 continue_on_error 时首个失败终止批处理"""
        source = temp_dir / "src"
        save_solid(source / "a.jpg")
        save_corrupt(source / "b.jpg")
        save_solid(source / "c.jpg")
        output = temp_dir / "out"
        coordinator = BatchCoordinator(_config(concurrency=1, continue_on_error=False))

        with pytest.raises(BatchAbortError) as exc_info:
            coordinator.process_directory(source, output)

        error = exc_info.value
        assert "Failed to analyze image" in error.message
        assert error.input_path.name == "b.jpg"
        assert [r.original_path.name for r in error.results] == ["a.jpg", "b.jpg"]
        assert (output / "a.webp").exists()
        assert not (output / "c.webp").exists()

    @pytest.mark.parametrize("concurrency", [1, 3])
    def test_report_counts_are_consistent(self, source_dir: Path, temp_dir: Path, concurrency):
        """测试报告计数与结果列表一致，且与并发度无关"""
        save_corrupt(source_dir / "broken.jpg")
        output = temp_dir / f"out_{concurrency}"

        report = BatchCoordinator(_config(concurrency=concurrency)).process_directory(
            source_dir, output
        )

        assert (
            report.successful_conversions
            + report.failed_conversions
            + report.skipped_conversions
            == report.total_images
            == len(report.results)
            == 3
        )
        statuses = {r.original_path.name: r.status for r in report.results}
        assert statuses["broken.jpg"] == OptimizationStatus.FAILED
        assert statuses["red.jpg"] == OptimizationStatus.SUCCESS

    def test_progress_callbacks(self, source_dir: Path, output_dir: Path):
        """测试进度回调"""
        snapshots = []
        BatchCoordinator().process_directory(
            source_dir, output_dir, on_progress=snapshots.append
        )

        assert snapshots
        assert snapshots[-1].current == snapshots[-1].total == 2

    def test_progress_disabled(self, source_dir: Path, output_dir: Path):
        """测试关闭进度报告"""
        snapshots = []
        BatchCoordinator(_config(enable_progress_reporting=False)).process_directory(
            source_dir, output_dir, on_progress=snapshots.append
        )
        assert snapshots == []

    def test_empty_file_list(self):
        """测试空文件列表"""
        with pytest.raises(ProcessingError, match="no supported image files found"):
            BatchCoordinator().run([], Path("out"))

    def test_empty_directory(self, temp_dir: Path):
        """测试没有图片的目录"""
        (temp_dir / "empty").mkdir()
        with pytest.raises(ProcessingError, match="no supported image files found"):
            BatchCoordinator().process_directory(temp_dir / "empty", temp_dir / "out")

    def test_directory_validation(self, source_dir: Path, temp_dir: Path):
        """测试目录参数校验"""
        coordinator = BatchCoordinator()

        with pytest.raises(ConfigurationError):
            coordinator.process_directory(temp_dir / "missing", temp_dir / "out")

        with pytest.raises(ConfigurationError):
            coordinator.process_directory(source_dir, source_dir / "optimized")

        occupied = temp_dir / "occupied"
        save_solid(occupied / "existing.webp")
        with pytest.raises(ConfigurationError):
            coordinator.process_directory(source_dir, occupied)

    def test_previous_artifacts_are_allowed(self, source_dir: Path, output_dir: Path):
        """测试输出目录只含历史报告时允许写入"""
        output_dir.mkdir()
        (output_dir / "filename-mapping.json").write_text("{}")

        report = BatchCoordinator().process_directory(source_dir, output_dir)
        assert report.successful_conversions == 2
