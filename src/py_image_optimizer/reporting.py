"""报告输出模块。

把批量处理报告写成 JSON 或文本文件，并保存原始文件名到输出文件名的映射，
方便在网站代码中替换图片引用。
"""

import json
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from humanize import naturaldelta, naturalsize

from .models.constants import ProcessingDefaults
from .models.optimization_result import (
    OptimizationResult,
    OptimizationStatus,
    ProcessingReport,
    WorkItem,
)
from .utils.logging_helpers import get_logger
from .utils.naming_helpers import build_filename_mapping


logger = get_logger()


def _timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _round2(value: float) -> float:
    return round(value, 2)


class ReportWriter:
    """批量处理报告写入器"""

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)

    # ========================================================================
    # 处理报告
    # ========================================================================

    def write_report(self, report: ProcessingReport, report_format: str = "json") -> Path:
        """写入处理报告

        Args:
            report: 批量处理报告
            report_format: json 或 text

        Returns:
            Path: 报告文件路径

        Raises:
            ValueError: 报告格式未知
        """
        generated_at = _timestamp()
        stamp = generated_at.strftime("%Y-%m-%dT%H-%M-%SZ")

        match report_format:
            case "json":
                content = json.dumps(
                    self.build_json_report(report, generated_at),
                    indent=2,
                    ensure_ascii=False,
                )
                suffix = ".json"
            case "text":
                content = self.build_text_report(report, generated_at)
                suffix = ".txt"
            case _:
                raise ValueError(f"Report format must be 'json' or 'text', got: {report_format}")

        self.output_dir.mkdir(parents=True, exist_ok=True)
        report_path = self.output_dir / f"{ProcessingDefaults.REPORT_BASENAME}-{stamp}{suffix}"
        report_path.write_text(content, encoding="utf-8")
        logger.info(f"报告已生成: {report_path}")
        return report_path

    @staticmethod
    def build_json_report(report: ProcessingReport, generated_at: datetime) -> dict[str, Any]:
        """构建 JSON 报告内容"""
        seconds = report.processing_time_ms / 1000
        successful = report.successful_conversions
        return {
            "generatedAt": generated_at.isoformat(),
            "summary": {
                "totalImages": report.total_images,
                "successfulConversions": successful,
                "failedConversions": report.failed_conversions,
                "skippedConversions": report.skipped_conversions,
                "totalSizeReduction": report.total_size_reduction,
                "totalSizeReductionMB": _round2(report.total_size_reduction / (1024 * 1024)),
                "averageCompressionRatio": _round2(report.average_compression_ratio),
                "processingTimeSeconds": _round2(seconds),
                "averageTimePerImage": _round2(seconds / successful) if successful else 0,
            },
            "results": [_result_entry(result) for result in report.results],
        }

    @staticmethod
    def build_text_report(report: ProcessingReport, generated_at: datetime) -> str:
        """构建文本报告内容"""
        lines = [
            "IMAGE OPTIMIZATION REPORT",
            "=" * 50,
            f"Generated: {generated_at.astimezone().strftime('%Y-%m-%d %H:%M:%S')}",
            "",
            "SUMMARY",
            "-" * 20,
            f"Total Images: {report.total_images}",
            f"Successful Conversions: {report.successful_conversions}",
            f"Failed Conversions: {report.failed_conversions}",
        ]
        if report.skipped_conversions:
            lines.append(f"Skipped Conversions: {report.skipped_conversions}")
        if report.total_size_reduction > 0:
            lines.append(
                f"Total Size Reduction: {naturalsize(report.total_size_reduction, binary=True)}"
            )
            lines.append(f"Average Compression: {_round2(report.average_compression_ratio)}%")
        lines.append(
            f"Processing Time: {naturaldelta(report.processing_time_ms / 1000, minimum_unit='milliseconds')}"
        )
        lines += ["", "DETAILED RESULTS", "-" * 30]

        for index, result in enumerate(report.results, start=1):
            lines.append(f"{index}. {result.original_path.name}")
            lines.append(f"   Status: {result.status.value.upper()}")
            if result.status == OptimizationStatus.SUCCESS:
                lines.append(f"   Original Size: {naturalsize(result.original_size, binary=True)}")
                lines.append(f"   Optimized Size: {naturalsize(result.output_size, binary=True)}")
                lines.append(f"   Compression: {_round2(result.compression_ratio)}%")
                lines.append(f"   Quality: {result.quality_used}")
                if result.quality_score is not None:
                    lines.append(f"   Quality Score: {_round2(result.quality_score)}")
                lines.append(f"   Processing Time: {result.processing_time_ms:.0f}ms")
                lines.append(f"   Output: {result.output_path}")
            elif result.error_message:
                lines.append(f"   Error: {result.error_message}")
            lines.append("")

        return "\n".join(lines)

    # ========================================================================
    # 文件名映射
    # ========================================================================

    def write_mapping(
        self,
        work_items: Sequence[WorkItem],
        source_dir: Path | None,
        results: Sequence[OptimizationResult] | None = None,
    ) -> Path:
        """写入文件名映射

        Args:
            work_items: 已规划的任务
            source_dir: 源目录，映射中的原始路径相对于它
            results: 处理结果；提供时只记录转换成功的文件

        Returns:
            Path: 映射文件路径
        """
        if results is not None:
            converted = {r.original_path for r in results if r.is_success}
            work_items = [item for item in work_items if item.input_path in converted]

        mapping = build_filename_mapping(work_items, source_dir, self.output_dir)
        data = {
            "generatedAt": _timestamp().isoformat(),
            "totalFiles": len(mapping),
            "mapping": mapping,
        }

        self.output_dir.mkdir(parents=True, exist_ok=True)
        mapping_path = self.output_dir / ProcessingDefaults.MAPPING_FILENAME
        mapping_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info(f"文件名映射已生成: {mapping_path} ({len(mapping)} 个文件)")
        return mapping_path


def _result_entry(result: OptimizationResult) -> dict[str, Any]:
    return {
        "originalPath": str(result.original_path),
        "optimizedPath": str(result.output_path) if result.output_path else None,
        "originalSizeBytes": result.original_size,
        "optimizedSizeBytes": result.output_size,
        "compressionRatio": _round2(result.compression_ratio),
        "qualityUsed": result.quality_used,
        "qualityScore": (
            _round2(result.quality_score) if result.quality_score is not None else None
        ),
        "contentType": result.content_type.value if result.content_type else None,
        "processingTimeMs": _round2(result.processing_time_ms),
        "status": result.status.value,
        "errorMessage": result.error_message,
    }
