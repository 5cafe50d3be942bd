"""图像优化 MCP 服务器。

通过 FastMCP 暴露目录批量优化和单张图片分析两个工具。
"""

from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from .exceptions import BatchAbortError, ConfigurationError, OptimizerError
from .models import BatchOutcome, OptimizationResult
from .optimizer import ImageOptimizer
from .utils.logging_helpers import configure_logging, get_logger
from .utils.message_formatter import MessageFormatter


# MCP 服务器响应类型定义
MCPOptimizationResponse = dict[str, Any]
MCPAnalysisResponse = dict[str, Any]


class MCPResponseBuilder:
    """MCP 服务器响应构建器，专门用于构建符合 MCP 协议的响应格式。"""

    @staticmethod
    def error(
        message: str,
        error_type: str = "general",
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """构建错误结果。

        Args:
            message: 错误消息
            error_type: 错误类型
            details: 额外的错误详情

        Returns:
            dict: 标准化的错误响应
        """
        result: dict[str, Any] = {
            "success": False,
            "error": message,
            "error_type": error_type,
        }

        if details:
            result["details"] = details

        return result

    @staticmethod
    def validation_error(message: str, field: str | None = None) -> dict[str, Any]:
        """构建配置验证错误结果。"""
        details = {"field": field} if field else None
        return MCPResponseBuilder.error(message, "validation", details)

    @staticmethod
    def file_error(message: str, file_path: str | None = None) -> dict[str, Any]:
        """构建文件相关错误结果。"""
        details = {"file_path": file_path} if file_path else None
        return MCPResponseBuilder.error(message, "file", details)

    @staticmethod
    def processing_error(message: str, operation: str | None = None) -> dict[str, Any]:
        """构建处理错误结果。"""
        details = {"operation": operation} if operation else None
        return MCPResponseBuilder.error(message, "processing", details)


logger = get_logger()

# 创建MCP应用
mcp: FastMCP[Any] = FastMCP("批量 Web 图像优化服务")


# ============================================================================
# 批量优化工具
# ============================================================================


@mcp.tool()
def optimize_directory(
    source_dir: str,
    output_dir: str | None = None,
    photo_quality: int | None = None,
    graphic_quality: int | None = None,
    mixed_quality: int | None = None,
    min_quality: int | None = None,
    concurrency: int | None = None,
    continue_on_error: bool = True,
    max_width: int | None = None,
    max_height: int | None = None,
    report_format: str | None = None,
    overwrite: bool = False,
) -> MCPOptimizationResponse:
    """把目录中的图片批量转换为 WebP

    按图片内容（照片/图形/混合）选择质量，缩放到尺寸上限内并验证输出质量。

    Args:
        source_dir: 源目录
        output_dir: 输出目录（默认 <source_dir 同级>/optimized）
        photo_quality: 照片质量
        graphic_quality: 图形质量
        mixed_quality: 混合内容质量
        min_quality: 质量下限
        concurrency: 并发数
        continue_on_error: 单张失败后是否继续处理
        max_width: 最大宽度
        max_height: 最大高度
        report_format: 报告格式 json/text
        overwrite: 是否允许写入非空输出目录

    Returns:
        dict: 汇总统计与每个文件的结果
    """
    source = Path(source_dir)
    output = Path(output_dir) if output_dir else source.parent / "optimized"

    try:
        optimizer = ImageOptimizer.from_options(
            photo_quality=photo_quality,
            graphic_quality=graphic_quality,
            mixed_quality=mixed_quality,
            min_quality=min_quality,
            concurrency=concurrency,
            continue_on_error=continue_on_error,
            max_width=max_width,
            max_height=max_height,
            report_format=report_format,
            overwrite=overwrite,
            progress=False,
        )
        outcome = optimizer.optimize_directory(source, output)
        return {"success": True, "result": _format_outcome(outcome, output)}

    except ConfigurationError as e:
        logger.error(MessageFormatter.operation_failed("配置验证", source_dir, e))
        return MCPResponseBuilder.validation_error(e.message)
    except BatchAbortError as e:
        logger.error(MessageFormatter.operation_failed("批量优化", source_dir, e))
        return MCPResponseBuilder.error(
            e.message,
            "processing",
            {"results": [_format_result(r) for r in e.results]},
        )
    except OptimizerError as e:
        logger.error(MessageFormatter.operation_failed("批量优化", source_dir, e))
        return MCPResponseBuilder.processing_error(e.message, "批量优化")
    except OSError as e:
        logger.error(MessageFormatter.operation_failed("批量优化", source_dir, e))
        return MCPResponseBuilder.file_error(str(e), source_dir)


def _format_outcome(outcome: BatchOutcome, output_dir: Path) -> dict[str, Any]:
    """格式化批量优化结果为MCP响应格式"""
    report = outcome.report
    return {
        "output_dir": str(output_dir),
        "total_images": report.total_images,
        "successful_conversions": report.successful_conversions,
        "failed_conversions": report.failed_conversions,
        "skipped_conversions": report.skipped_conversions,
        "total_size_reduction": report.total_size_reduction,
        "average_compression_ratio": round(report.average_compression_ratio, 2),
        "success_rate": report.get_success_rate(),
        "processing_time_ms": round(report.processing_time_ms, 1),
        "summary": report.get_summary(),
        "report_path": str(outcome.report_path) if outcome.report_path else None,
        "mapping_path": str(outcome.mapping_path) if outcome.mapping_path else None,
        "results": [_format_result(r) for r in report.results],
    }


def _format_result(result: OptimizationResult) -> dict[str, Any]:
    return {
        "original_path": str(result.original_path),
        "output_path": str(result.output_path) if result.output_path else None,
        "status": result.status.value,
        "original_size": result.original_size,
        "output_size": result.output_size,
        "compression_ratio": round(result.compression_ratio, 2),
        "quality_used": result.quality_used,
        "quality_score": result.quality_score,
        "content_type": result.content_type.value if result.content_type else None,
        "error": result.error_message,
    }


# ============================================================================
# 图片分析工具
# ============================================================================


@mcp.tool()
def analyze_image(input_path: str) -> MCPAnalysisResponse:
    """分析单张图片的内容特征并给出质量建议，不写出任何文件

    Args:
        input_path: 输入图像文件路径

    Returns:
        dict: 元数据、内容特征、分类和质量决策
    """
    path = Path(input_path)
    if not path.exists():
        return MCPResponseBuilder.file_error(
            MessageFormatter.file_not_found(input_path), input_path
        )

    try:
        analysis, decision = ImageOptimizer().analyze_image(path)
    except ConfigurationError as e:
        return MCPResponseBuilder.file_error(e.message, input_path)
    except OptimizerError as e:
        logger.error(MessageFormatter.operation_failed("图片分析", input_path, e))
        return MCPResponseBuilder.processing_error(e.message, "图片分析")

    metadata = analysis.metadata
    characteristics = analysis.characteristics
    return {
        "success": True,
        "file_path": str(metadata.file_path),
        "file_size": metadata.file_size,
        "file_size_human": metadata.get_file_size_human(),
        "format": metadata.format,
        "mode": metadata.mode,
        "width": metadata.width,
        "height": metadata.height,
        "has_alpha": metadata.has_alpha,
        "characteristics": {
            "color_complexity": round(characteristics.color_complexity, 2),
            "edge_intensity": round(characteristics.edge_intensity, 2),
            "has_transparency": characteristics.has_transparency,
            "effective_color_depth": characteristics.effective_color_depth,
            "aspect_ratio": round(characteristics.aspect_ratio, 4),
        },
        "content_type": analysis.classification.content_type.value,
        "compression_strategy": analysis.classification.compression_strategy.value,
        "quality": decision.quality,
        "reasoning": decision.reasoning,
    }


# ============================================================================
# 应用入口
# ============================================================================


def main() -> None:
    """启动 MCP 服务器"""
    configure_logging()
    logger.info("启动图像优化 MCP 服务器")
    mcp.run()


if __name__ == "__main__":
    main()
