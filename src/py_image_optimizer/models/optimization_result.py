"""优化结果模型。

定义质量决策、质量验证、单张图片优化结果和批量处理报告的数据结构。
"""

from enum import Enum
from pathlib import Path

from humanize import naturalsize
from pydantic import BaseModel, ConfigDict, Field, computed_field

from .image_metadata import CompressionStrategy, ContentType


class OptimizationStatus(str, Enum):
    """单张图片的终态"""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class QualityDecision(BaseModel):
    """质量决策结果"""

    model_config = ConfigDict(frozen=True)

    quality: int = Field(ge=1, le=100, description="最终质量")
    base_quality: int = Field(ge=1, le=100, description="矩阵基础质量")
    content_type: ContentType
    strategy: CompressionStrategy
    reasoning: list[str] = Field(default_factory=list, description="触发的调整规则")


class FileValidation(BaseModel):
    """输入文件格式检查结果"""

    is_valid: bool
    format: str | None = None
    error_message: str | None = None


class ValidationMetrics(BaseModel):
    """输出质量指标"""

    model_config = ConfigDict(frozen=True)

    original_size: int
    output_size: int
    compression_ratio: float = Field(description="原始大小 / 输出大小")
    quality_loss: float = Field(ge=0, le=100)
    structural_similarity: float = Field(ge=0, le=1)
    color_accuracy: float = Field(ge=0, le=1)
    sharpness_retention: float = Field(ge=0, le=1)


class ValidationResult(BaseModel):
    """质量验证结果"""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    quality_score: float = Field(ge=0, le=100)
    size_reduction: float = Field(description="体积减少百分比")
    meets_threshold: bool
    issues: list[str] = Field(default_factory=list)
    metrics: ValidationMetrics


class WorkItem(BaseModel):
    """一次转换任务：输入文件及其输出位置"""

    model_config = ConfigDict(frozen=True)

    input_path: Path
    output_path: Path


class OptimizationResult(BaseModel):
    """单张图片的优化结果"""

    model_config = ConfigDict(frozen=True)

    original_path: Path = Field(description="输入文件路径")
    output_path: Path | None = Field(None, description="输出文件路径")
    original_size: int = Field(0, ge=0, description="原始文件大小（字节）")
    output_size: int = Field(0, ge=0, description="输出文件大小（字节）")
    compression_ratio: float = Field(0.0, description="体积减少百分比")
    quality_used: int | None = Field(None, description="使用的质量值")
    processing_time_ms: float = Field(0.0, ge=0, description="处理耗时（毫秒）")
    status: OptimizationStatus
    error_message: str | None = Field(None, description="错误信息")

    content_type: ContentType | None = Field(None, description="内容类型")
    quality_score: float | None = Field(None, description="验证评分")

    @property
    def is_success(self) -> bool:
        return self.status == OptimizationStatus.SUCCESS

    def get_size_saved(self) -> int:
        """节省的字节数"""
        return self.original_size - self.output_size

    def get_summary(self) -> str:
        """单张结果摘要"""
        match self.status:
            case OptimizationStatus.SUCCESS:
                return (
                    f"{naturalsize(self.original_size, binary=True)} → "
                    f"{naturalsize(self.output_size, binary=True)} "
                    f"({self.compression_ratio:.1f}% 压缩, 质量 {self.quality_used})"
                )
            case OptimizationStatus.SKIPPED:
                return f"跳过: {self.error_message}"
            case _:
                return f"失败: {self.error_message}"


class ProcessingReport(BaseModel):
    """批量处理报告

    计数和汇总字段全部由 results 推导，保证与结果列表一致。
    """

    model_config = ConfigDict(frozen=True)

    results: list[OptimizationResult] = Field(description="按完成顺序排列的结果")
    processing_time_ms: float = Field(0.0, ge=0, description="总耗时（毫秒）")

    @classmethod
    def from_results(
        cls, results: list[OptimizationResult], processing_time_ms: float
    ) -> "ProcessingReport":
        return cls(results=list(results), processing_time_ms=processing_time_ms)

    def _successful(self) -> list[OptimizationResult]:
        return [r for r in self.results if r.is_success]

    @computed_field
    def total_images(self) -> int:
        return len(self.results)

    @computed_field
    def successful_conversions(self) -> int:
        return len(self._successful())

    @computed_field
    def failed_conversions(self) -> int:
        return sum(1 for r in self.results if r.status == OptimizationStatus.FAILED)

    @computed_field
    def skipped_conversions(self) -> int:
        return sum(1 for r in self.results if r.status == OptimizationStatus.SKIPPED)

    @computed_field
    def total_size_reduction(self) -> int:
        return sum(r.get_size_saved() for r in self._successful())

    @computed_field
    def average_compression_ratio(self) -> float:
        successful = self._successful()
        if not successful:
            return 0.0
        return sum(r.compression_ratio for r in successful) / len(successful)

    def get_success_rate(self) -> float:
        """成功率（百分比）"""
        if not self.results:
            return 0.0
        return self.successful_conversions / self.total_images * 100

    def get_summary(self) -> str:
        """批量处理摘要"""
        return (
            f"处理 {self.successful_conversions}/{self.total_images} 个文件 "
            f"(失败 {self.failed_conversions}, 跳过 {self.skipped_conversions}), "
            f"总节省 {naturalsize(self.total_size_reduction, binary=True)}, "
            f"平均压缩 {self.average_compression_ratio:.1f}%"
        )


class ProgressSnapshot(BaseModel):
    """进度快照"""

    model_config = ConfigDict(frozen=True)

    current: int
    total: int
    percentage: float
    current_file: str
    status: OptimizationStatus
    elapsed_ms: float
    average_processing_ms: float
    estimated_remaining_ms: float
    success_count: int
    failure_count: int
    skipped_count: int
    total_original_size: int
    total_output_size: int
    total_size_reduction: int
    average_compression_ratio: float


class BatchOutcome(BaseModel):
    """一次目录优化的完整产出：处理报告及生成的附属文件"""

    model_config = ConfigDict(frozen=True)

    report: ProcessingReport
    report_path: Path | None = Field(None, description="报告文件路径")
    mapping_path: Path | None = Field(None, description="文件名映射路径")
