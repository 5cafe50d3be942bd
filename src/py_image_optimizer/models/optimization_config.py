"""优化配置模型。

定义批量优化的质量、尺寸、并发、输出和验证参数。
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..config import get_config
from .constants import ImageFormats, QualityDefaults, ValidationDefaults, get_format_alias
from .image_metadata import ContentType


def _defaults():
    return get_config().optimization


class QualitySettings(BaseModel):
    """各内容类型的质量设置"""

    model_config = ConfigDict(frozen=True)

    photo: int = Field(default_factory=lambda: QualityDefaults.PHOTO, ge=1, le=100)
    graphic: int = Field(default_factory=lambda: QualityDefaults.GRAPHIC, ge=1, le=100)
    mixed: int = Field(default_factory=lambda: QualityDefaults.MIXED, ge=1, le=100)
    minimum: int = Field(default_factory=lambda: QualityDefaults.MINIMUM, ge=1, le=100)

    @model_validator(mode="after")
    def validate_against_minimum(self) -> "QualitySettings":
        for name in ("photo", "graphic", "mixed"):
            value = getattr(self, name)
            if value < self.minimum:
                raise ValueError(
                    f"{name} quality must be between {self.minimum} and 100, got {value}"
                )
        return self

    def for_content_type(self, content_type: ContentType) -> int:
        return getattr(self, content_type.value)


class DimensionSettings(BaseModel):
    """尺寸约束"""

    model_config = ConfigDict(frozen=True)

    max_width: int = Field(default_factory=lambda: _defaults().MAX_WIDTH, gt=0)
    max_height: int = Field(default_factory=lambda: _defaults().MAX_HEIGHT, gt=0)
    preserve_aspect_ratio: bool = True


class ProcessingSettings(BaseModel):
    """并发与进度设置"""

    model_config = ConfigDict(frozen=True)

    concurrency: int = Field(default_factory=lambda: _defaults().CONCURRENCY, ge=1)
    continue_on_error: bool = True
    enable_progress_reporting: bool = True
    progress_interval_ms: int = Field(
        default_factory=lambda: _defaults().PROGRESS_INTERVAL_MS, ge=0
    )
    sharpen_large_images: bool = True
    item_timeout_seconds: float | None = Field(default=None, gt=0)


class OutputSettings(BaseModel):
    """输出设置"""

    model_config = ConfigDict(frozen=True)

    target_format: str = ImageFormats.DEFAULT_TARGET
    preserve_structure: bool = True
    generate_report: bool = True
    report_format: Literal["json", "text"] = "json"
    overwrite: bool = False

    @field_validator("target_format")
    @classmethod
    def validate_target_format(cls, v: str) -> str:
        standard = get_format_alias(v)
        if standard not in ImageFormats.OUTPUT_FORMATS:
            raise ValueError(
                f"unsupported output format: {v}, expected one of "
                f"{sorted(ImageFormats.OUTPUT_FORMATS)}"
            )
        return standard


class ValidationSettings(BaseModel):
    """输出质量验证设置"""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    minimum_score: float = Field(
        default=ValidationDefaults.MINIMUM_SCORE, ge=0, le=100
    )
    max_size_increase: float = Field(
        default=ValidationDefaults.MAX_SIZE_INCREASE, ge=1.0
    )


class OptimizationConfig(BaseModel):
    """批量优化的完整配置"""

    model_config = ConfigDict(frozen=True)

    quality: QualitySettings = Field(default_factory=QualitySettings)
    dimensions: DimensionSettings = Field(default_factory=DimensionSettings)
    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    supported_formats: list[str] = Field(
        default_factory=lambda: list(ImageFormats.DEFAULT_SUPPORTED)
    )

    @field_validator("supported_formats")
    @classmethod
    def normalize_formats(cls, v: list[str]) -> list[str]:
        normalized = [fmt.lower().lstrip(".") for fmt in v if fmt.strip()]
        if not normalized:
            raise ValueError("supported_formats must not be empty")
        return normalized

    def supported_extensions(self) -> set[str]:
        """带点号的扩展名集合"""
        return {f".{fmt}" for fmt in self.supported_formats}
