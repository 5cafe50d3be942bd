"""图像元数据与特征模型。

定义编解码器读取到的基础信息、通道统计，以及内容分析得到的图像特征和分类。
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .constants import AnalysisDefaults


class ContentType(str, Enum):
    """图像内容类型"""

    PHOTO = "photo"
    GRAPHIC = "graphic"
    MIXED = "mixed"


class CompressionStrategy(str, Enum):
    """压缩策略"""

    HIGH_QUALITY = "high_quality"
    BALANCED = "balanced"
    SIZE_OPTIMIZED = "size_optimized"


class ImageMetadata(BaseModel):
    """基础图片信息"""

    file_path: Path
    file_size: int = Field(ge=0, description="文件大小（字节）")
    format: str = Field(description="图片格式")
    mode: str = Field(description="颜色模式")
    width: int = Field(ge=0, description="图片宽度")
    height: int = Field(ge=0, description="图片高度")
    channels: int = Field(ge=1, description="通道数")
    has_alpha: bool = Field(default=False, description="是否有透明通道")
    bit_depth: int = Field(
        default=AnalysisDefaults.DEFAULT_BIT_DEPTH, description="每通道位深"
    )

    @computed_field
    def aspect_ratio(self) -> float:
        """宽高比，任一边为 0 时视为 1"""
        if self.width == 0 or self.height == 0:
            return 1.0
        return self.width / self.height

    def get_file_size_human(self) -> str:
        """人性化显示文件大小"""
        from humanize import naturalsize

        return naturalsize(self.file_size, binary=True)


class ChannelStatistics(BaseModel):
    """单通道统计"""

    mean: float
    stdev: float
    min: float
    max: float

    @property
    def value_range(self) -> float:
        return self.max - self.min


class ImageStatistics(BaseModel):
    """按通道顺序排列的统计信息（含 alpha）"""

    channels: list[ChannelStatistics]

    def mean_stdev(self) -> float:
        if not self.channels:
            return 0.0
        return sum(c.stdev for c in self.channels) / len(self.channels)

    def mean_range(self) -> float:
        if not self.channels:
            return 0.0
        return sum(c.value_range for c in self.channels) / len(self.channels)


class ImageCharacteristics(BaseModel):
    """决定压缩质量的图像特征

    所有数值在构造前已截断到文档约定的区间，使用 from_measurements 创建。
    """

    model_config = ConfigDict(frozen=True)

    color_complexity: float = Field(ge=0, le=100, description="颜色复杂度")
    edge_intensity: float = Field(ge=0, le=100, description="边缘强度")
    has_transparency: bool = Field(description="是否有透明度")
    effective_color_depth: int = Field(
        ge=AnalysisDefaults.MIN_COLOR_DEPTH,
        le=AnalysisDefaults.MAX_COLOR_DEPTH,
        description="有效色深（位）",
    )
    aspect_ratio: float = Field(gt=0, description="宽高比")

    @classmethod
    def from_measurements(
        cls,
        color_complexity: float,
        edge_intensity: float,
        has_transparency: bool,
        effective_color_depth: int,
        aspect_ratio: float,
    ) -> "ImageCharacteristics":
        """根据原始测量值创建特征对象，超出区间的值被截断"""
        return cls(
            color_complexity=min(100.0, max(0.0, float(color_complexity))),
            edge_intensity=min(100.0, max(0.0, float(edge_intensity))),
            has_transparency=has_transparency,
            effective_color_depth=min(
                AnalysisDefaults.MAX_COLOR_DEPTH,
                max(AnalysisDefaults.MIN_COLOR_DEPTH, int(effective_color_depth)),
            ),
            aspect_ratio=aspect_ratio if aspect_ratio > 0 else 1.0,
        )


class ContentClassification(BaseModel):
    """内容分类结果"""

    model_config = ConfigDict(frozen=True)

    content_type: ContentType
    compression_strategy: CompressionStrategy


class ContentAnalysis(BaseModel):
    """单张图片的完整分析结果"""

    model_config = ConfigDict(frozen=True)

    metadata: ImageMetadata
    characteristics: ImageCharacteristics
    classification: ContentClassification
