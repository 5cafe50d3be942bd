"""图像优化相关常量定义。

集中管理格式签名、质量矩阵和验证阈值，避免硬编码重复。
"""

from typing import Final


class ImageFormats:
    """输入输出格式管理"""

    # 只定义必要的别名映射（用户友好的别名）
    ALIASES: Final[dict[str, str]] = {
        "JPG": "JPEG",
        "TIF": "TIFF",
    }

    # 文件头签名，按顺序匹配
    MAGIC_SIGNATURES: Final[list[tuple[bytes, str]]] = [
        (b"\xff\xd8\xff", "jpeg"),
        (b"\x89PNG\r\n\x1a\n", "png"),
        (b"II*\x00", "tiff"),
        (b"MM\x00*", "tiff"),
    ]

    # 扩展名到格式族的映射，DNG 基于 TIFF 容器
    EXTENSION_FAMILIES: Final[dict[str, str]] = {
        "jpg": "jpeg",
        "jpeg": "jpeg",
        "png": "png",
        "webp": "webp",
        "tif": "tiff",
        "tiff": "tiff",
        "dng": "tiff",
    }

    DEFAULT_SUPPORTED: Final[list[str]] = ["jpg", "jpeg", "png", "webp", "tif", "tiff", "dng"]

    # 输出格式
    DEFAULT_TARGET: Final[str] = "WEBP"
    OUTPUT_FORMATS: Final[set[str]] = {"WEBP", "JPEG"}
    OUTPUT_EXTENSIONS: Final[dict[str, str]] = {
        "WEBP": ".webp",
        "JPEG": ".jpg",
    }

    TRANSPARENCY_MODES: Final[set[str]] = {"RGBA", "LA", "PA"}


class QualityDefaults:
    """质量相关默认值"""

    # 基础质量矩阵：内容类型 -> 压缩策略 -> 质量
    MATRIX: Final[dict[str, dict[str, int]]] = {
        "photo": {"high_quality": 92, "balanced": 88, "size_optimized": 82},
        "graphic": {"high_quality": 90, "balanced": 85, "size_optimized": 78},
        "mixed": {"high_quality": 91, "balanced": 86, "size_optimized": 80},
    }

    # 每种内容类型的默认质量（即 balanced 列）
    PHOTO: Final[int] = 88
    GRAPHIC: Final[int] = 85
    MIXED: Final[int] = 86
    MINIMUM: Final[int] = 78

    # 决策结果的截断区间
    CLAMP_LOW: Final[int] = 50
    CLAMP_HIGH: Final[int] = 95

    MIN_QUALITY: Final[int] = 1
    MAX_QUALITY: Final[int] = 100


class AnalysisDefaults:
    """内容分析相关常量"""

    # 3x3 拉普拉斯边缘检测核
    EDGE_KERNEL: Final[tuple[int, ...]] = (-1, -1, -1, -1, 8, -1, -1, -1, -1)

    # 归一化除数
    STDEV_NORMALIZER: Final[float] = 50.0
    EDGE_NORMALIZER: Final[float] = 128.0

    # 有效色深判定阈值（平均通道取值范围）
    NARROW_RANGE: Final[int] = 64
    MEDIUM_RANGE: Final[int] = 128

    DEFAULT_BIT_DEPTH: Final[int] = 8
    MIN_COLOR_DEPTH: Final[int] = 6
    MAX_COLOR_DEPTH: Final[int] = 16


class ValidationDefaults:
    """质量验证相关默认值"""

    MINIMUM_SCORE: Final[int] = 70
    MAX_SIZE_INCREASE: Final[float] = 1.2

    MAX_QUALITY_LOSS: Final[float] = 30.0
    MIN_STRUCTURAL_SIMILARITY: Final[float] = 0.8

    # 指标计算失败时的保守估计
    FALLBACK_STRUCTURAL: Final[float] = 0.8
    FALLBACK_COLOR: Final[float] = 0.85
    FALLBACK_SHARPNESS: Final[float] = 0.8
    FALLBACK_LOSS: Final[float] = 20.0

    # 综合评分权重
    WEIGHT_STRUCTURAL: Final[float] = 0.4
    WEIGHT_COLOR: Final[float] = 0.3
    WEIGHT_SHARPNESS: Final[float] = 0.3


class ProcessingDefaults:
    """处理相关默认值"""

    # 默认排除目录
    EXCLUDE_DIRS: Final[list[str]] = [
        "__pycache__",
        ".git",
        ".svn",
        "node_modules",
    ]

    MAX_WORKERS: Final[int] = 4
    MAX_WIDTH: Final[int] = 1920
    MAX_HEIGHT: Final[int] = 1080
    PROGRESS_INTERVAL_MS: Final[int] = 100

    # 超过该边长的源图在编码前做轻度锐化
    SHARPEN_THRESHOLD: Final[int] = 1000

    # 输出目录中允许存在的历史产物
    ARTIFACT_KEYWORDS: Final[tuple[str, ...]] = ("mapping", "report", "optimization")
    ARTIFACT_SUFFIXES: Final[tuple[str, ...]] = (".json", ".txt")

    REPORT_BASENAME: Final[str] = "optimization-report"
    MAPPING_FILENAME: Final[str] = "filename-mapping.json"
    DEFAULT_OUTPUT_DIR: Final[str] = "./optimized"


# 便捷访问函数
def get_format_alias(format_str: str) -> str:
    """获取格式的标准名称"""
    format_upper = format_str.upper()
    return ImageFormats.ALIASES.get(format_upper, format_upper)


def get_output_extension(format_str: str) -> str:
    """获取输出格式的扩展名"""
    standard_format = get_format_alias(format_str)
    return ImageFormats.OUTPUT_EXTENSIONS.get(
        standard_format, f".{standard_format.lower()}"
    )
