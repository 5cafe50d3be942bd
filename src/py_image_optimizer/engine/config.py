"""配置构建器模块。

把命令行或 MCP 工具传入的松散参数组装成 OptimizationConfig，统一参数验证。
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ConfigurationError
from ..models.constants import QualityDefaults
from ..models.optimization_config import (
    DimensionSettings,
    OptimizationConfig,
    OutputSettings,
    ProcessingSettings,
    QualitySettings,
    ValidationSettings,
)
from ..utils.logging_helpers import get_logger


logger = get_logger()

# 参数名 -> (配置分组, 字段名)
_FIELD_MAP: dict[str, tuple[str, str]] = {
    "photo_quality": ("quality", "photo"),
    "graphic_quality": ("quality", "graphic"),
    "mixed_quality": ("quality", "mixed"),
    "min_quality": ("quality", "minimum"),
    "max_width": ("dimensions", "max_width"),
    "max_height": ("dimensions", "max_height"),
    "preserve_aspect_ratio": ("dimensions", "preserve_aspect_ratio"),
    "concurrency": ("processing", "concurrency"),
    "continue_on_error": ("processing", "continue_on_error"),
    "progress": ("processing", "enable_progress_reporting"),
    "progress_interval_ms": ("processing", "progress_interval_ms"),
    "sharpen": ("processing", "sharpen_large_images"),
    "item_timeout": ("processing", "item_timeout_seconds"),
    "target_format": ("output", "target_format"),
    "preserve_structure": ("output", "preserve_structure"),
    "report": ("output", "generate_report"),
    "report_format": ("output", "report_format"),
    "overwrite": ("output", "overwrite"),
    "validate": ("validation", "enabled"),
    "validation_threshold": ("validation", "minimum_score"),
}

_QUALITY_DEFAULTS: dict[str, int] = {
    "photo": QualityDefaults.PHOTO,
    "graphic": QualityDefaults.GRAPHIC,
    "mixed": QualityDefaults.MIXED,
}

_SECTIONS = {
    "quality": QualitySettings,
    "dimensions": DimensionSettings,
    "processing": ProcessingSettings,
    "output": OutputSettings,
    "validation": ValidationSettings,
}


class ConfigBuilder:
    """优化配置构建器

    值为 None 的参数视为未提供，使用模型默认值。
    """

    def build(self, **kwargs: Any) -> OptimizationConfig:
        """构建优化配置

        Args:
            **kwargs: 扁平参数，如 photo_quality、concurrency、report_format

        Returns:
            OptimizationConfig: 构建的配置对象

        Raises:
            ConfigurationError: 参数未知或验证失败
        """
        unknown = sorted(
            k for k in kwargs if k not in _FIELD_MAP and k != "supported_formats"
        )
        if unknown:
            raise ConfigurationError(f"Unknown configuration options: {', '.join(unknown)}")

        sections: dict[str, dict[str, Any]] = {name: {} for name in _SECTIONS}
        for key, value in kwargs.items():
            if value is None or key == "supported_formats":
                continue
            section, field = _FIELD_MAP[key]
            sections[section][field] = value

        self._raise_defaults_to_minimum(sections["quality"])

        try:
            config_kwargs: dict[str, Any] = {
                name: model(**sections[name]) for name, model in _SECTIONS.items()
            }
            if kwargs.get("supported_formats"):
                config_kwargs["supported_formats"] = kwargs["supported_formats"]
            config = OptimizationConfig(**config_kwargs)
        except PydanticValidationError as e:
            raise ConfigurationError(self._format_validation_error(e)) from e

        logger.debug(f"配置构建完成: {config.model_dump()}")
        return config

    @staticmethod
    def _raise_defaults_to_minimum(quality: dict[str, Any]) -> None:
        """未显式给出的内容类型质量提升到质量下限

        显式给出且低于下限的值仍由 QualitySettings 拒绝。
        """
        minimum = quality.get("minimum")
        if minimum is None:
            return
        for field, default in _QUALITY_DEFAULTS.items():
            if field not in quality:
                quality[field] = max(default, minimum)

    def _format_validation_error(self, error: PydanticValidationError) -> str:
        """格式化验证错误"""
        messages = []
        for err in error.errors():
            field = ".".join(str(loc) for loc in err["loc"])
            msg = err["msg"]
            if field:
                messages.append(f"{field}: {msg}")
            else:
                messages.append(msg)
        return "; ".join(messages)
