"""统一配置管理模块。

提供应用程序的全局配置管理，包括默认值、环境变量支持等。
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class OptimizationDefaults:
    """批量优化相关的默认配置"""

    # 并发设置
    CONCURRENCY: int = 4

    # 尺寸限制（Full HD）
    MAX_WIDTH: int = 1920
    MAX_HEIGHT: int = 1080

    # 进度回调节流间隔
    PROGRESS_INTERVAL_MS: int = 100


@dataclass(frozen=True)
class LoggingDefaults:
    """日志相关的默认配置"""

    # 日志级别
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # 文件日志
    ENABLE_FILE_LOGGING: bool = False
    LOG_FILE_PATH: str = "py_image_optimizer.log"
    LOG_FILE_MAX_SIZE: int = 10 * 1024 * 1024  # 10MB
    LOG_FILE_BACKUP_COUNT: int = 5


class AppConfig:
    """应用程序配置管理器

    支持环境变量覆盖默认配置
    """

    def __init__(self):
        self.optimization = OptimizationDefaults()
        self.logging = LoggingDefaults()

        # 从环境变量加载配置
        self._load_from_env()

    def _load_from_env(self):
        """从环境变量加载配置"""
        # 优化配置
        if concurrency := os.getenv("PIO_CONCURRENCY"):
            object.__setattr__(self.optimization, "CONCURRENCY", int(concurrency))

        if max_width := os.getenv("PIO_MAX_WIDTH"):
            object.__setattr__(self.optimization, "MAX_WIDTH", int(max_width))

        if max_height := os.getenv("PIO_MAX_HEIGHT"):
            object.__setattr__(self.optimization, "MAX_HEIGHT", int(max_height))

        if interval := os.getenv("PIO_PROGRESS_INTERVAL_MS"):
            object.__setattr__(
                self.optimization, "PROGRESS_INTERVAL_MS", int(interval)
            )

        # 日志配置
        if log_level := os.getenv("PIO_LOG_LEVEL"):
            object.__setattr__(self.logging, "LOG_LEVEL", log_level.upper())

        if log_file := os.getenv("PIO_LOG_FILE"):
            object.__setattr__(self.logging, "LOG_FILE_PATH", log_file)

        if enable_file_log := os.getenv("PIO_ENABLE_FILE_LOGGING"):
            object.__setattr__(
                self.logging,
                "ENABLE_FILE_LOGGING",
                enable_file_log.lower() in ("true", "1", "yes"),
            )


# 全局配置实例
config = AppConfig()


def get_config() -> AppConfig:
    """获取全局配置实例"""
    return config


def reset_config():
    """重置配置（主要用于测试）"""
    global config
    config = AppConfig()
