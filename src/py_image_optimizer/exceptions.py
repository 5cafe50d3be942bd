"""图像优化异常处理模块。

定义统一的异常类和错误处理机制，包含编解码异常转换装饰器。
"""

from collections.abc import Callable, Sequence
from functools import wraps
from pathlib import Path
from typing import TypeVar

from PIL.Image import DecompressionBombError, UnidentifiedImageError

from .models.optimization_result import OptimizationResult, OptimizationStatus
from .utils.logging_helpers import get_logger
from .utils.message_formatter import MessageFormatter


logger = get_logger()
T = TypeVar("T")


# 统一的异常类型
class OptimizerError(Exception):
    """图像优化相关错误基类"""

    def __init__(self, message: str, input_path: Path | None = None):
        super().__init__(message)
        self.message = message
        self.input_path = input_path


class ConfigurationError(OptimizerError):
    """配置或参数无效"""

    pass


class ProcessingError(OptimizerError):
    """处理过程错误"""

    pass


class CodecError(ProcessingError):
    """图像解码、编码或变换失败"""

    pass


class AnalysisError(ProcessingError):
    """内容分析失败"""

    pass


class ValidationError(ProcessingError):
    """输出验证无法进行（文件不可读）"""

    pass


class BatchAbortError(ProcessingError):
    """continue_on_error 关闭时首个失败终止了批处理

    results 保存中止前已经记录的全部结果。
    """

    def __init__(
        self,
        message: str,
        input_path: Path | None = None,
        results: Sequence[OptimizationResult] = (),
    ):
        super().__init__(message, input_path)
        self.results = list(results)


# 编解码异常处理装饰器
def handle_codec_errors(operation_name: str = "图像处理"):
    """把 Pillow 和文件系统异常统一转换为 CodecError

    Args:
        operation_name: 操作名称，用于日志记录
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except CodecError:
                raise
            except UnidentifiedImageError as e:
                logger.debug(f"{operation_name} - 无法识别图像格式: {e}")
                raise CodecError(f"cannot identify image: {e}") from e
            except DecompressionBombError as e:
                logger.debug(f"{operation_name} - 图像过大: {e}")
                raise CodecError(f"image too large to decode safely: {e}") from e
            except OSError as e:
                logger.debug(f"{operation_name} - 文件操作失败: {e}")
                raise CodecError(f"{operation_name} failed: {e}") from e
            except (ValueError, TypeError) as e:
                logger.debug(f"{operation_name} - 参数错误: {e}")
                raise CodecError(f"{operation_name} failed: {e}") from e

        return wrapper

    return decorator


class ErrorHandler:
    """统一错误处理器

    把单张图片处理中的异常转换为终态结果，并做标准化日志记录。
    """

    @staticmethod
    def _log_error(
        operation: str, path: Path, error: Exception, level: str = "error"
    ) -> None:
        """标准化的错误日志记录

        Args:
            operation: 操作名称（如"内容分析"、"图像编码"等）
            path: 相关文件路径
            error: 异常对象
            level: 日志级别 ("error", "warning", "debug")
        """
        log_msg = MessageFormatter.format_error(operation, path, error)
        getattr(logger, level, logger.error)(log_msg)

    @staticmethod
    def create_failed_result(
        input_path: Path,
        error_msg: str,
        processing_time_ms: float = 0.0,
    ) -> OptimizationResult:
        """创建失败结果：无输出路径，大小均为 0"""
        return OptimizationResult(
            original_path=input_path,
            output_path=None,
            original_size=0,
            output_size=0,
            compression_ratio=0.0,
            quality_used=None,
            processing_time_ms=processing_time_ms,
            status=OptimizationStatus.FAILED,
            error_message=error_msg,
        )

    @staticmethod
    def create_skipped_result(
        input_path: Path, reason: str, processing_time_ms: float = 0.0
    ) -> OptimizationResult:
        """创建跳过结果"""
        logger.info(f"跳过文件 [{input_path}]: {reason}")
        return OptimizationResult(
            original_path=input_path,
            processing_time_ms=processing_time_ms,
            status=OptimizationStatus.SKIPPED,
            error_message=reason,
        )

    @staticmethod
    def handle_pipeline_error(
        error: Exception,
        input_path: Path,
        operation: str = "图像优化",
        processing_time_ms: float = 0.0,
    ) -> OptimizationResult:
        """单张图片处理异常的统一转换，按异常类型决定日志级别"""
        match error:
            case AnalysisError() | CodecError() as known:
                ErrorHandler._log_error(operation, input_path, known, "warning")
                message = known.message
            case ValidationError() as ve:
                ErrorHandler._log_error("质量验证", input_path, ve, "warning")
                message = ve.message
            case FileNotFoundError() as fnfe:
                ErrorHandler._log_error(operation, input_path, fnfe, "warning")
                message = str(fnfe)
            case PermissionError() as pe:
                ErrorHandler._log_error(f"{operation} - 权限错误", input_path, pe)
                message = str(pe)
            case OptimizerError() as oe:
                ErrorHandler._log_error(operation, input_path, oe)
                message = oe.message
            case _:
                ErrorHandler._log_error(operation, input_path, error)
                message = str(error) or type(error).__name__

        return ErrorHandler.create_failed_result(
            input_path, message, processing_time_ms
        )
